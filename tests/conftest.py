"""
Pytest fixtures for the wholesale workflow tests.

Each test gets a fresh in-memory SQLite database. Service tests run inside
an application context and talk to a real ``Gateway``; HTTP tests use the
Flask test client and authenticate with identity tokens signed by the
testing secret.
"""
from datetime import datetime, timedelta, timezone
from types import SimpleNamespace
import jwt
import pytest

from wholesale import create_app
from wholesale.config import TestingConfig
from wholesale.extensions import db
from wholesale.models import (
    Profile,
    UserRole,
    Wholesaler,
    WholesalerStatus,
    Retailer,
    Order,
    OrderStatus,
)
from wholesale.services import cache_service
from wholesale.services.authz import caller_for_profile
from wholesale.services.gateway import Gateway


def make_token(external_user_id, secret=TestingConfig.IDENTITY_JWT_SECRET,
               expires_in=3600):
    payload = {
        'sub': external_user_id,
        'exp': datetime.now(timezone.utc) + timedelta(seconds=expires_in),
    }
    return jwt.encode(payload, secret, algorithm='HS256')


def seed_world(gateway):
    """Admin, two approved wholesalers, one pending, one retailer."""
    admin = gateway.insert(
        Profile, external_user_id='admin-1', email='admin@example.com',
        role=UserRole.ADMIN)

    def wholesaler(ext_id, name, status):
        profile = gateway.insert(
            Profile, external_user_id=ext_id, role=UserRole.WHOLESALER)
        row = gateway.insert(
            Wholesaler,
            profile_id=profile.id,
            business_name=name,
            status=status,
            approved_at=(
                datetime(2025, 1, 1)
                if status == WholesalerStatus.APPROVED else None
            ),
        )
        return profile.id, row.id

    a_profile, a_id = wholesaler(
        'wh-a', 'Alpha Foods', WholesalerStatus.APPROVED)
    b_profile, b_id = wholesaler(
        'wh-b', 'Beta Supply', WholesalerStatus.APPROVED)
    p_profile, p_id = wholesaler(
        'wh-p', 'Pending Goods', WholesalerStatus.PENDING)

    retailer_profile = gateway.insert(
        Profile, external_user_id='rt-1', role=UserRole.RETAILER)
    retailer = gateway.insert(
        Retailer,
        profile_id=retailer_profile.id,
        business_name='Corner Bistro',
        anonymous_code='R-0001',
    )

    return SimpleNamespace(
        admin_profile=admin.id,
        a_profile=a_profile,
        a_id=a_id,
        b_profile=b_profile,
        b_id=b_id,
        pending_profile=p_profile,
        pending_id=p_id,
        retailer_profile=retailer_profile.id,
        retailer_id=retailer.id,
    )


_order_seq = [0]


def make_order(gateway, wholesaler_id, retailer_id=None, amount=10000,
               status=OrderStatus.PENDING, created_at=None):
    _order_seq[0] += 1
    values = dict(
        order_number=f'ORD-{_order_seq[0]:05d}',
        wholesaler_id=wholesaler_id,
        retailer_id=retailer_id,
        total_amount=amount,
        status=status,
    )
    if created_at is not None:
        values['created_at'] = created_at
    return gateway.insert(Order, **values)


@pytest.fixture
def app():
    app = create_app(TestingConfig)
    with app.app_context():
        db.create_all()
    cache_service.clear()

    yield app

    with app.app_context():
        db.session.remove()
        db.drop_all()
    cache_service.clear()


@pytest.fixture
def gateway(app):
    with app.app_context():
        yield Gateway(db.session)


@pytest.fixture
def world(gateway):
    return seed_world(gateway)


@pytest.fixture
def caller_of(gateway):
    def resolve(profile_id):
        return caller_for_profile(gateway, gateway.get(Profile, profile_id))
    return resolve


@pytest.fixture
def client(app):
    return app.test_client()


@pytest.fixture
def api_world(app):
    """``seed_world`` for HTTP tests; no app context is left pushed."""
    with app.app_context():
        return seed_world(Gateway(db.session))


@pytest.fixture
def auth_headers():
    def headers(external_user_id):
        return {'Authorization': f'Bearer {make_token(external_user_id)}'}
    return headers


@pytest.fixture
def new_order():
    return make_order


@pytest.fixture
def sign_token():
    return make_token
