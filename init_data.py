from datetime import datetime, timedelta
from wholesale import create_app
from wholesale.extensions import db
from wholesale.models import (
    Profile,
    UserRole,
    Wholesaler,
    WholesalerStatus,
    Retailer,
    Order,
    OrderStatus,
    FAQ,
    Announcement,
)
from wholesale.services.gateway import get_gateway
from wholesale.services.settlement_service import create_settlement

app = create_app()

with app.app_context():
    # Admin profile (external id must match the identity provider's user)
    admin_ext_id = "seed-admin"
    admin = Profile.query.filter_by(external_user_id=admin_ext_id).first()
    if not admin:
        admin = Profile(
            external_user_id=admin_ext_id,
            email="admin@example.com",
            role=UserRole.ADMIN,
        )
        db.session.add(admin)
        print(f"Created admin profile: {admin_ext_id}")

    # Wholesalers in each approval state
    wholesalers_data = [
        {
            "ext_id": "seed-wholesaler-1",
            "email": "fresh-produce@example.com",
            "business_name": "Fresh Produce Co.",
            "status": WholesalerStatus.APPROVED,
        },
        {
            "ext_id": "seed-wholesaler-2",
            "email": "kitchen-supply@example.com",
            "business_name": "Kitchen Supply Depot",
            "status": WholesalerStatus.APPROVED,
        },
        {
            "ext_id": "seed-wholesaler-3",
            "email": "newcomer@example.com",
            "business_name": "Newcomer Trading",
            "status": WholesalerStatus.PENDING,
        },
    ]

    wholesalers = {}
    for data in wholesalers_data:
        profile = Profile.query.filter_by(
            external_user_id=data["ext_id"]
        ).first()
        if profile:
            wholesalers[data["ext_id"]] = profile.wholesalers.first()
            continue

        profile = Profile(
            external_user_id=data["ext_id"],
            email=data["email"],
            role=UserRole.WHOLESALER,
        )
        db.session.add(profile)
        db.session.flush()

        wholesaler = Wholesaler(
            profile_id=profile.id,
            business_name=data["business_name"],
            status=data["status"],
            approved_at=(
                datetime.utcnow()
                if data["status"] == WholesalerStatus.APPROVED
                else None
            ),
        )
        db.session.add(wholesaler)
        db.session.flush()
        wholesalers[data["ext_id"]] = wholesaler
        print(
            "Created wholesaler: %s - %s (%s)"
            % (data["ext_id"], data["business_name"], data["status"].value)
        )

    # Retailers
    retailers_data = [
        {"ext_id": "seed-retailer-1", "name": "Corner Bistro",
         "code": "R-1001"},
        {"ext_id": "seed-retailer-2", "name": "Harbor Cafe",
         "code": "R-1002"},
    ]

    retailers = []
    for data in retailers_data:
        profile = Profile.query.filter_by(
            external_user_id=data["ext_id"]
        ).first()
        if profile:
            retailers.append(profile.retailers.first())
            continue

        profile = Profile(
            external_user_id=data["ext_id"],
            email=f'{data["ext_id"]}@example.com',
            role=UserRole.RETAILER,
        )
        db.session.add(profile)
        db.session.flush()
        retailer = Retailer(
            profile_id=profile.id,
            business_name=data["name"],
            anonymous_code=data["code"],
        )
        db.session.add(retailer)
        db.session.flush()
        retailers.append(retailer)
        print(f"Created retailer: {data['ext_id']} - {data['name']}")

    db.session.commit()

    # Orders for the first approved wholesaler, one settlement each
    supplier = wholesalers["seed-wholesaler-1"]
    orders_data = [
        {"number": "WS-0001", "amount": 125000,
         "status": OrderStatus.DELIVERED, "delivered_days_ago": 10},
        {"number": "WS-0002", "amount": 48900,
         "status": OrderStatus.DELIVERED, "delivered_days_ago": 2},
        {"number": "WS-0003", "amount": 76300,
         "status": OrderStatus.SHIPPING, "delivered_days_ago": None},
        {"number": "WS-0004", "amount": 15000,
         "status": OrderStatus.PENDING, "delivered_days_ago": None},
    ]

    gateway = get_gateway()
    for index, data in enumerate(orders_data):
        if Order.query.filter_by(order_number=data["number"]).first():
            continue
        delivered_at = None
        if data["delivered_days_ago"] is not None:
            delivered_at = datetime.utcnow() - timedelta(
                days=data["delivered_days_ago"])
        order = Order(
            order_number=data["number"],
            wholesaler_id=supplier.id,
            retailer_id=retailers[index % len(retailers)].id,
            status=data["status"],
            total_amount=data["amount"],
            delivered_at=delivered_at,
        )
        db.session.add(order)
        db.session.commit()

        settlement = create_settlement(gateway, order)
        print(
            "Created order %s (%s) with settlement %s"
            % (data["number"], data["status"].value, settlement.id)
        )

    # Support content
    if not FAQ.query.first():
        faqs = [
            ("How long until I am paid?",
             "Payouts are scheduled seven days after delivery."),
            ("What is the platform fee?",
             "A 5% fee is deducted from each order amount."),
            ("How do I contact support?",
             "Open an inquiry from your dashboard."),
        ]
        for position, (question, answer) in enumerate(faqs, start=1):
            db.session.add(FAQ(
                question=question, answer=answer, display_order=position))
        print(f"Created {len(faqs)} FAQs")

    if not Announcement.query.first():
        db.session.add(Announcement(
            title="Welcome to the wholesale marketplace",
            content="Approved wholesalers can now manage orders online.",
        ))
        print("Created welcome announcement")

    db.session.commit()
    print("Data initialization completed!")
