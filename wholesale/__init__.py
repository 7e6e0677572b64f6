from flask import Flask
from flask_migrate import Migrate
from flask_login import LoginManager
from wholesale.extensions import db
from wholesale.config import Config
from wholesale.errors import register_error_handlers
from wholesale.middleware import setup_auth_middleware, bearer_token
import logging

logger = logging.getLogger(__name__)

migrate = Migrate()
login_manager = LoginManager()


def configure_logging(app):
    handlers = [logging.StreamHandler()]
    if app.config.get('LOG_FILE') and not app.testing:
        handlers.append(logging.FileHandler(app.config['LOG_FILE']))
    logging.basicConfig(
        level=getattr(logging, app.config['LOG_LEVEL'].upper(), logging.INFO),
        format='%(asctime)s - %(name)s - %(levelname)s - %(message)s',
        handlers=handlers,
    )

    # Account lifecycle and settlement changes also go to their own file.
    major_logger = logging.getLogger('major_events')
    if not major_logger.handlers and not app.testing:
        handler = logging.FileHandler('major_events.log')
        handler.setFormatter(logging.Formatter(
            '%(asctime)s - %(levelname)s - %(message)s'))
        major_logger.addHandler(handler)
        major_logger.setLevel(logging.INFO)
        major_logger.propagate = False


def create_app(config_class=Config):
    app = Flask(__name__)
    app.config.from_object(config_class)
    configure_logging(app)

    # Initialize extensions
    db.init_app(app)
    migrate.init_app(app, db)
    login_manager.init_app(app)

    from wholesale.models import Profile
    from wholesale.services.identity import get_identity_provider
    from wholesale.services.authz import find_profile
    from wholesale.services.gateway import get_gateway

    @login_manager.user_loader
    def load_user(user_id):
        return db.session.get(Profile, int(user_id))

    # Stateless API: every request carries the provider's bearer token.
    @login_manager.request_loader
    def load_user_from_request(request):
        identity = get_identity_provider().current_identity(bearer_token())
        return find_profile(get_gateway(), identity)

    # Register blueprints
    from wholesale.blueprints import admin, wholesaler, inquiries, support

    app.register_blueprint(admin.bp, url_prefix='/api/admin')
    app.register_blueprint(wholesaler.bp, url_prefix='/api/wholesaler')
    app.register_blueprint(inquiries.bp, url_prefix='/api/inquiries')
    app.register_blueprint(support.bp, url_prefix='/api')

    setup_auth_middleware(app)
    register_error_handlers(app)

    # Note: Database tables are managed via Flask-Migrate
    # Use 'flask db upgrade' to create/update tables

    logger.info("Flask application initialized")
    return app
