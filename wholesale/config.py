import os
from dotenv import load_dotenv

load_dotenv()


class Config:
    SECRET_KEY = os.environ.get('SECRET_KEY') or (
        'dev-secret-key-change-in-production'
    )
    SQLALCHEMY_DATABASE_URI = os.environ.get('DATABASE_URL') or (
        'sqlite:///wholesale.db'
    )
    SQLALCHEMY_TRACK_MODIFICATIONS = False

    # Pagination configuration
    ITEMS_PER_PAGE = 20
    MAX_ITEMS_PER_PAGE = 100

    # Settlement: platform fee rate (0.05 = 5%) and payout offset after
    # delivery (D+7).
    PLATFORM_FEE_RATE = float(os.environ.get('PLATFORM_FEE_RATE', '0.05'))
    PAYOUT_DELAY_DAYS = int(os.environ.get('PAYOUT_DELAY_DAYS', '7'))

    # Notification dropdown size
    NOTIFICATION_LIMIT = 5

    # List view cache lifetime (seconds)
    VIEW_CACHE_TTL = int(os.environ.get('VIEW_CACHE_TTL', '300'))

    # External identity provider.
    # Session tokens are HS256 JWTs whose "sub" is the external user id.
    IDENTITY_JWT_SECRET = os.environ.get('IDENTITY_JWT_SECRET', '')
    IDENTITY_JWT_ALGORITHM = os.environ.get('IDENTITY_JWT_ALGORITHM', 'HS256')
    IDENTITY_API_URL = os.environ.get('IDENTITY_API_URL', '')
    IDENTITY_API_KEY = os.environ.get('IDENTITY_API_KEY', '')
    IDENTITY_API_TIMEOUT = float(
        os.environ.get('IDENTITY_API_TIMEOUT', '5.0'))

    LOG_LEVEL = os.environ.get('LOG_LEVEL', 'INFO')
    LOG_FILE = os.environ.get('LOG_FILE', 'app.log')


class TestingConfig(Config):
    TESTING = True
    SECRET_KEY = 'testing'
    SQLALCHEMY_DATABASE_URI = 'sqlite://'
    IDENTITY_JWT_SECRET = 'testing-identity-secret'
    IDENTITY_API_URL = 'https://identity.test/v1'
    IDENTITY_API_KEY = 'testing-api-key'
    VIEW_CACHE_TTL = 60
