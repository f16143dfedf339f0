import os
from dotenv import load_dotenv

load_dotenv()


class Config:
    SECRET_KEY = os.environ.get('SECRET_KEY') or (
        'dev-secret-key-change-in-production'
    )
    SQLALCHEMY_DATABASE_URI = os.environ.get('DATABASE_URL') or (
        'sqlite:///ecofinds.db'
    )
    SQLALCHEMY_TRACK_MODIFICATIONS = False

    # Bearer tokens. The signing key falls back to SECRET_KEY.
    JWT_SECRET_KEY = os.environ.get('JWT_SECRET_KEY') or SECRET_KEY
    JWT_ALGORITHM = 'HS256'
    TOKEN_EXPIRES_DAYS = int(os.environ.get('TOKEN_EXPIRES_DAYS', '7'))

    MIN_PASSWORD_LENGTH = 6

    # Pagination configuration
    ITEMS_PER_PAGE = 12
    ORDERS_PER_PAGE = 10
    MAX_PER_PAGE = 50

    LOG_FILE = os.environ.get('LOG_FILE', 'app.log')
