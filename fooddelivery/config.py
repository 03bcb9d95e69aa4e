import os
from datetime import timedelta


def _env_flag(name, default='0'):
    return os.environ.get(name, default).lower() in ('1', 'true', 'yes')


class Config:
    # Database Configuration
    MONGO_URI = os.environ.get('MONGO_URI', 'mongodb://localhost:27017')
    MONGO_DB_NAME = os.environ.get('MONGO_DB_NAME', 'FoodDelivery')
    MONGO_SERVER_SELECTION_TIMEOUT_MS = int(os.environ.get('MONGO_SERVER_SELECTION_TIMEOUT_MS', '5000'))

    # Security Configuration
    SECRET_KEY = os.environ.get('SECRET_KEY', 'fooddelivery-secret-key-change-in-production')

    # Application Configuration
    DEBUG = _env_flag('FLASK_DEBUG')
    FLASK_ENV = os.environ.get('FLASK_ENV', 'production')
    LOG_LEVEL = os.environ.get('LOG_LEVEL', 'INFO')

    # Echo raw store errors in 500 responses
    EXPOSE_STORE_ERRORS = _env_flag('EXPOSE_STORE_ERRORS')

    # Session Configuration
    SESSION_BACKEND = os.environ.get('SESSION_BACKEND', 'mongo')
    SESSION_COOKIE_NAME = 'fooddelivery_session'
    SESSION_COOKIE_HTTPONLY = True
    SESSION_COOKIE_SAMESITE = 'Lax'
    SESSION_COOKIE_SECURE = False
    PERMANENT_SESSION_LIFETIME = timedelta(hours=24)

    # Server
    HOST = os.environ.get('HOST', '0.0.0.0')
    PORT = int(os.environ.get('PORT', '3000'))


class DevelopmentConfig(Config):
    DEBUG = True
    FLASK_ENV = 'development'
    LOG_LEVEL = os.environ.get('LOG_LEVEL', 'DEBUG')
    EXPOSE_STORE_ERRORS = True
    SESSION_BACKEND = os.environ.get('SESSION_BACKEND', 'memory')


class ProductionConfig(Config):
    DEBUG = False
    FLASK_ENV = 'production'

    # Production security settings
    SESSION_COOKIE_SECURE = True


class TestingConfig(Config):
    TESTING = True
    DEBUG = False
    FLASK_ENV = 'testing'
    SECRET_KEY = 'testing-secret-key'
    MONGO_DB_NAME = 'FoodDeliveryTest'
    SESSION_BACKEND = 'memory'
    EXPOSE_STORE_ERRORS = False
    LOG_LEVEL = 'WARNING'


config = {
    'development': DevelopmentConfig,
    'production': ProductionConfig,
    'testing': TestingConfig,
    'default': ProductionConfig
}
