"""Flask configuration for ChoreQuest."""

import os
from pathlib import Path
from datetime import timedelta


def _env_flag(name: str, default: str = 'false') -> bool:
    return os.environ.get(name, default).lower() in ('true', '1', 'yes')


class Config:
    """Base configuration."""

    # Flask settings
    SECRET_KEY = os.environ.get('SECRET_KEY') or 'dev-secret-key-change-in-production'

    # Session settings
    SESSION_COOKIE_HTTPONLY = True
    SESSION_COOKIE_SAMESITE = 'Lax'
    PERMANENT_SESSION_LIFETIME = timedelta(hours=24)

    # Database settings
    DATA_DIR = Path(os.environ.get('DATA_DIR', '/data'))
    SQLALCHEMY_DATABASE_URI = os.environ.get('DATABASE_URL') or f"sqlite:///{DATA_DIR / 'chorequest.db'}"
    SQLALCHEMY_TRACK_MODIFICATIONS = False

    # Storage backend: 'sqlalchemy' (durable) or 'memory' (lost on restart)
    REPOSITORY_BACKEND = os.environ.get('REPOSITORY_BACKEND', 'sqlalchemy')

    # Seed the demo family on startup
    SEED_DEMO_DATA = _env_flag('SEED_DEMO_DATA')

    # Application settings
    DEBUG = _env_flag('DEBUG')
    TESTING = False


class DevelopmentConfig(Config):
    """Development configuration."""
    DEBUG = True
    DATA_DIR = Path(__file__).parent / 'data'
    SQLALCHEMY_DATABASE_URI = os.environ.get('DATABASE_URL') or f"sqlite:///{DATA_DIR / 'chorequest.db'}"
    SEED_DEMO_DATA = _env_flag('SEED_DEMO_DATA', 'true')


class ProductionConfig(Config):
    """Production configuration."""
    DEBUG = False
    SESSION_COOKIE_SECURE = _env_flag('SESSION_COOKIE_SECURE', 'true')
    # Re-evaluate DATA_DIR and database URI to ensure environment variable is picked up
    DATA_DIR = Path(os.environ.get('DATA_DIR', '/data'))
    SQLALCHEMY_DATABASE_URI = os.environ.get('DATABASE_URL') or f"sqlite:///{DATA_DIR / 'chorequest.db'}"


class TestingConfig(Config):
    """Testing configuration."""
    TESTING = True
    SECRET_KEY = 'test-secret-key'
    SQLALCHEMY_DATABASE_URI = "sqlite:///:memory:"
    REPOSITORY_BACKEND = 'sqlalchemy'
    SEED_DEMO_DATA = False


# Config dictionary for easy access
config = {
    'development': DevelopmentConfig,
    'production': ProductionConfig,
    'testing': TestingConfig,
    'default': DevelopmentConfig
}
