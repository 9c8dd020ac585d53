# app/config.py

import os


class Config:
    # Flask Secret Key
    SECRET_KEY = os.getenv('SECRET_KEY', 'your_secret_key')

    # Database Configuration
    SQLALCHEMY_DATABASE_URI = os.getenv(
        'DATABASE_URI',
        'postgresql://postgres:postgres@db:5432/lab_booking_db'
    )
    SQLALCHEMY_TRACK_MODIFICATIONS = False

    # Database connection pool configuration
    SQLALCHEMY_ENGINE_OPTIONS = {
        "pool_pre_ping": True,       # Validate connections before using
        "pool_recycle": 1800,        # Recycle every 30 minutes
        "pool_size": 10,
        "max_overflow": 20,
        "pool_timeout": 30,
        "connect_args": {
            "connect_timeout": 10,
            "options": "-c statement_timeout=30000"  # 30s query timeout
        }
    }

    # Frontends allowed to call the API with credentials
    CORS_ORIGINS = [
        origin.strip()
        for origin in os.getenv(
            'CORS_ORIGINS',
            'http://localhost:3000,http://localhost:3001'
        ).split(',')
        if origin.strip()
    ]

    # Redis Configuration (settings cache). Leave unset to disable caching.
    REDIS_URL = os.getenv('REDIS_URL')
    REDIS_TLS_ENABLED = os.getenv('REDIS_TLS_ENABLED', 'false').lower() == 'true'
    SETTINGS_CACHE_TTL = int(os.getenv('SETTINGS_CACHE_TTL', 60))

    # All slot dates/times are stored as wall-clock time of the lab
    LAB_TIMEZONE = os.getenv('LAB_TIMEZONE', 'Asia/Kolkata')

    # Identity provider: bearer tokens are exchanged here for the user's email
    USERINFO_URL = os.getenv('USERINFO_URL', 'https://www.googleapis.com/oauth2/v2/userinfo')
    USERINFO_TIMEOUT = int(os.getenv('USERINFO_TIMEOUT', 10))

    # Requests slower than this are logged as warnings
    SLOW_REQUEST_MS = int(os.getenv('SLOW_REQUEST_MS', 500))

    DEBUG_MODE = os.getenv("DEBUG_MODE", "false").lower() == "true"


class TestConfig(Config):
    TESTING = True
    SQLALCHEMY_DATABASE_URI = 'sqlite://'
    SQLALCHEMY_ENGINE_OPTIONS = {}
    REDIS_URL = None
