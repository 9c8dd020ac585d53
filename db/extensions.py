# db/extensions.py

from flask_sqlalchemy import SQLAlchemy
from flask_migrate import Migrate
import redis
from redis.connection import ConnectionPool, SSLConnection
import urllib.parse
import logging

db = SQLAlchemy()
migrate = Migrate()

logger = logging.getLogger(__name__)

# Populated by init_redis(); None means caching is disabled
redis_client = None


def create_redis_pool(redis_url, use_tls=False):
    """
    Create a Redis connection pool to reuse connections
    """
    parsed = urllib.parse.urlparse(redis_url)

    pool_kwargs = {
        'host': parsed.hostname,
        'port': parsed.port or 6379,
        'username': parsed.username,
        'password': parsed.password,
        'db': int(parsed.path.lstrip('/') or 0),
        'decode_responses': True,
        'socket_connect_timeout': 10,
        'socket_timeout': 5,
        'socket_keepalive': True,
        'retry_on_timeout': True,
        'health_check_interval': 30,
        'max_connections': 50,
    }

    if use_tls or parsed.scheme == 'rediss':
        pool_kwargs.update({
            'connection_class': SSLConnection,
            'ssl_cert_reqs': None,
            'ssl_check_hostname': False,
        })
        logger.info("Redis pool with SSL/TLS enabled")

    pool = ConnectionPool(**pool_kwargs)
    logger.info(f"Redis connection pool created: {parsed.hostname}")
    return pool


def init_redis(app):
    """Build the shared Redis client from app config."""
    global redis_client

    redis_url = app.config.get('REDIS_URL')
    if not redis_url:
        logger.info("REDIS_URL not set, settings cache disabled")
        redis_client = None
        return None

    pool = create_redis_pool(redis_url, app.config.get('REDIS_TLS_ENABLED', False))
    redis_client = redis.Redis(connection_pool=pool)

    # Pre-warm the pool; a failure here is retried on first use
    try:
        redis_client.ping()
        logger.info("Redis connection pool ready")
    except redis.exceptions.RedisError as e:
        logger.warning(f"Redis pre-warm failed (will retry on first request): {str(e)}")
    return redis_client


def get_redis():
    return redis_client


def check_redis_health():
    """Check Redis connection health. None when Redis is not configured."""
    if redis_client is None:
        return None
    try:
        redis_client.ping()
        return True
    except redis.exceptions.RedisError as e:
        logger.error(f"Redis health check failed: {str(e)}")
        return False
