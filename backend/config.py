"""
Configuration management for the Overhead Satellite Tracker backend.
"""
import os


def _env_float(name, default=None):
    value = os.environ.get(name)
    if value is None or value == '':
        return default
    return float(value)


class Config:
    """Base configuration class."""

    # Flask
    SECRET_KEY = os.environ.get('SECRET_KEY', 'overhead-tracker-secret-key')

    # Working set
    # Number of objects kept in the persisted selection. The selection grows
    # toward this size and never shrinks.
    TARGET_COUNT = int(os.environ.get('TARGET_COUNT', 50))
    # Size of the nearest-N candidate pool used when ingesting a catalog for
    # an observer. Defaults to TARGET_COUNT when unset.
    NEAREST_POOL_SIZE = int(os.environ.get('NEAREST_POOL_SIZE', 0)) or None

    # Upstream catalog source (keeptrack.space)
    UPSTREAM_URL = os.environ.get('UPSTREAM_URL', 'https://api.keeptrack.space/v2/sats')
    UPSTREAM_TIMEOUT = float(os.environ.get('UPSTREAM_TIMEOUT', 8))
    # Minimum seconds between upstream calls for the same observer cell
    UPSTREAM_MIN_INTERVAL = int(os.environ.get('UPSTREAM_MIN_INTERVAL', 30))

    # Persistence
    # 'file' keeps JSON documents under DATA_DIR, 'redis' keeps them in Redis
    STORAGE_BACKEND = os.environ.get('STORAGE_BACKEND', 'file')
    DATA_DIR = os.environ.get(
        'DATA_DIR',
        os.path.join(os.path.dirname(os.path.abspath(__file__)), 'data')
    )
    SELECTION_FILE = os.environ.get('SELECTION_FILE', 'selected_satellites.json')
    POSITIONS_FILE = os.environ.get('POSITIONS_FILE', 'positions_cache.json')
    REDIS_URL = os.environ.get('REDIS_URL', 'redis://localhost:6379/0')
    REDIS_KEY_PREFIX = os.environ.get('REDIS_KEY_PREFIX', 'tracker')

    # A satellite within this surface distance of the observer counts as overhead
    OVERHEAD_THRESHOLD_M = float(os.environ.get('OVERHEAD_THRESHOLD_M', 500000))

    # Scheduler settings
    # Periodic refresh for a fixed observer; 0 disables the job
    REFRESH_INTERVAL_MINUTES = int(os.environ.get('REFRESH_INTERVAL_MINUTES', 0))
    DEFAULT_OBSERVER_LAT = _env_float('DEFAULT_OBSERVER_LAT')
    DEFAULT_OBSERVER_LON = _env_float('DEFAULT_OBSERVER_LON')

    # Logging
    LOG_LEVEL = os.environ.get('LOG_LEVEL', 'INFO')
    LOG_FILE = os.environ.get('LOG_FILE')


class DevelopmentConfig(Config):
    """Development configuration."""
    DEBUG = True
    LOG_LEVEL = os.environ.get('LOG_LEVEL', 'DEBUG')


class ProductionConfig(Config):
    """Production configuration."""
    DEBUG = False


class TestingConfig(Config):
    """Testing configuration. DATA_DIR is expected to be overridden per test."""
    TESTING = True
    DEBUG = False
    UPSTREAM_MIN_INTERVAL = 0
    REFRESH_INTERVAL_MINUTES = 0


# Configuration mapping
config = {
    'development': DevelopmentConfig,
    'production': ProductionConfig,
    'testing': TestingConfig,
    'default': DevelopmentConfig,
}
