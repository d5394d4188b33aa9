"""
Runtime configuration for the Preconfirm services.

All settings come from environment variables with development defaults.
"""

import os
from dataclasses import dataclass


@dataclass(frozen=True)
class Settings:
    """Service settings resolved from the environment"""
    database_url: str
    sql_echo: bool
    upload_folder: str
    high_value_threshold: float
    home_country: str
    anomaly_threshold: float
    max_upload_bytes: int
    log_level: str


def get_database_url() -> str:
    """Get database URL from environment or default"""
    return os.getenv('DATABASE_URL', 'sqlite:///preconfirm.db')


def get_settings() -> Settings:
    """Build settings from the current environment"""
    return Settings(
        database_url=get_database_url(),
        sql_echo=os.getenv('SQL_ECHO', 'false').lower() == 'true',
        upload_folder=os.getenv('UPLOAD_FOLDER', 'uploads'),
        high_value_threshold=float(os.getenv('HIGH_VALUE_THRESHOLD', '10000')),
        home_country=os.getenv('HOME_COUNTRY', 'GB').upper(),
        anomaly_threshold=float(os.getenv('ANOMALY_THRESHOLD', '0.8')),
        max_upload_bytes=int(os.getenv('MAX_UPLOAD_BYTES', str(10 * 1024 * 1024))),
        log_level=os.getenv('LOG_LEVEL', 'INFO').upper(),
    )
