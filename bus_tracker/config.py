"""
Environment configuration for the bus position tracker
"""

import os
from dataclasses import dataclass

from dotenv import load_dotenv

STORAGE_BACKENDS = ('csv', 'mongo', 'sqlite')


@dataclass(frozen=True)
class Config:
    """Process settings read from the environment (and .env)"""
    port: int = 3000
    host: str = '127.0.0.1'
    debug: bool = False
    secret_key: str = 'bus-tracker-secret-key'
    storage_backend: str = 'csv'
    csv_dir: str = 'csv'
    error_log: str = 'error_log.txt'
    mongodb_uri: str = 'mongodb://localhost:27017'
    mongodb_db: str = 'bus_tracker'
    sqlite_path: str = 'bus_positions.db'
    jaha_base_url: str = 'https://www.jaha.com.py'
    poll_interval_ms: int = 500
    request_timeout: float = 10.0
    log_level: str = 'INFO'

    @property
    def poll_interval(self) -> float:
        """Poll interval in seconds"""
        return self.poll_interval_ms / 1000.0

    @classmethod
    def from_env(cls, load_env_file: bool = True) -> 'Config':
        if load_env_file:
            load_dotenv()

        backend = os.getenv('STORAGE_BACKEND', cls.storage_backend).strip().lower()
        if backend not in STORAGE_BACKENDS:
            raise ValueError(f"Unknown STORAGE_BACKEND '{backend}', expected one of {', '.join(STORAGE_BACKENDS)}")

        return cls(
            port=int(os.getenv('PORT', cls.port)),
            host=os.getenv('HOST', cls.host),
            debug=os.getenv('DEBUG', 'False').lower() == 'true',
            secret_key=os.getenv('SECRET_KEY', cls.secret_key),
            storage_backend=backend,
            csv_dir=os.getenv('CSV_DIR', cls.csv_dir),
            error_log=os.getenv('ERROR_LOG', cls.error_log),
            mongodb_uri=os.getenv('MONGODB_URI', cls.mongodb_uri),
            mongodb_db=os.getenv('MONGODB_DB', cls.mongodb_db),
            sqlite_path=os.getenv('SQLITE_PATH', cls.sqlite_path),
            jaha_base_url=os.getenv('JAHA_BASE_URL', cls.jaha_base_url).rstrip('/'),
            poll_interval_ms=int(os.getenv('POLL_INTERVAL_MS', cls.poll_interval_ms)),
            request_timeout=float(os.getenv('REQUEST_TIMEOUT', cls.request_timeout)),
            log_level=os.getenv('LOG_LEVEL', cls.log_level).upper()
        )
