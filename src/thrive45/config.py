"""Configuration settings for the progress engine."""
import os
from dataclasses import dataclass, field
from pathlib import Path
from typing import Optional

from dotenv import load_dotenv

# Define base directory
BASE_DIR = Path(__file__).parent.parent.parent

# Load environment variables from .env file
env_file = ".env.test" if os.getenv("ENV") == "test" else ".env"
load_dotenv(env_file)


# Define data directories from environment variables
DATA_DIR = Path(os.getenv("DATA_DIR", "./data"))

# Challenge settings
CHALLENGE_LENGTH_DAYS = 45
SNAPSHOT_NAMESPACE = "thrive45_challenge"


def ensure_directories(data_dir: Optional[Path] = None) -> None:
    """Ensure all required directories exist."""
    directories = [data_dir or DATA_DIR]

    for directory in directories:
        directory.mkdir(parents=True, exist_ok=True)


@dataclass
class PathSettings:
    """Path configuration settings."""
    base_dir: Path = BASE_DIR
    data_dir: Path = DATA_DIR


@dataclass
class StorageSettings:
    """Local snapshot settings."""
    namespace: str = os.getenv("SNAPSHOT_NAMESPACE", SNAPSHOT_NAMESPACE)


@dataclass
class DatabaseSettings:
    """Remote record store settings."""
    url: str = os.getenv("DATABASE_URL", "sqlite:///thrive45.db")
    echo: bool = os.getenv("DATABASE_ECHO", "false").lower() == "true"
    timeout: float = float(os.getenv("REMOTE_TIMEOUT", "10"))


@dataclass
class LoggingSettings:
    """Logging configuration settings."""
    level: str = os.getenv("LOG_LEVEL", "INFO")
    format: str = "%(asctime)s - %(name)s - %(levelname)s - %(message)s"
    dir: Optional[str] = os.getenv("LOG_DIR", None)
    rotation: str = os.getenv("LOG_ROTATION", "midnight")
    interval: int = int(os.getenv("LOG_INTERVAL", "1"))
    backup_count: int = int(os.getenv("LOG_BACKUP_COUNT", "7"))


@dataclass
class ChallengeSettings:
    """Challenge program settings."""
    length_days: int = int(os.getenv("CHALLENGE_LENGTH_DAYS", str(CHALLENGE_LENGTH_DAYS)))


@dataclass
class MonitoringSettings:
    """Prometheus metrics settings."""
    enabled: bool = os.getenv("METRICS_ENABLED", "false").lower() == "true"
    port: int = int(os.getenv("METRICS_PORT", "9090"))


def get_path_settings() -> PathSettings:
    """Get path settings."""
    return PathSettings()


def get_storage_settings() -> StorageSettings:
    """Get storage settings."""
    return StorageSettings()


def get_database_settings() -> DatabaseSettings:
    """Get database settings."""
    return DatabaseSettings()


def get_logging_settings() -> LoggingSettings:
    """Get logging settings."""
    return LoggingSettings()


def get_challenge_settings() -> ChallengeSettings:
    """Get challenge settings."""
    return ChallengeSettings()


def get_monitoring_settings() -> MonitoringSettings:
    """Get monitoring settings."""
    return MonitoringSettings()


@dataclass
class Settings:
    """Main settings class that combines all configuration settings."""
    paths: PathSettings = field(default_factory=get_path_settings)
    storage: StorageSettings = field(default_factory=get_storage_settings)
    database: DatabaseSettings = field(default_factory=get_database_settings)
    logging: LoggingSettings = field(default_factory=get_logging_settings)
    challenge: ChallengeSettings = field(default_factory=get_challenge_settings)
    monitoring: MonitoringSettings = field(default_factory=get_monitoring_settings)

    def validate(self) -> None:
        """Validate settings and raise ValueError if invalid."""
        if not self.storage.namespace:
            raise ValueError("SNAPSHOT_NAMESPACE must not be empty")

        if self.challenge.length_days < 1:
            raise ValueError("CHALLENGE_LENGTH_DAYS must be positive")

        if self.database.timeout <= 0:
            raise ValueError("REMOTE_TIMEOUT must be positive")


# Create global settings instance
settings = Settings()
settings.validate()
