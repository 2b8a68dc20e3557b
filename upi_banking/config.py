"""
Configuration Management Module

Provides centralized configuration using pydantic-settings for environment-based configuration.
"""

from pydantic_settings import BaseSettings
from typing import Optional


class UpiBankConfig(BaseSettings):
    """UPI banking backend configuration"""

    # Storage configuration
    storage_backend: str = "memory"  # memory or sqlite
    database_path: str = "upi_banking.db"
    seed_demo_data: bool = True

    # API configuration
    api_host: str = "0.0.0.0"
    api_port: int = 8090

    # Security configuration
    jwt_secret: str = "change-me-in-production-upi-banking-jwt-key"
    jwt_expiry_hours: int = 24
    jwt_algorithm: str = "HS256"
    password_min_length: int = 4

    # Logging configuration
    log_level: str = "INFO"
    log_format: str = "json"  # json or text
    log_file: Optional[str] = None  # If None, logs to stderr

    class Config:
        env_prefix = "UPIBANK_"
        env_file = ".env"
        case_sensitive = False


# Global configuration instance
config = UpiBankConfig()


def get_config() -> UpiBankConfig:
    """Get global configuration instance"""
    return config


def reload_config() -> UpiBankConfig:
    """Reload configuration from environment"""
    global config
    config = UpiBankConfig()
    return config
