"""
Configuration Management Module

Provides centralized configuration using pydantic-settings for environment-based configuration.
"""

from pydantic_settings import BaseSettings, SettingsConfigDict
from typing import Optional


class BankConfig(BaseSettings):
    """SecureBank service configuration"""

    model_config = SettingsConfigDict(
        env_prefix="SECURE_BANK_",
        env_file=".env",
        case_sensitive=False,
        extra="ignore",
    )

    # Storage configuration
    storage_backend: str = "json"  # json, sqlite or memory
    data_path: str = "secure_bank.json"
    accounts_storage_key: str = "bankingUsers"

    # Business rules configuration
    default_currency: str = "INR"
    min_initial_deposit: str = "100.00"
    min_password_length: int = 6
    account_number_max_attempts: int = 10

    # Logging configuration
    log_level: str = "INFO"
    log_format: str = "json"  # json or text
    log_file: Optional[str] = None  # If None, logs to stdout

    # Feature flags
    enable_audit_logging: bool = True

    # API configuration
    api_host: str = "127.0.0.1"
    api_port: int = 8090


# Global configuration instance
config = BankConfig()


def get_config() -> BankConfig:
    """Get global configuration instance"""
    return config


def reload_config() -> BankConfig:
    """Reload configuration from environment"""
    global config
    config = BankConfig()
    return config
