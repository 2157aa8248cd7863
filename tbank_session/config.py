"""
Configuration Management Module

Provides centralized configuration using pydantic-settings for environment-based configuration.
"""

from pydantic_settings import BaseSettings
from typing import Optional


class TBankConfig(BaseSettings):
    """T-Bank session layer configuration"""

    # Credential (required by the demo CLI, optional for library use)
    phone: Optional[str] = None
    password: Optional[str] = None

    # Session registry
    sessions_file: str = "~/.tbank/sessions.json"

    # HTTP configuration
    base_url: str = "https://www.tbank.ru"
    http_timeout: float = 30.0
    dump_traffic: bool = True  # Print wire-level request/response dumps

    # Date decoding
    date_timezone: str = "Europe/Moscow"  # Timezone of calendar dates in API payloads

    # Logging configuration
    log_level: str = "INFO"
    log_format: str = "json"  # json or text

    class Config:
        env_prefix = "TBANK_"
        env_file = ".env"
        case_sensitive = False


# Global configuration instance
config = TBankConfig()


def get_config() -> TBankConfig:
    """Get global configuration instance"""
    return config


def reload_config() -> TBankConfig:
    """Reload configuration from environment"""
    global config
    config = TBankConfig()
    return config
