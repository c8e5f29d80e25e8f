"""
Configuration Management Module

Provides centralized configuration using pydantic-settings for environment-based configuration.
"""

from pydantic_settings import BaseSettings


class LedgerConfig(BaseSettings):
    """Coin ledger configuration"""

    # Logging configuration
    log_level: str = "INFO"
    log_format: str = "json"  # json or text

    # Key material used by the bundled wallet
    key_algorithm: str = "rsa"  # rsa, ecdsa, ed25519
    rsa_key_size: int = 2048

    # Business rules configuration
    strict_conservation: bool = False  # Require outputs == inputs instead of <=

    # Feature flags
    journal_enabled: bool = True

    class Config:
        env_prefix = "COIN_LEDGER_"
        env_file = ".env"
        case_sensitive = False


# Global configuration instance
config = LedgerConfig()


def get_config() -> LedgerConfig:
    """Get global configuration instance"""
    return config


def reload_config() -> LedgerConfig:
    """Reload configuration from environment"""
    global config
    config = LedgerConfig()
    return config
