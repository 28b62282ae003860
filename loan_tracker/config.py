"""
Configuration Management Module

Provides centralized configuration using pydantic-settings for environment-based configuration.
"""

from pydantic_settings import BaseSettings
from typing import List


class LoanTrackerConfig(BaseSettings):
    """Loan tracker service configuration"""

    # Database configuration
    database_url: str = "sqlite:///loan_tracker.db"  # or memory://

    # Runtime environment (development exposes error details in 500 responses)
    environment: str = "production"

    # API configuration
    api_host: str = "0.0.0.0"
    api_port: int = 5000
    api_prefix: str = "/api/loans"
    cors_origins: List[str] = ["*"]

    # Logging configuration
    log_level: str = "INFO"
    log_format: str = "json"  # json or text
    log_request_bodies: bool = True

    # Report rendering
    report_currency_label: str = "PKR"
    report_footer_text: str = "Developed by Codenzaar Technologies"
    report_footer_link: str = "https://codenzaartechnologies.com/"
    report_chunk_size: int = 64 * 1024

    class Config:
        env_prefix = "LOAN_TRACKER_"
        env_file = ".env"
        case_sensitive = False

    @property
    def is_development(self) -> bool:
        return self.environment.lower() == "development"


# Global configuration instance
config = LoanTrackerConfig()


def get_config() -> LoanTrackerConfig:
    """Get global configuration instance"""
    return config


def reload_config() -> LoanTrackerConfig:
    """Reload configuration from environment"""
    global config
    config = LoanTrackerConfig()
    return config
