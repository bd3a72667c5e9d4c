"""
Configuration settings for the Sheet Ledger backend.

This module centralizes all configuration management, loading environment variables
and providing access to configuration values throughout the application.
"""

import os
from pathlib import Path
from dotenv import load_dotenv

# Get the project root directory (two levels up from this file)
PROJECT_ROOT = Path(__file__).parent.parent.parent

# Load environment variables from .env file
load_dotenv(PROJECT_ROOT / '.env')


def _env_flag(name: str, default: str) -> bool:
    return os.getenv(name, default).lower() == 'true'


class Config:
    """Configuration class that holds all application settings."""

    # Google Sheets Configuration
    GOOGLE_SHEET_ID = os.getenv('GOOGLE_SHEET_ID')

    # Google Service Account Credentials
    # JSON string first, then the private key / client email pair, then a file
    GOOGLE_CREDENTIALS_JSON = os.getenv('GOOGLE_CREDENTIALS_JSON')
    GOOGLE_SA_PRIVATE_KEY = os.getenv('GOOGLE_SA_PRIVATE_KEY')
    GOOGLE_SA_CLIENT_EMAIL = os.getenv('GOOGLE_SA_CLIENT_EMAIL')
    CREDENTIALS_PATH = Path(os.getenv('GOOGLE_CREDENTIALS_FILE', PROJECT_ROOT / 'credentials.json'))

    # Sheet layout
    TRANSACTIONS_SHEET = os.getenv('TRANSACTIONS_SHEET', 'transactions')
    DEFAULT_CATEGORY = os.getenv('DEFAULT_CATEGORY', '一般')

    # Admin login
    ADMIN_USERNAME = os.getenv('ADMIN_USERNAME', 'admin')
    ADMIN_PASSWORD = os.getenv('ADMIN_PASSWORD', 'change-me')
    JWT_SECRET = os.getenv('JWT_SECRET', 'change-me-secret')
    JWT_EXPIRES_IN = os.getenv('JWT_EXPIRES_IN', '365d')
    REQUIRE_AUTH_FOR_WRITES = _env_flag('REQUIRE_AUTH_FOR_WRITES', 'true')

    # Broadcast channel
    ENABLE_BROADCAST = _env_flag('ENABLE_BROADCAST', 'true')
    BROADCAST_HEARTBEAT_SECONDS = float(os.getenv('BROADCAST_HEARTBEAT_SECONDS', 15))

    # Server Configuration
    HOST = os.getenv('HOST', '0.0.0.0')
    PORT = int(os.getenv('PORT', 3000))
    DEBUG = _env_flag('DEBUG', 'false')

    # Logging Configuration
    LOG_LEVEL = os.getenv('LOG_LEVEL', 'INFO')
    ENABLE_FILE_LOGGING = _env_flag('ENABLE_FILE_LOGGING', 'false')

    # Environment Detection
    ENVIRONMENT = os.getenv('ENVIRONMENT', 'development')

    @classmethod
    def validate_required_settings(cls):
        """
        Validate that all required environment variables are set.

        Raises:
            ValueError: If any required configuration is missing.
            FileNotFoundError: If no service account credentials can be found.
        """
        required_settings = [
            ('GOOGLE_SHEET_ID', cls.GOOGLE_SHEET_ID),
        ]

        missing_settings = [name for name, value in required_settings if not value]

        if missing_settings:
            raise ValueError(
                f"Missing required environment variables: {', '.join(missing_settings)}. "
                f"Please check your .env file."
            )

        if not cls.has_credentials():
            raise FileNotFoundError(
                f"Google Service Account credentials not found. Set GOOGLE_CREDENTIALS_JSON, "
                f"or GOOGLE_SA_PRIVATE_KEY and GOOGLE_SA_CLIENT_EMAIL, "
                f"or place credentials.json at: {cls.CREDENTIALS_PATH}"
            )

    @classmethod
    def has_credentials(cls) -> bool:
        if cls.GOOGLE_CREDENTIALS_JSON:
            return True
        if cls.GOOGLE_SA_PRIVATE_KEY and cls.GOOGLE_SA_CLIENT_EMAIL:
            return True
        return cls.get_credentials_path() is not None

    @classmethod
    def get_credentials_path(cls):
        """Find credentials.json, checking the configured path then the working directory."""
        candidates = [
            cls.CREDENTIALS_PATH,
            Path(os.getcwd()) / 'credentials.json',
        ]

        for path in candidates:
            if path.exists():
                return path

        return None

    @classmethod
    def get_service_account_info(cls):
        """
        Build service account info from the split environment variables.

        Returns:
            dict or None: Credentials info, or None when the variables are not both set.
        """
        if not (cls.GOOGLE_SA_PRIVATE_KEY and cls.GOOGLE_SA_CLIENT_EMAIL):
            return None

        return {
            'type': 'service_account',
            'private_key': cls.GOOGLE_SA_PRIVATE_KEY.replace('\\n', '\n'),
            'client_email': cls.GOOGLE_SA_CLIENT_EMAIL,
            'token_uri': 'https://oauth2.googleapis.com/token',
        }

    @classmethod
    def is_development(cls):
        """
        Check if the application is running in development mode.

        Returns:
            bool: True if in development mode, False otherwise.
        """
        return cls.ENVIRONMENT == 'development'


# Create a global config instance for easy importing
config = Config()

# Convenience functions for commonly accessed settings
def get_google_sheet_id():
    """Get the Google Sheet ID."""
    return config.GOOGLE_SHEET_ID

def get_transactions_sheet_name():
    """Get the name of the transactions worksheet."""
    return config.TRANSACTIONS_SHEET

def get_default_category():
    """Get the category written when a transaction arrives without one."""
    return config.DEFAULT_CATEGORY

def get_log_level():
    """Get the logging level."""
    return config.LOG_LEVEL

def validate_configuration():
    """
    Validate the entire configuration setup.

    This should be called at application startup to ensure
    all required settings are properly configured.

    Raises:
        ValueError: If configuration validation fails.
        FileNotFoundError: If required files are missing.
    """
    config.validate_required_settings()

# Export commonly used settings
__all__ = [
    'config',
    'Config',
    'get_google_sheet_id',
    'get_transactions_sheet_name',
    'get_default_category',
    'get_log_level',
    'validate_configuration'
]
