# sheet_ledger/config/__init__.py

# Import the centralized settings object from the settings module.
#
# Instead of: from sheet_ledger.config.settings import config
# You can use: from sheet_ledger.config import config

from .settings import config, Config, validate_configuration
