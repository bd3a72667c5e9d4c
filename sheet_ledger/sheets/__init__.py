# sheet_ledger/sheets/__init__.py

# Expose the high-level data handling functions.
# Other parts of the application should not need to access the low-level api.py directly.
#
# You can now import like this:
# from sheet_ledger.sheets import create_transaction, list_transactions

from .api import SheetsAPIError
from .handler import (
    TransactionNotFoundError,
    create_transaction,
    list_transactions,
    update_transaction,
    delete_transaction,
    initialize_sheets,
    test_sheets_connection
)
