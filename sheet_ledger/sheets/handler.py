"""
High-level transaction store for the Sheet Ledger backend.

This module maps transaction records onto rows of a single worksheet and is the
application's single point of contact for any Google Sheets operation. Columns
are positional: the order of TRANSACTION_COLUMNS must match the sheet exactly.

Updates and deletes locate their row by scanning the freshly fetched values for
the first matching identifier. Nothing guards against a concurrent delete shifting
rows between that scan and the write.
"""

import logging
from typing import List, Dict, Any, Tuple

from sheet_ledger.sheets import api
from sheet_ledger.config.settings import (
    get_transactions_sheet_name,
    get_default_category
)
from sheet_ledger.utils.timing import generate_transaction_id

# Set up logging
logger = logging.getLogger(__name__)

# Transactions sheet column structure (A=id, B=date, C=categories, D=title, E=text, F=reply)
TRANSACTION_COLUMNS = [
    'id',
    'date',
    'categories',
    'title',
    'text',
    'reply'
]

# Accepted field name -> sheet column name, in merge order.
# Column-name aliases come first so the API names (category, amount) win when both are sent.
FIELD_TO_COLUMN = {
    'categories': 'categories',
    'text': 'text',
    'date': 'date',
    'category': 'categories',
    'title': 'title',
    'amount': 'text',
    'reply': 'reply'
}

CATEGORY_COLOR_HEX = '#333333'


class TransactionNotFoundError(LookupError):
    """Raised when no row carries the requested transaction id."""

    def __init__(self, transaction_id: str):
        super().__init__(f"Transaction not found: {transaction_id}")
        self.transaction_id = transaction_id


def row_to_columns(row: List[str]) -> Dict[str, str]:
    """Map a positional row to column names, defaulting missing cells to ''."""
    return {
        column: (row[index] if index < len(row) and row[index] is not None else "")
        for index, column in enumerate(TRANSACTION_COLUMNS)
    }


def columns_to_row(values: Dict[str, Any]) -> List[str]:
    """Lay out column values in sheet order as text, with '' for anything missing."""
    return [
        "" if values.get(column) is None else str(values.get(column))
        for column in TRANSACTION_COLUMNS
    ]


def to_api_record(values: Dict[str, str]) -> Dict[str, str]:
    """Convert sheet column values into the shape the front-end consumes."""
    return {
        'id': values['id'],
        'date': values['date'],
        'amount': values['text'],
        'title': values['title'],
        'category': values['categories'],
        'category_name': values['categories'],
        'category_color_hex': CATEGORY_COLOR_HEX,
        'reply': values['reply']
    }


def normalize_rows(rows: List[List[str]]) -> List[Dict[str, str]]:
    """
    Turn raw sheet values into column dictionaries, skipping the header row.

    Args:
        rows (List[List[str]]): Values as returned by the sheet, header first

    Returns:
        List[Dict[str, str]]: One dictionary per data row, in sheet order
    """
    if not rows:
        return []

    return [row_to_columns(row) for row in rows[1:]]


def find_transaction_row(rows: List[List[str]], transaction_id: str) -> Tuple[int, Dict[str, str]]:
    """
    Locate the first data row whose id column equals transaction_id.

    Args:
        rows (List[List[str]]): Values as returned by the sheet, header first
        transaction_id (str): Identifier to look for

    Returns:
        Tuple[int, Dict[str, str]]: 1-based sheet row number and the row's column values

    Raises:
        TransactionNotFoundError: If no data row matches
    """
    for index in range(1, len(rows)):
        row = rows[index]
        if row and row[0] == transaction_id:
            return index + 1, row_to_columns(row)

    raise TransactionNotFoundError(transaction_id)


def _fetch_rows() -> List[List[str]]:
    return api.get_all_values(get_transactions_sheet_name(), headers=TRANSACTION_COLUMNS)


def create_transaction(data: Dict[str, Any]) -> Dict[str, str]:
    """
    Append a new transaction row with a freshly generated id.

    Args:
        data (Dict[str, Any]): Front-end fields: date, category, title, amount

    Returns:
        Dict[str, str]: The stored record in API shape

    Raises:
        SheetsAPIError: If the append fails
    """
    values = {
        'id': generate_transaction_id(),
        'date': data.get('date'),
        'categories': data.get('category') or get_default_category(),
        'title': data.get('title'),
        'text': data.get('amount'),
        'reply': ""
    }
    row = columns_to_row(values)

    api.append_row(get_transactions_sheet_name(), row, headers=TRANSACTION_COLUMNS)
    logger.info(f"Created transaction {values['id']}")

    return to_api_record(row_to_columns(row))


def list_transactions() -> List[Dict[str, str]]:
    """
    Return every transaction in sheet order.

    Returns:
        List[Dict[str, str]]: Records in API shape
    """
    records = [to_api_record(values) for values in normalize_rows(_fetch_rows())]
    logger.debug(f"Listed {len(records)} transactions")
    return records


def merge_changes(current: Dict[str, str], changes: Dict[str, Any]) -> Dict[str, str]:
    """
    Overlay supplied fields on the current column values.

    Keys may use API names (category, amount) or column names (categories, text).
    When both name the same column the API name wins, whatever the body's key order.
    The id and any unknown keys are ignored.
    """
    merged = dict(current)
    for field, column in FIELD_TO_COLUMN.items():
        if field not in changes:
            continue
        value = changes[field]
        merged[column] = "" if value is None else value
    return merged


def update_transaction(transaction_id: str, changes: Dict[str, Any]) -> Dict[str, str]:
    """
    Merge changes into the transaction's row and rewrite the whole row in place.

    Args:
        transaction_id (str): Identifier of the transaction to update
        changes (Dict[str, Any]): Partial fields to apply

    Returns:
        Dict[str, str]: The updated record in API shape

    Raises:
        TransactionNotFoundError: If the id is not present
        SheetsAPIError: If the write fails
    """
    row_number, current = find_transaction_row(_fetch_rows(), transaction_id)
    merged = merge_changes(current, changes)
    row = columns_to_row(merged)

    api.update_row(get_transactions_sheet_name(), row_number, row)
    logger.info(f"Updated transaction {transaction_id} at row {row_number}")

    return to_api_record(row_to_columns(row))


def delete_transaction(transaction_id: str) -> bool:
    """
    Delete the transaction's row. Later rows shift up by one.

    Args:
        transaction_id (str): Identifier of the transaction to delete

    Returns:
        bool: True if successful

    Raises:
        TransactionNotFoundError: If the id is not present
        SheetsAPIError: If the delete fails
    """
    row_number, _ = find_transaction_row(_fetch_rows(), transaction_id)

    api.delete_row(get_transactions_sheet_name(), row_number)
    logger.info(f"Deleted transaction {transaction_id} from row {row_number}")
    return True


def initialize_sheets() -> bool:
    """
    Ensure the transactions worksheet exists and carries the header row.

    Returns:
        bool: True if the header row matches the expected layout
    """
    sheet_name = get_transactions_sheet_name()
    worksheet = api.get_worksheet(sheet_name, headers=TRANSACTION_COLUMNS)
    ok = api.ensure_header_row(worksheet, TRANSACTION_COLUMNS)

    if ok:
        logger.info(f"Worksheet '{sheet_name}' is ready")
    else:
        logger.error(f"Worksheet '{sheet_name}' has an unexpected header row")
    return ok


def test_sheets_connection() -> bool:
    """
    Check that the spreadsheet can be opened.

    Raises:
        Exception: If the connection test fails
    """
    if not api.test_connection():
        raise api.SheetsAPIError("Google Sheets connection test failed")
    return True
