import gspread
import logging
import json
from typing import List, Any, Optional
from google.oauth2.service_account import Credentials
from gspread.exceptions import APIError, SpreadsheetNotFound, WorksheetNotFound
from gspread.utils import rowcol_to_a1

from sheet_ledger.config.settings import config, get_google_sheet_id

# Set up logging
logger = logging.getLogger(__name__)

# Global variables for connection management
_gc = None
_spreadsheet = None

SCOPES = ['https://www.googleapis.com/auth/spreadsheets']

# Rows written by the API are interpreted like typed input (dates, numbers)
VALUE_INPUT_OPTION = 'USER_ENTERED'

DEFAULT_WORKSHEET_ROWS = 1000


class SheetsAPIError(Exception):
    """Raised when the spreadsheet service rejects or fails an operation."""


def _authenticate() -> gspread.Client:
    """
    Authenticate with Google Sheets API using service account credentials.

    Credentials are taken from GOOGLE_CREDENTIALS_JSON, then from the
    GOOGLE_SA_PRIVATE_KEY / GOOGLE_SA_CLIENT_EMAIL pair, then from a
    credentials.json file.

    Returns:
        gspread.Client: Authenticated client instance

    Raises:
        SheetsAPIError: If authentication fails or credentials are not found
    """
    global _gc

    if _gc is not None:
        return _gc

    try:
        if config.GOOGLE_CREDENTIALS_JSON:
            logger.info("Using Google credentials from GOOGLE_CREDENTIALS_JSON")
            credentials_info = json.loads(config.GOOGLE_CREDENTIALS_JSON)
            credentials = Credentials.from_service_account_info(credentials_info, scopes=SCOPES)
        elif config.get_service_account_info() is not None:
            logger.info("Using Google credentials from GOOGLE_SA_* variables")
            credentials = Credentials.from_service_account_info(
                config.get_service_account_info(),
                scopes=SCOPES
            )
        else:
            credentials_path = config.get_credentials_path()
            if credentials_path is None:
                raise FileNotFoundError(f"Credentials file not found at {config.CREDENTIALS_PATH}")
            logger.info(f"Using Google credentials file: {credentials_path}")
            credentials = Credentials.from_service_account_file(str(credentials_path), scopes=SCOPES)

        _gc = gspread.authorize(credentials)
        logger.info("Successfully authenticated with Google Sheets API")
        return _gc

    except json.JSONDecodeError as e:
        logger.error(f"Invalid JSON in GOOGLE_CREDENTIALS_JSON environment variable: {e}")
        raise SheetsAPIError("GOOGLE_CREDENTIALS_JSON is not valid JSON")
    except FileNotFoundError as e:
        logger.error(f"Credentials file not found: {str(e)}")
        raise SheetsAPIError("Google Service Account credentials file not found")
    except Exception as e:
        logger.error(f"Authentication failed: {str(e)}")
        raise SheetsAPIError(f"Failed to authenticate with Google Sheets API: {str(e)}")


def _get_spreadsheet() -> gspread.Spreadsheet:
    """
    Get the Google Spreadsheet instance.

    Returns:
        gspread.Spreadsheet: The spreadsheet instance

    Raises:
        SheetsAPIError: If spreadsheet cannot be opened
    """
    global _spreadsheet

    if _spreadsheet is not None:
        return _spreadsheet

    gc = _authenticate()
    sheet_id = get_google_sheet_id()

    try:
        _spreadsheet = gc.open_by_key(sheet_id)
        logger.info(f"Successfully opened spreadsheet: {_spreadsheet.title}")
        return _spreadsheet

    except SpreadsheetNotFound:
        logger.error(f"Spreadsheet not found with ID: {sheet_id}")
        raise SheetsAPIError("Google Spreadsheet not found or not accessible")
    except Exception as e:
        logger.error(f"Failed to open spreadsheet: {str(e)}")
        raise SheetsAPIError(f"Failed to access Google Spreadsheet: {str(e)}")


def last_column_letter(column_count: int) -> str:
    """Return the A1 column letter of the last of column_count columns ('F' for 6)."""
    return rowcol_to_a1(1, column_count)[:-1]


def row_range(row_number: int, column_count: int) -> str:
    """Return the A1 range covering one whole row, e.g. 'A5:F5'."""
    return f"A{row_number}:{last_column_letter(column_count)}{row_number}"


def _format_row(row_data: List[Any]) -> List[str]:
    # Convert all values to strings to ensure compatibility
    return [str(value) if value is not None else "" for value in row_data]


def create_worksheet(sheet_name: str, headers: Optional[List[str]] = None,
                     rows: int = DEFAULT_WORKSHEET_ROWS) -> gspread.Worksheet:
    """
    Create a new worksheet, writing headers to its first row when given.

    Args:
        sheet_name (str): Name of the worksheet to create
        headers (Optional[List[str]]): Headers to add to the first row
        rows (int): Number of rows for the worksheet

    Returns:
        gspread.Worksheet: The newly created worksheet

    Raises:
        SheetsAPIError: If worksheet creation fails
    """
    cols = len(headers) if headers else 26

    try:
        spreadsheet = _get_spreadsheet()
        worksheet = spreadsheet.add_worksheet(title=sheet_name, rows=rows, cols=cols)
        logger.info(f"Successfully created worksheet: '{sheet_name}' with {rows} rows and {cols} columns")

        if headers:
            worksheet.update(
                range_name=row_range(1, len(headers)),
                values=[_format_row(headers)],
                value_input_option=VALUE_INPUT_OPTION
            )
            logger.info(f"Successfully added {len(headers)} headers to worksheet '{sheet_name}'")

        return worksheet

    except APIError as e:
        logger.error(f"API error when creating worksheet '{sheet_name}': {str(e)}")
        raise SheetsAPIError(f"Failed to create worksheet due to API error: {str(e)}")


def ensure_header_row(worksheet: gspread.Worksheet, headers: List[str]) -> bool:
    """
    Write the header row into an empty first row.

    A first row that holds different headers is left untouched and reported,
    since the columns are positional and rewriting them would relabel data.

    Returns:
        bool: True if the first row matches (or was set to) the headers
    """
    existing = worksheet.row_values(1)

    if not any(cell.strip() for cell in existing):
        worksheet.update(
            range_name=row_range(1, len(headers)),
            values=[_format_row(headers)],
            value_input_option=VALUE_INPUT_OPTION
        )
        logger.info(f"Wrote header row to '{worksheet.title}': {headers}")
        return True

    if existing[:len(headers)] != list(headers):
        logger.warning(f"Headers mismatch in '{worksheet.title}'. Expected: {headers}")
        logger.warning(f"Found: {existing}")
        return False

    return True


def get_worksheet(sheet_name: str, headers: Optional[List[str]] = None,
                  auto_create: bool = True) -> gspread.Worksheet:
    """
    Get a specific worksheet by name. Creates it if it doesn't exist and auto_create is True.

    Args:
        sheet_name (str): Name of the worksheet to retrieve
        headers (Optional[List[str]]): Header row for a newly created worksheet
        auto_create (bool): Whether to create the worksheet if it doesn't exist

    Returns:
        gspread.Worksheet: The worksheet instance

    Raises:
        SheetsAPIError: If worksheet cannot be found or accessed
    """
    spreadsheet = _get_spreadsheet()

    try:
        worksheet = spreadsheet.worksheet(sheet_name)
        logger.debug(f"Successfully accessed existing worksheet: {sheet_name}")
        return worksheet

    except WorksheetNotFound:
        if not auto_create:
            logger.error(f"Worksheet '{sheet_name}' not found and auto_create is disabled")
            raise SheetsAPIError(f"Worksheet '{sheet_name}' not found in spreadsheet")

        logger.info(f"Worksheet '{sheet_name}' not found. Creating it...")
        return create_worksheet(sheet_name, headers=headers)

    except APIError as e:
        logger.error(f"Failed to access worksheet '{sheet_name}': {str(e)}")
        raise SheetsAPIError(f"Failed to access worksheet '{sheet_name}': {str(e)}")


def append_row(sheet_name: str, row_data: List[Any], headers: Optional[List[str]] = None) -> bool:
    """
    Append a single row after the last row of the worksheet.

    Args:
        sheet_name (str): Name of the worksheet
        row_data (List[Any]): List of values to append as a new row
        headers (Optional[List[str]]): Header row used if the worksheet has to be created

    Returns:
        bool: True if successful

    Raises:
        SheetsAPIError: If append operation fails
    """
    worksheet = get_worksheet(sheet_name, headers=headers)
    formatted_row = _format_row(row_data)

    try:
        worksheet.append_row(
            formatted_row,
            value_input_option=VALUE_INPUT_OPTION,
            insert_data_option='INSERT_ROWS'
        )
        logger.info(f"Successfully appended row to '{sheet_name}': {len(formatted_row)} columns")
        return True

    except APIError as e:
        logger.error(f"API error when appending row to '{sheet_name}': {str(e)}")
        raise SheetsAPIError(f"Failed to append row due to API error: {str(e)}")


def get_all_values(sheet_name: str, headers: Optional[List[str]] = None) -> List[List[str]]:
    """
    Get all values from a worksheet as a list of lists.

    Args:
        sheet_name (str): Name of the worksheet
        headers (Optional[List[str]]): Header row used if the worksheet has to be created

    Returns:
        List[List[str]]: All values in the worksheet, including headers.
                         Trailing empty cells of a row may be missing.

    Raises:
        SheetsAPIError: If reading operation fails
    """
    worksheet = get_worksheet(sheet_name, headers=headers)

    try:
        values = worksheet.get_all_values()
        logger.info(f"Successfully retrieved {len(values)} rows from '{sheet_name}'")
        return values

    except APIError as e:
        logger.error(f"API error when reading values from '{sheet_name}': {str(e)}")
        raise SheetsAPIError(f"Failed to read values due to API error: {str(e)}")


def update_row(sheet_name: str, row_number: int, row_data: List[Any]) -> bool:
    """
    Overwrite one whole row in place.

    Args:
        sheet_name (str): Name of the worksheet
        row_number (int): 1-based sheet row number
        row_data (List[Any]): Values for columns A onwards

    Returns:
        bool: True if successful

    Raises:
        SheetsAPIError: If update operation fails
    """
    worksheet = get_worksheet(sheet_name, auto_create=False)
    range_name = row_range(row_number, len(row_data))

    try:
        worksheet.update(
            range_name=range_name,
            values=[_format_row(row_data)],
            value_input_option=VALUE_INPUT_OPTION
        )
        logger.info(f"Successfully updated range '{range_name}' in '{sheet_name}'")
        return True

    except APIError as e:
        logger.error(f"API error when updating range in '{sheet_name}': {str(e)}")
        raise SheetsAPIError(f"Failed to update row due to API error: {str(e)}")


def delete_row(sheet_name: str, row_number: int) -> bool:
    """
    Delete one row; every later row shifts up by one.

    Args:
        sheet_name (str): Name of the worksheet
        row_number (int): 1-based sheet row number

    Returns:
        bool: True if successful

    Raises:
        SheetsAPIError: If delete operation fails
    """
    worksheet = get_worksheet(sheet_name, auto_create=False)

    try:
        worksheet.delete_rows(row_number)
        logger.info(f"Successfully deleted row {row_number} from '{sheet_name}'")
        return True

    except APIError as e:
        logger.error(f"API error when deleting row from '{sheet_name}': {str(e)}")
        raise SheetsAPIError(f"Failed to delete row due to API error: {str(e)}")


# Connection management functions
def reset_connection():
    """
    Reset the global connection variables.
    Useful for testing or when authentication needs to be refreshed.
    """
    global _gc, _spreadsheet
    _gc = None
    _spreadsheet = None
    logger.info("Reset Google Sheets API connection")


def test_connection() -> bool:
    """
    Test the connection to Google Sheets API.

    Returns:
        bool: True if connection is working, False otherwise
    """
    try:
        spreadsheet = _get_spreadsheet()
        logger.info(f"Google Sheets API connection test successful for: {spreadsheet.title}")
        return True

    except Exception as e:
        logger.error(f"Google Sheets API connection test failed: {str(e)}")
        return False
