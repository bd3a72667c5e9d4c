# sheet_ledger/utils/__init__.py

from .timing import (
    now_utc,
    format_utc_timestamp,
    generate_transaction_id,
    parse_duration,
    TRANSACTION_ID_PREFIX
)
