# sheet_ledger/broadcast/__init__.py

# "Lift" the channel and event names to the package level:
# from sheet_ledger.broadcast import EventChannel, EVENT_ADD

from .channel import (
    EventChannel,
    format_sse,
    SSE_HEADERS,
    EVENT_ADD,
    EVENT_UPDATE,
    EVENT_DELETE
)
