# sheet_ledger/auth/__init__.py

from .handler import check_credentials, issue_token, init_jwt
