"""
config.py - environment driven settings

Every setting is read from the environment at call time so app.py can copy
Streamlit secrets into os.environ before the dashboard builds its store.

Variables:
  - EXPENSE_TRACKER_DATA_FILE: path of the local JSON key-value file
  - EXPENSE_TRACKER_LOG_LEVEL: logging level name (default INFO)
  - GOOGLE_SHEET_ID: spreadsheet key; enables the Google Sheets store
  - GOOGLE_SERVICE_ACCOUNT_JSON / GOOGLE_SERVICE_ACCOUNT_FILE: credentials
"""

import logging
import os

_PROJECT_ROOT = os.path.abspath(os.path.join(os.path.dirname(__file__), ".."))
DEFAULT_DATA_FILE = os.path.join(_PROJECT_ROOT, "data", "expenses_store.json")

LOG_FORMAT = "%(asctime)s %(levelname)s %(message)s"


def get_data_file() -> str:
    return (os.getenv("EXPENSE_TRACKER_DATA_FILE") or "").strip() or DEFAULT_DATA_FILE


def get_log_level() -> int:
    name = (os.getenv("EXPENSE_TRACKER_LOG_LEVEL") or "INFO").strip().upper()
    level = logging.getLevelName(name)
    return level if isinstance(level, int) else logging.INFO


def get_sheet_id() -> str:
    return (os.getenv("GOOGLE_SHEET_ID") or "").strip()


def get_service_account_json() -> str:
    return (os.getenv("GOOGLE_SERVICE_ACCOUNT_JSON") or "").strip()


def get_service_account_file() -> str:
    return (os.getenv("GOOGLE_SERVICE_ACCOUNT_FILE") or "").strip()


def configure_logging() -> logging.Logger:
    """
    Attach a single stream handler to the package logger.
    Safe to call repeatedly (Streamlit re-executes the script on every rerun).
    """
    logger = logging.getLogger("expense_ledger")
    if not logger.handlers:
        handler = logging.StreamHandler()
        handler.setFormatter(logging.Formatter(LOG_FORMAT))
        logger.addHandler(handler)
    logger.setLevel(get_log_level())
    return logger
