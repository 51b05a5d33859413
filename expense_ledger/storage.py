"""
storage.py - string-keyed key-value stores used by the tracker

Every store exposes the same two calls:
    get(key) -> Optional[str]
    set(key, value: str) -> None

Backends:
  - MemoryStore: plain dict, used by tests
  - JsonFileStore: a JSON object on disk, written atomically
  - GoogleSheetsStore: a "storage" worksheet with key/value rows

build_store() prefers Google Sheets when it is configured and reachable and
falls back to the local JSON file otherwise.
"""

import ast
import json
import logging
import os
import shutil
import tempfile
from typing import Any, Dict, Optional

from expense_ledger import config

# Optional Google Sheets backend imports; the store reports itself as
# unavailable when they are missing
try:
    import gspread
    from google.oauth2.service_account import Credentials
except ImportError:
    gspread = None
    Credentials = None

logger = logging.getLogger(__name__)

EXPENSES_KEY = "expenseTracker:expenses:v1"
BUDGET_KEY = "expenseTracker:budget:v1"


class MemoryStore:
    """Dict-backed store. Values are kept as the exact strings written."""

    name = "memory"

    def __init__(self, initial: Optional[Dict[str, str]] = None):
        self.data: Dict[str, str] = dict(initial or {})

    def get(self, key: str) -> Optional[str]:
        return self.data.get(key)

    def set(self, key: str, value: str) -> None:
        self.data[key] = value

    def describe(self) -> str:
        return "In-memory storage (not persisted)."


class JsonFileStore:
    """
    Key-value store persisted as one JSON object {key: value} in a local file.

    A missing or unreadable file reads as empty; the next set() replaces it.
    """

    name = "local_json"

    def __init__(self, path: Optional[str] = None, fallback_reason: str = ""):
        self.path = os.path.abspath(path or config.get_data_file())
        # why the remote store was not used; shown in the sidebar
        self.fallback_reason = fallback_reason

    def _read_all(self) -> Dict[str, str]:
        if not os.path.exists(self.path):
            return {}
        try:
            with open(self.path, "r", encoding="utf-8") as f:
                data = json.load(f)
        except (OSError, ValueError):
            logger.warning("Could not read %s, treating it as empty", self.path, exc_info=True)
            return {}
        if not isinstance(data, dict):
            logger.warning("Ignoring %s: top-level value is not an object", self.path)
            return {}
        return data

    def get(self, key: str) -> Optional[str]:
        value = self._read_all().get(key)
        if value is None:
            return None
        return value if isinstance(value, str) else json.dumps(value)

    def set(self, key: str, value: str) -> None:
        """
        Overwrite one key and write the whole file atomically:
        write to a temp file in the same directory, fsync, then move.
        """
        data = self._read_all()
        data[key] = value
        dirn = os.path.dirname(self.path)
        os.makedirs(dirn, exist_ok=True)
        logger.info("Saving %s to %s", key, self.path)
        fd, tmp_path = tempfile.mkstemp(prefix="tmp_expenses_", dir=dirn, text=True)
        try:
            with os.fdopen(fd, "w", encoding="utf-8") as f:
                json.dump(data, f, indent=2)
                f.flush()
                os.fsync(f.fileno())
            shutil.move(tmp_path, self.path)
        except Exception:
            logger.exception("Failed to save data file")
            if os.path.exists(tmp_path):
                os.remove(tmp_path)
            raise

    def describe(self) -> str:
        if self.fallback_reason:
            return f"Using local file fallback: {self.fallback_reason}."
        return f"Local file storage ({self.path})."


class GoogleSheetsStore:
    """
    Google Sheets key-value store.

    Data layout:
      - worksheet "storage": header row ["key", "value"] then one row per key

    set() rewrites the worksheet as a whole, so the last writer wins.
    """

    name = "google_sheets"

    SHEET_NAME = "storage"
    HEADERS = ["key", "value"]
    SCOPES = ["https://www.googleapis.com/auth/spreadsheets"]

    def __init__(self, sheet_id: Optional[str] = None, spreadsheet: Any = None):
        self.available = False
        self.reason = ""
        self.sheet_id = sheet_id if sheet_id is not None else config.get_sheet_id()
        self._spreadsheet = spreadsheet
        self._ws = None

        if self._spreadsheet is None:
            if not self.sheet_id:
                self.reason = "GOOGLE_SHEET_ID is not set"
                return
            if gspread is None or Credentials is None:
                self.reason = "Google Sheets dependencies are unavailable"
                return

        try:
            if self._spreadsheet is None:
                client = gspread.authorize(self._build_credentials())
                self._spreadsheet = client.open_by_key(self.sheet_id)
            self._ws = self._get_or_create_worksheet(self.SHEET_NAME, rows=50, cols=len(self.HEADERS))
            self._ensure_headers()
            self.available = True
        except Exception as exc:
            self.available = False
            self.reason = f"Google Sheets init failed ({exc.__class__.__name__})"
            logger.warning("Google Sheets store unavailable: %s", self.reason)

    def _build_credentials(self):
        service_account_json = config.get_service_account_json()
        service_account_file = config.get_service_account_file()

        if service_account_json:
            try:
                info = json.loads(service_account_json)
            except ValueError:
                # tolerate Python-dict style strings often used by mistake in env vars
                info = ast.literal_eval(service_account_json)
            if not isinstance(info, dict):
                raise ValueError("GOOGLE_SERVICE_ACCOUNT_JSON must decode to an object")
            return Credentials.from_service_account_info(info, scopes=self.SCOPES)

        if service_account_file:
            return Credentials.from_service_account_file(service_account_file, scopes=self.SCOPES)

        # Fallback to application default credentials if available.
        import google.auth
        creds, _ = google.auth.default(scopes=self.SCOPES)
        return creds

    def _get_or_create_worksheet(self, title: str, rows: int, cols: int):
        try:
            return self._spreadsheet.worksheet(title)
        except Exception:
            return self._spreadsheet.add_worksheet(title=title, rows=rows, cols=cols)

    def _ensure_headers(self):
        first = self._ws.row_values(1) or []
        if [str(x).strip() for x in first] != self.HEADERS:
            self._ws.update(range_name="A1", values=[self.HEADERS], value_input_option="RAW")

    def _read_all(self) -> Dict[str, str]:
        out: Dict[str, str] = {}
        for row in (self._ws.get_all_values() or [])[1:]:
            if not row:
                continue
            key = str(row[0]).strip()
            if key:
                out[key] = str(row[1]) if len(row) > 1 else ""
        return out

    def get(self, key: str) -> Optional[str]:
        if not self.available:
            return None
        return self._read_all().get(key)

    def set(self, key: str, value: str) -> None:
        if not self.available:
            raise RuntimeError(f"Google Sheets store unavailable: {self.reason}")
        data = self._read_all()
        data[key] = value
        rows = [self.HEADERS] + [[k, v] for k, v in data.items()]
        logger.info("Saving %s to Google Sheets", key)
        # RAW keeps JSON text from being interpreted as formulas
        self._ws.clear()
        self._ws.update(range_name="A1", values=rows, value_input_option="RAW")

    def describe(self) -> str:
        if self.available:
            return "Persistent storage active (Google Sheets)."
        return f"Google Sheets unavailable: {self.reason}."


def build_store():
    """Return the Google Sheets store when usable, else the local JSON file store."""
    sheets = GoogleSheetsStore()
    if sheets.available:
        return sheets
    logger.info("Using local JSON storage (%s)", sheets.reason)
    return JsonFileStore(fallback_reason=sheets.reason)
