"""
app.py - minimal entrypoint for the Streamlit app

Run the app with:
    streamlit run app.py

Streamlit secrets are copied into environment variables first so that
expense_ledger.config sees the same settings locally and on Streamlit Cloud.
Then this module delegates to expense_ledger.ui.dashboard.main().
"""
import os
import json as _json

import streamlit as _st

_SECRET_KEYS = (
    "GOOGLE_SHEET_ID",
    "GOOGLE_SERVICE_ACCOUNT_JSON",
    "GOOGLE_SERVICE_ACCOUNT_FILE",
    "EXPENSE_TRACKER_DATA_FILE",
    "EXPENSE_TRACKER_LOG_LEVEL",
)


def _export_secrets():
    try:
        _secrets = dict(_st.secrets)
    except Exception:
        # no secrets.toml (the exception type varies across Streamlit versions):
        # local run configured through the environment only
        return
    for _k in _SECRET_KEYS:
        if _secrets.get(_k) and _k not in os.environ:
            os.environ[_k] = str(_secrets[_k])
    # Also support the standard Streamlit table-style service account secret:
    # [gcp_service_account] ...fields...
    if "GOOGLE_SERVICE_ACCOUNT_JSON" not in os.environ and _secrets.get("gcp_service_account"):
        os.environ["GOOGLE_SERVICE_ACCOUNT_JSON"] = _json.dumps(dict(_secrets["gcp_service_account"]))


_export_secrets()

from expense_ledger.ui import dashboard  # noqa: E402


def main():
    dashboard.main()


if __name__ == "__main__":
    main()
