"""
Environment-driven configuration for the invoice workbench.

Values are read once at import time. Booleans accept 1/true/yes.
"""

import os
import tempfile
from pathlib import Path


def _env_flag(name: str, default: str = "false") -> bool:
    return os.getenv(name, default).lower() in {"1", "true", "yes"}


# Invoice API collaborator
API_KIND = os.getenv("INVOICE_WORKBENCH_API", "demo").lower()
API_BASE_URL = os.getenv("INVOICE_API_BASE_URL", "http://localhost:3000/api/v1")
API_TOKEN = os.getenv("INVOICE_API_TOKEN", "")
API_TIMEOUT_SECONDS = int(os.getenv("INVOICE_API_TIMEOUT_SECONDS", "30"))
DEMO_SEED = _env_flag("INVOICE_DEMO_SEED", "true")

# Money
CURRENCY_SYMBOL = os.getenv("INVOICE_CURRENCY_SYMBOL", "€")

# Drafts
DRAFT_DIR = Path(
    os.getenv(
        "INVOICE_DRAFT_DIR",
        str(Path(tempfile.gettempdir()) / "invoice_workbench_drafts"),
    )
)
AUTOSAVE_SECONDS = float(os.getenv("INVOICE_AUTOSAVE_SECONDS", "30"))
CREATE_DRAFT_KEY = "invoice_draft"
EDIT_DRAFT_KEY_PREFIX = "draft-invoice-"

# Listing
PAGE_SIZE = int(os.getenv("INVOICE_PAGE_SIZE", "10"))

# Form limits
MAX_LINE_ITEMS = 100
MAX_QUANTITY = 999999
