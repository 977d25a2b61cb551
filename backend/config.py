"""Crime Stats Backend — Configuration & Constants"""

import os
from datetime import date
from pathlib import Path
from dotenv import load_dotenv

# Load .env from project root (one level up from backend/)
_env_path = Path(__file__).resolve().parent.parent / ".env"
load_dotenv(_env_path)

# ── Upstream APIs (both open access, no keys) ──
POSTCODES_API_BASE = os.environ.get("POSTCODES_API_BASE", "https://api.postcodes.io").rstrip("/")
POLICE_API_BASE = os.environ.get("POLICE_API_BASE", "https://data.police.uk/api").rstrip("/")

# ── Timeouts (seconds) ──
HTTP_TIMEOUT_SECONDS = float(os.environ.get("HTTP_TIMEOUT_SECONDS", "15"))
# Upper bound for a single monthly sub-fetch; a hung month settles as empty
SUBFETCH_TIMEOUT_SECONDS = float(os.environ.get("SUBFETCH_TIMEOUT_SECONDS", "20"))

# ── Autocomplete ──
AUTOCOMPLETE_MIN_LENGTH = int(os.environ.get("AUTOCOMPLETE_MIN_LENGTH", "2"))
AUTOCOMPLETE_CACHE_SIZE = int(os.environ.get("AUTOCOMPLETE_CACHE_SIZE", "512"))

# ── Periods ──
MONTHS_PER_PERIOD = 12

# The police API publishes with a lag, so the latest complete year is last year
DEFAULT_PERIOD = date.today().year - 1
PERIOD_CHOICES = [DEFAULT_PERIOD - i for i in range(3)]

# ── CORS ──
ALLOWED_ORIGINS = [
    o.strip()
    for o in os.environ.get(
        "ALLOWED_ORIGINS",
        "http://localhost:3000,http://localhost:5173,http://127.0.0.1:3000,http://127.0.0.1:5173",
    ).split(",")
    if o.strip()
]

# ── Server ──
HOST = os.environ.get("HOST", "127.0.0.1")
PORT = int(os.environ.get("PORT", "8000"))
LOG_LEVEL = os.environ.get("LOG_LEVEL", "INFO").upper()
