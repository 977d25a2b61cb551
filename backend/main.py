"""
Crime Stats Backend — serves the postcode crime summary API.

    python backend/main.py            # or: uvicorn main:app --app-dir backend

HOST, PORT and LOG_LEVEL are read from the environment (see config.py).
"""

import logging

from config import HOST, LOG_LEVEL, PORT

logging.basicConfig(
    level=LOG_LEVEL,
    format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
)
# Each of the twelve monthly requests per query would otherwise log a line
logging.getLogger("httpx").setLevel(logging.WARNING)

from routes import app  # noqa: E402,F401

if __name__ == "__main__":
    import uvicorn
    uvicorn.run(app, host=HOST, port=PORT, log_level=LOG_LEVEL.lower())
