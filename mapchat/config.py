import os
import logging

from dotenv import load_dotenv


load_dotenv()

# --------------------------------------------------
# API keys
# --------------------------------------------------
OPENAI_API_KEY = os.getenv("OPENAI_API_KEY")
ANTHROPIC_API_KEY = os.getenv("ANTHROPIC_API_KEY")
MAPBOX_ACCESS_TOKEN = os.getenv("MAPBOX_ACCESS_TOKEN", "")
FLASK_SECRET_KEY = os.getenv("FLASK_SECRET_KEY")

# --------------------------------------------------
# LLM
# --------------------------------------------------
OPENAI_MODEL = os.getenv("OPENAI_MODEL", "gpt-4o")
ANTHROPIC_MAX_TOKENS = 4096

# --------------------------------------------------
# Parcel / lead data API
# --------------------------------------------------
ARCGIS_BASE_URL = os.getenv("ARCGIS_BASE_URL", "https://app.landadvisors.com/db").rstrip("/")
ARCGIS_TIMEOUT = float(os.getenv("ARCGIS_TIMEOUT", "30"))

# --------------------------------------------------
# Geocoding
# --------------------------------------------------
NOMINATIM_USER_AGENT = os.getenv("NOMINATIM_USER_AGENT", "mapchat (map assistant)")

# --------------------------------------------------
# Server
# --------------------------------------------------
PORT = int(os.getenv("PORT", "8000"))
SSE_PING_SECONDS = 30
LOG_LEVEL = os.getenv("LOG_LEVEL", "INFO").upper()


def configure_logging(level: str = LOG_LEVEL) -> None:
    logging.basicConfig(
        level=getattr(logging, level, logging.INFO),
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )
