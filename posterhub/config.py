# posterhub/config.py
import logging
import os
from pathlib import Path

from dotenv import load_dotenv

load_dotenv()

BASE_DIR = Path(__file__).resolve().parent
POSTER_DIR = BASE_DIR / "poster"

# API Keys and Config - loaded from .env
GEMINI_API_KEY = os.getenv("GEMINI_API_KEY") or os.getenv("API_KEY")
GEMINI_IMAGE_MODEL = os.getenv("GEMINI_IMAGE_MODEL", "gemini-2.5-flash-image")

# Assets / Output (wie bei den Renderern: <tool>/assets/fonts, <tool>/output)
FONTS_DIR = Path(os.getenv("POSTER_FONTS_DIR") or POSTER_DIR / "assets" / "fonts")
OUTPUT_DIR = Path(os.getenv("POSTER_OUTPUT_DIR") or POSTER_DIR / "output")

HTTP_TIMEOUT = float(os.getenv("POSTER_HTTP_TIMEOUT", "15"))
LOG_LEVEL = os.getenv("LOG_LEVEL", "INFO").upper()


def configure_logging(level: str = LOG_LEVEL) -> None:
    logging.basicConfig(
        level=getattr(logging, level, logging.INFO),
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )
