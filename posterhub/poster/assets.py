# posterhub/poster/assets.py
from __future__ import annotations

import base64
import binascii
import logging
from dataclasses import dataclass
from enum import Enum
from io import BytesIO
from pathlib import Path
from typing import Optional

import requests
from PIL import Image, UnidentifiedImageError

from .errors import ImageDecodeError

logger = logging.getLogger(__name__)


class SlotState(Enum):
    UNLOADED = "unloaded"
    LOADING = "loading"
    LOADED = "loaded"
    FAILED = "failed"


@dataclass
class ImageSlot:
    """
    Ein Bild-Slot (background / logo / qr).
    Jeder Ladevorgang bekommt ein Ticket; nur das neueste Ticket darf den Slot setzen.
    Das Bild wird immer komplett ersetzt, nie halb.
    """

    name: str
    state: SlotState = SlotState.UNLOADED
    image: Optional[Image.Image] = None
    error: Optional[str] = None
    source: Optional[str] = None
    ticket: int = 0

    def begin(self, source: Optional[str]) -> int:
        self.ticket += 1
        self.source = source
        self.state = SlotState.LOADING
        self.error = None
        # altes Bild bleibt bis zum Ergebnis stehen
        return self.ticket

    def resolve(self, ticket: int, image: Image.Image) -> bool:
        if ticket != self.ticket:
            logger.debug("Stale load for slot %s ignored (ticket %s != %s)", self.name, ticket, self.ticket)
            return False
        self.image = image
        self.error = None
        self.state = SlotState.LOADED
        return True

    def fail(self, ticket: int, error: str) -> bool:
        if ticket != self.ticket:
            return False
        self.image = None
        self.error = error
        self.state = SlotState.FAILED
        return True

    def clear(self) -> None:
        self.ticket += 1
        self.source = None
        self.image = None
        self.error = None
        self.state = SlotState.UNLOADED

    @property
    def loaded(self) -> Optional[Image.Image]:
        # während LOADING das vorherige Bild weiter liefern
        return self.image


def image_to_data_uri(data: bytes, mime: str = "image/png") -> str:
    return f"data:{mime};base64,{base64.b64encode(data).decode('ascii')}"


def _data_uri_bytes(source: str) -> bytes:
    header, sep, payload = source.partition(",")
    if not sep:
        raise ImageDecodeError("Malformed data URI (no payload)")
    if ";base64" not in header:
        raise ImageDecodeError("Only base64 data URIs are supported")
    try:
        return base64.b64decode(payload, validate=False)
    except (binascii.Error, ValueError) as e:
        raise ImageDecodeError(f"Invalid base64 payload: {e}") from e


def _fetch_bytes(source: str, timeout: float) -> bytes:
    try:
        resp = requests.get(source, timeout=timeout)
        resp.raise_for_status()
    except requests.RequestException as e:
        raise ImageDecodeError(f"Download failed for {source}: {e}") from e
    return resp.content


def load_image_bytes(data: bytes) -> Image.Image:
    try:
        img = Image.open(BytesIO(data))
        img.load()
    except (UnidentifiedImageError, OSError) as e:
        raise ImageDecodeError(f"Not a decodable image: {e}") from e
    return img.convert("RGBA")


def decode_image_source(source: str, timeout: float = 15.0) -> Image.Image:
    """URL, data URI oder lokaler Pfad -> RGBA Image. Fehler immer als ImageDecodeError."""
    s = (source or "").strip()
    if not s:
        raise ImageDecodeError("Empty image source")

    if s.startswith("data:"):
        data = _data_uri_bytes(s)
    elif s.startswith(("http://", "https://")):
        data = _fetch_bytes(s, timeout)
    else:
        p = Path(s)
        if not p.exists():
            raise ImageDecodeError(f"Image not found: {p}")
        data = p.read_bytes()

    return load_image_bytes(data)
