"""
Pytest configuration: local imports + shared fixtures.
"""

import os
import sys
from io import BytesIO

import pytest
from PIL import Image


def _ensure_repo_on_path() -> None:
    """
    Ensure the repository root is on sys.path.
    """
    repo_root = os.path.abspath(os.path.join(os.path.dirname(__file__), ".."))
    if repo_root not in sys.path:
        sys.path.insert(0, repo_root)


_ensure_repo_on_path()

from posterhub.poster.assets import image_to_data_uri  # noqa: E402
from posterhub.poster.model import ElementKind, PosterDocument  # noqa: E402
from posterhub.poster.text import FontBook  # noqa: E402


@pytest.fixture
def fonts() -> FontBook:
    # ohne fonts_dir -> Pillow Default-Font, unabhängig von lokalen TTFs
    return FontBook(None)


@pytest.fixture
def make_png():
    def _make(color=(255, 0, 0, 255), size=(100, 50)) -> bytes:
        buf = BytesIO()
        Image.new("RGBA", size, color).save(buf, format="PNG")
        return buf.getvalue()

    return _make


@pytest.fixture
def make_data_uri(make_png):
    def _make(color=(255, 0, 0, 255), size=(100, 50)) -> str:
        return image_to_data_uri(make_png(color, size), "image/png")

    return _make


@pytest.fixture
def offline_doc() -> PosterDocument:
    """Default-Dokument ohne Remote-Logo."""
    return PosterDocument(logo_url="")


@pytest.fixture
def blank_doc() -> PosterDocument:
    """Alles ausgeblendet, keine Bildquellen."""
    doc = PosterDocument(aspect_ratio="1:1", logo_url="", qr_url=None)
    for kind in ElementKind:
        doc.set_visible(kind, False)
    return doc
