"""Image slots and image source decoding."""

import pytest
import requests
from PIL import Image

from posterhub.poster import assets
from posterhub.poster.assets import ImageSlot, SlotState, decode_image_source, image_to_data_uri
from posterhub.poster.errors import ImageDecodeError


def test_slot_lifecycle():
    slot = ImageSlot("logo")
    assert slot.state is SlotState.UNLOADED and slot.loaded is None

    t = slot.begin("a")
    assert slot.state is SlotState.LOADING
    img = Image.new("RGBA", (2, 2))
    assert slot.resolve(t, img)
    assert slot.loaded is img

    # neuer Ladevorgang: altes Bild bleibt sichtbar, bis das Ergebnis da ist
    t2 = slot.begin("b")
    assert slot.image is img and slot.loaded is img
    assert slot.fail(t2, "nope")
    assert slot.state is SlotState.FAILED and slot.image is None and slot.error == "nope"

    slot.clear()
    assert slot.state is SlotState.UNLOADED and slot.source is None


def test_slot_ignores_stale_tickets():
    slot = ImageSlot("qr")
    old = slot.begin("old")
    new = slot.begin("new")
    assert not slot.resolve(old, Image.new("RGBA", (1, 1)))
    assert not slot.fail(old, "late")
    assert slot.state is SlotState.LOADING

    assert slot.resolve(new, Image.new("RGBA", (1, 1)))
    slot.clear()
    assert not slot.resolve(new, Image.new("RGBA", (1, 1)))


def test_decode_data_uri(make_png):
    img = decode_image_source(image_to_data_uri(make_png((1, 2, 3, 255), (7, 5))))
    assert img.mode == "RGBA"
    assert img.size == (7, 5)
    assert img.getpixel((0, 0)) == (1, 2, 3, 255)


def test_decode_local_path(tmp_path, make_png):
    p = tmp_path / "logo.png"
    p.write_bytes(make_png())
    assert decode_image_source(str(p)).size == (100, 50)


@pytest.mark.parametrize(
    "source",
    [
        "",
        "   ",
        "data:image/png;base64",
        "data:image/png,rawbytes",
        "data:image/png;base64,AAAA",
        "data:image/png;base64,broken",
        "/definitely/not/here.png",
    ],
)
def test_decode_rejects_bad_sources(source):
    with pytest.raises(ImageDecodeError):
        decode_image_source(source)


def test_download_errors_become_decode_errors(monkeypatch):
    def fake_get(url, timeout):
        raise requests.ConnectionError("offline")

    monkeypatch.setattr(assets.requests, "get", fake_get)
    with pytest.raises(ImageDecodeError, match="Download failed"):
        decode_image_source("https://example.invalid/logo.png", timeout=1)


def test_download_uses_response_content(monkeypatch, make_png):
    png = make_png(size=(3, 3))

    class FakeResponse:
        content = png

        def raise_for_status(self):
            return None

    seen = {}

    def fake_get(url, timeout):
        seen["timeout"] = timeout
        return FakeResponse()

    monkeypatch.setattr(assets.requests, "get", fake_get)
    assert decode_image_source("http://example.test/qr.png", timeout=4).size == (3, 3)
    assert seen["timeout"] == 4
