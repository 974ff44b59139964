# posterhub/poster/text.py
from __future__ import annotations

import logging
import re
from pathlib import Path
from typing import Dict, List, Optional, Sequence, Tuple

from PIL import ImageColor, ImageDraw, ImageFont

logger = logging.getLogger(__name__)

RGBA = Tuple[int, int, int, int]

# Inter wie in den anderen Renderern; erste existierende Datei gewinnt
FONT_FILES: Dict[Tuple[bool, bool], Sequence[str]] = {
    (False, False): ("Inter-Medium.ttf", "Inter-Regular.ttf"),
    (True, False): ("Inter-Bold.ttf", "Inter-Black.ttf"),
    (False, True): ("Inter-MediumItalic.ttf", "Inter-Italic.ttf"),
    (True, True): ("Inter-BoldItalic.ttf", "Inter-BlackItalic.ttf"),
}

_RGBA_FN = re.compile(
    r"^rgba?\(\s*([\d.]+)\s*,\s*([\d.]+)\s*,\s*([\d.]+)\s*(?:,\s*([\d.]+%?)\s*)?\)$",
    re.IGNORECASE,
)

FALLBACK_COLOR: RGBA = (255, 255, 255, 255)


def _channel(raw: str) -> int:
    return max(0, min(255, int(round(float(raw)))))


def parse_color(value: Optional[str], fallback: RGBA = FALLBACK_COLOR) -> RGBA:
    """
    CSS-Farbe -> RGBA.
    Kann alles was ImageColor kann plus rgba() mit Alpha als Bruch (0.6) oder Prozent.
    Kaputte Werte -> fallback (Render-Pass soll nie crashen).
    """
    s = (value or "").strip()
    if not s:
        return fallback

    m = _RGBA_FN.match(s)
    if m:
        try:
            r, g, b = (_channel(m.group(i)) for i in (1, 2, 3))
            a_raw = m.group(4)
            if a_raw is None:
                a = 255
            elif a_raw.endswith("%"):
                a = _channel(float(a_raw[:-1]) / 100 * 255)
            else:
                a_val = float(a_raw)
                # 0..1 wie im Browser, alles darüber als 0..255
                a = _channel(a_val * 255) if a_val <= 1.0 else _channel(a_val)
            return (r, g, b, a)
        except ValueError:
            pass

    try:
        c = ImageColor.getcolor(s, "RGBA")
    except ValueError:
        logger.warning("Unparsable color %r, using fallback %s", value, fallback)
        return fallback
    return tuple(c)  # type: ignore[return-value]


class FontBook:
    """
    Liefert FreeType-Fonts pro (size, bold, italic).
    Sucht Inter-TTFs in fonts_dir; ohne Dateien -> Pillow Default-Font (skalierbar).
    """

    def __init__(self, fonts_dir: Optional[Path] = None):
        self.fonts_dir = Path(fonts_dir) if fonts_dir else None
        self._cache: Dict[Tuple[int, bool, bool], ImageFont.FreeTypeFont] = {}
        self._paths: Dict[Tuple[bool, bool], Optional[Path]] = {}

    def _font_path(self, bold: bool, italic: bool) -> Optional[Path]:
        key = (bold, italic)
        if key not in self._paths:
            found = None
            if self.fonts_dir is not None:
                for name in FONT_FILES[key]:
                    p = self.fonts_dir / name
                    if p.exists():
                        found = p
                        break
            if found is None and italic:
                # kein Italic-Schnitt: gleiche Datei wie aufrecht, Schräglage macht der Renderer
                found = self._font_path(bold, False)
            self._paths[key] = found
        return self._paths[key]

    def has_italic(self, bold: bool) -> bool:
        p = self._font_path(bold, True)
        return p is not None and p != self._font_path(bold, False)

    def get(self, size: float, bold: bool = False, italic: bool = False) -> ImageFont.FreeTypeFont:
        px = max(1, int(round(size)))
        key = (px, bool(bold), bool(italic))
        font = self._cache.get(key)
        if font is not None:
            return font

        path = self._font_path(bool(bold), bool(italic))
        if path is not None:
            font = ImageFont.truetype(str(path), size=px)
        else:
            font = ImageFont.load_default(size=px)
        self._cache[key] = font
        return font


def text_width(draw: ImageDraw.ImageDraw, text: str, font: ImageFont.FreeTypeFont) -> float:
    # nur einzeilig messen
    if not text:
        return 0.0
    return float(draw.textlength(text, font=font))


def wrap_words(
    draw: ImageDraw.ImageDraw,
    text: str,
    font: ImageFont.FreeTypeFont,
    max_width: float,
) -> List[str]:
    """
    Greedy Word-Wrap. Harte Zeilenumbrüche bleiben erhalten.
    Ein einzelnes Wort, das breiter als max_width ist, bekommt seine eigene Zeile.
    """
    text = (text or "").strip()
    if not text:
        return []

    out: List[str] = []
    for raw_line in text.splitlines():
        words = raw_line.split()
        if not words:
            out.append("")
            continue

        cur = words[0]
        for w in words[1:]:
            test = f"{cur} {w}"
            if text_width(draw, test, font) <= max_width:
                cur = test
            else:
                out.append(cur)
                cur = w
        out.append(cur)

    return out
