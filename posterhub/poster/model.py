# posterhub/poster/model.py
from __future__ import annotations

import logging
import math
from dataclasses import dataclass, field, fields
from enum import Enum
from typing import Any, Dict, Optional, Tuple

from .errors import InvalidConfigurationError

logger = logging.getLogger(__name__)


PCT_MIN = 0.0
PCT_MAX = 100.0
SCALE_MIN = 0.1
SCALE_MAX = 3.0

DEFAULT_LOGO_URL = "https://aaiena.com/wp-content/uploads/2023/12/aaiena-logo-01.png"


class AspectRatio(str, Enum):
    SQUARE = "1:1"
    STORY = "9:16"
    LANDSCAPE = "16:9"
    LINKEDIN = "4:3"

    @property
    def ratio(self) -> Tuple[int, int]:
        w, h = self.value.split(":")
        return int(w), int(h)

    @classmethod
    def parse(cls, value: Any) -> "AspectRatio":
        if isinstance(value, cls):
            return value
        raw = str(value or "").strip()
        for member in cls:
            if member.value == raw:
                return member
        raise InvalidConfigurationError(
            f"Unknown aspect ratio '{value}'. Allowed: {', '.join(m.value for m in cls)}"
        )


class ElementKind(str, Enum):
    LOGO = "logo"
    BRAND = "brand"
    EVENT_NAME = "event_name"
    BADGES = "badges"
    HEADLINE = "headline"
    SUB_HEADLINE = "sub_headline"
    CTA = "cta"
    QR = "qr"


# Zeichenreihenfolge (Background kommt davor)
DRAW_ORDER = (
    ElementKind.LOGO,
    ElementKind.BRAND,
    ElementKind.EVENT_NAME,
    ElementKind.BADGES,
    ElementKind.HEADLINE,
    ElementKind.SUB_HEADLINE,
    ElementKind.QR,
    ElementKind.CTA,
)

# Reihenfolge beim Hit-Test (bei Gleichstand gewinnt der Erste)
HIT_ORDER = (
    ElementKind.LOGO,
    ElementKind.BRAND,
    ElementKind.EVENT_NAME,
    ElementKind.BADGES,
    ElementKind.HEADLINE,
    ElementKind.SUB_HEADLINE,
    ElementKind.CTA,
    ElementKind.QR,
)

TEXT_ELEMENTS = frozenset(
    {
        ElementKind.BRAND,
        ElementKind.EVENT_NAME,
        ElementKind.BADGES,
        ElementKind.HEADLINE,
        ElementKind.SUB_HEADLINE,
        ElementKind.CTA,
    }
)


def _finite(value: Any, default: float) -> float:
    try:
        v = float(value)
    except (TypeError, ValueError):
        return default
    if not math.isfinite(v):
        return default
    return v


def clamp_percent(value: Any, default: float = 0.0) -> float:
    v = _finite(value, default)
    return max(PCT_MIN, min(PCT_MAX, v))


def clamp_scale(value: Any, default: float = 1.0) -> float:
    v = _finite(value, default)
    return max(SCALE_MIN, min(SCALE_MAX, v))


@dataclass
class ElementPlacement:
    x: float = 50.0
    y: float = 50.0
    scale: float = 1.0
    visible: bool = True
    bold: bool = False
    italic: bool = False

    def __post_init__(self) -> None:
        x = clamp_percent(self.x, 50.0)
        y = clamp_percent(self.y, 50.0)
        scale = clamp_scale(self.scale)
        if (x, y, scale) != (self.x, self.y, self.scale):
            logger.warning(
                "Placement clamped: (%s, %s, scale=%s) -> (%s, %s, scale=%s)",
                self.x, self.y, self.scale, x, y, scale,
            )
        self.x, self.y, self.scale = x, y, scale
        self.visible = bool(self.visible)
        self.bold = bool(self.bold)
        self.italic = bool(self.italic)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "x": self.x,
            "y": self.y,
            "scale": self.scale,
            "visible": self.visible,
            "bold": self.bold,
            "italic": self.italic,
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any], default: Optional["ElementPlacement"] = None) -> "ElementPlacement":
        base = default or cls()
        if data is None:
            data = {}
        if not isinstance(data, dict):
            raise InvalidConfigurationError(f"Placement must be a JSON object, got {type(data).__name__}")
        return cls(
            x=data.get("x", base.x),
            y=data.get("y", base.y),
            scale=data.get("scale", base.scale),
            visible=data.get("visible", base.visible),
            bold=data.get("bold", base.bold),
            italic=data.get("italic", base.italic),
        )


# ElementKind -> Feldname im Dokument
_PLACEMENT_FIELDS: Dict[ElementKind, str] = {
    ElementKind.LOGO: "pos_logo",
    ElementKind.BRAND: "pos_brand",
    ElementKind.EVENT_NAME: "pos_event_name",
    ElementKind.BADGES: "pos_badges",
    ElementKind.HEADLINE: "pos_headline",
    ElementKind.SUB_HEADLINE: "pos_sub_headline",
    ElementKind.CTA: "pos_cta",
    ElementKind.QR: "pos_qr",
}

# python field -> wire key (camelCase wie im Web-Editor)
_WIRE_KEYS: Dict[str, str] = {
    "aspect_ratio": "aspectRatio",
    "theme": "theme",
    "brand_name": "brandName",
    "event_name": "eventName",
    "duration": "duration",
    "price": "price",
    "headline": "headline",
    "sub_headline": "subHeadline",
    "cta_text": "ctaText",
    "logo_url": "logoUrl",
    "qr_url": "qrUrl",
    "color_brand": "colorBrand",
    "color_event": "colorEvent",
    "color_headline": "colorHeadline",
    "color_sub_headline": "colorSubHeadline",
    "color_cta": "colorCTA",
    "bg_color_cta": "bgColorCTA",
    "color_badges": "colorBadges",
    "bg_color_badge1": "bgColorBadge1",
    "bg_color_badge2": "bgColorBadge2",
    "pos_logo": "posLogo",
    "pos_brand": "posBrand",
    "pos_event_name": "posEventName",
    "pos_badges": "posBadges",
    "pos_headline": "posHeadline",
    "pos_sub_headline": "posSubHeadline",
    "pos_cta": "posCTA",
    "pos_qr": "posQR",
}

_TEXT_FIELDS = frozenset(
    {
        "theme", "brand_name", "event_name", "duration", "price",
        "headline", "sub_headline", "cta_text", "logo_url",
        "color_brand", "color_event", "color_headline", "color_sub_headline",
        "color_cta", "bg_color_cta", "color_badges", "bg_color_badge1", "bg_color_badge2",
    }
)


def _default_placements() -> Dict[str, ElementPlacement]:
    return {
        "pos_logo": ElementPlacement(x=5, y=5, scale=1.0, visible=True),
        "pos_brand": ElementPlacement(x=50, y=10, scale=1.0, visible=True, bold=True),
        "pos_event_name": ElementPlacement(x=50, y=62, scale=1.0, visible=True, bold=True),
        "pos_badges": ElementPlacement(x=5, y=15, scale=1.0, visible=True, bold=True),
        "pos_headline": ElementPlacement(x=50, y=70, scale=1.0, visible=True, bold=True),
        "pos_sub_headline": ElementPlacement(x=50, y=78, scale=1.0, visible=True),
        "pos_cta": ElementPlacement(x=50, y=90, scale=1.0, visible=True, bold=True),
        "pos_qr": ElementPlacement(x=85, y=85, scale=1.0, visible=False),
    }


def _placement_factory(name: str):
    return lambda: _default_placements()[name]


@dataclass
class PosterDocument:
    aspect_ratio: AspectRatio = AspectRatio.STORY
    theme: str = "Futuristic Dubai skyline, sunset, ultra high tech bridge, glowing nodes, 8k professional render"

    # Content
    brand_name: str = "Aaiena"
    event_name: str = "Dubai Bridge Showcase"
    duration: str = "22nd - 29th Dec"
    price: str = "Dubai Bridge"
    headline: str = "Master AI Tools Today"
    sub_headline: str = "Join our comprehensive workshop to boost your productivity 10x with AI."
    cta_text: str = "Sign Up Now"

    # Image sources
    logo_url: str = DEFAULT_LOGO_URL
    qr_url: Optional[str] = None

    # Colors (CSS strings)
    color_brand: str = "#ffffff"
    color_event: str = "#3b82f6"
    color_headline: str = "#ffffff"
    color_sub_headline: str = "#e2e8f0"
    color_cta: str = "#ffffff"
    bg_color_cta: str = "#2563eb"
    color_badges: str = "#ffffff"
    bg_color_badge1: str = "rgba(0, 0, 0, 0.6)"
    bg_color_badge2: str = "rgba(37, 99, 235, 0.6)"

    # Positions & scales
    pos_logo: ElementPlacement = field(default_factory=_placement_factory("pos_logo"))
    pos_brand: ElementPlacement = field(default_factory=_placement_factory("pos_brand"))
    pos_event_name: ElementPlacement = field(default_factory=_placement_factory("pos_event_name"))
    pos_badges: ElementPlacement = field(default_factory=_placement_factory("pos_badges"))
    pos_headline: ElementPlacement = field(default_factory=_placement_factory("pos_headline"))
    pos_sub_headline: ElementPlacement = field(default_factory=_placement_factory("pos_sub_headline"))
    pos_cta: ElementPlacement = field(default_factory=_placement_factory("pos_cta"))
    pos_qr: ElementPlacement = field(default_factory=_placement_factory("pos_qr"))

    def __post_init__(self) -> None:
        self.aspect_ratio = AspectRatio.parse(self.aspect_ratio)

    # ----------------------------
    # Placement access
    # ----------------------------
    def placement(self, kind: ElementKind) -> ElementPlacement:
        return getattr(self, _PLACEMENT_FIELDS[ElementKind(kind)])

    def placements(self) -> Dict[ElementKind, ElementPlacement]:
        return {kind: self.placement(kind) for kind in HIT_ORDER}

    def set_position(self, kind: ElementKind, x: float, y: float) -> ElementPlacement:
        p = self.placement(kind)
        p.x = clamp_percent(x, p.x)
        p.y = clamp_percent(y, p.y)
        return p

    def set_scale(self, kind: ElementKind, scale: float) -> ElementPlacement:
        p = self.placement(kind)
        new_scale = clamp_scale(scale, p.scale)
        if new_scale != scale:
            logger.warning("Scale for %s clamped: %s -> %s", ElementKind(kind).value, scale, new_scale)
        p.scale = new_scale
        return p

    def set_visible(self, kind: ElementKind, visible: bool) -> ElementPlacement:
        p = self.placement(kind)
        p.visible = bool(visible)
        return p

    def toggle_visible(self, kind: ElementKind) -> bool:
        p = self.placement(kind)
        p.visible = not p.visible
        return p.visible

    def set_style(
        self,
        kind: ElementKind,
        bold: Optional[bool] = None,
        italic: Optional[bool] = None,
    ) -> ElementPlacement:
        p = self.placement(kind)
        if ElementKind(kind) not in TEXT_ELEMENTS:
            logger.debug("Style flags on %s have no effect", ElementKind(kind).value)
        if bold is not None:
            p.bold = bool(bold)
        if italic is not None:
            p.italic = bool(italic)
        return p

    # ----------------------------
    # Field setters
    # ----------------------------
    def set_aspect_ratio(self, value: Any) -> AspectRatio:
        self.aspect_ratio = AspectRatio.parse(value)
        return self.aspect_ratio

    def set_qr_url(self, url: Optional[str]) -> None:
        # QR-Upload blendet den QR direkt ein, ohne Quelle wird er versteckt
        self.qr_url = url or None
        self.pos_qr.visible = self.qr_url is not None

    def update(self, **changes: Any) -> None:
        for name, value in changes.items():
            if name == "aspect_ratio":
                self.set_aspect_ratio(value)
            elif name == "qr_url":
                self.set_qr_url(value)
            elif name in _TEXT_FIELDS:
                setattr(self, name, "" if value is None else str(value))
            else:
                raise InvalidConfigurationError(f"Unknown poster field: {name}")

    # ----------------------------
    # Wire format
    # ----------------------------
    def to_dict(self) -> Dict[str, Any]:
        out: Dict[str, Any] = {}
        for f in fields(self):
            value = getattr(self, f.name)
            key = _WIRE_KEYS[f.name]
            if isinstance(value, ElementPlacement):
                out[key] = value.to_dict()
            elif isinstance(value, AspectRatio):
                out[key] = value.value
            else:
                out[key] = value
        return out

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "PosterDocument":
        if not isinstance(data, dict):
            raise InvalidConfigurationError("Poster config must be a JSON object")

        defaults = cls()
        kwargs: Dict[str, Any] = {}
        for f in fields(cls):
            key = _WIRE_KEYS[f.name]
            if key not in data and f.name not in data:
                continue
            raw = data.get(key, data.get(f.name))
            if f.name.startswith("pos_"):
                kwargs[f.name] = ElementPlacement.from_dict(raw, default=getattr(defaults, f.name))
            elif f.name == "aspect_ratio":
                kwargs[f.name] = AspectRatio.parse(raw)
            elif f.name == "qr_url":
                kwargs[f.name] = raw or None
            else:
                kwargs[f.name] = "" if raw is None else str(raw)
        return cls(**kwargs)


def default_document() -> PosterDocument:
    return PosterDocument()
