# posterhub/poster/renderer.py
from __future__ import annotations

import json
import logging
import re
from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from io import BytesIO
from pathlib import Path
from typing import Any, Dict, Optional, Tuple

from PIL import Image, ImageDraw, ImageFilter, ImageFont

from posterhub import config

from .assets import decode_image_source
from .errors import ImageDecodeError
from .layout_config import PosterLayoutV1
from .model import (
    DRAW_ORDER,
    AspectRatio,
    ElementKind,
    ElementPlacement,
    PosterDocument,
    clamp_percent,
    clamp_scale,
)
from .text import RGBA, FontBook, parse_color, text_width, wrap_words

logger = logging.getLogger(__name__)

Box = Tuple[float, float, float, float]


class RenderMode(Enum):
    PREVIEW = "preview"
    EXPORT = "export"


@dataclass(frozen=True)
class RenderContext:
    mode: RenderMode = RenderMode.PREVIEW
    selected: Optional[ElementKind] = None


@dataclass
class RenderImages:
    background: Optional[Image.Image] = None
    logo: Optional[Image.Image] = None
    qr: Optional[Image.Image] = None


@dataclass
class RenderResult:
    image: Image.Image
    boxes: Dict[ElementKind, Box] = field(default_factory=dict)
    badge_boxes: Optional[Tuple[Box, Box]] = None

    @property
    def size(self) -> Tuple[int, int]:
        return self.image.size


# ----------------------------
# Fonts
# ----------------------------
_FONT_BOOK: Optional[FontBook] = None


def default_font_book() -> FontBook:
    global _FONT_BOOK
    if _FONT_BOOK is None:
        _FONT_BOOK = FontBook(config.FONTS_DIR)
    return _FONT_BOOK


# ----------------------------
# Geometry
# ----------------------------
def canvas_size(aspect: AspectRatio, layout: Optional[PosterLayoutV1] = None) -> Tuple[int, int]:
    layout = layout or PosterLayoutV1()
    w_ratio, h_ratio = AspectRatio.parse(aspect).ratio
    return layout.width, layout.height_for(w_ratio, h_ratio)


def px(pct: float, width: float) -> float:
    return pct / 100.0 * width


def py(pct: float, height: float) -> float:
    return pct / 100.0 * height


def _ibox(box: Box) -> Tuple[int, int, int, int]:
    x0, y0, x1, y1 = box
    return int(round(x0)), int(round(y0)), int(round(max(x0, x1))), int(round(max(y0, y1)))


def _union(a: Optional[Box], b: Box) -> Box:
    if a is None:
        return b
    return (min(a[0], b[0]), min(a[1], b[1]), max(a[2], b[2]), max(a[3], b[3]))


def _single_line(text: str) -> str:
    return " ".join((text or "").split())


def _safe(p: ElementPlacement) -> Tuple[float, float, float]:
    # Render-Pass clamped selbst nochmal, falls jemand am Setter vorbei schreibt
    return clamp_percent(p.x, 50.0), clamp_percent(p.y, 50.0), clamp_scale(p.scale)


# ----------------------------
# Layers
# ----------------------------
def _layer(img: Image.Image) -> Tuple[Image.Image, ImageDraw.ImageDraw]:
    layer = Image.new("RGBA", img.size, (0, 0, 0, 0))
    return layer, ImageDraw.Draw(layer)


def _shear(layer: Image.Image, pivot_y: float, shear: float) -> Image.Image:
    # x_src = x + shear * (y - pivot) -> oberhalb der Pivot-Linie nach rechts gekippt
    return layer.transform(
        layer.size,
        Image.AFFINE,
        (1, shear, -shear * pivot_y, 0, 1, 0),
        resample=Image.BICUBIC,
    )


def _draw_text(
    img: Image.Image,
    pos: Tuple[float, float],
    text: str,
    font: ImageFont.FreeTypeFont,
    fill: RGBA,
    anchor: str,
    shear: float = 0.0,
    shadow: Optional[Tuple[int, int]] = None,
) -> Box:
    """
    Einzeiliger Text auf eigenem Layer.
    shadow = (blur_radius, alpha) -> weicher schwarzer Schatten ohne Offset.
    Gibt die Text-BBox (ohne Schatten) zurück.
    """
    layer, d = _layer(img)
    bbox = d.textbbox(pos, text, font=font, anchor=anchor)
    if not text:
        return bbox

    if shadow is not None:
        blur, alpha = shadow
        shadow_layer, sd = _layer(img)
        sd.text(pos, text, font=font, fill=(0, 0, 0, alpha), anchor=anchor)
        if shear:
            shadow_layer = _shear(shadow_layer, pos[1], shear)
        img.alpha_composite(shadow_layer.filter(ImageFilter.GaussianBlur(radius=blur)))

    d.text(pos, text, font=font, fill=fill, anchor=anchor)
    if shear:
        layer = _shear(layer, pos[1], shear)
        # Oberlänge kippt nach rechts
        x0, y0, x1, y1 = bbox
        bbox = (x0, y0, x1 + shear * max(0.0, pos[1] - y0), y1)

    img.alpha_composite(layer)
    return bbox


def _paste_image(img: Image.Image, src: Image.Image, x: float, y: float, w: float, h: float) -> Optional[Box]:
    w_i, h_i = int(round(w)), int(round(h))
    if w_i < 1 or h_i < 1:
        return None
    resized = src.convert("RGBA").resize((w_i, h_i), Image.LANCZOS)
    layer = Image.new("RGBA", img.size, (0, 0, 0, 0))
    # ohne Maske pasten, sonst wird Alpha doppelt verrechnet
    layer.paste(resized, (int(round(x)), int(round(y))))
    img.alpha_composite(layer)
    return (x, y, x + w, y + h)


class _Painter:
    def __init__(
        self,
        img: Image.Image,
        doc: PosterDocument,
        images: RenderImages,
        ctx: RenderContext,
        layout: PosterLayoutV1,
        fonts: FontBook,
    ):
        self.img = img
        self.doc = doc
        self.images = images
        self.ctx = ctx
        self.layout = layout
        self.fonts = fonts
        self.W, self.H = img.size
        self.measure = ImageDraw.Draw(img)
        self.badge_boxes: Optional[Tuple[Box, Box]] = None

    # --- helpers ---
    def _font(self, ratio: float, scale: float, p: ElementPlacement) -> ImageFont.FreeTypeFont:
        return self.fonts.get(self.W * ratio * scale, bold=p.bold, italic=p.italic)

    def _shear_for(self, p: ElementPlacement) -> float:
        if p.italic and not self.fonts.has_italic(p.bold):
            return self.layout.italic_shear
        return 0.0

    def _anchor(self, p: ElementPlacement) -> Tuple[float, float]:
        x, y, _ = _safe(p)
        return px(x, self.W), py(y, self.H)

    # --- background ---
    def background(self) -> None:
        bg = self.images.background
        if bg is not None and bg.width > 0 and bg.height > 0:
            self.img.alpha_composite(bg.convert("RGBA").resize(self.img.size, Image.LANCZOS))
            return

        top = Image.new("RGBA", self.img.size, parse_color(self.layout.gradient_top))
        bottom = Image.new("RGBA", self.img.size, parse_color(self.layout.gradient_bottom))
        mask = Image.linear_gradient("L").resize(self.img.size)
        self.img.alpha_composite(Image.composite(bottom, top, mask))

    def grid(self) -> None:
        layer, d = _layer(self.img)
        step = self.layout.grid_step_pct
        n = int(round(100.0 / step))
        for i in range(1, n):
            gx = px(i * step, self.W)
            gy = py(i * step, self.H)
            d.line([(gx, 0), (gx, self.H)], fill=self.layout.color_grid, width=1)
            d.line([(0, gy), (self.W, gy)], fill=self.layout.color_grid, width=1)
        self.img.alpha_composite(layer)

    # --- elements ---
    def logo(self) -> Optional[Box]:
        src = self.images.logo
        if src is None or src.width <= 0 or src.height <= 0:
            return None
        _, _, scale = _safe(self.doc.pos_logo)
        x, y = self._anchor(self.doc.pos_logo)
        lw = self.W * self.layout.logo_width_ratio * scale
        lh = src.height / src.width * lw
        return _paste_image(self.img, src, x, y, lw, lh)

    def _centered_label(self, p: ElementPlacement, text: str, ratio: float, color: str) -> Box:
        _, _, scale = _safe(p)
        font = self._font(ratio, scale, p)
        return _draw_text(
            self.img,
            self._anchor(p),
            _single_line(text).upper(),
            font,
            parse_color(color),
            anchor="ms",
            shear=self._shear_for(p),
        )

    def brand(self) -> Box:
        return self._centered_label(
            self.doc.pos_brand, self.doc.brand_name, self.layout.brand_size_ratio, self.doc.color_brand
        )

    def event_name(self) -> Box:
        return self._centered_label(
            self.doc.pos_event_name, self.doc.event_name, self.layout.event_size_ratio, self.doc.color_event
        )

    def badges(self) -> Box:
        p = self.doc.pos_badges
        lay = self.layout
        _, _, scale = _safe(p)
        x0, y0 = self._anchor(p)

        font = self._font(lay.badge_size_ratio, scale, p)
        bh = self.W * lay.badge_height_ratio * scale
        # Box-Padding fix, nur der Text-Einzug skaliert
        pad = lay.badge_pad_x
        inset = lay.badge_pad_x / 2 * scale
        gap = lay.badge_gap * scale
        radius = int(round(lay.badge_radius * scale))

        labels = (_single_line(self.doc.duration), _single_line(self.doc.price))
        fills = (parse_color(self.doc.bg_color_badge1), parse_color(self.doc.bg_color_badge2))

        # erst messen, dann malen
        w1 = text_width(self.measure, labels[0], font) + pad
        w2 = text_width(self.measure, labels[1], font) + pad
        box1: Box = (x0, y0, x0 + w1, y0 + bh)
        x2 = box1[2] + gap
        box2: Box = (x2, y0, x2 + w2, y0 + bh)

        layer, d = _layer(self.img)
        for box, fill in zip((box1, box2), fills):
            d.rounded_rectangle(_ibox(box), radius=radius, fill=fill)
        self.img.alpha_composite(layer)

        text_fill = parse_color(self.doc.color_badges)
        shear = self._shear_for(p)
        for box, label in zip((box1, box2), labels):
            _draw_text(self.img, (box[0] + inset, y0 + bh / 2), label, font, text_fill, anchor="lm", shear=shear)

        self.badge_boxes = (box1, box2)
        return _union(box1, box2)

    def headline(self) -> Box:
        p = self.doc.pos_headline
        _, _, scale = _safe(p)
        font = self._font(self.layout.headline_size_ratio, scale, p)
        shadow = None
        if self.ctx.mode is RenderMode.EXPORT:
            shadow = (self.layout.shadow_blur, self.layout.shadow_alpha)
        return _draw_text(
            self.img,
            self._anchor(p),
            _single_line(self.doc.headline),
            font,
            parse_color(self.doc.color_headline),
            anchor="ms",
            shear=self._shear_for(p),
            shadow=shadow,
        )

    def sub_headline(self) -> Optional[Box]:
        p = self.doc.pos_sub_headline
        _, _, scale = _safe(p)
        x, y = self._anchor(p)
        font = self._font(self.layout.sub_size_ratio, scale, p)
        line_h = self.W * self.layout.sub_line_height_ratio * scale
        max_w = self.W * self.layout.sub_max_width_ratio

        lines = wrap_words(self.measure, self.doc.sub_headline, font, max_w)
        fill = parse_color(self.doc.color_sub_headline)
        shear = self._shear_for(p)

        out: Optional[Box] = None
        for i, line in enumerate(lines):
            box = _draw_text(self.img, (x, y + i * line_h), line, font, fill, anchor="ms", shear=shear)
            out = _union(out, box)
        return out

    def qr(self) -> Optional[Box]:
        src = self.images.qr
        if src is None or src.width <= 0 or src.height <= 0:
            return None
        _, _, scale = _safe(self.doc.pos_qr)
        x, y = self._anchor(self.doc.pos_qr)
        qw = self.W * self.layout.qr_size_ratio * scale
        pad = self.layout.qr_pad * scale

        pad_box: Box = (x - pad, y - pad, x + qw + pad, y + qw + pad)
        layer, d = _layer(self.img)
        d.rectangle(_ibox(pad_box), fill=self.layout.color_qr_pad)
        self.img.alpha_composite(layer)

        _paste_image(self.img, src, x, y, qw, qw)
        return pad_box

    def cta(self) -> Box:
        p = self.doc.pos_cta
        lay = self.layout
        _, _, scale = _safe(p)
        x, y = self._anchor(p)

        font = self._font(lay.cta_size_ratio, scale, p)
        label = _single_line(self.doc.cta_text).upper()
        cw = text_width(self.measure, label, font) + lay.cta_pad_x
        ch = self.W * lay.cta_height_ratio * scale
        box: Box = (x - cw / 2, y, x + cw / 2, y + ch)

        layer, d = _layer(self.img)
        d.rounded_rectangle(_ibox(box), radius=int(round(lay.cta_radius * scale)), fill=parse_color(self.doc.bg_color_cta))
        self.img.alpha_composite(layer)

        _draw_text(
            self.img,
            (x, y + ch / 2),
            label,
            font,
            parse_color(self.doc.color_cta),
            anchor="mm",
            shear=self._shear_for(p),
        )
        return box

    # --- preview chrome ---
    def selection(self, boxes: Dict[ElementKind, Box]) -> None:
        kind = self.ctx.selected
        if kind is None:
            return
        p = self.doc.placement(kind)
        if not p.visible:
            return

        lay = self.layout
        box = boxes.get(kind)
        if box is None:
            # Element hat nichts gezeichnet (z.B. Logo noch nicht geladen) -> Marker am Anker
            x, y = self._anchor(p)
            half = self.W * lay.marker_size_pct / 100.0 / 2
            box = (x - half, y - half, x + half, y + half)

        pad = lay.selection_pad
        x0, y0, x1, y1 = box
        layer, d = _layer(self.img)
        d.rectangle(
            _ibox((x0 - pad, y0 - pad, x1 + pad, y1 + pad)),
            outline=lay.color_selection,
            width=lay.selection_width,
        )
        self.img.alpha_composite(layer)


_DRAWERS = {
    ElementKind.LOGO: _Painter.logo,
    ElementKind.BRAND: _Painter.brand,
    ElementKind.EVENT_NAME: _Painter.event_name,
    ElementKind.BADGES: _Painter.badges,
    ElementKind.HEADLINE: _Painter.headline,
    ElementKind.SUB_HEADLINE: _Painter.sub_headline,
    ElementKind.QR: _Painter.qr,
    ElementKind.CTA: _Painter.cta,
}


# ----------------------------
# Renderer
# ----------------------------
def compose(
    doc: PosterDocument,
    images: Optional[RenderImages] = None,
    ctx: Optional[RenderContext] = None,
    layout: Optional[PosterLayoutV1] = None,
    fonts: Optional[FontBook] = None,
) -> RenderResult:
    """
    Kompletter Repaint: Background -> (Grid) -> Elemente in fester Reihenfolge -> (Selection).
    Unsichtbare Elemente werden komplett übersprungen, es gibt keinen Flow zwischen Elementen.
    """
    images = images or RenderImages()
    ctx = ctx or RenderContext()
    layout = layout or PosterLayoutV1()
    fonts = fonts or default_font_book()

    img = Image.new("RGBA", canvas_size(doc.aspect_ratio, layout), (0, 0, 0, 255))
    painter = _Painter(img, doc, images, ctx, layout, fonts)

    painter.background()
    if ctx.mode is RenderMode.PREVIEW:
        painter.grid()

    boxes: Dict[ElementKind, Box] = {}
    for kind in DRAW_ORDER:
        if not doc.placement(kind).visible:
            continue
        box = _DRAWERS[kind](painter)
        if box is not None:
            boxes[kind] = box

    if ctx.mode is RenderMode.PREVIEW:
        painter.selection(boxes)

    return RenderResult(image=img, boxes=boxes, badge_boxes=painter.badge_boxes)


def render(
    doc: PosterDocument,
    images: Optional[RenderImages] = None,
    mode: RenderMode = RenderMode.PREVIEW,
    selected: Optional[ElementKind] = None,
    layout: Optional[PosterLayoutV1] = None,
    fonts: Optional[FontBook] = None,
) -> Image.Image:
    ctx = RenderContext(mode=mode, selected=selected)
    return compose(doc, images, ctx, layout=layout, fonts=fonts).image


# ----------------------------
# Export
# ----------------------------
def _sanitize_filename(s: str) -> str:
    s = (s or "").strip().lower()
    s = re.sub(r"[^a-z0-9\-_]+", "-", s)
    s = re.sub(r"-{2,}", "-", s).strip("-")
    return s or "poster"


def export_png(
    doc: PosterDocument,
    images: Optional[RenderImages] = None,
    layout: Optional[PosterLayoutV1] = None,
    fonts: Optional[FontBook] = None,
) -> bytes:
    img = render(doc, images, mode=RenderMode.EXPORT, layout=layout, fonts=fonts)
    buf = BytesIO()
    img.save(buf, format="PNG")
    return buf.getvalue()


def render_to_file(
    doc: PosterDocument,
    images: Optional[RenderImages] = None,
    out_name: Optional[str] = None,
    output_dir: Optional[Path] = None,
    mode: RenderMode = RenderMode.EXPORT,
    fonts: Optional[FontBook] = None,
) -> Path:
    output_dir = Path(output_dir) if output_dir else config.OUTPUT_DIR
    output_dir.mkdir(parents=True, exist_ok=True)

    if out_name is None:
        ts = datetime.now().strftime("%Y%m%d_%H%M%S")
        slug = _sanitize_filename((doc.event_name or doc.headline)[:48])
        out_name = f"poster_{ts}_{slug}.png"

    out_path = output_dir / out_name
    render(doc, images, mode=mode, fonts=fonts).save(out_path)
    logger.info("Poster written: %s", out_path)
    return out_path


def _try_load(source: Optional[str]) -> Optional[Image.Image]:
    if not source:
        return None
    try:
        return decode_image_source(source, timeout=config.HTTP_TIMEOUT)
    except ImageDecodeError as e:
        logger.warning("Skipping image layer: %s", e)
        return None


def render_from_json_file(
    json_path: Path,
    out_name: Optional[str] = None,
    output_dir: Optional[Path] = None,
    background_path: Optional[Path] = None,
    mode: RenderMode = RenderMode.EXPORT,
) -> Path:
    raw: Dict[str, Any] = json.loads(Path(json_path).read_text(encoding="utf-8"))
    doc = PosterDocument.from_dict(raw)

    images = RenderImages(
        background=_try_load(str(background_path)) if background_path else None,
        logo=_try_load(doc.logo_url),
        qr=_try_load(doc.qr_url),
    )
    return render_to_file(doc, images, out_name=out_name, output_dir=output_dir, mode=mode)
