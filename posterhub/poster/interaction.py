# posterhub/poster/interaction.py
from __future__ import annotations

import logging
import math
from dataclasses import dataclass
from typing import Optional, Tuple

from .layout_config import PosterLayoutV1
from .model import HIT_ORDER, PCT_MAX, PCT_MIN, ElementKind, PosterDocument

logger = logging.getLogger(__name__)

Point = Tuple[float, float]


@dataclass(frozen=True)
class CanvasRect:
    """On-screen Bounding-Box der Canvas (Device-Koordinaten)."""

    left: float
    top: float
    width: float
    height: float

    @property
    def usable(self) -> bool:
        return self.width > 0 and self.height > 0


@dataclass
class DragState:
    kind: ElementKind
    offset_x: float
    offset_y: float


def snap(value: float, grid: float = 2.0) -> float:
    """Auf das nächste Grid-Vielfache runden (half-up), danach in [0, 100] klemmen."""
    try:
        v = float(value)
    except (TypeError, ValueError):
        v = 0.0
    if not math.isfinite(v):
        v = 0.0
    snapped = math.floor(v / grid + 0.5) * grid
    return max(PCT_MIN, min(PCT_MAX, snapped))


def hit_test(
    doc: PosterDocument,
    x: float,
    y: float,
    radius: float = 12.0,
) -> Optional[ElementKind]:
    """Nächster sichtbarer Anker strikt innerhalb von radius (Prozent-Raum)."""
    closest: Optional[ElementKind] = None
    best = radius
    for kind in HIT_ORDER:
        p = doc.placement(kind)
        if not p.visible:
            continue
        d = math.hypot(x - p.x, y - p.y)
        if d < best:
            best = d
            closest = kind
    return closest


class DragController:
    """
    Pointer -> Dokument.
    Arbeitet im selben Prozent-Raum wie der Renderer. Ohne gemountete Canvas passiert nichts.
    """

    def __init__(self, document: PosterDocument, layout: Optional[PosterLayoutV1] = None):
        self.document = document
        self.layout = layout or PosterLayoutV1()
        self.surface: Optional[CanvasRect] = None
        self.selected: Optional[ElementKind] = None
        self.drag: Optional[DragState] = None

    # --- surface ---
    def mount(self, rect: CanvasRect) -> None:
        self.surface = rect

    def unmount(self) -> None:
        self.surface = None
        self.drag = None

    @property
    def mounted(self) -> bool:
        return self.surface is not None and self.surface.usable

    @property
    def dragging(self) -> bool:
        return self.drag is not None

    def to_percent(self, pt: Point) -> Point:
        r = self.surface
        if r is None or not r.usable:
            raise RuntimeError("Canvas not mounted")
        return (
            (pt[0] - r.left) / r.width * 100.0,
            (pt[1] - r.top) / r.height * 100.0,
        )

    # --- selection ---
    def select(self, kind: Optional[ElementKind]) -> None:
        self.selected = ElementKind(kind) if kind is not None else None

    # --- pointer events ---
    def on_pointer_down(self, pt: Point) -> Optional[ElementKind]:
        if not self.mounted:
            return None
        x, y = self.to_percent(pt)
        kind = hit_test(self.document, x, y, self.layout.capture_radius_pct)
        self.selected = kind
        if kind is None:
            self.drag = None
            return None

        p = self.document.placement(kind)
        self.drag = DragState(kind=kind, offset_x=x - p.x, offset_y=y - p.y)
        logger.debug("Drag start %s at (%.2f, %.2f)", kind.value, x, y)
        return kind

    def on_pointer_move(self, pt: Point) -> bool:
        if not self.mounted or self.drag is None:
            return False

        p = self.document.placement(self.drag.kind)
        if not p.visible:
            # wurde während des Drags ausgeblendet -> Drag endet still
            logger.debug("Dragged element %s hidden, drag dropped", self.drag.kind.value)
            self.drag = None
            return False

        x, y = self.to_percent(pt)
        grid = self.layout.grid_step_pct
        nx = snap(x - self.drag.offset_x, grid)
        ny = snap(y - self.drag.offset_y, grid)
        if (nx, ny) == (p.x, p.y):
            return False
        p.x, p.y = nx, ny
        return True

    def on_pointer_up(self) -> None:
        if self.drag is not None:
            logger.debug("Drag end %s", self.drag.kind.value)
        self.drag = None
