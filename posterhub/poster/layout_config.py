# posterhub/poster/layout_config.py
from dataclasses import dataclass
from typing import Tuple


@dataclass(frozen=True)
class PosterLayoutV1:
    # Canvas (Höhe kommt aus dem Seitenverhältnis)
    width: int = 1080

    # --- Editor: Snap / Hit-Test (Prozent-Raum) ---
    grid_step_pct: float = 2.0
    capture_radius_pct: float = 12.0

    # --- Scale-Grenzen ---
    scale_min: float = 0.1
    scale_max: float = 3.0

    # --- Logo ---
    logo_width_ratio: float = 0.18

    # --- Text sizes (Anteil der Canvas-Breite, * scale) ---
    brand_size_ratio: float = 0.04
    event_size_ratio: float = 0.03
    badge_size_ratio: float = 0.026
    headline_size_ratio: float = 0.08
    sub_size_ratio: float = 0.038
    cta_size_ratio: float = 0.045

    # --- Badges (Paar, links -> rechts) ---
    badge_height_ratio: float = 0.055
    badge_pad_x: float = 34.0        # gesamt, halb links / halb rechts
    badge_radius: float = 10.0
    badge_gap: float = 15.0

    # --- Sub-Headline ---
    sub_max_width_ratio: float = 0.85
    sub_line_height_ratio: float = 0.055

    # --- QR ---
    qr_size_ratio: float = 0.14
    qr_pad: float = 6.0

    # --- CTA Pill ---
    cta_height_ratio: float = 0.11
    cta_pad_x: float = 80.0
    cta_radius: float = 20.0

    # --- Headline-Shadow (nur Export) ---
    shadow_blur: int = 10
    shadow_alpha: int = 128

    # Faux italic (wenn keine Italic-TTF da ist)
    italic_shear: float = 0.2

    # Background fallback (vertikaler Verlauf)
    gradient_top: str = "#0f172a"
    gradient_bottom: str = "#020617"

    # Preview-Overlays (RGBA)
    color_grid: Tuple[int, int, int, int] = (255, 255, 255, 22)
    color_selection: Tuple[int, int, int, int] = (59, 130, 246, 255)
    selection_width: int = 3
    selection_pad: int = 8
    marker_size_pct: float = 4.0

    # QR-Unterlage
    color_qr_pad: Tuple[int, int, int, int] = (255, 255, 255, 255)

    def height_for(self, ratio_w: int, ratio_h: int) -> int:
        # abschneiden wie beim Canvas-Resize (16:9 -> 607)
        return int(self.width / ratio_w * ratio_h)
