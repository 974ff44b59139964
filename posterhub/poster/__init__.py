# posterhub/poster/__init__.py

# Public API: Model
from .model import (
    AspectRatio,
    ElementKind,
    ElementPlacement,
    PosterDocument,
    default_document,
)

# Public API: Render
from .renderer import (
    RenderContext,
    RenderImages,
    RenderMode,
    RenderResult,
    canvas_size,
    compose,
    export_png,
    render,
    render_from_json_file,
    render_to_file,
)

# Public API: Interaction / Session
from .interaction import (
    CanvasRect,
    DragController,
    hit_test,
    snap,
)
from .session import EditorSession

# Layout / helpers you actually reuse from pages/tools
from .layout_config import PosterLayoutV1
from .assets import image_to_data_uri
from .errors import (
    EmptyResultError,
    GenerationFailedError,
    ImageDecodeError,
    InvalidConfigurationError,
    MissingCredentialError,
    PosterError,
)

__all__ = [
    # Model
    "AspectRatio",
    "ElementKind",
    "ElementPlacement",
    "PosterDocument",
    "default_document",

    # Render
    "RenderContext",
    "RenderImages",
    "RenderMode",
    "RenderResult",
    "canvas_size",
    "compose",
    "export_png",
    "render",
    "render_from_json_file",
    "render_to_file",

    # Interaction / Session
    "CanvasRect",
    "DragController",
    "hit_test",
    "snap",
    "EditorSession",

    # Layout / helpers
    "PosterLayoutV1",
    "image_to_data_uri",

    # Errors
    "EmptyResultError",
    "GenerationFailedError",
    "ImageDecodeError",
    "InvalidConfigurationError",
    "MissingCredentialError",
    "PosterError",
]
