# posterhub/poster/session.py
from __future__ import annotations

import logging
from concurrent.futures import Future, ThreadPoolExecutor, wait
from dataclasses import dataclass
from functools import partial
from typing import Callable, Dict, List, Optional

from PIL import Image

from posterhub import config

from .assets import ImageSlot, SlotState, decode_image_source
from .background import generate_background
from .errors import GenerationFailedError, ImageDecodeError, MissingCredentialError, PosterError
from .interaction import CanvasRect, DragController, Point
from .layout_config import PosterLayoutV1
from .model import AspectRatio, ElementKind, PosterDocument, default_document
from .renderer import RenderContext, RenderImages, RenderMode, RenderResult, compose, export_png
from .text import FontBook

logger = logging.getLogger(__name__)

Generator = Callable[[str, AspectRatio], str]
Loader = Callable[[str], Image.Image]

SLOT_NAMES = ("background", "logo", "qr")


@dataclass
class Message:
    level: str  # "info" | "warning" | "error"
    text: str


@dataclass
class _Job:
    future: Future
    slot: str
    ticket: int = 0
    generation_id: Optional[int] = None
    theme: Optional[str] = None


class EditorSession:
    """
    Besitzt das Dokument und alles, was beim Editieren dazugehört.

    Laden / Generieren läuft im Executor, angewendet wird aber nur in pump()
    auf dem Thread des Aufrufers. Dadurch gibt es genau einen Schreiber für
    Dokument und Bild-Slots. Renders warten nie auf offene Ladevorgänge.
    """

    def __init__(
        self,
        document: Optional[PosterDocument] = None,
        generator: Optional[Generator] = None,
        loader: Optional[Loader] = None,
        layout: Optional[PosterLayoutV1] = None,
        fonts: Optional[FontBook] = None,
        max_workers: int = 2,
    ):
        self.document = document or default_document()
        self.generator: Generator = generator or generate_background
        self.loader: Loader = loader or partial(decode_image_source, timeout=config.HTTP_TIMEOUT)
        self.layout = layout or PosterLayoutV1()
        self.fonts = fonts

        self.slots: Dict[str, ImageSlot] = {name: ImageSlot(name) for name in SLOT_NAMES}
        self.controller = DragController(self.document, self.layout)
        self.messages: List[Message] = []

        self.render_count = 0
        self.last_result: Optional[RenderResult] = None

        self._executor = ThreadPoolExecutor(max_workers=max_workers, thread_name_prefix="poster-io")
        self._pending: List[_Job] = []
        self._generation_id = 0

        self.sync_assets()
        self.render()

    # ----------------------------
    # lifecycle
    # ----------------------------
    def close(self) -> None:
        self._executor.shutdown(wait=False, cancel_futures=True)

    def __enter__(self) -> "EditorSession":
        return self

    def __exit__(self, *exc) -> None:
        self.close()

    # ----------------------------
    # messages
    # ----------------------------
    def _notify(self, level: str, text: str) -> None:
        self.messages.append(Message(level=level, text=text))

    def pop_messages(self) -> List[Message]:
        out, self.messages = self.messages, []
        return out

    # ----------------------------
    # rendering
    # ----------------------------
    @property
    def images(self) -> RenderImages:
        return RenderImages(
            background=self.slots["background"].loaded,
            logo=self.slots["logo"].loaded,
            qr=self.slots["qr"].loaded,
        )

    def render(self, mode: RenderMode = RenderMode.PREVIEW) -> Image.Image:
        ctx = RenderContext(mode=mode, selected=self.controller.selected)
        result = compose(self.document, self.images, ctx, layout=self.layout, fonts=self.fonts)
        self.render_count += 1
        if mode is RenderMode.PREVIEW:
            self.last_result = result
        return result.image

    def export_png(self) -> bytes:
        return export_png(self.document, self.images, layout=self.layout, fonts=self.fonts)

    # ----------------------------
    # assets
    # ----------------------------
    def request_image(self, slot_name: str, source: str) -> None:
        slot = self.slots[slot_name]
        ticket = slot.begin(source)
        future = self._executor.submit(self.loader, source)
        self._pending.append(_Job(future=future, slot=slot_name, ticket=ticket))
        logger.debug("Loading %s (ticket %s)", slot_name, ticket)

    def sync_assets(self) -> None:
        """Logo/QR-Slots an die URLs im Dokument angleichen."""
        for slot_name, source in (("logo", self.document.logo_url), ("qr", self.document.qr_url)):
            slot = self.slots[slot_name]
            if source == slot.source and slot.state is not SlotState.UNLOADED:
                continue
            if source:
                self.request_image(slot_name, source)
            elif slot.state is not SlotState.UNLOADED:
                slot.clear()

    # ----------------------------
    # background generation
    # ----------------------------
    @property
    def generating(self) -> bool:
        return any(job.generation_id is not None for job in self._pending)

    def _generate_and_decode(self, theme: str, aspect: AspectRatio) -> Image.Image:
        data_uri = self.generator(theme, aspect)
        if not data_uri:
            raise GenerationFailedError("No image data received")
        return self.loader(data_uri)

    def request_background(self) -> int:
        self._generation_id += 1
        theme = self.document.theme
        future = self._executor.submit(self._generate_and_decode, theme, self.document.aspect_ratio)
        self._pending.append(
            _Job(future=future, slot="background", generation_id=self._generation_id, theme=theme)
        )
        logger.info("Background generation #%s requested", self._generation_id)
        return self._generation_id

    # ----------------------------
    # event loop
    # ----------------------------
    @property
    def pending(self) -> int:
        return len(self._pending)

    def pump(self) -> int:
        """Fertige Futures anwenden. Gibt die Anzahl angewendeter Jobs zurück."""
        done = [job for job in self._pending if job.future.done()]
        if not done:
            return 0
        done_ids = {id(job) for job in done}
        self._pending = [job for job in self._pending if id(job) not in done_ids]

        for job in done:
            if job.generation_id is not None:
                self._apply_generation(job)
            else:
                self._apply_image(job)
        return len(done)

    def wait(self, timeout: Optional[float] = None) -> bool:
        """Blockiert, bis alles Offene fertig ist (oder timeout), und wendet es an."""
        if self._pending:
            wait([job.future for job in self._pending], timeout=timeout)
        self.pump()
        return not self._pending

    def _apply_image(self, job: _Job) -> None:
        slot = self.slots[job.slot]
        try:
            image = job.future.result()
        except ImageDecodeError as e:
            changed = slot.fail(job.ticket, str(e))
            if changed:
                logger.warning("Image %s failed: %s", job.slot, e)
                self._notify("warning", f"{job.slot}: Bild konnte nicht geladen werden ({e})")
        except Exception as e:
            logger.exception("Unexpected error while loading %s", job.slot)
            changed = slot.fail(job.ticket, str(e))
        else:
            changed = slot.resolve(job.ticket, image)

        if changed:
            self.render()

    def _apply_generation(self, job: _Job) -> None:
        if job.generation_id != self._generation_id:
            logger.info("Discarding superseded background generation #%s", job.generation_id)
            return
        if job.theme != self.document.theme:
            logger.info("Discarding background generation #%s: theme changed", job.generation_id)
            self._notify("info", "Theme wurde geändert, generierter Hintergrund verworfen.")
            return

        try:
            image = job.future.result()
        except MissingCredentialError as e:
            self._notify("error", str(e))
            return
        except (GenerationFailedError, ImageDecodeError) as e:
            logger.warning("Background generation failed: %s", e)
            self._notify("error", f"Hintergrund-Generierung fehlgeschlagen: {e}")
            return
        except PosterError as e:
            self._notify("error", str(e))
            return
        except Exception as e:
            logger.exception("Unexpected error during background generation")
            self._notify("error", f"Hintergrund-Generierung fehlgeschlagen: {e}")
            return

        slot = self.slots["background"]
        slot.resolve(slot.begin(f"generated:{job.generation_id}"), image)
        self._notify("info", "Hintergrund generiert.")
        self.render()

    # ----------------------------
    # document edits (je Edit genau ein Render)
    # ----------------------------
    def edit(self, **changes) -> Image.Image:
        self.document.update(**changes)
        self.sync_assets()
        return self.render()

    def set_aspect_ratio(self, value) -> Image.Image:
        self.document.set_aspect_ratio(value)
        return self.render()

    def set_position(self, kind: ElementKind, x: float, y: float) -> Image.Image:
        self.document.set_position(kind, x, y)
        return self.render()

    def set_scale(self, kind: ElementKind, scale: float) -> Image.Image:
        self.document.set_scale(kind, scale)
        return self.render()

    def set_visible(self, kind: ElementKind, visible: bool) -> Image.Image:
        self.document.set_visible(kind, visible)
        return self.render()

    def toggle_visible(self, kind: ElementKind) -> Image.Image:
        self.document.toggle_visible(kind)
        return self.render()

    def set_style(self, kind: ElementKind, bold: Optional[bool] = None, italic: Optional[bool] = None) -> Image.Image:
        self.document.set_style(kind, bold=bold, italic=italic)
        return self.render()

    def select(self, kind: Optional[ElementKind]) -> Image.Image:
        self.controller.select(kind)
        return self.render()

    # ----------------------------
    # pointer
    # ----------------------------
    def mount(self, rect: CanvasRect) -> None:
        self.controller.mount(rect)

    def pointer_down(self, pt: Point) -> Optional[ElementKind]:
        if not self.controller.mounted:
            return None
        kind = self.controller.on_pointer_down(pt)
        self.render()
        return kind

    def pointer_move(self, pt: Point) -> bool:
        changed = self.controller.on_pointer_move(pt)
        if changed:
            self.render()
        return changed

    def pointer_up(self) -> None:
        self.controller.on_pointer_up()
