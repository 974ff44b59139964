"""Editor session: async image slots, background generation, render triggers."""

import threading
from functools import partial
from io import BytesIO

import pytest
from PIL import Image, ImageChops

from posterhub.poster.assets import SlotState, decode_image_source
from posterhub.poster.background import generate_background
from posterhub.poster.interaction import CanvasRect
from posterhub.poster.model import ElementKind
from posterhub.poster.renderer import RenderMode
from posterhub.poster.session import EditorSession

RED = (255, 0, 0, 255)
BLUE = (0, 0, 255, 255)


def _no_generator(theme, aspect):
    raise AssertionError("generator must not be called")


@pytest.fixture
def session(offline_doc, fonts):
    s = EditorSession(offline_doc, generator=_no_generator, loader=decode_image_source, fonts=fonts)
    yield s
    s.close()


def test_initial_state_renders_once(session):
    assert session.render_count == 1
    assert session.pending == 0
    assert session.last_result.size == (1080, 1920)
    assert all(slot.state is SlotState.UNLOADED for slot in session.slots.values())


def test_resolved_logo_triggers_exactly_one_render(session, make_data_uri):
    session.edit(logo_url=make_data_uri(RED))
    assert session.render_count == 2
    assert session.slots["logo"].state is SlotState.LOADING

    assert session.wait(timeout=5)
    assert session.render_count == 3
    assert session.slots["logo"].state is SlotState.LOADED
    assert ElementKind.LOGO in session.last_result.boxes

    # gleiche Quelle -> kein erneutes Laden
    session.edit(brand_name="Other")
    assert session.pending == 0


def test_render_does_not_wait_for_pending_loads(offline_doc, fonts, make_data_uri):
    gate = threading.Event()

    def slow_loader(source):
        gate.wait(5)
        return decode_image_source(source)

    with EditorSession(offline_doc, generator=_no_generator, loader=slow_loader, fonts=fonts) as s:
        s.edit(logo_url=make_data_uri(RED))
        assert s.pump() == 0
        assert ElementKind.LOGO not in s.last_result.boxes

        gate.set()
        assert s.wait(timeout=5)
        assert ElementKind.LOGO in s.last_result.boxes


def test_failed_load_marks_slot_and_notifies(session):
    session.edit(logo_url="data:image/png;base64,AAAA")
    before = session.render_count
    session.wait(timeout=5)

    slot = session.slots["logo"]
    assert slot.state is SlotState.FAILED
    assert slot.loaded is None
    assert session.render_count == before + 1
    messages = session.pop_messages()
    assert [m.level for m in messages] == ["warning"]
    assert session.pop_messages() == []


def test_stale_load_is_ignored(offline_doc, fonts):
    def loader(source):
        return Image.new("RGBA", (10, 10), RED if source == "first" else BLUE)

    with EditorSession(offline_doc, generator=_no_generator, loader=loader, fonts=fonts) as s:
        before = s.render_count
        s.request_image("logo", "first")
        s.request_image("logo", "second")
        s.wait(timeout=5)

        assert s.render_count == before + 1
        assert s.slots["logo"].source == "second"
        assert s.slots["logo"].loaded.getpixel((0, 0)) == BLUE


def test_removing_qr_clears_slot(session, make_data_uri):
    session.edit(qr_url=make_data_uri((0, 0, 0, 255), (20, 20)))
    session.wait(timeout=5)
    assert ElementKind.QR in session.last_result.boxes

    session.edit(qr_url=None)
    assert session.slots["qr"].state is SlotState.UNLOADED
    assert ElementKind.QR not in session.last_result.boxes


def test_missing_credential_keeps_gradient(offline_doc, fonts):
    with EditorSession(
        offline_doc,
        generator=partial(generate_background, api_key=""),
        loader=decode_image_source,
        fonts=fonts,
    ) as s:
        s.request_background()
        assert s.generating
        s.wait(timeout=5)

        assert not s.generating
        assert s.slots["background"].state is SlotState.UNLOADED
        messages = s.pop_messages()
        assert len(messages) == 1
        assert messages[0].level == "error"
        assert "GEMINI_API_KEY" in messages[0].text


def test_generated_background_is_applied(offline_doc, fonts, make_data_uri):
    calls = []

    def generator(theme, aspect):
        calls.append((theme, aspect))
        return make_data_uri(RED, (16, 9))

    with EditorSession(offline_doc, generator=generator, loader=decode_image_source, fonts=fonts) as s:
        before = s.render_count
        s.request_background()
        s.wait(timeout=5)

        assert calls == [(offline_doc.theme, offline_doc.aspect_ratio)]
        assert s.slots["background"].state is SlotState.LOADED
        assert s.render_count == before + 1
        img = s.render(RenderMode.EXPORT).convert("RGB")
        assert img.getpixel((0, img.height // 2)) == (255, 0, 0)
        assert [m.level for m in s.pop_messages()] == ["info"]


def test_latest_generation_wins(offline_doc, fonts, make_data_uri):
    colors = iter([RED, BLUE])

    def generator(theme, aspect):
        return make_data_uri(next(colors), (8, 8))

    # ein Worker -> Aufrufe in Anfragereihenfolge
    with EditorSession(offline_doc, generator=generator, loader=decode_image_source, fonts=fonts, max_workers=1) as s:
        first = s.request_background()
        second = s.request_background()
        assert second > first
        s.wait(timeout=5)

        assert s.slots["background"].loaded.getpixel((0, 0)) == BLUE


def test_theme_change_discards_generated_background(offline_doc, fonts, make_data_uri):
    gate = threading.Event()

    def generator(theme, aspect):
        gate.wait(5)
        return make_data_uri(RED, (8, 8))

    with EditorSession(offline_doc, generator=generator, loader=decode_image_source, fonts=fonts) as s:
        s.request_background()
        s.edit(theme="Snowy mountain retreat")
        gate.set()
        s.wait(timeout=5)

        assert s.slots["background"].state is SlotState.UNLOADED
        assert [m.level for m in s.pop_messages()] == ["info"]


def test_generator_decode_error_is_reported(offline_doc, fonts):
    with EditorSession(
        offline_doc,
        generator=lambda theme, aspect: "data:image/png;base64,AAAA",
        loader=decode_image_source,
        fonts=fonts,
    ) as s:
        s.request_background()
        s.wait(timeout=5)
        assert s.slots["background"].state is SlotState.UNLOADED
        assert [m.level for m in s.pop_messages()] == ["error"]


def test_each_edit_renders_once(session):
    start = session.render_count
    session.set_position(ElementKind.BRAND, 20, 20)
    session.set_scale(ElementKind.BRAND, 1.5)
    session.set_style(ElementKind.BRAND, italic=True)
    session.toggle_visible(ElementKind.BADGES)
    session.set_visible(ElementKind.BADGES, True)
    session.set_aspect_ratio("4:3")
    session.select(ElementKind.BRAND)
    assert session.render_count == start + 7
    assert session.last_result.size == (1080, 810)


def test_pointer_flow_renders_on_change_only(session):
    assert session.pointer_down((50, 70)) is None  # nicht gemountet
    start = session.render_count

    session.mount(CanvasRect(0, 0, 100, 100))
    assert session.pointer_down((50, 70)) is ElementKind.HEADLINE
    assert session.render_count == start + 1

    assert session.pointer_move((30, 70)) is True
    assert session.render_count == start + 2
    assert session.pointer_move((30.3, 70)) is False
    assert session.render_count == start + 2

    session.pointer_up()
    assert session.controller.selected is ElementKind.HEADLINE
    assert session.document.pos_headline.x == 30.0


def test_export_png_has_no_editor_overlays(session):
    session.select(ElementKind.HEADLINE)
    exported = Image.open(BytesIO(session.export_png())).convert("RGB")
    expected = session.render(RenderMode.EXPORT).convert("RGB")
    assert ImageChops.difference(exported, expected).getbbox() is None


def test_unexpected_loader_error_is_contained(offline_doc, fonts):
    def loader(source):
        raise RuntimeError("kaputt")

    with EditorSession(offline_doc, generator=_no_generator, loader=loader, fonts=fonts) as s:
        s.request_image("qr", "b")
        s.wait(timeout=5)
        assert s.slots["qr"].state is SlotState.FAILED


def test_previous_logo_stays_while_replacement_loads(offline_doc, fonts, make_data_uri):
    gate = threading.Event()
    red, blue = make_data_uri(RED), make_data_uri(BLUE)

    def loader(source):
        if source == blue:
            gate.wait(5)
        return decode_image_source(source)

    with EditorSession(offline_doc, generator=_no_generator, loader=loader, fonts=fonts) as s:
        s.edit(logo_url=red)
        assert s.wait(timeout=5)

        s.edit(logo_url=blue)
        assert s.slots["logo"].state is SlotState.LOADING
        assert ElementKind.LOGO in s.last_result.boxes
        assert s.images.logo.getpixel((0, 0)) == RED

        gate.set()
        assert s.wait(timeout=5)
        assert s.images.logo.getpixel((0, 0)) == BLUE


def test_close_cancels_queued_work(offline_doc, fonts):
    gate = threading.Event()

    def loader(source):
        gate.wait(5)
        return Image.new("RGBA", (1, 1))

    s = EditorSession(offline_doc, generator=_no_generator, loader=loader, fonts=fonts, max_workers=1)
    s.request_image("logo", "a")
    s.request_image("qr", "b")
    queued = s._pending[-1].future

    s.close()
    gate.set()
    assert queued.cancelled()
