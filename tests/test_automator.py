import numpy as np
import pytest
from PIL import Image

from controller import clipboard
from controller.interfaces import KeyboardControl, PointerControl
from core import automator as automator_module
from core.automator import Automator
from core.errors import CaptureError, ImageNotFound, InvalidReference, NotFoundAfterTimeout
from vision import screen_capture, template_matcher
from vision.match_evaluator import MatchRectangle, Point
from vision.template_matcher import MatchResult


class FakePointer(PointerControl):
    def __init__(self):
        self.calls = []

    def move_absolute(self, x, y):
        self.calls.append(("move_absolute", x, y))

    def move_relative(self, dx, dy):
        self.calls.append(("move_relative", dx, dy))

    def click_left(self):
        self.calls.append(("click_left",))

    def click_right(self):
        self.calls.append(("click_right",))

    def double_click_left(self):
        self.calls.append(("double_click_left",))


class FakeKeyboard(KeyboardControl):
    def __init__(self, events=None):
        self.events = events if events is not None else []

    def type_text(self, text):
        self.events.append(("type_text", text))

    def key_press(self, key):
        self.events.append(("key_press", key))

    def modified_key_stroke(self, modifiers, key):
        self.events.append(("stroke", tuple(modifiers), key))

    def delay(self, milliseconds):
        self.events.append(("delay", milliseconds))


def _noise(width, height, seed):
    rng = np.random.default_rng(seed)
    return Image.fromarray(rng.integers(0, 256, size=(height, width, 3), dtype=np.uint8), "RGB")


def _make_automator(monkeypatch, tmp_path, screen, *, accuracy=0.9, keyboard=None):
    monkeypatch.setattr(screen_capture, "primary_screen_size", lambda: screen.size)
    monkeypatch.setattr(screen_capture, "capture_fullscreen", lambda: screen.copy())
    return Automator(
        accuracy,
        pointer=FakePointer(),
        keyboard=keyboard or FakeKeyboard(),
        diagnostics_dir=tmp_path,
    )


def _failures(tmp_path):
    return sorted(tmp_path.glob("failure_*.png"))


@pytest.fixture
def sleeps(monkeypatch):
    recorded = []
    monkeypatch.setattr(automator_module.time, "sleep", lambda seconds: recorded.append(seconds))
    return recorded


@pytest.fixture
def fake_reference(monkeypatch):
    monkeypatch.setattr(template_matcher, "load_reference", lambda path: np.zeros((5, 5, 3), dtype=np.uint8))


def test_click_image_moves_to_scaled_center_and_clicks(monkeypatch, tmp_path):
    screen = _noise(200, 150, seed=10)
    button = _noise(20, 15, seed=11)
    screen.paste(button, (37, 61))
    button.save(str(tmp_path / "button.png"))
    automator = _make_automator(monkeypatch, tmp_path, screen)

    target = automator.click_image(str(tmp_path / "button.png"))

    assert target == Point(15401, 29709)
    assert automator.pointer.calls == [("move_absolute", 15401, 29709), ("click_left",)]
    assert _failures(tmp_path) == []


def test_locate_returns_rectangle_of_pasted_reference(monkeypatch, tmp_path):
    screen = _noise(200, 150, seed=12)
    icon = _noise(12, 10, seed=13)
    screen.paste(icon, (150, 5))
    icon.save(str(tmp_path / "icon.png"))
    automator = _make_automator(monkeypatch, tmp_path, screen, accuracy=0.99)

    assert automator.locate(str(tmp_path / "icon.png")) == MatchRectangle(150, 5, 12, 10)


def test_exists_returns_false_without_raising(monkeypatch, tmp_path):
    screen = _noise(120, 90, seed=14)
    _noise(16, 16, seed=15).save(str(tmp_path / "absent.png"))
    automator = _make_automator(monkeypatch, tmp_path, screen)

    assert automator.exists(str(tmp_path / "absent.png")) is False
    assert _failures(tmp_path) == []


def test_exists_raises_for_missing_reference_and_keeps_diagnostic(monkeypatch, tmp_path):
    automator = _make_automator(monkeypatch, tmp_path, _noise(40, 30, seed=16))

    with pytest.raises(InvalidReference):
        automator.exists(str(tmp_path / "missing.png"))

    assert len(_failures(tmp_path)) == 1


def test_exists_propagates_capture_error(monkeypatch, tmp_path):
    automator = _make_automator(monkeypatch, tmp_path, _noise(40, 30, seed=17))

    def broken_capture():
        raise CaptureError("display gone")

    monkeypatch.setattr(screen_capture, "capture_fullscreen", broken_capture)

    with pytest.raises(CaptureError):
        automator.exists("anything.png")


def test_hover_on_absent_image_writes_diagnostic_and_does_not_move(monkeypatch, tmp_path):
    screen = _noise(120, 90, seed=18)
    _noise(16, 16, seed=19).save(str(tmp_path / "absent.png"))
    automator = _make_automator(monkeypatch, tmp_path, screen)

    with pytest.raises(ImageNotFound) as excinfo:
        automator.hover(str(tmp_path / "absent.png"))

    assert excinfo.value.image_path.endswith("absent.png")
    assert excinfo.value.score < 0.9
    assert automator.pointer.calls == []
    assert len(_failures(tmp_path)) == 1


def test_wait_exhausts_attempts_and_writes_one_diagnostic(monkeypatch, tmp_path, sleeps, fake_reference):
    automator = _make_automator(monkeypatch, tmp_path, Image.new("RGB", (64, 48)))
    attempts = []

    def never_found(snapshot, reference, reference_path="<reference>"):
        attempts.append(reference_path)
        return MatchResult(best_score=0.2, best_location=(0, 0), match_size=(5, 5))

    monkeypatch.setattr(template_matcher, "match", never_found)

    with pytest.raises(NotFoundAfterTimeout) as excinfo:
        automator.wait("dialog.png", 3)

    assert len(attempts) == 3
    assert sleeps == [1.0, 1.0]
    assert len(_failures(tmp_path)) == 1
    assert excinfo.value.image_path == "dialog.png"
    assert excinfo.value.seconds == 3
    assert "not found after 3 seconds" in str(excinfo.value)


def test_wait_tolerates_transient_error_then_succeeds(monkeypatch, tmp_path, sleeps, fake_reference):
    automator = _make_automator(monkeypatch, tmp_path, Image.new("RGB", (64, 48)))
    results = iter(
        [
            RuntimeError("transient"),
            MatchResult(best_score=0.97, best_location=(4, 6), match_size=(5, 5)),
        ]
    )

    def flaky(snapshot, reference, reference_path="<reference>"):
        outcome = next(results)
        if isinstance(outcome, Exception):
            raise outcome
        return outcome

    monkeypatch.setattr(template_matcher, "match", flaky)

    rectangle = automator.wait("dialog.png", 5)

    assert rectangle == MatchRectangle(4, 6, 5, 5)
    assert sleeps == [1.0]
    assert _failures(tmp_path) == []


def test_wait_surfaces_last_attempt_error_after_diagnostic(monkeypatch, tmp_path, sleeps, fake_reference):
    automator = _make_automator(monkeypatch, tmp_path, Image.new("RGB", (64, 48)))

    def broken(snapshot, reference, reference_path="<reference>"):
        raise RuntimeError("matcher exploded")

    monkeypatch.setattr(template_matcher, "match", broken)

    with pytest.raises(NotFoundAfterTimeout) as excinfo:
        automator.wait("dialog.png", 2)

    assert isinstance(excinfo.value.__cause__, RuntimeError)
    assert sleeps == [1.0]
    assert len(_failures(tmp_path)) == 1


def test_wait_rejects_empty_budget(monkeypatch, tmp_path):
    automator = _make_automator(monkeypatch, tmp_path, Image.new("RGB", (64, 48)))

    with pytest.raises(ValueError):
        automator.wait("dialog.png", 0)


def test_constructor_rejects_accuracy_outside_unit_interval(monkeypatch, tmp_path):
    monkeypatch.setattr(screen_capture, "primary_screen_size", lambda: (64, 48))

    for accuracy in (0.0, 1.0, 1.5):
        with pytest.raises(ValueError):
            Automator(accuracy, pointer=FakePointer(), keyboard=FakeKeyboard())


def test_keyboard_helpers_pause_before_each_keystroke(monkeypatch, tmp_path):
    keyboard = FakeKeyboard()
    automator = _make_automator(monkeypatch, tmp_path, Image.new("RGB", (64, 48)), keyboard=keyboard)

    automator.type_text("hello")
    automator.press_enter()
    automator.select_all()
    automator.show_desktop()

    assert keyboard.events == [
        ("delay", 500),
        ("type_text", "hello"),
        ("delay", 500),
        ("key_press", "enter"),
        ("delay", 500),
        ("stroke", ("ctrl",), "a"),
        ("delay", 500),
        ("stroke", ("win",), "d"),
    ]


def test_paste_commits_clipboard_on_ui_thread_before_keystroke(monkeypatch, tmp_path):
    import threading

    events = []
    automator = _make_automator(
        monkeypatch, tmp_path, Image.new("RGB", (64, 48)), keyboard=FakeKeyboard(events)
    )
    monkeypatch.setattr(
        clipboard.pyperclip,
        "copy",
        lambda text: events.append(("clipboard", text, threading.current_thread().name)),
    )

    automator.paste("secret")

    assert events == [
        ("clipboard", "secret", clipboard.CLIPBOARD_THREAD_NAME),
        ("stroke", ("ctrl",), "v"),
    ]


def test_pointer_helpers_delegate(monkeypatch, tmp_path):
    automator = _make_automator(monkeypatch, tmp_path, Image.new("RGB", (64, 48)))

    automator.move_mouse(5, -3)
    automator.right_click()
    automator.double_click()

    assert automator.pointer.calls == [
        ("move_relative", 5, -3),
        ("click_right",),
        ("double_click_left",),
    ]


def _numbered_captures(monkeypatch, fail_on=()):
    captured = []

    def capture():
        index = len(captured) + 1
        captured.append(index)
        if index in fail_on:
            raise CaptureError(f"capture {index} failed")
        return Image.new("RGB", (64, 48), color=(index * 40, 0, 0))

    monkeypatch.setattr(screen_capture, "capture_fullscreen", capture)
    return captured


def _never_found(snapshot, reference, reference_path="<reference>"):
    return MatchResult(best_score=0.2, best_location=(0, 0), match_size=(5, 5))


def test_wait_recaptures_before_each_sleep_and_saves_last_capture(
    monkeypatch, tmp_path, sleeps, fake_reference
):
    automator = _make_automator(monkeypatch, tmp_path, Image.new("RGB", (64, 48)))
    captured = _numbered_captures(monkeypatch)
    monkeypatch.setattr(template_matcher, "match", _never_found)

    with pytest.raises(NotFoundAfterTimeout):
        automator.wait("dialog.png", 3)

    # Two attempts with a re-capture each, then the final attempt.
    assert captured == [1, 2, 3, 4, 5]
    (failure,) = _failures(tmp_path)
    with Image.open(failure) as saved:
        assert saved.getpixel((0, 0)) == (200, 0, 0)


def test_wait_saves_recapture_when_final_capture_fails(monkeypatch, tmp_path, sleeps, fake_reference):
    automator = _make_automator(monkeypatch, tmp_path, Image.new("RGB", (64, 48)))
    captured = _numbered_captures(monkeypatch, fail_on=(5,))
    monkeypatch.setattr(template_matcher, "match", _never_found)

    with pytest.raises(NotFoundAfterTimeout) as excinfo:
        automator.wait("dialog.png", 3)

    assert len(captured) == 5
    assert isinstance(excinfo.value.__cause__, CaptureError)
    (failure,) = _failures(tmp_path)
    with Image.open(failure) as saved:
        assert saved.getpixel((0, 0)) == (160, 0, 0)


@pytest.mark.parametrize(
    "operation, expected_tail",
    [
        ("hover", []),
        ("click_image", [("click_left",)]),
        ("double_click_image", [("double_click_left",)]),
        ("right_click_image", [("click_right",)]),
    ],
)
def test_image_pointer_operations_move_to_center_then_act(monkeypatch, tmp_path, operation, expected_tail):
    screen = _noise(200, 150, seed=20)
    target = _noise(20, 15, seed=21)
    screen.paste(target, (37, 61))
    target.save(str(tmp_path / "target.png"))
    automator = _make_automator(monkeypatch, tmp_path, screen)

    point = getattr(automator, operation)(str(tmp_path / "target.png"))

    assert point == Point(15401, 29709)
    assert automator.pointer.calls == [("move_absolute", 15401, 29709)] + expected_tail
    assert _failures(tmp_path) == []


def test_remaining_keyboard_helpers_send_expected_keys(monkeypatch, tmp_path):
    keyboard = FakeKeyboard()
    automator = _make_automator(monkeypatch, tmp_path, Image.new("RGB", (64, 48)), keyboard=keyboard)

    automator.press_tab()
    automator.press_escape()
    automator.cut()
    automator.copy()

    assert keyboard.events == [
        ("delay", 500),
        ("key_press", "tab"),
        ("delay", 500),
        ("key_press", "esc"),
        ("delay", 500),
        ("stroke", ("ctrl",), "x"),
        ("delay", 500),
        ("stroke", ("ctrl",), "c"),
    ]
