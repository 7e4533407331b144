"""Display collaborator: what the engine calls to show the experiment.

The engine never draws. It names elements (ids below) and tells the
display where they are, what they read and whether they are visible.
FlywheelCanvas (flywheel.canvas) renders these with QPainter; NullDisplay
and RecordingDisplay serve headless runs.
"""

from __future__ import annotations

from typing import Protocol

# Element ids
WHEEL = "wheel"
LINE = "reference_line"
STRING = "string"
WEIGHT_CONTAINER = "weight_container"
FALLING_WEIGHTS = "falling_weights"
THREAD = "thread"
HEIGHT = "height"
COUNTER_HUNDREDS = "counter_hundreds"
COUNTER_TENS = "counter_tens"
COUNTER_ONES = "counter_ones"
COUNTER_TENTHS = "counter_tenths"
COUNTER_HUNDREDTHS = "counter_hundredths"

# Ring discs on the hanger: ring_1 .. ring_<MAX_RING_DISCS>
MAX_RING_DISCS = 5
RING_DISC_GRAMS = 200


def ring_disc_id(index: int) -> str:
    return f"ring_{index}"


class ExperimentDisplay(Protocol):
    """Protocol implemented by the rendering side."""

    def set_display_text(self, element_id: str, value: str) -> None: ...

    def set_element_position(self, element_id: str, x: float, y: float) -> None: ...

    def move_element(self, element_id: str, x: float, y: float, duration_ms: float) -> None:
        """Travel from the current position to (x, y) over duration_ms."""
        ...

    def set_element_visible(self, element_id: str, visible: bool) -> None: ...

    def redraw_line(self, element_id: str, x0: float, y0: float, x1: float, y1: float) -> None: ...

    def clear_line(self, element_id: str) -> None: ...

    def set_winding_marks(self, count: int) -> None:
        """Show `count` cord turns still wound on the axle."""
        ...

    def set_controls_enabled(self, enabled: bool) -> None: ...

    def set_stopwatch_controls_enabled(self, enabled: bool) -> None: ...

    def show_result(self, label: str, value: str) -> None: ...


class NullDisplay:
    """Display that ignores every call."""

    def set_display_text(self, element_id, value):
        pass

    def set_element_position(self, element_id, x, y):
        pass

    def move_element(self, element_id, x, y, duration_ms):
        pass

    def set_element_visible(self, element_id, visible):
        pass

    def redraw_line(self, element_id, x0, y0, x1, y1):
        pass

    def clear_line(self, element_id):
        pass

    def set_winding_marks(self, count):
        pass

    def set_controls_enabled(self, enabled):
        pass

    def set_stopwatch_controls_enabled(self, enabled):
        pass

    def show_result(self, label, value):
        pass


class RecordingDisplay:
    """Keeps the latest state of every element plus a call log.

    Moves are recorded at their target position. The headless runner reads
    the final counter and height texts from here.
    """

    def __init__(self):
        self.texts: dict[str, str] = {}
        self.positions: dict[str, tuple[float, float]] = {}
        self.visible: dict[str, bool] = {}
        self.lines: dict[str, tuple[float, float, float, float] | None] = {}
        self.winding_marks = 0
        self.controls_enabled = True
        self.stopwatch_controls_enabled = True
        self.result: tuple[str, str] | None = None
        self.calls: list[tuple] = []

    def set_display_text(self, element_id, value):
        self.calls.append(("text", element_id, value))
        self.texts[element_id] = value

    def set_element_position(self, element_id, x, y):
        self.calls.append(("position", element_id, x, y))
        self.positions[element_id] = (x, y)

    def move_element(self, element_id, x, y, duration_ms):
        self.calls.append(("move", element_id, x, y, duration_ms))
        self.positions[element_id] = (x, y)

    def set_element_visible(self, element_id, visible):
        self.calls.append(("visible", element_id, visible))
        self.visible[element_id] = visible

    def redraw_line(self, element_id, x0, y0, x1, y1):
        self.calls.append(("line", element_id, x0, y0, x1, y1))
        self.lines[element_id] = (x0, y0, x1, y1)

    def clear_line(self, element_id):
        self.calls.append(("clear", element_id))
        self.lines[element_id] = None

    def set_winding_marks(self, count):
        self.calls.append(("windings", count))
        self.winding_marks = count

    def set_controls_enabled(self, enabled):
        self.calls.append(("controls", enabled))
        self.controls_enabled = enabled

    def set_stopwatch_controls_enabled(self, enabled):
        self.calls.append(("stopwatch_controls", enabled))
        self.stopwatch_controls_enabled = enabled

    def show_result(self, label, value):
        self.calls.append(("result", label, value))
        self.result = (label, value)

    def count(self, kind: str, element_id: str | None = None) -> int:
        """Number of logged calls of a kind (optionally for one element)."""
        return sum(
            1 for call in self.calls
            if call[0] == kind and (element_id is None or call[1] == element_id)
        )
