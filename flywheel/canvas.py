"""Flywheel canvas: QPainter rendering of the experiment bench.

Implements the ExperimentDisplay protocol. The engine addresses elements
by id in a fixed logical coordinate frame (LOGICAL_WIDTH x LOGICAL_HEIGHT);
the canvas scales that frame to the widget and interpolates move_element
transitions at FPS.
"""

import math

from PyQt6.QtCore import Qt, QElapsedTimer, QPointF, QRectF, QTimer, pyqtSignal
from PyQt6.QtGui import QPainter, QPen, QBrush, QColor, QFont
from PyQt6.QtWidgets import QWidget

from experiment import display as ids
from experiment.state_machine import (
    AXLE_TOP_Y, AXLE_X, FALLING_WEIGHTS_START_Y, FALLING_WEIGHTS_X,
    STRING_BOTTOM_Y, STRING_HANG, THREAD_FALL_TICKS, THREAD_FRAME_WIDTH,
    THREAD_START_X, THREAD_Y, WINDING_PITCH_X,
)
from simulation import ExperimentParameters


class FlywheelCanvas(QWidget):
    """Custom widget that draws the flywheel bench using QPainter."""

    FPS = 60
    LOGICAL_WIDTH = 800
    LOGICAL_HEIGHT = 720
    WHEEL_RADIUS_PER_CM = 9.0
    TEXTURE_MARKS = 8

    controls_enabled_changed = pyqtSignal(bool)
    stopwatch_controls_enabled_changed = pyqtSignal(bool)
    result_changed = pyqtSignal(str, str)

    def __init__(self, parent=None):
        super().__init__(parent)
        self.params = ExperimentParameters()
        self.texts = {}
        self.positions = {}
        self.visible = {}
        self.lines = {}
        self.winding_marks = 0

        # element_id -> (x0, y0, x1, y1, started_ms, duration_ms)
        self._tweens = {}
        self._clock = QElapsedTimer()
        self._clock.start()

        self._frame_timer = QTimer(self)
        self._frame_timer.setInterval(int(1000 / self.FPS))
        self._frame_timer.timeout.connect(self._on_frame)

        self.setMinimumSize(400, 360)

    def set_params(self, params):
        """Parameters only affect the drawn wheel size."""
        self.params = params
        self.update()

    # -- ExperimentDisplay --

    def set_display_text(self, element_id, value):
        self.texts[element_id] = value
        self.update()

    def set_element_position(self, element_id, x, y):
        self._tweens.pop(element_id, None)
        self.positions[element_id] = (x, y)
        self.update()

    def move_element(self, element_id, x, y, duration_ms):
        if duration_ms <= 0:
            self.set_element_position(element_id, x, y)
            return
        x0, y0 = self.position(element_id)
        self._tweens[element_id] = (x0, y0, x, y, self._clock.elapsed(), duration_ms)
        self.positions[element_id] = (x, y)
        if not self._frame_timer.isActive():
            self._frame_timer.start()

    def set_element_visible(self, element_id, visible):
        self.visible[element_id] = visible
        self.update()

    def redraw_line(self, element_id, x0, y0, x1, y1):
        self.lines[element_id] = (x0, y0, x1, y1)
        self.update()

    def clear_line(self, element_id):
        self.lines[element_id] = None
        self.update()

    def set_winding_marks(self, count):
        self.winding_marks = count
        self.update()

    def set_controls_enabled(self, enabled):
        self.controls_enabled_changed.emit(enabled)

    def set_stopwatch_controls_enabled(self, enabled):
        self.stopwatch_controls_enabled_changed.emit(enabled)

    def show_result(self, label, value):
        self.result_changed.emit(label, value)

    # -- Interpolation --

    def position(self, element_id):
        """Current (possibly mid-transition) position of an element."""
        tween = self._tweens.get(element_id)
        if tween is None:
            return self.positions.get(element_id, (0.0, 0.0))
        x0, y0, x1, y1, started, duration = tween
        t = min((self._clock.elapsed() - started) / duration, 1.0)
        return x0 + (x1 - x0) * t, y0 + (y1 - y0) * t

    def _on_frame(self):
        now = self._clock.elapsed()
        finished = [
            element_id for element_id, tween in self._tweens.items()
            if now - tween[4] >= tween[5]
        ]
        for element_id in finished:
            del self._tweens[element_id]
        if not self._tweens:
            self._frame_timer.stop()
        self.update()

    # -- Painting --

    def _is_visible(self, element_id):
        return self.visible.get(element_id, True)

    def _wheel_radius(self):
        return self.params.flywheel_diameter_cm * self.WHEEL_RADIUS_PER_CM

    def _draw_wheel(self, painter):
        radius = self._wheel_radius()
        centre = QPointF(AXLE_X, AXLE_TOP_Y)

        painter.setPen(QPen(QColor(90, 90, 110), 3))
        painter.setBrush(QBrush(QColor(60, 65, 85)))
        painter.drawEllipse(centre, radius, radius)

        # Texture marks rotate with the wheel
        _, wheel_angle = self.position(ids.WHEEL)
        mark_pen = QPen(QColor(140, 145, 170))
        mark_pen.setWidthF(2.0)
        painter.setPen(mark_pen)
        for k in range(self.TEXTURE_MARKS):
            a = math.radians(wheel_angle + k * 360 / self.TEXTURE_MARKS)
            inner = radius * 0.55
            painter.drawLine(
                QPointF(centre.x() + inner * math.sin(a), centre.y() - inner * math.cos(a)),
                QPointF(centre.x() + radius * 0.9 * math.sin(a),
                        centre.y() - radius * 0.9 * math.cos(a)),
            )

        # Tracking line, clockwise from twelve o'clock
        _, line_angle = self.position(ids.LINE)
        a = math.radians(line_angle)
        line_pen = QPen(QColor(255, 90, 70))
        line_pen.setWidthF(2.5)
        painter.setPen(line_pen)
        painter.drawLine(centre, QPointF(centre.x() + radius * math.sin(a),
                                         centre.y() - radius * math.cos(a)))

    def _draw_axle(self, painter):
        painter.setPen(Qt.PenStyle.NoPen)
        painter.setBrush(QBrush(QColor(170, 170, 180)))
        axle_r = self.params.axle_diameter_cm * 4
        painter.drawEllipse(QPointF(AXLE_X, AXLE_TOP_Y), axle_r, axle_r)

        painter.setPen(QPen(QColor(230, 220, 190), 1.5))
        for i in range(self.winding_marks):
            x = AXLE_X + i * WINDING_PITCH_X
            painter.drawLine(QPointF(x, AXLE_TOP_Y - axle_r), QPointF(x, AXLE_TOP_Y + axle_r))

    def _draw_string(self, painter):
        line = self.lines.get(ids.STRING)
        if line is None:
            return
        x0, y0, x1, y1 = line
        painter.setPen(QPen(QColor(230, 220, 190), 1.5))
        painter.drawLine(QPointF(x0, y0), QPointF(x1, y1))

    def _draw_ring_stack(self, painter, x, y, count):
        painter.setPen(QPen(QColor(40, 40, 40), 1))
        painter.setBrush(QBrush(QColor(200, 170, 90)))
        for k in range(count):
            painter.drawRect(QRectF(x - 18, y + k * 9, 36, 8))

    def _draw_weights(self, painter):
        discs = sum(
            1 for k in range(1, ids.MAX_RING_DISCS + 1)
            if self.visible.get(ids.ring_disc_id(k), False)
        )
        if self._is_visible(ids.WEIGHT_CONTAINER):
            off_x, off_y = self.position(ids.WEIGHT_CONTAINER)
            x = AXLE_X + off_x
            y = STRING_BOTTOM_Y + STRING_HANG + off_y
            painter.setPen(QPen(QColor(120, 120, 130), 2))
            painter.drawLine(QPointF(x, y), QPointF(x, y + 10 + discs * 9))
            self._draw_ring_stack(painter, x, y + 10, discs)

        if self.visible.get(ids.FALLING_WEIGHTS, False):
            x, y = self.position(ids.FALLING_WEIGHTS)
            self._draw_ring_stack(painter, x + (AXLE_X - FALLING_WEIGHTS_X), y, discs)

    def _draw_thread(self, painter):
        if not self.visible.get(ids.THREAD, False):
            return
        x, _ = self.position(ids.THREAD)
        frame = round((THREAD_START_X - x) / THREAD_FRAME_WIDTH)
        remaining = max(0.0, 1 - frame / THREAD_FALL_TICKS)
        # Cord end slips off the axle and curls away
        length = (FALLING_WEIGHTS_START_Y - THREAD_Y) * remaining
        painter.setPen(QPen(QColor(230, 220, 190), 1.5))
        painter.drawLine(QPointF(AXLE_X - 6 * (1 - remaining), THREAD_Y),
                         QPointF(AXLE_X - 30 * (1 - remaining), THREAD_Y + length))

    def _draw_readouts(self, painter):
        font = QFont()
        font.setPointSizeF(18)
        font.setBold(True)
        painter.setFont(font)
        painter.setPen(QColor(240, 240, 240))

        digits = [
            self.texts.get(element_id, "0")
            for element_id in (ids.COUNTER_HUNDREDS, ids.COUNTER_TENS, ids.COUNTER_ONES)
        ]
        fraction = [
            self.texts.get(element_id, "0")
            for element_id in (ids.COUNTER_TENTHS, ids.COUNTER_HUNDREDTHS)
        ]
        painter.drawText(QPointF(40, 660), "".join(digits) + "." + "".join(fraction))

        font.setPointSizeF(11)
        font.setBold(False)
        painter.setFont(font)
        painter.setPen(QColor(180, 180, 190))
        painter.drawText(QPointF(40, 690), "rotations")
        painter.drawText(QPointF(620, 690), "height")
        painter.setPen(QColor(240, 240, 240))
        font.setPointSizeF(16)
        painter.setFont(font)
        painter.drawText(QPointF(620, 660), self.texts.get(ids.HEIGHT, ""))

    def paintEvent(self, event):
        painter = QPainter(self)
        painter.setRenderHint(QPainter.RenderHint.Antialiasing)
        painter.fillRect(self.rect(), QColor(20, 20, 30))

        scale = min(self.width() / self.LOGICAL_WIDTH, self.height() / self.LOGICAL_HEIGHT)
        painter.translate((self.width() - self.LOGICAL_WIDTH * scale) / 2,
                          (self.height() - self.LOGICAL_HEIGHT * scale) / 2)
        painter.scale(scale, scale)

        self._draw_wheel(painter)
        self._draw_axle(painter)
        self._draw_string(painter)
        self._draw_thread(painter)
        self._draw_weights(painter)
        self._draw_readouts(painter)

        painter.end()
