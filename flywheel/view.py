"""Flywheel view: wires canvas, controls, timers and the experiment session.

This is a QWidget hosted by AppWindow. All experiment logic lives in
ExperimentSession; the view translates button clicks into session calls
and mirrors the session's display notifications back into the controls.
"""

import logging

from PyQt6.QtCore import Qt, QTimer, pyqtSignal
from PyQt6.QtWidgets import QWidget, QHBoxLayout, QSplitter, QLabel

from experiment.errors import InvalidParameters, MeasurementUnavailable
from experiment.session import ExperimentSession, format_inertia
from flywheel.canvas import FlywheelCanvas
from flywheel.controls import FlywheelControls
from flywheel.timers import QtTimerScheduler

logger = logging.getLogger(__name__)


class FlywheelView(QWidget):
    """Complete experiment bench: canvas + controls + session wiring."""

    FPS = 60

    phase_changed = pyqtSignal(str)

    def __init__(self, parent=None):
        super().__init__(parent)

        self.canvas = FlywheelCanvas()
        self.controls = FlywheelControls()

        splitter = QSplitter(Qt.Orientation.Horizontal)
        splitter.addWidget(self.canvas)
        splitter.addWidget(self.controls)
        splitter.setStretchFactor(0, 3)
        splitter.setStretchFactor(1, 2)

        layout = QHBoxLayout(self)
        layout.setContentsMargins(0, 0, 0, 0)
        layout.addWidget(splitter)

        # Status bar labels (AppWindow places these in the status bar)
        self.phase_label = QLabel()
        self.inertia_label = QLabel()

        self.scheduler = QtTimerScheduler(self)
        self.canvas.set_params(self.controls.params_widget.get_params())
        self.session = ExperimentSession(
            self.scheduler, self.canvas, self.controls.params_widget.get_params(),
        )

        # Stopwatch readout and phase polling
        self.timer = QTimer(self)
        self.timer.setInterval(int(1000 / self.FPS))
        self.timer.timeout.connect(self._on_timer)
        self.timer.start()
        self._last_phase = None

        # Wire signals
        self.canvas.controls_enabled_changed.connect(self.controls.set_run_controls_enabled)
        self.canvas.stopwatch_controls_enabled_changed.connect(
            self.controls.set_stopwatch_controls_enabled
        )
        self.canvas.result_changed.connect(self._on_result)
        self.controls.params_widget.params_changed.connect(self._on_param_changed)
        self.controls.release_btn.clicked.connect(self._release)
        self.controls.reset_btn.clicked.connect(self._reset)
        self.controls.reset_all_btn.clicked.connect(self._reset_all)
        self.controls.auto_timing_checkbox.toggled.connect(self._on_auto_timing_toggled)
        self.controls.stopwatch_start_btn.clicked.connect(self.session.stopwatch.start)
        self.controls.stopwatch_pause_btn.clicked.connect(self.session.stopwatch.pause)
        self.controls.stopwatch_reset_btn.clicked.connect(self.session.stopwatch.reset)
        self.controls.rate_spin.valueChanged.connect(self._on_rate_changed)

        self._update_theoretical()
        self._on_timer()

    # -- Session entry points --

    def _release(self):
        try:
            self.session.start(self.controls.params_widget.get_params())
        except InvalidParameters as exc:
            logger.warning("Release refused: %s", exc)
            self.controls.observed_label.setText(str(exc))

    def _reset(self):
        self.session.soft_reset(self.controls.params_widget.get_params())
        self._update_theoretical()

    def _reset_all(self):
        self.session.hard_reset()
        self.controls.params_widget.set_params(self.session.params)
        self.controls.auto_timing_checkbox.blockSignals(True)
        self.controls.auto_timing_checkbox.setChecked(self.session.auto_lap_timing)
        self.controls.auto_timing_checkbox.blockSignals(False)
        self.controls.rate_spin.setValue(self.session.stopwatch.rate)
        self.canvas.set_params(self.session.params)
        self._update_theoretical()

    def _on_auto_timing_toggled(self, checked):
        if checked != self.session.auto_lap_timing:
            self.session.toggle_auto_lap_timing()

    def _on_rate_changed(self, value):
        self.session.stopwatch.rate = value

    def _on_param_changed(self):
        params = self.controls.params_widget.get_params()
        try:
            if not self.session.set_parameters(params):
                return
        except InvalidParameters as exc:
            logger.warning("Parameters rejected: %s", exc)
            return
        self.canvas.set_params(params)
        self._update_theoretical()

    # -- Display feedback --

    def _on_result(self, label, value):
        self.controls.observed_label.setText(value)

    def _update_theoretical(self):
        value = self.session.get_theoretical_moment_of_inertia()
        self.controls.theoretical_label.setText(format_inertia(value))
        self.inertia_label.setText(f"  I = {value:.6f} kg m²  ")

    def _on_timer(self):
        self.controls.stopwatch_label.setText(self.session.stopwatch.format())
        phase = self.session.phase
        if phase is not self._last_phase:
            self._last_phase = phase
            self.phase_label.setText(f"  {phase.value.capitalize()}  ")
            self.phase_changed.emit(phase.value)
            observed = self.session.get_observed_moment_of_inertia()
            if not isinstance(observed, MeasurementUnavailable):
                self.inertia_label.setToolTip(f"Observed {format_inertia(observed)}")
