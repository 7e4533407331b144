"""Flywheel control panel: parameters, run buttons, stopwatch and result.

Uses FlywheelParamsWidget from ui_common for the experiment parameters.
"""

from PyQt6.QtCore import Qt
from PyQt6.QtWidgets import (
    QWidget, QVBoxLayout, QHBoxLayout, QGridLayout, QLabel, QPushButton,
    QGroupBox, QCheckBox, QDoubleSpinBox,
)

from experiment.stopwatch import Stopwatch
from ui_common import FlywheelParamsWidget


class FlywheelControls(QWidget):
    """Widgets only; FlywheelView connects them to the session."""

    def __init__(self, parent=None):
        super().__init__(parent)
        self._init_ui()

    def _init_ui(self):
        main_layout = QVBoxLayout(self)
        main_layout.setContentsMargins(8, 8, 8, 8)

        # --- Parameters ---
        params_group = QGroupBox("Experiment")
        params_layout = QVBoxLayout(params_group)
        self.params_widget = FlywheelParamsWidget()
        params_layout.addWidget(self.params_widget)
        main_layout.addWidget(params_group)

        # --- Run ---
        run_group = QGroupBox("Run")
        run_layout = QVBoxLayout(run_group)
        buttons = QHBoxLayout()
        self.release_btn = QPushButton("Release")
        self.reset_btn = QPushButton("Reset")
        self.reset_all_btn = QPushButton("Reset all")
        buttons.addWidget(self.release_btn)
        buttons.addWidget(self.reset_btn)
        buttons.addWidget(self.reset_all_btn)
        run_layout.addLayout(buttons)
        self.auto_timing_checkbox = QCheckBox("Time the spin-down automatically")
        run_layout.addWidget(self.auto_timing_checkbox)
        main_layout.addWidget(run_group)

        # --- Stopwatch ---
        stopwatch_group = QGroupBox("Stopwatch")
        sw_layout = QGridLayout(stopwatch_group)
        self.stopwatch_label = QLabel("00:00:00.000")
        font = self.stopwatch_label.font()
        font.setPointSizeF(font.pointSizeF() * 1.6)
        font.setFamily("Menlo")
        self.stopwatch_label.setFont(font)
        self.stopwatch_label.setAlignment(Qt.AlignmentFlag.AlignCenter)
        sw_layout.addWidget(self.stopwatch_label, 0, 0, 1, 3)

        self.stopwatch_start_btn = QPushButton("Start")
        self.stopwatch_pause_btn = QPushButton("Pause")
        self.stopwatch_reset_btn = QPushButton("Reset")
        sw_layout.addWidget(self.stopwatch_start_btn, 1, 0)
        sw_layout.addWidget(self.stopwatch_pause_btn, 1, 1)
        sw_layout.addWidget(self.stopwatch_reset_btn, 1, 2)

        self.rate_spin = QDoubleSpinBox()
        self.rate_spin.setRange(Stopwatch.MIN_RATE, Stopwatch.MAX_RATE)
        self.rate_spin.setSingleStep(0.1)
        self.rate_spin.setDecimals(1)
        self.rate_spin.setValue(Stopwatch.MAX_RATE)
        sw_layout.addWidget(QLabel("Rate"), 2, 0)
        sw_layout.addWidget(self.rate_spin, 2, 1, 1, 2)
        main_layout.addWidget(stopwatch_group)

        # --- Result ---
        result_group = QGroupBox("Moment of inertia")
        result_layout = QGridLayout(result_group)
        result_layout.addWidget(QLabel("Theoretical"), 0, 0)
        self.theoretical_label = QLabel()
        result_layout.addWidget(self.theoretical_label, 0, 1)
        self.observed_title = QLabel("Observed")
        result_layout.addWidget(self.observed_title, 1, 0)
        self.observed_label = QLabel()
        self.observed_label.setWordWrap(True)
        result_layout.addWidget(self.observed_label, 1, 1)
        main_layout.addWidget(result_group)

        main_layout.addStretch()

    def set_run_controls_enabled(self, enabled):
        """Parameters and Release are locked while the wheel turns."""
        self.params_widget.setEnabled(enabled)
        self.release_btn.setEnabled(enabled)
        self.auto_timing_checkbox.setEnabled(enabled)

    def set_stopwatch_controls_enabled(self, enabled):
        self.stopwatch_start_btn.setEnabled(enabled)
        self.stopwatch_pause_btn.setEnabled(enabled)
        self.stopwatch_reset_btn.setEnabled(enabled)
        self.rate_spin.setEnabled(enabled)
