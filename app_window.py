"""App window: hosts the FlywheelView with a status bar."""

import logging

from PyQt6.QtWidgets import QMainWindow, QStatusBar

from flywheel.view import FlywheelView

logger = logging.getLogger(__name__)


class AppWindow(QMainWindow):
    """Top-level window of the flywheel lab."""

    def __init__(self):
        super().__init__()
        self.setWindowTitle("Flywheel Moment of Inertia")
        self.resize(1200, 750)

        # --- View ---
        self.flywheel_view = FlywheelView()
        self.setCentralWidget(self.flywheel_view)

        # --- Status bar ---
        self._status_bar = QStatusBar()
        self.setStatusBar(self._status_bar)
        self._status_bar.addWidget(self.flywheel_view.phase_label)
        self._status_bar.addWidget(self.flywheel_view.inertia_label)

        self.flywheel_view.phase_changed.connect(self._on_phase_changed)

    def _on_phase_changed(self, phase: str) -> None:
        logger.info("Bench phase: %s", phase)
        if phase == "finished":
            self._status_bar.showMessage("Run finished", 3000)
