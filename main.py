"""Entry point for the Flywheel Moment of Inertia application.

Opens the experiment bench: configure the flywheel, release it, watch the
cord unwind and the wheel spin down, then compare the theoretical and the
observed moment of inertia. For runs without a GUI see experiment.headless.
"""

import logging
import sys

from PyQt6.QtWidgets import QApplication

from app_window import AppWindow


def main():
    logging.basicConfig(
        level=logging.INFO,
        format="%(asctime)s %(name)s %(levelname)s: %(message)s",
    )

    app = QApplication(sys.argv)
    window = AppWindow()
    window.show()

    sys.exit(app.exec())


if __name__ == "__main__":
    main()
