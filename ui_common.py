"""Shared UI widgets: slider helpers and the experiment parameter panel."""

from PyQt6.QtCore import Qt, pyqtSignal
from PyQt6.QtWidgets import (
    QWidget, QGridLayout, QSlider, QLabel, QComboBox, QSpinBox,
)

from simulation import ENVIRONMENTS, PARAMETER_RANGES, ExperimentParameters


# ---------------------------------------------------------------------------
# Slider helpers
# ---------------------------------------------------------------------------

def make_slider(minimum, maximum, value, resolution=100, step=None):
    """Create an integer QSlider that maps to float values.

    The slider range is [minimum*resolution, maximum*resolution]. With
    `step` the slider snaps to multiples of it.
    """
    slider = QSlider(Qt.Orientation.Horizontal)
    slider.setMinimum(int(round(minimum * resolution)))
    slider.setMaximum(int(round(maximum * resolution)))
    slider.resolution = resolution
    if step is not None:
        slider.setSingleStep(int(round(step * resolution)))
        slider.setPageStep(int(round(step * resolution)))
        slider.setTickInterval(int(round(step * resolution)))
        slider.setTickPosition(QSlider.TickPosition.TicksBelow)
    slider.step = step
    set_slider_value(slider, value)
    return slider


def slider_value(slider):
    """Read the float value from a slider created by make_slider."""
    value = slider.value() / slider.resolution
    if slider.step:
        value = round(value / slider.step) * slider.step
    return value


def set_slider_value(slider, value):
    slider.setValue(int(round(value * slider.resolution)))


# ---------------------------------------------------------------------------
# FlywheelParamsWidget
# ---------------------------------------------------------------------------

class FlywheelParamsWidget(QWidget):
    """Environment, flywheel, axle, ring mass and winding inputs.

    Emits params_changed whenever the user edits a value (not while
    set_params() is updating the widgets).
    """

    params_changed = pyqtSignal()

    def __init__(self, parent=None):
        super().__init__(parent)
        self._building = True
        layout = QGridLayout(self)
        layout.setContentsMargins(0, 0, 0, 0)
        defaults = ExperimentParameters()

        self.environment_combo = QComboBox()
        for name, g in ENVIRONMENTS.items():
            self.environment_combo.addItem(f"{name} ({g} m/s²)", name)
        self.environment_combo.currentIndexChanged.connect(self._emit_changed)
        layout.addWidget(QLabel("Environment"), 0, 0)
        layout.addWidget(self.environment_combo, 0, 1, 1, 2)

        self.flywheel_mass_slider = self._range_slider(
            "flywheel_mass_kg", defaults.flywheel_mass_kg)
        self.flywheel_diameter_slider = self._range_slider(
            "flywheel_diameter_cm", defaults.flywheel_diameter_cm)
        self.ring_mass_slider = self._range_slider(
            "ring_mass_grams", defaults.ring_mass_grams, resolution=1)
        self.axle_diameter_slider = self._range_slider(
            "axle_diameter_cm", defaults.axle_diameter_cm)

        self._add_row(layout, 1, "Flywheel mass", self.flywheel_mass_slider, " kg", "{:.1f}")
        self._add_row(layout, 2, "Flywheel ⌀", self.flywheel_diameter_slider, " cm", "{:.0f}")
        self._add_row(layout, 3, "Ring mass", self.ring_mass_slider, " g", "{:.0f}")
        self._add_row(layout, 4, "Axle ⌀", self.axle_diameter_slider, " cm", "{:.1f}")

        low, high, step = PARAMETER_RANGES["winding_count"]
        self.windings_spin = QSpinBox()
        self.windings_spin.setRange(low, high)
        self.windings_spin.setSingleStep(step)
        self.windings_spin.setValue(defaults.winding_count)
        self.windings_spin.valueChanged.connect(self._emit_changed)
        layout.addWidget(QLabel("Windings"), 5, 0)
        layout.addWidget(self.windings_spin, 5, 1, 1, 2)

        self._building = False

    @staticmethod
    def _range_slider(name, value, resolution=100):
        low, high, step = PARAMETER_RANGES[name]
        return make_slider(low, high, value, resolution=resolution, step=step)

    def _add_row(self, layout, row, label_text, slider, unit, fmt):
        label = QLabel(label_text)
        value_label = QLabel()
        value_label.setMinimumWidth(65)
        value_label.setAlignment(
            Qt.AlignmentFlag.AlignRight | Qt.AlignmentFlag.AlignVCenter
        )
        layout.addWidget(label, row, 0)
        layout.addWidget(slider, row, 1)
        layout.addWidget(value_label, row, 2)

        def _update(_val, vl=value_label, sl=slider, u=unit):
            vl.setText(fmt.format(slider_value(sl)) + u)
            self._emit_changed()

        slider.valueChanged.connect(_update)
        _update(slider.value())

    def _emit_changed(self, *_args):
        if not self._building:
            self.params_changed.emit()

    def get_params(self):
        """Return ExperimentParameters from the current widget values."""
        return ExperimentParameters(
            flywheel_mass_kg=slider_value(self.flywheel_mass_slider),
            flywheel_diameter_cm=slider_value(self.flywheel_diameter_slider),
            axle_diameter_cm=slider_value(self.axle_diameter_slider),
            ring_mass_grams=slider_value(self.ring_mass_slider),
            winding_count=self.windings_spin.value(),
            gravity=ENVIRONMENTS[self.environment_combo.currentData()],
        )

    def set_params(self, params):
        """Set widget values from ExperimentParameters without emitting."""
        self._building = True
        try:
            set_slider_value(self.flywheel_mass_slider, params.flywheel_mass_kg)
            set_slider_value(self.flywheel_diameter_slider, params.flywheel_diameter_cm)
            set_slider_value(self.axle_diameter_slider, params.axle_diameter_cm)
            set_slider_value(self.ring_mass_slider, params.ring_mass_grams)
            self.windings_spin.setValue(params.winding_count)
            for index in range(self.environment_combo.count()):
                if ENVIRONMENTS[self.environment_combo.itemData(index)] == params.gravity:
                    self.environment_combo.setCurrentIndex(index)
                    break
        finally:
            self._building = False
