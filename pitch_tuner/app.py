from __future__ import annotations

import logging
import sys
from collections import deque
from dataclasses import dataclass

import numpy as np
from PySide6 import QtCore, QtGui, QtWidgets
import pyqtgraph as pg

from pitch_tuner.audio import AudioDeviceError, AudioInput
from pitch_tuner.filters import CaptureChain
from pitch_tuner.metronome import MAX_BEATS_PER_BAR, MAX_BPM, MIN_BPM, Metronome
from pitch_tuner.tuner import Tuner, TunerReading

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class UiConfig:
    tick_ms: int = 16  # ~60 FPS, one tuner pass per tick
    needle_max_degrees: float = 45.0
    trace_points: int = 300
    frame_size: int = 2048


class NeedleWidget(QtWidgets.QWidget):
    def __init__(self, max_degrees: float, parent: QtWidgets.QWidget | None = None) -> None:
        super().__init__(parent)
        self._max_degrees = float(max_degrees)
        self._degrees = 0.0
        self.setMinimumSize(320, 180)

    def set_cents(self, cents: int | None) -> None:
        self._degrees = 0.0 if cents is None else (cents / 50.0) * self._max_degrees
        self.update()

    def paintEvent(self, event) -> None:  # type: ignore[override]  # noqa: ARG002
        painter = QtGui.QPainter(self)
        painter.setRenderHint(QtGui.QPainter.RenderHint.Antialiasing)
        w, h = self.width(), self.height()
        pivot = QtCore.QPointF(w / 2.0, h - 12.0)
        radius = min(w / 2.0, h) - 24.0

        painter.setPen(QtGui.QPen(QtGui.QColor("#888888"), 2))
        for deg in (-self._max_degrees, 0.0, self._max_degrees):
            painter.save()
            painter.translate(pivot)
            painter.rotate(deg)
            painter.drawLine(QtCore.QPointF(0.0, -radius), QtCore.QPointF(0.0, -radius - 10.0))
            painter.restore()

        color = "#3fae5f" if abs(self._degrees) < 0.1 * self._max_degrees else "#d9534f"
        painter.setPen(QtGui.QPen(QtGui.QColor(color), 4))
        painter.translate(pivot)
        painter.rotate(self._degrees)
        painter.drawLine(QtCore.QPointF(0.0, 0.0), QtCore.QPointF(0.0, -radius))
        painter.end()


class MainWindow(QtWidgets.QMainWindow):
    beat_signal = QtCore.Signal(int)

    def __init__(self) -> None:
        super().__init__()
        self.setWindowTitle("Pitch Tuner")

        self._ui = UiConfig()
        self._audio = AudioInput()
        self._chain = CaptureChain(self._audio.sample_rate, frame_size=self._ui.frame_size)
        self._tuner = Tuner()
        self._metronome = Metronome(sample_rate=self._audio.sample_rate, on_beat=self.beat_signal.emit)
        self._trace: deque[float] = deque(maxlen=self._ui.trace_points)

        self._build_ui()
        self.beat_signal.connect(self._on_beat)

        self._timer = QtCore.QTimer(self)
        self._timer.setInterval(self._ui.tick_ms)
        self._timer.timeout.connect(self._on_tick)
        self._show_reading(None)

    def _build_ui(self) -> None:
        tabs = QtWidgets.QTabWidget()
        tabs.addTab(self._build_tuner_tab(), "Tuner")
        tabs.addTab(self._build_metronome_tab(), "Metronome")
        self.setCentralWidget(tabs)

    def _build_tuner_tab(self) -> QtWidgets.QWidget:
        root = QtWidgets.QWidget()
        layout = QtWidgets.QVBoxLayout(root)

        controls = QtWidgets.QHBoxLayout()
        self.btn_enable = QtWidgets.QPushButton("Enable microphone")
        self.btn_stop = QtWidgets.QPushButton("Stop")
        self.btn_stop.setEnabled(False)
        self.ref_input = QtWidgets.QDoubleSpinBox()
        self.ref_input.setRange(400.0, 480.0)
        self.ref_input.setDecimals(1)
        self.ref_input.setSuffix(" Hz")
        self.ref_input.setValue(self._tuner.reference_pitch)
        self.ref_input.setKeyboardTracking(False)
        controls.addWidget(self.btn_enable)
        controls.addWidget(self.btn_stop)
        controls.addStretch(1)
        controls.addWidget(QtWidgets.QLabel("A4:"))
        controls.addWidget(self.ref_input)
        layout.addLayout(controls)

        self.note_label = QtWidgets.QLabel()
        self.note_label.setAlignment(QtCore.Qt.AlignmentFlag.AlignCenter)
        self.note_label.setFont(QtGui.QFont("Helvetica", 48, QtGui.QFont.Weight.Bold))
        layout.addWidget(self.note_label)

        readout = QtWidgets.QHBoxLayout()
        self.freq_label = QtWidgets.QLabel()
        self.cents_label = QtWidgets.QLabel()
        readout.addStretch(1)
        readout.addWidget(self.freq_label)
        readout.addSpacing(24)
        readout.addWidget(self.cents_label)
        readout.addStretch(1)
        layout.addLayout(readout)

        self.needle = NeedleWidget(self._ui.needle_max_degrees)
        layout.addWidget(self.needle, 1)

        pg.setConfigOptions(antialias=True)
        self.plot = pg.PlotWidget()
        self.plot.setBackground("w")
        self.plot.showGrid(x=False, y=True, alpha=0.15)
        self.plot.setMouseEnabled(x=False, y=False)
        self.plot.setMenuEnabled(False)
        self.plot.setYRange(-50, 50)
        self.plot.setLabel("left", "Cents")
        self.plot.setFixedHeight(140)
        # NaN on silence breaks the line (connect='finite').
        self._curve = self.plot.plot([], [], pen=pg.mkPen(color=(30, 90, 160), width=2), connect="finite")
        layout.addWidget(self.plot)

        self.btn_enable.clicked.connect(self._on_enable)
        self.btn_stop.clicked.connect(self._on_stop)
        self.ref_input.valueChanged.connect(self._on_reference_change)
        return root

    def _build_metronome_tab(self) -> QtWidgets.QWidget:
        root = QtWidgets.QWidget()
        layout = QtWidgets.QVBoxLayout(root)

        row = QtWidgets.QHBoxLayout()
        self.bpm_slider = QtWidgets.QSlider(QtCore.Qt.Orientation.Horizontal)
        self.bpm_slider.setRange(MIN_BPM, MAX_BPM)
        self.bpm_slider.setValue(96)
        self.bpm_label = QtWidgets.QLabel("96 BPM")
        self.beats_combo = QtWidgets.QComboBox()
        for n in range(1, MAX_BEATS_PER_BAR + 1):
            self.beats_combo.addItem(f"{n}/4", n)
        self.beats_combo.setCurrentIndex(3)
        row.addWidget(self.bpm_slider, 1)
        row.addWidget(self.bpm_label)
        row.addWidget(self.beats_combo)
        layout.addLayout(row)

        buttons = QtWidgets.QHBoxLayout()
        self.btn_metro_start = QtWidgets.QPushButton("Start")
        self.btn_metro_stop = QtWidgets.QPushButton("Stop")
        self.btn_metro_stop.setEnabled(False)
        buttons.addWidget(self.btn_metro_start)
        buttons.addWidget(self.btn_metro_stop)
        buttons.addStretch(1)
        layout.addLayout(buttons)

        self.led_row = QtWidgets.QHBoxLayout()
        layout.addLayout(self.led_row)
        layout.addStretch(1)
        self._leds: list[QtWidgets.QLabel] = []
        self._rebuild_leds(4)

        self.bpm_slider.valueChanged.connect(self._on_bpm_change)
        self.beats_combo.currentIndexChanged.connect(self._on_beats_change)
        self.btn_metro_start.clicked.connect(self._on_metro_start)
        self.btn_metro_stop.clicked.connect(self._on_metro_stop)
        return root

    def closeEvent(self, event) -> None:  # type: ignore[override]
        try:
            self._timer.stop()
            self._audio.stop()
            self._metronome.stop()
        finally:
            super().closeEvent(event)

    @QtCore.Slot()
    def _on_enable(self) -> None:
        self._chain.reset()
        self._audio.set_tap(self._chain.push)
        try:
            self._audio.start()
        except AudioDeviceError as exc:
            self._audio.set_tap(None)
            QtWidgets.QMessageBox.warning(self, "Microphone", str(exc))
            return
        self.btn_enable.setEnabled(False)
        self.btn_stop.setEnabled(True)
        self._timer.start()

    @QtCore.Slot()
    def _on_stop(self) -> None:
        self._timer.stop()
        self._audio.stop()
        self._audio.set_tap(None)
        self._tuner.stop()
        self._trace.clear()
        self._curve.setData([], [])
        self._show_reading(None)
        self.btn_enable.setEnabled(True)
        self.btn_stop.setEnabled(False)

    @QtCore.Slot(float)
    def _on_reference_change(self, value: float) -> None:
        self._tuner.set_reference_pitch(value)

    def _on_tick(self) -> None:
        frame = self._chain.latest()
        if frame is None:
            return
        reading = self._tuner.process(frame, self._audio.sample_rate)
        self._show_reading(reading)
        self._trace.append(float("nan") if reading is None else float(reading.display_cents))
        ys = np.array(self._trace, dtype=np.float32)
        self._curve.setData(np.arange(ys.size), ys)

    def _show_reading(self, reading: TunerReading | None) -> None:
        if reading is None:
            self.note_label.setText("--")
            self.freq_label.setText("-- Hz")
            self.cents_label.setText("-- cents")
            self.needle.set_cents(None)
            return
        cents = reading.display_cents
        self.note_label.setText(reading.note_name)
        self.freq_label.setText(f"{reading.hz:.2f} Hz")
        self.cents_label.setText(f"{'+' if cents > 0 else ''}{cents} cents")
        self.needle.set_cents(cents)

    @QtCore.Slot(int)
    def _on_bpm_change(self, bpm: int) -> None:
        self.bpm_label.setText(f"{bpm} BPM")
        self._metronome.set_bpm(bpm)

    @QtCore.Slot(int)
    def _on_beats_change(self, index: int) -> None:
        beats = int(self.beats_combo.itemData(index))
        self._metronome.set_beats_per_bar(beats)
        self._rebuild_leds(beats)

    @QtCore.Slot()
    def _on_metro_start(self) -> None:
        self._metronome.start()
        self.btn_metro_start.setEnabled(False)
        self.btn_metro_stop.setEnabled(True)

    @QtCore.Slot()
    def _on_metro_stop(self) -> None:
        self._metronome.stop()
        self.btn_metro_start.setEnabled(True)
        self.btn_metro_stop.setEnabled(False)
        self._light_led(None)

    @QtCore.Slot(int)
    def _on_beat(self, beat: int) -> None:
        self._light_led(beat)

    def _rebuild_leds(self, count: int) -> None:
        for led in self._leds:
            self.led_row.removeWidget(led)
            led.deleteLater()
        self._leds = []
        for _ in range(count):
            led = QtWidgets.QLabel()
            led.setFixedSize(24, 24)
            self.led_row.addWidget(led)
            self._leds.append(led)
        self._light_led(None)

    def _light_led(self, beat: int | None) -> None:
        for i, led in enumerate(self._leds):
            color = "#f0b232" if i == beat else "#444444"
            led.setStyleSheet(f"background: {color}; border-radius: 12px;")


def main() -> None:
    logging.basicConfig(level=logging.INFO, format="%(asctime)s %(levelname)s %(name)s: %(message)s")
    app = QtWidgets.QApplication(sys.argv)
    win = MainWindow()
    win.resize(720, 560)
    win.show()
    sys.exit(app.exec())


if __name__ == "__main__":
    main()
