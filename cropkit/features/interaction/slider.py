from typing import Dict, Tuple
from PyQt6.QtCore import QObject, pyqtSignal, pyqtSlot
from cropkit.features.transform.models import TransformModel
from cropkit.kernel.system.config import APP_CONFIG
from cropkit.kernel.system.logging import get_logger

logger = get_logger(__name__)

# QWheelEvent.angleDelta() units per notch
WHEEL_NOTCH = 120


class SliderCropController(QObject):
    """
    Slider/library-driven front-end. Stateless with respect to dragging:
    the crop widget reports pointer deltas and the sliders report values.
    """

    zoom_changed = pyqtSignal(float)
    rotation_changed = pyqtSignal(float)
    region_changed = pyqtSignal(float, float, float, float)

    def __init__(self, model: TransformModel, zoom_step: float = APP_CONFIG.zoom_step, parent=None):
        super().__init__(parent)
        self.model = model
        self.zoom_step = zoom_step

    def slider_ranges(self) -> Dict[str, Tuple[float, float, float]]:
        """
        (min, max, step) per slider.
        """
        return {
            "zoom": (self.model.min_zoom, self.model.max_zoom, self.zoom_step),
            "rotation": (-180.0, 180.0, 1.0),
        }

    def rebind(self, model: TransformModel) -> None:
        """
        Follows a replacement model and re-announces its values so widgets resync.
        """
        self.model = model
        region = model.region
        self.zoom_changed.emit(model.zoom)
        self.rotation_changed.emit(model.rotation)
        self.region_changed.emit(region.x, region.y, region.width, region.height)

    def _accepts_events(self) -> bool:
        if self.model.is_frozen:
            logger.debug("Model is frozen, dropping slider event")
            return False
        return True

    @pyqtSlot(float)
    def on_zoom_changed(self, value: float) -> None:
        if not self._accepts_events():
            return
        self.zoom_changed.emit(self.model.set_zoom(value))

    @pyqtSlot(float)
    def on_rotation_changed(self, value: float) -> None:
        if not self._accepts_events():
            return
        self.rotation_changed.emit(self.model.set_rotation(value))

    @pyqtSlot(float, float)
    def on_crop_dragged(self, dx: float, dy: float) -> None:
        if not self._accepts_events():
            return
        region = self.model.move_by(dx, dy)
        self.region_changed.emit(region.x, region.y, region.width, region.height)

    @pyqtSlot(int)
    def on_wheel(self, angle_delta: int) -> None:
        """
        Scroll to zoom, one notch per zoom step.
        """
        if not self._accepts_events() or angle_delta == 0:
            return
        notches = angle_delta / WHEEL_NOTCH
        self.zoom_changed.emit(self.model.zoom_by(notches * self.zoom_step))
