from enum import Enum, auto
from typing import Optional, Tuple
from cropkit.features.transform.models import TransformModel
from cropkit.kernel.system.config import APP_CONFIG
from cropkit.kernel.system.logging import get_logger

logger = get_logger(__name__)


class DragState(Enum):
    IDLE = auto()
    DRAGGING = auto()


class TouchDragController:
    """
    Continuous-drag front-end (touch/pointer).

    IDLE --down inside region--> DRAGGING --move--> DRAGGING --up/cancel--> IDLE.
    Moves are applied against the position captured on pointer down, so repeated
    moves never accumulate rounding drift. Zoom and rotation work in any state.
    """

    def __init__(
        self,
        model: TransformModel,
        zoom_step: float = APP_CONFIG.touch_zoom_step,
        rotation_step: float = APP_CONFIG.rotation_step,
    ):
        self.model = model
        self.zoom_step = zoom_step
        self.rotation_step = rotation_step

        self._state = DragState.IDLE
        self._pointer_id: Optional[int] = None
        self._pointer_origin: Optional[Tuple[float, float]] = None
        self._region_origin: Optional[Tuple[float, float]] = None

    @property
    def state(self) -> DragState:
        return self._state

    @property
    def is_dragging(self) -> bool:
        return self._state == DragState.DRAGGING

    def _accepts_events(self) -> bool:
        if self.model.is_frozen:
            logger.debug("Model is frozen, dropping interaction event")
            return False
        return True

    def pointer_down(self, x: float, y: float, pointer_id: int = 0) -> bool:
        """
        Starts a drag when the pointer lands inside the crop region.
        """
        if not self._accepts_events():
            return False
        if self._state == DragState.DRAGGING:
            # single-pointer drag; extra touches are ignored
            return False
        if not self.model.region.contains(x, y):
            return False

        self._state = DragState.DRAGGING
        self._pointer_id = pointer_id
        self._pointer_origin = (x, y)
        self._region_origin = (self.model.region.x, self.model.region.y)
        return True

    def pointer_move(self, x: float, y: float, pointer_id: int = 0) -> bool:
        if self._state != DragState.DRAGGING or pointer_id != self._pointer_id:
            return False
        if not self._accepts_events():
            self._reset_drag()
            return False
        if self._pointer_origin is None or self._region_origin is None:
            return False

        dx = x - self._pointer_origin[0]
        dy = y - self._pointer_origin[1]
        self.model.move_by(dx, dy, origin=self._region_origin)
        return True

    def pointer_up(self, pointer_id: int = 0) -> None:
        if pointer_id == self._pointer_id:
            self._reset_drag()

    def pointer_cancel(self, pointer_id: int = 0) -> None:
        if pointer_id == self._pointer_id:
            self._reset_drag()

    def rebind(self, model: TransformModel) -> None:
        """
        Follows a replacement model. A drag in progress is dropped.
        """
        self.model = model
        self._reset_drag()

    def _reset_drag(self) -> None:
        self._state = DragState.IDLE
        self._pointer_id = None
        self._pointer_origin = None
        self._region_origin = None

    def zoom_in(self) -> Optional[float]:
        if not self._accepts_events():
            return None
        return self.model.zoom_by(self.zoom_step)

    def zoom_out(self) -> Optional[float]:
        if not self._accepts_events():
            return None
        return self.model.zoom_by(-self.zoom_step)

    def rotate(self) -> Optional[float]:
        """
        Quarter turn clockwise.
        """
        if not self._accepts_events():
            return None
        return self.model.rotate_by(self.rotation_step)

    def set_zoom(self, zoom: float) -> Optional[float]:
        if not self._accepts_events():
            return None
        return self.model.set_zoom(zoom)

    def set_rotation(self, degrees: float) -> Optional[float]:
        if not self._accepts_events():
            return None
        return self.model.set_rotation(degrees)
