import asyncio
from enum import Enum, auto
from typing import List, Optional, Tuple
from cropkit.domain.errors import InvalidCropRegion, SessionStateError
from cropkit.domain.interfaces import IUploadPipeline
from cropkit.domain.models import OutputSpec, RotationMode, SourceImage, Viewport
from cropkit.features.geometry.logic import fit_viewport
from cropkit.features.interaction.touch import TouchDragController
from cropkit.features.transform.models import TransformModel
from cropkit.infrastructure.loaders.decoder import ImageDecoder, image_decoder
from cropkit.kernel.system.config import APP_CONFIG, DEFAULT_OUTPUT_SPEC
from cropkit.kernel.system.logging import get_logger
from cropkit.services.rendering.rasterizer import RasterOutput, Rasterizer

logger = get_logger(__name__)


class SessionState(Enum):
    EMPTY = auto()
    DECODING = auto()
    READY = auto()
    APPLYING = auto()
    FINISHED = auto()
    FAILED = auto()
    CANCELLED = auto()


class CropSession:
    """
    One editing session: decode -> interact -> apply -> upload.

    The source bitmap and transform model exist only between a successful
    decode and the end of apply (or cancel). Interaction controllers can only
    be obtained while READY, so no event reaches a model before decode resolves.
    Controllers already handed out follow the replacement model when an apply is
    rejected with InvalidCropRegion.
    """

    def __init__(
        self,
        output_spec: OutputSpec = DEFAULT_OUTPUT_SPEC,
        rasterizer: Optional[Rasterizer] = None,
        decoder: Optional[ImageDecoder] = None,
        rotation_mode: RotationMode = RotationMode.CONTINUOUS,
        allow_crop: bool = True,
    ):
        self.output_spec = output_spec
        self.rasterizer = rasterizer or Rasterizer()
        self.decoder = decoder or image_decoder
        self.rotation_mode = rotation_mode
        self.allow_crop = allow_crop

        self.state = SessionState.EMPTY
        self.source: Optional[SourceImage] = None
        self.model: Optional[TransformModel] = None
        self.output: Optional[RasterOutput] = None

        self._original: Optional[Tuple[bytes, str]] = None
        self._display_size: Optional[Tuple[float, float]] = None
        self._hosted_url: Optional[str] = None
        self._upload_lock = asyncio.Lock()
        self._generation = 0
        self._controllers: List = []

    @property
    def hosted_url(self) -> Optional[str]:
        return self._hosted_url

    def _require(self, *states: SessionState) -> None:
        if self.state not in states:
            allowed = ", ".join(s.name for s in states)
            raise SessionStateError(f"Session is {self.state.name}, expected {allowed}")

    def _discard(self) -> None:
        self.source = None
        self.model = None
        self._controllers = []

    async def load(
        self,
        data: bytes,
        mime_type: str,
        display_size: Optional[Tuple[float, float]] = None,
    ) -> Optional[SourceImage]:
        """
        Decodes a new file, replacing any current one. Returns None when
        cropping is disabled (the original bytes become the output) or when a
        cancel or a newer load superseded this decode.
        """
        if self.state in (SessionState.DECODING, SessionState.APPLYING):
            raise SessionStateError(f"Cannot load while {self.state.name}")

        self._discard()
        self.output = None
        self._hosted_url = None
        self.state = SessionState.DECODING
        self._generation += 1
        generation = self._generation

        try:
            source = await asyncio.to_thread(self.decoder.decode, data, mime_type)
        except Exception:
            if generation == self._generation:
                self.state = SessionState.EMPTY
            raise

        if generation != self._generation:
            logger.info("Decode superseded by cancel or a newer load, dropping result")
            return None

        self._original = (data, mime_type)
        self._display_size = display_size

        if not self.allow_crop:
            self.output = RasterOutput(data, mime_type, source.natural_width, source.natural_height)
            self.state = SessionState.FINISHED
            logger.info(f"Cropping disabled, passing {mime_type} {source.natural_width}x{source.natural_height} through")
            return None

        viewport = (
            Viewport(*display_size) if display_size else fit_viewport(source.natural_size, APP_CONFIG.display_max_size)
        )
        spec = self.output_spec
        self.source = source
        self.model = TransformModel.init_centered(
            viewport,
            spec.aspect_ratio,
            rotation_mode=self.rotation_mode,
            min_zoom=spec.min_zoom,
            max_zoom=spec.max_zoom,
        )
        self.state = SessionState.READY
        logger.info(
            f"Session ready: {source.natural_width}x{source.natural_height} "
            f"in {viewport.display_width:.0f}x{viewport.display_height:.0f} viewport"
        )
        return source

    def touch_controller(self) -> TouchDragController:
        self._require(SessionState.READY)
        controller = TouchDragController(self.model)
        self._controllers.append(controller)
        return controller

    def slider_controller(self, parent=None):
        """
        Qt slider front-end bound to the current model.
        """
        from cropkit.features.interaction.slider import SliderCropController

        self._require(SessionState.READY)
        controller = SliderCropController(self.model, parent=parent)
        self._controllers.append(controller)
        return controller

    def relayout(self, display_size: Tuple[float, float]) -> None:
        self._require(SessionState.READY)
        self._display_size = display_size
        self.model.set_viewport(Viewport(*display_size))

    async def apply(self) -> RasterOutput:
        """
        Snapshots the model and rasterizes it. On InvalidCropRegion the session
        returns to READY with a fresh model so the user can adjust and retry.
        """
        self._require(SessionState.READY)
        snapshot = self.model.snapshot()
        source = self.source
        self.state = SessionState.APPLYING

        try:
            output = await asyncio.to_thread(self.rasterizer.rasterize, source, snapshot, self.output_spec)
        except InvalidCropRegion as e:
            logger.warning(f"Apply rejected, returning to edit: {e}")
            self.model = TransformModel.from_snapshot(snapshot, self.output_spec.aspect_ratio)
            for controller in self._controllers:
                controller.rebind(self.model)
            self.state = SessionState.READY
            raise
        except Exception as e:
            logger.error(f"Apply failed: {e}")
            self._discard()
            self.state = SessionState.FAILED
            raise

        self.output = output
        self._discard()
        self.state = SessionState.FINISHED
        return output

    async def upload(self, pipeline: IUploadPipeline) -> str:
        """
        Hands the output to the collaborator at most once; repeats return the same URL.
        """
        async with self._upload_lock:
            self._require(SessionState.FINISHED)
            if self._hosted_url is not None:
                return self._hosted_url

            url = await asyncio.to_thread(pipeline.upload, self.output.data, self.output.mime_type)
            self._hosted_url = url
            return url

    async def recrop(self, display_size: Optional[Tuple[float, float]] = None) -> Optional[SourceImage]:
        """
        Starts a new editing model from the retained original file.
        """
        self._require(SessionState.FINISHED, SessionState.FAILED)
        if not self.allow_crop or self._original is None:
            raise SessionStateError("No original image to crop again")

        data, mime_type = self._original
        return await self.load(data, mime_type, display_size or self._display_size)

    def cancel(self) -> None:
        """
        Abandons the session. Session-local state only, no side effects.
        """
        if self.state is SessionState.APPLYING:
            raise SessionStateError("Cannot cancel while rasterizing")

        self._generation += 1
        self._discard()
        self.output = None
        self._original = None
        self._hosted_url = None
        self.state = SessionState.CANCELLED
