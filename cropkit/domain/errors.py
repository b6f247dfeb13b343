class CropEngineError(Exception):
    """
    Base class for all crop engine failures.
    """


class DecodeError(CropEngineError):
    """
    Input is not a decodable image. Raised before any editing model exists.
    """


class FileRejected(DecodeError):
    """
    Input failed upload validation (type or size).
    """


class SurfaceUnavailable(CropEngineError):
    """
    Drawing backend could not allocate a working surface.
    """


class InvalidCropRegion(CropEngineError):
    """
    Crop geometry degenerated to zero width or height.
    """


class UploadError(CropEngineError):
    """
    Raised by upload collaborators; passed through untouched.
    """


class SessionStateError(CropEngineError):
    """
    Operation is not valid in the current session state.
    """


class ModelFrozenError(CropEngineError):
    """
    Mutation attempted on a TransformModel that has been snapshotted.
    """
