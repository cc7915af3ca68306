"""Exception types shared by the image-to-music pipeline and its collaborators."""


class PipelineError(Exception):
    """Base exception for pipeline processing errors."""

    pass


class InvalidImage(PipelineError):
    """Exception raised when an image is missing, empty or too small to analyze."""

    pass


class InvalidComposition(PipelineError):
    """Exception raised when a composition has no tracks or malformed track data."""

    pass


class StorageFailure(PipelineError):
    """Exception raised when serialized state cannot be read or written."""

    pass
