class FutureSelfError(Exception):
    """Base exception for the future self studio."""


class ImageReadError(FutureSelfError):
    """Raised when the source image cannot be read."""


class ImageLoadError(FutureSelfError):
    """Raised when the source image cannot be decoded or redrawn."""


class ImageTooLargeError(FutureSelfError):
    """Raised when the encoded image does not fit under the request ceiling."""


class GenerationError(FutureSelfError):
    """Raised when the generation endpoint does not return an image."""


class EndpointNotFoundError(GenerationError):
    """Raised when a markup page comes back instead of the JSON API."""


class GenerationTimeoutError(GenerationError):
    """Raised when the generation request exceeds its timeout."""


class NoImageUrlError(GenerationError):
    """Raised when a successful response carries no image URL."""


class InvalidTransitionError(FutureSelfError):
    """Raised when a session transition is not allowed from the current state."""


class CameraUnavailableError(FutureSelfError):
    """Raised when the camera cannot be opened or read."""
