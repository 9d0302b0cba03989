"""Scoped camera access for taking the portrait.

The device is released on every way out: cancel, a successful capture, and
leaving the `with` block, errors included.
"""
import io
import logging

from PIL import Image

from errors import CameraUnavailableError
from session import SourceImage

logger = logging.getLogger(__name__)

CAPTURE_FILENAME = "camera-capture.jpg"


def open_default_camera(index=0):
    import cv2  # optional "camera" extra

    device = cv2.VideoCapture(index)
    device.set(cv2.CAP_PROP_FRAME_WIDTH, 1280)
    device.set(cv2.CAP_PROP_FRAME_HEIGHT, 720)
    return device


def _frame_to_image(frame):
    if isinstance(frame, Image.Image):
        return frame.convert("RGB")
    # OpenCV frames are BGR arrays
    return Image.fromarray(frame[:, :, ::-1])


class CameraCapture:
    def __init__(self, opener=open_default_camera, quality=95):
        self.opener = opener
        self.quality = quality
        self.device = None

    def __enter__(self):
        self.start()
        return self

    def __exit__(self, exc_type, exc, tb):
        self.stop()
        return False

    @property
    def active(self):
        return self.device is not None

    def start(self):
        try:
            device = self.opener()
        except Exception as e:
            logger.error("Error accessing camera: %s", e)
            raise CameraUnavailableError(
                "Could not access camera. Check permissions or upload a file instead."
            ) from e
        is_opened = getattr(device, "isOpened", None)
        if is_opened is not None and not is_opened():
            device.release()
            raise CameraUnavailableError(
                "Could not access camera. Check permissions or upload a file instead."
            )
        self.device = device

    def stop(self):
        if self.device is not None:
            device, self.device = self.device, None
            device.release()

    cancel = stop

    def capture(self):
        """Grab one frame as a JPEG `SourceImage` and release the camera."""
        if self.device is None:
            raise CameraUnavailableError("Camera is not active")
        try:
            ok, frame = self.device.read()
            if not ok or frame is None:
                raise CameraUnavailableError("Could not read a frame from the camera")
            buf = io.BytesIO()
            _frame_to_image(frame).save(buf, format="JPEG", quality=self.quality)
        finally:
            self.stop()
        return SourceImage(data=buf.getvalue(), filename=CAPTURE_FILENAME, mime_type="image/jpeg")
