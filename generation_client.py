"""HTTP client for the /api/generate endpoint."""
import logging
import queue
import threading

import requests

from errors import EndpointNotFoundError, GenerationError, GenerationTimeoutError, NoImageUrlError

logger = logging.getLogger(__name__)

DEFAULT_ENDPOINT = "http://127.0.0.1:5001"
REQUEST_TIMEOUT = 60.0

TIMEOUT_MESSAGE = "Request timed out. The image generation took too long."
NOT_FOUND_MESSAGE = (
    "API endpoint not found. The server answered with a web page instead of JSON; "
    "make sure the Flask app is running and serving /api/generate at the configured URL."
)


class GenerationClient:
    """Send one normalized portrait and prompt to the generation endpoint.

    Each call makes exactly one request; failures are raised as
    `GenerationError` subclasses for the caller to show and resubmit.
    """

    def __init__(self, base_url=DEFAULT_ENDPOINT, timeout=REQUEST_TIMEOUT, session=None):
        self.url = base_url.rstrip("/") + "/api/generate"
        self.timeout = timeout
        self.session = session or requests.Session()

    def generate_future_self(self, image, mime_type, prompt):
        """Return the generated image URL (a data-URI) for the given portrait."""
        payload = {"image": image, "mimeType": mime_type, "prompt": prompt}
        try:
            response = self._post(payload)
        except requests.Timeout as e:
            logger.error("Generation request timed out after %ss", self.timeout)
            raise GenerationTimeoutError(TIMEOUT_MESSAGE) from e
        except requests.RequestException as e:
            logger.error("Generation request failed: %s", e)
            raise GenerationError(
                "Network error. Could not reach the image generation service."
            ) from e

        content_type = response.headers.get("Content-Type", "")
        if "text/html" in content_type:
            raise EndpointNotFoundError(NOT_FOUND_MESSAGE)

        if not response.ok:
            try:
                error_data = response.json()
            except ValueError:
                error_data = {}
            if not isinstance(error_data, dict):
                error_data = {}
            message = error_data.get("error") or f"Server error: {response.status_code}"
            logger.error("Generation failed (%s): %s", response.status_code, message)
            raise GenerationError(message)

        try:
            data = response.json()
        except ValueError as e:
            raise GenerationError("Invalid response from server") from e

        image_url = data.get("imageUrl") if isinstance(data, dict) else None
        if not image_url:
            raise NoImageUrlError("No image URL received from server")
        return image_url

    def _post(self, payload):
        """POST and read the whole body under one deadline.

        `requests` only bounds the connect and each socket read, so a server
        trickling its body could outlast `timeout` indefinitely. The exchange
        runs on a daemon thread; once the deadline passes the caller gets a
        `requests.Timeout` and the abandoned request finishes unobserved.
        """
        outcome = queue.Queue(maxsize=1)

        def send():
            try:
                response = self.session.post(self.url, json=payload, timeout=self.timeout)
                response.content  # read the body inside the deadline
            except Exception as e:
                outcome.put((None, e))
            else:
                outcome.put((response, None))

        threading.Thread(target=send, name="generation-request", daemon=True).start()
        try:
            response, error = outcome.get(timeout=self.timeout)
        except queue.Empty:
            raise requests.Timeout(f"No complete response within {self.timeout}s") from None
        if error is not None:
            raise error
        return response
