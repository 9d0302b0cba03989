"""Server-side call to the external image model and parsing of its reply."""
from dataclasses import dataclass
from typing import Optional

from google import genai
from google.genai import types
from google.genai.types import Modality

from datauri import to_data_uri

DEFAULT_IMAGE_MIME = "image/png"


@dataclass
class GenerationResult:
    """The image the model drew, if any, and its last text reply (the refusal when no image came back)."""

    image_url: Optional[str] = None
    text: Optional[str] = None

    @property
    def ok(self):
        return self.image_url is not None


def make_client(config):
    return genai.Client(
        api_key=config.api_key,
        http_options=types.HttpOptions(timeout=config.model_timeout_ms),
    )


def generate_future_self(client, model, image_bytes, mime_type, instructions):
    """Send the portrait followed by the instructions and return the raw response."""
    config = types.GenerateContentConfig(
        response_modalities=[Modality.TEXT, Modality.IMAGE],
    )
    return client.models.generate_content(
        model=model,
        contents=[
            types.Part.from_bytes(data=image_bytes, mime_type=mime_type),
            instructions,
        ],
        config=config,
    )


def _response_parts(response):
    candidates = getattr(response, "candidates", None)
    if not candidates:
        return []
    content = getattr(candidates[0], "content", None)
    return getattr(content, "parts", None) or []


def extract_result(response):
    """Pick the first inline image out of the response, keeping any text as fallback.

    Inline image bytes are wrapped as a data-URI with the part's declared mime
    type, or PNG when the part does not declare one.
    """
    result = GenerationResult()
    for part in _response_parts(response):
        inline = getattr(part, "inline_data", None)
        if inline is not None and inline.data:
            if result.image_url is None:
                result.image_url = to_data_uri(inline.data, inline.mime_type or DEFAULT_IMAGE_MIME)
        elif getattr(part, "text", None):
            result.text = part.text
    return result
