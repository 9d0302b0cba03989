import logging

from datauri import parse_data_uri
from errors import FutureSelfError, GenerationError
from normalizer import normalize_image
from session import begin_generation, can_generate, complete_generation, fail_generation

logger = logging.getLogger(__name__)

PROCESSING_ERROR = "Failed to process image. Please try a different photo."
GENERIC_ERROR = "Failed to generate image. Please try again."


def run_generation(session, client, normalize=normalize_image):
    """Run the Generate action: normalize, call the endpoint, settle the session.

    Returns the session unchanged (and sends nothing) when a photo or a
    non-empty prompt is missing. Every failure lands back in PREVIEW with the
    message attached so the user can edit the prompt and try again.
    """
    if not can_generate(session):
        return session

    session = begin_generation(session)
    try:
        try:
            payload = normalize(session.source)
        except FutureSelfError as e:
            logger.error("Image normalization failed: %s", e)
            raise GenerationError(PROCESSING_ERROR) from e

        image_url = client.generate_future_self(payload.data, payload.mime_type, session.prompt)
    except FutureSelfError as e:
        return fail_generation(session, str(e) or GENERIC_ERROR)

    return complete_generation(session, image_url)


def save_result(session, path):
    """Write the generated image of a RESULT session to `path`."""
    if session.result is None:
        raise FutureSelfError("There is no generated image to save")
    _mime, data = parse_data_uri(session.result.image_url)
    with open(path, "wb") as f:
        f.write(data)
    return path
