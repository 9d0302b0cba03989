"""Session state for one upload -> preview -> generate -> result flow.

A `Session` is immutable; every user action or request completion goes through
one of the transition functions below, which return a new session. Errors are
carried as data on a PREVIEW session, so no transition ever ends in an error
state.
"""
from dataclasses import dataclass, replace
from enum import Enum
from typing import Optional

from datauri import to_data_uri
from errors import InvalidTransitionError


class AppState(str, Enum):
    IDLE = "IDLE"
    CAPTURING = "CAPTURING"  # camera viewfinder open
    PREVIEW = "PREVIEW"  # photo chosen, prompt being written
    GENERATING = "GENERATING"
    RESULT = "RESULT"


@dataclass(frozen=True)
class SourceImage:
    data: bytes
    filename: str = "upload"
    mime_type: str = "image/jpeg"


@dataclass(frozen=True)
class GeneratedImage:
    image_url: str
    prompt: str


@dataclass(frozen=True)
class Session:
    state: AppState = AppState.IDLE
    source: Optional[SourceImage] = None
    preview_url: Optional[str] = None
    prompt: str = ""
    error: Optional[str] = None
    result: Optional[GeneratedImage] = None


def new_session():
    return Session()


def _require(session, *states):
    if session.state not in states:
        allowed = ", ".join(s.value for s in states)
        raise InvalidTransitionError(
            f"Cannot leave {session.state.value}; expected one of: {allowed}"
        )


def start_capture(session):
    _require(session, AppState.IDLE)
    return replace(session, state=AppState.CAPTURING)


def cancel_capture(session):
    _require(session, AppState.CAPTURING)
    return replace(session, state=AppState.IDLE)


def select_image(session, source):
    """Attach a chosen or captured photo and move to PREVIEW."""
    _require(session, AppState.IDLE, AppState.CAPTURING)
    return replace(
        session,
        state=AppState.PREVIEW,
        source=source,
        preview_url=to_data_uri(source.data, source.mime_type),
        error=None,
    )


capture_complete = select_image


def set_prompt(session, text):
    _require(session, AppState.PREVIEW)
    return replace(session, prompt=text)


def can_generate(session):
    return (
        session.state == AppState.PREVIEW
        and session.source is not None
        and bool(session.prompt.strip())
    )


def begin_generation(session):
    if not can_generate(session):
        raise InvalidTransitionError("A photo and a non-empty prompt are required to generate")
    return replace(session, state=AppState.GENERATING, error=None)


def complete_generation(session, image_url):
    _require(session, AppState.GENERATING)
    return replace(
        session,
        state=AppState.RESULT,
        result=GeneratedImage(image_url=image_url, prompt=session.prompt),
    )


def fail_generation(session, message):
    _require(session, AppState.GENERATING)
    return replace(session, state=AppState.PREVIEW, error=message)


def reset(_session=None):
    """Discard everything and start over from IDLE."""
    return new_session()
