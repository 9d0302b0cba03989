import base64
import io
import json
from unittest.mock import Mock
from urllib.parse import urlsplit

import pytest
import requests
from google.genai import types
from PIL import Image
from requests.structures import CaseInsensitiveDict

from app import create_app
from config import Config

PNG_BYTES = b"\x89PNG\r\n\x1a\nfake-png-payload"


def make_image_bytes(width, height, mode="RGB", fmt="JPEG", color=(200, 120, 80)):
    if mode == "RGBA":
        color = color + (128,)
    img = Image.new(mode, (width, height), color)
    buf = io.BytesIO()
    img.save(buf, format=fmt)
    return buf.getvalue()


def gemini_response(*parts):
    return types.GenerateContentResponse(
        candidates=[types.Candidate(content=types.Content(role="model", parts=list(parts)))]
    )


def image_part(data=PNG_BYTES, mime_type="image/png"):
    return types.Part(inline_data=types.Blob(data=data, mime_type=mime_type))


def text_part(text):
    return types.Part(text=text)


def http_response(status=200, body=None, content_type="application/json", raw=None, url=""):
    response = requests.Response()
    response.status_code = status
    if raw is None:
        raw = json.dumps(body).encode("utf-8") if body is not None else b""
    response._content = raw
    response.headers = CaseInsensitiveDict({"Content-Type": content_type} if content_type else {})
    response.url = url
    return response


class FlaskSession:
    """Stands in for `requests.Session`, answering from a Flask test client."""

    def __init__(self, test_client):
        self.test_client = test_client
        self.calls = []

    def post(self, url, json=None, timeout=None):
        self.calls.append({"url": url, "json": json, "timeout": timeout})
        resp = self.test_client.post(urlsplit(url).path, json=json)
        return http_response(
            status=resp.status_code,
            raw=resp.get_data(),
            content_type=resp.headers.get("Content-Type"),
            url=url,
        )


@pytest.fixture
def config():
    return Config(api_key="test-key")


@pytest.fixture
def gemini_client():
    """Fake genai client returning one PNG part by default."""
    client = Mock()
    client.models.generate_content.return_value = gemini_response(
        text_part("Here is your future."), image_part()
    )
    return client


@pytest.fixture
def flask_app(config, gemini_client):
    app = create_app(config, client_factory=lambda _config: gemini_client)
    app.config["TESTING"] = True
    return app


@pytest.fixture
def http(flask_app):
    return flask_app.test_client()


@pytest.fixture
def jpeg_b64():
    return base64.b64encode(make_image_bytes(64, 48)).decode("utf-8")
