"""
Tests for response parsing and the aging prompt.
"""
import base64

from google.genai import types

from conftest import gemini_response, image_part, text_part
from config import Config
from generation import extract_result, make_client
from system_prompt import build_aging_prompt


class TestExtractResult:
    def test_image_and_text(self):
        result = extract_result(gemini_response(text_part("Enjoy!"), image_part(b"img")))

        assert result.ok
        assert result.image_url == "data:image/png;base64," + base64.b64encode(b"img").decode()
        assert result.text == "Enjoy!"

    def test_missing_mime_defaults_to_png(self):
        part = types.Part(inline_data=types.Blob(data=b"img"))

        assert extract_result(gemini_response(part)).image_url.startswith("data:image/png;base64,")

    def test_text_only(self):
        result = extract_result(gemini_response(text_part("first"), text_part("second")))

        assert not result.ok
        assert result.text == "second"

    def test_no_candidates(self):
        result = extract_result(types.GenerateContentResponse())

        assert not result.ok
        assert result.text is None

    def test_candidate_without_content(self):
        response = types.GenerateContentResponse(candidates=[types.Candidate()])

        assert not extract_result(response).ok


class TestAgingPrompt:
    def test_embeds_scenario_verbatim(self):
        scenario = 'running a {bakery} in "Lisbon"'

        prompt = build_aging_prompt(scenario)

        assert f'"{scenario}"' in prompt
        assert "approximately 50 years old" in prompt
        assert "Do not generate a cartoon or caricature." in prompt

    def test_target_age(self):
        assert "approximately 70 years old" in build_aging_prompt("golf", target_age=70)


class TestMakeClient:
    def test_builds_client_from_config(self):
        client = make_client(Config(api_key="test-key", model_timeout_ms=1234))

        assert client.models is not None
