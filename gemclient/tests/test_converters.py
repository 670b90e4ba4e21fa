"""Tests for wire-format conversion."""

import json

import pytest

from gemclient.converters import (
    api_error_from_api,
    build_generate_request,
    content_from_api,
    deserialize_contents,
    generation_config_to_api,
    part_from_api,
    part_to_api,
    response_from_api,
    serialize_contents,
)
from gemclient.errors import ParsingError
from gemclient.settings import GenerationConfig, SafetySetting
from gemclient.types import (
    Blob,
    BlockReason,
    Content,
    FileData,
    FinishReason,
    HarmBlockThreshold,
    HarmCategory,
    Part,
    Role,
)


# ==================== Parts ====================


class TestParts:
    """Tests for part conversion."""

    def test_text_part_to_api(self):
        assert part_to_api(Part.from_text("hi")) == {"text": "hi"}

    def test_blob_part_to_api(self):
        part = Part.from_blob(Blob("image/png", "AAAA"))
        assert part_to_api(part) == {"inlineData": {"mimeType": "image/png", "data": "AAAA"}}

    def test_file_part_to_api(self):
        part = Part.from_file_data(FileData("application/pdf", "https://files/abc"))
        assert part_to_api(part) == {
            "fileData": {"mimeType": "application/pdf", "fileUri": "https://files/abc"}
        }

    def test_part_from_api_accepts_snake_case(self):
        part = part_from_api({"file_data": {"mime_type": "video/mp4", "file_uri": "u"}})
        assert part.file_data == FileData("video/mp4", "u")

    def test_unknown_part_raises(self):
        with pytest.raises(ParsingError):
            part_from_api({"functionCall": {"name": "f"}})

    def test_unknown_role_raises(self):
        with pytest.raises(ParsingError) as exc_info:
            content_from_api({"parts": [{"text": "x"}], "role": "system"})

        assert isinstance(exc_info.value.__cause__, ValueError)


# ==================== Requests ====================


class TestBuildRequest:
    """Tests for request body construction."""

    def test_request_shape(self):
        body = build_generate_request(
            contents=[Content(parts=[Part.from_text("Hello")], role=Role.USER)],
            safety_settings=[
                SafetySetting(HarmCategory.HARM_CATEGORY_HARASSMENT, HarmBlockThreshold.BLOCK_NONE)
            ],
            generation_config=GenerationConfig(max_output_tokens=10, top_p=0.9),
        )

        assert body == {
            "contents": [{"parts": [{"text": "Hello"}], "role": "user"}],
            "safetySettings": [
                {"category": "HARM_CATEGORY_HARASSMENT", "threshold": "BLOCK_NONE"}
            ],
            "generationConfig": {"maxOutputTokens": 10, "topP": 0.9},
        }

    def test_system_instruction(self):
        body = build_generate_request([], [], GenerationConfig(), system_instruction="Be brief")
        assert body["systemInstruction"] == {"parts": [{"text": "Be brief"}]}

    def test_generation_config_omits_unset(self):
        config = GenerationConfig(stop_sequences=["END"], response_mime_type="text/plain")
        assert generation_config_to_api(config) == {
            "stopSequences": ["END"],
            "responseMimeType": "text/plain",
        }


# ==================== Responses ====================


class TestResponseFromApi:
    """Tests for response parsing."""

    def test_full_response(self):
        response = response_from_api({
            "candidates": [{
                "content": {"parts": [{"text": "Hi there"}], "role": "model"},
                "finishReason": "STOP",
                "safetyRatings": [
                    {"category": "HARM_CATEGORY_HARASSMENT", "probability": "NEGLIGIBLE"}
                ],
                "tokenCount": 3,
                "index": 0,
            }],
            "usageMetadata": {
                "promptTokenCount": 4,
                "candidatesTokenCount": 3,
                "totalTokenCount": 7,
            },
        })

        candidate = response.candidates[0]
        assert candidate.finish_reason is FinishReason.STOP
        assert candidate.content.role is Role.MODEL
        assert candidate.get_token_count() == 3
        assert candidate.safety_ratings[0].probability == "NEGLIGIBLE"
        assert response.text == "Hi there"
        assert response.get_usage_metadata().get_total_token_count() == 7
        assert response.get_usage_metadata().get_cached_content_token_count() is None

    def test_prompt_feedback(self):
        response = response_from_api({"promptFeedback": {"blockReason": "SAFETY"}})
        assert response.candidates == []
        assert response.feedback() is BlockReason.SAFETY

    def test_unknown_finish_reason_maps_to_other(self):
        response = response_from_api({"candidates": [{"finishReason": "SOMETHING_NEW"}]})
        assert response.candidates[0].finish_reason is FinishReason.OTHER

    def test_bad_shape_raises(self):
        with pytest.raises(ParsingError):
            response_from_api({"candidates": "nope"})
        with pytest.raises(ParsingError):
            response_from_api([])


class TestApiErrorFromApi:
    """Tests for error body parsing."""

    def test_envelope(self):
        error = api_error_from_api({
            "error": {"code": 403, "message": "Permission denied", "status": "PERMISSION_DENIED"}
        })
        assert error.code == 403
        assert error.status == "PERMISSION_DENIED"

    def test_bare_object(self):
        error = api_error_from_api({"code": 500, "message": "Internal", "status": "INTERNAL"})
        assert str(error) == "Error 500: Internal (INTERNAL)"

    def test_missing_fields_raise(self):
        with pytest.raises(ParsingError):
            api_error_from_api({"error": {"status": "INTERNAL"}})


# ==================== History ====================


class TestHistorySerialization:
    """Tests for history persistence."""

    def test_round_trip(self):
        contents = [
            Content(parts=[Part.from_text("Hi"), Part.from_blob(Blob("image/png", "AA=="))], role=Role.USER),
            Content(parts=[Part.from_text("Hello")], role=Role.MODEL),
        ]

        restored = deserialize_contents(serialize_contents(contents))

        assert restored == contents

    def test_serialized_form_is_api_json(self):
        data = json.loads(serialize_contents([Content(parts=[Part.from_text("x")], role=Role.USER)]))
        assert data == [{"parts": [{"text": "x"}], "role": "user"}]

    def test_invalid_json_raises(self):
        with pytest.raises(ParsingError):
            deserialize_contents("{not json")
