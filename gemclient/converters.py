"""Converters between gemclient types and the Generative Language API format.

Requests are written in the API's camelCase JSON with unset fields
omitted. Parsing accepts both camelCase and snake_case keys, since the
service accepts either form on input and older payloads use snake_case.
"""

import json
import logging
from typing import Any, Dict, List, Optional

from .errors import ParsingError
from .settings import GenerationConfig, SafetySetting
from .types import (
    ApiError,
    Blob,
    BlockReason,
    Candidate,
    Content,
    FileData,
    FinishReason,
    GenerateContentResponse,
    Part,
    PromptFeedback,
    Role,
    SafetyRating,
    UsageMetadata,
)

logger = logging.getLogger(__name__)


def _get(data: Dict[str, Any], camel: str, snake: str, default: Any = None) -> Any:
    if camel in data:
        return data[camel]
    return data.get(snake, default)


def _expect_dict(value: Any, what: str) -> Dict[str, Any]:
    if not isinstance(value, dict):
        raise ParsingError(f"Expected {what} to be an object, got {type(value).__name__}")
    return value


def _expect_list(value: Any, what: str) -> List[Any]:
    if not isinstance(value, list):
        raise ParsingError(f"Expected {what} to be a list, got {type(value).__name__}")
    return value


# ==================== Part Conversion ====================


def part_to_api(part: Part) -> Dict[str, Any]:
    """Convert a Part to API format."""
    if part.text is not None:
        return {"text": part.text}

    if part.inline_data is not None:
        return {
            "inlineData": {
                "mimeType": part.inline_data.mime_type,
                "data": part.inline_data.data,
            }
        }

    if part.file_data is not None:
        return {
            "fileData": {
                "mimeType": part.file_data.mime_type,
                "fileUri": part.file_data.file_uri,
            }
        }

    raise ValueError("Part has no text, inline data or file data")


def part_from_api(part_data: Any) -> Part:
    """Convert an API part to a Part."""
    part_data = _expect_dict(part_data, "part")

    if "text" in part_data:
        return Part(text=part_data["text"])

    inline = _get(part_data, "inlineData", "inline_data")
    if inline is not None:
        inline = _expect_dict(inline, "inlineData")
        return Part(inline_data=Blob(
            mime_type=_get(inline, "mimeType", "mime_type", "application/octet-stream"),
            data=inline.get("data", ""),
        ))

    file_data = _get(part_data, "fileData", "file_data")
    if file_data is not None:
        file_data = _expect_dict(file_data, "fileData")
        return Part(file_data=FileData(
            mime_type=_get(file_data, "mimeType", "mime_type", ""),
            file_uri=_get(file_data, "fileUri", "file_uri", ""),
        ))

    raise ParsingError(f"Unrecognised part: {sorted(part_data)}")


# ==================== Content Conversion ====================


def content_to_api(content: Content) -> Dict[str, Any]:
    """Convert a Content turn to API format."""
    data: Dict[str, Any] = {"parts": [part_to_api(p) for p in content.parts]}
    if content.role is not None:
        data["role"] = content.role.value
    return data


def content_from_api(data: Any) -> Content:
    """Convert API content to a Content turn."""
    data = _expect_dict(data, "content")
    parts = [part_from_api(p) for p in _expect_list(data.get("parts", []), "parts")]

    role = None
    if data.get("role") is not None:
        try:
            role = Role(data["role"])
        except ValueError as e:
            raise ParsingError(f"Unknown role: {data['role']!r}") from e

    return Content(parts=parts, role=role)


def contents_to_api(contents: List[Content]) -> List[Dict[str, Any]]:
    return [content_to_api(c) for c in contents]


# ==================== Settings Conversion ====================


def safety_setting_to_api(setting: SafetySetting) -> Dict[str, str]:
    return {
        "category": setting.category.value,
        "threshold": setting.threshold.value,
    }


def generation_config_to_api(config: GenerationConfig) -> Dict[str, Any]:
    """Convert a GenerationConfig, omitting unset fields."""
    data: Dict[str, Any] = {}

    if config.stop_sequences is not None:
        data["stopSequences"] = list(config.stop_sequences)

    if config.response_mime_type is not None:
        data["responseMimeType"] = config.response_mime_type

    if config.max_output_tokens is not None:
        data["maxOutputTokens"] = config.max_output_tokens

    if config.temperature is not None:
        data["temperature"] = config.temperature

    if config.top_p is not None:
        data["topP"] = config.top_p

    if config.top_k is not None:
        data["topK"] = config.top_k

    return data


# ==================== Request Building ====================


def build_generate_request(
    contents: List[Content],
    safety_settings: List[SafetySetting],
    generation_config: GenerationConfig,
    system_instruction: Optional[str] = None,
) -> Dict[str, Any]:
    """Build a generateContent request body.

    Args:
        contents: Conversation turns, oldest first.
        safety_settings: Safety settings to apply.
        generation_config: Generation configuration.
        system_instruction: Optional system prompt.

    Returns:
        Request body dictionary.
    """
    request: Dict[str, Any] = {
        "contents": contents_to_api(contents),
        "safetySettings": [safety_setting_to_api(s) for s in safety_settings],
        "generationConfig": generation_config_to_api(generation_config),
    }

    if system_instruction is not None:
        request["systemInstruction"] = {
            "parts": [{"text": system_instruction}]
        }

    return request


# ==================== Response Conversion ====================


def finish_reason_from_api(reason: Optional[str]) -> Optional[FinishReason]:
    if reason is None:
        return None
    try:
        return FinishReason(reason)
    except ValueError:
        logger.debug("Unknown finish reason %r, treating as OTHER", reason)
        return FinishReason.OTHER


def block_reason_from_api(reason: Optional[str]) -> Optional[BlockReason]:
    if reason is None:
        return None
    try:
        return BlockReason(reason)
    except ValueError:
        logger.debug("Unknown block reason %r, treating as OTHER", reason)
        return BlockReason.OTHER


def safety_rating_from_api(data: Any) -> SafetyRating:
    data = _expect_dict(data, "safety rating")
    return SafetyRating(
        category=data.get("category"),
        probability=data.get("probability"),
        blocked=data.get("blocked"),
    )


def candidate_from_api(data: Any) -> Candidate:
    data = _expect_dict(data, "candidate")

    content = data.get("content")
    ratings = _get(data, "safetyRatings", "safety_ratings")

    return Candidate(
        content=content_from_api(content) if content is not None else None,
        finish_reason=finish_reason_from_api(_get(data, "finishReason", "finish_reason")),
        safety_ratings=(
            [safety_rating_from_api(r) for r in _expect_list(ratings, "safetyRatings")]
            if ratings is not None else None
        ),
        token_count=_get(data, "tokenCount", "token_count"),
        index=data.get("index"),
    )


def usage_from_api(data: Any) -> UsageMetadata:
    data = _expect_dict(data, "usageMetadata")
    return UsageMetadata(
        prompt_token_count=_get(data, "promptTokenCount", "prompt_token_count"),
        cached_content_token_count=_get(
            data, "cachedContentTokenCount", "cached_content_token_count"
        ),
        candidates_token_count=_get(data, "candidatesTokenCount", "candidates_token_count"),
        total_token_count=_get(data, "totalTokenCount", "total_token_count"),
    )


def response_from_api(response_data: Any) -> GenerateContentResponse:
    """Convert an API response object to GenerateContentResponse.

    Used for batch responses and for each element of a streamed body.

    Raises:
        ParsingError: The object does not have the response shape.
    """
    response_data = _expect_dict(response_data, "response")

    candidates = [
        candidate_from_api(c)
        for c in _expect_list(response_data.get("candidates", []), "candidates")
    ]

    feedback = None
    feedback_data = _get(response_data, "promptFeedback", "prompt_feedback")
    if feedback_data is not None:
        feedback_data = _expect_dict(feedback_data, "promptFeedback")
        ratings = _get(feedback_data, "safetyRatings", "safety_ratings", [])
        feedback = PromptFeedback(
            block_reason=block_reason_from_api(_get(feedback_data, "blockReason", "block_reason")),
            safety_ratings=[safety_rating_from_api(r) for r in _expect_list(ratings, "safetyRatings")],
        )

    usage_data = _get(response_data, "usageMetadata", "usage_metadata")

    return GenerateContentResponse(
        candidates=candidates,
        prompt_feedback=feedback,
        usage_metadata=usage_from_api(usage_data) if usage_data is not None else None,
    )


def api_error_from_api(error_data: Any) -> ApiError:
    """Convert an API error body to ApiError.

    Accepts the ``{"error": {...}}`` envelope the service sends as well
    as a bare error object.

    Raises:
        ParsingError: Required fields are missing.
    """
    error_data = _expect_dict(error_data, "error")
    if "error" in error_data and isinstance(error_data["error"], dict):
        error_data = error_data["error"]

    try:
        return ApiError(
            code=int(error_data["code"]),
            message=str(error_data["message"]),
            status=str(error_data.get("status", "")),
        )
    except (KeyError, TypeError, ValueError) as e:
        raise ParsingError(f"Malformed error response: {e}") from e


# ==================== History Serialization ====================


def serialize_contents(contents: List[Content]) -> str:
    """Serialize conversation turns to a JSON string for persistence."""
    return json.dumps(contents_to_api(contents))


def deserialize_contents(data: str) -> List[Content]:
    """Deserialize conversation turns from a JSON string."""
    try:
        raw = json.loads(data)
    except json.JSONDecodeError as e:
        raise ParsingError(f"Invalid history JSON: {e}") from e
    return [content_from_api(c) for c in _expect_list(raw, "history")]
