"""Synchronous client for Google's Gemini generative-language API.

Features:
- Conversation sessions that keep the turn history
- Batch and streaming generation
- Text, inline data and uploaded file parts
- Files API uploads with a content-addressed cache
- Proxy and custom CA bundle support

Usage:
    from gemclient import GemSession, Models, Role, Settings

    session = GemSession.builder().model(Models.GEMINI_2_FLASH).build()
    response = session.send_message("Hello!", Role.USER, Settings())
    print(response.text)

Environment Variables:
    GEMINI_API_KEY: API key (also read from a .env file)
    GEMINI_MODEL: Default model name
    GEMINI_BASE_URL: Override API endpoint
    GEMINI_TIMEOUT: Request timeout in seconds (default: 30)
    GEMINI_CONNECT_TIMEOUT: Connection timeout in seconds (default: 30)
    GEMCLIENT_NO_PROXY: Hosts that bypass the proxy (exact match)
"""

from .client import Client, GemSession, GemSessionBuilder, ResponseStream
from .context import Context
from .errors import (
    AllCandidatesBlockedError,
    EmptyApiResponseError,
    FeedbackError,
    FileError,
    GemConnectionError,
    GemError,
    GeminiAPIError,
    MissingApiKeyError,
    ParsingError,
    ResponseError,
    StreamError,
)
from .files import File, FileManager, get_mime_type
from .models import Models
from .settings import GenerationConfig, SafetySetting, Settings
from .types import (
    ApiError,
    Blob,
    BlockReason,
    Candidate,
    Content,
    FileData,
    FinishReason,
    GenerateContentResponse,
    HarmBlockThreshold,
    HarmCategory,
    Part,
    PromptFeedback,
    Role,
    SafetyRating,
    UsageMetadata,
)

__all__ = [
    # Sessions
    "GemSession",
    "GemSessionBuilder",
    "Client",
    "ResponseStream",
    "Context",
    "Models",
    # Settings
    "Settings",
    "SafetySetting",
    "GenerationConfig",
    # Types
    "Role",
    "Part",
    "Blob",
    "FileData",
    "Content",
    "Candidate",
    "GenerateContentResponse",
    "PromptFeedback",
    "SafetyRating",
    "UsageMetadata",
    "FinishReason",
    "BlockReason",
    "HarmCategory",
    "HarmBlockThreshold",
    "ApiError",
    # Files
    "File",
    "FileManager",
    "get_mime_type",
    # Errors
    "GemError",
    "GemConnectionError",
    "ResponseError",
    "ParsingError",
    "GeminiAPIError",
    "EmptyApiResponseError",
    "FeedbackError",
    "AllCandidatesBlockedError",
    "StreamError",
    "FileError",
    "MissingApiKeyError",
]
