"""Model identifiers and endpoint constants for the Gemini API.

The generative-language API addresses every model through the same base
URL; only the ``{model}:{method}`` suffix changes between batch and
streaming generation.
"""

import urllib.parse
from enum import Enum
from typing import Union

# ==================== API Endpoints ====================

API_BASE_URL = "https://generativelanguage.googleapis.com/v1beta/"

# Base URL for generating content (batch)
GENERATE_CONTENT = API_BASE_URL + "models/"

# Base URL for streaming content generation
STREAM_GENERATE_CONTENT = API_BASE_URL + "models/"

# Resumable upload endpoint for the Files API
UPLOAD_URL = "https://generativelanguage.googleapis.com/upload/v1beta/files"

# ==================== Default Configuration ====================

DEFAULT_TIMEOUT = 30.0
DEFAULT_CONNECT_TIMEOUT = 30.0
DEFAULT_MAX_OUTPUT_TOKENS = 8192
DEFAULT_TEMPERATURE = 1.0

# Upper bound for a single object in a streamed response body
DEFAULT_STREAM_MAX_JSON_SIZE = 8 * 1024 * 1024


# ==================== Available Models ====================


class Models(str, Enum):
    """Known Gemini and Gemma models.

    Any other model name can be passed as a plain string wherever a model
    is accepted.
    """
    GEMINI_15_PRO_EXP_0827 = "gemini-1.5-pro-exp-0827"
    GEMINI_15_FLASH_EXP_0827 = "gemini-1.5-flash-exp-0827"
    GEMINI_15_FLASH_8B_EXP_0827 = "gemini-1.5-flash-8b-exp-0827"
    GEMINI_15_PRO = "gemini-1.5-pro"
    GEMINI_2_FLASH_EXP = "gemini-2.0-flash-exp"
    GEMINI_2_FLASH = "gemini-2.0-flash"
    GEMINI_2_FLASH_LITE = "gemini-2.0-flash-lite"
    GEMINI_2_FLASH_THINKING_EXP = "gemini-2.0-flash-thinking-exp-01-21"
    GEMINI_2_PRO_EXP_1206 = "gemini-exp-1206"
    GEMINI_2_PRO_EXP = "gemini-2.0-pro-exp-02-05"
    GEMINI_25_PRO_EXP = "gemini-2.5-pro-preview-05-06"
    GEMINI_15_FLASH = "gemini-1.5-flash"
    GEMINI_10_PRO = "gemini-1.0-pro"
    GEMMA_2_2B_IT = "gemma-2-2b-it"
    GEMMA_2_9B_IT = "gemma-2-9b-it"
    GEMMA_2_27B_IT = "gemma-2-27b-it"

    def __str__(self) -> str:
        return self.value

    @classmethod
    def default(cls) -> "Models":
        return cls.GEMINI_2_FLASH


ModelLike = Union[Models, str]


def model_name(model: ModelLike) -> str:
    """Return the wire name of a model.

    Custom names have any double quotes stripped.
    """
    if isinstance(model, Models):
        return model.value
    return str(model).replace('"', "")


def _join(base_url: str, path: str) -> str:
    if not base_url.endswith("/"):
        base_url += "/"
    return base_url + path


def generate_content_url(model: ModelLike, base_url: str = API_BASE_URL) -> str:
    """Build the batch ``generateContent`` URL for a model."""
    return _join(base_url, f"models/{model_name(model)}:generateContent")


def stream_generate_content_url(model: ModelLike, base_url: str = API_BASE_URL) -> str:
    """Build the ``streamGenerateContent`` URL for a model."""
    return _join(base_url, f"models/{model_name(model)}:streamGenerateContent")


def files_url(base_url: str = API_BASE_URL) -> str:
    """Build the Files API listing URL."""
    return _join(base_url, "files")


def resource_url(name: str, base_url: str = API_BASE_URL) -> str:
    """Build the URL of a named resource such as ``files/abc123``."""
    return _join(base_url, name.lstrip("/"))


def upload_url(base_url: str = API_BASE_URL) -> str:
    """Build the resumable upload URL matching a base URL.

    ``https://host/v1beta/`` maps to ``https://host/upload/v1beta/files``.
    """
    if base_url.rstrip("/") == API_BASE_URL.rstrip("/"):
        return UPLOAD_URL
    parts = urllib.parse.urlsplit(base_url)
    path = "/upload/" + parts.path.strip("/") + "/files"
    return urllib.parse.urlunsplit((parts.scheme, parts.netloc, path.replace("//", "/"), "", ""))
