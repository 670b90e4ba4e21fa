"""Typed models for Gemini conversation content and API responses.

Requests are built from :class:`Content` turns; responses are parsed into
:class:`GenerateContentResponse` by :mod:`gemclient.converters`.
"""

import base64
from dataclasses import dataclass, field
from enum import Enum
from typing import List, Optional


class Role(str, Enum):
    """Author of a conversation turn."""
    USER = "user"
    MODEL = "model"

    @classmethod
    def default(cls) -> "Role":
        return cls.USER


class FinishReason(str, Enum):
    """Reason why the model stopped generating a candidate."""
    FINISH_REASON_UNSPECIFIED = "FINISH_REASON_UNSPECIFIED"
    STOP = "STOP"                                  # Natural stop point or stop sequence
    MAX_TOKENS = "MAX_TOKENS"                      # Requested token limit reached
    SAFETY = "SAFETY"                              # Flagged for safety
    RECITATION = "RECITATION"                      # Flagged for recitation
    LANGUAGE = "LANGUAGE"                          # Unsupported language
    OTHER = "OTHER"
    BLOCKLIST = "BLOCKLIST"                        # Forbidden terms
    PROHIBITED_CONTENT = "PROHIBITED_CONTENT"
    SPII = "SPII"                                  # Sensitive personal information
    MALFORMED_FUNCTION_CALL = "MALFORMED_FUNCTION_CALL"


class BlockReason(str, Enum):
    """Reason the service refused a prompt."""
    BLOCK_REASON_UNSPECIFIED = "BLOCK_REASON_UNSPECIFIED"
    SAFETY = "SAFETY"
    OTHER = "OTHER"
    BLOCKLIST = "BLOCKLIST"
    PROHIBITED_CONTENT = "PROHIBITED_CONTENT"

    def __str__(self) -> str:
        return _BLOCK_REASON_DISPLAY[self]


_BLOCK_REASON_DISPLAY = {
    BlockReason.BLOCK_REASON_UNSPECIFIED: "Unspecified",
    BlockReason.SAFETY: "Safety",
    BlockReason.OTHER: "Other",
    BlockReason.BLOCKLIST: "Blocklist",
    BlockReason.PROHIBITED_CONTENT: "Prohibited Content",
}


class HarmCategory(str, Enum):
    """Safety categories that can be configured per request."""
    HARM_CATEGORY_HATE_SPEECH = "HARM_CATEGORY_HATE_SPEECH"
    HARM_CATEGORY_SEXUALLY_EXPLICIT = "HARM_CATEGORY_SEXUALLY_EXPLICIT"
    HARM_CATEGORY_DANGEROUS_CONTENT = "HARM_CATEGORY_DANGEROUS_CONTENT"
    HARM_CATEGORY_HARASSMENT = "HARM_CATEGORY_HARASSMENT"


class HarmBlockThreshold(str, Enum):
    """Probability threshold at which content is blocked."""
    HARM_BLOCK_THRESHOLD_UNSPECIFIED = "HARM_BLOCK_THRESHOLD_UNSPECIFIED"
    BLOCK_LOW_AND_ABOVE = "BLOCK_LOW_AND_ABOVE"
    BLOCK_MEDIUM_AND_ABOVE = "BLOCK_MEDIUM_AND_ABOVE"
    BLOCK_ONLY_HIGH = "BLOCK_ONLY_HIGH"
    BLOCK_NONE = "BLOCK_NONE"


@dataclass
class Blob:
    """Inline binary data sent with a message.

    Attributes:
        mime_type: IANA MIME type of the data.
        data: Base64-encoded bytes.
    """
    mime_type: str
    data: str

    @classmethod
    def from_bytes(cls, mime_type: str, data: bytes) -> 'Blob':
        """Create a blob from raw bytes."""
        return cls(mime_type=mime_type, data=base64.b64encode(data).decode("ascii"))

    def decode(self) -> bytes:
        """Return the raw bytes."""
        return base64.b64decode(self.data)


@dataclass
class FileData:
    """Reference to a file previously uploaded through the Files API."""
    mime_type: str
    file_uri: str


@dataclass
class Part:
    """A single piece of a turn: text, inline data or a file reference."""
    text: Optional[str] = None
    inline_data: Optional[Blob] = None
    file_data: Optional[FileData] = None

    @classmethod
    def from_text(cls, text: str) -> 'Part':
        return cls(text=text)

    @classmethod
    def from_blob(cls, blob: Blob) -> 'Part':
        return cls(inline_data=blob)

    @classmethod
    def from_file_data(cls, file_data: FileData) -> 'Part':
        return cls(file_data=file_data)


@dataclass
class Content:
    """A role-tagged conversation turn."""
    parts: List[Part] = field(default_factory=list)
    role: Optional[Role] = None

    def get_text(self) -> Optional[str]:
        """Return the first text part, if any."""
        for part in self.parts:
            if part.text is not None:
                return part.text
        return None


@dataclass
class SafetyRating:
    category: Optional[str] = None
    probability: Optional[str] = None
    blocked: Optional[bool] = None


@dataclass
class PromptFeedback:
    """The service's verdict on the prompt."""
    block_reason: Optional[BlockReason] = None
    safety_ratings: List[SafetyRating] = field(default_factory=list)


@dataclass
class UsageMetadata:
    """Token accounting for a request.

    Attributes:
        prompt_token_count: Tokens in the prompt.
        cached_content_token_count: Tokens served from cached content.
        candidates_token_count: Tokens across all generated candidates.
        total_token_count: Prompt plus candidate tokens.
    """
    prompt_token_count: Optional[int] = None
    cached_content_token_count: Optional[int] = None
    candidates_token_count: Optional[int] = None
    total_token_count: Optional[int] = None

    def get_prompt_token_count(self) -> Optional[int]:
        return self.prompt_token_count

    def get_cached_content_token_count(self) -> Optional[int]:
        return self.cached_content_token_count

    def get_candidates_token_count(self) -> Optional[int]:
        return self.candidates_token_count

    def get_total_token_count(self) -> Optional[int]:
        return self.total_token_count


_BLOCKED_FINISH_REASONS = frozenset({
    FinishReason.SAFETY,
    FinishReason.RECITATION,
    FinishReason.PROHIBITED_CONTENT,
})


@dataclass
class Candidate:
    """One generated alternative."""
    content: Optional[Content] = None
    finish_reason: Optional[FinishReason] = None
    safety_ratings: Optional[List[SafetyRating]] = None
    token_count: Optional[int] = None
    index: Optional[int] = None

    def get_content(self) -> Optional[Content]:
        return self.content

    def is_blocked(self) -> bool:
        """True when generation stopped for a safety-type reason."""
        return self.finish_reason in _BLOCKED_FINISH_REASONS

    def get_token_count(self) -> Optional[int]:
        return self.token_count


@dataclass
class GenerateContentResponse:
    """A parsed ``generateContent`` response (or one streamed chunk of it)."""
    candidates: List[Candidate] = field(default_factory=list)
    prompt_feedback: Optional[PromptFeedback] = None
    usage_metadata: Optional[UsageMetadata] = None

    def get_candidates(self) -> List[Candidate]:
        return self.candidates

    def get_results(self) -> List[str]:
        """Return the text of every candidate that has one."""
        texts = []
        for candidate in self.candidates:
            if candidate.content is not None:
                text = candidate.content.get_text()
                if text is not None:
                    texts.append(text)
        return texts

    def get_usage_metadata(self) -> Optional[UsageMetadata]:
        return self.usage_metadata

    def feedback(self) -> Optional[BlockReason]:
        """Return the prompt block reason, if the prompt was blocked."""
        if self.prompt_feedback is None:
            return None
        return self.prompt_feedback.block_reason

    @property
    def text(self) -> Optional[str]:
        """Text of the first candidate that has any."""
        results = self.get_results()
        return results[0] if results else None


@dataclass
class ApiError:
    """Error object returned by the service on non-200 responses."""
    code: int
    message: str
    status: str

    def __str__(self) -> str:
        return f"Error {self.code}: {self.message} ({self.status})"


@dataclass
class Status:
    code: int = 0
    message: str = ""


@dataclass
class VideoMetadata:
    video_duration: str = ""
