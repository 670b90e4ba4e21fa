"""Conversation history and request building."""

from typing import Any, Dict, List, Optional

from .converters import build_generate_request, deserialize_contents, serialize_contents
from .models import DEFAULT_MAX_OUTPUT_TOKENS, DEFAULT_TEMPERATURE
from .settings import GenerationConfig, SafetySetting, Settings
from .types import Blob, Content, FileData, HarmBlockThreshold, HarmCategory, Part, Role


def default_safety_settings() -> List[SafetySetting]:
    """Every harm category with blocking disabled."""
    return [
        SafetySetting(category=category, threshold=HarmBlockThreshold.BLOCK_NONE)
        for category in HarmCategory
    ]


def default_generation_config() -> GenerationConfig:
    return GenerationConfig(
        max_output_tokens=DEFAULT_MAX_OUTPUT_TOKENS,
        temperature=DEFAULT_TEMPERATURE,
    )


class Context:
    """Append-only list of conversation turns.

    Usage:
        context = Context()
        context.push_message(Role.USER, "Hello!")
        body = context.build(Settings())
    """

    def __init__(self, contents: Optional[List[Content]] = None):
        self._contents: List[Content] = list(contents) if contents else []

    def _push(self, role: Optional[Role], parts: List[Part]) -> None:
        self._contents.append(Content(parts=parts, role=role))

    def push_message(self, role: Optional[Role], text: str) -> None:
        self._push(role, [Part.from_text(text)])

    def push_file(self, role: Optional[Role], file_data: FileData) -> None:
        self._push(role, [Part.from_file_data(file_data)])

    def push_blob(self, role: Optional[Role], blob: Blob) -> None:
        self._push(role, [Part.from_blob(blob)])

    def push_message_with_file(
        self, role: Optional[Role], text: str, file_data: FileData
    ) -> None:
        self._push(role, [Part.from_text(text), Part.from_file_data(file_data)])

    def push_message_with_blob(self, role: Optional[Role], text: str, blob: Blob) -> None:
        self._push(role, [Part.from_text(text), Part.from_blob(blob)])

    def build(self, settings: Settings) -> Dict[str, Any]:
        """Build the request body for the current history.

        Unset safety settings default to ``BLOCK_NONE`` for every category
        and an unset generation config defaults to 8192 output tokens at
        temperature 1.0.
        """
        return build_generate_request(
            contents=self._contents,
            safety_settings=(
                settings.safety_settings
                if settings.safety_settings is not None
                else default_safety_settings()
            ),
            generation_config=(
                settings.generation_config
                if settings.generation_config is not None
                else default_generation_config()
            ),
            system_instruction=settings.system_instruction,
        )

    def clear(self) -> None:
        self._contents.clear()

    def is_empty(self) -> bool:
        return not self._contents

    def len(self) -> int:
        return len(self._contents)

    def __len__(self) -> int:
        return len(self._contents)

    def get_contents(self) -> List[Content]:
        return self._contents

    def to_json(self) -> str:
        """Serialize the history for persistence."""
        return serialize_contents(self._contents)

    @classmethod
    def from_json(cls, data: str) -> 'Context':
        """Restore a history produced by :meth:`to_json`."""
        return cls(deserialize_contents(data))
