"""Per-request generation and safety settings."""

from dataclasses import dataclass
from typing import List, Optional

from .models import DEFAULT_STREAM_MAX_JSON_SIZE
from .types import HarmBlockThreshold, HarmCategory

MAX_STOP_SEQUENCES = 5


@dataclass
class SafetySetting:
    category: HarmCategory
    threshold: HarmBlockThreshold


@dataclass
class GenerationConfig:
    """Sampling and output options sent as ``generationConfig``.

    Attributes:
        stop_sequences: Up to 5 sequences that stop generation.
        response_mime_type: MIME type of the response, e.g. ``application/json``.
        max_output_tokens: Maximum tokens in a candidate.
        temperature: Randomness of the output, in ``[0.0, 2.0]``.
        top_p: Maximum cumulative probability for nucleus sampling.
        top_k: Maximum number of tokens considered for top-k sampling.
    """
    stop_sequences: Optional[List[str]] = None
    response_mime_type: Optional[str] = None
    max_output_tokens: Optional[int] = None
    temperature: Optional[float] = None
    top_p: Optional[float] = None
    top_k: Optional[int] = None

    def __post_init__(self):
        _check_stop_sequences(self.stop_sequences)
        _check_temperature(self.temperature)
        _check_positive("max_output_tokens", self.max_output_tokens)
        _check_positive("top_k", self.top_k)


def _check_temperature(temperature: Optional[float]) -> None:
    if temperature is not None and not 0.0 <= temperature <= 2.0:
        raise ValueError(f"temperature must be within [0.0, 2.0], got {temperature}")


def _check_stop_sequences(stop_sequences: Optional[List[str]]) -> None:
    if stop_sequences is not None and len(stop_sequences) > MAX_STOP_SEQUENCES:
        raise ValueError(
            f"at most {MAX_STOP_SEQUENCES} stop sequences are allowed, "
            f"got {len(stop_sequences)}"
        )


def _check_positive(name: str, value: Optional[int]) -> None:
    if value is not None and value <= 0:
        raise ValueError(f"{name} must be positive, got {value}")


class Settings:
    """Safety settings, generation config and system instruction for a request.

    Unset values fall back to the request defaults applied by
    :meth:`gemclient.context.Context.build`.
    """

    def __init__(self):
        self.safety_settings: Optional[List[SafetySetting]] = None
        self.generation_config: Optional[GenerationConfig] = None
        self.system_instruction: Optional[str] = None
        self.stream_max_json_size: int = DEFAULT_STREAM_MAX_JSON_SIZE

    def set_all_safety_settings(self, threshold: HarmBlockThreshold) -> None:
        """Apply one threshold to every harm category."""
        self.safety_settings = [
            SafetySetting(category=category, threshold=threshold)
            for category in HarmCategory
        ]

    def set_advance_settings(
        self,
        stop_sequences: Optional[List[str]] = None,
        response_mime_type: Optional[str] = None,
        max_output_tokens: Optional[int] = None,
        temperature: Optional[float] = None,
        top_p: Optional[float] = None,
        top_k: Optional[int] = None,
    ) -> None:
        """Replace the whole generation config."""
        self.generation_config = GenerationConfig(
            stop_sequences=stop_sequences,
            response_mime_type=response_mime_type,
            max_output_tokens=max_output_tokens,
            temperature=temperature,
            top_p=top_p,
            top_k=top_k,
        )

    def _config(self) -> GenerationConfig:
        if self.generation_config is None:
            self.generation_config = GenerationConfig()
        return self.generation_config

    def set_temperature(self, temperature: float) -> None:
        _check_temperature(temperature)
        self._config().temperature = temperature

    def set_max_output_tokens(self, max_output_tokens: int) -> None:
        _check_positive("max_output_tokens", max_output_tokens)
        self._config().max_output_tokens = max_output_tokens

    def set_top_p(self, top_p: float) -> None:
        self._config().top_p = top_p

    def set_top_k(self, top_k: int) -> None:
        _check_positive("top_k", top_k)
        self._config().top_k = top_k

    def set_stop_sequences(self, stop_sequences: List[str]) -> None:
        _check_stop_sequences(stop_sequences)
        self._config().stop_sequences = list(stop_sequences)

    def set_response_mime_type(self, response_mime_type: str) -> None:
        self._config().response_mime_type = response_mime_type

    def set_system_instruction(self, instruction: str) -> None:
        self.system_instruction = instruction

    def set_stream_max_json_size(self, size: int) -> None:
        """Set the largest single streamed object, in bytes."""
        _check_positive("stream_max_json_size", size)
        self.stream_max_json_size = size

    def get_stream_max_json_size(self) -> int:
        return self.stream_max_json_size
