"""Client and session for the Gemini generateContent API.

:class:`GemSession` owns the conversation :class:`~gemclient.context.Context`
and a :class:`Client`. Each ``send_*`` call appends the caller's turn,
sends the whole history, and records the model's reply as a new turn.

Usage:
    session = GemSession.builder().model(Models.GEMINI_2_FLASH).build()

    settings = Settings()
    settings.set_all_safety_settings(HarmBlockThreshold.BLOCK_NONE)

    response = session.send_message("Hello! What is your name?", Role.USER, settings)
    print(response.text)

    for chunk in session.send_message_stream("Tell me a story", Role.USER, settings):
        print(chunk.text or "", end="")
"""

import json
import logging
from datetime import timedelta
from typing import Any, Callable, Dict, Iterator, List, Optional, Union

import httpx

from .context import Context
from .converters import api_error_from_api, response_from_api
from .env import (
    get_checked_credential_locations,
    resolve_api_key,
    resolve_base_url,
    resolve_connect_timeout,
    resolve_model,
    resolve_timeout,
)
from .errors import (
    AllCandidatesBlockedError,
    EmptyApiResponseError,
    FeedbackError,
    GemConnectionError,
    GeminiAPIError,
    MissingApiKeyError,
    ParsingError,
    ResponseError,
    StreamError,
)
from .models import (
    ModelLike,
    Models,
    generate_content_url,
    model_name,
    stream_generate_content_url,
)
from .proxy import get_httpx_client
from .settings import Settings
from .streaming import iter_json_array
from .types import Blob, FileData, GenerateContentResponse, Role

logger = logging.getLogger(__name__)

Seconds = Union[float, int, timedelta]


def _to_seconds(value: Seconds) -> float:
    if isinstance(value, timedelta):
        return value.total_seconds()
    return float(value)


def _check_candidates(response: GenerateContentResponse) -> None:
    """Reject responses that carry no usable candidate.

    Raises:
        FeedbackError: The prompt was blocked.
        EmptyApiResponseError: No candidates and no block reason.
        AllCandidatesBlockedError: Every candidate lacks content.
    """
    candidates = response.get_candidates()
    if not candidates:
        reason = response.feedback()
        if reason is not None:
            raise FeedbackError(str(reason))
        raise EmptyApiResponseError()

    if all(candidate.get_content() is None for candidate in candidates):
        reason = response.feedback()
        if reason is not None:
            raise FeedbackError(str(reason))
        raise AllCandidatesBlockedError()


def _first_text(response: GenerateContentResponse) -> Optional[str]:
    candidates = response.get_candidates()
    if not candidates or candidates[0].content is None:
        return None
    return candidates[0].content.get_text()


class ResponseStream:
    """Iterator over the chunks of a streamed response.

    Each chunk is a :class:`GenerateContentResponse`. The HTTP response is
    closed when iteration ends, fails, or :meth:`close` is called.

    Args:
        response: Streaming httpx response with a 200 status.
        max_json_size: Largest accepted chunk, in bytes.
        on_complete: Called once with the concatenated text of the first
            candidate after the stream is fully consumed.
    """

    def __init__(
        self,
        response: httpx.Response,
        max_json_size: int,
        on_complete: Optional[Callable[[str], None]] = None,
    ):
        self._response = response
        self._chunks = self._iter_chunks(max_json_size)
        self._on_complete = on_complete
        self._texts: List[str] = []
        self._done = False

    def _iter_chunks(self, max_json_size: int) -> Iterator[GenerateContentResponse]:
        try:
            for item in iter_json_array(self._response.iter_bytes(), max_json_size):
                try:
                    yield response_from_api(item)
                except ParsingError as e:
                    raise StreamError(f"Invalid stream chunk: {e}") from e
        except httpx.HTTPError as e:
            raise StreamError(f"Stream error: {e}") from e
        finally:
            self._response.close()

    def __iter__(self) -> "ResponseStream":
        return self

    def __next__(self) -> GenerateContentResponse:
        if self._done:
            raise StopIteration
        try:
            chunk = next(self._chunks)
        except StopIteration:
            self._finish()
            raise
        except Exception:
            self._done = True
            raise

        text = _first_text(chunk)
        if text:
            self._texts.append(text)
        return chunk

    def _finish(self) -> None:
        self._done = True
        callback, self._on_complete = self._on_complete, None
        if callback is not None and self._texts:
            callback(self.text)

    @property
    def text(self) -> str:
        """Text received so far from the first candidate."""
        return "".join(self._texts)

    @property
    def status_code(self) -> int:
        return self._response.status_code

    def close(self) -> None:
        """Stop the stream without recording a reply."""
        self._done = True
        self._chunks.close()
        self._response.close()

    def __enter__(self) -> "ResponseStream":
        return self

    def __exit__(self, exc_type, exc, tb) -> None:
        self.close()


class Client:
    """HTTP client for one model of the Gemini API.

    Args:
        api_key: API key sent as the ``key`` query parameter.
        model: Model to address; a :class:`Models` member or any model name.
        timeout: Request timeout in seconds.
        connect_timeout: Connection timeout in seconds.
        base_url: API base URL (defaults to GEMINI_BASE_URL or the public endpoint).
        http_client: Preconfigured httpx client; one is created when omitted.
    """

    def __init__(
        self,
        api_key: str,
        model: ModelLike = Models.GEMINI_2_FLASH,
        timeout: Seconds = 30.0,
        connect_timeout: Seconds = 30.0,
        base_url: Optional[str] = None,
        http_client: Optional[httpx.Client] = None,
    ):
        self._api_key = api_key
        self._model = model
        self._base_url = base_url or resolve_base_url()
        self._owns_http = http_client is None
        self._http = http_client or get_httpx_client(
            base_url=self._base_url,
            timeout=httpx.Timeout(_to_seconds(timeout), connect=_to_seconds(connect_timeout)),
        )

    @property
    def model(self) -> ModelLike:
        return self._model

    @property
    def base_url(self) -> str:
        return self._base_url

    @property
    def http(self) -> httpx.Client:
        return self._http

    def _params(self) -> Dict[str, str]:
        return {"key": self._api_key}

    def send_context(self, context: Context, settings: Settings) -> GenerateContentResponse:
        """Send the history and return the parsed response.

        Raises:
            GemConnectionError: The request could not be sent.
            ResponseError: The response body could not be read.
            ParsingError: The body is not a valid response or error.
            GeminiAPIError: The service returned an error.
            FeedbackError: The prompt was blocked.
            EmptyApiResponseError: The response has no candidates.
            AllCandidatesBlockedError: No candidate has content.
        """
        url = generate_content_url(self._model, self._base_url)
        logger.debug("URL: %s", url)

        body = context.build(settings)
        if logger.isEnabledFor(logging.DEBUG):
            logger.debug("Request: %s", json.dumps(body))

        try:
            with self._http.stream(
                "POST",
                url,
                params=self._params(),
                headers={"Content-Type": "application/json"},
                json=body,
            ) as response:
                status_code = response.status_code
                try:
                    response.read()
                except httpx.HTTPError as e:
                    raise ResponseError(f"Failed to read response body: {e}", status_code) from e
        except ResponseError:
            raise
        except httpx.HTTPError as e:
            raise GemConnectionError(f"Request to {model_name(self._model)} failed: {e}") from e

        response_text = response.text
        logger.debug("Response (%d): %s", status_code, response_text)

        result = self._parse_response(status_code, response_text)
        _check_candidates(result)
        return result

    @staticmethod
    def _parse_response(status_code: int, response_text: str) -> GenerateContentResponse:
        try:
            data: Any = json.loads(response_text)
        except json.JSONDecodeError as e:
            raise ParsingError(f"Invalid JSON in response (status {status_code}): {e}") from e

        if status_code == 200:
            return response_from_api(data)

        raise GeminiAPIError(api_error_from_api(data), status_code)

    def send_context_stream(
        self,
        context: Context,
        settings: Settings,
        on_complete: Optional[Callable[[str], None]] = None,
    ) -> ResponseStream:
        """Send the history to ``streamGenerateContent``.

        Args:
            context: Conversation to send.
            settings: Request settings; ``stream_max_json_size`` bounds
                each streamed chunk.
            on_complete: Receives the reply text once the stream is consumed.

        Returns:
            A :class:`ResponseStream` of response chunks.

        Raises:
            GemConnectionError: The request could not be sent.
            StreamError: The service answered with a non-200 status.
        """
        url = stream_generate_content_url(self._model, self._base_url)
        logger.debug("URL: %s", url)

        request = self._http.build_request(
            "POST",
            url,
            params=self._params(),
            headers={"Content-Type": "application/json"},
            json=context.build(settings),
        )

        try:
            response = self._http.send(request, stream=True)
        except httpx.HTTPError as e:
            raise GemConnectionError(f"Request to {model_name(self._model)} failed: {e}") from e

        if response.status_code != 200:
            try:
                response.read()
                text = response.text
            except httpx.HTTPError as e:
                text = f"<unreadable body: {e}>"
            finally:
                response.close()
            raise StreamError(
                f"Response error: {text} (status code: {response.status_code})"
            )

        return ResponseStream(
            response,
            settings.get_stream_max_json_size(),
            on_complete=on_complete,
        )

    def close(self) -> None:
        """Close the underlying HTTP client if this instance created it."""
        if self._owns_http:
            self._http.close()

    def __enter__(self) -> "Client":
        return self

    def __exit__(self, exc_type, exc, tb) -> None:
        self.close()


class GemSession:
    """A conversation with one Gemini model.

    Args:
        api_key: API key; resolved from GEMINI_API_KEY (or ``.env``) when omitted.
        model: Model to use; GEMINI_MODEL or the default model when omitted.
        timeout: Request timeout; GEMINI_TIMEOUT or 30 seconds when omitted.
        connect_timeout: Connection timeout; GEMINI_CONNECT_TIMEOUT or 30 seconds.
        context: Initial conversation history.
        base_url: API base URL override.
        http_client: Preconfigured httpx client.

    Raises:
        MissingApiKeyError: No API key was given or found.
    """

    def __init__(
        self,
        api_key: Optional[str] = None,
        model: Optional[ModelLike] = None,
        timeout: Optional[Seconds] = None,
        connect_timeout: Optional[Seconds] = None,
        context: Optional[Context] = None,
        base_url: Optional[str] = None,
        http_client: Optional[httpx.Client] = None,
    ):
        if not api_key:
            api_key = resolve_api_key()
            if not api_key:
                raise MissingApiKeyError(
                    checked_locations=get_checked_credential_locations(),
                )

        self._client = Client(
            api_key,
            model=model if model is not None else (resolve_model() or Models.default()),
            timeout=timeout if timeout is not None else resolve_timeout(),
            connect_timeout=(
                connect_timeout if connect_timeout is not None else resolve_connect_timeout()
            ),
            base_url=base_url,
            http_client=http_client,
        )
        self._context = context if context is not None else Context()

    @staticmethod
    def builder() -> "GemSessionBuilder":
        """Return a builder for a customised session."""
        return GemSessionBuilder()

    @property
    def context(self) -> Context:
        return self._context

    @property
    def client(self) -> Client:
        return self._client

    @property
    def model(self) -> ModelLike:
        return self._client.model

    # ==================== Batch ====================

    def _record_reply(self, response: GenerateContentResponse) -> GenerateContentResponse:
        candidates = response.get_candidates()
        if candidates and candidates[0].get_content() is not None:
            text = candidates[0].get_content().get_text()
            if text is None:
                raise EmptyApiResponseError("Model reply contained no text")
            self._context.push_message(Role.MODEL, text)
        return response

    def send_message(
        self,
        message: str,
        role: Role = Role.USER,
        settings: Optional[Settings] = None,
    ) -> GenerateContentResponse:
        """Send a text message and return the response."""
        self._context.push_message(role, message)
        return self._record_reply(self.send_context(settings))

    def send_file(
        self,
        file_data: FileData,
        role: Role = Role.USER,
        settings: Optional[Settings] = None,
    ) -> GenerateContentResponse:
        """Send an uploaded file and return the response."""
        self._context.push_file(role, file_data)
        return self._record_reply(self.send_context(settings))

    def send_blob(
        self,
        blob: Blob,
        role: Role = Role.USER,
        settings: Optional[Settings] = None,
    ) -> GenerateContentResponse:
        """Send inline data and return the response."""
        self._context.push_blob(role, blob)
        return self._record_reply(self.send_context(settings))

    def send_message_with_file(
        self,
        message: str,
        file_data: FileData,
        role: Role = Role.USER,
        settings: Optional[Settings] = None,
    ) -> GenerateContentResponse:
        """Send a text message with an attached uploaded file."""
        self._context.push_message_with_file(role, message, file_data)
        return self._record_reply(self.send_context(settings))

    def send_message_with_blob(
        self,
        message: str,
        blob: Blob,
        role: Role = Role.USER,
        settings: Optional[Settings] = None,
    ) -> GenerateContentResponse:
        """Send a text message with attached inline data."""
        self._context.push_message_with_blob(role, message, blob)
        return self._record_reply(self.send_context(settings))

    # ==================== Streaming ====================

    def _stream(self, settings: Optional[Settings]) -> ResponseStream:
        return self.send_context_stream(
            settings,
            on_complete=lambda text: self._context.push_message(Role.MODEL, text),
        )

    def send_message_stream(
        self,
        message: str,
        role: Role = Role.USER,
        settings: Optional[Settings] = None,
    ) -> ResponseStream:
        """Send a text message and stream the response."""
        self._context.push_message(role, message)
        return self._stream(settings)

    def send_file_stream(
        self,
        file_data: FileData,
        role: Role = Role.USER,
        settings: Optional[Settings] = None,
    ) -> ResponseStream:
        """Send an uploaded file and stream the response."""
        self._context.push_file(role, file_data)
        return self._stream(settings)

    def send_blob_stream(
        self,
        blob: Blob,
        role: Role = Role.USER,
        settings: Optional[Settings] = None,
    ) -> ResponseStream:
        """Send inline data and stream the response."""
        self._context.push_blob(role, blob)
        return self._stream(settings)

    def send_message_with_file_stream(
        self,
        message: str,
        file_data: FileData,
        role: Role = Role.USER,
        settings: Optional[Settings] = None,
    ) -> ResponseStream:
        """Send a text message with an uploaded file and stream the response."""
        self._context.push_message_with_file(role, message, file_data)
        return self._stream(settings)

    def send_message_with_blob_stream(
        self,
        message: str,
        blob: Blob,
        role: Role = Role.USER,
        settings: Optional[Settings] = None,
    ) -> ResponseStream:
        """Send a text message with inline data and stream the response."""
        self._context.push_message_with_blob(role, message, blob)
        return self._stream(settings)

    # ==================== Raw ====================

    def send_context(self, settings: Optional[Settings] = None) -> GenerateContentResponse:
        """Send the current history as-is; the reply is not recorded."""
        return self._client.send_context(self._context, settings or Settings())

    def send_context_stream(
        self,
        settings: Optional[Settings] = None,
        on_complete: Optional[Callable[[str], None]] = None,
    ) -> ResponseStream:
        """Stream a reply to the current history as-is."""
        return self._client.send_context_stream(
            self._context, settings or Settings(), on_complete=on_complete
        )

    def close(self) -> None:
        self._client.close()

    def __enter__(self) -> "GemSession":
        return self

    def __exit__(self, exc_type, exc, tb) -> None:
        self.close()


class GemSessionBuilder:
    """Fluent builder for :class:`GemSession`.

    Defaults: 30 second timeouts, the default model, an empty context, and
    the API key from GEMINI_API_KEY.
    """

    def __init__(self):
        self._timeout: Seconds = 30.0
        self._connect_timeout: Seconds = 30.0
        self._model: ModelLike = Models.default()
        self._context: Optional[Context] = None
        self._api_key: Optional[str] = None
        self._base_url: Optional[str] = None
        self._http_client: Optional[httpx.Client] = None

    def timeout(self, timeout: Seconds) -> "GemSessionBuilder":
        self._timeout = timeout
        return self

    def connect_timeout(self, connect_timeout: Seconds) -> "GemSessionBuilder":
        self._connect_timeout = connect_timeout
        return self

    def model(self, model: ModelLike) -> "GemSessionBuilder":
        self._model = model
        return self

    def custom_model(self, model: str) -> "GemSessionBuilder":
        self._model = model
        return self

    def context(self, context: Context) -> "GemSessionBuilder":
        self._context = context
        return self

    def api_key(self, api_key: str) -> "GemSessionBuilder":
        self._api_key = api_key
        return self

    def base_url(self, base_url: str) -> "GemSessionBuilder":
        self._base_url = base_url
        return self

    def http_client(self, http_client: httpx.Client) -> "GemSessionBuilder":
        self._http_client = http_client
        return self

    def build(self) -> GemSession:
        """Create the session.

        Raises:
            MissingApiKeyError: No API key was set and none is configured.
        """
        return GemSession(
            api_key=self._api_key,
            model=self._model,
            timeout=self._timeout,
            connect_timeout=self._connect_timeout,
            context=self._context if self._context is not None else Context(),
            base_url=self._base_url,
            http_client=self._http_client,
        )
