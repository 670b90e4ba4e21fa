"""Files API support: resumable uploads and a content-addressed file cache.

Files uploaded through the Files API live for a limited time (48 hours)
and are referenced from messages by URI. :class:`FileManager` keeps the
uploaded files keyed by the SHA-256 of their bytes so the same content is
only uploaded once while the remote copy is still alive.

Usage:
    manager = FileManager()
    file_data = manager.add_file("report.pdf")
    session.send_message_with_file("Summarise this", file_data)
"""

import base64
import binascii
import hashlib
import logging
import mimetypes
import threading
import time
from dataclasses import dataclass, field
from datetime import datetime, timedelta, timezone
from pathlib import Path
from typing import Any, Dict, List, Optional, Union

import httpx

from .env import (
    get_checked_credential_locations,
    resolve_api_key,
    resolve_base_url,
    resolve_connect_timeout,
    resolve_timeout,
)
from .errors import FileError, MissingApiKeyError
from .models import API_BASE_URL, files_url, resource_url, upload_url
from .proxy import get_httpx_client
from .types import FileData, Status, VideoMetadata

logger = logging.getLogger(__name__)

# Cached files expiring sooner than this are re-uploaded
EXPIRY_MARGIN = timedelta(minutes=10)

DEFAULT_POLL_ATTEMPTS = 3
DEFAULT_POLL_INTERVAL = 3.0

STATE_ACTIVE = "ACTIVE"
STATE_PROCESSING = "PROCESSING"
STATE_FAILED = "FAILED"

# Types accepted by Gemini that the platform MIME table may lack
_EXTRA_MIME_TYPES = {
    ".md": "text/markdown",
    ".py": "text/x-python",
    ".js": "text/javascript",
    ".ts": "text/x-typescript",
    ".csv": "text/csv",
    ".rtf": "text/rtf",
    ".webp": "image/webp",
    ".heic": "image/heic",
    ".heif": "image/heif",
    ".flac": "audio/flac",
    ".aac": "audio/aac",
    ".ogg": "audio/ogg",
    ".aiff": "audio/aiff",
    ".mp3": "audio/mpeg",
    ".wav": "audio/wav",
    ".mp4": "video/mp4",
    ".mpeg": "video/mpeg",
    ".mov": "video/quicktime",
    ".avi": "video/x-msvideo",
    ".flv": "video/x-flv",
    ".webm": "video/webm",
    ".wmv": "video/x-ms-wmv",
    ".3gp": "video/3gpp",
}


def get_mime_type(path: Union[str, Path]) -> Optional[str]:
    """Guess the MIME type of a file from its extension.

    Returns:
        The MIME type, or None when the extension is unknown.
    """
    suffix = Path(path).suffix.lower()
    if suffix in _EXTRA_MIME_TYPES:
        return _EXTRA_MIME_TYPES[suffix]
    mime_type, _ = mimetypes.guess_type("file" + suffix)
    return mime_type


def sha256_hex(data: bytes) -> str:
    return hashlib.sha256(data).hexdigest()


def normalize_hash(value: str) -> str:
    """Return a SHA-256 digest as lowercase hex.

    The Files API reports ``sha256Hash`` base64-encoded, either of the raw
    32-byte digest or of its hex text. Values that decode to neither are
    returned unchanged.
    """
    try:
        raw = base64.b64decode(value, validate=True)
    except (binascii.Error, ValueError):
        return value
    if len(raw) == hashlib.sha256().digest_size:
        return raw.hex()
    try:
        decoded = raw.decode("ascii")
    except UnicodeDecodeError:
        return value
    if len(decoded) == 64 and all(c in "0123456789abcdefABCDEF" for c in decoded):
        return decoded.lower()
    return value


def parse_timestamp(value: str) -> Optional[datetime]:
    """Parse an RFC 3339 timestamp such as ``2024-05-01T12:00:00.123456789Z``."""
    if not value:
        return None
    text = value.strip()
    if text.endswith(("Z", "z")):
        text = text[:-1] + "+00:00"
    # fromisoformat() accepts at most microseconds
    if "." in text:
        head, _, rest = text.partition(".")
        digits = len(rest) - len(rest.lstrip("0123456789"))
        text = head + "." + rest[:digits][:6].ljust(6, "0") + rest[digits:]
    try:
        parsed = datetime.fromisoformat(text)
    except ValueError:
        logger.debug("Unparseable timestamp %r", value)
        return None
    if parsed.tzinfo is None:
        parsed = parsed.replace(tzinfo=timezone.utc)
    return parsed


def _response_json(response: httpx.Response, what: str) -> Any:
    try:
        return response.json()
    except ValueError as e:
        logger.error("Invalid %s response: %s, body: %s", what, e, response.text)
        raise FileError(f"Invalid {what} response: {e}") from e


@dataclass
class File:
    """A file stored by the Files API.

    Attributes:
        name: Resource name, e.g. ``files/abc123``.
        uri: URI used to reference the file in messages.
        sha256_hash: Content hash as reported by the service.
        state: ``PROCESSING``, ``ACTIVE`` or ``FAILED``.
    """
    name: str
    uri: str
    display_name: str = ""
    mime_type: str = ""
    size_bytes: str = ""
    create_time: str = ""
    update_time: str = ""
    expiration_time: str = ""
    sha256_hash: str = ""
    state: str = ""
    error: Optional[Status] = None
    video_metadata: Optional[VideoMetadata] = None
    api_key: str = field(default="", repr=False)

    @classmethod
    def from_api(cls, data: Any, api_key: str = "") -> "File":
        """Build a File from the API's camelCase resource object.

        Raises:
            FileError: ``name`` or ``uri`` is missing.
        """
        if not isinstance(data, dict) or "name" not in data or "uri" not in data:
            raise FileError("File data not found")

        error = None
        if isinstance(data.get("error"), dict):
            error = Status(
                code=int(data["error"].get("code", 0)),
                message=str(data["error"].get("message", "")),
            )

        video_metadata = None
        if isinstance(data.get("videoMetadata"), dict):
            video_metadata = VideoMetadata(
                video_duration=str(data["videoMetadata"].get("videoDuration", "")),
            )

        return cls(
            name=data["name"],
            uri=data["uri"],
            display_name=data.get("displayName", ""),
            mime_type=data.get("mimeType", ""),
            size_bytes=str(data.get("sizeBytes", "")),
            create_time=data.get("createTime", ""),
            update_time=data.get("updateTime", ""),
            expiration_time=data.get("expirationTime", ""),
            sha256_hash=data.get("sha256Hash", ""),
            state=data.get("state", ""),
            error=error,
            video_metadata=video_metadata,
            api_key=api_key,
        )

    @property
    def content_hash(self) -> str:
        """SHA-256 of the file's bytes as lowercase hex."""
        return normalize_hash(self.sha256_hash)

    def expires_at(self) -> Optional[datetime]:
        return parse_timestamp(self.expiration_time)

    def is_expired(self, margin: timedelta = timedelta(0), now: Optional[datetime] = None) -> bool:
        """True if the file expires within ``margin``.

        A file without a readable expiration time counts as expired.
        """
        expires = self.expires_at()
        if expires is None:
            return True
        now = now or datetime.now(timezone.utc)
        return expires <= now + margin

    def to_file_data(self) -> FileData:
        return FileData(mime_type=self.mime_type, file_uri=self.uri)

    @classmethod
    def upload(
        cls,
        http: httpx.Client,
        file_name: str,
        data: bytes,
        mime_type: str,
        api_key: str,
        base_url: str = API_BASE_URL,
        poll_attempts: int = DEFAULT_POLL_ATTEMPTS,
        poll_interval: float = DEFAULT_POLL_INTERVAL,
    ) -> "File":
        """Upload bytes with the resumable protocol and wait until ACTIVE.

        Raises:
            FileError: Any step of the upload or processing failed.
        """
        params = {"key": api_key}

        try:
            start = http.post(
                upload_url(base_url),
                params=params,
                headers={
                    "X-Goog-Upload-Protocol": "resumable",
                    "X-Goog-Upload-Command": "start",
                    "X-Goog-Upload-Header-Content-Length": str(len(data)),
                    "X-Goog-Upload-Header-Content-Type": mime_type,
                    "Content-Type": "application/json",
                },
                json={"file": {"display_name": file_name}},
            )
        except httpx.HTTPError as e:
            raise FileError(f"Upload start failed: {e}") from e

        session_url = start.headers.get("X-Goog-Upload-URL")
        if not session_url:
            logger.error(
                "Upload start for %s returned no upload URL (status %d): %s",
                file_name, start.status_code, start.text,
            )
            raise FileError("Upload URL not found")

        try:
            finished = http.put(
                session_url,
                headers={
                    "Content-Length": str(len(data)),
                    "X-Goog-Upload-Offset": "0",
                    "X-Goog-Upload-Command": "upload, finalize",
                },
                content=data,
            )
        except httpx.HTTPError as e:
            raise FileError(f"Upload failed: {e}") from e

        body = _response_json(finished, "upload")
        if not isinstance(body, dict) or "file" not in body:
            logger.error("Upload of %s returned no file: %s", file_name, finished.text)
            raise FileError("File data not found")

        file = cls.from_api(body["file"], api_key=api_key)
        logger.debug("Uploaded %s as %s (state %s)", file_name, file.name, file.state)

        for attempt in range(poll_attempts + 1):
            if file.state == STATE_ACTIVE:
                return file
            if file.state == STATE_FAILED:
                message = file.error.message if file.error and file.error.message else ""
                raise FileError(message or "File processing failed")
            if file.state != STATE_PROCESSING:
                raise FileError("File processing unknown state")
            if attempt == poll_attempts:
                break

            time.sleep(poll_interval)
            file = cls._fetch(http, file.name, api_key, base_url)

        raise FileError("File processing timeout")

    @classmethod
    def _fetch(cls, http: httpx.Client, name: str, api_key: str, base_url: str) -> "File":
        try:
            response = http.get(resource_url(name, base_url), params={"key": api_key})
        except httpx.HTTPError as e:
            raise FileError(f"File status request failed: {e}") from e
        return cls.from_api(_response_json(response, "file status"), api_key=api_key)

    def delete(self, http: httpx.Client) -> None:
        """Delete the remote file.

        Raises:
            FileError: No API key is attached or the request failed.
        """
        if not self.api_key:
            raise FileError("API key not found")

        try:
            response = http.delete(self.uri, params={"key": self.api_key})
        except httpx.HTTPError as e:
            raise FileError(f"File delete failed: {e}") from e

        if response.is_error:
            logger.warning(
                "Deleting %s returned status %d: %s",
                self.name, response.status_code, response.text,
            )


class FileManager:
    """Thread-safe cache of uploaded files keyed by content hash.

    Args:
        api_key: API key; resolved from GEMINI_API_KEY (or ``.env``) when omitted.
        http_client: Preconfigured httpx client; one is created when omitted.
        base_url: API base URL override.
        poll_attempts: Status polls before an upload times out.
        poll_interval: Seconds between status polls.

    Raises:
        MissingApiKeyError: No API key was given or found.
    """

    def __init__(
        self,
        api_key: Optional[str] = None,
        http_client: Optional[httpx.Client] = None,
        base_url: Optional[str] = None,
        poll_attempts: int = DEFAULT_POLL_ATTEMPTS,
        poll_interval: float = DEFAULT_POLL_INTERVAL,
    ):
        if not api_key:
            api_key = resolve_api_key()
            if not api_key:
                raise MissingApiKeyError(
                    checked_locations=get_checked_credential_locations(),
                )

        self._api_key = api_key
        self._base_url = base_url or resolve_base_url()
        self._poll_attempts = poll_attempts
        self._poll_interval = poll_interval
        self._owns_http = http_client is None
        self._http = http_client or get_httpx_client(
            base_url=self._base_url,
            timeout=httpx.Timeout(resolve_timeout(), connect=resolve_connect_timeout()),
        )
        self._files: Dict[str, File] = {}
        self._lock = threading.Lock()

    def __len__(self) -> int:
        with self._lock:
            return len(self._files)

    def hashes(self) -> List[str]:
        with self._lock:
            return list(self._files)

    def add_file_from_bytes(self, file_name: str, data: bytes, mime_type: str) -> FileData:
        """Upload bytes unless a live copy is cached; return its reference."""
        content_hash = sha256_hex(data)

        cached = self.get_file(content_hash)
        if cached is not None:
            return cached

        file = File.upload(
            self._http,
            file_name,
            data,
            mime_type,
            self._api_key,
            base_url=self._base_url,
            poll_attempts=self._poll_attempts,
            poll_interval=self._poll_interval,
        )
        with self._lock:
            self._files[content_hash] = file
        logger.info("Uploaded %s (%s) as %s", file_name, content_hash, file.uri)
        return file.to_file_data()

    def add_file(self, path: Union[str, Path]) -> FileData:
        """Upload a file from disk unless a live copy is cached.

        Raises:
            FileError: The file is missing, unreadable or of unknown type,
                or the upload failed.
        """
        path = Path(path)
        if not path.exists():
            raise FileError("File does not exist")

        try:
            data = path.read_bytes()
        except OSError as e:
            raise FileError(f"Failed to read {path}: {e}") from e

        mime_type = get_mime_type(path)
        if mime_type is None:
            raise FileError("Unsupported file type")

        return self.add_file_from_bytes(path.name, data, mime_type)

    def check_file(self, content_hash: str) -> bool:
        """True if a file with this hash is cached, live or not."""
        with self._lock:
            return content_hash in self._files

    def get_file(self, content_hash: str) -> Optional[FileData]:
        """Return the cached file if it stays alive for at least 10 minutes.

        An entry closer to expiry is evicted and deleted remotely.
        """
        with self._lock:
            file = self._files.get(content_hash)
            if file is None:
                return None
            if not file.is_expired(EXPIRY_MARGIN):
                logger.info("Found cached file %s for %s", file.name, content_hash)
                return file.to_file_data()
            del self._files[content_hash]

        logger.info("Evicting expiring file %s (%s)", file.name, file.expiration_time)
        self._delete_quietly(file)
        return None

    def fetch_list(self) -> None:
        """Load every remote file into the cache.

        Raises:
            FileError: A page could not be fetched or parsed.
        """
        files: List[File] = []
        page_token: Optional[str] = None

        while True:
            params = {"key": self._api_key}
            if page_token:
                params["pageToken"] = page_token

            try:
                response = self._http.get(files_url(self._base_url), params=params)
            except httpx.HTTPError as e:
                raise FileError(f"File list request failed: {e}") from e

            page = _response_json(response, "file list")
            if not isinstance(page, dict):
                raise FileError("Invalid file list response")

            # No "files" key means there are no files
            if "files" not in page:
                break
            if not isinstance(page["files"], list):
                logger.error("Invalid file list: %s", response.text)
                raise FileError("Invalid file list response")
            files.extend(File.from_api(item, api_key=self._api_key) for item in page["files"])

            page_token = page.get("nextPageToken")
            if not page_token:
                break

        with self._lock:
            for file in files:
                if not file.content_hash:
                    logger.debug("Skipping remote file %s without a hash (state %s)", file.name, file.state)
                    continue
                logger.info("Remote file %s (%s)", file.name, file.display_name)
                self._files[file.content_hash] = file

    def delete_file(self, content_hash: str) -> None:
        """Drop a cached file and delete it remotely.

        Raises:
            FileError: The remote delete failed.
        """
        with self._lock:
            file = self._files.pop(content_hash, None)
        if file is not None:
            file.delete(self._http)

    def clear_files(self) -> None:
        """Drop every cached file, deleting each remotely."""
        with self._lock:
            files = list(self._files.values())
            self._files.clear()
        for file in files:
            self._delete_quietly(file)

    def _delete_quietly(self, file: File) -> None:
        try:
            file.delete(self._http)
        except FileError as e:
            logger.warning("Failed to delete %s: %s", file.name, e)

    def close(self) -> None:
        if self._owns_http:
            self._http.close()

    def __enter__(self) -> "FileManager":
        return self

    def __exit__(self, exc_type, exc, tb) -> None:
        self.close()
