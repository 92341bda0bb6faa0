"""
store.py - Document store capability

The ledger persists one whole document at a time with an optimistic
concurrency token. Any backend that offers read/replace with such a token can
implement DocumentStore: object storage with ETags, a git hosting API with
blob SHAs, or local persistence.

Classes:
- DocumentStore: Protocol defining the capability
- ReadResult / WriteResult: Immutable results of the two operations
- MemoryStore: In-process backend
- JsonFileStore: Local JSON file backend

Payloads are JSON-compatible dicts in the wire shape produced by codec.py;
stores never interpret them.

Token rules:
- read() on an empty store returns (None, None)
- write(content, None) creates; it fails if content already exists
- write(content, token) replaces; it fails if token is not the current one
- every successful write issues a new token, even for identical content
"""

from __future__ import annotations
from dataclasses import dataclass
from typing import Any, Dict, Optional, Protocol, runtime_checkable
import copy
import hashlib
import json
import logging
import os
import tempfile
import threading

from .core import TransportFailure

logger = logging.getLogger(__name__)

Payload = Dict[str, Any]


# ============================================================================
# PROTOCOL
# ============================================================================

@dataclass(frozen=True, slots=True)
class ReadResult:
    """Stored payload (None if never written) and its current token."""
    content: Optional[Payload]
    token: Optional[str]


@dataclass(frozen=True, slots=True)
class WriteResult:
    """Whether the write was accepted, and the new token if it was."""
    success: bool
    token: Optional[str]


@runtime_checkable
class DocumentStore(Protocol):
    """
    Protocol for whole-document stores with compare-and-swap writes.

    Implementations raise TransportFailure when the backend cannot be reached
    or returns unusable data. A stale token is not a transport error: it is
    reported as WriteResult(success=False, token=None).
    """

    def read(self) -> ReadResult:
        """Return the current payload and token."""
        ...

    def write(self, content: Payload, token: Optional[str]) -> WriteResult:
        """Replace the payload if `token` matches the current one."""
        ...


def _canonical_json(content: Payload) -> str:
    return json.dumps(content, sort_keys=True, separators=(",", ":"), ensure_ascii=False)


def make_token(revision: int, content: Payload) -> str:
    """
    Build a token from a revision counter and a content digest.

    The revision makes tokens unique per write; the digest makes them
    tamper-evident for content edited outside the store.
    """
    digest = hashlib.sha256(_canonical_json(content).encode("utf-8")).hexdigest()[:16]
    return f"{revision}-{digest}"


# ============================================================================
# MEMORY BACKEND
# ============================================================================

class MemoryStore:
    """
    Store holding the payload in process memory.

    Payloads are deep-copied on the way in and out so callers cannot alias
    stored state. Thread-safe.
    """

    def __init__(self, initial: Optional[Payload] = None):
        """
        Initialize the store.

        Args:
            initial: Optional payload to start with (revision 1)
        """
        self._lock = threading.Lock()
        self._content: Optional[Payload] = None
        self._revision = 0
        self._token: Optional[str] = None
        if initial is not None:
            self._content = copy.deepcopy(initial)
            self._revision = 1
            self._token = make_token(self._revision, self._content)

    def read(self) -> ReadResult:
        with self._lock:
            return ReadResult(copy.deepcopy(self._content), self._token)

    def write(self, content: Payload, token: Optional[str]) -> WriteResult:
        with self._lock:
            if token != self._token:
                logger.debug("MemoryStore rejected write: token %s, current %s", token, self._token)
                return WriteResult(False, None)
            self._content = copy.deepcopy(content)
            self._revision += 1
            self._token = make_token(self._revision, self._content)
            return WriteResult(True, self._token)

    def __repr__(self):
        return f"MemoryStore(revision={self._revision})"


# ============================================================================
# FILE BACKEND
# ============================================================================

class JsonFileStore:
    """
    Store persisting the payload to a local JSON file.

    File layout: {"revision": <int>, "document": <payload>}. A file holding a
    bare payload (no envelope) is read as revision 0, so a hand-exported
    document can be dropped in place.

    Writes go to a temporary file in the same directory and are moved into
    place with os.replace. Compare-and-swap is atomic within one process;
    separate processes sharing a file are not coordinated.
    """

    def __init__(self, path: str):
        """
        Initialize the store.

        Args:
            path: Path of the JSON file (created on first write)
        """
        self.path = path
        self._lock = threading.Lock()

    def _load(self):
        if not os.path.exists(self.path):
            return None, 0
        try:
            with open(self.path, "r", encoding="utf-8") as f:
                raw = json.load(f)
        except (OSError, json.JSONDecodeError) as e:
            logger.error("Cannot read %s: %s", self.path, e)
            raise TransportFailure(f"Cannot read document file {self.path}") from e
        if not isinstance(raw, dict):
            raise TransportFailure(f"Document file {self.path} does not hold an object")
        if "document" in raw and "revision" in raw:
            try:
                return raw["document"], int(raw["revision"])
            except (TypeError, ValueError) as e:
                raise TransportFailure(f"Document file {self.path} has a bad revision") from e
        return raw, 0

    def read(self) -> ReadResult:
        with self._lock:
            content, revision = self._load()
            if content is None:
                return ReadResult(None, None)
            return ReadResult(content, make_token(revision, content))

    def write(self, content: Payload, token: Optional[str]) -> WriteResult:
        with self._lock:
            current, revision = self._load()
            current_token = None if current is None else make_token(revision, current)
            if token != current_token:
                logger.debug("JsonFileStore rejected write: token %s, current %s", token, current_token)
                return WriteResult(False, None)

            revision += 1
            envelope = {"revision": revision, "document": content}
            directory = os.path.dirname(os.path.abspath(self.path))
            try:
                os.makedirs(directory, exist_ok=True)
                fd, tmp_path = tempfile.mkstemp(dir=directory, prefix=".points-", suffix=".tmp")
                try:
                    with os.fdopen(fd, "w", encoding="utf-8") as f:
                        json.dump(envelope, f, ensure_ascii=False, indent=2)
                    os.replace(tmp_path, self.path)
                except BaseException:
                    if os.path.exists(tmp_path):
                        os.unlink(tmp_path)
                    raise
            except OSError as e:
                logger.error("Cannot write %s: %s", self.path, e)
                raise TransportFailure(f"Cannot write document file {self.path}") from e
            return WriteResult(True, make_token(revision, content))

    def __repr__(self):
        return f"JsonFileStore({self.path!r})"


# ============================================================================
# FACTORY
# ============================================================================

STORE_BACKENDS = ("memory", "file")


def create_store(backend: str, path: Optional[str] = None) -> DocumentStore:
    """
    Create a store for a configured backend name.

    Args:
        backend: "memory" or "file"
        path: File path, required for the "file" backend

    Raises:
        ValueError: If the backend is unknown or a required path is missing
    """
    if backend == "memory":
        return MemoryStore()
    if backend == "file":
        if not path:
            raise ValueError("The file store backend requires a path")
        return JsonFileStore(path)
    raise ValueError(f"Unknown store backend: {backend!r} (expected one of {STORE_BACKENDS})")
