"""
sync.py - Read-modify-write cycle against a DocumentStore

Each mutation follows the same cycle:
1. Read the current payload and token from the store
2. Decode it into a Document
3. Apply a pure mutator: Document -> Document
4. Write the result back, conditioned on the token from step 1

A rejected write (stale token) is reported, not retried: no merge is
attempted, and the caller decides whether to re-run the whole action.
Errors raised by the mutator propagate before anything is written.
"""

from __future__ import annotations
from dataclasses import dataclass
from typing import Callable, Optional, Tuple
import logging

from .core import Document, TransportFailure
from .codec import document_from_dict, document_to_dict
from .store import DocumentStore

logger = logging.getLogger(__name__)

Mutator = Callable[[Document], Document]


@dataclass(frozen=True, slots=True)
class SyncOutcome:
    """
    Result of one read-modify-write cycle.

    Attributes:
        applied: True if the store accepted the write (or nothing needed writing)
        token: Token after the cycle (None if the write was rejected)
        document: The Document now in the store when applied, else the
                  Document the mutator produced but could not persist
    """
    applied: bool
    token: Optional[str]
    document: Document


class SyncEngine:
    """
    Synchronizes Documents with a DocumentStore.

    The engine keeps no Document of its own; every cycle starts from a fresh
    read. Not thread-safe beyond what the store itself guarantees.
    """

    def __init__(self, store: DocumentStore):
        self.store = store

    def load(self) -> Tuple[Document, Optional[str]]:
        """
        Read and decode the current Document.

        Returns:
            (Document, token); an empty store yields (empty Document, None)

        Raises:
            TransportFailure: If the store cannot be read
            DocumentFormatError: If the stored payload cannot be decoded
        """
        try:
            result = self.store.read()
        except TransportFailure:
            raise
        except OSError as e:
            raise TransportFailure(f"Cannot read from {self.store!r}") from e
        document = document_from_dict(result.content)
        logger.debug("Loaded %r with token %s", document, result.token)
        return document, result.token

    def apply(self, mutator: Mutator) -> SyncOutcome:
        """
        Apply a mutator to the freshly read Document and write it back.

        If the mutator returns the very same Document object, nothing is
        written and the cycle counts as applied.

        Args:
            mutator: Pure function from the current Document to the next one

        Returns:
            SyncOutcome; applied=False means the token went stale between
            the read and the write

        Raises:
            TransportFailure: If the store cannot be read or written
            PointsError: Any validation or rule failure raised by the mutator
        """
        current, token = self.load()
        updated = mutator(current)
        if updated is current:
            return SyncOutcome(applied=True, token=token, document=current)

        payload = document_to_dict(updated)
        try:
            result = self.store.write(payload, token)
        except TransportFailure:
            raise
        except OSError as e:
            raise TransportFailure(f"Cannot write to {self.store!r}") from e

        if not result.success:
            logger.warning("Write rejected by %r: token %s is stale", self.store, token)
            return SyncOutcome(applied=False, token=None, document=updated)

        logger.debug("Wrote %r, token %s -> %s", updated, token, result.token)
        # The cached form is what the next read will decode.
        return SyncOutcome(applied=True, token=result.token, document=document_from_dict(payload))
