"""Envelope schemas of the pull/push replication protocol.

Pull answers ``{documents, checkpoint}``; push accepts ``{changeRows}`` and
answers with a list of conflicts. A conflict is either a ``SyncConflict``
(validation, authorization or reference failure) or the stored document
itself, which the client rebases its change onto.
"""

from __future__ import annotations

from typing import Any, List, Optional

from .common import EpochMillis, WireModel

MISSING_ID_ERROR = "Invalid document format: missing id"


class Checkpoint(WireModel):
    """Opaque pull cursor; sent back by the client as ``lastPulledAt``."""
    updated_at: EpochMillis


class RawChangeRow(WireModel):
    """A change row before per-entity decoding.

    Documents stay untyped here so one malformed row becomes a conflict entry
    instead of failing the whole batch.
    """
    id: Optional[str] = None
    new_document_state: Optional[Any] = None
    assumed_master_state: Optional[Any] = None


class PushRequest(WireModel):
    """Request body for POST /<entity>/push."""
    change_rows: List[RawChangeRow]


class SyncConflict(WireModel):
    error: str
    document: Optional[Any] = None
