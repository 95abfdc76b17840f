"""
Checkpoint manager: parses the client's ``lastPulledAt`` cursor and produces
the checkpoint returned by a pull.
"""

from __future__ import annotations

import math
from typing import Optional, Sequence

from taskboard_api.core.errors import BadRequestError
from taskboard_api.models.base import utcnow
from taskboard_api.services.wire import to_epoch_ms
from taskboard_shared.schemas.common import MAX_EPOCH_MS
from taskboard_shared.schemas.sync import Checkpoint

MAX_UPDATED_AT = "max-updated-at"
WALL_CLOCK = "wall-clock"


def now_ms() -> int:
    return to_epoch_ms(utcnow())


def parse_last_pulled_at(raw: Optional[str]) -> int:
    """Decode ``lastPulledAt`` into epoch milliseconds.

    Absent or empty means a full pull from epoch 0. Anything that is not a
    finite number within the epoch-ms range is rejected; fractions truncate.
    """
    if raw is None or raw.strip() == "":
        return 0
    try:
        value = float(raw)
    except ValueError:
        raise BadRequestError("Invalid lastPulledAt: expected epoch milliseconds")
    if not math.isfinite(value) or value < 0 or value > MAX_EPOCH_MS:
        raise BadRequestError("Invalid lastPulledAt: out of range")
    # float() loses precision above 2**53; reparse integral strings exactly
    stripped = raw.strip()
    if stripped.isdigit():
        return int(stripped)
    return int(value)


def next_checkpoint(
    updated_at_values: Sequence[int],
    since: int,
    strategy: str = MAX_UPDATED_AT,
) -> Checkpoint:
    """Checkpoint for a pull that returned documents with ``updated_at_values``.

    ``max-updated-at`` answers with the newest returned ``updatedAt`` (or
    ``since`` when nothing changed). Writes stamped at or after that value are
    read again next time; a write stamped earlier but committed after the
    query ran is still missed. ``wall-clock`` answers with the current time
    and also misses writes stamped before it that commit later.
    """
    if strategy == WALL_CLOCK:
        return Checkpoint(updated_at=now_ms())
    return Checkpoint(updated_at=max(updated_at_values, default=since))
