"""Optimistic-concurrency conflict detection for pushed change rows."""

from __future__ import annotations

from typing import Any, Optional


def assumed_updated_at(assumed_state: Any) -> Optional[int]:
    """The ``updatedAt`` the client based its change on, if it sent a usable one."""
    if not isinstance(assumed_state, dict):
        return None
    value = assumed_state.get("updatedAt")
    if isinstance(value, bool) or not isinstance(value, (int, float)):
        return None
    return int(value)


def is_conflict(real_updated_at: int, assumed_state: Any) -> bool:
    """A stored row conflicts with a change row unless the client saw its latest version.

    The client is stale when it sent no usable assumed state (it believes it
    is creating the document) or when its assumed ``updatedAt`` is strictly
    older than the stored one.
    """
    assumed = assumed_updated_at(assumed_state)
    if assumed is None:
        return True
    return assumed < real_updated_at
