"""Optimistic synchronization between the local order list and the remote authority."""

from __future__ import annotations

from .filter_cache import DebouncedReloader, FilterFingerprintCache, fingerprint
from .optimistic_store import (
    MutationState,
    OptimisticStore,
    PendingMutation,
    UnknownEntityError,
)
from .reconciler import ReconcilerStatus, ReconnectPolicy, RemoteEventReconciler
from .sequencing import KeyedSequencer

__all__ = [
    "DebouncedReloader",
    "FilterFingerprintCache",
    "KeyedSequencer",
    "MutationState",
    "OptimisticStore",
    "PendingMutation",
    "ReconcilerStatus",
    "ReconnectPolicy",
    "RemoteEventReconciler",
    "UnknownEntityError",
    "fingerprint",
]
