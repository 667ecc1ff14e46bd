"""Keyed container that applies local edits before the remote authority confirms them.

Every entity id has at most one ``PendingMutation``. Its ``snapshot`` is the
last state the remote authority is known to hold for that entity; its
``edits`` are the local edits awaiting confirmation, oldest first. The visible
entity is always ``snapshot`` with every live edit laid on top.

* ``apply`` queues a further edit onto an existing pending entry.
* ``commit`` confirms the oldest edit and folds it into the snapshot.
* ``rollback`` refuses the oldest edit. Later edits were planned on top of it,
  so they are discarded with it and the entry ends ``ROLLED_BACK``.
* ``merge`` folds remote notifications into the snapshot. Fields under a
  pending edit stay local; every other field takes the remote value.

Fields named in ``monotonic_fields`` never go backwards while an edit is
pending: the visible value is the larger of the snapshot's and the edit's.

The store itself never suspends, so on a single event loop each operation is
atomic. ``sequenced`` orders the remote round-trips that happen in between.
"""

from __future__ import annotations

from dataclasses import dataclass, field, replace
from enum import StrEnum
from logging import getLogger
from typing import TYPE_CHECKING

from orderflow.domain.model import ChangeType

from .sequencing import KeyedSequencer

if TYPE_CHECKING:
    from collections.abc import Callable, Iterable, Mapping
    from contextlib import AbstractAsyncContextManager

    from orderflow.domain.model import Keyed, RemoteEvent

log = getLogger(__name__)

type Patch = Mapping[str, object]
type Listener[TEntity] = Callable[[list[TEntity]], object]


class MutationState(StrEnum):
    PENDING = "pending"
    COMMITTED = "committed"
    ROLLED_BACK = "rolled_back"


@dataclass(slots=True, kw_only=True)
class PendingMutation[TEntity]:
    entity_id: str
    snapshot: TEntity
    edits: list[dict[str, object]] = field(default_factory=list[dict[str, object]])
    state: MutationState = MutationState.PENDING

    @property
    def live(self) -> bool:
        return self.state is MutationState.PENDING

    @property
    def outstanding(self) -> int:
        return len(self.edits)

    @property
    def patch(self) -> dict[str, object]:
        """Union of the queued edits; later edits win per field."""
        merged: dict[str, object] = {}
        for edit in self.edits:
            merged.update(edit)
        return merged


class UnknownEntityError(KeyError):
    """Raised when a local edit targets an id the store does not hold."""


class OptimisticStore[TEntity: Keyed]:
    """Generic optimistic container for frozen dataclass entities keyed by ``id``."""

    def __init__(
        self,
        entities: Iterable[TEntity] = (),
        *,
        name: str = "entity",
        monotonic_fields: Iterable[str] = (),
    ) -> None:
        self.name = name
        self.monotonic_fields = frozenset(monotonic_fields)
        self._entities: dict[str, TEntity] = {entity.id: entity for entity in entities}
        self._pending: dict[str, PendingMutation[TEntity]] = {}
        self._sequencer = KeyedSequencer()
        self._listeners: list[Listener[TEntity]] = []

    def subscribe(self, listener: Listener[TEntity]) -> Callable[[], None]:
        """Call ``listener`` with the visible entities after every change.

        Returns a function that removes the listener again.
        """

        self._listeners.append(listener)

        def unsubscribe() -> None:
            if listener in self._listeners:
                self._listeners.remove(listener)

        return unsubscribe

    def _notify(self) -> None:
        if not self._listeners:
            return
        snapshot = self.items()
        for listener in list(self._listeners):
            listener(snapshot)

    # Reads -------------------------------------------------------------------

    def items(self) -> list[TEntity]:
        return list(self._entities.values())

    def get(self, entity_id: str) -> TEntity | None:
        return self._entities.get(entity_id)

    def __contains__(self, entity_id: object) -> bool:
        return entity_id in self._entities

    def __len__(self) -> int:
        return len(self._entities)

    def is_pending(self, entity_id: str) -> bool:
        return entity_id in self._pending

    def pending(self, entity_id: str) -> PendingMutation[TEntity] | None:
        return self._pending.get(entity_id)

    @property
    def pending_ids(self) -> frozenset[str]:
        return frozenset(self._pending)

    # Local edits -------------------------------------------------------------

    def apply(self, entity_id: str, patch: Patch) -> list[TEntity]:
        """Merge ``patch`` into the entity immediately and queue it as pending."""

        if entity_id not in self._entities:
            raise UnknownEntityError(f"Unknown {self.name} id: {entity_id}")

        pending = self._pending.get(entity_id)
        if pending is None:
            pending = PendingMutation(entity_id=entity_id, snapshot=self._entities[entity_id])
            self._pending[entity_id] = pending
        pending.edits.append(dict(patch))
        self._entities[entity_id] = self._overlay(pending.snapshot, pending.patch)
        log.debug("Applied optimistic %s edit %s: %s", self.name, entity_id, sorted(patch))
        self._notify()
        return self.items()

    def commit(self, entity_id: str) -> None:
        """Confirm the oldest queued edit; the entry resolves once none remain."""

        pending = self._pending.get(entity_id)
        if pending is None:
            log.debug("Commit for %s %s ignored: nothing pending", self.name, entity_id)
            return
        confirmed = pending.edits.pop(0)
        pending.snapshot = self._overlay(pending.snapshot, confirmed)
        if pending.edits:
            return
        pending.state = MutationState.COMMITTED
        del self._pending[entity_id]
        self._entities[entity_id] = pending.snapshot
        log.debug("Committed %s %s", self.name, entity_id)
        self._notify()

    def rollback(self, entity_id: str) -> TEntity | None:
        """Refuse the oldest queued edit and discard every edit stacked on it."""

        pending = self._pending.pop(entity_id, None)
        if pending is None:
            log.debug("Rollback for %s %s ignored: nothing pending", self.name, entity_id)
            return self._entities.get(entity_id)
        if len(pending.edits) > 1:
            log.warning(
                "Discarding %s later edits stacked on refused %s %s",
                len(pending.edits) - 1,
                self.name,
                entity_id,
            )
        pending.state = MutationState.ROLLED_BACK
        pending.edits.clear()
        self._entities[entity_id] = pending.snapshot
        log.info("Rolled back %s %s", self.name, entity_id)
        self._notify()
        return pending.snapshot

    def sequenced(self, entity_ids: Iterable[str]) -> AbstractAsyncContextManager[None]:
        """Hold a FIFO slot for each id around a remote round-trip."""

        return self._sequencer.sequenced(entity_ids)

    # Remote state ------------------------------------------------------------

    def merge(self, event: RemoteEvent[TEntity]) -> None:
        """Fold a remote Insert/Update/Delete into the store."""

        self._fold(event)
        self._notify()

    def replace_all(self, entities: Iterable[TEntity]) -> list[TEntity]:
        """Swap in a freshly loaded canonical set.

        Pending edits survive for ids that are still present. Pending entries
        for ids the new set no longer contains are dropped along with the entity.
        """

        fresh: dict[str, TEntity] = {entity.id: entity for entity in entities}
        for entity_id, pending in list(self._pending.items()):
            loaded = fresh.get(entity_id)
            if loaded is None:
                self._discard_pending(entity_id)
                continue
            pending.snapshot = loaded
            fresh[entity_id] = self._overlay(loaded, pending.patch)
        self._entities = fresh
        self._notify()
        return self.items()

    def _fold(self, event: RemoteEvent[TEntity]) -> None:
        if event.type is ChangeType.DELETE:
            self._remove(event.entity_id)
            return

        pending = self._pending.get(event.entity_id)
        if pending is None:
            self._merge_canonical(event)
            return

        if event.entity is not None:
            pending.snapshot = event.entity
        elif event.changes:
            pending.snapshot = replace(pending.snapshot, **event.changes)  # pyright: ignore[reportArgumentType]
        self._entities[event.entity_id] = self._overlay(pending.snapshot, pending.patch)
        log.debug(
            "Merged remote %s for pending %s %s; kept local %s",
            event.type,
            self.name,
            event.entity_id,
            sorted(pending.patch),
        )

    def _merge_canonical(self, event: RemoteEvent[TEntity]) -> None:
        if event.entity is not None:
            self._entities[event.entity_id] = event.entity
            return
        current = self._entities.get(event.entity_id)
        if current is None:
            log.warning(
                "Skipping partial %s for unknown %s %s", event.type, self.name, event.entity_id
            )
            return
        self._entities[event.entity_id] = replace(current, **event.changes)  # pyright: ignore[reportArgumentType]

    def _remove(self, entity_id: str) -> None:
        self._entities.pop(entity_id, None)
        self._discard_pending(entity_id)

    def _discard_pending(self, entity_id: str) -> None:
        pending = self._pending.pop(entity_id, None)
        if pending is not None:
            pending.state = MutationState.ROLLED_BACK
            log.warning("Dropped pending edit for removed %s %s", self.name, entity_id)

    def _overlay(self, base: TEntity, patch: Patch) -> TEntity:
        if not patch:
            return base
        values = dict(patch)
        for name in self.monotonic_fields.intersection(values):
            remote, local = getattr(base, name), values[name]
            if remote is not None and (local is None or remote > local):  # pyright: ignore[reportOperatorIssue]
                values[name] = remote
        return replace(base, **values)  # pyright: ignore[reportArgumentType]
