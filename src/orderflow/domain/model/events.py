"""Change notifications pushed by the remote authority."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import TYPE_CHECKING

from .enums import ChangeType

if TYPE_CHECKING:
    from collections.abc import Mapping


@dataclass(frozen=True, slots=True, kw_only=True)
class RemoteEvent[TEntity]:
    """One Insert/Update/Delete notification for a single entity id.

    Updates carry either the full ``entity`` or a partial ``changes`` mapping of
    field name to new value. Deletes only need ``entity_id``.
    """

    type: ChangeType
    entity_id: str
    entity: TEntity | None = None
    changes: Mapping[str, object] = field(default_factory=dict[str, object])
    site_id: str | None = None

    @classmethod
    def insert(
        cls, entity: TEntity, *, entity_id: str, site_id: str | None = None
    ) -> RemoteEvent[TEntity]:
        return cls(type=ChangeType.INSERT, entity_id=entity_id, entity=entity, site_id=site_id)

    @classmethod
    def update(
        cls,
        entity_id: str,
        *,
        entity: TEntity | None = None,
        changes: Mapping[str, object] | None = None,
        site_id: str | None = None,
    ) -> RemoteEvent[TEntity]:
        return cls(
            type=ChangeType.UPDATE,
            entity_id=entity_id,
            entity=entity,
            changes=dict(changes or {}),
            site_id=site_id,
        )

    @classmethod
    def delete(cls, entity_id: str, *, site_id: str | None = None) -> RemoteEvent[TEntity]:
        return cls(type=ChangeType.DELETE, entity_id=entity_id, site_id=site_id)
