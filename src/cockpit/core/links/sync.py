"""
Linked-group synchronization.

Members of a linked group are independent copies of one real-world thing.
They share the *synchronized* fields and nothing else: position, parent,
name (unless configured otherwise) and deletion stay per member.

Propagation is one level deep by construction: writes to peers go straight to
the models and never come back through ``update_element``, so fan-out is
bounded by the group size.
"""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING, Any, Union

from cockpit.core.links.index import LinkIndex
from cockpit.core.tree.models import Element, EntityKind, SubElement

if TYPE_CHECKING:
    from cockpit.core.tree.store import TreeStore

logger = logging.getLogger(__name__)

Linkable = Union[Element, SubElement]

# Fields every linked group keeps equal
SYNC_FIELDS: tuple[str, ...] = ("status", "icon", "value", "unit")

# Element-only additions: a herite_domaine status is meaningless without its domain
ELEMENT_SYNC_FIELDS: tuple[str, ...] = SYNC_FIELDS + ("inherit_from_domain_id",)


class LinkSynchronizer:
    """
    Keeps linked groups consistent on the synchronized field set.

    Owned by a :class:`~cockpit.core.tree.store.TreeStore`; reads and writes
    group membership through the store's :class:`LinkIndex`.
    """

    def __init__(self, store: TreeStore, sync_name: bool = False) -> None:
        self._store = store
        self.sync_name = sync_name

    @property
    def index(self) -> LinkIndex:
        return self._store.links

    def sync_fields(self, kind: EntityKind) -> tuple[str, ...]:
        """Synchronized fields for *kind*, including ``name`` when configured."""
        fields = ELEMENT_SYNC_FIELDS if kind == EntityKind.ELEMENT else SYNC_FIELDS
        if self.sync_name:
            fields = fields + ("name",)
        return fields

    def synchronized_subset(self, kind: EntityKind, changes: dict[str, Any]) -> dict[str, Any]:
        """Return the part of *changes* that must reach every group member."""
        fields = self.sync_fields(kind)
        return {k: v for k, v in changes.items() if k in fields}

    def _resolve(self, kind: EntityKind, entity_id: str) -> Linkable:
        if kind == EntityKind.ELEMENT:
            return self._store.get_element(entity_id)
        return self._store.get_sub_element(entity_id)

    def members(self, kind: EntityKind, entity: Linkable) -> list[Linkable]:
        """All members of *entity*'s group, *entity* included, sorted by id."""
        return [
            self._resolve(kind, member_id)
            for member_id in sorted(self.index.members(kind, entity.linked_group_id))
        ]

    def peers(self, kind: EntityKind, entity: Linkable) -> list[Linkable]:
        """Other members of *entity*'s group, sorted by id."""
        return [
            self._resolve(kind, peer_id)
            for peer_id in sorted(self.index.peers(kind, entity.linked_group_id, entity.id))
        ]

    # ------------------------------------------------------------------
    # Propagation
    # ------------------------------------------------------------------

    def propagate(self, kind: EntityKind, source: Linkable, changes: dict[str, Any]) -> list[str]:
        """
        Copy the synchronized part of *changes* from *source* to its peers.

        Peers already holding every value are left untouched, so repeating an
        update is a no-op.

        Returns:
            Ids of the peers that were written, sorted
        """
        subset = self.synchronized_subset(kind, changes)
        if not subset or not source.linked_group_id:
            return []

        written: list[str] = []
        for peer in self.peers(kind, source):
            diff = {k: v for k, v in subset.items() if getattr(peer, k) != v}
            if not diff:
                continue
            for field, value in diff.items():
                setattr(peer, field, value)
            written.append(peer.id)

        if written:
            logger.debug(
                f"Propagated {sorted(subset)} from {kind.value} {source.id} "
                f"to {len(written)} peer(s) in group {source.linked_group_id}"
            )
        return written

    def adopt(self, kind: EntityKind, joiner: Linkable, source: Linkable) -> None:
        """Give *joiner* the synchronized field values of *source*."""
        for field in self.sync_fields(kind):
            if field == "name":
                continue
            setattr(joiner, field, getattr(source, field))

    # ------------------------------------------------------------------
    # Membership
    # ------------------------------------------------------------------

    def assign_group(self, kind: EntityKind, entity: Linkable, group_id: str | None) -> None:
        """Move *entity* into *group_id* (or out of any group when None)."""
        if entity.linked_group_id == group_id:
            return
        self.index.discard(kind, entity.linked_group_id, entity.id)
        entity.linked_group_id = group_id
        if group_id:
            self.index.add(kind, group_id, entity.id)

    def register(self, element: Element) -> None:
        """Index *element* and every sub-element below it."""
        if element.linked_group_id:
            self.index.add(EntityKind.ELEMENT, element.linked_group_id, element.id)
        for sub_category in element.sub_categories:
            for sub_element in sub_category.sub_elements:
                self.register_sub_element(sub_element)

    def register_sub_element(self, sub_element: SubElement) -> None:
        if sub_element.linked_group_id:
            self.index.add(EntityKind.SUB_ELEMENT, sub_element.linked_group_id, sub_element.id)

    def forget(self, element: Element) -> None:
        """Drop *element* and its sub-elements from the index (tree deletion)."""
        self.index.discard(EntityKind.ELEMENT, element.linked_group_id, element.id)
        for sub_category in element.sub_categories:
            for sub_element in sub_category.sub_elements:
                self.forget_sub_element(sub_element)

    def forget_sub_element(self, sub_element: SubElement) -> None:
        self.index.discard(EntityKind.SUB_ELEMENT, sub_element.linked_group_id, sub_element.id)
