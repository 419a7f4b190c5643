"""
Explicit linked-group membership index.

Group membership lives in the tree only as equal ``linked_group_id`` values.
The index mirrors it as ``group_id -> {member ids}`` per entity kind so that
propagation never has to scan the whole cockpit. It is rebuilt from the tree
on load and maintained incrementally by every create/link/unlink/delete.
"""

from __future__ import annotations

from collections.abc import Iterator

from cockpit.core.tree.models import Cockpit, EntityKind

LINKABLE_KINDS = (EntityKind.ELEMENT, EntityKind.SUB_ELEMENT)


class LinkIndex:
    """
    Map of linked groups to their member ids, one map per linkable kind.

    Elements and sub-elements never share a group, even if a stored record
    happens to reuse a group id across kinds.

    Example::

        index = LinkIndex.from_cockpit(cockpit)
        index.peers(EntityKind.ELEMENT, "grp-1", "el-1")
        # {"el-7", "el-9"}
    """

    __slots__ = ("_groups",)

    def __init__(self) -> None:
        self._groups: dict[EntityKind, dict[str, set[str]]] = {
            kind: {} for kind in LINKABLE_KINDS
        }

    @classmethod
    def from_cockpit(cls, cockpit: Cockpit) -> LinkIndex:
        """Build the index by walking every element and sub-element."""
        index = cls()
        for domain in cockpit.domains:
            for category in domain.categories:
                for element in category.elements:
                    if element.linked_group_id:
                        index.add(EntityKind.ELEMENT, element.linked_group_id, element.id)
                    for sub_category in element.sub_categories:
                        for sub_element in sub_category.sub_elements:
                            if sub_element.linked_group_id:
                                index.add(
                                    EntityKind.SUB_ELEMENT,
                                    sub_element.linked_group_id,
                                    sub_element.id,
                                )
        return index

    def copy(self) -> LinkIndex:
        """Return an independent copy (used for transaction snapshots)."""
        clone = LinkIndex()
        for kind, groups in self._groups.items():
            clone._groups[kind] = {gid: set(members) for gid, members in groups.items()}
        return clone

    # ------------------------------------------------------------------
    # Mutation
    # ------------------------------------------------------------------

    def add(self, kind: EntityKind, group_id: str, member_id: str) -> None:
        self._groups[kind].setdefault(group_id, set()).add(member_id)

    def discard(self, kind: EntityKind, group_id: str | None, member_id: str) -> None:
        """Forget *member_id*; drops the group entry once it is empty."""
        if not group_id:
            return
        members = self._groups[kind].get(group_id)
        if members is None:
            return
        members.discard(member_id)
        if not members:
            del self._groups[kind][group_id]

    # ------------------------------------------------------------------
    # Queries
    # ------------------------------------------------------------------

    def members(self, kind: EntityKind, group_id: str | None) -> frozenset[str]:
        if not group_id:
            return frozenset()
        return frozenset(self._groups[kind].get(group_id, ()))

    def peers(self, kind: EntityKind, group_id: str | None, member_id: str) -> frozenset[str]:
        """Members of *group_id* other than *member_id*."""
        return self.members(kind, group_id) - {member_id}

    def group_size(self, kind: EntityKind, group_id: str | None) -> int:
        return len(self.members(kind, group_id))

    def groups(self, kind: EntityKind) -> Iterator[tuple[str, frozenset[str]]]:
        """Yield ``(group_id, members)`` for every group of *kind*, sorted by id."""
        for group_id in sorted(self._groups[kind]):
            yield group_id, frozenset(self._groups[kind][group_id])

    def __contains__(self, group_id: object) -> bool:
        return any(group_id in groups for groups in self._groups.values())
