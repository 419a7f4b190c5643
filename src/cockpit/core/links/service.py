"""
Link-creation protocol.

Creating or renaming an element into a name that already exists elsewhere
offers a choice: keep the new entity independent, or link it to one of the
existing ones. The caller looks up candidates with
:func:`~cockpit.core.tree.search.find_elements_by_name` and
:func:`~cockpit.core.tree.search.group_matches`, then passes a decision here.

Every operation runs inside :meth:`TreeStore.transaction`, so a failure at any
step (for example a peer deleted between lookup and decision) leaves the tree
as it was.

Usage:
    >>> service = LinkService(store)
    >>> groups = group_matches(find_elements_by_name(store, "Pump 1"))
    >>> decision = LinkTo(groups[0].representative.id, merge_structure=True)
    >>> pump = service.create_element(category_id, "Pump 1", decision)
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Optional, Union

from cockpit.core.tree.errors import InvalidStateError
from cockpit.core.tree.models import Element, EntityKind, SubCategory, SubElement, TileStatus
from cockpit.core.tree.search import ElementMatch, SubElementMatch
from cockpit.core.tree.store import TreeStore

logger = logging.getLogger(__name__)


# ============================================================================
# Decisions
# ============================================================================


@dataclass(frozen=True)
class CreateIndependent:
    """Keep the entity out of any linked group."""


@dataclass(frozen=True)
class LinkTo:
    """
    Join the linked group of an existing entity.

    Attributes:
        peer_id: Entity to link to (same kind as the one being created)
        merge_structure: Elements only. Union the sub-categories and
            sub-elements of both sides by name, copying with fresh ids
        link_sub_elements: With ``merge_structure``, link every copied
            sub-element to the one it was copied from
    """

    peer_id: str
    merge_structure: bool = False
    link_sub_elements: bool = False


LinkDecision = Union[CreateIndependent, LinkTo]


# ============================================================================
# LinkService
# ============================================================================


class LinkService:
    """
    Creates, links and unlinks elements and sub-elements on a tree store.

    Example:
        >>> service = LinkService(store)
        >>> copy = service.duplicate_element_linked(pump.id)
        >>> service.linked_elements(copy.id)
        [ElementMatch(id='...', name='Pump 1', ...)]
    """

    def __init__(self, store: TreeStore) -> None:
        self.store = store

    # ------------------------------------------------------------------
    # Elements
    # ------------------------------------------------------------------

    def create_element(
        self, category_id: str, name: str, decision: Optional[LinkDecision] = None
    ) -> Element:
        """
        Create an element, optionally linked to an existing one.

        Args:
            category_id: Category to append the element to
            name: Element name
            decision: What to do about same-named elements (independent if None)

        Returns:
            The new element

        Raises:
            NotFoundError: If the category or the chosen peer does not exist
            ValidationError: If the name is blank
        """
        with self.store.transaction() as store:
            peer = self._peer_element(decision)
            element = store.create_element(category_id, name)
            if peer is not None and isinstance(decision, LinkTo):
                self._join_element(element, peer, decision)
            return element

    def rename_element(
        self, element_id: str, name: str, decision: Optional[LinkDecision] = None
    ) -> Element:
        """
        Rename an element, optionally linking it to a same-named one.

        A :class:`LinkTo` decision moves the element into the new group before
        the rename, so a synchronized name only reaches the new group. A
        :class:`CreateIndependent` (or missing) decision leaves the element's
        current group membership alone.
        """
        with self.store.transaction() as store:
            peer = self._peer_element(decision)
            element = store.get_element(element_id)
            if peer is not None and isinstance(decision, LinkTo):
                self._join_element(element, peer, decision)
            store.update_element(element_id, {"name": name})
            return element

    def link_elements(
        self,
        element_id: str,
        peer_id: str,
        merge_structure: bool = False,
        link_sub_elements: bool = False,
    ) -> Element:
        """
        Put an existing element in *peer_id*'s linked group.

        The element leaves any group it was in and takes the peer's
        synchronized field values.

        Raises:
            NotFoundError: If either element does not exist
            InvalidStateError: If both ids are the same element
        """
        decision = LinkTo(peer_id, merge_structure, link_sub_elements)
        with self.store.transaction() as store:
            element = store.get_element(element_id)
            peer = store.get_element(peer_id)
            self._join_element(element, peer, decision)
            return element

    def unlink_element(self, element_id: str) -> None:
        """
        Take an element out of its group. The remaining members stay linked.

        A ``herite`` status left with no sub-categories to derive from, on the
        element or on what remains of its group, is reset to the default.
        """
        with self.store.transaction() as store:
            element = store.get_element(element_id)
            group_id = element.linked_group_id
            remaining = store.synchronizer.peers(EntityKind.ELEMENT, element)
            store.synchronizer.assign_group(EntityKind.ELEMENT, element, None)
            self._release_inheritance(element)
            if remaining:
                self._release_inheritance(remaining[0])
            if group_id:
                logger.info(f"Unlinked element {element_id} from group {group_id}")

    def linked_elements(self, element_id: str) -> list[ElementMatch]:
        """Other members of an element's group with their location, in tree order."""
        element = self.store.get_element(element_id)
        peer_ids = self.store.links.peers(EntityKind.ELEMENT, element.linked_group_id, element_id)
        return [
            ElementMatch.from_location(loc)
            for loc in self.store.iter_elements()
            if loc.element.id in peer_ids
        ]

    def duplicate_element_linked(self, element_id: str) -> Element:
        """
        Clone an element right after itself and link the clone to it.

        The clone gets fresh ids throughout. Its sub-elements are copies and
        are not linked to the originals.

        Raises:
            NotFoundError: If the element does not exist
        """
        with self.store.transaction() as store:
            loc = store.locate_element(element_id)
            source = loc.element
            clone = source.model_copy(deep=True)
            clone.id = store.new_id()
            clone.linked_group_id = None
            for sub_category in clone.sub_categories:
                sub_category.id = store.new_id()
                for sub_element in sub_category.sub_elements:
                    sub_element.id = store.new_id()
                    sub_element.linked_group_id = None

            index = loc.category.elements.index(source)
            store.insert_element(loc.category.id, clone, index + 1)
            self._join_element(clone, source, LinkTo(source.id))
            logger.info(f"Duplicated element {element_id} as {clone.id}")
            return clone

    # ------------------------------------------------------------------
    # Sub-elements
    # ------------------------------------------------------------------

    def create_sub_element(
        self, sub_category_id: str, name: str, decision: Optional[LinkDecision] = None
    ) -> SubElement:
        """
        Create a sub-element, optionally linked to an existing one.

        ``merge_structure`` has no meaning for sub-elements and is ignored.

        Raises:
            NotFoundError: If the sub-category or the chosen peer does not exist
            ValidationError: If the name is blank
        """
        with self.store.transaction() as store:
            peer = self._peer_sub_element(decision)
            sub_element = store.create_sub_element(sub_category_id, name)
            if peer is not None:
                self._join_sub_element(sub_element, peer)
            return sub_element

    def rename_sub_element(
        self, sub_element_id: str, name: str, decision: Optional[LinkDecision] = None
    ) -> SubElement:
        with self.store.transaction() as store:
            peer = self._peer_sub_element(decision)
            sub_element = store.get_sub_element(sub_element_id)
            if peer is not None:
                self._join_sub_element(sub_element, peer)
            store.update_sub_element(sub_element_id, {"name": name})
            return sub_element

    def link_sub_elements(self, sub_element_id: str, peer_id: str) -> SubElement:
        """
        Put an existing sub-element in *peer_id*'s linked group.

        Raises:
            NotFoundError: If either sub-element does not exist
            InvalidStateError: If both ids are the same sub-element
        """
        with self.store.transaction() as store:
            sub_element = store.get_sub_element(sub_element_id)
            peer = store.get_sub_element(peer_id)
            self._join_sub_element(sub_element, peer)
            return sub_element

    def unlink_sub_element(self, sub_element_id: str) -> None:
        sub_element = self.store.get_sub_element(sub_element_id)
        group_id = sub_element.linked_group_id
        self.store.synchronizer.assign_group(EntityKind.SUB_ELEMENT, sub_element, None)
        if group_id:
            logger.info(f"Unlinked sub-element {sub_element_id} from group {group_id}")

    def linked_sub_elements(self, sub_element_id: str) -> list[SubElementMatch]:
        sub_element = self.store.get_sub_element(sub_element_id)
        peer_ids = self.store.links.peers(
            EntityKind.SUB_ELEMENT, sub_element.linked_group_id, sub_element_id
        )
        return [
            SubElementMatch.from_location(loc)
            for loc in self.store.iter_sub_elements()
            if loc.sub_element.id in peer_ids
        ]

    # ------------------------------------------------------------------
    # Internals
    # ------------------------------------------------------------------

    def _peer_element(self, decision: Optional[LinkDecision]) -> Optional[Element]:
        if not isinstance(decision, LinkTo):
            return None
        return self.store.get_element(decision.peer_id)

    def _peer_sub_element(self, decision: Optional[LinkDecision]) -> Optional[SubElement]:
        if not isinstance(decision, LinkTo):
            return None
        return self.store.get_sub_element(decision.peer_id)

    def _group_of(self, kind: EntityKind, peer: Union[Element, SubElement]) -> str:
        """Return *peer*'s group id, minting one for it if it has none."""
        if peer.linked_group_id:
            return peer.linked_group_id
        group_id = self.store.new_id()
        self.store.synchronizer.assign_group(kind, peer, group_id)
        logger.debug(f"Minted group {group_id} for {kind.value} {peer.id}")
        return group_id

    def _join_element(self, element: Element, peer: Element, decision: LinkTo) -> None:
        if element.id == peer.id:
            raise InvalidStateError(f"Element '{element.id}' cannot be linked to itself")

        synchronizer = self.store.synchronizer
        left_behind = [
            p for p in synchronizer.peers(EntityKind.ELEMENT, element) if p.id != peer.id
        ]
        group_id = self._group_of(EntityKind.ELEMENT, peer)
        synchronizer.assign_group(EntityKind.ELEMENT, element, group_id)
        synchronizer.adopt(EntityKind.ELEMENT, element, peer)
        if decision.merge_structure:
            self._merge_structure(element, peer, decision.link_sub_elements)
        if left_behind and left_behind[0].linked_group_id != group_id:
            self._release_inheritance(left_behind[0])
        logger.info(f"Linked element {element.id} to {peer.id} in group {group_id}")

    def _release_inheritance(self, element: Element) -> None:
        """Reset ``herite`` to the default status when nothing is left to derive from."""
        if element.status != TileStatus.HERITE or self.store.can_inherit(element):
            return
        default = self.store.policy.default
        self.store.update_element(element.id, {"status": default})
        logger.info(
            f"Element {element.id} has no sub-categories left to inherit from, "
            f"status reset to {default.value}"
        )

    def _join_sub_element(self, sub_element: SubElement, peer: SubElement) -> None:
        if sub_element.id == peer.id:
            raise InvalidStateError(f"Sub-element '{sub_element.id}' cannot be linked to itself")

        synchronizer = self.store.synchronizer
        group_id = self._group_of(EntityKind.SUB_ELEMENT, peer)
        synchronizer.assign_group(EntityKind.SUB_ELEMENT, sub_element, group_id)
        synchronizer.adopt(EntityKind.SUB_ELEMENT, sub_element, peer)
        logger.info(f"Linked sub-element {sub_element.id} to {peer.id} in group {group_id}")

    def _merge_structure(self, element: Element, peer: Element, link_copies: bool) -> None:
        """
        Name-keyed union of sub-structure between two elements.

        Sub-categories missing on one side are created there; sub-elements
        missing by name in a matching sub-category are copied across. This is
        a one-time copy, not an ongoing structural sync.
        """
        copied = 0
        for source, target in ((peer, element), (element, peer)):
            for source_sc in source.sub_categories:
                target_sc = next(
                    (sc for sc in target.sub_categories if sc.name == source_sc.name), None
                )
                if target_sc is None:
                    target_sc = SubCategory(
                        id=self.store.new_id(),
                        name=source_sc.name,
                        icon=source_sc.icon,
                        orientation=source_sc.orientation,
                    )
                    target.sub_categories.append(target_sc)

                present = {se.name for se in target_sc.sub_elements}
                for source_se in list(source_sc.sub_elements):
                    if source_se.name in present:
                        continue
                    target_sc.sub_elements.append(self._copy_sub_element(source_se, link_copies))
                    present.add(source_se.name)
                    copied += 1

        if copied:
            logger.debug(f"Merged {copied} sub-element(s) between {element.id} and {peer.id}")

    def _copy_sub_element(self, source: SubElement, link: bool) -> SubElement:
        copy = source.model_copy(update={"id": self.store.new_id(), "linked_group_id": None})
        if link:
            group_id = self._group_of(EntityKind.SUB_ELEMENT, source)
            self.store.synchronizer.assign_group(EntityKind.SUB_ELEMENT, copy, group_id)
        return copy
