"""
Name-based lookup across the whole cockpit.

Feeds the link-or-independent decision: when a new element or sub-element is
named like existing ones, the caller is shown every match with enough path
context to tell them apart. Matching is case-sensitive exact equality.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import TYPE_CHECKING, Optional, Union

from cockpit.core.tree.models import TileStatus

if TYPE_CHECKING:
    from cockpit.core.tree.store import ElementLocation, SubElementLocation, TreeStore

PATH_SEPARATOR = " > "


@dataclass(frozen=True)
class ElementMatch:
    """An element found by name, with its location."""

    id: str
    name: str
    status: TileStatus
    linked_group_id: Optional[str]
    domain_id: str
    domain_name: str
    category_id: str
    category_name: str

    @property
    def path(self) -> str:
        """Human-readable location, e.g. ``"Domain A > Pumps"``."""
        return PATH_SEPARATOR.join([self.domain_name, self.category_name])

    @classmethod
    def from_location(cls, loc: ElementLocation) -> ElementMatch:
        return cls(
            id=loc.element.id,
            name=loc.element.name,
            status=loc.element.status,
            linked_group_id=loc.element.linked_group_id,
            domain_id=loc.domain.id,
            domain_name=loc.domain.name,
            category_id=loc.category.id,
            category_name=loc.category.name,
        )


@dataclass(frozen=True)
class SubElementMatch:
    """A sub-element found by name, with its location."""

    id: str
    name: str
    status: TileStatus
    linked_group_id: Optional[str]
    domain_id: str
    domain_name: str
    category_id: str
    category_name: str
    element_id: str
    element_name: str
    sub_category_id: str
    sub_category_name: str

    @property
    def path(self) -> str:
        """Location as ``"Domain > Category > Element > Sub-category"``."""
        return PATH_SEPARATOR.join(
            [self.domain_name, self.category_name, self.element_name, self.sub_category_name]
        )

    @classmethod
    def from_location(cls, loc: SubElementLocation) -> SubElementMatch:
        return cls(
            id=loc.sub_element.id,
            name=loc.sub_element.name,
            status=loc.sub_element.status,
            linked_group_id=loc.sub_element.linked_group_id,
            domain_id=loc.domain.id,
            domain_name=loc.domain.name,
            category_id=loc.category.id,
            category_name=loc.category.name,
            element_id=loc.element.id,
            element_name=loc.element.name,
            sub_category_id=loc.sub_category.id,
            sub_category_name=loc.sub_category.name,
        )


Match = Union[ElementMatch, SubElementMatch]


@dataclass
class MatchGroup:
    """
    Candidates that already share a linked group, shown to the user once.

    Unlinked entities form a group of their own with ``linked_group_id`` None.
    """

    key: str
    linked_group_id: Optional[str]
    matches: list[Match] = field(default_factory=list)

    @property
    def representative(self) -> Match:
        return self.matches[0]

    @property
    def size(self) -> int:
        return len(self.matches)


def find_elements_by_name(store: TreeStore, name: str) -> list[ElementMatch]:
    """Return every element named exactly *name*, in tree order."""
    return [
        ElementMatch.from_location(loc) for loc in store.iter_elements() if loc.element.name == name
    ]


def find_sub_elements_by_name(store: TreeStore, name: str) -> list[SubElementMatch]:
    """Return every sub-element named exactly *name*, in tree order."""
    return [
        SubElementMatch.from_location(loc)
        for loc in store.iter_sub_elements()
        if loc.sub_element.name == name
    ]


def all_elements(store: TreeStore) -> list[ElementMatch]:
    """Every element with its location (link pickers list these)."""
    return [ElementMatch.from_location(loc) for loc in store.iter_elements()]


def all_sub_elements(store: TreeStore) -> list[SubElementMatch]:
    return [SubElementMatch.from_location(loc) for loc in store.iter_sub_elements()]


def group_matches(matches: list[ElementMatch] | list[SubElementMatch]) -> list[MatchGroup]:
    """
    Group candidates by linked group, keeping first-seen order.

    Example:
        >>> groups = group_matches(find_elements_by_name(store, "Pump 1"))
        >>> [(g.representative.path, g.size) for g in groups]
        [('Plant A > Pumps', 2), ('Plant B > Spare', 1)]
    """
    groups: dict[str, MatchGroup] = {}
    for match in matches:
        key = match.linked_group_id or f"single-{match.id}"
        if key not in groups:
            groups[key] = MatchGroup(key=key, linked_group_id=match.linked_group_id)
        groups[key].matches.append(match)
    return list(groups.values())
