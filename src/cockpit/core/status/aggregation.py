"""
Status aggregation: the effective status of elements and domains.

Effective statuses are derived on every read and never stored, so they cannot
drift from the tree. Every function here is pure and total: missing, empty or
stale data degrades to the policy default (``ok``) instead of raising, which
makes them safe to call from any render path.

Usage:
    >>> from cockpit.core.status import effective_status
    >>> effective_status(element, store)
    <TileStatus.MINEUR: 'mineur'>
"""

from __future__ import annotations

import logging
from collections import Counter
from collections.abc import Iterable, Iterator
from dataclasses import dataclass
from typing import TYPE_CHECKING, Optional, Union

from cockpit.core.status.policy import DEFAULT_POLICY, SeverityPolicy
from cockpit.core.tree.errors import NotFoundError
from cockpit.core.tree.models import Domain, Element, EntityKind, TileStatus

if TYPE_CHECKING:
    from cockpit.core.tree.store import TreeStore

logger = logging.getLogger(__name__)


# ============================================================================
# Status source
# ============================================================================


@dataclass(frozen=True)
class Explicit:
    """The element displays its own status."""

    status: TileStatus


@dataclass(frozen=True)
class Inherited:
    """The element displays the worst status of its sub-elements and linked peers."""


@dataclass(frozen=True)
class InheritedFromDomain:
    """The element displays the worst status of another domain."""

    domain_id: Optional[str]


StatusSource = Union[Explicit, Inherited, InheritedFromDomain]


def status_source(element: Element) -> StatusSource:
    """Read an element's stored status as a tagged union."""
    if element.status == TileStatus.HERITE:
        return Inherited()
    if element.status == TileStatus.HERITE_DOMAINE:
        return InheritedFromDomain(element.inherit_from_domain_id)
    return Explicit(element.status)


# ============================================================================
# Colors and labels
# ============================================================================


@dataclass(frozen=True)
class StatusColor:
    """Display attributes of a status."""

    status: TileStatus
    hex: str
    label: str


STATUS_HEX: dict[TileStatus, str] = {
    TileStatus.FATAL: "#8B5CF6",
    TileStatus.CRITIQUE: "#E57373",
    TileStatus.MINEUR: "#FFB74D",
    TileStatus.INFORMATION: "#42A5F5",
    TileStatus.OK: "#9CCC65",
    TileStatus.DECONNECTE: "#9E9E9E",
    TileStatus.HERITE: "#9CCC65",
    TileStatus.HERITE_DOMAINE: "#9CCC65",
}

STATUS_LABELS: dict[TileStatus, str] = {
    TileStatus.FATAL: "Fatal",
    TileStatus.CRITIQUE: "Critique",
    TileStatus.MINEUR: "Mineur",
    TileStatus.INFORMATION: "Informations",
    TileStatus.OK: "OK",
    TileStatus.DECONNECTE: "Déconnecté",
    TileStatus.HERITE: "Héritée",
    TileStatus.HERITE_DOMAINE: "Héritage Domaine",
}


def status_color(status: TileStatus) -> StatusColor:
    return StatusColor(status=status, hex=STATUS_HEX[status], label=STATUS_LABELS[status])


# ============================================================================
# Aggregation
# ============================================================================


def _resolve_policy(store: TreeStore | None, policy: SeverityPolicy | None) -> SeverityPolicy:
    if policy is not None:
        return policy
    if store is not None:
        return store.policy
    return DEFAULT_POLICY


def descendant_statuses(element: Element) -> Iterator[TileStatus]:
    """Statuses of every sub-element below *element*."""
    for sub_category in element.sub_categories or []:
        for sub_element in sub_category.sub_elements or []:
            yield sub_element.status


def _peer_elements(element: Element, store: TreeStore) -> Iterator[Element]:
    peer_ids = store.links.peers(EntityKind.ELEMENT, element.linked_group_id, element.id)
    for peer_id in sorted(peer_ids):
        try:
            yield store.get_element(peer_id)
        except NotFoundError:
            # Stale index entry; aggregation degrades rather than fails
            logger.debug(f"Linked peer {peer_id} of element {element.id} not found")


def effective_status(
    element: Element,
    store: TreeStore | None = None,
    policy: SeverityPolicy | None = None,
    _visited_domains: frozenset[str] = frozenset(),
) -> TileStatus:
    """
    Status an element displays.

    * explicit status: returned as is
    * ``herite``: worst status among the element's sub-elements, plus those of
      every linked peer when a store is given
    * ``herite_domaine``: worst status of the referenced domain (needs a
      store); a domain already being evaluated contributes the default

    Args:
        element: Element to evaluate
        store: Tree the element lives in; enables peer and domain lookups
        policy: Severity ranking (the store's policy, else the default)

    Returns:
        The effective status; never a sentinel
    """
    resolved = _resolve_policy(store, policy)
    source = status_source(element)

    if isinstance(source, Explicit):
        return source.status

    if isinstance(source, Inherited):
        statuses = list(descendant_statuses(element))
        if store is not None and element.linked_group_id:
            for peer in _peer_elements(element, store):
                statuses.extend(descendant_statuses(peer))
        return resolved.worst(statuses)

    if store is None or not source.domain_id:
        return resolved.default
    if source.domain_id in _visited_domains:
        logger.debug(f"Circular domain inheritance through {source.domain_id}")
        return resolved.default
    try:
        domain = store.get_domain(source.domain_id)
    except NotFoundError:
        return resolved.default
    return domain_worst_status(domain, store, resolved, _visited_domains)


def domain_worst_status(
    domain: Domain,
    store: TreeStore | None = None,
    policy: SeverityPolicy | None = None,
    _visited_domains: frozenset[str] = frozenset(),
) -> TileStatus:
    """
    Worst status anywhere in a domain (the colour of its tab).

    Considers the effective status of every element and, directly, the status
    of every sub-element.
    """
    resolved = _resolve_policy(store, policy)
    visited = _visited_domains | {domain.id}

    statuses: list[TileStatus] = []
    for category in domain.categories or []:
        for element in category.elements or []:
            statuses.append(effective_status(element, store, resolved, visited))
            statuses.extend(descendant_statuses(element))
    return resolved.worst(statuses)


def effective_color(
    element: Element,
    store: TreeStore | None = None,
    policy: SeverityPolicy | None = None,
) -> StatusColor:
    """Display color and label of an element's effective status."""
    return status_color(effective_status(element, store, policy))


def status_counts(
    elements: Iterable[Element],
    store: TreeStore | None = None,
    policy: SeverityPolicy | None = None,
) -> list[tuple[TileStatus, int]]:
    """
    Count elements per effective status, most severe first.

    Statuses with no element are omitted.
    """
    resolved = _resolve_policy(store, policy)
    counts = Counter(effective_status(e, store, resolved) for e in elements)
    return [(status, counts[status]) for status in resolved.sort(counts)]
