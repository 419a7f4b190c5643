"""
Entity tree store.

The canonical owner of one cockpit hierarchy. Every other component reads the
tree through a :class:`TreeStore` passed to it explicitly; nothing reaches into
ambient state.

Mutation model: single writer, synchronous. Each call, including fan-out to
linked peers, completes before it returns. Multi-step operations that must be
all-or-nothing run inside :meth:`TreeStore.transaction`.

Usage:
    >>> store = TreeStore()
    >>> domain = store.add_domain("Plant A")
    >>> category = store.add_category(domain.id, "Pumps")
    >>> pump = store.create_element(category.id, "Pump 1")
    >>> store.update_element(pump.id, {"status": "mineur"})
"""

from __future__ import annotations

import logging
import uuid
from collections.abc import Callable, Iterator
from contextlib import contextmanager
from dataclasses import dataclass
from typing import Any, Optional, TypeVar

from pydantic import ValidationError as PydanticValidationError

from cockpit.core.config.models import CockpitConfig
from cockpit.core.links.index import LinkIndex
from cockpit.core.links.sync import LinkSynchronizer
from cockpit.core.status.policy import SeverityPolicy
from cockpit.core.tree.errors import InvalidStateError, NotFoundError, ValidationError
from cockpit.core.tree.models import (
    Category,
    CategoryPatch,
    Cockpit,
    Domain,
    DomainPatch,
    Element,
    ElementPatch,
    EntityKind,
    Orientation,
    Patch,
    SubCategory,
    SubElement,
    SubElementPatch,
    TemplateType,
    TileStatus,
    Zone,
)
from cockpit.core.tree.ordering import index_of, move_item, reorder_item

logger = logging.getLogger(__name__)

P = TypeVar("P", bound=Patch)


def _uuid() -> str:
    return str(uuid.uuid4())


# ============================================================================
# Locations
# ============================================================================


@dataclass(frozen=True)
class ElementLocation:
    """An element together with the containers that own it."""

    domain: Domain
    category: Category
    element: Element


@dataclass(frozen=True)
class SubCategoryLocation:
    """A sub-category together with the containers that own it."""

    domain: Domain
    category: Category
    element: Element
    sub_category: SubCategory


@dataclass(frozen=True)
class SubElementLocation:
    """A sub-element together with the containers that own it."""

    domain: Domain
    category: Category
    element: Element
    sub_category: SubCategory
    sub_element: SubElement


# ============================================================================
# TreeStore
# ============================================================================


class TreeStore:
    """
    Owner of a cockpit tree and its linked-group index.

    Attributes:
        cockpit: The tree. Replaced wholesale when a transaction rolls back.
        config: Engine configuration
        links: Linked-group membership index
        synchronizer: Propagates synchronized fields across linked groups
        policy: Severity policy used by status aggregation

    Example:
        >>> store = TreeStore.from_record(record)
        >>> store.move_element(el_id, cat_a, cat_b)
        >>> record = store.to_record()
    """

    def __init__(
        self,
        cockpit: Cockpit | None = None,
        config: CockpitConfig | None = None,
        id_factory: Callable[[], str] | None = None,
    ) -> None:
        """
        Initialize the store.

        Args:
            cockpit: Existing tree (a new empty cockpit if None)
            config: Engine configuration (defaults if None)
            id_factory: Callable returning fresh ids (uuid4 strings if None)

        Raises:
            InvalidStateError: If the tree reuses an id within one entity kind
        """
        self._new_id = id_factory or _uuid
        self.config = config or CockpitConfig()
        if cockpit is None:
            cockpit = Cockpit(id=self.new_id(), name="Cockpit")
        self.cockpit = cockpit
        self._check_unique_ids()
        self.links = LinkIndex.from_cockpit(self.cockpit)
        self.synchronizer = LinkSynchronizer(self, sync_name=self.config.links.sync_name)
        self.policy: SeverityPolicy = self.config.status.policy()

    @classmethod
    def from_record(
        cls,
        record: dict[str, Any],
        config: CockpitConfig | None = None,
        id_factory: Callable[[], str] | None = None,
    ) -> TreeStore:
        """
        Build a store from a stored cockpit record.

        Missing or null collections load as empty lists.

        Raises:
            ValidationError: If the record does not describe a cockpit
            InvalidStateError: If the record reuses an id within one entity kind
        """
        try:
            cockpit = Cockpit.model_validate(record)
        except PydanticValidationError as e:
            raise ValidationError(f"Invalid cockpit record: {e}") from e
        return cls(cockpit, config=config, id_factory=id_factory)

    def to_record(self) -> dict[str, Any]:
        """Return the cockpit as a JSON-ready record with camelCase keys."""
        return self.cockpit.model_dump(mode="json", by_alias=True)

    def new_id(self) -> str:
        """Mint a fresh id from the store's id factory."""
        return self._new_id()

    @contextmanager
    def transaction(self) -> Iterator[TreeStore]:
        """
        Run a block all-or-nothing.

        The cockpit and link index are snapshotted on entry and restored if
        the block raises. Entity objects obtained inside a rolled-back block
        are detached from the restored tree.
        """
        cockpit_snapshot = self.cockpit.model_copy(deep=True)
        links_snapshot = self.links.copy()
        try:
            yield self
        except Exception:
            self.cockpit = cockpit_snapshot
            self.links = links_snapshot
            logger.debug("Transaction rolled back")
            raise

    # ========================================================================
    # Traversal and lookup
    # ========================================================================

    def iter_elements(self) -> Iterator[ElementLocation]:
        """Yield every element in tree order."""
        for domain in self.cockpit.domains:
            for category in domain.categories:
                for element in category.elements:
                    yield ElementLocation(domain, category, element)

    def iter_sub_categories(self) -> Iterator[SubCategoryLocation]:
        for loc in self.iter_elements():
            for sub_category in loc.element.sub_categories:
                yield SubCategoryLocation(loc.domain, loc.category, loc.element, sub_category)

    def iter_sub_elements(self) -> Iterator[SubElementLocation]:
        """Yield every sub-element in tree order."""
        for loc in self.iter_sub_categories():
            for sub_element in loc.sub_category.sub_elements:
                yield SubElementLocation(
                    loc.domain, loc.category, loc.element, loc.sub_category, sub_element
                )

    def get_domain(self, domain_id: str) -> Domain:
        for domain in self.cockpit.domains:
            if domain.id == domain_id:
                return domain
        raise NotFoundError(EntityKind.DOMAIN.value, domain_id)

    def locate_category(self, category_id: str) -> tuple[Domain, Category]:
        for domain in self.cockpit.domains:
            for category in domain.categories:
                if category.id == category_id:
                    return domain, category
        raise NotFoundError(EntityKind.CATEGORY.value, category_id)

    def get_category(self, category_id: str) -> Category:
        return self.locate_category(category_id)[1]

    def locate_element(self, element_id: str) -> ElementLocation:
        for loc in self.iter_elements():
            if loc.element.id == element_id:
                return loc
        raise NotFoundError(EntityKind.ELEMENT.value, element_id)

    def get_element(self, element_id: str) -> Element:
        return self.locate_element(element_id).element

    def locate_sub_category(self, sub_category_id: str) -> SubCategoryLocation:
        for loc in self.iter_sub_categories():
            if loc.sub_category.id == sub_category_id:
                return loc
        raise NotFoundError(EntityKind.SUB_CATEGORY.value, sub_category_id)

    def get_sub_category(self, sub_category_id: str) -> SubCategory:
        return self.locate_sub_category(sub_category_id).sub_category

    def locate_sub_element(self, sub_element_id: str) -> SubElementLocation:
        for loc in self.iter_sub_elements():
            if loc.sub_element.id == sub_element_id:
                return loc
        raise NotFoundError(EntityKind.SUB_ELEMENT.value, sub_element_id)

    def get_sub_element(self, sub_element_id: str) -> SubElement:
        return self.locate_sub_element(sub_element_id).sub_element

    def get_zone(self, zone_id: str) -> Zone:
        for zone in self.cockpit.zones:
            if zone.id == zone_id:
                return zone
        raise NotFoundError(EntityKind.ZONE.value, zone_id)

    # ========================================================================
    # Validation helpers
    # ========================================================================

    def _check_unique_ids(self) -> None:
        seen: dict[str, set[str]] = {}
        duplicates: list[str] = []

        def check(kind: EntityKind, entity_id: str) -> None:
            ids = seen.setdefault(kind.value, set())
            if entity_id in ids:
                duplicates.append(f"{kind.value} '{entity_id}'")
            ids.add(entity_id)

        for zone in self.cockpit.zones:
            check(EntityKind.ZONE, zone.id)
        for domain in self.cockpit.domains:
            check(EntityKind.DOMAIN, domain.id)
            for category in domain.categories:
                check(EntityKind.CATEGORY, category.id)
                for element in category.elements:
                    check(EntityKind.ELEMENT, element.id)
                    for sub_category in element.sub_categories:
                        check(EntityKind.SUB_CATEGORY, sub_category.id)
                        for sub_element in sub_category.sub_elements:
                            check(EntityKind.SUB_ELEMENT, sub_element.id)

        if duplicates:
            raise InvalidStateError(f"Duplicate ids: {', '.join(duplicates)}")

    def _clean_name(self, name: Optional[str]) -> str:
        if name is None or not name.strip():
            raise ValidationError("Name cannot be blank")
        return name.strip() if self.config.editor.strip_names else name

    @staticmethod
    def _coerce_patch(patch: P | dict[str, Any], patch_cls: type[P]) -> dict[str, Any]:
        if isinstance(patch, patch_cls):
            model = patch
        elif isinstance(patch, dict):
            try:
                model = patch_cls.model_validate(patch)
            except PydanticValidationError as e:
                raise ValidationError(f"Invalid {patch_cls.__name__}: {e}") from e
        else:
            raise ValidationError(f"Expected {patch_cls.__name__} or dict, got {type(patch)}")
        return model.changes()

    def _prepare_changes(self, changes: dict[str, Any]) -> dict[str, Any]:
        """Clean names and reject explicit nulls for required fields."""
        if "name" in changes:
            changes["name"] = self._clean_name(changes["name"])
        for required in ("status", "orientation", "template_type"):
            if required in changes and changes[required] is None:
                raise ValidationError(f"'{required}' cannot be cleared")
        return changes

    def can_inherit(self, element: Element) -> bool:
        """
        True if ``herite`` is legal on *element*.

        An element may inherit when it, or any member of its linked group,
        owns at least one sub-category, since aggregation folds in the
        descendants of linked peers.
        """
        if element.sub_categories:
            return True
        return any(
            peer.sub_categories for peer in self.synchronizer.peers(EntityKind.ELEMENT, element)
        )

    def _check_element_status(
        self, element: Element, status: TileStatus, inherit_from_domain_id: Optional[str]
    ) -> None:
        if status == TileStatus.HERITE and not self.can_inherit(element):
            raise InvalidStateError(
                f"Element '{element.id}' has no sub-categories to inherit a status from"
            )
        if status == TileStatus.HERITE_DOMAINE:
            if not inherit_from_domain_id:
                raise InvalidStateError(
                    f"Element '{element.id}' needs a domain to inherit a status from"
                )
            self.get_domain(inherit_from_domain_id)

    # ========================================================================
    # Domains
    # ========================================================================

    def add_domain(
        self,
        name: str,
        template_type: TemplateType = TemplateType.STANDARD,
        icon: Optional[str] = None,
    ) -> Domain:
        domain = Domain(
            id=self.new_id(), name=self._clean_name(name), template_type=template_type, icon=icon
        )
        self.cockpit.domains.append(domain)
        logger.debug(f"Added domain {domain.id} '{domain.name}'")
        return domain

    def update_domain(self, domain_id: str, patch: DomainPatch | dict[str, Any]) -> None:
        changes = self._prepare_changes(self._coerce_patch(patch, DomainPatch))
        domain = self.get_domain(domain_id)
        for field, value in changes.items():
            setattr(domain, field, value)

    def delete_domain(self, domain_id: str) -> None:
        """Delete a domain and everything below it. Linked peers elsewhere survive."""
        domain = self.get_domain(domain_id)
        for category in domain.categories:
            for element in category.elements:
                self.synchronizer.forget(element)
        self.cockpit.domains.remove(domain)
        logger.info(f"Deleted domain {domain_id}")

    # ========================================================================
    # Categories
    # ========================================================================

    def add_category(
        self,
        domain_id: str,
        name: str,
        orientation: Orientation = Orientation.HORIZONTAL,
        icon: Optional[str] = None,
    ) -> Category:
        domain = self.get_domain(domain_id)
        category = Category(
            id=self.new_id(), name=self._clean_name(name), orientation=orientation, icon=icon
        )
        domain.categories.append(category)
        return category

    def update_category(self, category_id: str, patch: CategoryPatch | dict[str, Any]) -> None:
        changes = self._prepare_changes(self._coerce_patch(patch, CategoryPatch))
        category = self.get_category(category_id)
        for field, value in changes.items():
            setattr(category, field, value)

    def delete_category(self, category_id: str) -> None:
        domain, category = self.locate_category(category_id)
        for element in category.elements:
            self.synchronizer.forget(element)
        domain.categories.remove(category)
        logger.info(f"Deleted category {category_id}")

    # ========================================================================
    # Elements
    # ========================================================================

    def create_element(self, category_id: str, name: str) -> Element:
        """
        Append a new element to a category.

        Raises:
            NotFoundError: If the category does not exist
            ValidationError: If the name is blank
        """
        clean = self._clean_name(name)
        category = self.get_category(category_id)
        element = Element(id=self.new_id(), name=clean, status=self.config.editor.default_status)
        category.elements.append(element)
        logger.debug(f"Created element {element.id} '{clean}' in category {category_id}")
        return element

    def insert_element(self, category_id: str, element: Element, index: int | None = None) -> None:
        """
        Attach a fully built element (and its subtree) to a category.

        Used for clones and imports. The element keeps its ids and group ids,
        which must not collide with existing entities.

        Raises:
            NotFoundError: If the category does not exist
            InvalidStateError: If an id is already in use
        """
        category = self.get_category(category_id)
        existing_elements = {loc.element.id for loc in self.iter_elements()}
        existing_sub_categories = {loc.sub_category.id for loc in self.iter_sub_categories()}
        existing_sub_elements = {loc.sub_element.id for loc in self.iter_sub_elements()}
        if element.id in existing_elements:
            raise InvalidStateError(f"Element id '{element.id}' already in use")
        for sub_category in element.sub_categories:
            if sub_category.id in existing_sub_categories:
                raise InvalidStateError(f"Sub-category id '{sub_category.id}' already in use")
            for sub_element in sub_category.sub_elements:
                if sub_element.id in existing_sub_elements:
                    raise InvalidStateError(f"Sub-element id '{sub_element.id}' already in use")

        if index is None:
            category.elements.append(element)
        else:
            category.elements.insert(max(0, min(index, len(category.elements))), element)
        self.synchronizer.register(element)

    def update_element(self, element_id: str, patch: ElementPatch | dict[str, Any]) -> None:
        """
        Apply a partial patch to one element, then propagate to its linked group.

        Only the synchronized fields of the patch (status, icon, value, unit,
        inherit_from_domain_id, and name when configured) reach the peers.

        Raises:
            NotFoundError: If the element does not exist
            ValidationError: If the patch is malformed or renames to a blank name
            InvalidStateError: If the new status cannot be derived for this element
        """
        changes = self._prepare_changes(self._coerce_patch(patch, ElementPatch))
        element = self.get_element(element_id)

        status = changes.get("status", element.status)
        if "status" in changes or "inherit_from_domain_id" in changes:
            self._check_element_status(
                element,
                status,
                changes.get("inherit_from_domain_id", element.inherit_from_domain_id),
            )

        for field, value in changes.items():
            setattr(element, field, value)
        self.synchronizer.propagate(EntityKind.ELEMENT, element, changes)

    def delete_element(self, element_id: str) -> None:
        """Delete one element and its subtree. Linked peers are untouched."""
        loc = self.locate_element(element_id)
        self.synchronizer.forget(loc.element)
        loc.category.elements.remove(loc.element)
        logger.info(f"Deleted element {element_id}")

    def move_element(self, element_id: str, from_category_id: str, to_category_id: str) -> None:
        """
        Move an element to the end of another category.

        Moving to the category it is already in is a no-op.

        Raises:
            NotFoundError: If a category does not exist or the element is not
                in the source category
        """
        source = self.get_category(from_category_id)
        target = self.get_category(to_category_id)
        index = index_of(source.elements, lambda e: e.id == element_id)
        if index < 0:
            raise NotFoundError(
                EntityKind.ELEMENT.value, element_id, f"in category '{from_category_id}'"
            )
        if source is target:
            return
        move_item(source.elements, target.elements, index)
        logger.debug(f"Moved element {element_id} from {from_category_id} to {to_category_id}")

    def move_element_to_category(self, element_id: str, to_category_id: str) -> None:
        """Move an element without naming its current category."""
        loc = self.locate_element(element_id)
        self.move_element(element_id, loc.category.id, to_category_id)

    def reorder_element(self, element_id: str, category_id: str, target_index: int) -> None:
        """
        Move an element to *target_index* within its category.

        The index is clamped to ``[0, len]``. Use
        :func:`cockpit.core.tree.ordering.drop_target_index` to turn a drop
        position into an index.
        """
        category = self.get_category(category_id)
        index = index_of(category.elements, lambda e: e.id == element_id)
        if index < 0:
            raise NotFoundError(
                EntityKind.ELEMENT.value, element_id, f"in category '{category_id}'"
            )
        reorder_item(category.elements, index, target_index)

    # ========================================================================
    # Sub-categories
    # ========================================================================

    def add_sub_category(
        self,
        element_id: str,
        name: str,
        orientation: Orientation = Orientation.HORIZONTAL,
        icon: Optional[str] = None,
    ) -> SubCategory:
        element = self.get_element(element_id)
        sub_category = SubCategory(
            id=self.new_id(), name=self._clean_name(name), orientation=orientation, icon=icon
        )
        element.sub_categories.append(sub_category)
        return sub_category

    def update_sub_category(
        self, sub_category_id: str, patch: CategoryPatch | dict[str, Any]
    ) -> None:
        changes = self._prepare_changes(self._coerce_patch(patch, CategoryPatch))
        sub_category = self.get_sub_category(sub_category_id)
        for field, value in changes.items():
            setattr(sub_category, field, value)

    def delete_sub_category(self, sub_category_id: str) -> None:
        """
        Delete a sub-category and its sub-elements.

        An inheriting element may be left without sub-categories; its
        effective status then degrades to the default.
        """
        loc = self.locate_sub_category(sub_category_id)
        for sub_element in loc.sub_category.sub_elements:
            self.synchronizer.forget_sub_element(sub_element)
        loc.element.sub_categories.remove(loc.sub_category)
        logger.info(f"Deleted sub-category {sub_category_id}")

    # ========================================================================
    # Sub-elements
    # ========================================================================

    def create_sub_element(self, sub_category_id: str, name: str) -> SubElement:
        """
        Append a new sub-element to a sub-category.

        Raises:
            NotFoundError: If the sub-category does not exist
            ValidationError: If the name is blank
        """
        clean = self._clean_name(name)
        sub_category = self.get_sub_category(sub_category_id)
        sub_element = SubElement(
            id=self.new_id(), name=clean, status=self.config.editor.default_status
        )
        sub_category.sub_elements.append(sub_element)
        return sub_element

    def update_sub_element(
        self, sub_element_id: str, patch: SubElementPatch | dict[str, Any]
    ) -> None:
        """
        Apply a partial patch to one sub-element, then propagate to its linked group.

        Raises:
            NotFoundError: If the sub-element does not exist
            ValidationError: If the patch is malformed or renames to a blank name
            InvalidStateError: If the patch sets an inherited status
        """
        changes = self._prepare_changes(self._coerce_patch(patch, SubElementPatch))
        sub_element = self.get_sub_element(sub_element_id)
        status = changes.get("status")
        if status is not None and status.is_sentinel:
            raise InvalidStateError(
                f"Sub-element '{sub_element_id}' cannot inherit a status ({status.value})"
            )

        for field, value in changes.items():
            setattr(sub_element, field, value)
        self.synchronizer.propagate(EntityKind.SUB_ELEMENT, sub_element, changes)

    def delete_sub_element(self, sub_element_id: str) -> None:
        """Delete one sub-element. Linked peers are untouched."""
        loc = self.locate_sub_element(sub_element_id)
        self.synchronizer.forget_sub_element(loc.sub_element)
        loc.sub_category.sub_elements.remove(loc.sub_element)
        logger.info(f"Deleted sub-element {sub_element_id}")

    def move_sub_element(
        self, sub_element_id: str, from_sub_category_id: str, to_sub_category_id: str
    ) -> None:
        """
        Move a sub-element to the end of another sub-category.

        Moving to the sub-category it is already in is a no-op.

        Raises:
            NotFoundError: If a sub-category does not exist or the sub-element
                is not in the source sub-category
        """
        source = self.get_sub_category(from_sub_category_id)
        target = self.get_sub_category(to_sub_category_id)
        index = index_of(source.sub_elements, lambda s: s.id == sub_element_id)
        if index < 0:
            raise NotFoundError(
                EntityKind.SUB_ELEMENT.value,
                sub_element_id,
                f"in sub-category '{from_sub_category_id}'",
            )
        if source is target:
            return
        move_item(source.sub_elements, target.sub_elements, index)

    def move_sub_element_to_sub_category(
        self, sub_element_id: str, to_sub_category_id: str
    ) -> None:
        """Move a sub-element without naming its current sub-category."""
        loc = self.locate_sub_element(sub_element_id)
        self.move_sub_element(sub_element_id, loc.sub_category.id, to_sub_category_id)

    def reorder_sub_element(
        self, sub_element_id: str, sub_category_id: str, target_index: int
    ) -> None:
        """Move a sub-element to *target_index* (clamped) within its sub-category."""
        sub_category = self.get_sub_category(sub_category_id)
        index = index_of(sub_category.sub_elements, lambda s: s.id == sub_element_id)
        if index < 0:
            raise NotFoundError(
                EntityKind.SUB_ELEMENT.value,
                sub_element_id,
                f"in sub-category '{sub_category_id}'",
            )
        reorder_item(sub_category.sub_elements, index, target_index)

    # ========================================================================
    # Zones
    # ========================================================================

    def add_zone(self, name: str, icon: Optional[str] = None) -> Zone:
        zone = Zone(id=self.new_id(), name=self._clean_name(name), icon=icon)
        self.cockpit.zones.append(zone)
        return zone

    def delete_zone(self, zone_id: str) -> None:
        """Delete a zone and clear it from every element that referenced it."""
        zone = self.get_zone(zone_id)
        self.cockpit.zones.remove(zone)
        for loc in self.iter_elements():
            if loc.element.zone == zone.name:
                loc.element.zone = None
