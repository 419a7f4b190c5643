"""
Entity tree: models, typed errors, ordering and name search.

The store itself lives in :mod:`cockpit.core.tree.store`.

The hierarchy is Cockpit -> Domain -> Category -> Element -> SubCategory ->
SubElement, each level an ordered list owned by its parent.
"""

from .errors import CockpitError, InvalidStateError, NotFoundError, ValidationError
from .models import (
    Category,
    CategoryPatch,
    Cockpit,
    Domain,
    DomainPatch,
    Element,
    ElementPatch,
    EntityKind,
    Orientation,
    SubCategory,
    SubElement,
    SubElementPatch,
    TemplateType,
    TileStatus,
    Zone,
)
from .ordering import drop_target_index
from .search import (
    ElementMatch,
    MatchGroup,
    SubElementMatch,
    all_elements,
    all_sub_elements,
    find_elements_by_name,
    find_sub_elements_by_name,
    group_matches,
)

__all__ = [
    # Errors
    "CockpitError",
    "InvalidStateError",
    "NotFoundError",
    "ValidationError",
    # Models
    "Category",
    "CategoryPatch",
    "Cockpit",
    "Domain",
    "DomainPatch",
    "Element",
    "ElementPatch",
    "EntityKind",
    "Orientation",
    "SubCategory",
    "SubElement",
    "SubElementPatch",
    "TemplateType",
    "TileStatus",
    "Zone",
    # Search and ordering
    "ElementMatch",
    "MatchGroup",
    "SubElementMatch",
    "all_elements",
    "all_sub_elements",
    "drop_target_index",
    "find_elements_by_name",
    "find_sub_elements_by_name",
    "group_matches",
]
