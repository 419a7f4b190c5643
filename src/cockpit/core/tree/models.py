"""
Entity tree data models.

Defines the cockpit hierarchy:

    Cockpit -> Domain -> Category -> Element -> SubCategory -> SubElement

Every level is an ordered list owned by its parent. Field names are
snake_case in Python and camelCase in stored records (``linkedGroupId``,
``subCategories``...), so records written by the persistence collaborator
load unchanged. Fields this engine does not know about are kept as extras
and written back on save.
"""

from enum import Enum
from typing import Any, Optional

from pydantic import (
    BaseModel,
    ConfigDict,
    Field,
    SerializerFunctionWrapHandler,
    field_validator,
    model_serializer,
)
from pydantic.alias_generators import to_camel


class TileStatus(str, Enum):
    """Status values an element or sub-element can carry."""

    FATAL = "fatal"
    CRITIQUE = "critique"
    MINEUR = "mineur"
    INFORMATION = "information"
    OK = "ok"
    DECONNECTE = "deconnecte"
    HERITE = "herite"  # derive from children and linked peers
    HERITE_DOMAINE = "herite_domaine"  # derive from another domain

    @property
    def is_sentinel(self) -> bool:
        """True for statuses that ask to be derived rather than displayed."""
        return self in (TileStatus.HERITE, TileStatus.HERITE_DOMAINE)


class Orientation(str, Enum):
    """Layout direction of a category or sub-category."""

    HORIZONTAL = "horizontal"
    VERTICAL = "vertical"


class TemplateType(str, Enum):
    """Renderer a domain is consumed by. Opaque to the engine."""

    STANDARD = "standard"
    GRID = "grid"
    MAP = "map"
    BACKGROUND = "background"
    ELEMENT = "element"
    HOURS_TRACKING = "hours-tracking"
    ALERTS = "alerts"
    STATS = "stats"
    LIBRARY = "library"
    DATA_HISTORY = "data-history"


class EntityKind(str, Enum):
    """Entity kinds, used in error messages and link bookkeeping."""

    DOMAIN = "domain"
    CATEGORY = "category"
    ELEMENT = "element"
    SUB_CATEGORY = "sub_category"
    SUB_ELEMENT = "sub_element"
    ZONE = "zone"


class TreeModel(BaseModel):
    """Base for every stored tree node."""

    model_config = ConfigDict(
        alias_generator=to_camel,
        populate_by_name=True,
        extra="allow",
        validate_assignment=True,
    )

    @model_serializer(mode="wrap")
    def _omit_empty_fields(self, handler: SerializerFunctionWrapHandler) -> dict[str, Any]:
        # Modelled fields left at None are not written; extras are written as loaded
        data = handler(self)
        for name, field in type(self).model_fields.items():
            if getattr(self, name) is None:
                data.pop(name, None)
                if field.alias:
                    data.pop(field.alias, None)
        return data


def _none_as_empty(v: Any) -> Any:
    # Stored data may predate a collection field or carry an explicit null
    return [] if v is None else v


class SubElement(TreeModel):
    """A leaf tile inside a sub-category."""

    id: str
    name: str
    status: TileStatus = TileStatus.OK
    linked_group_id: Optional[str] = None
    icon: Optional[str] = None
    value: Optional[str] = None
    unit: Optional[str] = None


class SubCategory(TreeModel):
    """Group of sub-elements inside an element."""

    id: str
    name: str
    icon: Optional[str] = None
    orientation: Orientation = Orientation.HORIZONTAL
    sub_elements: list[SubElement] = Field(default_factory=list)

    @field_validator("sub_elements", mode="before")
    @classmethod
    def _empty_sub_elements(cls, v: Any) -> Any:
        return _none_as_empty(v)


class Element(TreeModel):
    """
    A main tile inside a category.

    Elements with status ``herite`` derive their displayed status from their
    sub-elements (and those of linked peers), see
    :func:`cockpit.core.status.aggregation.effective_status`.
    """

    id: str
    name: str
    status: TileStatus = TileStatus.OK
    linked_group_id: Optional[str] = None
    icon: Optional[str] = None
    icon2: Optional[str] = None
    icon3: Optional[str] = None
    value: Optional[str] = None
    unit: Optional[str] = None
    zone: Optional[str] = None
    # Free-placement templates only, in percent of the background image
    position_x: Optional[float] = None
    position_y: Optional[float] = None
    width: Optional[float] = None
    height: Optional[float] = None
    inherit_from_domain_id: Optional[str] = None
    sub_categories: list[SubCategory] = Field(default_factory=list)

    @field_validator("sub_categories", mode="before")
    @classmethod
    def _empty_sub_categories(cls, v: Any) -> Any:
        return _none_as_empty(v)


class Category(TreeModel):
    """Ordered group of elements inside a domain."""

    id: str
    name: str
    icon: Optional[str] = None
    orientation: Orientation = Orientation.HORIZONTAL
    elements: list[Element] = Field(default_factory=list)

    @field_validator("elements", mode="before")
    @classmethod
    def _empty_elements(cls, v: Any) -> Any:
        return _none_as_empty(v)


class Domain(TreeModel):
    """A cockpit tab."""

    id: str
    name: str
    icon: Optional[str] = None
    template_type: TemplateType = TemplateType.STANDARD
    categories: list[Category] = Field(default_factory=list)

    @field_validator("categories", mode="before")
    @classmethod
    def _empty_categories(cls, v: Any) -> Any:
        return _none_as_empty(v)


class Zone(TreeModel):
    """Flat tag that elements can reference by name."""

    id: str
    name: str
    icon: Optional[str] = None


class Cockpit(TreeModel):
    """Root of the tree."""

    id: str
    name: str
    domains: list[Domain] = Field(default_factory=list)
    zones: list[Zone] = Field(default_factory=list)
    settings: dict[str, Any] = Field(default_factory=dict)

    @field_validator("domains", "zones", mode="before")
    @classmethod
    def _empty_collections(cls, v: Any) -> Any:
        return _none_as_empty(v)

    @field_validator("settings", mode="before")
    @classmethod
    def _empty_settings(cls, v: Any) -> Any:
        return {} if v is None else v


# ==============================================================================
# Patches
# ==============================================================================


class Patch(BaseModel):
    """Partial update. Only fields explicitly set are applied."""

    model_config = ConfigDict(
        alias_generator=to_camel,
        populate_by_name=True,
        extra="forbid",
    )

    def changes(self) -> dict[str, Any]:
        """Return the explicitly set fields as ``{python_name: value}``."""
        return {name: getattr(self, name) for name in self.model_fields_set}


class ElementPatch(Patch):
    """Fields of an :class:`Element` that ``update_element`` may change."""

    name: Optional[str] = None
    status: Optional[TileStatus] = None
    icon: Optional[str] = None
    icon2: Optional[str] = None
    icon3: Optional[str] = None
    value: Optional[str] = None
    unit: Optional[str] = None
    zone: Optional[str] = None
    position_x: Optional[float] = None
    position_y: Optional[float] = None
    width: Optional[float] = None
    height: Optional[float] = None
    inherit_from_domain_id: Optional[str] = None


class SubElementPatch(Patch):
    """Fields of a :class:`SubElement` that ``update_sub_element`` may change."""

    name: Optional[str] = None
    status: Optional[TileStatus] = None
    icon: Optional[str] = None
    value: Optional[str] = None
    unit: Optional[str] = None


class DomainPatch(Patch):
    """Fields of a :class:`Domain` that ``update_domain`` may change."""

    name: Optional[str] = None
    icon: Optional[str] = None
    template_type: Optional[TemplateType] = None


class CategoryPatch(Patch):
    """Fields of a :class:`Category` or :class:`SubCategory` that may be changed."""

    name: Optional[str] = None
    icon: Optional[str] = None
    orientation: Optional[Orientation] = None
