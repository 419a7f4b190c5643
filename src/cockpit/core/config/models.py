"""
Configuration data models for cockpit.

These models define the structure of .cockpit.json and
~/.config/cockpit/config.json files, with validation and type safety via
Pydantic.
"""

from typing import Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator

from cockpit.core.status.policy import SEVERITY_PRESETS, SeverityPolicy
from cockpit.core.tree.models import TileStatus


class StatusConfig(BaseModel):
    """
    Status aggregation policy.

    Controls how a set of statuses is reduced to the worst one.
    """
    severity_preset: str = Field(
        default="default",
        description="Named severity ranking: 'default' or 'legacy'"
    )
    severity_order: Optional[list[TileStatus]] = Field(
        default=None,
        description="Explicit ranking, most severe first (overrides the preset)"
    )
    default_status: TileStatus = Field(
        default=TileStatus.OK,
        description="Status reported when nothing contributes one"
    )

    @field_validator("severity_preset")
    @classmethod
    def validate_preset(cls, v: str) -> str:
        if v not in SEVERITY_PRESETS:
            raise ValueError(
                f"Unknown severity preset '{v}', expected one of {sorted(SEVERITY_PRESETS)}"
            )
        return v

    @field_validator("severity_order")
    @classmethod
    def validate_order(cls, v: Optional[list[TileStatus]]) -> Optional[list[TileStatus]]:
        if v is None:
            return v
        if any(status.is_sentinel for status in v):
            raise ValueError("severity_order cannot contain inherited statuses")
        if len(set(v)) != len(v):
            raise ValueError("severity_order contains duplicates")
        return v

    @field_validator("default_status")
    @classmethod
    def validate_default(cls, v: TileStatus) -> TileStatus:
        if v.is_sentinel:
            raise ValueError("default_status cannot be an inherited status")
        return v

    def policy(self) -> SeverityPolicy:
        """Build the :class:`SeverityPolicy` these settings describe."""
        if self.severity_order:
            return SeverityPolicy(order=tuple(self.severity_order), default=self.default_status)
        return SeverityPolicy.preset(self.severity_preset, default=self.default_status)


class LinksConfig(BaseModel):
    """
    Linked-group synchronization settings.

    status, icon, value and unit are always synchronized; these options add
    to that set.
    """
    sync_name: bool = Field(
        default=False,
        description="Also propagate renames to every member of a linked group"
    )


class EditorConfig(BaseModel):
    """
    Defaults applied by the tree store when entities are created.
    """
    default_status: TileStatus = Field(
        default=TileStatus.OK,
        description="Status given to newly created elements and sub-elements"
    )
    strip_names: bool = Field(
        default=True,
        description="Trim surrounding whitespace from names on create and rename"
    )

    @field_validator("default_status")
    @classmethod
    def validate_default(cls, v: TileStatus) -> TileStatus:
        if v.is_sentinel:
            raise ValueError("New entities cannot start with an inherited status")
        return v


class CockpitConfig(BaseModel):
    """
    Top-level cockpit engine configuration.

    Loaded from defaults, user config, project config, and env vars.

    Example:
        >>> config = CockpitConfig(
        ...     status=StatusConfig(severity_preset="legacy"),
        ...     links=LinksConfig(sync_name=True),
        ... )
        >>> config.links.sync_name
        True
    """
    status: StatusConfig = Field(
        default_factory=StatusConfig,
        description="Status aggregation policy"
    )
    links: LinksConfig = Field(
        default_factory=LinksConfig,
        description="Linked-group synchronization"
    )
    editor: EditorConfig = Field(
        default_factory=EditorConfig,
        description="Creation defaults"
    )

    model_config = ConfigDict(
        extra="allow",  # Allow extra fields for forward compatibility
        validate_assignment=True,
    )
