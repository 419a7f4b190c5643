"""
Status aggregation.

Severity policy plus the pure functions that derive what an element or domain
displays: effective status, colour and per-status counts.
"""

from .aggregation import (
    STATUS_HEX,
    STATUS_LABELS,
    Explicit,
    Inherited,
    InheritedFromDomain,
    StatusColor,
    StatusSource,
    domain_worst_status,
    effective_color,
    effective_status,
    status_color,
    status_counts,
    status_source,
)
from .policy import DEFAULT_POLICY, SEVERITY_PRESETS, SeverityPolicy

__all__ = [
    # Policy
    "DEFAULT_POLICY",
    "SEVERITY_PRESETS",
    "SeverityPolicy",
    # Status source
    "Explicit",
    "Inherited",
    "InheritedFromDomain",
    "StatusSource",
    "status_source",
    # Aggregation
    "domain_worst_status",
    "effective_color",
    "effective_status",
    "status_counts",
    # Display
    "STATUS_HEX",
    "STATUS_LABELS",
    "StatusColor",
    "status_color",
]
