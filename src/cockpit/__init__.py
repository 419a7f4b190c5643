"""
Cockpit - entity-tree consistency engine for status boards.

Aggregates effective statuses up a domain/category/element hierarchy and keeps
linked copies of elements and sub-elements synchronized.
"""

__version__ = "0.1.0"

# Re-export the main entry points for convenience
from cockpit.core.config.models import CockpitConfig
from cockpit.core.links.service import CreateIndependent, LinkService, LinkTo
from cockpit.core.status.aggregation import domain_worst_status, effective_status
from cockpit.core.tree.models import Cockpit, Element, SubElement, TileStatus
from cockpit.core.tree.store import TreeStore

__all__ = [
    "Cockpit",
    "CockpitConfig",
    "CreateIndependent",
    "Element",
    "LinkService",
    "LinkTo",
    "SubElement",
    "TileStatus",
    "TreeStore",
    "__version__",
    "domain_worst_status",
    "effective_status",
]
