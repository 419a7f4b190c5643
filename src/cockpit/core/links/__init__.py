"""
Linked groups: membership index and field synchronization.

The link-creation protocol lives in :mod:`cockpit.core.links.service`, which
builds on the tree store and is imported from there.
"""

from .index import LINKABLE_KINDS, LinkIndex
from .sync import ELEMENT_SYNC_FIELDS, SYNC_FIELDS, LinkSynchronizer

__all__ = [
    "ELEMENT_SYNC_FIELDS",
    "LINKABLE_KINDS",
    "LinkIndex",
    "LinkSynchronizer",
    "SYNC_FIELDS",
]
