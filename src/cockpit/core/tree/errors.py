"""
Typed exceptions for the entity tree.

Every mutation entry point fails fast with one of these instead of silently
doing nothing. Aggregation never raises them.
"""

# ============================================================================
# Typed exceptions
# ============================================================================


class CockpitError(Exception):
    """Base exception for cockpit tree errors."""


class NotFoundError(CockpitError):
    """Referenced id does not resolve to an entity of the expected kind/parent."""

    def __init__(self, kind: str, entity_id: str, detail: str | None = None) -> None:
        self.kind = kind
        self.entity_id = entity_id
        message = f"{kind} '{entity_id}' not found"
        if detail:
            message = f"{message} {detail}"
        super().__init__(message)


class InvalidStateError(CockpitError):
    """Mutation would leave the tree in an illegal state."""


class ValidationError(CockpitError):
    """Input rejected before touching the tree (blank name, bad patch field)."""
