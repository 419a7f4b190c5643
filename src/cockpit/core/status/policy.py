"""
Severity policy: the ranking used to reduce a set of statuses to the worst one.

The ranking is policy, not data. Two presets are provided:

* ``default``: fatal > critique > mineur > information > ok
* ``legacy``: fatal > critique > mineur > ok > information, the order the
  status legend of earlier boards used, where a board full of information tiles still
  reads green

In both, ``deconnecte`` (no data) is left unranked: it is reported only when
it is the sole status present, and mixed with anything else it ranks below
every listed status. Listing it in a custom order gives it a fixed rank.
"""

from __future__ import annotations

from collections.abc import Iterable
from dataclasses import dataclass

from cockpit.core.tree.models import TileStatus

DEFAULT_SEVERITY_ORDER: tuple[TileStatus, ...] = (
    TileStatus.FATAL,
    TileStatus.CRITIQUE,
    TileStatus.MINEUR,
    TileStatus.INFORMATION,
    TileStatus.OK,
)

LEGACY_SEVERITY_ORDER: tuple[TileStatus, ...] = (
    TileStatus.FATAL,
    TileStatus.CRITIQUE,
    TileStatus.MINEUR,
    TileStatus.OK,
    TileStatus.INFORMATION,
)

SEVERITY_PRESETS: dict[str, tuple[TileStatus, ...]] = {
    "default": DEFAULT_SEVERITY_ORDER,
    "legacy": LEGACY_SEVERITY_ORDER,
}


@dataclass(frozen=True)
class SeverityPolicy:
    """
    Ranking of real statuses, most severe first.

    Attributes:
        order: Statuses from most to least severe. Must not contain sentinel
            statuses. Unlisted statuses (``deconnecte`` by default) rank
            below every listed one.
        default: Status returned for an empty collection

    Example:
        >>> policy = SeverityPolicy()
        >>> policy.worst([TileStatus.OK, TileStatus.MINEUR])
        <TileStatus.MINEUR: 'mineur'>
        >>> policy.worst([])
        <TileStatus.OK: 'ok'>
    """

    order: tuple[TileStatus, ...] = DEFAULT_SEVERITY_ORDER
    default: TileStatus = TileStatus.OK

    def __post_init__(self) -> None:
        if any(status.is_sentinel for status in self.order):
            raise ValueError("Severity order cannot contain inherited statuses")
        if len(set(self.order)) != len(self.order):
            raise ValueError("Severity order contains duplicates")
        if self.default.is_sentinel:
            raise ValueError("Default status cannot be an inherited status")

    @classmethod
    def preset(cls, name: str, default: TileStatus = TileStatus.OK) -> SeverityPolicy:
        """Build a policy from a named preset (``default`` or ``legacy``)."""
        try:
            order = SEVERITY_PRESETS[name]
        except KeyError as e:
            raise ValueError(f"Unknown severity preset: {name}") from e
        return cls(order=order, default=default)

    def rank(self, status: TileStatus) -> int:
        """
        Severity rank of *status*; higher is more severe.

        Sentinels rank 0 and never win. ``deconnecte`` ranks 1 unless the
        order lists it explicitly; unlisted real statuses also rank 1.
        """
        if status.is_sentinel:
            return 0
        if status in self.order:
            return len(self.order) - self.order.index(status) + 1
        return 1

    def worst(self, statuses: Iterable[TileStatus]) -> TileStatus:
        """Reduce *statuses* to the single most severe one."""
        worst: TileStatus | None = None
        for status in statuses:
            if status.is_sentinel:
                continue
            if worst is None or self.rank(status) > self.rank(worst):
                worst = status
        return worst if worst is not None else self.default

    def sort(self, statuses: Iterable[TileStatus]) -> list[TileStatus]:
        """Sort real statuses most severe first; sentinels are dropped."""
        real = [s for s in statuses if not s.is_sentinel]
        return sorted(real, key=self.rank, reverse=True)


DEFAULT_POLICY = SeverityPolicy()
