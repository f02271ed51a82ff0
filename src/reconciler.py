"""
Classifier / reconciler for friend link groups.

A pass probes every link in the active and inactive groups, updates each
entry's status and dates, and moves entries between the two groups. Moves
are only collected while scanning and applied once both scans finish, so
no entry is ever evaluated twice in the same pass.
"""

from dataclasses import dataclass, field
from datetime import date, datetime, timedelta, UTC

from logging_config import get_logger
from models import LinkEntry, LinkGroup, LinkStatus
from prober import ActivityResult, SiteActivityProber

logger = get_logger(__name__)

# Six months, counted as 6 x 30 days
DEFAULT_STALE_AFTER = timedelta(days=6 * 30)

TO_INACTIVE = "to_inactive"
TO_ACTIVE = "to_active"


def utc_now() -> datetime:
    return datetime.now(UTC).replace(tzinfo=None)


def classify(
    entry: LinkEntry,
    result: ActivityResult,
    in_active_group: bool,
    cutoff: datetime,
    today: date,
) -> str | None:
    """
    Apply one probe result to an entry.

    Updates ``status``, ``last_active`` and ``last_checked`` in place and
    returns the move the entry needs (TO_INACTIVE, TO_ACTIVE) or None.
    """
    entry.last_checked = today

    if not result.reachable:
        entry.status = LinkStatus.UNREACHABLE
        return TO_INACTIVE if in_active_group else None

    if result.last_active is not None:
        entry.last_active = result.last_active.date()
        if result.last_active < cutoff:
            entry.status = LinkStatus.INACTIVE
            return TO_INACTIVE if in_active_group else None
        entry.status = LinkStatus.ACTIVE
        return None if in_active_group else TO_ACTIVE

    # Reachable but undated: only an unreachable site coming back is enough to restore it
    if not in_active_group and entry.status == LinkStatus.UNREACHABLE:
        entry.status = LinkStatus.ACTIVE
        return TO_ACTIVE

    return None


@dataclass
class ReconcileSummary:
    """What a reconciliation pass did"""

    checked: int = 0
    moved_to_inactive: list[str] = field(default_factory=list)
    moved_to_active: list[str] = field(default_factory=list)
    status_counts: dict[str, int] = field(default_factory=dict)
    undated: int = 0

    @property
    def moved(self) -> int:
        return len(self.moved_to_inactive) + len(self.moved_to_active)

    def record(self, entry: LinkEntry, result: ActivityResult) -> None:
        self.checked += 1
        if result.reachable and result.last_active is None:
            self.undated += 1
        key = entry.status.value if entry.status else "unset"
        self.status_counts[key] = self.status_counts.get(key, 0) + 1


class Reconciler:
    """Runs reconciliation passes over an active and an inactive group."""

    def __init__(self, prober: SiteActivityProber, stale_after: timedelta = DEFAULT_STALE_AFTER):
        self.prober = prober
        self.stale_after = stale_after

    def run(
        self, active_group: LinkGroup, inactive_group: LinkGroup, now: datetime | None = None
    ) -> ReconcileSummary:
        """
        Probe every link in both groups and rebalance them.

        Args:
            active_group: Group of links currently shown as active
            inactive_group: Group of inactive or unreachable links
            now: Reference time (naive UTC); fixed for the whole pass

        Returns:
            ReconcileSummary with the names moved in each direction
        """
        now = now or utc_now()
        cutoff = now - self.stale_after
        today = now.date()
        summary = ReconcileSummary()

        logger.info(
            "Starting reconciliation pass",
            extra={
                "active_links": len(active_group.link_list),
                "inactive_links": len(inactive_group.link_list),
                "cutoff": cutoff.date(),
            },
        )

        pending_inactive = self._scan(active_group, True, cutoff, today, summary)
        pending_active = self._scan(inactive_group, False, cutoff, today, summary)

        for entry in pending_inactive:
            if self._move(entry, active_group, inactive_group):
                summary.moved_to_inactive.append(entry.name)
        for entry in pending_active:
            if self._move(entry, inactive_group, active_group):
                summary.moved_to_active.append(entry.name)

        logger.info(
            "Reconciliation pass complete",
            extra={
                "checked": summary.checked,
                "moved_to_inactive": len(summary.moved_to_inactive),
                "moved_to_active": len(summary.moved_to_active),
            },
        )
        return summary

    def _scan(
        self,
        group: LinkGroup,
        in_active_group: bool,
        cutoff: datetime,
        today: date,
        summary: ReconcileSummary,
    ) -> list[LinkEntry]:
        wanted = TO_INACTIVE if in_active_group else TO_ACTIVE
        pending = []
        for entry in group.link_list:
            logger.info("Checking link", extra={"group": group.id_name, "link_name": entry.name, "url": entry.link})
            result = self.prober.probe(entry.link)
            move = classify(entry, result, in_active_group, cutoff, today)
            summary.record(entry, result)

            if move == wanted:
                logger.info(
                    "Link scheduled to move",
                    extra={"link_name": entry.name, "status": entry.status, "move": move},
                )
                pending.append(entry)
            elif result.reachable and result.last_active is None:
                logger.info("No update date detected, keeping link as is", extra={"link_name": entry.name})
        return pending

    @staticmethod
    def _move(entry: LinkEntry, source: LinkGroup, destination: LinkGroup) -> bool:
        moved = source.pop_entry(entry.link)
        if moved is None:
            logger.warning("Link vanished from its group before move", extra={"url": entry.link})
            return False
        destination.append(moved)
        return True
