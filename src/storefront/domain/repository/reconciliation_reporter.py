"""Out-of-band channel for orders whose payment and status disagree."""

from __future__ import annotations

from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from datetime import datetime, timezone


@dataclass
class ReconciliationReport:
    order_id: int | str
    payment_reference: str
    amount: str
    reason: str
    reported_at: datetime = field(default_factory=lambda: datetime.now(timezone.utc))
    resolved: bool = False


class ReconciliationReporter(ABC):

    @abstractmethod
    def report(self, report: ReconciliationReport) -> None:
        """Record an inconsistency for manual follow-up."""

    @abstractmethod
    def get(self, order_id: int | str) -> ReconciliationReport | None:
        """Return the open or resolved report for *order_id*, if any."""

    @abstractmethod
    def mark_resolved(self, order_id: int | str) -> None:
        """Flag the report for *order_id* as reconciled."""
