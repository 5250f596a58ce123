"""JSON-file-backed reconciliation log.

Each inconsistent checkout is appended here for support staff. Reports
are keyed by order id; reporting the same order again replaces the
earlier entry.
"""

from __future__ import annotations

import json
from datetime import datetime
from pathlib import Path

from storefront.domain.exceptions import EntityNotFoundError
from storefront.domain.repository.reconciliation_reporter import (
    ReconciliationReport,
    ReconciliationReporter,
)


class JsonReconciliationReporter(ReconciliationReporter):

    def __init__(self, file_path: Path) -> None:
        self._file_path = file_path

    # --- ReconciliationReporter interface -------------------------------------

    def report(self, report: ReconciliationReport) -> None:
        reports = [r for r in self._load_raw() if str(r["order_id"]) != str(report.order_id)]
        reports.append(self._to_raw(report))
        self._persist_raw(reports)

    def get(self, order_id: int | str) -> ReconciliationReport | None:
        for raw in self._load_raw():
            if str(raw["order_id"]) == str(order_id):
                return self._to_domain(raw)
        return None

    def list_open(self) -> list[ReconciliationReport]:
        return [self._to_domain(r) for r in self._load_raw() if not r.get("resolved")]

    def mark_resolved(self, order_id: int | str) -> None:
        reports = self._load_raw()
        for raw in reports:
            if str(raw["order_id"]) == str(order_id):
                raw["resolved"] = True
                self._persist_raw(reports)
                return
        raise EntityNotFoundError(f"No reconciliation report for order #{order_id}")

    # --- Serialization --------------------------------------------------------

    @staticmethod
    def _to_raw(report: ReconciliationReport) -> dict:
        return {
            "order_id": report.order_id,
            "payment_reference": report.payment_reference,
            "amount": report.amount,
            "reason": report.reason,
            "reported_at": report.reported_at.isoformat(),
            "resolved": report.resolved,
        }

    @staticmethod
    def _to_domain(raw: dict) -> ReconciliationReport:
        return ReconciliationReport(
            order_id=raw["order_id"],
            payment_reference=raw["payment_reference"],
            amount=raw["amount"],
            reason=raw["reason"],
            reported_at=datetime.fromisoformat(raw["reported_at"]),
            resolved=raw.get("resolved", False),
        )

    # --- File helpers ---------------------------------------------------------

    def _load_raw(self) -> list[dict]:
        if not self._file_path.exists():
            return []
        return json.loads(self._file_path.read_text(encoding="utf-8"))

    def _persist_raw(self, reports: list[dict]) -> None:
        self._file_path.parent.mkdir(parents=True, exist_ok=True)
        self._file_path.write_text(
            json.dumps(reports, indent=2) + "\n", encoding="utf-8"
        )
