"""Application service: Reconcile Order use case.

Manual follow-up for a checkout whose payment was captured but whose
backend order could not be completed. Re-issues the idempotent status
update; nothing here ever touches the payment.
"""

from __future__ import annotations

from datetime import datetime, timezone

import structlog

from storefront.domain.exceptions import EntityNotFoundError, ValidationError
from storefront.domain.gateway.commerce_gateway import CommerceGateway
from storefront.domain.model.order import OrderStatus
from storefront.domain.repository.reconciliation_reporter import ReconciliationReporter

logger = structlog.get_logger(__name__)


class ReconcileOrderHandler:

    def __init__(
        self,
        gateway: CommerceGateway,
        reporter: ReconciliationReporter,
    ) -> None:
        self._gateway = gateway
        self._reporter = reporter

    async def handle(self, order_id: int | str, payment_reference: str | None = None) -> None:
        report = self._reporter.get(order_id)
        if report is None:
            raise EntityNotFoundError(f"No reconciliation report for order #{order_id}")
        if payment_reference and payment_reference != report.payment_reference:
            raise ValidationError(
                f"Payment reference {payment_reference!r} does not match "
                f"the reported {report.payment_reference!r}"
            )

        # OrderUpdateError propagates: the caller may simply retry.
        await self._gateway.set_order_status(
            report.order_id,
            OrderStatus.COMPLETED,
            {
                "payment_reference": report.payment_reference,
                "reconciled_at": datetime.now(timezone.utc).isoformat(),
            },
        )
        self._reporter.mark_resolved(report.order_id)
        logger.info(
            "Order reconciled",
            order_id=report.order_id,
            payment_reference=report.payment_reference,
        )
