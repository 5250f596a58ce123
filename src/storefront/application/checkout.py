"""Application service: Checkout Orchestrator.

Sequences one purchase attempt through the backend and the payment
widget:

    Idle -> CreatingOrder -> AwaitingPayment -> Finalizing
         -> Succeeded | Cancelled | Failed

Each non-terminal state has exactly one async operation in flight.
Collaborator failures are mapped to a terminal state here and never
propagate to the caller. The cart is cleared only on entry to
Succeeded.
"""

from __future__ import annotations

import asyncio
from datetime import datetime, timezone
from enum import Enum

import structlog

from storefront.application.cart_store import CartStore
from storefront.application.dto import (
    CheckoutCancelled,
    CheckoutFailed,
    CheckoutResult,
    CheckoutSucceeded,
)
from storefront.application.payment_session import PaymentSession, PaymentSessionAdapter
from storefront.domain.exceptions import (
    AdapterUnavailable,
    CheckoutError,
    CheckoutInProgressError,
    EmptyCartError,
    IllegalTransitionError,
    OrderCreationError,
    OrderUpdateError,
    PaymentCancelled,
    PaymentFailed,
    ReconciliationInconsistency,
)
from storefront.domain.gateway.commerce_gateway import CommerceGateway
from storefront.domain.model.customer import CustomerDetails
from storefront.domain.model.order import OrderRequest, OrderStatus, PendingOrder
from storefront.domain.model.payment import (
    PaymentDismissed,
    PaymentErrored,
    PaymentOutcome,
    PaymentSucceeded,
)
from storefront.domain.repository.reconciliation_reporter import (
    ReconciliationReport,
    ReconciliationReporter,
)
from storefront.domain.service.pricing_service import PricingPolicy

logger = structlog.get_logger(__name__)


class CheckoutState(Enum):
    IDLE = "idle"
    CREATING_ORDER = "creating_order"
    AWAITING_PAYMENT = "awaiting_payment"
    FINALIZING = "finalizing"
    SUCCEEDED = "succeeded"
    CANCELLED = "cancelled"
    FAILED = "failed"


_TRANSITIONS: dict[CheckoutState, frozenset[CheckoutState]] = {
    CheckoutState.IDLE: frozenset({CheckoutState.CREATING_ORDER}),
    CheckoutState.CREATING_ORDER: frozenset(
        {CheckoutState.AWAITING_PAYMENT, CheckoutState.FAILED}
    ),
    CheckoutState.AWAITING_PAYMENT: frozenset({CheckoutState.FINALIZING}),
    CheckoutState.FINALIZING: frozenset(
        {CheckoutState.SUCCEEDED, CheckoutState.CANCELLED, CheckoutState.FAILED}
    ),
}

TERMINAL_STATES = frozenset(
    {CheckoutState.SUCCEEDED, CheckoutState.CANCELLED, CheckoutState.FAILED}
)

ORDER_NOT_CREATED = "order not created"


class CheckoutAttempt:
    """One run of the state machine. Never reused after a terminal state."""

    def __init__(self) -> None:
        self.state = CheckoutState.IDLE
        self.history: list[CheckoutState] = [CheckoutState.IDLE]
        self.request: OrderRequest | None = None
        self.order: PendingOrder | None = None
        self.outcome: PaymentOutcome | None = None
        self.late_outcome: PaymentSucceeded | None = None
        self.session: PaymentSession | None = None
        self.error: CheckoutError | None = None
        self.result: CheckoutResult | None = None

    @property
    def is_terminal(self) -> bool:
        return self.state in TERMINAL_STATES

    @property
    def order_id(self) -> int | str | None:
        return self.order.id if self.order is not None else None

    def advance(self, target: CheckoutState) -> None:
        if target not in _TRANSITIONS.get(self.state, frozenset()):
            raise IllegalTransitionError(
                f"Cannot move checkout from {self.state.value} to {target.value}"
            )
        logger.debug(
            "Checkout transition",
            from_state=self.state.value,
            to_state=target.value,
            order_id=self.order_id,
        )
        self.state = target
        self.history.append(target)


class CheckoutOrchestrator:

    def __init__(
        self,
        cart_store: CartStore,
        gateway: CommerceGateway,
        payment_adapter: PaymentSessionAdapter,
        pricing: PricingPolicy,
        reporter: ReconciliationReporter | None = None,
        payment_timeout: float | None = None,
        payment_method: str = "razorpay",
    ) -> None:
        self._cart_store = cart_store
        self._gateway = gateway
        self._payment_adapter = payment_adapter
        self._pricing = pricing
        self._reporter = reporter
        self._payment_timeout = payment_timeout
        self._payment_method = payment_method
        self._current: CheckoutAttempt | None = None

    @property
    def current(self) -> CheckoutAttempt | None:
        """The most recent attempt, terminal or not."""
        return self._current

    @property
    def in_flight(self) -> bool:
        return self._current is not None and not self._current.is_terminal

    async def checkout(
        self,
        customer: CustomerDetails,
        coupon_code: str | None = None,
    ) -> CheckoutResult:
        """Run one checkout attempt to a terminal state.

        Raises only for precondition violations that keep the attempt in
        Idle: ``CheckoutInProgressError``, ``EmptyCartError`` and coupon
        ``ValidationError``. Everything after that ends in a result. If
        the calling task is cancelled, the attempt is still moved to a
        terminal state before ``CancelledError`` is re-raised.
        """
        if self.in_flight:
            raise CheckoutInProgressError("A checkout is already in progress")

        cart = self._cart_store.snapshot()
        if cart.is_empty:
            raise EmptyCartError("Cannot check out an empty cart")
        quote = self._pricing.quote(cart.total, coupon_code)

        attempt = CheckoutAttempt()
        request = OrderRequest.snapshot(cart, customer, quote)
        attempt.request = request
        self._current = attempt

        try:
            return await self._run(attempt, request)
        except asyncio.CancelledError:
            await self._interrupted(attempt, request)
            raise

    async def _run(self, attempt: CheckoutAttempt, request: OrderRequest) -> CheckoutResult:
        attempt.advance(CheckoutState.CREATING_ORDER)
        logger.info(
            "Checkout started",
            lines=len(request.lines),
            subtotal=str(request.quote.subtotal),
            payable=str(request.quote.payable),
        )

        try:
            order = await self._create_order(request)
        except OrderCreationError as exc:
            return self._fail(attempt, exc)
        attempt.order = order

        attempt.advance(CheckoutState.AWAITING_PAYMENT)
        attempt.outcome = await self._await_payment(attempt, order, request)

        attempt.advance(CheckoutState.FINALIZING)
        return await self._finalize(attempt, order, request)

    # --- CreatingOrder --------------------------------------------------------

    async def _create_order(self, request: OrderRequest) -> PendingOrder:
        try:
            order = await self._gateway.create_order(request)
        except OrderCreationError as exc:
            logger.warning("Order creation failed", error=str(exc))
            raise OrderCreationError(f"{ORDER_NOT_CREATED}: {exc}") from exc
        except Exception as exc:
            logger.exception("Unexpected error creating order")
            raise OrderCreationError(f"{ORDER_NOT_CREATED}: {exc}") from exc

        logger.info("Order created", order_id=order.id, status=order.status.value)
        return order

    # --- AwaitingPayment ------------------------------------------------------

    async def _await_payment(
        self,
        attempt: CheckoutAttempt,
        order: PendingOrder,
        request: OrderRequest,
    ) -> PaymentOutcome:
        loop = asyncio.get_running_loop()
        settled: asyncio.Future[PaymentOutcome] = loop.create_future()

        def settle(outcome: PaymentOutcome) -> None:
            if not settled.done():
                settled.set_result(outcome)

        def on_outcome(outcome: PaymentOutcome) -> None:
            # Widgets may call back from their own thread.
            loop.call_soon_threadsafe(settle, outcome)

        def on_late_outcome(outcome: PaymentOutcome) -> None:
            self._late_payment(attempt, request, outcome)

        customer = request.customer
        try:
            attempt.session = self._payment_adapter.open(
                amount=request.quote.payable,
                order_reference=str(order.id),
                prefill={
                    "name": customer.name,
                    "email": customer.email,
                    "contact": customer.phone,
                },
                on_outcome=on_outcome,
                on_late_outcome=on_late_outcome,
            )
        except AdapterUnavailable as exc:
            logger.error("Payment adapter unavailable", order_id=order.id, error=str(exc))
            return PaymentErrored(str(exc))

        return await self._wait_for_outcome(attempt.session, settled)

    async def _wait_for_outcome(
        self,
        session: PaymentSession,
        settled: asyncio.Future[PaymentOutcome],
    ) -> PaymentOutcome:
        if self._payment_timeout is None:
            return await settled
        try:
            return await asyncio.wait_for(settled, timeout=self._payment_timeout)
        except asyncio.TimeoutError:
            session.expire()
            logger.warning(
                "Payment session abandoned",
                order_reference=session.order_reference,
                timeout=self._payment_timeout,
            )
            return PaymentDismissed()

    # --- Finalizing -----------------------------------------------------------

    async def _finalize(
        self,
        attempt: CheckoutAttempt,
        order: PendingOrder,
        request: OrderRequest,
    ) -> CheckoutResult:
        outcome = attempt.outcome

        if isinstance(outcome, PaymentSucceeded):
            return await self._complete(attempt, order, request, outcome)

        if isinstance(outcome, PaymentDismissed):
            acknowledged = await self._cancel_best_effort(order)
            return self._cancelled(
                attempt, order, acknowledged, PaymentCancelled("You cancelled the payment process")
            )

        if isinstance(outcome, PaymentErrored):
            # The backend order is left pending.
            return self._fail(attempt, PaymentFailed(outcome.reason))

        raise TypeError(f"Unknown payment outcome: {outcome!r}")

    async def _complete(
        self,
        attempt: CheckoutAttempt,
        order: PendingOrder,
        request: OrderRequest,
        outcome: PaymentSucceeded,
    ) -> CheckoutResult:
        try:
            await self._gateway.set_order_status(
                order.id, OrderStatus.COMPLETED, self._payment_meta(outcome)
            )
        except Exception as exc:
            return self._reconciliation_failure(
                attempt,
                order,
                request,
                outcome,
                reason=str(exc),
                retryable=isinstance(exc, OrderUpdateError),
            )

        attempt.order = order.with_status(OrderStatus.COMPLETED)
        attempt.advance(CheckoutState.SUCCEEDED)
        # The only place in the system where the cart is emptied.
        self._cart_store.clear()
        attempt.result = CheckoutSucceeded(
            order_id=order.id,
            payment_reference=outcome.payment_reference,
            total=str(request.subtotal),
            amount_paid=str(request.quote.payable),
        )
        logger.info(
            "Checkout succeeded",
            order_id=order.id,
            payment_reference=outcome.payment_reference,
        )
        return attempt.result

    async def _cancel_best_effort(self, order: PendingOrder) -> bool:
        """Ask the backend to cancel *order*. Returns whether it did."""
        try:
            await self._gateway.set_order_status(order.id, OrderStatus.CANCELLED)
        except Exception as exc:
            logger.warning("Could not mark order cancelled", order_id=order.id, error=str(exc))
            return False
        return True

    def _cancelled(
        self,
        attempt: CheckoutAttempt,
        order: PendingOrder,
        acknowledged: bool,
        error: PaymentCancelled,
    ) -> CheckoutResult:
        if acknowledged:
            attempt.order = order.with_status(OrderStatus.CANCELLED)
        attempt.error = error
        attempt.advance(CheckoutState.CANCELLED)
        attempt.result = CheckoutCancelled(order_id=order.id)
        logger.info("Checkout cancelled", order_id=order.id, backend_cancelled=acknowledged)
        return attempt.result

    def _reconciliation_failure(
        self,
        attempt: CheckoutAttempt,
        order: PendingOrder,
        request: OrderRequest,
        outcome: PaymentSucceeded,
        reason: str,
        retryable: bool,
    ) -> CheckoutResult:
        error = ReconciliationInconsistency(
            f"Payment {outcome.payment_reference} was captured but order "
            f"#{order.id} could not be completed: {reason}. "
            f"Please contact support; do not retry the payment.",
            order_id=order.id,
            payment_reference=outcome.payment_reference,
        )
        logger.critical(
            "Payment captured but order not completed",
            order_id=order.id,
            payment_reference=outcome.payment_reference,
            amount=str(request.quote.payable),
            error=reason,
            retryable=retryable,
        )
        self._file_report(order.id, outcome.payment_reference, request, reason)
        return self._fail(attempt, error)

    # --- Abnormal exits -------------------------------------------------------

    async def _interrupted(self, attempt: CheckoutAttempt, request: OrderRequest) -> None:
        if attempt.session is not None:
            attempt.session.expire()
        if attempt.is_terminal:
            return
        logger.warning("Checkout interrupted", state=attempt.state.value, order_id=attempt.order_id)

        order = attempt.order
        if order is None:
            # No order id came back, so there is nothing to cancel.
            self._fail(attempt, OrderCreationError(f"{ORDER_NOT_CREATED}: checkout interrupted"))
            return

        if attempt.state is CheckoutState.AWAITING_PAYMENT:
            attempt.advance(CheckoutState.FINALIZING)

        if isinstance(attempt.outcome, PaymentSucceeded):
            self._reconciliation_failure(
                attempt,
                order,
                request,
                attempt.outcome,
                reason="checkout interrupted before the order was completed",
                retryable=True,
            )
            return

        acknowledged = False
        try:
            acknowledged = await self._cancel_best_effort(order)
        finally:
            self._cancelled(
                attempt, order, acknowledged, PaymentCancelled("Checkout was interrupted")
            )

    def _late_payment(
        self,
        attempt: CheckoutAttempt,
        request: OrderRequest,
        outcome: PaymentOutcome,
    ) -> None:
        """A payment captured after its session expired. Never silent."""
        if not isinstance(outcome, PaymentSucceeded):
            return
        attempt.late_outcome = outcome
        status = attempt.order.status.value if attempt.order is not None else "unknown"
        reason = (
            f"Payment captured after the payment session expired; "
            f"order #{attempt.order_id} is {status}"
        )
        logger.critical(
            "Payment captured after checkout was abandoned",
            order_id=attempt.order_id,
            payment_reference=outcome.payment_reference,
            amount=str(request.quote.payable),
            checkout_state=attempt.state.value,
        )
        self._file_report(attempt.order_id, outcome.payment_reference, request, reason)

    # --- Helpers --------------------------------------------------------------

    def _file_report(
        self,
        order_id: int | str | None,
        payment_reference: str,
        request: OrderRequest,
        reason: str,
    ) -> None:
        if self._reporter is None or order_id is None:
            return
        try:
            self._reporter.report(
                ReconciliationReport(
                    order_id=order_id,
                    payment_reference=payment_reference,
                    amount=str(request.quote.payable),
                    reason=reason,
                )
            )
        except Exception:
            logger.exception("Could not record reconciliation report", order_id=order_id)

    def _fail(self, attempt: CheckoutAttempt, error: CheckoutError) -> CheckoutResult:
        attempt.error = error
        attempt.advance(CheckoutState.FAILED)
        attempt.result = CheckoutFailed(
            order_id=attempt.order_id,
            error_reason=str(error),
            error=error,
        )
        logger.info("Checkout failed", order_id=attempt.order_id, reason=str(error))
        return attempt.result

    def _payment_meta(self, outcome: PaymentSucceeded) -> dict[str, str]:
        meta = {
            "payment_reference": outcome.payment_reference,
            "payment_method": self._payment_method,
            "payment_captured_at": datetime.now(timezone.utc).isoformat(),
        }
        if outcome.gateway_order_id:
            meta["gateway_order_id"] = outcome.gateway_order_id
        if outcome.signature:
            meta["payment_signature"] = outcome.signature
        return meta
