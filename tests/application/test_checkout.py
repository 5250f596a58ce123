"""Integration tests for the Checkout Orchestrator.

Uses the in-memory gateway and a scripted payment widget; no network.
"""

import asyncio

import pytest

from storefront.application.cart_store import CartStore
from storefront.application.checkout import (
    CheckoutAttempt,
    CheckoutOrchestrator,
    CheckoutState,
)
from storefront.application.dto import (
    CheckoutCancelled,
    CheckoutFailed,
    CheckoutSucceeded,
)
from storefront.application.payment_session import PaymentSessionAdapter
from storefront.domain.exceptions import (
    CheckoutInProgressError,
    EmptyCartError,
    IllegalTransitionError,
    InvalidCouponError,
    OrderCreationError,
    OrderUpdateError,
    PaymentCancelled,
    PaymentFailed,
    ReconciliationInconsistency,
)
from storefront.domain.model.order import OrderStatus
from storefront.domain.model.value_objects import Money
from storefront.domain.service.pricing_service import PricingPolicy
from tests.fakes import (
    PRODUCT_A,
    PRODUCT_B,
    FakeCommerceGateway,
    FakePaymentWidget,
    FakeReconciliationReporter,
    make_customer,
    network_down,
)

FULL_PATH = [
    CheckoutState.IDLE,
    CheckoutState.CREATING_ORDER,
    CheckoutState.AWAITING_PAYMENT,
    CheckoutState.FINALIZING,
]


def _setup(
    gateway: FakeCommerceGateway | None = None,
    widget: FakePaymentWidget | None = None,
    payment_timeout: float | None = None,
):
    """Cart {A: 2 @ ₹100, B: 1 @ ₹250} wired to fakes."""
    store = CartStore()
    store.add(PRODUCT_A)
    store.add(PRODUCT_A)
    store.add(PRODUCT_B)
    gateway = gateway or FakeCommerceGateway()
    widget = widget or FakePaymentWidget()
    reporter = FakeReconciliationReporter()
    orchestrator = CheckoutOrchestrator(
        cart_store=store,
        gateway=gateway,
        payment_adapter=PaymentSessionAdapter(widget),
        pricing=PricingPolicy(
            delivery_fee=Money.of("50"),
            free_delivery_threshold=Money.of("500"),
        ),
        reporter=reporter,
        payment_timeout=payment_timeout,
    )
    return orchestrator, store, gateway, widget, reporter


def _quantities(store: CartStore) -> dict[str, int]:
    return {i.product_id: i.quantity.value for i in store.items}


async def _until(condition) -> None:
    while not condition():
        await asyncio.sleep(0)


class TestSuccessfulCheckout:

    @pytest.mark.asyncio
    async def test_paid_and_completed(self):
        orchestrator, store, gateway, widget, _ = _setup()

        result = await orchestrator.checkout(make_customer())

        assert result == CheckoutSucceeded(
            order_id=9001,
            payment_reference="pay_123",
            total="₹450.00",
            amount_paid="₹500.00",
        )
        assert store.state.is_empty
        assert gateway.statuses_sent() == [OrderStatus.COMPLETED]
        assert gateway.orders[9001].status == OrderStatus.COMPLETED
        assert orchestrator.current.history == FULL_PATH + [CheckoutState.SUCCEEDED]

    @pytest.mark.asyncio
    async def test_payment_opened_for_created_order(self):
        orchestrator, _, gateway, widget, _ = _setup()

        await orchestrator.checkout(make_customer())

        options = widget.launches[0]
        assert options.order_reference == "9001"
        assert options.amount_minor_units == 50000
        assert options.prefill["contact"] == "9876543210"
        request = gateway.created[0]
        assert [(l.product_id, l.quantity) for l in request.lines] == [("A", 2), ("B", 1)]

    @pytest.mark.asyncio
    async def test_completion_carries_payment_meta(self):
        orchestrator, _, gateway, _, _ = _setup()

        await orchestrator.checkout(make_customer())

        _, _, extra = gateway.status_updates[0]
        assert extra["payment_reference"] == "pay_123"
        assert extra["payment_method"] == "razorpay"
        assert "payment_captured_at" in extra

    @pytest.mark.asyncio
    async def test_coupon_reduces_amount_charged(self):
        orchestrator, store, _, widget, _ = _setup()
        store.add(PRODUCT_B)  # subtotal 700, free delivery

        result = await orchestrator.checkout(make_customer(), coupon_code="WELCOME100")

        assert widget.launches[0].amount_minor_units == 60000
        assert result.total == "₹700.00"
        assert result.amount_paid == "₹600.00"


class TestOrderCreationFailure:

    @pytest.mark.asyncio
    async def test_no_payment_without_order(self):
        gateway = FakeCommerceGateway(create_error=network_down())
        orchestrator, store, _, widget, _ = _setup(gateway=gateway)

        result = await orchestrator.checkout(make_customer())

        assert isinstance(result, CheckoutFailed)
        assert result.order_id is None
        assert isinstance(result.error, OrderCreationError)
        assert result.error_reason.startswith("order not created")
        assert not widget.launched
        assert _quantities(store) == {"A": 2, "B": 1}
        assert CheckoutState.AWAITING_PAYMENT not in orchestrator.current.history

    @pytest.mark.asyncio
    async def test_unexpected_gateway_error_is_contained(self):
        gateway = FakeCommerceGateway(create_error=RuntimeError("boom"))
        orchestrator, _, _, widget, _ = _setup(gateway=gateway)

        result = await orchestrator.checkout(make_customer())

        assert isinstance(result.error, OrderCreationError)
        assert not widget.launched


class TestCancelledCheckout:

    @pytest.mark.asyncio
    async def test_dismissed_widget(self):
        orchestrator, store, gateway, _, _ = _setup(
            gateway=FakeCommerceGateway(next_id=9002),
            widget=FakePaymentWidget("dismiss"),
        )

        result = await orchestrator.checkout(make_customer())

        assert result == CheckoutCancelled(order_id=9002)
        assert gateway.statuses_sent() == [OrderStatus.CANCELLED]
        assert _quantities(store) == {"A": 2, "B": 1}
        assert isinstance(orchestrator.current.error, PaymentCancelled)
        assert orchestrator.current.order.status == OrderStatus.CANCELLED
        assert orchestrator.current.history == FULL_PATH + [CheckoutState.CANCELLED]

    @pytest.mark.asyncio
    async def test_cancel_update_failure_does_not_block(self):
        gateway = FakeCommerceGateway(
            update_errors={OrderStatus.CANCELLED: OrderUpdateError("timeout")}
        )
        orchestrator, _, _, _, _ = _setup(
            gateway=gateway, widget=FakePaymentWidget("dismiss")
        )

        result = await orchestrator.checkout(make_customer())

        assert result == CheckoutCancelled(order_id=9001)
        # The backend never acknowledged the cancel.
        assert orchestrator.current.order.status == OrderStatus.PENDING


class TestPaymentFailure:

    @pytest.mark.asyncio
    async def test_gateway_failure_leaves_order_pending(self):
        orchestrator, store, gateway, _, _ = _setup(widget=FakePaymentWidget("fail"))

        result = await orchestrator.checkout(make_customer())

        assert isinstance(result, CheckoutFailed)
        assert result.order_id == 9001
        assert isinstance(result.error, PaymentFailed)
        assert result.error_reason == "Card declined"
        assert gateway.status_updates == []
        assert gateway.orders[9001].status == OrderStatus.PENDING
        assert _quantities(store) == {"A": 2, "B": 1}

    @pytest.mark.asyncio
    async def test_unavailable_widget_treated_as_failed_payment(self):
        orchestrator, store, gateway, widget, _ = _setup(
            widget=FakePaymentWidget(loaded=False)
        )

        result = await orchestrator.checkout(make_customer())

        assert isinstance(result.error, PaymentFailed)
        assert result.order_id == 9001
        assert not widget.launched
        assert orchestrator.current.history == FULL_PATH + [CheckoutState.FAILED]
        assert not store.state.is_empty


class TestReconciliationInconsistency:

    @pytest.mark.asyncio
    async def test_paid_but_not_completed_is_never_success(self):
        gateway = FakeCommerceGateway(
            update_errors={OrderStatus.COMPLETED: OrderUpdateError("502 Bad Gateway")}
        )
        orchestrator, store, _, _, reporter = _setup(gateway=gateway)

        result = await orchestrator.checkout(make_customer())

        assert isinstance(result, CheckoutFailed)
        assert isinstance(result.error, ReconciliationInconsistency)
        assert result.needs_manual_reconciliation
        assert result.error.payment_reference == "pay_123"
        assert result.order_id == 9001
        assert _quantities(store) == {"A": 2, "B": 1}
        assert orchestrator.current.state == CheckoutState.FAILED

    @pytest.mark.asyncio
    async def test_inconsistency_reported_out_of_band(self):
        gateway = FakeCommerceGateway(
            update_errors={OrderStatus.COMPLETED: OrderUpdateError("502 Bad Gateway")}
        )
        orchestrator, _, _, _, reporter = _setup(gateway=gateway)

        await orchestrator.checkout(make_customer())

        report = reporter.get(9001)
        assert report.payment_reference == "pay_123"
        assert report.amount == "₹500.00"
        assert not report.resolved

    @pytest.mark.asyncio
    async def test_status_update_attempted_once(self):
        gateway = FakeCommerceGateway(
            update_errors={OrderStatus.COMPLETED: OrderUpdateError("502 Bad Gateway")}
        )
        orchestrator, _, _, _, _ = _setup(gateway=gateway)

        await orchestrator.checkout(make_customer())

        assert gateway.statuses_sent() == [OrderStatus.COMPLETED]


class TestPreconditions:

    @pytest.mark.asyncio
    async def test_empty_cart_never_leaves_idle(self):
        orchestrator, store, gateway, _, _ = _setup()
        store.clear()

        with pytest.raises(EmptyCartError):
            await orchestrator.checkout(make_customer())

        assert gateway.created == []
        assert orchestrator.current is None

    @pytest.mark.asyncio
    async def test_bad_coupon_rejected_before_order(self):
        orchestrator, _, gateway, _, _ = _setup()

        with pytest.raises(InvalidCouponError):
            await orchestrator.checkout(make_customer(), coupon_code="NOPE")

        assert gateway.created == []

    @pytest.mark.asyncio
    async def test_second_submission_rejected_while_in_flight(self):
        orchestrator, _, gateway, widget, _ = _setup(widget=FakePaymentWidget(behaviour=None))

        first = asyncio.create_task(orchestrator.checkout(make_customer()))
        while not widget.launched:
            await asyncio.sleep(0)

        assert orchestrator.current.state == CheckoutState.AWAITING_PAYMENT
        with pytest.raises(CheckoutInProgressError):
            await orchestrator.checkout(make_customer())
        assert len(gateway.created) == 1

        widget.dismiss()
        assert isinstance(await first, CheckoutCancelled)

    @pytest.mark.asyncio
    async def test_new_attempt_after_failure_starts_fresh(self):
        gateway = FakeCommerceGateway(create_error=network_down())
        orchestrator, _, _, _, _ = _setup(gateway=gateway)
        await orchestrator.checkout(make_customer())
        first_attempt = orchestrator.current

        gateway.create_error = None
        result = await orchestrator.checkout(make_customer())

        assert isinstance(result, CheckoutSucceeded)
        assert orchestrator.current is not first_attempt
        assert first_attempt.state == CheckoutState.FAILED

    @pytest.mark.asyncio
    async def test_new_attempt_after_success_sees_empty_cart(self):
        orchestrator, _, _, _, _ = _setup()
        await orchestrator.checkout(make_customer())

        with pytest.raises(EmptyCartError):
            await orchestrator.checkout(make_customer())


class TestSnapshotIsolation:

    @pytest.mark.asyncio
    async def test_cart_edits_during_payment_do_not_change_order(self):
        orchestrator, store, gateway, widget, _ = _setup(widget=FakePaymentWidget(behaviour=None))

        task = asyncio.create_task(orchestrator.checkout(make_customer()))
        while not widget.launched:
            await asyncio.sleep(0)
        store.add(PRODUCT_B)
        widget.succeed()
        result = await task

        assert result.total == "₹450.00"
        assert [(l.product_id, l.quantity) for l in gateway.created[0].lines] == [
            ("A", 2),
            ("B", 1),
        ]


class TestAbandonedPayment:

    @pytest.mark.asyncio
    async def test_timeout_cancels_order(self):
        orchestrator, store, gateway, _, reporter = _setup(
            widget=FakePaymentWidget(behaviour=None),
            payment_timeout=0.01,
        )

        result = await orchestrator.checkout(make_customer())

        assert result == CheckoutCancelled(order_id=9001)
        assert gateway.statuses_sent() == [OrderStatus.CANCELLED]
        assert orchestrator.current.state == CheckoutState.CANCELLED
        assert not store.state.is_empty
        assert reporter.reports == {}

    @pytest.mark.asyncio
    async def test_payment_after_timeout_is_reported(self):
        orchestrator, _, gateway, widget, reporter = _setup(
            widget=FakePaymentWidget(behaviour=None),
            payment_timeout=0.01,
        )
        await orchestrator.checkout(make_customer())

        widget.succeed()

        report = reporter.get(9001)
        assert report.payment_reference == "pay_123"
        assert report.amount == "₹500.00"
        assert "expired" in report.reason
        assert orchestrator.current.late_outcome.payment_reference == "pay_123"
        assert orchestrator.current.state == CheckoutState.CANCELLED
        assert gateway.statuses_sent() == [OrderStatus.CANCELLED]

    @pytest.mark.asyncio
    async def test_dismissal_after_timeout_is_ignored(self):
        orchestrator, _, _, widget, reporter = _setup(
            widget=FakePaymentWidget(behaviour=None),
            payment_timeout=0.01,
        )
        await orchestrator.checkout(make_customer())

        widget.dismiss()

        assert reporter.reports == {}


class TestInterruptedCheckout:

    @pytest.mark.asyncio
    async def test_interrupted_while_awaiting_payment(self):
        orchestrator, store, gateway, widget, _ = _setup(
            widget=FakePaymentWidget(behaviour=None)
        )

        task = asyncio.create_task(orchestrator.checkout(make_customer()))
        await _until(lambda: widget.launched)
        task.cancel()
        with pytest.raises(asyncio.CancelledError):
            await task

        assert orchestrator.current.state == CheckoutState.CANCELLED
        assert not orchestrator.in_flight
        assert gateway.statuses_sent() == [OrderStatus.CANCELLED]
        assert not store.state.is_empty

    @pytest.mark.asyncio
    async def test_new_checkout_allowed_after_interruption(self):
        orchestrator, _, _, widget, _ = _setup(widget=FakePaymentWidget(behaviour=None))
        task = asyncio.create_task(orchestrator.checkout(make_customer()))
        await _until(lambda: widget.launched)
        task.cancel()
        with pytest.raises(asyncio.CancelledError):
            await task

        widget.behaviour = "pay"
        result = await orchestrator.checkout(make_customer())

        assert result == CheckoutSucceeded(
            order_id=9002,
            payment_reference="pay_123",
            total="₹450.00",
            amount_paid="₹500.00",
        )

    @pytest.mark.asyncio
    async def test_payment_after_interruption_is_reported(self):
        orchestrator, _, _, widget, reporter = _setup(
            widget=FakePaymentWidget(behaviour=None)
        )
        task = asyncio.create_task(orchestrator.checkout(make_customer()))
        await _until(lambda: widget.launched)
        task.cancel()
        with pytest.raises(asyncio.CancelledError):
            await task

        widget.succeed()

        assert reporter.get(9001).payment_reference == "pay_123"

    @pytest.mark.asyncio
    async def test_interrupted_while_creating_order(self):
        gateway = FakeCommerceGateway()
        gateway.create_hold = asyncio.Event()
        orchestrator, _, _, widget, _ = _setup(gateway=gateway)

        task = asyncio.create_task(orchestrator.checkout(make_customer()))
        await _until(lambda: gateway.created)
        task.cancel()
        with pytest.raises(asyncio.CancelledError):
            await task

        attempt = orchestrator.current
        assert attempt.state == CheckoutState.FAILED
        assert isinstance(attempt.error, OrderCreationError)
        assert attempt.order_id is None
        assert not widget.launched
        assert gateway.status_updates == []

    @pytest.mark.asyncio
    async def test_interrupted_while_completing_paid_order(self):
        gateway = FakeCommerceGateway()
        gateway.update_hold = asyncio.Event()
        orchestrator, store, _, _, reporter = _setup(gateway=gateway)

        task = asyncio.create_task(orchestrator.checkout(make_customer()))
        await _until(
            lambda: orchestrator.current is not None
            and orchestrator.current.state == CheckoutState.FINALIZING
        )
        task.cancel()
        with pytest.raises(asyncio.CancelledError):
            await task

        attempt = orchestrator.current
        assert attempt.state == CheckoutState.FAILED
        assert isinstance(attempt.error, ReconciliationInconsistency)
        assert reporter.get(9001).payment_reference == "pay_123"
        assert not store.state.is_empty


class TestStateMachine:

    def test_cannot_skip_states(self):
        attempt = CheckoutAttempt()
        with pytest.raises(IllegalTransitionError):
            attempt.advance(CheckoutState.SUCCEEDED)

    def test_terminal_states_are_final(self):
        attempt = CheckoutAttempt()
        attempt.advance(CheckoutState.CREATING_ORDER)
        attempt.advance(CheckoutState.FAILED)
        assert attempt.is_terminal
        with pytest.raises(IllegalTransitionError):
            attempt.advance(CheckoutState.CREATING_ORDER)
