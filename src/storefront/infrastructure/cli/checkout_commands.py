"""CLI commands for checkout and manual reconciliation."""

from __future__ import annotations

import asyncio

import click

from storefront.application.dto import (
    CheckoutCancelled,
    CheckoutFailed,
    CheckoutResult,
    CheckoutSucceeded,
)
from storefront.application.reconcile_order import ReconcileOrderHandler
from storefront.domain.exceptions import DomainException
from storefront.domain.model.customer import CustomerDetails
from storefront.infrastructure.bootstrap import (
    cart_store,
    checkout_orchestrator,
    commerce_gateway,
    payment_widget,
    pricing_policy,
    reconciliation_reporter,
)
from storefront.infrastructure.config import Settings

SUPPORT_MESSAGE = (
    "Your payment was received but we could not confirm your order. "
    "Do not pay again; our support team has been notified and will "
    "contact you."
)


@click.command("quote")
@click.option("--coupon", default=None, help="Coupon code to apply.")
@click.pass_obj
def checkout_quote(settings: Settings, coupon: str | None) -> None:
    """Show what the current cart would cost at checkout."""
    cart = cart_store(settings).snapshot()
    if cart.is_empty:
        raise click.ClickException("Your cart is empty.")

    try:
        quote = pricing_policy(settings).quote(cart.total, coupon)
    except DomainException as exc:
        raise click.ClickException(str(exc))

    click.echo(f"  {'Subtotal':<20} {str(quote.subtotal):>14}")
    if quote.coupon_code:
        click.echo(f"  {'Coupon ' + quote.coupon_code:<20} {'-' + str(quote.discount):>14}")
    delivery = "FREE" if quote.delivery_charge.amount == 0 else str(quote.delivery_charge)
    click.echo(f"  {'Delivery':<20} {delivery:>14}")
    click.echo(f"  {'-'*35}")
    click.echo(f"  {'Payable':<20} {str(quote.payable):>14}")


@click.command("run")
@click.option("--name", prompt=True, help="Full name.")
@click.option("--email", prompt=True, help="Email address.")
@click.option("--phone", prompt=True, help="10-digit phone number.")
@click.option("--whatsapp", prompt=True, help="10-digit WhatsApp number.")
@click.option("--address", prompt=True, help="Street address.")
@click.option("--city", prompt=True, help="City.")
@click.option("--state", prompt=True, help="State.")
@click.option("--pincode", prompt=True, help="6-digit pincode.")
@click.option("--notes", default="", help="Order notes.")
@click.option("--coupon", default=None, help="Coupon code to apply.")
@click.pass_obj
def checkout_run(
    settings: Settings,
    name: str,
    email: str,
    phone: str,
    whatsapp: str,
    address: str,
    city: str,
    state: str,
    pincode: str,
    notes: str,
    coupon: str | None,
) -> None:
    """Place an order for the cart and pay for it."""
    try:
        customer = CustomerDetails.create(
            name=name,
            email=email,
            phone=phone,
            whatsapp=whatsapp,
            address=address,
            city=city,
            state=state,
            pincode=pincode,
            notes=notes,
        )
        result = asyncio.run(_run_checkout(settings, customer, coupon))
    except DomainException as exc:
        raise click.ClickException(str(exc))

    _display_result(result)


async def _run_checkout(
    settings: Settings,
    customer: CustomerDetails,
    coupon: str | None,
) -> CheckoutResult:
    store = cart_store(settings)
    async with commerce_gateway(settings) as gateway:
        orchestrator = checkout_orchestrator(
            settings, store, gateway, payment_widget(settings)
        )
        return await orchestrator.checkout(customer, coupon)


def _display_result(result: CheckoutResult) -> None:
    if isinstance(result, CheckoutSucceeded):
        click.echo(f"Order #{result.order_id} placed successfully.")
        click.echo(f"Payment ID: {result.payment_reference}")
        click.echo(f"Cart total: {result.total}   Paid: {result.amount_paid}")
        return

    if isinstance(result, CheckoutCancelled):
        click.echo(f"Payment cancelled. Order #{result.order_id} was not charged.")
        click.echo("Your cart has been kept; run 'checkout run' to try again.")
        return

    if isinstance(result, CheckoutFailed):
        if result.needs_manual_reconciliation:
            click.echo(SUPPORT_MESSAGE, err=True)
        raise click.ClickException(f"Checkout failed: {result.error_reason}")


@click.command("reconcile")
@click.option("--id", "order_id", required=True, help="Order ID to reconcile.")
@click.option("--payment-ref", default=None, help="Expected payment reference.")
@click.pass_obj
def checkout_reconcile(settings: Settings, order_id: str, payment_ref: str | None) -> None:
    """Mark a paid-but-unconfirmed order as completed."""

    async def run() -> None:
        async with commerce_gateway(settings) as gateway:
            handler = ReconcileOrderHandler(
                gateway=gateway,
                reporter=reconciliation_reporter(settings),
            )
            await handler.handle(order_id, payment_ref)

    try:
        asyncio.run(run())
    except DomainException as exc:
        raise click.ClickException(str(exc))

    click.echo(f"Order #{order_id} reconciled and marked completed.")


@click.command("pending")
@click.pass_obj
def checkout_pending(settings: Settings) -> None:
    """List orders awaiting manual reconciliation."""
    reports = reconciliation_reporter(settings).list_open()
    if not reports:
        click.echo("Nothing to reconcile.")
        return

    click.echo(f"{'Order':<10} {'Payment':<24} {'Amount':>12}  Reported")
    click.echo("-" * 70)
    for r in reports:
        click.echo(
            f"{str(r.order_id):<10} {r.payment_reference:<24} {r.amount:>12}  "
            f"{r.reported_at.strftime('%Y-%m-%d %H:%M UTC')}"
        )
