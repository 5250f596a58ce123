"""CLI commands for the session cart."""

from __future__ import annotations

import click

from storefront.application.dto import CartDTO
from storefront.domain.exceptions import DomainException
from storefront.domain.model.cart import Cart
from storefront.infrastructure.bootstrap import cart_store, product_repository
from storefront.infrastructure.config import Settings


def _display_cart(cart: Cart) -> None:
    """Shared formatting for displaying the cart."""
    dto = CartDTO.from_cart(cart)
    if not dto.items:
        click.echo("Your cart is empty.")
        return

    click.echo(f"  {'ID':<8} {'Product':<24} {'Qty':>5} {'Price':>12} {'Total':>12}")
    click.echo(f"  {'-'*65}")
    for item in dto.items:
        click.echo(
            f"  {item.product_id:<8} {item.name:<24} {item.quantity:>5} "
            f"{item.unit_price:>12} {item.line_total:>12}"
        )
    click.echo(f"  {'-'*65}")
    click.echo(f"  {'Cart Total':<38} {dto.total:>27}")


@click.command("show")
@click.pass_obj
def cart_show(settings: Settings) -> None:
    """Show the cart contents and total."""
    _display_cart(cart_store(settings).snapshot())


@click.command("add")
@click.option("--id", "product_id", required=True, help="Product ID to add.")
@click.pass_obj
def cart_add(settings: Settings, product_id: str) -> None:
    """Add one unit of a product to the cart."""
    product = product_repository(settings).get_by_id(product_id)
    if product is None:
        raise click.ClickException(f"Product not found: '{product_id}'")

    try:
        cart = cart_store(settings).add(product)
    except DomainException as exc:
        raise click.ClickException(str(exc))

    item = cart.get(product.id)
    click.echo(f"Added {product.name} (qty {item.quantity if item else 1}).")


@click.command("remove")
@click.option("--id", "product_id", required=True, help="Product ID to remove.")
@click.pass_obj
def cart_remove(settings: Settings, product_id: str) -> None:
    """Remove a product from the cart."""
    _display_cart(cart_store(settings).remove(product_id))


@click.command("inc")
@click.option("--id", "product_id", required=True, help="Product ID.")
@click.pass_obj
def cart_inc(settings: Settings, product_id: str) -> None:
    """Increase a product's quantity by one."""
    _display_cart(cart_store(settings).increment(product_id))


@click.command("dec")
@click.option("--id", "product_id", required=True, help="Product ID.")
@click.pass_obj
def cart_dec(settings: Settings, product_id: str) -> None:
    """Decrease a product's quantity by one (never below one)."""
    _display_cart(cart_store(settings).decrement(product_id))


@click.command("clear")
@click.confirmation_option(prompt="Empty the cart?")
@click.pass_obj
def cart_clear(settings: Settings) -> None:
    """Empty the cart."""
    cart_store(settings).clear()
    click.echo("Cart cleared.")
