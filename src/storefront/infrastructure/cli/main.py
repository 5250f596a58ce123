import click

from storefront.infrastructure.cli.cart_commands import (
    cart_add,
    cart_clear,
    cart_dec,
    cart_inc,
    cart_remove,
    cart_show,
)
from storefront.infrastructure.cli.checkout_commands import (
    checkout_pending,
    checkout_quote,
    checkout_reconcile,
    checkout_run,
)
from storefront.infrastructure.cli.product_commands import product_list
from storefront.infrastructure.config import ConfigurationError, load_settings
from storefront.infrastructure.logging_config import configure_logging


@click.group()
@click.pass_context
def cli(ctx: click.Context) -> None:
    """Storefront: cart and checkout"""
    try:
        settings = load_settings()
    except ConfigurationError as exc:
        raise click.ClickException(str(exc))
    configure_logging(settings.log_level)
    ctx.obj = settings


@cli.group()
def product() -> None:
    """Browse the product catalogue."""


@cli.group()
def cart() -> None:
    """Manage the shopping cart."""


@cli.group()
def checkout() -> None:
    """Check out and reconcile orders."""


# Register subcommands
product.add_command(product_list)
cart.add_command(cart_show)
cart.add_command(cart_add)
cart.add_command(cart_remove)
cart.add_command(cart_inc)
cart.add_command(cart_dec)
cart.add_command(cart_clear)
checkout.add_command(checkout_quote)
checkout.add_command(checkout_run)
checkout.add_command(checkout_reconcile)
checkout.add_command(checkout_pending)
