"""CLI commands for the product catalogue."""

from __future__ import annotations

import click

from storefront.infrastructure.bootstrap import product_repository
from storefront.infrastructure.config import Settings


@click.command("list")
@click.pass_obj
def product_list(settings: Settings) -> None:
    """List all products in the catalogue."""
    products = product_repository(settings).list_all()

    if not products:
        click.echo("No products found.")
        return

    click.echo(f"{'ID':<8} {'Name':<30} {'Price':>12}")
    click.echo("-" * 52)
    for p in products:
        click.echo(f"{p.id:<8} {p.name:<30} {str(p.price):>12}")
