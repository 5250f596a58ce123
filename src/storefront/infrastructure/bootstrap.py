"""Composition root: wires concrete implementations to domain interfaces.

This is the only place in the codebase that knows about *all* layers.
Every other module depends only on abstractions.
"""

from __future__ import annotations

from storefront.application.cart_store import CartStore
from storefront.application.checkout import CheckoutOrchestrator
from storefront.application.payment_session import PaymentSessionAdapter
from storefront.domain.gateway.commerce_gateway import CommerceGateway
from storefront.domain.gateway.payment_widget import PaymentWidget
from storefront.domain.model.value_objects import Money
from storefront.domain.service.pricing_service import PricingPolicy
from storefront.infrastructure.commerce.woocommerce_client import WooCommerceClient
from storefront.infrastructure.config import Settings
from storefront.infrastructure.payment.console_widget import ConsoleWidget
from storefront.infrastructure.persistence.json_cart_repository import JsonCartRepository
from storefront.infrastructure.persistence.json_product_repository import (
    JsonProductRepository,
)
from storefront.infrastructure.persistence.json_reconciliation_reporter import (
    JsonReconciliationReporter,
)


def product_repository(settings: Settings) -> JsonProductRepository:
    return JsonProductRepository(settings.data_dir / "products.json", settings.currency)


def cart_repository(settings: Settings) -> JsonCartRepository:
    return JsonCartRepository(settings.data_dir / "cart.json", settings.currency)


def reconciliation_reporter(settings: Settings) -> JsonReconciliationReporter:
    return JsonReconciliationReporter(settings.data_dir / "reconciliation.json")


def cart_store(settings: Settings) -> CartStore:
    """Session cart: loaded from disk and written back on every change."""
    repo = cart_repository(settings)
    store = CartStore(repo.load(), currency=settings.currency)
    store.subscribe(repo.save)
    return store


def pricing_policy(settings: Settings) -> PricingPolicy:
    return PricingPolicy(
        delivery_fee=Money(settings.delivery_fee, settings.currency),
        free_delivery_threshold=Money(settings.free_delivery_threshold, settings.currency),
    )


def commerce_gateway(settings: Settings) -> WooCommerceClient:
    return WooCommerceClient(
        api_base=settings.api_base,
        consumer_key=settings.consumer_key,
        consumer_secret=settings.consumer_secret,
        timeout=settings.http_timeout,
        payment_method=settings.payment_method,
    )


def payment_widget(settings: Settings) -> PaymentWidget:
    return ConsoleWidget(merchant_name=settings.merchant_name)


def checkout_orchestrator(
    settings: Settings,
    store: CartStore,
    gateway: CommerceGateway,
    widget: PaymentWidget,
) -> CheckoutOrchestrator:
    return CheckoutOrchestrator(
        cart_store=store,
        gateway=gateway,
        payment_adapter=PaymentSessionAdapter(widget, merchant_name=settings.merchant_name),
        pricing=pricing_policy(settings),
        reporter=reconciliation_reporter(settings),
        payment_timeout=settings.payment_timeout,
        payment_method=settings.payment_method,
    )
