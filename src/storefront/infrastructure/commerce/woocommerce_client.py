"""WooCommerce REST v3 implementation of CommerceGateway.

Every call is a fresh round trip authenticated with the store's
consumer key pair. Non-2xx responses and transport errors are mapped
to ``OrderCreationError`` / ``OrderUpdateError``; the client never
guesses what the backend did.
"""

from __future__ import annotations

from typing import Any

import httpx
import structlog

from storefront.domain.exceptions import OrderCreationError, OrderUpdateError
from storefront.domain.gateway.commerce_gateway import CommerceGateway
from storefront.domain.model.order import (
    OrderLine,
    OrderRequest,
    OrderStatus,
    PendingOrder,
)

logger = structlog.get_logger(__name__)

PAYMENT_METHOD_TITLE = "Razorpay (Credit Card/Debit Card/NetBanking/UPI)"


class WooCommerceClient(CommerceGateway):

    def __init__(
        self,
        api_base: str,
        consumer_key: str,
        consumer_secret: str,
        timeout: float = 10.0,
        payment_method: str = "razorpay",
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> None:
        self._payment_method = payment_method
        self._client = httpx.AsyncClient(
            base_url=api_base.rstrip("/"),
            auth=(consumer_key, consumer_secret),
            timeout=timeout,
            headers={"Content-Type": "application/json"},
            transport=transport,
        )

    async def __aenter__(self) -> WooCommerceClient:
        return self

    async def __aexit__(self, *exc_info: object) -> None:
        await self.aclose()

    async def aclose(self) -> None:
        await self._client.aclose()

    # --- CommerceGateway interface --------------------------------------------

    async def create_order(self, request: OrderRequest) -> PendingOrder:
        payload = self._order_payload(request)
        logger.info("Creating order", lines=len(request.lines))

        try:
            response = await self._client.post("/orders", json=payload)
        except httpx.HTTPError as exc:
            raise OrderCreationError(f"Order creation failed: {exc}") from exc

        if response.is_error:
            raise OrderCreationError(self._creation_error_message(response))

        try:
            body = response.json()
            order_id = body["id"]
            status = OrderStatus(body.get("status", OrderStatus.PENDING.value))
        except (ValueError, KeyError, TypeError) as exc:
            raise OrderCreationError(
                f"Order creation failed: unexpected response from backend ({exc})"
            ) from exc

        logger.info("Order created by backend", order_id=order_id, status=status.value)
        return PendingOrder(
            id=order_id,
            lines=request.lines,
            customer=request.customer,
            status=status,
            meta_data=tuple(
                (str(m.get("key")), str(m.get("value")))
                for m in body.get("meta_data") or []
                if isinstance(m, dict)
            ),
        )

    async def set_order_status(
        self,
        order_id: int | str,
        status: OrderStatus,
        extra: dict[str, str] | None = None,
    ) -> None:
        payload: dict[str, Any] = {"status": status.value}
        if extra:
            payload["meta_data"] = [{"key": k, "value": v} for k, v in extra.items()]

        try:
            response = await self._client.put(f"/orders/{order_id}", json=payload)
        except httpx.HTTPError as exc:
            raise OrderUpdateError(
                f"Failed to update order #{order_id}: {exc}", order_id=order_id
            ) from exc

        if response.is_error:
            raise OrderUpdateError(
                f"Failed to update order #{order_id}: "
                f"{response.status_code} {response.text}".rstrip(),
                order_id=order_id,
            )
        logger.info("Order status updated", order_id=order_id, status=status.value)

    # --- Payload mapping ------------------------------------------------------

    def _order_payload(self, request: OrderRequest) -> dict[str, Any]:
        customer = request.customer
        quote = request.quote
        address = {
            "first_name": customer.name,
            "last_name": "",
            "address_1": customer.address,
            "address_2": "",
            "city": customer.city,
            "state": customer.state,
            "postcode": customer.pincode,
            "country": customer.country,
        }

        note = customer.notes + ("\n\n" if customer.notes else "")
        note += f"WhatsApp: {customer.whatsapp}\nFull Address: {customer.full_address}"
        if quote.coupon_code:
            note += f"\nCoupon Applied: {quote.coupon_code} ({quote.discount} discount)"

        meta_data = [
            {"key": "whatsapp_number", "value": customer.whatsapp},
            {"key": "full_address", "value": customer.full_address},
            {"key": "original_subtotal", "value": str(quote.subtotal.amount)},
            {"key": "delivery_charges", "value": str(quote.delivery_charge.amount)},
            {"key": "final_total", "value": str(quote.payable.amount)},
        ]
        if quote.coupon_code:
            meta_data.append({"key": "coupon_code", "value": quote.coupon_code})
            meta_data.append({"key": "coupon_discount", "value": str(quote.discount.amount)})

        return {
            "payment_method": self._payment_method,
            "payment_method_title": PAYMENT_METHOD_TITLE,
            "set_paid": False,
            "status": OrderStatus.PENDING.value,
            "currency": quote.subtotal.currency,
            "billing": {**address, "email": customer.email, "phone": customer.phone},
            "shipping": address,
            "line_items": [_line_item(line) for line in request.lines],
            "shipping_lines": (
                [
                    {
                        "method_id": "flat_rate",
                        "method_title": "Standard Delivery",
                        "total": str(quote.delivery_charge.amount),
                    }
                ]
                if quote.delivery_charge.amount > 0
                else []
            ),
            "coupon_lines": (
                [{"code": quote.coupon_code.lower()}] if quote.coupon_code else []
            ),
            "customer_note": note,
            "meta_data": meta_data,
        }

    @staticmethod
    def _creation_error_message(response: httpx.Response) -> str:
        if response.status_code == 404:
            return "Order creation failed: commerce API not found. Please contact support."
        if response.status_code == 401:
            return "Order creation failed: authentication failed. Please contact support."
        message = f"Order creation failed: {response.status_code}"
        try:
            body = response.json()
        except ValueError:
            body = None
        if isinstance(body, dict) and body.get("message"):
            message += f" - {body['message']}"
        return message


def _line_item(line: OrderLine) -> dict[str, Any]:
    product_id: int | str = int(line.product_id) if line.product_id.isdigit() else line.product_id
    return {
        "product_id": product_id,
        "quantity": line.quantity,
        "name": line.name,
        "price": str(line.unit_price.amount),
    }
