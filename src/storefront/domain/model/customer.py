"""Customer contact details captured on the checkout form."""

from __future__ import annotations

import re
from dataclasses import dataclass

from storefront.domain.exceptions import ValidationError

_EMAIL_RE = re.compile(r"^\w+([.-]?\w+)*@\w+([.-]?\w+)*(\.\w{2,3})+$")
_PHONE_RE = re.compile(r"^[0-9]{10}$")
_PINCODE_RE = re.compile(r"^[0-9]{6}$")


@dataclass(frozen=True)
class CustomerDetails:
    """Billing and shipping contact for one order.

    Use ``CustomerDetails.create()`` for user input; it validates every
    field and reports all problems at once.
    """

    name: str
    email: str
    phone: str
    whatsapp: str
    address: str
    city: str
    state: str
    pincode: str
    notes: str = ""
    country: str = "IN"

    @property
    def full_address(self) -> str:
        return f"{self.address}, {self.city}, {self.state} - {self.pincode}"

    @staticmethod
    def create(
        name: str,
        email: str,
        phone: str,
        whatsapp: str,
        address: str,
        city: str,
        state: str,
        pincode: str,
        notes: str = "",
    ) -> CustomerDetails:
        fields = {
            "name": (name or "").strip(),
            "email": (email or "").strip(),
            "phone": (phone or "").strip(),
            "whatsapp": (whatsapp or "").strip(),
            "address": (address or "").strip(),
            "city": (city or "").strip(),
            "state": (state or "").strip(),
            "pincode": (pincode or "").strip(),
        }

        errors: dict[str, str] = {}
        for key, value in fields.items():
            if not value:
                errors[key] = f"{key.capitalize()} is required"

        if "email" not in errors and not _EMAIL_RE.match(fields["email"]):
            errors["email"] = "Please enter a valid email"
        if "phone" not in errors and not _PHONE_RE.match(fields["phone"]):
            errors["phone"] = "Please enter a valid 10-digit phone number"
        if "whatsapp" not in errors and not _PHONE_RE.match(fields["whatsapp"]):
            errors["whatsapp"] = "Please enter a valid 10-digit WhatsApp number"
        if "pincode" not in errors and not _PINCODE_RE.match(fields["pincode"]):
            errors["pincode"] = "Please enter a valid 6-digit pincode"

        if errors:
            summary = "; ".join(errors.values())
            raise ValidationError(f"Invalid checkout details: {summary}", errors)

        return CustomerDetails(notes=(notes or "").strip(), **fields)
