"""
Stripe configuration object.

Keys, checkout defaults, business details and the helpers used to move
amounts between dollars and Stripe's integer cents.
"""

from dataclasses import dataclass, field
from decimal import ROUND_HALF_UP, Decimal
from typing import Any

from artgallery.core.config import Settings, settings

WEBHOOK_EVENTS = [
    "payment_intent.succeeded",
    "payment_intent.payment_failed",
    "payment_intent.canceled",
    "charge.succeeded",
    "charge.failed",
    "charge.refunded",
    "charge.dispute.created",
    "checkout.session.completed",
    "checkout.session.expired",
]


@dataclass
class StripeConfig:
    secret_key: str = ""
    publishable_key: str = ""
    webhook_secret: str = ""
    currency: str = "usd"
    payment_methods: list[str] = field(
        default_factory=lambda: ["card", "apple_pay", "google_pay"]
    )
    business: dict[str, Any] = field(
        default_factory=lambda: {
            "name": "Art Gallery Inc.",
            "email": "orders@artgallery.com",
            "phone": "5551234567",
            "address": {
                "line1": "1717 N Bayshore Dr",
                "city": "Miami",
                "state": "FL",
                "postal_code": "33132",
                "country": "US",
            },
        }
    )
    tax_enabled: bool = True
    tax_code: str = "txcd_99999999"
    default_shipping_rate: int = 1500  # cents
    webhook_events: list[str] = field(default_factory=lambda: list(WEBHOOK_EVENTS))

    @classmethod
    def from_settings(cls, app_settings: Settings) -> "StripeConfig":
        return cls(
            secret_key=app_settings.stripe_secret_key,
            publishable_key=app_settings.stripe_publishable_key,
            webhook_secret=app_settings.stripe_webhook_secret,
            currency=app_settings.shop_currency.lower(),
            default_shipping_rate=int(app_settings.flat_shipping_cost * 100),
        )

    @property
    def tax(self) -> dict[str, Any]:
        return {"enabled": self.tax_enabled, "automatic": True, "tax_code": self.tax_code}

    @property
    def is_test_mode(self) -> bool:
        return "test" in self.secret_key or self.secret_key.startswith("sk_test")

    @property
    def is_live_mode(self) -> bool:
        return self.secret_key.startswith("sk_live")

    def validate(self) -> dict[str, Any]:
        """Check keys; a missing webhook secret is only a warning."""
        errors: list[str] = []
        warnings: list[str] = []

        if not self.secret_key:
            errors.append("STRIPE_SECRET_KEY is not configured")
        elif not self.secret_key.startswith("sk_"):
            errors.append("STRIPE_SECRET_KEY appears invalid (should start with sk_)")

        if not self.publishable_key:
            errors.append("STRIPE_PUBLISHABLE_KEY is not configured")
        elif not self.publishable_key.startswith("pk_"):
            errors.append("STRIPE_PUBLISHABLE_KEY appears invalid (should start with pk_)")

        if not self.webhook_secret:
            warnings.append("STRIPE_WEBHOOK_SECRET is not configured - webhooks will not work")

        return {
            "is_valid": not errors,
            "errors": errors,
            "warnings": warnings,
            "is_test_mode": self.is_test_mode,
        }

    def metadata(self, order_number: str, user_id: int | str) -> dict[str, str]:
        """Metadata attached to every Stripe object created for an order."""
        return {
            "order_id": order_number,
            "user_id": str(user_id),
            "source": "artgallery_website",
            "version": "1.0",
        }


def format_amount_for_stripe(amount: Decimal | float) -> int:
    """Dollars to cents."""
    cents = Decimal(str(amount)) * 100
    return int(cents.quantize(Decimal("1"), rounding=ROUND_HALF_UP))


def format_amount_for_display(cents: int) -> str:
    """Cents to a dollar string with two decimals."""
    return f"{Decimal(round(cents)) / 100:.2f}"


def get_stripe_config() -> StripeConfig:
    return StripeConfig.from_settings(settings)
