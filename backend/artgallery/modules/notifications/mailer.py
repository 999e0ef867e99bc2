"""
Transactional e-mail via the Brevo HTTP API.

Sends:
- One-time codes for verification and password reset
- Order confirmations
- Payment confirmations, with the PDF invoice when enabled

Delivery failures are logged and reported as False; they never abort the
request that triggered the e-mail.
"""

import asyncio
import base64
from typing import Any

import httpx
from loguru import logger

from artgallery.core.config import settings
from artgallery.models.shop import Order
from artgallery.modules.notifications.invoice import (
    html_to_pdf,
    invoice_filename,
    render_invoice_html,
)

BREVO_API_URL = "https://api.brevo.com/v3/smtp/email"


class Mailer:
    """
    Transactional mailer.

    Usage:
        mailer = get_mailer()
        await mailer.send_otp("ada@example.com", "Ada", "123456")
    """

    OTP_TEMPLATE = """
<h2>Hello {name},</h2>
<p>Your {purpose} code is:</p>
<p style="font-size:24px;letter-spacing:4px"><b>{otp}</b></p>
<p>The code expires in {minutes} minutes.</p>
"""

    ORDER_TEMPLATE = """
<h2>Thank you for your order, {name}!</h2>
<p>Order <b>{order_number}</b> has been placed.</p>
<table>
{rows}
</table>
<p>Subtotal: ${subtotal}<br>
Shipping: ${shipping}<br>
Discount: -${discount}<br>
<b>Total: ${total}</b></p>
"""

    def __init__(
        self,
        api_key: str | None = None,
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> None:
        self.api_key = api_key if api_key is not None else settings.brevo_api_key
        self.enabled = settings.mail_enabled
        self._transport = transport

        if not self.api_key:
            logger.warning("BREVO_API_KEY not configured")

    async def send_email(
        self,
        to_email: str,
        to_name: str | None,
        subject: str,
        html: str,
        attachments: list[tuple[str, bytes]] | None = None,
    ) -> bool:
        """
        Send a single HTML e-mail.

        Args:
            attachments: (filename, content) pairs, sent base64-encoded

        Returns:
            True if Brevo accepted the message
        """
        if not self.enabled:
            logger.debug("E-mail disabled")
            return False

        if not self.api_key:
            logger.error(f"Cannot send '{subject}': mail API key not configured")
            return False

        payload: dict[str, Any] = {
            "sender": {
                "name": settings.mail_sender_name,
                "email": settings.mail_sender_email,
            },
            "to": [{"email": to_email, "name": to_name or to_email}],
            "subject": subject,
            "htmlContent": html,
        }
        if attachments:
            payload["attachment"] = [
                {"name": name, "content": base64.b64encode(content).decode("ascii")}
                for name, content in attachments
            ]

        try:
            async with httpx.AsyncClient(transport=self._transport) as client:
                response = await client.post(
                    BREVO_API_URL,
                    json=payload,
                    headers={"api-key": self.api_key, "accept": "application/json"},
                    timeout=10.0,
                )
                response.raise_for_status()
        except httpx.HTTPStatusError as e:
            logger.error(f"Mail HTTP error: {e.response.status_code}")
            return False
        except httpx.RequestError as e:
            logger.error(f"Mail request error: {e}")
            return False

        logger.info(f"Sent '{subject}' to {to_email}")
        return True

    async def send_otp(
        self,
        email: str,
        name: str,
        otp: str,
        purpose: str = "verification",
    ) -> bool:
        html = self.OTP_TEMPLATE.format(
            name=name,
            purpose=purpose,
            otp=otp,
            minutes=settings.otp_expire_minutes,
        )
        subject = "Reset your password" if purpose == "password reset" else "Verify your e-mail"
        return await self.send_email(email, name, subject, html)

    def format_order(self, order: Order, name: str) -> str:
        rows = "\n".join(
            f"<tr><td>{item.name}</td><td>x{item.quantity}</td>"
            f"<td>${item.price_at_order * item.quantity:,.2f}</td></tr>"
            for item in order.items
        )
        return self.ORDER_TEMPLATE.format(
            name=name,
            order_number=order.order_number,
            rows=rows,
            subtotal=f"{order.subtotal:,.2f}",
            shipping=f"{order.shipping_cost:,.2f}",
            discount=f"{order.discount_amount:,.2f}",
            total=f"{order.total_amount:,.2f}",
        )

    async def send_order_confirmation(self, order: Order, email: str, name: str) -> bool:
        html = self.format_order(order, name)
        return await self.send_email(
            email, name, f"Order Confirmation - {order.order_number}", html
        )

    async def send_payment_confirmation(self, order: Order, email: str, name: str) -> bool:
        html = (
            f"<h2>Payment received</h2>"
            f"<p>Hi {name}, we received ${order.total_amount:,.2f} for order "
            f"<b>{order.order_number}</b>. It is now being processed.</p>"
        )
        attachments = None
        if self.enabled and settings.invoice_pdf_enabled:
            invoice = render_invoice_html(order, name)
            try:
                pdf = await asyncio.to_thread(html_to_pdf, invoice)
            except OSError as e:
                # cairo/pango missing or unusable
                logger.error(f"Invoice PDF for {order.order_number} failed: {e}")
            else:
                attachments = [(invoice_filename(order), pdf)]
        return await self.send_email(
            email, name, f"Payment Received - {order.order_number}", html, attachments
        )


# Singleton instance
_mailer: Mailer | None = None


def get_mailer() -> Mailer:
    """Get or create mailer singleton."""
    global _mailer
    if _mailer is None:
        _mailer = Mailer()
    return _mailer
