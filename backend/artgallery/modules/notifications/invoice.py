"""
Order invoices.

The invoice is an HTML page rendered to PDF with weasyprint and attached
to the payment confirmation e-mail. weasyprint needs the cairo and pango
system libraries, so it is imported only when a PDF is rendered.
"""

from html import escape
from typing import Any

from artgallery.models.shop import Order
from artgallery.modules.payments.stripe_config import get_stripe_config

INVOICE_CSS = """
@page { size: A4; margin: 18mm; }
body { font-family: Helvetica, Arial, sans-serif; font-size: 10pt; color: #222; }
header { display: flex; justify-content: space-between; }
h1 { font-size: 20pt; margin: 0; }
.muted { color: #666; font-size: 8pt; }
.parties { display: flex; gap: 40mm; margin: 10mm 0; }
table { width: 100%; border-collapse: collapse; }
th { text-align: left; border-bottom: 1px solid #222; padding: 4px 0; }
td { padding: 6px 0; border-bottom: 1px solid #ddd; vertical-align: top; }
.num { text-align: right; }
.totals td { border: none; padding: 2px 0; }
.grand td { font-weight: bold; font-size: 12pt; }
"""


def _money(value: Any) -> str:
    return f"${value or 0:,.2f}"


def _address_block(name: str, address: dict[str, Any]) -> str:
    lines = [
        name,
        address.get("street_line1"),
        address.get("street_line2"),
        f"{address.get('city', '')}, {address.get('state_code', '')} {address.get('zip_code', '')}",
        address.get("country_code"),
    ]
    if address.get("phone_number"):
        lines.append(f"Phone: {address['phone_number']}")
    return "<br>".join(escape(str(line)) for line in lines if line)


def render_invoice_html(order: Order, customer_name: str) -> str:
    business = get_stripe_config().business
    office = business["address"]
    address = _address_block(customer_name, order.shipping_address or {})
    placed = order.created_at.strftime("%b %d, %Y") if order.created_at else ""

    rows = "\n".join(
        f"<tr><td>{escape(item.name)}"
        f"<div class='muted'>by {escape(item.author or 'Unknown')} | {escape(item.medium or '')}</div></td>"
        f"<td class='num'>{item.quantity}</td>"
        f"<td class='num'>{_money(item.price_at_order)}</td>"
        f"<td class='num'>{_money(item.line_total)}</td></tr>"
        for item in order.items
    )
    discount = (
        f"<tr><td>Discount</td><td class='num'>-{_money(order.discount_amount)}</td></tr>"
        if order.discount_amount and order.discount_amount > 0
        else ""
    )

    return f"""<!DOCTYPE html>
<html><head><meta charset="utf-8"><style>{INVOICE_CSS}</style></head>
<body>
<header>
  <div>
    <h1>{escape(business["name"])}</h1>
    <div class="muted">{escape(office["line1"])}<br>
    {escape(office["city"])}, {escape(office["state"])} {escape(office["postal_code"])}<br>
    {escape(business["email"])} | {escape(business["phone"])}</div>
  </div>
  <div class="num">
    <h1>INVOICE</h1>
    <div>Order #: {escape(order.order_number)}</div>
    <div>Date: {placed}</div>
  </div>
</header>
<section class="parties">
  <div><b>BILL TO</b><br>{address}</div>
  <div><b>SHIP TO</b><br>{address}</div>
</section>
<table>
  <tr><th>Item</th><th class="num">Qty</th><th class="num">Price</th><th class="num">Amount</th></tr>
  {rows}
</table>
<table class="totals" style="width: 40%; margin-left: 60%; margin-top: 6mm">
  <tr><td>Subtotal</td><td class="num">{_money(order.subtotal)}</td></tr>
  <tr><td>Shipping</td><td class="num">{_money(order.shipping_cost)}</td></tr>
  {discount}
  <tr class="grand"><td>TOTAL</td><td class="num">{_money(order.total_amount)}</td></tr>
</table>
<p class="muted">Payment method: {escape(order.payment_method.value if order.payment_method else "")}</p>
<p class="muted">Thank you for supporting independent artists.</p>
</body></html>"""


def html_to_pdf(html: str) -> bytes:
    """Render invoice HTML to PDF bytes. Blocking; run it off the event loop."""
    from weasyprint import HTML

    return HTML(string=html).write_pdf()


def invoice_filename(order: Order) -> str:
    return f"invoice-{order.order_number}.pdf"
