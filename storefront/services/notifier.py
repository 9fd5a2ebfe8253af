"""Order e-mails and operational alerts.

Nothing in here raises into the caller: a failed e-mail or alert is logged and
the order flow carries on.
"""

import asyncio
import smtplib
from decimal import Decimal
from email.message import EmailMessage
from typing import Any

import httpx

from storefront.config import Settings
from storefront.models.order import Order
from storefront.utils.logging import get_logger

logger = get_logger(__name__)


def _money(amount: Decimal, currency: str) -> str:
    return f"{amount:.2f} {currency}"


def render_customer_email(
    order: Order, currency: str, payment_reference: str | None, contact: str
) -> tuple[str, str]:
    """Subject and plain-text body of the customer's order confirmation."""
    info = order.information
    lines = [
        f"Thank you for your order, {info.name}!",
        "",
        f"Order number: {order.number}",
        "Payment method: Swish",
    ]
    if payment_reference:
        lines.append(f"Payment reference: {payment_reference}")
    lines += [f"Delivery method: {order.delivery}", "", "Delivery address:"]
    if info.company:
        lines.append(info.company)
    lines += [info.address, f"{info.zip} {info.city}", "", "Items:"]
    for item in order.cart:
        lines.append(
            f"  {item.number} x {item.title}  "
            f"{_money(item.unit_price, currency)}  = {_money(item.subtotal, currency)}"
        )
    if order.delivery_cost > 0:
        lines.append(f"Delivery: {_money(order.delivery_cost, currency)}")
    lines += [
        f"Total: {_money(order.total, currency)}",
        "",
        "We'll process your order and contact you if we need any additional information.",
        f"If you have any questions about your order, please contact us at {contact}.",
    ]
    return f"Order Confirmation - {order.number}", "\n".join(lines)


def render_admin_email(
    order: Order, currency: str, payment_reference: str | None
) -> tuple[str, str]:
    """Subject and plain-text body of the shop's new-order notification."""
    info = order.information
    lines = [
        f"New order {order.number} ({order.id})",
        "",
        f"Customer: {info.name}",
        f"E-mail: {info.email}",
        f"Phone: {info.phone}",
    ]
    if info.company:
        lines.append(f"Company: {info.company}")
    lines += [
        f"Address: {info.address}, {info.zip} {info.city}",
        f"Delivery: {order.delivery} ({_money(order.delivery_cost, currency)})",
        f"Payment reference: {payment_reference or '-'}",
        "",
        "Items:",
    ]
    for item in order.cart:
        article = f" [{item.article}]" if item.article else ""
        lines.append(f"  {item.number} x {item.title}{article} ({item.id})")
    lines.append(f"Total: {_money(order.total, currency)}")
    return f"New Order Received - {order.number}", "\n".join(lines)


class Notifier:
    """Sends order confirmations over SMTP and alerts to an incoming webhook."""

    def __init__(self, settings: Settings, http_client: httpx.AsyncClient | None = None):
        self.settings = settings
        self.webhook_url = settings.alert_webhook_url
        self._http = http_client

    @property
    def email_enabled(self) -> bool:
        return bool(self.settings.smtp_host)

    async def close(self) -> None:
        if self._http is not None:
            await self._http.aclose()
            self._http = None

    async def send_order_confirmation(
        self,
        order: Order,
        payment_reference: str | None = None,
        currency: str = "SEK",
    ) -> int:
        """
        Send the customer confirmation and the admin notification.

        Returns:
            Number of e-mails handed to the SMTP server
        """
        if not self.email_enabled:
            logger.info("order_emails_skipped", order_number=order.number, reason="smtp_disabled")
            return 0

        customer = render_customer_email(
            order, currency, payment_reference, contact=self.settings.admin_email
        )
        admin = render_admin_email(order, currency, payment_reference)
        results = await asyncio.gather(
            self._deliver(str(order.information.email), *customer),
            self._deliver(self.settings.admin_email, *admin),
        )
        return sum(results)

    async def alert(self, summary: str, **context: Any) -> None:
        """Report a condition that needs a human, e.g. a stock mismatch."""
        logger.warning("operational_alert", summary=summary, **context)
        if not self.webhook_url:
            return

        details = "\n".join(f"*{key}:* {value}" for key, value in context.items())
        text = f":rotating_light: {summary}" + (f"\n{details}" if details else "")
        try:
            response = await self._client().post(self.webhook_url, json={"text": text})
        except httpx.HTTPError as e:
            logger.error("alert_delivery_failed", summary=summary, error=str(e))
            return
        if response.is_error:
            logger.error(
                "alert_delivery_rejected",
                summary=summary,
                status_code=response.status_code,
                body=response.text,
            )

    async def _deliver(self, to_email: str, subject: str, body: str) -> int:
        try:
            await asyncio.to_thread(self._send_email, to_email, subject, body)
        except (smtplib.SMTPException, OSError) as e:
            logger.error("email_delivery_failed", to=to_email, subject=subject, error=str(e))
            return 0
        logger.info("email_sent", to=to_email, subject=subject)
        return 1

    def _send_email(self, to_email: str, subject: str, body: str) -> None:
        settings = self.settings
        msg = EmailMessage()
        msg["From"] = settings.from_email
        msg["To"] = to_email
        msg["Subject"] = subject
        msg.set_content(body)

        with smtplib.SMTP(settings.smtp_host, settings.smtp_port, timeout=10) as server:
            if settings.smtp_use_tls:
                server.starttls()
            if settings.smtp_username and settings.smtp_password:
                server.login(settings.smtp_username, settings.smtp_password)
            server.send_message(msg)

    def _client(self) -> httpx.AsyncClient:
        if self._http is None:
            self._http = httpx.AsyncClient(timeout=5.0)
        return self._http
