"""
Bill notification sink.

A new bill is announced to its tenant by e-mail through fastapi-mail.
Delivery is best effort: every failure is logged and swallowed so an SMTP
outage never breaks bill generation. When SMTP is not configured the
message is only logged.
"""

import asyncio
import logging
import os
from typing import Any, Dict, Optional

from fastapi_mail import ConnectionConfig, FastMail, MessageSchema, MessageType

logger = logging.getLogger(__name__)

SMTP_HOST = os.getenv("SMTP_HOST", "")
SMTP_PORT = int(os.getenv("SMTP_PORT", "587"))
SMTP_USER = os.getenv("SMTP_USER", "")
SMTP_PASSWORD = os.getenv("SMTP_PASSWORD", "")
SMTP_SENDER = os.getenv("SMTP_SENDER", "no-reply@rentms.com")
SMTP_STARTTLS = os.getenv("SMTP_STARTTLS", "1") not in ("0", "false", "False", "")
SMTP_SSL = os.getenv("SMTP_SSL", "0") not in ("0", "false", "False", "")
SMTP_TIMEOUT = 10


class BillNotifier:
    """Receives ``(tenant, bill)`` snapshots after a bill is committed."""

    def notify(self, tenant: Dict[str, Any], bill: Dict[str, Any]) -> None:
        raise NotImplementedError


class LogNotifier(BillNotifier):
    def notify(self, tenant, bill):
        logger.info(
            "Bill %s for %s (%s): total %s [email not configured]",
            bill.get("id"),
            tenant.get("email"),
            bill.get("period"),
            bill.get("total_amount"),
        )


class EmailNotifier(BillNotifier):
    def __init__(
        self,
        host: str,
        port: int = 587,
        user: str = "",
        password: str = "",
        sender: str = SMTP_SENDER,
        starttls: bool = True,
        ssl_tls: bool = False,
    ):
        self.config = ConnectionConfig(
            MAIL_USERNAME=user,
            MAIL_PASSWORD=password,
            MAIL_FROM=sender,
            MAIL_PORT=port,
            MAIL_SERVER=host,
            MAIL_STARTTLS=starttls,
            MAIL_SSL_TLS=ssl_tls,
            USE_CREDENTIALS=bool(user),
            TIMEOUT=SMTP_TIMEOUT,
        )
        self.mail = FastMail(self.config)

    def notify(self, tenant, bill):
        to = tenant.get("email")
        if not to:
            logger.warning("Bill %s: tenant has no e-mail, skipping", bill.get("id"))
            return
        message = render_bill_email(tenant, bill)
        # runs from a worker thread (BackgroundTasks) or plain sync code, never inside a loop
        asyncio.run(self.mail.send_message(message))
        logger.info("Bill %s e-mailed to %s", bill.get("id"), to)


def _fmt_amount(value: Any) -> str:
    if value is None:
        return "0.00"
    return f"{float(value):,.2f}"


def render_bill_body(tenant: Dict[str, Any], bill: Dict[str, Any]) -> str:
    lines = [
        f"Hello {tenant.get('name') or 'tenant'},",
        "",
        f"Your rent bill for {bill.get('period')} has been generated.",
        "",
        f"Unit:               {tenant.get('unit') or '-'}",
        f"Base rent:          {_fmt_amount(bill.get('base_rent'))}",
        f"Meter reading:      {bill.get('previous_unit')} -> {bill.get('current_unit')}",
        f"Units consumed:     {bill.get('units_consumed')}",
        f"Rate per unit:      {_fmt_amount(bill.get('rate_per_unit'))}",
        f"Electricity amount: {_fmt_amount(bill.get('electricity_amount'))}",
        f"Total due:          {_fmt_amount(bill.get('total_amount'))}",
        "",
        f"Status: {bill.get('status')}",
    ]
    return "\n".join(lines)


def render_bill_email(tenant: Dict[str, Any], bill: Dict[str, Any]) -> MessageSchema:
    return MessageSchema(
        subject=f"Rent bill for {bill.get('period')}",
        recipients=[tenant.get("email")],
        body=render_bill_body(tenant, bill),
        subtype=MessageType.plain,
    )


def dispatch_bill_notification(
    notifier: Optional[BillNotifier], tenant: Dict[str, Any], bill: Dict[str, Any]
) -> bool:
    """Run the sink; returns False (after logging) on any failure."""
    if notifier is None:
        return False
    try:
        notifier.notify(tenant, bill)
        return True
    except Exception as exc:
        logger.warning("Bill notification failed (bill=%s): %s", bill.get("id"), exc)
        return False


def get_notifier() -> BillNotifier:
    """FastAPI dependency; tests override it with a recording fake."""
    if SMTP_HOST:
        return EmailNotifier(
            SMTP_HOST,
            port=SMTP_PORT,
            user=SMTP_USER,
            password=SMTP_PASSWORD,
            sender=SMTP_SENDER,
            starttls=SMTP_STARTTLS,
            ssl_tls=SMTP_SSL,
        )
    return LogNotifier()
