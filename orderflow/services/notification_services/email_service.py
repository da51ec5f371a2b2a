# orderflow/services/notification_services/email_service.py
"""
Order emails to the manufacturer and the client.

The order graph is rendered with Jinja2 and handed to the Resend HTTP API.
Sends are not retried and carry no idempotency key: posting twice sends two
emails. Every send is recorded in ``email_history``; a failure to record it
is logged and otherwise ignored.
"""
import base64
import logging
from pathlib import Path
from typing import AsyncIterator, Dict, List, Optional

import httpx
from jinja2 import Environment, FileSystemLoader, select_autoescape
from sqlalchemy.ext.asyncio import AsyncSession

from orderflow.core import config
from orderflow.core.exceptions import ConfigurationError, UpstreamError, ValidationFailed
from orderflow.models.notification_models import EmailHistory
from orderflow.models.order_models import Order, OrderMedia
from orderflow.schemas.notification_schemas import EmailSendRequest, EmailSendResponse
from orderflow.services.order_services.order_access import ensure_order_access, load_order

logger = logging.getLogger(__name__)

TEMPLATE_DIR = Path(__file__).resolve().parents[2] / "templates" / "email"
template_env = Environment(
    loader=FileSystemLoader(str(TEMPLATE_DIR)),
    autoescape=select_autoescape(["html"]),
)

MANUFACTURER = "manufacturer"
CLIENT = "client"


async def get_http_client() -> AsyncIterator[httpx.AsyncClient]:
    async with httpx.AsyncClient(timeout=30) as client:
        yield client


def media_url(media: OrderMedia) -> str:
    if media.file_url.startswith(("http://", "https://")):
        return media.file_url
    return f"{config.SUPABASE_URL}/storage/v1/object/public/{config.MEDIA_BUCKET}/{media.file_url}"


def _file_name(media: OrderMedia) -> str:
    return media.original_filename or media.file_url.rstrip("/").split("/")[-1] or "attachment"


async def fetch_attachments(client: httpx.AsyncClient, order: Order, product_numbers: Dict[int, str]) -> List[dict]:
    """Downloads product media; files that cannot be fetched are skipped."""
    attachments = []
    for media in order.media:
        if media.order_product_id not in product_numbers:
            continue
        url = media_url(media)
        try:
            response = await client.get(url)
            response.raise_for_status()
        except httpx.HTTPError as e:
            logger.warning("Skipping attachment %s: %s", url, e)
            continue
        attachments.append({
            "filename": f"{product_numbers[media.order_product_id]}_{_file_name(media)}",
            "content": base64.b64encode(response.content).decode("ascii"),
        })
    return attachments


def render_order_email(recipient_type: str, order: Order, products, attachments: List[dict], custom_message: Optional[str] = None, show_pricing: bool = False) -> str:
    media_links: Dict[int, List[dict]] = {}
    for media in order.media:
        if media.order_product_id is not None:
            media_links.setdefault(media.order_product_id, []).append({"url": media_url(media), "name": _file_name(media)})

    template = template_env.get_template(
        "manufacturer_order.html" if recipient_type == MANUFACTURER else "client_order.html"
    )
    return template.render(
        order=order,
        products=products,
        total_items=sum(item.quantity for p in products for item in p.items),
        attachments=attachments,
        media_links=media_links,
        custom_message=custom_message,
        show_pricing=show_pricing,
        order_url=f"{config.APP_URL}/dashboard/orders/{order.id}",
    )


async def _record_history(db: AsyncSession, **values) -> None:
    try:
        db.add(EmailHistory(**values))
        await db.commit()
    except Exception:
        await db.rollback()
        logger.exception("Could not record email history for order %s", values.get("order_id"))


# ---------------------------------------------------
# SEND ORDER EMAIL
# ---------------------------------------------------
async def send_order_email(
    db: AsyncSession,
    recipient_type: str,
    data: EmailSendRequest,
    current_user,
    client: httpx.AsyncClient,
) -> EmailSendResponse:
    order = await load_order(db, data.orderId, with_products=True)
    ensure_order_access(order, current_user)

    if not config.RESEND_API_KEY:
        raise ConfigurationError("Email service not configured: RESEND_API_KEY is not set")

    party = order.manufacturer if recipient_type == MANUFACTURER else order.client
    if party is None or not party.email:
        raise ValidationFailed(f"The {recipient_type} of order {order.order_number} has no email address", field="email")

    products = [p for p in order.products if p.deleted_at is None]
    attachments = []
    if data.includeAttachments and recipient_type == MANUFACTURER:
        attachments = await fetch_attachments(client, order, {p.id: p.product_order_number for p in products})

    if recipient_type == MANUFACTURER:
        subject = data.subject or f"New Order #{order.order_number} - {order.client.name}"
    else:
        subject = data.subject or f"Update on Order #{order.order_number}"
    html = render_order_email(recipient_type, order, products, attachments, data.customMessage, data.showPricing)

    payload = {
        "from": f"{config.EMAIL_FROM_NAME} <{config.RESEND_FROM_EMAIL}>",
        "to": [party.email],
        "subject": subject,
        "html": html,
    }
    if attachments:
        payload["attachments"] = attachments

    order_id, order_number, recipient = order.id, order.order_number, party.email
    try:
        response = await client.post(
            config.RESEND_API_URL,
            json=payload,
            headers={"Authorization": f"Bearer {config.RESEND_API_KEY}"},
        )
        response.raise_for_status()
        message_id = response.json().get("id")
    except (httpx.HTTPError, ValueError) as e:
        logger.error("Email to %s for order %s failed: %s", recipient, order_number, e)
        await _record_history(
            db, order_id=order_id, recipient=recipient, recipient_type=recipient_type,
            subject=subject, attachment_count=len(attachments), status="failed", sent_by=current_user.id,
        )
        raise UpstreamError(f"Email provider rejected the message: {e}")

    logger.info("Sent %s email for %s to %s (%s attachment(s))", recipient_type, order_number, recipient, len(attachments))
    await _record_history(
        db, order_id=order_id, recipient=recipient, recipient_type=recipient_type, subject=subject,
        message_id=message_id, attachment_count=len(attachments), status="sent", sent_by=current_user.id,
    )
    return EmailSendResponse(
        success=True, messageId=message_id, recipient=recipient, attachmentCount=len(attachments),
    )
