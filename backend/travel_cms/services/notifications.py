"""
Inquiry notification emails.

Contact forms, consultation requests and package enquiries each produce one
HTML email to the agency inbox. Sending happens in a background task after
the inquiry row is committed; ``dispatch_inquiry_email`` never raises, so a
broken mail server cannot fail an inquiry that was already stored.
"""

from dataclasses import dataclass
from datetime import datetime
from email.message import EmailMessage
from typing import Optional
import logging

import aiosmtplib
from jinja2 import Environment, select_autoescape

from travel_cms.core.config import settings

logger = logging.getLogger(__name__)

PACKAGE_ENQUIRY = "PACKAGE_ENQUIRY"
CONTACT = "CONTACT"

_env = Environment(autoescape=select_autoescape(default=True, default_for_string=True))

INQUIRY_TEMPLATE = _env.from_string("""\
<!DOCTYPE html>
<html lang="en">
<head><meta charset="UTF-8"><title>New {{ kind }} - {{ company }}</title></head>
<body style="font-family: Arial, sans-serif; color: #374151; background: #f9fafb; padding: 20px;">
  <div style="max-width: 600px; margin: 0 auto; background: #fff; border-radius: 8px;">
    <div style="background: #14b8a6; color: #fff; padding: 24px 30px; text-align: center;">
      <h1 style="margin: 0; font-size: 24px;">New {{ kind }} Received</h1>
      <p style="margin: 8px 0 0 0;">{{ summary }}</p>
    </div>
    <div style="padding: 30px;">
      <h3 style="color: #14b8a6;">Customer Information</h3>
      <p><strong>Name:</strong> {{ n.name }}</p>
      <p><strong>Email:</strong> {{ n.email }}</p>
      {% if n.phone %}<p><strong>Phone:</strong> {{ n.phone }}</p>{% endif %}
      <h3 style="color: #14b8a6;">{{ details_title }}</h3>
      {% for label, value in details %}
      <p><strong>{{ label }}:</strong> {{ value }}</p>
      {% endfor %}
      {% if n.message %}
      <h3 style="color: #14b8a6;">{{ message_title }}</h3>
      <div style="background: #f8fafc; border: 1px solid #e5e7eb; padding: 16px;">
        {% for line in n.message.splitlines() %}{{ line }}<br>{% endfor %}
      </div>
      {% endif %}
    </div>
    <div style="padding: 20px 30px; text-align: center; border-top: 1px solid #e5e7eb;">
      <p><strong>{{ company }}</strong></p>
      <p>Please respond to this inquiry within 24 hours</p>
    </div>
  </div>
</body>
</html>
""")


@dataclass
class InquiryNotification:
    """Everything the inquiry email shows."""
    name: str
    email: str
    type: str = CONTACT
    phone: Optional[str] = None
    message: Optional[str] = None
    destination: Optional[str] = None
    travel_date: Optional[str] = None
    hotel_type: Optional[str] = None
    group_size: Optional[str] = None
    budget: Optional[str] = None
    special_requirements: Optional[str] = None
    package_name: Optional[str] = None
    travel_time: Optional[str] = None
    adults: Optional[int] = None
    children: Optional[int] = None
    rooms: Optional[int] = None

    @property
    def kind(self) -> str:
        if self.type == PACKAGE_ENQUIRY:
            return "Package Enquiry"
        if self.type == CONTACT:
            return "Contact"
        return "Consultation"

    @property
    def subject(self) -> str:
        return f"New {self.kind} from {self.name}"


def _format_date(value: Optional[str]) -> Optional[str]:
    if not value:
        return None
    try:
        return datetime.fromisoformat(str(value).replace("Z", "+00:00")).strftime("%A, %d %B %Y")
    except ValueError:
        return str(value)


def _travellers(n: InquiryNotification) -> Optional[str]:
    if not (n.adults or n.children):
        return None
    parts = []
    if n.adults:
        parts.append(f"{n.adults} Adult{'s' if n.adults > 1 else ''}")
    if n.children:
        parts.append(f"{n.children} Child{'ren' if n.children > 1 else ''}")
    text = ", ".join(parts)
    if n.rooms:
        text += f" - {n.rooms} Room{'s' if n.rooms > 1 else ''}"
    return text


def render_inquiry_email(n: InquiryNotification) -> str:
    if n.type == PACKAGE_ENQUIRY:
        rows = [
            ("Package", n.package_name),
            ("Travel Date", _format_date(n.travel_date)),
            ("Travel Time", n.travel_time),
            ("Travelers", _travellers(n)),
        ]
        details_title = "Package Enquiry Details"
        summary = "Package booking inquiry from a potential customer"
        message_title = "Additional Message"
    else:
        rows = [
            ("Destination", n.destination),
            ("Travel Date", _format_date(n.travel_date)),
            ("Hotel Type", n.hotel_type),
            ("Group Size", n.group_size),
            ("Budget Range", n.budget),
            ("Special Requirements", n.special_requirements),
        ]
        details_title = "Travel Preferences"
        summary = "Travel consultation request received"
        message_title = "Message"

    return INQUIRY_TEMPLATE.render(
        n=n,
        kind=n.kind,
        company="Thapa Holidays",
        summary=summary,
        details_title=details_title,
        details=[(label, value) for label, value in rows if value],
        message_title=message_title,
    )


def build_message(n: InquiryNotification) -> EmailMessage:
    msg = EmailMessage()
    msg["From"] = settings.email_from
    msg["To"] = settings.email_to or settings.email_from
    msg["Subject"] = n.subject
    msg["Reply-To"] = n.email
    msg.set_content(f"{n.subject}\n\nName: {n.name}\nEmail: {n.email}\n\n{n.message or ''}")
    msg.add_alternative(render_inquiry_email(n), subtype="html")
    return msg


async def send_inquiry_email(n: InquiryNotification) -> bool:
    """Send one inquiry email. Returns False when SMTP is not configured."""
    if not settings.smtp_host:
        logger.info(f"SMTP not configured, skipping {n.kind} email for {n.email}")
        return False

    await aiosmtplib.send(
        build_message(n),
        hostname=settings.smtp_host,
        port=settings.smtp_port,
        username=settings.smtp_username or None,
        password=settings.smtp_password or None,
        use_tls=settings.smtp_port == 465,  # Implicit TLS for port 465
        start_tls=settings.smtp_port == 587,
        timeout=settings.smtp_timeout,
    )
    logger.info(f"{n.kind} email sent to admin for {n.email}")
    return True


async def dispatch_inquiry_email(n: InquiryNotification) -> None:
    """Background-task entry point: delivery is best effort."""
    try:
        await sender(n)
    except Exception as e:
        logger.error(f"Error sending {n.kind} email for {n.email}: {e}", exc_info=True)


# Replaced in tests with a recording fake
sender = send_inquiry_email
