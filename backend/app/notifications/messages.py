"""
messages.py — Alert content for each recipient strategy.

Personal contacts get a short, personal alert naming the reporter;
responders get a dispatch-style alert with a prominent map link.

    SMS (contacts):
        "🚨 Emergency Alert from {reporter}!
         Type: {type}
         Location: {maps link}
         Message: {description}
         Please reach out or respond immediately."

User-supplied text is HTML-escaped before it lands in an email body.
"""

from __future__ import annotations

from html import escape

from backend.app.notifications.models import (
    AlertMessage,
    NotificationRequest,
    ResolverStrategy,
)

DEFAULT_REPORTER_NAME = "User"
DEFAULT_MAPS_BASE_URL = "https://www.google.com/maps"


def maps_link(request: NotificationRequest, base_url: str = DEFAULT_MAPS_BASE_URL) -> str:
    return f"{base_url}?q={request.latitude},{request.longitude}"


def build_contacts_message(
    request: NotificationRequest,
    *,
    maps_base_url: str = DEFAULT_MAPS_BASE_URL,
) -> AlertMessage:
    """Alert sent to the reporter's own emergency contacts."""
    reporter = request.reporter_name or DEFAULT_REPORTER_NAME
    link = maps_link(request, maps_base_url)

    lines = [
        f"🚨 Emergency Alert from {reporter}!",
        f"Type: {request.emergency_type}",
        f"Location: {link}",
    ]
    if request.description:
        lines.append(f"Message: {request.description}")
    lines.append("Please reach out or respond immediately.")

    description_html = (
        f"<p><strong>Message:</strong> {escape(request.description)}</p>"
        if request.description else ""
    )
    html = f"""
      <h1>🚨 Emergency Alert</h1>
      <p><strong>{escape(reporter)}</strong> has sent an emergency alert!</p>
      <p><strong>Type:</strong> {escape(request.emergency_type)}</p>
      <p><strong>Location:</strong> <a href="{link}">{link}</a></p>
      {description_html}
      <p style="color: red; font-weight: bold;">Please reach out or respond immediately.</p>
    """

    return AlertMessage(
        subject=f"🚨 Emergency Alert from {reporter}",
        html=html,
        text="\n".join(lines),
    )


def build_responders_message(
    request: NotificationRequest,
    *,
    maps_base_url: str = DEFAULT_MAPS_BASE_URL,
) -> AlertMessage:
    """Dispatch-style alert sent to every responder and admin."""
    type_display = request.emergency_type_display
    link = maps_link(request, maps_base_url)
    location = f"{request.latitude:.4f}, {request.longitude:.4f}"

    description_html = (
        '<p style="color: #374151; font-size: 16px; line-height: 1.6;">'
        f"<strong>Description:</strong> {escape(request.description)}</p>"
        if request.description else ""
    )
    reporter_html = (
        '<p style="color: #374151; font-size: 16px;">'
        f"<strong>Reporter:</strong> {escape(request.reporter_name)}</p>"
        if request.reporter_name else ""
    )

    html = f"""
    <div style="font-family: Arial, sans-serif; max-width: 600px; margin: 0 auto;">
      <div style="background: #dc2626; color: white; padding: 30px; text-align: center; border-radius: 8px 8px 0 0;">
        <h1 style="margin: 0; font-size: 28px;">🚨 EMERGENCY ALERT</h1>
      </div>
      <div style="background: #f9fafb; padding: 30px; border-radius: 0 0 8px 8px;">
        <h2 style="color: #dc2626; margin-top: 0; font-size: 24px;">{escape(type_display)} Emergency</h2>
        {description_html}
        {reporter_html}
        <p style="color: #374151; font-size: 16px;"><strong>Location:</strong> {location}</p>
        <div style="margin: 25px 0;">
          <a href="{link}"
             style="display: inline-block; background: #dc2626; color: white; padding: 14px 28px; text-decoration: none; border-radius: 6px; font-weight: bold;">
            📍 View Location on Map
          </a>
        </div>
        <p style="color: #6b7280; font-size: 14px;">
          Please respond immediately through the <strong>Emergency Response Dashboard</strong>
        </p>
      </div>
    </div>
    """

    text = f"🚨 NEW EMERGENCY: {type_display}\nLocation: {link}"
    if request.description:
        text += f"\n{request.description}"
    text += "\nRespond via the Emergency Response Dashboard."

    return AlertMessage(
        subject=f"🚨 NEW EMERGENCY: {type_display}",
        html=html,
        text=text,
    )


def build_message(
    request: NotificationRequest,
    strategy: ResolverStrategy,
    *,
    maps_base_url: str = DEFAULT_MAPS_BASE_URL,
) -> AlertMessage:
    if strategy == ResolverStrategy.PERSONAL_CONTACTS:
        return build_contacts_message(request, maps_base_url=maps_base_url)
    return build_responders_message(request, maps_base_url=maps_base_url)
