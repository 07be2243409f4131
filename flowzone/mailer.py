# flowzone/mailer.py

import logging
import smtplib
from email.mime.multipart import MIMEMultipart
from email.mime.text import MIMEText
from typing import Optional

from flowzone.config import settings

logger = logging.getLogger(__name__)

BASE_HTML_TEMPLATE = """\
<!DOCTYPE html>
<html>
<head>
  <meta charset="utf-8" />
  <meta name="viewport" content="width=device-width, initial-scale=1.0" />
  <title>{{subject}}</title>
  <style>
    body {
      background-color: #f3f4f6;
      margin: 0;
      padding: 0;
      font-family: -apple-system, BlinkMacSystemFont, 'Segoe UI', sans-serif;
      color: #374151;
      line-height: 1.6;
    }
    .email-container {
      max-width: 600px;
      margin: 40px auto;
      background-color: #ffffff;
      border-radius: 12px;
      overflow: hidden;
    }
    .header {
      background-color: #4f46e5;
      padding: 24px 40px;
      color: #ffffff;
    }
    .content-wrapper {
      padding: 32px 40px;
    }
    .button {
      display: inline-block;
      padding: 12px 24px;
      background-color: #4f46e5;
      color: #ffffff;
      border-radius: 6px;
      text-decoration: none;
    }
    .footer-note {
      font-size: 12px;
      color: #9ca3af;
      padding: 0 40px 24px;
    }
  </style>
</head>
<body>
  <div class="email-container">
    <div class="header"><h1>{{header_title}}</h1></div>
    <div class="content-wrapper">
      <h2>Hello {{username}},</h2>
      <p>{{message}}</p>
      <p><a href="{{action_url}}" class="button">{{action_text}}</a></p>
    </div>
    <p class="footer-note">This email was sent to {{email}} by FlowZone.</p>
  </div>
</body>
</html>
"""


def _build_message(to_email: str, subject: str, body_text: str, body_html: Optional[str]) -> MIMEMultipart:
    msg = MIMEMultipart("alternative")
    msg["Subject"] = subject
    msg["From"] = settings.MAIL_FROM or settings.MAIL_USERNAME
    msg["To"] = to_email
    parts = [(body_text, "plain"), (body_html, "html")]
    for content, subtype in parts:
        if content:
            msg.attach(MIMEText(content, subtype))
    return msg


def send_email(to_email: str, subject: str, body_text: str, body_html: Optional[str] = None) -> bool:
    """
    Delivers one message through the configured SMTP relay over STARTTLS.

    The HTML body is optional and travels as the preferred alternative to the
    text body. Delivery problems are logged and reported as False; an unset
    recipient or MAIL_USERNAME means nothing is attempted.
    """
    if not to_email:
        logger.warning("Email '%s' has no recipient; not sent", subject)
        return False

    if not settings.MAIL_USERNAME:
        logger.info("Mail delivery is not configured; not sending '%s' to %s", subject, to_email)
        return False

    msg = _build_message(to_email, subject, body_text, body_html)
    try:
        with smtplib.SMTP(settings.MAIL_SERVER, settings.MAIL_PORT, timeout=10) as server:
            server.starttls()
            server.login(settings.MAIL_USERNAME, settings.MAIL_PASSWORD)
            server.sendmail(msg["From"], [to_email], msg.as_string())
    except (smtplib.SMTPException, OSError) as e:
        logger.exception("SMTP delivery of '%s' to %s failed: %s", subject, to_email, str(e))
        return False

    logger.info("Sent '%s' to %s", subject, to_email)
    return True


def render_html(subject: str, header_title: str, username: str, message: str,
                to_email: str, action_text: str = "Open FlowZone") -> str:
    return BASE_HTML_TEMPLATE.replace("{{subject}}", subject)\
        .replace("{{header_title}}", header_title)\
        .replace("{{username}}", username)\
        .replace("{{message}}", message)\
        .replace("{{action_url}}", settings.APP_URL)\
        .replace("{{action_text}}", action_text)\
        .replace("{{email}}", to_email)


def send_welcome_email(to_email: str, display_name: str) -> bool:
    subject = "Welcome to FlowZone!"
    message = ("Thanks for signing up. Your tasks, calendar and focus sessions "
               "now live in one place.")
    body_text = (
        f"Hello {display_name},\n\n"
        f"{message}\n\n"
        f"Get started at {settings.APP_URL}\n\n"
        "FlowZone Team"
    )
    body_html = render_html(subject, "Welcome to FlowZone!", display_name, message,
                            to_email, action_text="Go to Dashboard")
    return send_email(to_email, subject, body_text, body_html)


def send_notification_email(to_email: str, display_name: str, title: str, message: str) -> bool:
    """Mails a copy of an in-app notification."""
    subject = f"FlowZone: {title}"
    body_text = f"Hello {display_name},\n\n{message}\n\nFlowZone Team"
    body_html = render_html(subject, title, display_name, message, to_email)
    return send_email(to_email, subject, body_text, body_html)


def send_profile_updated_email(to_email: str, display_name: str) -> bool:
    subject = "Your Profile Was Updated"
    message = ("Your profile details have been updated successfully. "
               "If you did not make this change, please contact support immediately.")
    body_text = f"Hello {display_name},\n\n{message}\n\nFlowZone Team"
    body_html = render_html(subject, "Profile Updated", display_name, message, to_email)
    return send_email(to_email, subject, body_text, body_html)
