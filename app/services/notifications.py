# app/services/notifications.py
"""
Invite email dispatch.

Sends transactional email over SMTP. Required environment for real delivery:
    SMTP_HOST, SMTP_PORT, SMTP_USER, SMTP_PASSWORD, FROM_EMAIL (defaults to SMTP_USER)
Without them the dispatcher logs the accept link and reports the email as unsent.
"""
from __future__ import annotations

import html
import logging
import smtplib
from dataclasses import dataclass
from email.mime.multipart import MIMEMultipart
from email.mime.text import MIMEText
from typing import Dict, Optional, Protocol

from app.core.config import settings, INVITE_TTL_DAYS
from app.core.errors import TransientIO
from app.core.rbac import Role, role_display_name

log = logging.getLogger("app.notifications")

APP_NAME = "D20 Loot Tracker"


@dataclass(frozen=True)
class InviteEmail:
    to: str
    inviter_name: str
    campaign_name: str
    role: str
    invite_link: str


class InviteDispatcher(Protocol):
    def send(self, email: InviteEmail) -> None:
        """Deliver or raise TransientIO."""


# ---------------------------------
# Message template
# ---------------------------------
_ROLE_BLURB = {
    Role.CONTRIBUTOR.value: "As a <strong>contributor</strong>, you'll be able to edit all campaign "
    "content including items, players, and transactions.",
    Role.VIEWER.value: "As a <strong>viewer</strong>, you'll be able to follow the party's loot, "
    "gold, and inventory.",
}


def render_invite_email(email: InviteEmail) -> Dict[str, str]:
    """Subject plus HTML and plain-text bodies. Both carry the raw accept link."""
    role_text = role_display_name(email.role)
    campaign = html.escape(email.campaign_name)
    inviter = html.escape(email.inviter_name)
    link = html.escape(email.invite_link, quote=True)
    blurb = _ROLE_BLURB.get(email.role, "")

    subject = f'You\'re invited to join "{email.campaign_name}"!'

    html_body = f"""<!DOCTYPE html>
<html>
<head><meta charset="utf-8"><meta name="viewport" content="width=device-width, initial-scale=1.0"></head>
<body style="font-family:Arial,sans-serif;line-height:1.6;color:#333;max-width:600px;margin:0 auto;padding:20px;">
  <div style="background:#0f172a;padding:30px;text-align:center;border-radius:8px 8px 0 0;">
    <h1 style="color:#22d3ee;margin:0;font-size:28px;">{APP_NAME}</h1>
    <p style="color:#cbd5e1;margin:10px 0 0;font-size:14px;">Campaign Collaboration Platform</p>
  </div>
  <div style="background:#fff;padding:30px;border:1px solid #e2e8f0;border-top:none;">
    <h2 style="color:#1e293b;margin-top:0;">You've been invited!</h2>
    <p><strong>{inviter}</strong> has invited you to join their campaign:</p>
    <div style="background:#f8fafc;border-left:4px solid #22d3ee;padding:15px 20px;margin:20px 0;">
      <p style="margin:0;font-size:18px;font-weight:600;">{campaign}</p>
      <p style="margin:5px 0 0;color:#64748b;font-size:14px;">Role: {role_text}</p>
    </div>
    <p>{blurb}</p>
    <div style="text-align:center;margin:30px 0;">
      <a href="{link}"
         style="display:inline-block;background:#06b6d4;color:#fff;text-decoration:none;
                padding:14px 32px;border-radius:6px;font-weight:600;">
        Accept Invitation
      </a>
    </div>
    <p style="color:#64748b;font-size:14px;">Or copy and paste this link into your browser:</p>
    <p style="background:#f1f5f9;padding:12px;border-radius:4px;word-break:break-all;font-size:13px;font-family:monospace;">
      {link}
    </p>
    <p style="color:#94a3b8;font-size:12px;">
      This invitation expires in {INVITE_TTL_DAYS} days. If you didn't expect this invitation,
      you can safely ignore this email.
    </p>
  </div>
</body>
</html>"""

    plain_text = f"""You've been invited to join "{email.campaign_name}"

{email.inviter_name} has invited you to join their campaign as {role_text}.

Accept the invitation here:
{email.invite_link}

This invitation expires in {INVITE_TTL_DAYS} days.
If you didn't expect this invitation, you can safely ignore this email.
"""
    return {"subject": subject, "html": html_body, "text": plain_text}


# ---------------------------------
# Transport
# ---------------------------------
class SmtpDispatcher:
    def __init__(
        self,
        host: Optional[str] = None,
        port: Optional[int] = None,
        user: Optional[str] = None,
        password: Optional[str] = None,
        from_email: Optional[str] = None,
        timeout: Optional[float] = None,
    ) -> None:
        self.host = host if host is not None else settings.SMTP_HOST
        self.port = port if port is not None else settings.SMTP_PORT
        self.user = user if user is not None else settings.SMTP_USER
        self.password = password if password is not None else settings.SMTP_PASSWORD
        self.from_email = from_email or settings.FROM_EMAIL or self.user
        self.timeout = timeout if timeout is not None else settings.NOTIFY_TIMEOUT_SECONDS

    @property
    def configured(self) -> bool:
        return bool(self.host and self.user and self.password)

    def build_message(self, email: InviteEmail) -> MIMEMultipart:
        rendered = render_invite_email(email)
        msg = MIMEMultipart("alternative")
        msg["Subject"] = rendered["subject"]
        msg["From"] = f"{APP_NAME} <{self.from_email}>"
        msg["To"] = email.to
        msg.attach(MIMEText(rendered["text"], "plain"))
        msg.attach(MIMEText(rendered["html"], "html"))
        return msg

    def send(self, email: InviteEmail) -> None:
        if not self.configured:
            log.warning("SMTP not configured; invite link for %s: %s", email.to, email.invite_link)
            raise TransientIO("Email delivery is not configured.")

        try:
            msg = self.build_message(email)
            with smtplib.SMTP(self.host, self.port, timeout=self.timeout) as server:
                server.ehlo()
                server.starttls()
                server.ehlo()
                server.login(self.user, self.password)
                server.sendmail(self.from_email, [email.to], msg.as_string())
        except (smtplib.SMTPException, OSError) as e:
            log.error("Failed to send invite email to %s: %s", email.to, e)
            raise TransientIO("Email could not be sent.") from e
        except Exception as e:
            # e.g. UnicodeEncodeError for a non-ASCII address without SMTPUTF8
            log.exception("Invite email to %s could not be built or sent", email.to)
            raise TransientIO("Email could not be sent.") from e
        log.info("Invite email sent to %s", email.to)


def get_dispatcher() -> InviteDispatcher:
    """FastAPI dependency; overridden in tests."""
    return SmtpDispatcher()
