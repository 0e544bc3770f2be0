"""Learner notifications for level unlocks and earned badges.

Delivery is best effort. The engine schedules these calls in the
background and only logs their failures.
"""

import logging
import os
from dataclasses import dataclass
from email.mime.multipart import MIMEMultipart
from email.mime.text import MIMEText
from typing import Protocol

import aiosmtplib

from academy.models import Badge, Level, User

logger = logging.getLogger(__name__)

SMTP_HOST = os.getenv("SMTP_HOST", "localhost")
SMTP_PORT = int(os.getenv("SMTP_PORT", "587"))
SMTP_USER = os.getenv("SMTP_USER", "")
SMTP_PASSWORD = os.getenv("SMTP_PASSWORD", "")
SMTP_FROM_EMAIL = os.getenv("SMTP_FROM_EMAIL", "noreply@academy.local")
SMTP_FROM_NAME = os.getenv("SMTP_FROM_NAME", "Academy")
APP_URL = os.getenv("APP_URL", "http://localhost:3000")


class Notifier(Protocol):
    async def level_unlocked(self, user: User, level: Level) -> None: ...

    async def badge_earned(self, user: User, badge: Badge) -> None: ...


@dataclass(frozen=True)
class EmailTemplate:
    subject: str
    html: str
    text: str


def level_unlocked_email(user: User, level: Level) -> EmailTemplate:
    name = user.name or "Student"
    return EmailTemplate(
        subject=f"🔓 {level.name} is now unlocked!",
        html=f"""
<div style="font-family: Arial, sans-serif; max-width: 600px; margin: 0 auto;">
  <h1 style="color: #2563eb;">New level unlocked!</h1>
  <p>Hi {name},</p>
  <p>You completed every lesson of the previous level. <strong>{level.name}</strong> is now open.</p>
  <p><a href="{APP_URL}/dashboard/levels/{level.id}">Start Level {level.level_number}</a></p>
</div>
""",
        text=(
            f"Hi {name},\n\n"
            f"You completed every lesson of the previous level. "
            f"{level.name} is now open.\n\n"
            f"Visit {APP_URL}/dashboard/levels/{level.id} to continue learning.\n"
        ),
    )


def badge_earned_email(user: User, badge: Badge) -> EmailTemplate:
    name = user.name or "Student"
    return EmailTemplate(
        subject=f"🏆 You earned a new badge: {badge.name}!",
        html=f"""
<div style="font-family: Arial, sans-serif; max-width: 600px; margin: 0 auto;">
  <h1 style="color: #2563eb;">Congratulations!</h1>
  <p>Hi {name},</p>
  <p>You've earned a new badge!</p>
  <div style="text-align: center; padding: 30px;">
    <div style="font-size: 64px;">{badge.icon}</div>
    <h2>{badge.name}</h2>
    <p>{badge.description}</p>
  </div>
  <p><a href="{APP_URL}/achievements">View your achievements</a></p>
</div>
""",
        text=(
            f"Hi {name},\n\n"
            f"You've earned a new badge: {badge.name}\n{badge.description}\n\n"
            f"Visit {APP_URL}/achievements to see all your badges.\n"
        ),
    )


class EmailNotifier:
    """Send notifications by SMTP."""

    def __init__(
        self,
        host: str = SMTP_HOST,
        port: int = SMTP_PORT,
        username: str = SMTP_USER,
        password: str = SMTP_PASSWORD,
        from_email: str = SMTP_FROM_EMAIL,
        from_name: str = SMTP_FROM_NAME,
    ):
        self.host = host
        self.port = port
        self.username = username
        self.password = password
        self.from_email = from_email
        self.from_name = from_name

    async def send_email(self, to_email: str, template: EmailTemplate) -> bool:
        """Send ``template`` to ``to_email``; return whether it went out."""
        if not self.password:
            logger.info(
                "SMTP not configured, not sending %r to %s", template.subject, to_email
            )
            return False

        message = MIMEMultipart("alternative")
        message["From"] = f"{self.from_name} <{self.from_email}>"
        message["To"] = to_email
        message["Subject"] = template.subject
        message.attach(MIMEText(template.text, "plain", "utf-8"))
        message.attach(MIMEText(template.html, "html", "utf-8"))

        await aiosmtplib.send(
            message,
            hostname=self.host,
            port=self.port,
            username=self.username,
            password=self.password,
            start_tls=True,
        )
        logger.info("Email sent to %s: %s", to_email, template.subject)
        return True

    async def level_unlocked(self, user: User, level: Level) -> None:
        await self.send_email(user.email, level_unlocked_email(user, level))

    async def badge_earned(self, user: User, badge: Badge) -> None:
        await self.send_email(user.email, badge_earned_email(user, badge))
