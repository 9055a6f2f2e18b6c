"""Templated email notifications.

Bodies are rendered from Jinja2 templates in ``templates/emails``. Each
template sets ``subject``, ``html_body`` and ``text_body`` at the top level;
the HTML part is wrapped in an autoescape block.
"""

import logging
import smtplib
import ssl
from email.mime.multipart import MIMEMultipart
from email.mime.text import MIMEText
from pathlib import Path
from typing import Any, Dict, NamedTuple, Optional

import jinja2

from config import (
    EMAIL_TEMPLATE_DIR,
    SMTP_FROM,
    SMTP_HOST,
    SMTP_PASSWORD,
    SMTP_PORT,
    SMTP_TIMEOUT,
    SMTP_USE_SSL,
    SMTP_USER,
)
from models.assignment import AssignmentModel
from utils.time_utils import parse_iso

logger = logging.getLogger(__name__)


class RenderedEmail(NamedTuple):
    subject: str
    html_body: str
    text_body: str


class EmailService:
    """Renders notification templates and delivers them over SMTP."""

    def __init__(
        self,
        host: Optional[str] = SMTP_HOST,
        port: int = SMTP_PORT,
        user: Optional[str] = SMTP_USER,
        password: Optional[str] = SMTP_PASSWORD,
        use_ssl: bool = SMTP_USE_SSL,
        sender: str = SMTP_FROM,
        template_dir: Path = EMAIL_TEMPLATE_DIR,
    ):
        self.host = host
        self.port = port
        self.user = user
        self.password = password
        self.use_ssl = use_ssl
        self.sender = sender
        self.env = jinja2.Environment(
            loader=jinja2.FileSystemLoader(str(template_dir)),
            undefined=jinja2.StrictUndefined,
        )

    def render(self, template_name: str, context: Dict[str, Any]) -> RenderedEmail:
        template = self.env.get_template(f"{template_name}.jinja2")
        module = template.make_module(context)
        return RenderedEmail(
            subject=str(getattr(module, "subject", "")).strip(),
            html_body=str(getattr(module, "html_body", "")).strip(),
            text_body=str(getattr(module, "text_body", "")).strip(),
        )

    def send_email(self, to: str, email: RenderedEmail) -> bool:
        """Send one message.

        Returns:
            True when the SMTP server accepted the message. Missing SMTP
            configuration or a transport error is logged and reported as
            False.
        """
        if not self.host:
            logger.warning("SMTP_HOST is not configured; not sending '%s' to %s", email.subject, to)
            return False

        msg = MIMEMultipart("alternative")
        msg["From"] = self.sender
        msg["To"] = to
        msg["Subject"] = email.subject
        msg.attach(MIMEText(email.text_body, "plain", "utf-8"))
        msg.attach(MIMEText(email.html_body, "html", "utf-8"))

        try:
            context = ssl.create_default_context()
            if self.use_ssl:
                server = smtplib.SMTP_SSL(self.host, self.port, context=context, timeout=SMTP_TIMEOUT)
            else:
                server = smtplib.SMTP(self.host, self.port, timeout=SMTP_TIMEOUT)
            with server:
                if not self.use_ssl:
                    server.starttls(context=context)
                if self.user and self.password:
                    server.login(self.user, self.password)
                server.sendmail(self.sender, [to], msg.as_string())
        except (smtplib.SMTPException, OSError) as e:
            logger.error("Failed to send email '%s' to %s: %s", email.subject, to, e)
            return False

        logger.info("Sent email '%s' to %s", email.subject, to)
        return True

    def send_due_date_reminder(
        self,
        to: str,
        student_name: str,
        assignment: Dict[str, Any],
        days_until_due: int,
    ) -> bool:
        email = self.render(
            "due_date_reminder",
            {
                "student_name": student_name,
                "assignment": assignment,
                "days_until_due": days_until_due,
            },
        )
        return self.send_email(to, email)

    def send_grade_notification(
        self,
        to: str,
        student_name: str,
        assignment: Dict[str, Any],
        marks: float,
        feedback: Optional[str],
    ) -> bool:
        """Tell a student their submission was graded.

        Args:
            assignment: Snapshot from ``assignment_email_context``, so the
                call can run after the request session is closed.
        """
        max_marks = assignment["max_marks"]
        percentage = (marks / max_marks) * 100 if max_marks else 0.0
        email = self.render(
            "grade_notification",
            {
                "student_name": student_name,
                "assignment": assignment,
                "marks": marks,
                "percentage": f"{percentage:.1f}",
                "feedback": feedback or "",
            },
        )
        return self.send_email(to, email)


def assignment_email_context(assignment: AssignmentModel) -> Dict[str, Any]:
    return {
        "title": assignment.title,
        "course": assignment.course or "",
        "due_date": parse_iso(assignment.deadline).strftime("%Y-%m-%d %H:%M UTC"),
        "max_marks": assignment.max_marks,
        "description": assignment.description,
    }
