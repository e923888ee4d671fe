"""
Email Service

SMTP delivery for system notifications and webmail accounts.
Uses aiosmtplib for async delivery and Jinja2 for templated messages.
"""

import logging
import os
import re
from email.mime.multipart import MIMEMultipart
from email.mime.text import MIMEText
from email.utils import formatdate, make_msgid
from pathlib import Path
from typing import Any, Dict, List, Optional, Sequence, Tuple, Union

import aiosmtplib
from jinja2 import Environment, FileSystemLoader, TemplateNotFound, select_autoescape

logger = logging.getLogger(__name__)

_DEFAULT_TEMPLATE_DIR = str(Path(__file__).resolve().parent.parent / "templates" / "email")


class EmailServiceConfig:
    """Configuration for email service from environment variables."""

    def __init__(self):
        self.smtp_host = os.getenv('SMTP_HOST', 'localhost')
        self.smtp_port = int(os.getenv('SMTP_PORT', '587'))
        self.smtp_username = os.getenv('SMTP_USERNAME', '')
        self.smtp_password = os.getenv('SMTP_PASSWORD', '')
        self.smtp_use_tls = os.getenv('SMTP_USE_TLS', 'true').lower() == 'true'
        self.smtp_use_ssl = os.getenv('SMTP_USE_SSL', 'false').lower() == 'true'
        self.from_email = os.getenv('FROM_EMAIL', 'noreply@bizhub.local')
        self.from_name = os.getenv('FROM_NAME', 'BizHub')
        self.reply_to_email = os.getenv('REPLY_TO_EMAIL', '')
        self.template_dir = os.getenv('EMAIL_TEMPLATE_DIR', _DEFAULT_TEMPLATE_DIR)

    @classmethod
    def for_account(cls, account, password: str, from_name: Optional[str] = None) -> "EmailServiceConfig":
        """Build a config that sends as a webmail account."""
        config = cls()
        config.smtp_host = account.smtp_host
        config.smtp_port = account.smtp_port
        config.smtp_username = account.username or account.email
        config.smtp_password = password
        # Port 465 speaks implicit TLS; anything else negotiates STARTTLS when secure
        config.smtp_use_ssl = bool(account.smtp_secure) and account.smtp_port == 465
        config.smtp_use_tls = bool(account.smtp_secure) and not config.smtp_use_ssl
        config.from_email = account.email
        config.from_name = from_name or account.email
        config.reply_to_email = ''
        return config

    def is_configured(self) -> bool:
        """Check if email service is properly configured."""
        return bool(self.smtp_host and self.smtp_port and self.from_email)

    def validate(self) -> List[str]:
        """Validate configuration and return list of errors."""
        errors = []
        if not self.smtp_host:
            errors.append("SMTP_HOST is required")
        if not self.smtp_port or self.smtp_port <= 0:
            errors.append("SMTP_PORT must be a positive integer")
        if not self.from_email:
            errors.append("FROM_EMAIL is required")
        if self.smtp_use_ssl and self.smtp_use_tls:
            errors.append("Cannot use both SSL and TLS simultaneously")
        return errors


def _recipients(value: Union[str, Sequence[str], None]) -> List[str]:
    if not value:
        return []
    if isinstance(value, str):
        return [value]
    return [v for v in value if v]


class EmailService:
    """Service for sending emails via SMTP."""

    def __init__(self, config: Optional[EmailServiceConfig] = None):
        self.config = config or EmailServiceConfig()
        self.template_env = None
        self._setup_templates()

    def _setup_templates(self):
        template_path = Path(self.config.template_dir)
        if not template_path.exists():
            logger.warning("Email template directory not found: %s", template_path)
        self.template_env = Environment(
            loader=FileSystemLoader(str(template_path)),
            autoescape=select_autoescape(["html"]),
        )

    def build_message(
        self,
        to_email: Union[str, Sequence[str]],
        subject: str,
        html_content: Optional[str] = None,
        text_content: Optional[str] = None,
        *,
        cc: Optional[Sequence[str]] = None,
        reply_to: Optional[str] = None,
        in_reply_to: Optional[str] = None,
    ) -> MIMEMultipart:
        message = MIMEMultipart('alternative')
        message['From'] = f"{self.config.from_name} <{self.config.from_email}>"
        message['To'] = ", ".join(_recipients(to_email))
        if cc:
            message['Cc'] = ", ".join(_recipients(cc))
        message['Subject'] = subject
        message['Date'] = formatdate(localtime=False)
        message['Message-ID'] = make_msgid(domain=self.config.from_email.split('@')[-1] or None)
        if reply_to or self.config.reply_to_email:
            message['Reply-To'] = reply_to or self.config.reply_to_email
        if in_reply_to:
            message['In-Reply-To'] = in_reply_to
            message['References'] = in_reply_to

        if text_content:
            message.attach(MIMEText(text_content, 'plain', 'utf-8'))
        if html_content:
            message.attach(MIMEText(html_content, 'html', 'utf-8'))
        if not text_content and not html_content:
            message.attach(MIMEText('', 'plain', 'utf-8'))
        return message

    async def send_email(
        self,
        to_email: Union[str, Sequence[str]],
        subject: str,
        html_content: Optional[str] = None,
        text_content: Optional[str] = None,
        cc: Optional[Sequence[str]] = None,
        reply_to: Optional[str] = None,
        in_reply_to: Optional[str] = None,
    ) -> Dict[str, Any]:
        """
        Send an email via SMTP.

        Returns:
            Dict with 'success', 'message_id', and 'error' keys
        """
        if not self.config.is_configured():
            return {'success': False, 'error': 'Email service not configured'}

        try:
            message = self.build_message(
                to_email,
                subject,
                html_content,
                text_content,
                cc=cc,
                reply_to=reply_to,
                in_reply_to=in_reply_to,
            )
            result = await self._send_via_smtp(message)
            logger.info("Email sent to %s: %s", message['To'], subject)
            return result
        except (aiosmtplib.SMTPException, OSError) as e:
            error_msg = f"Failed to send email to {to_email}: {e}"
            logger.error(error_msg, exc_info=True)
            return {'success': False, 'error': error_msg}

    def _smtp_kwargs(self) -> Dict[str, Any]:
        smtp_kwargs = {
            'hostname': self.config.smtp_host,
            'port': self.config.smtp_port,
            'use_tls': False,
            'start_tls': self.config.smtp_use_tls,
        }
        if self.config.smtp_use_ssl:
            smtp_kwargs['use_tls'] = True
            smtp_kwargs['start_tls'] = False
            smtp_kwargs['port'] = self.config.smtp_port or 465
        return smtp_kwargs

    async def _send_via_smtp(self, message: MIMEMultipart) -> Dict[str, Any]:
        async with aiosmtplib.SMTP(**self._smtp_kwargs()) as smtp:
            if self.config.smtp_username and self.config.smtp_password:
                await smtp.login(self.config.smtp_username, self.config.smtp_password)
            result = await smtp.send_message(message)
            return {
                'success': True,
                'message_id': message.get('Message-ID', ''),
                'smtp_result': result,
            }

    def render_template(self, template_name: str, context: Dict[str, Any]) -> Tuple[str, str]:
        """
        Render email template with context.

        Returns:
            Tuple of (html_content, text_content)
        """
        html_content = self.template_env.get_template(f"{template_name}.html").render(**context)
        try:
            text_content = self.template_env.get_template(f"{template_name}.txt").render(**context)
        except TemplateNotFound:
            text_content = html_to_text(html_content)
        return html_content, text_content

    async def test_connection(self) -> Dict[str, Any]:
        """Test SMTP connection and configuration."""
        if not self.config.is_configured():
            return {'success': False, 'error': 'Email service not configured'}

        validation_errors = self.config.validate()
        if validation_errors:
            return {'success': False, 'error': f"Configuration errors: {', '.join(validation_errors)}"}

        try:
            async with aiosmtplib.SMTP(**self._smtp_kwargs()) as smtp:
                if self.config.smtp_username and self.config.smtp_password:
                    await smtp.login(self.config.smtp_username, self.config.smtp_password)
                return {
                    'success': True,
                    'message': f"Successfully connected to {self.config.smtp_host}:{self.config.smtp_port}",
                }
        except (aiosmtplib.SMTPException, OSError) as e:
            return {'success': False, 'error': f"Connection test failed: {e}"}


def html_to_text(html_content: str) -> str:
    """Convert HTML to basic text content."""
    text = re.sub(r'<[^>]+>', '', html_content)
    text = text.replace('&amp;', '&').replace('&lt;', '<').replace('&gt;', '>')
    text = text.replace('&quot;', '"').replace('&#39;', "'")
    return re.sub(r'\s+', ' ', text).strip()


# Global email service instance
_email_service = None


def get_email_service() -> EmailService:
    """Get singleton email service instance."""
    global _email_service
    if _email_service is None:
        _email_service = EmailService()
    return _email_service
