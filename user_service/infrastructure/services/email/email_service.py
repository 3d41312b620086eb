"""SMTP email notifier.

Implements ``INotifier`` with Jinja2-rendered HTML templates delivered through
fastapi-mail. In test mode messages are rendered and logged but never sent,
which keeps development and test runs free of any SMTP dependency.
"""

from pathlib import Path
from typing import Any, Dict, Optional

import structlog
from fastapi_mail import ConnectionConfig, FastMail, MessageSchema, MessageType
from jinja2 import Environment, FileSystemLoader, TemplateError

from user_service.core.config.settings import settings
from user_service.core.exceptions import EmailDeliveryError
from user_service.core.logging import mask_email
from user_service.domain.interfaces.email import INotifier
from user_service.utils.i18n import get_translated_message

logger = structlog.get_logger(__name__)

DEFAULT_TEMPLATES_DIR = Path(__file__).resolve().parents[3] / "templates" / "email"

CONFIRMATION_TEMPLATE = "confirm_email.html"
PASSWORD_RESET_TEMPLATE = "password_reset.html"


class EmailNotifier(INotifier):
    """Renders and delivers confirmation and password reset emails.

    Attributes:
        test_mode (bool): When True, emails are logged instead of sent.
        jinja_env (Environment): Autoescaping template environment.
        fastmail (Optional[FastMail]): SMTP client; None in test mode.
    """

    def __init__(
        self,
        templates_dir: Optional[str] = None,
        test_mode: Optional[bool] = None,
        fastmail: Optional[FastMail] = None,
    ):
        """Initialize the notifier.

        Args:
            templates_dir: Overrides ``settings.EMAIL_TEMPLATES_DIR``
            test_mode: Overrides ``settings.EMAIL_TEST_MODE``
            fastmail: Pre-built client, mainly for tests; built from settings
                when omitted outside test mode

        Raises:
            EmailDeliveryError: If the SMTP client cannot be configured
        """
        self.test_mode = settings.EMAIL_TEST_MODE if test_mode is None else test_mode
        template_dir = Path(templates_dir or settings.EMAIL_TEMPLATES_DIR or DEFAULT_TEMPLATES_DIR)
        self.jinja_env = Environment(
            loader=FileSystemLoader(str(template_dir)),
            autoescape=True,
            trim_blocks=True,
            lstrip_blocks=True,
        )

        if fastmail is not None or self.test_mode:
            self.fastmail = fastmail
        else:
            self.fastmail = self._build_fastmail()

        logger.info(
            "EmailNotifier initialized",
            test_mode=self.test_mode,
            templates_dir=str(template_dir),
        )

    @staticmethod
    def _build_fastmail() -> FastMail:
        try:
            settings.validate_smtp_config()
        except ValueError as e:
            logger.warning("Email configuration validation warning", error=str(e))

        try:
            config = ConnectionConfig(
                MAIL_USERNAME=settings.EMAIL_SMTP_USERNAME or "",
                MAIL_PASSWORD=(
                    settings.EMAIL_SMTP_PASSWORD.get_secret_value()
                    if settings.EMAIL_SMTP_PASSWORD
                    else ""
                ),
                MAIL_FROM=settings.EMAIL_FROM_EMAIL,
                MAIL_FROM_NAME=settings.EMAIL_FROM_NAME,
                MAIL_PORT=settings.EMAIL_SMTP_PORT,
                MAIL_SERVER=settings.EMAIL_SMTP_HOST,
                MAIL_STARTTLS=settings.EMAIL_SMTP_USE_TLS,
                MAIL_SSL_TLS=settings.EMAIL_SMTP_USE_SSL,
                USE_CREDENTIALS=bool(settings.EMAIL_SMTP_USERNAME and settings.EMAIL_SMTP_PASSWORD),
                VALIDATE_CERTS=True,
            )
        except Exception as e:
            logger.error("Failed to configure FastMail", error=str(e))
            raise EmailDeliveryError(f"Failed to configure email delivery: {e}") from e
        return FastMail(config)

    async def send_confirmation_email(
        self,
        username: str,
        email: str,
        code: str,
        language: str = "en",
    ) -> None:
        context = {
            "app_name": settings.PROJECT_NAME,
            "username": username,
            "confirmation_code": code,
        }
        await self._send(
            email,
            get_translated_message("email_confirmation_subject", language),
            CONFIRMATION_TEMPLATE,
            context,
        )
        logger.info("Confirmation email sent", email=mask_email(email), language=language)

    async def send_reset_email(
        self,
        username: str,
        email: str,
        reset_link: str,
        language: str = "en",
    ) -> None:
        context = {
            "app_name": settings.PROJECT_NAME,
            "username": username,
            "reset_link": reset_link,
        }
        await self._send(
            email,
            get_translated_message("password_reset_email_subject", language),
            PASSWORD_RESET_TEMPLATE,
            context,
        )
        logger.info("Password reset email sent", email=mask_email(email), language=language)

    def render(self, template_name: str, context: Dict[str, Any]) -> str:
        """Render ``template_name`` with ``context``.

        Raises:
            EmailDeliveryError: If the template is missing or fails to render
        """
        try:
            return self.jinja_env.get_template(template_name).render(**context)
        except TemplateError as e:
            logger.error("Template rendering failed", template=template_name, error=str(e))
            raise EmailDeliveryError(f"Template rendering failed: {template_name}") from e

    async def _send(
        self,
        to_email: str,
        subject: str,
        template_name: str,
        context: Dict[str, Any],
    ) -> None:
        html_content = self.render(template_name, context)

        if self.test_mode:
            logger.info(
                "Email sent in test mode",
                to_email=mask_email(to_email),
                subject=subject,
                template=template_name,
                html_length=len(html_content),
            )
            return

        if self.fastmail is None:
            raise EmailDeliveryError("FastMail not configured")

        message = MessageSchema(
            subject=subject,
            recipients=[to_email],
            body=html_content,
            subtype=MessageType.html,
        )
        try:
            await self.fastmail.send_message(message)
        except Exception as e:
            logger.error(
                "Failed to send email",
                to_email=mask_email(to_email),
                subject=subject,
                error=str(e),
            )
            raise EmailDeliveryError(f"Failed to send email: {e}") from e
