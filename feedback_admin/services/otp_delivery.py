"""
OTP delivery gateway.

Renders the verification email and hands it to the first transport that
accepts it. Transports, in priority order:

1. SMTP relay via aiosmtplib (when SMTP_USER and SMTP_PASSWORD are set)
2. Brevo transactional email API via httpx (when BREVO_API_KEY and BREVO_SENDER are set)
3. Console: writes the code to the log (never registered in production)

Every failed attempt is logged with the transport name. If no transport
succeeds the caller gets a DeliveryError with a generic message.
"""

import asyncio
from email.message import EmailMessage
from typing import List, Optional

import aiosmtplib
import httpx

from feedback_admin.core.config import Settings
from feedback_admin.core.exceptions import DeliveryError
from feedback_admin.core.logging_config import get_logger
from feedback_admin.services.interfaces.email_transport import IEmailTransport, OutgoingEmail


logger = get_logger(__name__)

BREVO_API_URL = "https://api.brevo.com/v3/smtp/email"

_PURPOSE = {
    "login": ("login", "admin login"),
    "reset": ("password reset", "password reset"),
}


def render_otp_email(app_name: str, email: str, code: str, context: str, expiry_minutes: int) -> OutgoingEmail:
    """
    Build the verification email for a one-time code.

    Args:
        app_name: Product name shown in subject and body
        email: Recipient
        code: Six digit code
        context: "login" or "reset"
        expiry_minutes: Lifetime of the code, stated in the body

    Returns:
        OutgoingEmail with plain-text and HTML bodies
    """
    subject_word, purpose = _PURPOSE.get(context, _PURPOSE["login"])
    subject = f"Your {app_name} admin {subject_word} code"
    text = f"Your verification code is {code}. It expires in {expiry_minutes} minutes."
    html = f"""\
<html>
  <body style="font-family: Arial, sans-serif; line-height: 1.6; color: #333;">
    <div style="max-width: 600px; margin: 0 auto; padding: 20px;">
      <h2 style="color: #1e3a8a;">{app_name} - Verification Code</h2>
      <p>Your verification code for {purpose} is:</p>
      <div style="background-color: #f3f4f6; border: 2px solid #3b82f6; border-radius: 8px; padding: 20px; text-align: center;">
        <h1 style="color: #3b82f6; margin: 0; letter-spacing: 2px;">{code}</h1>
      </div>
      <p><strong>This code expires in {expiry_minutes} minutes.</strong></p>
      <p style="color: #666; font-size: 14px;">If you didn't request this code, please ignore this email.</p>
    </div>
  </body>
</html>
"""
    return OutgoingEmail(to=email, subject=subject, text=text, html=html)


class SmtpTransport(IEmailTransport):
    """SMTP relay with STARTTLS (implicit TLS on port 465)."""

    name = "smtp"

    def __init__(
        self,
        host: str,
        port: int,
        username: str,
        password: str,
        from_name: str,
        timeout: float,
    ):
        self.host = host
        self.port = port
        self.username = username
        self.password = password
        self.from_name = from_name
        self.timeout = timeout

    def build_message(self, message: OutgoingEmail) -> EmailMessage:
        mime = EmailMessage()
        mime["From"] = f"{self.from_name} <{self.username}>"
        mime["To"] = message.to
        mime["Subject"] = message.subject
        mime.set_content(message.text)
        mime.add_alternative(message.html, subtype="html")
        return mime

    async def send(self, message: OutgoingEmail) -> None:
        implicit_tls = self.port == 465
        await aiosmtplib.send(
            self.build_message(message),
            hostname=self.host,
            port=self.port,
            username=self.username,
            password=self.password,
            use_tls=implicit_tls,
            start_tls=not implicit_tls,
            timeout=self.timeout,
        )


class BrevoTransport(IEmailTransport):
    """
    Brevo (ex-Sendinblue) transactional email API.

    Any non-2xx response is treated as a failure.
    """

    name = "brevo"

    def __init__(
        self,
        api_key: str,
        sender: str,
        sender_name: str,
        timeout: float,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ):
        self.api_key = api_key
        self.sender = sender
        self.sender_name = sender_name
        self.timeout = timeout
        self._transport = transport

    async def send(self, message: OutgoingEmail) -> None:
        payload = {
            "sender": {"name": self.sender_name, "email": self.sender},
            "to": [{"email": message.to}],
            "subject": message.subject,
            "htmlContent": message.html,
            "textContent": message.text,
        }
        async with httpx.AsyncClient(timeout=self.timeout, transport=self._transport) as client:
            response = await client.post(
                BREVO_API_URL,
                json=payload,
                headers={"api-key": self.api_key, "accept": "application/json"},
            )
            response.raise_for_status()


class ConsoleTransport(IEmailTransport):
    """Development fallback: logs the code instead of sending it."""

    name = "console"

    async def send(self, message: OutgoingEmail) -> None:
        logger.warning(
            f"[DEV] {message.subject} for {message.to}: {message.text}",
            extra={"transport": self.name},
        )


class OtpDeliveryGateway:
    """
    Delivers one-time codes through an ordered list of transports.

    Attributes:
        transports: Transports to try, highest priority first
        app_name: Product name used in the email
        expiry_minutes: Code lifetime stated in the email
        timeout: Upper bound on each transport attempt, in seconds
    """

    def __init__(
        self,
        transports: List[IEmailTransport],
        app_name: str,
        expiry_minutes: int,
        timeout: float,
    ):
        self.transports = transports
        self.app_name = app_name
        self.expiry_minutes = expiry_minutes
        self.timeout = timeout

    async def deliver(self, email: str, code: str, context: str) -> str:
        """
        Send a code, trying each transport until one succeeds.

        Args:
            email: Recipient
            code: Plaintext code
            context: "login" or "reset"

        Returns:
            Name of the transport that accepted the message

        Raises:
            DeliveryError: No transport configured, or all of them failed
        """
        message = render_otp_email(self.app_name, email, code, context, self.expiry_minutes)

        if not self.transports:
            logger.error("No email transport configured", extra={"context": context})
            raise DeliveryError()

        for transport in self.transports:
            try:
                async with asyncio.timeout(self.timeout):
                    await transport.send(message)
            except Exception as exc:
                logger.error(
                    f"OTP delivery via {transport.name} failed: {type(exc).__name__}: {exc}",
                    extra={"transport": transport.name, "context": context},
                )
                continue

            logger.info(
                "OTP delivered",
                extra={"transport": transport.name, "context": context},
            )
            return transport.name

        raise DeliveryError()


def build_transports(settings: Settings) -> List[IEmailTransport]:
    """Transports enabled by the current configuration, in priority order."""
    from_name = settings.email_from_name or settings.app_name
    transports: List[IEmailTransport] = []

    if settings.smtp_user and settings.smtp_password:
        transports.append(SmtpTransport(
            host=settings.smtp_host,
            port=settings.smtp_port,
            username=settings.smtp_user,
            password=settings.smtp_password,
            from_name=from_name,
            timeout=settings.email_timeout_seconds,
        ))

    if settings.brevo_api_key and settings.brevo_sender:
        transports.append(BrevoTransport(
            api_key=settings.brevo_api_key,
            sender=settings.brevo_sender,
            sender_name=from_name,
            timeout=settings.email_timeout_seconds,
        ))

    if not settings.is_production:
        transports.append(ConsoleTransport())

    return transports


def build_otp_gateway(settings: Settings) -> OtpDeliveryGateway:
    """Gateway wired from settings."""
    return OtpDeliveryGateway(
        transports=build_transports(settings),
        app_name=settings.app_name,
        expiry_minutes=settings.otp_expiry_minutes,
        timeout=settings.email_timeout_seconds,
    )
