"""
Email Transport Interface (IEmailTransport)

Abstract base class for a single outbound email channel (SMTP relay,
HTTP email API, console). The OTP delivery gateway tries several
transports in priority order.

Implementation guide:
- send() must be async and must raise on failure (never return silently)
- Apply the configured timeout to network calls
- Never log message bodies; they contain one-time codes
"""

from abc import ABC, abstractmethod
from dataclasses import dataclass


@dataclass(frozen=True)
class OutgoingEmail:
    """
    A rendered message ready for delivery.

    Attributes:
        to: Recipient address
        subject: Subject line
        text: Plain-text body
        html: HTML body
    """
    to: str
    subject: str
    text: str
    html: str


class IEmailTransport(ABC):
    """
    Abstract interface for one email delivery channel.

    Attributes:
        name: Short identifier used in logs ("smtp", "brevo", "console")
    """

    name: str = "transport"

    @abstractmethod
    async def send(self, message: OutgoingEmail) -> None:
        """
        Deliver a message.

        Args:
            message: Rendered email

        Raises:
            Exception: Any failure, including timeouts and non-2xx API responses.
                The gateway logs it and moves to the next transport.
        """
        pass
