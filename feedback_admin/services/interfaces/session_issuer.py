"""
Session Issuer Interface (ISessionIssuer)

Abstract base class for the two authenticated-session strategies:

- bearer tokens: a signed JWT returned in the response body and sent back in
  the Authorization header; no server state
- server sessions: a database row keyed by an opaque cookie, paired with a
  signed cookie token bound to that row

The auth manager only talks to this interface, so login, signup, OTP and
password-reset logic is identical in both modes. Transport concerns (cookies,
response fields) are confined to write(), write_reset() and clear().

Implementation guide:
- validate() and redeem_reset() raise Unauthorized, never return None
- issue() must never reuse a session identifier supplied by the caller
- revoke() is idempotent
"""

from abc import ABC, abstractmethod
from dataclasses import dataclass
from datetime import datetime
from typing import Optional

from starlette.responses import Response


@dataclass(frozen=True)
class SessionCredentials:
    """
    Whatever the caller presented, extracted from the request.

    Attributes:
        bearer_token: Token from "Authorization: Bearer ..."
        cookie_token: Token from the admin_token cookie
        session_id: Identifier from the admin_sid cookie
    """
    bearer_token: Optional[str] = None
    cookie_token: Optional[str] = None
    session_id: Optional[str] = None


ANONYMOUS = SessionCredentials()


@dataclass(frozen=True)
class IssuedSession:
    """
    Result of authenticating an administrator.

    Attributes:
        admin_id: Authenticated administrator
        expires_at: When the session stops being valid
        bearer_token: Token for the response body (bearer mode only)
        cookie_token: Token for the admin_token cookie (session mode only)
        session_id: Server-side session identifier (session mode only)
    """
    admin_id: str
    expires_at: datetime
    bearer_token: Optional[str] = None
    cookie_token: Optional[str] = None
    session_id: Optional[str] = None


@dataclass(frozen=True)
class ResetGrant:
    """
    Proof that a reset code was verified.

    Bearer tokens carry reset_token. Server sessions carry a freshly minted
    session_id, plus cookie_token when the caller was logged in and the
    login moves to the new session.
    """
    reset_token: Optional[str] = None
    session_id: Optional[str] = None
    cookie_token: Optional[str] = None


@dataclass(frozen=True)
class ResetClaim:
    """
    A redeemed reset proof.

    Attributes:
        email: Administrator whose password may be replaced
        fingerprint: Password-hash fingerprint the proof was issued against,
            when the strategy carries one
    """
    email: str
    fingerprint: Optional[str] = None


class ISessionIssuer(ABC):
    """Abstract interface for issuing, validating and revoking admin sessions."""

    @abstractmethod
    async def issue(self, admin_id: str, credentials: SessionCredentials) -> IssuedSession:
        """
        Authenticate admin_id for subsequent requests.

        Args:
            admin_id: Administrator who just proved their identity
            credentials: What the caller currently presents; any prior
                server session is discarded

        Returns:
            IssuedSession to hand to write()
        """
        pass

    @abstractmethod
    async def validate(self, credentials: SessionCredentials) -> str:
        """
        Resolve the authenticated administrator.

        Returns:
            admin_id

        Raises:
            Unauthorized: Missing, malformed, expired or mismatched credentials
        """
        pass

    @abstractmethod
    async def revoke(self, credentials: SessionCredentials) -> None:
        """End the caller's session if there is one. Never raises for absent sessions."""
        pass

    @abstractmethod
    async def grant_reset(
        self,
        email: str,
        fingerprint: str,
        credentials: SessionCredentials,
    ) -> ResetGrant:
        """
        Record that a reset code for email was verified.

        Args:
            email: Administrator email
            fingerprint: password_fingerprint() of the current password hash
            credentials: What the caller currently presents
        """
        pass

    @abstractmethod
    async def redeem_reset(
        self,
        proof: Optional[str],
        credentials: SessionCredentials,
    ) -> ResetClaim:
        """
        Consume a reset grant.

        Args:
            proof: Reset token supplied in the request body, if any
            credentials: What the caller currently presents

        Raises:
            Unauthorized: No valid grant
        """
        pass

    @abstractmethod
    def write(self, response: Response, issued: IssuedSession) -> None:
        """Attach the session to the outgoing response (cookies), if applicable."""
        pass

    @abstractmethod
    def write_reset(self, response: Response, grant: ResetGrant) -> None:
        """Attach a reset grant to the outgoing response, if applicable."""
        pass

    @abstractmethod
    def clear(self, response: Response) -> None:
        """Remove any client-side session state."""
        pass
