"""Service interface contracts (ABCs)"""

from feedback_admin.services.interfaces.email_transport import IEmailTransport, OutgoingEmail
from feedback_admin.services.interfaces.session_issuer import (
    ISessionIssuer,
    IssuedSession,
    ResetClaim,
    ResetGrant,
    SessionCredentials,
)

__all__ = [
    'IEmailTransport',
    'OutgoingEmail',
    'ISessionIssuer',
    'IssuedSession',
    'ResetClaim',
    'ResetGrant',
    'SessionCredentials',
]
