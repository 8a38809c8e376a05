"""
Security module for authentication primitives.

Provides password hashing, one-time-code generation and hashing, and JWT
signing/verification using industry-standard libraries (bcrypt, python-jose).
Nothing in here touches the database; repositories and session issuers build
on these functions.
"""

from datetime import datetime, timedelta
from typing import Optional, Dict, Any
import hashlib
import hmac
import secrets

from jose import JWTError, jwt
import bcrypt
from pydantic import BaseModel

from feedback_admin.core.config import settings


# JWT Algorithm
ALGORITHM = "HS256"

ACCESS_TOKEN_TYPE = "access"
RESET_TOKEN_TYPE = "reset"

OTP_LENGTH = 6


class TokenData(BaseModel):
    """
    Validated access-token claims.

    Attributes:
        admin_id: Subject of the token
        session_id: Server-side session bound to the token (session mode only)
        exp: Expiry timestamp
    """
    admin_id: str
    session_id: Optional[str] = None
    exp: Optional[datetime] = None


class ResetTokenData(BaseModel):
    """Validated password-reset proof claims."""
    email: str
    fingerprint: str


def _password_bytes(password: str) -> bytes:
    # bcrypt only looks at the first 72 bytes
    return password.encode("utf-8")[:72]


def verify_password(plain_password: str, hashed_password: str) -> bool:
    """
    Verify a plain password against a bcrypt hash.

    bcrypt.checkpw re-derives the hash with the stored salt and compares in
    constant time.

    Args:
        plain_password: The plain text password to verify
        hashed_password: The hashed password to compare against

    Returns:
        True if password matches, False otherwise (including malformed hashes)
    """
    if isinstance(hashed_password, str):
        hashed_bytes = hashed_password.encode("utf-8")
    else:
        hashed_bytes = hashed_password

    try:
        return bcrypt.checkpw(_password_bytes(plain_password), hashed_bytes)
    except ValueError:
        # Not a bcrypt hash
        return False


def get_password_hash(password: str) -> str:
    """
    Hash a password using bcrypt with a fresh salt.

    Args:
        password: Plain text password to hash

    Returns:
        Hashed password string

    Note:
        Bcrypt has a 72-byte password limit. Longer passwords are truncated.
    """
    salt = bcrypt.gensalt(rounds=12)
    hashed = bcrypt.hashpw(_password_bytes(password), salt)
    return hashed.decode("utf-8")


def password_fingerprint(password_hash: str) -> str:
    """
    Short digest of a stored password hash.

    Embedded in reset proofs so that a proof stops validating once the
    password it was issued against has been replaced.
    """
    return hashlib.sha256(password_hash.encode("utf-8")).hexdigest()[:16]


def generate_otp() -> str:
    """
    Generate a six digit one-time code.

    Uniform over 000000-999999 using the OS CSPRNG, zero-padded.
    """
    return str(secrets.randbelow(10 ** OTP_LENGTH)).zfill(OTP_LENGTH)


def hash_otp(code: str) -> str:
    """SHA-256 hex digest of a one-time code."""
    return hashlib.sha256(code.encode("utf-8")).hexdigest()


def otp_matches(code: str, code_hash: str) -> bool:
    """Constant-time comparison of a candidate code against a stored digest."""
    return hmac.compare_digest(hash_otp(code), code_hash)


def generate_session_id() -> str:
    """Opaque, unguessable server-side session identifier."""
    return secrets.token_urlsafe(32)


def create_access_token(
    admin_id: str,
    session_id: Optional[str] = None,
    expires_delta: Optional[timedelta] = None,
    secret_key: Optional[str] = None,
) -> str:
    """
    Create a signed access token for an administrator.

    Args:
        admin_id: Administrator identifier (stored as "sub")
        session_id: Server-side session id to bind the token to ("sid")
        expires_delta: Optional custom lifetime (default ACCESS_TOKEN_EXPIRE_MINUTES)
        secret_key: Signing key (default SECRET_KEY)

    Returns:
        Encoded JWT token string

    Example:
        >>> token = create_access_token("5f0c...")
        >>> # Use token in Authorization header: Bearer <token>
    """
    if expires_delta is None:
        expires_delta = timedelta(minutes=settings.access_token_expire_minutes)

    to_encode: Dict[str, Any] = {
        "sub": admin_id,
        "type": ACCESS_TOKEN_TYPE,
        "exp": datetime.utcnow() + expires_delta,
    }
    if session_id is not None:
        to_encode["sid"] = session_id

    return jwt.encode(to_encode, secret_key or settings.secret_key, algorithm=ALGORITHM)


def decode_access_token(token: str, secret_key: Optional[str] = None) -> Optional[TokenData]:
    """
    Decode and validate an access token.

    Args:
        token: JWT token string to decode
        secret_key: Verification key (default SECRET_KEY)

    Returns:
        TokenData if the signature, expiry and token type are valid, None otherwise
    """
    try:
        payload = jwt.decode(
            token,
            secret_key or settings.secret_key,
            algorithms=[ALGORITHM]
        )
    except JWTError:
        return None

    admin_id = payload.get("sub")
    if admin_id is None or payload.get("type") != ACCESS_TOKEN_TYPE:
        return None

    return TokenData(
        admin_id=admin_id,
        session_id=payload.get("sid"),
        exp=payload.get("exp"),
    )


def create_reset_token(
    email: str,
    fingerprint: str,
    expires_delta: Optional[timedelta] = None,
    secret_key: Optional[str] = None,
) -> str:
    """
    Create a short-lived proof that a reset code was verified for email.

    Args:
        email: Administrator email the reset applies to
        fingerprint: password_fingerprint() of the current password hash
        expires_delta: Optional custom lifetime (default RESET_TOKEN_EXPIRE_MINUTES)
        secret_key: Signing key (default SECRET_KEY)

    Returns:
        Encoded JWT token string
    """
    if expires_delta is None:
        expires_delta = timedelta(minutes=settings.reset_token_expire_minutes)

    expire = datetime.utcnow() + expires_delta
    to_encode = {
        "sub": email,
        "type": RESET_TOKEN_TYPE,
        "pwh": fingerprint,
        "exp": expire,
    }
    return jwt.encode(to_encode, secret_key or settings.secret_key, algorithm=ALGORITHM)


def decode_reset_token(token: str, secret_key: Optional[str] = None) -> Optional[ResetTokenData]:
    """
    Decode a reset proof.

    Returns:
        ResetTokenData if valid, None if malformed, expired or of another type
    """
    try:
        payload = jwt.decode(token, secret_key or settings.secret_key, algorithms=[ALGORITHM])
    except JWTError:
        return None

    email = payload.get("sub")
    fingerprint = payload.get("pwh")
    if payload.get("type") != RESET_TOKEN_TYPE or not email or not fingerprint:
        return None

    return ResetTokenData(email=email, fingerprint=fingerprint)
