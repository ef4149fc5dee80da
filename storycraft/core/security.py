"""
Authentication and security utilities.
"""

import hashlib
import hmac
import re
import secrets
import string
import time
from datetime import datetime, timedelta
from typing import Any, Optional

from jose import JWTError, jwt

from storycraft.core.config import settings
from storycraft.core.constants import BEARER_PREFIX

PASSWORD_HASH_SCHEME = "pbkdf2_sha256"
PASSWORD_MIN_LENGTH = 6
PASSWORD_MAX_LENGTH = 128
NAME_MAX_LENGTH = 100

_EMAIL_PATTERN = re.compile(r"^[^\s@]+@[^\s@]+\.[^\s@]+$")
_BASE36 = string.digits + string.ascii_lowercase


# =============================================================================
# Passwords
# =============================================================================


def hash_password(password: str, iterations: Optional[int] = None) -> str:
    """
    Hash a password for storage.

    Args:
        password: Plain text password
        iterations: PBKDF2 iterations (defaults to the configured value)

    Returns:
        Encoded hash in the form ``pbkdf2_sha256$<iterations>$<salt>$<hash>``
    """
    rounds = iterations or settings.security.password_hash_iterations
    salt = secrets.token_hex(16)
    digest = hashlib.pbkdf2_hmac("sha256", password.encode(), salt.encode(), rounds)
    return f"{PASSWORD_HASH_SCHEME}${rounds}${salt}${digest.hex()}"


def verify_password(password: str, stored_hash: str) -> bool:
    """
    Verify a password against its stored hash.

    Args:
        password: Password provided by the client
        stored_hash: Value produced by hash_password

    Returns:
        True if the password matches, False otherwise (including malformed hashes)
    """
    try:
        scheme, rounds, salt, expected = stored_hash.split("$", 3)
        iterations = int(rounds)
    except ValueError:
        return False

    if scheme != PASSWORD_HASH_SCHEME:
        return False

    digest = hashlib.pbkdf2_hmac("sha256", password.encode(), salt.encode(), iterations)
    return hmac.compare_digest(digest.hex(), expected)


# =============================================================================
# Access tokens
# =============================================================================


def create_access_token(user_uuid: str, email: str) -> str:
    """
    Issue a signed access token for a user.

    Args:
        user_uuid: Public UUID of the user
        email: User email

    Returns:
        Encoded JWT carrying ``userId`` and ``email`` claims
    """
    now = datetime.utcnow()
    payload = {
        "userId": user_uuid,
        "email": email,
        "iat": now,
        "exp": now + timedelta(days=settings.security.jwt_expires_days),
    }
    return jwt.encode(
        payload,
        settings.security.secret_key,
        algorithm=settings.security.jwt_algorithm,
    )


def decode_access_token(token: str) -> Optional[dict[str, Any]]:
    """
    Verify and decode an access token.

    Returns:
        Token payload, or None if the token is invalid, expired or has no user
    """
    try:
        payload = jwt.decode(
            token,
            settings.security.secret_key,
            algorithms=[settings.security.jwt_algorithm],
        )
    except JWTError:
        return None

    if not payload.get("userId"):
        return None
    return payload


def extract_token_from_header(auth_header: Optional[str]) -> Optional[str]:
    """Return the bearer token from an Authorization header value."""
    if not auth_header or not auth_header.startswith(BEARER_PREFIX):
        return None
    return auth_header[len(BEARER_PREFIX):] or None


# =============================================================================
# Input validation
# =============================================================================


def is_valid_email(email: str) -> bool:
    """Check basic email shape."""
    return bool(_EMAIL_PATTERN.match(email))


def validate_password(password: str) -> tuple[bool, Optional[str]]:
    """
    Validate password strength.

    Returns:
        Tuple of (valid, message); message explains the failure
    """
    if len(password) < PASSWORD_MIN_LENGTH:
        return False, "Password must be at least 6 characters long"
    if len(password) > PASSWORD_MAX_LENGTH:
        return False, "Password must be less than 128 characters"
    return True, None


def is_valid_name(name: str) -> bool:
    """Names must have between 1 and 100 characters once trimmed."""
    return 1 <= len(name.strip()) <= NAME_MAX_LENGTH


# =============================================================================
# Identifiers
# =============================================================================


def now_ms() -> int:
    """Current time in epoch milliseconds."""
    return int(time.time() * 1000)


def generate_proposal_id() -> str:
    """
    Generate a unique saved proposal ID.

    Returns:
        ``proposal_<epoch ms>_<9 base36 chars>``
    """
    suffix = "".join(secrets.choice(_BASE36) for _ in range(9))
    return f"proposal_{now_ms()}_{suffix}"


def generate_enhanced_proposal_id() -> str:
    """Generate a unique guided proposal ID."""
    return f"enhanced-{now_ms()}-{secrets.token_hex(3)}"


def generate_message_id(is_user: bool) -> str:
    """Generate a conversation message ID tagged with its author."""
    author = "user" if is_user else "ai"
    return f"{now_ms()}_{secrets.token_hex(3)}_{author}"


def generate_item_id(prefix: str, keyword: str) -> str:
    """
    Generate an ID for an extracted item.

    Args:
        prefix: Item kind (persona, context, goal, ...)
        keyword: Keyword that triggered the extraction

    Returns:
        ``<prefix>-<epoch ms>-<keyword-slug>-<4 hex chars>``
    """
    slug = re.sub(r"\s+", "-", keyword.strip())
    return f"{prefix}-{now_ms()}-{slug}-{secrets.token_hex(2)}"


def generate_request_id() -> str:
    """
    Generate a unique request ID for tracing.

    Returns:
        A random 8-byte hex string prefixed with 'req_'
    """
    return f"req_{secrets.token_hex(8)}"
