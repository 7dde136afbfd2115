"""
Development token issuer

Mints a bearer token signed with the configured JWT_SECRET so the protected
routes can be called locally.

Usage:
    python -m kyc_backend.scripts.issue_token <subject> [email] [minutes]
"""

import sys
from datetime import datetime, timedelta, timezone

from jose import jwt

from kyc_backend.core.config import get_settings
from kyc_backend.core.logging import get_logger

logger = get_logger("token-issuer")

DEFAULT_MINUTES = 60


def issue_token(subject: str, secret: str, algorithm: str = "HS256", email: str | None = None,
                minutes: int = DEFAULT_MINUTES, audience: str | None = None) -> str:
    now = datetime.now(timezone.utc)
    claims = {
        "sub": subject,
        "iat": int(now.timestamp()),
        "exp": int((now + timedelta(minutes=minutes)).timestamp()),
    }
    if email:
        claims["email"] = email
    if audience:
        claims["aud"] = audience
    return jwt.encode(claims, secret, algorithm=algorithm)


def main():
    if len(sys.argv) < 2:
        print(__doc__)
        sys.exit(1)

    settings = get_settings()
    if not settings.JWT_SECRET:
        logger.error("JWT_SECRET is not set; refusing to sign a token.")
        sys.exit(1)

    subject = sys.argv[1]
    email = sys.argv[2] if len(sys.argv) > 2 else None
    try:
        minutes = int(sys.argv[3]) if len(sys.argv) > 3 else DEFAULT_MINUTES
    except ValueError:
        print(f"Invalid number of minutes: {sys.argv[3]}")
        sys.exit(1)

    token = issue_token(subject, settings.JWT_SECRET, settings.JWT_ALGORITHM, email, minutes, settings.JWT_AUDIENCE)
    print(token)

if __name__ == "__main__":
    main()
