from typing import Any, Dict, List, Optional

from jose import ExpiredSignatureError, JWTError, jwt
from pydantic import BaseModel, Field

from kyc_backend.core.errors import InvalidCredential, MissingCredential
from kyc_backend.core.logging import get_logger

logger = get_logger("credential-gate")


class Principal(BaseModel):
    """The identity resolved from a verified bearer token."""
    subject: str = Field(..., description="The token's 'sub' claim.")
    email: Optional[str] = Field(None, description="The token's 'email' claim, when present.")
    claims: Dict[str, Any] = Field(default_factory=dict, description="Every decoded claim.")


class JWTTokenVerifier:
    """
    Verifies signed JWTs with python-jose. Raises jose's JWTError (or a subclass)
    for any token it rejects.
    """

    def __init__(self, secret: str, algorithms: List[str], audience: Optional[str] = None):
        self.secret = secret
        self.algorithms = algorithms
        self.audience = audience

    def verify(self, token: str) -> Dict[str, Any]:
        if not self.secret:
            # An unconfigured secret must never accept anything.
            raise JWTError("Token verification is not configured.")
        options = {"verify_aud": self.audience is not None}
        return jwt.decode(token, self.secret, algorithms=self.algorithms, audience=self.audience, options=options)


def extract_bearer_token(authorization: Optional[str]) -> str:
    """Returns the token from an 'Authorization: Bearer <token>' header value."""
    if not authorization or not authorization.strip():
        raise MissingCredential()
    scheme, _, token = authorization.strip().partition(" ")
    if scheme.lower() != "bearer" or not token.strip():
        raise MissingCredential("Authorization header must use the Bearer scheme")
    return token.strip()


def authenticate(authorization: Optional[str], verifier: JWTTokenVerifier) -> Principal:
    """
    Credential gate: resolves a Principal from the request's Authorization header.

    Raises:
        MissingCredential: no usable bearer token was supplied.
        InvalidCredential: the verifier rejected the token, or it has no subject.
    """
    token = extract_bearer_token(authorization)
    try:
        claims = verifier.verify(token)
    except ExpiredSignatureError:
        raise InvalidCredential("Credential has expired")
    except JWTError as e:
        logger.warning(f"Rejected bearer token: {e}")
        raise InvalidCredential()

    subject = claims.get("sub")
    if not subject:
        raise InvalidCredential("Credential has no subject")
    return Principal(subject=str(subject), email=claims.get("email"), claims=claims)
