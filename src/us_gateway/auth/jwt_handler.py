"""JWT bearer-token verification.

Tokens are issued by the upstream identity service and signed with its RSA
private key (RS256). This service only holds the public key and never issues
tokens itself.

NOTE: No revocation list. A token is accepted while its signature verifies and
its registered time claims (exp/nbf, when present) are satisfied.
"""

import logging
import textwrap
from functools import lru_cache

from jose import JWTError, jwk, jwt
from jose.exceptions import JWKError

from config.settings import settings
from src.us_common.errors import InvalidPublicKeyError

logger = logging.getLogger(__name__)

_PEM_HEADER = "-----BEGIN PUBLIC KEY-----"
_PEM_FOOTER = "-----END PUBLIC KEY-----"

# users.id is VARCHAR(64); a longer identity could never own a record
MAX_USER_ID_LENGTH = 64


def load_public_key(raw: str, algorithm: str) -> str:
    """Normalise key material to PEM and make sure it parses.

    Accepts either full PEM text or the bare base64 body of an X.509
    SubjectPublicKeyInfo (what the identity service exports as PUBLIC_KEY).

    Raises:
        InvalidPublicKeyError: empty or unparseable key.
    """
    body = raw.strip() if raw else ""
    if not body:
        raise InvalidPublicKeyError("empty")

    if body.startswith("-----BEGIN"):
        pem = body
    else:
        compact = "".join(body.split())
        pem = "\n".join([_PEM_HEADER, *textwrap.wrap(compact, 64), _PEM_FOOTER])

    try:
        jwk.construct(pem, algorithm)
    except (JWKError, ValueError, TypeError) as exc:
        raise InvalidPublicKeyError(str(exc)) from exc
    return pem


class TokenVerifier:
    """Checks the signature and extracts the caller's user id claim."""

    def __init__(self, public_key: str, algorithm: str = "RS256", claim: str = "userId") -> None:
        self._key = load_public_key(public_key, algorithm)
        self._algorithm = algorithm
        self._claim = claim

    def verify(self, token: str | None) -> str | None:
        """Return the embedded user id, or None if the token is unusable.

        None covers every failure: absent, malformed, bad signature, expired,
        missing, empty or over-long claim. It is not an exception at this
        layer; the boundary maps None to "no authenticated identity".
        """
        if not token:
            return None
        try:
            claims = jwt.decode(
                token,
                self._key,
                algorithms=[self._algorithm],  # Explicit list prevents algorithm confusion
                options={"verify_aud": False},
            )
        except JWTError as exc:
            logger.debug("Rejected bearer token: %s", exc)
            return None

        user_id = claims.get(self._claim)
        if user_id is None:
            return None
        user_id = str(user_id)
        if not user_id or len(user_id) > MAX_USER_ID_LENGTH:
            logger.debug("Rejected bearer token: unusable %s claim", self._claim)
            return None
        return user_id


@lru_cache(maxsize=1)
def get_token_verifier() -> TokenVerifier:
    """Process-wide verifier. Built (and validated) once in the app lifespan."""
    return TokenVerifier(
        settings.JWT_PUBLIC_KEY,
        algorithm=settings.JWT_ALGORITHM,
        claim=settings.JWT_USER_ID_CLAIM,
    )
