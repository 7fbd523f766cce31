"""FastAPI dependencies: resolve the caller identity from the bearer token.

Usage in any router:
    from src.us_gateway.auth.dependencies import get_caller_id

    @router.get("/{user_id}")
    async def get_user(caller_id: str | None = Depends(get_caller_id)):
        ...

The dependency never rejects the request itself: a missing or invalid token
yields None and the service layer decides between 401 and 403.
"""

from fastapi import Depends
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer

from src.us_gateway.auth.jwt_handler import TokenVerifier, get_token_verifier

# auto_error=False: absent header → None instead of an immediate 403
bearer_scheme = HTTPBearer(auto_error=False)


async def get_caller_id(
    credentials: HTTPAuthorizationCredentials | None = Depends(bearer_scheme),
    verifier: TokenVerifier = Depends(get_token_verifier),
) -> str | None:
    """Return the verified user id, or None when unauthenticated."""
    if credentials is None or credentials.scheme.lower() != "bearer":
        return None
    return verifier.verify(credentials.credentials)
