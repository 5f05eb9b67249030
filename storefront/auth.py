from fastapi import Depends, Header, Request

from storefront.deps import get_token_service, get_user_directory
from storefront.errors import ExpiredToken, Forbidden, InvalidToken, Unauthenticated
from storefront.tokens import TokenService
from storefront.users import UserDirectory


def verify_token(
    request: Request,
    authorization: str | None = Header(None),
    tokens: TokenService = Depends(get_token_service),
) -> dict:
    """Resolve the caller's claim from the Bearer token."""
    if not authorization:
        raise Unauthenticated()

    try:
        scheme, token = authorization.split()
        if scheme.lower() != "bearer":
            raise InvalidToken()
        claims = tokens.verify(token)
    except (ValueError, InvalidToken, ExpiredToken):
        raise Forbidden() from None

    request.state.claims = claims
    return claims


def require_admin(
    claims: dict = Depends(verify_token),
    users: UserDirectory = Depends(get_user_directory),
) -> dict:
    # Role comes from the directory on every call, never from the token
    if not users.is_admin(claims.get("email")):
        raise Forbidden()
    return claims


def require_self(email: str, claims: dict) -> None:
    if claims.get("email") != email:
        raise Forbidden()
