from datetime import datetime, timedelta, timezone
from typing import Callable, Mapping

from jose import ExpiredSignatureError, JWTError, jwt
from loguru import logger

from storefront.errors import ExpiredToken, InvalidToken

ALGORITHM = "HS256"
TOKEN_LIFETIME = timedelta(hours=24)
RESERVED_CLAIMS = ("iat", "exp")

# Only the signature and expiry are checked; every other claim belongs to the caller
DECODE_OPTIONS = {
    "verify_aud": False,
    "verify_iss": False,
    "verify_sub": False,
    "verify_jti": False,
    "verify_nbf": False,
    "verify_at_hash": False,
}


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


class TokenService:
    """
    Issues and verifies signed session tokens.

    A token carries the caller's claim verbatim plus ``iat``/``exp``. There is
    no revocation list: expiry is the only way a token stops being valid.
    """

    def __init__(
        self,
        secret: str,
        lifetime: timedelta = TOKEN_LIFETIME,
        clock: Callable[[], datetime] = _utcnow,
    ):
        if not secret:
            raise ValueError("Token secret must not be empty")
        self._secret = secret
        self.lifetime = lifetime
        self._clock = clock

    def issue(self, claim: Mapping) -> str:
        issued_at = self._clock()
        payload = dict(claim)
        payload["iat"] = int(issued_at.timestamp())
        payload["exp"] = int((issued_at + self.lifetime).timestamp())
        return jwt.encode(payload, self._secret, algorithm=ALGORITHM)

    def verify(self, token: str) -> dict:
        """Return the embedded claim, or raise InvalidToken / ExpiredToken."""
        try:
            payload = jwt.decode(
                token, self._secret, algorithms=[ALGORITHM], options=DECODE_OPTIONS
            )
        except ExpiredSignatureError as exc:
            raise ExpiredToken() from exc
        except JWTError as exc:
            logger.debug("Token rejected: {}", exc)
            raise InvalidToken() from exc

        for key in RESERVED_CLAIMS:
            payload.pop(key, None)
        return payload
