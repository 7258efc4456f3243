from __future__ import annotations

from itsdangerous import BadData, SignatureExpired, URLSafeTimedSerializer

from hovenier.core.errors import PreconditionError, ValidationError


class ShareTokenService:
    """Ondertekende, tijdgebonden tokens voor de publieke offerte-link."""

    def __init__(self, secret: str, salt: str = "hovenier-offerte-share-v1"):
        if not secret or len(secret) < 16:
            raise ValueError("SHARE_TOKEN_SECRET must be set (min length 16).")
        self._s = URLSafeTimedSerializer(secret_key=secret, salt=salt)

    def make(self, quote_id: str) -> str:
        return self._s.dumps({"quote_id": quote_id})

    def verify(self, token: str, *, max_age_seconds: int) -> str:
        """Returns the quote id the token was issued for."""
        try:
            payload = self._s.loads(token, max_age=max_age_seconds)
        except SignatureExpired as e:
            raise PreconditionError("Deellink is verlopen", code="TOKEN_EXPIRED") from e
        except BadData as e:
            raise ValidationError("Ongeldige deellink", code="TOKEN_INVALID") from e
        return str(payload["quote_id"])
