import hashlib
import hmac
import logging
from typing import Optional, Union

logger = logging.getLogger(__name__)

SIGNATURE_PREFIX = "sha256="


class SignatureVerifier:
    """Checks that a webhook body was signed with the shared secret.

    With no secret configured every payload is accepted. That mode exists for
    local development only and is reported on each call.
    """

    def __init__(self, secret: str = ""):
        self.secret = secret

    @property
    def enabled(self) -> bool:
        return bool(self.secret)

    def expected_signature(self, payload: bytes) -> str:
        digest = hmac.new(
            self.secret.encode("utf-8"), payload, hashlib.sha256
        ).hexdigest()
        return f"{SIGNATURE_PREFIX}{digest}"

    def verify(self, payload: Union[bytes, str], signature: Optional[str]) -> bool:
        """Return True when ``signature`` matches the HMAC of the raw ``payload``."""
        if not self.enabled:
            logger.warning(
                "No webhook secret configured, skipping signature verification"
            )
            return True

        if not signature:
            logger.error("No signature provided in webhook request")
            return False

        if isinstance(payload, str):
            payload = payload.encode("utf-8")

        matched = hmac.compare_digest(
            self.expected_signature(payload).encode("utf-8"),
            signature.strip().encode("utf-8"),
        )
        if not matched:
            logger.error("Webhook signature mismatch")
        return matched
