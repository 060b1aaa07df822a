"""Webhook origin verification and the endpoint ownership handshake."""

from __future__ import annotations

import hashlib
import hmac
import json
import logging
from dataclasses import dataclass

from ..domain.errors import (
    MalformedHandshakeError,
    MissingSignatureHeadersError,
    SignatureMismatchError,
)
from ..domain.recording import URL_VALIDATION_EVENT

logger = logging.getLogger(__name__)

SIGNATURE_HEADER = "x-zm-signature"
TIMESTAMP_HEADER = "x-zm-request-timestamp"
SIGNATURE_VERSION = "v0"


@dataclass(frozen=True)
class HandshakeResponse:
    plain_token: str
    encrypted_token: str

    def to_payload(self) -> dict[str, str]:
        return {"plainToken": self.plain_token, "encryptedToken": self.encrypted_token}


def hmac_sha256_hex(secret: str, message: bytes) -> str:
    return hmac.new(secret.encode("utf-8"), message, hashlib.sha256).hexdigest()


def build_signature(secret: str, timestamp: str, body: bytes) -> str:
    message = f"{SIGNATURE_VERSION}:{timestamp}:".encode("utf-8") + body
    return f"{SIGNATURE_VERSION}={hmac_sha256_hex(secret, message)}"


class WebhookAuthenticator:
    def __init__(self, secret_token: str) -> None:
        self._secret_token = secret_token

    def authenticate(
        self,
        body: bytes,
        *,
        signature: str | None,
        timestamp: str | None,
    ) -> HandshakeResponse | None:
        """Verify one inbound request.

        Returns a ``HandshakeResponse`` when the request is an ownership
        handshake that must be answered directly, and ``None`` when it is a
        genuine event that may proceed. Raises an ``AuthenticationError``
        subclass otherwise. ``body`` is only read, never consumed.
        """
        handshake = self._handshake_payload(body)
        if handshake is not None:
            return self._answer_handshake(handshake)

        if not signature or not timestamp:
            logger.warning("Rejected webhook without signature headers")
            raise MissingSignatureHeadersError("Missing webhook verification headers")

        expected = build_signature(self._secret_token, timestamp, body)
        if not hmac.compare_digest(expected.encode("utf-8"), signature.encode("utf-8")):
            logger.warning("Rejected webhook with invalid signature")
            raise SignatureMismatchError("Invalid webhook signature")
        return None

    def _handshake_payload(self, body: bytes) -> dict | None:
        try:
            parsed = json.loads(body)
        except ValueError:
            return None
        if isinstance(parsed, dict) and parsed.get("event") == URL_VALIDATION_EVENT:
            return parsed
        return None

    def _answer_handshake(self, parsed: dict) -> HandshakeResponse:
        logger.info("Processing endpoint URL validation request")
        payload = parsed.get("payload")
        plain_token = payload.get("plainToken") if isinstance(payload, dict) else None
        if not isinstance(plain_token, str):
            raise MalformedHandshakeError("Invalid URL validation request")
        return HandshakeResponse(
            plain_token=plain_token,
            encrypted_token=hmac_sha256_hex(
                self._secret_token, plain_token.encode("utf-8")
            ),
        )
