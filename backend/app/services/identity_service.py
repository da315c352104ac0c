"""
services/identity_service.py — Google ID token verification.

GoogleIdentityClient asks Google's tokeninfo endpoint to validate an ID
token and checks that it was issued for this app (aud == GOOGLE_CLIENT_ID).
The caller gets back {"email", "name", "subject"}.

The httpx.Client is injectable so tests can use httpx.MockTransport.
"""

from __future__ import annotations

import logging

import httpx

from backend.app.errors import AppError, ErrorCode

logger = logging.getLogger(__name__)

TOKENINFO_URL = "https://oauth2.googleapis.com/tokeninfo"


def _rejected(reason: str) -> AppError:
    logger.info("Federated sign-in rejected: %s", reason)
    return AppError(
        ErrorCode.INVALID_CREDENTIALS,
        "The identity token could not be verified.",
        401,
    )


class GoogleIdentityClient:

    def __init__(
            self,
            client_id: str,
            timeout: float = 10.0,
            http_client: httpx.Client | None = None,
    ) -> None:
        self.client_id = client_id
        self._client = http_client or httpx.Client(timeout=timeout)

    def verify(self, id_token: str) -> dict:
        """
        Raises:
          AppError(INVALID_CREDENTIALS, 401) -- token rejected, wrong audience,
            or no verified email.
          AppError(PROVIDER_ERROR, 502)      -- Google unreachable or erroring.
        """
        if not self.client_id:
            raise AppError(
                ErrorCode.PROVIDER_ERROR,
                "Federated sign-in is not configured on this server.",
                502,
            )

        try:
            response = self._client.get(TOKENINFO_URL, params={"id_token": id_token})
        except httpx.HTTPError as exc:
            logger.warning("Google tokeninfo request failed: %s", exc)
            raise AppError(
                ErrorCode.PROVIDER_ERROR,
                "The identity provider could not be reached.",
                502,
            ) from exc

        # tokeninfo answers 400 for expired or malformed tokens.
        if response.status_code == 400:
            raise _rejected("tokeninfo returned 400")

        try:
            response.raise_for_status()
            claims = response.json()
        except (httpx.HTTPStatusError, ValueError) as exc:
            logger.warning("Google tokeninfo returned an unusable response: %s", exc)
            raise AppError(
                ErrorCode.PROVIDER_ERROR,
                "The identity provider returned an unexpected response.",
                502,
            ) from exc

        if claims.get("aud") != self.client_id:
            raise _rejected("audience mismatch")

        email = claims.get("email")
        if not email or str(claims.get("email_verified", "false")).lower() != "true":
            raise _rejected("missing or unverified email")

        return {
            "email": email,
            "name": claims.get("name"),
            "subject": claims.get("sub"),
        }
