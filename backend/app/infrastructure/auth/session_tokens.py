"""
Session Token Verification

Verifies the JWTs that carry a caller's session, whether they arrive as
an ``Authorization: Bearer`` header or in the session cookie.

Verification strategy (in order):
  1. JWKS (RS256/ES256) when AUTH_JWKS_URL is configured.
  2. HS256 with AUTH_JWT_SECRET.

A token that fails every strategy resolves to no identity. Nothing in
this module raises for a bad token.
"""

import logging
from datetime import datetime, timedelta, timezone
from typing import Any, Dict, Optional

import jwt
from jwt import PyJWKClient
from pydantic import ValidationError

from app.config.settings import Settings
from app.domain.access import Identity
from app.infrastructure.exceptions import ConfigurationError


logger = logging.getLogger(__name__)

SESSION_ALGORITHM = "HS256"
JWKS_ALGORITHMS = ["RS256", "ES256"]


class SessionTokenVerifier:
    """
    Decodes and verifies session JWTs.

    Built once per application; the JWKS client caches signing keys.
    """

    def __init__(self, settings: Settings):
        self._secret = settings.auth_jwt_secret
        self._issuer = settings.auth_jwt_issuer
        self._audience = settings.auth_jwt_audience
        self._ttl = timedelta(hours=settings.session_ttl_hours)
        self._jwks_client: Optional[PyJWKClient] = None
        if settings.auth_jwks_url:
            self._jwks_client = PyJWKClient(settings.auth_jwks_url, cache_keys=True)

    @property
    def is_configured(self) -> bool:
        return bool(self._secret or self._jwks_client)

    def _decode_options(self) -> Dict[str, Any]:
        required = ["exp", "sub"]
        if self._issuer:
            required.append("iss")
        return {"require": required, "verify_aud": bool(self._audience)}

    def _decode_with_jwks(self, token: str) -> Dict[str, Any]:
        signing_key = self._jwks_client.get_signing_key_from_jwt(token)
        return jwt.decode(
            token,
            signing_key.key,
            algorithms=JWKS_ALGORITHMS,
            issuer=self._issuer,
            audience=self._audience,
            options=self._decode_options(),
        )

    def _decode_with_secret(self, token: str) -> Dict[str, Any]:
        return jwt.decode(
            token,
            self._secret,
            algorithms=[SESSION_ALGORITHM],
            issuer=self._issuer,
            audience=self._audience,
            options=self._decode_options(),
        )

    def verify(self, token: Optional[str]) -> Optional[Identity]:
        """
        Resolve a token to an Identity.

        Returns:
            Identity, or None for a missing, malformed, expired or
            unverifiable token
        """
        if not token:
            return None

        payload: Optional[Dict[str, Any]] = None

        if self._jwks_client is not None:
            try:
                payload = self._decode_with_jwks(token)
            except (jwt.exceptions.PyJWKClientError, jwt.InvalidTokenError) as e:
                logger.debug("JWKS verification failed: %s", e)

        if payload is None and self._secret:
            try:
                payload = self._decode_with_secret(token)
            except jwt.ExpiredSignatureError:
                logger.debug("Session token expired")
            except jwt.InvalidTokenError as e:
                logger.debug("HS256 verification failed: %s", e)

        if payload is None:
            return None

        user_id = payload.get("sub")
        if not user_id or not isinstance(user_id, str):
            return None

        try:
            return Identity(
                user_id=user_id,
                email=payload.get("email"),
                name=payload.get("name"),
            )
        except ValidationError as e:
            logger.debug("Session token has malformed identity claims: %s", e)
            return None

    def issue(self, identity: Identity, expires_in: Optional[timedelta] = None) -> str:
        """
        Issue a session token this verifier accepts.

        Lifetime defaults to SESSION_TTL_HOURS.
        """
        if not self._secret:
            raise ConfigurationError(
                "AUTH_JWT_SECRET is required to issue session tokens",
                missing_keys=["AUTH_JWT_SECRET"],
            )
        return create_session_token(
            identity,
            self._secret,
            expires_in=self._ttl if expires_in is None else expires_in,
            issuer=self._issuer,
            audience=self._audience,
        )


def create_session_token(
    identity: Identity,
    secret: str,
    expires_in: timedelta = timedelta(hours=24),
    issuer: Optional[str] = None,
    audience: Optional[str] = None,
) -> str:
    """
    Issue an HS256 session token for the cookie flow.

    Args:
        identity: Caller the token represents
        secret: Signing secret (AUTH_JWT_SECRET)
        expires_in: Lifetime of the token
        issuer: Optional ``iss`` claim
        audience: Optional ``aud`` claim

    Returns:
        Encoded JWT
    """
    now = datetime.now(timezone.utc)
    claims: Dict[str, Any] = {
        "sub": identity.user_id,
        "iat": now,
        "exp": now + expires_in,
    }
    if identity.email:
        claims["email"] = identity.email
    if identity.name:
        claims["name"] = identity.name
    if issuer:
        claims["iss"] = issuer
    if audience:
        claims["aud"] = audience
    return jwt.encode(claims, secret, algorithm=SESSION_ALGORITHM)
