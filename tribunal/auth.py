"""
Module: tribunal/auth.py
Description: Bearer-token authentication of the calling account

Features:
- HS256 JWT access tokens whose subject is the numeric account identity
- Token expiry and revocation by token id
- FastAPI dependency resolving the authenticated caller
"""

import logging
import secrets
from datetime import datetime, timedelta, timezone
from typing import Optional, Set

import jwt
from fastapi import Depends, HTTPException, Request, status
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer

logger = logging.getLogger("tribunal.auth")


class AuthenticationError(Exception):
    """Authentication failure with an error code for the response body."""

    def __init__(self, message: str, error_code: str = "AUTH_ERROR"):
        self.message = message
        self.error_code = error_code
        super().__init__(self.message)


class CallerAuthenticator:
    """Issues and validates access tokens for accounts."""

    def __init__(
        self,
        secret_key: Optional[str] = None,
        algorithm: str = "HS256",
        token_expire_minutes: int = 60,
    ):
        self.secret_key = secret_key or secrets.token_urlsafe(32)
        self.algorithm = algorithm
        self.token_expire_minutes = token_expire_minutes
        self.revoked_tokens: Set[str] = set()

    @classmethod
    def from_config(cls, cfg) -> "CallerAuthenticator":
        return cls(
            secret_key=cfg.JWT_SECRET,
            algorithm=cfg.JWT_ALGORITHM,
            token_expire_minutes=cfg.TOKEN_EXPIRE_MINUTES,
        )

    def issue_token(self, account_id: int, expires_delta: Optional[timedelta] = None) -> str:
        issued = datetime.now(timezone.utc)
        payload = {
            "sub": str(account_id),
            "iat": issued,
            "exp": issued + (expires_delta or timedelta(minutes=self.token_expire_minutes)),
            "jti": secrets.token_urlsafe(16),
            "type": "access",
        }
        return jwt.encode(payload, self.secret_key, algorithm=self.algorithm)

    def validate_token(self, token: str) -> int:
        """Return the account identity carried by ``token``."""
        try:
            payload = jwt.decode(token, self.secret_key, algorithms=[self.algorithm])
        except jwt.ExpiredSignatureError:
            raise AuthenticationError("Token has expired", error_code="TOKEN_EXPIRED")
        except jwt.InvalidTokenError as e:
            raise AuthenticationError(f"Invalid token: {e}", error_code="INVALID_TOKEN")

        if payload.get("jti") in self.revoked_tokens:
            raise AuthenticationError("Token has been revoked", error_code="TOKEN_REVOKED")

        try:
            return int(payload["sub"])
        except (KeyError, TypeError, ValueError):
            raise AuthenticationError("Token subject is not an account id", error_code="INVALID_SUBJECT")

    def revoke_token(self, token: str) -> None:
        try:
            payload = jwt.decode(
                token,
                self.secret_key,
                algorithms=[self.algorithm],
                options={"verify_exp": False},
            )
        except jwt.InvalidTokenError as e:
            raise AuthenticationError(f"Invalid token: {e}", error_code="INVALID_TOKEN")
        jti = payload.get("jti")
        if jti:
            self.revoked_tokens.add(jti)
            logger.info(f"Revoked token: {jti[:8]}...")


security = HTTPBearer(auto_error=False)


async def get_current_caller(
    request: Request,
    credentials: Optional[HTTPAuthorizationCredentials] = Depends(security),
) -> int:
    """
    FastAPI dependency returning the authenticated account id.

    Usage:
        @app.post("/disputes/{case_id}/execute")
        async def execute(case_id: str, caller: int = Depends(get_current_caller)):
            ...
    """
    if credentials is None:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Missing authentication token",
            headers={"WWW-Authenticate": "Bearer"},
        )

    authenticator: CallerAuthenticator = request.app.state.authenticator
    try:
        return authenticator.validate_token(credentials.credentials)
    except AuthenticationError as e:
        logger.warning(f"Rejected token: {e.error_code}")
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail={"error": e.error_code, "message": e.message},
            headers={"WWW-Authenticate": "Bearer"},
        )
