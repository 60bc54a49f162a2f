# app/dependencies/session.py

import logging
from typing import Optional

from fastapi import Request, Response

from app.core.config import settings
from app.core.security import InvalidTokenError, TokenIssuer, get_bearer_token, looks_like_jwt, token_issuer
from app.modules.auth.schemas import Principal
from app.modules.auth.session_service import SessionStore, session_store

logger = logging.getLogger(__name__)


def set_session_cookie(response: Response, session_id: str) -> None:
    response.set_cookie(
        key=settings.SESSION_COOKIE_NAME,
        value=session_id,
        max_age=settings.SESSION_COOKIE_MAX_AGE,
        path="/",
        secure=settings.SESSION_COOKIE_SECURE,
        httponly=True,
    )


def clear_session_cookie(response: Response) -> None:
    response.delete_cookie(
        key=settings.SESSION_COOKIE_NAME,
        path="/",
        secure=settings.SESSION_COOKIE_SECURE,
        httponly=True,
    )


class AuthenticationGateway:
    """
    Per-request middleware that turns a session credential into
    request.state.principal.

    Credential sources, in order:
    1) CASHCACHED_SESSION cookie (session id)
    2) Authorization: Bearer <session id | session-bound JWT>

    Never rejects a request: an absent or dead session just leaves the
    request unauthenticated for the route dependencies to judge.
    """

    def __init__(self, sessions: SessionStore, tokens: TokenIssuer) -> None:
        self.sessions = sessions
        self.tokens = tokens

    def extract_credential(self, request: Request) -> Optional[str]:
        cookie = request.cookies.get(settings.SESSION_COOKIE_NAME)
        if cookie:
            return cookie
        return get_bearer_token(request)

    def _session_id_for(self, credential: str) -> tuple[Optional[str], Optional[str]]:
        """
        Returns (session_id, expected_username). The username is only known
        when the credential was a token.
        """
        if not looks_like_jwt(credential):
            return credential, None

        try:
            claims = self.tokens.verify(credential)
        except InvalidTokenError as ex:
            logger.debug("Rejected bearer token: %s", ex)
            return None, None

        return claims.session_id, claims.username

    async def resolve(self, request: Request) -> Optional[Principal]:
        credential = self.extract_credential(request)
        if not credential:
            return None

        session_id, expected_username = self._session_id_for(credential)
        if not session_id:
            return None

        if not await self.sessions.is_valid(session_id):
            return None

        data = await self.sessions.get_session_data(session_id)
        if data is None:
            return None

        if expected_username is not None and data.username != expected_username:
            logger.warning("Token subject does not match session %s", session_id)
            return None

        return Principal.from_session(data)

    async def __call__(self, request: Request, call_next):
        principal = await self.resolve(request)
        request.state.principal = principal

        response = await call_next(request)

        if principal is not None and not self._sets_session_cookie(response):
            set_session_cookie(response, principal.session_id)

        return response

    @staticmethod
    def _sets_session_cookie(response: Response) -> bool:
        prefix = f"{settings.SESSION_COOKIE_NAME}="
        return any(
            value.startswith(prefix)
            for value in response.headers.getlist("set-cookie")
        )


session_gateway = AuthenticationGateway(session_store, token_issuer)
