"""WebSocket authentication middleware for JWT and session auth."""

import logging
from typing import Optional
from urllib.parse import parse_qs

from channels.auth import AuthMiddlewareStack
from channels.db import database_sync_to_async
from channels.middleware import BaseMiddleware
from django.contrib.auth import get_user_model
from django.contrib.auth.models import AnonymousUser
from rest_framework_simplejwt.exceptions import TokenError
from rest_framework_simplejwt.tokens import AccessToken

logger = logging.getLogger(__name__)


def _token_from_scope(scope) -> Optional[str]:
    """Access token from ``?token=`` or an ``Authorization: Bearer`` header."""
    params = parse_qs(scope.get("query_string", b"").decode())
    token_list = params.get("token")
    if token_list:
        return token_list[0]

    for name, value in scope.get("headers", []):
        if name == b"authorization":
            scheme, _, credentials = value.decode().partition(" ")
            if scheme.lower() == "bearer" and credentials:
                return credentials
    return None


@database_sync_to_async
def _user_for_token(raw_token: str):
    try:
        user_id = AccessToken(raw_token)["user_id"]
    except (TokenError, KeyError) as e:
        logger.debug("JWT auth failed: %s", e)
        return AnonymousUser()

    User = get_user_model()
    return User.objects.filter(id=user_id, is_active=True).first() or AnonymousUser()


class JWTAuthMiddleware(BaseMiddleware):
    """
    Authenticate WebSocket connections with a simplejwt access token.

    Falls back to whatever user the session middleware already resolved,
    so browser clients on the admin domain keep working.
    """

    async def __call__(self, scope, receive, send):
        raw_token = _token_from_scope(scope)
        if raw_token:
            scope["user"] = await _user_for_token(raw_token)
        elif "user" not in scope:
            scope["user"] = AnonymousUser()
        return await super().__call__(scope, receive, send)


def JWTAuthMiddlewareStack(inner):
    return AuthMiddlewareStack(JWTAuthMiddleware(inner))
