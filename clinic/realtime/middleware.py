"""
Websocket authentication.

Browsers cannot set an ``Authorization`` header on a websocket
handshake, so the access token travels as ``?token=<jwt>``.  The token
is checked with the same rules as the HTTP API.
"""
from urllib.parse import parse_qs

from channels.db import database_sync_to_async
from channels.middleware import BaseMiddleware
from django.contrib.auth.models import AnonymousUser
from rest_framework.exceptions import APIException

from clinic.authentication import BearerJWTAuthentication


@database_sync_to_async
def _user_for(raw_token: str):
    auth = BearerJWTAuthentication()
    try:
        return auth.get_user(auth.get_validated_token(raw_token))
    except APIException:
        return AnonymousUser()


class JWTQueryAuthMiddleware(BaseMiddleware):

    async def __call__(self, scope, receive, send):
        query = parse_qs(scope.get("query_string", b"").decode())
        token = (query.get("token") or [""])[0]
        scope = dict(scope, user=await _user_for(token) if token else AnonymousUser())
        return await super().__call__(scope, receive, send)
