import logging

import httpx
from supabase import Client
from supabase_auth.errors import AuthError

from contextkeeper.core.errors import Unauthenticated

logger = logging.getLogger(__name__)


def _looks_like_jwt(token: str) -> bool:
    parts = token.split(".")
    return len(parts) == 3 and all(parts)


class IdentityVerifier:
    """Resolves a bearer token to a Supabase user id.

    The token is accepted only when Supabase Auth itself confirms it. Claims are
    never decoded locally; the shape check below only rejects early.
    """

    def __init__(self, supabase: Client):
        self.supabase = supabase

    def verify(self, token: str) -> str:
        if not token or not _looks_like_jwt(token):
            raise Unauthenticated("Invalid or expired token")
        try:
            user_response = self.supabase.auth.get_user(jwt=token)
        except AuthError as e:
            logger.info("Token rejected by Supabase Auth: %s", getattr(e, "message", e))
            raise Unauthenticated("Invalid or expired token") from e
        except httpx.HTTPError as e:
            logger.warning("Could not reach Supabase Auth to verify token: %s", e)
            raise Unauthenticated("Authentication failed") from e
        user = user_response.user if user_response else None
        if not user or not user.id:
            raise Unauthenticated("Invalid or expired token")
        return str(user.id)
