"""
Core dependencies for route protection and service wiring
"""

from fastapi import Depends, Request, Security
from fastapi.security import HTTPBearer, HTTPAuthorizationCredentials
from contextkeeper.config import Settings
from contextkeeper.core.errors import Unauthenticated
from contextkeeper.database.gateway import StorageGateway
from contextkeeper.modules.auth.service import IdentityVerifier
from typing import Optional
import logging

logger = logging.getLogger(__name__)

# Declared for the OpenAPI schema; the header is parsed strictly below.
security = HTTPBearer(auto_error=False)


def get_settings(request: Request) -> Settings:
    return request.app.state.settings


def get_gateway(request: Request) -> StorageGateway:
    return request.app.state.gateway


def get_identity_verifier(request: Request) -> IdentityVerifier:
    return request.app.state.identity_verifier


def enforce_rate_limit(request: Request) -> None:
    """Apply the app's default limits to the matched route.

    Runs as a router dependency so the check does not rely on the limiter
    finding the endpoint among ``app.routes``.
    """
    limiter = request.app.state.limiter
    if limiter.enabled:
        limiter._check_request_limit(request, request.scope.get("endpoint"), True)


def _extract_bearer_token(authorization: Optional[str]) -> str:
    if not authorization:
        raise Unauthenticated("Missing authorization header")
    parts = authorization.split(" ")
    if len(parts) != 2 or parts[0] != "Bearer" or not parts[1]:
        raise Unauthenticated("Invalid authorization header format")
    return parts[1]


def get_current_user_id(
    request: Request,
    _credentials: Optional[HTTPAuthorizationCredentials] = Security(security),
    verifier: IdentityVerifier = Depends(get_identity_verifier),
) -> str:
    """Verify the bearer token and bind the user id to this request"""
    token = _extract_bearer_token(request.headers.get("Authorization"))
    user_id = verifier.verify(token)
    request.state.user_id = user_id
    return user_id
