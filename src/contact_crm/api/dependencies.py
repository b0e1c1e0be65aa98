"""FastAPI dependencies — settings, services and the verified caller."""

from __future__ import annotations

from fastapi import Depends, Request
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer

from contact_crm.config import Settings
from contact_crm.errors import AuthenticationError, Forbidden
from contact_crm.services.file_storage import LocalFileStorage
from contact_crm.services.token_service import Identity, TokenService

_bearer = HTTPBearer(auto_error=False)


def get_settings(request: Request) -> Settings:
    return request.app.state.settings


def get_token_service(request: Request) -> TokenService:
    return request.app.state.token_service


def get_file_storage(request: Request) -> LocalFileStorage:
    return request.app.state.file_storage


async def get_identity(
    credentials: HTTPAuthorizationCredentials | None = Depends(_bearer),
    tokens: TokenService = Depends(get_token_service),
) -> Identity:
    """Resolve the caller from the ``Authorization: Bearer`` header."""
    if credentials is None or credentials.scheme.lower() != "bearer":
        raise AuthenticationError("Missing bearer token")
    return tokens.verify(credentials.credentials)


async def require_admin(identity: Identity = Depends(get_identity)) -> Identity:
    if not identity.is_admin:
        raise Forbidden("Administration rights required")
    return identity
