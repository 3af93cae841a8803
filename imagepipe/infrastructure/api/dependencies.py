from __future__ import annotations

from typing import Annotated

from fastapi import Depends, HTTPException, Request, Security, status
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer

from imagepipe.application.asset_record_manager import AssetRecordManager
from imagepipe.application.use_cases.upload_image import UploadImageUseCase
from imagepipe.infrastructure.container import ServiceContainer
from imagepipe.infrastructure.database.supabase_client import SupabaseAuthAdapter, UserInfo

_bearer_scheme = HTTPBearer(auto_error=False)


def get_container(request: Request) -> ServiceContainer:
    return request.app.state.container


def get_auth_adapter(
    container: Annotated[ServiceContainer, Depends(get_container)],
) -> SupabaseAuthAdapter:
    return container.auth


def get_current_user(
    credentials: Annotated[HTTPAuthorizationCredentials | None, Security(_bearer_scheme)] = None,
    auth: Annotated[SupabaseAuthAdapter, Depends(get_auth_adapter)] = None,
) -> UserInfo:
    if not credentials or not credentials.scheme or credentials.scheme.lower() != "bearer":
        raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail="Missing bearer token")
    token = credentials.credentials
    if not token:
        raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail="Missing bearer token")
    try:
        return auth.validate_token(token)
    except ValueError as exc:
        raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail=str(exc)) from exc


def get_record_manager(
    container: Annotated[ServiceContainer, Depends(get_container)],
) -> AssetRecordManager:
    return container.records


def get_upload_use_case(
    container: Annotated[ServiceContainer, Depends(get_container)],
) -> UploadImageUseCase:
    return container.uploads


def get_base_url(
    request: Request, container: Annotated[ServiceContainer, Depends(get_container)]
) -> str:
    """Origin used in public file URLs: ``{scheme}://{host}``."""
    if container.settings.public_base_url:
        return container.settings.public_base_url.rstrip("/")
    host = request.headers.get("host") or request.url.netloc
    return f"{request.url.scheme}://{host}"
