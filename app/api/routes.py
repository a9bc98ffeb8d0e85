"""
FastAPI routes for the Yandex.Disk integration.
"""

from __future__ import annotations

import logging
import uuid
from datetime import datetime, timedelta, timezone
from http import HTTPStatus
from typing import Annotated, Any, Optional

from fastapi import APIRouter, Depends, File, Form, HTTPException, Query, Request, Response, UploadFile
from fastapi.responses import JSONResponse, RedirectResponse

from app.clients.yandex_oauth import OAuthTokenExchangeError, OAuthTokenNotFoundError
from app.dependencies import (
    get_app_settings,
    get_archive_workflow,
    get_disk_client,
    get_disk_file_service,
    get_folder_provisioner,
    get_oauth_state_encoder,
    get_token_service,
    get_yandex_oauth_client,
)
from app.dependencies.config import get_yandex_settings
from app.models.disk import FolderSpec, ResourceState
from app.schemas import (
    ArchiveRequest,
    ArchiveResponse,
    ConnectionStatus,
    FileLinksResponse,
    FolderRequest,
    HrefResponse,
    MoveRequest,
    OAuthCallbackPayload,
    ProvisionResponse,
    ResolveUrlRequest,
    SubtaskRenameRequest,
    TaskFolderRequest,
)
from app.services.disk_files import FileNameMismatchError

router = APIRouter()
yandex_router = APIRouter(prefix="/integrations/yandex", tags=["yandex-disk"])
logger = logging.getLogger(__name__)

SubjectQuery = Query(
    default=None,
    description="Caller identifier; only consulted when credentials are scoped per user.",
)


async def require_access_token(
    token_service: Annotated[Any, Depends(get_token_service)],
    user_id: Optional[str] = SubjectQuery,
) -> str:
    """Resolve a fresh access token or fail the request (handled in app.main)."""
    credential = await token_service.get_credential(user_id)
    return credential.access_token


AccessToken = Annotated[str, Depends(require_access_token)]


def _wants_html(request: Request) -> bool:
    return "text/html" in request.headers.get("accept", "").lower()


@router.get("/health", status_code=HTTPStatus.OK)
async def healthcheck() -> dict:
    """Simple health endpoint for monitoring."""
    return {"status": "ok"}


@yandex_router.get("/connect", status_code=HTTPStatus.OK)
async def start_yandex_oauth_flow(
    request: Request,
    oauth_client: Annotated[Any, Depends(get_yandex_oauth_client)],
    state_encoder: Annotated[Any, Depends(get_oauth_state_encoder)],
    user_id: str = Query(..., description="User identifier initiating the connection."),
    redirect_to: str | None = Query(
        default=None,
        description="Optional URL to redirect back to on successful authentication.",
    ),
    redirect: bool = Query(
        default=False,
        description="When true, respond with a redirect to the Yandex consent screen.",
    ),
) -> Any:
    """Kick off the OAuth flow by generating a signed state and authorization URL."""
    state_payload = {
        "nonce": uuid.uuid4().hex,
        "redirect_to": redirect_to,
        "user_id": user_id,
        "issued_at": datetime.now(timezone.utc).isoformat(),
    }
    state = state_encoder.encode(state_payload)
    authorization_url = oauth_client.build_authorization_url(state=state)
    logger.info("Yandex OAuth connect initiated", extra={"user_id": user_id})

    if redirect or _wants_html(request):
        return RedirectResponse(url=authorization_url, status_code=HTTPStatus.TEMPORARY_REDIRECT)
    return {"authorization_url": authorization_url, "state": state}


@yandex_router.post("/callback", status_code=HTTPStatus.OK)
async def handle_yandex_oauth_callback(
    payload: OAuthCallbackPayload,
    oauth_client: Annotated[Any, Depends(get_yandex_oauth_client)],
    state_encoder: Annotated[Any, Depends(get_oauth_state_encoder)],
    token_service: Annotated[Any, Depends(get_token_service)],
    settings: Annotated[Any, Depends(get_app_settings)],
) -> dict:
    """Complete the OAuth exchange, store the credential, return redirect metadata."""
    state_data = state_encoder.decode(payload.state)

    issued_at_raw = state_data.get("issued_at")
    if not issued_at_raw:
        raise HTTPException(
            status_code=HTTPStatus.BAD_REQUEST,
            detail="Missing issued_at in state token.",
        )
    try:
        issued_at = datetime.fromisoformat(issued_at_raw)
    except ValueError as exc:
        raise HTTPException(
            status_code=HTTPStatus.BAD_REQUEST,
            detail="Invalid issued_at in state token.",
        ) from exc
    if issued_at.tzinfo is None:
        issued_at = issued_at.replace(tzinfo=timezone.utc)

    now = datetime.now(timezone.utc)
    if now - issued_at > timedelta(seconds=settings.oauth.state_ttl_seconds):
        raise HTTPException(
            status_code=HTTPStatus.BAD_REQUEST, detail="OAuth state token has expired."
        )

    user_id = state_data.get("user_id")
    if not user_id:
        raise HTTPException(
            status_code=HTTPStatus.BAD_REQUEST,
            detail="Missing user identifier in state token.",
        )

    try:
        token_payload = await oauth_client.exchange_authorization_code(payload.code)
    except OAuthTokenExchangeError as exc:
        logger.error("Yandex authorization code exchange failed: %s", exc)
        raise HTTPException(
            status_code=HTTPStatus.BAD_REQUEST,
            detail="Failed to exchange authorization code.",
        ) from exc

    credential = token_service.connect(user_id, token_payload)
    logger.info("Yandex.Disk connected", extra={"user_id": user_id})
    return {
        "status": "connected",
        "expires_at": credential.expires_at.isoformat() if credential.expires_at else None,
        "redirect_to": state_data.get("redirect_to"),
    }


@yandex_router.get("/callback", status_code=HTTPStatus.OK)
async def handle_yandex_oauth_callback_get(
    request: Request,
    oauth_client: Annotated[Any, Depends(get_yandex_oauth_client)],
    state_encoder: Annotated[Any, Depends(get_oauth_state_encoder)],
    token_service: Annotated[Any, Depends(get_token_service)],
    settings: Annotated[Any, Depends(get_app_settings)],
    state: str = Query(..., description="OAuth state token."),
    code: str = Query(..., description="Authorization code returned by Yandex."),
    redirect: bool = Query(
        default=False,
        description="When true, redirect browser clients instead of returning JSON.",
    ),
) -> Response:
    result = await handle_yandex_oauth_callback(
        payload=OAuthCallbackPayload(state=state, code=code),
        oauth_client=oauth_client,
        state_encoder=state_encoder,
        token_service=token_service,
        settings=settings,
    )

    redirect_target = result.get("redirect_to") or settings.frontend_base_url
    if redirect_target and (redirect or _wants_html(request)):
        return RedirectResponse(url=str(redirect_target), status_code=HTTPStatus.TEMPORARY_REDIRECT)
    return JSONResponse(content=result)


@yandex_router.get("/status", response_model=ConnectionStatus, response_model_exclude_none=True)
async def connection_status(
    token_service: Annotated[Any, Depends(get_token_service)],
    yandex_settings: Annotated[Any, Depends(get_yandex_settings)],
    user_id: Optional[str] = SubjectQuery,
) -> ConnectionStatus:
    """Report whether Yandex.Disk is connected, refreshing an expired token."""
    try:
        credential = await token_service.get_credential(user_id)
    except OAuthTokenNotFoundError:
        return ConnectionStatus(connected=False)
    return ConnectionStatus(
        connected=True,
        expires_at=credential.expires_at,
        subject_id=credential.subject_id,
        token_scope=yandex_settings.token_scope,
    )


@yandex_router.get("/disk")
async def disk_info(
    access_token: AccessToken,
    disk_client: Annotated[Any, Depends(get_disk_client)],
) -> dict:
    return await disk_client.disk_info(access_token)


@yandex_router.get("/list")
async def list_resources(
    access_token: AccessToken,
    disk_client: Annotated[Any, Depends(get_disk_client)],
    path: str = Query("/", description="Folder to list."),
    limit: int = Query(20, ge=1, le=1000),
) -> dict:
    return await disk_client.list_resources(access_token, path, limit)


@yandex_router.post("/create-folder", response_model=ProvisionResponse)
async def create_public_folder(
    payload: FolderRequest,
    access_token: AccessToken,
    provisioner: Annotated[Any, Depends(get_folder_provisioner)],
) -> ProvisionResponse:
    """Create the folder (and any missing parents) and publish it."""
    try:
        spec = FolderSpec.for_path(payload.path)
    except ValueError as exc:
        raise HTTPException(status_code=HTTPStatus.UNPROCESSABLE_ENTITY, detail=str(exc)) from exc
    result = await provisioner.ensure_public_folder(access_token, spec)
    return ProvisionResponse(**result.as_dict())


@yandex_router.post("/publish", response_model=HrefResponse)
async def publish_resource(
    payload: FolderRequest,
    access_token: AccessToken,
    provisioner: Annotated[Any, Depends(get_folder_provisioner)],
) -> HrefResponse:
    """Publish an existing resource and return its public link."""
    public_url = await provisioner.get_or_publish_public_url(access_token, payload.path)
    return HrefResponse(href=public_url)


@yandex_router.delete("/delete")
async def delete_resource(
    access_token: AccessToken,
    disk_client: Annotated[Any, Depends(get_disk_client)],
    path: str = Query(..., min_length=1),
    permanently: bool = Query(False),
) -> dict:
    return await disk_client.delete_resource(access_token, path, permanently=permanently)


@yandex_router.get("/download-url", response_model=HrefResponse)
async def download_url(
    access_token: AccessToken,
    files: Annotated[Any, Depends(get_disk_file_service)],
    path: str = Query(..., min_length=1),
) -> HrefResponse:
    """Embeddable public link for a file, publishing it when needed."""
    return HrefResponse(href=await files.public_file_url(access_token, path))


@yandex_router.post("/upload", response_model=FileLinksResponse, response_model_exclude_none=True)
async def upload_file(
    access_token: AccessToken,
    files: Annotated[Any, Depends(get_disk_file_service)],
    path: str = Form(..., min_length=1),
    file: UploadFile = File(...),
) -> FileLinksResponse:
    content = await file.read()
    result = await files.upload(access_token, path, content)
    return FileLinksResponse(**result)


@yandex_router.post("/replace", response_model=FileLinksResponse, response_model_exclude_none=True)
async def replace_file(
    access_token: AccessToken,
    files: Annotated[Any, Depends(get_disk_file_service)],
    path: str = Form(..., min_length=1),
    file: UploadFile = File(...),
) -> FileLinksResponse:
    """Overwrite an existing result file with a same-named upload."""
    content = await file.read()
    try:
        result = await files.replace(access_token, path, file.filename or "", content)
    except FileNameMismatchError as exc:
        raise HTTPException(status_code=HTTPStatus.UNPROCESSABLE_ENTITY, detail=str(exc)) from exc
    return FileLinksResponse(**result)


@yandex_router.post("/move")
async def move_resource(
    payload: MoveRequest,
    access_token: AccessToken,
    disk_client: Annotated[Any, Depends(get_disk_client)],
) -> dict:
    state = await disk_client.move_resource(
        access_token, payload.source, payload.destination, overwrite=payload.overwrite
    )
    if state is ResourceState.ALREADY_EXISTS:
        raise HTTPException(
            status_code=HTTPStatus.CONFLICT,
            detail=f"Destination {payload.destination} already exists.",
        )
    return {"success": True}


@yandex_router.post("/archive", response_model=ArchiveResponse, response_model_exclude_none=True)
async def archive_files(
    payload: ArchiveRequest,
    access_token: AccessToken,
    workflow: Annotated[Any, Depends(get_archive_workflow)],
) -> ArchiveResponse:
    """Move files into the sibling ``old`` folder; reports per-file results."""
    outcome = await workflow.archive(access_token, payload.paths)
    return ArchiveResponse(**outcome.as_dict())


@yandex_router.post("/task-folders", response_model=ProvisionResponse)
async def ensure_task_folder(
    payload: TaskFolderRequest,
    access_token: AccessToken,
    provisioner: Annotated[Any, Depends(get_folder_provisioner)],
) -> ProvisionResponse:
    try:
        spec = FolderSpec.for_task(payload.brand, payload.task_type, payload.article, payload.prefix)
    except ValueError as exc:
        raise HTTPException(status_code=HTTPStatus.UNPROCESSABLE_ENTITY, detail=str(exc)) from exc
    result = await provisioner.ensure_public_folder(access_token, spec)
    return ProvisionResponse(**result.as_dict())


@yandex_router.post("/task-folders/delete")
async def delete_task_folder(
    payload: TaskFolderRequest,
    access_token: AccessToken,
    files: Annotated[Any, Depends(get_disk_file_service)],
) -> dict:
    """Best-effort removal of a task folder; never fails on provider errors."""
    try:
        deleted = await files.remove_task_folder(
            access_token,
            brand=payload.brand,
            task_type=payload.task_type,
            article=payload.article,
            prefix=payload.prefix,
        )
    except ValueError as exc:
        raise HTTPException(status_code=HTTPStatus.UNPROCESSABLE_ENTITY, detail=str(exc)) from exc
    return {"deleted": deleted}


@yandex_router.post("/subtask-folders/rename")
async def rename_subtask_folder(
    payload: SubtaskRenameRequest,
    access_token: AccessToken,
    files: Annotated[Any, Depends(get_disk_file_service)],
) -> dict:
    moved = await files.rename_subtask_folder(
        access_token,
        brand=payload.brand,
        old_name=payload.old_name,
        new_name=payload.new_name,
        old_ownership=payload.old_ownership,
        new_ownership=payload.new_ownership,
    )
    return {"moved": moved}


@yandex_router.post("/resolve-url", response_model=HrefResponse)
async def resolve_url(
    payload: ResolveUrlRequest,
    disk_client: Annotated[Any, Depends(get_disk_client)],
) -> HrefResponse:
    """Follow a Yandex downloader link to its final storage URL."""
    return HrefResponse(href=await disk_client.resolve_final_url(payload.url))


router.include_router(yandex_router)

__all__ = ["require_access_token", "router"]
