"""Photographer endpoints with simple token auth."""

from __future__ import annotations

from typing import TYPE_CHECKING

from fastapi import APIRouter, Depends, Header, HTTPException, Request, status

from gallery_selection.api.schemas import (
    EmailConfigPayload,
    GalleryCreateRequest,
    GalleryUpdateRequest,
)
from gallery_selection.domain.email import EmailConfig

if TYPE_CHECKING:
    from gallery_selection.containers import AppContainer

router = APIRouter(prefix="/admin", tags=["admin"])


def _get_admin_token(request: Request) -> str:
    container: AppContainer = request.app.state.container
    return container.settings.admin_token


async def require_admin(
    x_admin_token: str | None = Header(default=None),
    admin_token: str = Depends(_get_admin_token),
) -> None:
    """Ensure requests include a valid admin token."""
    if not x_admin_token or x_admin_token != admin_token:
        raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED)


def _backend_unavailable() -> HTTPException:
    return HTTPException(
        status_code=status.HTTP_502_BAD_GATEWAY, detail="Backend indisponible"
    )


@router.get("/health", dependencies=[Depends(require_admin)])
async def admin_health() -> dict[str, str]:
    """Admin health check endpoint."""
    return {"status": "ok"}


@router.get("/email-config", dependencies=[Depends(require_admin)])
async def get_email_config(request: Request) -> dict[str, object]:
    """Return the notification settings saved on this device."""
    container: AppContainer = request.app.state.container
    email_service = container.email_service
    return {
        "config": email_service.get_config() or EmailConfig(),
        "configured": email_service.is_configured(),
    }


@router.put("/email-config", dependencies=[Depends(require_admin)])
async def save_email_config(
    payload: EmailConfigPayload, request: Request
) -> dict[str, object]:
    """Validate and save the notification settings."""
    container: AppContainer = request.app.state.container
    config = EmailConfig(**payload.model_dump())
    validation = container.email_service.validate_config(config)
    if not validation.is_valid:
        raise HTTPException(
            status_code=status.HTTP_422_UNPROCESSABLE_ENTITY, detail=validation.errors
        )
    if not container.email_service.save_config(config):
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail="Impossible d'enregistrer la configuration",
        )
    return {"config": config}


@router.post("/galleries", dependencies=[Depends(require_admin)])
async def create_gallery(
    payload: GalleryCreateRequest, request: Request
) -> dict[str, object]:
    """Create a gallery."""
    container: AppContainer = request.app.state.container
    gallery = container.catalog_service.create_gallery(
        payload.name,
        description=payload.description,
        is_public=payload.is_public,
        allow_comments=payload.allow_comments,
        allow_favorites=payload.allow_favorites,
    )
    if gallery is None:
        raise _backend_unavailable()
    return {"gallery": gallery}


@router.patch("/galleries/{gallery_id}", dependencies=[Depends(require_admin)])
async def update_gallery(
    gallery_id: str, payload: GalleryUpdateRequest, request: Request
) -> dict[str, object]:
    """Change gallery fields."""
    container: AppContainer = request.app.state.container
    gallery = container.catalog_service.update_gallery(
        gallery_id, payload.model_dump(exclude_unset=True)
    )
    if gallery is None:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND)
    return {"gallery": gallery}


@router.delete("/galleries/{gallery_id}", dependencies=[Depends(require_admin)])
async def delete_gallery(gallery_id: str, request: Request) -> dict[str, bool]:
    """Delete a gallery and its photos."""
    container: AppContainer = request.app.state.container
    return {"deleted": container.catalog_service.delete_gallery(gallery_id)}


@router.post("/galleries/{gallery_id}/photos", dependencies=[Depends(require_admin)])
async def upload_photo(
    gallery_id: str,
    file_name: str,
    request: Request,
    subfolder: str | None = None,
) -> dict[str, object]:
    """Upload a photo sent as the raw request body."""
    container: AppContainer = request.app.state.container
    data = await request.body()
    if not data:
        raise HTTPException(
            status_code=status.HTTP_422_UNPROCESSABLE_ENTITY, detail="Fichier vide"
        )
    content_type = request.headers.get("content-type", "application/octet-stream")
    photo = container.catalog_service.upload_photo(
        gallery_id, file_name, data, content_type, subfolder=subfolder
    )
    if photo is None:
        raise _backend_unavailable()
    return {"photo": photo}


@router.delete(
    "/galleries/{gallery_id}/photos/{photo_id}", dependencies=[Depends(require_admin)]
)
async def delete_photo(
    gallery_id: str, photo_id: str, request: Request
) -> dict[str, bool]:
    """Delete a photo and its file."""
    container: AppContainer = request.app.state.container
    return {"deleted": container.catalog_service.delete_photo(gallery_id, photo_id)}


@router.delete(
    "/galleries/{gallery_id}/favorites", dependencies=[Depends(require_admin)]
)
async def clear_favorites(gallery_id: str, request: Request) -> dict[str, bool]:
    """Clear the whole selection of a gallery."""
    container: AppContainer = request.app.state.container
    return {"cleared": container.favorites_service.clear_all_favorites(gallery_id)}


@router.delete(
    "/galleries/{gallery_id}/comments", dependencies=[Depends(require_admin)]
)
async def clear_comments(gallery_id: str, request: Request) -> dict[str, bool]:
    """Clear every comment of a gallery."""
    container: AppContainer = request.app.state.container
    return {"cleared": container.favorites_service.clear_all_comments(gallery_id)}


@router.get(
    "/galleries/{gallery_id}/selections", dependencies=[Depends(require_admin)]
)
async def selection_history(gallery_id: str, request: Request) -> dict[str, object]:
    """List the manifests exported for a gallery."""
    container: AppContainer = request.app.state.container
    history = container.selection_service.get_selection_history(gallery_id)
    return {"selections": history}
