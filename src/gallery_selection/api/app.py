"""FastAPI application factory."""

import logging
from collections.abc import AsyncIterator
from contextlib import asynccontextmanager

from fastapi import Depends, FastAPI, HTTPException, Request, Response, status

from gallery_selection.api.admin import router as admin_router
from gallery_selection.api.schemas import (
    ClientInfoPayload,
    CommentRequest,
    ExportRequest,
    FavoriteRequest,
    SessionRequest,
)
from gallery_selection.app_logging import configure_logging
from gallery_selection.containers import AppContainer
from gallery_selection.domain.errors import (
    InvalidClientInfoError,
    InvalidNameError,
    NoSelectionError,
)
from gallery_selection.domain.selection import ClientInfo, ExportResult
from gallery_selection.services.devices import DeviceServices

PERSONAL_FALLBACK_WARNING = (
    "Aucune session utilisateur: la sélection personnelle contient "
    "les favoris de tous les utilisateurs."
)
DEVICE_COOKIE = "gallery_device_id"
_DEVICE_COOKIE_MAX_AGE = 60 * 60 * 24 * 365


def get_device(request: Request, response: Response) -> DeviceServices:
    """Resolve the calling browser, issuing a device cookie on first contact."""
    container: AppContainer = request.app.state.container
    cookie = request.cookies.get(DEVICE_COOKIE)
    device = container.devices.for_device(cookie)
    if cookie != device.device_id:
        response.set_cookie(
            key=DEVICE_COOKIE,
            value=device.device_id,
            httponly=True,
            samesite="lax",
            max_age=_DEVICE_COOKIE_MAX_AGE,
            path="/",
        )
    return device


def create_app(container: AppContainer) -> FastAPI:  # noqa: PLR0915
    """Create a FastAPI app configured with dependencies."""
    configure_logging()
    logger = logging.getLogger(__name__)

    @asynccontextmanager
    async def lifespan(app: FastAPI) -> AsyncIterator[None]:
        try:
            report = app.state.container.favorites_service.migrate_local_data()
            if report.has_failures:
                logger.warning("Startup migration left %s errors", len(report.errors))
        except Exception:
            logger.exception("Failed to migrate local gallery data")
        yield
        await app.state.container.close_resources()

    app = FastAPI(lifespan=lifespan)
    app.state.container = container

    app.include_router(admin_router)

    @app.get("/health")
    async def health() -> dict[str, str]:
        """Simple health check endpoint."""
        return {"status": "ok"}

    @app.get("/identity")
    async def identity(
        device: DeviceServices = Depends(get_device),
    ) -> dict[str, object]:
        """Return the device id and the current display-name session."""
        return {
            "device_id": device.device_id,
            "session": device.identity.get_current_session(),
            "stats": device.identity.get_user_stats(),
        }

    @app.post("/session")
    async def create_session(
        payload: SessionRequest, device: DeviceServices = Depends(get_device)
    ) -> dict[str, object]:
        """Create the display-name session for this device."""
        try:
            session = device.identity.create_session(payload.user_name)
        except InvalidNameError as exc:
            raise HTTPException(
                status_code=status.HTTP_422_UNPROCESSABLE_ENTITY, detail=exc.reason
            ) from exc
        return {"session": session}

    @app.patch("/session")
    async def rename_session(
        payload: SessionRequest, device: DeviceServices = Depends(get_device)
    ) -> dict[str, object]:
        """Change the display name of the current session."""
        try:
            updated = device.identity.update_user_name(payload.user_name)
        except InvalidNameError as exc:
            raise HTTPException(
                status_code=status.HTTP_422_UNPROCESSABLE_ENTITY, detail=exc.reason
            ) from exc
        if not updated:
            raise HTTPException(status_code=status.HTTP_404_NOT_FOUND)
        return {"session": device.identity.get_current_session()}

    @app.delete("/session")
    async def clear_session(
        device: DeviceServices = Depends(get_device),
    ) -> dict[str, str]:
        """Forget the display-name session."""
        device.identity.clear_session()
        return {"status": "ok"}

    @app.get("/galleries/{gallery_id}")
    async def get_gallery(gallery_id: str, request: Request) -> dict[str, object]:
        """Return gallery metadata."""
        state_container: AppContainer = request.app.state.container
        gallery = state_container.catalog_service.get_gallery(gallery_id)
        if gallery is None:
            raise HTTPException(status_code=status.HTTP_404_NOT_FOUND)
        return {"gallery": gallery}

    @app.get("/galleries/{gallery_id}/photos")
    async def list_photos(
        gallery_id: str, request: Request, subfolder: str | None = None
    ) -> dict[str, object]:
        """Return the photos of a gallery."""
        state_container: AppContainer = request.app.state.container
        photos = state_container.catalog_service.list_photos(gallery_id, subfolder)
        return {"photos": photos}

    @app.get("/galleries/{gallery_id}/subfolders")
    async def list_subfolders(gallery_id: str, request: Request) -> dict[str, object]:
        """Return the sub-folders of a gallery."""
        state_container: AppContainer = request.app.state.container
        subfolders = state_container.catalog_service.list_subfolders(gallery_id)
        return {"subfolders": subfolders}

    @app.get("/galleries/{gallery_id}/favorites")
    async def list_favorites(
        gallery_id: str, device: DeviceServices = Depends(get_device)
    ) -> dict[str, object]:
        """Return the shared selection of a gallery."""
        return {"favorites": device.favorites.get_favorites(gallery_id)}

    @app.get("/galleries/{gallery_id}/favorites/count")
    async def count_favorites(
        gallery_id: str, device: DeviceServices = Depends(get_device)
    ) -> dict[str, int]:
        """Return the number of selected photos."""
        return {"count": device.favorites.get_favorites_count(gallery_id)}

    @app.post("/galleries/{gallery_id}/favorites")
    async def add_favorite(
        gallery_id: str,
        payload: FavoriteRequest,
        device: DeviceServices = Depends(get_device),
    ) -> dict[str, object]:
        """Add a photo to the shared selection."""
        favorite = device.favorites.add_to_favorites(gallery_id, payload.photo_id)
        return {
            "favorite": favorite,
            "name_required": not device.identity.is_logged_in(),
        }

    @app.delete("/galleries/{gallery_id}/favorites/{photo_id:path}")
    async def remove_favorite(
        gallery_id: str, photo_id: str, device: DeviceServices = Depends(get_device)
    ) -> dict[str, bool]:
        """Remove a photo from the selection for everyone."""
        removed = device.favorites.remove_from_favorites(gallery_id, photo_id)
        return {"removed": removed}

    @app.get("/galleries/{gallery_id}/comments")
    async def list_comments(
        gallery_id: str,
        photo_id: str | None = None,
        device: DeviceServices = Depends(get_device),
    ) -> dict[str, object]:
        """Return the comments of a gallery or of one photo."""
        if photo_id:
            comments = device.favorites.get_photo_comments(gallery_id, photo_id)
        else:
            comments = device.favorites.get_comments(gallery_id)
        return {"comments": comments}

    @app.get("/galleries/{gallery_id}/comments/count")
    async def count_comments(
        gallery_id: str,
        photo_id: str | None = None,
        device: DeviceServices = Depends(get_device),
    ) -> dict[str, int]:
        """Return the number of comments of a gallery or of one photo."""
        if photo_id:
            count = device.favorites.get_photo_comments_count(gallery_id, photo_id)
        else:
            count = device.favorites.get_comments_count(gallery_id)
        return {"count": count}

    @app.post("/galleries/{gallery_id}/comments")
    async def add_comment(
        gallery_id: str,
        payload: CommentRequest,
        device: DeviceServices = Depends(get_device),
    ) -> dict[str, object]:
        """Append a comment to a photo."""
        comment = device.favorites.add_comment(
            gallery_id, payload.photo_id, payload.text
        )
        return {"comment": comment}

    @app.delete("/comments/{comment_id}")
    async def remove_comment(
        comment_id: str, device: DeviceServices = Depends(get_device)
    ) -> dict[str, bool]:
        """Delete a comment created from this device."""
        return {"removed": device.favorites.remove_comment(comment_id)}

    @app.post("/selection/validate")
    async def validate_selection_contact(
        payload: ClientInfoPayload, request: Request
    ) -> dict[str, object]:
        """Check client contact details before submitting a selection."""
        state_container: AppContainer = request.app.state.container
        result = state_container.selection_service.validate_client_info(
            payload.name, payload.email, payload.phone
        )
        return {"valid": result.is_valid, "errors": result.errors}

    @app.post("/galleries/{gallery_id}/selection")
    async def export_selection(
        gallery_id: str,
        payload: ExportRequest,
        device: DeviceServices = Depends(get_device),
    ) -> dict[str, object]:
        """Export the selection of a gallery and notify the photographer."""
        client_info = None
        if payload.client_info is not None:
            client_info = ClientInfo(**payload.client_info.model_dump())
        try:
            result = await device.selection.export_selection(
                gallery_id, personal=payload.personal, client_info=client_info
            )
        except InvalidClientInfoError as exc:
            raise HTTPException(
                status_code=status.HTTP_422_UNPROCESSABLE_ENTITY, detail=exc.errors
            ) from exc
        except NoSelectionError as exc:
            raise HTTPException(
                status_code=status.HTTP_409_CONFLICT, detail=exc.message
            ) from exc
        return _export_response(result)

    return app


def _export_response(result: ExportResult) -> dict[str, object]:
    """Shape an export result for the API response."""
    warnings = [PERSONAL_FALLBACK_WARNING] if result.personal_fallback else []
    return {
        "file_name": result.file_name,
        "download_url": result.download_url,
        "is_temporary": result.is_temporary,
        "total_selected": result.export.total_selected,
        "export": result.export,
        "notification": result.notification,
        "warnings": warnings,
    }
