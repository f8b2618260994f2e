"""Selection export: manifest rendering, upload and notification."""

import base64
import logging
from collections.abc import Callable
from dataclasses import dataclass, field
from datetime import UTC, date, datetime

from gallery_selection.domain.catalog import Photo
from gallery_selection.domain.email import SelectionNotification
from gallery_selection.domain.errors import InvalidClientInfoError, NoSelectionError
from gallery_selection.domain.favorites import Comment, Favorite
from gallery_selection.domain.results import TransportError
from gallery_selection.domain.selection import (
    AttributedComment,
    ClientInfo,
    ExportResult,
    NotificationResult,
    PhotoAttribution,
    SelectedPhoto,
    SelectionExport,
    SelectionFile,
    SelectionType,
    ValidationResult,
)
from gallery_selection.services.catalog import CatalogService
from gallery_selection.services.email import EmailService
from gallery_selection.services.favorites import FavoritesService, dedupe_favorites
from gallery_selection.services.identity import IdentityService
from gallery_selection.services.stores import BlobStore
from gallery_selection.services.validation import validate_client_info

BANNER = "=" * 60
SECTION_RULE = "-" * 30
ANONYMOUS_USER = "Anonyme"
MANIFEST_CONTENT_TYPE = "text/plain;charset=UTF-8"

_SELECTION_LABELS = {
    SelectionType.PERSONAL: "Personnelle",
    SelectionType.COMPLETE: "Complète",
}

_logger = logging.getLogger(__name__)


def _utcnow() -> datetime:
    return datetime.now(tz=UTC)


def generate_file_name(
    gallery_id: str, selection_type: SelectionType, day: date
) -> str:
    """Return the manifest file name for an export made on a given day."""
    return f"selection-{selection_type.value}-{gallery_id}-{day:%Y-%m-%d}.txt"


def build_multi_user_data(
    favorites: list[Favorite], comments: list[Comment]
) -> list[PhotoAttribution]:
    """Group favorite rows and comments by photo with their authors."""
    users_by_photo: dict[str, list[str]] = {}
    for favorite in favorites:
        users = users_by_photo.setdefault(favorite.photo_id, [])
        name = favorite.user_name or ANONYMOUS_USER
        if name not in users:
            users.append(name)
    comments_by_photo: dict[str, list[AttributedComment]] = {}
    for comment in comments:
        if comment.photo_id not in users_by_photo:
            continue
        comments_by_photo.setdefault(comment.photo_id, []).append(
            AttributedComment(
                user_name=comment.user_name or ANONYMOUS_USER, text=comment.text
            )
        )
    return [
        PhotoAttribution(
            photo_id=photo_id,
            users=users,
            comments=comments_by_photo.get(photo_id, []),
        )
        for photo_id, users in users_by_photo.items()
    ]


def generate_selection_text(export: SelectionExport) -> str:
    """Render the plain-text manifest; output depends only on the export."""
    lines = [
        BANNER,
        "SÉLECTION CLIENT - GALERIE PHOTO",
        BANNER,
        "",
        f"Galerie: {export.gallery_name}",
        f"ID Galerie: {export.gallery_id}",
        f"Type de sélection: {_SELECTION_LABELS[export.selection_type]}",
        f"Date d'export: {export.export_date:%d/%m/%Y %H:%M:%S}",
        f"Total photos sélectionnées: {export.total_selected}",
        "",
    ]

    client = export.client_info
    if client is not None and not client.is_empty:
        lines.append("INFORMATIONS CLIENT:")
        lines.append(SECTION_RULE)
        if client.name:
            lines.append(f"Nom: {client.name}")
        if client.email:
            lines.append(f"Email: {client.email}")
        if client.phone:
            lines.append(f"Téléphone: {client.phone}")
        lines.append("")

    attribution = {entry.photo_id: entry for entry in export.multi_user_data}
    lines.append("PHOTOS SÉLECTIONNÉES:")
    lines.append(SECTION_RULE)
    for index, photo in enumerate(export.selected_photos, start=1):
        lines.append(f"{index}. {photo.photo_name}")
        if photo.original_name and photo.original_name != photo.photo_name:
            lines.append(f"   Fichier original: {photo.original_name}")
        lines.append(f"   ID: {photo.photo_id}")
        lines.append(f"   URL: {photo.url}")
        entry = attribution.get(photo.photo_id)
        if entry is not None and entry.users:
            lines.append(f"   Sélectionnée par: {', '.join(entry.users)}")
        if photo.comments:
            lines.append("   Commentaires:")
            lines.extend(f"   - {comment}" for comment in photo.comments)
        lines.append("")

    lines.append("DÉTAIL PAR UTILISATEUR:")
    lines.append(SECTION_RULE)
    lines.extend(_per_user_lines(export))
    lines.append("")

    lines.append(BANNER)
    lines.append("Fichier généré automatiquement par le système de galerie photo")
    lines.append(BANNER)
    return "\n".join(lines) + "\n"


def _per_user_lines(export: SelectionExport) -> list[str]:
    names = {photo.photo_id: photo.photo_name for photo in export.selected_photos}
    photos_by_user: dict[str, list[str]] = {}
    comments_by_user: dict[str, list[str]] = {}
    for entry in export.multi_user_data:
        photo_name = names.get(entry.photo_id, entry.photo_id)
        for user in entry.users:
            photos_by_user.setdefault(user, []).append(photo_name)
        for comment in entry.comments:
            comments_by_user.setdefault(comment.user_name, []).append(
                f"{photo_name}: {comment.text}"
            )

    users = sorted(set(photos_by_user) | set(comments_by_user), key=str.casefold)
    if not users:
        return ["Aucune attribution disponible."]
    lines = []
    for user in users:
        photos = photos_by_user.get(user, [])
        lines.append(f"{user} ({len(photos)} photo{'s' if len(photos) != 1 else ''}):")
        lines.extend(f"   - {name}" for name in photos)
        user_comments = comments_by_user.get(user, [])
        if user_comments:
            lines.append("   Commentaires:")
            lines.extend(f"   - {line}" for line in user_comments)
    return lines


def _resolve_photo(photo_id: str, photos: list[Photo]) -> Photo | None:
    for photo in photos:
        if photo_id in (photo.id, photo.bucket_path, photo.name):
            return photo
    return None


def _temporary_url(content: bytes) -> str:
    encoded = base64.b64encode(content).decode("ascii")
    return f"data:text/plain;charset=utf-8;base64,{encoded}"


@dataclass
class SelectionService:
    """Turns the reconciled selection of a gallery into a stored manifest."""

    favorites_service: FavoritesService
    identity: IdentityService
    catalog: CatalogService
    blob_store: BlobStore
    email_service: EmailService
    photos_bucket: str = "photos"
    selections_prefix: str = "selections"
    public_base_url: str = "http://localhost:5173"
    clock: Callable[[], datetime] = field(default=_utcnow)

    def validate_client_info(
        self,
        name: str | None = None,
        email: str | None = None,
        phone: str | None = None,
    ) -> ValidationResult:
        return validate_client_info(name, email, phone)

    def build_export(
        self,
        gallery_id: str,
        *,
        personal: bool,
        client_info: ClientInfo | None = None,
    ) -> tuple[SelectionExport, bool]:
        """Assemble the export document.

        Returns the export and whether a personal export had to cover the
        whole shared selection because no session exists on this device.
        """
        gallery = self.catalog.get_gallery(gallery_id)
        gallery_name = gallery.name if gallery else gallery_id

        rows = self.favorites_service.get_favorite_rows(gallery_id)
        if not rows:
            raise NoSelectionError()

        session = self.identity.get_current_session()
        personal_fallback = personal and session is None
        comments = self.favorites_service.get_comments(gallery_id)
        if personal and session is not None:
            rows = [row for row in rows if row.user_id == session.user_id]
            comments = [c for c in comments if c.user_id == session.user_id]
            if not rows:
                raise NoSelectionError()
        if personal_fallback:
            _logger.warning(
                "Personal export of %s without a session covers the shared selection",
                gallery_id,
            )

        favorites = dedupe_favorites(rows)
        multi_user_data = build_multi_user_data(rows, comments)
        photos = self.catalog.list_photos(gallery_id)

        comments_by_photo: dict[str, list[str]] = {}
        for comment in comments:
            label = comment.text
            if comment.user_name:
                label = f"{comment.text} ({comment.user_name})"
            comments_by_photo.setdefault(comment.photo_id, []).append(label)

        selected_photos = []
        for favorite in favorites:
            photo = _resolve_photo(favorite.photo_id, photos)
            fallback_name = favorite.photo_id.rsplit("/", 1)[-1]
            selected_photos.append(
                SelectedPhoto(
                    photo_id=favorite.photo_id,
                    photo_name=photo.name if photo else fallback_name,
                    original_name=photo.original_name if photo else fallback_name,
                    url=photo.url if photo else "",
                    comments=comments_by_photo.get(favorite.photo_id, []),
                )
            )

        selection_type = SelectionType.COMPLETE
        if personal:
            selection_type = SelectionType.PERSONAL
        export = SelectionExport(
            gallery_id=gallery_id,
            gallery_name=gallery_name,
            export_date=self.clock(),
            selection_type=selection_type,
            selected_photos=selected_photos,
            total_selected=len(selected_photos),
            client_info=client_info,
            multi_user_data=multi_user_data,
        )
        return export, personal_fallback

    async def export_selection(
        self,
        gallery_id: str,
        *,
        personal: bool = False,
        client_info: ClientInfo | None = None,
    ) -> ExportResult:
        """Build, upload and announce the manifest for a gallery."""
        cleaned_info = client_info.cleaned() if client_info else None
        if cleaned_info is not None:
            validation = validate_client_info(
                cleaned_info.name, cleaned_info.email, cleaned_info.phone
            )
            if not validation.is_valid:
                raise InvalidClientInfoError(validation.errors)
            if cleaned_info.is_empty:
                cleaned_info = None

        export, personal_fallback = self.build_export(
            gallery_id, personal=personal, client_info=cleaned_info
        )
        content = generate_selection_text(export).encode("utf-8")
        file_name = generate_file_name(
            gallery_id, export.selection_type, export.export_date.date()
        )
        path = f"{self.selections_prefix}/{file_name}"

        uploaded = self.blob_store.upload(
            self.photos_bucket,
            path,
            content,
            content_type=MANIFEST_CONTENT_TYPE,
            upsert=True,
        )
        download_url = ""
        if not isinstance(uploaded, TransportError):
            download_url = self.blob_store.get_public_url(self.photos_bucket, path)
        is_temporary = not download_url
        if is_temporary:
            _logger.warning(
                "Selection upload for %s failed; using a temporary URL", gallery_id
            )
            download_url = _temporary_url(content)
        else:
            _logger.info("Selection exported: %s", file_name)

        if is_temporary:
            notification = NotificationResult(
                sent=False, skipped_reason="temporary-url"
            )
        else:
            notification = await self.email_service.send_selection_notification(
                self._notification(export, file_name, download_url)
            )

        return ExportResult(
            export=export,
            file_name=file_name,
            download_url=download_url,
            is_temporary=is_temporary,
            personal_fallback=personal_fallback,
            notification=notification,
        )

    def get_selection_history(self, gallery_id: str) -> list[SelectionFile]:
        """Return manifests exported for a gallery, newest first."""
        result = self.blob_store.list(self.photos_bucket, self.selections_prefix)
        if isinstance(result, TransportError):
            _logger.warning("Selection history unavailable: %s", result.message)
            return []
        prefixes = tuple(
            f"selection-{selection_type.value}-{gallery_id}-"
            for selection_type in SelectionType
        )
        files = [
            SelectionFile(
                name=entry.name,
                created_at=entry.created_at,
                url=self.blob_store.get_public_url(
                    self.photos_bucket, f"{self.selections_prefix}/{entry.name}"
                ),
            )
            for entry in result.value
            if entry.name.endswith(".txt") and entry.name.startswith(prefixes)
        ]
        oldest = datetime.min.replace(tzinfo=UTC)
        return sorted(files, key=lambda item: item.created_at or oldest, reverse=True)

    def _notification(
        self, export: SelectionExport, file_name: str, download_url: str
    ) -> SelectionNotification:
        client = export.client_info or ClientInfo()
        base_url = self.public_base_url.rstrip("/")
        return SelectionNotification(
            gallery_id=export.gallery_id,
            gallery_name=export.gallery_name,
            selection_type=export.selection_type.value,
            selection_count=export.total_selected,
            download_url=download_url,
            file_name=file_name,
            export_date=f"{export.export_date:%d/%m/%Y %H:%M}",
            gallery_url=f"{base_url}/gallery/{export.gallery_id}",
            photo_names=[photo.photo_name for photo in export.selected_photos],
            client_name=client.name,
            client_email=client.email,
            client_phone=client.phone,
        )
