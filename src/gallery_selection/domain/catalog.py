"""Domain models for galleries and photos."""

from dataclasses import dataclass
from datetime import datetime


@dataclass(frozen=True)
class Gallery:
    """A named collection of photos."""

    id: str
    name: str
    created_at: datetime | None = None
    updated_at: datetime | None = None
    description: str | None = None
    is_public: bool = True
    bucket_name: str | None = None
    bucket_folder: str | None = None
    photo_count: int = 0
    allow_comments: bool = True
    allow_favorites: bool = True


@dataclass(frozen=True)
class Photo:
    """A photo stored in a gallery."""

    id: str
    gallery_id: str
    name: str
    original_name: str
    url: str
    uploaded_at: datetime | None = None
    size: int = 0
    mime_type: str = "image/jpeg"
    description: str = ""
    subfolder: str | None = None
    bucket_path: str | None = None


@dataclass(frozen=True)
class SubfolderInfo:
    """Photo count summary for a gallery sub-folder."""

    name: str
    photo_count: int
    last_updated: datetime | None


@dataclass(frozen=True)
class BlobEntry:
    """An object listed from blob storage."""

    name: str
    created_at: datetime | None
    size: int = 0
    mime_type: str | None = None
