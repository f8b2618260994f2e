"""Pydantic request models for the gallery API."""

from pydantic import BaseModel, Field


class SessionRequest(BaseModel):
    """Display name chosen on first favorite."""

    user_name: str


class FavoriteRequest(BaseModel):
    """Photo to add to the shared selection."""

    photo_id: str


class CommentRequest(BaseModel):
    """Comment on a photo."""

    photo_id: str
    text: str = Field(min_length=1)


class ClientInfoPayload(BaseModel):
    """Optional client contact details."""

    name: str | None = None
    email: str | None = None
    phone: str | None = None


class ExportRequest(BaseModel):
    """Selection export options."""

    personal: bool = False
    client_info: ClientInfoPayload | None = None


class EmailConfigPayload(BaseModel):
    """Photographer notification preferences."""

    photographer_email: str
    photographer_name: str = "Photographe"
    from_name: str = "Galerie Photo"
    subject: str = ""
    reply_to: str = ""
    enable_notifications: bool = True


class GalleryCreateRequest(BaseModel):
    """New gallery fields."""

    name: str = Field(min_length=1)
    description: str | None = None
    is_public: bool = True
    allow_comments: bool = True
    allow_favorites: bool = True


class GalleryUpdateRequest(BaseModel):
    """Gallery fields to change; unset fields are left untouched."""

    name: str | None = None
    description: str | None = None
    is_public: bool | None = None
    allow_comments: bool | None = None
    allow_favorites: bool | None = None
