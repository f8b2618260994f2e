"""Domain errors surfaced to callers as blocking conditions."""


class GallerySelectionError(Exception):
    """Base class for user-facing gallery selection errors."""


class InvalidNameError(GallerySelectionError, ValueError):
    """Raised when a user display name fails validation."""

    def __init__(self, reason: str) -> None:
        super().__init__(reason)
        self.reason = reason


class InvalidClientInfoError(GallerySelectionError, ValueError):
    """Raised when client contact details fail validation."""

    def __init__(self, errors: list[str]) -> None:
        super().__init__("; ".join(errors))
        self.errors = list(errors)


class NoSelectionError(GallerySelectionError):
    """Raised when an export is requested without any selected photo."""

    def __init__(self, message: str = "Aucune photo sélectionnée.") -> None:
        super().__init__(message)
        self.message = message
