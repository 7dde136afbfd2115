from dataclasses import dataclass

ALLOWED_IMAGE_TYPES = ("image/jpeg", "image/png")


@dataclass(frozen=True)
class UploadedImage:
    """Raw image body of a single request. Never persisted as such."""
    content: bytes
    content_type: str

    @property
    def media_type(self) -> str:
        """The content type without parameters, lower-cased ('image/png; q=1' -> 'image/png')."""
        return self.content_type.split(";", 1)[0].strip().lower()

    @property
    def size(self) -> int:
        return len(self.content)
