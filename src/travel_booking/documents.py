"""Ticket documents uploaded as proof of purchase for each leg."""

from __future__ import annotations

import mimetypes
from pathlib import Path

from pydantic import BaseModel, ConfigDict, Field, field_validator

ALLOWED_TICKET_TYPES = {".pdf", ".png", ".jpeg", ".jpg", ".heic"}
MAX_TICKET_SIZE_BYTES = 10 * 1024 * 1024


class TicketDocument(BaseModel):
    """An uploaded ticket or hotel confirmation held in memory until submission."""

    filename: str = Field(..., description="Original file name")
    content: bytes = Field(..., repr=False, description="Raw file contents")
    content_type: str = Field(
        default="application/octet-stream", description="MIME type sent to the backend"
    )

    model_config = ConfigDict(frozen=True)

    @field_validator("filename")
    @classmethod
    def _validate_filename(cls, value: str) -> str:
        ext = Path(value).suffix.lower()
        if ext not in ALLOWED_TICKET_TYPES:
            allowed = ", ".join(sorted(ALLOWED_TICKET_TYPES))
            raise ValueError(
                f"Unsupported ticket file type '{ext}'. Allowed types: {allowed}"
            )
        return value

    @field_validator("content")
    @classmethod
    def _validate_size(cls, value: bytes) -> bytes:
        if len(value) > MAX_TICKET_SIZE_BYTES:
            raise ValueError("Ticket file exceeds 10MB limit")
        return value

    @classmethod
    def from_path(cls, path: str | Path) -> TicketDocument:
        """Read a document from disk, guessing its MIME type from the extension."""

        file_path = Path(path)
        try:
            content = file_path.read_bytes()
        except FileNotFoundError as exc:
            msg = f"Ticket file not found: {file_path}"
            raise FileNotFoundError(msg) from exc
        content_type, _ = mimetypes.guess_type(file_path.name)
        return cls(
            filename=file_path.name,
            content=content,
            content_type=content_type or "application/octet-stream",
        )

    @property
    def size_bytes(self) -> int:
        return len(self.content)

    def as_upload(self) -> tuple[str, bytes, str]:
        """Tuple in the shape httpx expects for a multipart file field."""

        return (self.filename, self.content, self.content_type)
