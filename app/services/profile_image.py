"""Profile image storage on local disk."""

import os
import uuid
from pathlib import Path

from fastapi import UploadFile

from app.config import get_settings
from app.errors import ValidationError

ALLOWED_EXTENSIONS = {".jpg", ".jpeg", ".png", ".gif", ".webp"}
PROFILE_SUBDIR = "profiles"
PUBLIC_PREFIX = "/uploads"


class ProfileImageService:
    """Validates and stores profile pictures, returning their public URL."""

    def validate_upload_metadata(self, filename: str, content_type: str | None) -> str | None:
        """Validate upload file metadata (extension + MIME). Returns error message or None if valid."""
        ext = Path(filename).suffix.lower()
        if ext not in ALLOWED_EXTENSIONS:
            return f"Unsupported image type '{ext}'. Allowed: {', '.join(sorted(ALLOWED_EXTENSIONS))}"

        if content_type and not content_type.startswith("image/"):
            return f"Invalid content type '{content_type}'. Must be an image."

        return None

    def store(self, upload: UploadFile) -> str:
        """Copy an uploaded image to disk in chunks and return its URL.

        Raises ValidationError if the file type is wrong or it exceeds the size limit.
        """
        error = self.validate_upload_metadata(upload.filename or "", upload.content_type)
        if error:
            raise ValidationError(error, errors=[{"field": "profile", "message": error}])

        settings = get_settings()
        max_bytes = settings.MAX_PROFILE_IMAGE_MB * 1024 * 1024
        ext = Path(upload.filename or "image.bin").suffix.lower()
        stored_filename = f"{uuid.uuid4().hex}{ext}"
        target_dir = Path(settings.UPLOAD_DIR) / PROFILE_SUBDIR
        target_dir.mkdir(parents=True, exist_ok=True)

        file_path = target_dir / stored_filename
        file_size = 0
        chunk_size = 1024 * 64

        try:
            with open(file_path, "wb") as f:
                while True:
                    chunk = upload.file.read(chunk_size)
                    if not chunk:
                        break
                    file_size += len(chunk)
                    if file_size > max_bytes:
                        raise ValidationError(f"Image too large. Maximum: {settings.MAX_PROFILE_IMAGE_MB}MB")
                    f.write(chunk)
        except Exception:
            if file_path.exists():
                os.remove(file_path)
            raise

        return f"{PUBLIC_PREFIX}/{PROFILE_SUBDIR}/{stored_filename}"

    def delete(self, url: str | None) -> None:
        """Remove a stored image given the URL returned by store()."""
        prefix = f"{PUBLIC_PREFIX}/{PROFILE_SUBDIR}/"
        if not url or not url.startswith(prefix):
            return
        file_path = Path(get_settings().UPLOAD_DIR) / PROFILE_SUBDIR / Path(url[len(prefix) :]).name
        if file_path.exists():
            os.remove(file_path)


_profile_image_service: ProfileImageService | None = None


def get_profile_image_service() -> ProfileImageService:
    """Get singleton profile image service instance."""
    global _profile_image_service
    if _profile_image_service is None:
        _profile_image_service = ProfileImageService()
    return _profile_image_service
