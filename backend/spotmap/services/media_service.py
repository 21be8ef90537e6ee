"""
SpotMap Backend: Spot Photo Service
====================================

What:  Validates uploaded spot photos and encodes them as inline data URLs.
Why:   Photos live inside the spot document, so anything stored there must
       already be a checked image.
How:   Extension check, size check, MIME sniffing with libmagic, then base64
       encoding into `data:<mime>;base64,<payload>` strings that are stored
       inside the spot document.
Who:   Called by ViewService when the create form is submitted.

Validation order (cheapest first):
    1. Extension check: no content inspection needed
    2. Size check: Content-Length, then actual byte count
    3. MIME type check: python-magic reads the file header bytes
    4. Encode: O(n) base64 of the accepted bytes

Photos are never written to disk; the document store is the only storage.
"""

import base64
import logging
from dataclasses import dataclass
from pathlib import Path
from typing import List, Optional, Sequence

from spotmap.config import settings
from spotmap.exceptions import MediaProcessingError, ValidationError

logger = logging.getLogger(__name__)

ALLOWED_MIME_TYPES = {
    "image/png",
    "image/jpeg",
    "image/gif",
    "image/webp",
}

ALLOWED_EXTENSIONS = {".png", ".jpg", ".jpeg", ".gif", ".webp"}


@dataclass
class PhotoUpload:
    """One uploaded photo as read from the multipart request."""

    filename: str
    content: bytes
    content_length: Optional[int] = None


class MediaService:
    """Turns uploaded photos into the inline media entries of a spot."""

    def validate_extension(self, filename: str) -> str:
        """
        Returns the normalized extension (lowercase with dot).

        Raises:
            ValidationError if the extension is not an accepted image type.
        """
        ext = Path(filename).suffix.lower()
        if ext not in ALLOWED_EXTENSIONS:
            raise ValidationError(
                message=(
                    f"File type '{ext}' is not supported. "
                    f"Allowed types: {', '.join(sorted(ALLOWED_EXTENSIONS))}"
                ),
                field="photos",
                context={"extension": ext, "filename": filename},
            )
        return ext

    def validate_size(self, content_length: Optional[int], actual_size: int) -> None:
        """
        Checks the reported Content-Length first, then the real byte count.

        Raises:
            ValidationError for empty photos or photos over max_photo_size.
        """
        max_mb = settings.max_photo_size / (1024 * 1024)

        if actual_size == 0:
            raise ValidationError(message="Photo is empty.", field="photos")

        if content_length and content_length > settings.max_photo_size:
            raise ValidationError(
                message=f"Photo exceeds the maximum of {max_mb:.1f}MB. Please upload a smaller image.",
                field="photos",
                context={"max_size_mb": max_mb, "reported_size": content_length},
            )

        if actual_size > settings.max_photo_size:
            raise ValidationError(
                message=f"Photo ({actual_size / (1024 * 1024):.1f}MB) exceeds the maximum of {max_mb:.1f}MB.",
                field="photos",
                context={"max_size_mb": max_mb, "actual_size": actual_size},
            )

    def detect_mime_type(self, content: bytes) -> str:
        """
        Sniffs the MIME type from the file header bytes with python-magic.

        Raises:
            MediaProcessingError if libmagic is unavailable or fails.
        """
        try:
            import magic

            return magic.from_buffer(content, mime=True)
        except Exception as e:
            logger.error("MIME type detection failed: %s", str(e))
            raise MediaProcessingError(
                message="Could not verify the photo type. Please try again.",
                context={"error": str(e)},
            )

    def validate_mime_type(self, content: bytes, filename: str) -> str:
        mime_type = self.detect_mime_type(content)
        if mime_type not in ALLOWED_MIME_TYPES:
            raise ValidationError(
                message=(
                    f"File content type '{mime_type}' is not supported. "
                    "The photo must be a PNG, JPEG, GIF or WebP image."
                ),
                field="photos",
                context={"detected_mime": mime_type, "filename": filename},
            )
        return mime_type

    def encode_data_url(self, content: bytes, mime_type: str) -> str:
        """data:<mime>;base64,<payload>"""
        payload = base64.b64encode(content).decode("ascii")
        return f"data:{mime_type};base64,{payload}"

    def prepare_photo(self, upload: PhotoUpload) -> str:
        """Validate one photo and return its inline media entry."""
        self.validate_extension(upload.filename)
        self.validate_size(upload.content_length, len(upload.content))
        mime_type = self.validate_mime_type(upload.content, upload.filename)
        return self.encode_data_url(upload.content, mime_type)

    def prepare_photos(self, uploads: Sequence[PhotoUpload]) -> List[str]:
        """
        Validate and encode a batch of photos in upload order.

        Only the first max_photos_per_spot uploads are kept; extra files are
        dropped the same way the photo picker stops at its limit.
        """
        kept = list(uploads)[: settings.max_photos_per_spot]
        if len(uploads) > len(kept):
            logger.info(
                "Dropping %d photo(s) beyond the limit of %d",
                len(uploads) - len(kept),
                settings.max_photos_per_spot,
            )
        media = [self.prepare_photo(upload) for upload in kept]
        logger.info(
            "Prepared %d photo(s), %d bytes inline",
            len(media),
            sum(len(entry) for entry in media),
        )
        return media


media_service = MediaService()
