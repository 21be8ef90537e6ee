"""
SpotMap Backend: Photo Service Tests
=====================================

What:  Validation and inline encoding of uploaded spot photos.
How:   MIME sniffing is patched where the test is about something else;
       the libmagic-backed tests are skipped when python-magic cannot load.
"""

import base64
from unittest.mock import patch

import pytest

from spotmap.config import settings
from spotmap.exceptions import MediaProcessingError, ValidationError
from spotmap.services.media_service import MediaService, PhotoUpload


class TestPhotoValidation:

    def setup_method(self):
        self.service = MediaService()

    def test_validate_extension_jpg(self):
        assert self.service.validate_extension("photo.jpg") == ".jpg"

    def test_validate_extension_uppercase(self):
        assert self.service.validate_extension("PHOTO.WEBP") == ".webp"

    def test_validate_extension_pdf_rejected(self):
        with pytest.raises(ValidationError) as exc_info:
            self.service.validate_extension("menu.pdf")
        assert exc_info.value.field == "photos"

    def test_validate_extension_missing_rejected(self):
        with pytest.raises(ValidationError):
            self.service.validate_extension("photo")

    def test_validate_size_at_limit(self):
        self.service.validate_size(None, settings.max_photo_size)

    def test_validate_size_over_limit(self):
        with pytest.raises(ValidationError):
            self.service.validate_size(None, settings.max_photo_size + 1)

    def test_validate_size_reported_length_over_limit(self):
        with pytest.raises(ValidationError):
            self.service.validate_size(settings.max_photo_size + 1, 10)

    def test_validate_size_empty(self):
        with pytest.raises(ValidationError) as exc_info:
            self.service.validate_size(0, 0)
        assert exc_info.value.message == "Photo is empty."

    def test_encode_data_url(self):
        url = self.service.encode_data_url(b"abc", "image/png")
        assert url == "data:image/png;base64," + base64.b64encode(b"abc").decode("ascii")


class TestPreparePhotos:

    def setup_method(self):
        self.service = MediaService()

    def test_keeps_first_four(self, sample_image_bytes):
        uploads = [PhotoUpload(filename=f"{i}.jpg", content=sample_image_bytes) for i in range(6)]
        with patch.object(self.service, "detect_mime_type", return_value="image/jpeg"):
            media = self.service.prepare_photos(uploads)

        assert len(media) == 4
        assert all(entry.startswith("data:image/jpeg;base64,") for entry in media)

    def test_rejects_non_image_content(self):
        upload = PhotoUpload(filename="fake.png", content=b"just text")
        with patch.object(self.service, "detect_mime_type", return_value="text/plain"):
            with pytest.raises(ValidationError) as exc_info:
                self.service.prepare_photo(upload)
        assert exc_info.value.context["detected_mime"] == "text/plain"

    def test_detection_failure(self, sample_image_bytes):
        with patch.dict("sys.modules", {"magic": None}):
            with pytest.raises(MediaProcessingError):
                self.service.detect_mime_type(sample_image_bytes)


class TestMimeSniffing:

    def setup_method(self):
        pytest.importorskip("magic")
        self.service = MediaService()

    def test_detects_jpeg(self, sample_image_bytes):
        assert self.service.detect_mime_type(sample_image_bytes) == "image/jpeg"

    def test_detects_png(self):
        png_header = b"\x89PNG\r\n\x1a\n" + b"\x00\x00\x00\rIHDR" + b"\x00" * 17
        assert self.service.detect_mime_type(png_header) == "image/png"
