#!/usr/bin/env python3
"""
Image normalization ahead of transcription.
"""
import io

from PIL import Image, ImageFilter, ImageOps, UnidentifiedImageError

from config.settings import NORMALIZE_JPEG_QUALITY, NORMALIZE_MAX_WIDTH

Image.MAX_IMAGE_PIXELS = 500_000_000

try:
    Resample = Image.Resampling  # Pillow ≥ 10
except AttributeError:
    Resample = Image


class NormalizationError(Exception):
    """The image could not be decoded or re-encoded."""


class ImageProcessor:
    """Image normalization as static methods."""

    @staticmethod
    def cap_width(pil_image: Image.Image, max_width: int = NORMALIZE_MAX_WIDTH) -> Image.Image:
        """Downscale to max_width keeping aspect ratio. Never upscales."""
        w, h = pil_image.size
        if w <= max_width:
            return pil_image
        scale = max_width / w
        new_size = (max_width, max(1, int(round(h * scale))))
        return pil_image.resize(new_size, Resample.LANCZOS)

    @staticmethod
    def normalize_image(raw: bytes, max_width: int = NORMALIZE_MAX_WIDTH, quality: int = NORMALIZE_JPEG_QUALITY) -> bytes:
        """
        Prepare a photo for OCR.

        Grayscale, contrast stretch, unsharp mask, width cap, JPEG re-encode.

        Args:
            raw: Original image bytes as downloaded.
            max_width: Width cap in pixels.
            quality: JPEG quality.

        Returns:
            bytes: JPEG-encoded single-channel image.

        Raises:
            NormalizationError: If decoding or encoding fails.
        """
        try:
            with Image.open(io.BytesIO(raw)) as pil_image:
                pil_image = ImageOps.exif_transpose(pil_image)
                gray = pil_image.convert("L")

            gray = ImageOps.autocontrast(gray)
            gray = gray.filter(ImageFilter.UnsharpMask(radius=2, percent=150, threshold=2))
            gray = ImageProcessor.cap_width(gray, max_width)

            out = io.BytesIO()
            gray.save(out, format="JPEG", quality=quality)
            return out.getvalue()

        except (UnidentifiedImageError, OSError, ValueError, Image.DecompressionBombError) as e:
            raise NormalizationError(f"Could not prepare image: {e}") from e


cap_width = ImageProcessor.cap_width
normalize_image = ImageProcessor.normalize_image
