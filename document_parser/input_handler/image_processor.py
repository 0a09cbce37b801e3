"""
Image Processor Module.

Loads uploaded images (PNG, JPG, JPEG) from memory and normalizes them
for OCR:
    - EXIF orientation correction
    - RGB conversion (alpha flattened onto white)
    - Downscaling of oversized scans
    - Optional contrast enhancement

Author: ML Engineering Team
"""

import io
from typing import Any, Dict, Optional, Tuple

from PIL import Image, ImageEnhance, ImageOps, UnidentifiedImageError

from config import get_config
from document_parser.utils.logger import get_logger
from document_parser.utils.exceptions import TextExtractionError

logger = get_logger(__name__)


class ImageProcessor:
    """
    Loader and normalizer for image uploads.

    Attributes:
        auto_orient: Apply the EXIF orientation tag.
        max_width: Maximum image width in pixels.
        max_height: Maximum image height in pixels.
        enhance_contrast: Apply a mild contrast boost.

    Example:
        >>> processor = ImageProcessor()
        >>> image, metadata = processor.load(png_bytes, "png")
    """

    def __init__(
        self,
        auto_orient: Optional[bool] = None,
        max_width: Optional[int] = None,
        max_height: Optional[int] = None,
        enhance_contrast: Optional[bool] = None
    ) -> None:
        self.auto_orient = (
            auto_orient if auto_orient is not None
            else get_config("input.image.auto_orient", True)
        )
        self.max_width = max_width or get_config("input.image.max_width", 4000)
        self.max_height = max_height or get_config("input.image.max_height", 4000)
        self.enhance_contrast = (
            enhance_contrast if enhance_contrast is not None
            else get_config("input.image.enhance_contrast", False)
        )

    def load(self, data: bytes, file_format: str) -> Tuple[Image.Image, Dict[str, Any]]:
        """
        Decode and normalize an image held in memory.

        Args:
            data: Raw image bytes.
            file_format: Declared format, used in error reporting.

        Returns:
            Tuple of (RGB PIL Image, metadata dictionary).

        Raises:
            TextExtractionError: If the bytes are not a decodable image.
        """
        try:
            image = Image.open(io.BytesIO(data))
            image.load()
        except (UnidentifiedImageError, Image.DecompressionBombError, OSError) as e:
            logger.error(f"Failed to decode {file_format} image: {e}")
            raise TextExtractionError(file_format, str(e))

        metadata = {
            "file_type": file_format,
            "file_size_bytes": len(data),
            "original_width": image.width,
            "original_height": image.height,
            "original_mode": image.mode,
        }

        if self.auto_orient:
            image = ImageOps.exif_transpose(image)
        image = self._convert_to_rgb(image)
        image = self._resize_if_needed(image)
        if self.enhance_contrast:
            image = ImageEnhance.Contrast(image).enhance(1.5)

        metadata["processed_width"] = image.width
        metadata["processed_height"] = image.height

        logger.debug(
            f"Loaded image {image.width}x{image.height} "
            f"(original: {metadata['original_width']}x{metadata['original_height']})"
        )
        return image, metadata

    def _convert_to_rgb(self, image: Image.Image) -> Image.Image:
        if image.mode == 'RGB':
            return image

        if image.mode in ('RGBA', 'LA'):
            background = Image.new('RGB', image.size, (255, 255, 255))
            background.paste(image, mask=image.getchannel('A'))
            return background

        return image.convert('RGB')

    def _resize_if_needed(self, image: Image.Image) -> Image.Image:
        """Downscale while keeping the aspect ratio."""
        width, height = image.size
        if width <= self.max_width and height <= self.max_height:
            return image

        ratio = min(self.max_width / width, self.max_height / height)
        new_size = (int(width * ratio), int(height * ratio))
        logger.debug(f"Resized image from {width}x{height} to {new_size[0]}x{new_size[1]}")
        return image.resize(new_size, Image.LANCZOS)
