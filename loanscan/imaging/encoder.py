import io

from PIL import Image, UnidentifiedImageError

from loanscan.imaging.exceptions import EncodingError


class JpegEncoder:
    """Re-encodes raster images as JPEG at a fixed quality."""

    def __init__(self, quality: int = 90) -> None:
        self._quality = quality

    def encode(self, image: Image.Image) -> bytes:
        """Encode a decoded image. Non-RGB modes are converted first.

        Raises:
            EncodingError: if Pillow cannot write the image.
        """
        try:
            if image.mode != "RGB":
                image = image.convert("RGB")
            buf = io.BytesIO()
            image.save(buf, format="JPEG", quality=self._quality)
            return buf.getvalue()
        except (OSError, ValueError) as exc:
            raise EncodingError(f"JPEG encoding failed: {exc}") from exc

    def reencode(self, raw_bytes: bytes) -> bytes:
        """Decode an uploaded image of any supported format and re-encode it.

        Raises:
            EncodingError: if the bytes are not a readable image.
        """
        try:
            with Image.open(io.BytesIO(raw_bytes)) as image:
                image.load()
                return self.encode(image)
        except EncodingError:
            raise
        except (UnidentifiedImageError, Image.DecompressionBombError, OSError, ValueError) as exc:
            raise EncodingError(f"Failed to process image: {exc}") from exc
