"""Image decode/encode utilities for rendition production."""

import io

from PIL import Image, ImageOps

from .error_handling import decode_errors
from .models import OutputFormat, RenditionSpec


SUPPORTED_INPUT_FORMATS = ("JPEG", "PNG")


def decode_image(data: bytes) -> "Image.Image":
    """
    Decode a complete upload buffer into a fully loaded PIL image.

    EXIF orientation is applied so the stored renditions display upright.

    Args:
        data: Raw upload bytes

    Returns:
        Loaded PIL Image

    Raises:
        DecodeError: If the bytes are empty, not an image, corrupt, or a
            container other than JPEG/PNG
    """
    with decode_errors():
        if not data:
            raise ValueError("upload is empty")

        image = Image.open(io.BytesIO(data), formats=SUPPORTED_INPUT_FORMATS)
        image.load()
        return ImageOps.exif_transpose(image)


def apply_greyscale(img: "Image.Image") -> "Image.Image":
    """Convert to greyscale while keeping an alpha channel if present."""
    if img.mode in ("RGBA", "LA") or (img.mode == "P" and "transparency" in img.info):
        return img.convert("LA")
    return img.convert("L")


def _prepare_mode(img: "Image.Image", output_format: OutputFormat) -> "Image.Image":
    if output_format is OutputFormat.JPEG:
        # JPEG has no alpha channel
        if img.mode in ("RGBA", "LA", "P"):
            background = Image.new("RGB", img.size, (255, 255, 255))
            rgba = img.convert("RGBA")
            background.paste(rgba, mask=rgba.getchannel("A"))
            return background
        if img.mode not in ("RGB", "L"):
            return img.convert("RGB")
        return img

    if img.mode not in ("RGB", "RGBA", "L", "LA", "P"):
        return img.convert("RGBA")
    return img


def render(img: "Image.Image", spec: RenditionSpec, greyscale: bool = False) -> bytes:
    """
    Produce the encoded bytes for one rendition.

    Args:
        img: Decoded source image (left untouched)
        spec: Target size, quality and format
        greyscale: Convert to greyscale before encoding

    Returns:
        Encoded image bytes
    """
    rendition = img
    if (img.width, img.height) != (spec.width, spec.height):
        rendition = img.resize((spec.width, spec.height), Image.Resampling.LANCZOS)

    if greyscale:
        rendition = apply_greyscale(rendition)

    rendition = _prepare_mode(rendition, spec.format)

    output_stream = io.BytesIO()
    save_kwargs = {"format": spec.format.pil_format, "optimize": True}
    if spec.format is OutputFormat.JPEG:
        save_kwargs["quality"] = spec.quality

    rendition.save(output_stream, **save_kwargs)
    return output_stream.getvalue()
