"""Pillow helpers shared by the image and PDF processors."""

from pathlib import Path

from PIL import Image


def flatten_to_rgb(image: Image.Image) -> Image.Image:
    """Convert to RGB, compositing transparent pixels onto white."""
    if image.mode in ("RGBA", "LA") or (image.mode == "P" and "transparency" in image.info):
        rgba = image.convert("RGBA")
        background = Image.new("RGB", rgba.size, (255, 255, 255))
        background.paste(rgba, mask=rgba.getchannel("A"))
        return background
    if image.mode != "RGB":
        return image.convert("RGB")
    return image


def save_bounded_jpeg(image: Image.Image, target: Path, max_width: int, max_height: int, quality: int) -> None:
    """Write ``image`` as JPEG, shrunk to fit the box. Never upscales."""
    rgb = flatten_to_rgb(image)
    rgb.thumbnail((max_width, max_height), Image.Resampling.LANCZOS)
    rgb.save(target, "JPEG", quality=quality)
