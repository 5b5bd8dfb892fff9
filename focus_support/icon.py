from __future__ import annotations

from pathlib import Path

from PIL import Image, ImageDraw

ICON_SIZE = 64
IDLE_COLOR = (128, 128, 128)
ARMED_COLOR = (94, 129, 244)


def create_icon_image(armed: bool = True, size: int = ICON_SIZE) -> Image.Image:
    image = Image.new("RGBA", (size, size), (0, 0, 0, 0))
    draw = ImageDraw.Draw(image)
    color = ARMED_COLOR if armed else IDLE_COLOR
    margin = max(1, size // 16)
    draw.ellipse([margin, margin, size - margin, size - margin], fill=color)
    inner = size // 3
    draw.ellipse([inner, inner, size - inner, size - inner], fill=(255, 255, 255, 255))
    return image


def load_icon_image(path: Path, size: int = ICON_SIZE) -> Image.Image | None:
    """Load a user-supplied icon scaled to fit ``size``; None if it cannot be read."""
    try:
        with Image.open(path) as source:
            image = source.convert("RGBA")
    except OSError:
        return None
    image.thumbnail((size, size), Image.Resampling.LANCZOS)
    canvas = Image.new("RGBA", (size, size), (0, 0, 0, 0))
    canvas.paste(image, ((size - image.width) // 2, (size - image.height) // 2))
    return canvas


def tray_icon_image(armed: bool, custom: Path | None = None, size: int = ICON_SIZE) -> Image.Image:
    """User icon when one is readable, else the generated icon tinted by scheduler state."""
    if custom is not None:
        image = load_icon_image(custom, size)
        if image is not None:
            return image
    return create_icon_image(armed=armed, size=size)
