"""
Pytest configuration and fixtures
"""
import base64
import io

import pytest
from PIL import Image


def png_bytes(size, color=(0, 0, 0, 255), mode="RGBA"):
    img = Image.new(mode, size, color)
    buf = io.BytesIO()
    img.save(buf, format="PNG")
    return buf.getvalue()


def png_b64(size, color=(0, 0, 0, 255), mode="RGBA"):
    return base64.b64encode(png_bytes(size, color, mode)).decode("utf-8")


def open_b64(data):
    return Image.open(io.BytesIO(base64.b64decode(data)))


@pytest.fixture
def header_b64():
    return png_b64((1080, 200), (200, 0, 0, 255))


@pytest.fixture
def footer_b64():
    return png_b64((1080, 200), (0, 0, 200, 255))


@pytest.fixture
def ai_b64():
    return png_b64((1024, 1024), (0, 180, 0, 255))


@pytest.fixture
def striped_ai_image():
    """1080x1350 image where every row has a distinct colour."""
    img = Image.new("RGBA", (1080, 1350))
    for y in range(1350):
        img.paste((y % 256, y // 256, 7, 255), (0, y, 1080, y + 1))
    return img
