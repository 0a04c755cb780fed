# template-compositor/backend/utils/compose_layers.py

from __future__ import annotations

from typing import List, NamedTuple

from PIL import Image

from .errors import LayerSizeMismatch
from .normalize_body import (
    BODY_HEIGHT,
    CANVAS_HEIGHT,
    CANVAS_WIDTH,
    FOOTER_HEIGHT,
    HEADER_HEIGHT,
)


WHITE = (255, 255, 255, 255)


class Band(NamedTuple):
    top: int
    height: int
    exact_height: bool


# Stack: header (0-199) + AI content (200-1149) + footer (1150-1349)
BANDS = {
    "header": Band(top=0, height=HEADER_HEIGHT, exact_height=False),
    "body": Band(top=HEADER_HEIGHT, height=BODY_HEIGHT, exact_height=True),
    "footer": Band(top=HEADER_HEIGHT + BODY_HEIGHT, height=FOOTER_HEIGHT, exact_height=False),
}


class Layer(NamedTuple):
    image: Image.Image
    top: int
    left: int
    role: str


def new_canvas() -> Image.Image:
    return Image.new("RGBA", (CANVAS_WIDTH, CANVAS_HEIGHT), WHITE)


def build_layers(header: Image.Image, body: Image.Image, footer: Image.Image) -> List[Layer]:
    return [
        Layer(header, BANDS["header"].top, 0, "header"),
        Layer(body, BANDS["body"].top, 0, "body"),
        Layer(footer, BANDS["footer"].top, 0, "footer"),
    ]


def check_layer_fits(layer: Layer) -> None:
    """
    Every layer spans the full canvas width and stays inside its own band.
    Header/footer may be shorter than 200px (canvas stays white below them);
    the body must fill its band exactly.
    """
    band = BANDS[layer.role]
    w, h = layer.image.size

    if band.exact_height:
        expected = f"{CANVAS_WIDTH}x{band.height}"
        ok = (w, h) == (CANVAS_WIDTH, band.height)
    else:
        expected = f"{CANVAS_WIDTH} wide and at most {band.height} tall"
        ok = w == CANVAS_WIDTH and 0 < h <= band.height

    if not ok or layer.left != 0 or layer.top != band.top:
        raise LayerSizeMismatch(layer.role, (w, h), expected)


def place_layer(canvas: Image.Image, layer: Layer) -> None:
    check_layer_fits(layer)
    src = layer.image if layer.image.mode == "RGBA" else layer.image.convert("RGBA")
    # single source-over pass; the canvas is opaque so the result stays opaque
    canvas.alpha_composite(src, dest=(layer.left, layer.top))


def compose(header: Image.Image, body: Image.Image, footer: Image.Image) -> Image.Image:
    """Stack header, normalized body and footer onto a fresh 1080x1350 white canvas."""
    canvas = new_canvas()
    for layer in build_layers(header, body, footer):
        place_layer(canvas, layer)
    return canvas
