"""Tile descrambling for pages the site serves in shuffled order.

A scrambled page is cut into a grid of tiles at most 200px on a side
(roughly a fifth of the image per axis). Every column except the last is
cyclically shifted by the scramble level, and rows likewise. The last
column and last row, which may be clipped, stay in place.
"""

import io
import math
from dataclasses import dataclass
from typing import Iterator

from PIL import Image


GRID_FACTOR = 5
MAX_TILE_SIZE = 200

# modes the PNG encoder cannot write
NON_PNG_MODES = {"CMYK", "YCbCr", "LAB", "HSV"}


@dataclass(frozen=True)
class TileGrid:
    """Tile layout for one image size.

    ``last_col`` and ``last_row`` are zero-based indices of the final
    column/row, not counts.
    """
    width: int
    height: int
    tile_width: int
    tile_height: int
    last_col: int
    last_row: int

    @classmethod
    def for_size(cls, width: int, height: int) -> "TileGrid":
        if width < 1 or height < 1:
            raise ValueError(f"Cannot tile an empty image ({width}x{height})")
        tile_width = min(MAX_TILE_SIZE, math.ceil(width / GRID_FACTOR))
        tile_height = min(MAX_TILE_SIZE, math.ceil(height / GRID_FACTOR))
        return cls(
            width=width,
            height=height,
            tile_width=tile_width,
            tile_height=tile_height,
            last_col=math.ceil(width / tile_width) - 1,
            last_row=math.ceil(height / tile_height) - 1,
        )

    def tiles(self, level: int) -> Iterator[tuple[tuple[int, int, int, int], tuple[int, int]]]:
        """Yield ``(source_box, dest_origin)`` for every tile in row-major order."""
        for y in range(self.last_row + 1):
            for m in range(self.last_col + 1):
                src_col = source_tile(m, self.last_col, level)
                src_row = source_tile(y, self.last_row, level)
                w = min(self.tile_width, self.width - m * self.tile_width)
                h = min(self.tile_height, self.height - y * self.tile_height)
                left, top = src_col * self.tile_width, src_row * self.tile_height
                yield (left, top, left + w, top + h), (m * self.tile_width, y * self.tile_height)


def source_tile(index: int, last: int, level: int) -> int:
    """Map a destination column/row index to the source index it is copied from."""
    if last == 0 or index >= last:
        return index
    return (last - index + level) % last


def descramble(image: Image.Image, level: int) -> Image.Image:
    """Reassemble a scrambled page.

    Returns ``image`` itself when ``level < 1``.
    """
    if level < 1:
        return image

    grid = TileGrid.for_size(*image.size)
    # every tile of the copy is overwritten; copying keeps mode and palette
    result = image.copy()
    for box, origin in grid.tiles(level):
        result.paste(image.crop(box), origin)
    return result


def scramble(image: Image.Image, level: int) -> Image.Image:
    """Apply the site's forward shuffle, the inverse of ``descramble``."""
    if level < 1:
        return image

    grid = TileGrid.for_size(*image.size)
    result = image.copy()
    for (left, top, right, bottom), (dest_x, dest_y) in grid.tiles(level):
        tile = image.crop((dest_x, dest_y, dest_x + right - left, dest_y + bottom - top))
        result.paste(tile, (left, top))
    return result


def descramble_bytes(data: bytes, level: int) -> bytes:
    """Decode an image, descramble it and re-encode it as PNG.

    Raises:
        PIL.UnidentifiedImageError: If ``data`` is not a decodable image.
    """
    with Image.open(io.BytesIO(data)) as image:
        image.load()
        restored = descramble(image, level)
        if restored.mode in NON_PNG_MODES:
            restored = restored.convert("RGB")
        buffer = io.BytesIO()
        restored.save(buffer, format="PNG")
    return buffer.getvalue()
