# Copyright (c) 2021, Andrea Zoppi. All rights reserved.
#
# This file is part of Memedit.
#
# Memedit is free software: you can redistribute it and/or modify
# it under the terms of the GNU General Public License as published by
# the Free Software Foundation, either version 3 of the License, or
# (at your option) any later version.
#
# Memedit is distributed in the hope that it will be useful,
# but WITHOUT ANY WARRANTY; without even the implied warranty of
# MERCHANTABILITY or FITNESS FOR A PARTICULAR PURPOSE.  See the
# GNU General Public License for more details.
#
# You should have received a copy of the GNU General Public License
# along with Memedit.  If not, see <https://www.gnu.org/licenses/>.

r"""Pixel geometry and address to cell mapping.

Everything here is a pure function of its arguments; geometry is computed
again every frame and never cached.
"""

from math import ceil
from math import floor
from typing import Optional
from typing import Tuple

from bytesparse.base import Address

from .common import CellCoord
from .common import CellCoords
from .common import EditorConfig
from .common import FloatCoord
from .common import FontMetrics
from .common import Style
from .utils import count_hex_digits


# =====================================================================================================================

class Geometry:

    def __init__(self):
        self.cols: int = 1
        self.mid_cols_count: int = 0
        self.addr_digit_count: int = 1
        self.line_height: FloatCoord = 0.
        self.glyph_width: FloatCoord = 0.
        self.hex_cell_width: FloatCoord = 0.
        self.spacing_between_mid_cols: FloatCoord = 0.
        self.pos_hex_start: FloatCoord = 0.
        self.pos_hex_end: FloatCoord = 0.
        self.pos_ascii_start: FloatCoord = 0.
        self.pos_ascii_end: FloatCoord = 0.
        self.window_width: FloatCoord = 0.

    def __repr__(self) -> str:
        return (f'<{type(self).__name__} cols={self.cols} digits={self.addr_digit_count} '
                f'hex=[{self.pos_hex_start}:{self.pos_hex_end}] ascii=[{self.pos_ascii_start}:{self.pos_ascii_end}] '
                f'width={self.window_width}>')

    def hex_cell_x(self, cell_x: CellCoord) -> FloatCoord:
        pos_x = self.pos_hex_start + self.hex_cell_width * cell_x
        if self.mid_cols_count > 0:
            pos_x += (cell_x // self.mid_cols_count) * self.spacing_between_mid_cols
        return pos_x

    def ascii_cell_x(self, cell_x: CellCoord) -> FloatCoord:
        return self.pos_ascii_start + self.glyph_width * cell_x

    def hex_column_at(self, offset_x: FloatCoord) -> Optional[CellCoord]:
        r"""Hex column under a window-relative pixel offset, if any.

        Each cell catches clicks on its trailing space too; the extra
        spacing between column groups belongs to no cell.
        """
        for cell_x in range(self.cols):
            pos_x = self.hex_cell_x(cell_x)
            if pos_x <= offset_x < pos_x + self.hex_cell_width:
                return cell_x
        return None

    def ascii_column_at(self, offset_x: FloatCoord) -> Optional[CellCoord]:
        if self.pos_ascii_start <= offset_x < self.pos_ascii_end and self.glyph_width > 0:
            return int((offset_x - self.pos_ascii_start) // self.glyph_width)
        return None


def calc_geometry(
    config: EditorConfig,
    mem_size: int,
    base_display_addr: Address,
    metrics: FontMetrics,
    style: Style,
) -> Geometry:

    cols = max(1, config.cols)
    mid_cols_count = config.mid_cols_count
    g = Geometry()
    g.cols = cols
    g.mid_cols_count = mid_cols_count

    if config.addr_digits_count > 0:
        g.addr_digit_count = config.addr_digits_count
    else:
        g.addr_digit_count = count_hex_digits(base_display_addr + mem_size - 1)

    g.line_height = metrics.line_height
    g.glyph_width = metrics.glyph_width
    g.hex_cell_width = float(floor(g.glyph_width * 2.5))  # "FF " including the trailing space, to catch clicks
    g.spacing_between_mid_cols = float(floor(g.hex_cell_width * 0.25))
    g.pos_hex_start = (g.addr_digit_count + 2) * g.glyph_width
    g.pos_hex_end = g.pos_hex_start + (g.hex_cell_width * cols)
    g.pos_ascii_start = g.pos_hex_end
    g.pos_ascii_end = g.pos_hex_end

    if config.show_ascii:
        g.pos_ascii_start = g.pos_hex_end + g.glyph_width
        if mid_cols_count > 0:
            g.pos_ascii_start += ceil(cols / mid_cols_count) * g.spacing_between_mid_cols
        g.pos_ascii_end = g.pos_ascii_start + (cols * g.glyph_width)

    g.window_width = g.pos_ascii_end + style.scrollbar_size + (style.window_padding[0] * 2) + g.glyph_width
    return g


# =====================================================================================================================

def address_to_cell_coords(address: Address, cols: int) -> CellCoords:
    cell_y = address // cols
    cell_x = address - (cell_y * cols)
    return cell_x, cell_y


def cell_coords_to_address(cell_x: CellCoord, cell_y: CellCoord, cols: int) -> Address:
    cell_x = max(0, min(floor(cell_x), cols - 1))
    cell_y = floor(cell_y)
    return (cols * cell_y) + cell_x


def line_total_count(mem_size: int, cols: int) -> int:
    return max(1, (mem_size + cols - 1) // cols)


def line_cell_count(line: CellCoord, mem_size: int, cols: int) -> int:
    r"""Number of cells actually drawn on a line; the trailing one may be short."""
    start = line * cols
    return max(0, min(cols, mem_size - start))


# ---------------------------------------------------------------------------------------------------------------------

class LineClipper:
    r"""Window of lines intersecting the viewport of a scrolling region.

    Only the lines within ``[display_start, display_end)`` get drawn, but the
    whole content height is kept, so that scrolling to any line works.
    """

    def __init__(
        self,
        total_count: int,
        line_height: FloatCoord,
        scroll_y: FloatCoord,
        view_height: FloatCoord,
    ):
        self.total_count: int = total_count
        self.line_height: FloatCoord = line_height

        if line_height <= 0:
            self.display_start: int = 0
            self.display_end: int = total_count
        else:
            start = int(max(0., scroll_y) // line_height)
            endex = int(ceil((max(0., scroll_y) + max(0., view_height)) / line_height))
            self.display_start = max(0, min(start, total_count))
            self.display_end = max(self.display_start, min(endex, total_count))

    def __iter__(self):
        return iter(range(self.display_start, self.display_end))

    @property
    def content_height(self) -> FloatCoord:
        return self.total_count * self.line_height

    def bounds(self) -> Tuple[int, int]:
        return self.display_start, self.display_end
