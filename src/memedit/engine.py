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

import enum
import logging
from typing import Optional
from typing import Tuple

from bytesparse.base import Address

from .common import BufferView
from .common import CellCoord
from .common import FloatCoord
from .common import InputSnapshot
from .common import Key
from .common import TextInputResult
from .layout import Geometry
from .utils import DATA_TYPE_SIZE
from .utils import DataType
from .utils import Endianness
from .utils import ValueFormatEnum
from .utils import format_byte
from .utils import format_value
from .utils import parse_byte
from .utils import parse_hex

_log = logging.getLogger(__name__)


# =====================================================================================================================

class HighlightRange:

    def __init__(self):
        self.min: Optional[Address] = None
        self.max: Optional[Address] = None

    def __bool__(self) -> bool:
        return self.min is not None and self.max is not None

    def __repr__(self) -> str:
        return f'{type(self).__name__}({self.min!r}, {self.max!r})'

    def set(self, start: Address, endex: Address) -> None:
        if endex <= start:
            raise ValueError(f'empty highlight range: [{start}, {endex})')
        self.min = start
        self.max = endex

    def clear(self) -> None:
        self.min = None
        self.max = None

    def contains(self, address: Address) -> bool:
        return bool(self) and self.min <= address < self.max


# ---------------------------------------------------------------------------------------------------------------------

class HighlightResolver:
    r"""Tells which cells get a background tint, and how wide.

    A cell is highlighted when within the user range, when the user predicate
    says so, or when covered by the value being previewed.
    """

    def __init__(
        self,
        view: BufferView,
        highlight_range: HighlightRange,
        preview_address: Optional[Address] = None,
        preview_size: int = 0,
    ):
        self._view = view
        self._range = highlight_range
        self._preview_address = preview_address
        self._preview_size = preview_size
        self._use_predicate = view.has_highlight

    def _is_user_highlighted(self, address: Address) -> bool:
        if self._range.contains(address):
            return True
        return self._use_predicate and self._view.highlight(address)

    def is_highlighted(self, address: Address) -> bool:
        if self._is_user_highlighted(address):
            return True
        preview_address = self._preview_address
        if preview_address is not None:
            return preview_address <= address < preview_address + self._preview_size
        return False

    def is_next_highlighted(self, address: Address, mem_size: int) -> bool:
        address += 1
        return address < mem_size and self._is_user_highlighted(address)

    def run_width(self, address: Address, cell_x: CellCoord, geometry: Geometry, mem_size: int) -> FloatCoord:
        r"""Width of the tint behind a highlighted hex cell.

        When the next cell is highlighted too, or at the end of a line, the
        tint covers the whole cell, so that adjacent tints merge into a run.
        Otherwise it covers just the two digits.
        """
        cols = geometry.cols
        if self.is_next_highlighted(address, mem_size) or cell_x + 1 == cols:
            width = geometry.hex_cell_width
            mid_cols_count = geometry.mid_cols_count
            if mid_cols_count > 0 and cell_x > 0 and cell_x + 1 < cols and (cell_x + 1) % mid_cols_count == 0:
                width += geometry.spacing_between_mid_cols
            return width
        return geometry.glyph_width * 2


# =====================================================================================================================

class NavigationRequest:

    def __init__(
        self,
        delta: int = 0,
        address: Optional[Address] = None,
    ):
        self.delta: int = delta
        self.address: Optional[Address] = address

    def __repr__(self) -> str:
        if self.address is None:
            return f'{type(self).__name__}(delta={self.delta!r})'
        return f'{type(self).__name__}(address={self.address!r})'

    def resolve(self, current: Optional[Address], mem_size: int) -> Optional[Address]:
        if self.address is not None:
            target = self.address
        elif current is not None:
            target = current + self.delta
        else:
            return None
        return target if 0 <= target < mem_size else None


def arrow_key_request(
    snapshot: InputSnapshot,
    address: Address,
    mem_size: int,
    cols: int,
) -> Optional[NavigationRequest]:

    if snapshot.is_key_pressed(Key.UP) and address >= cols:
        return NavigationRequest(delta=-cols)

    elif snapshot.is_key_pressed(Key.DOWN) and address < mem_size - cols:
        return NavigationRequest(delta=+cols)

    elif snapshot.is_key_pressed(Key.LEFT) and address > 0:
        return NavigationRequest(delta=-1)

    elif snapshot.is_key_pressed(Key.RIGHT) and address < mem_size - 1:
        return NavigationRequest(delta=+1)

    return None


def goto_request(text: str, base_address: Address) -> Optional[NavigationRequest]:
    try:
        value = parse_hex(text)
    except ValueError:
        _log.debug('ignoring malformed address: %r', text)
        return None
    return NavigationRequest(address=(value - base_address))


# =====================================================================================================================

@enum.unique
class EditState(enum.IntEnum):
    IDLE = 0
    ARMED = 1
    EDITING = 2


@enum.unique
class EditOutcome(enum.IntEnum):
    NONE = 0
    COMMIT = 1
    CLOSED = 2


class EditSession:
    r"""Single byte being typed into.

    The session is *armed* when an address gets chosen; during the next
    frame its text field takes the keyboard focus and the session becomes
    *editing*. Committing writes the byte and arms the next address.
    """

    def __init__(self):
        self.address: Optional[Address] = None
        self.input_text: str = ''
        self.take_focus: bool = False
        self.cursor_pos: int = -1

    def __repr__(self) -> str:
        return f'<{type(self).__name__} {self.state.name} address={self.address!r} text={self.input_text!r}>'

    @property
    def state(self) -> EditState:
        if self.address is None:
            return EditState.IDLE
        elif self.take_focus:
            return EditState.ARMED
        else:
            return EditState.EDITING

    def arm(self, address: Address) -> None:
        _log.debug('edit session armed at %d', address)
        self.address = address
        self.take_focus = True
        self.cursor_pos = -1

    def reset(self) -> None:
        if self.address is not None:
            _log.debug('edit session closed at %d', self.address)
        self.address = None
        self.input_text = ''
        self.take_focus = False
        self.cursor_pos = -1

    def validate(self, mem_size: int, read_only: bool) -> bool:
        address = self.address
        if address is not None and (read_only or not 0 <= address < mem_size):
            self.reset()
            return False
        return True

    def focus_text(self, view: BufferView, uppercase: bool) -> str:
        r"""Text to show in the field; reloaded from the buffer on focus."""
        if self.take_focus:
            self.input_text = format_byte(view.read(self.address) & 0xFF, uppercase)
        return self.input_text

    def process(self, result: TextInputResult, navigating: bool) -> EditOutcome:
        self.input_text = result.text
        outcome = EditOutcome.NONE

        if result.entered:
            outcome = EditOutcome.COMMIT

        elif not self.take_focus and not result.active:
            self.reset()
            return EditOutcome.CLOSED

        self.take_focus = False
        if result.cursor_pos >= 0:
            self.cursor_pos = result.cursor_pos
        if result.cursor_pos >= 2:
            outcome = EditOutcome.COMMIT

        if navigating:
            outcome = EditOutcome.NONE  # navigation wins
        return outcome

    def commit(self, view: BufferView) -> bool:
        address = self.address
        try:
            value = parse_byte(self.input_text)
        except ValueError:
            _log.debug('ignoring malformed byte at %d: %r', address, self.input_text)
            return False  # just ignore

        view.write(address, value)
        _log.debug('written 0x%02X at %d', value, address)
        return True

    def advance(self, mem_size: int) -> Optional[Address]:
        address = self.address + 1
        if address < mem_size:
            self.arm(address)
            return address
        else:
            self.reset()
            return None


# =====================================================================================================================

class PreviewState:

    def __init__(self):
        self.address: Optional[Address] = None
        self.data_type: DataType = DataType.I32
        self.endianness: Endianness = Endianness.LITTLE

    def __repr__(self) -> str:
        return f'<{type(self).__name__} address={self.address!r} {self.data_type.name} {self.endianness.name}>'

    @property
    def size(self) -> int:
        return DATA_TYPE_SIZE[self.data_type]

    def validate(self, mem_size: int) -> bool:
        if self.address is not None and not 0 <= self.address < mem_size:
            self.address = None
            return False
        return True

    def read(self, view: BufferView) -> Tuple[bytes, int]:
        address = self.address
        size = self.size
        clipped = max(0, min(size, len(view) - address))
        data = view.read_bytes(address, clipped)
        data += bytes(size - clipped)
        return data, clipped

    def format(self, view: BufferView, value_format: ValueFormatEnum) -> str:
        if self.address is None:
            return 'N/A'
        data, clipped = self.read(view)
        return format_value(data, clipped, self.data_type, value_format, self.endianness)
