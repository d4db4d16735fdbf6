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

import abc
import enum
from typing import Any
from typing import Callable
from typing import FrozenSet
from typing import Iterable
from typing import List
from typing import Optional
from typing import Sequence
from typing import Tuple

from bytesparse.base import Address
from bytesparse.base import Value
from bytesparse.inplace import Memory


# =====================================================================================================================

FloatCoord = float
FloatCoords = Tuple[FloatCoord, FloatCoord]

CellCoord = int
CellCoords = Tuple[CellCoord, CellCoord]

Color = Tuple[int, int, int, int]  # RGBA, 0..255

ReadFn = Callable[[Any, Address], Value]
WriteFn = Callable[[Any, Address, Value], None]
HighlightFn = Callable[[Any, Address], bool]


PROGRAM_TITLE: str = 'Memory Editor'

COLS_MIN: int = 4
COLS_MAX: int = 32

SCROLLING_REGION: str = '##scrolling'
CONTEXT_POPUP: str = 'context'


# =====================================================================================================================

@enum.unique
class Key(enum.IntEnum):
    UP = 0
    DOWN = 1
    LEFT = 2
    RIGHT = 3
    ENTER = 4
    ESCAPE = 5
    BACKSPACE = 6
    TAB = 7


@enum.unique
class MouseButton(enum.IntEnum):
    LEFT = 0
    RIGHT = 1
    MIDDLE = 2


# =====================================================================================================================

BYTE_ENCODINGS: List[str] = [
    'ascii',
    'cp437',
    'cp850',
    'cp852',
    'cp1250',
    'cp1251',
    'cp1252',
    'latin_1',
    'iso8859_2',
    'iso8859_15',
]


def build_encoding_table(encoding: str, nonprintable: str = '.') -> List[str]:
    lut = []
    for i in range(256):
        try:
            t = bytes([i]).decode(encoding=encoding)
        except UnicodeError:
            t = nonprintable
        lut.append(t if t.isprintable() else nonprintable)
    return lut


# =====================================================================================================================

class EditorConfig:

    def __init__(self):
        self.cols: int = 16
        self.show_options: bool = True
        self.show_data_preview: bool = False
        self.show_hexii: bool = False
        self.show_ascii: bool = True
        self.grey_out_zeros: bool = True
        self.uppercase_hex: bool = True
        self.mid_cols_count: int = 8  # every N columns add a bit of extra spacing; 0 disables
        self.addr_digits_count: int = 0  # 0 = automatic
        self.footer_extra_height: float = 0.
        self.highlight_color: Color = (255, 255, 255, 50)
        self.read_only: bool = False

        self._chars_encoding: str = 'ascii'
        self.chars_table: List[str] = build_encoding_table(self._chars_encoding)

    @property
    def chars_encoding(self) -> str:
        return self._chars_encoding

    @chars_encoding.setter
    def chars_encoding(self, encoding: str) -> None:
        self.chars_table = build_encoding_table(encoding)
        self._chars_encoding = encoding

    def normalize(self) -> None:
        if self.cols < 1:
            self.cols = 1
        if self.mid_cols_count < 0:
            self.mid_cols_count = 0
        if self.addr_digits_count < 0:
            self.addr_digits_count = 0


# ---------------------------------------------------------------------------------------------------------------------

class Style:

    def __init__(self):
        self.scrollbar_size: float = 14.
        self.window_padding: FloatCoords = (8., 8.)
        self.frame_padding: FloatCoords = (4., 3.)
        self.item_spacing: FloatCoords = (8., 4.)
        self.item_inner_spacing: FloatCoords = (4., 4.)

        self.color_text: Color = (255, 255, 255, 255)
        self.color_text_disabled: Color = (128, 128, 128, 255)
        self.color_border: Color = (110, 110, 128, 128)
        self.color_frame_bg: Color = (41, 74, 122, 138)
        self.color_text_selected_bg: Color = (66, 150, 250, 89)
        self.color_window_bg: Color = (15, 15, 15, 240)


# ---------------------------------------------------------------------------------------------------------------------

class FontMetrics:

    def __init__(self, glyph_width: float, line_height: float):
        self.glyph_width: float = glyph_width
        self.line_height: float = line_height

    def __repr__(self) -> str:
        return f'{type(self).__name__}({self.glyph_width!r}, {self.line_height!r})'


# ---------------------------------------------------------------------------------------------------------------------

class InputSnapshot:

    def __init__(
        self,
        mouse_pos: FloatCoords = (-1., -1.),
        mouse_clicked: Iterable[MouseButton] = (),
        mouse_released: Iterable[MouseButton] = (),
        mouse_down: Iterable[MouseButton] = (),
        keys_pressed: Iterable[Key] = (),
        chars: str = '',
        wheel: float = 0.,
    ):
        self.mouse_pos: FloatCoords = mouse_pos
        self.mouse_clicked: FrozenSet[MouseButton] = frozenset(mouse_clicked)
        self.mouse_released: FrozenSet[MouseButton] = frozenset(mouse_released)
        self.mouse_down: FrozenSet[MouseButton] = frozenset(mouse_down)
        self.keys_pressed: FrozenSet[Key] = frozenset(keys_pressed)
        self.chars: str = chars
        self.wheel: float = wheel

    def is_key_pressed(self, key: Key) -> bool:
        return key in self.keys_pressed

    def is_mouse_clicked(self, button: MouseButton = MouseButton.LEFT) -> bool:
        return button in self.mouse_clicked

    def is_mouse_released(self, button: MouseButton = MouseButton.LEFT) -> bool:
        return button in self.mouse_released

    def is_mouse_in(self, x0: FloatCoord, y0: FloatCoord, x1: FloatCoord, y1: FloatCoord) -> bool:
        mouse_x, mouse_y = self.mouse_pos
        return x0 <= mouse_x < x1 and y0 <= mouse_y < y1


# ---------------------------------------------------------------------------------------------------------------------

class TextInputResult:

    def __init__(
        self,
        text: str,
        entered: bool = False,
        active: bool = False,
        cursor_pos: int = -1,
    ):
        self.text: str = text
        self.entered: bool = entered
        self.active: bool = active
        self.cursor_pos: int = cursor_pos

    def __repr__(self) -> str:
        return (f'{type(self).__name__}({self.text!r}, entered={self.entered!r}, '
                f'active={self.active!r}, cursor_pos={self.cursor_pos!r})')


# ---------------------------------------------------------------------------------------------------------------------

class ChildRegion:

    def __init__(
        self,
        x: FloatCoord,
        y: FloatCoord,
        width: FloatCoord,
        height: FloatCoord,
        scroll_y: FloatCoord = 0.,
    ):
        self.x: FloatCoord = x
        self.y: FloatCoord = y
        self.width: FloatCoord = width
        self.height: FloatCoord = height
        self.scroll_y: FloatCoord = scroll_y


# =====================================================================================================================

class BaseBufferHooks(abc.ABC):

    @abc.abstractmethod
    def read(self, data: Any, address: Address) -> Value:
        ...

    def write(self, data: Any, address: Address, value: Value) -> None:
        raise NotImplementedError(f'{type(self).__name__} does not support writing')

    def highlight(self, data: Any, address: Address) -> bool:
        return False

    @property
    def has_highlight(self) -> bool:
        return False


# ---------------------------------------------------------------------------------------------------------------------

class DirectHooks(BaseBufferHooks):

    def read(self, data: Any, address: Address) -> Value:
        return data[address]

    def write(self, data: Any, address: Address, value: Value) -> None:
        data[address] = value


# ---------------------------------------------------------------------------------------------------------------------

class FunctionHooks(BaseBufferHooks):

    def __init__(
        self,
        read_fn: Optional[ReadFn] = None,
        write_fn: Optional[WriteFn] = None,
        highlight_fn: Optional[HighlightFn] = None,
    ):
        if (read_fn is None) != (write_fn is None):
            raise ValueError('read and write hooks must be given together')

        self._read_fn: Optional[ReadFn] = read_fn
        self._write_fn: Optional[WriteFn] = write_fn
        self._highlight_fn: Optional[HighlightFn] = highlight_fn

    def read(self, data: Any, address: Address) -> Value:
        if self._read_fn is None:
            return data[address]
        return self._read_fn(data, address)

    def write(self, data: Any, address: Address, value: Value) -> None:
        if self._write_fn is None:
            data[address] = value
        else:
            self._write_fn(data, address, value)

    def highlight(self, data: Any, address: Address) -> bool:
        if self._highlight_fn is None:
            return False
        return bool(self._highlight_fn(data, address))

    @property
    def has_highlight(self) -> bool:
        return self._highlight_fn is not None


# ---------------------------------------------------------------------------------------------------------------------

class BufferView:
    r"""Borrowed byte buffer, as seen by the editor.

    The editor never allocates nor frees the underlying `data`, it only
    reads and writes single bytes through the hooks.

    Arguments:
        data:
            Underlying byte container, typically a :obj:`bytearray`.

        read_fn:
            Optional ``read_fn(data, address) -> int`` hook.

        write_fn:
            Optional ``write_fn(data, address, value)`` hook; required
            together with `read_fn`.

        highlight_fn:
            Optional ``highlight_fn(data, address) -> bool`` predicate.

        base_address:
            Address displayed for the first byte.

        size:
            Fixed buffer size; by default ``len(data)`` is queried every
            time, so that the view follows a resized container.

        hooks:
            Alternative to the ``*_fn`` callables, a ready-made hooks object.

    Raises:
        ValueError: Only one of `read_fn` and `write_fn` was given.
    """

    def __init__(
        self,
        data: Any,
        read_fn: Optional[ReadFn] = None,
        write_fn: Optional[WriteFn] = None,
        highlight_fn: Optional[HighlightFn] = None,
        base_address: Address = 0,
        size: Optional[int] = None,
        hooks: Optional[BaseBufferHooks] = None,
    ):
        if hooks is None:
            if read_fn is None and write_fn is None and highlight_fn is None:
                hooks = DirectHooks()
            else:
                hooks = FunctionHooks(read_fn, write_fn, highlight_fn)
        elif read_fn is not None or write_fn is not None or highlight_fn is not None:
            raise ValueError('either hooks or hook functions, not both')

        if base_address < 0:
            raise ValueError('negative base address')
        if size is not None and size < 0:
            raise ValueError('negative size')

        self.data: Any = data
        self.hooks: BaseBufferHooks = hooks
        self.base_address: Address = base_address
        self._size: Optional[int] = size

    def __len__(self) -> int:
        if self._size is None:
            return len(self.data)
        return self._size

    @property
    def has_highlight(self) -> bool:
        return self.hooks.has_highlight

    def read(self, address: Address) -> Value:
        return self.hooks.read(self.data, address)

    def read_bytes(self, address: Address, size: int) -> bytes:
        return bytes(self.hooks.read(self.data, address + i) for i in range(size))

    def write(self, address: Address, value: Value) -> None:
        self.hooks.write(self.data, address, value)

    def highlight(self, address: Address) -> bool:
        return self.hooks.highlight(self.data, address)

    @classmethod
    def from_memory(
        cls,
        memory: Memory,
        highlight_gaps: bool = True,
    ) -> 'BufferView':
        r"""Builds a view over a sparse memory object.

        Addresses are relative to the memory start, which becomes the base
        display address. Gaps read as zero and are optionally highlighted.
        """
        start = memory.start

        def read_fn(mem: Memory, address: Address) -> Value:
            value = mem.peek(start + address)
            return 0 if value is None else value

        def write_fn(mem: Memory, address: Address, value: Value) -> None:
            mem.poke(start + address, value)

        def highlight_fn(mem: Memory, address: Address) -> bool:
            return mem.peek(start + address) is None

        return cls(memory, read_fn, write_fn,
                   highlight_fn=(highlight_fn if highlight_gaps else None),
                   base_address=start, size=(memory.endex - start))


# =====================================================================================================================

class BaseSurface(abc.ABC):
    r"""Immediate mode drawing surface.

    Coordinates are screen pixels, growing right and down.
    Widgets laid out with :meth:`text`, :meth:`button` and the like flow
    top-down within the current window, unless :meth:`same_line` is called
    in between.
    """

    @property
    @abc.abstractmethod
    def style(self) -> Style:
        ...

    @property
    @abc.abstractmethod
    def input(self) -> InputSnapshot:
        ...

    @abc.abstractmethod
    def font_metrics(self) -> FontMetrics:
        ...

    # Windows ---------------------------------------------------------------------------------------------------------

    @abc.abstractmethod
    def begin_window(
        self,
        title: str,
        width: FloatCoord,
        height: FloatCoord,
        max_width: FloatCoord,
        opened: bool,
    ) -> Tuple[bool, bool]:
        r"""Begins a window; returns ``(visible, opened)``."""
        ...

    @abc.abstractmethod
    def end_window(self) -> None:
        ...

    @abc.abstractmethod
    def window_size(self) -> FloatCoords:
        ...

    @abc.abstractmethod
    def set_window_size(self, width: FloatCoord, height: FloatCoord) -> None:
        ...

    @abc.abstractmethod
    def is_window_hovered(self) -> bool:
        ...

    @abc.abstractmethod
    def begin_child(self, name: str, height: FloatCoord, content_height: FloatCoord) -> ChildRegion:
        r"""Begins a clipped scrolling region.

        A non-positive `height` leaves that many pixels below the region.
        """
        ...

    @abc.abstractmethod
    def end_child(self) -> None:
        ...

    @abc.abstractmethod
    def set_child_scroll(self, name: str, scroll_y: FloatCoord) -> None:
        ...

    # Primitives ------------------------------------------------------------------------------------------------------

    @abc.abstractmethod
    def draw_rect(self, x0: FloatCoord, y0: FloatCoord, x1: FloatCoord, y1: FloatCoord, color: Color) -> None:
        ...

    @abc.abstractmethod
    def draw_line(self, x0: FloatCoord, y0: FloatCoord, x1: FloatCoord, y1: FloatCoord, color: Color) -> None:
        ...

    @abc.abstractmethod
    def draw_text(self, x: FloatCoord, y: FloatCoord, text: str, color: Color) -> None:
        ...

    @abc.abstractmethod
    def input_text(
        self,
        widget_id: str,
        text: str,
        x: FloatCoord,
        y: FloatCoord,
        width: FloatCoord,
        take_focus: bool = False,
        max_length: int = 2,
    ) -> TextInputResult:
        r"""Hexadecimal text field at a fixed position.

        Taking focus selects all the text, so that the first keystroke
        overwrites it. The cursor position is reported at every keystroke.
        """
        ...

    # Flow widgets ----------------------------------------------------------------------------------------------------

    @abc.abstractmethod
    def separator(self) -> None:
        ...

    @abc.abstractmethod
    def text(self, text: str, color: Optional[Color] = None) -> None:
        ...

    @abc.abstractmethod
    def same_line(self, pos_x: Optional[FloatCoord] = None) -> None:
        ...

    @abc.abstractmethod
    def button(self, label: str) -> bool:
        ...

    @abc.abstractmethod
    def checkbox(self, label: str, value: bool) -> Tuple[bool, bool]:
        ...

    @abc.abstractmethod
    def slider_int(
        self,
        label: str,
        value: int,
        v_min: int,
        v_max: int,
        width: FloatCoord,
        display_format: str = '%d',
    ) -> Tuple[bool, int]:
        ...

    @abc.abstractmethod
    def combo(self, label: str, current: int, items: Sequence[str], width: FloatCoord) -> Tuple[bool, int]:
        ...

    @abc.abstractmethod
    def input_line(self, widget_id: str, text: str, width: FloatCoord, max_length: int = 16) -> Tuple[bool, str]:
        r"""Hexadecimal text field in the flow; returns ``(entered, text)``."""
        ...

    @abc.abstractmethod
    def open_popup(self, name: str) -> None:
        ...

    @abc.abstractmethod
    def begin_popup(self, name: str) -> bool:
        ...

    @abc.abstractmethod
    def end_popup(self) -> None:
        ...
