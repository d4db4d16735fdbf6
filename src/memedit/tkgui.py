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

r"""Tk host for the memory editor.

The canvas is cleared and drawn again at every frame, feeding the widget
with the events collected since the previous frame.
"""

import logging
import tkinter as tk
import tkinter.font
from tkinter import ttk
from typing import Any
from typing import List
from typing import MutableMapping
from typing import Optional
from typing import Sequence
from typing import Tuple

import ttkthemes

from .common import PROGRAM_TITLE
from .common import BaseSurface
from .common import BufferView
from .common import ChildRegion
from .common import Color
from .common import FloatCoord
from .common import FloatCoords
from .common import FontMetrics
from .common import InputSnapshot
from .common import Key
from .common import MouseButton
from .common import Style
from .common import TextInputResult
from .utils import HEX_SET
from .widget import MemoryEditor

_log = logging.getLogger(__name__)


# =====================================================================================================================

Rect = Tuple[FloatCoord, FloatCoord, FloatCoord, FloatCoord]

_THEME: str = 'black'
_FRAME_MS: int = 16
_WHEEL_LINES: int = 3

_KEYSYMS: MutableMapping[str, Key] = {
    'Up':        Key.UP,
    'Down':      Key.DOWN,
    'Left':      Key.LEFT,
    'Right':     Key.RIGHT,
    'Return':    Key.ENTER,
    'KP_Enter':  Key.ENTER,
    'Escape':    Key.ESCAPE,
    'BackSpace': Key.BACKSPACE,
    'Tab':       Key.TAB,
}

_BUTTONS: MutableMapping[int, MouseButton] = {
    1: MouseButton.LEFT,
    2: MouseButton.MIDDLE,
    3: MouseButton.RIGHT,
}


def mix_color_hex(x_r, x_g, x_b, y_r, y_g, y_b, m) -> str:
    r = (max(0, min(int(((1 - m) * x_r) + (m * y_r)), 65535)) + 128) // 256
    g = (max(0, min(int(((1 - m) * x_g) + (m * y_g)), 65535)) + 128) // 256
    b = (max(0, min(int(((1 - m) * x_b) + (m * y_b)), 65535)) + 128) // 256
    c = f'#{r:02X}{g:02X}{b:02X}'
    return c


def _rgb_to_color(rgb: Tuple[int, int, int], alpha: int = 255) -> Color:
    r, g, b = rgb
    return r // 257, g // 257, b // 257, alpha


def fix_style_colors(root: tk.Misc, style: Style) -> None:
    ttk_style = ttk.Style(root)

    bg_color = ttk_style.lookup('TLabelFrame', 'background') or 'white'
    fg_color = ttk_style.lookup('TLabelFrame', 'foreground') or 'black'
    sel_bg_color = ttk_style.lookup('TEntry', 'selectbackground') or '#4A6984'
    field_color = ttk_style.lookup('TEntry', 'fieldbackground') or bg_color

    bg_rgb = root.winfo_rgb(bg_color)
    fg_rgb = root.winfo_rgb(fg_color)

    style.color_window_bg = _rgb_to_color(bg_rgb)
    style.color_text = _rgb_to_color(fg_rgb)
    style.color_text_disabled = _rgb_to_color(fg_rgb, 96)
    style.color_border = _rgb_to_color(fg_rgb, 64)
    style.color_frame_bg = _rgb_to_color(root.winfo_rgb(field_color))
    style.color_text_selected_bg = _rgb_to_color(root.winfo_rgb(sel_bg_color), 128)


# =====================================================================================================================

class TkSurface(BaseSurface):
    r"""Immediate mode surface drawing onto a Tk canvas.

    Text fields accept hexadecimal digits only. A combo box steps to its next
    item when clicked, and scrolls through the items with the mouse wheel.
    """

    def __init__(
        self,
        canvas: tk.Canvas,
        font: tkinter.font.Font,
        style: Optional[Style] = None,
    ):
        if style is None:
            style = Style()
            fix_style_colors(canvas, style)

        self._canvas = canvas
        self._font = font
        self._style = style
        self._metrics = FontMetrics(font.measure('F') + 1, font.metrics('linespace'))

        self._input = InputSnapshot()
        self._masked_input = InputSnapshot()
        self._mouse_pos: FloatCoords = (-1., -1.)
        self._pending_clicked: set = set()
        self._pending_released: set = set()
        self._mouse_down: set = set()
        self._pending_keys: set = set()
        self._pending_chars: List[str] = []
        self._pending_wheel: float = 0.

        self._focus_id: Optional[str] = None
        self._focus_rect: Optional[Rect] = None
        self._focus_seen: bool = False
        self._select_all: bool = False
        self._buffers: MutableMapping[str, str] = {}
        self._drag_id: Optional[str] = None

        self._scrolls: MutableMapping[str, FloatCoord] = {}
        self._child: Optional[ChildRegion] = None

        self._popup_open: Optional[str] = None
        self._popup_pos: FloatCoords = (0., 0.)
        self._popup_rect: Optional[Rect] = None
        self._popup_fresh: bool = False
        self._in_popup: bool = False
        self._saved_layout: Optional[Tuple[Any, ...]] = None

        self._window_size: FloatCoords = (0., 0.)
        self._window_sized: bool = False
        self._cursor_y: FloatCoord = 0.
        self._last_item: Rect = (0., 0., 0., 0.)
        self._same_line: bool = False
        self._same_line_x: Optional[FloatCoord] = None
        self._tags: Tuple[str, ...] = ()

        self.__init_bindings()

    def __init_bindings(self) -> None:
        canvas = self._canvas
        canvas.bind('<Motion>', self._on_motion)
        canvas.bind('<ButtonPress>', self._on_button_press)
        canvas.bind('<ButtonRelease>', self._on_button_release)
        canvas.bind('<Leave>', self._on_leave)
        canvas.bind('<MouseWheel>', self._on_wheel)
        canvas.bind('<Button-4>', lambda event: self._on_wheel_step(+1))
        canvas.bind('<Button-5>', lambda event: self._on_wheel_step(-1))
        canvas.bind_all('<Key>', self._on_key)

    # Events ----------------------------------------------------------------------------------------------------------

    def _on_motion(self, event=None):
        self._mouse_pos = (float(event.x), float(event.y))

    def _on_leave(self, event=None):
        self._mouse_pos = (-1., -1.)

    def _on_button_press(self, event=None):
        button = _BUTTONS.get(event.num)
        if button is not None:
            self._mouse_pos = (float(event.x), float(event.y))
            self._pending_clicked.add(button)
            self._mouse_down.add(button)

    def _on_button_release(self, event=None):
        button = _BUTTONS.get(event.num)
        if button is not None:
            self._mouse_pos = (float(event.x), float(event.y))
            self._pending_released.add(button)
            self._mouse_down.discard(button)

    def _on_wheel(self, event=None):
        self._on_wheel_step(event.delta / 120)

    def _on_wheel_step(self, delta: float):
        self._pending_wheel += delta

    def _on_key(self, event=None):
        key = _KEYSYMS.get(event.keysym)
        if key is not None:
            self._pending_keys.add(key)
        elif event.char and event.char.isprintable():
            self._pending_chars.append(event.char)

    # Frame -----------------------------------------------------------------------------------------------------------

    def new_frame(self) -> None:
        snapshot = InputSnapshot(
            mouse_pos=self._mouse_pos,
            mouse_clicked=self._pending_clicked,
            mouse_released=self._pending_released,
            mouse_down=self._mouse_down,
            keys_pressed=self._pending_keys,
            chars=''.join(self._pending_chars),
            wheel=self._pending_wheel,
        )
        self._input = snapshot
        self._masked_input = InputSnapshot(mouse_pos=(-1., -1.), keys_pressed=snapshot.keys_pressed,
                                           chars=snapshot.chars)
        self._pending_clicked = set()
        self._pending_released = set()
        self._pending_keys = set()
        self._pending_chars = []
        self._pending_wheel = 0.

        if snapshot.is_mouse_clicked(MouseButton.LEFT) or snapshot.is_mouse_clicked(MouseButton.RIGHT):
            focus_rect = self._focus_rect
            if focus_rect is not None and not snapshot.is_mouse_in(*focus_rect):
                self._focus_id = None
                self._focus_rect = None

            popup_rect = self._popup_rect
            if self._popup_open and not self._popup_fresh:
                if popup_rect is None or not snapshot.is_mouse_in(*popup_rect):
                    self._popup_open = None
                    self._popup_rect = None
        self._popup_fresh = False

        if not snapshot.mouse_down:
            self._drag_id = None

        canvas = self._canvas
        canvas.delete('all')
        self._window_size = (float(canvas.winfo_width()), float(canvas.winfo_height()))
        self._focus_seen = False

    def end_frame(self) -> None:
        if self._focus_id is not None and not self._focus_seen:
            self._focus_id = None
            self._focus_rect = None

        canvas = self._canvas
        if canvas.find_withtag('popup_bg'):
            canvas.tag_raise('popup_bg')
            canvas.tag_raise('popup')

    @property
    def style(self) -> Style:
        return self._style

    @property
    def input(self) -> InputSnapshot:
        popup_rect = self._popup_rect
        if self._popup_open and not self._in_popup and popup_rect is not None:
            if self._input.is_mouse_in(*popup_rect):
                return self._masked_input
        return self._input

    def font_metrics(self) -> FontMetrics:
        return self._metrics

    def _color(self, color: Color) -> str:
        r, g, b, a = color
        bg_r, bg_g, bg_b, _ = self._style.color_window_bg
        m = 1 - (a / 255)
        return mix_color_hex(r * 257, g * 257, b * 257, bg_r * 257, bg_g * 257, bg_b * 257, m)

    # Layout ----------------------------------------------------------------------------------------------------------

    def _place(self, width: FloatCoord, height: FloatCoord) -> FloatCoords:
        style = self._style
        if self._same_line:
            if self._same_line_x is None:
                x = self._last_item[2] + style.item_spacing[0]
            else:
                x = self._origin_x() + self._same_line_x
            y = self._last_item[1]
        else:
            x = self._origin_x() + style.window_padding[0]
            y = self._cursor_y

        self._same_line = False
        self._same_line_x = None
        self._last_item = (x, y, x + width, y + height)
        self._cursor_y = max(self._cursor_y, y + height + style.item_spacing[1])

        if self._in_popup:
            x0, y0, x1, y1 = self._popup_rect
            self._popup_rect = (x0, y0, max(x1, x + width + style.window_padding[0]),
                                max(y1, y + height + style.window_padding[1]))
        return x, y

    def _origin_x(self) -> FloatCoord:
        if self._in_popup:
            return self._popup_pos[0]
        return 0.

    def _frame_height(self) -> FloatCoord:
        return self._metrics.line_height + (self._style.frame_padding[1] * 2)

    def _create_rect(self, rect: Rect, color: Color, outline: str = '') -> None:
        self._canvas.create_rectangle(*rect, fill=self._color(color), outline=outline, tags=self._tags)

    def _create_text(self, x: FloatCoord, y: FloatCoord, text: str, color: Color) -> None:
        self._canvas.create_text(x, y, text=text, anchor=tk.NW, font=self._font, fill=self._color(color),
                                 tags=self._tags)

    # Windows ---------------------------------------------------------------------------------------------------------

    def begin_window(
        self,
        title: str,
        width: FloatCoord,
        height: FloatCoord,
        max_width: FloatCoord,
        opened: bool,
    ) -> Tuple[bool, bool]:

        top = self._canvas.winfo_toplevel()
        top.title(title)
        top.maxsize(int(max_width), 100000)
        if not self._window_sized:
            self._window_sized = True
            self.set_window_size(width, height)

        width, height = self._window_size
        self._create_rect((0, 0, width, height), self._style.color_window_bg)
        self._cursor_y = self._style.window_padding[1]
        self._same_line = False
        return True, opened

    def end_window(self) -> None:
        pass

    def window_size(self) -> FloatCoords:
        return self._window_size

    def set_window_size(self, width: FloatCoord, height: FloatCoord) -> None:
        top = self._canvas.winfo_toplevel()
        top.maxsize(int(width), 100000)
        top.geometry(f'{int(width)}x{int(height)}')

    def is_window_hovered(self) -> bool:
        width, height = self._window_size
        return self._input.is_mouse_in(0, 0, width, height)

    def begin_child(self, name: str, height: FloatCoord, content_height: FloatCoord) -> ChildRegion:
        style = self._style
        window_width, window_height = self._window_size
        x = style.window_padding[0]
        y = self._cursor_y
        width = max(0., window_width - (x * 2) - style.scrollbar_size)
        if height <= 0:
            height = window_height - style.window_padding[1] - y + height
        height = max(0., height)

        scroll_max = max(0., content_height - height)
        scroll_y = self._scrolls.get(name, 0.)
        if self._input.wheel and self._input.is_mouse_in(x, y, x + width + style.scrollbar_size, y + height):
            scroll_y -= self._input.wheel * self._metrics.line_height * _WHEEL_LINES
        scroll_y = max(0., min(scroll_y, scroll_max))
        self._scrolls[name] = scroll_y

        region = ChildRegion(x, y, width, height, scroll_y)
        self._child = region

        if content_height > height > 0:  # scrollbar thumb
            bar_x = x + width
            thumb_h = max(style.scrollbar_size, height * height / content_height)
            thumb_y = y + (height - thumb_h) * (scroll_y / scroll_max)
            self._create_rect((bar_x, thumb_y, bar_x + style.scrollbar_size, thumb_y + thumb_h), style.color_border)
        return region

    def end_child(self) -> None:
        region = self._child
        self._child = None
        if region is None:
            raise RuntimeError('end_child() without begin_child()')

        # Mask whatever was drawn outside of the region
        window_width, window_height = self._window_size
        color = self._style.color_window_bg
        self._create_rect((0, 0, window_width, region.y), color)
        self._create_rect((0, region.y + region.height, window_width, window_height), color)

        self._cursor_y = region.y + region.height + self._style.item_spacing[1]
        self._last_item = (region.x, region.y, region.x + region.width, region.y + region.height)
        self._same_line = False

    def set_child_scroll(self, name: str, scroll_y: FloatCoord) -> None:
        self._scrolls[name] = max(0., scroll_y)

    # Primitives ------------------------------------------------------------------------------------------------------

    def draw_rect(self, x0: FloatCoord, y0: FloatCoord, x1: FloatCoord, y1: FloatCoord, color: Color) -> None:
        self._create_rect((x0, y0, x1, y1), color)

    def draw_line(self, x0: FloatCoord, y0: FloatCoord, x1: FloatCoord, y1: FloatCoord, color: Color) -> None:
        self._canvas.create_line(x0, y0, x1, y1, fill=self._color(color), tags=self._tags)

    def draw_text(self, x: FloatCoord, y: FloatCoord, text: str, color: Color) -> None:
        if text:
            self._create_text(x, y, text, color)

    def _edit_buffer(self, text: str, max_length: int) -> Tuple[str, bool]:
        snapshot = self._input
        if snapshot.is_key_pressed(Key.BACKSPACE):
            text = '' if self._select_all else text[:-1]
            self._select_all = False

        for char in snapshot.chars:
            if char in HEX_SET:
                if self._select_all:
                    text = ''
                    self._select_all = False
                if len(text) < max_length:
                    text += char

        if snapshot.is_key_pressed(Key.ESCAPE):
            self._focus_id = None
            self._focus_rect = None

        return text, snapshot.is_key_pressed(Key.ENTER)

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

        height = self._metrics.line_height
        rect = (x, y, x + width, y + height)
        snapshot = self._input

        if take_focus:
            self._focus_id = widget_id
            self._buffers[widget_id] = text
            self._select_all = True

        elif self._focus_id != widget_id and snapshot.is_mouse_clicked(MouseButton.LEFT):
            if self.input.is_mouse_in(*rect):
                self._focus_id = widget_id
                self._buffers[widget_id] = text
                self._select_all = True

        active = self._focus_id == widget_id
        entered = False
        cursor_pos = -1

        if active:
            text, entered = self._edit_buffer(self._buffers.get(widget_id, text), max_length)
            self._buffers[widget_id] = text
            active = self._focus_id == widget_id
            if active:
                self._focus_seen = True
                self._focus_rect = rect
            if not self._select_all:
                cursor_pos = len(text)

        style = self._style
        self._create_rect(rect, style.color_frame_bg)
        if active and self._select_all:
            self._create_rect((x, y, x + self._font.measure(text), y + height), style.color_text_selected_bg)
        self._create_text(x, y, text, style.color_text)
        if active and not self._select_all:
            caret_x = x + self._font.measure(text)
            self._canvas.create_line(caret_x, y, caret_x, y + height, fill=self._color(style.color_text),
                                     tags=self._tags)

        return TextInputResult(text, entered=entered, active=active, cursor_pos=cursor_pos)

    # Flow widgets ----------------------------------------------------------------------------------------------------

    def separator(self) -> None:
        x, y = self._place(max(0., self._window_size[0] - self._style.window_padding[0] * 2), 1.)
        self._canvas.create_line(x, y, self._last_item[2], y, fill=self._color(self._style.color_border),
                                 tags=self._tags)

    def text(self, text: str, color: Optional[Color] = None) -> None:
        if color is None:
            color = self._style.color_text
        x, y = self._place(self._font.measure(text), self._frame_height())
        self._create_text(x, y + self._style.frame_padding[1], text, color)

    def same_line(self, pos_x: Optional[FloatCoord] = None) -> None:
        self._same_line = True
        self._same_line_x = pos_x

    def _is_released_in(self, rect: Rect, button: MouseButton = MouseButton.LEFT) -> bool:
        snapshot = self.input
        return snapshot.is_mouse_released(button) and snapshot.is_mouse_in(*rect)

    def button(self, label: str) -> bool:
        style = self._style
        width = self._font.measure(label) + (style.frame_padding[0] * 2)
        x, y = self._place(width, self._frame_height())
        rect = self._last_item
        hovered = self.input.is_mouse_in(*rect)
        self._create_rect(rect, (style.color_text_selected_bg if hovered else style.color_frame_bg))
        self._create_text(x + style.frame_padding[0], y + style.frame_padding[1], label, style.color_text)
        return self._is_released_in(rect)

    def checkbox(self, label: str, value: bool) -> Tuple[bool, bool]:
        style = self._style
        box = self._frame_height()
        width = box + style.item_inner_spacing[0] + self._font.measure(label)
        x, y = self._place(width, box)
        clicked = self._is_released_in(self._last_item)
        if clicked:
            value = not value

        self._create_rect((x, y, x + box, y + box), style.color_frame_bg)
        if value:
            pad = box / 4
            self._create_rect((x + pad, y + pad, x + box - pad, y + box - pad), style.color_text)
        self._create_text(x + box + style.item_inner_spacing[0], y + style.frame_padding[1], label, style.color_text)
        return clicked, value

    def slider_int(
        self,
        label: str,
        value: int,
        v_min: int,
        v_max: int,
        width: FloatCoord,
        display_format: str = '%d',
    ) -> Tuple[bool, int]:

        style = self._style
        x, y = self._place(width, self._frame_height())
        rect = self._last_item
        snapshot = self.input

        if snapshot.is_mouse_clicked(MouseButton.LEFT) and snapshot.is_mouse_in(*rect):
            self._drag_id = label

        changed = False
        if self._drag_id == label and width > 0 and v_max > v_min:
            ratio = max(0., min((snapshot.mouse_pos[0] - x) / width, 1.))
            new_value = int(round(v_min + ratio * (v_max - v_min)))
            if new_value != value:
                value = new_value
                changed = True

        self._create_rect(rect, style.color_frame_bg)
        if v_max > v_min:
            grab_x = x + (width - 6) * (value - v_min) / (v_max - v_min)
            self._create_rect((grab_x, y + 1, grab_x + 6, rect[3] - 1), style.color_text_selected_bg)
        self._create_text(x + style.frame_padding[0], y + style.frame_padding[1], display_format % value,
                          style.color_text)
        return changed, value

    def combo(self, label: str, current: int, items: Sequence[str], width: FloatCoord) -> Tuple[bool, int]:
        style = self._style
        x, y = self._place(width, self._frame_height())
        rect = self._last_item
        snapshot = self.input
        count = len(items)
        index = current

        if count:
            if self._is_released_in(rect):
                index = (current + 1) % count
            elif snapshot.wheel and snapshot.is_mouse_in(*rect):
                index = (current - int(snapshot.wheel)) % count

        self._create_rect(rect, style.color_frame_bg)
        text = items[index] if count else ''
        self._create_text(x + style.frame_padding[0], y + style.frame_padding[1], text, style.color_text)
        return index != current, index

    def input_line(self, widget_id: str, text: str, width: FloatCoord, max_length: int = 16) -> Tuple[bool, str]:
        x, y = self._place(width, self._frame_height())
        result = self.input_text(widget_id, text, x, y + self._style.frame_padding[1], width,
                                 max_length=max_length)
        return result.entered, result.text

    def open_popup(self, name: str) -> None:
        self._popup_open = name
        self._popup_pos = self._input.mouse_pos
        self._popup_rect = None
        self._popup_fresh = True

    def begin_popup(self, name: str) -> bool:
        if self._popup_open != name:
            return False

        self._saved_layout = (self._cursor_y, self._last_item, self._same_line, self._same_line_x)
        pad_x, pad_y = self._style.window_padding
        pos_x, pos_y = self._popup_pos
        self._popup_rect = (pos_x, pos_y, pos_x + pad_x, pos_y + pad_y)
        self._cursor_y = pos_y + pad_y
        self._same_line = False
        self._in_popup = True
        self._tags = ('popup',)
        return True

    def end_popup(self) -> None:
        self._in_popup = False
        self._tags = ()
        self._canvas.create_rectangle(*self._popup_rect, fill=self._color(self._style.color_window_bg),
                                      outline=self._color(self._style.color_border), tags=('popup_bg',))
        self._cursor_y, self._last_item, self._same_line, self._same_line_x = self._saved_layout
        self._saved_layout = None


# =====================================================================================================================

class EditorApp:

    def __init__(
        self,
        view: BufferView,
        editor: Optional[MemoryEditor] = None,
        title: str = PROGRAM_TITLE,
        theme: str = _THEME,
    ):
        if editor is None:
            editor = MemoryEditor()

        self.view: BufferView = view
        self.editor: MemoryEditor = editor
        self.title: str = title

        root = ttkthemes.ThemedTk(theme=theme)
        root.protocol('WM_DELETE_WINDOW', self._on_delete_window)
        self._root: ttkthemes.ThemedTk = root

        canvas = tk.Canvas(root, borderwidth=0, highlightthickness=0, takefocus=1)
        canvas.pack(fill=tk.BOTH, expand=True)
        canvas.focus_set()

        font = tkinter.font.nametofont('TkFixedFont')
        self.surface: TkSurface = TkSurface(canvas, font)

    def _on_delete_window(self):
        self.editor.opened = False

    def _tick(self):
        surface = self.surface
        editor = self.editor

        surface.new_frame()
        editor.draw(surface, self.view, self.title)
        surface.end_frame()

        if editor.is_open():
            self._root.after(_FRAME_MS, self._tick)
        else:
            _log.debug('editor closed')
            self._root.destroy()

    def run(self) -> None:
        self._root.after(0, self._tick)
        self._root.mainloop()

