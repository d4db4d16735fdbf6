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

import logging
from typing import Optional
from typing import Tuple

import pyperclip
from bytesparse.base import Address

from .common import COLS_MAX
from .common import COLS_MIN
from .common import CONTEXT_POPUP
from .common import PROGRAM_TITLE
from .common import SCROLLING_REGION
from .common import BaseSurface
from .common import BufferView
from .common import ChildRegion
from .common import EditorConfig
from .common import FloatCoord
from .common import MouseButton
from .engine import EditOutcome
from .engine import EditSession
from .engine import HighlightRange
from .engine import HighlightResolver
from .engine import PreviewState
from .engine import arrow_key_request
from .engine import goto_request
from .layout import Geometry
from .layout import LineClipper
from .layout import calc_geometry
from .layout import line_cell_count
from .layout import line_total_count
from .utils import DATA_TYPE_DESC
from .utils import ENDIANNESS_DESC
from .utils import VALUE_FORMAT_DESC
from .utils import DataType
from .utils import Endianness
from .utils import ValueFormatEnum
from .utils import count_hex_digits
from .utils import format_address
from .utils import format_byte

_log = logging.getLogger(__name__)


# =====================================================================================================================

class MemoryEditor:
    r"""Hexadecimal memory viewer and editor.

    Call :meth:`draw` once per frame with the surface of the frame and the
    buffer to show. Nothing is retained between frames apart from the
    configuration and the interaction state (edit session, preview,
    highlight), so the buffer may change size from one frame to the next.
    """

    def __init__(self, config: Optional[EditorConfig] = None):
        if config is None:
            config = EditorConfig()

        self.config: EditorConfig = config
        self.session: EditSession = EditSession()
        self.preview: PreviewState = PreviewState()
        self.highlight: HighlightRange = HighlightRange()

        self.opened: bool = True
        self.contents_width_changed: bool = False
        self.addr_input_text: str = ''
        self.goto_address: Optional[Address] = None

        self.visible_start_line: int = 0
        self.visible_end_line: int = 0
        self.scroll_line: Optional[int] = None

    def is_open(self) -> bool:
        return self.opened

    def set_highlight(self, start: Address, endex: Address) -> None:
        self.highlight.set(start, endex)

    def clear_highlight(self) -> None:
        self.highlight.clear()

    def goto_address_and_highlight(self, addr_min: Address, addr_max: Address) -> None:
        r"""Scrolls to `addr_min` during the next frame, highlighting up to `addr_max`."""
        self.goto_address = addr_min
        if addr_max > addr_min:
            self.highlight.set(addr_min, addr_max)

    def calc_geometry(self, surface: BaseSurface, view: BufferView) -> Geometry:
        return calc_geometry(self.config, len(view), view.base_address, surface.font_metrics(), surface.style)

    # Clipboard -------------------------------------------------------------------------------------------------------

    def copy_preview_address(self, view: BufferView) -> Optional[str]:
        address = self.preview.address
        if address is None:
            return None
        digits = self.config.addr_digits_count or count_hex_digits(view.base_address + len(view) - 1)
        text = format_address(view.base_address + address, digits, self.config.uppercase_hex)
        pyperclip.copy(text)
        return text

    def copy_preview_value(self, view: BufferView) -> Optional[str]:
        if self.preview.address is None:
            return None
        text = self.preview.format(view, ValueFormatEnum.DECIMAL)
        pyperclip.copy(text)
        return text

    # Frame -----------------------------------------------------------------------------------------------------------

    def draw(self, surface: BaseSurface, view: BufferView, title: str = PROGRAM_TITLE) -> None:
        self.config.normalize()
        g = self.calc_geometry(surface, view)

        visible, self.opened = surface.begin_window(title, g.window_width, g.window_width * 0.6,
                                                    g.window_width, self.opened)
        if visible:
            snapshot = surface.input
            if surface.is_window_hovered() and snapshot.is_mouse_released(MouseButton.RIGHT):
                surface.open_popup(CONTEXT_POPUP)

            self.draw_contents(surface, view)

            if self.contents_width_changed:
                g = self.calc_geometry(surface, view)
                surface.set_window_size(g.window_width, surface.window_size()[1])
                _log.debug('window resized to width %r', g.window_width)
        surface.end_window()

    def draw_contents(self, surface: BaseSurface, view: BufferView) -> None:
        config = self.config
        config.normalize()
        self.contents_width_changed = False

        mem_size = len(view)
        g = self.calc_geometry(surface, view)
        style = surface.style

        item_spacing_y = style.item_spacing[1]
        frame_height_with_spacing = g.line_height + (style.frame_padding[1] * 2) + item_spacing_y
        text_height_with_spacing = g.line_height + item_spacing_y
        footer_height = config.footer_extra_height
        if config.show_options:
            footer_height += item_spacing_y + frame_height_with_spacing
        if config.show_data_preview:
            footer_height += item_spacing_y + frame_height_with_spacing + (text_height_with_spacing * 3)

        session = self.session
        session.validate(mem_size, config.read_only)
        self.preview.validate(mem_size)

        key_target: Optional[Address] = None
        if session.address is not None and not config.read_only:
            request = arrow_key_request(surface.input, session.address, mem_size, config.cols)
            if request is not None:
                key_target = request.resolve(session.address, mem_size)

        total_count = line_total_count(mem_size, config.cols)
        region = surface.begin_child(SCROLLING_REGION, -footer_height, total_count * g.line_height)
        key_target, click_target, committed = self._draw_grid(surface, view, g, region, key_target)
        surface.end_child()

        if click_target is not None:
            session.arm(click_target)
            self.preview.address = click_target

        elif key_target is not None:
            session.arm(key_target)
            self.preview.address = key_target

        elif committed and session.address is not None:
            address = session.advance(mem_size)
            if address is not None:
                self.preview.address = address

        show_data_preview = config.show_data_preview  # the options may toggle it
        if config.show_options:
            surface.separator()
            self._draw_options_line(surface, view, g)

        self._draw_context_popup(surface, view)

        if show_data_preview:
            surface.separator()
            self._draw_preview_line(surface, view, g)

    def _draw_grid(
        self,
        surface: BaseSurface,
        view: BufferView,
        g: Geometry,
        region: ChildRegion,
        key_target: Optional[Address],
    ) -> Tuple[Optional[Address], Optional[Address], bool]:

        config = self.config
        session = self.session
        style = surface.style
        snapshot = surface.input
        mem_size = len(view)
        base_address = view.base_address
        cols = g.cols
        line_height = g.line_height
        glyph_width = g.glyph_width
        uppercase = config.uppercase_hex
        chars_table = config.chars_table
        color_text = style.color_text
        color_disabled = style.color_text_disabled

        total_count = line_total_count(mem_size, cols)
        clipper = LineClipper(total_count, line_height, region.scroll_y, region.height)
        self.visible_start_line, self.visible_end_line = clipper.bounds()

        preview_size = self.preview.size if config.show_data_preview else 0
        resolver = HighlightResolver(view, self.highlight, self.preview.address, preview_size)

        origin_x = region.x
        origin_y = region.y - region.scroll_y
        clicking = (not config.read_only and snapshot.is_mouse_released(MouseButton.LEFT) and
                    snapshot.is_mouse_in(region.x, region.y, region.x + region.width, region.y + region.height))
        click_target: Optional[Address] = None
        committed = False

        if config.show_ascii:
            sep_x = origin_x + g.pos_ascii_start - glyph_width
            surface.draw_line(sep_x, region.y, sep_x, region.y + region.height, style.color_border)

        for line in clipper:
            line_y = origin_y + (line * line_height)
            line_address = line * cols
            count = line_cell_count(line, mem_size, cols)

            text = format_address(base_address + line_address, g.addr_digit_count, uppercase)
            surface.draw_text(origin_x, line_y, text + ':', color_text)

            # Draw hexadecimal
            for cell_x in range(count):
                address = line_address + cell_x
                cell_pos_x = origin_x + g.hex_cell_x(cell_x)

                if resolver.is_highlighted(address):
                    width = resolver.run_width(address, cell_x, g, mem_size)
                    surface.draw_rect(cell_pos_x, line_y, cell_pos_x + width, line_y + line_height,
                                      config.highlight_color)

                if session.address == address:
                    if session.take_focus:
                        self.addr_input_text = format_address(base_address + address, g.addr_digit_count, uppercase)
                    text = session.focus_text(view, uppercase)
                    result = surface.input_text(f'##data{address}', text, cell_pos_x, line_y, glyph_width * 2,
                                                take_focus=session.take_focus, max_length=2)
                    outcome = session.process(result, key_target is not None)

                    if outcome == EditOutcome.CLOSED:
                        key_target = None

                    elif outcome == EditOutcome.COMMIT:
                        session.commit(view)
                        committed = True
                else:
                    value = view.read(address) & 0xFF
                    text, disabled = self._format_cell(value)
                    surface.draw_text(cell_pos_x, line_y, text, (color_disabled if disabled else color_text))

                    if clicking and snapshot.is_mouse_in(cell_pos_x, line_y,
                                                         cell_pos_x + g.hex_cell_width, line_y + line_height):
                        click_target = address

            # Draw ASCII values
            if config.show_ascii:
                ascii_x = origin_x + g.pos_ascii_start

                if clicking and count and snapshot.is_mouse_in(ascii_x, line_y,
                                                               origin_x + g.pos_ascii_end, line_y + line_height):
                    cell_x = g.ascii_column_at(snapshot.mouse_pos[0] - origin_x)
                    if cell_x is not None and cell_x < count:
                        click_target = line_address + cell_x

                for cell_x in range(count):
                    address = line_address + cell_x
                    pos_x = origin_x + g.ascii_cell_x(cell_x)

                    if address == session.address:
                        surface.draw_rect(pos_x, line_y, pos_x + glyph_width, line_y + line_height,
                                          style.color_frame_bg)
                        surface.draw_rect(pos_x, line_y, pos_x + glyph_width, line_y + line_height,
                                          style.color_text_selected_bg)

                    value = view.read(address) & 0xFF
                    char = chars_table[value]
                    printable = char != '.' or value == 0x2E
                    surface.draw_text(pos_x, line_y, char, (color_text if printable else color_disabled))

        return key_target, click_target, committed

    def _format_cell(self, value: int) -> Tuple[str, bool]:
        config = self.config
        if config.show_hexii:
            if 32 <= value < 128:
                return f'.{chr(value)}', False
            elif value == 0xFF and config.grey_out_zeros:
                return '##', True
            elif value == 0x00:
                return '', False
            else:
                return format_byte(value, config.uppercase_hex), False
        else:
            if value == 0 and config.grey_out_zeros:
                return format_byte(value, config.uppercase_hex), True
            return format_byte(value, config.uppercase_hex), False

    # Footer ----------------------------------------------------------------------------------------------------------

    @staticmethod
    def _frame_width(surface: BaseSurface, glyphs: float) -> FloatCoord:
        return (surface.font_metrics().glyph_width * glyphs) + (surface.style.frame_padding[0] * 2)

    def _draw_options_line(self, surface: BaseSurface, view: BufferView, g: Geometry) -> None:
        config = self.config
        mem_size = len(view)
        base_address = view.base_address
        uppercase = config.uppercase_hex
        digits = g.addr_digit_count

        if surface.button('Options'):
            surface.open_popup(CONTEXT_POPUP)

        surface.same_line()
        if mem_size:
            start = format_address(base_address, digits, uppercase)
            endin = format_address(base_address + mem_size - 1, digits, uppercase)
            surface.text(f'Range {start}..{endin}')
        else:
            surface.text('Range empty')

        surface.same_line()
        width = (digits + 1) * g.glyph_width + (surface.style.frame_padding[0] * 2)
        entered, self.addr_input_text = surface.input_line('##addr', self.addr_input_text, width,
                                                           max_length=(digits + 2))
        if entered:
            request = goto_request(self.addr_input_text, base_address)
            if request is not None:
                address = request.resolve(None, mem_size)
                if address is not None:
                    self.highlight.clear()
                    self._goto(surface, address, g)
                else:
                    _log.debug('dropping goto to %r: out of range', request)

        if self.goto_address is not None:
            address = self.goto_address
            self.goto_address = None
            if 0 <= address < mem_size:
                self._goto(surface, address, g)
            else:
                _log.debug('dropping goto to %d: out of range', address)

    def _goto(self, surface: BaseSurface, address: Address, g: Geometry) -> None:
        line = address // g.cols
        self.scroll_line = line
        surface.set_child_scroll(SCROLLING_REGION, line * g.line_height)
        self.session.arm(address)
        self.preview.address = address
        _log.debug('goto %d, line %d', address, line)

    def _draw_context_popup(self, surface: BaseSurface, view: BufferView) -> None:
        config = self.config

        if surface.begin_popup(CONTEXT_POPUP):
            changed, cols = surface.slider_int('##cols', config.cols, COLS_MIN, COLS_MAX,
                                               self._frame_width(surface, 7), '%d cols')
            if changed:
                config.cols = max(1, cols)
                self.contents_width_changed = True

            _, config.show_data_preview = surface.checkbox('Show Data Preview', config.show_data_preview)
            _, config.show_hexii = surface.checkbox('Show HexII', config.show_hexii)
            changed, config.show_ascii = surface.checkbox('Show Ascii', config.show_ascii)
            if changed:
                self.contents_width_changed = True
            _, config.grey_out_zeros = surface.checkbox('Grey out zeroes', config.grey_out_zeros)
            _, config.uppercase_hex = surface.checkbox('Uppercase Hex', config.uppercase_hex)

            if self.preview.address is not None:
                if surface.button('Copy address'):
                    self.copy_preview_address(view)
                surface.same_line()
                if surface.button('Copy value'):
                    self.copy_preview_value(view)
            surface.end_popup()

    def _draw_preview_line(self, surface: BaseSurface, view: BufferView, g: Geometry) -> None:
        preview = self.preview
        style = surface.style
        inner_x = style.item_inner_spacing[0]

        surface.text('Preview as:')
        surface.same_line()
        items = [DATA_TYPE_DESC[data_type] for data_type in DataType]
        changed, index = surface.combo('##combo_type', int(preview.data_type), items,
                                       self._frame_width(surface, 10) + inner_x)
        if changed:
            preview.data_type = DataType(index)

        surface.same_line()
        items = [ENDIANNESS_DESC[endianness] for endianness in Endianness]
        changed, index = surface.combo('##combo_endianness', int(preview.endianness), items,
                                       self._frame_width(surface, 6) + inner_x)
        if changed:
            preview.endianness = Endianness(index)

        value_x = g.glyph_width * 6
        for value_format in (ValueFormatEnum.DECIMAL, ValueFormatEnum.HEXADECIMAL, ValueFormatEnum.BINARY):
            surface.text(VALUE_FORMAT_DESC[value_format])
            surface.same_line(value_x)
            surface.text(preview.format(view, value_format))
