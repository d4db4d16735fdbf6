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

import pyperclip
import pytest

from memedit.common import SCROLLING_REGION
from memedit.common import BufferView
from memedit.common import EditorConfig
from memedit.common import InputSnapshot
from memedit.common import Key
from memedit.common import MouseButton
from memedit.common import TextInputResult
from memedit.engine import EditState
from memedit.utils import DataType
from memedit.utils import Endianness
from memedit.widget import MemoryEditor

from .fakes import FakeSurface


def _click(x, y, button=MouseButton.LEFT):
    return InputSnapshot(mouse_pos=(x, y), mouse_released=[button])


def _frame(editor, surface, view, snapshot=None):
    surface.new_frame(snapshot)
    editor.draw(surface, view)


@pytest.fixture
def surface():
    return FakeSurface()


@pytest.fixture
def editor():
    return MemoryEditor()


# =====================================================================================================================

def test_click_type_commit(editor, surface):
    data = bytearray(4)
    view = BufferView(data)

    _frame(editor, surface, view, _click(75, 12))  # hex cell 2
    assert editor.session.address == 2
    assert editor.session.state == EditState.ARMED
    assert editor.preview.address == 2
    assert not surface.called('input_text')

    _frame(editor, surface, view)
    assert surface.called('input_text') == [('##data2', '00', 72., 8., 16., True)]
    assert editor.session.state == EditState.EDITING
    assert editor.addr_input_text == '2'

    surface.text_results['##data2'] = TextInputResult('AB', entered=True, active=True)
    _frame(editor, surface, view)
    assert data == b'\x00\x00\xAB\x00'
    assert editor.session.address == 3
    assert editor.preview.address == 3

    _frame(editor, surface, view)
    assert editor.session.state == EditState.EDITING
    assert editor.session.address == 3


def test_commit_last_byte_closes(editor, surface):
    data = bytearray(4)
    view = BufferView(data)
    editor.session.arm(3)

    _frame(editor, surface, view)
    surface.text_results['##data3'] = TextInputResult('7', entered=True, active=True)
    _frame(editor, surface, view)
    assert data[3] == 0x07
    assert editor.session.state == EditState.IDLE


def test_commit_malformed_keeps_byte(editor, surface):
    data = bytearray(b'\x11\x22')
    view = BufferView(data)
    editor.session.arm(0)

    _frame(editor, surface, view)
    surface.text_results['##data0'] = TextInputResult('', entered=True, active=True)
    _frame(editor, surface, view)
    assert data == b'\x11\x22'
    assert editor.session.address == 1


def test_click_ascii_column(editor, surface):
    view = BufferView(bytearray(4))
    _frame(editor, surface, view, _click(380, 12))
    assert editor.session.address == 1


def test_click_past_short_line(editor, surface):
    view = BufferView(bytearray(4))
    _frame(editor, surface, view, _click(135, 12))  # hex cell 5 does not exist
    assert editor.session.address is None


def test_focus_lost_closes_session(editor, surface):
    view = BufferView(bytearray(4))
    editor.session.arm(2)
    _frame(editor, surface, view)

    surface.text_results['##data2'] = TextInputResult('0', active=False)
    _frame(editor, surface, view)
    assert editor.session.state == EditState.IDLE


def test_arrow_keys(editor, surface):
    view = BufferView(bytearray(64))
    editor.session.arm(2)
    _frame(editor, surface, view)

    _frame(editor, surface, view, InputSnapshot(keys_pressed=[Key.DOWN]))
    assert editor.session.address == 18
    assert editor.session.take_focus
    assert editor.preview.address == 18

    _frame(editor, surface, view, InputSnapshot(keys_pressed=[Key.LEFT]))
    assert editor.session.address == 17

    _frame(editor, surface, view, InputSnapshot(keys_pressed=[Key.UP]))
    assert editor.session.address == 1

    _frame(editor, surface, view, InputSnapshot(keys_pressed=[Key.UP]))
    assert editor.session.address == 1


def test_arrow_down_short_buffer(editor, surface):
    view = BufferView(bytearray(4))
    editor.session.arm(2)
    _frame(editor, surface, view)

    _frame(editor, surface, view, InputSnapshot(keys_pressed=[Key.DOWN]))
    assert editor.session.address == 2
    assert editor.session.state == EditState.EDITING
    assert editor.preview.address is None


def test_arrow_key_beats_commit(editor, surface):
    data = bytearray(64)
    view = BufferView(data)
    editor.session.arm(2)
    _frame(editor, surface, view)

    surface.text_results['##data2'] = TextInputResult('FF', entered=True, active=True)
    _frame(editor, surface, view, InputSnapshot(keys_pressed=[Key.RIGHT]))
    assert data[2] == 0
    assert editor.session.address == 3


def test_read_only(surface):
    config = EditorConfig()
    config.read_only = True
    editor = MemoryEditor(config)
    view = BufferView(bytearray(4))

    _frame(editor, surface, view, _click(75, 12))
    assert editor.session.address is None

    editor.session.arm(1)
    _frame(editor, surface, view)
    assert editor.session.address is None
    assert not surface.called('input_text')


def test_buffer_shrinks(editor, surface):
    data = bytearray(16)
    view = BufferView(data)
    editor.session.arm(10)
    editor.preview.address = 12
    _frame(editor, surface, view)

    del data[8:]
    _frame(editor, surface, view)
    assert editor.session.address is None
    assert editor.preview.address is None


def test_empty_buffer(editor, surface):
    view = BufferView(bytearray())
    _frame(editor, surface, view, _click(35, 12))

    assert editor.session.address is None
    texts = surface.texts()
    assert '0:' in texts
    assert 'Range empty' in texts
    assert not surface.called('input_text')
    assert surface.called('begin_child')[0][2] == 16.  # one empty row


def test_range_text(editor, surface):
    view = BufferView(bytearray(0x100), base_address=0x1000)
    _frame(editor, surface, view)
    assert 'Range 1000..10FF' in surface.texts()
    assert '1010:' in surface.texts()


# =====================================================================================================================

def test_goto(editor, surface):
    view = BufferView(bytearray(256))
    surface.line_results['##addr'] = (True, '25')
    _frame(editor, surface, view)

    assert editor.session.address == 0x25
    assert editor.preview.address == 0x25
    assert editor.scroll_line == 2
    assert surface.scrolls[SCROLLING_REGION] == 32.


def test_goto_first_line(editor, surface):
    view = BufferView(bytearray(256))
    surface.line_results['##addr'] = (True, '2')
    _frame(editor, surface, view)

    assert editor.session.address == 2
    assert editor.preview.address == 2
    assert editor.scroll_line == 0


def test_goto_base_address(editor, surface):
    view = BufferView(bytearray(256), base_address=0x100)
    surface.line_results['##addr'] = (True, '110')
    _frame(editor, surface, view)
    assert editor.session.address == 0x10


@pytest.mark.parametrize('text', ['zz', '100', ''])
def test_goto_invalid(editor, surface, text):
    view = BufferView(bytearray(256))
    editor.set_highlight(1, 3)
    surface.line_results['##addr'] = (True, text)
    _frame(editor, surface, view)

    assert editor.session.address is None
    assert editor.scroll_line is None
    assert editor.highlight


def test_goto_clears_highlight(editor, surface):
    view = BufferView(bytearray(256))
    editor.set_highlight(1, 3)
    surface.line_results['##addr'] = (True, '40')
    _frame(editor, surface, view)
    assert not editor.highlight


def test_goto_address_and_highlight(editor, surface):
    view = BufferView(bytearray(256))
    editor.goto_address_and_highlight(40, 44)
    _frame(editor, surface, view)

    assert editor.session.address == 40
    assert editor.scroll_line == 2
    assert (editor.highlight.min, editor.highlight.max) == (40, 44)
    assert editor.goto_address is None


def test_goto_address_out_of_range(editor, surface):
    view = BufferView(bytearray(16))
    editor.goto_address_and_highlight(40, 40)
    _frame(editor, surface, view)

    assert editor.session.address is None
    assert not editor.highlight
    assert editor.goto_address is None


# =====================================================================================================================

def test_highlight_run(editor, surface):
    view = BufferView(bytearray(4))
    editor.set_highlight(1, 3)
    _frame(editor, surface, view)

    color = editor.config.highlight_color
    rects = [args[:4] for args in surface.called('draw_rect') if args[4] == color]
    assert rects == [(52., 8., 72., 24.), (72., 8., 88., 24.)]


def test_highlight_clear(editor, surface):
    view = BufferView(bytearray(4))
    editor.set_highlight(1, 3)
    editor.clear_highlight()
    _frame(editor, surface, view)

    color = editor.config.highlight_color
    assert not [args for args in surface.called('draw_rect') if args[4] == color]


def test_highlight_predicate(editor, surface):
    view = BufferView(bytearray(4), highlight_fn=lambda data, address: address == 0)
    _frame(editor, surface, view)

    color = editor.config.highlight_color
    rects = [args[:4] for args in surface.called('draw_rect') if args[4] == color]
    assert rects == [(32., 8., 48., 24.)]


# =====================================================================================================================

def test_cell_text(editor, surface):
    view = BufferView(bytearray(b'\x41\x00\xFF\x10'))
    _frame(editor, surface, view)

    style = surface.style
    cells = {args[2]: args[3] for args in surface.called('draw_text') if args[1] == 8. and args[0] < 108.}
    assert cells['41'] == style.color_text
    assert cells['00'] == style.color_text_disabled
    assert cells['FF'] == style.color_text


def test_cell_text_lowercase(surface):
    config = EditorConfig()
    config.uppercase_hex = False
    editor = MemoryEditor(config)
    _frame(editor, surface, BufferView(bytearray(b'\xAB')))
    assert 'ab' in surface.texts()


def test_cell_text_hexii(surface):
    config = EditorConfig()
    config.show_hexii = True
    editor = MemoryEditor(config)
    _frame(editor, surface, BufferView(bytearray(b'\x41\x00\xFF\x10')))

    texts = surface.texts()
    assert '.A' in texts
    assert '##' in texts
    assert '10' in texts
    assert '00' not in texts


def test_ascii_column(editor, surface):
    view = BufferView(bytearray(b'\x41\x2E\x00'))
    _frame(editor, surface, view)

    style = surface.style
    chars = [(args[2], args[3]) for args in surface.called('draw_text') if args[0] >= 370.]
    positions = [args[0] for args in surface.called('draw_text') if args[0] >= 370.]
    assert positions == [370., 378., 386.]
    assert chars == [('A', style.color_text), ('.', style.color_text), ('.', style.color_text_disabled)]


def test_no_ascii_column(surface):
    config = EditorConfig()
    config.show_ascii = False
    editor = MemoryEditor(config)
    _frame(editor, surface, BufferView(bytearray(b'\x41')))
    assert 'A' not in surface.texts()
    assert not surface.called('draw_line')


# =====================================================================================================================

def test_context_popup_opens(editor, surface):
    view = BufferView(bytearray(4))
    _frame(editor, surface, view, _click(500, 500, MouseButton.RIGHT))
    assert surface.called('open_popup') == [('context',)]
    assert surface.called('slider_int')


def test_context_popup_not_hovered(editor, surface):
    surface.hovered = False
    _frame(editor, surface, BufferView(bytearray(4)), _click(500, 500, MouseButton.RIGHT))
    assert not surface.called('open_popup')


def test_options_button_opens_popup(editor, surface):
    surface.pressed.add('Options')
    _frame(editor, surface, BufferView(bytearray(4)))
    assert surface.called('open_popup') == [('context',)]


def test_no_options_line(surface):
    config = EditorConfig()
    config.show_options = False
    editor = MemoryEditor(config)
    _frame(editor, surface, BufferView(bytearray(4)))
    assert not surface.called('button')
    assert surface.called('begin_child')[0][1] == 0.


def test_cols_change_resizes(editor, surface):
    view = BufferView(bytearray(256))
    surface.popups.add('context')
    surface.slider_values['##cols'] = 8
    _frame(editor, surface, view)

    assert editor.config.cols == 8
    assert surface.called('set_window_size') == [(307., 600.)]


def test_ascii_toggle_resizes(editor, surface):
    view = BufferView(bytearray(256))
    surface.popups.add('context')
    surface.toggled.add('Show Ascii')
    _frame(editor, surface, view)

    assert not editor.config.show_ascii
    assert len(surface.called('set_window_size')) == 1


def test_option_toggles(editor, surface):
    surface.popups.add('context')
    surface.toggled.update(['Show HexII', 'Grey out zeroes', 'Uppercase Hex'])
    _frame(editor, surface, BufferView(bytearray(4)))

    config = editor.config
    assert config.show_hexii
    assert not config.grey_out_zeros
    assert not config.uppercase_hex
    assert not surface.called('set_window_size')


# =====================================================================================================================

def test_preview_toggle(editor, surface):
    view = BufferView(bytearray(b'\x01\x02\x00\x00'))
    surface.popups.add('context')
    surface.toggled.add('Show Data Preview')
    _frame(editor, surface, view)
    assert editor.config.show_data_preview
    assert 'Preview as:' not in surface.texts()

    _frame(editor, surface, view)
    assert 'Preview as:' in surface.texts()
    assert 'N/A' in surface.texts()


def test_preview_values(surface):
    config = EditorConfig()
    config.show_data_preview = True
    editor = MemoryEditor(config)
    editor.preview.address = 0
    editor.preview.data_type = DataType.I16
    view = BufferView(bytearray(b'\x01\x02\x00\x00'))
    _frame(editor, surface, view)

    texts = surface.texts()
    assert '513' in texts
    assert '0x00000201' in texts
    assert '00000001 00000010' in texts

    surface.combo_values['##combo_endianness'] = int(Endianness.BIG)
    _frame(editor, surface, view)
    assert editor.preview.endianness == Endianness.BIG

    _frame(editor, surface, view)
    assert '258' in surface.texts()


def test_preview_type_combo(surface):
    config = EditorConfig()
    config.show_data_preview = True
    editor = MemoryEditor(config)
    surface.combo_values['##combo_type'] = int(DataType.F64)
    _frame(editor, surface, BufferView(bytearray(8)))
    assert editor.preview.data_type == DataType.F64


def test_preview_highlight(surface):
    config = EditorConfig()
    config.show_data_preview = True
    editor = MemoryEditor(config)
    editor.preview.address = 0
    editor.preview.data_type = DataType.U16
    _frame(editor, surface, BufferView(bytearray(4)))

    color = config.highlight_color
    rects = [args[:4] for args in surface.called('draw_rect') if args[4] == color]
    assert rects == [(32., 8., 48., 24.), (52., 8., 68., 24.)]


# =====================================================================================================================

def test_copy_preview(editor, monkeypatch):
    copied = []
    monkeypatch.setattr(pyperclip, 'copy', copied.append)
    data = bytearray(256)
    data[0x10] = 7
    view = BufferView(data, base_address=0x100)

    assert editor.copy_preview_address(view) is None
    assert editor.copy_preview_value(view) is None
    assert copied == []

    editor.preview.address = 0x10
    assert editor.copy_preview_address(view) == '110'
    assert editor.copy_preview_value(view) == '7'
    assert copied == ['110', '7']


def test_copy_buttons(editor, surface, monkeypatch):
    copied = []
    monkeypatch.setattr(pyperclip, 'copy', copied.append)
    view = BufferView(bytearray(16))
    editor.preview.address = 3
    surface.popups.add('context')
    surface.pressed.update(['Copy address', 'Copy value'])
    _frame(editor, surface, view)
    assert copied == ['3', '0']


def test_copy_buttons_hidden(editor, surface):
    surface.popups.add('context')
    _frame(editor, surface, BufferView(bytearray(16)))
    labels = [args[0] for args in surface.called('button')]
    assert 'Copy address' not in labels


def test_window_closed(editor, surface):
    editor.opened = False
    _frame(editor, surface, BufferView(bytearray(4)))
    assert not editor.is_open()
