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

import pytest

from memedit.common import BufferView
from memedit.common import EditorConfig
from memedit.common import FontMetrics
from memedit.common import InputSnapshot
from memedit.common import Key
from memedit.common import Style
from memedit.common import TextInputResult
from memedit.engine import EditOutcome
from memedit.engine import EditSession
from memedit.engine import EditState
from memedit.engine import HighlightRange
from memedit.engine import HighlightResolver
from memedit.engine import NavigationRequest
from memedit.engine import PreviewState
from memedit.engine import arrow_key_request
from memedit.engine import goto_request
from memedit.layout import calc_geometry
from memedit.utils import DataType
from memedit.utils import Endianness
from memedit.utils import ValueFormatEnum


def _geometry(mem_size):
    return calc_geometry(EditorConfig(), mem_size, 0, FontMetrics(8., 16.), Style())


def _keys(*keys):
    return InputSnapshot(keys_pressed=keys)


# =====================================================================================================================

def test_highlight_range():
    highlight = HighlightRange()
    assert not highlight
    assert not highlight.contains(0)

    highlight.set(1, 3)
    assert highlight
    assert [highlight.contains(a) for a in range(4)] == [False, True, True, False]

    highlight.clear()
    assert not highlight
    assert highlight.min is None and highlight.max is None


@pytest.mark.parametrize('start, endex', [(3, 3), (5, 2)])
def test_highlight_range_set_raises(start, endex):
    with pytest.raises(ValueError):
        HighlightRange().set(start, endex)


def test_highlight_resolver_range():
    view = BufferView(bytearray(16))
    highlight = HighlightRange()
    highlight.set(1, 3)
    resolver = HighlightResolver(view, highlight)
    g = _geometry(16)

    assert [resolver.is_highlighted(a) for a in range(4)] == [False, True, True, False]
    assert resolver.run_width(1, 1, g, 16) == g.hex_cell_width
    assert resolver.run_width(2, 2, g, 16) == g.glyph_width * 2


def test_highlight_resolver_run_across_mid_cols():
    view = BufferView(bytearray(32))
    highlight = HighlightRange()
    highlight.set(6, 10)
    resolver = HighlightResolver(view, highlight)
    g = _geometry(32)

    assert resolver.run_width(7, 7, g, 32) == g.hex_cell_width + g.spacing_between_mid_cols
    assert resolver.run_width(8, 8, g, 32) == g.hex_cell_width


def test_highlight_resolver_line_end():
    view = BufferView(bytearray(16))
    highlight = HighlightRange()
    highlight.set(0, 16)
    resolver = HighlightResolver(view, highlight)
    g = _geometry(16)

    assert not resolver.is_next_highlighted(15, 16)
    assert resolver.run_width(15, 15, g, 16) == g.hex_cell_width


def test_highlight_resolver_predicate():
    view = BufferView(bytearray(8), highlight_fn=lambda data, address: address == 3)
    resolver = HighlightResolver(view, HighlightRange())

    assert resolver.is_highlighted(3)
    assert not resolver.is_highlighted(2)
    assert resolver.is_next_highlighted(2, 8)


def test_highlight_resolver_preview():
    view = BufferView(bytearray(16))
    resolver = HighlightResolver(view, HighlightRange(), preview_address=4, preview_size=4)
    g = _geometry(16)

    assert [resolver.is_highlighted(a) for a in range(3, 9)] == [False, True, True, True, True, False]
    assert not resolver.is_next_highlighted(4, 16)  # preview runs are never merged
    assert resolver.run_width(4, 4, g, 16) == g.glyph_width * 2


# =====================================================================================================================

def test_navigation_request_resolve():
    assert NavigationRequest(delta=-16).resolve(20, 64) == 4
    assert NavigationRequest(delta=+1).resolve(63, 64) is None
    assert NavigationRequest(delta=+1).resolve(None, 64) is None
    assert NavigationRequest(address=10).resolve(None, 64) == 10
    assert NavigationRequest(address=64).resolve(None, 64) is None
    assert NavigationRequest(address=-1).resolve(None, 64) is None


def test_arrow_key_request():
    assert arrow_key_request(_keys(Key.UP), 20, 64, 16).delta == -16
    assert arrow_key_request(_keys(Key.DOWN), 47, 64, 16).delta == +16
    assert arrow_key_request(_keys(Key.LEFT), 1, 64, 16).delta == -1
    assert arrow_key_request(_keys(Key.RIGHT), 62, 64, 16).delta == +1
    assert arrow_key_request(_keys(), 20, 64, 16) is None


def test_arrow_key_request_bounds():
    assert arrow_key_request(_keys(Key.UP), 15, 64, 16) is None
    assert arrow_key_request(_keys(Key.DOWN), 48, 64, 16) is None
    assert arrow_key_request(_keys(Key.LEFT), 0, 64, 16) is None
    assert arrow_key_request(_keys(Key.RIGHT), 63, 64, 16) is None


def test_arrow_key_request_short_buffer():
    assert arrow_key_request(_keys(Key.DOWN), 2, 4, 16) is None
    assert arrow_key_request(_keys(Key.DOWN), 0, 4, 16) is None
    assert arrow_key_request(_keys(Key.UP), 2, 4, 16) is None
    assert arrow_key_request(_keys(Key.RIGHT), 2, 4, 16).delta == +1


def test_goto_request():
    assert goto_request('110', 0x100).resolve(None, 64) == 0x10
    assert goto_request('0x2', 0).address == 2
    assert goto_request('10', 0x100).resolve(None, 64) is None
    assert goto_request('zz', 0) is None
    assert goto_request('', 0) is None


# =====================================================================================================================

def test_edit_session_states():
    session = EditSession()
    assert session.state == EditState.IDLE

    session.arm(5)
    assert session.state == EditState.ARMED
    assert session.address == 5

    outcome = session.process(TextInputResult('05', active=True), False)
    assert outcome == EditOutcome.NONE
    assert session.state == EditState.EDITING

    session.reset()
    assert session.state == EditState.IDLE
    assert session.input_text == ''


def test_edit_session_enter_commits():
    session = EditSession()
    session.arm(1)
    session.process(TextInputResult('00', active=True), False)
    outcome = session.process(TextInputResult('AB', entered=True, active=True), False)
    assert outcome == EditOutcome.COMMIT
    assert session.input_text == 'AB'


def test_edit_session_two_digits_commit():
    session = EditSession()
    session.arm(1)
    session.process(TextInputResult('00', active=True), False)
    assert session.process(TextInputResult('A', active=True, cursor_pos=1), False) == EditOutcome.NONE
    assert session.process(TextInputResult('AB', active=True, cursor_pos=2), False) == EditOutcome.COMMIT


def test_edit_session_focus_lost_closes():
    session = EditSession()
    session.arm(1)
    session.process(TextInputResult('00', active=True), False)
    outcome = session.process(TextInputResult('0', active=False), False)
    assert outcome == EditOutcome.CLOSED
    assert session.state == EditState.IDLE


def test_edit_session_inactive_while_taking_focus():
    session = EditSession()
    session.arm(1)
    outcome = session.process(TextInputResult('00', active=False), False)
    assert outcome == EditOutcome.NONE
    assert session.state == EditState.EDITING


def test_edit_session_navigation_wins():
    session = EditSession()
    session.arm(1)
    session.process(TextInputResult('00', active=True), False)
    outcome = session.process(TextInputResult('AB', entered=True, active=True), True)
    assert outcome == EditOutcome.NONE


def test_edit_session_commit():
    data = bytearray(4)
    view = BufferView(data)
    session = EditSession()
    session.arm(1)
    session.input_text = 'ab'
    assert session.commit(view)
    assert data == b'\x00\xAB\x00\x00'


@pytest.mark.parametrize('text', ['', 'zz', '123'])
def test_edit_session_commit_malformed(text):
    data = bytearray(4)
    session = EditSession()
    session.arm(1)
    session.input_text = text
    assert not session.commit(BufferView(data))
    assert data == bytes(4)


def test_edit_session_advance():
    session = EditSession()
    session.arm(1)
    assert session.advance(4) == 2
    assert session.state == EditState.ARMED

    session.arm(3)
    assert session.advance(4) is None
    assert session.state == EditState.IDLE


def test_edit_session_validate():
    session = EditSession()
    session.arm(10)
    assert session.validate(16, False)
    assert not session.validate(8, False)
    assert session.address is None

    session.arm(1)
    assert not session.validate(16, True)
    assert session.address is None


def test_edit_session_focus_text():
    data = bytearray(4)
    data[2] = 0x1F
    view = BufferView(data)
    session = EditSession()
    session.arm(2)
    assert session.focus_text(view, False) == '1f'
    assert session.focus_text(view, True) == '1F'

    session.process(TextInputResult('7', active=True), False)
    assert session.focus_text(view, True) == '7'


# =====================================================================================================================

def test_preview_read_clipped():
    view = BufferView(bytearray(range(1, 9)))
    preview = PreviewState()
    preview.address = 7
    assert preview.size == 4
    assert preview.read(view) == (b'\x08\x00\x00\x00', 1)
    assert preview.format(view, ValueFormatEnum.DECIMAL) == '8'
    assert preview.format(view, ValueFormatEnum.BINARY) == '00001000'


def test_preview_format():
    view = BufferView(bytearray(b'\x01\x02\x03\x04'))
    preview = PreviewState()
    assert preview.format(view, ValueFormatEnum.DECIMAL) == 'N/A'

    preview.address = 0
    preview.data_type = DataType.U16
    assert preview.format(view, ValueFormatEnum.DECIMAL) == '513'
    preview.endianness = Endianness.BIG
    assert preview.format(view, ValueFormatEnum.DECIMAL) == '258'
    assert preview.format(view, ValueFormatEnum.HEXADECIMAL) == '0x00000102'


def test_preview_validate():
    preview = PreviewState()
    preview.address = 5
    assert preview.validate(6)
    assert not preview.validate(5)
    assert preview.address is None
