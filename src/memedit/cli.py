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

"""
Module that contains the command line app.

Why does this file exist, and why not put this in __main__?

  You might be tempted to import things from __main__ later, but that will cause
  problems: the code will get executed twice:

  - When you run `python -m memedit` python will execute
    ``__main__.py`` as a script. That means there won't be any
    ``memedit.__main__`` in ``sys.modules``.
  - When you import __main__ it will get executed again (as a module) because
    there's no ``memedit.__main__`` in ``sys.modules``.

  Also see (1) from http://click.pocoo.org/5/setuptools/#setuptools-integration
"""

import logging
from typing import Optional

import click
import hexrec
from bytesparse.inplace import Memory

from .common import BYTE_ENCODINGS
from .common import COLS_MAX
from .common import COLS_MIN
from .common import PROGRAM_TITLE
from .common import BufferView
from .common import EditorConfig
from .tkgui import EditorApp
from .utils import parse_int
from .widget import MemoryEditor

_log = logging.getLogger(__name__)

LOG_LEVELS = ('DEBUG', 'INFO', 'WARNING', 'ERROR')


# ============================================================================

def demo_buffer() -> bytearray:
    return bytearray(range(256)) * 8


def load_buffer(
    path: Optional[str],
    records: bool = False,
    base_address: int = 0,
) -> BufferView:
    r"""Builds the buffer view to be edited.

    Args:
        path:
            File to load; ``None`` shows a demo buffer.
        records:
            Loads a record file (Intel HEX, Motorola S-record, ...) into a
            sparse memory; the base address becomes the start of its data.
        base_address:
            Display address of the first byte of a flat buffer.

    Returns:
        BufferView: View over the loaded data.
    """
    if path is None:
        _log.info('no file given, showing demo buffer')
        return BufferView(demo_buffer(), base_address=base_address)

    if records:
        _log.info('loading records from %r', path)
        memory: Memory = hexrec.load(path).memory
        return BufferView.from_memory(memory)

    _log.info('loading raw bytes from %r', path)
    with open(path, 'rb') as stream:
        data = bytearray(stream.read())
    return BufferView(data, base_address=base_address)


def build_config(
    cols: int = 16,
    read_only: bool = False,
    preview: bool = False,
    hexii: bool = False,
    lowercase: bool = False,
    no_ascii: bool = False,
    encoding: str = 'ascii',
) -> EditorConfig:

    config = EditorConfig()
    config.cols = cols
    config.read_only = read_only
    config.show_data_preview = preview
    config.show_hexii = hexii
    config.uppercase_hex = not lowercase
    config.show_ascii = not no_ascii
    config.chars_encoding = encoding
    return config


def _parse_base(ctx, param, value):
    if value is None:
        return 0
    try:
        base_address, sign, _ = parse_int(value)
    except ValueError:
        raise click.BadParameter(f'invalid integer: {value!r}')
    if sign == '-' and base_address:
        raise click.BadParameter('must not be negative')
    return base_address


# ============================================================================

@click.command()
@click.argument('infile', type=click.Path(exists=True, dir_okay=False), required=False)
@click.option('-r', '--records', is_flag=True,
              help='Loads INFILE as a record file (Intel HEX, Motorola S-record, ...).')
@click.option('-c', '--cols', type=click.IntRange(COLS_MIN, COLS_MAX), default=16, show_default=True,
              help='Number of bytes per row.')
@click.option('--read-only', is_flag=True,
              help='Disables editing.')
@click.option('--preview', is_flag=True,
              help='Shows the data preview footer.')
@click.option('--hexii', is_flag=True,
              help='Shows bytes in HexII notation.')
@click.option('--lowercase', is_flag=True,
              help='Shows lowercase hexadecimal digits.')
@click.option('--no-ascii', is_flag=True,
              help='Hides the ASCII column.')
@click.option('--encoding', type=click.Choice(BYTE_ENCODINGS), default='ascii', show_default=True,
              help='Character encoding of the ASCII column.')
@click.option('-b', '--base', 'base_address', callback=_parse_base,
              help='Display address of the first byte; ignored with --records.')
@click.option('--log-level', type=click.Choice(LOG_LEVELS, case_sensitive=False), default='WARNING',
              show_default=True, help='Logging verbosity.')
def main(infile, records, cols, read_only, preview, hexii, lowercase, no_ascii, encoding, base_address,
         log_level) -> None:
    """
    Memory editor.

    Shows INFILE as a grid of hexadecimal bytes, side by side with their
    character representation, and lets you edit it byte by byte.
    Without INFILE, a demo buffer is shown.

    Being built with `Click <https://click.palletsprojects.com/>`_, all the
    commands follow POSIX-like syntax rules.
    """
    logging.basicConfig(level=log_level.upper(), format='%(levelname)s:%(name)s:%(message)s')

    try:
        view = load_buffer(infile, records=records, base_address=base_address)
    except (OSError, ValueError) as exc:
        raise click.ClickException(f'cannot load {infile!r}: {exc}')

    config = build_config(cols=cols, read_only=read_only, preview=preview, hexii=hexii,
                          lowercase=lowercase, no_ascii=no_ascii, encoding=encoding)
    editor = MemoryEditor(config)

    title = PROGRAM_TITLE if infile is None else f'{infile} - {PROGRAM_TITLE}'
    app = EditorApp(view, editor, title=title)
    app.run()
