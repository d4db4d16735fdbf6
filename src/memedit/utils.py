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
import re
import struct
from typing import Mapping
from typing import Tuple

HEX_SET = set('0123456789ABCDEFabcdef')

HEX_PREFIX_REGEX = re.compile(r"^(?P<sign>[+-]?)\s*(0[Xx])(?P<body>[0-9A-Fa-f]+(['_][0-9A-Fa-f]+)*)$")
HEX_SUFFIX_REGEX = re.compile(r"^(?P<sign>[+-]?)\s*(0[Xx])?(?P<body>[0-9A-Fa-f]+(['_][0-9A-Fa-f]+)*)[Hh]$")

OCT_PREFIX_REGEX = re.compile(r"^(?P<sign>[+-]?)\s*(0[Oo]?)(?P<body>[0-7]+(['_][0-7]+)*)$")
OCT_SUFFIX_REGEX = re.compile(r"^(?P<sign>[+-]?)\s*(0[Oo]?)?(?P<body>[0-7]+(['_][0-7]+)*)[Oo]$")

BIN_PREFIX_REGEX = re.compile(r"^(?P<sign>[+-]?)\s*(0[Bb])(?P<body>[01]+(['_][01]+)*)$")
BIN_SUFFIX_REGEX = re.compile(r"^(?P<sign>[+-]?)\s*(0[Bb])?(?P<body>[01]+(['_][01]+)*)[Bb]$")

DEC_AFFIX_REGEX = re.compile(r"^(?P<sign>[+-]?)\s*(0[Dd])?(?P<body>[0-9]+(['_][0-9]+)*)[Dd]?$")

# Address box: hexadecimal even without affixes
HEX_ADDRESS_REGEX = re.compile(r"^(0[Xx])?(?P<body>[0-9A-Fa-f]+(['_][0-9A-Fa-f]+)*)[Hh]?$")

_INT_REGEX_DICT = {
    -16: HEX_PREFIX_REGEX,
    +16: HEX_SUFFIX_REGEX,

    -8: OCT_PREFIX_REGEX,
    +8: OCT_SUFFIX_REGEX,

    -2: BIN_PREFIX_REGEX,
    +2: BIN_SUFFIX_REGEX,

    10: DEC_AFFIX_REGEX,
}


def parse_int(text: str) -> Tuple[int, str, int]:

    text = text.strip()
    for base2, regex in _INT_REGEX_DICT.items():
        match = regex.match(text)
        if match:
            base = abs(base2)
            break
    else:
        raise ValueError(f'Invalid integer format: {text}')
    gd = match.groupdict()
    sign = gd['sign']
    body = gd['body'].replace("'", '')
    value = int(body, base)
    return value, sign, base


def parse_hex(text: str) -> int:
    match = HEX_ADDRESS_REGEX.match(text.strip())
    if not match:
        raise ValueError(f'Invalid hexadecimal format: {text}')
    body = match.group('body').replace("'", '').replace('_', '')
    return int(body, 16)


def parse_byte(text: str) -> int:
    text = text.strip()
    if not (1 <= len(text) <= 2) or not set(text) <= HEX_SET:
        raise ValueError(f'Invalid byte: {text!r}')
    return int(text, 16)


def format_byte(value: int, uppercase: bool = True) -> str:
    return f'{value:02X}' if uppercase else f'{value:02x}'


def format_address(value: int, digits: int, uppercase: bool = True) -> str:
    char = 'X' if uppercase else 'x'
    return f'{{:0{digits}{char}}}'.format(value)


def count_hex_digits(value: int) -> int:
    r"""Minimal number of nibbles needed to display `value`.

    Zero and negative values still take one digit, so that an empty buffer
    keeps a readable address column.
    """
    count = 0
    while value > 0:
        count += 1
        value >>= 4
    return max(1, count)


# =====================================================================================================================

@enum.unique
class ValueFormatEnum(enum.IntEnum):
    BINARY = 0
    DECIMAL = 1
    HEXADECIMAL = 2


VALUE_FORMAT_DESC: Mapping[ValueFormatEnum, str] = {
    ValueFormatEnum.BINARY:      'Bin',
    ValueFormatEnum.DECIMAL:     'Dec',
    ValueFormatEnum.HEXADECIMAL: 'Hex',
}

VALUE_FORMAT_PREFIX: Mapping[ValueFormatEnum, str] = {
    ValueFormatEnum.BINARY:      '',
    ValueFormatEnum.DECIMAL:     '',
    ValueFormatEnum.HEXADECIMAL: '0x',
}


@enum.unique
class DataType(enum.IntEnum):
    I8 = 0
    I16 = 1
    I32 = 2
    I64 = 3
    U8 = 4
    U16 = 5
    U32 = 6
    U64 = 7
    F32 = 8
    F64 = 9


DATA_TYPE_SIZE: Mapping[DataType, int] = {
    DataType.I8:  1,
    DataType.I16: 2,
    DataType.I32: 4,
    DataType.I64: 8,
    DataType.U8:  1,
    DataType.U16: 2,
    DataType.U32: 4,
    DataType.U64: 8,
    DataType.F32: 4,
    DataType.F64: 8,
}

DATA_TYPE_DESC: Mapping[DataType, str] = {
    DataType.I8:  'i8',
    DataType.I16: 'i16',
    DataType.I32: 'i32',
    DataType.I64: 'i64',
    DataType.U8:  'u8',
    DataType.U16: 'u16',
    DataType.U32: 'u32',
    DataType.U64: 'u64',
    DataType.F32: 'f32',
    DataType.F64: 'f64',
}

DATA_TYPE_SIGNED: Mapping[DataType, bool] = {
    DataType.I8:  True,
    DataType.I16: True,
    DataType.I32: True,
    DataType.I64: True,
    DataType.U8:  False,
    DataType.U16: False,
    DataType.U32: False,
    DataType.U64: False,
}

DATA_TYPE_FLOAT_CHAR: Mapping[DataType, str] = {
    DataType.F32: 'f',
    DataType.F64: 'd',
}


@enum.unique
class Endianness(enum.IntEnum):
    LITTLE = 0
    BIG = 1


ENDIANNESS_DESC: Mapping[Endianness, str] = {
    Endianness.LITTLE: 'LE',
    Endianness.BIG:    'BE',
}

ENDIANNESS_BYTEORDER: Mapping[Endianness, str] = {
    Endianness.LITTLE: 'little',
    Endianness.BIG:    'big',
}

ENDIANNESS_STRUCT_CHAR: Mapping[Endianness, str] = {
    Endianness.LITTLE: '<',
    Endianness.BIG:    '>',
}


# =====================================================================================================================

def format_binary(data: bytes) -> str:
    return ' '.join(f'{value:08b}' for value in data)


def _format_float32(value: float) -> str:
    packed = struct.pack('<f', value)
    for precision in range(1, 10):
        text = f'{value:.{precision}g}'
        if struct.pack('<f', float(text)) == packed:
            return text
    return repr(value)


def format_value(
    data: bytes,
    clipped: int,
    data_type: DataType,
    value_format: ValueFormatEnum,
    endianness: Endianness = Endianness.LITTLE,
) -> str:
    r"""Formats a scalar value for the preview panel.

    Arguments:
        data:
            Raw bytes, exactly as many as the size of `data_type`, already
            zero-filled past `clipped`.

        clipped:
            Count of bytes actually read from the buffer.

        data_type:
            Scalar type to reinterpret `data` as.

        value_format:
            Output format.

        endianness:
            Byte order of integer and floating point values.
            The binary format always follows the stored byte order.

    Returns:
        str: Formatted text; ``N/A`` where the format makes no sense for the
        type.
    """
    size = DATA_TYPE_SIZE[data_type]
    if len(data) != size:
        raise ValueError(f'expecting {size} bytes, got {len(data)}')

    if data_type in DATA_TYPE_FLOAT_CHAR:
        if value_format != ValueFormatEnum.DECIMAL:
            return 'N/A'
        fmt = ENDIANNESS_STRUCT_CHAR[endianness] + DATA_TYPE_FLOAT_CHAR[data_type]
        value = struct.unpack(fmt, data)[0]
        if data_type == DataType.F32:
            return _format_float32(value)
        return repr(value)

    if value_format == ValueFormatEnum.BINARY:
        return format_binary(data[:clipped])

    byteorder = ENDIANNESS_BYTEORDER[endianness]
    signed = DATA_TYPE_SIGNED[data_type]
    value = int.from_bytes(data, byteorder, signed=signed)

    if value_format == ValueFormatEnum.DECIMAL:
        return str(value)

    mask = (1 << (size * 8)) - 1
    prefix = VALUE_FORMAT_PREFIX[value_format]
    return f'{prefix}{value & mask:08X}'
