# Copyright (c) 2013-2025, Andrea Zoppi
# All rights reserved.
#
# Redistribution and use in source and binary forms, with or without
# modification, are permitted provided that the following conditions are met:
#
# 1. Redistributions of source code must retain the above copyright notice,
#    this list of conditions and the following disclaimer.
#
# 2. Redistributions in binary form must reproduce the above copyright
#    notice, this list of conditions and the following disclaimer in the
#    documentation and/or other materials provided with the distribution.
#
# THIS SOFTWARE IS PROVIDED BY THE COPYRIGHT HOLDERS AND CONTRIBUTORS "AS IS"
# AND ANY EXPRESS OR IMPLIED WARRANTIES, INCLUDING, BUT NOT LIMITED TO, THE
# IMPLIED WARRANTIES OF MERCHANTABILITY AND FITNESS FOR A PARTICULAR PURPOSE
# ARE DISCLAIMED. IN NO EVENT SHALL THE COPYRIGHT HOLDER OR CONTRIBUTORS BE
# LIABLE FOR ANY DIRECT, INDIRECT, INCIDENTAL, SPECIAL, EXEMPLARY, OR
# CONSEQUENTIAL DAMAGES (INCLUDING, BUT NOT LIMITED TO, PROCUREMENT OF
# SUBSTITUTE GOODS OR SERVICES; LOSS OF USE, DATA, OR PROFITS; OR BUSINESS
# INTERRUPTION) HOWEVER CAUSED AND ON ANY THEORY OF LIABILITY, WHETHER IN
# CONTRACT, STRICT LIABILITY, OR TORT (INCLUDING NEGLIGENCE OR OTHERWISE)
# ARISING IN ANY WAY OUT OF THE USE OF THIS SOFTWARE, EVEN IF ADVISED OF THE
# POSSIBILITY OF SUCH DAMAGE.

r"""Generic utility functions."""

import binascii
import re
from typing import Any
from typing import Optional
from typing import Union

INT_REGEX = re.compile(r'^\s*(?P<sign>[+-]?)\s*'
                       r'(?P<prefix>(0x|0b|0o)?)'
                       r'(?P<value>[a-f0-9]+)'
                       r'(?P<suffix>h?)\s*$')

INT_BASES = {
    '0x': 16,
    '0b': 2,
    '0o': 8,
    '': 10,
}
r"""Integer prefix to numeric base."""


def hexlify(
    bytestr: Union[bytes, bytearray, memoryview],
    upper: bool = True,
) -> str:
    r"""Converts raw bytes into a hexadecimal string.

    Args:
        bytestr (bytes):
            Source byte string.

        upper (bool):
            Uppercase hexadecimal string.

    Returns:
        str: Hexadecimal string.

    Examples:
        >>> hexlify(b'\xAA\xBB\xCC')
        'AABBCC'
        >>> hexlify(b'\xAA\xBB\xCC', upper=False)
        'aabbcc'
    """

    hexstr = binascii.hexlify(bytestr).decode('ascii')
    if upper:
        hexstr = hexstr.upper()
    return hexstr


def parse_int(
    value: Union[str, Any],
) -> Optional[int]:
    r"""Parses an integer.

    Args:
        value:
            A generic object to convert to integer.
            In case `value` is a :obj:`str` (case-insensitive), it can be
            either prefixed with ``0x`` or postfixed with ``h`` to convert
            from a hexadecimal representation, or prefixed with ``0b`` from
            binary, or with ``0o`` from octal; decimal otherwise.
            A ``None`` value evaluates as ``None``.
            Any other object class will call the standard :func:`int`.

    Returns:
        int: None if `value` is ``None``, its integer conversion otherwise.

    Examples:
        >>> parse_int('0x10')
        16
        >>> parse_int('FFh')
        255
        >>> parse_int('010')
        10
        >>> parse_int(None) is None
        True
    """

    if value is None:
        return None

    elif isinstance(value, str):
        m = INT_REGEX.match(value.lower())
        if not m:
            raise ValueError(f'invalid syntax: {value!r}')
        g = m.groupdict()
        prefix = g['prefix']
        if g['suffix'] == 'h':
            if prefix:
                raise ValueError(f'invalid syntax: {value!r}')
            base = 16
        else:
            base = INT_BASES[prefix]

        i = int(g['value'], base)
        if g['sign'] == '-':
            i = -i
        return i

    else:
        return int(value)
