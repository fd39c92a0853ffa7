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

r"""Growable byte image.

The byte image is a contiguous buffer, filled with a *padding* value, which
grows by powers of two as bytes are written past its end.
"""

import logging
from typing import Union

from bytesparse import Memory

from .errors import AllocationError

logger = logging.getLogger(__name__)

ADDRESS_MAX: int = 0xFFFFFFFF
r"""Highest addressable byte."""


def next_power_of_two(value: int) -> int:
    r"""Rounds up to the next power of two.

    Args:
        value (int):
            Positive integer.

    Returns:
        int: `value` itself if already a power of two, else the next one.

    Examples:
        >>> next_power_of_two(1)
        1
        >>> next_power_of_two(0x10001)
        131072
        >>> next_power_of_two(0x20000)
        131072
    """

    value = value.__index__()
    if value <= 0:
        raise ValueError('non-positive value')
    return 1 << (value - 1).bit_length()


class ByteImage:
    r"""Contiguous byte image.

    Any position never written holds the `fill` value.
    The allocated `capacity` is always a power of two, and never shrinks.
    The `size` is one past the highest address ever written.

    Args:
        fill (int):
            Padding byte value for unpopulated positions.

    Examples:
        >>> image = ByteImage(0xFF)
        >>> image.capacity, image.size
        (65536, 0)
        >>> image.write(4, b'ABC')
        >>> image.size
        7
        >>> image[:]
        b'\xff\xff\xff\xffABC'
    """

    DEFAULT_CAPACITY: int = 0x10000
    r"""Initial allocated length."""

    DEFAULT_WIDTH: int = 16
    r"""Default record data length."""

    def __init__(self, fill: int = 0xFF):

        fill = fill.__index__()
        if not 0 <= fill <= 0xFF:
            raise ValueError('fill overflow')

        self._fill: int = fill
        self._size: int = 0
        self._width: int = self.DEFAULT_WIDTH
        self._data: bytearray = bytearray((fill,)) * self.DEFAULT_CAPACITY

    def __getitem__(self, key: Union[int, slice]) -> Union[int, bytes]:

        if isinstance(key, slice):
            start, endex, step = key.indices(self._size)
            if step == 1:
                return bytes(self._data[start:endex])
            return bytes(self._data[:self._size][key])

        key = key.__index__()
        if key < 0:
            key += self._size
        if not 0 <= key < self._size:
            raise IndexError('index out of range')
        return self._data[key]

    def __len__(self) -> int:

        return self._size

    def __repr__(self) -> str:

        return (f'<{type(self).__name__} size=0x{self._size:X} '
                f'capacity=0x{self.capacity:X} fill=0x{self._fill:02X}>')

    @property
    def capacity(self) -> int:
        r"""int: Allocated length, a power of two."""

        return len(self._data)

    def ensure_capacity(self, desired: int) -> None:
        r"""Grows the allocated buffer.

        When `desired` exceeds the current capacity, the buffer is extended
        to the next power of two not smaller than `desired`, and only the
        added region is flooded with the `fill` value.

        Args:
            desired (int):
                Required capacity.

        Raises:
            AllocationError: The buffer could not be extended.
        """

        desired = desired.__index__()
        capacity = len(self._data)
        if desired <= capacity:
            return

        if desired > ADDRESS_MAX + 1:
            raise ValueError('capacity overflow')

        desired = next_power_of_two(desired)
        logger.debug('growing image from 0x%X to 0x%X', capacity, desired)
        try:
            self._data.extend(bytes((self._fill,)) * (desired - capacity))
        except MemoryError as exc:
            raise AllocationError('memory allocation failed') from exc

    @property
    def fill(self) -> int:
        r"""int: Padding byte value."""

        return self._fill

    @classmethod
    def from_memory(cls, memory: Memory, fill: int = 0xFF) -> 'ByteImage':
        r"""Creates an image from sparse memory.

        Gaps between memory blocks are left to the `fill` value.

        Args:
            memory (:class:`bytesparse.Memory`):
                Source memory.

            fill (int):
                Padding byte value.

        Returns:
            :class:`ByteImage`: New image.

        Examples:
            >>> from bytesparse import Memory
            >>> memory = Memory.from_blocks([[1, b'AB'], [5, b'xy']])
            >>> ByteImage.from_memory(memory, fill=0x2E)[:]
            b'.AB..xy'
        """

        image = cls(fill)
        for start, block in memory.to_blocks():
            if start < 0:
                raise ValueError('negative address')
            image.write(start, block)
        return image

    @property
    def size(self) -> int:
        r"""int: One past the highest address ever written."""

        return self._size

    def to_memory(self) -> Memory:
        r"""Converts into sparse memory.

        Returns:
            :class:`bytesparse.Memory`: The populated range ``[0, size)``.
        """

        memory = Memory()
        if self._size:
            memory.write(0, bytes(self._data[:self._size]))
        return memory

    def view(self) -> memoryview:
        r"""Read-only view of the populated range ``[0, size)``."""

        return memoryview(self._data).toreadonly()[:self._size]

    @property
    def width(self) -> int:
        r"""int: Record data length used by default when encoding."""

        return self._width

    @width.setter
    def width(self, width: int) -> None:

        width = width.__index__()
        if not 1 <= width <= 0xFF:
            raise ValueError('width overflow')
        self._width = width

    def write(self, address: int, data: Union[bytes, bytearray, memoryview]) -> None:
        r"""Writes a byte string.

        Args:
            address (int):
                Address of the first byte.

            data (bytes):
                Byte string to write.
        """

        address = address.__index__()
        for offset, value in enumerate(data):
            self.write_byte(address + offset, value)

    def write_byte(self, address: int, value: int) -> None:
        r"""Writes a single byte.

        The buffer grows as needed, and `size` is extended to cover
        `address`.

        Args:
            address (int):
                Target address, unsigned 32-bit.

            value (int):
                Byte value.
        """

        if not 0 <= address <= ADDRESS_MAX:
            raise ValueError('address overflow')
        if not 0 <= value <= 0xFF:
            raise ValueError('byte overflow')

        if address >= len(self._data):
            self.ensure_capacity(address + 1)

        self._data[address] = value
        if self._size <= address:
            self._size = address + 1
