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

r"""Intel HEX format.

Decodes Intel HEX records into a :class:`~flhex.image.ByteImage`, and encodes
a :class:`~flhex.image.ByteImage` back as a flat sequence of records.

See Also:
    `<https://en.wikipedia.org/wiki/Intel_HEX>`_
"""

import binascii
import enum
import logging
import re
from typing import Iterable
from typing import Optional
from typing import TextIO
from typing import Union

from .errors import ChecksumMismatchError
from .errors import MalformedHeaderError
from .errors import UnsupportedRecordTypeError
from .image import ADDRESS_MAX
from .image import ByteImage
from .utils import hexlify

logger = logging.getLogger(__name__)

LINE_LENGTH_MAX: int = 1 + 2 + 4 + 2 + (0xFF * 2) + 2
r"""Longest well-formed record line, without line terminator."""

SEGMENT_LIMIT: int = 0x100000
r"""Addresses below this limit are banked via Extended Segment Address."""

BANK_SIZE: int = 0x10000
r"""Addressable range of a single record."""


class IhexTag(enum.IntEnum):
    r"""Intel HEX tag."""

    DATA = 0
    r"""Binary data."""

    END_OF_FILE = 1
    r"""End Of File."""

    EXTENDED_SEGMENT_ADDRESS = 2
    r"""Extended Segment Address."""

    START_SEGMENT_ADDRESS = 3
    r"""Start Segment Address."""

    EXTENDED_LINEAR_ADDRESS = 4
    r"""Extended Linear Address."""

    START_LINEAR_ADDRESS = 5
    r"""Start Linear Address."""

    def is_data(self) -> bool:

        return self == self.DATA

    def is_eof(self) -> bool:
        r"""Tells whether this is an End Of File record tag.

        Returns:
            bool: This is an End Of File record tag.

        Examples:
            >>> IhexTag.END_OF_FILE.is_eof()
            True
            >>> IhexTag.DATA.is_eof()
            False
        """

        return self == self.END_OF_FILE

    def is_extension(self) -> bool:
        r"""Tells whether this is an Extended Address record tag.

        Returns:
            bool: This is an Extended Address record tag.

        Examples:
            >>> IhexTag.EXTENDED_LINEAR_ADDRESS.is_extension()
            True
            >>> IhexTag.EXTENDED_SEGMENT_ADDRESS.is_extension()
            True
            >>> IhexTag.DATA.is_extension()
            False
        """

        return ((self == self.EXTENDED_SEGMENT_ADDRESS) or
                (self == self.EXTENDED_LINEAR_ADDRESS))


class IhexRecord:
    r"""Intel HEX record object.

    Args:
        tag (int):
            Record type; unknown values are kept as plain integers.

        address (int):
            16-bit address field.

        data (bytes):
            Data field.

        count (int):
            Byte count field; computed from `data` if ``None``.

        checksum (int):
            Checksum field; computed if ``None``.
    """

    HEADER_REGEX = re.compile(
        r'^:'
        r'(?P<count>[0-9A-Fa-f]{2})'
        r'(?P<address>[0-9A-Fa-f]{4})'
        r'(?P<tag>[0-9A-Fa-f]{2})'
    )
    r"""Record header parser regex."""

    def __init__(
        self,
        tag: Union[IhexTag, int],
        address: int = 0,
        data: bytes = b'',
        count: Optional[int] = None,
        checksum: Optional[int] = None,
    ):

        self.tag: Union[IhexTag, int] = tag
        self.address: int = address
        self.data: bytes = bytes(data)
        self.count: int = len(self.data) if count is None else count
        self.checksum: int = self.compute_checksum() if checksum is None else checksum

    def __eq__(self, other: object) -> bool:

        if not isinstance(other, IhexRecord):
            return NotImplemented
        return (self.tag == other.tag and
                self.address == other.address and
                self.data == other.data and
                self.count == other.count and
                self.checksum == other.checksum)

    def __repr__(self) -> str:

        return (f'{type(self).__name__}(tag={self.tag!r}, address=0x{self.address:04X}, '
                f'data={self.data!r}, count={self.count}, checksum=0x{self.checksum:02X})')

    def __str__(self) -> str:

        return self.to_str()

    def compute_checksum(self) -> int:
        r"""Computes the checksum.

        The checksum is the two's complement of the 8-bit sum of the count,
        both address bytes, the tag, and all the data bytes.

        Returns:
            int: Checksum byte value.

        Examples:
            >>> IhexRecord.create_data(0x1234, b'\x01\x02').compute_checksum()
            181
        """

        count = self.count & 0xFF
        address = self.address & 0xFFFF
        sum_address = (address >> 8) + (address & 0xFF)
        sum_data = sum(self.data)
        tag = self.tag & 0xFF
        checksum = count + sum_address + tag + sum_data
        return (0x100 - (checksum & 0xFF)) & 0xFF

    @classmethod
    def create_data(cls, address: int, data: bytes) -> 'IhexRecord':
        r"""Creates a Data record.

        Args:
            address (int):
                16-bit record address.

            data (bytes):
                Up to 255 bytes of data.

        Returns:
            :class:`IhexRecord`: Data record object.

        Examples:
            >>> IhexRecord.create_data(0x1234, b'\x01\x02').to_str()
            ':021234000102B5\n'
        """

        address = address.__index__()
        if not 0 <= address <= 0xFFFF:
            raise ValueError('address overflow')

        if len(data) > 0xFF:
            raise ValueError('data size overflow')

        return cls(IhexTag.DATA, address=address, data=data)

    @classmethod
    def create_end_of_file(cls) -> 'IhexRecord':
        r"""Creates an End Of File record.

        Examples:
            >>> IhexRecord.create_end_of_file().to_str()
            ':00000001FF\n'
        """

        return cls(IhexTag.END_OF_FILE)

    @classmethod
    def create_extended_linear_address(cls, extension: int) -> 'IhexRecord':
        r"""Creates an Extended Linear Address record.

        Args:
            extension (int):
                Upper 16 bits of the linear address.

        Returns:
            :class:`IhexRecord`: Extended Linear Address record object.

        Examples:
            >>> IhexRecord.create_extended_linear_address(0x1234).to_str()
            ':020000041234B4\n'
        """

        extension = extension.__index__()
        if not 0 <= extension <= 0xFFFF:
            raise ValueError('extension overflow')

        data = extension.to_bytes(2, byteorder='big')
        return cls(IhexTag.EXTENDED_LINEAR_ADDRESS, data=data)

    @classmethod
    def create_extended_segment_address(cls, extension: int) -> 'IhexRecord':
        r"""Creates an Extended Segment Address record.

        Args:
            extension (int):
                Segment value; the bank base address is ``extension << 4``.

        Returns:
            :class:`IhexRecord`: Extended Segment Address record object.

        Examples:
            >>> IhexRecord.create_extended_segment_address(0x1234).to_str()
            ':020000021234B6\n'
        """

        extension = extension.__index__()
        if not 0 <= extension <= 0xFFFF:
            raise ValueError('extension overflow')

        data = extension.to_bytes(2, byteorder='big')
        return cls(IhexTag.EXTENDED_SEGMENT_ADDRESS, data=data)

    def data_to_int(self) -> int:
        r"""Interprets the data field as a big-endian unsigned integer."""

        return int.from_bytes(self.data, byteorder='big')

    @classmethod
    def parse(
        cls,
        line: Union[str, bytes],
        lineno: Optional[int] = None,
    ) -> 'IhexRecord':
        r"""Parses a record line.

        The line must start with the ``:CCAAAATT`` header, followed by
        exactly ``CC`` data bytes and the checksum byte, all as pairs of
        hexadecimal digits. Anything after the checksum is ignored.
        The checksum is read, not validated.

        Args:
            line (str):
                Record line, with or without line terminator.

            lineno (int):
                Line number, for diagnostics.

        Returns:
            :class:`IhexRecord`: Parsed record.

        Raises:
            MalformedHeaderError: The line does not match the record shape.

        Examples:
            >>> IhexRecord.parse(':0200000212340000\r\n').data_to_int()
            4660
        """

        if isinstance(line, (bytes, bytearray)):
            line = line.decode('ascii', errors='replace')
        line = line.rstrip('\r\n')

        if len(line) > LINE_LENGTH_MAX:
            raise MalformedHeaderError(lineno, 'line too long')

        match = cls.HEADER_REGEX.match(line)
        if not match:
            raise MalformedHeaderError(lineno)

        count = int(match.group('count'), 16)
        address = int(match.group('address'), 16)
        tag = int(match.group('tag'), 16)
        if tag <= IhexTag.START_LINEAR_ADDRESS:
            tag = IhexTag(tag)

        start = match.end()
        endex = start + (count + 1) * 2
        field = line[start:endex]
        if len(field) != endex - start:
            raise MalformedHeaderError(lineno, 'truncated record')
        try:
            field = binascii.unhexlify(field)
        except (binascii.Error, ValueError):
            raise MalformedHeaderError(lineno, 'invalid hexadecimal digits') from None

        return cls(tag, address=address, data=field[:-1], count=count, checksum=field[-1])

    def to_str(self, end: str = '\n') -> str:
        r"""Serializes the record.

        Args:
            end (str):
                Line terminator.

        Returns:
            str: Record line, with uppercase hexadecimal digits.
        """

        return ':%02X%04X%02X%s%02X%s' % (
            self.count & 0xFF,
            self.address & 0xFFFF,
            self.tag & 0xFF,
            hexlify(self.data),
            self.checksum & 0xFF,
            end,
        )

    def validate_checksum(self, lineno: Optional[int] = None) -> 'IhexRecord':
        r"""Checks that the checksum balances the record sum.

        Raises:
            ChecksumMismatchError: The checksum does not balance.
        """

        expected = self.compute_checksum()
        if self.checksum != expected:
            raise ChecksumMismatchError(lineno, expected, self.checksum)
        return self


def decode(
    source: Iterable[Union[str, bytes]],
    image: ByteImage,
) -> None:
    r"""Decodes Intel HEX records into a byte image.

    Records are processed in order, each one fully parsed and checked
    before it is applied, until the End Of File record or the end of
    `source`. The End Of File record stops decoding without checking its
    checksum.

    Data records are written at the current base address plus their own
    16-bit address. Extended Segment Address records replace the base
    address with ``segment << 4``. Extended Linear Address records replace
    only bits 16 to 31 of the base address. Both take their value from the
    first two data bytes. Start Segment Address records are checked and
    ignored.

    The image `width` grows to the largest record byte count found.

    Args:
        source (iterable):
            Record lines, like a text file object.

        image (:class:`ByteImage`):
            Target byte image. Bytes written by records before a failing
            one are kept.

    Raises:
        MalformedHeaderError: A line does not match the record shape, or an
            extended address record holds less than two data bytes.
        UnsupportedRecordTypeError: Start Linear Address or unknown record.
        ChecksumMismatchError: A record checksum does not balance.
    """

    base_address = 0
    record_width = image.width
    lineno = 0

    try:
        for lineno, line in enumerate(source, 1):
            record = IhexRecord.parse(line, lineno)

            tag = record.tag
            if not isinstance(tag, IhexTag) or tag == IhexTag.START_LINEAR_ADDRESS:
                raise UnsupportedRecordTypeError(tag, lineno)

            if tag.is_eof():
                logger.debug('end of file on line %d', lineno)
                return

            record.validate_checksum(lineno)

            if record_width < record.count:
                record_width = record.count

            if tag.is_data():
                address = base_address + record.address
                for value in record.data:
                    image.write_byte(address & ADDRESS_MAX, value)
                    address += 1

            elif tag.is_extension():
                if len(record.data) < 2:
                    raise MalformedHeaderError(lineno, 'invalid extension size')
                extension = int.from_bytes(record.data[:2], byteorder='big')

                if tag == IhexTag.EXTENDED_SEGMENT_ADDRESS:
                    base_address = extension << 4
                else:
                    base_address = (base_address & 0xFFFF) | (extension << 16)

        logger.warning('missing end of file record after line %d', lineno)

    finally:
        image.width = record_width


def encode(
    image: ByteImage,
    width: Optional[int],
    sink: TextIO,
    end: str = '\n',
) -> int:
    r"""Encodes a byte image as flat Intel HEX records.

    The whole ``[0, image.size)`` range is written as consecutive Data
    records of `width` bytes, never crossing a 64 KiB bank.
    Each bank starts with an Extended Segment Address record below 1 MiB,
    or with an Extended Linear Address record above.
    The End Of File record closes the output.

    Args:
        image (:class:`ByteImage`):
            Source byte image.

        width (int):
            Data bytes per record; ``0`` or ``None`` selects `image.width`.

        sink (file):
            Text stream to write.

        end (str):
            Line terminator.

    Returns:
        int: Number of records written.

    Examples:
        >>> import io
        >>> image = ByteImage()
        >>> image.write(0, b'\x01\x02\x03')
        >>> stream = io.StringIO()
        >>> encode(image, 0, stream)
        3
        >>> print(stream.getvalue(), end='')
        :020000020000FC
        :03000000010203F7
        :00000001FF
    """

    if not width:
        width = image.width
    width = width.__index__()
    if not 1 <= width <= 0xFF:
        raise ValueError('width overflow')

    size = image.size
    address = 0
    total = 0

    while address < size:
        offset = address & 0xFFFF

        if not offset:
            if address < SEGMENT_LIMIT:
                record = IhexRecord.create_extended_segment_address(address >> 4)
                sink.write(record.to_str(end))
                total += 1
            elif address:
                record = IhexRecord.create_extended_linear_address(address >> 16)
                sink.write(record.to_str(end))
                total += 1

        count = min(width, size - address, BANK_SIZE - offset)
        record = IhexRecord.create_data(offset, image[address:(address + count)])
        sink.write(record.to_str(end))
        total += 1
        address += count

    sink.write(IhexRecord.create_end_of_file().to_str(end))
    total += 1
    logger.debug('encoded 0x%X bytes into %d records', size, total)
    return total
