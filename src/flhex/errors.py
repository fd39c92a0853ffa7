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

r"""Intel HEX flattening errors."""

from typing import Optional


class FlhexError(ValueError):
    r"""Base class for record decoding errors.

    Args:
        message (str):
            Human readable description.

        line (int):
            Line number of the offending record, if known.
    """

    def __init__(self, message: str, line: Optional[int] = None):

        super().__init__(message)
        self.line: Optional[int] = line


class MalformedHeaderError(FlhexError):
    r"""A record line does not match the ``:CCAAAATT`` shape."""

    def __init__(self, line: Optional[int] = None, reason: str = 'malformed header'):

        if line is None:
            message = reason
        else:
            message = f'{reason} on line {line}'
        super().__init__(message, line)
        self.reason: str = reason


class UnsupportedRecordTypeError(FlhexError):
    r"""The record type is not handled by the decoder."""

    def __init__(self, tag: int, line: Optional[int] = None):

        message = f'unsupported record type {tag:02X}'
        if line is not None:
            message += f' on line {line}'
        super().__init__(message, line)
        self.tag: int = tag


class ChecksumMismatchError(FlhexError):
    r"""The trailing checksum does not balance the record sum.

    Args:
        line (int):
            Line number of the offending record.

        expected (int):
            Checksum computed from the record fields.

        actual (int):
            Checksum read from the record.
    """

    def __init__(self, line: Optional[int], expected: int, actual: int):

        message = 'checksum failed'
        if line is not None:
            message += f' on line {line}'
        message += f' (0x{expected:02X} != 0x{actual:02X})'
        super().__init__(message, line)
        self.expected: int = expected
        self.actual: int = actual


class AllocationError(MemoryError):
    r"""Byte image growth could not be satisfied."""
