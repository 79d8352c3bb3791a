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

r"""Error types.

Every failure of :func:`hexunpack.loader.load_from_path` is a
:class:`LoadError`, so that callers can tell a malformed file, a too small
image, or an I/O problem apart without parsing messages::

    LoadError
    ├── FileOpenError
    ├── FileReadError
    └── UnpackingError
        ├── ParsingError
        ├── AddressTooHighError
        └── AddressTooLowError

Record parsing itself raises plain :obj:`ValueError`, or
:class:`RecordError` when the line number is known.
"""

from typing import Optional


class LoadError(Exception):
    r"""Image loading failed."""


class FileOpenError(LoadError):
    r"""The input file could not be opened.

    The underlying :obj:`OSError` is chained as ``__cause__``.
    """


class FileReadError(LoadError):
    r"""The input file could not be read.

    The underlying :obj:`OSError` is chained as ``__cause__``.
    """


class UnpackingError(LoadError):
    r"""Records could not be unpacked into the image."""


class ParsingError(UnpackingError):
    r"""The record source reported a parse failure.

    Args:
        cause (Exception):
            The error raised by the record source, also chained as
            ``__cause__``.

    Attributes:
        cause (Exception):
            The error raised by the record source.
    """

    def __init__(self, cause: Exception):

        super().__init__(f'Error while parsing IHEX records: {cause!s}')
        self.cause: Exception = cause


class AddressTooHighError(UnpackingError):
    r"""A data record ends beyond the image.

    Args:
        address (int):
            End address (exclusive) of the rejected data record, relative to
            the image.

        size (int):
            Size of the image.

    Examples:
        >>> from hexunpack.errors import AddressTooHighError
        >>> str(AddressTooHighError(65537, 16))
        'Address (65537) greater than binary size (16)'
    """

    def __init__(self, address: int, size: int):

        super().__init__(f'Address ({address}) greater than binary size ({size})')
        self.address: int = address
        self.size: int = size


class AddressTooLowError(UnpackingError):
    r"""A data record starts before the image.

    This happens when the ``base_offset`` exceeds the extended address
    by more than the offset of the data record.

    Args:
        address (int):
            Start address of the rejected data record, relative to the image
            (negative).

        base_offset (int):
            Base offset which was subtracted.
    """

    def __init__(self, address: int, base_offset: int):

        super().__init__(f'Address ({address}) lower than zero '
                         f'(base offset: 0x{base_offset:X})')
        self.address: int = address
        self.base_offset: int = base_offset


class RecordError(ValueError):
    r"""Invalid record line.

    Args:
        message (str):
            What is wrong with the record.

        row (int):
            Line number, starting from 1.

        line (bytes):
            Offending line, if available.
    """

    def __init__(self, message: str, row: int, line: Optional[bytes] = None):

        super().__init__(f'line {row}: {message}')
        self.row: int = row
        self.line: Optional[bytes] = line
