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

r"""Unpacking of Intel HEX records into a flat binary image.

The image is a fixed-size mutable byte buffer, representing a memory region
which starts at ``base_offset`` within the absolute address space.
Records are applied in order, with a single pass:

* *Extended Segment Address* and *Extended Linear Address* records set the
  base address to ``(value << 4) - base_offset`` and
  ``(value << 16) - base_offset`` respectively;

* *Data* records are written at ``base address + offset``, provided that
  they fit entirely within the image;

* *End Of File* stops processing;

* *Start Address* records are ignored.

Bytes not written by any record keep the :data:`FILL_VALUE`.
"""

import logging
import operator
from typing import Iterable
from typing import Tuple
from typing import Union

from .errors import AddressTooHighError
from .errors import AddressTooLowError
from .errors import ParsingError
from .records import IhexRecord
from .records import IhexTag

FILL_VALUE: int = 0xFF
r"""Byte value of unwritten image locations, as for erased flash memory."""

_logger = logging.getLogger(__name__)


def unpack(
    records: Iterable[IhexRecord],
    buffer: Union[bytearray, memoryview],
    base_offset: int = 0,
) -> int:
    r"""Unpacks records into an existing buffer.

    Records are pulled from `records` one at a time; iteration stops at the
    first *End Of File* record, or at the first error.
    In case of error, `buffer` keeps whatever was written by the records
    applied before the failing one; the failing data record is not written
    at all.

    Args:
        records (iterable of IhexRecord):
            Record source. A parse failure is reported by raising
            :obj:`ValueError` while iterating.

        buffer (bytearray or memoryview):
            Image buffer, usually pre-filled with :data:`FILL_VALUE`.
            Any writable byte buffer with fixed length does.

        base_offset (int):
            Absolute address of the first byte of `buffer`, subtracted from
            every extended base address.

    Returns:
        int: Number of data bytes written; overlapping data is counted as
        many times as it was written.

    Raises:
        TypeError: `base_offset` is not an integer.

        ValueError: `base_offset` is negative.

        :class:`hexunpack.errors.ParsingError`: The record source failed.

        :class:`hexunpack.errors.AddressTooHighError`: A data record ends
            beyond `buffer`.

        :class:`hexunpack.errors.AddressTooLowError`: A data record starts
            before `buffer`.

    Examples:
        >>> from hexunpack.records import IhexRecord
        >>> from hexunpack.unpacker import unpack
        >>> records = [
        ...     IhexRecord.create_extended_linear_address(0x0800),
        ...     IhexRecord.create_data(0x0002, b'abc'),
        ...     IhexRecord.create_end_of_file(),
        ... ]
        >>> buffer = bytearray(b'\xFF' * 8)
        >>> unpack(records, buffer, base_offset=0x08000000)
        3
        >>> buffer
        bytearray(b'\xff\xffabc\xff\xff\xff')
    """

    base_offset = operator.index(base_offset)
    if base_offset < 0:
        raise ValueError('negative base offset')

    size = len(buffer)
    base_address = 0
    used_bytes = 0
    iterator = iter(records)

    while True:
        try:
            record = next(iterator)
        except StopIteration:
            break
        except ValueError as exc:
            raise ParsingError(exc) from exc

        _logger.debug('base_address=0x%04X record=%r', base_address, record)
        tag = record.tag

        if tag == IhexTag.DATA:
            data = record.data
            start = base_address + record.address
            endex = start + len(data)

            if endex > size:
                raise AddressTooHighError(endex, size)
            if start < 0:
                raise AddressTooLowError(start, base_offset)

            buffer[start:endex] = data
            used_bytes += len(data)

        elif tag == IhexTag.EXTENDED_SEGMENT_ADDRESS:
            base_address = (record.data_to_int() << 4) - base_offset

        elif tag == IhexTag.EXTENDED_LINEAR_ADDRESS:
            base_address = (record.data_to_int() << 16) - base_offset

        elif tag == IhexTag.END_OF_FILE:
            break

        # Start addresses do not concern the image

    return used_bytes


def unpack_to_new_buffer(
    records: Iterable[IhexRecord],
    binary_size: int,
    base_offset: int = 0,
) -> Tuple[bytearray, int]:
    r"""Unpacks records into a new buffer.

    It allocates a buffer of `binary_size` bytes, filled with
    :data:`FILL_VALUE`, then calls :func:`unpack`.

    Args:
        records (iterable of IhexRecord):
            Record source.

        binary_size (int):
            Image size.

        base_offset (int):
            Absolute address of the image start.

    Returns:
        (bytearray, int): The image buffer and the number of bytes written.

    Raises:
        TypeError: `binary_size` is not an integer.

        ValueError: `binary_size` is negative.

        :class:`hexunpack.errors.UnpackingError`: See :func:`unpack`.

    Examples:
        >>> from hexunpack.records import IhexRecord
        >>> from hexunpack.unpacker import unpack_to_new_buffer
        >>> records = [IhexRecord.create_data(0, b'\xAA\xBB\xCC\xDD')]
        >>> unpack_to_new_buffer(records, 4)
        (bytearray(b'\xaa\xbb\xcc\xdd'), 4)
    """

    binary_size = operator.index(binary_size)
    if binary_size < 0:
        raise ValueError('negative binary size')

    buffer = bytearray([FILL_VALUE]) * binary_size
    used_bytes = unpack(records, buffer, base_offset)
    return buffer, used_bytes


def unpack_to_bytes(
    records: Iterable[IhexRecord],
    binary_size: int,
    base_offset: int = 0,
) -> Tuple[bytes, int]:
    r"""Unpacks records into a fixed-size image.

    Same as :func:`unpack_to_new_buffer`, but the image is returned as
    immutable :obj:`bytes`, always `binary_size` long.

    Returns:
        (bytes, int): The image and the number of bytes written.
    """

    buffer, used_bytes = unpack_to_new_buffer(records, binary_size, base_offset)
    return bytes(buffer), used_bytes
