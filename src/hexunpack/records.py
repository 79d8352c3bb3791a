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

r"""Intel HEX records.

This module lexes the textual Intel HEX format into :class:`IhexRecord`
objects, one per line.
Records are validated (count, checksum, tag, payload size) while parsing,
so that the consumers only ever see well-formed records.

See Also:
    `<https://en.wikipedia.org/wiki/Intel_HEX>`_
"""

import enum
import io
import re
from typing import IO
from typing import Any
from typing import Iterator
from typing import MutableMapping
from typing import Optional
from typing import Sequence
from typing import Tuple
from typing import Type
from typing import TypeVar
from typing import Union

from .errors import RecordError
from .utils import AnyBytes
from .utils import EllipsisType
from .utils import TypeAlias
from .utils import unhexlify

try:
    from typing import Self
except ImportError:  # pragma: no cover
    Self: TypeAlias = Any  # Python < 3.11
__TYPING_HAS_SELF = Self is not Any


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
            >>> from hexunpack.records import IhexTag
            >>> IhexTag.END_OF_FILE.is_eof()
            True
            >>> IhexTag.DATA.is_eof()
            False
        """

        return self == self.END_OF_FILE

    def is_extension(self) -> bool:
        r"""Tells whether this is an Extended Address record tag.

        Extended Address records change the base address of the following
        data records.

        Returns:
            bool: This is an Extended Address record tag.

        Examples:
            >>> from hexunpack.records import IhexTag
            >>> IhexTag.EXTENDED_LINEAR_ADDRESS.is_extension()
            True
            >>> IhexTag.EXTENDED_SEGMENT_ADDRESS.is_extension()
            True
            >>> IhexTag.DATA.is_extension()
            False
        """

        return ((self == self.EXTENDED_SEGMENT_ADDRESS) or
                (self == self.EXTENDED_LINEAR_ADDRESS))

    def is_start(self) -> bool:
        r"""Tells whether this is a Start Address record tag.

        Returns:
            bool: This is a Start Address record tag.

        Examples:
            >>> from hexunpack.records import IhexTag
            >>> IhexTag.START_LINEAR_ADDRESS.is_start()
            True
            >>> IhexTag.START_SEGMENT_ADDRESS.is_start()
            True
            >>> IhexTag.DATA.is_start()
            False
        """

        return ((self == self.START_SEGMENT_ADDRESS) or
                (self == self.START_LINEAR_ADDRESS))


if not __TYPING_HAS_SELF:  # pragma: no cover
    del Self
    Self = TypeVar('Self', bound='IhexRecord')


class IhexRecord:
    r"""Intel HEX record object.

    Attributes:
        tag (:class:`IhexTag`):
            Nature of the record.

        address (int):
            16-bit offset of *data* records, relative to the current base
            address; zero for other records.

        data (bytes):
            Payload: the actual bytes for *data* records, the big-endian
            value for the other ones.

        count (int):
            Byte count field.

        checksum (int):
            Checksum field.

        before (bytes):
            Junk before the ``:`` start code.

        after (bytes):
            Junk after the checksum field, line terminator excluded.

        coords (int couple):
            Line number and column where the record was parsed; debug only.

    Args:
        count (int):
            ``Ellipsis`` initializes :attr:`count` via :meth:`compute_count`.
            ``None`` assigns ``None``, skipping further validation.

        checksum (int):
            ``Ellipsis`` initializes :attr:`checksum` via
            :meth:`compute_checksum`.
            ``None`` assigns ``None``, skipping further validation.

        validate (bool):
            If true, :meth:`validate` is called upon initialization.
    """

    EQUALITY_KEYS: Sequence[str] = [
        'address',
        'checksum',
        'count',
        'data',
        'tag',
    ]
    r"""Meta keys for equality checks."""

    META_KEYS: Sequence[str] = [
        'address',
        'after',
        'before',
        'checksum',
        'coords',
        'count',
        'data',
        'tag',
    ]

    Tag: Type[IhexTag] = IhexTag

    LINE_REGEX = re.compile(
        b'^(?P<before>[^:]*):'
        b'(?P<count>[0-9A-Fa-f]{2})'
        b'(?P<address>[0-9A-Fa-f]{4})'
        b'(?P<tag>[0-9A-Fa-f]{2})'
        b'(?P<data>([0-9A-Fa-f]{2}){,255})'
        b'(?P<checksum>[0-9A-Fa-f]{2})'
        b'(?P<after>[^\\r\\n]*)\\r?\\n?$'
    )
    r"""Line parser regex."""

    def __eq__(self, other: Any) -> bool:

        return not self != other

    def __init__(
        self,
        tag: IhexTag,
        address: int = 0,
        data: AnyBytes = b'',
        count: Optional[Union[int, EllipsisType]] = Ellipsis,
        checksum: Optional[Union[int, EllipsisType]] = Ellipsis,
        before: Union[bytes, bytearray] = b'',
        after: Union[bytes, bytearray] = b'',
        coords: Tuple[int, int] = (-1, -1),
        validate: bool = True,
    ):

        self.address: int = address.__index__()
        self.after: Union[bytes, bytearray] = after
        self.before: Union[bytes, bytearray] = before
        self.checksum: Optional[int] = None
        self.coords: Tuple[int, int] = coords
        self.count: Optional[int] = None
        self.data: AnyBytes = data
        self.tag: IhexTag = tag

        if count is Ellipsis:
            self.update_count()
        elif count is not None:
            self.count = count.__index__()

        if checksum is Ellipsis:
            self.update_checksum()
        elif checksum is not None:
            self.checksum = checksum.__index__()

        if validate:
            _count = count is not None
            _checksum = checksum is not None and _count
            self.validate(checksum=_checksum, count=_count)

    def __ne__(self, other: Any) -> bool:

        for key in self.EQUALITY_KEYS:
            if not hasattr(other, key):
                return True
            self_value = getattr(self, key)
            other_value = getattr(other, key)
            if self_value != other_value:
                return True

        return False

    def __repr__(self) -> str:
        r"""String representation.

        Examples:
            >>> from hexunpack.records import IhexRecord
            >>> record = IhexRecord.create_end_of_file()
            >>> repr(record)  # doctest:+NORMALIZE_WHITESPACE
            "<IhexRecord address:=0 after:=b'' before:=b'' checksum:=255
              coords:=(-1, -1) count:=0 data:=b'' tag:=<IhexTag.END_OF_FILE: 1>>"
        """

        meta = self.get_meta()
        text = f'<{type(self).__name__} '
        text += ' '.join(f'{key!s}:={value!r}' for key, value in meta.items())
        text += '>'
        return text

    def compute_checksum(self) -> int:
        r"""Computes the checksum field value.

        It is the two's complement of the least significant byte of the sum
        of all the other fields.

        Returns:
            int: Computed checksum value.

        Raises:
            ValueError: :attr:`count` is ``None``.

        Examples:
            >>> from hexunpack.records import IhexRecord
            >>> record = IhexRecord.create_data(0, b'abc')
            >>> record.compute_checksum()
            215
        """

        if self.count is None:
            raise ValueError('missing count')

        count = self.count & 0xFF
        address = self.address & 0xFFFF
        sum_address = (address >> 8) + (address & 0xFF)
        sum_data = sum(iter(self.data))
        tag = self.tag & 0xFF
        checksum = (count + sum_address + tag + sum_data)
        checksum = (0x100 - (checksum & 0xFF)) & 0xFF
        return checksum

    def compute_count(self) -> int:

        return len(self.data)

    @classmethod
    def create_data(
        cls,
        address: int,
        data: AnyBytes,
    ) -> Self:
        r"""Creates a Data record.

        Args:
            address (int):
                16-bit offset, relative to the current base address.

            data (bytes):
                Payload, up to 255 bytes.

        Returns:
            :class:`IhexRecord`: Data record object.

        Raises:
            ValueError: `address` or `data` size out of range.
        """

        address = address.__index__()
        if not 0 <= address <= 0xFFFF:
            raise ValueError('address overflow')

        size = len(data)
        if size > 0xFF:
            raise ValueError('data size overflow')

        record = cls(cls.Tag.DATA, address=address, data=data)
        return record

    @classmethod
    def create_end_of_file(cls) -> Self:

        record = cls(cls.Tag.END_OF_FILE)
        return record

    @classmethod
    def create_extended_linear_address(cls, extension: int) -> Self:
        r"""Creates an Extended Linear Address record.

        The following data records are placed relative to
        ``extension << 16``.

        Args:
            extension (int):
                Address extension value.

        Returns:
            :class:`IhexRecord`: Extended Linear Address record object.

        Examples:
            >>> from hexunpack.records import IhexRecord
            >>> record = IhexRecord.create_extended_linear_address(0x1234)
            >>> record.data, record.checksum
            (b'\x124', 180)
        """

        extension = extension.__index__()
        if not 0 <= extension <= 0xFFFF:
            raise ValueError('extension overflow')

        data = extension.to_bytes(2, byteorder='big')
        record = cls(cls.Tag.EXTENDED_LINEAR_ADDRESS, data=data)
        return record

    @classmethod
    def create_extended_segment_address(cls, extension: int) -> Self:
        r"""Creates an Extended Segment Address record.

        The following data records are placed relative to
        ``extension << 4``.

        Args:
            extension (int):
                Address extension value.

        Returns:
            :class:`IhexRecord`: Extended Segment Address record object.
        """

        extension = extension.__index__()
        if not 0 <= extension <= 0xFFFF:
            raise ValueError('extension overflow')

        data = extension.to_bytes(2, byteorder='big')
        record = cls(cls.Tag.EXTENDED_SEGMENT_ADDRESS, data=data)
        return record

    @classmethod
    def create_start_linear_address(cls, address: int) -> Self:

        address = address.__index__()
        if not 0 <= address <= 0xFFFFFFFF:
            raise ValueError('address overflow')

        data = address.to_bytes(4, byteorder='big')
        record = cls(cls.Tag.START_LINEAR_ADDRESS, data=data)
        return record

    @classmethod
    def create_start_segment_address(cls, address: int) -> Self:

        address = address.__index__()
        if not 0 <= address <= 0xFFFFFFFF:
            raise ValueError('address overflow')

        data = address.to_bytes(4, byteorder='big')
        record = cls(cls.Tag.START_SEGMENT_ADDRESS, data=data)
        return record

    def data_to_int(self) -> int:
        r"""Interprets data bytes as a big-endian unsigned integer.

        Returns:
            int: Interpreted integer value.

        Examples:
            >>> from hexunpack.records import IhexRecord
            >>> record = IhexRecord.create_extended_linear_address(0xABCD)
            >>> hex(record.data_to_int())
            '0xabcd'
        """

        return int.from_bytes(self.data, byteorder='big')

    def get_meta(self) -> MutableMapping[str, Any]:

        return {key: getattr(self, key) for key in self.META_KEYS}

    @classmethod
    def parse(
        cls,
        line: AnyBytes,
        validate: bool = True,
    ) -> Self:
        r"""Parses a record from a line.

        Args:
            line (bytes):
                Record line, with optional line terminator.

            validate (bool):
                Validates the parsed record, checksum included.

        Returns:
            :class:`IhexRecord`: Parsed record.

        Raises:
            ValueError: Syntax error, unknown tag, or invalid record.

        Examples:
            >>> from hexunpack.records import IhexRecord
            >>> record = IhexRecord.parse(b':0300300002337A1E\r\n')
            >>> record.tag, hex(record.address), record.data
            (<IhexTag.DATA: 0>, '0x30', b'\x023z')
            >>> IhexRecord.parse(b':0300300002337A1F\r\n')
            Traceback (most recent call last):
                ...
            ValueError: wrong checksum
        """

        match = cls.LINE_REGEX.match(line)
        if not match:
            raise ValueError('syntax error')

        groups = match.groupdict()
        before = groups['before']
        count = int(groups['count'], 16)
        address = int(groups['address'], 16)
        tag = cls.Tag(int(groups['tag'], 16))
        data = unhexlify(groups['data'])
        checksum = int(groups['checksum'], 16)
        after = groups['after']

        record = cls(tag,
                     address=address,
                     data=data,
                     count=count,
                     checksum=checksum,
                     before=before,
                     after=after,
                     validate=validate)
        return record

    def update_checksum(self) -> Self:

        self.checksum = self.compute_checksum()
        return self

    def update_count(self) -> Self:

        self.count = self.compute_count()
        return self

    def validate(
        self,
        checksum: bool = True,
        count: bool = True,
    ) -> Self:
        r"""Validates consistency of attribute values.

        Args:
            checksum (bool):
                Check the consistency of the :attr:`checksum` attribute.

            count (bool):
                Check the consistency of the :attr:`count` attribute.

        Returns:
            :class:`IhexRecord`: *self*.

        Raises:
            ValueError: Some targeted attributes are inconsistent.
        """

        if b':' in self.before:
            raise ValueError('junk before contains ":"')

        if self.checksum is not None:
            if not 0 <= self.checksum <= 0xFF:
                raise ValueError('checksum overflow')

            if checksum:
                if self.checksum != self.compute_checksum():
                    raise ValueError('wrong checksum')

        if self.count is not None:
            if not 0 <= self.count <= 0xFF:
                raise ValueError('count overflow')

            if count:
                if self.count != self.compute_count():
                    raise ValueError('wrong count')

        data_size = len(self.data)
        if data_size > 0xFF:
            raise ValueError('data size overflow')

        if not 0 <= self.address <= 0xFFFF:
            raise ValueError('address overflow')

        tag = self.Tag(self.tag)

        if tag.is_data():
            pass

        elif tag.is_start():
            if data_size != 4:
                raise ValueError('start address data size overflow')

        elif tag.is_extension():
            if data_size != 2:
                raise ValueError('extension data size overflow')

        else:  # elif tag.is_eof():
            if data_size:
                raise ValueError('unexpected data')

        return self


def _is_line_empty(line: AnyBytes) -> bool:

    return not line or line.isspace()


def iter_records(
    stream: Union[AnyBytes, IO],
    ignore_errors: bool = False,
) -> Iterator[IhexRecord]:
    r"""Parses records lazily from a byte stream.

    It executes :meth:`IhexRecord.parse` for each line of the incoming
    `stream`, yielding one record at a time.
    Empty lines are skipped.
    Iteration stops right after the *End Of File* record, ignoring anything
    beyond it.

    Args:
        stream (bytes IO or buffer):
            Stream or byte buffer to parse records from.

        ignore_errors (bool):
            Skip lines which cannot be parsed.

    Yields:
        :class:`IhexRecord`: Parsed record, with :attr:`IhexRecord.coords`
        set to the line number.

    Raises:
        :class:`hexunpack.errors.RecordError`: Invalid line.

    Examples:
        >>> from hexunpack.records import iter_records
        >>> buffer = b'''
        ...     :03DA7A0061626383
        ...     :040000050000CAFE2F
        ...     :00000001FF
        ...     this is ignored
        ... '''
        >>> [record.tag.name for record in iter_records(buffer)]
        ['DATA', 'START_LINEAR_ADDRESS', 'END_OF_FILE']
    """

    if isinstance(stream, (bytes, bytearray, memoryview)):
        stream = io.BytesIO(stream)

    row = 0

    for line in stream:
        row += 1

        if _is_line_empty(line):
            continue

        try:
            record = IhexRecord.parse(line)
        except ValueError as exc:
            if ignore_errors:
                continue
            raise RecordError(str(exc), row, bytes(line)) from exc

        record.coords = (row, 0)
        yield record

        if record.tag.is_eof():
            break


if not __TYPING_HAS_SELF:  # pragma: no cover
    del Self
