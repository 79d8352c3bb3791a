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

r"""Loading of Intel HEX files into binary images."""

import io
import logging
import os
import sys
from typing import IO
from typing import Optional
from typing import Tuple
from typing import Union

from .errors import FileOpenError
from .errors import FileReadError
from .records import iter_records
from .unpacker import unpack_to_new_buffer
from .utils import AnyPath

_logger = logging.getLogger(__name__)


def load_from_path(
    in_path_or_stream: Optional[Union[AnyPath, IO]],
    binary_size: int,
    base_offset: int = 0,
) -> Tuple[bytearray, int]:
    r"""Loads an Intel HEX file into a new binary image.

    The whole file is read at once, then its records are parsed and
    unpacked one at a time via :func:`hexunpack.unpacker.unpack_to_new_buffer`.

    Args:
        in_path_or_stream (str or bytes IO):
            Path of the file within the filesystem, or byte input stream.
            If ``None``, ``sys.stdin.buffer`` is used.

        binary_size (int):
            Image size.

        base_offset (int):
            Absolute address of the image start.

    Returns:
        (bytearray, int): The image buffer and the number of bytes written.

    Raises:
        :class:`hexunpack.errors.FileOpenError`: Cannot open the file.

        :class:`hexunpack.errors.FileReadError`: Cannot read the file.

        :class:`hexunpack.errors.UnpackingError`: Invalid records, or data
            out of the image.
    """

    if in_path_or_stream is None:
        in_path_or_stream = sys.stdin.buffer

    if isinstance(in_path_or_stream, io.IOBase):
        stream = in_path_or_stream
        _logger.debug('loading stream %r', stream)
        try:
            data = stream.read()
        except OSError as exc:
            raise FileReadError(f'IO error when reading {stream!r}') from exc
    else:
        if isinstance(in_path_or_stream, bytearray):
            in_path_or_stream = bytes(in_path_or_stream)
        path = os.fsdecode(in_path_or_stream)
        _logger.debug('loading file %r', path)
        try:
            stream = open(path, 'rb')
        except OSError as exc:
            raise FileOpenError(f'IO error when opening {path!r}') from exc

        with stream:
            try:
                data = stream.read()
            except OSError as exc:
                raise FileReadError(f'IO error when reading {path!r}') from exc

    records = iter_records(data)
    buffer, used_bytes = unpack_to_new_buffer(records, binary_size, base_offset)
    _logger.debug('unpacked %d bytes into %d', used_bytes, binary_size)
    return buffer, used_bytes
