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

"""
Module that contains the command line app.

Why does this file exist, and why not put this in __main__?

  You might be tempted to import things from __main__ later, but that will cause
  problems: the code will get executed twice:

  - When you run `python -m hexunpack` python will execute
    ``__main__.py`` as a script. That means there won't be any
    ``hexunpack.__main__`` in ``sys.modules``.
  - When you import __main__ it will get executed again (as a module) because
    there's no ``hexunpack.__main__`` in ``sys.modules``.

  Also see (1) from https://click.palletsprojects.com/en/stable/setuptools/#setuptools-integration
"""

import logging
import sys
from typing import Optional

import click

from .__init__ import __version__
from .errors import LoadError
from .errors import RecordError
from .loader import load_from_path
from .records import iter_records
from .utils import hexlify
from .utils import parse_int


class BasedIntParamType(click.ParamType):
    name = 'integer'

    def convert(self, value, param, ctx):
        try:
            i = parse_int(value)
            if i < 0:
                raise ValueError()
            return i
        except ValueError:
            self.fail(f'invalid integer: {value!r}', param, ctx)


BASED_INT = BasedIntParamType()

FILE_PATH_IN = click.Path(dir_okay=False, allow_dash=True, readable=True, exists=True)
FILE_PATH_OUT = click.Path(dir_okay=False, allow_dash=True, writable=True)


# ----------------------------------------------------------------------------

def print_version(ctx, _, value):

    if not value or ctx.resilient_parsing:
        return

    click.echo(str(__version__))
    ctx.exit()


def open_input(input_path: Optional[str]):

    if input_path is None or input_path == '-':
        return click.open_file('-', 'rb')
    return open(input_path, 'rb')


# ============================================================================

@click.group()
@click.option('-v', '--verbose', is_flag=True, help="""
    Traces each record being processed.
""")
@click.option('--version', is_flag=True, is_eager=True, expose_value=False,
              callback=print_version, help="""
    Prints the package version number.
""")
def main(verbose: bool) -> None:
    """
    Command line utilities to unpack Intel HEX files into binary images.

    Being built with `Click <https://click.palletsprojects.com/en/stable/>`_, all the
    commands follow POSIX-like syntax rules, as well as reserving the virtual
    file path ``-`` for command chaining via standard output/input buffering.
    """

    if verbose:
        logging.basicConfig(stream=sys.stderr, format='%(name)s: %(message)s')
        logging.getLogger(__package__).setLevel(logging.DEBUG)


# ----------------------------------------------------------------------------

@main.command()
@click.option('-s', '--size', type=BASED_INT, required=True, help="""
    Size of the binary image, in bytes.
""")
@click.option('-b', '--base-offset', type=BASED_INT, default=0, show_default=True, help="""
    Absolute address of the first byte of the binary image.
""")
@click.argument('infile', type=FILE_PATH_IN, required=False)
@click.argument('outfile', type=FILE_PATH_OUT, required=False)
def unpack(
    size: int,
    base_offset: int,
    infile: Optional[str],
    outfile: Optional[str],
) -> None:
    r"""Unpacks an Intel HEX file into a binary image.

    ``INFILE`` is the path of the input Intel HEX file.
    Set to ``-`` or none to read from standard input.

    ``OUTFILE`` is the path of the output binary image.
    Set to ``-`` or none to write to standard output.

    Image bytes not written by any record are set to ``0xFF``.
    The number of bytes written is reported to standard error.
    """

    if infile == '-':
        infile = None

    try:
        image, used_bytes = load_from_path(infile, size, base_offset)
    except LoadError as exc:
        raise click.ClickException(str(exc))

    with click.open_file(outfile or '-', 'wb') as stream:
        stream.write(image)

    click.echo(f'{used_bytes} bytes used', err=True)


# ----------------------------------------------------------------------------

@main.command()
@click.argument('infile', type=FILE_PATH_IN, required=False)
def records(
    infile: Optional[str],
) -> None:
    r"""Lists the records of an Intel HEX file.

    ``INFILE`` is the path of the input Intel HEX file.
    Set to ``-`` or none to read from standard input.

    Each line shows the line number, the record tag, the 16-bit offset, and
    the payload in hexadecimal.
    Listing stops at the *End Of File* record.
    """

    with open_input(infile) as stream:
        try:
            for record in iter_records(stream):
                row = record.coords[0]
                tag = record.tag.name
                data = hexlify(record.data, sep=b' ').decode()
                click.echo(f'{row:6d}  {tag:<24s}  {record.address:04X}  {data}'.rstrip())
        except RecordError as exc:
            raise click.ClickException(str(exc))
