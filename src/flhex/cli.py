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

  - When you run `python -m flhex` python will execute
    ``__main__.py`` as a script. That means there won't be any
    ``flhex.__main__`` in ``sys.modules``.
  - When you import __main__ it will get executed again (as a module) because
    there's no ``flhex.__main__`` in ``sys.modules``.

  Also see (1) from https://click.palletsprojects.com/en/stable/setuptools/#setuptools-integration
"""

import logging

import click

from .__init__ import __version__
from .errors import FlhexError
from .ihex import decode
from .ihex import encode
from .image import ByteImage
from .utils import parse_int

logger = logging.getLogger(__name__)

LINE_ENDINGS = {
    False: '\n',
    True: '\r\n',
}


class ByteIntParamType(click.ParamType):
    name = 'byte'

    def convert(self, value, param, ctx):
        try:
            b = parse_int(value)
            if not 0 <= b <= 255:
                raise ValueError()
            return b
        except ValueError:
            self.fail(f'invalid byte: {value!r}', param, ctx)


BYTE_INT = ByteIntParamType()

FILE_PATH_IN = click.Path(dir_okay=False, allow_dash=True)
FILE_PATH_OUT = click.Path(dir_okay=False, allow_dash=True, writable=True)


def print_version(ctx, _, value):

    if not value or ctx.resilient_parsing:
        return

    click.echo(f'flhex v{__version__!s}')
    ctx.exit()


def setup_logging(verbose: bool) -> None:

    level = logging.DEBUG if verbose else logging.WARNING
    logging.basicConfig(level=level, format='flhex: %(levelname)s: %(message)s')


# ============================================================================

@click.command(context_settings={'help_option_names': ['-h', '--help']})
@click.option('--count', type=BYTE_INT, default=0, show_default=True, help="""
    Per-record byte count.
    By default it matches the input file.
""")
@click.option('--padding', type=BYTE_INT, default=0xFF, show_default=True, help="""
    Byte value used to fill the gaps.
""")
@click.option('-o', '--output', 'outfile', type=FILE_PATH_OUT, default='out.hex',
              show_default=True, help="""
    Output file. Set to ``-`` to write to standard output.
""")
@click.option('--crlf', is_flag=True, help="""
    Terminates records with CR+LF instead of LF.
""")
@click.option('--verbose', is_flag=True, help="""
    Prints debug messages.
""")
@click.option('-v', '--version', is_flag=True, is_eager=True, expose_value=False,
              callback=print_version, help="""
    Prints the version and exits.
""")
@click.argument('infile', type=FILE_PATH_IN)
@click.pass_context
def main(
    ctx: click.Context,
    count: int,
    padding: int,
    outfile: str,
    crlf: bool,
    verbose: bool,
    infile: str,
) -> None:
    r"""Flattens an Intel HEX file so that there are no gaps between bytes.

    This can be used to normalize HEX files, or to work around bootloader
    bugs.

    ``INFILE`` is the path of the input file.
    Set to ``-`` to read from standard input.
    """

    setup_logging(verbose)

    try:
        image = ByteImage(padding)
        with click.open_file(infile, 'rt') as stream:
            decode(stream, image)
        logger.debug('decoded 0x%X bytes from %s', image.size, infile)

        # written only after a successful decode, never truncated
        with click.open_file(outfile, 'wt', atomic=True) as stream:
            encode(image, count, stream, end=LINE_ENDINGS[crlf])

    except (FlhexError, OSError, MemoryError) as exc:
        click.echo(f'flhex: {exc}', err=True)
        ctx.exit(1)
