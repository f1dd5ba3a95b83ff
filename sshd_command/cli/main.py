"""Main CLI entry point for sshd-command."""

import argparse
import sys
from typing import Optional

from sshd_command.version import __version__

from .commands import run_command


def create_parser() -> argparse.ArgumentParser:
    """Create the argument parser for the sshd-command CLI."""
    parser = argparse.ArgumentParser(
        prog='sshd-command',
        description='A simple templating engine for sshd AuthorizedKeysCommand '
                    'and AuthorizedPrincipalsCommand helpers.'
    )

    parser.add_argument(
        'template',
        nargs='?',
        type=str,
        help='Path to the template file'
    )
    # Everything after the template path is a token value, including values
    # that start with '-' (key ids, certificate ids).
    parser.add_argument(
        'tokens',
        nargs=argparse.REMAINDER,
        metavar='TOKEN',
        help='Token values expanded by sshd, in the order the template declares them'
    )

    mode = parser.add_mutually_exclusive_group()
    mode.add_argument(
        '-v', '--validate',
        action='store_true',
        help='Validate the template front matter'
    )
    mode.add_argument(
        '-c', '--check',
        action='store_true',
        help='Check the template by rendering it with placeholder tokens (superset of validate)'
    )

    parser.add_argument(
        '-V', '--version',
        action='version',
        version=f'%(prog)s {__version__}'
    )
    parser.add_argument(
        '--debug',
        action='store_true',
        help='Enable debug logging'
    )
    parser.add_argument(
        '--log-level',
        choices=['debug', 'info', 'warning', 'error'],
        default='warning',
        help='Set log level (logs go to stderr)'
    )

    return parser


def main(args: Optional[list] = None) -> int:
    """Main entry point for the CLI."""
    parser = create_parser()
    parsed_args = parser.parse_args(args)
    return run_command(parsed_args)


if __name__ == '__main__':
    sys.exit(main())
