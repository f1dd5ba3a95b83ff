"""Command handler: validate, check or render a template."""

import logging
import sys
from argparse import Namespace
from pathlib import Path
from typing import Optional, TextIO

from sshd_command.exceptions import SshdCommandError
from sshd_command.identity import IdentityLookup
from sshd_command.render import check_template, render_template, validate_template


logger = logging.getLogger(__name__)

USAGE_EXIT_CODE = 2


def configure_logging(args: Namespace) -> None:
    """Send logs to stderr; sshd forwards them to its own log."""
    log_level = getattr(logging, args.log_level.upper())
    if args.debug:
        log_level = logging.DEBUG

    logging.basicConfig(
        level=log_level,
        stream=sys.stderr,
        format='%(asctime)s - %(name)s - %(levelname)s - %(message)s'
    )


def run_command(
    args: Namespace,
    lookup: Optional[IdentityLookup] = None,
    stdout: Optional[TextIO] = None
) -> int:
    """
    Run one invocation and return its exit code.

    Nothing is written to stdout unless rendering fully succeeded.
    """
    configure_logging(args)
    stdout = stdout if stdout is not None else sys.stdout

    if not args.template:
        logger.error("Error: No template path provided")
        return USAGE_EXIT_CODE

    template_path = Path(args.template)

    try:
        if args.validate or args.check:
            if args.tokens:
                logger.debug(f"Ignoring {len(args.tokens)} token argument(s) outside render mode")

            if args.validate:
                validate_template(template_path)
            else:
                check_template(template_path, lookup=lookup)
            logger.info(f"Template is valid: {template_path}")
            return 0

        output = render_template(template_path, args.tokens, lookup=lookup)

    except SshdCommandError as e:
        logger.error(f"Error: {e}")
        if e.__cause__ is not None:
            logger.debug(f"Caused by: {e.__cause__}")
        return e.exit_code
    except Exception as e:
        logger.error(f"Unexpected error: {e}", exc_info=True)
        return 1

    stdout.write(output)
    stdout.flush()
    return 0
