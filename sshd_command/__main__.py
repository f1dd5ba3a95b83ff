"""Allow running as `python -m sshd_command`."""

import sys

from sshd_command.cli.main import main


if __name__ == '__main__':
    sys.exit(main())
