"""
sshd-command: render sshd AuthorizedKeysCommand / AuthorizedPrincipalsCommand
output from a template with YAML front matter.
"""

from .version import __version__
from .exceptions import SshdCommandError
from .frontmatter import FrontMatter
from .identity import IdentityLookup, SystemIdentity
from .render import check_template, render_template, validate_template
from .tokens import Command, Token

__all__ = [
    '__version__',
    'SshdCommandError',
    'FrontMatter',
    'IdentityLookup',
    'SystemIdentity',
    'check_template',
    'render_template',
    'validate_template',
    'Command',
    'Token',
]
