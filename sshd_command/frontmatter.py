"""
Front matter model and validation.

The reserved `sshd_command` mapping configures the tool itself; every other
top-level key is passed to the template untouched:

    sshd_command:
      version: 0.3.0          # minimum sshd-command version (alias: min_version)
      command: principals     # principals | keys
      tokens: '%U %u'         # tokens listed after the template path in sshd_config
      hostname: false         # expose the system hostname as `hostname`
      complete_user: false    # resolve uid/name/gid/groups from the OS
    search_domains: [home.arpa, local]
"""

import logging
from dataclasses import dataclass, field
from typing import Any, Dict, Optional, Tuple, Union

from semver import Version

from sshd_command.exceptions import (
    MissingIdentitySource,
    SchemaError,
    UnsupportedToken,
    VersionTooNew,
)
from sshd_command.loader import TemplateFile, load_front_matter_data
from sshd_command.tokens import Command, Token, parse_tokens
from sshd_command.version import __version__


logger = logging.getLogger(__name__)

RESERVED_KEY = "sshd_command"
KNOWN_FIELDS = {'version', 'min_version', 'command', 'tokens', 'hostname', 'complete_user'}


def parse_version(value: Any, field_name: str = f"{RESERVED_KEY}.version") -> Version:
    """
    Parse a semantic version string (MAJOR.MINOR.PATCH[-PRERELEASE][+BUILD]).

    Pre-release versions (``-rc.1``, ``-1``) order below their release.
    Build metadata (``+build.5``) is ignored for precedence.
    """
    if not isinstance(value, str):
        raise SchemaError(
            field_name,
            f"must be a version string such as '0.3.0', got {value!r}"
        )
    try:
        version = Version.parse(value)
    except ValueError:
        raise SchemaError(field_name, f"'{value}' is not a valid semantic version") from None
    return version.replace(build=None)


def running_version() -> Version:
    return Version.parse(__version__)


@dataclass(frozen=True)
class FrontMatter:
    """
    Parsed front matter.

    Attributes:
        min_version: Oldest sshd-command able to render the template
        command: sshd option the template serves
        tokens: Tokens sshd passes after the template path, in order
        hostname: Whether to expose the system hostname
        complete_user: Whether to resolve the full user record
        extra: Every top-level key outside the reserved namespace
    """
    min_version: Version
    command: Command
    tokens: Tuple[Token, ...]
    hostname: bool = False
    complete_user: bool = False
    extra: Dict[str, Any] = field(default_factory=dict)

    def validate(self, running: Optional[Version] = None) -> None:
        """
        Semantic validation. Pure: the same front matter always yields the
        same outcome.

        Raises:
            VersionTooNew: If the running program is older than min_version
            SchemaError: If no tokens are declared
            UnsupportedToken: If sshd never expands a token for this command
            MissingIdentitySource: If complete_user has no %U/%u to work from
        """
        running = running if running is not None else running_version()
        if running < self.min_version:
            raise VersionTooNew(required=self.min_version, running=running)

        if not self.tokens:
            raise SchemaError(f"{RESERVED_KEY}.tokens", "at least one token is required")

        unsupported = self.command.unsupported_tokens(self.tokens)
        if unsupported:
            raise UnsupportedToken(self.command, unsupported[0])

        if self.complete_user and not any(token.is_identity for token in self.tokens):
            raise MissingIdentitySource()


def _parse_token_field(value: Any) -> Tuple[Token, ...]:
    field_name = f"{RESERVED_KEY}.tokens"
    if isinstance(value, str):
        tokens = parse_tokens(value)
    elif isinstance(value, list):
        if not all(isinstance(item, str) for item in value):
            raise SchemaError(field_name, "list entries must be token strings")
        tokens = parse_tokens(" ".join(value))
    else:
        raise SchemaError(
            field_name,
            "must be a space separated string of sshd_config tokens, e.g. '%U %u'"
        )

    if not tokens:
        raise SchemaError(field_name, "at least one token is required")
    return tokens


def _parse_bool_field(section: Dict[str, Any], name: str) -> bool:
    value = section.get(name, False)
    if not isinstance(value, bool):
        raise SchemaError(f"{RESERVED_KEY}.{name}", f"must be true or false, got {value!r}")
    return value


def parse_front_matter(data: Any) -> FrontMatter:
    """
    Build a FrontMatter from deserialized data.

    Raises:
        SchemaError: On missing, unknown or wrongly shaped fields
        UnknownToken: On a token symbol outside the sshd vocabulary
    """
    if not isinstance(data, dict):
        raise SchemaError("<front matter>", "must be a mapping")

    section = data.get(RESERVED_KEY)
    if section is None:
        raise SchemaError(RESERVED_KEY, "missing field")
    if not isinstance(section, dict):
        raise SchemaError(RESERVED_KEY, "must be a mapping")

    for key in section:
        if key not in KNOWN_FIELDS:
            raise SchemaError(f"{RESERVED_KEY}.{key}", "unknown field")

    if 'version' in section and 'min_version' in section:
        raise SchemaError(f"{RESERVED_KEY}.version", "give either 'version' or 'min_version', not both")
    version_key = 'min_version' if 'min_version' in section else 'version'
    if version_key not in section:
        raise SchemaError(f"{RESERVED_KEY}.version", "missing field")
    min_version = parse_version(section[version_key], f"{RESERVED_KEY}.{version_key}")

    if 'command' not in section:
        raise SchemaError(f"{RESERVED_KEY}.command", "missing field")
    try:
        command = Command(section['command'])
    except ValueError:
        valid = ", ".join(c.value for c in Command)
        raise SchemaError(
            f"{RESERVED_KEY}.command",
            f"unknown command {section['command']!r}, expected one of: {valid}"
        ) from None

    if 'tokens' not in section:
        raise SchemaError(f"{RESERVED_KEY}.tokens", "missing field")
    tokens = _parse_token_field(section['tokens'])

    for key in data:
        if not isinstance(key, str):
            raise SchemaError(str(key), "top-level keys must be strings")

    return FrontMatter(
        min_version=min_version,
        command=command,
        tokens=tokens,
        hostname=_parse_bool_field(section, 'hostname'),
        complete_user=_parse_bool_field(section, 'complete_user'),
        extra={key: value for key, value in data.items() if key != RESERVED_KEY},
    )


def load_front_matter(template: Union[TemplateFile, str]) -> FrontMatter:
    """Parse and validate the front matter of a split template."""
    raw = template.front_matter_raw if isinstance(template, TemplateFile) else template
    front_matter = parse_front_matter(load_front_matter_data(raw))
    front_matter.validate()

    logger.debug(
        "Front matter: command=%s tokens=%s min_version=%s hostname=%s complete_user=%s extra=%s",
        front_matter.command.value,
        " ".join(t.value for t in front_matter.tokens),
        front_matter.min_version,
        front_matter.hostname,
        front_matter.complete_user,
        sorted(front_matter.extra),
    )
    return front_matter
