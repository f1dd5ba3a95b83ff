"""
sshd_config(5) percent tokens and positional argument binding.

sshd expands the tokens listed after the template path before running the
command, so the helper only ever sees their values in declaration order.
"""

import ipaddress
import logging
from enum import Enum
from typing import Any, Dict, FrozenSet, List, Sequence, Tuple

from sshd_command.exceptions import (
    InvalidTokenArgument,
    TokenCountMismatch,
    UnknownToken,
)


logger = logging.getLogger(__name__)

MAX_UID = 2**32 - 1
MAX_SERIAL = 2**64 - 1
MAX_PORT = 65535


class Token(str, Enum):
    """Percent tokens sshd can expand for an authorized keys/principals command."""
    CONNECTION_ENDPOINTS = "%C"
    ROUTING_DOMAIN = "%D"
    CA_FINGERPRINT = "%F"
    FINGERPRINT = "%f"
    HOME_DIR = "%h"
    KEY_ID = "%i"
    CA_KEY = "%K"
    KEY = "%k"
    SERIAL = "%s"
    CA_KEY_TYPE = "%T"
    KEY_TYPE = "%t"
    USER_ID = "%U"
    USER_NAME = "%u"

    def __str__(self) -> str:
        return self.value

    @classmethod
    def parse(cls, symbol: str) -> 'Token':
        """Look up a token by its sshd symbol, e.g. '%U'."""
        try:
            return cls(symbol)
        except ValueError:
            raise UnknownToken(symbol) from None

    @property
    def fields(self) -> Tuple[str, ...]:
        """Context fields this token populates."""
        return TOKEN_FIELDS[self]

    @property
    def is_identity(self) -> bool:
        return self in (Token.USER_ID, Token.USER_NAME)


TOKEN_FIELDS: Dict[Token, Tuple[str, ...]] = {
    Token.CONNECTION_ENDPOINTS: ("client", "server"),
    Token.ROUTING_DOMAIN: ("routing_domain",),
    Token.CA_FINGERPRINT: ("ca_fingerprint",),
    Token.FINGERPRINT: ("fingerprint",),
    Token.HOME_DIR: ("home_dir",),
    Token.KEY_ID: ("key_id",),
    Token.CA_KEY: ("ca_key",),
    Token.KEY: ("key",),
    Token.SERIAL: ("serial",),
    Token.CA_KEY_TYPE: ("ca_key_type",),
    Token.KEY_TYPE: ("key_type",),
    Token.USER_ID: ("user.uid",),
    Token.USER_NAME: ("user.name",),
}


class Command(str, Enum):
    """sshd option the template is written for."""
    KEYS = "keys"
    PRINCIPALS = "principals"

    def __str__(self) -> str:
        return self.option_name

    @property
    def option_name(self) -> str:
        if self is Command.KEYS:
            return "AuthorizedKeysCommand"
        return "AuthorizedPrincipalsCommand"

    @property
    def supported_tokens(self) -> FrozenSet[Token]:
        return SUPPORTED_TOKENS[self]

    def unsupported_tokens(self, tokens: Sequence[Token]) -> List[Token]:
        return [token for token in tokens if token not in self.supported_tokens]


SUPPORTED_TOKENS: Dict[Command, FrozenSet[Token]] = {
    Command.KEYS: frozenset({
        Token.CONNECTION_ENDPOINTS,
        Token.ROUTING_DOMAIN,
        Token.FINGERPRINT,
        Token.HOME_DIR,
        Token.KEY,
        Token.KEY_TYPE,
        Token.USER_ID,
        Token.USER_NAME,
    }),
    Command.PRINCIPALS: frozenset(Token),
}


def parse_tokens(value: str) -> Tuple[Token, ...]:
    """Parse a whitespace separated token string such as '%U %u'."""
    return tuple(Token.parse(symbol) for symbol in value.split())


def _parse_uint(token: Token, value: str, maximum: int) -> int:
    if not (value.isascii() and value.isdigit()):
        raise InvalidTokenArgument(token, value, "expected a non-negative integer")
    # Length check first: int() refuses very long digit strings
    digits = value.lstrip("0") or "0"
    if len(digits) > len(str(maximum)) or int(digits) > maximum:
        raise InvalidTokenArgument(token, value, f"out of range, maximum is {maximum}")
    return int(digits)


def _format_endpoint(token: Token, addr: str, port: str) -> str:
    try:
        ip = ipaddress.ip_address(addr)
    except ValueError:
        raise InvalidTokenArgument(token, addr, "expected an IP address") from None

    port_number = _parse_uint(token, port, MAX_PORT)

    if ip.version == 6:
        return f"[{ip}]:{port_number}"
    return f"{ip}:{port_number}"


def convert_token_value(token: Token, value: str) -> Dict[str, Any]:
    """
    Convert one raw argument into the context fields of its token.

    Returns:
        Mapping of context field name to typed value
    """
    if token is Token.CONNECTION_ENDPOINTS:
        parts = value.split()
        if len(parts) != 4:
            raise InvalidTokenArgument(
                token, value, "expected 'client_addr client_port server_addr server_port'"
            )
        return {
            "client": _format_endpoint(token, parts[0], parts[1]),
            "server": _format_endpoint(token, parts[2], parts[3]),
        }

    if token is Token.USER_ID:
        converted: Any = _parse_uint(token, value, MAX_UID)
    elif token is Token.SERIAL:
        converted = _parse_uint(token, value, MAX_SERIAL)
    else:
        converted = value

    return {token.fields[0]: converted}


class BoundTokens:
    """Declared tokens zipped with their argument values, in order."""

    def __init__(self, pairs: Sequence[Tuple[Token, str]]):
        """
        Raises:
            InvalidTokenArgument: If a value cannot be converted to its type
        """
        self._pairs = tuple(pairs)
        self._fields: Dict[str, Any] = {}
        for token, value in self._pairs:
            self._fields.update(convert_token_value(token, value))

    def __iter__(self):
        return iter(self._pairs)

    def __len__(self) -> int:
        return len(self._pairs)

    def fields(self) -> Dict[str, Any]:
        """Typed context fields for every bound token, keyed by dotted name."""
        return dict(self._fields)


def bind_tokens(tokens: Sequence[Token], args: Sequence[str]) -> BoundTokens:
    """
    Zip declared tokens with sshd supplied arguments.

    Raises:
        TokenCountMismatch: If the counts differ (checked before binding)
        InvalidTokenArgument: If a value cannot be converted to its type
    """
    if len(tokens) != len(args):
        raise TokenCountMismatch(expected=len(tokens), got=len(args))

    bound = BoundTokens(list(zip(tokens, args)))
    logger.debug("Bound tokens: %s", ", ".join(f"{t}={v!r}" for t, v in bound))
    return bound


PLACEHOLDER_ARGS: Dict[Token, str] = {
    Token.CONNECTION_ENDPOINTS: "127.0.0.1 22 127.0.0.1 22",
    Token.ROUTING_DOMAIN: "default",
    Token.CA_FINGERPRINT: "SHA256:placeholder",
    Token.FINGERPRINT: "SHA256:placeholder",
    Token.HOME_DIR: "/nonexistent",
    Token.KEY_ID: "placeholder",
    Token.CA_KEY: "AAAAplaceholder",
    Token.KEY: "AAAAplaceholder",
    Token.SERIAL: "0",
    Token.CA_KEY_TYPE: "ssh-ed25519",
    Token.KEY_TYPE: "ssh-ed25519",
}


def placeholder_args(tokens: Sequence[Token], uid: int, username: str) -> List[str]:
    """Build arguments that bind cleanly to ``tokens``, used by check mode."""
    args = []
    for token in tokens:
        if token is Token.USER_ID:
            args.append(str(uid))
        elif token is Token.USER_NAME:
            args.append(username)
        else:
            args.append(PLACEHOLDER_ARGS[token])
    return args
