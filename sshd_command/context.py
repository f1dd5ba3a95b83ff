"""
Render context assembly.

Layers are merged from lowest to highest precedence:

1. extra front matter fields
2. hostname (when enabled)
3. user (always present; the completed record when enabled)
4. token fields bound from sshd arguments

A higher layer replacing a key set by a lower one is logged, never silent.
"""

import logging
from types import MappingProxyType
from typing import Any, Dict, Mapping, Optional

from sshd_command.frontmatter import FrontMatter
from sshd_command.identity import UserRecord
from sshd_command.tokens import BoundTokens


logger = logging.getLogger(__name__)

USER_FIELD_PREFIX = "user."


def _overlay(context: Dict[str, Any], layer: Mapping[str, Any], layer_name: str,
             owners: Dict[str, str]) -> None:
    for key, value in layer.items():
        if key in context and context[key] != value:
            logger.warning(
                f"Context field '{key}' from {owners[key]} is overridden by {layer_name}"
            )
        context[key] = value
        owners[key] = layer_name


def build_context(
    front_matter: FrontMatter,
    bound: BoundTokens,
    hostname: Optional[str] = None,
    user: Optional[UserRecord] = None
) -> Mapping[str, Any]:
    """
    Merge all context sources into the read-only mapping the template sees.

    Args:
        front_matter: Validated front matter (source of extra fields)
        bound: Token values bound from sshd arguments
        hostname: Resolved hostname, if enabled
        user: Completed user record, if enabled

    Returns:
        Read-only render context
    """
    context: Dict[str, Any] = {}
    owners: Dict[str, str] = {}

    _overlay(context, front_matter.extra, "front matter", owners)

    if hostname is not None:
        _overlay(context, {'hostname': hostname}, "hostname lookup", owners)

    user_fields = user.to_context() if user is not None else {}
    _overlay(context, {'user': user_fields}, "user", owners)

    token_fields = bound.fields()
    for key, value in token_fields.items():
        if not key.startswith(USER_FIELD_PREFIX):
            continue
        attribute = key[len(USER_FIELD_PREFIX):]
        if attribute in user_fields and user_fields[attribute] != value:
            logger.warning(
                f"Context field 'user.{attribute}' from user lookup is overridden by token arguments"
            )
        user_fields[attribute] = value

    _overlay(
        context,
        {k: v for k, v in token_fields.items() if not k.startswith(USER_FIELD_PREFIX)},
        "token arguments",
        owners,
    )

    return MappingProxyType(context)
