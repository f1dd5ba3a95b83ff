"""
Hostname and user/group resolution.

The OS identity database is reached only through an ``IdentityLookup``, so
tests can hand in deterministic fixtures instead of the host's passwd/group
files.
"""

import grp
import logging
import os
import pwd
import socket
from dataclasses import asdict, dataclass, field
from typing import Any, Dict, List, Optional, Protocol, Tuple, Union

from sshd_command.exceptions import (
    GroupLookupFailed,
    HostnameUnavailable,
    UserNotFound,
)


logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class Group:
    gid: int
    name: str


@dataclass(frozen=True)
class UserEntry:
    """A passwd entry as returned by ``IdentityLookup.lookup_user``."""
    uid: int
    name: str
    gid: int


@dataclass(frozen=True)
class UserRecord:
    """
    Completed user identity exposed to templates as ``user``.

    Attributes:
        uid: Numeric user id
        name: Login name
        gid: Primary group id
        groups: Primary and supplementary groups, in lookup order
    """
    uid: int
    name: str
    gid: int
    groups: Tuple[Group, ...] = field(default_factory=tuple)

    def to_context(self) -> Dict[str, Any]:
        return {
            'uid': self.uid,
            'name': self.name,
            'gid': self.gid,
            'groups': [asdict(group) for group in self.groups],
        }


class IdentityLookup(Protocol):
    """Lookup capability consumed by the resolver."""

    def lookup_hostname(self) -> str:
        ...

    def lookup_user(self, uid_or_name: Union[int, str]) -> Optional[UserEntry]:
        """Return the entry, or None if no such user exists."""
        ...

    def lookup_groups(self, name: str, gid: int) -> List[Group]:
        """Primary and supplementary groups of a user."""
        ...


class SystemIdentity:
    """IdentityLookup backed by the local passwd/group databases."""

    def lookup_hostname(self) -> str:
        return socket.gethostname()

    def lookup_user(self, uid_or_name: Union[int, str]) -> Optional[UserEntry]:
        try:
            if isinstance(uid_or_name, int):
                entry = pwd.getpwuid(uid_or_name)
            else:
                entry = pwd.getpwnam(uid_or_name)
        except KeyError:
            return None
        return UserEntry(uid=entry.pw_uid, name=entry.pw_name, gid=entry.pw_gid)

    def lookup_groups(self, name: str, gid: int) -> List[Group]:
        """
        Groups sorted by ascending gid, primary group included.

        Gids without a group database entry are skipped.
        """
        groups = []
        for group_id in sorted(set(os.getgrouplist(name, gid))):
            try:
                entry = grp.getgrgid(group_id)
            except KeyError:
                logger.debug(f"Skipping gid {group_id} of {name}: no group entry")
                continue
            groups.append(Group(gid=entry.gr_gid, name=entry.gr_name))
        return groups


def resolve_hostname(lookup: IdentityLookup) -> str:
    """
    Hostname of this system.

    Raises:
        HostnameUnavailable: If the lookup fails or returns nothing
    """
    try:
        hostname = lookup.lookup_hostname()
    except OSError as e:
        raise HostnameUnavailable(str(e)) from e

    if not hostname:
        raise HostnameUnavailable("lookup returned an empty hostname")

    logger.debug(f"Resolved hostname: {hostname}")
    return hostname


def complete_user(
    lookup: IdentityLookup,
    uid: Optional[int] = None,
    name: Optional[str] = None
) -> UserRecord:
    """
    Resolve the full user record from a uid and/or name.

    The uid wins when both are known.

    Raises:
        UserNotFound: If the user does not exist
        GroupLookupFailed: If group membership cannot be read
    """
    if uid is None and name is None:
        raise ValueError("complete_user needs a uid or a user name")

    identifier: Union[int, str] = uid if uid is not None else name  # type: ignore[assignment]
    try:
        entry = lookup.lookup_user(identifier)
    except (OSError, KeyError) as e:
        raise UserNotFound(identifier) from e
    if entry is None:
        raise UserNotFound(identifier)

    if uid is not None and name is not None and name != entry.name:
        logger.warning(
            f"User name '{name}' does not match '{entry.name}' resolved for uid {uid}"
        )

    try:
        groups = tuple(lookup.lookup_groups(entry.name, entry.gid))
    except (OSError, KeyError) as e:
        raise GroupLookupFailed(entry.name, str(e)) from e

    logger.debug(
        f"Completed user {entry.name} (uid={entry.uid}, gid={entry.gid}, "
        f"groups={[g.name for g in groups]})"
    )
    return UserRecord(uid=entry.uid, name=entry.name, gid=entry.gid, groups=groups)
