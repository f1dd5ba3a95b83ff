"""Shared fixtures for sshd-command tests."""

from pathlib import Path
from typing import Dict, List, Optional, Union

import pytest

from sshd_command.identity import Group, UserEntry


FIXTURES_DIR = Path(__file__).parent / "fixtures"


class FakeIdentity:
    """Deterministic IdentityLookup that records every call."""

    def __init__(
        self,
        hostname: Union[str, Exception] = "server",
        users: Optional[List[UserEntry]] = None,
        groups: Optional[Dict[str, Union[List[Group], Exception]]] = None
    ):
        self.hostname = hostname
        self.users = users or []
        self.groups = groups or {}
        self.calls: List[tuple] = []

    def lookup_hostname(self) -> str:
        self.calls.append(("hostname",))
        if isinstance(self.hostname, Exception):
            raise self.hostname
        return self.hostname

    def lookup_user(self, uid_or_name):
        self.calls.append(("user", uid_or_name))
        for entry in self.users:
            if uid_or_name in (entry.uid, entry.name):
                return entry
        return None

    def lookup_groups(self, name, gid):
        self.calls.append(("groups", name, gid))
        result = self.groups.get(name, [])
        if isinstance(result, Exception):
            raise result
        return list(result)


@pytest.fixture
def fixtures_dir() -> Path:
    return FIXTURES_DIR


@pytest.fixture
def fake_identity() -> FakeIdentity:
    """Host 'server' with user alice (uid 1001) in users(100) and admins(1500)."""
    return FakeIdentity(
        hostname="server",
        users=[
            UserEntry(uid=1001, name="alice", gid=100),
            UserEntry(uid=1000, name="user", gid=1000),
        ],
        groups={
            "alice": [Group(gid=100, name="users"), Group(gid=1500, name="admins")],
            "user": [Group(gid=1000, name="user")],
        },
    )


@pytest.fixture
def make_identity():
    """Factory for FakeIdentity instances with custom data."""
    return FakeIdentity


@pytest.fixture
def write_template(tmp_path):
    """Write template text to a file and return its path."""
    def _write(content: str, name: str = "template.j2") -> Path:
        path = tmp_path / name
        path.write_text(content)
        return path
    return _write
