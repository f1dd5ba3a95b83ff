"""Tests for template evaluation and the validate/check/render pipelines."""

import os

import pytest

from sshd_command.exceptions import (
    HostnameUnavailable,
    MalformedFrontMatter,
    MissingIdentitySource,
    RenderError,
    TokenCountMismatch,
    UnsupportedToken,
    UserNotFound,
    VersionTooNew,
)
from sshd_command.identity import UserEntry
from sshd_command.render import (
    check_template,
    render_body,
    render_template,
    validate_template,
)
from sshd_command.tokens import Command


class TestRenderBody:

    def test_render(self):
        assert render_body("{{ a }}-{{ b }}\n", {"a": 1, "b": "x"}) == "1-x\n"

    def test_no_html_escaping(self):
        assert render_body("{{ key }}", {"key": "a<b>&c"}) == "a<b>&c"

    def test_undefined_variable(self):
        with pytest.raises(RenderError) as exc_info:
            render_body("{{ doest_not_exist }}", {})

        assert "doest_not_exist" in str(exc_info.value)

    def test_syntax_error_reports_file_line(self):
        with pytest.raises(RenderError) as exc_info:
            render_body("ok\n{% for %}\n", {}, line_offset=6)

        assert "line 8" in str(exc_info.value)

    def test_runtime_error(self):
        with pytest.raises(RenderError):
            render_body("{{ 1 // 0 }}", {})


class TestRenderTemplate:
    """End-to-end rendering from fixture templates."""

    def test_principals_fixture(self, fixtures_dir, fake_identity):
        expected = (fixtures_dir / "happy" / "principals.out").read_text()

        output = render_template(
            fixtures_dir / "happy" / "principals.j2", ["1000", "user"], lookup=fake_identity
        )

        assert output == expected
        assert fake_identity.calls == []

    def test_json_principals_fixture(self, fixtures_dir, fake_identity):
        expected = (fixtures_dir / "happy" / "principals.out").read_text()

        output = render_template(
            fixtures_dir / "happy" / "json-principals.j2", ["1000", "user"], lookup=fake_identity
        )

        assert output == expected

    def test_complete_user_group_principals(self, fixtures_dir, fake_identity):
        """Supplementary groups with gid >= 1000 add an @group@fqdn line."""
        expected = (fixtures_dir / "happy" / "principals-groups.out").read_text()

        output = render_template(
            fixtures_dir / "happy" / "principals-groups.j2", ["alice"], lookup=fake_identity
        )

        assert output == expected
        assert ("hostname",) in fake_identity.calls
        assert ("groups", "alice", 100) in fake_identity.calls

    def test_keys_fixture(self, fixtures_dir, fake_identity):
        output = render_template(
            fixtures_dir / "happy" / "keys.j2",
            ["alice", "ssh-ed25519", "SHA256:abc"],
            lookup=fake_identity,
        )

        assert output == "ssh-ed25519 AAAAC3NzaC1lZDI1NTE5AAAAIAlice alice@laptop\n"

    @pytest.mark.parametrize("args", [["1000"], ["1000", "user", "extra"]])
    def test_token_count_mismatch(self, fixtures_dir, fake_identity, args):
        with pytest.raises(TokenCountMismatch):
            render_template(fixtures_dir / "happy" / "principals.j2", args, lookup=fake_identity)

    def test_missing_end_separator(self, fixtures_dir, fake_identity):
        with pytest.raises(MalformedFrontMatter):
            render_template(
                fixtures_dir / "sad" / "missing-end-separator.j2", ["1000", "user"],
                lookup=fake_identity,
            )

    def test_undefined_context(self, fixtures_dir, fake_identity):
        with pytest.raises(RenderError):
            render_template(
                fixtures_dir / "sad" / "missing-context.j2", ["1000", "user"],
                lookup=fake_identity,
            )

    def test_hostname_failure_is_fatal(self, fixtures_dir, make_identity):
        lookup = make_identity(
            hostname=OSError("lookup failed"),
            users=[UserEntry(uid=1001, name="alice", gid=100)],
        )

        with pytest.raises(HostnameUnavailable):
            render_template(fixtures_dir / "happy" / "principals-groups.j2", ["alice"], lookup=lookup)

    def test_unknown_user(self, fixtures_dir, fake_identity):
        with pytest.raises(UserNotFound):
            render_template(
                fixtures_dir / "happy" / "principals-groups.j2", ["mallory"], lookup=fake_identity
            )

    def test_connection_endpoints(self, write_template, fake_identity):
        path = write_template(
            "---\n"
            "sshd_command:\n"
            "  version: 0.3.0\n"
            "  command: keys\n"
            "  tokens: '%C %u'\n"
            "---\n"
            "{{ user.name }} from {{ client }} to {{ server }}\n"
        )

        output = render_template(path, ["192.0.2.1 40000 192.0.2.2 22", "alice"], lookup=fake_identity)

        assert output == "alice from 192.0.2.1:40000 to 192.0.2.2:22\n"


class TestValidateTemplate:

    def test_validate_needs_no_arguments_or_lookups(self, fixtures_dir, monkeypatch):
        """Validation never resolves identity even with hostname/complete_user set."""
        def fail(*args, **kwargs):
            raise AssertionError("identity lookup during validation")

        monkeypatch.setattr("sshd_command.identity.SystemIdentity.lookup_hostname", fail)
        monkeypatch.setattr("sshd_command.identity.SystemIdentity.lookup_user", fail)

        front_matter = validate_template(fixtures_dir / "happy" / "principals-groups.j2")

        assert front_matter.command is Command.PRINCIPALS
        assert front_matter.complete_user is True

    def test_validate_ignores_body_errors(self, fixtures_dir):
        validate_template(fixtures_dir / "sad" / "missing-context.j2")

    @pytest.mark.parametrize("name,error", [
        ("unsupported-token.j2", UnsupportedToken),
        ("missing-token-complete-user.j2", MissingIdentitySource),
        ("missing-end-separator.j2", MalformedFrontMatter),
        ("too-new.j2", VersionTooNew),
    ])
    def test_invalid_templates(self, fixtures_dir, name, error):
        with pytest.raises(error):
            validate_template(fixtures_dir / "sad" / name)


class TestCheckTemplate:

    def test_check_valid_template(self, fixtures_dir, make_identity):
        lookup = make_identity(users=[UserEntry(uid=os.getuid(), name="runner", gid=0)])

        check_template(fixtures_dir / "happy" / "principals.j2", lookup=lookup)

    def test_check_catches_undefined_variable(self, fixtures_dir, make_identity):
        with pytest.raises(RenderError) as exc_info:
            check_template(fixtures_dir / "sad" / "missing-context.j2", lookup=make_identity())

        assert "doest_not_exist" in str(exc_info.value)

    def test_check_completes_current_user(self, fixtures_dir, make_identity):
        lookup = make_identity(
            users=[UserEntry(uid=os.getuid(), name="runner", gid=0)],
            groups={"runner": []},
        )

        check_template(fixtures_dir / "happy" / "principals-groups.j2", lookup=lookup)

        assert ("groups", "runner", 0) in lookup.calls
