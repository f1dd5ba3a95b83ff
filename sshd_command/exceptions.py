"""sshd-command exceptions."""

from typing import Any, Optional


class SshdCommandError(Exception):
    """Base class for every error that aborts an invocation.

    Each error carries the exit code the CLI returns, so the command handler
    can map any failure to a status without inspecting its type.
    """

    exit_code = 1


class TemplateValidationError(SshdCommandError):
    """The template (or the arguments sshd passed for it) is unusable."""

    exit_code = 2


class TemplateRuntimeError(SshdCommandError):
    """A valid template could not be rendered on this host."""

    exit_code = 1


# Front matter and schema

class MalformedFrontMatter(TemplateValidationError):
    """Delimiter lines are missing or a segment is empty."""


class SchemaError(TemplateValidationError):
    """Required front matter field missing or of the wrong shape."""

    def __init__(self, field: str, reason: str):
        self.field = field
        self.reason = reason
        super().__init__(f"invalid front matter field '{field}': {reason}")


class VersionTooNew(TemplateValidationError):
    """Template requires a newer sshd-command than the one running."""

    def __init__(self, required: Any, running: Any):
        self.required = required
        self.running = running
        super().__init__(
            f"template requires sshd-command version {required}, "
            f"but you are running {running}"
        )


class UnknownToken(TemplateValidationError):
    """Token symbol outside the supported sshd vocabulary."""

    def __init__(self, name: str):
        self.name = name
        super().__init__(
            f"unknown token '{name}', see sshd_config(5) for valid tokens"
        )


class UnsupportedToken(TemplateValidationError):
    """Token sshd never expands for the declared command option."""

    def __init__(self, command: Any, token: Any):
        self.command = command
        self.token = token
        super().__init__(f"{token} is not a valid token for {command}")


class MissingIdentitySource(TemplateValidationError):
    def __init__(self):
        super().__init__("`%U` or `%u` token required for `complete_user: true`")


# Token binding

class TokenCountMismatch(TemplateValidationError):
    """Positional arguments do not line up with the declared tokens."""

    def __init__(self, expected: int, got: int):
        self.expected = expected
        self.got = got
        super().__init__(
            f"template declares {expected} token(s) but {got} argument(s) were given"
        )


class InvalidTokenArgument(TemplateValidationError):
    def __init__(self, token: Any, value: str, reason: Optional[str] = None):
        self.token = token
        self.value = value
        message = f"token {token} has invalid argument: {value!r}"
        if reason:
            message += f" ({reason})"
        super().__init__(message)


# I/O

class TemplateNotFound(TemplateRuntimeError):
    def __init__(self, path: Any):
        self.path = path
        super().__init__(f"No such file or directory: {path}")


class TemplateReadError(TemplateRuntimeError):
    def __init__(self, path: Any, reason: str):
        self.path = path
        self.reason = reason
        super().__init__(f"Failed to read template {path}: {reason}")


# Identity resolution

class HostnameUnavailable(TemplateRuntimeError):
    def __init__(self, reason: str):
        self.reason = reason
        super().__init__(f"Failed to get hostname: {reason}")


class UserNotFound(TemplateRuntimeError):
    def __init__(self, identifier: Any):
        self.identifier = identifier
        super().__init__(f"user {identifier!r} does not exist")


class GroupLookupFailed(TemplateRuntimeError):
    def __init__(self, identifier: Any, reason: str = ""):
        self.identifier = identifier
        self.reason = reason
        message = f"failed to look up groups of user {identifier!r}"
        if reason:
            message += f": {reason}"
        super().__init__(message)


# Rendering

class RenderError(TemplateRuntimeError):
    """Raised when the template body fails to render."""

    def __init__(self, reason: str):
        self.reason = reason
        super().__init__(f"template render failed: {reason}")
