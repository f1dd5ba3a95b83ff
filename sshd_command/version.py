"""Version of the running sshd-command, compared against template requirements."""

__version__ = "0.3.0"
