"""Channel adapter registry.

Provides singleton access to the email channel. ``EMAIL_ADAPTER`` selects
the adapter: ``fake`` (default, records messages) or ``log`` (writes each
message to the application log).
"""

import os

from notifications.channel.email_port import EmailPort

_email_channel: EmailPort | None = None


def get_email_channel() -> EmailPort:
    """Return the configured email adapter (process-wide singleton)."""
    global _email_channel
    if _email_channel is None:
        adapter = os.environ.get("EMAIL_ADAPTER", "fake")
        if adapter == "fake":
            from notifications.channel.fake_email import FakeEmailAdapter

            _email_channel = FakeEmailAdapter()
        elif adapter == "log":
            from notifications.channel.fake_email import LoggingEmailAdapter

            _email_channel = LoggingEmailAdapter()
        else:
            raise ValueError(f"Unknown email adapter: {adapter}")
    return _email_channel


def set_email_channel(channel: EmailPort) -> None:
    global _email_channel
    _email_channel = channel


def reset_channels():
    """Reset channel singletons (useful for testing)."""
    global _email_channel
    _email_channel = None
