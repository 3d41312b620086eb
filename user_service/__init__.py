"""Account identity and credential-lifecycle core."""

__version__ = "0.1.0"
