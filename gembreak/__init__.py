"""GemBreak: chat backend with personas, invite-code registration and an admin API."""

__version__ = "1.0.0"
