"""Configuration, file-based credentials, OAuth login and user/wiki commands for Backlog spaces."""

__version__ = "0.5.0"