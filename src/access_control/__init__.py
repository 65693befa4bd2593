"""Access control service for groups and ACLs."""

__version__ = "0.1.0"
