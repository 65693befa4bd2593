"""Group models and service."""

from access_control.groups.models import Group
from access_control.groups.service import GroupService

__all__ = ["Group", "GroupService"]
