"""ACL models, validation and service."""

from access_control.acl.models import Acl, GroupPermission, SaveKind
from access_control.acl.validation import validate_acl_save

__all__ = ["Acl", "GroupPermission", "SaveKind", "validate_acl_save"]
