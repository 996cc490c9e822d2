"""Restore-time item actions."""

from velero_cos.restore.item_action import ResourceSelector, RestoreItemAction

__all__ = ["ResourceSelector", "RestoreItemAction"]
