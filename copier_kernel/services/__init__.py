"""Service layer: the configured, reusable Copier facade."""

from copier_kernel.services.copier import Copier, PendingCopy

__all__ = ["Copier", "PendingCopy"]
