"""License lookup and classification."""

from .detector import LicenseDetector

__all__ = ["LicenseDetector"]
