"""Homepage content sections."""

from apexauto.content.service import ContentService

__all__ = ["ContentService"]
