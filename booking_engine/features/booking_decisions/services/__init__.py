"""
Services for the booking decision feature.
"""

from .workflow_service import BookingWorkflowService

__all__ = ["BookingWorkflowService"]
