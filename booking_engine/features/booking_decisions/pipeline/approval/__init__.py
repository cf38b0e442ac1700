"""
Approval package.

Score thresholds and the booking lifecycle state machine.
"""

from .state_machine import TRANSITIONS, ApprovalDecider, approval_decider, stamp

__all__ = ["TRANSITIONS", "ApprovalDecider", "approval_decider", "stamp"]
