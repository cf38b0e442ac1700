"""
Reminder package.

Computes reminder slots for approved shoots.
"""

from .service import ReminderScheduler, reminder_scheduler

__all__ = ["ReminderScheduler", "reminder_scheduler"]
