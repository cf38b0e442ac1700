"""
Booking decisions feature.

Scores incoming videography bookings, routes them through the approval
workflow, orders each day's approved shoots and schedules reminders.
The async orchestration lives in ``services``.
"""
