"""
Booking decision pipeline.

Each stage lives in its own subpackage (scoring, approval, routing,
reminders) and is a pure function of the snapshot it is given.
"""
