"""
Routing package.

Orders a service day's approved shoots to keep travel short.
"""

from .service import RouteOptimizer, waypoints_from_bookings

__all__ = ["RouteOptimizer", "waypoints_from_bookings"]
