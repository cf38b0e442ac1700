"""
Route optimization for a single service day.

Nearest-neighbour construction followed by a bounded 2-opt pass over the
open path (no return leg to the first stop). This is a heuristic, not an
exact TSP solver.
"""

from __future__ import annotations

import math
import time
from collections.abc import Iterable, Sequence
from datetime import UTC, date, datetime, timedelta

import numpy as np

from booking_engine.config import Settings, settings as default_settings
from booking_engine.features.booking_decisions.domain.errors import InsufficientDataError
from booking_engine.features.booking_decisions.domain.models import (
    BookingRequest,
    Coordinates,
    RouteLeg,
    RouteOptimizationResult,
    StopTime,
    Waypoint,
    WaypointCluster,
)
from booking_engine.features.booking_decisions.repository.interfaces import (
    DistanceMatrixProvider,
)
from booking_engine.infrastructure.observability.logging import (
    get_logger,
    log_route_optimization,
)

from .geo import haversine_matrix, haversine_meters, meters_to_miles, travel_seconds

logger = get_logger(__name__)

# Improvements smaller than this are float noise, not shorter routes.
EPSILON = 1e-9


class RouteOptimizer:
    def __init__(
        self,
        config: Settings | None = None,
        distance_provider: DistanceMatrixProvider | None = None,
    ):
        self.config = config or default_settings
        self.distance_provider = distance_provider

    def optimize(
        self,
        waypoints: Iterable[Waypoint],
        service_date: date,
        now: datetime | None = None,
    ) -> RouteOptimizationResult:
        """
        Compute a visiting order for one day's stops.

        Args:
            waypoints: Stops in input order; the first geocoded one seeds the tour
            service_date: Day being planned
            now: computed_at timestamp (defaults to current UTC time)

        Returns:
            RouteOptimizationResult over the geocoded stops; stops without
            coordinates are listed in ``excluded`` instead of failing the batch
        """
        started = time.perf_counter()
        computed_at = now or datetime.now(UTC)
        stops, excluded = self._partition(waypoints)
        ids = [stop.booking_id for stop in stops]

        if len(stops) < 2:
            result = RouteOptimizationResult(
                date=service_date,
                optimized_order=tuple(ids),
                total_distance_meters=0.0,
                total_duration_seconds=0.0,
                computed_at=computed_at,
                excluded=tuple(excluded),
            )
            self._log(result, started)
            return result

        meters, seconds, source = self._matrices([stop.coordinates for stop in stops])

        baseline = list(range(len(stops)))
        tour = self._nearest_neighbor(meters, ids)
        tour, moves = self._two_opt(tour, meters)

        legs = tuple(
            RouteLeg(
                from_booking_id=ids[a],
                to_booking_id=ids[b],
                distance_meters=float(meters[a, b]),
                duration_seconds=float(seconds[a, b]),
            )
            for a, b in zip(tour, tour[1:])
        )
        result = RouteOptimizationResult(
            date=service_date,
            optimized_order=tuple(ids[i] for i in tour),
            total_distance_meters=sum(leg.distance_meters for leg in legs),
            total_duration_seconds=sum(leg.duration_seconds for leg in legs),
            computed_at=computed_at,
            excluded=tuple(excluded),
            legs=legs,
            baseline_distance_meters=self.path_length(baseline, meters),
            baseline_duration_seconds=self.path_length(baseline, seconds),
            distance_source=source,
        )
        logger.debug("2-opt finished", date=service_date.isoformat(), improving_moves=moves)
        self._log(result, started)
        return result

    @staticmethod
    def _partition(
        waypoints: Iterable[Waypoint],
    ) -> tuple[list[Waypoint], list[InsufficientDataError]]:
        stops: list[Waypoint] = []
        excluded: list[InsufficientDataError] = []
        seen: set[str] = set()
        for waypoint in waypoints:
            if waypoint.booking_id in seen:
                continue
            seen.add(waypoint.booking_id)
            if waypoint.coordinates is None:
                excluded.append(InsufficientDataError(waypoint.booking_id, "coordinates"))
            else:
                stops.append(waypoint)
        return stops, excluded

    def _matrices(
        self, points: Sequence[Coordinates]
    ) -> tuple[np.ndarray, np.ndarray, str]:
        """Distance (m) and duration (s) matrices, provider first, haversine fallback."""
        if self.distance_provider is not None:
            try:
                meters, seconds = self.distance_provider.matrix(points)
                meters = np.asarray(meters, dtype=float)
                seconds = np.asarray(seconds, dtype=float)
                if meters.shape != (len(points), len(points)) or seconds.shape != meters.shape:
                    raise ValueError(f"Provider returned matrix of shape {meters.shape}")
                # 2-opt reverses segments, so both directions must cost the same.
                return (meters + meters.T) / 2, (seconds + seconds.T) / 2, "provider"
            except Exception as e:
                logger.warning("Distance provider failed, falling back to haversine", error=str(e))

        meters = haversine_matrix(points)
        return meters, travel_seconds(meters, self.config.URBAN_MINUTES_PER_MILE), "haversine"

    @staticmethod
    def _nearest_neighbor(distances: np.ndarray, ids: Sequence[str]) -> list[int]:
        """Greedy tour from the first stop; equal distances go to the lower booking id."""
        tour = [0]
        remaining = set(range(1, len(ids)))
        while remaining:
            current = tour[-1]
            nearest = min(remaining, key=lambda j: (round(float(distances[current, j]), 6), ids[j]))
            tour.append(nearest)
            remaining.remove(nearest)
        return tour

    def _two_opt(self, tour: list[int], distances: np.ndarray) -> tuple[list[int], int]:
        """Reverse segments while that strictly shortens the path, up to the iteration cap."""
        best = list(tour)
        n = len(best)
        moves = 0
        improved = True
        while improved and moves < self.config.TWO_OPT_MAX_ITERATIONS:
            improved = False
            for i in range(n - 1):
                for j in range(i + 1, n):
                    if self._reversal_delta(best, distances, i, j) < -EPSILON:
                        best[i : j + 1] = best[i : j + 1][::-1]
                        moves += 1
                        improved = True
                        break
                if improved:
                    break
        return best, moves

    @staticmethod
    def _reversal_delta(tour: list[int], distances: np.ndarray, i: int, j: int) -> float:
        """Change in path length from reversing tour[i..j] (symmetric costs)."""
        before = after = 0.0
        if i > 0:
            before += distances[tour[i - 1], tour[i]]
            after += distances[tour[i - 1], tour[j]]
        if j < len(tour) - 1:
            before += distances[tour[j], tour[j + 1]]
            after += distances[tour[i], tour[j + 1]]
        return float(after - before)

    @staticmethod
    def path_length(tour: Sequence[int], costs: np.ndarray) -> float:
        return float(sum(costs[a, b] for a, b in zip(tour, tour[1:])))

    def cluster_waypoints(
        self, waypoints: Iterable[Waypoint], threshold_miles: float | None = None
    ) -> list[WaypointCluster]:
        """Greedy geographic grouping: each unclustered stop collects later stops within range."""
        threshold = (
            threshold_miles if threshold_miles is not None else self.config.CLUSTER_THRESHOLD_MILES
        )
        stops, _ = self._partition(waypoints)
        clusters: list[WaypointCluster] = []
        processed: set[int] = set()

        for i, anchor in enumerate(stops):
            if i in processed:
                continue
            processed.add(i)
            members = [anchor]
            for j in range(i + 1, len(stops)):
                if j in processed:
                    continue
                distance = meters_to_miles(
                    haversine_meters(anchor.coordinates, stops[j].coordinates)
                )
                if distance <= threshold:
                    members.append(stops[j])
                    processed.add(j)

            center = Coordinates(
                lat=sum(m.coordinates.lat for m in members) / len(members),
                lng=sum(m.coordinates.lng for m in members) / len(members),
            )
            radius = 0.0
            if len(members) > 1:
                radius = max(
                    meters_to_miles(haversine_meters(center, m.coordinates)) for m in members
                )
            clusters.append(
                WaypointCluster(
                    id=len(clusters) + 1,
                    booking_ids=tuple(m.booking_id for m in members),
                    center=center,
                    radius_miles=radius,
                )
            )
        return clusters

    def suggest_start_times(
        self,
        result: RouteOptimizationResult,
        waypoints: Iterable[Waypoint],
        day_start: str | None = None,
    ) -> list[StopTime]:
        """Back-to-back timetable for the optimized order, starting at the day start."""
        by_id = {w.booking_id: w for w in waypoints}
        hours, minutes = (int(part) for part in (day_start or self.config.DAY_START_TIME).split(":"))
        cursor = datetime.combine(result.date, datetime.min.time()).replace(
            hour=hours, minute=minutes
        )
        travel_by_target = {leg.to_booking_id: leg.duration_seconds for leg in result.legs}

        schedule: list[StopTime] = []
        for index, booking_id in enumerate(result.optimized_order):
            travel = 0
            if index > 0:
                travel = math.ceil(travel_by_target.get(booking_id, 0.0) / 60)
            start = cursor + timedelta(minutes=travel)
            end = start + timedelta(minutes=by_id[booking_id].duration_minutes)
            schedule.append(
                StopTime(
                    booking_id=booking_id,
                    start_at=start,
                    end_at=end,
                    travel_minutes_before=travel,
                )
            )
            cursor = end
        return schedule

    @staticmethod
    def _log(result: RouteOptimizationResult, started: float) -> None:
        log_route_optimization(
            date=result.date.isoformat(),
            stops=len(result.optimized_order),
            excluded=len(result.excluded),
            distance_meters=result.total_distance_meters,
            distance_saved_meters=result.distance_saved_meters,
            duration_ms=round((time.perf_counter() - started) * 1000, 2),
        )


def waypoints_from_bookings(
    bookings: Iterable[BookingRequest], default_minutes: int = 90
) -> list[Waypoint]:
    """Waypoints in booking order; scheduled time first, then id, for a stable seed."""
    ordered = sorted(bookings, key=lambda b: (b.scheduled_time or "99:99", b.id))
    return [Waypoint.from_booking(b, default_minutes) for b in ordered]
