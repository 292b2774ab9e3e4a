"""
modules/planning/geo_optimizer.py
-----------------------------------
Greedy nearest-neighbour re-ordering of a day's activities to cut commute.

Only the activity-to-window assignment changes; slot windows (slot id, start)
stay where the allocator put them. Locked slots and meal slots are pinned and
never move. The pass is a no-op when:
  - two or fewer activities are movable, or
  - the movable activities sit in a single neighborhood, or
  - every movable activity is in its own neighborhood (nothing to cluster).
"""

from __future__ import annotations
from dataclasses import replace
import logging

from travel_scheduler.modules.tool_usage.distance_tool import DistanceTool
from travel_scheduler.schemas.schedule import ScheduledActivity

logger = logging.getLogger(__name__)

_UNKNOWN_NEIGHBORHOOD = "unknown"


def _neighborhood(slot: ScheduledActivity) -> str:
    return slot.activity.activity.neighborhood or _UNKNOWN_NEIGHBORHOOD


def is_pinned(slot: ScheduledActivity) -> bool:
    return slot.is_locked or slot.activity.activity.is_restaurant


class GeographicFlowOptimizer:

    def __init__(self, distance_tool: DistanceTool | None = None):
        self.distance_tool = distance_tool or DistanceTool()

    def optimize(self, slots: list[ScheduledActivity]) -> list[ScheduledActivity]:
        """
        Args:
            slots: Allocated day, chronological.

        Returns:
            New slot list with commute edges recomputed from scratch.
        """
        movable_idx = [i for i, s in enumerate(slots) if not is_pinned(s)]
        movable = [slots[i] for i in movable_idx]

        if len(movable) <= 2:
            return self.distance_tool.relink(slots)

        neighborhoods = {_neighborhood(s) for s in movable}
        if not 1 < len(neighborhoods) < len(movable):
            logger.debug("geo pass skipped: %d neighborhoods / %d movable", len(neighborhoods), len(movable))
            return self.distance_tool.relink(slots)

        order = self.greedy_order(movable)
        result = list(slots)
        for window_idx, content in zip(movable_idx, order):
            window = slots[window_idx]
            result[window_idx] = replace(
                content,
                slot_id=window.slot_id,
                scheduled_start=window.scheduled_start,
                actual_duration=min(content.activity.activity.recommended_duration, window.actual_duration),
            )

        logger.debug(
            "geo order: %s -> %s",
            [s.activity.activity.id for s in movable],
            [s.activity.activity.id for s in order],
        )
        return self.distance_tool.relink(result)

    def greedy_order(self, items: list[ScheduledActivity]) -> list[ScheduledActivity]:
        """
        Start from the first item; at each step take the first unused item in
        the current neighborhood, else the nearest unused one (ties -> pool order).
        """
        used: set[int] = set()
        ordered: list[ScheduledActivity] = []
        current = _neighborhood(items[0])

        for _ in range(len(items)):
            best_idx = -1
            best_dist = float("inf")
            for j, item in enumerate(items):
                if j in used:
                    continue
                if _neighborhood(item) == current or not ordered:
                    best_idx = j
                    break
                dist = self.distance_tool.distance_between(
                    ordered[-1].activity.activity, item.activity.activity,
                )
                if dist < best_dist:
                    best_dist = dist
                    best_idx = j

            used.add(best_idx)
            ordered.append(items[best_idx])
            current = _neighborhood(items[best_idx])

        return ordered
