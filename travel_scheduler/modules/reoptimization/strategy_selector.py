"""
modules/reoptimization/strategy_selector.py
---------------------------------------------
Fixed decision table from (trigger, impact) to one ReshuffleStrategy.
Rows are evaluated in order; the first match wins.

  1. done_for_day | sick              -> emergency_reroute
  2. need_break                       -> skip_activity
  3. very_tired                       -> shorten_activity
  4. slight_tired                     -> compress_buffer
  5. closure                          -> replace_activity
  6. delay <= silent buffer           -> compress_buffer
  7. booking at_risk / will_miss      -> skip_activity if delay > 45 else shorten_activity
  8. delay <= 15                      -> compress_buffer
     delay <= 30                      -> shorten_activity
     delay <= 60                      -> skip_activity
     rest_of_day / multi_day cascade  -> emergency_reroute
     otherwise                        -> skip_activity
"""

from __future__ import annotations
import logging

from travel_scheduler.schemas.reshuffling import (
    CascadeLevel, ImpactAnalysis, ReshuffleStrategy, TriggerEvent, TriggerType, UserState,
)
from travel_scheduler.schemas.settings import ReshuffleConfig

logger = logging.getLogger(__name__)

BOOKING_SKIP_ABOVE_MINUTES = 45

_STATE_STRATEGY = {
    UserState.DONE_FOR_DAY: ReshuffleStrategy.EMERGENCY_REROUTE,
    UserState.SICK:         ReshuffleStrategy.EMERGENCY_REROUTE,
    UserState.NEED_BREAK:   ReshuffleStrategy.SKIP_ACTIVITY,
    UserState.VERY_TIRED:   ReshuffleStrategy.SHORTEN_ACTIVITY,
    UserState.SLIGHT_TIRED: ReshuffleStrategy.COMPRESS_BUFFER,
}


class StrategySelector:

    def __init__(self, config: ReshuffleConfig | None = None):
        self.config = config or ReshuffleConfig()

    def select(self, trigger: TriggerEvent, impact: ImpactAnalysis) -> ReshuffleStrategy:
        strategy = self._select(trigger, impact)
        logger.debug(
            "trigger %s (%s, delay %d, cascade %s) -> %s",
            trigger.id, trigger.type.value, impact.total_delay_minutes,
            impact.cascade_effect.value, strategy.value,
        )
        return strategy

    def _select(self, trigger: TriggerEvent, impact: ImpactAnalysis) -> ReshuffleStrategy:
        delay = impact.total_delay_minutes

        if trigger.type == TriggerType.USER_STATE and trigger.context.user_state in _STATE_STRATEGY:
            return _STATE_STRATEGY[trigger.context.user_state]

        if trigger.type == TriggerType.CLOSURE:
            return ReshuffleStrategy.REPLACE_ACTIVITY

        if delay <= self.config.thresholds.silent_buffer:
            return ReshuffleStrategy.COMPRESS_BUFFER

        if impact.has_critical_booking:
            if delay > BOOKING_SKIP_ABOVE_MINUTES:
                return ReshuffleStrategy.SKIP_ACTIVITY
            return ReshuffleStrategy.SHORTEN_ACTIVITY

        if delay <= 15:
            return ReshuffleStrategy.COMPRESS_BUFFER
        if delay <= 30:
            return ReshuffleStrategy.SHORTEN_ACTIVITY
        if delay <= 60:
            return ReshuffleStrategy.SKIP_ACTIVITY
        if impact.cascade_effect in (CascadeLevel.REST_OF_DAY, CascadeLevel.MULTI_DAY):
            return ReshuffleStrategy.EMERGENCY_REROUTE
        return ReshuffleStrategy.SKIP_ACTIVITY
