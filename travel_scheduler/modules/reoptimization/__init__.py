"""modules/reoptimization — Real-time reshuffling of a scheduled day."""

from travel_scheduler.modules.reoptimization.flexibility import ActivityFlexibility, activity_flexibility
from travel_scheduler.modules.reoptimization.trigger_detector import (
    create_delay_trigger, create_trigger_from_user_input, create_user_state_trigger,
    parse_user_message,
)
from travel_scheduler.modules.reoptimization.impact_analyzer import ImpactAnalyzer
from travel_scheduler.modules.reoptimization.strategy_selector import StrategySelector
from travel_scheduler.modules.reoptimization.schedule_mutator import MutationResult, ScheduleMutator
from travel_scheduler.modules.reoptimization.multi_day import MultiDayReshuffler
from travel_scheduler.modules.reoptimization.undo_ledger import UndoLedger
from travel_scheduler.modules.reoptimization.reshuffling_service import (
    MultiDayReshufflingService, ReshufflingService,
)

__all__ = [
    "ActivityFlexibility",
    "activity_flexibility",
    "create_delay_trigger",
    "create_trigger_from_user_input",
    "create_user_state_trigger",
    "parse_user_message",
    "ImpactAnalyzer",
    "StrategySelector",
    "MutationResult",
    "ScheduleMutator",
    "MultiDayReshuffler",
    "UndoLedger",
    "ReshufflingService",
    "MultiDayReshufflingService",
]
