"""Battle engine module - stat formulas, battle state machine and action log."""

from .action_log import ActionLog, ActionLogRecord
from .battle import BattleEngine, calculate_attack_damage, calculate_attack_points, create_snapshot
from .classes import CLASS_PROFILES, ClassProfile, get_class_profile
from .events import ArenaEvent, EventBus, EventType
from .randomness import EntropyRandomSource, RandomSource, SeededRandomSource
from .registry import ActiveBattleIndex, CharacterRegistry
from .scheduler import TimeoutWatcher
from .stats import CombatProfile, EffectiveStats, compute_combat_profile, compute_effective_stat
from .types import (
    ActionKind,
    AttackKind,
    AttackOutcome,
    Battle,
    BattleOrigin,
    BattleSnapshot,
    BattleState,
    CharacterStats,
    EquipmentBonus,
    TurnOutcome,
    TurnState,
)

__all__ = [
    "ActionLog",
    "ActionLogRecord",
    "BattleEngine",
    "calculate_attack_damage",
    "calculate_attack_points",
    "create_snapshot",
    "CLASS_PROFILES",
    "ClassProfile",
    "get_class_profile",
    "ArenaEvent",
    "EventBus",
    "EventType",
    "RandomSource",
    "EntropyRandomSource",
    "SeededRandomSource",
    "ActiveBattleIndex",
    "CharacterRegistry",
    "TimeoutWatcher",
    "CombatProfile",
    "EffectiveStats",
    "compute_combat_profile",
    "compute_effective_stat",
    "ActionKind",
    "AttackKind",
    "AttackOutcome",
    "Battle",
    "BattleOrigin",
    "BattleSnapshot",
    "BattleState",
    "CharacterStats",
    "EquipmentBonus",
    "TurnOutcome",
    "TurnState",
]
