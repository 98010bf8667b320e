"""Type definitions for the battle engine."""

from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum

from ..db.models.enums import CharacterClass
from ..errors import ValidationError
from .limits import MAX_STAT_VALUE


class BattleState(str, Enum):
    """Lifecycle of a battle."""

    INACTIVE = "inactive"
    WAITING_FOR_OPPONENT = "waiting_for_opponent"  # Unused: battles are created fully paired
    IN_PROGRESS = "in_progress"
    COMPLETED = "completed"  # A winner was decided
    CANCELED = "canceled"  # Ended without a winner

    @property
    def is_terminal(self) -> bool:
        return self in (BattleState.COMPLETED, BattleState.CANCELED)


class TurnState(str, Enum):
    """Turn sub-state of an in-progress battle."""

    NOT_STARTED = "not_started"
    PLAYER1_TURN = "player1_turn"
    PLAYER2_TURN = "player2_turn"
    TURN_COMPLETED = "turn_completed"  # Both sides ended the round


class AttackKind(str, Enum):
    """Attack kinds a player can spend points on."""

    NORMAL = "normal"
    SPECIAL1 = "special1"
    SPECIAL2 = "special2"


class ActionKind(str, Enum):
    """Kinds of records written to the action log."""

    NORMAL = "normal"
    SPECIAL1 = "special1"
    SPECIAL2 = "special2"
    END_TURN = "end_turn"
    FORFEIT = "forfeit"
    TIMEOUT = "timeout"


class BattleOrigin(str, Enum):
    """How the battle was created."""

    QUEUE = "queue"
    CHALLENGE = "challenge"


@dataclass(frozen=True)
class AttackSpec:
    """Cost and damage multiplier of one attack kind."""

    cost: int
    multiplier: int  # Percent


ATTACK_SPECS: dict[AttackKind, AttackSpec] = {
    AttackKind.NORMAL: AttackSpec(cost=2, multiplier=150),
    AttackKind.SPECIAL1: AttackSpec(cost=3, multiplier=200),
    AttackKind.SPECIAL2: AttackSpec(cost=4, multiplier=250),
}


@dataclass(frozen=True)
class EquipmentBonus:
    """Flat bonuses contributed by one equipped item."""

    attack_bonus: int = 0
    magic_bonus: int = 0
    defense_bonus: int = 0
    health_bonus: int = 0
    agility_bonus: int = 0


@dataclass(frozen=True)
class CharacterStats:
    """Read-only view of a character record as handed out by the registry."""

    character_id: int
    owner_id: int
    name: str
    character_class: CharacterClass
    strength: int = 0
    defense: int = 0
    agility: int = 0
    vitality: int = 0
    intelligence: int = 0
    magic_power: int = 0
    wins: int = 0
    losses: int = 0
    is_veteran: bool = False
    experience: int = 0
    stat_points: int = 0
    weapon: EquipmentBonus | None = None
    armor: EquipmentBonus | None = None

    def __post_init__(self) -> None:
        for name in ("strength", "defense", "agility", "vitality", "intelligence", "magic_power"):
            value = getattr(self, name)
            if not 0 <= value <= MAX_STAT_VALUE:
                raise ValidationError(f"{name} must be between 0 and {MAX_STAT_VALUE}, got {value}")
        if self.stat_points < 0:
            raise ValidationError("stat_points cannot be negative")


@dataclass
class BattleSnapshot:
    """Combat numbers for one side, frozen when the battle is created.

    Only current_health and forfeited change during the fight; everything
    else is never recomputed from live character state.
    """

    character_id: int
    max_health: int
    current_health: int
    attack_power: int
    defense_power: int
    dodge_chance: int
    intelligence: int
    forfeited: bool = False

    def is_alive(self) -> bool:
        """Check if this side still has health left."""
        return self.current_health > 0

    def apply_damage(self, amount: int) -> int:
        """Apply damage, never dropping below zero. Returns actual damage dealt."""
        actual = min(self.current_health, amount)
        self.current_health -= actual
        return actual


@dataclass
class Battle:
    """In-memory state of a single battle between two players."""

    battle_id: int
    player1_id: int
    player2_id: int
    character1_id: int
    character2_id: int
    snapshots: dict[int, BattleSnapshot]  # player_id -> snapshot
    started_at: datetime
    last_action_at: datetime
    origin: BattleOrigin = BattleOrigin.QUEUE
    state: BattleState = BattleState.INACTIVE
    turn_state: TurnState = TurnState.NOT_STARTED
    current_turn_player_id: int | None = None
    attack_points: dict[int, int] = field(default_factory=dict)
    turn_ended: dict[int, bool] = field(default_factory=dict)
    round_number: int = 1
    winner_id: int | None = None
    end_reason: str | None = None
    ended_at: datetime | None = None
    action_ids: list[int] = field(default_factory=list)
    paid_results: dict[int, bool] = field(default_factory=dict)  # character_id -> is_winner, as reported

    @property
    def player_ids(self) -> tuple[int, int]:
        return (self.player1_id, self.player2_id)

    def is_participant(self, player_id: int) -> bool:
        return player_id in (self.player1_id, self.player2_id)

    def opponent_of(self, player_id: int) -> int:
        """Get the other participant's player ID."""
        if player_id == self.player1_id:
            return self.player2_id
        if player_id == self.player2_id:
            return self.player1_id
        raise ValueError(f"Player {player_id} is not in battle {self.battle_id}")

    def set_current_turn(self, player_id: int) -> None:
        """Hand the turn to a player and keep turn_state in sync."""
        self.current_turn_player_id = player_id
        self.turn_state = TurnState.PLAYER1_TURN if player_id == self.player1_id else TurnState.PLAYER2_TURN


@dataclass
class AttackOutcome:
    """Result of a resolved attack."""

    battle_id: int
    attacker_id: int
    defender_id: int
    kind: AttackKind
    damage: int  # Computed damage (0 when dodged)
    damage_dealt: int  # Health actually removed
    critical: bool
    dodged: bool
    defender_health: int
    points_left: int
    battle_over: bool = False
    winner_id: int | None = None


@dataclass
class TurnOutcome:
    """Result of ending a turn."""

    battle_id: int
    player_id: int
    next_player_id: int
    new_round: bool
    round_number: int
    attack_points: dict[int, int] = field(default_factory=dict)
