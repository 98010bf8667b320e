"""Battle engine - owns the battle state machine from creation to payout."""

import asyncio
import copy
import itertools
import logging
from collections.abc import AsyncIterator, Callable
from contextlib import asynccontextmanager
from datetime import UTC, datetime, timedelta
from typing import Any

from ..errors import AuthorizationError, ResourceNotFoundError, StateError, ValidationError
from .action_log import ActionLog
from .events import ArenaEvent, EventBus, EventType
from .limits import MAX_STAT_VALUE
from .randomness import EntropyRandomSource, RandomSource
from .registry import ActiveBattleIndex, CharacterRegistry
from .stats import compute_combat_profile
from .types import (
    ATTACK_SPECS,
    ActionKind,
    AttackKind,
    AttackOutcome,
    AttackSpec,
    Battle,
    BattleOrigin,
    BattleSnapshot,
    BattleState,
    CharacterStats,
    TurnOutcome,
    TurnState,
)

logger = logging.getLogger(__name__)

# Progression payout
WIN_EXPERIENCE = 100
LOSS_EXPERIENCE = WIN_EXPERIENCE // 2
FORFEIT_LOSS_EXPERIENCE = WIN_EXPERIENCE

# Attack points per round: min(4 + seed % 15 + int * 4 // 255, 13)
BASE_ATTACK_POINTS = 4
ATTACK_POINT_SPREAD = 15
INTELLIGENCE_POINT_BONUS = 4
MAX_ATTACK_POINTS = 13

# Damage resolution
MAX_DEFENSE_REDUCTION = 80
BATTLE_DAMAGE_SCALE = 150
BASE_BATTLE_CRIT_CHANCE = 5
CRIT_INTELLIGENCE_DIVISOR = 10
MAX_BATTLE_CRIT_CHANCE = 30
BATTLE_CRIT_MULTIPLIER = 150
MIN_VARIANCE = 85
VARIANCE_SPREAD = 36  # 85..120 inclusive
MIN_DAMAGE = 1

DEFAULT_BATTLE_TIMEOUT = timedelta(days=1)
DEFAULT_TURN_TIMEOUT = timedelta(minutes=10)
DEFAULT_FINISHED_RETENTION = timedelta(days=1)

# End reasons
REASON_DEFEAT = "defeat"
REASON_FORFEIT = "forfeit"
REASON_TURN_TIMEOUT = "turn_timeout"
REASON_BATTLE_TIMEOUT = "battle_timeout"
REASON_ADMIN = "admin"


def utcnow() -> datetime:
    return datetime.now(UTC)


def create_snapshot(character: CharacterStats) -> BattleSnapshot:
    """Freeze a character's derived combat values for one battle."""
    profile = compute_combat_profile(character)
    return BattleSnapshot(
        character_id=character.character_id,
        max_health=profile.health,
        current_health=profile.health,
        attack_power=profile.damage,
        defense_power=profile.defense,
        dodge_chance=profile.dodge_chance,
        intelligence=min(profile.effective.intelligence, MAX_STAT_VALUE),
    )


def calculate_attack_points(intelligence: int, seed: int) -> int:
    """Attack points for one round, capped at MAX_ATTACK_POINTS."""
    bonus = intelligence * INTELLIGENCE_POINT_BONUS // MAX_STAT_VALUE
    points = BASE_ATTACK_POINTS + seed % ATTACK_POINT_SPREAD + bonus
    return min(points, MAX_ATTACK_POINTS)


def calculate_attack_damage(
    attacker: BattleSnapshot,
    defender: BattleSnapshot,
    spec: AttackSpec,
    crit_seed: int,
    variance_seed: int,
    dodge_seed: int,
) -> tuple[int, bool, bool]:
    """Resolve one attack's damage.

    Order: defense reduction -> kind multiplier -> flat scale-up -> crit ->
    arena variance -> minimum of 1 -> dodge (zeroes the result).

    Returns:
        (damage, critical, dodged)
    """
    reduction = min(defender.defense_power * 100 // (attacker.attack_power + 1) // 2, MAX_DEFENSE_REDUCTION)
    damage = attacker.attack_power * (100 - reduction) // 100
    damage = damage * spec.multiplier // 100
    damage = damage * BATTLE_DAMAGE_SCALE // 100

    crit_chance = min(
        BASE_BATTLE_CRIT_CHANCE + attacker.intelligence // CRIT_INTELLIGENCE_DIVISOR,
        MAX_BATTLE_CRIT_CHANCE,
    )
    critical = crit_seed % 100 < crit_chance
    if critical:
        damage = damage * BATTLE_CRIT_MULTIPLIER // 100

    variance = MIN_VARIANCE + variance_seed % VARIANCE_SPREAD
    damage = max(damage * variance // 100, MIN_DAMAGE)

    dodged = dodge_seed % 100 < defender.dodge_chance
    if dodged:
        damage = 0

    return damage, critical, dodged


class BattleEngine:
    """Owns every battle and serializes mutations per battle.

    Each battle has its own asyncio.Lock; validation, registry payout and
    state changes of one call all happen under it. Events are published
    after the lock is released.
    """

    def __init__(
        self,
        registry: CharacterRegistry,
        *,
        operator_id: int | None = None,
        rng: RandomSource | None = None,
        events: EventBus | None = None,
        action_log: ActionLog | None = None,
        clock: Callable[[], datetime] | None = None,
        battle_timeout: timedelta = DEFAULT_BATTLE_TIMEOUT,
        turn_timeout: timedelta = DEFAULT_TURN_TIMEOUT,
        finished_retention: timedelta = DEFAULT_FINISHED_RETENTION,
    ) -> None:
        self.registry = registry
        self.operator_id = operator_id
        self.rng = rng or EntropyRandomSource()
        self.events = events or EventBus()
        self.action_log = action_log or ActionLog()
        self.clock = clock or utcnow
        self.battle_timeout = battle_timeout
        self.turn_timeout = turn_timeout
        self.finished_retention = finished_retention
        self.active_battles = ActiveBattleIndex()
        self._battles: dict[int, Battle] = {}
        self._locks: dict[int, asyncio.Lock] = {}
        self._ids = itertools.count(1)

    # ------------------------------------------------------------------
    # Creation
    # ------------------------------------------------------------------

    async def create_battle(
        self,
        player1_id: int,
        character1_id: int,
        player2_id: int,
        character2_id: int,
        origin: BattleOrigin = BattleOrigin.QUEUE,
    ) -> Battle:
        """Create and start a battle between two players.

        Args:
            player1_id: First player (wins intelligence ties for first turn)
            character1_id: Character fielded by player 1
            player2_id: Second player
            character2_id: Character fielded by player 2
            origin: Whether the battle came from the queue or a challenge

        Returns:
            Copy of the created battle
        """
        if player1_id == player2_id:
            raise ValidationError("A player cannot battle themselves")
        for pid in (player1_id, player2_id):
            if pid in self.active_battles:
                raise StateError(f"Player {pid} is already in an active battle")

        # Stats are read once here and frozen for the whole fight
        snapshot1 = create_snapshot(await self.registry.get_character(character1_id))
        snapshot2 = create_snapshot(await self.registry.get_character(character2_id))

        battle_id = next(self._ids)
        # Re-checked atomically: another battle may have claimed a player during the awaits above
        self.active_battles.claim(battle_id, player1_id, player2_id)

        now = self.clock()
        battle = Battle(
            battle_id=battle_id,
            player1_id=player1_id,
            player2_id=player2_id,
            character1_id=character1_id,
            character2_id=character2_id,
            snapshots={player1_id: snapshot1, player2_id: snapshot2},
            started_at=now,
            last_action_at=now,
            origin=origin,
            state=BattleState.IN_PROGRESS,
            turn_ended={player1_id: False, player2_id: False},
        )
        battle.attack_points = {
            player1_id: self._draw_attack_points(snapshot1),
            player2_id: self._draw_attack_points(snapshot2),
        }
        first = player1_id if snapshot1.intelligence >= snapshot2.intelligence else player2_id
        battle.set_current_turn(first)

        self._battles[battle_id] = battle
        self._locks[battle_id] = asyncio.Lock()

        logger.info(
            f"Battle {battle_id} started: player {player1_id} (char {character1_id}) "
            f"vs player {player2_id} (char {character2_id}), origin={origin.value}"
        )

        await self.events.publish_all(
            [
                ArenaEvent(
                    EventType.BATTLE_STARTED,
                    battle_id=battle_id,
                    player_ids=battle.player_ids,
                    data={
                        "origin": origin.value,
                        "characters": {player1_id: character1_id, player2_id: character2_id},
                        "health": {player1_id: snapshot1.max_health, player2_id: snapshot2.max_health},
                    },
                    timestamp=now,
                ),
                self._turn_started_event(battle, now),
            ]
        )
        return copy.deepcopy(battle)

    # ------------------------------------------------------------------
    # Player actions
    # ------------------------------------------------------------------

    async def perform_attack(self, battle_id: int, player_id: int, kind: AttackKind | str) -> AttackOutcome:
        """Spend attack points on an attack against the opponent.

        Args:
            battle_id: ID of the battle
            player_id: Attacking player (must hold the turn)
            kind: normal / special1 / special2

        Returns:
            AttackOutcome describing damage and whether the battle ended
        """
        events: list[ArenaEvent] = []
        async with self._locked(battle_id) as battle:
            self._require_turn(battle, player_id)
            attack_kind = self._parse_attack_kind(kind)
            spec = ATTACK_SPECS[attack_kind]

            points = battle.attack_points[player_id]
            if points < spec.cost:
                raise ValidationError(
                    f"Not enough attack points for {attack_kind.value}: need {spec.cost}, have {points}"
                )

            defender_id = battle.opponent_of(player_id)
            attacker = battle.snapshots[player_id]
            defender = battle.snapshots[defender_id]

            damage, critical, dodged = calculate_attack_damage(
                attacker,
                defender,
                spec,
                crit_seed=self.rng.next_seed(),
                variance_seed=self.rng.next_seed(),
                dodge_seed=self.rng.next_seed(),
            )

            experience: dict[int, int] = {}
            if damage >= defender.current_health:
                # Payout first: a failing registry must leave the battle untouched
                experience = await self._pay_out(battle, winner_id=player_id, loser_forfeited=False)

            now = self.clock()
            battle.attack_points[player_id] = points - spec.cost
            dealt = defender.apply_damage(damage)
            battle.last_action_at = now
            self._log(
                battle,
                player_id,
                ActionKind(attack_kind.value),
                now,
                value=dealt,
                critical=critical,
                dodged=dodged,
            )
            events.append(
                ArenaEvent(
                    EventType.ATTACK_PERFORMED,
                    battle_id=battle_id,
                    player_ids=battle.player_ids,
                    data={
                        "attacker_id": player_id,
                        "defender_id": defender_id,
                        "kind": attack_kind.value,
                        "damage": dealt,
                        "critical": critical,
                        "dodged": dodged,
                        "defender_health": defender.current_health,
                    },
                    timestamp=now,
                )
            )

            if not defender.is_alive():
                events.extend(self._complete(battle, player_id, REASON_DEFEAT, experience, now))
            elif not battle.turn_ended[defender_id]:
                battle.set_current_turn(defender_id)
                events.append(self._turn_started_event(battle, now))
            # Otherwise the defender already ended this round: the attacker keeps the turn

            outcome = AttackOutcome(
                battle_id=battle_id,
                attacker_id=player_id,
                defender_id=defender_id,
                kind=attack_kind,
                damage=damage,
                damage_dealt=dealt,
                critical=critical,
                dodged=dodged,
                defender_health=defender.current_health,
                points_left=battle.attack_points[player_id],
                battle_over=battle.state.is_terminal,
                winner_id=battle.winner_id,
            )

        await self.events.publish_all(events)
        return outcome

    async def end_turn(self, battle_id: int, player_id: int) -> TurnOutcome:
        """End the caller's turn for this round.

        If the opponent hasn't ended yet, the turn passes to them. If both
        sides have now ended, a new round begins: the round counter
        increments, both attack pools are redrawn and the turn goes to the
        opponent of the caller.
        """
        events: list[ArenaEvent] = []
        async with self._locked(battle_id) as battle:
            self._require_turn(battle, player_id)

            now = self.clock()
            opponent_id = battle.opponent_of(player_id)
            battle.turn_ended[player_id] = True
            battle.last_action_at = now
            self._log(battle, player_id, ActionKind.END_TURN, now)

            new_round = battle.turn_ended[opponent_id]
            if new_round:
                # Only observable through the turn_ended event: the next round starts right away
                battle.turn_state = TurnState.TURN_COMPLETED
            events.append(
                ArenaEvent(
                    EventType.TURN_ENDED,
                    battle_id=battle_id,
                    player_ids=battle.player_ids,
                    data={
                        "player_id": player_id,
                        "round": battle.round_number,
                        "turn_state": battle.turn_state.value,
                    },
                    timestamp=now,
                )
            )

            if new_round:
                battle.round_number += 1
                for pid in battle.player_ids:
                    battle.turn_ended[pid] = False
                    battle.attack_points[pid] = self._draw_attack_points(battle.snapshots[pid])

            battle.set_current_turn(opponent_id)
            events.append(self._turn_started_event(battle, now))

            outcome = TurnOutcome(
                battle_id=battle_id,
                player_id=player_id,
                next_player_id=opponent_id,
                new_round=new_round,
                round_number=battle.round_number,
                attack_points=dict(battle.attack_points),
            )

        await self.events.publish_all(events)
        return outcome

    async def forfeit(self, battle_id: int, player_id: int) -> Battle:
        """Give up the battle; the opponent wins."""
        async with self._locked(battle_id) as battle:
            self._require_in_progress(battle)
            self._require_participant(battle, player_id)

            winner_id = battle.opponent_of(player_id)
            experience = await self._pay_out(battle, winner_id=winner_id, loser_forfeited=True)

            now = self.clock()
            battle.snapshots[player_id].forfeited = True
            battle.last_action_at = now
            self._log(battle, player_id, ActionKind.FORFEIT, now)
            events = self._complete(battle, winner_id, REASON_FORFEIT, experience, now)
            result = copy.deepcopy(battle)

        await self.events.publish_all(events)
        return result

    # ------------------------------------------------------------------
    # Timeouts (poll-triggered)
    # ------------------------------------------------------------------

    async def check_battle_timeout(self, battle_id: int, now: datetime | None = None) -> bool:
        """Cancel the battle if nothing happened within the battle-wide window.

        Returns:
            True if the battle was canceled
        """
        events: list[ArenaEvent] = []
        async with self._locked(battle_id) as battle:
            self._require_in_progress(battle)
            now = now or self.clock()
            if now - battle.last_action_at <= self.battle_timeout:
                return False

            self._log(battle, battle.current_turn_player_id, ActionKind.TIMEOUT, now)
            events = self._cancel(battle, REASON_BATTLE_TIMEOUT, now)

        await self.events.publish_all(events)
        return True

    async def check_turn_timeout(self, battle_id: int, now: datetime | None = None) -> bool:
        """End the battle against the current-turn player if they stalled.

        The inactive player's snapshot is marked forfeited and the other
        player wins.

        Returns:
            True if the battle was ended
        """
        events: list[ArenaEvent] = []
        async with self._locked(battle_id) as battle:
            self._require_in_progress(battle)
            now = now or self.clock()
            if now - battle.last_action_at <= self.turn_timeout:
                return False

            inactive_id = battle.current_turn_player_id
            winner_id = battle.opponent_of(inactive_id)
            experience = await self._pay_out(battle, winner_id=winner_id, loser_forfeited=True)

            battle.snapshots[inactive_id].forfeited = True
            self._log(battle, inactive_id, ActionKind.TIMEOUT, now)
            events = self._complete(battle, winner_id, REASON_TURN_TIMEOUT, experience, now)

        await self.events.publish_all(events)
        return True

    async def sweep_timeouts(self, now: datetime | None = None) -> list[int]:
        """Run both timeout checks on every in-progress battle.

        Returns:
            IDs of the battles that were ended
        """
        ended: list[int] = []
        for battle_id in self.list_active_battles():
            try:
                if await self.check_battle_timeout(battle_id, now) or await self.check_turn_timeout(battle_id, now):
                    ended.append(battle_id)
            except StateError:
                # Finished by a player while we waited for its lock
                logger.debug(f"Battle {battle_id} ended before its timeout check ran")
        return ended

    def prune_finished_battles(self, now: datetime | None = None) -> list[int]:
        """Forget battles that ended more than finished_retention ago, with their action records.

        Returns:
            IDs of the pruned battles
        """
        now = now or self.clock()
        pruned = [
            battle_id
            for battle_id, battle in self._battles.items()
            if battle.ended_at is not None and now - battle.ended_at > self.finished_retention
        ]
        for battle_id in pruned:
            del self._battles[battle_id]
            self.action_log.discard_battle(battle_id)
        if pruned:
            logger.info(f"Pruned finished battles: {pruned}")
        return pruned

    # ------------------------------------------------------------------
    # Administration
    # ------------------------------------------------------------------

    def set_battle_timeout(self, caller_id: int, timeout: timedelta) -> None:
        self._require_operator(caller_id)
        if timeout <= timedelta(0):
            raise ValidationError("Battle timeout must be positive")
        self.battle_timeout = timeout
        logger.info(f"Battle timeout set to {timeout} by {caller_id}")

    def set_turn_timeout(self, caller_id: int, timeout: timedelta) -> None:
        self._require_operator(caller_id)
        if timeout <= timedelta(0):
            raise ValidationError("Turn timeout must be positive")
        self.turn_timeout = timeout
        logger.info(f"Turn timeout set to {timeout} by {caller_id}")

    def set_registry(self, caller_id: int, registry: CharacterRegistry) -> None:
        """Swap the character registry used for new battles and payouts."""
        self._require_operator(caller_id)
        self.registry = registry
        logger.info(f"Character registry replaced by {caller_id}")

    async def emergency_cancel(self, caller_id: int, battle_id: int, reason: str = "") -> Battle:
        """Cancel an in-progress battle without a winner or payout."""
        self._require_operator(caller_id)
        async with self._locked(battle_id) as battle:
            self._require_in_progress(battle)
            events = self._cancel(battle, f"{REASON_ADMIN}: {reason}" if reason else REASON_ADMIN, self.clock())
            result = copy.deepcopy(battle)

        await self.events.publish_all(events)
        return result

    # ------------------------------------------------------------------
    # Queries
    # ------------------------------------------------------------------

    def get_battle(self, battle_id: int) -> Battle:
        """Get a copy of a battle."""
        return copy.deepcopy(self._get(battle_id))

    def active_battle_id(self, player_id: int) -> int | None:
        return self.active_battles.get(player_id)

    def get_active_battle(self, player_id: int) -> Battle | None:
        """Get a copy of the battle a player is currently in."""
        battle_id = self.active_battles.get(player_id)
        return self.get_battle(battle_id) if battle_id is not None else None

    def list_active_battles(self) -> list[int]:
        return [bid for bid, b in self._battles.items() if b.state == BattleState.IN_PROGRESS]

    def get_battle_state(self, battle_id: int) -> dict[str, Any]:
        """Get the current state of a battle for display."""
        battle = self._get(battle_id)
        return {
            "battle_id": battle.battle_id,
            "state": battle.state.value,
            "turn_state": battle.turn_state.value,
            "round": battle.round_number,
            "current_turn_player_id": battle.current_turn_player_id,
            "winner_id": battle.winner_id,
            "end_reason": battle.end_reason,
            "participants": [
                {
                    "player_id": pid,
                    "character_id": battle.snapshots[pid].character_id,
                    "current_health": battle.snapshots[pid].current_health,
                    "max_health": battle.snapshots[pid].max_health,
                    "attack_points": battle.attack_points[pid],
                    "turn_ended": battle.turn_ended[pid],
                    "forfeited": battle.snapshots[pid].forfeited,
                }
                for pid in battle.player_ids
            ],
        }

    # ------------------------------------------------------------------
    # Internals
    # ------------------------------------------------------------------

    def _get(self, battle_id: int) -> Battle:
        battle = self._battles.get(battle_id)
        if battle is None:
            raise ResourceNotFoundError(f"Battle {battle_id} not found")
        return battle

    @asynccontextmanager
    async def _locked(self, battle_id: int) -> AsyncIterator[Battle]:
        battle = self._get(battle_id)
        lock = self._locks.get(battle_id)
        if lock is None:
            # Finished battles drop their lock
            self._require_in_progress(battle)
        async with lock:
            yield battle

    def _require_in_progress(self, battle: Battle) -> None:
        if battle.state != BattleState.IN_PROGRESS:
            raise StateError(f"Battle {battle.battle_id} is {battle.state.value}")

    def _require_participant(self, battle: Battle, player_id: int) -> None:
        if not battle.is_participant(player_id):
            raise AuthorizationError(f"Player {player_id} is not in battle {battle.battle_id}")

    def _require_turn(self, battle: Battle, player_id: int) -> None:
        self._require_in_progress(battle)
        self._require_participant(battle, player_id)
        if battle.turn_ended[player_id]:
            raise StateError("You already ended your turn this round")
        if battle.current_turn_player_id != player_id:
            raise AuthorizationError("It is not your turn")

    def _require_operator(self, caller_id: int) -> None:
        if self.operator_id is None or caller_id != self.operator_id:
            raise AuthorizationError("Only the arena operator can do that")

    @staticmethod
    def _parse_attack_kind(kind: AttackKind | str) -> AttackKind:
        try:
            return AttackKind(kind)
        except ValueError:
            raise ValidationError(f"Unknown attack kind: {kind}") from None

    def _draw_attack_points(self, snapshot: BattleSnapshot) -> int:
        return calculate_attack_points(snapshot.intelligence, self.rng.next_seed())

    def _log(
        self,
        battle: Battle,
        actor_id: int,
        kind: ActionKind,
        timestamp: datetime,
        value: int = 0,
        critical: bool = False,
        dodged: bool = False,
    ) -> None:
        record = self.action_log.append(
            battle_id=battle.battle_id,
            actor_id=actor_id,
            timestamp=timestamp,
            round_number=battle.round_number,
            kind=kind,
            value=value,
            critical=critical,
            dodged=dodged,
        )
        battle.action_ids.append(record.record_id)

    async def _pay_out(self, battle: Battle, winner_id: int, loser_forfeited: bool) -> dict[int, int]:
        """Report the result to the registry. Returns experience per player.

        Each character is reported at most once per battle. If the registry
        fails part-way, a retried call only reports the characters that were
        not recorded yet, and must settle the same winner.
        """
        loser_id = battle.opponent_of(winner_id)
        loser_experience = FORFEIT_LOSS_EXPERIENCE if loser_forfeited else LOSS_EXPERIENCE
        payouts = (
            (battle.snapshots[winner_id].character_id, True, WIN_EXPERIENCE),
            (battle.snapshots[loser_id].character_id, False, loser_experience),
        )

        for character_id, is_winner, _ in payouts:
            recorded = battle.paid_results.get(character_id)
            if recorded is not None and recorded != is_winner:
                raise StateError(
                    f"Battle {battle.battle_id} is already settling a different result; retry the original action"
                )

        for character_id, is_winner, experience in payouts:
            if character_id in battle.paid_results:
                logger.debug(f"Battle {battle.battle_id}: character {character_id} already paid, skipping")
                continue
            await self.registry.record_battle_result(character_id, is_winner, experience)
            battle.paid_results[character_id] = is_winner

        return {winner_id: WIN_EXPERIENCE, loser_id: loser_experience}

    def _complete(
        self, battle: Battle, winner_id: int, reason: str, experience: dict[int, int], now: datetime
    ) -> list[ArenaEvent]:
        battle.state = BattleState.COMPLETED
        battle.winner_id = winner_id
        self._finish(battle, reason, now)

        logger.info(f"Battle {battle.battle_id} completed: winner {winner_id} ({reason})")
        return [
            ArenaEvent(
                EventType.BATTLE_COMPLETED,
                battle_id=battle.battle_id,
                player_ids=battle.player_ids,
                data={
                    "winner_id": winner_id,
                    "loser_id": battle.opponent_of(winner_id),
                    "reason": reason,
                    "experience": experience,
                },
                timestamp=now,
            )
        ]

    def _cancel(self, battle: Battle, reason: str, now: datetime) -> list[ArenaEvent]:
        battle.state = BattleState.CANCELED
        self._finish(battle, reason, now)

        logger.info(f"Battle {battle.battle_id} canceled ({reason})")
        return [
            ArenaEvent(
                EventType.BATTLE_CANCELED,
                battle_id=battle.battle_id,
                player_ids=battle.player_ids,
                data={"reason": reason},
                timestamp=now,
            )
        ]

    def _finish(self, battle: Battle, reason: str, now: datetime) -> None:
        battle.end_reason = reason
        battle.ended_at = now
        self.active_battles.release(battle.battle_id, *battle.player_ids)
        # Callers still waiting hold their own reference and fail the in-progress check
        self._locks.pop(battle.battle_id, None)

    def _turn_started_event(self, battle: Battle, now: datetime) -> ArenaEvent:
        player_id = battle.current_turn_player_id
        return ArenaEvent(
            EventType.TURN_STARTED,
            battle_id=battle.battle_id,
            player_ids=battle.player_ids,
            data={
                "player_id": player_id,
                "attack_points": battle.attack_points[player_id],
                "round": battle.round_number,
            },
            timestamp=now,
        )
