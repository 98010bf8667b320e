"""Tests for the battle engine state machine."""

import asyncio
from datetime import timedelta

import pytest
from conftest import ALICE, BOB, CAROL, DAVE, OPERATOR_ID, make_character

from card_arena.db.models import CharacterClass
from card_arena.engine.battle import (
    MAX_ATTACK_POINTS,
    calculate_attack_damage,
    calculate_attack_points,
    create_snapshot,
)
from card_arena.engine.types import ATTACK_SPECS, ActionKind, AttackKind, BattleOrigin, BattleState, TurnState
from card_arena.errors import AuthorizationError, ResourceNotFoundError, StateError, ValidationError

ALICE_CHAR = 10
BOB_CHAR = 20
CAROL_CHAR = 30


async def start(battle_engine, rng, *seeds):
    """Start ALICE vs BOB with optional scripted attack-point seeds."""
    rng.push(*seeds)
    return await battle_engine.create_battle(ALICE, ALICE_CHAR, BOB, BOB_CHAR)


class TestAttackPoints:
    """Tests for per-round attack point draws."""

    def test_base_draw(self):
        assert calculate_attack_points(0, 0) == 4
        assert calculate_attack_points(0, 5) == 9

    def test_intelligence_bonus(self):
        assert calculate_attack_points(255, 0) == 8
        assert calculate_attack_points(128, 0) == 6

    def test_capped_at_maximum(self):
        """No combination of seed and intelligence exceeds the cap."""
        for seed in range(30):
            for intelligence in (0, 100, 255):
                assert 4 <= calculate_attack_points(intelligence, seed) <= MAX_ATTACK_POINTS


class TestDamageResolution:
    """Tests for the pure attack damage function."""

    def setup_method(self):
        attacker = make_character(1, ALICE, strength=100)
        defender = make_character(2, BOB, defense=100)
        self.attacker = create_snapshot(attacker)
        self.defender = create_snapshot(defender)

    def test_snapshot_values(self):
        assert self.attacker.attack_power == 369
        assert self.attacker.max_health == 346
        assert self.defender.defense_power == 340
        assert self.defender.max_health == 100

    def test_normal_attack_arithmetic(self):
        """Reduction 45% -> 202, x150% kind -> 303, x150% scale -> 454, variance 100%."""
        damage, critical, dodged = calculate_attack_damage(
            self.attacker,
            self.defender,
            ATTACK_SPECS[AttackKind.NORMAL],
            crit_seed=99,
            variance_seed=15,
            dodge_seed=99,
        )
        assert (damage, critical, dodged) == (454, False, False)

    def test_critical_hit(self):
        damage, critical, _ = calculate_attack_damage(
            self.attacker,
            self.defender,
            ATTACK_SPECS[AttackKind.NORMAL],
            crit_seed=0,
            variance_seed=15,
            dodge_seed=99,
        )
        assert critical is True
        assert damage == 681

    def test_variance_bounds(self):
        spec = ATTACK_SPECS[AttackKind.NORMAL]
        low, _, _ = calculate_attack_damage(self.attacker, self.defender, spec, 99, 0, 99)
        high, _, _ = calculate_attack_damage(self.attacker, self.defender, spec, 99, 35, 99)
        assert low == 454 * 85 // 100
        assert high == 454 * 120 // 100

    def test_minimum_damage_is_one(self):
        """A zero-attack attacker hits the 80% reduction cap but still deals 1."""
        weakling = create_snapshot(make_character(3, ALICE))
        damage, _, _ = calculate_attack_damage(weakling, self.defender, ATTACK_SPECS[AttackKind.NORMAL], 99, 0, 99)
        assert weakling.attack_power == 0
        assert damage == 1

    def test_dodge_zeroes_damage(self):
        self.defender.dodge_chance = 50
        damage, _, dodged = calculate_attack_damage(
            self.attacker,
            self.defender,
            ATTACK_SPECS[AttackKind.SPECIAL2],
            crit_seed=0,
            variance_seed=35,
            dodge_seed=10,
        )
        assert dodged is True
        assert damage == 0


class TestBattleCreation:
    """Tests for create_battle."""

    async def test_creates_in_progress_battle(self, battle_engine, rng, recorder):
        battle = await start(battle_engine, rng, 5, 0)

        assert battle.state == BattleState.IN_PROGRESS
        assert battle.origin == BattleOrigin.QUEUE
        assert battle.attack_points == {ALICE: 9, BOB: 4}
        assert battle.current_turn_player_id == ALICE
        assert battle.turn_state == TurnState.PLAYER1_TURN
        assert battle.round_number == 1
        assert battle_engine.active_battle_id(ALICE) == battle.battle_id
        assert battle_engine.active_battle_id(BOB) == battle.battle_id
        assert recorder.types() == ["battle_started", "turn_started"]

    async def test_higher_intelligence_moves_first(self, battle_engine, registry):
        registry.add(make_character(21, BOB, intelligence=100, vitality=60))

        battle = await battle_engine.create_battle(ALICE, ALICE_CHAR, BOB, 21)

        assert battle.current_turn_player_id == BOB
        assert battle.turn_state == TurnState.PLAYER2_TURN

    async def test_cannot_battle_self(self, battle_engine):
        with pytest.raises(ValidationError):
            await battle_engine.create_battle(ALICE, ALICE_CHAR, ALICE, ALICE_CHAR)

    async def test_busy_player_rejected(self, battle_engine):
        await battle_engine.create_battle(ALICE, ALICE_CHAR, BOB, BOB_CHAR)

        with pytest.raises(StateError):
            await battle_engine.create_battle(CAROL, CAROL_CHAR, BOB, BOB_CHAR)
        assert battle_engine.active_battle_id(CAROL) is None

    async def test_unknown_character_claims_nobody(self, battle_engine):
        with pytest.raises(ResourceNotFoundError):
            await battle_engine.create_battle(ALICE, ALICE_CHAR, BOB, 12345)

        assert battle_engine.active_battle_id(ALICE) is None
        assert battle_engine.list_active_battles() == []

    async def test_returned_battle_is_a_copy(self, battle_engine):
        battle = await battle_engine.create_battle(ALICE, ALICE_CHAR, BOB, BOB_CHAR)
        battle.snapshots[BOB].current_health = 0

        assert battle_engine.get_battle(battle.battle_id).snapshots[BOB].current_health > 0


class TestPerformAttack:
    """Tests for attack validation and turn passing."""

    async def test_one_hit_defeat(self, battle_engine, registry, rng, recorder):
        """Brute with 369 attack against a 100 HP defender wins on the first normal attack."""
        registry.add(make_character(11, ALICE, strength=100))
        registry.add(make_character(21, BOB, defense=100))
        rng.push(5, 0)
        battle = await battle_engine.create_battle(ALICE, 11, BOB, 21)
        rng.push(99, 15, 99)

        outcome = await battle_engine.perform_attack(battle.battle_id, ALICE, "normal")

        assert outcome.damage == 454
        assert outcome.damage_dealt == 100
        assert outcome.defender_health == 0
        assert outcome.points_left == 7
        assert outcome.battle_over is True
        assert outcome.winner_id == ALICE

        final = battle_engine.get_battle(battle.battle_id)
        assert final.state == BattleState.COMPLETED
        assert final.end_reason == "defeat"
        # Ended on the same call: no turn switch to the defender
        assert final.current_turn_player_id == ALICE
        assert registry.results == [(11, True, 100), (21, False, 50)]
        assert battle_engine.active_battle_id(ALICE) is None
        assert battle_engine.active_battle_id(BOB) is None
        assert recorder.types()[-1] == "battle_completed"

    async def test_turn_passes_to_opponent(self, battle_engine, rng):
        battle = await start(battle_engine, rng)

        outcome = await battle_engine.perform_attack(battle.battle_id, ALICE, AttackKind.NORMAL)

        assert outcome.battle_over is False
        state = battle_engine.get_battle(battle.battle_id)
        assert state.current_turn_player_id == BOB
        assert state.attack_points[ALICE] == MAX_ATTACK_POINTS - 2

    async def test_not_your_turn(self, battle_engine, rng):
        battle = await start(battle_engine, rng)

        with pytest.raises(AuthorizationError):
            await battle_engine.perform_attack(battle.battle_id, BOB, "normal")

    async def test_non_participant(self, battle_engine, rng):
        battle = await start(battle_engine, rng)

        with pytest.raises(AuthorizationError):
            await battle_engine.perform_attack(battle.battle_id, CAROL, "normal")

    async def test_unknown_battle(self, battle_engine):
        with pytest.raises(ResourceNotFoundError):
            await battle_engine.perform_attack(42, ALICE, "normal")

    async def test_unknown_attack_kind(self, battle_engine, rng):
        battle = await start(battle_engine, rng)

        with pytest.raises(ValidationError):
            await battle_engine.perform_attack(battle.battle_id, ALICE, "fireball")
        assert len(battle_engine.action_log) == 0

    async def test_insufficient_points_leaves_pool_intact(self, battle_engine, rng):
        battle = await start(battle_engine, rng, 0, 0)
        assert battle.attack_points == {ALICE: 4, BOB: 4}

        await battle_engine.perform_attack(battle.battle_id, ALICE, "special2")
        await battle_engine.end_turn(battle.battle_id, BOB)

        with pytest.raises(ValidationError):
            await battle_engine.perform_attack(battle.battle_id, ALICE, "normal")
        assert battle_engine.get_battle(battle.battle_id).attack_points[ALICE] == 0

    async def test_dodge_deals_no_damage(self, battle_engine, registry, rng):
        registry.add(make_character(21, BOB, CharacterClass.ROGUE, agility=100, vitality=60))
        rng.push(0, 0)
        battle = await battle_engine.create_battle(ALICE, ALICE_CHAR, BOB, 21)
        assert battle.snapshots[BOB].dodge_chance == 33
        health_before = battle.snapshots[BOB].current_health
        rng.push(99, 35, 0)

        outcome = await battle_engine.perform_attack(battle.battle_id, ALICE, "special2")

        assert outcome.dodged is True
        assert outcome.damage_dealt == 0
        assert outcome.defender_health == health_before
        record = battle_engine.action_log.records_for_battle(battle.battle_id)[-1]
        assert record.dodged is True
        assert record.value == 0

    async def test_attack_is_logged(self, battle_engine, rng):
        battle = await start(battle_engine, rng)

        outcome = await battle_engine.perform_attack(battle.battle_id, ALICE, "special1")

        records = battle_engine.action_log.records_for_battle(battle.battle_id)
        assert [r.kind for r in records] == [ActionKind.SPECIAL1]
        assert records[0].value == outcome.damage_dealt
        assert battle_engine.get_battle(battle.battle_id).action_ids == [records[0].record_id]

    async def test_concurrent_attacks_are_serialized(self, battle_engine, rng):
        battle = await start(battle_engine, rng)

        results = await asyncio.gather(
            battle_engine.perform_attack(battle.battle_id, ALICE, "normal"),
            battle_engine.perform_attack(battle.battle_id, ALICE, "normal"),
            return_exceptions=True,
        )

        errors = [r for r in results if isinstance(r, Exception)]
        assert len(errors) == 1
        assert isinstance(errors[0], AuthorizationError)
        assert battle_engine.get_battle(battle.battle_id).attack_points[ALICE] == MAX_ATTACK_POINTS - 2


class TestEndTurn:
    """Tests for end_turn, round regeneration and sticky turns."""

    async def test_turn_passes_when_opponent_active(self, battle_engine, rng):
        battle = await start(battle_engine, rng)

        outcome = await battle_engine.end_turn(battle.battle_id, ALICE)

        assert outcome.next_player_id == BOB
        assert outcome.new_round is False
        state = battle_engine.get_battle(battle.battle_id)
        assert state.turn_ended == {ALICE: True, BOB: False}
        assert state.round_number == 1

    async def test_sticky_turn_without_regeneration(self, battle_engine, rng):
        """After ALICE ends early, BOB keeps the turn and his pool only shrinks."""
        battle = await start(battle_engine, rng)
        await battle_engine.end_turn(battle.battle_id, ALICE)

        await battle_engine.perform_attack(battle.battle_id, BOB, "normal")
        await battle_engine.perform_attack(battle.battle_id, BOB, "normal")

        state = battle_engine.get_battle(battle.battle_id)
        assert state.current_turn_player_id == BOB
        assert state.attack_points[BOB] == MAX_ATTACK_POINTS - 4
        assert state.round_number == 1

    async def test_ended_player_cannot_act(self, battle_engine, rng):
        battle = await start(battle_engine, rng)
        await battle_engine.end_turn(battle.battle_id, ALICE)

        with pytest.raises(StateError):
            await battle_engine.perform_attack(battle.battle_id, ALICE, "normal")
        with pytest.raises(StateError):
            await battle_engine.end_turn(battle.battle_id, ALICE)

    async def test_new_round_after_both_end(self, battle_engine, rng, recorder):
        battle = await start(battle_engine, rng)
        await battle_engine.perform_attack(battle.battle_id, ALICE, "normal")
        await battle_engine.end_turn(battle.battle_id, BOB)
        rng.push(0, 1)

        outcome = await battle_engine.end_turn(battle.battle_id, ALICE)

        assert outcome.new_round is True
        assert outcome.round_number == 2
        assert outcome.next_player_id == BOB
        # Leftover points are discarded, not carried over
        assert outcome.attack_points == {ALICE: 4, BOB: 5}
        state = battle_engine.get_battle(battle.battle_id)
        assert state.turn_ended == {ALICE: False, BOB: False}
        assert state.current_turn_player_id == BOB
        assert recorder.types()[-2:] == ["turn_ended", "turn_started"]

    async def test_round_completion_is_published(self, battle_engine, rng, recorder):
        battle = await start(battle_engine, rng)
        await battle_engine.end_turn(battle.battle_id, ALICE)
        await battle_engine.end_turn(battle.battle_id, BOB)

        turn_states = [e.data["turn_state"] for e in recorder.events if e.event_type.value == "turn_ended"]
        assert turn_states == ["player1_turn", "turn_completed"]
        # The next round has already begun
        assert battle_engine.get_battle(battle.battle_id).turn_state == TurnState.PLAYER1_TURN


class TestForfeit:
    """Tests for forfeiting."""

    async def test_forfeit_out_of_turn(self, battle_engine, registry, rng):
        battle = await start(battle_engine, rng)

        result = await battle_engine.forfeit(battle.battle_id, BOB)

        assert result.state == BattleState.COMPLETED
        assert result.winner_id == ALICE
        assert result.end_reason == "forfeit"
        assert result.snapshots[BOB].forfeited is True
        assert registry.results == [(ALICE_CHAR, True, 100), (BOB_CHAR, False, 100)]

    async def test_terminal_battle_rejects_everything(self, battle_engine, rng):
        battle = await start(battle_engine, rng)
        await battle_engine.forfeit(battle.battle_id, BOB)

        with pytest.raises(StateError):
            await battle_engine.perform_attack(battle.battle_id, ALICE, "normal")
        with pytest.raises(StateError):
            await battle_engine.end_turn(battle.battle_id, ALICE)
        with pytest.raises(StateError):
            await battle_engine.forfeit(battle.battle_id, ALICE)
        with pytest.raises(StateError):
            await battle_engine.check_turn_timeout(battle.battle_id)

    async def test_failed_payout_leaves_battle_untouched(self, battle_engine, registry, rng):
        battle = await start(battle_engine, rng)
        registry.fail_on_record = True

        with pytest.raises(RuntimeError):
            await battle_engine.forfeit(battle.battle_id, BOB)

        state = battle_engine.get_battle(battle.battle_id)
        assert state.state == BattleState.IN_PROGRESS
        assert state.snapshots[BOB].forfeited is False
        assert battle_engine.active_battle_id(BOB) == battle.battle_id
        assert len(battle_engine.action_log) == 0

    async def test_retried_payout_credits_each_character_once(self, battle_engine, registry, rng):
        """Only the loser's record fails; the retry must not credit the winner again."""
        battle = await start(battle_engine, rng)
        registry.fail_on_calls = {2}

        with pytest.raises(RuntimeError):
            await battle_engine.forfeit(battle.battle_id, ALICE)
        assert battle_engine.get_battle(battle.battle_id).state == BattleState.IN_PROGRESS
        assert registry.results == [(BOB_CHAR, True, 100)]

        result = await battle_engine.forfeit(battle.battle_id, ALICE)

        assert result.state == BattleState.COMPLETED
        assert result.winner_id == BOB
        assert registry.results == [(BOB_CHAR, True, 100), (ALICE_CHAR, False, 100)]

    async def test_retry_cannot_settle_a_different_winner(self, battle_engine, registry, rng):
        battle = await start(battle_engine, rng)
        registry.fail_on_calls = {2}
        with pytest.raises(RuntimeError):
            await battle_engine.forfeit(battle.battle_id, ALICE)

        with pytest.raises(StateError):
            await battle_engine.forfeit(battle.battle_id, BOB)

        assert registry.results == [(BOB_CHAR, True, 100)]
        assert battle_engine.get_battle(battle.battle_id).state == BattleState.IN_PROGRESS

    async def test_players_can_battle_again(self, battle_engine, rng):
        battle = await start(battle_engine, rng)
        await battle_engine.forfeit(battle.battle_id, ALICE)

        second = await battle_engine.create_battle(BOB, BOB_CHAR, ALICE, ALICE_CHAR)

        assert second.battle_id != battle.battle_id
        assert battle_engine.list_active_battles() == [second.battle_id]


class TestTimeouts:
    """Tests for poll-triggered timeouts."""

    async def test_turn_timeout_forfeits_inactive_player(self, battle_engine, registry, rng, clock, recorder):
        battle = await start(battle_engine, rng)
        clock.advance(minutes=5)
        assert await battle_engine.check_turn_timeout(battle.battle_id) is False

        clock.advance(minutes=6)
        assert await battle_engine.check_battle_timeout(battle.battle_id) is False
        assert await battle_engine.check_turn_timeout(battle.battle_id) is True

        state = battle_engine.get_battle(battle.battle_id)
        assert state.state == BattleState.COMPLETED
        assert state.winner_id == BOB
        assert state.end_reason == "turn_timeout"
        assert state.snapshots[ALICE].forfeited is True
        assert registry.results == [(BOB_CHAR, True, 100), (ALICE_CHAR, False, 100)]
        last = battle_engine.action_log.records_for_battle(battle.battle_id)[-1]
        assert (last.kind, last.actor_id) == (ActionKind.TIMEOUT, ALICE)
        assert recorder.events[-1].data["reason"] == "turn_timeout"

    async def test_action_resets_turn_clock(self, battle_engine, rng, clock):
        battle = await start(battle_engine, rng)
        clock.advance(minutes=9)
        await battle_engine.perform_attack(battle.battle_id, ALICE, "normal")
        clock.advance(minutes=9)

        assert await battle_engine.check_turn_timeout(battle.battle_id) is False

    async def test_battle_timeout_cancels_without_payout(self, battle_engine, registry, rng, clock, recorder):
        battle = await start(battle_engine, rng)

        ended = await battle_engine.sweep_timeouts(now=clock.now + timedelta(days=2))

        assert ended == [battle.battle_id]
        state = battle_engine.get_battle(battle.battle_id)
        assert state.state == BattleState.CANCELED
        assert state.winner_id is None
        assert state.end_reason == "battle_timeout"
        assert registry.results == []
        assert battle_engine.active_battle_id(ALICE) is None
        assert recorder.types()[-1] == "battle_canceled"

    async def test_sweep_ignores_fresh_battles(self, battle_engine, rng):
        await start(battle_engine, rng)

        assert await battle_engine.sweep_timeouts() == []


class TestFinishedBattles:
    """Tests for releasing and pruning ended battles."""

    async def test_lock_dropped_when_battle_ends(self, battle_engine, rng):
        battle = await start(battle_engine, rng)
        assert battle.battle_id in battle_engine._locks

        await battle_engine.forfeit(battle.battle_id, BOB)

        assert battle.battle_id not in battle_engine._locks
        with pytest.raises(StateError):
            await battle_engine.end_turn(battle.battle_id, ALICE)

    async def test_prune_after_retention(self, battle_engine, rng, clock):
        battle = await start(battle_engine, rng)
        await battle_engine.forfeit(battle.battle_id, BOB)
        other = await battle_engine.create_battle(CAROL, CAROL_CHAR, DAVE, 40)

        assert battle_engine.prune_finished_battles() == []
        assert battle_engine.get_battle(battle.battle_id).ended_at == clock.now

        clock.advance(days=2)
        assert battle_engine.prune_finished_battles() == [battle.battle_id]

        with pytest.raises(ResourceNotFoundError):
            battle_engine.get_battle(battle.battle_id)
        assert battle_engine.action_log.records_for_battle(battle.battle_id) == []
        assert battle_engine.list_active_battles() == [other.battle_id]

    async def test_events_use_engine_clock(self, battle_engine, rng, clock, recorder):
        battle = await start(battle_engine, rng)
        started_at = clock.now
        clock.advance(minutes=3)

        await battle_engine.perform_attack(battle.battle_id, ALICE, "normal")

        assert [e.timestamp for e in recorder.events[:2]] == [started_at, started_at]
        assert all(e.timestamp == clock.now for e in recorder.events[2:])


class TestAdministration:
    """Tests for operator-only controls."""

    async def test_non_operator_rejected(self, battle_engine, rng):
        battle = await start(battle_engine, rng)

        with pytest.raises(AuthorizationError):
            battle_engine.set_turn_timeout(ALICE, timedelta(minutes=1))
        with pytest.raises(AuthorizationError):
            await battle_engine.emergency_cancel(ALICE, battle.battle_id)

    def test_timeouts_must_be_positive(self, battle_engine):
        with pytest.raises(ValidationError):
            battle_engine.set_battle_timeout(OPERATOR_ID, timedelta(0))

        battle_engine.set_turn_timeout(OPERATOR_ID, timedelta(minutes=1))
        assert battle_engine.turn_timeout == timedelta(minutes=1)

    async def test_emergency_cancel(self, battle_engine, registry, rng):
        battle = await start(battle_engine, rng)

        result = await battle_engine.emergency_cancel(OPERATOR_ID, battle.battle_id, "stuck")

        assert result.state == BattleState.CANCELED
        assert result.end_reason == "admin: stuck"
        assert registry.results == []
        assert battle_engine.get_active_battle(ALICE) is None

    async def test_set_registry(self, battle_engine, registry):
        battle_engine.set_registry(OPERATOR_ID, registry)
        assert battle_engine.registry is registry

    async def test_battle_state_display(self, battle_engine, rng):
        battle = await start(battle_engine, rng)

        state = battle_engine.get_battle_state(battle.battle_id)

        assert state["state"] == "in_progress"
        assert state["current_turn_player_id"] == ALICE
        assert [p["player_id"] for p in state["participants"]] == [ALICE, BOB]
        assert state["participants"][0]["attack_points"] == MAX_ATTACK_POINTS
