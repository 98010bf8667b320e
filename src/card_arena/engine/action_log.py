"""Action log - append-only record of every combat action.

Used for:
- Audit and replay of a battle
- Damage accounting queries (totals, crits, dodges)
- Human-readable battle transcripts
"""

import itertools
from collections import defaultdict
from dataclasses import dataclass
from datetime import datetime
from typing import Any

from ..errors import ResourceNotFoundError
from .types import ActionKind


@dataclass(frozen=True)
class ActionLogRecord:
    """A single combat action. Immutable once written."""

    record_id: int
    battle_id: int
    actor_id: int
    timestamp: datetime
    round_number: int
    kind: ActionKind
    value: int = 0  # Damage dealt, 0 for non-damage actions
    critical: bool = False
    dodged: bool = False

    @property
    def is_attack(self) -> bool:
        return self.kind in (ActionKind.NORMAL, ActionKind.SPECIAL1, ActionKind.SPECIAL2)

    def to_dict(self) -> dict[str, Any]:
        """Convert to dictionary for serialization."""
        return {
            "record_id": self.record_id,
            "battle_id": self.battle_id,
            "actor_id": self.actor_id,
            "timestamp": self.timestamp.isoformat(),
            "round_number": self.round_number,
            "kind": self.kind.value,
            "value": self.value,
            "critical": self.critical,
            "dodged": self.dodged,
        }


class ActionLog:
    """Append-only store of action records across all battles.

    Records are never edited. A finished battle's records can be discarded
    as a whole once it is pruned from the engine.

    Usage:
        log = ActionLog()
        record = log.append(battle_id=1, actor_id=10, timestamp=now, round_number=1,
                            kind=ActionKind.NORMAL, value=42)
        log.total_damage(1, actor_id=10)
        print(log.format_readable(1))
    """

    def __init__(self) -> None:
        self._records: dict[int, ActionLogRecord] = {}
        self._by_battle: dict[int, list[int]] = defaultdict(list)
        self._ids = itertools.count(1)

    def __len__(self) -> int:
        return len(self._records)

    def append(
        self,
        battle_id: int,
        actor_id: int,
        timestamp: datetime,
        round_number: int,
        kind: ActionKind,
        value: int = 0,
        critical: bool = False,
        dodged: bool = False,
    ) -> ActionLogRecord:
        """Write a new record and return it."""
        record = ActionLogRecord(
            record_id=next(self._ids),
            battle_id=battle_id,
            actor_id=actor_id,
            timestamp=timestamp,
            round_number=round_number,
            kind=kind,
            value=value,
            critical=critical,
            dodged=dodged,
        )
        self._records[record.record_id] = record
        self._by_battle[battle_id].append(record.record_id)
        return record

    def discard_battle(self, battle_id: int) -> int:
        """Drop every record of a finished battle. Returns how many were removed.

        Record IDs are never reused.
        """
        record_ids = self._by_battle.pop(battle_id, [])
        for record_id in record_ids:
            del self._records[record_id]
        return len(record_ids)

    def get(self, record_id: int) -> ActionLogRecord:
        """Get a record by ID."""
        record = self._records.get(record_id)
        if record is None:
            raise ResourceNotFoundError(f"Action record {record_id} not found")
        return record

    def records_for_battle(self, battle_id: int) -> list[ActionLogRecord]:
        """Get all records of a battle in write order."""
        return [self._records[rid] for rid in self._by_battle.get(battle_id, [])]

    def records_for_actor(self, actor_id: int, battle_id: int | None = None) -> list[ActionLogRecord]:
        """Get all records written by one player, optionally within one battle."""
        records = self.records_for_battle(battle_id) if battle_id is not None else self._records.values()
        return [r for r in records if r.actor_id == actor_id]

    def total_damage(self, battle_id: int, actor_id: int | None = None) -> int:
        """Sum damage dealt in a battle, optionally by one actor."""
        return sum(
            r.value
            for r in self.records_for_battle(battle_id)
            if r.is_attack and (actor_id is None or r.actor_id == actor_id)
        )

    def damage_by_kind(self, battle_id: int) -> dict[ActionKind, int]:
        """Sum damage per attack kind."""
        totals: dict[ActionKind, int] = defaultdict(int)
        for r in self.records_for_battle(battle_id):
            if r.is_attack:
                totals[r.kind] += r.value
        return dict(totals)

    def critical_hits(self, battle_id: int, actor_id: int | None = None) -> int:
        """Count critical hits that were not dodged."""
        return sum(
            1
            for r in self.records_for_battle(battle_id)
            if r.critical and not r.dodged and (actor_id is None or r.actor_id == actor_id)
        )

    def dodges(self, battle_id: int) -> int:
        """Count dodged attacks."""
        return sum(1 for r in self.records_for_battle(battle_id) if r.dodged)

    def to_dict(self, battle_id: int) -> dict[str, Any]:
        """Convert a battle's records to a dictionary for serialization."""
        return {
            "battle_id": battle_id,
            "records": [r.to_dict() for r in self.records_for_battle(battle_id)],
        }

    def format_readable(self, battle_id: int) -> str:
        """Format a battle's records in a human-readable form."""
        lines: list[str] = [f"=== Action Log (Battle #{battle_id}) ==="]

        current_round = -1
        for record in self.records_for_battle(battle_id):
            if record.round_number != current_round:
                current_round = record.round_number
                lines.append(f"--- Round {current_round} ---")
            lines.append(self._format_record(record))

        return "\n".join(lines)

    @staticmethod
    def _format_record(record: ActionLogRecord) -> str:
        match record.kind:
            case ActionKind.END_TURN:
                return f"  P{record.actor_id} ends turn"
            case ActionKind.FORFEIT:
                return f"  P{record.actor_id} forfeits"
            case ActionKind.TIMEOUT:
                return f"  P{record.actor_id} timed out"
            case _:
                if record.dodged:
                    return f"  P{record.actor_id} {record.kind.value} attack - dodged"
                crit = " (critical)" if record.critical else ""
                return f"  P{record.actor_id} {record.kind.value} attack for {record.value}{crit}"
