"""Per-program partition store — status-bucketed tasks, blockers and risks.

A partition holds one program's board entities, pre-bucketed by status:

    tasks     {todo, inProgress, done}
    blockers  {active, resolved, deferred}
    risks     {open, mitigated, closed}

Bucket membership is always a pure function of each member's ``status``.
Writers never touch a bucket directly: they hand over the full list and
the buckets are recomputed (``replace_*``). Re-bucketing the same list is
idempotent, and ``flatten_*`` concatenates buckets in the fixed order above.

Every replace writes the whole dashboard state through before returning,
holding the dashboard state lock.
"""
import logging
from dataclasses import dataclass, field

from pmassist.core.exceptions import ValidationError
from pmassist.models.entities import Blocker, Program, Risk, Task, from_dicts
from pmassist.utils.helpers import locked

logger = logging.getLogger(__name__)

# ── Bucket layouts: (bucket key, status value), in flatten order ─────────────

TASK_BUCKETS = (("todo", "Todo"), ("inProgress", "In Progress"), ("done", "Done"))
BLOCKER_BUCKETS = (("active", "Active"), ("resolved", "Resolved"), ("deferred", "Deferred"))
RISK_BUCKETS = (("open", "Open"), ("mitigated", "Mitigated"), ("closed", "Closed"))


def _bucket(items, layout, entity: str) -> dict[str, list]:
    key_for_status = {status: key for key, status in layout}
    buckets = {key: [] for key, _ in layout}
    for item in items:
        key = key_for_status.get(item.status)
        if key is None:
            raise ValidationError(
                f"{entity} id={item.id} has unknown status {item.status!r}",
                details={"status": item.status},
            )
        buckets[key].append(item)
    return buckets


def flatten_buckets(buckets: dict[str, list], layout) -> list:
    """Concatenate bucket contents in layout order."""
    return [item for key, _ in layout for item in buckets.get(key, [])]


def bucket_tasks(tasks) -> dict[str, list[Task]]:
    return _bucket(tasks, TASK_BUCKETS, "Task")


def bucket_blockers(blockers) -> dict[str, list[Blocker]]:
    return _bucket(blockers, BLOCKER_BUCKETS, "Blocker")


def bucket_risks(risks) -> dict[str, list[Risk]]:
    return _bucket(risks, RISK_BUCKETS, "Risk")


# ── Partition record ─────────────────────────────────────────────────────────


@dataclass
class ProgramData:
    """One program's partition, as stored under ``programData[<id>]``."""

    program: Program
    tasks: dict[str, list[Task]] = field(default_factory=lambda: bucket_tasks([]))
    blockers: dict[str, list[Blocker]] = field(default_factory=lambda: bucket_blockers([]))
    risks: dict[str, list[Risk]] = field(default_factory=lambda: bucket_risks([]))

    def all_tasks(self) -> list[Task]:
        return flatten_buckets(self.tasks, TASK_BUCKETS)

    def all_blockers(self) -> list[Blocker]:
        return flatten_buckets(self.blockers, BLOCKER_BUCKETS)

    def all_risks(self) -> list[Risk]:
        return flatten_buckets(self.risks, RISK_BUCKETS)

    def counts(self) -> dict[str, dict[str, int]]:
        return {
            "tasks": {k: len(v) for k, v in self.tasks.items()},
            "blockers": {k: len(v) for k, v in self.blockers.items()},
            "risks": {k: len(v) for k, v in self.risks.items()},
        }

    def to_dict(self):
        return {
            "program": self.program.to_dict(),
            "tasks": {k: [t.to_dict() for t in v] for k, v in self.tasks.items()},
            "blockers": {k: [b.to_dict() for b in v] for k, v in self.blockers.items()},
            "risks": {k: [r.to_dict() for r in v] for k, v in self.risks.items()},
        }

    @classmethod
    def from_dict(cls, data: dict, program: Program) -> "ProgramData":
        """Rebuild a partition. Buckets are re-derived from member status,
        so a stored record with a member in the wrong bucket heals on load.
        Unreadable members are skipped.
        """
        def _members(section, layout, entity_cls):
            raw = data.get(section) or {}
            if isinstance(raw, list):
                items = raw
            elif isinstance(raw, dict):
                items = [item for key, _ in layout for item in raw.get(key) or []]
            else:
                items = []
            return from_dicts(entity_cls, items, f" in program {program.id}")

        return cls(
            program=program,
            tasks=bucket_tasks(_members("tasks", TASK_BUCKETS, Task)),
            blockers=bucket_blockers(_members("blockers", BLOCKER_BUCKETS, Blocker)),
            risks=bucket_risks(_members("risks", RISK_BUCKETS, Risk)),
        )


# ── Partition store ──────────────────────────────────────────────────────────


class PartitionStore:
    """Program id → ProgramData, backed by a ``DashboardStore``."""

    def __init__(self, state):
        self.state = state

    def get(self, program_id: str) -> ProgramData | None:
        return self.state.program_data.get(str(program_id))

    @locked
    def ensure_initialized(self, program_id: str) -> ProgramData:
        """Return the partition for ``program_id``, creating an empty one
        seeded with the program snapshot if none exists.
        """
        program_id = str(program_id)
        partition = self.state.program_data.get(program_id)
        if partition is not None:
            return partition
        program = self.state.get_program(program_id)
        partition = ProgramData(program=program)
        self.state.program_data[program_id] = partition
        self.state.save()
        logger.info("Partition initialised program=%s", program_id, extra={"program_id": program_id})
        return partition

    def _check_owner(self, program_id: str, items, entity: str) -> None:
        for item in items:
            if item.program_id != program_id:
                raise ValidationError(
                    f"{entity} id={item.id} belongs to program {item.program_id}, not {program_id}",
                    details={"programId": item.program_id},
                )

    @locked
    def replace_tasks(self, program_id: str, tasks) -> ProgramData:
        program_id = str(program_id)
        tasks = list(tasks)
        self._check_owner(program_id, tasks, "Task")
        buckets = bucket_tasks(tasks)
        partition = self.ensure_initialized(program_id)
        partition.tasks = buckets
        self.state.save()
        return partition

    @locked
    def replace_blockers(self, program_id: str, blockers) -> ProgramData:
        program_id = str(program_id)
        blockers = list(blockers)
        self._check_owner(program_id, blockers, "Blocker")
        buckets = bucket_blockers(blockers)
        partition = self.ensure_initialized(program_id)
        partition.blockers = buckets
        self.state.save()
        return partition

    @locked
    def replace_risks(self, program_id: str, risks) -> ProgramData:
        program_id = str(program_id)
        risks = list(risks)
        self._check_owner(program_id, risks, "Risk")
        buckets = bucket_risks(risks)
        partition = self.ensure_initialized(program_id)
        partition.risks = buckets
        self.state.save()
        return partition

    def flatten_tasks(self, program_id: str) -> list[Task]:
        partition = self.get(program_id)
        return partition.all_tasks() if partition else []

    def flatten_blockers(self, program_id: str) -> list[Blocker]:
        partition = self.get(program_id)
        return partition.all_blockers() if partition else []

    def flatten_risks(self, program_id: str) -> list[Risk]:
        partition = self.get(program_id)
        return partition.all_risks() if partition else []

    def refresh_program(self, program: Program) -> None:
        """Point an existing partition at the latest program snapshot."""
        partition = self.get(program.id)
        if partition is not None:
            partition.program = program

    @locked
    def remove(self, program_id: str) -> bool:
        removed = self.state.program_data.pop(str(program_id), None)
        if removed is None:
            return False
        self.state.save()
        return True
