"""Persisted state layouts and the flat → nested migration.

Canonical layout (nested), one key:

    "programManagementData": {
        "programs":        [Program, ...],
        "programData":     {<programId>: {program, tasks{...}, blockers{...}, risks{...}}},
        "activeProgramId": <programId> | null
    }

Legacy layout (flat), three keys each holding a JSON array:

    "programs", "tasks", "risks"

``migrate_flat_schema`` converts a flat store to the nested layout once,
using ``load_flat``. The flat layout is read, never written, and has no
blockers.
"""
import logging

from pmassist.models.entities import Program, Risk, Task, from_dicts
from pmassist.services.partition_service import ProgramData, bucket_risks, bucket_tasks

logger = logging.getLogger(__name__)

NESTED_KEY = "programManagementData"
FLAT_PROGRAMS_KEY = "programs"
FLAT_TASKS_KEY = "tasks"
FLAT_RISKS_KEY = "risks"
FLAT_KEYS = (FLAT_PROGRAMS_KEY, FLAT_TASKS_KEY, FLAT_RISKS_KEY)


# ── Nested layout ────────────────────────────────────────────────────────────


def dump_nested(programs, program_data, active_program_id) -> dict:
    return {
        "programs": [p.to_dict() for p in programs],
        "programData": {pid: data.to_dict() for pid, data in program_data.items()},
        "activeProgramId": active_program_id,
    }


def load_nested(data: dict):
    """Parse a nested record into ``(programs, program_data, active_id)``.

    Malformed programs, partitions and board records are skipped one by
    one with a warning, so a single bad record never costs the rest.
    Partitions whose key matches no program are dropped. An active id that
    matches no program becomes None. A record that is not an object at all
    raises; callers decide how to recover.
    """
    if not isinstance(data, dict):
        raise TypeError(f"expected an object, got {type(data).__name__}")

    programs = from_dicts(Program, data.get("programs"))
    by_id = {p.id: p for p in programs}

    program_data: dict[str, ProgramData] = {}
    for pid, raw in (data.get("programData") or {}).items():
        program = by_id.get(str(pid))
        if program is None:
            logger.warning("Dropping orphan partition program=%s", pid, extra={"program_id": pid})
            continue
        if not isinstance(raw, dict):
            logger.warning("Resetting unreadable partition program=%s", pid, extra={"program_id": pid})
            continue
        program_data[program.id] = ProgramData.from_dict(raw, program)

    active_id = data.get("activeProgramId")
    if active_id is not None:
        active_id = str(active_id)
        if active_id not in by_id:
            logger.warning("Active program %s no longer exists", active_id)
            active_id = None
    return programs, program_data, active_id


# ── Flat layout ──────────────────────────────────────────────────────────────


def load_flat(programs_raw, tasks_raw, risks_raw):
    """Build ``(programs, program_data)`` from flat arrays.

    Tasks and risks whose programId matches no program are dropped.
    Every program gets a partition.
    """
    programs = [Program.from_dict(p) for p in programs_raw or []]
    tasks = [Task.from_dict(t) for t in tasks_raw or []]
    risks = [Risk.from_dict(r) for r in risks_raw or []]

    program_data: dict[str, ProgramData] = {}
    for program in programs:
        owned_tasks = [t for t in tasks if t.program_id == program.id]
        owned_risks = [r for r in risks if r.program_id == program.id]
        program_data[program.id] = ProgramData(
            program=program,
            tasks=bucket_tasks(owned_tasks),
            risks=bucket_risks(owned_risks),
        )

    known = set(program_data)
    orphans = [t.id for t in tasks if t.program_id not in known]
    orphans += [r.id for r in risks if r.program_id not in known]
    if orphans:
        logger.warning("Dropping %d orphaned flat records: %s", len(orphans), ", ".join(orphans))
    return programs, program_data


def migrate_flat_schema(adapter) -> dict | None:
    """One-time migration of the flat layout into the nested key.

    No-op (returns None) when the nested key already exists or no flat key
    is present. If the flat data cannot be parsed, nothing is written and
    the flat keys are left untouched. On success the nested record is
    written first, then the flat keys are removed.

    Returns:
        The nested record written, or None.
    """
    if adapter.has(NESTED_KEY):
        return None
    if not any(adapter.has(key) for key in FLAT_KEYS):
        return None

    try:
        programs, program_data = load_flat(
            adapter.get(FLAT_PROGRAMS_KEY, []),
            adapter.get(FLAT_TASKS_KEY, []),
            adapter.get(FLAT_RISKS_KEY, []),
        )
    except Exception as exc:
        logger.error("Flat storage migration aborted: %s", exc)
        return None

    record = dump_nested(programs, program_data, None)
    if not adapter.set(NESTED_KEY, record):
        logger.error("Flat storage migration could not write %s", NESTED_KEY)
        return None
    for key in FLAT_KEYS:
        adapter.remove(key)
    logger.info(
        "Migrated flat storage: programs=%d partitions=%d",
        len(programs), len(program_data),
    )
    return record
