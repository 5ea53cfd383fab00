"""Program repository — program CRUD and active-program selection.

Persistence policy: every public mutation writes the full dashboard state
through ``DashboardStore.save()`` before returning. No queuing, no debounce.

Validation policy:
- Missing name on create → silent no-op, returns None.
- Values outside a closed set (status), a non-numeric budget, non-text
  name/description or a parties value that is not a list of objects →
  ValidationError.
- Unknown program id → NotFoundError.

Deleting a program removes its partition (tasks, blockers, risks) too.
"""
import dataclasses
import logging
from collections.abc import Callable
from typing import Any

from pmassist.core.exceptions import ValidationError
from pmassist.models.entities import DEFAULT_PROGRAM_STATUS, Party, Program, text_value
from pmassist.services.partition_service import PartitionStore
from pmassist.utils.helpers import locked, new_id, normalize_date, today_iso

logger = logging.getLogger(__name__)

# Patchable fields: camelCase payload key → Program attribute
_PATCH_FIELDS = {
    "name": "name",
    "description": "description",
    "startDate": "start_date",
    "endDate": "end_date",
    "status": "status",
    "budget": "budget",
    "parties": "parties",
}

_DATE_FIELDS = {"start_date", "end_date"}


def _is_empty(value) -> bool:
    return value is None or value == "" or value == [] or (isinstance(value, str) and not value.strip())


def _parse_parties(raw) -> list[Party]:
    """Staged party list → Party objects; rows without a name are dropped."""
    if raw is None:
        return []
    if not isinstance(raw, list):
        raise ValidationError(
            "Invalid parties: expected a list", details={"parties": type(raw).__name__},
        )
    parties = []
    for item in raw:
        party = item if isinstance(item, Party) else Party.from_dict(item)
        if party.name.strip():
            parties.append(Party(name=party.name.strip(), designation=party.designation.strip()))
    return parties


class ProgramRepository:
    """Ordered program collection plus the active selection."""

    def __init__(self, state, partitions: PartitionStore | None = None):
        self.state = state
        self.partitions = partitions or PartitionStore(state)

    # ── Queries ───────────────────────────────────────────────────────────

    def list(self) -> list[Program]:
        """Programs in insertion order."""
        return list(self.state.programs)

    def get(self, program_id) -> Program:
        return self.state.get_program(program_id)

    @property
    def active(self) -> Program | None:
        return self.state.active_program

    # ── Mutations ─────────────────────────────────────────────────────────

    @locked
    def create(self, draft: dict[str, Any]) -> Program | None:
        """Create a program from a draft.

        Defaults: status "Not Started", startDate today, endDate "",
        budget 0. Staged parties are attached.

        Returns:
            The new Program, or None if the draft has no name.
        """
        name = text_value(draft.get("name"), "name").strip()
        if not name:
            logger.debug("Program create skipped: empty name")
            return None

        program = Program(
            id=new_id(p.id for p in self.state.programs),
            name=name,
            description=text_value(draft.get("description"), "description"),
            start_date=normalize_date(draft.get("startDate")) or today_iso(),
            end_date=normalize_date(draft.get("endDate")),
            status=DEFAULT_PROGRAM_STATUS,
            budget=draft.get("budget") or 0,
            parties=_parse_parties(draft.get("parties")),
        )
        self.state.programs.append(program)
        self.partitions.ensure_initialized(program.id)
        self.state.save()
        logger.info("Program created id=%s name=%s", program.id, name, extra={"program_id": program.id})
        return program

    @locked
    def update(self, program_id, patch: dict[str, Any]) -> Program:
        """Merge the non-empty fields of ``patch`` over the stored program.

        The active selection and the partition snapshot both follow the
        updated record.
        """
        current = self.state.get_program(program_id)
        changes: dict[str, Any] = {}
        for key, attr in _PATCH_FIELDS.items():
            value = patch.get(key)
            if _is_empty(value):
                continue
            if attr == "name":
                value = text_value(value, key).strip()
            elif attr == "description":
                value = text_value(value, key)
            elif attr in _DATE_FIELDS:
                value = normalize_date(value)
                if not value:
                    continue
            elif attr == "parties":
                value = _parse_parties(value)
                if not value:
                    continue
            changes[attr] = value

        if not changes:
            return current

        updated = dataclasses.replace(current, **changes)
        index = self.state.programs.index(current)
        self.state.programs[index] = updated
        self.partitions.refresh_program(updated)
        self.state.save()
        logger.info(
            "Program updated id=%s fields=%s", updated.id, sorted(changes),
            extra={"program_id": updated.id},
        )
        return updated

    @locked
    def delete(self, program_id, confirm: Callable[[Program], bool] | None = None) -> bool:
        """Delete a program and its partition.

        Args:
            program_id: Program to delete.
            confirm: Precondition hook. Called with the program; a falsy
                return aborts the delete without any change.

        Returns:
            True if the program was deleted, False if confirmation was refused.
        """
        program = self.state.get_program(program_id)
        if confirm is not None and not confirm(program):
            logger.info("Program delete not confirmed id=%s", program.id, extra={"program_id": program.id})
            return False

        self.state.programs.remove(program)
        if self.state.active_program_id == program.id:
            self.state.active_program_id = None
        if not self.partitions.remove(program.id):
            self.state.save()
        logger.info("Program deleted id=%s", program.id, extra={"program_id": program.id})
        return True

    @locked
    def select(self, program_id) -> Program | None:
        """Make ``program_id`` the active program (None clears the selection)."""
        if program_id is None:
            self.state.active_program_id = None
            self.state.save()
            return None
        program = self.state.get_program(program_id)
        self.state.active_program_id = program.id
        self.partitions.ensure_initialized(program.id)
        self.state.save()
        return program
