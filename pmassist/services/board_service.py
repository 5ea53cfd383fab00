"""Board service — task board, blocker register and risk register operations.

Each operation reads the program's current list, derives the new list and
hands it to the partition store as a full replacement, so the buckets are
always recomputed from status and the state is written through.

Soft validation: a draft without a title (or a blocker without a start
date) is a no-op returning None. Unknown program or entity ids raise
NotFoundError; values outside a closed set, non-text free-text fields and
unreadable yes/no flags raise ValidationError.

Each read-modify-write runs under the dashboard state lock, so concurrent
requests on one program never overwrite each other.
"""
import dataclasses
import logging
from typing import Any

from pmassist.core.exceptions import NotFoundError
from pmassist.models.entities import Blocker, Risk, Task, flag_value, text_value
from pmassist.services.partition_service import PartitionStore
from pmassist.utils.helpers import locked, new_id, normalize_date, today_iso

logger = logging.getLogger(__name__)

_TEXT_FIELDS = {"title", "description", "assignee"}

_TASK_FIELDS = {
    "title": "title",
    "description": "description",
    "assignee": "assignee",
    "dueDate": "due_date",
    "priority": "priority",
    "status": "status",
}


def _find(items, entity_id, resource: str, program_id: str):
    for index, item in enumerate(items):
        if item.id == str(entity_id):
            return index, item
    raise NotFoundError(resource, str(entity_id), program_id=program_id)


class BoardService:
    def __init__(self, partitions: PartitionStore):
        self.partitions = partitions
        self.state = partitions.state

    # ═════════════════════════════════════════════════════════════════════
    # TASKS
    # ═════════════════════════════════════════════════════════════════════

    def list_tasks(self, program_id) -> list[Task]:
        self.partitions.ensure_initialized(program_id)
        return self.partitions.flatten_tasks(program_id)

    @locked
    def add_task(self, program_id, draft: dict[str, Any]) -> Task | None:
        title = text_value(draft.get("title"), "title").strip()
        if not title:
            return None
        tasks = self.list_tasks(program_id)
        task = Task(
            id=new_id(t.id for t in tasks),
            program_id=str(program_id),
            title=title,
            description=text_value(draft.get("description"), "description"),
            status="Todo",
            assignee=text_value(draft.get("assignee"), "assignee"),
            due_date=normalize_date(draft.get("dueDate")),
            priority=draft.get("priority") or "Medium",
        )
        self.partitions.replace_tasks(program_id, [*tasks, task])
        logger.info("Task added id=%s program=%s", task.id, program_id, extra={"program_id": str(program_id)})
        return task

    @locked
    def update_task(self, program_id, task_id, patch: dict[str, Any]) -> Task | None:
        """Edit a task. An edit that blanks the title is ignored (returns None)."""
        tasks = self.list_tasks(program_id)
        index, current = _find(tasks, task_id, "Task", str(program_id))
        changes = {}
        for key, attr in _TASK_FIELDS.items():
            if key not in patch or patch[key] is None:
                continue
            value = patch[key]
            if attr in _TEXT_FIELDS:
                value = text_value(value, key)
            if attr == "title":
                value = value.strip()
                if not value:
                    return None
            elif attr == "due_date":
                value = normalize_date(value)
            changes[attr] = value
        updated = dataclasses.replace(current, **changes)
        tasks[index] = updated
        self.partitions.replace_tasks(program_id, tasks)
        return updated

    @locked
    def move_task(self, program_id, task_id, status: str) -> Task:
        tasks = self.list_tasks(program_id)
        index, current = _find(tasks, task_id, "Task", str(program_id))
        updated = dataclasses.replace(current, status=status)
        tasks[index] = updated
        self.partitions.replace_tasks(program_id, tasks)
        logger.debug("Task %s moved to %s", task_id, status)
        return updated

    @locked
    def delete_task(self, program_id, task_id) -> None:
        tasks = self.list_tasks(program_id)
        index, _ = _find(tasks, task_id, "Task", str(program_id))
        del tasks[index]
        self.partitions.replace_tasks(program_id, tasks)

    # ═════════════════════════════════════════════════════════════════════
    # BLOCKERS
    # ═════════════════════════════════════════════════════════════════════

    def list_blockers(self, program_id) -> list[Blocker]:
        self.partitions.ensure_initialized(program_id)
        return self.partitions.flatten_blockers(program_id)

    @locked
    def add_blocker(self, program_id, draft: dict[str, Any]) -> Blocker | None:
        title = text_value(draft.get("title"), "title").strip()
        start_date = normalize_date(draft.get("startDate"))
        if not title or not start_date:
            return None
        blockers = self.list_blockers(program_id)
        on_hold = flag_value(draft.get("isProjectOnHold"), "isProjectOnHold")
        hold_date = None
        if on_hold:
            hold_date = normalize_date(draft.get("projectHoldDate")) or today_iso()
        blocker = Blocker(
            id=new_id(b.id for b in blockers),
            program_id=str(program_id),
            title=title,
            start_date=start_date,
            description=text_value(draft.get("description"), "description"),
            impact=draft.get("impact") or "Medium",
            is_project_on_hold=on_hold,
            project_hold_date=hold_date,
            status="Active",
            resolution="",
        )
        self.partitions.replace_blockers(program_id, [*blockers, blocker])
        logger.info(
            "Blocker added id=%s program=%s on_hold=%s", blocker.id, program_id, on_hold,
            extra={"program_id": str(program_id)},
        )
        return blocker

    @locked
    def _replace_blocker(self, program_id, blocker_id, **changes) -> Blocker:
        blockers = self.list_blockers(program_id)
        index, current = _find(blockers, blocker_id, "Blocker", str(program_id))
        updated = dataclasses.replace(current, **changes)
        blockers[index] = updated
        self.partitions.replace_blockers(program_id, blockers)
        return updated

    def set_blocker_status(self, program_id, blocker_id, status: str) -> Blocker:
        return self._replace_blocker(program_id, blocker_id, status=status)

    @locked
    def set_project_hold(self, program_id, blocker_id, on_hold: bool, hold_date=None) -> Blocker:
        """Toggle "project on hold". Turning it on stamps today's date
        (or ``hold_date``); turning it off clears the date. ``on_hold``
        may be a bool or a yes/no word such as "false".
        """
        if flag_value(on_hold, "isProjectOnHold"):
            date_value = normalize_date(hold_date) or today_iso()
            return self._replace_blocker(
                program_id, blocker_id, is_project_on_hold=True, project_hold_date=date_value,
            )
        return self._replace_blocker(
            program_id, blocker_id, is_project_on_hold=False, project_hold_date=None,
        )

    @locked
    def resolve_blocker(self, program_id, blocker_id, resolution: str) -> Blocker:
        """Record a resolution note and mark the blocker Resolved."""
        note = text_value(resolution, "resolution").strip()
        return self._replace_blocker(program_id, blocker_id, resolution=note, status="Resolved")

    @locked
    def delete_blocker(self, program_id, blocker_id) -> None:
        blockers = self.list_blockers(program_id)
        index, _ = _find(blockers, blocker_id, "Blocker", str(program_id))
        del blockers[index]
        self.partitions.replace_blockers(program_id, blockers)

    # ═════════════════════════════════════════════════════════════════════
    # RISKS
    # ═════════════════════════════════════════════════════════════════════

    def list_risks(self, program_id) -> list[Risk]:
        self.partitions.ensure_initialized(program_id)
        return self.partitions.flatten_risks(program_id)

    @locked
    def add_risk(self, program_id, draft: dict[str, Any]) -> Risk | None:
        title = text_value(draft.get("title"), "title").strip()
        if not title:
            return None
        risks = self.list_risks(program_id)
        risk = Risk(
            id=new_id(r.id for r in risks),
            program_id=str(program_id),
            title=title,
            description=text_value(draft.get("description"), "description"),
            impact=draft.get("impact") or "Medium",
            probability=draft.get("probability") or "Medium",
            mitigation_plan=text_value(draft.get("mitigationPlan"), "mitigationPlan"),
            status="Open",
        )
        self.partitions.replace_risks(program_id, [*risks, risk])
        logger.info("Risk added id=%s program=%s", risk.id, program_id, extra={"program_id": str(program_id)})
        return risk

    @locked
    def set_risk_status(self, program_id, risk_id, status: str) -> Risk:
        risks = self.list_risks(program_id)
        index, current = _find(risks, risk_id, "Risk", str(program_id))
        updated = dataclasses.replace(current, status=status)
        risks[index] = updated
        self.partitions.replace_risks(program_id, risks)
        return updated

    @locked
    def delete_risk(self, program_id, risk_id) -> None:
        risks = self.list_risks(program_id)
        index, _ = _find(risks, risk_id, "Risk", str(program_id))
        del risks[index]
        self.partitions.replace_risks(program_id, risks)
