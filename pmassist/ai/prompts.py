"""
Prompt construction for the AI assistant.

Pure data transformation: a reduced snapshot of the program and its board
is rendered into one of four fixed prompts. Nothing here mutates an entity.

Kinds:
    status    — comprehensive status report
    risks     — risk analysis
    timeline  — timeline review
    custom    — the user's text, verbatim (empty text is allowed)
"""

import json

from pmassist.core.exceptions import ValidationError

PROMPT_KINDS = ("status", "risks", "timeline", "custom")

_STATUS_TEMPLATE = """Please generate a comprehensive status report for the program "{name}". Include:
1. Overall program health
2. Key milestones and their status
3. Task completion metrics
4. Major blockers or concerns
5. Recommendations for improvement

Program Data:
{data}"""

_RISKS_TEMPLATE = """Analyze the risks for the program "{name}" and provide:
1. Risk assessment summary
2. Top 3 critical risks that need immediate attention
3. Effectiveness of current mitigation plans
4. Recommendations for additional risk mitigation
5. Potential upcoming risks based on the program status

Risk Data:
{data}"""

_TIMELINE_TEMPLATE = """Review the program timeline for "{name}" and provide:
1. Timeline health assessment
2. Key dates and milestones
3. Potential schedule risks
4. Recovery recommendations for delayed items
5. Resource allocation suggestions

Timeline Data:
{data}"""


def _dump(value) -> str:
    return json.dumps(value, indent=2, ensure_ascii=False)


def build_snapshot(program, tasks=(), risks=(), blockers=()) -> dict:
    """Reduced, JSON-ready view of a program for prompting."""
    snapshot = {
        "name": program.name,
        "description": program.description,
        "status": program.status,
        "startDate": program.start_date,
        "endDate": program.end_date,
        "budget": program.budget,
        "tasks": [
            {
                "title": t.title,
                "status": t.status,
                "priority": t.priority,
                "dueDate": t.due_date,
                "assignee": t.assignee,
            }
            for t in tasks
        ],
        "risks": [
            {
                "title": r.title,
                "impact": r.impact,
                "probability": r.probability,
                "status": r.status,
                "mitigationPlan": r.mitigation_plan,
            }
            for r in risks
        ],
    }
    if blockers:
        snapshot["blockers"] = [
            {
                "title": b.title,
                "impact": b.impact,
                "status": b.status,
                "startDate": b.start_date,
                "isProjectOnHold": b.is_project_on_hold,
                "resolution": b.resolution,
            }
            for b in blockers
        ]
    return snapshot


def build_prompt(kind: str, program, tasks=(), risks=(), blockers=(), custom_prompt: str = "") -> str:
    """Render the prompt for ``kind``.

    Raises:
        ValidationError: unknown kind.
    """
    if kind not in PROMPT_KINDS:
        raise ValidationError(
            f"Invalid prompt kind: {kind!r}. Allowed: {list(PROMPT_KINDS)}",
            details={"kind": kind},
        )
    if kind == "custom":
        return custom_prompt or ""

    snapshot = build_snapshot(program, tasks, risks, blockers)
    if kind == "status":
        return _STATUS_TEMPLATE.format(name=program.name, data=_dump(snapshot))
    if kind == "risks":
        data = _dump(snapshot["risks"])
        if "blockers" in snapshot:
            data += "\n\nBlocker Data:\n" + _dump(snapshot["blockers"])
        return _RISKS_TEMPLATE.format(name=program.name, data=data)
    timeline = {
        "startDate": program.start_date,
        "endDate": program.end_date,
        "tasks": snapshot["tasks"],
    }
    return _TIMELINE_TEMPLATE.format(name=program.name, data=_dump(timeline))
