from typing import List, Optional
from datetime import date

from langchain_core.messages import SystemMessage

from trackhabit.domain.action.action_registry import ActionRegistry, action_registry
from trackhabit.domain.models.chat_state import ContextBundle, Fragment

WEEKDAYS = {
    "fr": ["lundi", "mardi", "mercredi", "jeudi", "vendredi", "samedi", "dimanche"],
    "en": ["Monday", "Tuesday", "Wednesday", "Thursday", "Friday", "Saturday", "Sunday"],
}

LANGUAGES = {
    "fr": "French",
    "en": "English",
}

INSTRUCTIONS = """You are Track Habit AI, an assistant for task management and productivity.
Today is {weekday} {today}. Resolve relative dates ("tomorrow", "next Monday") against it and write dates as YYYY-MM-DD.

You help the user to:
- organise their daily tasks
- create, update and delete tasks from their requests
- keep notes and reminders
- prioritise their work and answer productivity questions

Rules:
1. Always reply in {language}.
2. Be concise, helpful and encouraging.
3. Only act on tasks listed in the user context, and refer to them by their ID.

Available actions:
{actions}

{protocol}"""

TEXT_PROTOCOL = """When the user asks for one or more of these actions, end your reply with exactly one fenced block tagged json holding either one action object or an array of action objects. Every object has an "action" field naming the action. Example:
```json
{"action": "create_task", "title": "Buy milk", "priority": "medium"}
```
For general questions, reply normally without any JSON."""

TOOL_PROTOCOL = """When the user asks for one or more of these actions, call the matching tools. Never write action JSON in your reply text."""


def _render_fragment(title: str, fragment: Fragment, lines: List[str]) -> str:
    if not fragment.ok:
        body = "- unavailable"
    elif not lines:
        body = "- none"
    else:
        body = "\n".join(lines)
    return f"{title}:\n{body}"


def render_context(bundle: ContextBundle) -> str:
    """Textual rendering of the context bundle"""

    task_lines = [
        f'- [{task.id}] "{task.title}" ({task.status.value}, {task.priority.value}, {task.due_date or "none"})'
        for task in bundle.tasks.items
    ]
    note_lines = [
        f"- [{note.title or 'untitled'}] {note.content}"
        for note in bundle.notes.items
    ]
    team_lines = [
        f'- "{membership.team.name if membership.team else "unknown"}" ({membership.team_id})'
        for membership in bundle.teams.items
    ]

    return "\n\n".join([
        "User context:",
        _render_fragment("Tasks", bundle.tasks, task_lines),
        _render_fragment("Notes", bundle.notes, note_lines),
        _render_fragment("Teams", bundle.teams, team_lines),
    ])


def compose_system_prompt(
    bundle: ContextBundle,
    today: date,
    locale: str = "fr",
    tool_calls: bool = False,
    registry: Optional[ActionRegistry] = None
) -> SystemMessage:
    """Merge the instruction template, today's date and the context into one system message"""

    registry = registry or action_registry
    locale = locale if locale in WEEKDAYS else "en"

    actions = "\n".join(
        f"- {action['id']}: {action['description']}. Fields: {registry.describe_fields(action['id'])}"
        for action in registry.get_available_actions()
    )

    instructions = INSTRUCTIONS.format(
        weekday=WEEKDAYS[locale][today.weekday()],
        today=today.isoformat(),
        language=LANGUAGES[locale],
        actions=actions,
        protocol=TOOL_PROTOCOL if tool_calls else TEXT_PROTOCOL,
    )

    return SystemMessage(content=f"{instructions}\n\n{render_context(bundle)}")
