"""Status text builders for focus session snapshots."""

from __future__ import annotations

from focus import SessionSnapshot
from focus.constants import STATE_FINISHED, STATE_RUNNING
from records import Record, Task


def format_duration(seconds: int) -> str:
    """Format a duration in seconds as `MM:SS`."""
    minutes, remainder = divmod(max(0, int(seconds)), 60)
    return f"{minutes:02d}:{remainder:02d}"


def session_status_message(snapshot: SessionSnapshot) -> str:
    """Build a one-line status for the current session snapshot."""
    if snapshot.state == STATE_RUNNING:
        return (
            f"{snapshot.task_name}: {format_duration(snapshot.remaining_seconds)} remaining"
        )
    if snapshot.state == STATE_FINISHED:
        return f"{snapshot.task_name}: finished, well done!"
    return "Ready"


def record_progress_message(record: Record) -> str:
    percent = 0
    if record.target_minutes > 0:
        percent = round(100 * record.accumulated_minutes / record.target_minutes)
    return (
        f"{record.task_name} on {record.date.isoformat()}: "
        f"{record.accumulated_minutes}/{record.target_minutes} min ({percent}%)"
    )


def task_list_message(tasks: list[Task]) -> str:
    if not tasks:
        return "No tasks available."
    width = max(len(task.name) for task in tasks)
    return "\n".join(
        f"{task.name.ljust(width)}  target {task.target_minutes} min" for task in tasks
    )
