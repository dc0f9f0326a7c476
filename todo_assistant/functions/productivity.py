"""Productivity analysis over a user's tasks."""

from datetime import date, datetime, timedelta, timezone
from typing import Any, Dict, List, Optional

from todo_assistant.persistence.models import Task

DEFAULT_WINDOW_DAYS = 30


def analyze_tasks(
    tasks: List[Task],
    start_date: Optional[date] = None,
    end_date: Optional[date] = None,
    today: Optional[date] = None,
) -> Dict[str, Any]:
    """
    Summarize completion statistics for tasks created inside a date window.

    Overdue tasks are counted regardless of the window: any incomplete task
    whose due date lies before ``today``.
    """
    today = today or datetime.now(timezone.utc).date()
    end = end_date or today
    start = start_date or (end - timedelta(days=DEFAULT_WINDOW_DAYS))

    in_window = [t for t in tasks if start <= t.created_at.date() <= end]
    completed = [t for t in in_window if t.completed]
    incomplete = [t for t in in_window if not t.completed]
    overdue = [t for t in tasks if not t.completed and t.due_date is not None and t.due_date < today]

    total = len(completed) + len(incomplete)
    completion_rate = (len(completed) / total) * 100 if total > 0 else 0.0

    completed_by_priority = {
        priority: sum(1 for t in completed if t.priority == priority)
        for priority in ("high", "medium", "low")
    }

    # updated_at of a completed task is when it was last touched, i.e. completed
    completion_days = [
        (t.updated_at - t.created_at).total_seconds() / 86400 for t in completed
    ]
    avg_completion = sum(completion_days) / len(completion_days) if completion_days else 0.0

    return {
        "period": {
            "startDate": start.isoformat(),
            "endDate": end.isoformat(),
        },
        "summary": {
            "totalTasks": total,
            "completedTasks": len(completed),
            "incompleteTasks": len(incomplete),
            "overdueTasks": len(overdue),
            "completionRate": f"{completion_rate:.2f}%",
        },
        "details": {
            "completedByPriority": completed_by_priority,
            "avgCompletionTime": f"{avg_completion:.2f} days",
        },
        "recommendations": recommendations(incomplete, overdue, completion_rate),
    }


def recommendations(
    incomplete: List[Task],
    overdue: List[Task],
    completion_rate: float,
) -> List[str]:
    """Rule-based advice derived from the statistics."""
    advice: List[str] = []

    if completion_rate < 50:
        advice.append(
            "Your task completion rate is below 50%. Consider breaking down tasks "
            "into smaller, more manageable items."
        )

    if overdue:
        advice.append(
            f"You have {len(overdue)} overdue tasks. Consider reviewing and rescheduling these tasks."
        )
        if len(overdue) > 5:
            advice.append(
                "You have a high number of overdue tasks. Try focusing on completing "
                "these before adding new tasks."
            )

    high_priority_open = sum(1 for t in incomplete if t.priority == "high")
    if high_priority_open > 0:
        advice.append(
            f"You have {high_priority_open} high priority tasks incomplete. "
            "Consider focusing on these first."
        )

    if completion_rate > 80:
        advice.append(
            "Great job on your high completion rate! Consider taking on more challenging tasks."
        )

    return advice
