"""Tests for productivity analysis."""

from datetime import date, datetime, timedelta, timezone

from todo_assistant.functions.productivity import analyze_tasks
from todo_assistant.persistence.models import Task

TODAY = date(2024, 6, 30)


def _task(task_id, completed=False, priority="medium", created_days_ago=1, took_days=0.0, due=None):
    created = datetime(2024, 6, 30, 12, tzinfo=timezone.utc) - timedelta(days=created_days_ago)
    return Task(
        id=task_id,
        user_id="user-1",
        title=f"Task {task_id}",
        completed=completed,
        priority=priority,
        due_date=due,
        created_at=created,
        updated_at=created + timedelta(days=took_days),
    )


def test_empty_task_list():
    result = analyze_tasks([], today=TODAY)

    assert result["summary"] == {
        "totalTasks": 0,
        "completedTasks": 0,
        "incompleteTasks": 0,
        "overdueTasks": 0,
        "completionRate": "0.00%",
    }
    assert result["period"] == {"startDate": "2024-05-31", "endDate": "2024-06-30"}
    # 0% completion is below half
    assert len(result["recommendations"]) == 1


def test_summary_and_details():
    tasks = [
        _task("1", completed=True, priority="high", took_days=2),
        _task("2", completed=True, priority="low", took_days=4),
        _task("3", completed=True, priority="high", took_days=0),
        _task("4", priority="high"),
    ]

    result = analyze_tasks(tasks, today=TODAY)

    assert result["summary"]["totalTasks"] == 4
    assert result["summary"]["completionRate"] == "75.00%"
    assert result["details"]["completedByPriority"] == {"high": 2, "medium": 0, "low": 1}
    assert result["details"]["avgCompletionTime"] == "2.00 days"


def test_window_excludes_old_tasks_but_overdue_counts_all():
    tasks = [
        _task("recent", completed=True),
        _task("ancient", created_days_ago=90, due=date(2024, 3, 1)),
    ]

    result = analyze_tasks(tasks, today=TODAY)

    assert result["summary"]["totalTasks"] == 1
    assert result["summary"]["overdueTasks"] == 1
    assert "1 overdue tasks" in " ".join(result["recommendations"])


def test_explicit_range():
    tasks = [_task("a", created_days_ago=10), _task("b", created_days_ago=40)]

    result = analyze_tasks(tasks, start_date=date(2024, 5, 1), end_date=date(2024, 5, 31), today=TODAY)

    assert result["summary"]["totalTasks"] == 1
    assert result["period"] == {"startDate": "2024-05-01", "endDate": "2024-05-31"}


def test_recommendations():
    many_overdue = [_task(str(i), due=date(2024, 6, 1)) for i in range(6)]
    advice = analyze_tasks(many_overdue, today=TODAY)["recommendations"]

    assert any("below 50%" in a for a in advice)
    assert any("6 overdue tasks" in a for a in advice)
    assert any("high number of overdue" in a for a in advice)

    great = [_task(str(i), completed=True) for i in range(5)]
    advice = analyze_tasks(great, today=TODAY)["recommendations"]
    assert advice == [
        "Great job on your high completion rate! Consider taking on more challenging tasks."
    ]
