"""
Priority Queue Ranker and team priority listing.

Both read the cached effective scores. The service resolves open tasks
without a cached score before calling them, so only terminal tasks in the
listing can still fall back to their own score.

The queue answers "what to work on next" with a deterministic ordering:

1. effective score, highest first; tasks without a cached score sort last
2. due date, earliest first; tasks without a due date sort last
3. creation time, oldest first

Ranks are positions in the returned list and are recomputed on every call.
"""

from typing import Dict, List, Optional

from django.db.models import F, Q

from .models import Task
from .scoring import decode_score


def cached_effective_score(task: Task) -> float:
    """The cached effective score, or the own score while nothing is cached."""
    if task.effective_priority_score is None:
        return task.priority_score
    return task.effective_priority_score


def goal_names(task: Task) -> str:
    return ', '.join(goal.title for goal in sorted(task.goals.all(), key=lambda goal: goal.pk))


def task_row(task: Task) -> Dict:
    """Display fields shared by the queue and the team listing."""
    score = cached_effective_score(task)
    assignee = task.assigned_to
    return {
        'task_id': task.pk,
        'title': task.title,
        'priority': task.priority,
        'effective_score': score,
        'effective_priority': decode_score(score),
        'has_priority_conflict': task.has_priority_conflict,
        'priority_source': task.priority_source,
        'status': task.status,
        'is_blocked': task.is_blocked,
        'due_at': task.due_at.isoformat() if task.due_at else None,
        'assigned_to': assignee.pk if assignee else None,
        'assigned_to_name': (assignee.get_full_name() or assignee.get_username()) if assignee else None,
        'project_name': task.project.name if task.project else None,
        'goal_names': goal_names(task),
    }


def _base_queryset(team_id):
    return Task.objects.for_team(team_id).select_related(
        'project', 'assigned_to'
    ).prefetch_related('goals')


class PriorityQueueRanker:

    def ranked_queryset(
        self,
        team_id,
        assignee_id: Optional[int] = None,
        exclude_blocked: bool = True
    ):
        tasks = _base_queryset(team_id).open()
        if assignee_id is not None:
            # Unassigned work is open to everyone
            tasks = tasks.filter(Q(assigned_to_id=assignee_id) | Q(assigned_to__isnull=True))
        if exclude_blocked:
            tasks = tasks.filter(is_blocked=False)
        return tasks.order_by(
            F('effective_priority_score').desc(nulls_last=True),
            F('due_at').asc(nulls_last=True),
            'created_at',
            'pk',
        )

    def rank(
        self,
        team_id,
        assignee_id: Optional[int] = None,
        exclude_blocked: bool = True,
        limit: int = 10
    ) -> List[Dict]:
        tasks = self.ranked_queryset(team_id, assignee_id, exclude_blocked)[:limit]
        return [
            {'rank': position, **task_row(task)}
            for position, task in enumerate(tasks, 1)
        ]


def team_priorities(team_id, limit: int = 50, include_completed: bool = False) -> List[Dict]:
    """Reporting view of a team's tasks by effective score, then age."""
    tasks = _base_queryset(team_id)
    if not include_completed:
        tasks = tasks.open()
    tasks = tasks.order_by(
        F('effective_priority_score').desc(nulls_last=True),
        'created_at',
        'pk',
    )[:limit]

    rows = []
    for task in tasks:
        row = task_row(task)
        row['task_priority'] = row.pop('priority')
        rows.append(row)
    return rows
