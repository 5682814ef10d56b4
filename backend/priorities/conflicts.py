"""
Conflict Detector.

A task is in conflict when a goal reaching it carries a higher score than the
task's own priority. Conflicts are detected against live goal and project
state, so the report is correct even when a task's cache is stale.
"""

from dataclasses import dataclass
from typing import Dict, List, Optional

from .resolver import EffectivePriorityResolver
from .scoring import CRITICAL_PRIORITIES


@dataclass
class PriorityConflict:
    """An open task whose own priority understates a goal it serves."""
    task_id: int
    task_title: str
    task_priority: str
    goal_id: int
    goal_title: str
    goal_priority: str
    goal_priority_score: float
    source: str
    project_name: Optional[str] = None

    @property
    def is_critical(self) -> bool:
        return self.goal_priority in CRITICAL_PRIORITIES

    @property
    def suggestion(self) -> str:
        return f"Consider raising task priority to {self.goal_priority}"

    def to_dict(self) -> Dict:
        return {
            'task_id': self.task_id,
            'task_title': self.task_title,
            'task_priority': self.task_priority,
            'goal_id': self.goal_id,
            'goal_title': self.goal_title,
            'goal_priority': self.goal_priority,
            'goal_priority_score': self.goal_priority_score,
            'source': self.source,
            'project_name': self.project_name,
            'suggestion': self.suggestion,
        }


class ConflictDetector:

    def __init__(self, resolver: Optional[EffectivePriorityResolver] = None):
        self.resolver = resolver or EffectivePriorityResolver()

    def detect(self, team_id) -> List[PriorityConflict]:
        """
        List the open tasks of a team that are in conflict.

        Each conflict names one goal holding the maximal reaching score. When
        several goals tie at that score, which one is named is unspecified.
        Ordered by goal score (highest first), then task title.
        """
        tasks = self.resolver.task_queryset().open().for_team(team_id)

        conflicts = []
        for task in tasks:
            resolved = self.resolver.resolve_task(task)
            if not resolved.conflict:
                continue
            conflicts.append(PriorityConflict(
                task_id=task.pk,
                task_title=task.title,
                task_priority=resolved.task_priority,
                goal_id=resolved.goal_id,
                goal_title=resolved.goal_title,
                goal_priority=resolved.goal_priority,
                goal_priority_score=resolved.max_goal_score,
                source=resolved.source.value,
                project_name=task.project.name if task.project else None,
            ))

        conflicts.sort(key=lambda c: (-c.goal_priority_score, c.task_title, c.task_id))
        return conflicts

    def summary(self, team_id) -> Dict:
        """Conflicts of a team with counts split by critical/urgent goals."""
        conflicts = self.detect(team_id)

        if not conflicts:
            return {
                'has_conflicts': False,
                'conflict_count': 0,
                'critical_conflict_count': 0,
                'other_conflict_count': 0,
                'summary': 'No priority conflicts detected.',
                'conflicts': []
            }

        critical_count = sum(1 for c in conflicts if c.is_critical)
        count = len(conflicts)

        summary = f"{count} task{' has' if count == 1 else 's have'} priority conflicts. "
        if critical_count:
            summary += (
                f"{critical_count} critical/urgent goal conflict"
                f"{'' if critical_count == 1 else 's'} to resolve first."
            )
        else:
            summary += "No critical goals affected."

        return {
            'has_conflicts': True,
            'conflict_count': count,
            'critical_conflict_count': critical_count,
            'other_conflict_count': count - critical_count,
            'summary': summary,
            'conflicts': [c.to_dict() for c in conflicts]
        }
