"""
Suggestion Generator.

Turns conflicts and high-priority orphan tasks into recommendations.
Conflict suggestions always come before orphan suggestions.
"""

from dataclasses import dataclass
from typing import Dict, List, Optional

from .conflicts import ConflictDetector
from .models import Task

ORPHAN_PRIORITIES = ('high', 'critical', 'urgent')

ACTION_RAISE_PRIORITY = 'raise_priority'
ACTION_LINK_TO_GOAL = 'link_to_goal'


@dataclass
class Suggestion:
    type: str
    priority: str
    task_id: int
    task_title: str
    action: str
    current_priority: str
    reason: str
    suggested_priority: Optional[str] = None

    def to_dict(self) -> Dict:
        result = {
            'type': self.type,
            'priority': self.priority,
            'task_id': self.task_id,
            'task_title': self.task_title,
            'action': self.action,
            'current_priority': self.current_priority,
            'reason': self.reason,
        }
        if self.suggested_priority is not None:
            result['suggested_priority'] = self.suggested_priority
        return result


class SuggestionGenerator:

    def __init__(self, detector: Optional[ConflictDetector] = None):
        self.detector = detector or ConflictDetector()

    def orphan_tasks(self, team_id):
        """Open high-priority tasks with no project and no linked goal."""
        return Task.objects.open().for_team(team_id).filter(
            priority__in=ORPHAN_PRIORITIES,
            project__isnull=True,
            goals__isnull=True,
        ).order_by('created_at', 'pk')

    def conflict_suggestions(self, team_id) -> List[Suggestion]:
        return [
            Suggestion(
                type='conflict',
                priority='high',
                task_id=conflict.task_id,
                task_title=conflict.task_title,
                action=ACTION_RAISE_PRIORITY,
                current_priority=conflict.task_priority,
                suggested_priority=conflict.goal_priority,
                reason=f'Task is linked to {conflict.goal_priority} priority goal "{conflict.goal_title}"',
            )
            for conflict in self.detector.detect(team_id)
        ]

    def orphan_suggestions(self, team_id) -> List[Suggestion]:
        return [
            Suggestion(
                type='orphan',
                priority='medium',
                task_id=task.pk,
                task_title=task.title,
                action=ACTION_LINK_TO_GOAL,
                current_priority=task.priority,
                reason='High priority task not linked to any goal',
            )
            for task in self.orphan_tasks(team_id)
        ]

    def generate(self, team_id) -> Dict:
        suggestions = self.conflict_suggestions(team_id) + self.orphan_suggestions(team_id)
        count = len(suggestions)
        return {
            'suggestions': [s.to_dict() for s in suggestions],
            'summary': (
                f"{count} priority suggestion{'' if count == 1 else 's'}"
                if count else 'No priority suggestions - all looks good!'
            )
        }
