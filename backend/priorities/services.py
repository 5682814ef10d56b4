"""
Priority Service.

The operations the rest of the product calls: setting goal and task
priorities, resolving a task, reporting conflicts and suggestions, and
producing the team priority queue. Mutations recompute the affected task
caches synchronously.
"""

import logging
from typing import Dict, List, Optional

from django.conf import settings
from django.db import transaction

from .conflicts import ConflictDetector
from .exceptions import NotFound
from .models import Goal, Project, Task
from .propagation import PropagationOrchestrator
from .ranking import PriorityQueueRanker, team_priorities
from .resolver import EffectivePriorityResolver
from .scoring import decode_score, encode_priority
from .suggestions import SuggestionGenerator

logger = logging.getLogger(__name__)

DEFAULT_LIMITS = {
    'TEAM_PRIORITIES_LIMIT': 50,
    'QUEUE_LIMIT': 10,
    'MAX_LIMIT': 200,
}


def engine_setting(name: str) -> int:
    return getattr(settings, 'PRIORITY_ENGINE', {}).get(name, DEFAULT_LIMITS[name])


def clamp_limit(limit: Optional[int], default_name: str) -> int:
    if limit is None:
        return engine_setting(default_name)
    return max(1, min(int(limit), engine_setting('MAX_LIMIT')))


class PriorityService:
    """Facade over the resolver, propagation, conflicts, suggestions and ranking."""

    def __init__(self):
        self.resolver = EffectivePriorityResolver()
        self.propagation = PropagationOrchestrator(self.resolver)
        self.detector = ConflictDetector(self.resolver)
        self.suggestions = SuggestionGenerator(self.detector)
        self.ranker = PriorityQueueRanker()

    # ==================== Codec ====================

    def encode_priority(self, priority: Optional[str]) -> float:
        return encode_priority(priority)

    def decode_score(self, score: float) -> str:
        return decode_score(score)

    # ==================== Goals ====================

    def get_goal_priority(self, goal_id) -> Dict:
        try:
            goal = Goal.objects.get(pk=goal_id)
        except Goal.DoesNotExist:
            raise NotFound('goal', goal_id)
        return {
            'goal_id': goal.pk,
            'title': goal.title,
            'priority': goal.priority,
            'priority_score': goal.priority_score,
        }

    def set_goal_priority(self, goal_id, priority: Optional[str]) -> Dict:
        """
        Set a goal's priority and propagate it to the tasks it reaches.

        The goal update and the propagation commit together. If any task
        fails to recompute, nothing is committed and PropagationFailure is
        raised.
        """
        with transaction.atomic():
            try:
                goal = Goal.objects.select_for_update().get(pk=goal_id)
            except Goal.DoesNotExist:
                raise NotFound('goal', goal_id)

            previous = goal.priority
            goal.priority = priority
            goal.save(update_fields=['priority', 'updated_at'])
            affected = self.propagation.propagate_goal(goal)

        logger.info("Goal %s priority %s -> %s", goal.pk, previous, goal.priority)
        return {
            'goal_id': goal.pk,
            'priority': goal.priority,
            'priority_score': goal.priority_score,
            'affected_task_count': affected,
        }

    # ==================== Tasks ====================

    def resolve_task_priority(self, task_id) -> Dict:
        """Resolve a task from live goal and project state without writing."""
        return self.resolver.resolve(task_id).to_dict()

    def get_task_priority(self, task_id) -> Dict:
        """
        Read a task's priority from its cache.

        A task that was never resolved is resolved now and its cache written.
        """
        task = self.resolver.get_task(task_id)
        if task.effective_priority_score is None:
            return self.resolver.refresh(task).to_dict()
        return {
            'task_id': task.pk,
            'task_priority': task.priority,
            'own_score': task.priority_score,
            'effective_score': task.effective_priority_score,
            'effective_priority': task.effective_priority or decode_score(task.effective_priority_score),
            'conflict': task.has_priority_conflict,
            'source': task.priority_source,
        }

    def set_task_priority(self, task_id, priority: Optional[str]) -> Dict:
        """Change a task's own priority and recompute its cache."""
        with transaction.atomic():
            task = self.resolver.get_task(task_id)
            task.priority = priority
            task.save(update_fields=['priority', 'updated_at'])
            resolved = self.resolver.refresh(task)

        logger.info("Task %s own priority set to %s", task.pk, task.priority)
        return resolved.to_dict()

    # ==================== Projects ====================

    def set_project_inheritance(self, project_id, enabled: bool) -> Dict:
        """Turn goal inheritance on or off for a project and recompute its tasks."""
        with transaction.atomic():
            try:
                project = Project.objects.select_for_update().get(pk=project_id)
            except Project.DoesNotExist:
                raise NotFound('project', project_id)

            project.goals_inherit = enabled
            project.save(update_fields=['goals_inherit'])
            affected = self.propagation.recompute_project(project)

        return {
            'project_id': project.pk,
            'goals_inherit': project.goals_inherit,
            'affected_task_count': affected,
        }

    # ==================== Teams ====================

    def list_team_priorities(
        self,
        team_id,
        limit: Optional[int] = None,
        include_completed: bool = False
    ) -> List[Dict]:
        self.propagation.recompute_unresolved(team_id)
        return team_priorities(
            team_id,
            limit=clamp_limit(limit, 'TEAM_PRIORITIES_LIMIT'),
            include_completed=include_completed
        )

    def detect_conflicts(self, team_id) -> List[Dict]:
        return [conflict.to_dict() for conflict in self.detector.detect(team_id)]

    def conflict_summary(self, team_id) -> Dict:
        return self.detector.summary(team_id)

    def recompute_team(self, team_id) -> Dict:
        updated = self.propagation.recompute_team(team_id)
        return {
            'updated_count': updated,
            'message': f"Recomputed priorities for {updated} tasks"
        }

    def suggest_priorities(self, team_id) -> Dict:
        return self.suggestions.generate(team_id)

    def priority_queue(
        self,
        team_id,
        assignee_id: Optional[int] = None,
        exclude_blocked: bool = True,
        limit: Optional[int] = None
    ) -> List[Dict]:
        """Ranked open tasks. Tasks never resolved are resolved first."""
        self.propagation.recompute_unresolved(team_id)
        return self.ranker.rank(
            team_id,
            assignee_id=assignee_id,
            exclude_blocked=exclude_blocked,
            limit=clamp_limit(limit, 'QUEUE_LIMIT')
        )
