"""
Effective Priority Resolver.

Loads a task together with the goals that reach it and resolves its effective
priority with the rules in ``scoring``. Resolution is a pure read; writing the
result back is a separate, explicit step (``persist``).
"""

import logging
from typing import List

from .exceptions import NotFound
from .models import Task
from .scoring import (
    PrioritySource,
    ReachingGoal,
    ResolvedPriority,
    resolve_effective_priority,
)

logger = logging.getLogger(__name__)


class EffectivePriorityResolver:
    """Resolves and caches the effective priority of tasks."""

    def task_queryset(self):
        """Tasks with their project and reaching goals loaded up front."""
        return Task.objects.select_related('project').prefetch_related('goals', 'project__goals')

    def reaching_goals(self, task: Task) -> List[ReachingGoal]:
        """
        Goals reaching a task: direct links first, then the goals of an
        inheriting project. A goal linked both ways is reported once, as direct.
        """
        direct = sorted(task.goals.all(), key=lambda goal: goal.pk)
        reaching = [ReachingGoal(goal, PrioritySource.GOAL) for goal in direct]

        project = task.project
        if project is not None and project.goals_inherit:
            seen = {goal.pk for goal in direct}
            for goal in sorted(project.goals.all(), key=lambda goal: goal.pk):
                if goal.pk not in seen:
                    reaching.append(ReachingGoal(goal, PrioritySource.PROJECT))
        return reaching

    def resolve_task(self, task: Task) -> ResolvedPriority:
        return resolve_effective_priority(task.pk, task.priority, self.reaching_goals(task))

    def get_task(self, task_id) -> Task:
        try:
            return self.task_queryset().get(pk=task_id)
        except Task.DoesNotExist:
            raise NotFound('task', task_id)

    def resolve(self, task_id) -> ResolvedPriority:
        """Resolve a task by id. Raises NotFound for unknown ids."""
        return self.resolve_task(self.get_task(task_id))

    def persist(self, task: Task, resolved: ResolvedPriority) -> bool:
        """
        Write the derived fields of one task in a single UPDATE.

        The write only applies while the stored label is still the one the
        task was loaded with. Returns False when the label changed since.
        """
        fields = resolved.derived_fields()
        written = Task.objects.filter(pk=task.pk, priority=task.priority).update(**fields)
        if not written:
            return False
        for name, value in fields.items():
            setattr(task, name, value)
        logger.debug(
            "Task %s effective priority %.2f (%s, conflict=%s)",
            task.pk, resolved.effective_score, resolved.source.value, resolved.conflict
        )
        return True

    def refresh(self, task: Task) -> ResolvedPriority:
        """
        Resolve a task and persist the result.

        A task whose label changed after it was loaded is reloaded and
        resolved again, so the cache never mixes the old label with the new.
        """
        resolved = self.resolve_task(task)
        if self.persist(task, resolved):
            return resolved

        current = self.task_queryset().filter(pk=task.pk).first()
        if current is None:
            logger.debug("Task %s deleted before its priority was written", task.pk)
            return resolved

        logger.debug("Task %s label changed to %s, resolving again", task.pk, current.priority)
        resolved = self.resolve_task(current)
        if self.persist(current, resolved):
            task.priority = current.priority
            task.priority_score = current.priority_score
            for name, value in resolved.derived_fields().items():
                setattr(task, name, value)
        return resolved
