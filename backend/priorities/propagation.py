"""
Propagation Orchestrator.

Decides which tasks a priority change affects and recomputes their cached
effective priority. Every batch runs in one transaction and stops at the
first failing task, rolling back everything written so far.
"""

import logging
from typing import Optional

from django.db import transaction
from django.db.models import Q

from .exceptions import PropagationFailure
from .models import Goal, GoalProject, GoalTask, Project
from .resolver import EffectivePriorityResolver

logger = logging.getLogger(__name__)


class PropagationOrchestrator:

    def __init__(self, resolver: Optional[EffectivePriorityResolver] = None):
        self.resolver = resolver or EffectivePriorityResolver()

    def goal_tasks(self, goal: Goal):
        """Open tasks reached by a goal, directly or via an inheriting project."""
        direct = GoalTask.objects.filter(goal=goal).values('task_id')
        inherited = GoalProject.objects.filter(
            goal=goal,
            project__goals_inherit=True
        ).values('project_id')
        return self.resolver.task_queryset().open().filter(
            Q(pk__in=direct) | Q(project_id__in=inherited)
        ).order_by('pk')

    def team_tasks(self, team_id):
        return self.resolver.task_queryset().open().for_team(team_id).order_by('pk')

    def project_tasks(self, project: Project):
        return self.resolver.task_queryset().open().filter(project=project).order_by('pk')

    def propagate_goal(self, goal: Goal) -> int:
        """Recompute every open task the goal reaches. Returns the count touched."""
        touched = self._recompute(self.goal_tasks(goal), scope=f"goal {goal.pk}")
        logger.info("Goal %s (%s) propagated to %d task(s)", goal.pk, goal.priority, touched)
        return touched

    def recompute_team(self, team_id) -> int:
        """
        Recompute every open task in a team.

        The count is the number of tasks examined and written, so repeated
        runs over unchanged data report the same number.
        """
        touched = self._recompute(self.team_tasks(team_id), scope=f"team {team_id}")
        logger.info("Recomputed priorities for %d task(s) in team %s", touched, team_id)
        return touched

    def recompute_project(self, project: Project) -> int:
        touched = self._recompute(self.project_tasks(project), scope=f"project {project.pk}")
        logger.info("Recomputed priorities for %d task(s) in project %s", touched, project.pk)
        return touched

    def recompute_unresolved(self, team_id) -> int:
        """Resolve the open tasks of a team that have no cached score yet."""
        tasks = self.team_tasks(team_id).filter(effective_priority_score__isnull=True)
        touched = self._recompute(tasks, scope=f"unresolved tasks of team {team_id}")
        if touched:
            logger.info("Resolved %d uncached task(s) in team %s", touched, team_id)
        return touched

    def _recompute(self, tasks, scope: str) -> int:
        touched = 0
        with transaction.atomic():
            for task in tasks:
                try:
                    self.resolver.refresh(task)
                except Exception as exc:
                    logger.exception("Priority propagation for %s aborted at task %s", scope, task.pk)
                    raise PropagationFailure(scope, task.pk) from exc
                touched += 1
        return touched
