"""
Unit Tests for the Goal Priority Engine.

Covers the score codec, effective priority resolution, propagation of goal
priority changes, conflict detection, suggestions, the priority queue and
the REST endpoints.
"""

from datetime import timedelta
from types import SimpleNamespace
from unittest.mock import patch

from django.contrib.auth import get_user_model
from django.core.cache import cache
from django.test import TestCase
from django.utils import timezone
from rest_framework import status
from rest_framework.test import APITestCase

from .exceptions import NotFound, PropagationFailure
from .models import Goal, Project, Task, Team
from .resolver import EffectivePriorityResolver
from .scoring import (
    PrioritySource,
    ReachingGoal,
    decode_score,
    encode_priority,
    normalize_priority,
    resolve_effective_priority,
)
from .services import PriorityService


DERIVED_FIELDS = (
    'pk',
    'priority_score',
    'effective_priority_score',
    'effective_priority',
    'has_priority_conflict',
    'priority_source',
)


class PriorityFixtureMixin:
    """Helpers for building teams, goals, projects and tasks."""

    def make_team(self, name='Team'):
        return Team.objects.create(name=name)

    def make_goal(self, title, priority='medium', team=None):
        return Goal.objects.create(team=team or self.team, title=title, priority=priority)

    def make_project(self, name='Project', goals_inherit=True, team=None):
        return Project.objects.create(team=team or self.team, name=name, goals_inherit=goals_inherit)

    def make_task(self, title, priority='medium', team=None, **fields):
        return Task.objects.create(team=team or self.team, title=title, priority=priority, **fields)

    def reload(self, task):
        return Task.objects.get(pk=task.pk)


# ==================== Score Codec ====================

class ScoreCodecTests(TestCase):
    """Tests for label/score conversion."""

    def test_label_scores(self):
        """Each known label maps to its fixed score."""
        self.assertEqual(encode_priority('critical'), 1.00)
        self.assertEqual(encode_priority('urgent'), 1.00)
        self.assertEqual(encode_priority('high'), 0.75)
        self.assertEqual(encode_priority('medium'), 0.50)
        self.assertEqual(encode_priority('low'), 0.25)

    def test_labels_are_case_insensitive(self):
        self.assertEqual(encode_priority('HIGH'), 0.75)
        self.assertEqual(encode_priority(' Critical '), 1.00)

    def test_unknown_labels_degrade_to_medium(self):
        """Unknown or missing labels are not errors; they score as medium."""
        for label in (None, '', 'whenever', 'p0', 42):
            self.assertEqual(encode_priority(label), 0.50)

    def test_decode_thresholds(self):
        self.assertEqual(decode_score(1.0), 'critical')
        self.assertEqual(decode_score(0.90), 'critical')
        self.assertEqual(decode_score(0.89), 'high')
        self.assertEqual(decode_score(0.65), 'high')
        self.assertEqual(decode_score(0.64), 'medium')
        self.assertEqual(decode_score(0.40), 'medium')
        self.assertEqual(decode_score(0.39), 'low')
        self.assertEqual(decode_score(0.0), 'low')

    def test_round_trip_preserves_label_family(self):
        """Decoding an encoded label lands in the same family."""
        expected = {
            'critical': 'critical',
            'urgent': 'critical',
            'high': 'high',
            'medium': 'medium',
            'low': 'low',
        }
        for label, family in expected.items():
            self.assertEqual(decode_score(encode_priority(label)), family)

    def test_normalize_keeps_urgent(self):
        """Urgent only collapses into critical at the score level."""
        self.assertEqual(normalize_priority('Urgent'), 'urgent')
        self.assertEqual(normalize_priority('nonsense'), 'medium')


# ==================== Resolution Rules ====================

class ResolutionRuleTests(TestCase):
    """Tests for the pure resolution rules, without the database."""

    def goal(self, goal_id, priority):
        return SimpleNamespace(id=goal_id, title=f'Goal {goal_id}', priority=priority)

    def test_no_reaching_goals(self):
        resolved = resolve_effective_priority(1, 'high', [])

        self.assertEqual(resolved.effective_score, 0.75)
        self.assertFalse(resolved.conflict)
        self.assertEqual(resolved.source, PrioritySource.MANUAL)
        self.assertIsNone(resolved.max_goal_score)

    def test_higher_goal_raises_effective_score(self):
        reaching = [ReachingGoal(self.goal(1, 'critical'), PrioritySource.GOAL)]
        resolved = resolve_effective_priority(1, 'low', reaching)

        self.assertEqual(resolved.own_score, 0.25)
        self.assertEqual(resolved.effective_score, 1.0)
        self.assertTrue(resolved.conflict)
        self.assertEqual(resolved.source, PrioritySource.GOAL)
        self.assertEqual(resolved.goal_id, 1)

    def test_own_score_can_dominate_goals(self):
        """A task above all its goals keeps its own score and has no conflict."""
        reaching = [ReachingGoal(self.goal(1, 'low'), PrioritySource.GOAL)]
        resolved = resolve_effective_priority(1, 'high', reaching)

        self.assertEqual(resolved.effective_score, 0.75)
        self.assertFalse(resolved.conflict)
        self.assertEqual(resolved.source, PrioritySource.MANUAL)
        self.assertEqual(resolved.max_goal_score, 0.25)

    def test_equal_scores_are_not_a_conflict(self):
        reaching = [ReachingGoal(self.goal(1, 'high'), PrioritySource.PROJECT)]
        resolved = resolve_effective_priority(1, 'high', reaching)

        self.assertFalse(resolved.conflict)
        self.assertEqual(resolved.source, PrioritySource.MANUAL)

    def test_maximum_goal_wins(self):
        reaching = [
            ReachingGoal(self.goal(1, 'medium'), PrioritySource.GOAL),
            ReachingGoal(self.goal(2, 'high'), PrioritySource.PROJECT),
            ReachingGoal(self.goal(3, 'low'), PrioritySource.GOAL),
        ]
        resolved = resolve_effective_priority(1, 'low', reaching)

        self.assertEqual(resolved.effective_score, 0.75)
        self.assertEqual(resolved.source, PrioritySource.PROJECT)
        self.assertEqual(resolved.goal_id, 2)

    def test_direct_link_preferred_on_tie(self):
        reaching = [
            ReachingGoal(self.goal(1, 'high'), PrioritySource.PROJECT),
            ReachingGoal(self.goal(2, 'high'), PrioritySource.GOAL),
        ]
        resolved = resolve_effective_priority(1, 'low', reaching)

        self.assertEqual(resolved.source, PrioritySource.GOAL)

    def test_derived_fields(self):
        reaching = [ReachingGoal(self.goal(1, 'urgent'), PrioritySource.GOAL)]
        fields = resolve_effective_priority(1, 'medium', reaching).derived_fields()

        self.assertEqual(fields, {
            'effective_priority_score': 1.0,
            'effective_priority': 'critical',
            'has_priority_conflict': True,
            'priority_source': 'goal',
        })


# ==================== Models ====================

class ModelInvariantTests(PriorityFixtureMixin, TestCase):
    """Scores are always derived from labels when saving."""

    def setUp(self):
        self.team = self.make_team()

    def test_goal_score_follows_label(self):
        goal = self.make_goal('Launch', priority='High')
        self.assertEqual(goal.priority, 'high')
        self.assertEqual(goal.priority_score, 0.75)

        goal.priority = 'critical'
        goal.save(update_fields=['priority'])
        goal.refresh_from_db()
        self.assertEqual(goal.priority_score, 1.0)

    def test_unknown_label_stored_as_medium(self):
        goal = self.make_goal('Vague', priority='someday')
        self.assertEqual(goal.priority, 'medium')
        self.assertEqual(goal.priority_score, 0.50)

    def test_task_own_score_follows_label(self):
        task = self.make_task('Draft budget', priority='low')
        self.assertEqual(task.priority_score, 0.25)
        self.assertIsNone(task.effective_priority_score)

        task.priority = 'urgent'
        task.save(update_fields=['priority'])
        self.assertEqual(self.reload(task).priority_score, 1.0)

    def test_open_excludes_terminal_statuses(self):
        open_task = self.make_task('Open')
        self.make_task('Done', status=Task.STATUS_DONE)
        self.make_task('Archived', status=Task.STATUS_ARCHIVED)

        self.assertEqual(list(Task.objects.open()), [open_task])
        self.assertTrue(open_task.is_open)


# ==================== Resolver ====================

class EffectivePriorityResolverTests(PriorityFixtureMixin, TestCase):
    """Tests for resolving tasks against stored goals and projects."""

    def setUp(self):
        self.team = self.make_team()
        self.resolver = EffectivePriorityResolver()

    def test_task_without_goals(self):
        task = self.make_task('Solo', priority='high')
        resolved = self.resolver.resolve(task.pk)

        self.assertEqual(resolved.effective_score, resolved.own_score)
        self.assertFalse(resolved.conflict)
        self.assertEqual(resolved.source, PrioritySource.MANUAL)

    def test_direct_goal_scenario(self):
        """Critical goal linked to a low task: effective 1.0, conflict, source goal."""
        goal = self.make_goal('Q1 Revenue', priority='critical')
        task = self.make_task('Draft budget', priority='low')
        task.goals.add(goal)

        resolved = self.resolver.resolve(task.pk)

        self.assertEqual(resolved.effective_score, 1.0)
        self.assertTrue(resolved.conflict)
        self.assertEqual(resolved.source, PrioritySource.GOAL)
        self.assertEqual(resolved.goal_title, 'Q1 Revenue')

    def test_project_inheritance_scenario(self):
        """Goal reaches a task through an inheriting project."""
        project = self.make_project('P', goals_inherit=True)
        goal = self.make_goal('Launch', priority='high')
        goal.projects.add(project)
        task = self.make_task('Write docs', priority='medium', project=project)

        resolved = self.resolver.resolve(task.pk)

        self.assertEqual(resolved.effective_score, 0.75)
        self.assertTrue(resolved.conflict)
        self.assertEqual(resolved.source, PrioritySource.PROJECT)

    def test_project_without_inheritance_is_ignored(self):
        project = self.make_project('P', goals_inherit=False)
        goal = self.make_goal('Launch', priority='critical')
        goal.projects.add(project)
        task = self.make_task('Write docs', priority='medium', project=project)

        resolved = self.resolver.resolve(task.pk)

        self.assertEqual(resolved.effective_score, 0.50)
        self.assertFalse(resolved.conflict)

    def test_goal_of_another_project_does_not_reach(self):
        project = self.make_project('P')
        other = self.make_project('Other')
        goal = self.make_goal('Launch', priority='critical')
        goal.projects.add(other)
        task = self.make_task('Write docs', priority='low', project=project)

        self.assertFalse(self.resolver.resolve(task.pk).conflict)

    def test_goal_linked_both_ways_counts_as_direct(self):
        project = self.make_project('P')
        goal = self.make_goal('Launch', priority='high')
        goal.projects.add(project)
        task = self.make_task('Write docs', priority='low', project=project)
        task.goals.add(goal)

        resolved = self.resolver.resolve(task.pk)

        self.assertEqual(resolved.source, PrioritySource.GOAL)

    def test_tied_goals_report_one_of_them(self):
        first = self.make_goal('First', priority='high')
        second = self.make_goal('Second', priority='high')
        task = self.make_task('Shared', priority='low')
        task.goals.add(first, second)

        resolved = self.resolver.resolve(task.pk)

        self.assertIn(resolved.goal_id, {first.pk, second.pk})
        self.assertEqual(resolved.max_goal_score, 0.75)

    def test_resolve_does_not_write(self):
        goal = self.make_goal('Q1 Revenue', priority='critical')
        task = self.make_task('Draft budget', priority='low')
        task.goals.add(goal)

        self.resolver.resolve(task.pk)

        self.assertIsNone(self.reload(task).effective_priority_score)

    def test_missing_task_raises_not_found(self):
        with self.assertRaises(NotFound):
            self.resolver.resolve(999999)


# ==================== Propagation ====================

class GoalPropagationTests(PriorityFixtureMixin, TestCase):
    """Tests for setting goal priority and propagating it to tasks."""

    def setUp(self):
        self.team = self.make_team()
        self.service = PriorityService()
        self.goal = self.make_goal('Q1 Revenue', priority='low')

    def test_set_goal_priority_updates_score_and_tasks(self):
        direct = self.make_task('Draft budget', priority='low')
        direct.goals.add(self.goal)
        project = self.make_project('Finance')
        self.goal.projects.add(project)
        inherited = self.make_task('Collect invoices', priority='medium', project=project)
        unrelated = self.make_task('Unrelated', priority='low')

        result = self.service.set_goal_priority(self.goal.pk, 'critical')

        self.assertEqual(result['priority'], 'critical')
        self.assertEqual(result['priority_score'], 1.0)
        self.assertEqual(result['affected_task_count'], 2)

        direct = self.reload(direct)
        self.assertEqual(direct.effective_priority_score, 1.0)
        self.assertEqual(direct.effective_priority, 'critical')
        self.assertTrue(direct.has_priority_conflict)
        self.assertEqual(direct.priority_source, 'goal')

        inherited = self.reload(inherited)
        self.assertEqual(inherited.effective_priority_score, 1.0)
        self.assertEqual(inherited.priority_source, 'project')

        self.assertIsNone(self.reload(unrelated).effective_priority_score)

    def test_terminal_tasks_are_not_touched(self):
        done = self.make_task('Shipped', priority='low', status=Task.STATUS_DONE)
        done.goals.add(self.goal)
        archived = self.make_task('Old', priority='low', status=Task.STATUS_ARCHIVED)
        archived.goals.add(self.goal)

        result = self.service.set_goal_priority(self.goal.pk, 'critical')

        self.assertEqual(result['affected_task_count'], 0)
        self.assertIsNone(self.reload(done).effective_priority_score)
        self.assertIsNone(self.reload(archived).effective_priority_score)

    def test_non_inheriting_project_not_affected(self):
        project = self.make_project('Side', goals_inherit=False)
        self.goal.projects.add(project)
        task = self.make_task('Side work', project=project)

        result = self.service.set_goal_priority(self.goal.pk, 'critical')

        self.assertEqual(result['affected_task_count'], 0)
        self.assertIsNone(self.reload(task).effective_priority_score)

    def test_lowering_goal_clears_conflict(self):
        task = self.make_task('Draft budget', priority='low')
        task.goals.add(self.goal)

        self.service.set_goal_priority(self.goal.pk, 'critical')
        self.assertTrue(self.reload(task).has_priority_conflict)

        self.service.set_goal_priority(self.goal.pk, 'low')
        task = self.reload(task)
        self.assertFalse(task.has_priority_conflict)
        self.assertEqual(task.effective_priority_score, 0.25)
        self.assertEqual(task.priority_source, 'manual')

    def test_unknown_label_sets_medium(self):
        result = self.service.set_goal_priority(self.goal.pk, 'whenever')

        self.assertEqual(result['priority'], 'medium')
        self.assertEqual(result['priority_score'], 0.50)

    def test_missing_goal_raises_not_found(self):
        with self.assertRaises(NotFound):
            self.service.set_goal_priority(999999, 'high')

    def test_failure_aborts_whole_batch(self):
        """One failing task rolls back the goal change and every task write."""
        first = self.make_task('First', priority='low')
        second = self.make_task('Second', priority='low')
        first.goals.add(self.goal)
        second.goals.add(self.goal)

        original_persist = EffectivePriorityResolver.persist
        calls = []

        def flaky_persist(resolver, task, resolved):
            calls.append(task.pk)
            if len(calls) == 2:
                raise RuntimeError('store unavailable')
            return original_persist(resolver, task, resolved)

        with patch.object(EffectivePriorityResolver, 'persist', autospec=True, side_effect=flaky_persist):
            with self.assertRaises(PropagationFailure) as ctx:
                self.service.set_goal_priority(self.goal.pk, 'critical')

        self.assertIsInstance(ctx.exception.__cause__, RuntimeError)
        self.assertEqual(ctx.exception.task_id, calls[1])
        self.assertEqual(Goal.objects.get(pk=self.goal.pk).priority, 'low')
        self.assertIsNone(self.reload(first).effective_priority_score)
        self.assertIsNone(self.reload(second).effective_priority_score)

    def test_stale_task_snapshot_does_not_overwrite_new_label(self):
        """A label change after a batch loaded the task is resolved, not clobbered."""
        self.service.set_goal_priority(self.goal.pk, 'medium')
        task = self.make_task('Draft budget', priority='low')
        task.goals.add(self.goal)
        snapshot = list(self.service.propagation.goal_tasks(self.goal))[0]

        self.service.set_task_priority(task.pk, 'high')
        resolved = self.service.resolver.refresh(snapshot)

        task = self.reload(task)
        self.assertEqual(task.priority, 'high')
        self.assertEqual(task.priority_score, 0.75)
        self.assertEqual(task.effective_priority_score, 0.75)
        self.assertFalse(task.has_priority_conflict)
        self.assertEqual(task.priority_source, 'manual')
        self.assertEqual(resolved.task_priority, 'high')
        self.assertEqual(snapshot.priority_score, 0.75)

    def test_propagation_never_writes_own_score(self):
        task = self.make_task('Draft budget', priority='low')
        task.goals.add(self.goal)
        Task.objects.filter(pk=task.pk).update(priority='high')

        snapshot = self.service.resolver.get_task(task.pk)
        self.service.resolver.refresh(snapshot)

        task = self.reload(task)
        self.assertEqual(task.priority, 'high')
        self.assertEqual(task.priority_score, 0.25)
        self.assertEqual(task.effective_priority_score, 0.75)


class TeamRecomputeTests(PriorityFixtureMixin, TestCase):
    """Tests for bulk recomputation of a team's cached priorities."""

    def setUp(self):
        self.team = self.make_team()
        self.service = PriorityService()

        goal = self.make_goal('Q1 Revenue', priority='critical')
        project = self.make_project('Launch')
        launch = self.make_goal('Launch', priority='high')
        launch.projects.add(project)

        self.linked = self.make_task('Draft budget', priority='low')
        self.linked.goals.add(goal)
        self.inherited = self.make_task('Write docs', priority='medium', project=project)
        self.solo = self.make_task('Buy snacks', priority='high')
        self.done = self.make_task('Old report', priority='low', status=Task.STATUS_DONE)
        self.done.goals.add(goal)

    def snapshot(self):
        return list(Task.objects.order_by('pk').values_list(*DERIVED_FIELDS))

    def test_recompute_writes_derived_fields(self):
        result = self.service.recompute_team(self.team.pk)

        self.assertEqual(result['updated_count'], 3)
        self.assertEqual(result['message'], 'Recomputed priorities for 3 tasks')
        self.assertEqual(self.reload(self.linked).priority_source, 'goal')
        self.assertEqual(self.reload(self.inherited).priority_source, 'project')
        self.assertEqual(self.reload(self.solo).priority_source, 'manual')
        self.assertEqual(self.reload(self.solo).effective_priority_score, 0.75)

    def test_recompute_source_manual_when_own_priority_dominates(self):
        """A directly linked goal below the task's own priority is not the source."""
        minor = self.make_goal('Tidy up', priority='low')
        self.solo.goals.add(minor)

        self.service.recompute_team(self.team.pk)

        solo = self.reload(self.solo)
        self.assertEqual(solo.priority_source, 'manual')
        self.assertFalse(solo.has_priority_conflict)
        self.assertEqual(
            solo.priority_source,
            self.service.resolve_task_priority(self.solo.pk)['source']
        )

    def test_recompute_is_idempotent(self):
        first = self.service.recompute_team(self.team.pk)
        after_first = self.snapshot()
        second = self.service.recompute_team(self.team.pk)

        self.assertEqual(self.snapshot(), after_first)
        self.assertEqual(first['updated_count'], second['updated_count'])

    def test_terminal_tasks_excluded(self):
        self.service.recompute_team(self.team.pk)

        done = self.reload(self.done)
        self.assertIsNone(done.effective_priority_score)
        self.assertFalse(done.has_priority_conflict)

    def test_recompute_repairs_stale_cache(self):
        Task.objects.filter(pk=self.linked.pk).update(
            effective_priority_score=0.1,
            effective_priority='low',
            has_priority_conflict=False,
            priority_source='manual',
        )

        self.service.recompute_team(self.team.pk)

        linked = self.reload(self.linked)
        self.assertEqual(linked.priority_score, 0.25)
        self.assertEqual(linked.effective_priority_score, 1.0)
        self.assertTrue(linked.has_priority_conflict)

    def test_other_teams_untouched(self):
        other_team = self.make_team('Other')
        other = self.make_task('Elsewhere', team=other_team)

        self.service.recompute_team(self.team.pk)

        self.assertIsNone(self.reload(other).effective_priority_score)


class TaskAndProjectPriorityTests(PriorityFixtureMixin, TestCase):
    """Tests for task priority changes, cache reads and inheritance toggles."""

    def setUp(self):
        self.team = self.make_team()
        self.service = PriorityService()
        self.goal = self.make_goal('Q1 Revenue', priority='critical')

    def test_get_task_priority_fills_cache_on_miss(self):
        task = self.make_task('Draft budget', priority='low')
        task.goals.add(self.goal)

        result = self.service.get_task_priority(task.pk)

        self.assertEqual(result['effective_score'], 1.0)
        self.assertTrue(result['conflict'])
        self.assertEqual(self.reload(task).effective_priority_score, 1.0)

    def test_get_task_priority_reads_cache(self):
        task = self.make_task('Draft budget', priority='low')
        Task.objects.filter(pk=task.pk).update(effective_priority_score=0.5, effective_priority='medium')

        result = self.service.get_task_priority(task.pk)

        self.assertEqual(result['effective_score'], 0.5)

    def test_raising_task_priority_clears_conflict(self):
        task = self.make_task('Draft budget', priority='low')
        task.goals.add(self.goal)

        result = self.service.set_task_priority(task.pk, 'critical')

        self.assertFalse(result['conflict'])
        self.assertEqual(result['own_score'], 1.0)
        task = self.reload(task)
        self.assertEqual(task.priority, 'critical')
        self.assertFalse(task.has_priority_conflict)

    def test_set_task_priority_missing_task(self):
        with self.assertRaises(NotFound):
            self.service.set_task_priority(999999, 'high')

    def test_disabling_inheritance_recomputes_project_tasks(self):
        project = self.make_project('Finance')
        self.goal.projects.add(project)
        task = self.make_task('Collect invoices', priority='low', project=project)
        self.service.recompute_team(self.team.pk)
        self.assertTrue(self.reload(task).has_priority_conflict)

        result = self.service.set_project_inheritance(project.pk, False)

        self.assertFalse(result['goals_inherit'])
        self.assertEqual(result['affected_task_count'], 1)
        task = self.reload(task)
        self.assertFalse(task.has_priority_conflict)
        self.assertEqual(task.priority_source, 'manual')

    def test_get_goal_priority(self):
        result = self.service.get_goal_priority(self.goal.pk)
        self.assertEqual(result['priority'], 'critical')
        self.assertEqual(result['priority_score'], 1.0)

        with self.assertRaises(NotFound):
            self.service.get_goal_priority(999999)


# ==================== Conflicts and Suggestions ====================

class ConflictDetectionTests(PriorityFixtureMixin, TestCase):
    """Tests for conflict detection and the conflict summary."""

    def setUp(self):
        self.team = self.make_team()
        self.service = PriorityService()

    def test_detects_direct_conflict(self):
        goal = self.make_goal('Q1 Revenue', priority='critical')
        task = self.make_task('Draft budget', priority='low')
        task.goals.add(goal)

        conflicts = self.service.detect_conflicts(self.team.pk)

        self.assertEqual(len(conflicts), 1)
        self.assertEqual(conflicts[0]['task_id'], task.pk)
        self.assertEqual(conflicts[0]['goal_id'], goal.pk)
        self.assertIn('critical', conflicts[0]['suggestion'])

    def test_terminal_tasks_never_conflict(self):
        goal = self.make_goal('Q1 Revenue', priority='critical')
        done = self.make_task('Shipped', priority='low', status=Task.STATUS_DONE)
        done.goals.add(goal)

        self.assertEqual(self.service.detect_conflicts(self.team.pk), [])

    def test_ordered_by_goal_score(self):
        high = self.make_goal('Hiring', priority='high')
        critical = self.make_goal('Revenue', priority='critical')
        a = self.make_task('A task', priority='low')
        a.goals.add(high)
        b = self.make_task('B task', priority='low')
        b.goals.add(critical)

        conflicts = self.service.detect_conflicts(self.team.pk)

        self.assertEqual([c['task_id'] for c in conflicts], [b.pk, a.pk])

    def test_summary_splits_critical_conflicts(self):
        critical = self.make_goal('Revenue', priority='urgent')
        high = self.make_goal('Hiring', priority='high')
        self.make_task('Budget', priority='low').goals.add(critical)
        self.make_task('Job post', priority='low').goals.add(high)

        summary = self.service.conflict_summary(self.team.pk)

        self.assertTrue(summary['has_conflicts'])
        self.assertEqual(summary['conflict_count'], 2)
        self.assertEqual(summary['critical_conflict_count'], 1)
        self.assertEqual(summary['other_conflict_count'], 1)
        self.assertEqual(len(summary['conflicts']), 2)

    def test_summary_without_conflicts(self):
        self.make_task('Solo', priority='high')

        summary = self.service.conflict_summary(self.team.pk)

        self.assertFalse(summary['has_conflicts'])
        self.assertEqual(summary['conflict_count'], 0)
        self.assertEqual(summary['conflicts'], [])


class SuggestionTests(PriorityFixtureMixin, TestCase):
    """Tests for conflict and orphan suggestions."""

    def setUp(self):
        self.team = self.make_team()
        self.service = PriorityService()

    def test_orphan_high_priority_task(self):
        """High task with no project and no goal should be linked to a goal."""
        task = self.make_task('Buy snacks', priority='high')

        suggestions = self.service.suggest_priorities(self.team.pk)['suggestions']

        self.assertEqual(len(suggestions), 1)
        self.assertEqual(suggestions[0]['task_id'], task.pk)
        self.assertEqual(suggestions[0]['action'], 'link_to_goal')
        self.assertEqual(suggestions[0]['reason'], 'High priority task not linked to any goal')

    def test_orphan_rules(self):
        goal = self.make_goal('Revenue', priority='low')
        project = self.make_project('P')
        self.make_task('Medium task', priority='medium')
        self.make_task('In project', priority='critical', project=project)
        self.make_task('Has goal', priority='urgent').goals.add(goal)
        self.make_task('Finished', priority='high', status=Task.STATUS_DONE)

        result = self.service.suggest_priorities(self.team.pk)

        self.assertEqual(result['suggestions'], [])
        self.assertEqual(result['summary'], 'No priority suggestions - all looks good!')

    def test_conflict_suggestions_come_first(self):
        self.make_task('Buy snacks', priority='high')
        goal = self.make_goal('Q1 Revenue', priority='critical')
        self.make_task('Draft budget', priority='low').goals.add(goal)

        result = self.service.suggest_priorities(self.team.pk)
        suggestions = result['suggestions']

        self.assertEqual([s['type'] for s in suggestions], ['conflict', 'orphan'])
        self.assertEqual(suggestions[0]['action'], 'raise_priority')
        self.assertEqual(suggestions[0]['current_priority'], 'low')
        self.assertEqual(suggestions[0]['suggested_priority'], 'critical')
        self.assertEqual(
            suggestions[0]['reason'],
            'Task is linked to critical priority goal "Q1 Revenue"'
        )
        self.assertEqual(result['summary'], '2 priority suggestions')


# ==================== Priority Queue ====================

class PriorityQueueTests(PriorityFixtureMixin, TestCase):
    """Tests for the ranked "what to work on next" queue."""

    def setUp(self):
        self.team = self.make_team()
        self.service = PriorityService()
        self.now = timezone.now()

    def queue_ids(self, **options):
        return [entry['task_id'] for entry in self.service.priority_queue(self.team.pk, **options)]

    def test_due_date_breaks_score_ties(self):
        """Among equal scores, a dated task ranks before an undated one."""
        undated = self.make_task('Undated', priority='high')
        dated = self.make_task('Dated', priority='high', due_at=self.now + timedelta(days=1))
        lower = self.make_task('Lower', priority='medium')
        self.service.recompute_team(self.team.pk)

        queue = self.service.priority_queue(self.team.pk)

        self.assertEqual([e['task_id'] for e in queue], [dated.pk, undated.pk, lower.pk])
        self.assertEqual([e['rank'] for e in queue], [1, 2, 3])
        self.assertEqual([e['effective_score'] for e in queue], [0.75, 0.75, 0.50])

    def test_creation_time_is_final_tie_break(self):
        newer = self.make_task('Newer', created_at=self.now)
        older = self.make_task('Older', created_at=self.now - timedelta(days=3))
        self.service.recompute_team(self.team.pk)

        self.assertEqual(self.queue_ids(), [older.pk, newer.pk])

    def test_uncached_tasks_resolved_before_ranking(self):
        """A task created after the last recompute ranks by its real score."""
        resolved = self.make_task('Resolved', priority='low')
        self.service.recompute_team(self.team.pk)
        fresh = self.make_task('Fresh', priority='critical')

        queue = self.service.priority_queue(self.team.pk)

        self.assertEqual([e['task_id'] for e in queue], [fresh.pk, resolved.pk])
        self.assertEqual([e['effective_score'] for e in queue], [1.0, 0.25])
        self.assertEqual(self.reload(fresh).effective_priority_score, 1.0)

    def test_goal_priority_lifts_task_in_queue(self):
        goal = self.make_goal('Q1 Revenue', priority='low')
        budget = self.make_task('Draft budget', priority='low')
        budget.goals.add(goal)
        other = self.make_task('Other', priority='high')
        self.service.recompute_team(self.team.pk)
        self.assertEqual(self.queue_ids(), [other.pk, budget.pk])

        self.service.set_goal_priority(goal.pk, 'critical')

        self.assertEqual(self.queue_ids(), [budget.pk, other.pk])

    def test_terminal_tasks_excluded(self):
        open_task = self.make_task('Open')
        self.make_task('Done', priority='critical', status=Task.STATUS_DONE)
        self.make_task('Archived', priority='critical', status=Task.STATUS_ARCHIVED)
        self.service.recompute_team(self.team.pk)

        self.assertEqual(self.queue_ids(), [open_task.pk])

    def test_blocked_filter(self):
        free = self.make_task('Free')
        blocked = self.make_task('Blocked', is_blocked=True)
        self.service.recompute_team(self.team.pk)

        self.assertEqual(self.queue_ids(), [free.pk])
        self.assertCountEqual(self.queue_ids(exclude_blocked=False), [free.pk, blocked.pk])

    def test_assignee_filter_keeps_unassigned(self):
        User = get_user_model()
        alice = User.objects.create_user(username='alice')
        bob = User.objects.create_user(username='bob')
        mine = self.make_task('Mine', assigned_to=alice)
        self.make_task('Theirs', assigned_to=bob)
        anyone = self.make_task('Anyone')
        self.service.recompute_team(self.team.pk)

        self.assertCountEqual(self.queue_ids(assignee_id=alice.pk), [mine.pk, anyone.pk])

    def test_limit(self):
        for i in range(5):
            self.make_task(f'Task {i}')
        self.service.recompute_team(self.team.pk)

        queue = self.service.priority_queue(self.team.pk, limit=2)

        self.assertEqual([e['rank'] for e in queue], [1, 2])


class TeamPrioritiesTests(PriorityFixtureMixin, TestCase):
    """Tests for the team priority listing."""

    def setUp(self):
        self.team = self.make_team()
        self.service = PriorityService()

    def test_listing_shows_goal_names_and_resolves_uncached_tasks(self):
        goal = self.make_goal('Q1 Revenue', priority='critical')
        task = self.make_task('Draft budget', priority='low')
        task.goals.add(goal)

        rows = self.service.list_team_priorities(self.team.pk)

        self.assertEqual(len(rows), 1)
        self.assertEqual(rows[0]['goal_names'], 'Q1 Revenue')
        self.assertEqual(rows[0]['task_priority'], 'low')
        self.assertEqual(rows[0]['effective_score'], 1.0)
        self.assertTrue(rows[0]['has_priority_conflict'])

    def test_completed_tasks_fall_back_to_own_score(self):
        goal = self.make_goal('Q1 Revenue', priority='critical')
        done = self.make_task('Shipped', priority='low', status=Task.STATUS_DONE)
        done.goals.add(goal)

        rows = self.service.list_team_priorities(self.team.pk, include_completed=True)

        self.assertEqual(rows[0]['effective_score'], 0.25)
        self.assertIsNone(self.reload(done).effective_priority_score)

    def test_include_completed(self):
        self.make_task('Open')
        self.make_task('Done', status=Task.STATUS_DONE)

        self.assertEqual(len(self.service.list_team_priorities(self.team.pk)), 1)
        self.assertEqual(
            len(self.service.list_team_priorities(self.team.pk, include_completed=True)),
            2
        )


# ==================== API ====================

class APIEndpointTests(PriorityFixtureMixin, APITestCase):
    """Tests for the API endpoints."""

    def setUp(self):
        cache.clear()
        self.team = self.make_team()
        self.goal = self.make_goal('Q1 Revenue', priority='low')
        self.task = self.make_task('Draft budget', priority='low')
        self.task.goals.add(self.goal)

    def test_api_info_endpoint(self):
        response = self.client.get('/api/')

        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertIn('endpoints', response.data)
        self.assertEqual(response.data['priority_scale']['scores']['high'], 0.75)

    def test_encode_and_decode(self):
        response = self.client.get('/api/priorities/encode/', {'priority': 'urgent'})
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertEqual(response.data['score'], 1.0)

        response = self.client.get('/api/priorities/decode/', {'score': '0.7'})
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertEqual(response.data['priority'], 'high')

    def test_decode_rejects_non_numeric_score(self):
        response = self.client.get('/api/priorities/decode/', {'score': 'abc'})

        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)
        self.assertEqual(response.data['error_code'], 'ERR_INVALID_SCORE')

    def test_set_goal_priority(self):
        response = self.client.post(
            f'/api/goals/{self.goal.pk}/priority/',
            {'priority': 'critical'},
            format='json'
        )

        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertTrue(response.data['success'])
        self.assertEqual(response.data['priority_score'], 1.0)
        self.assertEqual(response.data['affected_task_count'], 1)

    def test_long_unknown_label_defaults_to_medium(self):
        response = self.client.post(
            f'/api/goals/{self.goal.pk}/priority/',
            {'priority': 'extremely-important-and-urgent'},
            format='json'
        )

        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertEqual(response.data['priority'], 'medium')
        self.assertEqual(Goal.objects.get(pk=self.goal.pk).priority_score, 0.50)

        response = self.client.post(
            f'/api/tasks/{self.task.pk}/priority/',
            {'priority': 'x' * 100},
            format='json'
        )

        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertEqual(response.data['task']['task_priority'], 'medium')

    def test_set_goal_priority_requires_priority(self):
        response = self.client.post(f'/api/goals/{self.goal.pk}/priority/', {}, format='json')

        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)
        self.assertFalse(response.data['success'])

    def test_unknown_goal_returns_404(self):
        response = self.client.post('/api/goals/999999/priority/', {'priority': 'high'}, format='json')

        self.assertEqual(response.status_code, status.HTTP_404_NOT_FOUND)
        self.assertEqual(response.data['error_code'], 'ERR_NOT_FOUND')

    def test_resolve_task_priority(self):
        self.client.post(f'/api/goals/{self.goal.pk}/priority/', {'priority': 'critical'}, format='json')

        response = self.client.get(f'/api/tasks/{self.task.pk}/priority/')

        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertEqual(response.data['task']['effective_score'], 1.0)
        self.assertTrue(response.data['task']['conflict'])
        self.assertEqual(response.data['task']['source'], 'goal')

    def test_unknown_task_returns_404(self):
        response = self.client.get('/api/tasks/999999/priority/')

        self.assertEqual(response.status_code, status.HTTP_404_NOT_FOUND)

    def test_team_reports(self):
        self.client.post(f'/api/goals/{self.goal.pk}/priority/', {'priority': 'critical'}, format='json')

        conflicts = self.client.get(f'/api/teams/{self.team.pk}/conflicts/')
        self.assertEqual(conflicts.status_code, status.HTTP_200_OK)
        self.assertEqual(conflicts.data['conflict_count'], 1)

        suggestions = self.client.get(f'/api/teams/{self.team.pk}/suggestions/')
        self.assertEqual(suggestions.data['suggestions'][0]['action'], 'raise_priority')

        queue = self.client.get(f'/api/teams/{self.team.pk}/queue/', {'limit': 5})
        self.assertEqual(queue.status_code, status.HTTP_200_OK)
        self.assertEqual(queue.data['queue'][0]['rank'], 1)
        self.assertEqual(queue.data['queue'][0]['task_id'], self.task.pk)

        listing = self.client.get(f'/api/teams/{self.team.pk}/priorities/')
        self.assertEqual(listing.data['count'], 1)

    def test_recompute_endpoint(self):
        response = self.client.post(f'/api/teams/{self.team.pk}/recompute/')

        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertEqual(response.data['updated_count'], 1)

    def test_project_inheritance_endpoint(self):
        project = self.make_project('Finance', goals_inherit=False)

        response = self.client.post(
            f'/api/projects/{project.pk}/inheritance/',
            {'goals_inherit': True},
            format='json'
        )

        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertTrue(response.data['goals_inherit'])
        self.assertTrue(Project.objects.get(pk=project.pk).goals_inherit)
