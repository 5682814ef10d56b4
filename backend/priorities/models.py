"""
Models for the Goal Priority Engine.

Goals, projects and tasks belong to a team. Goals reach tasks through direct
links or through projects that inherit goal priority. Each task carries a
cache of its resolved effective priority, which the engine keeps in sync.
"""

from django.conf import settings
from django.core.validators import MinValueValidator, MaxValueValidator
from django.db import models
from django.utils import timezone

from .scoring import (
    DEFAULT_PRIORITY,
    PRIORITY_CHOICES,
    PRIORITY_SOURCE_CHOICES,
    PrioritySource,
    encode_priority,
    normalize_priority,
)


def _with_score_field(update_fields):
    """Make sure a label write also writes the derived score."""
    if update_fields is None:
        return None
    fields = set(update_fields)
    if 'priority' in fields:
        fields.add('priority_score')
    return fields


class Team(models.Model):
    """A team owning goals, projects and tasks."""

    name = models.CharField(max_length=255)
    created_at = models.DateTimeField(auto_now_add=True)

    class Meta:
        ordering = ['name']

    def __str__(self):
        return self.name


class Project(models.Model):
    """
    A group of tasks.

    Attributes:
        goals_inherit: When true, tasks in this project are reached by the
            goals linked to the project.
    """

    team = models.ForeignKey(Team, on_delete=models.CASCADE, related_name='projects')
    name = models.CharField(max_length=255)
    goals_inherit = models.BooleanField(
        default=True,
        help_text="Tasks inherit priority from goals linked to this project"
    )
    created_at = models.DateTimeField(auto_now_add=True)

    class Meta:
        ordering = ['name']

    def __str__(self):
        return self.name


class Goal(models.Model):
    """
    A team objective with a qualitative priority.

    Attributes:
        priority: Priority label (critical/urgent/high/medium/low)
        priority_score: Score derived from the label on every save
        status: Lifecycle state; does not affect which tasks the goal reaches
        projects: Projects the goal is associated with for inheritance
    """

    STATUS_ACTIVE = 'active'
    STATUS_COMPLETED = 'completed'
    STATUS_CHOICES = [
        (STATUS_ACTIVE, 'Active'),
        (STATUS_COMPLETED, 'Completed'),
        ('paused', 'Paused'),
        ('abandoned', 'Abandoned'),
    ]

    team = models.ForeignKey(Team, on_delete=models.CASCADE, related_name='goals')
    title = models.CharField(max_length=500)
    description = models.TextField(blank=True)
    priority = models.CharField(
        max_length=20,
        choices=PRIORITY_CHOICES,
        default=DEFAULT_PRIORITY
    )
    priority_score = models.FloatField(default=0.50)
    status = models.CharField(max_length=20, choices=STATUS_CHOICES, default=STATUS_ACTIVE)
    target_date = models.DateField(null=True, blank=True)
    progress = models.PositiveSmallIntegerField(
        default=0,
        validators=[MinValueValidator(0), MaxValueValidator(100)]
    )
    projects = models.ManyToManyField(
        Project,
        through='GoalProject',
        related_name='goals',
        blank=True
    )
    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        ordering = ['-priority_score', 'title']

    def __str__(self):
        return f"{self.title} ({self.priority})"

    def save(self, *args, **kwargs):
        self.priority = normalize_priority(self.priority)
        self.priority_score = encode_priority(self.priority)
        kwargs['update_fields'] = _with_score_field(kwargs.get('update_fields'))
        super().save(*args, **kwargs)


class TaskQuerySet(models.QuerySet):

    def open(self):
        return self.exclude(status__in=Task.TERMINAL_STATUSES)

    def for_team(self, team_id):
        return self.filter(team_id=team_id)


class Task(models.Model):
    """
    A unit of work whose priority may be raised by the goals it serves.

    Attributes:
        priority: The task's own priority label
        priority_score: Own score, derived from the label on every save
        effective_priority_score: Cached effective score (null until resolved)
        effective_priority: Cached display label of the effective score
        has_priority_conflict: Cached flag, effective score above own score
        priority_source: Where the effective score came from
    """

    STATUS_TODO = 'todo'
    STATUS_IN_PROGRESS = 'in_progress'
    STATUS_DONE = 'done'
    STATUS_ARCHIVED = 'archived'
    STATUS_CHOICES = [
        (STATUS_TODO, 'To Do'),
        (STATUS_IN_PROGRESS, 'In Progress'),
        (STATUS_DONE, 'Done'),
        (STATUS_ARCHIVED, 'Archived'),
    ]
    TERMINAL_STATUSES = (STATUS_DONE, STATUS_ARCHIVED)

    team = models.ForeignKey(Team, on_delete=models.CASCADE, related_name='tasks')
    project = models.ForeignKey(
        Project,
        on_delete=models.SET_NULL,
        null=True,
        blank=True,
        related_name='tasks'
    )
    goals = models.ManyToManyField(
        Goal,
        through='GoalTask',
        related_name='tasks',
        blank=True
    )
    title = models.CharField(max_length=500)
    priority = models.CharField(
        max_length=20,
        choices=PRIORITY_CHOICES,
        default=DEFAULT_PRIORITY
    )
    priority_score = models.FloatField(default=0.50)
    effective_priority_score = models.FloatField(null=True, blank=True)
    effective_priority = models.CharField(max_length=20, blank=True)
    has_priority_conflict = models.BooleanField(default=False)
    priority_source = models.CharField(
        max_length=20,
        choices=PRIORITY_SOURCE_CHOICES,
        default=PrioritySource.MANUAL.value
    )
    status = models.CharField(max_length=20, choices=STATUS_CHOICES, default=STATUS_TODO)
    is_blocked = models.BooleanField(default=False)
    due_at = models.DateTimeField(null=True, blank=True)
    assigned_to = models.ForeignKey(
        settings.AUTH_USER_MODEL,
        on_delete=models.SET_NULL,
        null=True,
        blank=True,
        related_name='assigned_tasks'
    )
    created_at = models.DateTimeField(default=timezone.now)
    updated_at = models.DateTimeField(auto_now=True)

    objects = TaskQuerySet.as_manager()

    class Meta:
        ordering = ['-created_at']
        indexes = [
            models.Index(fields=['team', 'status'], name='task_team_status_idx'),
            models.Index(fields=['team', 'effective_priority_score'], name='task_team_effective_idx'),
        ]

    def __str__(self):
        return f"{self.title} ({self.priority})"

    @property
    def is_open(self) -> bool:
        return self.status not in self.TERMINAL_STATUSES

    def save(self, *args, **kwargs):
        self.priority = normalize_priority(self.priority)
        self.priority_score = encode_priority(self.priority)
        kwargs['update_fields'] = _with_score_field(kwargs.get('update_fields'))
        super().save(*args, **kwargs)


class GoalTask(models.Model):
    """Direct link between a goal and a task it is served by."""

    goal = models.ForeignKey(Goal, on_delete=models.CASCADE, related_name='task_links')
    task = models.ForeignKey(Task, on_delete=models.CASCADE, related_name='goal_links')
    created_at = models.DateTimeField(auto_now_add=True)

    class Meta:
        constraints = [
            models.UniqueConstraint(fields=['goal', 'task'], name='unique_goal_task'),
        ]


class GoalProject(models.Model):
    """Association between a goal and a project, used for inheritance."""

    goal = models.ForeignKey(Goal, on_delete=models.CASCADE, related_name='project_links')
    project = models.ForeignKey(Project, on_delete=models.CASCADE, related_name='goal_links')
    created_at = models.DateTimeField(auto_now_add=True)

    class Meta:
        constraints = [
            models.UniqueConstraint(fields=['goal', 'project'], name='unique_goal_project'),
        ]
