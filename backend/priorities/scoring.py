"""
Priority Scoring for the Goal Priority Engine.

This module converts qualitative priority labels into comparable numeric
scores and resolves a task's effective priority from the goals that reach it.
It holds no database access: everything here works on plain values or on
objects exposing the attributes the functions read, which keeps the rules
testable in isolation.

Score Codec:
-----------
Labels map to scores in [0, 1]:

    critical = 1.00   urgent = 1.00   high = 0.75   medium = 0.50   low = 0.25

Unknown or missing labels degrade to medium. Decoding buckets a score back
into a display label, evaluated from the highest threshold down:

    score >= 0.90 -> critical
    score >= 0.65 -> high
    score >= 0.40 -> medium
    otherwise     -> low

Decoding is not the inverse of encoding. Scores are a continuous ranking
substrate; labels are coarse display buckets.

Effective Priority:
------------------
effective_score = max(own_score, max(score(g) for g reaching the task))

A goal reaches a task when it is linked to the task directly, or when it is
linked to the task's project and that project inherits goal priority. The
task is in conflict when the effective score is strictly above its own score.
"""

from dataclasses import dataclass
from enum import Enum
from typing import Dict, Iterable, List, Optional


# ==================== Error Codes ====================

class ErrorCode(Enum):
    """Error codes for API responses."""
    SUCCESS = "SUCCESS"
    ERR_NOT_FOUND = "ERR_NOT_FOUND"
    ERR_MISSING_FIELD = "ERR_MISSING_FIELD"
    ERR_INVALID_SCORE = "ERR_INVALID_SCORE"
    ERR_PROPAGATION_FAILED = "ERR_PROPAGATION_FAILED"


# ==================== Score Codec ====================

DEFAULT_PRIORITY = 'medium'

PRIORITY_SCORES: Dict[str, float] = {
    'critical': 1.00,
    'urgent': 1.00,  # synonym of critical at the score level
    'high': 0.75,
    'medium': 0.50,
    'low': 0.25,
}

# Highest threshold first
SCORE_THRESHOLDS = [
    (0.90, 'critical'),
    (0.65, 'high'),
    (0.40, 'medium'),
]

LOWEST_PRIORITY = 'low'

PRIORITY_CHOICES = [
    ('critical', 'Critical'),
    ('urgent', 'Urgent'),
    ('high', 'High'),
    ('medium', 'Medium'),
    ('low', 'Low'),
]

CRITICAL_PRIORITIES = ('critical', 'urgent')


def normalize_priority(priority: Optional[str]) -> str:
    """
    Return the canonical stored form of a priority label.

    Labels are lower-cased and stripped. Anything unrecognized becomes
    medium. 'urgent' stays 'urgent'; it only collapses into 'critical'
    once encoded.
    """
    if not priority or not isinstance(priority, str):
        return DEFAULT_PRIORITY
    label = priority.strip().lower()
    return label if label in PRIORITY_SCORES else DEFAULT_PRIORITY


def encode_priority(priority: Optional[str]) -> float:
    """Convert a priority label to its numeric score (unknown -> medium)."""
    return PRIORITY_SCORES[normalize_priority(priority)]


def decode_score(score: float) -> str:
    """Convert a numeric score to its display label."""
    for minimum, priority in SCORE_THRESHOLDS:
        if score >= minimum:
            return priority
    return LOWEST_PRIORITY


def priority_scale() -> Dict:
    """Return the label-to-score table and decode thresholds."""
    return {
        'scores': dict(PRIORITY_SCORES),
        'thresholds': [
            {'min_score': minimum, 'priority': priority}
            for minimum, priority in SCORE_THRESHOLDS
        ] + [{'min_score': None, 'priority': LOWEST_PRIORITY}],
        'default': DEFAULT_PRIORITY,
    }


# ==================== Resolution ====================

class PrioritySource(Enum):
    """Where a task's effective priority comes from."""
    MANUAL = "manual"
    GOAL = "goal"        # a goal linked directly to the task
    PROJECT = "project"  # a goal linked to the task's inheriting project


PRIORITY_SOURCE_CHOICES = [
    (PrioritySource.MANUAL.value, 'Manual'),
    (PrioritySource.GOAL.value, 'Goal'),
    (PrioritySource.PROJECT.value, 'Project'),
]


@dataclass
class ReachingGoal:
    """A goal whose priority is attributable to a task, and how it gets there."""
    goal: object
    via: PrioritySource

    @property
    def score(self) -> float:
        return encode_priority(self.goal.priority)

    def outranks(self, other: Optional['ReachingGoal']) -> bool:
        """Higher score wins; on equal scores a direct link beats a project link."""
        if other is None:
            return True
        if self.score != other.score:
            return self.score > other.score
        return self.via == PrioritySource.GOAL and other.via == PrioritySource.PROJECT


@dataclass
class ResolvedPriority:
    """Result of resolving one task's effective priority."""
    task_id: Optional[int]
    task_priority: str
    own_score: float
    effective_score: float
    conflict: bool
    source: PrioritySource
    max_goal_score: Optional[float] = None
    goal_id: Optional[int] = None
    goal_title: Optional[str] = None
    goal_priority: Optional[str] = None

    @property
    def effective_priority(self) -> str:
        return decode_score(self.effective_score)

    def derived_fields(self) -> Dict:
        """The cached columns a task stores for this resolution."""
        return {
            'effective_priority_score': self.effective_score,
            'effective_priority': self.effective_priority,
            'has_priority_conflict': self.conflict,
            'priority_source': self.source.value,
        }

    def to_dict(self) -> Dict:
        return {
            'task_id': self.task_id,
            'task_priority': self.task_priority,
            'own_score': self.own_score,
            'effective_score': self.effective_score,
            'effective_priority': self.effective_priority,
            'max_goal_score': self.max_goal_score,
            'conflict': self.conflict,
            'source': self.source.value,
            'goal_id': self.goal_id,
            'goal_title': self.goal_title,
            'goal_priority': self.goal_priority,
        }


def strongest_goal(reaching_goals: Iterable[ReachingGoal]) -> Optional[ReachingGoal]:
    """
    Pick the reaching goal with the maximal score.

    When several goals tie, the first one encountered wins unless a later one
    is a direct link and the current pick came through a project. Callers
    should not depend on which of the tied goals is reported.
    """
    best = None
    for reaching in reaching_goals:
        if reaching.outranks(best):
            best = reaching
    return best


def resolve_effective_priority(
    task_id: Optional[int],
    task_priority: Optional[str],
    reaching_goals: List[ReachingGoal]
) -> ResolvedPriority:
    """
    Resolve a task's effective priority from its own label and reaching goals.

    The source is the link kind of the goal that set the effective score, or
    manual when the task's own score is at least as high as every reaching
    goal. Source is therefore manual exactly when there is no conflict. Bulk
    recomputation of a team uses this same rule, even for tasks with a
    directly linked goal.
    """
    label = normalize_priority(task_priority)
    own_score = encode_priority(label)
    best = strongest_goal(reaching_goals)

    if best is None:
        return ResolvedPriority(
            task_id=task_id,
            task_priority=label,
            own_score=own_score,
            effective_score=own_score,
            conflict=False,
            source=PrioritySource.MANUAL,
        )

    resolved = ResolvedPriority(
        task_id=task_id,
        task_priority=label,
        own_score=own_score,
        effective_score=max(own_score, best.score),
        conflict=best.score > own_score,
        source=PrioritySource.MANUAL,
        max_goal_score=best.score,
    )
    if resolved.conflict:
        resolved.source = best.via
        resolved.goal_id = best.goal.id
        resolved.goal_title = best.goal.title
        resolved.goal_priority = normalize_priority(best.goal.priority)
    return resolved
