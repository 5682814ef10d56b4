"""
Serializers for the priority API.

These validate request bodies and query parameters. Priority labels are
accepted as free text: unknown labels are not rejected, they degrade to
medium when encoded.
"""

from rest_framework import serializers


class PriorityInputSerializer(serializers.Serializer):
    """Body of a goal or task priority change."""

    priority = serializers.CharField(required=True, allow_blank=True)


class ProjectInheritanceSerializer(serializers.Serializer):
    goals_inherit = serializers.BooleanField(required=True)


class DecodeQuerySerializer(serializers.Serializer):
    score = serializers.FloatField(required=True)


class TeamPrioritiesQuerySerializer(serializers.Serializer):
    limit = serializers.IntegerField(min_value=1, required=False)
    include_completed = serializers.BooleanField(default=False, required=False)


class PriorityQueueQuerySerializer(serializers.Serializer):
    assignee = serializers.IntegerField(min_value=1, required=False)
    exclude_blocked = serializers.BooleanField(default=True, required=False)
    limit = serializers.IntegerField(min_value=1, required=False)


class QueueEntrySerializer(serializers.Serializer):
    """
    Serializer for one ranked task of the priority queue.
    """

    rank = serializers.IntegerField()
    task_id = serializers.IntegerField()
    title = serializers.CharField()
    priority = serializers.CharField()
    effective_score = serializers.FloatField()
    effective_priority = serializers.CharField()
    has_priority_conflict = serializers.BooleanField()
    priority_source = serializers.CharField()
    status = serializers.CharField()
    is_blocked = serializers.BooleanField()
    due_at = serializers.CharField(allow_null=True)
    assigned_to = serializers.IntegerField(allow_null=True)
    assigned_to_name = serializers.CharField(allow_null=True)
    project_name = serializers.CharField(allow_null=True)
    goal_names = serializers.CharField(allow_blank=True)
