"""
API Views for the Goal Priority Engine.

This module exposes the priority service over REST: goal and task priority
changes, task resolution, and the team-level reports (priority listing,
conflicts, suggestions, and the "what to work on next" queue).
"""

from rest_framework import status
from rest_framework.decorators import api_view, throttle_classes
from rest_framework.response import Response
from rest_framework.request import Request
from rest_framework.throttling import AnonRateThrottle
from drf_spectacular.utils import extend_schema, OpenApiParameter
from drf_spectacular.types import OpenApiTypes

from .exceptions import NotFound, PriorityEngineError, PropagationFailure
from .scoring import ErrorCode, priority_scale
from .serializers import (
    DecodeQuerySerializer,
    PriorityInputSerializer,
    PriorityQueueQuerySerializer,
    ProjectInheritanceSerializer,
    QueueEntrySerializer,
    TeamPrioritiesQuerySerializer,
)
from .services import PriorityService


# ============================================
# RATE LIMITING CLASSES
# ============================================

class PriorityChangeRateThrottle(AnonRateThrottle):
    """Rate limit for priority changes - 30 requests per minute."""
    rate = '30/min'


class RecomputeRateThrottle(AnonRateThrottle):
    """Rate limit for bulk recompute - 10 requests per minute."""
    rate = '10/min'


# ============================================
# ERROR RESPONSES
# ============================================

def engine_error_response(exc: PriorityEngineError) -> Response:
    """Translate an engine exception into an API error response."""
    if isinstance(exc, NotFound):
        http_status = status.HTTP_404_NOT_FOUND
    else:
        http_status = status.HTTP_500_INTERNAL_SERVER_ERROR
    return Response(
        {
            'success': False,
            'error_code': exc.error_code.value,
            'message': str(exc)
        },
        status=http_status
    )


def invalid_input_response(errors, error_code: ErrorCode = ErrorCode.ERR_MISSING_FIELD) -> Response:
    return Response(
        {
            'success': False,
            'error_code': error_code.value,
            'errors': errors,
            'message': 'Invalid input data.'
        },
        status=status.HTTP_400_BAD_REQUEST
    )


def ok(**payload) -> Response:
    return Response({
        'success': True,
        'error_code': ErrorCode.SUCCESS.value,
        **payload
    })


# ============================================
# SCORE CODEC
# ============================================

@extend_schema(
    summary="Encode a priority label",
    parameters=[OpenApiParameter('priority', OpenApiTypes.STR, OpenApiParameter.QUERY)],
    responses={200: OpenApiTypes.OBJECT},
    tags=['Codec']
)
@api_view(['GET'])
def encode_priority(request: Request) -> Response:
    """
    Convert a priority label into its score. Unknown labels score as medium.

    GET /api/priorities/encode/?priority=high
    """
    label = request.query_params.get('priority', '')

    service = PriorityService()
    return ok(priority=label, score=service.encode_priority(label))


@extend_schema(
    summary="Decode a score into a priority label",
    parameters=[OpenApiParameter('score', OpenApiTypes.FLOAT, OpenApiParameter.QUERY, required=True)],
    responses={200: OpenApiTypes.OBJECT},
    tags=['Codec']
)
@api_view(['GET'])
def decode_score(request: Request) -> Response:
    """
    Bucket a score into its display label.

    GET /api/priorities/decode/?score=0.8
    """
    serializer = DecodeQuerySerializer(data=request.query_params)
    if not serializer.is_valid():
        return invalid_input_response(serializer.errors, ErrorCode.ERR_INVALID_SCORE)

    score = serializer.validated_data['score']
    service = PriorityService()
    return ok(score=score, priority=service.decode_score(score))


# ============================================
# GOALS, TASKS AND PROJECTS
# ============================================

@extend_schema(
    summary="Read or set a goal's priority",
    description="""
    GET returns the goal's priority label and score.

    POST sets the label and recomputes every open task the goal reaches,
    directly or through a project that inherits goal priority.
    """,
    request=PriorityInputSerializer,
    responses={200: OpenApiTypes.OBJECT},
    tags=['Goals']
)
@api_view(['GET', 'POST'])
@throttle_classes([PriorityChangeRateThrottle])
def goal_priority(request: Request, goal_id: int) -> Response:
    """
    GET  /api/goals/<goal_id>/priority/
    POST /api/goals/<goal_id>/priority/   {"priority": "critical"}
    """
    service = PriorityService()

    if request.method == 'GET':
        try:
            return ok(goal=service.get_goal_priority(goal_id))
        except NotFound as exc:
            return engine_error_response(exc)

    serializer = PriorityInputSerializer(data=request.data)
    if not serializer.is_valid():
        return invalid_input_response(serializer.errors)

    try:
        result = service.set_goal_priority(goal_id, serializer.validated_data['priority'])
    except (NotFound, PropagationFailure) as exc:
        return engine_error_response(exc)

    return ok(**result)


@extend_schema(
    summary="Resolve or set a task's priority",
    description="""
    GET resolves the task's effective priority from live goal and project state.

    POST changes the task's own priority and recomputes its cached fields.
    """,
    request=PriorityInputSerializer,
    responses={200: OpenApiTypes.OBJECT},
    tags=['Tasks']
)
@api_view(['GET', 'POST'])
@throttle_classes([PriorityChangeRateThrottle])
def task_priority(request: Request, task_id: int) -> Response:
    """
    GET  /api/tasks/<task_id>/priority/
    POST /api/tasks/<task_id>/priority/   {"priority": "high"}
    """
    service = PriorityService()

    if request.method == 'GET':
        try:
            return ok(task=service.resolve_task_priority(task_id))
        except NotFound as exc:
            return engine_error_response(exc)

    serializer = PriorityInputSerializer(data=request.data)
    if not serializer.is_valid():
        return invalid_input_response(serializer.errors)

    try:
        result = service.set_task_priority(task_id, serializer.validated_data['priority'])
    except NotFound as exc:
        return engine_error_response(exc)

    return ok(task=result)


@extend_schema(
    summary="Toggle goal inheritance for a project",
    request=ProjectInheritanceSerializer,
    responses={200: OpenApiTypes.OBJECT},
    tags=['Projects']
)
@api_view(['POST'])
@throttle_classes([PriorityChangeRateThrottle])
def project_inheritance(request: Request, project_id: int) -> Response:
    """
    POST /api/projects/<project_id>/inheritance/   {"goals_inherit": true}
    """
    serializer = ProjectInheritanceSerializer(data=request.data)
    if not serializer.is_valid():
        return invalid_input_response(serializer.errors)

    service = PriorityService()
    try:
        result = service.set_project_inheritance(
            project_id,
            serializer.validated_data['goals_inherit']
        )
    except (NotFound, PropagationFailure) as exc:
        return engine_error_response(exc)

    return ok(**result)


# ============================================
# TEAM REPORTS
# ============================================

@extend_schema(
    summary="List team task priorities",
    parameters=[
        OpenApiParameter('limit', OpenApiTypes.INT, OpenApiParameter.QUERY),
        OpenApiParameter('include_completed', OpenApiTypes.BOOL, OpenApiParameter.QUERY),
    ],
    responses={200: OpenApiTypes.OBJECT},
    tags=['Teams']
)
@api_view(['GET'])
def team_priorities(request: Request, team_id: int) -> Response:
    """
    Team tasks ordered by effective score, oldest first among equals.

    GET /api/teams/<team_id>/priorities/?limit=50&include_completed=false
    """
    serializer = TeamPrioritiesQuerySerializer(data=request.query_params)
    if not serializer.is_valid():
        return invalid_input_response(serializer.errors)

    service = PriorityService()
    try:
        tasks = service.list_team_priorities(
            team_id,
            limit=serializer.validated_data.get('limit'),
            include_completed=serializer.validated_data['include_completed']
        )
    except PropagationFailure as exc:
        return engine_error_response(exc)
    return ok(count=len(tasks), tasks=tasks)


@extend_schema(
    summary="Detect priority conflicts",
    description="""
    Open tasks whose own priority is below the priority of a goal they serve,
    with counts split between critical/urgent goals and the rest.
    """,
    responses={200: OpenApiTypes.OBJECT},
    tags=['Teams']
)
@api_view(['GET'])
def team_conflicts(request: Request, team_id: int) -> Response:
    """
    GET /api/teams/<team_id>/conflicts/
    """
    service = PriorityService()
    return ok(**service.conflict_summary(team_id))


@extend_schema(
    summary="Recompute team priorities",
    description="Recompute the cached effective priority of every open task in a team.",
    request=None,
    responses={200: OpenApiTypes.OBJECT},
    tags=['Teams']
)
@api_view(['POST'])
@throttle_classes([RecomputeRateThrottle])
def team_recompute(request: Request, team_id: int) -> Response:
    """
    POST /api/teams/<team_id>/recompute/
    """
    service = PriorityService()
    try:
        result = service.recompute_team(team_id)
    except PropagationFailure as exc:
        return engine_error_response(exc)
    return ok(**result)


@extend_schema(
    summary="Suggest priority changes",
    description="Conflict fixes first, then high-priority tasks not linked to any goal.",
    responses={200: OpenApiTypes.OBJECT},
    tags=['Teams']
)
@api_view(['GET'])
def team_suggestions(request: Request, team_id: int) -> Response:
    """
    GET /api/teams/<team_id>/suggestions/
    """
    service = PriorityService()
    return ok(**service.suggest_priorities(team_id))


@extend_schema(
    summary="Get the team priority queue",
    description="""
    Open tasks ranked for "what to work on next": effective score, then due
    date (undated last), then creation time.
    """,
    parameters=[
        OpenApiParameter('assignee', OpenApiTypes.INT, OpenApiParameter.QUERY),
        OpenApiParameter('exclude_blocked', OpenApiTypes.BOOL, OpenApiParameter.QUERY),
        OpenApiParameter('limit', OpenApiTypes.INT, OpenApiParameter.QUERY),
    ],
    responses={200: QueueEntrySerializer(many=True)},
    tags=['Teams']
)
@api_view(['GET'])
def team_queue(request: Request, team_id: int) -> Response:
    """
    GET /api/teams/<team_id>/queue/?assignee=3&exclude_blocked=true&limit=10
    """
    serializer = PriorityQueueQuerySerializer(data=request.query_params)
    if not serializer.is_valid():
        return invalid_input_response(serializer.errors)

    params = serializer.validated_data
    service = PriorityService()
    try:
        entries = service.priority_queue(
            team_id,
            assignee_id=params.get('assignee'),
            exclude_blocked=params['exclude_blocked'],
            limit=params.get('limit')
        )
    except PropagationFailure as exc:
        return engine_error_response(exc)
    return ok(count=len(entries), queue=QueueEntrySerializer(entries, many=True).data)


# ============================================
# INFO
# ============================================

@extend_schema(
    summary="API information",
    description="Get API information, the priority scale and available endpoints.",
    responses={200: OpenApiTypes.OBJECT},
    tags=['Info']
)
@api_view(['GET'])
def api_info(request: Request) -> Response:
    """
    Return API information and available endpoints.

    GET /api/
    """
    return Response({
        'name': 'Goal Priority Engine API',
        'version': '1.0.0',
        'documentation': '/api/docs/',
        'priority_scale': priority_scale(),
        'endpoints': {
            'GET /api/priorities/encode/': 'Convert a priority label to a score',
            'GET /api/priorities/decode/': 'Convert a score to a priority label',
            'GET|POST /api/goals/<id>/priority/': 'Read or set goal priority (POST propagates)',
            'GET|POST /api/tasks/<id>/priority/': 'Resolve or set task priority',
            'POST /api/projects/<id>/inheritance/': 'Toggle goal inheritance for a project',
            'GET /api/teams/<id>/priorities/': 'Team tasks by effective priority',
            'GET /api/teams/<id>/conflicts/': 'Priority conflicts and summary',
            'POST /api/teams/<id>/recompute/': 'Recompute cached priorities',
            'GET /api/teams/<id>/suggestions/': 'Priority suggestions',
            'GET /api/teams/<id>/queue/': 'What to work on next',
            'GET /api/docs/': 'Interactive API documentation',
            'GET /api/schema/': 'OpenAPI schema',
            'GET /api/': 'This info endpoint'
        },
        'error_codes': {
            code.value: code.name for code in ErrorCode
        }
    })
