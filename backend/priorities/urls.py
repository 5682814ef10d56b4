"""
URL configuration for the priorities app.
"""

from django.urls import path
from . import views

urlpatterns = [
    path('', views.api_info, name='api-info'),
    path('priorities/encode/', views.encode_priority, name='encode-priority'),
    path('priorities/decode/', views.decode_score, name='decode-score'),
    path('goals/<int:goal_id>/priority/', views.goal_priority, name='goal-priority'),
    path('tasks/<int:task_id>/priority/', views.task_priority, name='task-priority'),
    path('projects/<int:project_id>/inheritance/', views.project_inheritance, name='project-inheritance'),
    # Team reports
    path('teams/<int:team_id>/priorities/', views.team_priorities, name='team-priorities'),
    path('teams/<int:team_id>/conflicts/', views.team_conflicts, name='team-conflicts'),
    path('teams/<int:team_id>/recompute/', views.team_recompute, name='team-recompute'),
    path('teams/<int:team_id>/suggestions/', views.team_suggestions, name='team-suggestions'),
    path('teams/<int:team_id>/queue/', views.team_queue, name='team-queue'),
]
