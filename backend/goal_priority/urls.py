"""
URL configuration for the goal_priority project.
"""

from django.contrib import admin
from django.urls import path, include
from django.http import JsonResponse
from drf_spectacular.views import SpectacularAPIView, SpectacularRedocView, SpectacularSwaggerView


def home_view(request):
    """Root endpoint with API information."""
    return JsonResponse({
        'message': 'Welcome to the Goal Priority Engine API',
        'version': '1.0.0',
        'endpoints': {
            'API Root': '/api/',
            'Team Priority Queue': 'GET /api/teams/<team_id>/queue/',
            'Team Conflicts': 'GET /api/teams/<team_id>/conflicts/',
            'Set Goal Priority': 'POST /api/goals/<goal_id>/priority/',
            'API Documentation': '/api/docs/',
            'OpenAPI Schema': '/api/schema/',
        },
    })


urlpatterns = [
    path('', home_view, name='home'),
    path('admin/', admin.site.urls),
    path('api/', include('priorities.urls')),
    # OpenAPI/Swagger Documentation
    path('api/schema/', SpectacularAPIView.as_view(), name='schema'),
    path('api/docs/', SpectacularSwaggerView.as_view(url_name='schema'), name='swagger-ui'),
    path('api/redoc/', SpectacularRedocView.as_view(url_name='schema'), name='redoc'),
]
