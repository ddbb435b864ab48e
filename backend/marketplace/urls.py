from django.contrib import admin
from django.urls import path, include

from .views import health_check

urlpatterns = [
    path('admin/', admin.site.urls),
    path("health/", health_check),  # Health check endpoint

    # Dispatch APIs: jobs, bids, escrow, price guidance
    path('api/', include('jobs.urls')),
    path('api/categories/', include('providers.urls')),
    path('api/users/', include('accounts.urls')),
]
