import redis
from django.conf import settings
from django.utils import timezone
from rest_framework.decorators import api_view, permission_classes
from rest_framework.permissions import AllowAny
from rest_framework.response import Response
from rest_framework import status
from channels.layers import get_channel_layer

from jobs.models import Job
from jobs.tasks import escalate_broadcast_task, process_dispatch_timers_task


def _check_database():
    Job.objects.exists()


def _check_redis():
    redis.Redis.from_url(settings.REDIS_URL, socket_timeout=3).ping()


def _check_channels():
    if get_channel_layer() is None:
        raise RuntimeError("no channel layer")


def _check_celery():
    registered = escalate_broadcast_task.app.tasks
    for task in (escalate_broadcast_task, process_dispatch_timers_task):
        if task.name not in registered:
            raise RuntimeError(f"task {task.name} not registered")


HEALTH_CHECKS = [
    ("database", _check_database),
    ("redis", _check_redis),
    ("channels", _check_channels),
    ("celery", _check_celery),
]


@api_view(["GET"])
@permission_classes([AllowAny])
def health_check(request):
    """
    Liveness of everything dispatch depends on, plus how far the escalation
    sweep is lagging (overdue stage escalations still waiting to run).
    """
    services = {}
    healthy = True
    for name, check in HEALTH_CHECKS:
        try:
            check()
            services[name] = "healthy"
        except Exception as e:
            services[name] = f"unhealthy: {e}"
            healthy = False

    body = {
        "status": "healthy" if healthy else "unhealthy",
        "timestamp": timezone.now().isoformat(),
        "services": services,
    }
    if services["database"] == "healthy":
        body["dispatch"] = {
            "overdue_escalations": Job.objects.filter(
                status=Job.BROADCASTED,
                next_escalation_at__lte=timezone.now(),
            ).count(),
        }

    return Response(body, status=status.HTTP_200_OK if healthy else status.HTTP_503_SERVICE_UNAVAILABLE)
