"""WebSocket URL routing for the realtime app."""

from django.urls import re_path

from .consumers import DispatchConsumer

websocket_urlpatterns = [
    # Customers and providers share one endpoint; events are routed per user
    # URL: ws://localhost:8000/ws/dispatch/
    re_path(
        r"ws/dispatch/$",
        DispatchConsumer.as_asgi(),
        name="dispatch-ws"
    ),
]
