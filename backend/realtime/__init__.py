"""
Realtime delivery of dispatch events.

Key Components:
    - gateway.py: NotificationGateway interface and its Channels / in-memory implementations
    - notifications.py: best-effort helpers used by the services layer
    - consumers/: WebSocket consumer relaying events to a user's socket

Usage:
    from realtime.notifications import notify_user, notify_users
    from realtime.gateway import get_notification_gateway
"""
