from neighborly.services import (
    authorization,
    lifecycle_service,
    notification_service,
    profile_service,
    stats_service,
    task_state_machine,
    view_filter,
)


__all__ = [
    "authorization",
    "lifecycle_service",
    "notification_service",
    "profile_service",
    "stats_service",
    "task_state_machine",
    "view_filter",
]
