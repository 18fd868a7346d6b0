from src.services import (
    authorization,
    deletion_service,
    document_service,
    document_state_machine,
    task_service,
    user_service,
)


__all__ = [
    "authorization",
    "deletion_service",
    "document_service",
    "document_state_machine",
    "task_service",
    "user_service",
]
