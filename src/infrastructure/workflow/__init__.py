from src.infrastructure.workflow.in_memory import (
    InMemoryNotificationEmitter,
    InMemoryProposalStore,
    InMemoryUserDirectory,
)
from src.infrastructure.workflow.postgres import (
    PostgresNotificationEmitter,
    PostgresProposalStore,
)
from src.infrastructure.workflow.user_directory import build_user_directory, parse_user_directory

__all__ = [
    "InMemoryNotificationEmitter",
    "InMemoryProposalStore",
    "InMemoryUserDirectory",
    "PostgresNotificationEmitter",
    "PostgresProposalStore",
    "build_user_directory",
    "parse_user_directory",
]
