import os
from typing import cast

from src.api.routers.runtime_utils import env_flag, env_str
from src.core.workflow.repository import NotificationEmitter, ProposalStore, UserDirectory
from src.core.workflow.transitions import DEFAULT_PROPOSAL_CODE_PREFIX
from src.infrastructure.workflow import (
    InMemoryNotificationEmitter,
    InMemoryProposalStore,
    PostgresNotificationEmitter,
    PostgresProposalStore,
    build_user_directory,
)


def workflow_store_backend_name() -> str:
    backend = os.getenv("WORKFLOW_STORE_BACKEND", "IN_MEMORY").strip().upper()
    return "POSTGRES" if backend == "POSTGRES" else "IN_MEMORY"


def workflow_postgres_dsn() -> str:
    return os.getenv("WORKFLOW_POSTGRES_DSN", "").strip()


def require_expected_status() -> bool:
    return env_flag("WORKFLOW_REQUIRE_EXPECTED_STATUS", False)


def notifications_enabled() -> bool:
    return env_flag("WORKFLOW_NOTIFICATIONS_ENABLED", True)


def proposal_code_prefix() -> str:
    return env_str("WORKFLOW_PROPOSAL_CODE_PREFIX", DEFAULT_PROPOSAL_CODE_PREFIX)


def _postgres_connection_exception_types() -> tuple[type[BaseException], ...]:
    types: list[type[BaseException]] = [
        ConnectionError,
        OSError,
        TimeoutError,
        TypeError,
        ValueError,
    ]
    try:
        import psycopg
    except ImportError:
        pass
    else:
        types.append(psycopg.Error)
    return tuple(types)


def build_store() -> ProposalStore:
    if workflow_store_backend_name() == "POSTGRES":
        dsn = workflow_postgres_dsn()
        if not dsn:
            raise RuntimeError("WORKFLOW_POSTGRES_DSN_REQUIRED")
        try:
            return cast(ProposalStore, PostgresProposalStore(dsn=dsn))
        except RuntimeError:
            raise
        except _postgres_connection_exception_types() as exc:
            raise RuntimeError("WORKFLOW_POSTGRES_CONNECTION_FAILED") from exc
    return InMemoryProposalStore()


def build_notifier() -> NotificationEmitter:
    if workflow_store_backend_name() == "POSTGRES":
        return cast(NotificationEmitter, PostgresNotificationEmitter(dsn=workflow_postgres_dsn()))
    return InMemoryNotificationEmitter()


def build_users() -> UserDirectory:
    return build_user_directory(os.getenv("WORKFLOW_USER_DIRECTORY_JSON"))
