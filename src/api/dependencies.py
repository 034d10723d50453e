from typing import Annotated, Optional

from fastapi import Header, HTTPException, status
from pydantic import ValidationError

from src.api.routers.workflow_http_errors import HTTP_422_UNPROCESSABLE
from src.core.workflow import WorkflowUser


def get_current_actor(
    actor_id: Annotated[
        Optional[str],
        Header(
            alias="X-Actor-Id",
            description="Acting user id supplied by the upstream identity context.",
            examples=["usr_manager_1"],
        ),
    ] = None,
    actor_role: Annotated[
        Optional[str],
        Header(
            alias="X-Actor-Role",
            description="Acting user role: admin, manager, researcher or viewer.",
            examples=["manager"],
        ),
    ] = None,
    actor_name: Annotated[
        Optional[str],
        Header(alias="X-Actor-Name", description="Optional display name.", examples=["Morgan"]),
    ] = None,
) -> WorkflowUser:
    if not actor_id or not actor_role:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="ACTOR_CONTEXT_REQUIRED",
        )
    try:
        return WorkflowUser(id=actor_id, role=actor_role.strip().lower(), name=actor_name)
    except ValidationError as exc:
        raise HTTPException(
            status_code=HTTP_422_UNPROCESSABLE,
            detail="ACTOR_ROLE_INVALID",
        ) from exc
