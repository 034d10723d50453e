import json
from contextlib import closing
from datetime import datetime
from importlib.util import find_spec
from typing import Optional

from src.core.workflow.errors import (
    ProposalCodeConflictError,
    ProposalNotFoundError,
    ProposalStoreConflictError,
)
from src.core.workflow.models import (
    AuditRecord,
    Notification,
    ProposalPatch,
    ProposalRecord,
    WorkflowUser,
)
from src.infrastructure.postgres_migrations import apply_postgres_migrations

_PROPOSAL_COLUMNS = """
    proposal_id,
    code,
    title,
    status,
    author_json,
    sent_to_client,
    created_at,
    updated_at,
    version
"""

_UNIQUE_VIOLATION = "23505"
_CODE_UNIQUE_CONSTRAINT = "workflow_proposals_code_key"


class PostgresProposalStore:
    def __init__(self, *, dsn: str) -> None:
        if not dsn:
            raise RuntimeError("WORKFLOW_POSTGRES_DSN_REQUIRED")
        if find_spec("psycopg") is None:
            raise RuntimeError("WORKFLOW_POSTGRES_DRIVER_MISSING")
        self._dsn = dsn
        self._init_db()

    def create(self, proposal: ProposalRecord) -> None:
        query = f"""
            INSERT INTO workflow_proposals ({_PROPOSAL_COLUMNS})
            VALUES (%s, %s, %s, %s, %s, %s, %s, %s, %s)
        """
        with closing(self._connect()) as connection:
            connection.execute(
                query,
                (
                    proposal.proposal_id,
                    proposal.code,
                    proposal.title,
                    proposal.status,
                    _json_dump(proposal.author.model_dump(mode="json")),
                    proposal.sent_to_client,
                    proposal.created_at.isoformat(),
                    proposal.updated_at.isoformat(),
                    proposal.version,
                ),
            )
            for sequence_no, record in enumerate(proposal.approval_history, start=1):
                self._insert_audit_record(
                    connection=connection,
                    proposal_id=proposal.proposal_id,
                    sequence_no=sequence_no,
                    record=record,
                )
            connection.commit()

    def load(self, *, proposal_id: str) -> Optional[ProposalRecord]:
        with closing(self._connect()) as connection:
            return self._load(connection=connection, proposal_id=proposal_id)

    def save(
        self,
        *,
        proposal_id: str,
        patch: ProposalPatch,
        audit_record: AuditRecord,
        expected_version: int,
    ) -> ProposalRecord:
        query = """
            UPDATE workflow_proposals SET
                status = %s,
                code = COALESCE(code, %s),
                sent_to_client = (sent_to_client OR %s),
                updated_at = %s,
                version = version + 1
            WHERE proposal_id = %s AND version = %s
            RETURNING version
        """
        with closing(self._connect()) as connection:
            try:
                row = connection.execute(
                    query,
                    (
                        patch.status,
                        patch.code,
                        bool(patch.sent_to_client),
                        patch.updated_at.isoformat(),
                        proposal_id,
                        expected_version,
                    ),
                ).fetchone()
                if row is None:
                    self._raise_missing_or_conflict(
                        connection=connection,
                        proposal_id=proposal_id,
                        expected_version=expected_version,
                    )
                self._insert_audit_record(
                    connection=connection,
                    proposal_id=proposal_id,
                    sequence_no=expected_version,
                    record=audit_record,
                )
                connection.commit()
            except Exception as exc:
                connection.rollback()
                if patch.code is not None and _is_code_collision(exc):
                    raise ProposalCodeConflictError(
                        proposal_id=proposal_id, code=patch.code
                    ) from exc
                raise
            saved = self._load(connection=connection, proposal_id=proposal_id)
        if saved is None:
            raise ProposalNotFoundError(proposal_id)
        return saved

    def _load(self, *, connection, proposal_id: str) -> Optional[ProposalRecord]:
        proposal_query = f"""
            SELECT {_PROPOSAL_COLUMNS}
            FROM workflow_proposals
            WHERE proposal_id = %s
        """
        row = connection.execute(proposal_query, (proposal_id,)).fetchone()
        if row is None:
            return None
        audit_query = """
            SELECT
                record_id,
                proposal_id,
                sequence_no,
                action,
                by_json,
                to_json,
                comment,
                client_email,
                occurred_at,
                previous_status
            FROM workflow_audit_records
            WHERE proposal_id = %s
            ORDER BY sequence_no ASC
        """
        audit_rows = connection.execute(audit_query, (proposal_id,)).fetchall()
        return _to_proposal(row, [_to_audit_record(audit_row) for audit_row in audit_rows])

    def _raise_missing_or_conflict(
        self, *, connection, proposal_id: str, expected_version: int
    ) -> None:
        row = connection.execute(
            "SELECT version FROM workflow_proposals WHERE proposal_id = %s",
            (proposal_id,),
        ).fetchone()
        if row is None:
            raise ProposalNotFoundError(proposal_id)
        raise ProposalStoreConflictError(
            proposal_id=proposal_id,
            expected_version=expected_version,
            actual_version=int(row["version"]),
        )

    def _insert_audit_record(
        self, *, connection, proposal_id: str, sequence_no: int, record: AuditRecord
    ) -> None:
        query = """
            INSERT INTO workflow_audit_records (
                record_id,
                proposal_id,
                sequence_no,
                action,
                by_json,
                to_json,
                comment,
                client_email,
                occurred_at,
                previous_status
            ) VALUES (%s, %s, %s, %s, %s, %s, %s, %s, %s, %s)
        """
        connection.execute(
            query,
            (
                record.id,
                proposal_id,
                sequence_no,
                record.action,
                _json_dump(record.by.model_dump(mode="json")),
                _optional_user_json(record.to),
                record.comment,
                record.client_email,
                record.timestamp.isoformat(),
                record.previous_status,
            ),
        )

    def _connect(self):
        psycopg, dict_row = _import_psycopg()
        return psycopg.connect(self._dsn, row_factory=dict_row)

    def _init_db(self) -> None:
        with closing(self._connect()) as connection:
            apply_postgres_migrations(connection=connection, namespace="workflow")


class PostgresNotificationEmitter:
    def __init__(self, *, dsn: str) -> None:
        if not dsn:
            raise RuntimeError("WORKFLOW_POSTGRES_DSN_REQUIRED")
        if find_spec("psycopg") is None:
            raise RuntimeError("WORKFLOW_POSTGRES_DRIVER_MISSING")
        self._dsn = dsn

    def emit(self, notification: Notification) -> None:
        query = """
            INSERT INTO workflow_notifications (
                notification_id,
                recipient_id,
                notification_type,
                title,
                message,
                proposal_id,
                proposal_title,
                from_user_json,
                is_read,
                created_at
            ) VALUES (%s, %s, %s, %s, %s, %s, %s, %s, %s, %s)
        """
        with closing(self._connect()) as connection:
            connection.execute(
                query,
                (
                    notification.id,
                    notification.recipient_id,
                    notification.type,
                    notification.title,
                    notification.message,
                    notification.proposal_id,
                    notification.proposal_title,
                    _json_dump(notification.from_user.model_dump(mode="json")),
                    notification.read,
                    notification.created_at.isoformat(),
                ),
            )
            connection.commit()

    def list_for_recipient(self, *, recipient_id: str) -> list[Notification]:
        query = """
            SELECT
                notification_id,
                recipient_id,
                notification_type,
                title,
                message,
                proposal_id,
                proposal_title,
                from_user_json,
                is_read,
                created_at
            FROM workflow_notifications
            WHERE recipient_id = %s
            ORDER BY created_at DESC, notification_id DESC
        """
        with closing(self._connect()) as connection:
            rows = connection.execute(query, (recipient_id,)).fetchall()
        return [_to_notification(row) for row in rows]

    def _connect(self):
        psycopg, dict_row = _import_psycopg()
        return psycopg.connect(self._dsn, row_factory=dict_row)


def _import_psycopg():
    import psycopg
    from psycopg.rows import dict_row

    return psycopg, dict_row


def _is_code_collision(exc: Exception) -> bool:
    if getattr(exc, "sqlstate", None) != _UNIQUE_VIOLATION:
        return False
    diag = getattr(exc, "diag", None)
    return getattr(diag, "constraint_name", None) == _CODE_UNIQUE_CONSTRAINT


def _json_dump(value: dict) -> str:
    return json.dumps(value, separators=(",", ":"), sort_keys=True)


def _optional_user_json(user: Optional[WorkflowUser]) -> Optional[str]:
    if user is None:
        return None
    return _json_dump(user.model_dump(mode="json"))


def _optional_user(value: Optional[str]) -> Optional[WorkflowUser]:
    if value is None:
        return None
    return WorkflowUser.model_validate(json.loads(value))


def _to_proposal(row, history: list[AuditRecord]) -> ProposalRecord:
    return ProposalRecord(
        proposal_id=row["proposal_id"],
        code=row["code"],
        title=row["title"],
        status=row["status"],
        author=WorkflowUser.model_validate(json.loads(row["author_json"])),
        approval_history=history,
        sent_to_client=bool(row["sent_to_client"]),
        created_at=datetime.fromisoformat(row["created_at"]),
        updated_at=datetime.fromisoformat(row["updated_at"]),
        version=int(row["version"]),
    )


def _to_audit_record(row) -> AuditRecord:
    return AuditRecord(
        id=row["record_id"],
        action=row["action"],
        by=WorkflowUser.model_validate(json.loads(row["by_json"])),
        to=_optional_user(row["to_json"]),
        comment=row["comment"],
        client_email=row["client_email"],
        timestamp=datetime.fromisoformat(row["occurred_at"]),
        previous_status=row["previous_status"],
    )


def _to_notification(row) -> Notification:
    return Notification(
        id=row["notification_id"],
        recipient_id=row["recipient_id"],
        type=row["notification_type"],
        title=row["title"],
        message=row["message"],
        proposal_id=row["proposal_id"],
        proposal_title=row["proposal_title"],
        from_user=WorkflowUser.model_validate(json.loads(row["from_user_json"])),
        read=bool(row["is_read"]),
        created_at=datetime.fromisoformat(row["created_at"]),
    )
