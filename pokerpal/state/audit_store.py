"""Insert-only audit trail of admin actions."""
import json
from typing import Any, Optional

from pokerpal.db.connection import db
from pokerpal.ledger.models import AuditAction, AuditLogEntry
from pokerpal.utils.logger import get_logger

logger = get_logger(__name__)


class AuditStore:
    """Writes and lists audit log entries. Entries are never updated."""

    async def record(
        self,
        admin_id: str,
        action: AuditAction,
        target_table: str,
        target_id: str,
        old_values: Optional[dict],
        new_values: Optional[dict],
        conn: Any = None,
    ) -> AuditLogEntry:
        """Append an audit entry."""
        record = await (conn or db).fetchrow(
            """
            INSERT INTO audit_logs (admin_id, action, target_table, target_id, old_values, new_values)
            VALUES ($1, $2, $3, $4, $5::jsonb, $6::jsonb)
            RETURNING *
            """,
            admin_id,
            action.value,
            target_table,
            target_id,
            json.dumps(old_values, default=str),
            json.dumps(new_values, default=str),
        )
        logger.info(f"Audit: {admin_id} {action.value} {target_table}/{target_id}")
        return AuditLogEntry.from_record(record)

    async def list_entries(self, limit: int = 100, offset: int = 0, conn: Any = None) -> list[AuditLogEntry]:
        """Newest entries first."""
        records = await (conn or db).fetch(
            "SELECT * FROM audit_logs ORDER BY timestamp DESC, log_id DESC LIMIT $1 OFFSET $2",
            limit, offset
        )
        return [AuditLogEntry.from_record(r) for r in records]

    async def count(self, conn: Any = None) -> int:
        """Total number of entries."""
        return await (conn or db).fetchval("SELECT COUNT(*) FROM audit_logs")


audit_store = AuditStore()
