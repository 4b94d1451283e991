"""
Campaign Service Data Repository

Data access layer - PostgreSQL (Async)

Every campaign and recipient statement is built on a TenantScope, whose
WHERE clause always starts with the organization filter. Only the
tracking methods (open pixel, click redirect) address rows by email id
alone, because those requests carry no caller.
"""

import json
import logging
import uuid
from datetime import datetime, timezone
from typing import Any, Dict, List, Optional, Sequence, Tuple

from core.config_manager import ConfigManager
from core.postgres_client import AsyncPostgresClient, get_postgres_client
from .models import (
    Campaign,
    CampaignRecipientEmail,
    CampaignStatus,
    RecipientDraft,
    RecipientStats,
    RecipientStatus,
    TargetCriteria,
)

logger = logging.getLogger(__name__)


class TenantScope:
    """
    WHERE clause builder bound to one organization.

    ``$1`` is always the organization id; further values are appended as
    they are added, so SET and LIMIT placeholders can share the same
    parameter list.
    """

    def __init__(self, organization_id: str, soft_delete: bool = False):
        if not organization_id:
            raise ValueError("organization_id is required for tenant-scoped queries")
        self.params: List[Any] = [organization_id]
        self.conditions: List[str] = ["organization_id = $1"]
        if soft_delete:
            self.conditions.append("deleted_at IS NULL")

    def param(self, value: Any) -> str:
        """Bind a value and return its placeholder"""
        self.params.append(value)
        return f"${len(self.params)}"

    def where(self, template: str, value: Any) -> "TenantScope":
        """Add a condition; ``{}`` in the template becomes the placeholder"""
        self.conditions.append(template.format(self.param(value)))
        return self

    @property
    def clause(self) -> str:
        return " AND ".join(self.conditions)


class CampaignRepository:
    """Campaign service data repository - PostgreSQL (Async)"""

    # Columns a draft edit may touch
    UPDATABLE_FIELDS = {
        "name", "subject", "body", "template_id",
        "target_criteria", "emails_per_minute", "scheduled_at",
    }

    # Columns a status transition may set alongside the status
    TRANSITION_FIELDS = {
        "started_at", "paused_at", "completed_at",
        "total_recipients", "sent_count", "failed_count",
    }

    # Columns a recipient status update may set alongside the status
    RECIPIENT_FIELDS = {"sent_at", "error_message", "retry_count"}

    def __init__(
        self,
        config: Optional[ConfigManager] = None,
        db: Optional[AsyncPostgresClient] = None,
    ):
        if db is None:
            if config is None:
                config = ConfigManager("campaign_service")
            db = get_postgres_client("campaign_service", config=config)

        self.db = db
        self.schema = "campaign"

        # Table names
        self.campaigns_table = "email_campaigns"
        self.emails_table = "campaign_emails"
        self.opens_table = "email_opens"
        self.clicks_table = "email_clicks"

    async def initialize(self):
        """Initialize database connection"""
        logger.info("Campaign repository initialized with PostgreSQL")

    async def close(self):
        """Close database connection"""
        await self.db.close()
        logger.info("Campaign repository database connection closed")

    async def health_check(self) -> bool:
        """Check repository health"""
        try:
            async with self.db:
                result = await self.db.query_row("SELECT 1 as healthy")
                return result is not None
        except Exception as e:
            logger.error(f"Health check failed: {e}")
            return False

    def _campaign_scope(self, organization_id: str) -> TenantScope:
        return TenantScope(organization_id, soft_delete=True)

    def _email_scope(self, organization_id: str) -> TenantScope:
        return TenantScope(organization_id)

    # ====================
    # Campaign CRUD
    # ====================

    async def create_campaign(self, campaign: Campaign) -> Campaign:
        """Insert a new campaign"""
        try:
            now = datetime.now(timezone.utc)

            query = f'''
                INSERT INTO {self.schema}.{self.campaigns_table} (
                    campaign_id, organization_id, name, subject, body,
                    template_id, target_criteria, emails_per_minute, status,
                    scheduled_at, created_by, created_at, updated_at
                ) VALUES (
                    $1, $2, $3, $4, $5, $6, $7::jsonb, $8, $9, $10, $11, $12, $12
                )
                RETURNING *
            '''

            params = [
                campaign.campaign_id,
                campaign.organization_id,
                campaign.name,
                campaign.subject,
                campaign.body,
                campaign.template_id,
                _criteria_json(campaign.target_criteria),
                campaign.emails_per_minute,
                campaign.status.value,
                campaign.scheduled_at,
                campaign.created_by,
                campaign.created_at or now,
            ]

            async with self.db:
                result = await self.db.query_row(query, params=params)

            return self._row_to_campaign(result) if result else campaign

        except Exception as e:
            logger.error(f"Error creating campaign: {e}", exc_info=True)
            raise

    async def get_campaign(
        self, organization_id: str, campaign_id: str
    ) -> Optional[Campaign]:
        """Get campaign by organization and ID"""
        try:
            scope = self._campaign_scope(organization_id).where("campaign_id = {}", campaign_id)
            query = f'''
                SELECT * FROM {self.schema}.{self.campaigns_table}
                WHERE {scope.clause}
            '''

            async with self.db:
                result = await self.db.query_row(query, params=scope.params)

            return self._row_to_campaign(result) if result else None

        except Exception as e:
            logger.error(f"Error getting campaign {campaign_id} for org {organization_id}: {e}")
            raise

    async def list_campaigns(
        self,
        organization_id: str,
        status: Optional[CampaignStatus] = None,
        limit: int = 20,
        offset: int = 0,
    ) -> Tuple[List[Campaign], int]:
        """List campaigns newest first"""
        try:
            scope = self._campaign_scope(organization_id)
            if status:
                scope.where("status = {}", status.value)

            count_query = f'''
                SELECT COUNT(*) as total FROM {self.schema}.{self.campaigns_table}
                WHERE {scope.clause}
            '''

            async with self.db:
                count_result = await self.db.query_row(count_query, params=scope.params)
            total = count_result.get("total", 0) if count_result else 0

            params = list(scope.params) + [limit, offset]
            list_query = f'''
                SELECT * FROM {self.schema}.{self.campaigns_table}
                WHERE {scope.clause}
                ORDER BY created_at DESC
                LIMIT ${len(params) - 1} OFFSET ${len(params)}
            '''

            async with self.db:
                results = await self.db.query(list_query, params=params)

            return [self._row_to_campaign(row) for row in results or []], total

        except Exception as e:
            logger.error(f"Error listing campaigns: {e}")
            raise

    async def update_campaign(
        self,
        organization_id: str,
        campaign_id: str,
        updates: Dict[str, Any],
        required_status: Optional[CampaignStatus] = None,
    ) -> Optional[Campaign]:
        """
        Update campaign content fields.

        With ``required_status`` the update only applies while the campaign
        is still in that status.
        """
        unknown = set(updates) - self.UPDATABLE_FIELDS
        if unknown:
            raise ValueError(f"Fields not updatable: {sorted(unknown)}")
        if not updates:
            return await self.get_campaign(organization_id, campaign_id)

        try:
            scope = self._campaign_scope(organization_id)
            set_clauses = [
                self._set_clause(scope, key, value) for key, value in updates.items()
            ]
            set_clauses.append(f"updated_at = {scope.param(datetime.now(timezone.utc))}")
            scope.where("campaign_id = {}", campaign_id)
            if required_status:
                scope.where("status = {}", required_status.value)

            query = f'''
                UPDATE {self.schema}.{self.campaigns_table}
                SET {", ".join(set_clauses)}
                WHERE {scope.clause}
                RETURNING *
            '''

            async with self.db:
                result = await self.db.query_row(query, params=scope.params)

            return self._row_to_campaign(result) if result else None

        except Exception as e:
            logger.error(f"Error updating campaign {campaign_id}: {e}")
            raise

    async def transition_status(
        self,
        organization_id: str,
        campaign_id: str,
        from_statuses: Sequence[CampaignStatus],
        to_status: CampaignStatus,
        **fields: Any,
    ) -> Optional[Campaign]:
        """
        Conditionally move a campaign to a new status.

        The update only applies while the stored status is one of
        ``from_statuses``; a concurrent transition that got there first
        makes this return None.
        """
        unknown = set(fields) - self.TRANSITION_FIELDS
        if unknown:
            raise ValueError(f"Fields not allowed in a transition: {sorted(unknown)}")

        try:
            scope = self._campaign_scope(organization_id)
            set_clauses = [f"status = {scope.param(to_status.value)}"]
            set_clauses.extend(self._set_clause(scope, key, value) for key, value in fields.items())
            set_clauses.append(f"updated_at = {scope.param(datetime.now(timezone.utc))}")
            scope.where("campaign_id = {}", campaign_id)
            scope.where("status = ANY({})", [s.value for s in from_statuses])

            query = f'''
                UPDATE {self.schema}.{self.campaigns_table}
                SET {", ".join(set_clauses)}
                WHERE {scope.clause}
                RETURNING *
            '''

            async with self.db:
                result = await self.db.query_row(query, params=scope.params)

            return self._row_to_campaign(result) if result else None

        except Exception as e:
            logger.error(
                f"Error transitioning campaign {campaign_id} to {to_status.value}: {e}"
            )
            raise

    async def increment_counts(
        self, organization_id: str, campaign_id: str, sent: int, failed: int
    ) -> Optional[Campaign]:
        """Add to the campaign's sent/failed counters"""
        try:
            scope = self._campaign_scope(organization_id)
            sent_param = scope.param(sent)
            failed_param = scope.param(failed)
            now_param = scope.param(datetime.now(timezone.utc))
            scope.where("campaign_id = {}", campaign_id)

            query = f'''
                UPDATE {self.schema}.{self.campaigns_table}
                SET sent_count = sent_count + {sent_param},
                    failed_count = failed_count + {failed_param},
                    updated_at = {now_param}
                WHERE {scope.clause}
                RETURNING *
            '''

            async with self.db:
                result = await self.db.query_row(query, params=scope.params)

            return self._row_to_campaign(result) if result else None

        except Exception as e:
            logger.error(f"Error incrementing counts for campaign {campaign_id}: {e}")
            raise

    async def soft_delete_campaign(self, organization_id: str, campaign_id: str) -> bool:
        """Soft delete campaign"""
        try:
            scope = self._campaign_scope(organization_id)
            now_param = scope.param(datetime.now(timezone.utc))
            scope.where("campaign_id = {}", campaign_id)

            query = f'''
                UPDATE {self.schema}.{self.campaigns_table}
                SET deleted_at = {now_param}, updated_at = {now_param}
                WHERE {scope.clause}
            '''

            async with self.db:
                affected = await self.db.execute(query, params=scope.params)

            return bool(affected)

        except Exception as e:
            logger.error(f"Error deleting campaign {campaign_id}: {e}")
            raise

    # ====================
    # Recipient Operations
    # ====================

    async def count_recipients(
        self,
        organization_id: str,
        campaign_id: str,
        status: Optional[RecipientStatus] = None,
    ) -> int:
        """Count recipient rows, optionally by status"""
        try:
            scope = self._email_scope(organization_id).where("campaign_id = {}", campaign_id)
            if status:
                scope.where("status = {}", status.value)

            query = f'''
                SELECT COUNT(*) as total FROM {self.schema}.{self.emails_table}
                WHERE {scope.clause}
            '''

            async with self.db:
                result = await self.db.query_row(query, params=scope.params)

            return int(result.get("total", 0)) if result else 0

        except Exception as e:
            logger.error(f"Error counting recipients for campaign {campaign_id}: {e}")
            raise

    async def get_recipient_stats(
        self, organization_id: str, campaign_id: str
    ) -> RecipientStats:
        """Count recipient rows per status"""
        try:
            scope = self._email_scope(organization_id).where("campaign_id = {}", campaign_id)
            query = f'''
                SELECT status, COUNT(*) as total FROM {self.schema}.{self.emails_table}
                WHERE {scope.clause}
                GROUP BY status
            '''

            async with self.db:
                results = await self.db.query(query, params=scope.params)

            counts = {row["status"].lower(): int(row["total"]) for row in results or []}
            return RecipientStats(**counts)

        except Exception as e:
            logger.error(f"Error getting recipient stats for campaign {campaign_id}: {e}")
            raise

    def _insert_recipients_statement(
        self,
        organization_id: str,
        campaign_id: str,
        recipients: List[RecipientDraft],
    ) -> Dict[str, Any]:
        """Single INSERT for all drafts; existing (campaign_id, member_id) pairs are skipped"""
        query = f'''
            INSERT INTO {self.schema}.{self.emails_table} (
                email_id, campaign_id, organization_id, member_id,
                recipient_email, recipient_name, status, created_at
            )
            SELECT r.email_id, $1, $2, r.member_id, r.recipient_email,
                   r.recipient_name, 'PENDING', $7
            FROM unnest($3::text[], $4::text[], $5::text[], $6::text[])
                AS r(email_id, member_id, recipient_email, recipient_name)
            ON CONFLICT (campaign_id, member_id) DO NOTHING
        '''

        params = [
            campaign_id,
            organization_id,
            [f"cre_{uuid.uuid4().hex[:16]}" for _ in recipients],
            [r.member_id for r in recipients],
            [r.recipient_email for r in recipients],
            [r.recipient_name for r in recipients],
            datetime.now(timezone.utc),
        ]
        return {"sql": query, "params": params}

    async def create_recipients(
        self,
        organization_id: str,
        campaign_id: str,
        recipients: List[RecipientDraft],
    ) -> int:
        """
        Bulk insert PENDING rows in one statement.

        Members that already have a row for the campaign are skipped by the
        (campaign_id, member_id) unique index. Returns the inserted count.
        """
        if not recipients:
            return 0

        try:
            statement = self._insert_recipients_statement(organization_id, campaign_id, recipients)

            async with self.db:
                inserted = await self.db.execute(statement["sql"], params=statement["params"])

            return inserted

        except Exception as e:
            logger.error(f"Error creating recipients for campaign {campaign_id}: {e}", exc_info=True)
            raise

    async def replace_recipients(
        self,
        organization_id: str,
        campaign_id: str,
        recipients: List[RecipientDraft],
    ) -> int:
        """
        Swap all recipient rows of a campaign for new PENDING rows.

        Delete and insert run in one transaction, so a failure keeps the
        previous rows. Returns the inserted count.
        """
        try:
            scope = self._email_scope(organization_id).where("campaign_id = {}", campaign_id)
            operations = [{
                "sql": f'''
                    DELETE FROM {self.schema}.{self.emails_table}
                    WHERE {scope.clause}
                ''',
                "params": scope.params,
            }]
            if recipients:
                operations.append(
                    self._insert_recipients_statement(organization_id, campaign_id, recipients)
                )

            async with self.db:
                results = await self.db.execute_batch(operations)

            return results[1] if len(results) > 1 else 0

        except Exception as e:
            logger.error(f"Error replacing recipients for campaign {campaign_id}: {e}", exc_info=True)
            raise

    async def list_recipients(
        self,
        organization_id: str,
        campaign_id: str,
        status: Optional[RecipientStatus] = None,
        limit: int = 50,
        offset: int = 0,
    ) -> Tuple[List[CampaignRecipientEmail], int]:
        """List recipient rows ordered by status then name"""
        try:
            scope = self._email_scope(organization_id).where("campaign_id = {}", campaign_id)
            if status:
                scope.where("status = {}", status.value)

            count_query = f'''
                SELECT COUNT(*) as total FROM {self.schema}.{self.emails_table}
                WHERE {scope.clause}
            '''

            async with self.db:
                count_result = await self.db.query_row(count_query, params=scope.params)
            total = count_result.get("total", 0) if count_result else 0

            params = list(scope.params) + [limit, offset]
            list_query = f'''
                SELECT * FROM {self.schema}.{self.emails_table}
                WHERE {scope.clause}
                ORDER BY status ASC, recipient_name ASC
                LIMIT ${len(params) - 1} OFFSET ${len(params)}
            '''

            async with self.db:
                results = await self.db.query(list_query, params=params)

            return [self._row_to_recipient(row) for row in results or []], total

        except Exception as e:
            logger.error(f"Error listing recipients for campaign {campaign_id}: {e}")
            raise

    async def get_pending_recipients(
        self, organization_id: str, campaign_id: str, limit: int
    ) -> List[CampaignRecipientEmail]:
        """Oldest PENDING rows first"""
        try:
            scope = (
                self._email_scope(organization_id)
                .where("campaign_id = {}", campaign_id)
                .where("status = {}", RecipientStatus.PENDING.value)
            )
            limit_param = scope.param(limit)
            query = f'''
                SELECT * FROM {self.schema}.{self.emails_table}
                WHERE {scope.clause}
                ORDER BY created_at ASC
                LIMIT {limit_param}
            '''

            async with self.db:
                results = await self.db.query(query, params=scope.params)

            return [self._row_to_recipient(row) for row in results or []]

        except Exception as e:
            logger.error(f"Error getting pending recipients for campaign {campaign_id}: {e}")
            raise

    async def skip_pending_recipients(self, organization_id: str, campaign_id: str) -> int:
        """Move every PENDING row to SKIPPED in one statement"""
        try:
            scope = self._email_scope(organization_id)
            status_param = scope.param(RecipientStatus.SKIPPED.value)
            scope.where("campaign_id = {}", campaign_id)
            scope.where("status = {}", RecipientStatus.PENDING.value)

            query = f'''
                UPDATE {self.schema}.{self.emails_table}
                SET status = {status_param}
                WHERE {scope.clause}
            '''

            async with self.db:
                return await self.db.execute(query, params=scope.params)

        except Exception as e:
            logger.error(f"Error skipping pending recipients for campaign {campaign_id}: {e}")
            raise

    async def claim_recipient(self, organization_id: str, campaign_id: str, email_id: str) -> bool:
        """
        Move one PENDING row to SENDING for delivery.

        Only applies while the row is still PENDING and its campaign is
        still SENDING; False means a cancel, pause or other sender got
        there first and the email must not go out.
        """
        try:
            scope = self._email_scope(organization_id)
            status_param = scope.param(RecipientStatus.SENDING.value)
            scope.where("campaign_id = {}", campaign_id)
            scope.where("email_id = {}", email_id)
            scope.where("status = {}", RecipientStatus.PENDING.value)
            scope.where(
                f"EXISTS (SELECT 1 FROM {self.schema}.{self.campaigns_table} c "
                f"WHERE c.organization_id = $1 AND c.campaign_id = "
                f"{self.emails_table}.campaign_id AND c.deleted_at IS NULL "
                "AND c.status = {})",
                CampaignStatus.SENDING.value,
            )

            query = f'''
                UPDATE {self.schema}.{self.emails_table}
                SET status = {status_param}
                WHERE {scope.clause}
            '''

            async with self.db:
                affected = await self.db.execute(query, params=scope.params)

            return bool(affected)

        except Exception as e:
            logger.error(f"Error claiming recipient {email_id}: {e}")
            raise

    async def update_recipient_status(
        self,
        organization_id: str,
        email_id: str,
        status: RecipientStatus,
        **fields: Any,
    ) -> bool:
        """Update one recipient row"""
        unknown = set(fields) - self.RECIPIENT_FIELDS
        if unknown:
            raise ValueError(f"Recipient fields not updatable: {sorted(unknown)}")

        try:
            scope = self._email_scope(organization_id)
            set_clauses = [f"status = {scope.param(status.value)}"]
            set_clauses.extend(self._set_clause(scope, key, value) for key, value in fields.items())
            scope.where("email_id = {}", email_id)

            query = f'''
                UPDATE {self.schema}.{self.emails_table}
                SET {", ".join(set_clauses)}
                WHERE {scope.clause}
            '''

            async with self.db:
                affected = await self.db.execute(query, params=scope.params)

            return bool(affected)

        except Exception as e:
            logger.error(f"Error updating recipient {email_id}: {e}")
            raise

    # ====================
    # Tracking
    # ====================

    async def record_open(
        self, email_id: str, user_agent: Optional[str], ip_address: Optional[str]
    ) -> bool:
        """
        Record an email open.

        The recipient counter is bumped first; its returned value tells
        whether this was the first open, which drives unique_opens.
        """
        try:
            now = datetime.now(timezone.utc)
            update_email = f'''
                UPDATE {self.schema}.{self.emails_table}
                SET open_count = open_count + 1,
                    last_opened_at = $2,
                    first_opened_at = COALESCE(first_opened_at, $2)
                WHERE email_id = $1
                RETURNING campaign_id, open_count
            '''

            async with self.db:
                row = await self.db.query_row(update_email, params=[email_id, now])
            if not row:
                return False

            is_first = row["open_count"] == 1
            insert_open = f'''
                INSERT INTO {self.schema}.{self.opens_table} (email_id, user_agent, ip_address, opened_at)
                VALUES ($1, $2, $3, $4)
            '''
            update_campaign = f'''
                UPDATE {self.schema}.{self.campaigns_table}
                SET total_opens = total_opens + 1,
                    unique_opens = unique_opens + $2
                WHERE campaign_id = $1
            '''

            async with self.db:
                await self.db.execute(insert_open, params=[email_id, user_agent, ip_address, now])
                await self.db.execute(update_campaign, params=[row["campaign_id"], 1 if is_first else 0])

            return True

        except Exception as e:
            logger.error(f"Error recording open for {email_id}: {e}")
            raise

    async def record_click(
        self,
        email_id: str,
        url: str,
        user_agent: Optional[str],
        ip_address: Optional[str],
    ) -> bool:
        """Record a link click; first click per email drives unique_clicks"""
        try:
            now = datetime.now(timezone.utc)
            update_email = f'''
                UPDATE {self.schema}.{self.emails_table}
                SET click_count = click_count + 1
                WHERE email_id = $1
                RETURNING campaign_id, click_count
            '''

            async with self.db:
                row = await self.db.query_row(update_email, params=[email_id])
            if not row:
                return False

            is_first = row["click_count"] == 1
            insert_click = f'''
                INSERT INTO {self.schema}.{self.clicks_table} (email_id, url, user_agent, ip_address, clicked_at)
                VALUES ($1, $2, $3, $4, $5)
            '''
            update_campaign = f'''
                UPDATE {self.schema}.{self.campaigns_table}
                SET total_clicks = total_clicks + 1,
                    unique_clicks = unique_clicks + $2
                WHERE campaign_id = $1
            '''

            async with self.db:
                await self.db.execute(insert_click, params=[email_id, url, user_agent, ip_address, now])
                await self.db.execute(update_campaign, params=[row["campaign_id"], 1 if is_first else 0])

            return True

        except Exception as e:
            logger.error(f"Error recording click for {email_id}: {e}")
            raise

    # ====================
    # Helpers
    # ====================

    @staticmethod
    def _set_clause(scope: TenantScope, key: str, value: Any) -> str:
        if key == "target_criteria":
            return f"{key} = {scope.param(_criteria_json(value))}::jsonb"
        if hasattr(value, "value"):  # Enum
            value = value.value
        return f"{key} = {scope.param(value)}"

    def _row_to_campaign(self, row: Dict[str, Any]) -> Campaign:
        """Convert database row to Campaign model"""
        criteria = row.get("target_criteria")
        if isinstance(criteria, str):
            criteria = json.loads(criteria)

        return Campaign.model_construct(
            campaign_id=row.get("campaign_id"),
            organization_id=row.get("organization_id"),
            name=row.get("name"),
            subject=row.get("subject"),
            body=row.get("body"),
            template_id=row.get("template_id"),
            target_criteria=TargetCriteria.model_validate(criteria) if criteria else None,
            emails_per_minute=row.get("emails_per_minute") or 50,
            status=CampaignStatus(row.get("status")),
            total_recipients=row.get("total_recipients") or 0,
            sent_count=row.get("sent_count") or 0,
            failed_count=row.get("failed_count") or 0,
            total_opens=row.get("total_opens") or 0,
            unique_opens=row.get("unique_opens") or 0,
            total_clicks=row.get("total_clicks") or 0,
            unique_clicks=row.get("unique_clicks") or 0,
            scheduled_at=row.get("scheduled_at"),
            started_at=row.get("started_at"),
            paused_at=row.get("paused_at"),
            completed_at=row.get("completed_at"),
            created_by=row.get("created_by"),
            created_at=row.get("created_at"),
            updated_at=row.get("updated_at"),
            deleted_at=row.get("deleted_at"),
        )

    def _row_to_recipient(self, row: Dict[str, Any]) -> CampaignRecipientEmail:
        """Convert database row to CampaignRecipientEmail model"""
        return CampaignRecipientEmail.model_construct(
            email_id=row.get("email_id"),
            campaign_id=row.get("campaign_id"),
            organization_id=row.get("organization_id"),
            member_id=row.get("member_id"),
            recipient_email=row.get("recipient_email"),
            recipient_name=row.get("recipient_name"),
            status=RecipientStatus(row.get("status")),
            sent_at=row.get("sent_at"),
            error_message=row.get("error_message"),
            retry_count=row.get("retry_count") or 0,
            open_count=row.get("open_count") or 0,
            first_opened_at=row.get("first_opened_at"),
            last_opened_at=row.get("last_opened_at"),
            click_count=row.get("click_count") or 0,
            created_at=row.get("created_at"),
        )


def _criteria_json(criteria: Optional[Any]) -> Optional[str]:
    if criteria is None:
        return None
    if isinstance(criteria, TargetCriteria):
        criteria = criteria.to_storage()
    return json.dumps(criteria)


__all__ = ["CampaignRepository", "TenantScope"]
