"""
Member Directory Repository

Read-only access to the member directory, organizations and the
organization's email system settings. These tables live in the public
schema and are owned by other services.
"""

import logging
from typing import Any, Dict, List, Optional, Tuple

from core.config_manager import ConfigManager
from core.postgres_client import AsyncPostgresClient, get_postgres_client
from .models import EmailSettings, EmploymentType, Member, MemberStatus, TargetCriteria

logger = logging.getLogger(__name__)


# system_settings keys holding the email configuration
EMAIL_SETTING_KEYS = {
    "smtp_enabled": "smtp_enabled",
    "smtp_host": "smtp_host",
    "smtp_user": "smtp_user",
    "smtp_from_email": "from_email",
    "smtp_from_name": "from_name",
}


def member_filters(criteria: Optional[TargetCriteria]) -> List[Tuple[str, List[str]]]:
    """
    Column/value-list pairs for the criteria's non-empty filters.

    Absent and empty lists produce no pair, so they never narrow the
    audience.
    """
    if criteria is None:
        return []

    filters: List[Tuple[str, List[str]]] = []
    if criteria.departments:
        filters.append(("m.department_id", list(criteria.departments)))
    if criteria.statuses:
        filters.append(("m.status", [s.value for s in criteria.statuses]))
    if criteria.employment_types:
        filters.append(("m.employment_type", [t.value for t in criteria.employment_types]))
    return filters


class DirectoryRepository:
    """Member directory lookups - PostgreSQL (Async)"""

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
        self.schema = "public"
        self.members_table = "members"
        self.departments_table = "departments"
        self.organizations_table = "organizations"
        self.settings_table = "system_settings"

    async def find_members(
        self,
        organization_id: str,
        criteria: Optional[TargetCriteria],
        limit: Optional[int] = None,
    ) -> List[Member]:
        """Members of the organization with an email that match the criteria"""
        try:
            conditions = ["m.organization_id = $1", "m.email IS NOT NULL"]
            params: List[Any] = [organization_id]

            for column, values in member_filters(criteria):
                params.append(values)
                conditions.append(f"{column} = ANY(${len(params)})")

            limit_clause = ""
            if limit:
                params.append(limit)
                limit_clause = f"LIMIT ${len(params)}"

            query = f'''
                SELECT m.*, d.name AS department_name
                FROM {self.schema}.{self.members_table} m
                LEFT JOIN {self.schema}.{self.departments_table} d
                    ON d.department_id = m.department_id
                WHERE {" AND ".join(conditions)}
                ORDER BY m.last_name ASC, m.first_name ASC
                {limit_clause}
            '''

            async with self.db:
                results = await self.db.query(query, params=params)

            return [self._row_to_member(row) for row in results or []]

        except Exception as e:
            logger.error(f"Error finding members for org {organization_id}: {e}")
            raise

    async def get_member(self, organization_id: str, member_id: str) -> Optional[Member]:
        """Get one member of the organization"""
        try:
            query = f'''
                SELECT m.*, d.name AS department_name
                FROM {self.schema}.{self.members_table} m
                LEFT JOIN {self.schema}.{self.departments_table} d
                    ON d.department_id = m.department_id
                WHERE m.organization_id = $1 AND m.member_id = $2
            '''

            async with self.db:
                result = await self.db.query_row(query, params=[organization_id, member_id])

            return self._row_to_member(result) if result else None

        except Exception as e:
            logger.error(f"Error getting member {member_id}: {e}")
            raise

    async def get_organization_name(self, organization_id: str) -> Optional[str]:
        """Get the organization's display name"""
        try:
            query = f'''
                SELECT name FROM {self.schema}.{self.organizations_table}
                WHERE organization_id = $1
            '''

            async with self.db:
                result = await self.db.query_row(query, params=[organization_id])

            return result.get("name") if result else None

        except Exception as e:
            logger.error(f"Error getting organization {organization_id}: {e}")
            raise

    async def get_email_settings(self, organization_id: str) -> EmailSettings:
        """Get the organization's email settings"""
        try:
            query = f'''
                SELECT key, value FROM {self.schema}.{self.settings_table}
                WHERE organization_id = $1 AND key = ANY($2)
            '''

            async with self.db:
                results = await self.db.query(
                    query, params=[organization_id, list(EMAIL_SETTING_KEYS)]
                )

            values: Dict[str, Any] = {}
            for row in results or []:
                field = EMAIL_SETTING_KEYS.get(row.get("key"))
                if field:
                    values[field] = row.get("value")

            values["smtp_enabled"] = str(values.get("smtp_enabled", "")).lower() == "true"
            return EmailSettings(**values)

        except Exception as e:
            logger.error(f"Error getting email settings for org {organization_id}: {e}")
            raise

    def _row_to_member(self, row: Dict[str, Any]) -> Member:
        """Convert database row to Member model"""
        employment_type = row.get("employment_type")
        return Member.model_construct(
            member_id=row.get("member_id"),
            organization_id=row.get("organization_id"),
            first_name=row.get("first_name") or "",
            last_name=row.get("last_name") or "",
            email=row.get("email"),
            job_title=row.get("job_title"),
            department_id=row.get("department_id"),
            department_name=row.get("department_name"),
            hire_date=row.get("hire_date"),
            status=MemberStatus(row.get("status") or MemberStatus.MEMBER.value),
            employment_type=EmploymentType(employment_type) if employment_type else None,
        )


__all__ = ["DirectoryRepository", "member_filters", "EMAIL_SETTING_KEYS"]
