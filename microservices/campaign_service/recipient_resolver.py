"""
Recipient Resolver

Turns a campaign's targeting criteria into recipient snapshots using the
member directory.
"""

import logging
from typing import List, Optional

from .models import Member, RecipientDraft, TargetCriteria
from .protocols import DirectoryRepositoryProtocol, NoEligibleRecipientsError

logger = logging.getLogger(__name__)


def has_valid_email(member: Member) -> bool:
    """Minimal address check used for recipients"""
    return bool(member.email) and "@" in member.email


def to_recipient(member: Member) -> RecipientDraft:
    """Snapshot a member's name and address"""
    return RecipientDraft(
        member_id=member.member_id,
        recipient_email=member.email,
        recipient_name=member.full_name,
    )


class RecipientResolver:
    """Resolves targeting criteria against the member directory"""

    def __init__(self, directory: DirectoryRepositoryProtocol):
        self.directory = directory

    async def resolve(
        self, organization_id: str, criteria: Optional[TargetCriteria]
    ) -> List[RecipientDraft]:
        """
        Recipients for the criteria.

        Raises:
            NoEligibleRecipientsError: no member with a valid email matches
        """
        members = await self.directory.find_members(organization_id, criteria)
        recipients = [to_recipient(m) for m in members if has_valid_email(m)]

        if not recipients:
            logger.info(
                f"No eligible recipients for org {organization_id} "
                f"({len(members)} members matched)"
            )
            raise NoEligibleRecipientsError()

        return recipients


__all__ = ["RecipientResolver", "has_valid_email", "to_recipient"]
