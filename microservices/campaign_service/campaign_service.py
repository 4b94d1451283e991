"""
Campaign Service Business Logic

Implements the email campaign lifecycle (start, pause, resume, cancel),
campaign and recipient management, previews, batch sending and
open/click tracking.
"""

import logging
import uuid
from datetime import datetime, timezone
from typing import List, Optional, Tuple
from urllib.parse import urlparse

from core.auth_dependencies import AuthorizationError, CallerContext, UserRole
from core.config import CampaignConfig
from .events.publishers import CampaignEventPublisher
from .models import (
    Campaign,
    CampaignCreateRequest,
    CampaignDetail,
    CampaignPreview,
    CampaignRecipientEmail,
    CampaignStatus,
    CampaignUpdateRequest,
    Member,
    Pagination,
    PreviewRecipient,
    RecipientGenerationResult,
    RecipientStatus,
    SendBatchResult,
    TransitionResult,
)
from .protocols import (
    CampaignNotFoundError,
    CampaignRepositoryProtocol,
    DirectoryRepositoryProtocol,
    EmailNotConfiguredError,
    EmailTransportProtocol,
    InvalidCampaignStateError,
    MemberNotFoundError,
)
from .recipient_resolver import RecipientResolver
from .template_renderer import (
    build_template_data,
    decode_click_target,
    render_email_html,
    render_template,
)

logger = logging.getLogger(__name__)


class CampaignService:
    """Campaign service business logic layer"""

    DEFAULT_SENDER_NAME = "UnionSoftware"
    DEFAULT_BASE_URL = "http://localhost:3000"

    # Source statuses each transition accepts
    START_FROM = (CampaignStatus.DRAFT, CampaignStatus.SCHEDULED)
    PAUSE_FROM = (CampaignStatus.SENDING,)
    RESUME_FROM = (CampaignStatus.PAUSED,)
    CANCEL_FROM = (
        CampaignStatus.DRAFT,
        CampaignStatus.SCHEDULED,
        CampaignStatus.SENDING,
        CampaignStatus.PAUSED,
    )

    def __init__(
        self,
        repository: CampaignRepositoryProtocol,
        directory: DirectoryRepositoryProtocol,
        resolver: Optional[RecipientResolver] = None,
        event_publisher: Optional[CampaignEventPublisher] = None,
        email_transport: Optional[EmailTransportProtocol] = None,
        config: Optional[CampaignConfig] = None,
        base_url: Optional[str] = None,
    ):
        self.repository = repository
        self.directory = directory
        self.resolver = resolver or RecipientResolver(directory)
        self.event_publisher = event_publisher or CampaignEventPublisher()
        self.email_transport = email_transport
        self.config = config or CampaignConfig()
        self.base_url = base_url or self.DEFAULT_BASE_URL

    # ====================
    # Lifecycle
    # ====================

    async def start_campaign(self, caller: CallerContext, campaign_id: str) -> TransitionResult:
        """
        Start sending a DRAFT or SCHEDULED campaign.

        Recipient rows are generated only if the campaign has none yet, so
        the recipient set is a snapshot taken on the first start.
        """
        self._require_admin(caller)
        campaign = await self._get_campaign(caller, campaign_id)

        if campaign.status not in self.START_FROM:
            raise InvalidCampaignStateError(
                "Campaign must be in DRAFT or SCHEDULED status to start",
                campaign.status,
            )

        org_id = caller.organization_id
        generated = 0
        if await self.repository.count_recipients(org_id, campaign_id) == 0:
            recipients = await self.resolver.resolve(org_id, campaign.target_criteria)
            generated = await self.repository.create_recipients(org_id, campaign_id, recipients)

        recipient_count = await self.repository.count_recipients(org_id, campaign_id)

        updated = await self.repository.transition_status(
            org_id,
            campaign_id,
            self.START_FROM,
            CampaignStatus.SENDING,
            total_recipients=recipient_count,
            sent_count=0,
            failed_count=0,
            started_at=datetime.now(timezone.utc),
        )
        if updated is None:
            raise self._concurrent_change(campaign)

        if generated:
            await self.event_publisher.publish_recipients_generated(updated, generated, caller.user_id)
        await self.event_publisher.publish_campaign_started(updated, caller.user_id)

        logger.info(f"Campaign started: {campaign_id} with {recipient_count} recipients")
        return TransitionResult(
            campaign=updated,
            message=f"Campaign started with {recipient_count} recipients",
        )

    async def pause_campaign(self, caller: CallerContext, campaign_id: str) -> TransitionResult:
        """Pause a SENDING campaign"""
        self._require_admin(caller)
        campaign = await self._get_campaign(caller, campaign_id)

        if campaign.status not in self.PAUSE_FROM:
            raise InvalidCampaignStateError(
                "Only campaigns in SENDING status can be paused",
                campaign.status,
            )

        updated = await self.repository.transition_status(
            caller.organization_id,
            campaign_id,
            self.PAUSE_FROM,
            CampaignStatus.PAUSED,
            paused_at=datetime.now(timezone.utc),
        )
        if updated is None:
            raise self._concurrent_change(campaign)

        await self.event_publisher.publish_campaign_paused(updated, caller.user_id)

        logger.info(f"Campaign paused: {campaign_id}")
        return TransitionResult(campaign=updated, message="Campaign paused")

    async def resume_campaign(self, caller: CallerContext, campaign_id: str) -> TransitionResult:
        """
        Resume a PAUSED campaign.

        With nothing left to send the campaign completes instead.
        """
        self._require_admin(caller)
        campaign = await self._get_campaign(caller, campaign_id)

        if campaign.status not in self.RESUME_FROM:
            raise InvalidCampaignStateError(
                "Only PAUSED campaigns can be resumed",
                campaign.status,
            )

        org_id = caller.organization_id
        pending = await self.repository.count_recipients(
            org_id, campaign_id, RecipientStatus.PENDING
        )

        if pending == 0:
            updated = await self.repository.transition_status(
                org_id,
                campaign_id,
                self.RESUME_FROM,
                CampaignStatus.COMPLETED,
                completed_at=datetime.now(timezone.utc),
            )
            if updated is None:
                raise self._concurrent_change(campaign)

            await self.event_publisher.publish_campaign_completed(updated, caller.user_id)
            logger.info(f"Campaign completed on resume: {campaign_id}")
            return TransitionResult(
                campaign=updated,
                message="Campaign completed - no pending emails remaining",
            )

        updated = await self.repository.transition_status(
            org_id,
            campaign_id,
            self.RESUME_FROM,
            CampaignStatus.SENDING,
            paused_at=None,
        )
        if updated is None:
            raise self._concurrent_change(campaign)

        await self.event_publisher.publish_campaign_resumed(updated, pending, caller.user_id)

        logger.info(f"Campaign resumed: {campaign_id} with {pending} pending")
        return TransitionResult(
            campaign=updated,
            message=f"Campaign resumed with {pending} pending emails",
        )

    async def cancel_campaign(self, caller: CallerContext, campaign_id: str) -> TransitionResult:
        """Cancel a campaign; unsent emails are marked SKIPPED"""
        self._require_admin(caller)
        campaign = await self._get_campaign(caller, campaign_id)

        if campaign.status not in self.CANCEL_FROM:
            raise InvalidCampaignStateError(
                "Campaign is already completed or cancelled",
                campaign.status,
            )

        org_id = caller.organization_id
        updated = await self.repository.transition_status(
            org_id,
            campaign_id,
            self.CANCEL_FROM,
            CampaignStatus.CANCELLED,
            completed_at=datetime.now(timezone.utc),
        )
        if updated is None:
            raise self._concurrent_change(campaign)

        skipped = await self.repository.skip_pending_recipients(org_id, campaign_id)

        await self.event_publisher.publish_campaign_cancelled(updated, skipped, caller.user_id)

        logger.info(f"Campaign cancelled: {campaign_id}, {skipped} emails skipped")
        return TransitionResult(campaign=updated, message="Campaign cancelled")

    # ====================
    # Campaign CRUD
    # ====================

    async def create_campaign(
        self, caller: CallerContext, request: CampaignCreateRequest
    ) -> Campaign:
        """Create a DRAFT campaign"""
        self._require_admin(caller)

        now = datetime.now(timezone.utc)
        campaign = Campaign(
            campaign_id=f"cmp_{uuid.uuid4().hex[:16]}",
            organization_id=caller.organization_id,
            name=request.name,
            subject=request.subject,
            body=request.body,
            template_id=request.template_id,
            target_criteria=request.target_criteria,
            emails_per_minute=request.emails_per_minute,
            status=CampaignStatus.DRAFT,
            scheduled_at=request.scheduled_at,
            created_by=caller.user_id,
            created_at=now,
            updated_at=now,
        )

        campaign = await self.repository.create_campaign(campaign)
        await self.event_publisher.publish_campaign_created(campaign, caller.user_id)

        logger.info(f"Campaign created: {campaign.campaign_id}")
        return campaign

    async def get_campaign(self, caller: CallerContext, campaign_id: str) -> Campaign:
        """Get a campaign of the caller's organization"""
        return await self._get_campaign(caller, campaign_id)

    async def get_campaign_detail(self, caller: CallerContext, campaign_id: str) -> CampaignDetail:
        """Campaign with per-status recipient counts"""
        campaign = await self._get_campaign(caller, campaign_id)
        stats = await self.repository.get_recipient_stats(caller.organization_id, campaign_id)
        return CampaignDetail(**campaign.model_dump(), stats=stats)

    async def list_campaigns(
        self,
        caller: CallerContext,
        status: Optional[CampaignStatus] = None,
        page: int = 1,
        limit: int = 20,
    ) -> Tuple[List[Campaign], Pagination]:
        """List the organization's campaigns, newest first"""
        campaigns, total = await self.repository.list_campaigns(
            caller.organization_id,
            status=status,
            limit=limit,
            offset=(page - 1) * limit,
        )
        return campaigns, Pagination.build(page, limit, total)

    async def update_campaign(
        self,
        caller: CallerContext,
        campaign_id: str,
        request: CampaignUpdateRequest,
    ) -> Campaign:
        """Edit a DRAFT campaign"""
        self._require_admin(caller)
        campaign = await self._get_campaign(caller, campaign_id)

        if campaign.status != CampaignStatus.DRAFT:
            raise InvalidCampaignStateError("Only draft campaigns can be edited", campaign.status)

        updates = request.model_dump(exclude_unset=True)
        if "target_criteria" in updates:
            updates["target_criteria"] = request.target_criteria

        updated = await self.repository.update_campaign(
            caller.organization_id,
            campaign_id,
            updates,
            required_status=CampaignStatus.DRAFT,
        )
        if updated is None:
            raise self._concurrent_change(campaign)

        await self.event_publisher.publish_campaign_updated(updated, list(updates), caller.user_id)

        logger.info(f"Campaign updated: {campaign_id} ({', '.join(updates) or 'no changes'})")
        return updated

    async def delete_campaign(self, caller: CallerContext, campaign_id: str) -> bool:
        """Soft delete a campaign that is not currently sending"""
        self._require_admin(caller)
        campaign = await self._get_campaign(caller, campaign_id)

        if campaign.status == CampaignStatus.SENDING:
            raise InvalidCampaignStateError(
                "Cannot delete a campaign that is currently sending. Please pause it first.",
                campaign.status,
            )

        deleted = await self.repository.soft_delete_campaign(caller.organization_id, campaign_id)
        if not deleted:
            raise CampaignNotFoundError()

        await self.event_publisher.publish_campaign_deleted(campaign, caller.user_id)

        logger.info(f"Campaign deleted: {campaign_id}")
        return True

    # ====================
    # Recipients
    # ====================

    async def list_recipients(
        self,
        caller: CallerContext,
        campaign_id: str,
        status: Optional[RecipientStatus] = None,
        page: int = 1,
        limit: int = 50,
    ) -> Tuple[List[CampaignRecipientEmail], Pagination]:
        """Recipients of a campaign, ordered by status then name"""
        await self._get_campaign(caller, campaign_id)
        recipients, total = await self.repository.list_recipients(
            caller.organization_id,
            campaign_id,
            status=status,
            limit=limit,
            offset=(page - 1) * limit,
        )
        return recipients, Pagination.build(page, limit, total)

    async def generate_recipients(
        self, caller: CallerContext, campaign_id: str
    ) -> RecipientGenerationResult:
        """
        Rebuild the recipient rows of a DRAFT campaign from its criteria.

        Existing rows are replaced; nothing changes when no member is
        eligible.
        """
        self._require_admin(caller)
        campaign = await self._get_campaign(caller, campaign_id)

        if campaign.status != CampaignStatus.DRAFT:
            raise InvalidCampaignStateError(
                "Can only generate recipients for draft campaigns",
                campaign.status,
            )

        org_id = caller.organization_id
        recipients = await self.resolver.resolve(org_id, campaign.target_criteria)

        await self.repository.replace_recipients(org_id, campaign_id, recipients)
        recipient_count = await self.repository.count_recipients(org_id, campaign_id)

        updated = await self.repository.transition_status(
            org_id,
            campaign_id,
            (CampaignStatus.DRAFT,),
            CampaignStatus.DRAFT,
            total_recipients=recipient_count,
            sent_count=0,
            failed_count=0,
        )
        if updated is None:
            raise self._concurrent_change(campaign)

        await self.event_publisher.publish_recipients_generated(updated, recipient_count, caller.user_id)

        logger.info(f"Generated {recipient_count} recipients for campaign {campaign_id}")
        return RecipientGenerationResult(recipient_count=recipient_count)

    # ====================
    # Preview
    # ====================

    async def preview_campaign(
        self,
        caller: CallerContext,
        campaign_id: str,
        member_id: Optional[str] = None,
    ) -> CampaignPreview:
        """Render the campaign for one member (given, or the first match)"""
        campaign = await self._get_campaign(caller, campaign_id)
        org_id = caller.organization_id

        member: Optional[Member]
        if member_id:
            member = await self.directory.get_member(org_id, member_id)
        else:
            matches = await self.directory.find_members(org_id, campaign.target_criteria, limit=1)
            member = matches[0] if matches else None

        if member is None:
            raise MemberNotFoundError()

        organization_name = await self.directory.get_organization_name(org_id)
        template_data = build_template_data(member, organization_name)

        return CampaignPreview(
            subject=render_template(campaign.subject, template_data),
            body=render_template(campaign.body, template_data),
            recipient=PreviewRecipient(name=member.full_name, email=member.email),
            template_data=template_data,
        )

    # ====================
    # Sending
    # ====================

    async def send_batch(
        self,
        caller: CallerContext,
        campaign_id: str,
        batch_size: Optional[int] = None,
    ) -> Tuple[SendBatchResult, str]:
        """
        Send the next batch of PENDING emails of a SENDING campaign.

        Each email is rendered for its member, gets click tracking and an
        open pixel, and is handed to the email transport. A delivery error
        marks that one email FAILED and the batch goes on. The campaign
        completes once no PENDING email is left.

        Returns:
            (result, message)
        """
        self._require_admin(caller)
        size = min(batch_size or self.config.default_batch_size, self.config.max_batch_size)

        campaign = await self._get_campaign(caller, campaign_id)
        if campaign.status != CampaignStatus.SENDING:
            raise InvalidCampaignStateError(
                "Campaign must be in SENDING status to send emails",
                campaign.status,
            )

        org_id = caller.organization_id
        settings = await self.directory.get_email_settings(org_id)
        if not settings.is_configured or self.email_transport is None:
            raise EmailNotConfiguredError()

        pending = await self.repository.get_pending_recipients(org_id, campaign_id, size)
        if not pending:
            completed = await self._complete(caller, campaign)
            if completed is None:
                raise self._concurrent_change(campaign)
            return (
                SendBatchResult(
                    completed=True,
                    total_sent=completed.sent_count,
                    total_failed=completed.failed_count,
                ),
                "Campaign completed - all emails have been processed",
            )

        organization_name = await self.directory.get_organization_name(org_id)
        from_name = settings.from_name or organization_name or self.DEFAULT_SENDER_NAME
        from_email = settings.from_email or settings.smtp_user

        sent = 0
        failed = 0
        stopped = False
        for email in pending:
            # A cancel or pause mid-batch leaves the rest of the rows alone
            if not await self.repository.claim_recipient(org_id, campaign_id, email.email_id):
                current = await self.repository.get_campaign(org_id, campaign_id)
                if current is None or current.status != CampaignStatus.SENDING:
                    stopped = True
                    break
                continue

            try:
                member = await self._recipient_member(org_id, email)
                template_data = build_template_data(member, organization_name)
                subject = render_template(campaign.subject, template_data)
                body = render_template(campaign.body, template_data)
                html = render_email_html(body, email.email_id, self.base_url)

                await self.email_transport.send_email(
                    organization_id=org_id,
                    to=email.recipient_email,
                    subject=subject,
                    text=body,
                    html=html,
                    from_email=from_email,
                    from_name=from_name,
                    campaign_id=campaign_id,
                    email_id=email.email_id,
                )
            except Exception as e:
                logger.error(f"Failed to send email to {email.recipient_email}: {e}")
                await self.repository.update_recipient_status(
                    org_id,
                    email.email_id,
                    RecipientStatus.FAILED,
                    error_message=str(e) or "Unknown error",
                    retry_count=email.retry_count + 1,
                )
                failed += 1
                continue

            await self.repository.update_recipient_status(
                org_id,
                email.email_id,
                RecipientStatus.SENT,
                sent_at=datetime.now(timezone.utc),
            )
            sent += 1

        totals = await self.repository.increment_counts(org_id, campaign_id, sent, failed)
        remaining = await self.repository.count_recipients(
            org_id, campaign_id, RecipientStatus.PENDING
        )

        completed = False
        if not stopped and remaining == 0:
            finished = await self._complete(caller, totals or campaign)
            if finished is None:
                stopped = True
            else:
                totals = finished
                completed = True

        await self.event_publisher.publish_batch_sent(
            totals or campaign, sent + failed, sent, failed, remaining, caller.user_id
        )

        result = SendBatchResult(
            processed=sent + failed,
            sent=sent,
            failed=failed,
            remaining=remaining,
            completed=completed,
            stopped=stopped,
            total_sent=totals.sent_count if totals else None,
            total_failed=totals.failed_count if totals else None,
        )
        if completed:
            message = "Campaign completed - all emails have been processed"
        elif stopped:
            message = f"Sent {sent} emails, {failed} failed; campaign is no longer sending"
        else:
            message = f"Sent {sent} emails, {failed} failed, {remaining} remaining"

        logger.info(f"Campaign {campaign_id} batch: {message}")
        return result, message

    async def _complete(self, caller: CallerContext, campaign: Campaign) -> Optional[Campaign]:
        """Move a SENDING campaign to COMPLETED; None if it already left SENDING"""
        completed = await self.repository.transition_status(
            caller.organization_id,
            campaign.campaign_id,
            (CampaignStatus.SENDING,),
            CampaignStatus.COMPLETED,
            completed_at=datetime.now(timezone.utc),
        )
        if completed is None:
            logger.warning(f"Campaign {campaign.campaign_id} left SENDING before completion")
            return None

        await self.event_publisher.publish_campaign_completed(completed, caller.user_id)
        logger.info(f"Campaign completed: {campaign.campaign_id}")
        return completed

    async def _recipient_member(self, organization_id: str, email: CampaignRecipientEmail) -> Member:
        """Directory record for a recipient, or one built from its snapshot"""
        if email.member_id:
            member = await self.directory.get_member(organization_id, email.member_id)
            if member:
                return member

        first_name, _, last_name = email.recipient_name.partition(" ")
        return Member(
            member_id=email.member_id or email.email_id,
            organization_id=organization_id,
            first_name=first_name,
            last_name=last_name,
            email=email.recipient_email,
        )

    # ====================
    # Tracking
    # ====================

    async def record_open(
        self,
        email_id: str,
        user_agent: Optional[str] = None,
        ip_address: Optional[str] = None,
    ) -> bool:
        """Record an open; failures are logged, never raised"""
        try:
            recorded = await self.repository.record_open(email_id, user_agent, ip_address)
            if not recorded:
                logger.debug(f"Open for unknown email {email_id} ignored")
            return recorded
        except Exception as e:
            logger.error(f"Error tracking email open {email_id}: {e}")
            return False

    async def record_click(
        self,
        email_id: str,
        url: str,
        user_agent: Optional[str] = None,
        ip_address: Optional[str] = None,
    ) -> bool:
        """Record a click; failures are logged, never raised"""
        try:
            recorded = await self.repository.record_click(email_id, url, user_agent, ip_address)
            if not recorded:
                logger.debug(f"Click for unknown email {email_id} ignored")
            return recorded
        except Exception as e:
            logger.error(f"Error tracking email click {email_id}: {e}")
            return False

    @staticmethod
    def resolve_click_target(encoded_url: Optional[str]) -> Optional[str]:
        """Decode a click redirect target; None if missing or not an absolute http(s) URL"""
        if not encoded_url:
            return None
        try:
            url = decode_click_target(encoded_url)
        except ValueError:
            return None

        parsed = urlparse(url)
        if parsed.scheme not in ("http", "https") or not parsed.netloc:
            return None
        return url

    # ====================
    # Helpers
    # ====================

    @staticmethod
    def _require_admin(caller: CallerContext) -> None:
        if not caller.is_admin:
            raise AuthorizationError(required_role=UserRole.ADMIN)

    async def _get_campaign(self, caller: CallerContext, campaign_id: str) -> Campaign:
        campaign = await self.repository.get_campaign(caller.organization_id, campaign_id)
        if not campaign:
            raise CampaignNotFoundError()
        return campaign

    @staticmethod
    def _concurrent_change(campaign: Campaign) -> InvalidCampaignStateError:
        logger.warning(f"Campaign {campaign.campaign_id} status changed concurrently")
        return InvalidCampaignStateError(
            "Campaign status changed concurrently, please retry",
            campaign.status,
        )


__all__ = ["CampaignService"]
