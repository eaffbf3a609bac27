"""Email-change repository over the generic document store.

This adapter is the only component that knows how requests and audit entries
are laid out in storage. State transitions are expressed as conditional
updates guarded by the expected source status, so concurrent or stale callers
can never move a request backwards. Active-request exclusivity relies on the
unique `active_key` attribute rather than on a read-then-write check.
"""

import itertools
import uuid
from datetime import datetime, timezone
from typing import Any, Callable, Dict, Iterable, List, Optional, Sequence

from structlog import get_logger

from timeledger.core.exceptions import (
    ConditionalCheckFailedError,
    DatabaseError,
    EmailChangeError,
    EmailChangeErrorCode,
)
from timeledger.core.logging import mask_email
from timeledger.domain.entities.email_change_audit_log import SYSTEM_ACTOR, AuditAction, EmailChangeAuditLog
from timeledger.domain.entities.email_change_request import (
    ACTIVE_STATUSES,
    CANCELLABLE_STATUSES,
    REJECTABLE_STATUSES,
    ChangeReason,
    EmailChangeRequest,
    EmailType,
    RequestStatus,
)
from timeledger.domain.interfaces.repositories import IEmailChangeRepository
from timeledger.domain.value_objects.email_change_filters import EmailChangeListFilters, EmailChangeRequestPage
from timeledger.domain.value_objects.verification_token import DEFAULT_EXPIRY_HOURS, VerificationToken, hash_token
from timeledger.infrastructure.database.tables import AUDIT_LOGS_COLLECTION, REQUESTS_COLLECTION
from timeledger.infrastructure.storage.base import IDocumentStore
from timeledger.infrastructure.storage.query import Condition, Operator, QuerySpec, decode_cursor

logger = get_logger(__name__)

AUTO_APPROVAL_NOTE = "Auto-approved based on reason and domain policy"

# Lexicographic order of audit ids follows append order within a process.
_AUDIT_SEQUENCE = itertools.count()


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


def _verified_field(email_type: EmailType) -> str:
    return f"{email_type.value}_email_verified"


def _token_hash_field(email_type: EmailType) -> str:
    return f"{email_type.value}_email_token_hash"


_VERIFIED_ACTIONS = {
    EmailType.CURRENT: AuditAction.CURRENT_EMAIL_VERIFIED,
    EmailType.NEW: AuditAction.NEW_EMAIL_VERIFIED,
}


class EmailChangeRepository(IEmailChangeRepository):
    """`IEmailChangeRepository` implementation backed by an `IDocumentStore`.

    Args:
        store: Document store holding the request and audit collections.
        token_expiry_hours: Lifetime of verification tokens.
        auto_approval_reasons: Reasons eligible for auto-approval; ``None``
            uses the domain default (personal preference, name change).
        clock: Source of the current time.
    """

    def __init__(
        self,
        store: IDocumentStore,
        token_expiry_hours: int = DEFAULT_EXPIRY_HOURS,
        auto_approval_reasons: Optional[Iterable[ChangeReason]] = None,
        clock: Callable[[], datetime] = _utcnow,
    ):
        self._store = store
        self._token_expiry_hours = token_expiry_hours
        self._auto_approval_reasons = (
            frozenset(auto_approval_reasons) if auto_approval_reasons is not None else None
        )
        self._clock = clock

    # ------------------------------------------------------------------
    # Mapping helpers
    # ------------------------------------------------------------------

    @staticmethod
    def _to_domain(item: Dict[str, Any]) -> EmailChangeRequest:
        return EmailChangeRequest.model_validate(item)

    async def _load(self, request_id: str) -> EmailChangeRequest:
        request = await self.get_by_id(request_id)
        if request is None:
            raise EmailChangeError(EmailChangeErrorCode.EMAIL_CHANGE_REQUEST_NOT_FOUND)
        return request

    async def _transition(
        self,
        request_id: str,
        changes: Dict[str, Any],
        conditions: Sequence[Condition],
        conflict: Callable[[EmailChangeRequest], EmailChangeError],
    ) -> EmailChangeRequest:
        """Apply a conditional update; translate a failed condition into a domain error."""
        try:
            item = await self._store.update(REQUESTS_COLLECTION, request_id, changes, conditions)
        except ConditionalCheckFailedError as exc:
            current = await self._load(request_id)
            logger.info(
                "email_change_transition_rejected",
                request_id=request_id,
                current_status=current.status.value,
            )
            raise conflict(current) from exc
        return self._to_domain(item)

    async def _append_audit(
        self,
        request_id: str,
        action: AuditAction,
        performed_by: Optional[str],
        details: Optional[Dict[str, Any]] = None,
        ip_address: Optional[str] = None,
        user_agent: Optional[str] = None,
    ) -> EmailChangeAuditLog:
        now = self._clock()
        entry = EmailChangeAuditLog(
            id=f"{now.strftime('%Y%m%d%H%M%S%f')}{next(_AUDIT_SEQUENCE) % 1_000_000:06d}-{uuid.uuid4().hex[:12]}",
            request_id=request_id,
            action=action,
            performed_by=performed_by,
            performed_at=now,
            details=details or {},
            ip_address=ip_address,
            user_agent=user_agent,
        )
        try:
            await self._store.insert(AUDIT_LOGS_COLLECTION, entry.model_dump())
        except DatabaseError as e:
            # The state change is already stored; the audit trail is advisory.
            logger.error(
                "email_change_audit_append_failed",
                request_id=request_id,
                action=action.value,
                error=str(e),
            )
        return entry

    # ------------------------------------------------------------------
    # Creation and lookups
    # ------------------------------------------------------------------

    async def create_request(
        self,
        user_id: str,
        current_email: str,
        new_email: str,
        reason: ChangeReason,
        custom_reason: Optional[str] = None,
        ip_address: Optional[str] = None,
        user_agent: Optional[str] = None,
        requested_by: Optional[str] = None,
    ) -> EmailChangeRequest:
        now = self._clock()
        current_token = VerificationToken.generate(now, self._token_expiry_hours)
        new_token = VerificationToken.generate(now, self._token_expiry_hours)

        request = EmailChangeRequest(
            id=str(uuid.uuid4()),
            user_id=user_id,
            current_email=current_email,
            new_email=new_email,
            status=RequestStatus.PENDING_VERIFICATION,
            reason=reason,
            custom_reason=custom_reason if reason is ChangeReason.OTHER else None,
            current_email_token_hash=current_token.hashed,
            new_email_token_hash=new_token.hashed,
            verification_tokens_expires_at=current_token.expires_at,
            requested_at=now,
            updated_at=now,
            ip_address=ip_address,
            user_agent=user_agent,
            active_key=user_id,
        )

        try:
            await self._store.insert(REQUESTS_COLLECTION, request.model_dump())
        except ConditionalCheckFailedError as exc:
            logger.warning("email_change_active_request_conflict", user_id=user_id)
            raise EmailChangeError(EmailChangeErrorCode.ACTIVE_REQUEST_EXISTS) from exc

        request.attach_issued_token(EmailType.CURRENT, current_token.value)
        request.attach_issued_token(EmailType.NEW, new_token.value)

        await self._append_audit(
            request.id,
            AuditAction.CREATED,
            performed_by=requested_by or user_id,
            details={
                "current_email": current_email,
                "new_email": new_email,
                "reason": reason.value,
                "custom_reason": request.custom_reason,
            },
            ip_address=ip_address,
            user_agent=user_agent,
        )
        logger.info(
            "email_change_request_created",
            request_id=request.id,
            user_id=user_id,
            new_email=mask_email(new_email),
            reason=reason.value,
        )
        return request

    async def get_by_id(self, request_id: str) -> Optional[EmailChangeRequest]:
        item = await self._store.get(REQUESTS_COLLECTION, request_id)
        return self._to_domain(item) if item is not None else None

    async def get_by_token(self, token: str, email_type: EmailType) -> Optional[EmailChangeRequest]:
        if not VerificationToken.is_valid_format(token):
            return None
        page = await self._store.query(
            QuerySpec(
                collection=REQUESTS_COLLECTION,
                conditions=(Condition.eq(_token_hash_field(email_type), hash_token(token)),),
                limit=1,
            )
        )
        if not page.items:
            return None
        request = self._to_domain(page.items[0])
        candidate = VerificationToken(value=token, expires_at=request.verification_tokens_expires_at)
        return request if candidate.matches(request.token_hash_for(email_type)) else None

    async def has_active_request(self, user_id: str) -> bool:
        page = await self._store.query(
            QuerySpec(
                collection=REQUESTS_COLLECTION,
                conditions=(
                    Condition.eq("user_id", user_id),
                    Condition.in_("status", sorted(s.value for s in ACTIVE_STATUSES)),
                ),
                limit=1,
            )
        )
        return bool(page.items)

    async def get_latest_request(
        self, user_id: str, statuses: Optional[Iterable[RequestStatus]] = None
    ) -> Optional[EmailChangeRequest]:
        conditions = [Condition.eq("user_id", user_id)]
        if statuses is not None:
            conditions.append(Condition.in_("status", sorted(s.value for s in statuses)))
        page = await self._store.query(
            QuerySpec(
                collection=REQUESTS_COLLECTION,
                conditions=tuple(conditions),
                sort_by="requested_at",
                descending=True,
                limit=1,
            )
        )
        return self._to_domain(page.items[0]) if page.items else None

    # ------------------------------------------------------------------
    # Transitions
    # ------------------------------------------------------------------

    async def update_verification_status(
        self,
        request_id: str,
        email_type: EmailType,
        ip_address: Optional[str] = None,
        user_agent: Optional[str] = None,
    ) -> EmailChangeRequest:
        now = self._clock()

        def conflict(current: EmailChangeRequest) -> EmailChangeError:
            if current.is_verified(email_type):
                return EmailChangeError(EmailChangeErrorCode.EMAIL_ALREADY_VERIFIED)
            return EmailChangeError(
                EmailChangeErrorCode.INVALID_REQUEST_DATA,
                f"Request is not pending verification (status: {current.status.value})",
            )

        request = await self._transition(
            request_id,
            {
                _verified_field(email_type): True,
                f"{email_type.value}_email_verified_at": now,
                "updated_at": now,
                "ip_address": ip_address,
                "user_agent": user_agent,
            },
            (
                Condition.eq("status", RequestStatus.PENDING_VERIFICATION),
                Condition.eq(_verified_field(email_type), False),
            ),
            conflict,
        )
        await self._append_audit(
            request_id,
            _VERIFIED_ACTIONS[email_type],
            performed_by=request.user_id,
            details={"email": request.email_for(email_type)},
            ip_address=ip_address,
            user_agent=user_agent,
        )

        if not request.is_fully_verified:
            return request
        return await self._advance_verified(request, now, ip_address, user_agent)

    async def _advance_verified(
        self,
        request: EmailChangeRequest,
        now: datetime,
        ip_address: Optional[str],
        user_agent: Optional[str],
    ) -> EmailChangeRequest:
        """Leave `pending_verification` once both addresses are verified."""
        approval_required = request.requires_admin_approval(self._auto_approval_reasons)
        changes: Dict[str, Any] = {"verified_at": now, "updated_at": now}
        if approval_required:
            changes["status"] = RequestStatus.PENDING_APPROVAL
        else:
            changes.update(status=RequestStatus.APPROVED, approved_by=SYSTEM_ACTOR, approved_at=now)

        try:
            item = await self._store.update(
                REQUESTS_COLLECTION,
                request.id,
                changes,
                (
                    Condition.eq("status", RequestStatus.PENDING_VERIFICATION),
                    Condition.eq("current_email_verified", True),
                    Condition.eq("new_email_verified", True),
                ),
            )
        except ConditionalCheckFailedError:
            # A concurrent verification of the other side already advanced it.
            return await self._load(request.id)

        advanced = self._to_domain(item)
        if not approval_required:
            await self._append_audit(
                request.id,
                AuditAction.APPROVED,
                performed_by=SYSTEM_ACTOR,
                details={"auto_approval": True, "reason": AUTO_APPROVAL_NOTE},
                ip_address=ip_address,
                user_agent=user_agent,
            )
        logger.info(
            "email_change_request_verified",
            request_id=request.id,
            status=advanced.status.value,
            auto_approved=not approval_required,
        )
        return advanced

    async def approve(
        self,
        request_id: str,
        approved_by: str,
        notes: Optional[str] = None,
        estimated_completion_time: Optional[datetime] = None,
        ip_address: Optional[str] = None,
        user_agent: Optional[str] = None,
    ) -> EmailChangeRequest:
        now = self._clock()
        request = await self._transition(
            request_id,
            {
                "status": RequestStatus.APPROVED,
                "approved_by": approved_by,
                "approved_at": now,
                "approval_notes": notes,
                "estimated_completion_time": estimated_completion_time,
                "updated_at": now,
                "ip_address": ip_address,
                "user_agent": user_agent,
            },
            (
                Condition.eq("status", RequestStatus.PENDING_APPROVAL),
                Condition.eq("current_email_verified", True),
                Condition.eq("new_email_verified", True),
            ),
            lambda current: EmailChangeError(EmailChangeErrorCode.REQUEST_NOT_PENDING_APPROVAL),
        )
        await self._append_audit(
            request_id,
            AuditAction.APPROVED,
            performed_by=approved_by,
            details={"notes": notes} if notes else {},
            ip_address=ip_address,
            user_agent=user_agent,
        )
        return request

    async def reject(
        self,
        request_id: str,
        rejected_by: str,
        reason: str,
        ip_address: Optional[str] = None,
        user_agent: Optional[str] = None,
    ) -> EmailChangeRequest:
        now = self._clock()
        request = await self._transition(
            request_id,
            {
                "status": RequestStatus.REJECTED,
                "rejected_by": rejected_by,
                "rejected_at": now,
                "rejection_reason": reason,
                "active_key": None,
                "updated_at": now,
                "ip_address": ip_address,
                "user_agent": user_agent,
            },
            (Condition.in_("status", sorted(s.value for s in REJECTABLE_STATUSES)),),
            lambda current: EmailChangeError(
                EmailChangeErrorCode.REQUEST_NOT_PENDING_APPROVAL,
                f"Request cannot be rejected (status: {current.status.value})",
            ),
        )
        await self._append_audit(
            request_id,
            AuditAction.REJECTED,
            performed_by=rejected_by,
            details={"reason": reason},
            ip_address=ip_address,
            user_agent=user_agent,
        )
        return request

    async def cancel(
        self,
        request_id: str,
        cancelled_by: str,
        ip_address: Optional[str] = None,
        user_agent: Optional[str] = None,
    ) -> EmailChangeRequest:
        now = self._clock()

        def conflict(current: EmailChangeRequest) -> EmailChangeError:
            if current.status is RequestStatus.COMPLETED:
                return EmailChangeError(EmailChangeErrorCode.REQUEST_ALREADY_COMPLETED)
            return EmailChangeError(EmailChangeErrorCode.CANNOT_CANCEL_REQUEST)

        request = await self._transition(
            request_id,
            {
                "status": RequestStatus.CANCELLED,
                "cancelled_by": cancelled_by,
                "cancelled_at": now,
                "active_key": None,
                "updated_at": now,
                "ip_address": ip_address,
                "user_agent": user_agent,
            },
            (Condition.in_("status", sorted(s.value for s in CANCELLABLE_STATUSES)),),
            conflict,
        )
        await self._append_audit(
            request_id,
            AuditAction.CANCELLED,
            performed_by=cancelled_by,
            ip_address=ip_address,
            user_agent=user_agent,
        )
        return request

    async def complete(
        self,
        request_id: str,
        performed_by: str,
        ip_address: Optional[str] = None,
        user_agent: Optional[str] = None,
    ) -> EmailChangeRequest:
        now = self._clock()
        request = await self._transition(
            request_id,
            {
                "status": RequestStatus.COMPLETED,
                "completed_at": now,
                "active_key": None,
                "updated_at": now,
                "ip_address": ip_address,
                "user_agent": user_agent,
            },
            (Condition.eq("status", RequestStatus.APPROVED),),
            lambda current: EmailChangeError(EmailChangeErrorCode.REQUEST_NOT_APPROVED),
        )
        await self._append_audit(
            request_id,
            AuditAction.COMPLETED,
            performed_by=performed_by,
            details={"old_email": request.current_email, "new_email": request.new_email},
            ip_address=ip_address,
            user_agent=user_agent,
        )
        return request

    async def regenerate_tokens(
        self,
        request_id: str,
        email_type: EmailType,
        performed_by: Optional[str] = None,
        ip_address: Optional[str] = None,
        user_agent: Optional[str] = None,
    ) -> EmailChangeRequest:
        now = self._clock()
        token = VerificationToken.generate(now, self._token_expiry_hours)

        def conflict(current: EmailChangeRequest) -> EmailChangeError:
            if current.is_verified(email_type):
                return EmailChangeError(EmailChangeErrorCode.EMAIL_ALREADY_VERIFIED)
            return EmailChangeError(
                EmailChangeErrorCode.INVALID_REQUEST_DATA,
                f"Request is not pending verification (status: {current.status.value})",
            )

        request = await self._transition(
            request_id,
            {
                _token_hash_field(email_type): token.hashed,
                "verification_tokens_expires_at": token.expires_at,
                "updated_at": now,
                "ip_address": ip_address,
                "user_agent": user_agent,
            },
            (
                Condition.eq("status", RequestStatus.PENDING_VERIFICATION),
                Condition.eq(_verified_field(email_type), False),
            ),
            conflict,
        )
        request.attach_issued_token(email_type, token.value)

        await self._append_audit(
            request_id,
            AuditAction.VERIFICATION_RESENT,
            performed_by=performed_by,
            details={"email_type": email_type.value, "email": request.email_for(email_type)},
            ip_address=ip_address,
            user_agent=user_agent,
        )
        return request

    # ------------------------------------------------------------------
    # Queries
    # ------------------------------------------------------------------

    async def list_requests(self, filters: EmailChangeListFilters) -> EmailChangeRequestPage:
        conditions: List[Condition] = []
        if filters.user_id:
            conditions.append(Condition.eq("user_id", filters.user_id))
        if filters.status is not None:
            conditions.append(Condition.eq("status", filters.status))
        elif not filters.include_completed:
            conditions.append(Condition("status", Operator.NE, RequestStatus.COMPLETED))

        page = await self._store.query(
            QuerySpec(
                collection=REQUESTS_COLLECTION,
                conditions=tuple(conditions),
                sort_by=filters.sort_by,
                descending=filters.sort_order == "desc",
                limit=filters.limit,
                after=decode_cursor(filters.cursor) if filters.cursor else None,
            )
        )
        return EmailChangeRequestPage(
            items=[self._to_domain(item) for item in page.items],
            next_cursor=page.next_cursor,
        )

    async def get_audit_log(self, request_id: str) -> List[EmailChangeAuditLog]:
        page = await self._store.query(
            QuerySpec(
                collection=AUDIT_LOGS_COLLECTION,
                conditions=(Condition.eq("request_id", request_id),),
                sort_by="performed_at",
            )
        )
        return [EmailChangeAuditLog.model_validate(item) for item in page.items]

    async def count_recent_resends(self, request_id: str, since: datetime) -> int:
        page = await self._store.query(
            QuerySpec(
                collection=AUDIT_LOGS_COLLECTION,
                conditions=(
                    Condition.eq("request_id", request_id),
                    Condition.eq("action", AuditAction.VERIFICATION_RESENT),
                    Condition.ge("performed_at", since),
                ),
            )
        )
        return len(page.items)
