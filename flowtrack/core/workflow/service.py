"""Workflow engine for sales requests.

Provides the high-level API over the request state machine, including
persistence, the audit history and outcome notifications.
"""

import logging
import uuid
from datetime import datetime, timezone
from typing import Any, Dict, Iterable, List, Optional, Union

from pydantic import ValidationError

from flowtrack.core.errors import (
    NotFoundError,
    PermissionDeniedError,
    TransitionError,
    ValidationFailedError,
    WorkflowError,
)
from flowtrack.core.rbac.roles import Role, coerce_role
from flowtrack.schemas import (
    DashboardStats,
    Enrichment,
    Fulfillment,
    HistoryEvent,
    RequestFacts,
    SalesRequest,
    parse_shipment_refs,
)
from flowtrack.store import StaleRecordError, Store

from . import queues
from .machine import RequestStateMachine
from .states import (
    ApprovalChain,
    DEFAULT_CHAIN,
    FULFILLMENT_STATUSES,
    HistoryAction,
    RequestAction,
    RequestStatus,
)

logger = logging.getLogger(__name__)

CREATED_NOTE = "Request submitted for approval"
COMPLETED_NOTE = "Shipment details submitted. Request closed."
FULFILLMENT_UPDATED_NOTE = "Shipment details updated."

# Actions a reviewer can take through ``transition``
REVIEW_ACTIONS = (RequestAction.APPROVE, RequestAction.REJECT)


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


def _validation_details(exc: ValidationError) -> List[str]:
    return [
        f"{'.'.join(str(loc) for loc in err['loc']) or 'value'}: {err['msg']}"
        for err in exc.errors()
    ]


class WorkflowEngine:
    """
    Service owning the request lifecycle.

    Handles:
    - Creating requests straight into the first pending level
    - Role-gated approve/reject with one history event per action
    - Fulfillment by the original submitter
    - Late enrichment write-back
    - Role-based queues and dashboard totals
    - Batch operations

    Every mutation is a read-modify-write guarded by the record version:
    of two writers starting from the same version only one succeeds.
    """

    def __init__(
        self,
        store: Store,
        notifier=None,
        *,
        chain: Optional[ApprovalChain] = None,
        write_retries: int = 5,
    ):
        """
        Initialize the engine.

        Args:
            store: Store holding the request table
            notifier: Receives ``notify_request_outcome(request)`` after
                a decision; None disables notifications
            chain: Approver chain, two levels by default
            write_retries: Attempts for enrichment write-back on conflict
        """
        self.store = store
        self.notifier = notifier
        self.chain = chain or DEFAULT_CHAIN
        self.write_retries = max(1, write_retries)

    # Reads

    def get(self, request_id: str) -> SalesRequest:
        """Get a request by ID."""
        request = self.store.requests.get(request_id)
        if request is None:
            raise NotFoundError("Request", request_id)
        return request

    def list_requests(self) -> List[SalesRequest]:
        """All requests, newest first."""
        return self.store.requests.list_all()

    # Lifecycle

    def create(
        self,
        facts: Union[RequestFacts, Dict[str, Any]],
        created_by: str,
    ) -> SalesRequest:
        """
        Submit a new request.

        The request is stored directly in the first pending level with a
        single ``Created`` history event. No notification is sent.

        Raises:
            ValidationFailedError: If a fact is missing or malformed
        """
        try:
            if isinstance(facts, RequestFacts):
                facts = facts.model_dump()
            facts = RequestFacts.model_validate(facts)
        except ValidationError as e:
            raise ValidationFailedError("Invalid request facts", _validation_details(e)) from e

        created_by = (created_by or "").strip()
        if not created_by:
            raise ValidationFailedError("Creator identity is required", ["created_by: must not be empty"])

        machine = RequestStateMachine(RequestStatus.DRAFT, self.chain)
        rule = machine.transition(RequestAction.SUBMIT, Role.SALESPERSON)

        now = _utcnow()
        request = SalesRequest(
            **facts.model_dump(),
            id=str(uuid.uuid4()),
            created_by=created_by,
            created_at=now,
            updated_at=now,
            status=rule.to_status,
            history=[HistoryEvent(
                action=rule.label,
                timestamp=now,
                actor=Role.SALESPERSON,
                note=CREATED_NOTE,
            )],
        )
        saved = self.store.requests.upsert(request, expected_version=0)
        logger.info(f"Request {saved.id} ({saved.reference_code}) created by {created_by}")
        return saved

    def transition(
        self,
        request_id: str,
        action: Union[RequestAction, str],
        acting_role: Union[Role, str],
        note: Optional[str] = None,
    ) -> SalesRequest:
        """
        Approve or reject a pending request.

        Args:
            request_id: ID of the request
            action: ``approve`` or ``reject``
            acting_role: Role of the reviewer; must match the pending level
            note: Justification, required for rejections

        Returns:
            The updated request

        Raises:
            NotFoundError: If the request does not exist
            TransitionError: If the action is not legal for this role now,
                or another writer changed the request first
            ValidationFailedError: If a rejection note is missing
        """
        action = self._coerce(RequestAction, action, "action")
        role = coerce_role(acting_role)
        if action not in REVIEW_ACTIONS:
            raise TransitionError(f"Action {action.value} is not a review action", action=action)

        current = self.get(request_id)
        machine = RequestStateMachine(current.status, self.chain, request_id=request_id)
        try:
            rule = machine.transition(action, role, note=note)
        except WorkflowError as e:
            logger.warning(f"Rejected {action.value} on request {request_id} by {role.value}: {e}")
            raise

        note = note.strip() if note and note.strip() else None
        now = _utcnow()
        updated = current.model_copy(update={
            "status": rule.to_status,
            "updated_at": now,
            "rejection_reason": note if action == RequestAction.REJECT else None,
            "history": current.history + [
                HistoryEvent(action=rule.label, timestamp=now, actor=role, note=note)
            ],
        })

        saved = self._write(current, updated, action)
        logger.info(
            f"Request {request_id} {rule.label.value.lower()} by {role.value}: "
            f"{current.status.value} -> {saved.status.value}"
        )
        self._notify(saved)
        return saved

    def approve(self, request_id: str, acting_role: Union[Role, str], note: Optional[str] = None) -> SalesRequest:
        return self.transition(request_id, RequestAction.APPROVE, acting_role, note)

    def reject(self, request_id: str, acting_role: Union[Role, str], note: Optional[str]) -> SalesRequest:
        return self.transition(request_id, RequestAction.REJECT, acting_role, note)

    def batch_approve(
        self,
        request_ids: Iterable[str],
        acting_role: Union[Role, str],
        note: Optional[str] = None,
    ) -> Dict[str, Any]:
        """
        Approve multiple requests in a batch.

        Returns:
            Summary of results
        """
        results = {"approved": [], "failed": []}

        for request_id in request_ids:
            try:
                self.approve(request_id, acting_role, note)
                results["approved"].append(request_id)
            except WorkflowError as e:
                results["failed"].append({
                    "id": request_id,
                    "error": str(e),
                })

        return results

    def batch_reject(
        self,
        request_ids: Iterable[str],
        acting_role: Union[Role, str],
        note: str,  # Required for rejections
    ) -> Dict[str, Any]:
        """
        Reject multiple requests in a batch.

        Returns:
            Summary of results
        """
        results = {"rejected": [], "failed": []}

        for request_id in request_ids:
            try:
                self.reject(request_id, acting_role, note)
                results["rejected"].append(request_id)
            except WorkflowError as e:
                results["failed"].append({
                    "id": request_id,
                    "error": str(e),
                })

        return results

    def attach_enrichment(
        self,
        request_id: str,
        enrichment: Union[Enrichment, Dict[str, Any]],
    ) -> SalesRequest:
        """
        Set or replace the risk annotation of a request.

        Works in any status. Status, history and ``updated_at`` are left
        alone and nothing is notified. A conflicting write is retried
        against the fresh record.

        Raises:
            NotFoundError: If the request does not exist
            ValidationFailedError: If the annotation is malformed
            TransitionError: If every retry lost to another writer
        """
        try:
            if isinstance(enrichment, Enrichment):
                enrichment = enrichment.model_dump()
            enrichment = Enrichment.model_validate(enrichment)
        except ValidationError as e:
            raise ValidationFailedError("Invalid enrichment", _validation_details(e)) from e

        for attempt in range(1, self.write_retries + 1):
            current = self.get(request_id)
            try:
                saved = self.store.requests.upsert(
                    current.model_copy(update={"enrichment": enrichment}),
                    expected_version=current.version,
                )
            except StaleRecordError:
                logger.debug(f"Enrichment write for {request_id} conflicted (attempt {attempt})")
                continue
            logger.info(
                f"Enrichment attached to request {request_id}: "
                f"{enrichment.risk_level.value} ({enrichment.risk_score})"
            )
            return saved

        raise TransitionError(
            f"Request {request_id} kept changing; enrichment not written after {self.write_retries} attempts"
        )

    def submit_fulfillment(
        self,
        request_id: str,
        shipment_refs: Union[str, Iterable[str]],
        remarks: Optional[str],
        acting_identity: str,
    ) -> SalesRequest:
        """
        Record shipment details and close an approved request.

        Only the creator of the request may do this. On an ``Approved``
        request the status moves to ``Completed``; on a ``Completed`` one
        the fulfillment is overwritten and a ``FulfillmentUpdated`` event
        is appended instead of a second ``Completed``.

        Raises:
            NotFoundError: If the request does not exist
            ValidationFailedError: If no shipment reference is given or the
                request is not approved
            PermissionDeniedError: If the caller did not create the request
            TransitionError: If another writer changed the request first
        """
        current = self.get(request_id)

        refs = parse_shipment_refs(shipment_refs)
        if not refs:
            raise ValidationFailedError(
                "At least one shipment reference is required",
                ["shipment_refs: must not be empty"],
            )

        if acting_identity != current.created_by:
            logger.warning(f"{acting_identity!r} tried to fulfill request {request_id} owned by {current.created_by!r}")
            raise PermissionDeniedError(f"only {current.created_by} can submit fulfillment for request {request_id}")

        if current.status not in FULFILLMENT_STATUSES:
            raise ValidationFailedError(
                f"Fulfillment requires an approved request, status is {current.status.value}",
                [f"status: {current.status.value}"],
            )

        machine = RequestStateMachine(current.status, self.chain, request_id=request_id)
        rule = machine.transition(RequestAction.COMPLETE, Role.SALESPERSON)
        event_note = COMPLETED_NOTE if rule.label == HistoryAction.COMPLETED else FULFILLMENT_UPDATED_NOTE

        now = _utcnow()
        updated = current.model_copy(update={
            "status": rule.to_status,
            "updated_at": now,
            "fulfillment": Fulfillment(shipment_refs=refs, remarks=(remarks or "").strip(), submitted_at=now),
            "history": current.history + [
                HistoryEvent(action=rule.label, timestamp=now, actor=Role.SALESPERSON, note=event_note)
            ],
        })

        saved = self._write(current, updated, RequestAction.COMPLETE)
        logger.info(f"Request {request_id} {rule.label.value} by {acting_identity} ({len(refs)} shipment refs)")
        return saved

    # Views

    def visible_queue(
        self,
        role: Union[Role, str],
        requests: Optional[Iterable[SalesRequest]] = None,
    ) -> List[SalesRequest]:
        """Requests ``role`` works on; reads the store when none are given."""
        if requests is None:
            requests = self.list_requests()
        return queues.visible_queue(role, requests, self.chain)

    def processed_history(
        self,
        role: Union[Role, str],
        requests: Optional[Iterable[SalesRequest]] = None,
    ) -> List[SalesRequest]:
        """Requests ``role`` has already passed judgment on."""
        if requests is None:
            requests = self.list_requests()
        return queues.processed_history(role, requests, self.chain)

    def dashboard_stats(self, requests: Optional[Iterable[SalesRequest]] = None) -> DashboardStats:
        if requests is None:
            requests = self.list_requests()
        return queues.summarize(requests)

    def available_actions(self, request_id: str, role: Union[Role, str]) -> List[RequestAction]:
        """Review actions ``role`` may take on a request right now."""
        request = self.get(request_id)
        machine = RequestStateMachine(request.status, self.chain, request_id=request_id)
        role = coerce_role(role)
        return [action for action in REVIEW_ACTIONS if machine.can_perform(action, role)]

    # Administration

    def reset_requests(self, acting_role: Union[Role, str]) -> int:
        """
        Delete every request. Users and role labels are kept.

        Returns:
            Number of requests removed

        Raises:
            PermissionDeniedError: If the caller is not an Admin
        """
        role = coerce_role(acting_role)
        if role != Role.ADMIN:
            raise PermissionDeniedError(f"{role.value} cannot reset requests")
        removed = self.store.requests.clear()
        logger.warning(f"Request table reset by {role.value}: {removed} requests removed")
        return removed

    # Internals

    def _write(self, current: SalesRequest, updated: SalesRequest, action: RequestAction) -> SalesRequest:
        try:
            return self.store.requests.upsert(updated, expected_version=current.version)
        except StaleRecordError as e:
            logger.warning(f"Lost concurrent {action.value} on request {current.id}: {e}")
            raise TransitionError(
                f"Request {current.id} was modified concurrently; "
                f"cannot {action.value} from {current.status.value}",
                current.status,
                action,
            ) from e

    def _notify(self, request: SalesRequest) -> None:
        if self.notifier is None:
            return
        try:
            self.notifier.notify_request_outcome(request)
        except Exception as e:
            # The transition is already stored; a lost notification is not rolled back
            logger.exception(f"Failed to notify outcome of request {request.id}: {e}")

    @staticmethod
    def _coerce(enum_type, value, field: str):
        try:
            return enum_type(value)
        except ValueError as e:
            raise ValidationFailedError(f"Unknown {field}: {value!r}", [f"{field}: {value!r}"]) from e
