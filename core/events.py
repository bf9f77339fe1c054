import logging
from dataclasses import dataclass, field
from typing import Optional

from django.db import transaction

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class OrganizationCreatedEvent:
    organization_id: str
    name: str
    email: Optional[str] = None
    logo_url: Optional[str] = None
    website: Optional[str] = None


@dataclass(frozen=True)
class OrganizationDeletedEvent:
    organization_id: str
    name: str
    policy: str
    affected: dict = field(default_factory=dict)


@dataclass(frozen=True)
class BranchCreatedEvent:
    branch_id: str
    name: str
    email: str
    organization_id: str
    organization_name: str
    address: str = ''
    contact_number: str = ''
    manager_name: str = ''


@dataclass(frozen=True)
class BranchDeletedEvent:
    branch_id: str
    name: str
    organization_id: str
    policy: str
    affected: dict = field(default_factory=dict)


@dataclass(frozen=True)
class UserOrgBranchAssignedEvent:
    user_id: str
    organization_id: Optional[str]
    branch_id: Optional[str]
    role: str
    assigned_by: str


@dataclass(frozen=True)
class CourseCreatedEvent:
    course_id: str
    title: str
    organization_id: str
    branch_id: Optional[str]
    created_by: str


@dataclass(frozen=True)
class TestInvitationSentEvent:
    test_id: str
    invitation_ids: list
    invited_by: str


@dataclass(frozen=True)
class TestInvitationRespondedEvent:
    invitation_id: str
    test_id: str
    user_id: str
    status: str


def emit_on_commit(signal, event, sender=None):
    """
    Send `signal` once the surrounding transaction commits. Nothing is sent on
    rollback, and a failing receiver is logged without affecting the caller.
    """
    def _send():
        results = signal.send_robust(sender=sender or event.__class__, event=event)
        for receiver, response in results:
            if isinstance(response, Exception):
                logger.error(
                    f"Receiver {getattr(receiver, '__name__', receiver)} failed for "
                    f"{event.__class__.__name__}: {response}"
                )

    transaction.on_commit(_send)
