from django.dispatch import Signal

# Each signal is sent with a single `event` keyword argument holding one of the
# payload dataclasses from core.events.
organization_created = Signal()
organization_deleted = Signal()
branch_created = Signal()
branch_deleted = Signal()
user_org_branch_assigned = Signal()
course_created = Signal()
test_invitation_sent = Signal()
test_invitation_responded = Signal()
