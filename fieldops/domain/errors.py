"""Domain errors — every failure the engine reports to its caller."""

from __future__ import annotations


class FieldOpsError(Exception):
    """Base class for all engine failures."""


class NotFound(FieldOpsError):
    def __init__(self, entity: str, entity_id: object):
        self.entity = entity
        self.entity_id = entity_id
        super().__init__(f"{entity} {entity_id} not found")


class ValidationError(FieldOpsError):
    """Missing or malformed input, raised before any store mutation."""


class PermissionDenied(FieldOpsError):
    """The acting role may not perform the requested action."""


class InvalidStateTransition(FieldOpsError):
    def __init__(self, ticket_id: int | None, status: str, action: str):
        self.ticket_id = ticket_id
        self.status = status
        self.action = action
        super().__init__(f"Ticket {ticket_id}: cannot {action} from status '{status}'")


class BusinessRuleViolation(FieldOpsError):
    pass


class AlreadyActive(BusinessRuleViolation):
    def __init__(self, technician_id: int):
        self.technician_id = technician_id
        super().__init__(f"Technician {technician_id} already has an active ticket")


class PartnerBusy(BusinessRuleViolation):
    def __init__(self, partner_id: int):
        self.partner_id = partner_id
        super().__init__(f"Partner {partner_id} already has an active ticket")


class AssigneeLimitExceeded(BusinessRuleViolation):
    def __init__(self, ticket_id: int, limit: int):
        super().__init__(f"Ticket {ticket_id} already has the maximum of {limit} assignees")


class SpecialistMismatch(BusinessRuleViolation):
    pass


class NoTicketsAvailable(FieldOpsError):
    def __init__(self, message: str = "No open tickets available"):
        super().__init__(message)
