from .application_status import (
    ApplicationStatus, ActorType, SelectionAction, PROVISIONAL_ACTIONS, FINAL_ACTIONS,
    TRANSITIONS, TERMINAL_STATUSES, LOCKED_STATUSES, INACTIVE_STATUSES,
    is_valid_transition, allowed_transitions, canonicalize_status,
)

__all__ = [
    "ApplicationStatus", "ActorType", "SelectionAction", "PROVISIONAL_ACTIONS", "FINAL_ACTIONS",
    "TRANSITIONS", "TERMINAL_STATUSES", "LOCKED_STATUSES", "INACTIVE_STATUSES",
    "is_valid_transition", "allowed_transitions", "canonicalize_status",
]
