# portal/constants/application_status.py
"""
Application lifecycle statuses and the transition table.

Status values are stored as plain strings; everything that reads user input
goes through ``canonicalize_status`` once, at the API boundary.
"""
from enum import Enum
from typing import Dict, FrozenSet, Optional, Union


class ApplicationStatus(str, Enum):
    DRAFT = "DRAFT"
    SUBMITTED = "SUBMITTED"
    ELIGIBLE = "ELIGIBLE"
    NOT_ELIGIBLE = "NOT_ELIGIBLE"
    ON_HOLD = "ON_HOLD"
    PROVISIONAL_SELECTED = "PROVISIONAL_SELECTED"
    SELECTED = "SELECTED"
    SELECTED_IN_OTHER_POST = "SELECTED_IN_OTHER_POST"
    REJECTED = "REJECTED"
    WITHDRAWN = "WITHDRAWN"

    def __str__(self):
        return self.value


class ActorType(str, Enum):
    APPLICANT = "APPLICANT"
    ADMIN = "ADMIN"
    SYSTEM = "SYSTEM"


class SelectionAction(str, Enum):
    PROVISIONAL_SELECT = "PROVISIONAL_SELECT"
    HOLD = "HOLD"
    SELECT = "SELECT"
    REJECT = "REJECT"


PROVISIONAL_ACTIONS = frozenset({
    SelectionAction.PROVISIONAL_SELECT, SelectionAction.HOLD, SelectionAction.REJECT,
})
FINAL_ACTIONS = frozenset({SelectionAction.SELECT, SelectionAction.REJECT})


S = ApplicationStatus

# SELECTED_IN_OTHER_POST is only assigned by the auto-reject cascade when the
# applicant is selected elsewhere. Applicants may withdraw until admin review
# starts.
TRANSITIONS: Dict[ApplicationStatus, FrozenSet[ApplicationStatus]] = {
    S.DRAFT: frozenset({S.SUBMITTED, S.WITHDRAWN, S.SELECTED_IN_OTHER_POST}),
    S.SUBMITTED: frozenset({S.ELIGIBLE, S.NOT_ELIGIBLE, S.WITHDRAWN}),
    S.ELIGIBLE: frozenset({
        S.ON_HOLD, S.PROVISIONAL_SELECTED, S.SELECTED_IN_OTHER_POST, S.REJECTED, S.WITHDRAWN,
    }),
    S.NOT_ELIGIBLE: frozenset({S.REJECTED, S.SELECTED_IN_OTHER_POST, S.WITHDRAWN}),
    S.ON_HOLD: frozenset({S.ELIGIBLE, S.PROVISIONAL_SELECTED, S.SELECTED_IN_OTHER_POST, S.REJECTED}),
    S.PROVISIONAL_SELECTED: frozenset({S.SELECTED, S.SELECTED_IN_OTHER_POST, S.REJECTED}),
    S.SELECTED: frozenset(),
    S.SELECTED_IN_OTHER_POST: frozenset(),
    S.REJECTED: frozenset(),
    S.WITHDRAWN: frozenset(),
}

TERMINAL_STATUSES = frozenset({S.SELECTED, S.SELECTED_IN_OTHER_POST, S.REJECTED, S.WITHDRAWN})

# Once an application reaches any of these the applicant profile is read-only
LOCKED_STATUSES = frozenset(s for s in ApplicationStatus if s is not S.DRAFT)

# Applications in these statuses do not count toward restriction limits
INACTIVE_STATUSES = frozenset({S.WITHDRAWN, S.REJECTED})

_ALIASES = {
    "HOLD": S.ON_HOLD,
    "ONHOLD": S.ON_HOLD,
    "REJECT": S.REJECTED,
    "SELECT": S.SELECTED,
    "NOTELIGIBLE": S.NOT_ELIGIBLE,
    "INELIGIBLE": S.NOT_ELIGIBLE,
    "PROVISIONAL": S.PROVISIONAL_SELECTED,
    "PROVISIONALSELECTED": S.PROVISIONAL_SELECTED,
    "PROVISIONALLY_SELECTED": S.PROVISIONAL_SELECTED,
    "WITHDRAW": S.WITHDRAWN,
    "SELECTEDINOTHERPOST": S.SELECTED_IN_OTHER_POST,
}


def canonicalize_status(value: Union[str, ApplicationStatus, None]) -> Optional[ApplicationStatus]:
    """
    Map an incoming status spelling onto ApplicationStatus.

    Accepts any case, surrounding whitespace, and hyphen or space separators
    (``on-hold``, ``On Hold``, ``HOLD``). Returns None for empty input and
    raises ValueError for anything unrecognised.
    """
    if value is None:
        return None
    if isinstance(value, ApplicationStatus):
        return value

    key = str(value).strip().upper().replace("-", "_").replace(" ", "_")
    if not key:
        return None
    if key in ApplicationStatus.__members__:
        return ApplicationStatus[key]

    compact = key.replace("_", "")
    if compact in _ALIASES:
        return _ALIASES[compact]
    if key in _ALIASES:
        return _ALIASES[key]
    raise ValueError(f"Unknown application status: {value}")


def allowed_transitions(current) -> FrozenSet[ApplicationStatus]:
    return TRANSITIONS.get(ApplicationStatus(current), frozenset())


def is_valid_transition(current, target) -> bool:
    return ApplicationStatus(target) in allowed_transitions(current)
