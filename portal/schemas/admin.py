# portal/schemas/admin.py
from typing import List, Optional
from pydantic import BaseModel, Field, validator

from portal.constants import ApplicationStatus, SelectionAction, canonicalize_status

# Accepted spellings for review actions, keyed on the upper-cased, underscore
# separated input
_ACTION_ALIASES = {
    "PROVISIONAL": SelectionAction.PROVISIONAL_SELECT,
    "PROVISIONAL_SELECTED": SelectionAction.PROVISIONAL_SELECT,
    "PROVISIONALLY_SELECT": SelectionAction.PROVISIONAL_SELECT,
    "ON_HOLD": SelectionAction.HOLD,
    "SELECTED": SelectionAction.SELECT,
    "REJECTED": SelectionAction.REJECT,
}


def _canonical_action(value) -> SelectionAction:
    if isinstance(value, SelectionAction):
        return value
    key = str(value or "").strip().upper().replace("-", "_").replace(" ", "_")
    if key in SelectionAction.__members__:
        return SelectionAction[key]
    if key in _ACTION_ALIASES:
        return _ACTION_ALIASES[key]
    raise ValueError(f"Unknown action: {value}")


class StatusChangeRequest(BaseModel):
    status: ApplicationStatus
    remarks: Optional[str] = Field(None, max_length=1000)

    @validator('status', pre=True)
    def canonical_status(cls, v):
        status = canonicalize_status(v)
        if status is None:
            raise ValueError("Status is required")
        return status


class ReviewActionRequest(BaseModel):
    action: SelectionAction
    remarks: Optional[str] = Field(None, max_length=1000)

    @validator('action', pre=True)
    def canonical_action(cls, v):
        return _canonical_action(v)


class ProvisionalActionRequest(ReviewActionRequest):
    pass


class FinalActionRequest(ReviewActionRequest):
    pass


class DocumentVerificationItem(BaseModel):
    document_id: int = Field(..., gt=0)
    status: str
    remarks: Optional[str] = Field(None, max_length=500)

    @validator('status')
    def canonical_verification_status(cls, v):
        v = v.strip().upper()
        if v not in ("VERIFIED", "REJECTED", "PENDING"):
            raise ValueError("Status must be VERIFIED, REJECTED or PENDING")
        return v


class DocumentVerifyRequest(BaseModel):
    items: List[DocumentVerificationItem] = Field(..., min_length=1)


class DocumentVerifyAllRequest(BaseModel):
    status: str

    @validator('status')
    def final_verification_status(cls, v):
        v = v.strip().upper()
        if v not in ("VERIFIED", "REJECTED"):
            raise ValueError("status must be VERIFIED or REJECTED")
        return v


class MeritGenerateRequest(BaseModel):
    district_id: Optional[int] = Field(None, gt=0)


class BulkStatusChangeRequest(StatusChangeRequest):
    application_ids: List[int] = Field(..., min_length=1)
