# portal/schemas/application.py
from typing import Optional
from pydantic import BaseModel, Field, validator


class CheckPaymentRequest(BaseModel):
    post_id: int = Field(..., gt=0)
    district_id: Optional[int] = Field(None, gt=0)


class DraftRequest(BaseModel):
    post_id: int = Field(..., gt=0)
    district_id: Optional[int] = Field(None, gt=0)


class ApplyRequest(BaseModel):
    """Apply to a post; a fee, when due, defers creation until payment verification."""
    post_id: int = Field(..., gt=0)
    district_id: Optional[int] = Field(None, gt=0)
    declaration_accepted: bool = False
    place: Optional[str] = Field(None, max_length=100)

    @validator('place')
    def strip_place(cls, v):
        if v is None:
            return v
        return v.strip() or None


class SubmitRequest(BaseModel):
    declaration_accepted: bool = False
    place: Optional[str] = Field(None, max_length=100)


class VerifyPaymentRequest(BaseModel):
    order_id: str = Field(..., min_length=1, max_length=100)
    payment_id: str = Field(..., min_length=1, max_length=100)
    signature: str = Field(..., min_length=1, max_length=256)


class WithdrawRequest(BaseModel):
    reason: Optional[str] = Field(None, max_length=500)
