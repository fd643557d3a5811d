# portal/schemas/__init__.py
from .application import (
    CheckPaymentRequest,
    DraftRequest,
    ApplyRequest,
    SubmitRequest,
    VerifyPaymentRequest,
    WithdrawRequest,
)
from .admin import (
    StatusChangeRequest,
    BulkStatusChangeRequest,
    ProvisionalActionRequest,
    FinalActionRequest,
    DocumentVerificationItem,
    DocumentVerifyRequest,
    DocumentVerifyAllRequest,
    MeritGenerateRequest,
)

__all__ = [
    "CheckPaymentRequest",
    "DraftRequest",
    "ApplyRequest",
    "SubmitRequest",
    "VerifyPaymentRequest",
    "WithdrawRequest",
    "StatusChangeRequest",
    "BulkStatusChangeRequest",
    "ProvisionalActionRequest",
    "FinalActionRequest",
    "DocumentVerificationItem",
    "DocumentVerifyRequest",
    "DocumentVerifyAllRequest",
    "MeritGenerateRequest",
]
