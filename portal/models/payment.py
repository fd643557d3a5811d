# portal/models/payment.py
from sqlalchemy import Column, String, Integer, DateTime, Text, Numeric, ForeignKey
from sqlalchemy.sql import func
from portal.database import Base
from portal.models.types import JSONType


class Payment(Base):
    """One row per payment attempt."""
    __tablename__ = "payments"

    id = Column(Integer, primary_key=True, autoincrement=True)
    applicant_id = Column(Integer, ForeignKey("applicant_master.id"), nullable=False, index=True)
    post_id = Column(Integer, ForeignKey("post_master.id"), nullable=False)
    post_name = Column(String(150), nullable=False, index=True)
    district_id = Column(Integer, ForeignKey("district_master.id"), nullable=True)
    application_id = Column(Integer, ForeignKey("applications.id"), nullable=True)

    # Amount breakdown in INR
    base_fee = Column(Numeric(10, 2), nullable=False)
    platform_fee = Column(Numeric(10, 2), nullable=False)
    cgst = Column(Numeric(10, 2), nullable=False)
    sgst = Column(Numeric(10, 2), nullable=False)
    amount = Column(Numeric(10, 2), nullable=False)
    currency = Column(String(3), default="INR", nullable=False)

    payment_status = Column(String(20), default="PENDING", nullable=False, index=True)  # PENDING, SUCCESS, FAILED
    gateway_order_id = Column(String(100), unique=True, index=True, nullable=False)
    gateway_payment_id = Column(String(100), nullable=True)
    gateway_signature = Column(String(255), nullable=True)
    failure_reason = Column(Text, nullable=True)

    # Deferred application payload lives under "application_data"
    payment_metadata = Column("metadata", JSONType, nullable=True)

    created_at = Column(DateTime(timezone=True), server_default=func.now())
    updated_at = Column(DateTime(timezone=True), server_default=func.now(), onupdate=func.now())
    paid_at = Column(DateTime(timezone=True), nullable=True)

    def __repr__(self):
        return f"<Payment {self.gateway_order_id}: applicant={self.applicant_id} [{self.payment_status}] ₹{self.amount}>"

    def to_dict(self, include_internal=False):
        data = {
            "payment_id": self.id,
            "post_id": self.post_id,
            "post_name": self.post_name,
            "district_id": self.district_id,
            "application_id": self.application_id,
            "amount": float(self.amount) if self.amount is not None else None,
            "amount_display": f"₹{float(self.amount):,.2f}" if self.amount is not None else None,
            "currency": self.currency,
            "payment_status": self.payment_status,
            "order_id": self.gateway_order_id,
            "created_at": self.created_at.isoformat() if self.created_at else None,
            "paid_at": self.paid_at.isoformat() if self.paid_at else None,
        }

        if include_internal:
            data.update({
                "base_fee": float(self.base_fee),
                "platform_fee": float(self.platform_fee),
                "cgst": float(self.cgst),
                "sgst": float(self.sgst),
                "gateway_payment_id": self.gateway_payment_id,
                "failure_reason": self.failure_reason,
                "metadata": self.payment_metadata,
            })

        return data
