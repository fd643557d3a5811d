# portal/services/payment_service.py
import logging
import time
from datetime import datetime, timezone
from decimal import Decimal, ROUND_HALF_UP
from typing import Any, Dict, List, Optional

from sqlalchemy.orm import Session

from portal.database import atomic
from portal.exceptions import ConflictError, NotFoundError, ValidationError
from portal.models import Payment, PostMaster

logger = logging.getLogger(__name__)

PENDING = "PENDING"
SUCCESS = "SUCCESS"
FAILED = "FAILED"

CENTS = Decimal("0.01")


def _money(value: Decimal) -> Decimal:
    return value.quantize(CENTS, rounding=ROUND_HALF_UP)


class PaymentService:
    """
    Decides when an application needs a fee and tracks payment attempts.

    One fee covers a post name within a district: further components of
    an already-paid post name are free, and once the applicant has paid
    for the maximum number of distinct post names nothing more is charged
    (the restriction guard refuses further post names instead).
    """

    def __init__(self, settings, gateway):
        self.enabled = settings.PAYMENT_ENABLED
        self.base_fee = Decimal(str(settings.PAYMENT_BASE_FEE))
        self.platform_fee_percent = Decimal(str(settings.PAYMENT_PLATFORM_FEE_PERCENT))
        self.cgst_percent = Decimal(str(settings.PAYMENT_CGST_PERCENT))
        self.sgst_percent = Decimal(str(settings.PAYMENT_SGST_PERCENT))
        self.max_distinct_post_names = settings.MAX_DISTINCT_POST_NAMES
        self.gateway = gateway

    def calculate_fee(self) -> Dict[str, float]:
        platform_fee = self.base_fee * self.platform_fee_percent / 100
        subtotal = self.base_fee + platform_fee
        cgst = subtotal * self.cgst_percent / 100
        sgst = subtotal * self.sgst_percent / 100
        total = subtotal + cgst + sgst
        return {
            "base_fee": float(_money(self.base_fee)),
            "platform_fee": float(_money(platform_fee)),
            "subtotal": float(_money(subtotal)),
            "cgst": float(_money(cgst)),
            "sgst": float(_money(sgst)),
            "total_amount": float(_money(total)),
        }

    @staticmethod
    def successful_payments(db: Session, applicant_id: int) -> List[Payment]:
        return (
            db.query(Payment)
            .filter(Payment.applicant_id == applicant_id, Payment.payment_status == SUCCESS)
            .order_by(Payment.id)
            .all()
        )

    def _required(self, reason: str, message: str, **extra) -> Dict[str, Any]:
        breakdown = self.calculate_fee()
        result = {
            "required": True,
            "reason": reason,
            "message": message,
            "amount": breakdown["total_amount"],
            "breakdown": breakdown,
        }
        result.update(extra)
        return result

    def check_payment_required(self, db: Session, applicant_id: int, post_id: int,
                               post_name: str, district_id: Optional[int]) -> Dict[str, Any]:
        if not self.enabled:
            return {"required": False, "reason": "PAYMENT_DISABLED", "message": "Payment is not enabled"}

        paid = self.successful_payments(db, applicant_id)
        if not paid:
            return self._required("FIRST_APPLICATION", "Payment required for first application")

        if any(p.post_id == post_id for p in paid):
            return {"required": False, "reason": "ALREADY_PAID_FOR_POST", "message": "Already paid for this post"}

        in_district = [p for p in paid if p.district_id == district_id]
        if any(p.post_name == post_name for p in in_district):
            return {
                "required": False,
                "reason": "SAME_POST_NAME_PAID",
                "message": f"Already paid for {post_name} in this district",
            }

        paid_post_names = sorted({p.post_name for p in in_district})
        if len(paid_post_names) >= self.max_distinct_post_names:
            return {
                "required": False,
                "reason": "POST_NAME_LIMIT_REACHED",
                "message": "Maximum paid post names reached for this district",
                "paid_post_names": paid_post_names,
            }

        return self._required(
            "NEW_POST_NAME", f"Payment required for new post name {post_name}",
            paid_post_names=paid_post_names,
        )

    def create_payment_order(self, db: Session, applicant_id: int, post: PostMaster,
                             application_data: Dict[str, Any],
                             district_id: Optional[int] = None) -> Dict[str, Any]:
        """
        Create a gateway order and record a PENDING payment.

        ``application_data`` (declaration, place, client ip and user agent)
        is kept on the payment so the application can be created once the
        payment is verified.
        """
        if not self.enabled:
            raise ValidationError("Payment is not enabled")

        district_id = district_id or post.district_id
        check = self.check_payment_required(db, applicant_id, post.id, post.post_name, district_id)
        if not check["required"]:
            raise ConflictError("Payment is not required for this application", errors=check)

        breakdown = check["breakdown"]
        amount_paise = int(_money(Decimal(str(breakdown["total_amount"]))) * 100)

        pending = self.open_order(db, applicant_id, post.id, breakdown["total_amount"])
        if pending is not None:
            logger.info(f"Reusing payment order {pending.gateway_order_id} for applicant {applicant_id}, post {post.id}")
            return self._order_response(pending, amount_paise, breakdown, check["reason"])

        receipt = f"APPL_{applicant_id}_{post.id}_{int(time.time() * 1000)}"

        # Gateway call happens before any row is written or locked
        order = self.gateway.create_order(
            amount_paise,
            receipt,
            notes={
                "applicant_id": str(applicant_id),
                "post_id": str(post.id),
                "post_name": post.post_name,
                "district_id": str(district_id) if district_id else "",
            },
        )

        with atomic(db):
            payment = Payment(
                applicant_id=applicant_id,
                post_id=post.id,
                post_name=post.post_name,
                district_id=district_id,
                base_fee=breakdown["base_fee"],
                platform_fee=breakdown["platform_fee"],
                cgst=breakdown["cgst"],
                sgst=breakdown["sgst"],
                amount=breakdown["total_amount"],
                currency="INR",
                payment_status=PENDING,
                gateway_order_id=order["id"],
                payment_metadata={
                    "receipt": receipt,
                    "payment_reason": check["reason"],
                    "application_data": {
                        "declaration_accepted": bool(application_data.get("declaration_accepted")),
                        "place": application_data.get("place"),
                        "ip_address": application_data.get("ip_address"),
                        "user_agent": application_data.get("user_agent"),
                    },
                },
            )
            db.add(payment)
            db.flush()

        logger.info(f"Payment order {order['id']} created for applicant {applicant_id}, post {post.id}")
        return self._order_response(payment, amount_paise, breakdown, check["reason"])

    @staticmethod
    def open_order(db: Session, applicant_id: int, post_id: int, amount) -> Optional[Payment]:
        """Latest PENDING payment of the applicant for the post, if its amount still matches."""
        payment = (
            db.query(Payment)
            .filter(
                Payment.applicant_id == applicant_id,
                Payment.post_id == post_id,
                Payment.payment_status == PENDING,
                Payment.gateway_order_id.isnot(None),
            )
            .order_by(Payment.id.desc())
            .first()
        )
        if payment is None or _money(Decimal(str(payment.amount))) != _money(Decimal(str(amount))):
            return None
        return payment

    def _order_response(self, payment: Payment, amount_paise: int, breakdown: Dict[str, Any],
                        reason: str) -> Dict[str, Any]:
        return {
            "payment_id": payment.id,
            "order_id": payment.gateway_order_id,
            "amount": breakdown["total_amount"],
            "amount_paise": amount_paise,
            "currency": "INR",
            "key_id": getattr(self.gateway, "key_id", None),
            "breakdown": breakdown,
            "reason": reason,
        }

    def verify_payment_signature(self, order_id: str, payment_id: str, signature: str) -> bool:
        return self.gateway.verify_signature(order_id, payment_id, signature)

    @staticmethod
    def get_payment_for_order(db: Session, order_id: str, applicant_id: int, lock: bool = False) -> Payment:
        query = db.query(Payment).filter(Payment.gateway_order_id == order_id, Payment.applicant_id == applicant_id)
        if lock:
            query = query.with_for_update().populate_existing()
        payment = query.first()
        if not payment:
            raise NotFoundError("Payment not found")
        return payment

    @staticmethod
    def mark_payment_success(db: Session, payment: Payment, payment_id: str, signature: str) -> Payment:
        with atomic(db):
            payment.payment_status = SUCCESS
            payment.gateway_payment_id = payment_id
            payment.gateway_signature = signature
            payment.paid_at = datetime.now(timezone.utc)
            db.flush()
        return payment

    def mark_payment_failed(self, db: Session, order_id: str, applicant_id: int, reason: str,
                            payment_id: Optional[str] = None) -> Payment:
        with atomic(db):
            payment = self.get_payment_for_order(db, order_id, applicant_id)
            if payment.payment_status == SUCCESS:
                raise ConflictError("Payment already completed", errors={"reason": "PAYMENT_ALREADY_PROCESSED"})
            payment.payment_status = FAILED
            payment.failure_reason = reason
            if payment_id:
                payment.gateway_payment_id = payment_id
        logger.warning(f"Payment {order_id} marked FAILED for applicant {applicant_id}: {reason}")
        return payment

    @staticmethod
    def payment_history(db: Session, applicant_id: int) -> List[Dict[str, Any]]:
        payments = (
            db.query(Payment)
            .filter(Payment.applicant_id == applicant_id)
            .order_by(Payment.created_at.desc(), Payment.id.desc())
            .all()
        )
        return [p.to_dict() for p in payments]
