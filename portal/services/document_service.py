# portal/services/document_service.py
import logging
from datetime import datetime, timezone
from typing import Any, Dict, Iterable, List, Optional

from sqlalchemy import func, or_
from sqlalchemy.orm import Session

from portal.database import atomic
from portal.exceptions import NotFoundError, ValidationError
from portal.models import (
    ApplicantDocument, ApplicantPersonal, Application, DocumentType, DocumentVerification,
    EducationLevel, ExperienceDomain, PostDocumentRequirement,
)

logger = logging.getLogger(__name__)

# Captured on the personal section, not as free-standing uploads
CORE_PERSONAL_CODES = ("PHOTO", "SIGNATURE", "AADHAAR", "PAN", "RESUME", "DOMICILE")
DOMICILE_TERMS = ("%domicile%", "%domacile%")

VERIFICATION_STATUSES = ("PENDING", "VERIFIED", "REJECTED")


class DocumentService:
    """Required-document resolution, completeness checks and admin verification."""

    @staticmethod
    def _section_doc_type_ids(db: Session) -> List[int]:
        ids = set()
        for model in (EducationLevel, ExperienceDomain):
            ids.update(row[0] for row in db.query(model.doc_type_id).filter(model.doc_type_id.isnot(None)))
        return sorted(ids)

    def required_doc_types(self, db: Session, applicant_id: int, post_id: Optional[int] = None,
                           include_section_docs: bool = False,
                           include_core_personal: bool = False) -> List[Dict[str, Any]]:
        """
        Document types the applicant must upload.

        Globally mandatory types, plus domicile types when the applicant has
        declared domicile, plus the post's mandatory-at-application
        requirements when ``post_id`` is given. Types tied to education
        levels or experience domains are left out unless
        ``include_section_docs`` is set, since those certificates are
        attached to the education / experience records themselves.
        """
        personal = db.query(ApplicantPersonal).filter(ApplicantPersonal.applicant_id == applicant_id).first()
        is_domicile = bool(personal and personal.is_domicile)

        query = db.query(DocumentType).filter(DocumentType.is_active == True)  # noqa: E712

        if not include_section_docs:
            excluded = self._section_doc_type_ids(db)
            if excluded:
                query = query.filter(DocumentType.id.notin_(excluded))

        if not include_core_personal:
            query = query.filter(func.upper(DocumentType.doc_code).notin_(CORE_PERSONAL_CODES))

        conditions = [DocumentType.is_mandatory == True]  # noqa: E712
        if is_domicile:
            for term in DOMICILE_TERMS:
                conditions.append(DocumentType.doc_code.ilike(term))
                conditions.append(DocumentType.doc_name.ilike(term))
        query = query.filter(or_(*conditions))

        rows = [(doc, False) for doc in query.order_by(DocumentType.display_order, DocumentType.id).all()]

        if post_id:
            requirements = (
                db.query(PostDocumentRequirement)
                .join(DocumentType, DocumentType.id == PostDocumentRequirement.doc_type_id)
                .filter(
                    PostDocumentRequirement.post_id == post_id,
                    PostDocumentRequirement.requirement_type == "M",
                    PostDocumentRequirement.mandatory_at_application == True,  # noqa: E712
                    DocumentType.is_active == True,  # noqa: E712
                )
                .order_by(PostDocumentRequirement.id)
                .all()
            )
            rows.extend((r.document_type, True) for r in requirements)

        seen = set()
        result = []
        for doc, for_post in rows:
            if doc.id in seen:
                continue
            seen.add(doc.id)
            entry = doc.to_dict()
            entry["required_for_post"] = for_post
            if for_post:
                entry["post_id"] = post_id
            result.append(entry)

        result.sort(key=lambda d: d["display_order"] or 0)
        return result

    @staticmethod
    def uploaded_documents(db: Session, applicant_id: int) -> List[ApplicantDocument]:
        return (
            db.query(ApplicantDocument)
            .filter(ApplicantDocument.applicant_id == applicant_id, ApplicantDocument.is_deleted == False)  # noqa: E712
            .order_by(ApplicantDocument.id)
            .all()
        )

    def check(self, db: Session, applicant_id: int, post_id: Optional[int] = None) -> Dict[str, Any]:
        required = self.required_doc_types(db, applicant_id, post_id=post_id)
        uploaded = self.uploaded_documents(db, applicant_id)

        uploaded_ids = {d.doc_type_id for d in uploaded if d.doc_type_id}
        uploaded_codes = {d.doc_type.upper() for d in uploaded if d.doc_type}

        satisfied, missing = [], []
        for doc in required:
            code = (doc["doc_code"] or "").upper()
            if doc["doc_type_id"] in uploaded_ids or (code and code in uploaded_codes):
                satisfied.append(doc)
            else:
                missing.append(doc)

        return {
            "complete": not missing,
            "missing": missing,
            "uploaded": [d.to_dict() for d in uploaded],
            "satisfied": satisfied,
            "total_required": len(required),
            "total_uploaded": len(uploaded),
        }

    # --- Admin verification ------------------------------------------------

    @staticmethod
    def _get_application(db: Session, application_id: int) -> Application:
        application = (
            db.query(Application)
            .filter(Application.id == application_id, Application.is_deleted == False)  # noqa: E712
            .first()
        )
        if not application:
            raise NotFoundError("Application not found")
        return application

    def application_documents(self, db: Session, application_id: int) -> List[Dict[str, Any]]:
        application = self._get_application(db, application_id)
        documents = self.uploaded_documents(db, application.applicant_id)
        verifications = {
            v.document_id: v
            for v in db.query(DocumentVerification).filter(DocumentVerification.application_id == application_id)
        }

        result = []
        for doc in documents:
            entry = doc.to_dict()
            verification = verifications.get(doc.id)
            entry.update({
                "verification_status": verification.verification_status if verification else "PENDING",
                "verified_by": verification.verified_by if verification else None,
                "verified_at": verification.verified_at.isoformat() if verification and verification.verified_at else None,
                "remarks": verification.remarks if verification else None,
            })
            result.append(entry)
        return result

    def verification_summary(self, db: Session, application_id: int) -> Dict[str, Any]:
        documents = self.application_documents(db, application_id)
        counts = {status: 0 for status in VERIFICATION_STATUSES}
        for doc in documents:
            counts[doc["verification_status"]] = counts.get(doc["verification_status"], 0) + 1

        total = len(documents)
        return {
            "total": total,
            "verified": counts["VERIFIED"],
            "pending": counts["PENDING"],
            "rejected": counts["REJECTED"],
            "all_verified": total > 0 and counts["VERIFIED"] == total,
        }

    def verify_documents(self, db: Session, application_id: int, items: Iterable[Dict[str, Any]],
                         admin_id: int) -> Dict[str, Any]:
        """Record verification outcomes and refresh the application's document_verified flag."""
        with atomic(db):
            application = self._get_application(db, application_id)
            owned = {d.id for d in self.uploaded_documents(db, application.applicant_id)}
            now = datetime.now(timezone.utc)

            count = 0
            for item in items:
                status = str(item.get("status", "")).upper()
                if status not in VERIFICATION_STATUSES:
                    raise ValidationError(f"Invalid verification status: {item.get('status')}")
                document_id = item.get("document_id")
                if document_id not in owned:
                    raise ValidationError(
                        "Document does not belong to this application",
                        errors={"document_id": document_id},
                    )

                verification = (
                    db.query(DocumentVerification)
                    .filter(
                        DocumentVerification.application_id == application_id,
                        DocumentVerification.document_id == document_id,
                    )
                    .first()
                )
                if verification is None:
                    verification = DocumentVerification(application_id=application_id, document_id=document_id)
                    db.add(verification)
                verification.verification_status = status
                verification.verified_by = admin_id
                verification.verified_at = now
                verification.remarks = item.get("remarks")
                count += 1

            db.flush()
            summary = self.verification_summary(db, application_id)
            application.document_verified = summary["all_verified"]

        logger.info(f"Documents verified for application {application_id} by admin {admin_id}")
        return {"verified_count": count, "summary": summary}

    def verify_all(self, db: Session, application_id: int, status: str, admin_id: int) -> Dict[str, Any]:
        """Give every document of the application the same verification status."""
        status = str(status or "").upper()
        if status not in ("VERIFIED", "REJECTED"):
            raise ValidationError("status must be VERIFIED or REJECTED")

        application = self._get_application(db, application_id)
        items = [
            {"document_id": doc.id, "status": status}
            for doc in self.uploaded_documents(db, application.applicant_id)
        ]
        return self.verify_documents(db, application_id, items, admin_id)
