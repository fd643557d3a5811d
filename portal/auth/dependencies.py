# portal/auth/dependencies.py
import logging

from fastapi import Depends, HTTPException, status
from fastapi.security import HTTPBearer, HTTPAuthorizationCredentials
from sqlalchemy.orm import Session

from portal.database import get_db
from portal.models import AdminUser, ApplicantMaster
from portal.utils.jwt_handler import decode_token

logger = logging.getLogger(__name__)

bearer_scheme = HTTPBearer()


def _token_subject(credentials: HTTPAuthorizationCredentials, role: str) -> int:
    payload = decode_token(credentials.credentials)
    if payload is None:
        raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail="Invalid token")

    subject = payload.get("sub")
    if payload.get("role") != role or not subject:
        logger.warning(f"Rejected token: role={payload.get('role')}, expected={role}")
        raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail=f"Invalid {role} token")

    try:
        return int(subject)
    except (TypeError, ValueError):
        raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail=f"Invalid {role} token")


def get_current_admin(
    credentials: HTTPAuthorizationCredentials = Depends(bearer_scheme),
    db: Session = Depends(get_db)
) -> AdminUser:
    admin_id = _token_subject(credentials, "admin")
    admin = db.query(AdminUser).filter(AdminUser.id == admin_id, AdminUser.is_active == True).first()  # noqa: E712
    if not admin:
        raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail="Admin not found")
    return admin


def get_current_applicant(
    credentials: HTTPAuthorizationCredentials = Depends(bearer_scheme),
    db: Session = Depends(get_db)
) -> ApplicantMaster:
    applicant_id = _token_subject(credentials, "applicant")
    applicant = (
        db.query(ApplicantMaster)
        .filter(
            ApplicantMaster.id == applicant_id,
            ApplicantMaster.is_active == True,  # noqa: E712
            ApplicantMaster.is_deleted == False,  # noqa: E712
        )
        .first()
    )
    if not applicant:
        raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail="Applicant not found")
    return applicant
