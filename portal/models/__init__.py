# portal/models/__init__.py

from .admin import AdminUser
from .masters import (
    DistrictMaster, Component, DocumentType, EducationLevel, ExperienceDomain, PostDocumentRequirement
)
from .post import PostMaster
from .applicant import (
    ApplicantMaster, ApplicantPersonal, ApplicantAddress, ApplicantEducation,
    ApplicantExperience, ApplicantDocument, ApplicantAcknowledgement
)
from .application import (
    Application, ApplicationStatusHistory, ApplicationStageHistory, EligibilityResult,
    DocumentVerification, SequenceCounter
)
from .payment import Payment
from .merit_list import MeritList

__all__ = [
    "AdminUser", "DistrictMaster", "Component", "DocumentType", "EducationLevel",
    "ExperienceDomain", "PostDocumentRequirement", "PostMaster", "ApplicantMaster",
    "ApplicantPersonal", "ApplicantAddress", "ApplicantEducation", "ApplicantExperience",
    "ApplicantDocument", "ApplicantAcknowledgement", "Application", "ApplicationStatusHistory",
    "ApplicationStageHistory", "EligibilityResult", "DocumentVerification", "SequenceCounter",
    "Payment", "MeritList",
]
