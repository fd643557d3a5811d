import hashlib
import hmac
import os
import sys
from datetime import date
from itertools import count

sys.path.append(os.path.dirname(os.path.abspath(__file__)))

# Tests never start the daily scheduler or touch a real gateway
os.environ.setdefault("CRON_ENABLED", "false")
os.environ.setdefault("DATABASE_URL", "sqlite:///./test_portal.db")

import pytest
from fastapi.testclient import TestClient
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import StaticPool

from portal.config import Settings
from portal.database import Base, get_db
from portal.models import (
    AdminUser, ApplicantAddress, ApplicantDocument, ApplicantEducation, ApplicantMaster, ApplicantPersonal,
    Application, Component, DistrictMaster, DocumentType, EducationLevel, PostDocumentRequirement, PostMaster,
)
from portal.services import build_services, get_services
from portal.services.gateway import RazorpayGateway
from portal.utils.jwt_handler import create_access_token

TODAY = date(2025, 6, 1)
GATEWAY_SECRET = "test_secret"


class FakeGateway(RazorpayGateway):
    """Records orders instead of calling the gateway; signatures use the real HMAC."""

    def __init__(self):
        super().__init__("rzp_test_key", GATEWAY_SECRET, "https://gateway.invalid/v1")
        self.orders = []

    def create_order(self, amount_paise, receipt, notes=None, currency="INR"):
        order = {
            "id": f"order_test_{len(self.orders) + 1}",
            "amount": amount_paise,
            "currency": currency,
            "receipt": receipt,
            "notes": notes or {},
        }
        self.orders.append(order)
        return order


def sign(order_id, payment_id, secret=GATEWAY_SECRET):
    return hmac.new(secret.encode(), f"{order_id}|{payment_id}".encode(), hashlib.sha256).hexdigest()


def make_settings(**overrides):
    values = {
        "PAYMENT_ENABLED": False,
        "MAX_DISTINCT_POST_NAMES": 2,
        "MAX_OSC_PER_POST_NAME": 2,
        "CRON_ENABLED": False,
        "RAZORPAY_KEY_ID": "rzp_test_key",
        "RAZORPAY_KEY_SECRET": GATEWAY_SECRET,
    }
    values.update(overrides)
    return Settings(**values)


@pytest.fixture
def db():
    engine = create_engine(
        "sqlite://",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    Base.metadata.create_all(bind=engine)
    TestingSession = sessionmaker(autocommit=False, autoflush=False, bind=engine)
    session = TestingSession()
    try:
        yield session
    finally:
        session.close()
        Base.metadata.drop_all(bind=engine)
        engine.dispose()


@pytest.fixture
def gateway():
    return FakeGateway()


@pytest.fixture
def services(gateway):
    return build_services(make_settings(), gateway=gateway)


@pytest.fixture
def paid_services(gateway):
    return build_services(make_settings(PAYMENT_ENABLED=True), gateway=gateway)


@pytest.fixture
def masters(db):
    """Districts, components, education levels (rank = display_order) and document types."""
    d1 = DistrictMaster(district_name="Pune", district_code="PUN")
    d2 = DistrictMaster(district_name="Nagpur", district_code="NGP")
    c1 = Component(component_name="Urban", component_code="URB")
    c2 = Component(component_name="Rural", component_code="RUR")
    c3 = Component(component_name="Tribal", component_code="TRB")

    id_proof = DocumentType(doc_code="ID_PROOF", doc_name="Identity Proof", is_mandatory=True, display_order=2)
    photo = DocumentType(doc_code="PHOTO", doc_name="Photograph", is_mandatory=True, display_order=1)
    domicile = DocumentType(doc_code="DOMICILE_CERT", doc_name="Domicile Certificate", is_mandatory=False,
                            display_order=3)
    noc = DocumentType(doc_code="NOC", doc_name="No Objection Certificate", is_mandatory=False, display_order=5)
    degree = DocumentType(doc_code="DEGREE_CERT", doc_name="Degree Certificate", is_mandatory=True,
                          display_order=4)
    db.add_all([d1, d2, c1, c2, c3, id_proof, photo, domicile, noc, degree])
    db.flush()

    levels = {}
    for rank, (name, code) in enumerate(
        [("SSC", "SSC"), ("HSC", "HSC"), ("Diploma", "DIP"), ("Graduate", "GRAD"), ("Post Graduate", "PG")],
        start=1,
    ):
        level = EducationLevel(level_name=name, level_code=code, display_order=rank,
                               doc_type_id=degree.id if code == "GRAD" else None)
        db.add(level)
        levels[code] = level

    admin = AdminUser(full_name="Review Officer", email="admin@example.com", role="REVIEWER")
    db.add(admin)
    db.commit()

    return {
        "districts": [d1, d2],
        "components": [c1, c2, c3],
        "levels": levels,
        "docs": {"ID_PROOF": id_proof, "PHOTO": photo, "DOMICILE_CERT": domicile, "NOC": noc,
                 "DEGREE_CERT": degree},
        "admin": admin,
    }


_post_codes = count(1)
_emails = count(1)


@pytest.fixture
def make_post(db, masters):
    def _make(post_name="Constable", component=0, district=0, min_age=18, max_age=40, min_level=None,
              max_level=None, min_experience_months=0, total_positions=1, closing_date=None, **extra):
        post = PostMaster(
            post_name=post_name,
            post_code=f"P{next(_post_codes):04d}",
            component_id=masters["components"][component].id,
            district_id=masters["districts"][district].id,
            min_age=min_age,
            max_age=max_age,
            min_education_level_id=masters["levels"][min_level].id if min_level else None,
            max_education_level_id=masters["levels"][max_level].id if max_level else None,
            min_experience_months=min_experience_months,
            total_positions=total_positions,
            filled_positions=0,
            closing_date=closing_date,
            **extra,
        )
        db.add(post)
        db.commit()
        return post
    return _make


@pytest.fixture
def make_applicant(db, masters):
    """Applicant with a complete profile unless told otherwise."""
    def _make(dob=date(1995, 1, 15), level="GRAD", percentage=72.5, district=0, has_experience=False,
              upload_docs=("ID_PROOF",), is_domicile=False):
        applicant = ApplicantMaster(email=f"applicant{next(_emails)}@example.com", mobile_no="9800000000")
        db.add(applicant)
        db.flush()

        district_id = masters["districts"][district].id
        db.add(ApplicantPersonal(
            applicant_id=applicant.id, full_name="Asha Patil", dob=dob, gender="F", category="GEN",
            aadhaar_no="123412341234", is_domicile=is_domicile, has_experience=has_experience,
        ))
        db.add(ApplicantAddress(
            applicant_id=applicant.id, address_line="12 MG Road", district_id=district_id,
            permanent_district_id=district_id, pincode="411001",
        ))
        if level:
            db.add(ApplicantEducation(
                applicant_id=applicant.id, education_level_id=masters["levels"][level].id,
                passing_year=2016, percentage=percentage,
            ))
        for code in upload_docs:
            doc_type = masters["docs"][code]
            db.add(ApplicantDocument(
                applicant_id=applicant.id, doc_type_id=doc_type.id, doc_type=code,
                file_path=f"uploads/{applicant.id}/{code.lower()}.pdf", mime_type="application/pdf",
                file_size=1024,
            ))
        db.commit()
        return applicant
    return _make


@pytest.fixture
def add_application(db):
    """Insert an application row directly, bypassing the submission flow."""
    def _add(applicant, post, status="ELIGIBLE", **extra):
        application = Application(
            applicant_id=applicant.id,
            post_id=post.id,
            district_id=post.district_id,
            status=status,
            is_locked=status != "DRAFT",
            system_eligibility=status not in ("DRAFT", "NOT_ELIGIBLE"),
            **extra,
        )
        db.add(application)
        db.commit()
        return application
    return _add


@pytest.fixture
def require_document(db):
    def _require(post, doc_type):
        db.add(PostDocumentRequirement(post_id=post.id, doc_type_id=doc_type.id, requirement_type="M",
                                       mandatory_at_application=True))
        db.commit()
    return _require


@pytest.fixture
def client(db, services):
    from portal.main import app

    def override_get_db():
        yield db

    app.dependency_overrides[get_db] = override_get_db
    app.dependency_overrides[get_services] = lambda: services
    try:
        yield TestClient(app)
    finally:
        app.dependency_overrides.clear()


def auth_headers(user_id, role):
    token = create_access_token({"sub": user_id, "role": role})
    return {"Authorization": f"Bearer {token}"}
