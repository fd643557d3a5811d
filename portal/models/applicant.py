# portal/models/applicant.py
from sqlalchemy import Column, String, Integer, Boolean, Date, DateTime, Text, Numeric, ForeignKey
from sqlalchemy.sql import func
from sqlalchemy.orm import relationship
from portal.database import Base


class ApplicantMaster(Base):
    __tablename__ = "applicant_master"

    id = Column(Integer, primary_key=True, autoincrement=True)
    email = Column(String(255), unique=True, nullable=False)
    mobile_no = Column(String(20), nullable=True)
    is_active = Column(Boolean, default=True, nullable=False)
    is_deleted = Column(Boolean, default=False, nullable=False)
    created_at = Column(DateTime(timezone=True), server_default=func.now())
    updated_at = Column(DateTime(timezone=True), onupdate=func.now())

    # Relationships
    personal = relationship("ApplicantPersonal", uselist=False, back_populates="applicant", cascade="all, delete")
    address = relationship("ApplicantAddress", uselist=False, back_populates="applicant", cascade="all, delete")
    education = relationship("ApplicantEducation", back_populates="applicant", cascade="all, delete")
    experience = relationship("ApplicantExperience", back_populates="applicant", cascade="all, delete")
    documents = relationship("ApplicantDocument", back_populates="applicant", cascade="all, delete")


class ApplicantPersonal(Base):
    __tablename__ = "applicant_personal"

    id = Column(Integer, primary_key=True, autoincrement=True)
    applicant_id = Column(Integer, ForeignKey("applicant_master.id"), unique=True, nullable=False)
    full_name = Column(String(150), nullable=True)
    dob = Column(Date, nullable=True)
    gender = Column(String(20), nullable=True)
    category = Column(String(30), nullable=True)
    aadhaar_no = Column(String(20), nullable=True)
    is_domicile = Column(Boolean, default=False, nullable=False)
    has_experience = Column(Boolean, nullable=True)  # None until the applicant answers

    applicant = relationship("ApplicantMaster", back_populates="personal")


class ApplicantAddress(Base):
    __tablename__ = "applicant_address"

    id = Column(Integer, primary_key=True, autoincrement=True)
    applicant_id = Column(Integer, ForeignKey("applicant_master.id"), unique=True, nullable=False)
    address_line = Column(Text, nullable=True)
    district_id = Column(Integer, ForeignKey("district_master.id"), nullable=True)
    permanent_district_id = Column(Integer, ForeignKey("district_master.id"), nullable=True)
    pincode = Column(String(10), nullable=True)

    applicant = relationship("ApplicantMaster", back_populates="address")


class ApplicantEducation(Base):
    __tablename__ = "applicant_education"

    id = Column(Integer, primary_key=True, autoincrement=True)
    applicant_id = Column(Integer, ForeignKey("applicant_master.id"), nullable=False, index=True)
    education_level_id = Column(Integer, ForeignKey("education_levels.id"), nullable=True)
    passing_year = Column(Integer, nullable=True)
    percentage = Column(Numeric(5, 2), nullable=True)
    certificate_path = Column(String(255), nullable=True)
    is_deleted = Column(Boolean, default=False, nullable=False)

    applicant = relationship("ApplicantMaster", back_populates="education")
    education_level = relationship("EducationLevel")


class ApplicantExperience(Base):
    __tablename__ = "applicant_experience"

    id = Column(Integer, primary_key=True, autoincrement=True)
    applicant_id = Column(Integer, ForeignKey("applicant_master.id"), nullable=False, index=True)
    domain_id = Column(Integer, ForeignKey("experience_domains.id"), nullable=True)
    organization_name = Column(String(200), nullable=True)
    start_date = Column(Date, nullable=True)
    end_date = Column(Date, nullable=True)
    is_current = Column(Boolean, default=False, nullable=False)
    total_months = Column(Integer, nullable=True)
    certificate_path = Column(String(255), nullable=True)
    is_deleted = Column(Boolean, default=False, nullable=False)

    applicant = relationship("ApplicantMaster", back_populates="experience")


class ApplicantDocument(Base):
    __tablename__ = "applicant_documents"

    id = Column(Integer, primary_key=True, autoincrement=True)
    applicant_id = Column(Integer, ForeignKey("applicant_master.id"), nullable=False, index=True)
    doc_type_id = Column(Integer, ForeignKey("document_types.id"), nullable=True)
    doc_type = Column(String(50), nullable=True)  # document type code
    file_path = Column(String(255), nullable=False)  # relative path from the upload store
    mime_type = Column(String(100), nullable=True)
    file_size = Column(Integer, nullable=True)
    is_deleted = Column(Boolean, default=False, nullable=False)
    uploaded_at = Column(DateTime(timezone=True), server_default=func.now())

    applicant = relationship("ApplicantMaster", back_populates="documents")
    document_type = relationship("DocumentType")

    def to_dict(self):
        return {
            "document_id": self.id,
            "doc_type_id": self.doc_type_id,
            "doc_type": self.doc_type,
            "file_path": self.file_path,
            "mime_type": self.mime_type,
            "file_size": self.file_size,
            "uploaded_at": self.uploaded_at.isoformat() if self.uploaded_at else None,
        }


class ApplicantAcknowledgement(Base):
    __tablename__ = "applicant_acknowledgements"

    id = Column(Integer, primary_key=True, autoincrement=True)
    applicant_id = Column(Integer, ForeignKey("applicant_master.id"), nullable=False, index=True)
    application_id = Column(Integer, ForeignKey("applications.id"), nullable=True)
    action_type = Column(String(50), nullable=False)
    checkbox_code = Column(String(50), nullable=False)
    accepted_at = Column(DateTime(timezone=True), server_default=func.now())
    ip_address = Column(String(64), nullable=True)
    user_agent = Column(Text, nullable=True)
    place = Column(String(150), nullable=True)
