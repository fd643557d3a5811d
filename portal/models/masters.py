# portal/models/masters.py
from sqlalchemy import Column, String, Integer, Boolean, ForeignKey
from sqlalchemy.orm import relationship
from portal.database import Base


class DistrictMaster(Base):
    __tablename__ = "district_master"

    id = Column(Integer, primary_key=True, autoincrement=True)
    district_name = Column(String(100), nullable=False)
    district_code = Column(String(20), unique=True, nullable=True)
    is_active = Column(Boolean, default=True, nullable=False)


class Component(Base):
    """Organizational sub-unit (OSC) a post is listed under."""
    __tablename__ = "components"

    id = Column(Integer, primary_key=True, autoincrement=True)
    component_name = Column(String(150), nullable=False)
    component_code = Column(String(30), unique=True, nullable=True)
    is_active = Column(Boolean, default=True, nullable=False)


class DocumentType(Base):
    __tablename__ = "document_types"

    id = Column(Integer, primary_key=True, autoincrement=True)
    doc_code = Column(String(50), unique=True, nullable=False)
    doc_name = Column(String(150), nullable=False)
    is_mandatory = Column(Boolean, default=False, nullable=False)
    is_active = Column(Boolean, default=True, nullable=False)
    display_order = Column(Integer, default=0, nullable=False)

    def to_dict(self):
        return {
            "doc_type_id": self.id,
            "doc_code": self.doc_code,
            "doc_name": self.doc_name,
            "is_mandatory": self.is_mandatory,
            "display_order": self.display_order,
        }


class EducationLevel(Base):
    __tablename__ = "education_levels"

    id = Column(Integer, primary_key=True, autoincrement=True)
    level_name = Column(String(100), nullable=False)
    level_code = Column(String(30), unique=True, nullable=True)
    display_order = Column(Integer, nullable=False)  # qualification rank
    doc_type_id = Column(Integer, ForeignKey("document_types.id"), nullable=True)
    is_active = Column(Boolean, default=True, nullable=False)


class ExperienceDomain(Base):
    __tablename__ = "experience_domains"

    id = Column(Integer, primary_key=True, autoincrement=True)
    domain_name = Column(String(150), nullable=False)
    doc_type_id = Column(Integer, ForeignKey("document_types.id"), nullable=True)
    is_active = Column(Boolean, default=True, nullable=False)


class PostDocumentRequirement(Base):
    __tablename__ = "post_document_requirements"

    id = Column(Integer, primary_key=True, autoincrement=True)
    post_id = Column(Integer, ForeignKey("post_master.id"), nullable=False, index=True)
    doc_type_id = Column(Integer, ForeignKey("document_types.id"), nullable=False)
    requirement_type = Column(String(1), default="M", nullable=False)  # M = mandatory, O = optional
    mandatory_at_application = Column(Boolean, default=True, nullable=False)

    document_type = relationship("DocumentType")
