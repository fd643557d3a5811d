# portal/models/admin.py
from sqlalchemy import Column, String, Integer, Boolean
from portal.database import Base


class AdminUser(Base):
    __tablename__ = "admin_users"

    id = Column(Integer, primary_key=True, autoincrement=True)
    full_name = Column(String(150), nullable=False)
    email = Column(String(255), unique=True, nullable=False)
    role = Column(String(50), default="REVIEWER", nullable=False)
    is_active = Column(Boolean, default=True, nullable=False)
