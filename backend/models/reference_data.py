from sqlalchemy import Column, Integer, String, Boolean, Text
from database import Base
from models.audit_mixin import TimestampMixin


class Department(Base, TimestampMixin):
    __tablename__ = "departments"

    id = Column(Integer, primary_key=True, index=True)
    name = Column(String(100), nullable=False, unique=True)
    is_active = Column(Boolean, nullable=False, default=True)


class HsnSacCode(Base, TimestampMixin):
    __tablename__ = "hsn_sac_codes"

    id = Column(Integer, primary_key=True, index=True)
    code = Column(String(20), nullable=False, unique=True, index=True)
    description = Column(Text, nullable=True)
