import enum

from sqlalchemy import Column, Integer, String, Text, Boolean, Date, Numeric, ForeignKey, Enum, CheckConstraint
from sqlalchemy.orm import relationship
from database import Base
from models.audit_mixin import TimestampMixin


class GstRateType(enum.Enum):
    EXEMPT = "EXEMPT"
    ZERO = "ZERO"
    FIVE = "FIVE"
    TWELVE = "TWELVE"
    EIGHTEEN = "EIGHTEEN"
    TWENTYEIGHT = "TWENTYEIGHT"


class ServicePriceList(Base, TimestampMixin):
    __tablename__ = "service_price_list"

    id = Column(Integer, primary_key=True, index=True)
    service_name = Column(String(150), nullable=False)
    service_code = Column(String(30), nullable=False, unique=True, index=True)
    department_id = Column(Integer, ForeignKey("departments.id"), nullable=False)
    hsn_sac_code_id = Column(Integer, ForeignKey("hsn_sac_codes.id"), nullable=False)
    base_price = Column(Numeric(12, 2), nullable=False)
    gst_rate_type = Column(Enum(GstRateType), nullable=False)
    description = Column(Text, nullable=True)
    is_active = Column(Boolean, nullable=False, default=True)
    effective_from = Column(Date, nullable=False)
    effective_to = Column(Date, nullable=True)

    department = relationship("Department")
    hsn_sac_code = relationship("HsnSacCode")


class PackagePriceList(Base, TimestampMixin):
    __tablename__ = "package_price_list"

    id = Column(Integer, primary_key=True, index=True)
    package_name = Column(String(150), nullable=False)
    package_code = Column(String(30), nullable=False, unique=True, index=True)
    department_id = Column(Integer, ForeignKey("departments.id"), nullable=False)
    hsn_sac_code_id = Column(Integer, ForeignKey("hsn_sac_codes.id"), nullable=False)
    base_price = Column(Numeric(12, 2), nullable=False)
    gst_rate_type = Column(Enum(GstRateType), nullable=False)
    description = Column(Text, nullable=False)
    duration = Column(Integer, nullable=True)  # days
    is_active = Column(Boolean, nullable=False, default=True)
    effective_from = Column(Date, nullable=False)
    effective_to = Column(Date, nullable=True)

    department = relationship("Department")
    hsn_sac_code = relationship("HsnSacCode")
    package_items = relationship(
        "PackageItem",
        back_populates="package",
        cascade="all, delete-orphan",
        order_by="PackageItem.id",
    )


class PackageItem(Base):
    __tablename__ = "package_items"

    id = Column(Integer, primary_key=True, index=True)
    package_id = Column(Integer, ForeignKey("package_price_list.id", ondelete="CASCADE"), nullable=False, index=True)
    service_id = Column(Integer, ForeignKey("service_price_list.id"), nullable=False)
    quantity = Column(Numeric(10, 2), nullable=False)
    discount_percentage = Column(Numeric(5, 2), nullable=False, default=0)

    package = relationship("PackagePriceList", back_populates="package_items")
    service = relationship("ServicePriceList")

    __table_args__ = (
        CheckConstraint('quantity > 0', name='check_package_item_quantity_positive'),
        CheckConstraint('discount_percentage >= 0 AND discount_percentage <= 100', name='check_package_item_discount_range'),
    )
