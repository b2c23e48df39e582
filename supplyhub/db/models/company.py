from __future__ import annotations

import enum

from sqlalchemy import Enum, ForeignKey, Index, String
from sqlalchemy.orm import Mapped, mapped_column, relationship

from supplyhub.db.base import Base
from supplyhub.db.models.common import HasCreatedAt, HasId


class CompanyType(str, enum.Enum):
    BRAND = "BRAND"
    SUPPLIER = "SUPPLIER"


class Company(Base, HasId, HasCreatedAt):
    """A marketplace participant: a brand placing orders or a supplier producing them."""

    __tablename__ = "mkt_company"

    type: Mapped[CompanyType] = mapped_column(Enum(CompanyType, native_enum=False, length=16), nullable=False, index=True)
    trade_name: Mapped[str] = mapped_column(String(256), nullable=False, default="")

    members = relationship("CompanyUser", back_populates="company", cascade="all, delete-orphan")


class CompanyUser(Base, HasId, HasCreatedAt):
    # Identity subjects are owned by the auth collaborator; user_id is the JWT "sub".
    __tablename__ = "mkt_company_user"

    company_id: Mapped[str] = mapped_column(String(36), ForeignKey("mkt_company.id"), nullable=False, index=True)
    user_id: Mapped[str] = mapped_column(String(64), nullable=False, index=True)

    company = relationship("Company", back_populates="members")


Index("uq_company_user", CompanyUser.company_id, CompanyUser.user_id, unique=True)

__all__ = ["CompanyType", "Company", "CompanyUser"]
