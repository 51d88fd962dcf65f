# models/apply.py
from enum import Enum as PyEnum

from sqlalchemy import Column, BigInteger, DateTime, Enum, ForeignKey
from sqlalchemy.orm import relationship
from sqlalchemy.sql import func

from .base import Base


class ApplyStatus(str, PyEnum):
    PENDING = "PENDING"
    ACCEPTED = "ACCEPTED"
    CANCELED = "CANCELED"


class Apply(Base):
    __tablename__ = "applies"

    id = Column(BigInteger, primary_key=True, index=True)
    matching_id = Column(BigInteger, ForeignKey("matchings.id", ondelete="CASCADE"), nullable=False, index=True)
    site_user_id = Column(BigInteger, ForeignKey("site_users.id", ondelete="CASCADE"), nullable=False, index=True)
    apply_status = Column(
        Enum(ApplyStatus, native_enum=False, length=20),
        nullable=False,
        default=ApplyStatus.PENDING,
    )
    created_at = Column(DateTime, server_default=func.now(), nullable=False)

    site_user = relationship("SiteUser", lazy="joined", innerjoin=True)

    def __repr__(self) -> str:
        return f"<Apply {self.id} user={self.site_user_id} matching={self.matching_id} {self.apply_status}>"
