# models/matching.py
from enum import Enum as PyEnum

from sqlalchemy import (
    Boolean, Column, BigInteger, Date, DateTime, Enum, Float, ForeignKey, Integer, String, Text, Time,
)
from sqlalchemy.orm import relationship
from sqlalchemy.sql import func

from .base import Base


class RecruitStatus(str, PyEnum):
    OPEN = "OPEN"
    FULL = "FULL"
    CONFIRMED = "CONFIRMED"
    FAILED = "FAILED"
    WEATHER_ISSUE = "WEATHER_ISSUE"
    FINISHED = "FINISHED"


class MatchingType(str, PyEnum):
    SINGLE = "SINGLE"
    DOUBLE = "DOUBLE"
    MIXED_DOUBLE = "MIXED_DOUBLE"
    OTHER = "OTHER"


class AgeGroup(str, PyEnum):
    TWENTIES = "TWENTIES"
    THIRTIES = "THIRTIES"
    FORTIES = "FORTIES"
    SENIOR = "SENIOR"


class Ntrp(str, PyEnum):
    BEGINNER = "BEGINNER"
    INTERMEDIATE = "INTERMEDIATE"
    ADVANCED = "ADVANCED"
    PRO = "PRO"


class Matching(Base):
    __tablename__ = "matchings"

    id = Column(BigInteger, primary_key=True, index=True)
    site_user_id = Column(BigInteger, ForeignKey("site_users.id", ondelete="CASCADE"), nullable=False)

    title = Column(String(100), nullable=False)
    content = Column(Text, nullable=True)
    location = Column(String(255), nullable=False)
    lat = Column(Float, nullable=False)
    lon = Column(Float, nullable=False)

    date = Column(Date, nullable=False, index=True)
    start_time = Column(Time, nullable=False)
    end_time = Column(Time, nullable=False)
    recruit_due_date_time = Column(DateTime, nullable=False, index=True)

    recruit_num = Column(Integer, nullable=False)
    # Место организатора учитывается с момента создания
    accepted_num = Column(Integer, nullable=False, default=1)
    cost = Column(Integer, nullable=False, default=0)
    is_reserved = Column(Boolean, nullable=False, default=False)
    ntrp = Column(Enum(Ntrp, native_enum=False, length=20), nullable=True)
    age_group = Column(Enum(AgeGroup, native_enum=False, length=20), nullable=True)
    matching_type = Column(Enum(MatchingType, native_enum=False, length=20), nullable=False)
    recruit_status = Column(
        Enum(RecruitStatus, native_enum=False, length=20),
        nullable=False,
        default=RecruitStatus.OPEN,
        index=True,
    )

    created_at = Column(DateTime, server_default=func.now(), nullable=False)

    site_user = relationship("SiteUser", lazy="joined", innerjoin=True)

    def __repr__(self) -> str:
        return f"<Matching {self.id} {self.recruit_status} {self.accepted_num}/{self.recruit_num}>"
