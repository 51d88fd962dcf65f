# models/user.py
from enum import Enum as PyEnum

from sqlalchemy import Column, Integer, BigInteger, DateTime, String
from sqlalchemy.sql import func

from .base import Base


class PenaltyType(str, PyEnum):
    """Вид штрафа организатора и его вес в баллах."""

    MATCHING_MODIFY = "MATCHING_MODIFY"
    MATCHING_DELETE = "MATCHING_DELETE"

    @property
    def score(self) -> int:
        return PENALTY_SCORES[self]


PENALTY_SCORES = {
    PenaltyType.MATCHING_MODIFY: 1,
    PenaltyType.MATCHING_DELETE: 2,
}


class SiteUser(Base):
    __tablename__ = "site_users"

    id = Column(BigInteger, primary_key=True, index=True)
    email = Column(String(255), unique=True, nullable=False, index=True)
    nickname = Column(String(64), nullable=False)
    ntrp = Column(String(32), nullable=True)
    telegram_user_id = Column(BigInteger, unique=True, nullable=True)
    penalty_score = Column(Integer, nullable=False, default=0)

    created_at = Column(DateTime, server_default=func.now(), nullable=False)

    def penalize(self, penalty_type: PenaltyType) -> None:
        self.penalty_score = (self.penalty_score or 0) + penalty_type.score

    def __repr__(self):
        return f"<SiteUser id={self.id} email={self.email}>"
