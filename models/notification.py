# models/notification.py
from enum import Enum as PyEnum

from sqlalchemy import Column, BigInteger, DateTime, Enum, ForeignKey, String
from sqlalchemy.sql import func

from .base import Base


class NotificationType(str, PyEnum):
    REQUEST_APPLY = "REQUEST_APPLY"
    ACCEPT_APPLY = "ACCEPT_APPLY"
    MODIFY_MATCHING = "MODIFY_MATCHING"
    DELETE_MATCHING = "DELETE_MATCHING"
    MATCHING_CLOSED = "MATCHING_CLOSED"
    MATCHING_FAILED = "MATCHING_FAILED"
    MATCHING_FINISHED = "MATCHING_FINISHED"
    WEATHER_ISSUE = "WEATHER_ISSUE"
    WEATHER_NICE = "WEATHER_NICE"

    @property
    def message(self) -> str:
        return NOTIFICATION_MESSAGES[self]


NOTIFICATION_MESSAGES = {
    NotificationType.REQUEST_APPLY: "Новая заявка на участие в вашем матче",
    NotificationType.ACCEPT_APPLY: "Ваша заявка принята 🎾",
    NotificationType.MODIFY_MATCHING: "Организатор изменил матч. Подтвердите участие заново",
    NotificationType.DELETE_MATCHING: "Организатор удалил матч",
    NotificationType.MATCHING_CLOSED: "Набор завершён, матч состоится ✅",
    NotificationType.MATCHING_FAILED: "Набор не состоялся, матч отменён",
    NotificationType.MATCHING_FINISHED: "Матч завершён. Спасибо за игру!",
    NotificationType.WEATHER_ISSUE: "Из-за погоды матч отменён",
    NotificationType.WEATHER_NICE: "Сегодня хорошая погода для матча ☀️",
}


class Notification(Base):
    __tablename__ = "notifications"

    id = Column(BigInteger, primary_key=True, index=True)
    site_user_id = Column(BigInteger, ForeignKey("site_users.id", ondelete="CASCADE"), nullable=False, index=True)
    matching_id = Column(BigInteger, ForeignKey("matchings.id", ondelete="SET NULL"), nullable=True)
    notification_type = Column(Enum(NotificationType, native_enum=False, length=32), nullable=False)
    content = Column(String(500), nullable=False)
    created_at = Column(DateTime, server_default=func.now(), nullable=False, index=True)

    def __repr__(self) -> str:
        return f"<Notification {self.notification_type} user={self.site_user_id}>"
