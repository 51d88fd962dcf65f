from enum import Enum

from fastapi import HTTPException
from starlette import status


class ErrorCode(Enum):
    """Код доменной ошибки: HTTP-статус и сообщение для клиента."""

    EMAIL_NOT_FOUND = (status.HTTP_404_NOT_FOUND, "Пользователь с таким email не найден")
    USER_NOT_FOUND = (status.HTTP_404_NOT_FOUND, "Пользователь не найден")
    MATCHING_NOT_FOUND = (status.HTTP_404_NOT_FOUND, "Матч не найден")
    APPLY_NOT_FOUND = (status.HTTP_404_NOT_FOUND, "Заявка не найдена")
    LAT_AND_LON_NOT_FOUND = (status.HTTP_404_NOT_FOUND, "Не удалось определить координаты по адресу")

    PERMISSION_DENIED_TO_EDIT_AND_DELETE_MATCHING = (
        status.HTTP_403_FORBIDDEN,
        "Изменять и удалять матч может только организатор",
    )
    PERMISSION_DENIED_TO_ACCEPT_APPLY = (
        status.HTTP_403_FORBIDDEN,
        "Принимать заявки может только организатор",
    )
    PERMISSION_DENIED_TO_CANCEL_APPLY = (
        status.HTTP_403_FORBIDDEN,
        "Отменить заявку может только её автор",
    )

    ALREADY_EXISTED_APPLY = (status.HTTP_400_BAD_REQUEST, "Вы уже подали заявку на этот матч")
    CLOSED_MATCHING = (status.HTTP_400_BAD_REQUEST, "Набор в этот матч уже закрыт")
    RECRUIT_NUM_EXCEEDED = (status.HTTP_400_BAD_REQUEST, "Число участников превышает вместимость матча")
    APPLY_NOT_IN_MATCHING = (status.HTTP_400_BAD_REQUEST, "Заявка не относится к этому матчу")
    ORGANIZER_APPLY_IMMUTABLE = (status.HTTP_400_BAD_REQUEST, "Место организатора нельзя изменить")
    INVALID_STATUS_TRANSITION = (status.HTTP_409_CONFLICT, "Недопустимая смена статуса")

    @property
    def status_code(self) -> int:
        return self.value[0]

    @property
    def message(self) -> str:
        return self.value[1]


class MatchingAppException(HTTPException):
    def __init__(self, error_code: ErrorCode):
        super().__init__(status_code=error_code.status_code, detail=error_code.message)
        self.error_code = error_code

    def __repr__(self) -> str:
        return f"<MatchingAppException {self.error_code.name}>"
