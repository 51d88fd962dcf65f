import datetime as dt
from typing import List, Optional

from pydantic import BaseModel, Field, model_validator

from models.matching import AgeGroup, MatchingType, Ntrp, RecruitStatus


class MatchingDetailRequest(BaseModel):
    title: str = Field(..., max_length=100, description="Название матча")
    content: Optional[str] = Field(None, description="Описание")
    location: str = Field(..., max_length=255, description="Адрес корта (свободный текст)")
    date: dt.date = Field(..., description="Дата матча (YYYY-MM-DD)")
    start_time: dt.time = Field(..., description="Время начала")
    end_time: dt.time = Field(..., description="Время окончания")
    recruit_due_date_time: dt.datetime = Field(..., description="Окончание набора участников")
    recruit_num: int = Field(..., ge=2, le=50, description="Вместимость с учётом организатора")
    cost: int = Field(0, ge=0, description="Стоимость участия")
    is_reserved: bool = Field(False, description="Корт уже забронирован")
    ntrp: Optional[Ntrp] = Field(None, description="Уровень игры")
    age_group: Optional[AgeGroup] = Field(None, description="Возрастная группа")
    matching_type: MatchingType = Field(..., description="Тип матча")

    @model_validator(mode="after")
    def check_schedule(self):
        if self.end_time <= self.start_time:
            raise ValueError("end_time must be after start_time")
        if self.recruit_due_date_time > dt.datetime.combine(self.date, self.start_time):
            raise ValueError("recruit_due_date_time must not be after the match start")
        return self


class FilterRequest(BaseModel):
    date: Optional[dt.date] = Field(None, description="Дата матча")
    regions: List[str] = Field([], description="Префиксы адреса (регионы)")
    matching_types: List[MatchingType] = Field([], description="Типы матча")
    age_groups: List[AgeGroup] = Field([], description="Возрастные группы")
    ntrps: List[Ntrp] = Field([], description="Уровни игры")

    def is_empty(self) -> bool:
        return (
            self.date is None
            and not self.regions
            and not self.matching_types
            and not self.age_groups
            and not self.ntrps
        )


class MatchingPreview(BaseModel):
    id: int
    title: str
    location: str
    lat: float
    lon: float
    date: dt.date
    start_time: dt.time
    end_time: dt.time
    recruit_due_date_time: dt.datetime
    recruit_num: int
    accepted_num: int
    recruit_status: RecruitStatus
    matching_type: MatchingType
    ntrp: Optional[Ntrp] = None
    age_group: Optional[AgeGroup] = None

    class Config:
        from_attributes = True


class MatchingDetail(MatchingPreview):
    content: Optional[str] = None
    cost: int
    is_reserved: bool
    organizer_id: int = Field(..., description="ID организатора")
    organizer_nickname: str = Field(..., description="Никнейм организатора")
    created_at: Optional[dt.datetime] = None

    class Config:
        from_attributes = True
