from typing import List, Optional

from pydantic import BaseModel, Field

from models.apply import ApplyStatus


class ApplyMember(BaseModel):
    apply_id: int
    site_user_id: int
    nickname: str
    ntrp: Optional[str] = None


class ApplyRead(BaseModel):
    id: int
    matching_id: int
    site_user_id: int
    apply_status: ApplyStatus

    class Config:
        from_attributes = True


class ApplyContents(BaseModel):
    is_applied: bool = Field(..., description="Есть ли у вас действующая заявка")
    apply_num: Optional[int] = Field(None, description="Заявок в ожидании (только для организатора)")
    recruit_num: int
    accepted_num: int
    applied_members: Optional[List[ApplyMember]] = Field(
        None, description="Ожидающие участники (только для организатора)"
    )
    accepted_members: List[ApplyMember] = []


class AcceptAppliesRequest(BaseModel):
    pending_applies: List[int] = Field([], description="Заявки, которые вернуть в ожидание")
    accepted_applies: List[int] = Field([], description="Заявки, которые принять")
