"""
Pydantic schemas for the bag endpoints.
"""

from __future__ import annotations

from pydantic import BaseModel, Field

from user_info.bags import BagRecord


class BagResponse(BaseModel):
    id: str
    contents: dict = Field(default_factory=dict)
    user_id: str

    @classmethod
    def from_record(cls, record: BagRecord) -> "BagResponse":
        return cls(id=record.id, contents=record.contents, user_id=record.user_id)


class BagListResponse(BaseModel):
    bags: list[BagResponse]


class AddBagResponse(BaseModel):
    id: str
