from datetime import datetime
from typing import List

from pydantic import BaseModel, ConfigDict


class SubsidiaryServiceResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    subsidiary_id: int
    service_id: int
    is_active: bool
    created_at: datetime


class ServiceLinkRequest(BaseModel):
    service_id: int


class ServiceSyncRequest(BaseModel):
    service_ids: List[int]


class ServiceSyncResponse(BaseModel):
    subsidiary_id: int
    service_ids: List[int]
