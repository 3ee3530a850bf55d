from typing import Optional

from pydantic import BaseModel, Field


class DeviceRegister(BaseModel):

    user: str
    token: str = Field(min_length=1)
    device: Optional[str] = None
