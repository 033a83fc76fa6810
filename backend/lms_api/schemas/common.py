"""
Shared response schemas.
"""

from typing import Optional

from pydantic import BaseModel, ConfigDict


class MessageResponse(BaseModel):
    success: bool = True
    message: str


class MediaReferenceOut(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    public_id: Optional[str] = None
    secure_url: Optional[str] = None
