from pathlib import PurePosixPath, PureWindowsPath
from typing import List, Literal, Optional

from pydantic import BaseModel, Field, field_validator


class Attachment(BaseModel):

    type: str
    path: str

    @field_validator("path")
    @classmethod
    def validate_path(cls, v: str) -> str:
        """Attachment paths are relative to the attachments directory."""
        for pure in (PurePosixPath(v), PureWindowsPath(v)):
            if not v or pure.is_absolute() or pure.anchor or ".." in pure.parts:
                raise ValueError("Please enter valid attachment path!")
        return v


class MessageSend(BaseModel):

    user_from: str
    user_to: str
    username: Optional[str] = None
    text: Optional[str] = Field(default=None, max_length=5000)
    attachments: List[Attachment] = Field(default_factory=list)


class MessageUpdate(BaseModel):

    text: Optional[str] = None
    status: Optional[Literal["sent", "read"]] = None


class MessagesRead(BaseModel):

    conversation: str
    user_to: str


class ConversationStatusUpdate(BaseModel):

    status: Literal["accepted", "rejected"]
