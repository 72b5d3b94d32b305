from sqlmodel import SQLModel, Field
from sqlalchemy import UniqueConstraint
from typing import Optional, Union
from pydantic import AliasChoices, BaseModel
from pydantic import Field as BodyField
from datetime import datetime, timezone


def _now() -> datetime:
    return datetime.now(timezone.utc)


class Case(SQLModel, table=True):
    id: Optional[int] = Field(default=None, primary_key=True)
    lawyerA_text: str = ""
    lawyerB_text: str = ""
    file_text: str = ""
    created_at: datetime = Field(default_factory=_now)


class Argument(SQLModel, table=True):
    __table_args__ = (UniqueConstraint("case_id", "round", name="uq_argument_case_round"),)

    id: Optional[int] = Field(default=None, primary_key=True)
    case_id: int = Field(index=True)
    side: str
    text: str
    round: int
    created_at: datetime = Field(default_factory=_now)


class Verdict(SQLModel, table=True):
    id: Optional[int] = Field(default=None, primary_key=True)
    case_id: int = Field(index=True)
    text: str
    round: Optional[int] = None
    confidence: Optional[int] = None
    created_at: datetime = Field(default_factory=_now)


class Document(SQLModel, table=True):
    id: Optional[int] = Field(default=None, primary_key=True)
    title: str = ""
    text: str
    created_at: datetime = Field(default_factory=_now)


# ---- request bodies ----
# Required fields are Optional here so the handlers can answer 400 with a
# message naming the missing fields.

class UploadRequest(BaseModel):
    text: Optional[str] = None


class ArgumentRequest(BaseModel):
    case_id: Optional[Union[int, str]] = BodyField(default=None, validation_alias=AliasChoices("caseId", "case_id"))
    side: Optional[str] = None
    text: Optional[str] = None


class VerdictRequest(BaseModel):
    case_id: Optional[Union[int, str]] = BodyField(default=None, validation_alias=AliasChoices("caseId", "case_id"))


class DocumentCreate(BaseModel):
    title: Optional[str] = ""
    text: Optional[str] = None
