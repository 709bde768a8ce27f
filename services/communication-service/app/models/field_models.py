# services/communication-service/app/models/field_models.py
from __future__ import annotations

from enum import Enum
from typing import Optional

from pydantic import BaseModel, ConfigDict, Field

from app.models.template_models import new_object_id


class FieldDataType(str, Enum):
    STRING = "string"
    DATE = "date"
    NUMBER = "number"

    @classmethod
    def coerce(cls, value: Optional[str]) -> "FieldDataType":
        try:
            return cls(value)
        except ValueError:
            return cls.STRING


class BookmarkField(BaseModel):
    """
    Field catalog entry: which placeholder key a template may use and where
    its value comes from (`<source>.<dotted.path>`, source = profile |
    subscription | account).
    """
    model_config = ConfigDict(extra="ignore", use_enum_values=True)

    id: str = Field(default_factory=new_object_id)
    key: str
    label: str
    source_path: str
    data_type: FieldDataType = FieldDataType.STRING


class BookmarkFieldCreate(BaseModel):
    key: str
    label: str
    source_path: str = Field(..., alias="path")
    data_type: Optional[str] = Field(default=None, alias="dataType")

    model_config = ConfigDict(populate_by_name=True)


class BookmarkFieldUpdate(BaseModel):
    key: Optional[str] = None
    label: Optional[str] = None
    source_path: Optional[str] = Field(default=None, alias="path")
    data_type: Optional[str] = Field(default=None, alias="dataType")

    model_config = ConfigDict(populate_by_name=True)


class CatalogKey(BaseModel):
    key: str
    source_path: str
    data_type: FieldDataType

    model_config = ConfigDict(use_enum_values=True)
