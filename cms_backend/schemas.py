"""
Pydantic schemas for the content backend.
"""

from __future__ import annotations

from typing import Any, Optional

from pydantic import BaseModel, ConfigDict, Field


class UpdateSectionRequest(BaseModel):
    # Sections are conventionally {"enabled": bool, "data": ...} but are stored as sent.
    section_key: Optional[str] = Field(default=None, alias="sectionKey")
    section_data: Any = Field(default=None, alias="sectionData")


class SendEmailRequest(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    subject: Optional[str] = None
    to: Optional[str] = None
    from_: Optional[str] = Field(default=None, alias="from")
    text: Optional[str] = None
    html: Optional[str] = None
    form_name: Optional[str] = Field(default=None, alias="formName")
