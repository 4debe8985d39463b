"""Pydantic schemas for institutions."""

from typing import Optional

from pydantic import BaseModel


class InstitutionResponse(BaseModel):
    institution_id: str
    name: Optional[str] = None
    logo: Optional[str] = None

    model_config = {"from_attributes": True}


class InstitutionRefreshResponse(BaseModel):
    updated: list[str]
    skipped: list[str]
