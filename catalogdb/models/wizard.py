"""
Wizard Models
Guided selection wizards and their steps.
"""

from datetime import datetime
from typing import List, Optional
from uuid import UUID

from pydantic import BaseModel, Field

from .common import FilterSpec


class Wizard(BaseModel):
    id: UUID
    name: str
    description: str = ""
    event_kind_id: Optional[UUID] = None
    event_kind: Optional[str] = Field(None, description="Joined event kind name")
    is_general: bool = False
    enabled: bool = True
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None
    search_rank: Optional[float] = None


class WizardStep(BaseModel):
    id: UUID
    wizard_id: UUID
    name: str
    description: str = ""
    required: bool = False
    multi_select: bool = False
    min_selected: int = 0
    max_selected: int = 0
    step_order: int = 0
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None


class WizardFilter(FilterSpec):
    event_kind: Optional[str] = Field(None, description="Event kind name")
    enabled: Optional[bool] = None


class WizardStepFilter(FilterSpec):
    wizard_id: Optional[UUID] = None
    required: Optional[bool] = None
    categories: List[UUID] = Field(default_factory=list, description="Steps offering any of these")
