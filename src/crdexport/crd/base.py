"""Base classes for pydantic CRD models."""

from datetime import datetime
from typing import List, Optional

from pydantic import BaseModel, ConfigDict, Field


class CRDCondition(BaseModel):
    """Standard Kubernetes condition."""

    type: str
    status: str  # True, False, Unknown
    reason: Optional[str] = None
    message: Optional[str] = None
    lastTransitionTime: Optional[datetime] = None


class CRDStatus(BaseModel):
    """Base class for all CRD status objects."""

    model_config = ConfigDict(extra="allow")

    conditions: List[CRDCondition] = Field(default_factory=list)
    observedGeneration: Optional[int] = None


class CRDSpec(BaseModel):
    """Base class for all CRD spec objects."""

    model_config = ConfigDict(extra="forbid", validate_assignment=True)
