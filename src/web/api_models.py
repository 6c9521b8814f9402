from __future__ import annotations

from typing import Dict, List, Optional

from pydantic import BaseModel, ConfigDict, Field


class PredictionResponse(BaseModel):
    label: str
    label_index: int
    confidence: float = Field(..., ge=0.0, le=1.0)
    timestamp: Optional[float] = None


class StatusResponse(BaseModel):
    """
    Detection status optimized for frontend polling.
    """
    model_config = ConfigDict(protected_namespaces=())

    model_state: str = Field(..., description="loading|ready_real|ready_simulated")
    demo_mode: bool = Field(..., description="True when running on the simulated backend")
    detecting: bool
    prediction: Optional[PredictionResponse] = None
    confidence: float = Field(0.0, description="Confidence of the current prediction, 0 if none")
    error: Optional[str] = None
    loop: Dict[str, int] = Field(default_factory=dict, description="Detection loop counters")


class LabelsResponse(BaseModel):
    labels: List[str]
