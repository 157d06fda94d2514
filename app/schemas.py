"""
MedScope.ai - Request Bodies
"""
from typing import Annotated, List, Literal, Optional

from pydantic import BaseModel, Field


class ChatRequest(BaseModel):
    question: str
    session_id: Optional[str] = None
    analysis: Optional[str] = None


class SymptomRequest(BaseModel):
    symptoms: str


class PHQ9Request(BaseModel):
    answers: List[Annotated[int, Field(ge=0, le=3)]] = Field(..., min_length=9, max_length=9)


class VitalsRequest(BaseModel):
    systolic: float = Field(..., ge=40, le=300)
    diastolic: float = Field(..., ge=20, le=200)
    heart_rate: float = Field(..., ge=20, le=250)


class HealthRequest(BaseModel):
    height_cm: float = Field(..., ge=100, le=250)
    weight_kg: float = Field(..., ge=30, le=300)
    age: Optional[int] = Field(None, ge=1, le=120)
    activity_level: Literal["sedentary", "light", "moderate", "very"] = "moderate"
    goal: Literal["lose", "maintain", "gain"] = "maintain"
