from typing import Literal

from pydantic import BaseModel, ConfigDict, Field


class PredictionEntry(BaseModel):
    """Single tag probability."""

    model_config = ConfigDict(populate_by_name=True)

    tag_name: str = Field(alias="tagName")
    probability: float


class TopPrediction(BaseModel):
    """The winning tag."""
    category: str
    probability: float


class ClassificationResult(BaseModel):
    """Normalized outcome of one upstream call."""
    prediction: TopPrediction
    predictions: list[PredictionEntry]


class ClassifyResponse(ClassificationResult):
    """Response schema for POST /api/classify."""
    success: Literal[True] = True


class ErrorResponse(BaseModel):
    """Envelope returned for every failure."""
    success: Literal[False] = False
    error: str
