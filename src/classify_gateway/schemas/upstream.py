"""Raw provider response shapes, validated before normalization."""

from enum import Enum
from typing import Annotated, Any

from pydantic import AliasChoices, BaseModel, ConfigDict, Field, Strict

from src.classify_gateway.schemas.provider import ProviderId

# finite scores in [0, 1]; bools and numeric strings are rejected, ints 0 and 1 accepted
UnitFloat = Annotated[float, Strict(), Field(ge=0, le=1, allow_inf_nan=False)]
UnitInt = Annotated[int, Strict(), Field(ge=0, le=1)]
Probability = UnitFloat | UnitInt


class ResponseShape(str, Enum):
    TAG_MAP = "tag-map"    # {"predictions": {"suv": 0.9, ...}, "prediction": ...}
    TAG_LIST = "tag-list"  # {"predictions": [{"tagName": "suv", "probability": 0.9}, ...]}


class RawProviderResponse(BaseModel):
    provider: ProviderId
    shape: ResponseShape
    body: Any


class RawTagPrediction(BaseModel):
    model_config = ConfigDict(extra="ignore")

    tag_name: str = Field(alias="tagName")
    probability: Probability


class RawTopPrediction(BaseModel):
    model_config = ConfigDict(extra="ignore")

    tag_name: str = Field(validation_alias=AliasChoices("tagName", "category"))
    probability: Probability | None = None


class TagListBody(BaseModel):
    model_config = ConfigDict(extra="ignore")

    predictions: list[RawTagPrediction]


class TagMapBody(BaseModel):
    model_config = ConfigDict(extra="ignore")

    predictions: dict[str, Probability]
    prediction: RawTopPrediction | str | None = None
