"""Service layer – normalising provider replies into one result shape."""

from __future__ import annotations

import logging

from pydantic import ValidationError

from src.classify_gateway.errors import InvalidUpstreamResponse
from src.classify_gateway.schemas.classify import ClassificationResult, PredictionEntry, TopPrediction
from src.classify_gateway.schemas.upstream import (
    RawProviderResponse,
    ResponseShape,
    TagListBody,
    TagMapBody,
)

logger = logging.getLogger(__name__)


def sort_predictions(entries: list[PredictionEntry]) -> list[PredictionEntry]:
    """Order by probability, highest first; equal scores keep their input order."""
    # sorted() is stable, including with reverse=True
    return sorted(entries, key=lambda entry: entry.probability, reverse=True)


def _from_tag_map(body: TagMapBody) -> ClassificationResult:
    predictions = sort_predictions([
        PredictionEntry(tag_name=tag, probability=probability)
        for tag, probability in body.predictions.items()
    ])
    if not predictions:
        raise ValueError("no predictions returned")

    top = body.prediction
    if top is None:
        first = predictions[0]
        return ClassificationResult(
            prediction=TopPrediction(category=first.tag_name, probability=first.probability),
            predictions=predictions,
        )

    if isinstance(top, str):
        category, probability = top, None
    else:
        category, probability = top.tag_name, top.probability
    if probability is None:
        probability = body.predictions.get(category)
    if probability is None:
        raise ValueError(f"top prediction {category!r} has no probability")

    return ClassificationResult(
        prediction=TopPrediction(category=category, probability=probability),
        predictions=predictions,
    )


def _from_tag_list(body: TagListBody) -> ClassificationResult:
    predictions = sort_predictions([
        PredictionEntry(tag_name=raw.tag_name, probability=raw.probability)
        for raw in body.predictions
    ])
    if not predictions:
        raise ValueError("no predictions returned")
    first = predictions[0]
    return ClassificationResult(
        prediction=TopPrediction(category=first.tag_name, probability=first.probability),
        predictions=predictions,
    )


def normalize(raw: RawProviderResponse) -> ClassificationResult:
    """
    Convert *raw* into a ``ClassificationResult``.

    Raises ``InvalidUpstreamResponse`` when the body lacks a usable
    ``predictions`` field.  An empty result is never returned as success.
    """
    provider = raw.provider.value
    try:
        if raw.shape is ResponseShape.TAG_MAP:
            return _from_tag_map(TagMapBody.model_validate(raw.body))
        return _from_tag_list(TagListBody.model_validate(raw.body))
    except ValidationError as exc:
        logger.debug("Upstream body from %s failed validation: %s", provider, exc)
        raise InvalidUpstreamResponse(
            f"Invalid response format from {provider}",
            provider=provider,
        ) from exc
    except ValueError as exc:
        raise InvalidUpstreamResponse(
            f"Invalid response format from {provider}: {exc}",
            provider=provider,
        ) from exc
