"""Static rubric definitions for the Best Presenter and Best Thesis categories.

Both rubrics are immutable at runtime. Each criterion carries a point weight and
the sum of the weights is the rubric's maximum score (100 for both). The
``levels`` are display metadata for the grading sheet; aggregation only reads
``id`` and ``weight``.
"""

from __future__ import annotations

import math
from numbers import Real
from typing import Dict, Literal, Mapping, Tuple

from pydantic import BaseModel, ConfigDict, Field

from .errors import IncompleteRubricError, InvalidScoreError

RubricCategory = Literal["presenter", "thesis"]
RubricScore = Dict[str, float]


class RubricLevel(BaseModel):
    model_config = ConfigDict(frozen=True)

    points: str
    description: str
    score: int


class RubricItem(BaseModel):
    model_config = ConfigDict(frozen=True)

    id: str
    name: str
    weight: int = Field(gt=0)
    description: str = ""
    levels: Tuple[RubricLevel, ...] = ()


Rubric = Tuple[RubricItem, ...]


def _levels(*rows: Tuple[str, str, int]) -> Tuple[RubricLevel, ...]:
    return tuple(RubricLevel(points=points, description=description, score=score) for points, description, score in rows)


PRESENTER_RUBRIC: Rubric = (
    RubricItem(
        id="preparedness",
        name="Preparedness",
        weight=40,
        description="Student is completely prepared and uses language easy to understand.",
        levels=_levels(
            ("35-40", "Excellent: Fully prepared, exceptionally clear.", 40),
            ("30-34", "Very Good: Well-prepared, very clear.", 34),
            ("25-29", "Good: Prepared, mostly clear.", 29),
            ("20-24", "Fair: Somewhat prepared, needs more clarity.", 24),
            ("<20", "Poor: Unprepared and unclear.", 19),
        ),
    ),
    RubricItem(
        id="speaks_clearly",
        name="Speaks Clearly",
        weight=30,
        description="Speaks clearly and distinctly all the time and mispronounces no words.",
        levels=_levels(
            ("26-30", "Excellent: Flawless pronunciation and clarity.", 30),
            ("21-25", "Very Good: Clear speech with minor mispronunciations.", 25),
            ("16-20", "Good: Generally clear but some words are unclear.", 20),
            ("11-15", "Fair: Often mumbles or mispronounces words.", 15),
            ("<11", "Poor: Speech is very difficult to understand.", 10),
        ),
    ),
    RubricItem(
        id="audience_rapport",
        name="Audience Rapport",
        weight=20,
        description="Looks relaxed and confident. Establishes rapport with the audience during demonstration.",
        levels=_levels(
            ("18-20", "Excellent: Strong connection with audience, very confident.", 20),
            ("15-17", "Very Good: Good rapport, confident.", 17),
            ("12-14", "Good: Makes some connection, appears somewhat confident.", 14),
            ("9-11", "Fair: Little connection, appears nervous.", 11),
            ("<9", "Poor: No rapport, very nervous.", 8),
        ),
    ),
    RubricItem(
        id="stays_on_topic",
        name="Stays on Topic",
        weight=10,
        description="Stays on topic all of the time.",
        levels=_levels(
            ("9-10", "Excellent: Always focused on the topic.", 10),
            ("7-8", "Very Good: Mostly stays on topic.", 8),
            ("5-6", "Good: Some deviation from the topic.", 6),
            ("3-4", "Fair: Often strays from the topic.", 4),
            ("<3", "Poor: Does not address the topic.", 2),
        ),
    ),
)

THESIS_RUBRIC: Rubric = (
    RubricItem(
        id="organization",
        name="Organization",
        weight=35,
        description="Information is very organized with well-constructed paragraphs and discussions.",
        levels=_levels(
            ("30-35", "Excellent: Superbly organized, flows logically.", 35),
            ("25-29", "Very Good: Well-organized, easy to follow.", 29),
            ("20-24", "Good: Organized, but could be clearer.", 24),
            ("15-19", "Fair: Some organization is apparent, but confusing.", 19),
            ("<15", "Poor: Disorganized and hard to follow.", 14),
        ),
    ),
    RubricItem(
        id="quality_of_info",
        name="Quality of Information",
        weight=30,
        description="Information clearly relates to the main topic. It includes several supporting details and/or examples.",
        levels=_levels(
            ("26-30", "Excellent: Information is rich, detailed, and highly relevant.", 30),
            ("21-25", "Very Good: Information is relevant with good supporting details.", 25),
            ("16-20", "Good: Information is relevant but lacks detail.", 20),
            ("11-15", "Fair: Information is somewhat relevant, but superficial.", 15),
            ("<11", "Poor: Information is irrelevant or inaccurate.", 10),
        ),
    ),
    RubricItem(
        id="diagrams",
        name="Diagrams & Illustration",
        weight=20,
        description="Diagrams and illustrations are neat, accurate and add to the reader's understanding of the topic.",
        levels=_levels(
            ("18-20", "Excellent: Illustrations greatly enhance understanding.", 20),
            ("15-17", "Very Good: Illustrations are accurate and helpful.", 17),
            ("12-14", "Good: Illustrations are present and mostly accurate.", 14),
            ("9-11", "Fair: Illustrations are present but not clear or helpful.", 11),
            ("<9", "Poor: Illustrations are missing or inaccurate.", 8),
        ),
    ),
    RubricItem(
        id="analysis",
        name="Analysis",
        weight=15,
        description="The relationship between the variables is discussed and trends/patterns logically analyzed. Predictions are made.",
        levels=_levels(
            ("13-15", "Excellent: Insightful analysis and logical predictions.", 15),
            ("10-12", "Very Good: Good analysis of trends.", 12),
            ("7-9", "Good: Basic analysis is present.", 9),
            ("4-6", "Fair: Analysis is weak or flawed.", 6),
            ("<4", "Poor: No analysis is present.", 3),
        ),
    ),
)

RUBRICS: Dict[RubricCategory, Rubric] = {
    "presenter": PRESENTER_RUBRIC,
    "thesis": THESIS_RUBRIC,
}


def max_score(rubric: Rubric) -> int:
    return sum(item.weight for item in rubric)


def validate_scores(rubric: Rubric, scores: Mapping[str, object], category: str) -> RubricScore:
    """Check a submitted score map against ``rubric`` and return a clean copy.

    Every criterion must be present with a number between 0 and its weight;
    criteria the rubric does not define are rejected.
    """
    known = {item.id for item in rubric}
    unknown = sorted(key for key in scores if key not in known)
    if unknown:
        raise InvalidScoreError(category, f"unknown criteria: {', '.join(unknown)}")

    missing = [item.id for item in rubric if scores.get(item.id) is None]
    if missing:
        raise IncompleteRubricError(category, missing)

    cleaned: RubricScore = {}
    for item in rubric:
        value = scores[item.id]
        if isinstance(value, bool) or not isinstance(value, Real):
            raise InvalidScoreError(category, f"score for '{item.id}' must be a number")
        number = float(value)
        if not math.isfinite(number):
            raise InvalidScoreError(category, f"score for '{item.id}' must be a finite number")
        if number < 0 or number > item.weight:
            raise InvalidScoreError(category, f"score for '{item.id}' must be between 0 and {item.weight}")
        cleaned[item.id] = number
    return cleaned


__all__ = [
    "PRESENTER_RUBRIC",
    "RUBRICS",
    "Rubric",
    "RubricCategory",
    "RubricItem",
    "RubricLevel",
    "RubricScore",
    "THESIS_RUBRIC",
    "max_score",
    "validate_scores",
]
