from typing import Dict, Iterable

from complaint_priority.models.schemas import ImpactLevel, PriorityLevel

# Lower bounds for Medium, High and Critical
PRIORITY_THRESHOLDS = (0.4, 0.7, 0.9)


def impact_level_from_score(score: float) -> ImpactLevel:
    if score >= PRIORITY_THRESHOLDS[2]:
        return ImpactLevel.CRITICAL
    if score >= PRIORITY_THRESHOLDS[1]:
        return ImpactLevel.HIGH
    if score >= PRIORITY_THRESHOLDS[0]:
        return ImpactLevel.MEDIUM
    return ImpactLevel.LOW


def priority_level_from_score(score: float) -> PriorityLevel:
    return PriorityLevel(impact_level_from_score(score).value.capitalize())


def band_distribution(scores: Iterable[float]) -> Dict[str, int]:
    counts = {level.value: 0 for level in ImpactLevel}
    for score in scores:
        counts[impact_level_from_score(score).value] += 1
    return counts
