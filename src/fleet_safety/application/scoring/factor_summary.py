"""Factor and module reports built on top of a computed breakdown."""

from typing import Any, Dict, Iterable, List, Optional, Sequence

from src.fleet_safety.domain.value_objects.risk import (
    CategorySummary,
    FactorSummary,
    Impact,
    ModuleRiskScore,
    RiskFactor,
    RiskLevel,
    group_factors,
)


def summarize_factors(
    factors: Iterable[RiskFactor],
    category: Optional[str] = None,
    impact: Optional[Impact] = None
) -> FactorSummary:
    """Filter factors and summarize them per category.

    Args:
        factors: Factors of a breakdown
        category: Case-insensitive substring matched against the category
        impact: Exact impact to keep

    Returns:
        Filtered factors with per-category and per-impact summaries
    """
    selected = list(factors)
    if category:
        needle = category.lower()
        selected = [factor for factor in selected if needle in factor.category.lower()]
    if impact is not None:
        selected = [factor for factor in selected if factor.impact == impact]

    summaries = []
    for name, grouped in group_factors(selected).items():
        total = sum(factor.score for factor in grouped)
        summaries.append(CategorySummary(
            category=name,
            factor_count=len(grouped),
            total_score=total,
            average_score=total / len(grouped),
            max_impact=max((factor.impact for factor in grouped), key=lambda value: value.rank),
            factors=tuple(grouped),
        ))

    impact_counts = {level.value: 0 for level in Impact}
    for factor in selected:
        impact_counts[factor.impact.value] += 1

    return FactorSummary(
        factors=tuple(selected),
        categories=tuple(summaries),
        impact_counts=impact_counts,
        total_score=sum(factor.score for factor in selected),
    )


def summarize_modules(module_scores: Sequence[ModuleRiskScore]) -> Dict[str, Any]:
    """Summarize per-module scores for module listings."""
    scores: List[float] = [module.score for module in module_scores]
    return {
        "totalModules": len(module_scores),
        "completedModules": sum(1 for module in module_scores if module.completion_rate == 1.0),
        "averageModuleScore": sum(scores) / len(scores) if scores else 0,
        "criticalModules": sum(1 for module in module_scores if module.risk_level == RiskLevel.CRITICAL),
        "highRiskModules": sum(1 for module in module_scores if module.risk_level == RiskLevel.HIGH),
    }
