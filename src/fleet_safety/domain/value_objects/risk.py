"""Risk scoring result value objects."""

from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Dict, List, Optional, Tuple
from uuid import UUID

from .checklist import Phase


class Impact(Enum):
    """Impact of a single risk factor."""

    LOW = "low"
    MEDIUM = "medium"
    HIGH = "high"
    CRITICAL = "critical"

    @property
    def rank(self) -> int:
        """Get ordinal rank for comparing impacts."""
        return _IMPACT_ORDER.index(self)

    def at_least(self, other: "Impact") -> "Impact":
        """Return the more severe of this impact and another one."""
        return self if self.rank >= other.rank else other


_IMPACT_ORDER = [Impact.LOW, Impact.MEDIUM, Impact.HIGH, Impact.CRITICAL]


class RiskLevel(Enum):
    """Discrete risk level derived from a total score."""

    LOW = "low"
    MEDIUM = "medium"
    HIGH = "high"
    CRITICAL = "critical"


class ComplianceStatus(Enum):
    """Compliance verdict gating vehicle dispatch."""

    COMPLIANT = "compliant"
    CONDITIONAL = "conditional"
    NON_COMPLIANT = "non_compliant"


@dataclass(frozen=True)
class RiskFactor:
    """Human-readable contribution to a risk score."""

    category: str
    weight: float
    score: float
    impact: Impact
    description: str
    mitigating_actions: Tuple[str, ...] = ()

    def to_dict(self) -> Dict[str, Any]:
        """Serialize factor for API consumers."""
        return {
            "category": self.category,
            "weight": self.weight,
            "score": self.score,
            "impact": self.impact.value,
            "description": self.description,
            "mitigatingActions": list(self.mitigating_actions),
        }


@dataclass(frozen=True)
class ModuleScore:
    """Risk contribution of one inspection module."""

    score: float
    factors: Tuple[RiskFactor, ...] = ()
    failed_critical_items: int = 0


@dataclass(frozen=True)
class PhaseScore:
    """Score and factors for one phase of a trip."""

    phase: Phase
    score: float
    factors: Tuple[RiskFactor, ...] = ()


@dataclass(frozen=True)
class ModuleRiskScore:
    """Per-module risk summary for module listings."""

    module_id: UUID
    module_name: str
    step: int
    score: float
    risk_level: RiskLevel
    critical_items: int
    total_items: int
    completion_rate: float
    factors: Tuple[RiskFactor, ...] = ()
    max_score: int = 100

    def to_dict(self) -> Dict[str, Any]:
        """Serialize module score for API consumers."""
        return {
            "moduleId": str(self.module_id),
            "moduleName": self.module_name,
            "step": self.step,
            "score": self.score,
            "maxScore": self.max_score,
            "riskLevel": self.risk_level.value,
            "criticalItems": self.critical_items,
            "totalItems": self.total_items,
            "completionRate": self.completion_rate,
            "factors": [factor.to_dict() for factor in self.factors],
        }


@dataclass(frozen=True)
class RiskScoreBreakdown:
    """Authoritative scoring result for one trip."""

    pre_trip_score: float
    in_trip_score: float
    post_trip_score: float
    total_score: int
    risk_level: RiskLevel
    compliance_status: ComplianceStatus
    factors: Tuple[RiskFactor, ...] = field(default_factory=tuple)

    @property
    def blocks_dispatch(self) -> bool:
        """Check if the verdict alone forbids dispatch."""
        return self.compliance_status == ComplianceStatus.NON_COMPLIANT

    def to_dict(self) -> Dict[str, Any]:
        """Serialize breakdown using the consumer field names."""
        return {
            "preTripScore": self.pre_trip_score,
            "inTripScore": self.in_trip_score,
            "postTripScore": self.post_trip_score,
            "totalScore": self.total_score,
            "riskLevel": self.risk_level.value,
            "complianceStatus": self.compliance_status.value,
            "factors": [factor.to_dict() for factor in self.factors],
        }


@dataclass(frozen=True)
class CategorySummary:
    """Aggregated view over the factors of one category."""

    category: str
    factor_count: int
    total_score: float
    average_score: float
    max_impact: Impact
    factors: Tuple[RiskFactor, ...]


@dataclass(frozen=True)
class FactorSummary:
    """Filtered and grouped factor report for a trip."""

    factors: Tuple[RiskFactor, ...]
    categories: Tuple[CategorySummary, ...]
    impact_counts: Dict[str, int]
    total_score: float

    def by_category(self, category: str) -> Optional[CategorySummary]:
        """Get the summary for a category, if present."""
        for summary in self.categories:
            if summary.category == category:
                return summary
        return None

    def to_dict(self) -> Dict[str, Any]:
        """Serialize the report for API consumers."""
        return {
            "factors": [factor.to_dict() for factor in self.factors],
            "groupedFactors": {
                summary.category: [factor.to_dict() for factor in summary.factors]
                for summary in self.categories
            },
            "categorySummaries": [
                {
                    "category": summary.category,
                    "factorCount": summary.factor_count,
                    "totalScore": summary.total_score,
                    "averageScore": summary.average_score,
                    "maxImpact": summary.max_impact.value,
                }
                for summary in self.categories
            ],
            "summary": {
                "totalFactors": len(self.factors),
                "impactCounts": dict(self.impact_counts),
                "totalScore": self.total_score,
            },
        }


def group_factors(factors: List[RiskFactor]) -> Dict[str, List[RiskFactor]]:
    """Group factors by category preserving first-seen order."""
    grouped: Dict[str, List[RiskFactor]] = {}
    for factor in factors:
        grouped.setdefault(factor.category, []).append(factor)
    return grouped
