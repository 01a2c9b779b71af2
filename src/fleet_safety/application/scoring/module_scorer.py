"""Risk contribution of a single checklist module."""

from typing import Dict, Iterable, List

from src.fleet_safety.domain.value_objects.checklist import ChecklistItem, ChecklistModule, FieldType, ModuleAnswer
from src.fleet_safety.domain.value_objects.risk import Impact, ModuleScore, RiskFactor
from src.fleet_safety.domain.value_objects.risk_policy import DEFAULT_POLICY, RiskPolicy

from .rounding import round_half_up

CRITICAL_FAILURES_CATEGORY = "Critical Failures"
CRITICAL_FAILURES_WEIGHT = 3.0
CRITICAL_FAILURES_ACTIONS = ("Immediate rectification", "Supervisor notification", "Trip delay if necessary")


def _latest_by_label(answers: Iterable[ModuleAnswer]) -> Dict[str, ModuleAnswer]:
    latest: Dict[str, ModuleAnswer] = {}
    for answer in answers:
        latest[answer.item.label] = answer
    return latest


def critical_item_score(item: ChecklistItem, answer: ModuleAnswer, policy: RiskPolicy = DEFAULT_POLICY) -> float:
    """Compute the weighted score of one failed critical item.

    Count fields (violations) contribute their value, every other field type
    contributes its point value, with 1 as the floor for zero-point items.
    """
    if item.field_type == FieldType.NUMBER:
        base = answer.numeric_value
    else:
        base = item.points or 1
    return base * policy.critical_item_weight(item.label)


def failed_critical_items(module: ChecklistModule, answers: Iterable[ModuleAnswer]) -> List[ChecklistItem]:
    """Get the critical items whose latest answer marks a failure."""
    latest = _latest_by_label(answers)
    failed = []
    for item in module.critical_items:
        answer = latest.get(item.label)
        if answer is not None and answer.indicates_failure:
            failed.append(item)
    return failed


def score_module(
    module: ChecklistModule,
    answers: Iterable[ModuleAnswer],
    policy: RiskPolicy = DEFAULT_POLICY
) -> ModuleScore:
    """Score one module from its answers.

    Only critical items contribute. The weighted sum is scaled by the
    module's risk multiplier and rounded. A module without critical items
    always scores 0 and emits no factor.

    Args:
        module: Module definition
        answers: Answers for the module; the last answer per label wins
        policy: Risk policy providing weights and multipliers

    Returns:
        Module score with an optional "Critical Failures" factor
    """
    latest = _latest_by_label(answers)
    failed = failed_critical_items(module, latest.values())

    raw_score = sum(critical_item_score(item, latest[item.label], policy) for item in failed)
    score = round_half_up(raw_score * policy.module_multiplier(module.key))

    factors = ()
    if failed:
        count = len(failed)
        impact = Impact.CRITICAL if count > policy.critical_failure_escalation_count else Impact.HIGH
        factors = (
            RiskFactor(
                category=CRITICAL_FAILURES_CATEGORY,
                weight=CRITICAL_FAILURES_WEIGHT,
                score=count * policy.critical_failure_factor_points,
                impact=impact,
                description=f"{count} critical item failures in {module.name}",
                mitigating_actions=CRITICAL_FAILURES_ACTIONS,
            ),
        )

    return ModuleScore(score=score, factors=factors, failed_critical_items=len(failed))
