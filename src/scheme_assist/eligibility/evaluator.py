"""Deterministic evaluation of a citizen profile against a scheme's rules."""

from __future__ import annotations

from collections.abc import Callable

from scheme_assist.eligibility.rules import (
    CitizenProfile,
    Combinator,
    EligibilityResult,
    EligibilityRule,
    NumberValue,
    Operator,
    RuleEvaluation,
    SchemeEligibilitySpec,
    SetValue,
    TextValue,
    read_field,
)
from scheme_assist.observability.logger import get_logger

logger = get_logger("eligibility")

INSUFFICIENT_PROFILE_DATA = "insufficient profile data"

_NUMERIC_COMPARATORS: dict[Operator, Callable[[float, float], bool]] = {
    Operator.EQUALS: lambda a, b: a == b,
    Operator.GT: lambda a, b: a > b,
    Operator.LT: lambda a, b: a < b,
    Operator.GE: lambda a, b: a >= b,
    Operator.LE: lambda a, b: a <= b,
}


def _is_missing(value: object) -> bool:
    return value is None or (isinstance(value, str) and not value.strip())


def _show(value: object) -> str:
    if isinstance(value, float) and value.is_integer():
        return str(int(value))
    return str(value)


def compare(rule: EligibilityRule, actual: object) -> bool:
    value = rule.value
    if isinstance(value, NumberValue):
        return _NUMERIC_COMPARATORS[rule.operator](float(actual), value.value)
    text = str(actual).strip().casefold()
    if isinstance(value, SetValue):
        return text in {v.casefold() for v in value.values}
    if isinstance(value, TextValue):
        expected = value.value.strip().casefold()
        if rule.operator is Operator.CONTAINS:
            return expected in text
        return text == expected
    raise TypeError(f"unsupported rule value {value!r}")


def evaluate_rule(rule: EligibilityRule, profile: CitizenProfile) -> RuleEvaluation:
    actual = read_field(profile, rule.field)
    if _is_missing(actual):
        return RuleEvaluation(rule=rule, passed=False, reason=f"{rule.field.value} not provided")
    passed = compare(rule, actual)
    shown = _show(actual)
    verdict = "meets" if passed else "does not meet"
    return RuleEvaluation(
        rule=rule,
        passed=passed,
        reason=f"{rule.field.value} {shown} {verdict} {rule.operator.value} {rule.value.describe()}",
    )


def confidence_for(evaluations: list[RuleEvaluation]) -> float:
    """Every operator is exact today; fuzzy criteria would lower this."""
    return 1.0


class EligibilityEvaluator:
    def evaluate(self, profile: CitizenProfile, spec: SchemeEligibilitySpec) -> EligibilityResult:
        missing = [
            f for f in spec.required_fields if _is_missing(read_field(profile, f))
        ]
        if missing:
            logger.info(
                "eligibility_insufficient_data",
                scheme_id=spec.scheme_id,
                missing=[f.value for f in missing],
            )
            return insufficient_data(spec.scheme_id, missing)

        evaluations = [evaluate_rule(rule, profile) for rule in spec.rules]

        if spec.combinator is Combinator.ALL:
            eligible = all(e.passed for e in evaluations if e.rule.required)
        else:
            eligible = any(e.passed for e in evaluations)

        result = EligibilityResult(
            scheme_id=spec.scheme_id,
            eligible=eligible,
            evaluations=evaluations,
            confidence=confidence_for(evaluations),
        )
        logger.info(
            "eligibility_evaluated",
            scheme_id=spec.scheme_id,
            combinator=spec.combinator.value,
            eligible=eligible,
            passed=len(result.passed_rules),
            failed=len(result.failed_rules),
        )
        return result


def insufficient_data(scheme_id: str, missing: list | None = None) -> EligibilityResult:
    return EligibilityResult(
        scheme_id=scheme_id,
        eligible=False,
        evaluations=[],
        confidence=1.0,
        reason=INSUFFICIENT_PROFILE_DATA,
        missing_fields=list(missing or []),
    )
