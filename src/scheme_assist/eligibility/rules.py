"""Eligibility rule model: fields, operators and typed comparison values."""

from __future__ import annotations

from collections.abc import Callable
from dataclasses import dataclass, field
from enum import Enum
from typing import Union

from scheme_assist.exceptions import ValidationError


class ProfileField(str, Enum):
    AGE = "age"
    INCOME = "income"
    LOCATION = "location"
    CASTE_CATEGORY = "caste_category"
    GENDER = "gender"


class Operator(str, Enum):
    EQUALS = "equals"
    GT = "gt"
    LT = "lt"
    GE = "ge"
    LE = "le"
    IN = "in"
    CONTAINS = "contains"


class Combinator(str, Enum):
    ALL = "all"
    ANY = "any"


@dataclass(frozen=True)
class NumberValue:
    value: float

    def describe(self) -> str:
        if float(self.value).is_integer():
            return str(int(self.value))
        return str(self.value)


@dataclass(frozen=True)
class TextValue:
    value: str

    def describe(self) -> str:
        return self.value


@dataclass(frozen=True)
class SetValue:
    values: frozenset[str]

    def describe(self) -> str:
        return "{" + ", ".join(sorted(self.values)) + "}"


RuleValue = Union[NumberValue, TextValue, SetValue]

ORDERING_OPERATORS = frozenset({Operator.GT, Operator.LT, Operator.GE, Operator.LE})

NUMERIC_FIELDS = frozenset({ProfileField.AGE, ProfileField.INCOME})

# which value variants each operator accepts
_OPERATOR_VALUE_TYPES: dict[Operator, tuple[type, ...]] = {
    Operator.EQUALS: (NumberValue, TextValue),
    Operator.GT: (NumberValue,),
    Operator.LT: (NumberValue,),
    Operator.GE: (NumberValue,),
    Operator.LE: (NumberValue,),
    Operator.IN: (SetValue,),
    Operator.CONTAINS: (TextValue,),
}


@dataclass
class CitizenProfile:
    user_id: str
    age: int | None = None
    income: float | None = None
    location: str | None = None
    caste_category: str | None = None
    gender: str | None = None


FIELD_ACCESSORS: dict[ProfileField, Callable[[CitizenProfile], object]] = {
    ProfileField.AGE: lambda p: p.age,
    ProfileField.INCOME: lambda p: p.income,
    ProfileField.LOCATION: lambda p: p.location,
    ProfileField.CASTE_CATEGORY: lambda p: p.caste_category,
    ProfileField.GENDER: lambda p: p.gender,
}


def read_field(profile: CitizenProfile, profile_field: ProfileField) -> object:
    return FIELD_ACCESSORS[profile_field](profile)


@dataclass(frozen=True)
class EligibilityRule:
    field: ProfileField
    operator: Operator
    value: RuleValue
    required: bool = True

    def __post_init__(self) -> None:
        allowed = _OPERATOR_VALUE_TYPES[self.operator]
        if not isinstance(self.value, allowed):
            raise ValidationError(
                "value",
                f"{self.operator.value} does not accept {type(self.value).__name__}",
            )
        numeric_field = self.field in NUMERIC_FIELDS
        if isinstance(self.value, NumberValue) and not numeric_field:
            raise ValidationError("value", f"{self.field.value} is not numeric")
        if numeric_field and not isinstance(self.value, NumberValue):
            raise ValidationError("value", f"{self.field.value} needs a numeric value")

    def describe(self) -> str:
        return f"{self.field.value} {self.operator.value} {self.value.describe()}"


@dataclass(frozen=True)
class SchemeEligibilitySpec:
    scheme_id: str
    rules: tuple[EligibilityRule, ...]
    combinator: Combinator = Combinator.ALL
    application_guidance: str = ""

    def __post_init__(self) -> None:
        if not self.rules:
            raise ValidationError("rules", f"scheme {self.scheme_id} has no eligibility rules")
        if not isinstance(self.rules, tuple):
            object.__setattr__(self, "rules", tuple(self.rules))

    @property
    def required_fields(self) -> list[ProfileField]:
        return list(dict.fromkeys(r.field for r in self.rules if r.required))


@dataclass(frozen=True)
class RuleEvaluation:
    rule: EligibilityRule
    passed: bool
    reason: str


@dataclass
class EligibilityResult:
    scheme_id: str
    eligible: bool
    evaluations: list[RuleEvaluation] = field(default_factory=list)
    confidence: float = 1.0
    reason: str | None = None
    missing_fields: list[ProfileField] = field(default_factory=list)

    @property
    def passed_rules(self) -> list[RuleEvaluation]:
        return [e for e in self.evaluations if e.passed]

    @property
    def failed_rules(self) -> list[RuleEvaluation]:
        return [e for e in self.evaluations if not e.passed]


def rule_from_dict(data: dict) -> EligibilityRule:
    """Build a rule from its JSON form, picking the value variant by operator."""
    try:
        operator = Operator(data["operator"])
        profile_field = ProfileField(data["field"])
    except (KeyError, ValueError) as e:
        raise ValidationError("rule", f"invalid rule {data!r}: {e}") from e

    raw = data.get("value")
    if operator is Operator.IN:
        if not isinstance(raw, (list, tuple, set, frozenset)):
            raise ValidationError("value", "set-membership needs a list of values")
        value: RuleValue = SetValue(frozenset(str(v) for v in raw))
    elif operator in ORDERING_OPERATORS or (
        operator is Operator.EQUALS and profile_field in NUMERIC_FIELDS
    ):
        if isinstance(raw, bool) or not isinstance(raw, (int, float)):
            raise ValidationError("value", f"{operator.value} needs a number")
        value = NumberValue(float(raw))
    else:
        if not isinstance(raw, str):
            raise ValidationError("value", f"{operator.value} needs text")
        value = TextValue(raw)

    required = data.get("required", True)
    if not isinstance(required, bool):
        raise ValidationError("required", "required must be true or false")

    return EligibilityRule(
        field=profile_field,
        operator=operator,
        value=value,
        required=required,
    )


def rule_to_dict(rule: EligibilityRule) -> dict:
    if isinstance(rule.value, SetValue):
        raw: object = sorted(rule.value.values)
    else:
        raw = rule.value.value
    return {
        "field": rule.field.value,
        "operator": rule.operator.value,
        "value": raw,
        "required": rule.required,
    }


def spec_from_dict(data: dict) -> SchemeEligibilitySpec:
    try:
        combinator = Combinator(data.get("combinator", "all"))
    except ValueError as e:
        raise ValidationError("combinator", str(e)) from e
    return SchemeEligibilitySpec(
        scheme_id=data["scheme_id"],
        rules=tuple(rule_from_dict(r) for r in data.get("rules", [])),
        combinator=combinator,
        application_guidance=data.get("application_guidance", ""),
    )


def spec_to_dict(spec: SchemeEligibilitySpec) -> dict:
    return {
        "scheme_id": spec.scheme_id,
        "rules": [rule_to_dict(r) for r in spec.rules],
        "combinator": spec.combinator.value,
        "application_guidance": spec.application_guidance,
    }
