from dataclasses import dataclass
from decimal import Decimal
from typing import Iterable, Optional, Sequence, Tuple

from .conditions import COLLECTION_OPERATORS
from .domain import DiscountRule
from .operators import split_list

INACTIVE = "inactive"
CLASS_NOT_REQUESTED = "discount class not requested"
CODE_MISMATCH = "discount code not applied"
MINIMUM_NOT_REACHED = "minimum amount not reached"


@dataclass(frozen=True)
class FilterVerdict:
    rule: DiscountRule
    eligible: bool
    reason: Optional[str] = None


# ============ Предикаты фильтра ============


def is_active(rule: DiscountRule) -> bool:
    return rule.active is True


def class_requested(rule: DiscountRule, discount_classes: Sequence[str]) -> bool:
    return rule.discount_class is not None and rule.discount_class in discount_classes


def code_matches(rule: DiscountRule, triggering_code: Optional[str]) -> bool:
    """Автоматические правила проходят всегда; код сравнивается с учётом регистра"""
    if not rule.is_code_activated:
        return True
    return bool(triggering_code) and triggering_code == rule.discount_code


def minimum_met(rule: DiscountRule, total: Decimal) -> bool:
    return total >= rule.minimum_amount


def by_class(discount_class: str):
    """Фильтр-замыкание: активные правила заданного класса"""
    return lambda rule: is_active(rule) and rule.discount_class == discount_class


# ============ Фильтр ============


def filter_rule(
    rule: DiscountRule,
    discount_classes: Sequence[str],
    triggering_code: Optional[str],
    total: Decimal,
) -> FilterVerdict:
    """
    Правило допускается, если оно активно, его класс запрошен,
    код совпадает (для правил по коду) и корзина набрала минимум
    """
    if not is_active(rule):
        return FilterVerdict(rule, False, INACTIVE)
    if not class_requested(rule, discount_classes):
        return FilterVerdict(rule, False, CLASS_NOT_REQUESTED)
    if not code_matches(rule, triggering_code):
        return FilterVerdict(rule, False, CODE_MISMATCH)
    if not minimum_met(rule, total):
        return FilterVerdict(rule, False, MINIMUM_NOT_REACHED)
    return FilterVerdict(rule, True)


def eligible_rules(
    rules: Iterable[DiscountRule],
    discount_classes: Sequence[str],
    triggering_code: Optional[str],
    total: Decimal,
) -> Tuple[DiscountRule, ...]:
    return tuple(
        v.rule
        for v in (filter_rule(r, discount_classes, triggering_code, total) for r in rules)
        if v.eligible
    )


def collect_collection_ids(rules: Iterable[DiscountRule]) -> Tuple[str, ...]:
    """
    ID коллекций из условий cart_contains активных правил, без повторов,
    в порядке появления. Хост передаёт их в запрос для inAnyCollection.
    """
    seen = {}
    for rule in filter(is_active, rules):
        for condition in rule.conditions:
            if condition.type == "cart_contains" and condition.operator in COLLECTION_OPERATORS:
                for collection_id in split_list(condition.value):
                    seen.setdefault(collection_id, None)
    return tuple(seen)
