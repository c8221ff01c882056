from decimal import Decimal
from typing import Union

from .domain import DiscountRule
from .operators import parse_number

HUNDRED = Decimal("100")
ZERO = Decimal("0")


def clamp_percentage(value: Decimal) -> Decimal:
    return max(ZERO, min(value, HUNDRED))


def configured_percentage(rule: DiscountRule) -> Decimal:
    """Процент из конфигурации; нечисловое значение = 0"""
    return clamp_percentage(parse_number(rule.value).get_or_else(ZERO))


def realized_percentage(rule: DiscountRule, total: Decimal, shipping: bool = False) -> Decimal:
    """
    Процент, который реально применяется:
    - фиксированная сумма на доставку -> 100% (бесплатная доставка)
    - фиксированная сумма на заказ/товар -> amount / total * 100, не больше 100
    - иначе процент из правила
    Результат всегда в [0, 100].
    """
    if rule.is_fixed_amount:
        if shipping:
            return HUNDRED
        if total <= 0:
            return ZERO
        return clamp_percentage(rule.fixed_amount / total * HUNDRED)
    return configured_percentage(rule)


def to_json_number(value: Decimal) -> Union[int, float]:
    """Decimal -> int (если целое) или float для выходного JSON"""
    if value == value.to_integral_value():
        return int(value)
    return float(value)
