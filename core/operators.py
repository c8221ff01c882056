import re
from decimal import Decimal, InvalidOperation
from typing import Any, Sequence

from .ftypes import Maybe

# ============ Разбор чисел ============

_FLOAT_PREFIX = re.compile(r"^\s*([+-]?(?:\d+(?:\.\d*)?|\.\d+)(?:[eE][+-]?\d+)?)")
_INT_PREFIX = re.compile(r"^\s*([+-]?\d+)")

# предел double: больше по модулю число не считается разобранным
_MAX_MAGNITUDE = Decimal("1.7976931348623157e308")
_MIN_EXPONENT = -324


def _bounded(number: Decimal, integer: bool) -> Maybe[Decimal]:
    if not number.is_finite() or abs(number) > _MAX_MAGNITUDE:
        return Maybe.nothing()
    if number and number.adjusted() < _MIN_EXPONENT:
        # ниже точности double - ноль
        return Maybe.some(Decimal("0"))
    return Maybe.some(Decimal(int(number)) if integer else number)


def parse_number(raw: Any, integer: bool = False) -> Maybe[Decimal]:
    """
    Снисходительный разбор числа: берётся числовой префикс строки
    ("12abc" -> 12), для integer=True дробная часть отбрасывается.
    Nothing, если числа нет или оно не помещается в double.
    """
    if isinstance(raw, bool) or raw is None:
        return Maybe.nothing()

    if isinstance(raw, str):
        match = (_INT_PREFIX if integer else _FLOAT_PREFIX).match(raw)
        if not match:
            return Maybe.nothing()
        raw = match.group(1)
    elif not isinstance(raw, (int, float, Decimal)):
        return Maybe.nothing()

    try:
        number = Decimal(str(raw))
    except (InvalidOperation, ValueError):
        return Maybe.nothing()
    return _bounded(number, integer)


def split_list(value: str) -> tuple:
    """'a, b,,c' -> ('a', 'b', 'c')"""
    return tuple(item.strip() for item in (value or "").split(",") if item.strip())


# ============ Числовые операторы ============

_NUMERIC = {
    ">": lambda a, b: a > b,
    ">=": lambda a, b: a >= b,
    "<": lambda a, b: a < b,
    "<=": lambda a, b: a <= b,
    "==": lambda a, b: a == b,
    "!=": lambda a, b: a != b,
}

_NUMERIC_ALIASES = {
    "greater_than": ">",
    "greater_than_or_equal": ">=",
    "less_than": "<",
    "less_than_or_equal": "<=",
    "equals": "==",
    "not_equals": "!=",
}


def compare_numbers(actual: Decimal, operator: str, expected: Decimal) -> bool:
    """Неизвестный оператор -> False"""
    op = _NUMERIC.get(_NUMERIC_ALIASES.get(operator, operator))
    return op(actual, expected) if op else False


# ============ Строковые операторы (без учёта регистра) ============


def compare_strings(actual: str, operator: str, expected: str) -> bool:
    a = (actual or "").lower()
    e = (expected or "").lower()
    if operator == "equals":
        return a == e
    if operator == "not_equals":
        return a != e
    if operator == "contains":
        return e in a
    if operator == "not_contains":
        return e not in a
    return False


# ============ Операторы над списками ============


def compare_membership(actual: str, operator: str, allowed: Sequence[str]) -> bool:
    if operator == "equals":
        return actual in allowed
    if operator == "not_equals":
        return actual not in allowed
    return False


def matches_wildcard(actual: str, patterns: Sequence[str]) -> bool:
    """
    Старый формат почтовых индексов: '10-*' совпадает с '10-123',
    без '*' - точное совпадение без учёта регистра
    """

    def matches(pattern: str) -> bool:
        if "*" in pattern:
            regex = "^" + ".*".join(map(re.escape, pattern.split("*"))) + "$"
            return re.match(regex, actual, re.IGNORECASE) is not None
        return pattern.lower() == actual.lower()

    return any(matches(p) for p in patterns)


# ============ Статус входа ============


def check_login_state(is_authenticated: bool, operator: str) -> Maybe[bool]:
    """Nothing для неизвестного оператора - условие не проверяется"""
    if operator == "is_logged_in":
        return Maybe.some(is_authenticated is True)
    if operator == "is_not_logged_in":
        return Maybe.some(is_authenticated is not True)
    return Maybe.nothing()
