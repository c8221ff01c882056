"""
Проверка условий правила скидки.

Условия проверяются в порядке, заданном мерчантом; первое невыполненное
условие останавливает проверку (последующие не вычисляются). Пустой список
условий выполнен всегда.
"""

import logging
from dataclasses import dataclass, field, replace
from datetime import date
from decimal import Decimal
from typing import Callable, Dict, Iterable, Iterator, Optional, Tuple

from .attributes import (
    cart_product_ids,
    cart_quantity,
    cart_total,
    cart_weight,
    customer,
    customer_country,
    customer_order_count,
    customer_postal_code,
    is_authenticated,
    shop_local_date,
)
from .config import DEFAULT_SETTINGS, EngineSettings
from .domain import Cart, Condition, DiscountRule, LegacyConditions
from .ftypes import Maybe
from .operators import (
    check_login_state,
    compare_membership,
    compare_numbers,
    compare_strings,
    matches_wildcard,
    parse_number,
    split_list,
)
from .tracing import get_tracer

PRODUCT_OPERATORS = (
    "only_these_products",
    "at_least_one_of_these",
    "all_of_these_products",
    "none_of_these_products",
)

COLLECTION_OPERATORS = (
    "only_these_collections",
    "at_least_one_collection",
    "no_products_from_collections",
)

WEEKDAYS = ("monday", "tuesday", "wednesday", "thursday", "friday", "saturday", "sunday")


@dataclass(frozen=True)
class EvaluationContext:
    settings: EngineSettings = field(default_factory=lambda: DEFAULT_SETTINGS)
    shop_local_date: Optional[str] = None
    tracer: Optional[logging.Logger] = None


@dataclass(frozen=True)
class ConditionResult:
    condition: Condition
    passed: bool
    detail: str


Outcome = Tuple[bool, str]


# ============ Числовые условия ============


def _numeric(actual: Decimal, condition: Condition, integer: bool = False) -> Outcome:
    expected = parse_number(condition.value, integer=integer)
    if expected.is_none():
        return False, f"invalid number {condition.value!r}"
    passed = compare_numbers(actual, condition.operator, expected.value)
    return passed, f"{actual} {condition.operator} {expected.value}"


def _cart_total(condition: Condition, cart: Cart, ctx: EvaluationContext) -> Outcome:
    return _numeric(cart_total(cart), condition)


def _cart_quantity(condition: Condition, cart: Cart, ctx: EvaluationContext) -> Outcome:
    return _numeric(Decimal(cart_quantity(cart)), condition, integer=True)


def _cart_weight(condition: Condition, cart: Cart, ctx: EvaluationContext) -> Outcome:
    return _numeric(cart_weight(cart), condition)


def _order_count(condition: Condition, cart: Cart, ctx: EvaluationContext) -> Outcome:
    # без покупателя считаем, что заказов ноль
    return _numeric(Decimal(customer_order_count(cart)), condition, integer=True)


# ============ Адрес ============


def _country(condition: Condition, cart: Cart, ctx: EvaluationContext) -> Outcome:
    country = customer_country(cart)
    if country.is_none():
        return False, "no delivery country"
    allowed = split_list(condition.value)
    passed = compare_membership(country.value, condition.operator, allowed)
    return passed, f"{country.value} {condition.operator} {list(allowed)}"


def _postal_code(condition: Condition, cart: Cart, ctx: EvaluationContext) -> Outcome:
    postal = customer_postal_code(cart, ctx.settings)
    if postal.is_none():
        return False, "no postal code found"
    passed = compare_strings(postal.value, condition.operator, condition.value)
    return passed, f"{postal.value} {condition.operator} {condition.value}"


# ============ Покупатель ============


def _customer_tags(condition: Condition, cart: Cart, ctx: EvaluationContext) -> Outcome:
    found = customer(cart)
    if found.is_none():
        return False, "no customer"
    # хост сообщает только hasAnyTag по заранее известному списку тегов
    required = split_list(condition.value)
    known = set(ctx.settings.known_customer_tags)
    has_required = found.value.has_any_tag and any(tag in known for tag in required)

    if condition.operator == "contains":
        return has_required, f"has required tag: {has_required}"
    if condition.operator == "not_contains":
        return not has_required, f"has required tag: {has_required}"
    return True, f"operator {condition.operator!r} not checked"


def _customer_logged_in(condition: Condition, cart: Cart, ctx: EvaluationContext) -> Outcome:
    authenticated = is_authenticated(cart)
    result = check_login_state(authenticated, condition.operator)
    if result.is_none():
        return True, f"operator {condition.operator!r} not checked"
    return result.value, f"authenticated: {authenticated}"


# ============ Содержимое корзины ============


def _product_operator(operator: str, cart_ids: Tuple[str, ...], required: Tuple[str, ...]) -> bool:
    if operator == "only_these_products":
        return (
            len(cart_ids) > 0
            and all(pid in required for pid in cart_ids)
            and all(pid in cart_ids for pid in required)
        )
    if operator == "at_least_one_of_these":
        return any(pid in cart_ids for pid in required)
    if operator == "all_of_these_products":
        return all(pid in cart_ids for pid in required)
    if operator == "none_of_these_products":
        return not any(pid in cart_ids for pid in required)
    return False


def _collection_operator(operator: str, cart: Cart) -> bool:
    # inAnyCollection хост вычисляет по всем коллекциям из правил магазина
    def in_collection(line) -> bool:
        product = line.merchandise.product if line.merchandise else None
        return product is not None and product.in_any_collection

    if operator == "only_these_collections":
        return len(cart.lines) > 0 and all(in_collection(l) for l in cart.lines)
    if operator == "at_least_one_collection":
        return any(in_collection(l) for l in cart.lines)
    if operator == "no_products_from_collections":
        return not any(in_collection(l) for l in cart.lines)
    return False


def _cart_contains(condition: Condition, cart: Cart, ctx: EvaluationContext) -> Outcome:
    if condition.operator in PRODUCT_OPERATORS:
        passed = _product_operator(
            condition.operator, cart_product_ids(cart), split_list(condition.value)
        )
        return passed, f"products {condition.operator}"
    if condition.operator in COLLECTION_OPERATORS:
        return _collection_operator(condition.operator, cart), f"collections {condition.operator}"
    return False, f"unknown operator {condition.operator!r}"


def _cart_contains_products(condition: Condition, cart: Cart, ctx: EvaluationContext) -> Outcome:
    passed = _product_operator(
        condition.operator, cart_product_ids(cart), split_list(condition.value)
    )
    return passed, f"products {condition.operator}"


# ============ Дата магазина ============


def _parse_day(text: str) -> Maybe[date]:
    try:
        return Maybe.some(date.fromisoformat(text.strip()))
    except ValueError:
        return Maybe.nothing()


def _date_range(condition: Condition, cart: Cart, ctx: EvaluationContext) -> Outcome:
    today = shop_local_date(ctx.shop_local_date)
    if today.is_none():
        return False, "no shop local date"
    bounds = split_list(condition.value)
    if len(bounds) != 2:
        return False, f"invalid range {condition.value!r}"
    start, end = _parse_day(bounds[0]), _parse_day(bounds[1])
    if start.is_none() or end.is_none():
        return False, f"invalid range {condition.value!r}"

    inside = start.value <= today.value <= end.value
    if condition.operator == "between":
        return inside, f"{today.value} in [{start.value}, {end.value}]: {inside}"
    if condition.operator == "not_between":
        return not inside, f"{today.value} in [{start.value}, {end.value}]: {inside}"
    return False, f"unknown operator {condition.operator!r}"


def _weekday_name(token: str) -> str:
    token = token.strip().lower()
    if token.isdigit() and 1 <= int(token) <= 7:
        return WEEKDAYS[int(token) - 1]
    return token


def _day_of_week(condition: Condition, cart: Cart, ctx: EvaluationContext) -> Outcome:
    today = shop_local_date(ctx.shop_local_date)
    if today.is_none():
        return False, "no shop local date"
    weekday = WEEKDAYS[today.value.weekday()]
    allowed = tuple(_weekday_name(t) for t in split_list(condition.value))
    passed = compare_membership(weekday, condition.operator, allowed)
    return passed, f"{weekday} {condition.operator} {list(allowed)}"


HANDLERS: Dict[str, Callable[[Condition, Cart, EvaluationContext], Outcome]] = {
    "cart_total": _cart_total,
    "cart_quantity": _cart_quantity,
    "cart_weight": _cart_weight,
    "country": _country,
    "postal_code": _postal_code,
    "customer_tags": _customer_tags,
    "customer_logged_in": _customer_logged_in,
    "order_count": _order_count,
    "cart_contains": _cart_contains,
    "cart_contains_products": _cart_contains_products,
    "date_range": _date_range,
    "day_of_week": _day_of_week,
}


def evaluate_condition(condition: Condition, cart: Cart, ctx: EvaluationContext) -> ConditionResult:
    handler = HANDLERS.get(condition.type)
    if handler is None:
        passed = ctx.settings.unknown_condition_policy == "pass"
        return ConditionResult(condition, passed, f"unknown condition type {condition.type!r}")
    passed, detail = handler(condition, cart, ctx)
    return ConditionResult(condition, passed, detail)


def iter_condition_results(
    conditions: Iterable[Condition], cart: Cart, ctx: EvaluationContext
) -> Iterator[ConditionResult]:
    """Лениво: результаты по порядку, включая первый проваленный, и стоп"""
    tracer = get_tracer(ctx.tracer)
    for condition in conditions:
        result = evaluate_condition(condition, cart, ctx)
        tracer.debug(
            "condition %s/%s %s: %s",
            condition.type,
            condition.operator,
            "passed" if result.passed else "failed",
            result.detail,
        )
        yield result
        if not result.passed:
            return


def evaluate_conditions(
    conditions: Iterable[Condition], cart: Cart, ctx: EvaluationContext
) -> bool:
    return all(r.passed for r in iter_condition_results(conditions, cart, ctx))


# ============ Старый формат условий ============


def _legacy_checks(
    legacy: LegacyConditions, cart: Cart, ctx: EvaluationContext
) -> Iterator[Callable[[], ConditionResult]]:
    """Проверки старого формата как ленивые функции (в исходном порядке)"""

    def result(name: str, passed: bool, detail: str) -> ConditionResult:
        return ConditionResult(Condition(f"legacy.{name}", "", ""), passed, detail)

    if legacy.country_enabled and legacy.allowed_countries:

        def country() -> ConditionResult:
            found = customer_country(cart)
            if found.is_none():
                return result("country", False, "no delivery country")
            passed = found.value in legacy.allowed_countries
            return result("country", passed, f"{found.value} in {list(legacy.allowed_countries)}")

        yield country

    minimum = parse_number(legacy.minimum_amount)
    if legacy.cart_total_enabled and minimum.is_some():

        def total() -> ConditionResult:
            actual = cart_total(cart)
            return result("cart_total", actual >= minimum.value, f"{actual} >= {minimum.value}")

        yield total

    min_qty = parse_number(legacy.minimum_quantity, integer=True)
    if legacy.cart_quantity_enabled and min_qty.is_some():

        def quantity() -> ConditionResult:
            actual = cart_quantity(cart)
            return result("cart_quantity", actual >= min_qty.value, f"{actual} >= {min_qty.value}")

        yield quantity

    if legacy.postal_code_enabled and legacy.allowed_postal_codes:

        def postal() -> ConditionResult:
            found = customer_postal_code(cart, ctx.settings)
            if found.is_none():
                return result("postal_code", False, "no postal code found")
            patterns = tuple(p.strip() for p in legacy.allowed_postal_codes.split(","))
            passed = matches_wildcard(found.value, patterns)
            return result("postal_code", passed, f"{found.value} in {legacy.allowed_postal_codes}")

        yield postal

    if legacy.weight_enabled:

        def weight() -> ConditionResult:
            low = parse_number(legacy.min_weight).get_or_else(Decimal("0"))
            # ноль или пусто в maxWeight - без верхней границы
            high = parse_number(legacy.max_weight).filter(lambda v: v != 0)
            actual = cart_weight(cart)
            passed = actual >= low and (high.is_none() or actual <= high.value)
            return result("cart_weight", passed, f"{actual} in [{low}, {high.get_or_else('inf')}]")

        yield weight


def iter_legacy_results(
    legacy: LegacyConditions, cart: Cart, ctx: EvaluationContext
) -> Iterator[ConditionResult]:
    tracer = get_tracer(ctx.tracer)
    for check in _legacy_checks(legacy, cart, ctx):
        res = check()
        tracer.debug("%s %s: %s", res.condition.type, "passed" if res.passed else "failed", res.detail)
        yield res
        if not res.passed:
            return


# ============ Условия правила целиком ============


def _strip_legacy(legacy: LegacyConditions, ignored: Tuple[str, ...]) -> LegacyConditions:
    return replace(
        legacy,
        country_enabled=legacy.country_enabled and "country" not in ignored,
        postal_code_enabled=legacy.postal_code_enabled and "postal_code" not in ignored,
    )


def iter_rule_results(
    rule: DiscountRule,
    cart: Cart,
    ctx: EvaluationContext,
    ignored_types: Iterable[str] = (),
) -> Iterator[ConditionResult]:
    """
    Непустой список conditions имеет приоритет над старым форматом,
    даже если после исключения ignored_types в нём ничего не осталось
    """
    ignored = tuple(ignored_types)
    if rule.conditions:
        kept = tuple(c for c in rule.conditions if c.type not in ignored)
        return iter_condition_results(kept, cart, ctx)
    legacy = rule.legacy_conditions
    if legacy is not None and not legacy.is_empty():
        return iter_legacy_results(_strip_legacy(legacy, ignored), cart, ctx)
    return iter(())


def rule_conditions_met(
    rule: DiscountRule,
    cart: Cart,
    ctx: EvaluationContext,
    ignored_types: Iterable[str] = (),
) -> bool:
    return all(r.passed for r in iter_rule_results(rule, cart, ctx, ignored_types))


def requires_postal_code(rule: DiscountRule) -> bool:
    legacy = rule.legacy_conditions
    return any(c.type == "postal_code" for c in rule.conditions) or (
        not rule.conditions
        and legacy is not None
        and legacy.postal_code_enabled
        and bool(legacy.allowed_postal_codes)
    )
