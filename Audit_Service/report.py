from functools import reduce
from typing import Dict, List, Optional, Tuple

from core.attributes import (
    cart_quantity,
    cart_total,
    cart_weight,
    customer_country,
    resolve_postal_code,
    shop_local_date,
)
from core.ftypes import negate
from core.conditions import EvaluationContext, iter_rule_results
from core.config import DEFAULT_SETTINGS, EngineSettings
from core.domain import ORDER, SHIPPING, Cart, DiscountRule, RunInput
from core.parsing import load_rules, parse_input
from core.pricing import realized_percentage, to_json_number
from core.rules import collect_collection_ids, filter_rule, is_active


# ============ Факты корзины ============


def cart_facts(run_input: RunInput, settings: EngineSettings = DEFAULT_SETTINGS) -> dict:
    """Вычисленные факты корзины в читаемом виде"""
    cart = run_input.cart
    postal = resolve_postal_code(cart, settings)
    return {
        "lines": len(cart.lines),
        "cart_total": str(cart_total(cart)),
        "cart_quantity": cart_quantity(cart),
        "cart_weight": str(cart_weight(cart)),
        "country": customer_country(cart).get_or_else(None),
        "postal_code": postal.map(lambda p: p[0]).get_or_else(None),
        "postal_code_source": postal.map(lambda p: p[1]).get_or_else(None),
        "shop_date": shop_local_date(run_input.shop_local_date)
        .map(lambda d: d.isoformat())
        .get_or_else(None),
    }


# ============ Аудит правил ============


def _condition_rows(
    rule: DiscountRule, cart: Cart, ctx: EvaluationContext, ignored: Tuple[str, ...]
) -> Tuple[List[dict], bool]:
    """
    Строки по условиям правила: passed / failed, затем skipped для
    непроверенных после первого провала; ignored - исключённые типы
    """
    evaluated = list(iter_rule_results(rule, cart, ctx, ignored))
    met = all(r.passed for r in evaluated)

    rows = [
        {
            "type": r.condition.type,
            "operator": r.condition.operator,
            "value": r.condition.value,
            "status": "passed" if r.passed else "failed",
            "detail": r.detail,
        }
        for r in evaluated
    ]

    if rule.conditions:
        active = [c for c in rule.conditions if c.type not in ignored]
        rows += [
            {"type": c.type, "operator": c.operator, "value": c.value, "status": "skipped", "detail": ""}
            for c in active[len(evaluated):]
        ]
        rows += [
            {"type": c.type, "operator": c.operator, "value": c.value, "status": "ignored", "detail": ""}
            for c in rule.conditions
            if c.type in ignored
        ]
    return rows, met


def audit_rule(
    rule: DiscountRule, run_input: RunInput, settings: EngineSettings = DEFAULT_SETTINGS
) -> dict:
    cart = run_input.cart
    total = cart_total(cart)
    verdict = filter_rule(
        rule, run_input.discount_classes, run_input.triggering_discount_code, total
    )
    ctx = EvaluationContext(settings=settings, shop_local_date=run_input.shop_local_date)
    ignored = tuple(settings.order_ignored_condition_types) if rule.discount_class == ORDER else ()
    rows, met = _condition_rows(rule, cart, ctx, ignored)

    applied = verdict.eligible and met
    shipping = rule.discount_class == SHIPPING
    return {
        "rule_id": rule.id,
        "name": rule.name,
        "discount_class": rule.discount_class,
        "eligible": verdict.eligible,
        "filter_reason": verdict.reason,
        "conditions_met": met,
        "applied": applied,
        "conditions": rows,
        "realized_percentage": (
            to_json_number(realized_percentage(rule, total, shipping)) if applied else 0
        ),
    }


def audit_summary(rules_report: List[dict]) -> Dict:
    """Счётчики по отчёту (иммутабельная агрегация через reduce)"""

    def count_class(acc: dict, row: dict) -> dict:
        key = row["discount_class"] or "UNKNOWN"
        return {**acc, key: acc.get(key, 0) + 1}

    return {
        "total_rules": len(rules_report),
        "eligible": sum(1 for r in rules_report if r["eligible"]),
        "conditions_met": sum(1 for r in rules_report if r["conditions_met"]),
        "applied": sum(1 for r in rules_report if r["applied"]),
        "by_class": reduce(count_class, rules_report, {}),
    }


def audit_report(input_data: dict, settings: Optional[EngineSettings] = None) -> Dict:
    """Полный отчёт: факты корзины + решение по каждому правилу"""
    settings = settings or DEFAULT_SETTINGS
    run_input = parse_input(input_data)
    parsed = load_rules(run_input.rules_json)
    rules = parsed.get_or_else(())

    rules_report = [audit_rule(rule, run_input, settings) for rule in rules]
    return {
        "cart": cart_facts(run_input, settings),
        "rule_set_error": parsed.value.get("error") if parsed.is_left else None,
        "inactive_rules": [r.id for r in filter(negate(is_active), rules)],
        "collection_ids": list(collect_collection_ids(rules)),
        "rules": rules_report,
        "summary": audit_summary(rules_report),
    }
