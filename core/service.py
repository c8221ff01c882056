"""
Оркестраторы двух функций скидок.

CartLinesDiscountService - скидки на заказ (ORDER) и товары (PRODUCT),
DeliveryDiscountService - скидки на доставку (SHIPPING).
Оба используют общие фильтр правил, проверку условий и расчёт процента.
"""

import logging
from dataclasses import dataclass
from decimal import Decimal
from typing import List, Optional, Tuple

from .attributes import cart_total, customer_postal_code
from .conditions import EvaluationContext, requires_postal_code, rule_conditions_met
from .config import DEFAULT_SETTINGS, EngineSettings
from .domain import ORDER, PRODUCT, SHIPPING, DiscountRule, RunInput
from .operations import (
    delivery_candidate,
    delivery_operation,
    not_met_message,
    order_operation,
    product_operation,
)
from .parsing import load_rules, parse_input
from .pricing import ZERO, realized_percentage
from .rules import by_class, filter_rule
from .tracing import get_tracer

MISSING_POSTAL_CODE = "missing postal code"
CONDITIONS_NOT_MET = "conditions not met"


@dataclass(frozen=True)
class ShippingDecision:
    rule: DiscountRule
    met: bool
    percentage: Decimal
    reason: Optional[str] = None


def empty_result() -> dict:
    return {"operations": []}


class DiscountService:
    """Общий каркас: ранний выход, загрузка правил, контекст проверки"""

    produces: Tuple[str, ...] = ()

    def __init__(
        self,
        settings: Optional[EngineSettings] = None,
        tracer: Optional[logging.Logger] = None,
    ):
        self.settings = settings or DEFAULT_SETTINGS
        self.tracer = get_tracer(tracer)

    def rules_from(self, rules_json: Optional[str]) -> Tuple[DiscountRule, ...]:
        """Набор правил из JSON; битый набор трассируется и считается пустым"""
        return self._rules_or_empty(load_rules(rules_json))

    def _rules_or_empty(self, parsed) -> Tuple[DiscountRule, ...]:
        def on_error(error: dict) -> tuple:
            self.tracer.warning("rule set ignored: %s", error.get("error"))
            return ()

        return parsed.fold(on_error, lambda rules: rules)

    def requested_classes(self, run_input: RunInput) -> Tuple[str, ...]:
        return tuple(c for c in self.produces if c in run_input.discount_classes)

    def context(self, run_input: RunInput) -> EvaluationContext:
        return EvaluationContext(
            settings=self.settings,
            shop_local_date=run_input.shop_local_date,
            tracer=self.tracer,
        )

    def run(self, run_input: RunInput) -> dict:
        if not run_input.cart.lines:
            self.tracer.debug("%s: empty cart", type(self).__name__)
            return empty_result()

        requested = self.requested_classes(run_input)
        if not requested:
            self.tracer.debug(
                "%s: no matching discount class in %s",
                type(self).__name__,
                list(run_input.discount_classes),
            )
            return empty_result()

        rules = self.rules_from(run_input.rules_json)
        self.tracer.debug("%s: %d rules loaded", type(self).__name__, len(rules))
        if not rules:
            return empty_result()

        return {"operations": self.build_operations(run_input, rules, requested)}

    def build_operations(
        self, run_input: RunInput, rules: Tuple[DiscountRule, ...], requested: Tuple[str, ...]
    ) -> List[dict]:
        raise NotImplementedError


class CartLinesDiscountService(DiscountService):
    produces = (ORDER, PRODUCT)

    def _qualifies(self, rule: DiscountRule, run_input: RunInput, total: Decimal, ignored=()) -> bool:
        verdict = filter_rule(
            rule, run_input.discount_classes, run_input.triggering_discount_code, total
        )
        if not verdict.eligible:
            self.tracer.info("rule %s skipped: %s", rule.id, verdict.reason)
            return False
        if not rule_conditions_met(rule, run_input.cart, self.context(run_input), ignored):
            self.tracer.info("rule %s skipped: %s", rule.id, CONDITIONS_NOT_MET)
            return False
        return True

    def build_operations(self, run_input, rules, requested):
        cart = run_input.cart
        total = cart_total(cart)
        operations: List[dict] = []

        if ORDER in requested:
            # скидки на весь заказ не зависят от страны и индекса
            ignored = tuple(self.settings.order_ignored_condition_types)
            for rule in filter(by_class(ORDER), rules):
                if self._qualifies(rule, run_input, total, ignored):
                    percentage = realized_percentage(rule, total)
                    self.tracer.info("rule %s applied: %s%% off order", rule.id, percentage)
                    operations.append(order_operation(rule, percentage, self.settings))

        if PRODUCT in requested:
            line_id = cart.lines[0].id
            for rule in filter(by_class(PRODUCT), rules):
                if self._qualifies(rule, run_input, total):
                    percentage = realized_percentage(rule, total)
                    self.tracer.info("rule %s applied: %s%% off line %s", rule.id, percentage, line_id)
                    operations.append(product_operation(rule, line_id, percentage))

        return operations


class DeliveryDiscountService(DiscountService):
    produces = (SHIPPING,)

    def decide(self, rule: DiscountRule, run_input: RunInput, total: Decimal) -> ShippingDecision:
        """
        Решение по правилу доставки. Невыполненное правило всё равно даёт
        кандидата с 0% и причиной, чтобы checkout мог её показать
        """
        verdict = filter_rule(
            rule, run_input.discount_classes, run_input.triggering_discount_code, total
        )
        if not verdict.eligible:
            return ShippingDecision(rule, False, ZERO, verdict.reason)

        cart = run_input.cart
        if requires_postal_code(rule) and customer_postal_code(cart, self.settings).is_none():
            return ShippingDecision(rule, False, ZERO, MISSING_POSTAL_CODE)

        if not rule_conditions_met(rule, cart, self.context(run_input)):
            return ShippingDecision(rule, False, ZERO, CONDITIONS_NOT_MET)

        return ShippingDecision(rule, True, realized_percentage(rule, total, shipping=True))

    def build_operations(self, run_input, rules, requested):
        total = cart_total(run_input.cart)
        decisions = tuple(
            self.decide(rule, run_input, total) for rule in filter(by_class(SHIPPING), rules)
        )
        for d in decisions:
            self.tracer.info(
                "rule %s: %s",
                d.rule.id,
                f"{d.percentage}% off delivery" if d.met else d.reason,
            )

        def message(d: ShippingDecision) -> str:
            if d.met:
                return self.settings.met_message
            return not_met_message(d.rule, d.reason or "", self.settings)

        candidates = [
            delivery_candidate(group.id, d.percentage, message(d))
            for group in run_input.cart.delivery_groups
            for d in decisions
        ]
        return [delivery_operation(candidates)] if candidates else []


# ============ Точки входа функций ============


def cart_lines_discounts_generate_run(
    input_data: dict,
    settings: Optional[EngineSettings] = None,
    tracer: Optional[logging.Logger] = None,
) -> dict:
    return CartLinesDiscountService(settings, tracer).run(parse_input(input_data))


def cart_delivery_options_discounts_generate_run(
    input_data: dict,
    settings: Optional[EngineSettings] = None,
    tracer: Optional[logging.Logger] = None,
) -> dict:
    return DeliveryDiscountService(settings, tracer).run(parse_input(input_data))
