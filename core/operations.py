"""Сборка выходных операций в формате хоста (camelCase-словари)."""

from decimal import Decimal, InvalidOperation
from typing import Any, List, Optional

from .config import DEFAULT_SETTINGS, EngineSettings
from .domain import DiscountRule
from .pricing import to_json_number

# значения перечислений *DiscountSelectionStrategy хоста
SELECTION_FIRST = "FIRST"
SELECTION_ALL = "ALL"

DEFAULT_CART_LINE_ID = "gid://shopify/CartLine/0"


def format_amount(value: Any) -> str:
    """10 -> '10', 10.50 -> '10.5', строки как есть"""
    if value is None or isinstance(value, bool):
        return "0"
    if isinstance(value, str):
        return value
    try:
        return format(Decimal(str(value)).normalize(), "f")
    except InvalidOperation:
        return str(value)


def _percentage_value(percentage: Decimal) -> dict:
    return {"percentage": {"value": to_json_number(percentage)}}


# ============ ORDER ============


def order_message(rule: DiscountRule, settings: EngineSettings = DEFAULT_SETTINGS) -> str:
    if rule.description:
        return rule.description
    if rule.is_fixed_amount:
        currency = rule.currency_code or settings.default_currency
        return f"{format_amount(rule.fixed_amount)} {currency} OFF ORDER"
    return f"{format_amount(rule.value)}% OFF ORDER"


def order_operation(
    rule: DiscountRule, percentage: Decimal, settings: EngineSettings = DEFAULT_SETTINGS
) -> dict:
    return {
        "orderDiscountsAdd": {
            "candidates": [
                {
                    "message": order_message(rule, settings),
                    "targets": [{"orderSubtotal": {"excludedCartLineIds": []}}],
                    "value": _percentage_value(percentage),
                }
            ],
            "selectionStrategy": SELECTION_FIRST,
        }
    }


# ============ PRODUCT ============


def product_message(rule: DiscountRule) -> str:
    return rule.description or f"{format_amount(rule.value)}% OFF PRODUCTS"


def product_operation(rule: DiscountRule, line_id: Optional[str], percentage: Decimal) -> dict:
    return {
        "productDiscountsAdd": {
            "candidates": [
                {
                    "message": product_message(rule),
                    "targets": [{"cartLine": {"id": line_id or DEFAULT_CART_LINE_ID}}],
                    "value": _percentage_value(percentage),
                }
            ],
            "selectionStrategy": SELECTION_FIRST,
        }
    }


# ============ SHIPPING ============


def not_met_message(
    rule: DiscountRule, reason: str, settings: EngineSettings = DEFAULT_SETTINGS
) -> str:
    """
    Приоритет: checkoutNotMetMessage правила -> conditionsNotMetMessage
    старого формата -> общий текст; затем отладочный суффикс с причиной
    """
    legacy = rule.legacy_conditions.not_met_message if rule.legacy_conditions else None
    candidates = (rule.not_met_message, legacy)
    custom = next((m.strip() for m in candidates if isinstance(m, str) and m.strip()), None)
    message = custom or settings.not_met_message
    if settings.debug_suffix:
        message += f" [DEBUG: {reason}]"
    return message


def delivery_candidate(group_id: Optional[str], percentage: Decimal, message: str) -> dict:
    return {
        "message": message,
        "targets": [{"deliveryGroup": {"id": group_id}}],
        "value": _percentage_value(percentage),
    }


def delivery_operation(candidates: List[dict]) -> dict:
    """Все кандидаты доставки - в одной операции со стратегией ALL"""
    return {
        "deliveryDiscountsAdd": {
            "candidates": list(candidates),
            "selectionStrategy": SELECTION_ALL,
        }
    }
