import json
from decimal import Decimal
from typing import Any, Dict, Optional, Tuple

from .domain import (
    BuyerIdentity,
    Cart,
    Condition,
    Customer,
    DeliveryAddress,
    DeliveryGroup,
    DiscountRule,
    LegacyConditions,
    LineItem,
    Merchandise,
    Product,
    RunInput,
)
from .ftypes import Either
from .operators import parse_number, split_list

# ключи корзины, которые не являются атрибутами
_CART_FIELDS = {"lines", "deliveryGroups", "buyerIdentity", "attributes", "cost"}


def _dict(raw: Any) -> dict:
    return raw if isinstance(raw, dict) else {}


def _list(raw: Any) -> list:
    return raw if isinstance(raw, list) else []


def _text(raw: Any) -> Optional[str]:
    return raw if isinstance(raw, str) else None


def _decimal(raw: Any) -> Decimal:
    return parse_number(raw).get_or_else(Decimal("0"))


# ============ Корзина ============


def _line_subtotal(line: dict) -> Decimal:
    """cost.subtotalAmount.amount (формат хоста) или плоский subtotalAmount"""
    amount = _dict(_dict(line.get("cost")).get("subtotalAmount")).get("amount")
    if amount is None:
        flat = line.get("subtotalAmount")
        amount = _dict(flat).get("amount") if isinstance(flat, dict) else flat
    return _decimal(amount)


def parse_line(line: dict) -> LineItem:
    merch = line.get("merchandise")
    merchandise = None
    if isinstance(merch, dict):
        product = merch.get("product")
        merchandise = Merchandise(
            id=_text(merch.get("id")),
            weight=merch.get("weight"),
            product=Product(
                id=_text(product.get("id")),
                in_any_collection=product.get("inAnyCollection") is True,
            )
            if isinstance(product, dict)
            else None,
        )

    return LineItem(
        id=_text(line.get("id")),
        quantity=int(parse_number(line.get("quantity"), integer=True).get_or_else(0)),
        subtotal=_line_subtotal(line),
        merchandise=merchandise,
    )


def parse_delivery_group(group: dict) -> DeliveryGroup:
    address = group.get("deliveryAddress")
    return DeliveryGroup(
        id=_text(group.get("id")),
        delivery_address=DeliveryAddress(
            zip=_text(address.get("zip")),
            address1=_text(address.get("address1")),
            city=_text(address.get("city")),
            country_code=_text(address.get("countryCode")),
            province_code=_text(address.get("provinceCode")),
        )
        if isinstance(address, dict)
        else None,
    )


def parse_buyer_identity(raw: Any) -> Optional[BuyerIdentity]:
    if not isinstance(raw, dict):
        return None
    customer = raw.get("customer")
    return BuyerIdentity(
        is_authenticated=raw.get("isAuthenticated") is True,
        customer=Customer(
            id=_text(customer.get("id")),
            has_any_tag=customer.get("hasAnyTag") is True,
            number_of_orders=int(
                parse_number(customer.get("numberOfOrders"), integer=True).get_or_else(0)
            ),
        )
        if isinstance(customer, dict)
        else None,
    )


def parse_attributes(cart: dict) -> Dict[str, str]:
    """
    Атрибуты корзины приходят в трёх формах:
    - алиасы запроса: cart["checkoutPostalCode"] = {"value": "..."}
    - словарь cart["attributes"] = {key: value}
    - список cart["attributes"] = [{"key": ..., "value": ...}]
    """
    attributes: Dict[str, str] = {}

    raw = cart.get("attributes")
    if isinstance(raw, dict):
        attributes.update({str(k): v for k, v in raw.items() if isinstance(v, str)})
    for item in _list(raw):
        if isinstance(item, dict) and isinstance(item.get("value"), str):
            attributes[str(item.get("key"))] = item["value"]

    for key, value in cart.items():
        if key in _CART_FIELDS or not isinstance(value, dict):
            continue
        if isinstance(value.get("value"), str):
            attributes[key] = value["value"]

    return attributes


def parse_cart(raw: Any) -> Cart:
    cart = _dict(raw)
    return Cart(
        lines=tuple(parse_line(l) for l in _list(cart.get("lines")) if isinstance(l, dict)),
        delivery_groups=tuple(
            parse_delivery_group(g)
            for g in _list(cart.get("deliveryGroups"))
            if isinstance(g, dict)
        ),
        buyer_identity=parse_buyer_identity(cart.get("buyerIdentity")),
        attributes=parse_attributes(cart),
    )


def parse_input(raw: dict) -> RunInput:
    """Входные данные функции (JSON хоста) -> RunInput"""
    shop = _dict(raw.get("shop"))
    metafield = _dict(shop.get("metafield")) or _dict(shop.get("legacyMetafield"))
    classes = _list(_dict(raw.get("discount")).get("discountClasses"))

    return RunInput(
        cart=parse_cart(raw.get("cart")),
        rules_json=_text(metafield.get("value")),
        shop_local_date=_text(_dict(shop.get("localTime")).get("date")),
        discount_classes=tuple(c for c in classes if isinstance(c, str)),
        triggering_discount_code=_text(raw.get("triggeringDiscountCode")),
    )


# ============ Правила скидок ============


def parse_condition(raw: dict) -> Condition:
    value = raw.get("value")
    return Condition(
        type=str(raw.get("type") or ""),
        operator=str(raw.get("operator") or ""),
        value="" if value is None else str(value),
    )


def parse_legacy_conditions(raw: Any) -> Optional[LegacyConditions]:
    if not isinstance(raw, dict) or not raw:
        return None

    countries = raw.get("allowedCountries")
    if isinstance(countries, str):
        allowed_countries = split_list(countries)
    else:
        allowed_countries = tuple(str(c) for c in _list(countries))

    def opt(key: str) -> Optional[str]:
        value = raw.get(key)
        return None if value is None else str(value)

    return LegacyConditions(
        country_enabled=bool(raw.get("countryEnabled")),
        allowed_countries=allowed_countries,
        cart_total_enabled=bool(raw.get("cartTotalEnabled")),
        minimum_amount=opt("minimumAmount"),
        cart_quantity_enabled=bool(raw.get("cartQuantityEnabled")),
        minimum_quantity=opt("minimumQuantity"),
        postal_code_enabled=bool(raw.get("postalCodeEnabled")),
        allowed_postal_codes=opt("allowedPostalCodes"),
        weight_enabled=bool(raw.get("weightEnabled")),
        min_weight=opt("minWeight"),
        max_weight=opt("maxWeight"),
        not_met_message=_text(raw.get("conditionsNotMetMessage")),
    )


def parse_rule(record: dict) -> DiscountRule:
    """Одна запись конфигурации -> DiscountRule; лишние поля игнорируются"""
    rule_id = str(record.get("id", ""))
    fixed_raw = record.get("discountAmount", record.get("fixedAmount"))
    value_type = record.get("discountValueType")
    if not isinstance(value_type, str):
        value_type = "fixed_amount" if "fixedAmount" in record else "percentage"

    return DiscountRule(
        id=rule_id,
        name=str(record.get("name") or record.get("title") or rule_id),
        description=_text(record.get("description")),
        discount_class=_text(record.get("discountClass")),
        active=bool(record.get("active")),
        activation_method=str(record.get("activationMethod") or "automatic"),
        discount_code=_text(record.get("discountCode")),
        minimum_amount=_decimal(record.get("minimumAmount")),
        value_type=value_type,
        value=record.get("value", record.get("percentage", 0)),
        fixed_amount=_decimal(fixed_raw),
        currency_code=_text(record.get("currencyCode") or record.get("currency")),
        conditions=tuple(
            parse_condition(c) for c in _list(record.get("conditions")) if isinstance(c, dict)
        ),
        legacy_conditions=parse_legacy_conditions(
            record.get("basicConditions") or record.get("advancedConditions")
        ),
        not_met_message=_text(record.get("checkoutNotMetMessage")),
    )


def load_rules(rules_json: Optional[str]) -> Either[dict, Tuple[DiscountRule, ...]]:
    """
    JSON-массив правил -> Either[error, rules]
    Отсутствие записи - пустой набор, битый JSON - Left
    """
    if rules_json is None or not rules_json.strip():
        return Either.right(())

    try:
        data = json.loads(rules_json)
    except ValueError as exc:
        return Either.left({"error": f"invalid rule set JSON: {exc}"})

    if not isinstance(data, list):
        return Either.left({"error": "rule set must be a JSON array"})

    return Either.right(tuple(parse_rule(r) for r in data if isinstance(r, dict)))
