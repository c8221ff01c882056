import sys
import os
import json

sys.path.append(os.path.abspath(os.path.join(os.path.dirname(__file__), "..")))

import pytest

DATA_DIR = os.path.join(os.path.dirname(__file__), "..", "data")


def make_line(
    line_id="gid://shopify/CartLine/0",
    amount="100.00",
    quantity=1,
    weight=1.0,
    product_id="gid://shopify/Product/1",
    in_collection=False,
):
    return {
        "id": line_id,
        "quantity": quantity,
        "cost": {"subtotalAmount": {"amount": amount}},
        "merchandise": {
            "id": "gid://shopify/ProductVariant/1",
            "weight": weight,
            "product": {"id": product_id, "inAnyCollection": in_collection},
        },
    }


def make_rule(rule_id="1", discount_class="ORDER", value=10, **extra):
    rule = {
        "id": rule_id,
        "name": f"Rule {rule_id}",
        "discountClass": discount_class,
        "value": value,
        "active": True,
        "activationMethod": "automatic",
        "minimumAmount": 0,
        "conditions": [],
    }
    rule.update(extra)
    return rule


def make_input(
    rules=None,
    classes=(),
    lines=None,
    code=None,
    zip_code="00-001",
    country="PL",
    address1=None,
    groups=None,
    buyer=None,
    attributes=None,
    local_date="2025-06-07",
    rules_text=None,
):
    """Вход функции в формате хоста; правила сериализуются в metafield"""
    if groups is None:
        groups = [
            {
                "id": "gid://shopify/CartDeliveryGroup/1",
                "deliveryAddress": {
                    "zip": zip_code,
                    "address1": address1,
                    "city": "Warsaw",
                    "countryCode": country,
                },
            }
        ]
    cart = {
        "lines": [make_line()] if lines is None else lines,
        "deliveryGroups": groups,
        "buyerIdentity": buyer
        if buyer is not None
        else {"isAuthenticated": False, "customer": None},
    }
    cart.update(attributes or {})

    if rules_text is None:
        rules_text = json.dumps(rules if rules is not None else [])

    return {
        "cart": cart,
        "shop": {
            "metafield": {"value": rules_text},
            "localTime": {"date": local_date},
        },
        "discount": {"discountClasses": list(classes)},
        "triggeringDiscountCode": code,
    }


@pytest.fixture
def sample_cart():
    with open(os.path.join(DATA_DIR, "cart.json"), encoding="utf-8") as f:
        return json.load(f)


@pytest.fixture
def sample_rules():
    with open(os.path.join(DATA_DIR, "rules.json"), encoding="utf-8") as f:
        return json.load(f)


@pytest.fixture
def sample_input(sample_cart, sample_rules):
    """Демо-корзина и правила из data/, все классы, суббота 2025-06-07"""
    return {
        "cart": sample_cart,
        "shop": {
            "metafield": {"value": json.dumps(sample_rules)},
            "localTime": {"date": "2025-06-07"},
        },
        "discount": {"discountClasses": ["ORDER", "PRODUCT", "SHIPPING"]},
        "triggeringDiscountCode": None,
    }
