import sys
import os

sys.path.append(os.path.abspath(os.path.join(os.path.dirname(__file__), "..")))
from datetime import date
from decimal import Decimal

from conftest import make_input, make_line
from core.attributes import (
    cart_product_ids,
    cart_quantity,
    cart_total,
    cart_weight,
    customer_country,
    customer_order_count,
    customer_postal_code,
    resolve_postal_code,
    shop_local_date,
)
from core.config import EngineSettings
from core.parsing import parse_cart


def cart_of(**kwargs):
    return parse_cart(make_input(**kwargs)["cart"])


def test_cart_total_is_decimal_exact():
    lines = [make_line(amount="0.10") for _ in range(3)]
    assert cart_total(cart_of(lines=lines)) == Decimal("0.30")


def test_cart_quantity_and_weight():
    lines = [
        make_line(quantity=2, weight=1.5),
        make_line(quantity=3, weight=None),
        make_line(quantity=1, weight="heavy"),
    ]
    cart = cart_of(lines=lines)
    assert cart_quantity(cart) == 6
    assert cart_weight(cart) == Decimal("3.0")


def test_cart_product_ids_skip_missing_products():
    line = make_line()
    line["merchandise"]["product"] = None
    cart = cart_of(lines=[make_line(product_id="p1"), line])
    assert cart_product_ids(cart) == ("p1",)


def test_country_from_first_delivery_group():
    assert customer_country(cart_of(country="DE")).get_or_else(None) == "DE"
    assert customer_country(cart_of(groups=[])).is_none()


def test_postal_code_from_delivery_zip_is_trimmed():
    found = resolve_postal_code(cart_of(zip_code="  30-001 "))
    assert found.get_or_else(None) == ("30-001", "deliveryAddress.zip")


def test_postal_code_falls_back_to_attributes_in_order():
    cart = cart_of(
        zip_code="  ",
        attributes={
            "checkoutPostalCode": {"value": " "},
            "postalCode": {"value": "44-100"},
            "zipCode": {"value": "55-100"},
        },
    )
    assert resolve_postal_code(cart).get_or_else(None) == ("44-100", "attribute.postalCode")


def test_postal_code_falls_back_to_address_line():
    cart = cart_of(zip_code=None, address1="ul. Długa 5, 80-831 Gdańsk")
    assert customer_postal_code(cart).get_or_else(None) == "80-831"


def test_postal_code_absent_is_nothing_not_empty_string():
    cart = cart_of(zip_code="", address1="Main street 1")
    assert customer_postal_code(cart).is_none()


def test_postal_code_attribute_keys_are_configurable():
    settings = EngineSettings(postal_code_attribute_keys=["attribute"])
    cart = cart_of(zip_code=None, attributes={"attribute": {"value": "12-345"}})
    assert customer_postal_code(cart, settings).get_or_else(None) == "12-345"
    assert customer_postal_code(cart).is_none()


def test_order_count_defaults_to_zero_without_customer():
    assert customer_order_count(cart_of()) == 0
    buyer = {"isAuthenticated": True, "customer": {"id": "c1", "numberOfOrders": 4}}
    assert customer_order_count(cart_of(buyer=buyer)) == 4


def test_shop_local_date_formats():
    assert shop_local_date("2025-06-07").get_or_else(None) == date(2025, 6, 7)
    assert shop_local_date("2025-06-07T23:10:00Z").get_or_else(None) == date(2025, 6, 7)
    assert shop_local_date("yesterday").is_none()
    assert shop_local_date(None).is_none()


def test_extreme_weight_counts_as_missing():
    lines = [make_line(quantity=2, weight="9e999999"), make_line(quantity=1, weight=2)]
    assert cart_weight(cart_of(lines=lines)) == Decimal("2")


def test_largest_values_do_not_overflow():
    lines = [make_line(quantity=2, weight="1e308", amount="1e308") for _ in range(3)]
    cart = cart_of(lines=lines)
    assert cart_weight(cart) == Decimal("6e308")
    assert cart_total(cart) == Decimal("3e308")
