import sys
import os

sys.path.append(os.path.abspath(os.path.join(os.path.dirname(__file__), "..")))
import copy

from Audit_Service.report import audit_report
from conftest import make_input, make_line, make_rule
from core.config import EngineSettings
from core.async_ops import run_pipelines
from core.service import cart_delivery_options_discounts_generate_run, cart_lines_discounts_generate_run

DEFAULT_NOT_MET = "Conditions for this discount are not met yet."


def run(settings=None, **kwargs):
    return cart_delivery_options_discounts_generate_run(make_input(**kwargs), settings)


def shipping_rule(rule_id="s", value=100, **extra):
    return make_rule(rule_id, "SHIPPING", value, **extra)


def candidates(result):
    assert len(result["operations"]) == 1
    body = result["operations"][0]["deliveryDiscountsAdd"]
    assert body["selectionStrategy"] == "ALL"
    return body["candidates"]


def percentage(candidate):
    return candidate["value"]["percentage"]["value"]


# Сценарии


def test_unconditioned_shipping_rule_is_free_delivery():
    result = run(rules=[shipping_rule()], classes=["SHIPPING"])
    (candidate,) = candidates(result)
    assert candidate["message"] == "FREE DELIVERY"
    assert percentage(candidate) == 100
    assert candidate["targets"] == [{"deliveryGroup": {"id": "gid://shopify/CartDeliveryGroup/1"}}]


def test_no_shipping_class_requested():
    assert run(rules=[shipping_rule()], classes=["ORDER"]) == {"operations": []}


def test_empty_cart_and_empty_rules():
    assert run(rules=[shipping_rule()], classes=["SHIPPING"], lines=[]) == {"operations": []}
    assert run(rules=[], classes=["SHIPPING"]) == {"operations": []}


def test_no_delivery_groups_gives_no_operations():
    assert run(rules=[shipping_rule()], classes=["SHIPPING"], groups=[]) == {"operations": []}


def test_partial_percentage_value_keeps_met_message():
    (candidate,) = candidates(run(rules=[shipping_rule(value=50)], classes=["SHIPPING"]))
    assert percentage(candidate) == 50
    assert candidate["message"] == "FREE DELIVERY"


# Невыполненные правила дают кандидата с нулём


def test_code_mismatch_gives_zero_value_candidate():
    rules = [shipping_rule(activationMethod="code", discountCode="SHIPFREE")]
    (candidate,) = candidates(run(rules=rules, classes=["SHIPPING"], code="OTHER"))
    assert percentage(candidate) == 0
    assert candidate["message"] == f"{DEFAULT_NOT_MET} [DEBUG: discount code not applied]"


def test_minimum_amount_unmet_gives_zero_value_candidate():
    rules = [shipping_rule(minimumAmount=200)]
    (candidate,) = candidates(run(rules=rules, classes=["SHIPPING"]))
    assert percentage(candidate) == 0
    assert DEFAULT_NOT_MET in candidate["message"]
    assert candidate["message"].endswith("[DEBUG: minimum amount not reached]")


def test_failed_condition_uses_custom_message():
    rules = [
        shipping_rule(
            checkoutNotMetMessage="Free delivery only in Warsaw",
            conditions=[{"type": "postal_code", "operator": "contains", "value": "00-"}],
        )
    ]
    (candidate,) = candidates(run(rules=rules, classes=["SHIPPING"], zip_code="30-001"))
    assert percentage(candidate) == 0
    assert candidate["message"] == "Free delivery only in Warsaw [DEBUG: conditions not met]"


def test_missing_postal_code_reason():
    rules = [
        shipping_rule(
            conditions=[],
            advancedConditions={"postalCodeEnabled": True, "allowedPostalCodes": "00-*"},
        )
    ]
    (candidate,) = candidates(run(rules=rules, classes=["SHIPPING"], zip_code=None))
    assert candidate["message"].endswith("[DEBUG: missing postal code]")


def test_postal_code_from_address_line_satisfies_rule():
    rules = [shipping_rule(advancedConditions={"postalCodeEnabled": True, "allowedPostalCodes": "00-*"})]
    result = run(
        rules=rules,
        classes=["SHIPPING"],
        zip_code="",
        address1="ul. Marszałkowska 10, 00-590 Warszawa",
    )
    (candidate,) = candidates(result)
    assert percentage(candidate) == 100


def test_shipping_checks_geo_conditions():
    rules = [shipping_rule(conditions=[{"type": "country", "operator": "equals", "value": "DE"}])]
    (candidate,) = candidates(run(rules=rules, classes=["SHIPPING"], country="PL"))
    assert percentage(candidate) == 0


def test_debug_suffix_can_be_disabled():
    settings = EngineSettings(debug_suffix=False)
    rules = [shipping_rule(minimumAmount=500)]
    (candidate,) = candidates(run(settings, rules=rules, classes=["SHIPPING"]))
    assert candidate["message"] == DEFAULT_NOT_MET


# Несколько правил и групп


def test_fixed_amount_shipping_rule_is_full_discount():
    rules = [shipping_rule(discountValueType="fixed_amount", discountAmount=5)]
    result = run(rules=rules, classes=["SHIPPING"], lines=[make_line(amount="300")])
    assert [percentage(c) for c in candidates(result)] == [100]


def test_candidates_per_group_and_rule():
    groups = [
        {"id": "g1", "deliveryAddress": {"zip": "00-001", "countryCode": "PL"}},
        {"id": "g2", "deliveryAddress": {"zip": "99-999", "countryCode": "DE"}},
    ]
    rules = [
        shipping_rule("met"),
        shipping_rule("unmet", minimumAmount=1000),
        shipping_rule("off", active=False),
    ]
    result = run(rules=rules, classes=["SHIPPING"], groups=groups)
    pairs = [(c["targets"][0]["deliveryGroup"]["id"], percentage(c)) for c in candidates(result)]
    assert pairs == [("g1", 100), ("g1", 0), ("g2", 100), ("g2", 0)]


def test_sample_data(sample_input):
    result = cart_delivery_options_discounts_generate_run(sample_input)
    (candidate,) = candidates(result)
    assert candidate["message"] == "FREE DELIVERY"
    assert percentage(candidate) == 100


def test_idempotent():
    raw = make_input(rules=[shipping_rule(), shipping_rule("x", minimumAmount=999)], classes=["SHIPPING"])
    assert cart_delivery_options_discounts_generate_run(raw) == cart_delivery_options_discounts_generate_run(raw)


def test_extreme_weight_counts_as_missing():
    rules = [shipping_rule(conditions=[{"type": "cart_weight", "operator": "<", "value": "1"}])]
    lines = [make_line(quantity=2, weight="9e999999")]
    (candidate,) = candidates(run(rules=rules, classes=["SHIPPING"], lines=lines))
    assert percentage(candidate) == 100


def test_input_not_mutated(sample_input):
    snapshot = copy.deepcopy(sample_input)
    cart_lines_discounts_generate_run(sample_input)
    cart_delivery_options_discounts_generate_run(sample_input)
    audit_report(sample_input)
    run_pipelines(sample_input)
    assert sample_input == snapshot
