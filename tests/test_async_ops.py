import sys
import os

sys.path.append(os.path.abspath(os.path.join(os.path.dirname(__file__), "..")))
import pytest

from conftest import make_input, make_line, make_rule
from core.async_ops import (
    evaluate_batch_async,
    run_batch,
    run_pipelines,
    run_pipelines_async,
)
from core.service import (
    cart_delivery_options_discounts_generate_run,
    cart_lines_discounts_generate_run,
)


def all_classes_input(amount="100.00"):
    return make_input(
        rules=[make_rule(value=10), make_rule("s", "SHIPPING", 100, minimumAmount=150)],
        classes=["ORDER", "SHIPPING"],
        lines=[make_line(amount=amount)],
    )


def kinds(result):
    return [next(iter(op)) for op in result["operations"]]


@pytest.mark.asyncio
async def test_run_pipelines_async_merges_lines_then_delivery():
    raw = all_classes_input()
    result = await run_pipelines_async(raw)
    expected = (
        cart_lines_discounts_generate_run(raw)["operations"]
        + cart_delivery_options_discounts_generate_run(raw)["operations"]
    )
    assert result == {"operations": expected}
    assert kinds(result) == ["orderDiscountsAdd", "deliveryDiscountsAdd"]


@pytest.mark.asyncio
async def test_evaluate_batch_async_keeps_input_order():
    inputs = [all_classes_input(str(amount)) for amount in (100, 200, 50, 300, 120)]
    results = await evaluate_batch_async(inputs, batch_size=2)
    assert len(results) == 5
    shipping = [
        op["deliveryDiscountsAdd"]["candidates"][0]["value"]["percentage"]["value"]
        for r in results
        for op in r["operations"]
        if "deliveryDiscountsAdd" in op
    ]
    assert shipping == [0, 100, 0, 100, 0]


@pytest.mark.asyncio
async def test_evaluate_batch_async_empty():
    assert await evaluate_batch_async([]) == []


def test_sync_wrappers():
    raw = all_classes_input("200")
    assert run_pipelines(raw) == run_batch([raw], batch_size=0)[0]
