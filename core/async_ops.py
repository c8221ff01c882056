import asyncio
import logging
from typing import Dict, List, Optional

from .config import EngineSettings
from .service import (
    cart_delivery_options_discounts_generate_run,
    cart_lines_discounts_generate_run,
)


# ============ Асинхронные обёртки пайплайнов ============


async def lines_discounts_async(
    input_data: dict,
    settings: Optional[EngineSettings] = None,
    tracer: Optional[logging.Logger] = None,
) -> Dict:
    await asyncio.sleep(0)
    return cart_lines_discounts_generate_run(input_data, settings, tracer)


async def delivery_discounts_async(
    input_data: dict,
    settings: Optional[EngineSettings] = None,
    tracer: Optional[logging.Logger] = None,
) -> Dict:
    await asyncio.sleep(0)
    return cart_delivery_options_discounts_generate_run(input_data, settings, tracer)


async def run_pipelines_async(
    input_data: dict,
    settings: Optional[EngineSettings] = None,
    tracer: Optional[logging.Logger] = None,
) -> Dict:
    """
    Обе функции над одним входом параллельно.
    Общего изменяемого состояния нет, поэтому порядок завершения не важен;
    операции склеиваются: сначала заказ/товары, потом доставка
    """
    lines, delivery = await asyncio.gather(
        lines_discounts_async(input_data, settings, tracer),
        delivery_discounts_async(input_data, settings, tracer),
    )
    return {"operations": lines["operations"] + delivery["operations"]}


# ============ Пакетная обработка ============


async def evaluate_batch_async(
    inputs: List[dict],
    batch_size: int = 10,
    settings: Optional[EngineSettings] = None,
    tracer: Optional[logging.Logger] = None,
) -> List[Dict]:
    """
    Обрабатывает много входов пакетами параллельно.
    Результаты в том же порядке, что и inputs
    """

    async def process_batch(batch: List[dict]) -> List[Dict]:
        return list(
            await asyncio.gather(*(run_pipelines_async(i, settings, tracer) for i in batch))
        )

    size = max(1, batch_size)
    batches = [inputs[i : i + size] for i in range(0, len(inputs), size)]
    results = await asyncio.gather(*(process_batch(b) for b in batches))
    return [result for batch in results for result in batch]


# ============ Синхронные обёртки ============


def run_pipelines(
    input_data: dict,
    settings: Optional[EngineSettings] = None,
    tracer: Optional[logging.Logger] = None,
) -> Dict:
    """Синхронная обёртка для UI и скриптов"""
    return asyncio.run(run_pipelines_async(input_data, settings, tracer))


def run_batch(
    inputs: List[dict],
    batch_size: int = 10,
    settings: Optional[EngineSettings] = None,
    tracer: Optional[logging.Logger] = None,
) -> List[Dict]:
    return asyncio.run(evaluate_batch_async(inputs, batch_size, settings, tracer))
