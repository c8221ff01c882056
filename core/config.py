"""Настройки движка скидок: значения по умолчанию + загрузка из YAML."""

from __future__ import annotations

import os
import re
from pathlib import Path
from typing import Any, List, Literal

import yaml
from pydantic import BaseModel

_VAR_PATTERN = re.compile(r"\$\{([^}]+)\}")


class EngineSettings(BaseModel):
    # источники почтового индекса после адреса доставки, в порядке приоритета
    postal_code_attribute_keys: List[str] = [
        "checkoutPostalCode",
        "shippingZip",
        "postalCode",
        "zipCode",
        "deliveryPostalCode",
    ]
    # польский формат NN-NNN в address1
    postal_code_pattern: str = r"\b\d{2}-\d{3}\b"
    # теги, которыми хост опрашивает hasAnyTag
    known_customer_tags: List[str] = [
        "VIP",
        "premium",
        "stały-klient",
        "sigma",
        "wholesale",
        "employee",
    ]
    # для ORDER эти условия не проверяются
    order_ignored_condition_types: List[str] = ["country", "postal_code"]
    unknown_condition_policy: Literal["pass", "fail"] = "pass"
    default_currency: str = "USD"
    met_message: str = "FREE DELIVERY"
    not_met_message: str = "Conditions for this discount are not met yet."
    debug_suffix: bool = True


def _expand_str(value: str) -> str:
    def replacer(match: re.Match[str]) -> str:
        token = match.group(1)
        if ":-" in token:
            key, default = token.split(":-", 1)
            actual = os.getenv(key, "")
            return actual if actual.strip() else default
        actual = os.getenv(token, "")
        if not actual.strip():
            raise ValueError(f"missing environment variable: {token}")
        return actual

    return _VAR_PATTERN.sub(replacer, value)


def _expand_payload(value: Any) -> Any:
    if isinstance(value, str):
        return _expand_str(value)
    if isinstance(value, list):
        return [_expand_payload(item) for item in value]
    if isinstance(value, dict):
        return {str(key): _expand_payload(item) for key, item in value.items()}
    return value


def load_settings(path: Path) -> EngineSettings:
    data = yaml.safe_load(Path(path).read_text(encoding="utf-8")) or {}
    expanded = _expand_payload(data)
    return EngineSettings(**expanded)


DEFAULT_SETTINGS = EngineSettings()
