import sys
import os
import json
import time
from datetime import date

import streamlit as st

sys.path.append(os.path.abspath(os.path.join(os.path.dirname(__file__), "..")))

from core.async_ops import run_pipelines
from core.config import DEFAULT_SETTINGS, load_settings
from core.domain import DISCOUNT_CLASSES
from core.parsing import load_rules
from core.service import (
    cart_delivery_options_discounts_generate_run,
    cart_lines_discounts_generate_run,
)
from Audit_Service.report import audit_report

DATA_DIR = os.path.join(os.path.dirname(__file__), "..", "data")


# ============ Кэширование данных ============
@st.cache_data
def get_sample():
    with open(os.path.join(DATA_DIR, "cart.json"), encoding="utf-8") as f:
        cart = json.load(f)
    with open(os.path.join(DATA_DIR, "rules.json"), encoding="utf-8") as f:
        rules = json.load(f)
    return cart, rules


@st.cache_resource
def get_settings():
    path = os.path.join(DATA_DIR, "settings.yaml")
    return load_settings(path) if os.path.exists(path) else DEFAULT_SETTINGS


def build_input(cart: dict, rules_text: str, classes, code: str, local_date: date) -> dict:
    """Собирает вход функции в формате хоста"""
    return {
        "cart": cart,
        "shop": {
            "metafield": {"value": rules_text},
            "localTime": {"date": local_date.isoformat()},
        },
        "discount": {"discountClasses": list(classes)},
        "triggeringDiscountCode": code or None,
    }


def percentage_of(candidate: dict):
    return candidate["value"]["percentage"]["value"]


# ============ Инициализация ============
st.set_page_config(
    page_title="Discount Rules Simulator",
    page_icon="🏷️",
    layout="wide",
    initial_sidebar_state="expanded",
)

sample_cart, sample_rules = get_sample()
base_settings = get_settings()

if "cart_text" not in st.session_state:
    st.session_state.cart_text = json.dumps(sample_cart, indent=2, ensure_ascii=False)
if "rules_text" not in st.session_state:
    st.session_state.rules_text = json.dumps(sample_rules, indent=2, ensure_ascii=False)


# ============ SIDEBAR ============
with st.sidebar:
    st.header("⚙️ Контекст вызова")
    classes = st.multiselect("Классы скидок", DISCOUNT_CLASSES, default=list(DISCOUNT_CLASSES))
    code = st.text_input("Код скидки", value="")
    local_date = st.date_input("Дата магазина", value=date.today())

    st.divider()
    st.header("🔧 Настройки")
    debug_suffix = st.toggle("Отладочный суффикс", value=base_settings.debug_suffix)
    strict = st.toggle(
        "Неизвестные условия не выполнены",
        value=base_settings.unknown_condition_policy == "fail",
    )

settings = base_settings.model_copy(
    update={
        "debug_suffix": debug_suffix,
        "unknown_condition_policy": "fail" if strict else "pass",
    }
)


# ============ HEADER ============
st.title("🏷️ Симулятор правил скидок")
st.caption("Корзина + правила магазина → операции скидок checkout")

col1, col2 = st.columns(2)
with col1:
    st.subheader("🛒 Корзина (JSON)")
    st.text_area("cart", key="cart_text", height=420, label_visibility="collapsed")
with col2:
    st.subheader("📜 Правила (JSON)")
    st.text_area("rules", key="rules_text", height=420, label_visibility="collapsed")

try:
    cart = json.loads(st.session_state.cart_text)
except ValueError as exc:
    st.error(f"❌ Корзина: некорректный JSON ({exc})")
    st.stop()

parsed_rules = load_rules(st.session_state.rules_text)
if parsed_rules.is_left:
    st.warning(f"⚠️ Правила не загружены: {parsed_rules.value['error']} - набор считается пустым")

input_data = build_input(cart, st.session_state.rules_text, classes, code, local_date)

tab1, tab2, tab3 = st.tabs(["💸 Операции", "🔍 Аудит правил", "🧾 Сырой результат"])

with tab1:
    start = time.perf_counter()
    result = run_pipelines(input_data, settings)
    elapsed = (time.perf_counter() - start) * 1000
    st.caption(f"⏱️ Обе функции параллельно: {elapsed:.2f} ms")

    if not result["operations"]:
        st.info("Скидок нет - операций не сформировано")

    for operation in result["operations"]:
        kind, body = next(iter(operation.items()))
        st.markdown(f"**{kind}** · стратегия `{body['selectionStrategy']}`")
        for candidate in body["candidates"]:
            value = percentage_of(candidate)
            if value:
                st.success(f"{candidate['message']}: {value}%")
            else:
                st.warning(f"{candidate['message']}: {value}%")

with tab2:
    report = audit_report(input_data, settings)
    summary = report["summary"]

    c1, c2, c3, c4 = st.columns(4)
    c1.metric("Правил", summary["total_rules"])
    c2.metric("Допущено фильтром", summary["eligible"])
    c3.metric("Условия выполнены", summary["conditions_met"])
    c4.metric("Применено", summary["applied"])

    st.subheader("📦 Факты корзины")
    st.json(report["cart"])
    if report["collection_ids"]:
        st.caption("Коллекции для inAnyCollection: " + ", ".join(report["collection_ids"]))

    for row in report["rules"]:
        icon = "✅" if row["applied"] else "❌"
        with st.expander(f"{icon} {row['name']} ({row['discount_class']})"):
            if row["filter_reason"]:
                st.write(f"Фильтр: **{row['filter_reason']}**")
            st.write(f"Процент: **{row['realized_percentage']}%**")
            if row["conditions"]:
                st.table(row["conditions"])

with tab3:
    st.subheader("cart_lines_discounts_generate_run")
    st.json(cart_lines_discounts_generate_run(input_data, settings))
    st.subheader("cart_delivery_options_discounts_generate_run")
    st.json(cart_delivery_options_discounts_generate_run(input_data, settings))
