import re
from datetime import date, datetime
from decimal import Decimal
from functools import reduce
from typing import Optional, Tuple

from .config import DEFAULT_SETTINGS, EngineSettings
from .domain import Cart, Customer, DeliveryAddress, LineItem
from .ftypes import Maybe, first_some
from .operators import parse_number

# ============ Суммы по корзине ============


def cart_total(cart: Cart) -> Decimal:
    """Сумма subtotal по строкам (Decimal, без накопления ошибок float)"""
    return reduce(lambda acc, line: acc + line.subtotal, cart.lines, Decimal("0"))


def cart_quantity(cart: Cart) -> int:
    return reduce(lambda acc, line: acc + line.quantity, cart.lines, 0)


def line_weight(line: LineItem) -> Decimal:
    """Вес единицы × количество; отсутствующий или битый вес = 0"""
    raw = line.merchandise.weight if line.merchandise else None
    weight = parse_number(raw).get_or_else(Decimal("0"))
    return weight * line.quantity


def cart_weight(cart: Cart) -> Decimal:
    return reduce(lambda acc, line: acc + line_weight(line), cart.lines, Decimal("0"))


def cart_product_ids(cart: Cart) -> Tuple[str, ...]:
    return tuple(
        line.merchandise.product.id
        for line in cart.lines
        if line.merchandise and line.merchandise.product and line.merchandise.product.id
    )


# ============ Адрес доставки ============


def delivery_address(cart: Cart) -> Maybe[DeliveryAddress]:
    """Учитывается только первая группа доставки"""
    if not cart.delivery_groups:
        return Maybe.nothing()
    return Maybe(cart.delivery_groups[0].delivery_address)


def customer_country(cart: Cart) -> Maybe[str]:
    return delivery_address(cart).bind(lambda a: Maybe.from_text(a.country_code))


def resolve_postal_code(
    cart: Cart, settings: EngineSettings = DEFAULT_SETTINGS
) -> Maybe[Tuple[str, str]]:
    """
    Почтовый индекс и его источник, строго по приоритету:
      1. zip адреса доставки
      2. атрибуты корзины из settings.postal_code_attribute_keys (первый непустой)
      3. шаблон NN-NNN в address1
    """
    address = delivery_address(cart)

    def from_zip() -> Maybe[Tuple[str, str]]:
        return address.bind(lambda a: Maybe.from_text(a.zip)).map(
            lambda z: (z, "deliveryAddress.zip")
        )

    def from_attributes() -> Maybe[Tuple[str, str]]:
        return first_some(
            *(
                (lambda key=key: Maybe.from_text(cart.attributes.get(key)).map(
                    lambda z: (z, f"attribute.{key}")
                ))
                for key in settings.postal_code_attribute_keys
            )
        )

    def from_address_line() -> Maybe[Tuple[str, str]]:
        pattern = re.compile(settings.postal_code_pattern)
        return (
            address.bind(lambda a: Maybe.from_text(a.address1))
            .map(pattern.search)
            .map(lambda m: (m.group(0), "deliveryAddress.address1"))
        )

    return first_some(from_zip, from_attributes, from_address_line)


def customer_postal_code(cart: Cart, settings: EngineSettings = DEFAULT_SETTINGS) -> Maybe[str]:
    return resolve_postal_code(cart, settings).map(lambda found: found[0])


# ============ Покупатель ============


def customer(cart: Cart) -> Maybe[Customer]:
    if cart.buyer_identity is None:
        return Maybe.nothing()
    return Maybe(cart.buyer_identity.customer)


def is_authenticated(cart: Cart) -> bool:
    return cart.buyer_identity is not None and cart.buyer_identity.is_authenticated is True


def customer_order_count(cart: Cart) -> int:
    """Без покупателя - ноль заказов"""
    return customer(cart).map(lambda c: c.number_of_orders or 0).get_or_else(0)


# ============ Дата магазина ============


def shop_local_date(raw: Optional[str]) -> Maybe[date]:
    """shop.localTime.date: '2025-06-01' или полная ISO-метка"""
    text = Maybe.from_text(raw)
    if text.is_none():
        return Maybe.nothing()
    try:
        return Maybe.some(date.fromisoformat(text.value[:10]))
    except ValueError:
        pass
    try:
        return Maybe.some(datetime.fromisoformat(text.value.replace("Z", "+00:00")).date())
    except ValueError:
        return Maybe.nothing()
