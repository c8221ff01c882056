from dataclasses import dataclass, field
from decimal import Decimal
from typing import Any, Dict, Optional, Tuple


ORDER = "ORDER"
PRODUCT = "PRODUCT"
SHIPPING = "SHIPPING"

DISCOUNT_CLASSES = (ORDER, PRODUCT, SHIPPING)


@dataclass(frozen=True)
class Product:
    id: Optional[str]
    in_any_collection: bool = False


@dataclass(frozen=True)
class Merchandise:
    id: Optional[str]
    weight: Any = None  # сырое значение из запроса, может быть None или строкой
    product: Optional[Product] = None


@dataclass(frozen=True)
class LineItem:
    id: Optional[str]
    quantity: int
    subtotal: Decimal
    merchandise: Optional[Merchandise] = None


@dataclass(frozen=True)
class DeliveryAddress:
    zip: Optional[str] = None
    address1: Optional[str] = None
    city: Optional[str] = None
    country_code: Optional[str] = None
    province_code: Optional[str] = None


@dataclass(frozen=True)
class DeliveryGroup:
    id: Optional[str]
    delivery_address: Optional[DeliveryAddress] = None


@dataclass(frozen=True)
class Customer:
    id: Optional[str]
    has_any_tag: bool = False
    number_of_orders: int = 0


@dataclass(frozen=True)
class BuyerIdentity:
    is_authenticated: bool = False
    customer: Optional[Customer] = None


@dataclass(frozen=True)
class Cart:
    lines: Tuple[LineItem, ...]
    delivery_groups: Tuple[DeliveryGroup, ...] = ()
    buyer_identity: Optional[BuyerIdentity] = None
    attributes: Dict[str, str] = field(default_factory=dict)


@dataclass(frozen=True)
class Condition:
    type: str
    operator: str
    value: str


@dataclass(frozen=True)
class LegacyConditions:
    """Старый формат условий (basicConditions / advancedConditions)"""

    country_enabled: bool = False
    allowed_countries: Tuple[str, ...] = ()
    cart_total_enabled: bool = False
    minimum_amount: Optional[str] = None
    cart_quantity_enabled: bool = False
    minimum_quantity: Optional[str] = None
    postal_code_enabled: bool = False
    allowed_postal_codes: Optional[str] = None
    weight_enabled: bool = False
    min_weight: Optional[str] = None
    max_weight: Optional[str] = None
    not_met_message: Optional[str] = None

    def is_empty(self) -> bool:
        return not any(
            (
                self.country_enabled,
                self.cart_total_enabled,
                self.cart_quantity_enabled,
                self.postal_code_enabled,
                self.weight_enabled,
            )
        )


@dataclass(frozen=True)
class DiscountRule:
    id: str
    name: str
    description: Optional[str]
    discount_class: Optional[str]
    active: bool
    activation_method: str = "automatic"
    discount_code: Optional[str] = None
    minimum_amount: Decimal = Decimal("0")
    value_type: str = "percentage"
    value: Any = 0  # процент как пришёл из конфигурации
    fixed_amount: Decimal = Decimal("0")
    currency_code: Optional[str] = None
    conditions: Tuple[Condition, ...] = ()
    legacy_conditions: Optional[LegacyConditions] = None
    not_met_message: Optional[str] = None

    @property
    def is_code_activated(self) -> bool:
        return self.activation_method in ("code", "discount_code")

    @property
    def is_fixed_amount(self) -> bool:
        return self.value_type == "fixed_amount" and self.fixed_amount > 0


@dataclass(frozen=True)
class RunInput:
    """Один вызов функции скидок: корзина + магазин + контекст скидки"""

    cart: Cart
    rules_json: Optional[str] = None
    shop_local_date: Optional[str] = None
    discount_classes: Tuple[str, ...] = ()
    triggering_discount_code: Optional[str] = None
