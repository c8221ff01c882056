# core/ftypes.py
# Maybe и Either для движка скидок.
# Maybe - необязательные факты корзины (почтовый индекс, страна, дата магазина).
# Either - результат разбора входных данных (Left = ошибка, Right = значение).
# negate - отрицание предиката для filter.

from __future__ import annotations
from dataclasses import dataclass
from typing import Callable, Generic, Optional, TypeVar, Union

T = TypeVar("T")
U = TypeVar("U")
L = TypeVar("L")
R = TypeVar("R")


@dataclass(frozen=True)
class Maybe(Generic[T]):
    """
    Option-обёртка: Maybe.some(value) или Maybe.nothing().
    Отсутствие значения - это None, пустая строка считается значением.
    """

    value: Optional[T]

    def __init__(self, value: Optional[T]):
        object.__setattr__(self, "value", value)

    @staticmethod
    def some(value: T) -> "Maybe[T]":
        return Maybe(value)

    @staticmethod
    def nothing() -> "Maybe[None]":
        return Maybe(None)

    @staticmethod
    def from_text(text: Optional[str]) -> "Maybe[str]":
        """Обрезает пробелы; пустая строка превращается в Nothing"""
        if not isinstance(text, str):
            return Maybe.nothing()
        stripped = text.strip()
        return Maybe.some(stripped) if stripped else Maybe.nothing()

    def is_some(self) -> bool:
        return self.value is not None

    def is_none(self) -> bool:
        return self.value is None

    def map(self, fn: Callable[[T], U]) -> "Maybe[U]":
        return Maybe.some(fn(self.value)) if self.is_some() else Maybe.nothing()

    def bind(self, fn: Callable[[T], "Maybe[U]"]) -> "Maybe[U]":
        return fn(self.value) if self.is_some() else Maybe.nothing()

    def filter(self, predicate: Callable[[T], bool]) -> "Maybe[T]":
        return self if self.is_some() and predicate(self.value) else Maybe.nothing()

    def or_else(self, fallback: Callable[[], "Maybe[T]"]) -> "Maybe[T]":
        """Цепочка источников: fallback вызывается только если значения нет"""
        return self if self.is_some() else fallback()

    def get_or_else(self, default: U) -> T | U:
        return self.value if self.is_some() else default

    def __repr__(self) -> str:
        return f"Some({self.value!r})" if self.is_some() else "Nothing"


def first_some(*sources: Callable[[], Maybe[T]]) -> Maybe[T]:
    """Первый непустой результат из ленивых источников (по порядку приоритета)"""
    for source in sources:
        found = source()
        if found.is_some():
            return found
    return Maybe.nothing()


@dataclass(frozen=True)
class Either(Generic[L, R]):
    """
    Either<L, R>: Left - ошибка разбора (обычно dict с ключом "error"),
    Right - успешно разобранное значение.
    """

    is_left: bool
    value: Union[L, R]

    def __init__(self, is_left: bool, value: Union[L, R]):
        object.__setattr__(self, "is_left", is_left)
        object.__setattr__(self, "value", value)

    @staticmethod
    def left(value: L) -> "Either[L, R]":
        return Either(True, value)

    @staticmethod
    def right(value: R) -> "Either[L, R]":
        return Either(False, value)

    @property
    def is_right(self) -> bool:
        return not self.is_left

    def map(self, fn: Callable[[R], U]) -> "Either[L, U]":
        return Either.right(fn(self.value)) if not self.is_left else self  # type: ignore[return-value]

    def bind(self, fn: Callable[[R], "Either[L, U]"]) -> "Either[L, U]":
        return fn(self.value) if not self.is_left else self  # type: ignore[return-value]

    def fold(self, on_left: Callable[[L], U], on_right: Callable[[R], U]) -> U:
        return on_left(self.value) if self.is_left else on_right(self.value)  # type: ignore[arg-type]

    def get_or_else(self, default: U) -> R | U:
        return self.value if not self.is_left else default  # type: ignore[return-value]

    def __repr__(self) -> str:
        return f"Left({self.value!r})" if self.is_left else f"Right({self.value!r})"


# Предикаты


def negate(predicate: Callable[..., bool]) -> Callable[..., bool]:
    return lambda *args: not predicate(*args)
