import sys
import os

sys.path.append(os.path.abspath(os.path.join(os.path.dirname(__file__), "..")))
from core.ftypes import Either, Maybe, first_some, negate


# Тесты Maybe


def test_maybe_from_text():
    assert Maybe.from_text("  a ").get_or_else(None) == "a"
    assert Maybe.from_text("   ").is_none()
    assert Maybe.from_text(None).is_none()
    assert Maybe.from_text(5).is_none()


def test_maybe_map_bind_filter():
    assert Maybe.some(2).map(lambda x: x * 10).get_or_else(0) == 20
    assert Maybe.nothing().map(lambda x: x * 10).get_or_else(0) == 0
    assert Maybe.some(2).bind(lambda x: Maybe.nothing()).is_none()
    assert Maybe.some(0).filter(lambda x: x != 0).is_none()
    # пустая строка - это значение, а не Nothing
    assert Maybe.some("").is_some()


def test_maybe_or_else_is_lazy():
    calls = []

    def fallback():
        calls.append(1)
        return Maybe.some("fallback")

    assert Maybe.some("first").or_else(fallback).get_or_else(None) == "first"
    assert calls == []
    assert Maybe.nothing().or_else(fallback).get_or_else(None) == "fallback"


def test_first_some_stops_at_first_value():
    seen = []

    def source(name, value):
        def run():
            seen.append(name)
            return Maybe(value)

        return run

    found = first_some(source("a", None), source("b", "B"), source("c", "C"))
    assert found.get_or_else(None) == "B"
    assert seen == ["a", "b"]
    assert first_some().is_none()


# Тесты Either


def test_either():
    right = Either.right(3)
    left = Either.left({"error": "bad"})
    assert right.map(lambda x: x + 1).get_or_else(0) == 4
    assert left.map(lambda x: x + 1).get_or_else(0) == 0
    assert right.bind(lambda x: Either.left("no")).is_left
    assert left.fold(lambda e: e["error"], lambda v: v) == "bad"
    assert right.is_right and not left.is_right


# Тесты предикатов


def test_negate():
    is_even = lambda x: x % 2 == 0
    assert list(filter(negate(is_even), range(5))) == [1, 3]
