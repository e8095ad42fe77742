"""Tests for the per-account variable store."""

import math

import pytest

from calcbot.errors import CalcError, ErrorKind
from calcbot.variables import VariableStore


@pytest.fixture
def store():
    return VariableStore()


def test_set_variable_for_account(store):
    store.set("bill", "n", 10)

    assert store.get("bill", "n") == 10
    assert store.variables("bill") == {"n": 10.0}


def test_names_are_case_sensitive(store):
    store.set("bill", "a", 1)
    store.set("bill", "A", 2)

    assert store.get("bill", "a") == 1
    assert store.get("bill", "A") == 2


@pytest.mark.parametrize("name", ["test", "", "1", "_", "ab", " a"])
def test_only_single_letter_names(store, name):
    with pytest.raises(CalcError) as exc_info:
        store.set("bill", name, 123)
    assert exc_info.value.kind is ErrorKind.INVALID_VARIABLE_NAME
    assert store.accounts() == []


@pytest.mark.parametrize("value", ["a", "123", True, None, math.nan, math.inf, -math.inf])
def test_only_finite_numbers_are_stored(store, value):
    with pytest.raises(CalcError) as exc_info:
        store.set("bill", "a", value)
    assert exc_info.value.kind is ErrorKind.INVALID_VALUE
    assert str(exc_info.value) == "Value is not a number"


def test_get_undefined_variable(store):
    with pytest.raises(CalcError) as exc_info:
        store.get("bill", "x")
    assert exc_info.value.kind is ErrorKind.UNDEFINED_VARIABLE

    store.set("bill", "y", 1)
    with pytest.raises(CalcError):
        store.get("bill", "x")


def test_accounts_are_isolated(store):
    store.set("bill", "b", 1)
    store.set("matt", "b", 2)

    assert store.get("bill", "b") == 1
    assert store.get("matt", "b") == 2


def test_delete_all_only_touches_one_account(store):
    store.set("bill", "x", 4)
    store.set("bill", "y", 5)
    store.set("bill", "z", 6)
    store.set("matt", "x", 7)

    assert store.delete_all("bill") is True

    assert store.variables("bill") == {}
    with pytest.raises(CalcError):
        store.get("bill", "x")
    assert store.get("matt", "x") == 7
    assert store.accounts() == ["matt"]


def test_delete_all_unknown_account(store):
    assert store.delete_all("nobody") is False


def test_overwrite_keeps_first_assignment_order(store):
    store.set("bill", "b", 1)
    store.set("bill", "a", 2)
    store.set("bill", "b", 3)

    assert list(store.variables("bill").items()) == [("b", 3.0), ("a", 2.0)]


def test_variables_returns_a_copy(store):
    store.set("bill", "a", 1)

    store.variables("bill")["a"] = 99

    assert store.get("bill", "a") == 1
