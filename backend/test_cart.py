"""Cart ledger: merging, decrement/remove and totals always recomputed from the lines."""
from decimal import Decimal

import pytest

from bizops.services import cart as cart_service

A = {"product_id": 1, "name": "A", "price": Decimal("2")}
B = {"product_id": 2, "name": "B", "price": Decimal("5")}


def _triples(cart):
    return [(item["product_id"], item["price"], item["qty"]) for item in cart]


def test_add_same_product_increments_instead_of_duplicating():
    cart = []
    cart_service.add_or_increment(cart, A, 2)
    cart_service.add_or_increment(cart, A, 3)
    assert _triples(cart) == [(1, Decimal("2"), 5)]


@pytest.mark.parametrize("qty", [0, -1, 1.5, "3", True])
def test_add_rejects_non_positive_or_non_integer_qty(qty):
    cart = []
    with pytest.raises(ValueError):
        cart_service.add_or_increment(cart, A, qty)
    assert cart == []


def test_decrement_scenario_drops_line_at_zero():
    cart = []
    cart_service.add_or_increment(cart, A, 2)
    cart_service.add_or_increment(cart, B, 1)

    cart_service.decrement(cart, 1)
    assert _triples(cart) == [(1, Decimal("2"), 1), (2, Decimal("5"), 1)]
    assert cart_service.render(cart)[1] == Decimal("7")

    cart_service.decrement(cart, 1)
    assert _triples(cart) == [(2, Decimal("5"), 1)]
    assert cart_service.render(cart)[1] == Decimal("5")


def test_decrement_and_remove_ignore_unknown_products():
    cart = []
    cart_service.add_or_increment(cart, A, 1)
    cart_service.decrement(cart, 99)
    cart_service.remove(cart, "99")
    assert _triples(cart) == [(1, Decimal("2"), 1)]


def test_remove_deletes_line_regardless_of_quantity():
    cart = []
    cart_service.add_or_increment(cart, A, 7)
    cart_service.add_or_increment(cart, B, 1)
    cart_service.remove(cart, "1")
    assert _triples(cart) == [(2, Decimal("5"), 1)]


def test_total_matches_lines_after_removing_to_zero_and_re_adding():
    cart = []
    cart_service.add_or_increment(cart, A, 1)
    cart_service.decrement(cart, 1)
    assert cart == []
    assert cart_service.render(cart) == ([], Decimal("0"))

    cart_service.add_or_increment(cart, A, 4)
    cart_service.add_or_increment(cart, B, 3)
    expected = sum(item["price"] * item["qty"] for item in cart)
    assert cart_service.render(cart)[1] == expected == Decimal("23")


def test_render_lines_show_name_qty_and_subtotal():
    cart = []
    cart_service.add_or_increment(cart, {"product_id": 3, "name": "Chips", "price": "2.50"}, 3)
    lines, total = cart_service.render(cart)
    assert lines == ["• Chips x3 = $7.50"]
    assert total == Decimal("7.50")
    assert cart_service.render(cart) == (lines, total)


def test_reconstruct_from_history_keeps_source_triples():
    history = [{"id": 10, "product_id": "P1", "product_name": "Widget", "unit_price": Decimal("3"), "quantity": 4}]
    cart = cart_service.reconstruct_from_history(history)
    assert _triples(cart) == [("P1", Decimal("3"), 4)]
    assert cart[0]["name"] == "Widget"
    assert cart_service.render(cart)[1] == Decimal("12")


def test_reconstruct_keeps_lines_without_product_reference():
    history = [
        {"id": 1, "product_id": 5, "product_name": "Cola", "unit_price": "1.80", "quantity": 2},
        {"id": 2, "product_id": None, "product_name": "Discontinued mix", "unit_price": "4.00", "quantity": 1},
    ]
    cart = cart_service.reconstruct_from_history(history)
    assert [item["name"] for item in cart] == ["Cola", "Discontinued mix"]
    assert cart[1]["product_id"] is None
    assert cart_service.item_key(cart[1]) == "h2"
    assert cart_service.render(cart)[1] == Decimal("7.60")

    cart_service.decrement(cart, "h2")
    assert [item["name"] for item in cart] == ["Cola"]
