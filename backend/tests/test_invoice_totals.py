import math

from proinvoice.models.invoice import (
    build_line_items, coerce_number, compute_totals, normalize_invoice_lines,
)


def test_percentage_discount_scenario():
    lines, totals = normalize_invoice_lines(
        [{"description": "a", "quantity": 2, "price": 100},
         {"description": "b", "quantity": 1, "price": 50}],
        "percentage", 10,
    )
    assert [line.total for line in lines] == [200, 50]
    assert totals.sub_total == 250
    assert totals.discount_amount == 25
    assert totals.grand_total == 225


def test_fixed_discount_is_taken_verbatim_and_grand_total_never_negative():
    lines = build_line_items([{"description": "a", "quantity": 1, "price": 40}])
    totals = compute_totals(lines, "fixed", 100)
    assert totals.discount_amount == 100
    assert totals.grand_total == 0


def test_non_numeric_inputs_coerce_to_zero():
    assert coerce_number("abc") == 0
    assert coerce_number(None) == 0
    assert coerce_number("") == 0
    assert coerce_number(math.nan) == 0
    assert coerce_number("2.5") == 2.5

    lines = build_line_items([
        {"description": "sin precio", "quantity": "3", "price": "n/a"},
        {"description": "sin cantidad", "price": 10},
    ])
    assert [(l.quantity, l.price, l.total) for l in lines] == [(3, 0, 0), (0, 10, 0)]


def test_line_items_keep_insertion_position():
    lines = build_line_items([{"description": d, "quantity": 1, "price": 1} for d in "xyz"])
    assert [(l.position, l.description) for l in lines] == [(0, "x"), (1, "y"), (2, "z")]


def test_empty_invoice_totals_are_zero():
    totals = compute_totals([], "percentage", 15)
    assert (totals.sub_total, totals.discount_amount, totals.grand_total) == (0, 0, 0)
