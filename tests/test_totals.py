import pytest

from models import VAT_RATE, CartLine, CartTotals, compute_totals


def test_empty_lines_give_zero_totals():
    assert compute_totals([]) == CartTotals()
    assert compute_totals([]).grand_total == 0.0


def test_line_net_and_discount_amount(coffee):
    line = CartLine(item=coffee, quantity=3, discount_percent=0.1)
    assert line.line_net == pytest.approx(6.75)
    assert line.discount_amount == pytest.approx(0.75)
    assert line.gross == pytest.approx(7.50)


def test_discount_clamped_on_construction(coffee):
    assert CartLine(item=coffee, quantity=1, discount_percent=1.5).discount_percent == 1.0
    assert CartLine(item=coffee, quantity=1, discount_percent=-0.3).discount_percent == 0.0


@pytest.mark.parametrize("qty", [1.5, 2.0, False])
def test_line_rejects_non_integer_quantity(coffee, qty):
    with pytest.raises(ValueError):
        CartLine(item=coffee, quantity=qty)


@pytest.mark.parametrize("qty", [0, -2])
def test_line_rejects_non_positive_quantity(coffee, qty):
    with pytest.raises(ValueError):
        CartLine(item=coffee, quantity=qty)


def test_with_changes_returns_new_line(coffee):
    line = CartLine(item=coffee, quantity=1)
    changed = line.with_changes(quantity=4)
    assert changed.quantity == 4
    assert line.quantity == 1
    assert changed.item == coffee


def test_totals_sum_over_lines(coffee, bagel):
    lines = [
        CartLine(item=coffee, quantity=2),
        CartLine(item=bagel, quantity=1, discount_percent=0.5),
    ]
    totals = compute_totals(lines)
    assert totals.subtotal == pytest.approx(5.00 + 1.60)
    assert totals.discount == pytest.approx(1.60)
    assert totals.vat == pytest.approx(totals.subtotal * VAT_RATE)
    assert totals.grand_total == totals.subtotal + totals.vat


def test_totals_keep_full_precision(coffee, bagel):
    totals = compute_totals([CartLine(item=coffee, quantity=2), CartLine(item=bagel, quantity=1)])
    assert totals.subtotal == 5.0 + 3.2
    assert totals.vat == (5.0 + 3.2) * VAT_RATE
    assert totals.vat == pytest.approx(1.23)
