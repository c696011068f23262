import pytest

from catalog import Item


@pytest.fixture
def coffee():
    return Item(id="p01", name="Coffee", price=2.50)


@pytest.fixture
def bagel():
    return Item(id="p02", name="Bagel", price=3.20)
