from catalogue.inventory import InventoryChecker
from catalogue.store.memory_adapter import MemoryProductStore
from catalogue.store.port import ProductRecord


def _checker(stock=3):
    return InventoryChecker(MemoryProductStore([ProductRecord(id="p1", name="Tea", price=10.0, stock=stock)]))


class TestCheckAvailability:
    def test_within_stock(self):
        assert _checker().check_availability("p1", 2) is True

    def test_exactly_stock(self):
        assert _checker().check_availability("p1", 3) is True

    def test_above_stock(self):
        assert _checker().check_availability("p1", 4) is False

    def test_unknown_product(self):
        assert _checker().check_availability("ghost", 1) is False

    def test_out_of_stock(self):
        assert _checker(stock=0).check_availability("p1", 1) is False
