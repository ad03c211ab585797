"""Change tracker test cases (no database)."""
import pytest
from pydantic import ValidationError

from apps.products.models import Product, ProductProperty, ProductType
from framework.repository.entity import EntityState
from framework.repository.tracking import ChangeKind, ChangeTracker


def _product(id: int = 1, code: str = "Code", **fields) -> Product:
    return Product(id=id, name="Name", code=code, **fields)


class TestChangeTracker:
    """Test the explicit identity map."""

    def test_attach_and_get(self):
        tracker = ChangeTracker()
        product = _product()
        entry = tracker.attach(None, product)

        assert tracker.get(Product, 1) is entry
        assert entry.change is None
        assert entry.snapshot == product.model_dump()
        assert product.state is EntityState.ATTACHED
        assert len(tracker) == 1

    def test_staged_entity_has_no_snapshot(self):
        """Test staged entries are not compared against a snapshot."""
        tracker = ChangeTracker()
        entry = tracker.attach(None, _product(), ChangeKind.INSERT)

        assert entry.snapshot is None
        assert entry.is_modified() is False

    def test_attach_replaces_other_instance(self):
        """Test a second instance with the same id detaches the first."""
        tracker = ChangeTracker()
        first = _product()
        second = _product(code="Other")
        tracker.attach(None, first)
        tracker.attach(None, second, ChangeKind.UPDATE)

        assert first.state is EntityState.DETACHED
        assert tracker.get(Product, 1).entity is second
        assert len(tracker) == 1

    def test_pending_detects_changes_only_on_request(self):
        """Test modified attached entities count as updates only when asked."""
        tracker = ChangeTracker()
        product = _product()
        tracker.attach(None, product)
        product.code = "B"

        assert tracker.pending() == []
        changes = tracker.pending(detect_changes=True)
        assert [change.kind for change in changes] == [ChangeKind.UPDATE]

    def test_nested_change_is_detected(self):
        """Test a change inside the owned type marks the entity modified."""
        tracker = ChangeTracker()
        product = _product(product_type=ProductType(name="Type", properties=[ProductProperty(key="A", value="1")]))
        entry = tracker.attach(None, product)
        product.product_type.properties.append(ProductProperty(key="B", value="2"))

        assert entry.is_modified() is True

    def test_pending_keeps_tracking_order(self):
        tracker = ChangeTracker()
        tracker.attach(None, _product(3), ChangeKind.INSERT)
        tracker.attach(None, _product(1), ChangeKind.DELETE)
        tracker.attach(None, _product(2), ChangeKind.UPDATE)

        assert [change.entry.entity.id for change in tracker.pending()] == [3, 1, 2]

    def test_accept_update_bumps_version(self):
        tracker = ChangeTracker()
        product = _product(version=4)
        tracker.attach(None, product, ChangeKind.UPDATE)
        (change,) = tracker.pending()
        tracker.accept(change)

        assert product.version == 5
        assert change.entry.change is None
        assert change.entry.snapshot == product.model_dump()

    def test_accept_insert_keeps_version(self):
        tracker = ChangeTracker()
        product = _product()
        tracker.attach(None, product, ChangeKind.INSERT)
        tracker.accept(tracker.pending()[0])

        assert product.version == 0
        assert product.is_attached

    def test_accept_delete_detaches(self):
        tracker = ChangeTracker()
        product = _product()
        tracker.attach(None, product, ChangeKind.DELETE)
        tracker.accept(tracker.pending()[0])

        assert tracker.get(Product, 1) is None
        assert product.state is EntityState.DETACHED

    def test_clear_reports_dropped_changes(self):
        tracker = ChangeTracker()
        staged = _product(1)
        loaded = _product(2)
        tracker.attach(None, staged, ChangeKind.INSERT)
        tracker.attach(None, loaded)

        assert tracker.clear() == 1
        assert len(tracker) == 0
        assert staged.state is EntityState.DETACHED
        assert loaded.state is EntityState.DETACHED


class TestProductModel:
    """Test the product aggregate types."""

    def test_new_product_is_detached(self):
        product = _product()
        assert product.state is EntityState.DETACHED
        assert product.is_attached is False
        assert product.version == 0
        assert product.product_type is None

    def test_product_property_is_immutable(self):
        prop = ProductProperty(key="A", value="1")
        with pytest.raises(ValidationError):
            prop.value = "2"


class TestChangeOrder:
    """Test commit order follows staging order."""

    def test_restaged_entry_moves_to_end(self):
        """Test an update staged after an insert is applied after it."""
        tracker = ChangeTracker()
        found = _product(1)
        entry = tracker.attach(None, found)
        tracker.attach(None, _product(2), ChangeKind.INSERT)
        tracker.stage(entry, ChangeKind.UPDATE)

        assert [(c.entry.entity.id, c.kind) for c in tracker.pending()] == [
            (2, ChangeKind.INSERT),
            (1, ChangeKind.UPDATE),
        ]

    def test_replacing_instance_moves_to_end(self):
        tracker = ChangeTracker()
        tracker.attach(None, _product(1))
        tracker.attach(None, _product(2), ChangeKind.INSERT)
        tracker.attach(None, _product(1, code="Other"), ChangeKind.UPDATE)

        assert [c.entry.entity.id for c in tracker.pending()] == [2, 1]


class TestClearCounts:
    """Test how many changes clear() reports as dropped."""

    def test_modified_entities_counted_when_detecting(self):
        tracker = ChangeTracker()
        product = _product(1)
        tracker.attach(None, product)
        tracker.attach(None, _product(2), ChangeKind.INSERT)
        product.code = "B"

        assert tracker.clear(detect_changes=True) == 2

    def test_modified_entities_ignored_by_default(self):
        tracker = ChangeTracker()
        product = _product(1)
        tracker.attach(None, product)
        product.code = "B"

        assert tracker.clear() == 0
