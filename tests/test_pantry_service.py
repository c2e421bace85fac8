"""Tests for the pantry item mutator."""

from datetime import UTC, datetime, timedelta
from unittest.mock import patch

import pytest

from src.models import PantryHistory, PantryItem, PantryNotification
from src.services.errors import (
    ConflictError,
    ForbiddenError,
    InsufficientQuantityError,
    InvalidRefError,
    NotFoundError,
    ValidationError,
)
from src.services.pantry_service import PantryService


def notification_types(db, item_id: int) -> list[str]:
    return sorted(
        n.type
        for n in db.query(PantryNotification).filter(PantryNotification.item_id == item_id).all()
    )


def history_for(db, item_id: int) -> list[tuple[str, float]]:
    entries = (
        db.query(PantryHistory)
        .filter(PantryHistory.item_id == item_id)
        .order_by(PantryHistory.id)
        .all()
    )
    return [(e.action, e.quantity) for e in entries]


@pytest.fixture
def service(db):
    return PantryService(db)


@pytest.fixture
def milk(service, group, user, dairy):
    return service.add(group.id, "Milk", 2, "L", dairy.id, None, user)


class TestAdd:
    """Tests for PantryService.add."""

    def test_creates_item_with_view(self, service, group, user, dairy):
        view = service.add(group.id, "  Milk ", 2, "L", str(dairy.id), None, user)

        assert view.name == "Milk"
        assert view.quantity == 2
        assert view.unit == "L"
        assert view.group_id == group.id
        assert view.category_info.name == "Dairy"
        assert view.category_info.type == "predefined"
        assert view.added_by == user.id
        assert view.added_by_name == "Test User"
        assert view.is_expired is False
        assert view.is_expiring_soon is False

    def test_add_records_history(self, service, db, group, user, dairy):
        view = service.add(group.id, "Butter", 3, "pack", dairy.id, None, user)

        assert history_for(db, view.id) == [("add", 3)]
        entry = db.query(PantryHistory).filter(PantryHistory.item_id == view.id).one()
        assert entry.user_name == "Test User"
        assert entry.item_name == "Butter"

    def test_add_same_item_replaces_quantity(self, service, db, group, user, dairy):
        first = service.add(group.id, "Eggs", 12, "count", dairy.id, None, user)
        second = service.add(group.id, " eggs ", 6, "count", dairy.id, None, user)

        assert second.id == first.id
        assert second.name == "Eggs"
        assert second.quantity == 6
        assert db.query(PantryItem).filter(PantryItem.group_id == group.id).count() == 1
        assert history_for(db, first.id) == [("add", 12), ("add", -6)]

    def test_add_same_quantity_writes_no_history(self, service, db, group, user, dairy):
        view = service.add(group.id, "Cheese", 1.5, "kg", dairy.id, None, user)
        service.add(group.id, "CHEESE", 1.5, "kg", dairy.id, None, user)

        assert history_for(db, view.id) == [("add", 1.5)]

    def test_same_name_in_other_category_is_separate_item(
        self, service, db, group, user, dairy, produce
    ):
        a = service.add(group.id, "Beans", 2, "can", dairy.id, None, user)
        b = service.add(group.id, "Beans", 2, "can", produce.id, None, user)

        assert a.id != b.id
        assert db.query(PantryItem).count() == 2

    def test_upsert_keeps_expiration_when_omitted(self, service, group, user, dairy):
        expires = datetime.now(UTC) + timedelta(days=30)
        service.add(group.id, "Yogurt", 4, "cup", dairy.id, expires, user)
        view = service.add(group.id, "Yogurt", 2, "cup", dairy.id, None, user)

        assert view.expiration_date is not None
        assert abs((view.expiration_date - expires).total_seconds()) < 1

    def test_rejects_invalid_fields(self, service, group, user, dairy):
        with pytest.raises(ValidationError):
            service.add(group.id, "   ", 1, "L", dairy.id, None, user)
        with pytest.raises(ValidationError):
            service.add(group.id, "Milk", -1, "L", dairy.id, None, user)
        with pytest.raises(ValidationError):
            service.add(group.id, "Milk", float("nan"), "L", dairy.id, None, user)
        with pytest.raises(ValidationError):
            service.add(group.id, "Milk", 1, "", dairy.id, None, user)

    def test_invalid_category_ref(self, service, group, user):
        with pytest.raises(InvalidRefError):
            service.add(group.id, "Milk", 1, "L", "not-an-id", None, user)

    def test_unknown_category(self, service, group, user):
        with pytest.raises(NotFoundError):
            service.add(group.id, "Milk", 1, "L", 99999, None, user)

    def test_other_groups_custom_category_is_not_visible(
        self, service, db, group, user, other_group, outsider
    ):
        from src.services.category_resolver import CategoryResolver

        theirs = CategoryResolver(db).create("Their Shelf", other_group.id, outsider)

        with pytest.raises(NotFoundError):
            service.add(group.id, "Milk", 1, "L", theirs.id, None, user)

    def test_unknown_group(self, service, user, dairy):
        with pytest.raises(NotFoundError):
            service.add(99999, "Milk", 1, "L", dairy.id, None, user)

    def test_non_member_is_forbidden(self, service, group, outsider, dairy):
        with pytest.raises(ForbiddenError):
            service.add(group.id, "Milk", 1, "L", dairy.id, None, outsider)

    def test_low_quantity_creates_low_stock(self, service, db, group, user, dairy):
        view = service.add(group.id, "Cream", 0.5, "L", dairy.id, None, user)

        assert notification_types(db, view.id) == ["low_stock"]

    def test_restock_retracts_stock_notifications(self, service, db, group, user, dairy):
        view = service.add(group.id, "Cream", 0, "L", dairy.id, None, user)
        assert notification_types(db, view.id) == ["out_of_stock"]

        service.add(group.id, "Cream", 5, "L", dairy.id, None, user)

        assert notification_types(db, view.id) == []

    def test_expiring_item_creates_expiring_soon(self, service, db, group, user, dairy):
        expires = datetime.now(UTC) + timedelta(days=1)
        view = service.add(group.id, "Kefir", 3, "L", dairy.id, expires, user)

        assert view.is_expiring_soon is True
        assert notification_types(db, view.id) == ["expiring_soon"]

    def test_concurrent_first_add_becomes_replace(
        self, service, db, group, user, dairy, session_factory
    ):
        """A row inserted by another session after the lookup is replaced, not duplicated."""
        real_find = service._find_item
        rival_db = session_factory()

        def find_after_rival_insert(*args):
            if find.call_count == 1:
                rival_user = rival_db.get(type(user), user.id)
                PantryService(rival_db).add(
                    group.id, "Eggs", 12, "count", dairy.id, None, rival_user
                )
                return None
            return real_find(*args)

        try:
            with patch.object(
                service, "_find_item", side_effect=find_after_rival_insert
            ) as find:
                view = service.add(group.id, "eggs", 6, "count", dairy.id, None, user)
        finally:
            rival_db.close()

        assert find.call_count == 2
        assert db.query(PantryItem).count() == 1
        assert view.quantity == 6
        assert history_for(db, view.id) == [("add", 12), ("add", -6)]


class TestUpdate:
    """Tests for PantryService.update."""

    def test_replaces_fields(self, service, db, group, user, milk, produce):
        view = service.update(milk.id, "Oat Milk", 3, "carton", produce.id, None, user)

        assert view.name == "Oat Milk"
        assert view.quantity == 3
        assert view.unit == "carton"
        assert view.category_id == produce.id
        assert history_for(db, milk.id) == [("add", 2), ("add", 1)]

    def test_unchanged_quantity_writes_no_history(self, service, db, user, milk, dairy):
        service.update(milk.id, "Whole Milk", 2, "L", dairy.id, None, user)

        assert history_for(db, milk.id) == [("add", 2)]

    def test_missing_item(self, service, user, dairy):
        with pytest.raises(NotFoundError):
            service.update(99999, "Milk", 1, "L", dairy.id, None, user)

    def test_other_group_is_forbidden(self, service, outsider, milk, dairy):
        with pytest.raises(ForbiddenError):
            service.update(milk.id, "Milk", 1, "L", dairy.id, None, outsider)

    def test_category_is_revalidated(self, service, user, milk):
        with pytest.raises(NotFoundError):
            service.update(milk.id, "Milk", 1, "L", 99999, None, user)

    def test_rename_onto_existing_item_conflicts(self, service, group, user, milk, dairy):
        service.add(group.id, "Cheese", 1, "kg", dairy.id, None, user)

        with pytest.raises(ConflictError):
            service.update(milk.id, "cheese", 1, "kg", dairy.id, None, user)

    def test_drives_notification_transitions(self, service, db, user, milk, dairy):
        service.update(milk.id, "Milk", 0.25, "L", dairy.id, None, user)
        assert notification_types(db, milk.id) == ["low_stock"]

        service.update(milk.id, "Milk", 0, "L", dairy.id, None, user)
        assert notification_types(db, milk.id) == ["out_of_stock"]

        service.update(milk.id, "Milk", 4, "L", dairy.id, None, user)
        assert notification_types(db, milk.id) == []


class TestUse:
    """Tests for PantryService.use."""

    def test_milk_scenario(self, service, db, user, milk):
        result = service.use(milk.id, 1.5, user)
        assert result.remaining_quantity == pytest.approx(0.5)
        assert result.unit == "L"
        assert notification_types(db, milk.id) == ["low_stock"]

        result = service.use(milk.id, 0.5, user)
        assert result.remaining_quantity == 0
        assert notification_types(db, milk.id) == ["out_of_stock"]

        with pytest.raises(InsufficientQuantityError):
            service.use(milk.id, 0.1, user)
        assert db.get(PantryItem, milk.id).quantity == 0
        assert notification_types(db, milk.id) == ["out_of_stock"]

    def test_records_negative_history(self, service, db, user, milk):
        service.use(milk.id, 0.75, user)

        assert history_for(db, milk.id) == [("add", 2), ("use", -0.75)]

    def test_rejected_use_writes_no_history(self, service, db, user, milk):
        with pytest.raises(InsufficientQuantityError) as exc_info:
            service.use(milk.id, 3, user)

        assert exc_info.value.available == 2
        assert history_for(db, milk.id) == [("add", 2)]
        assert db.get(PantryItem, milk.id).quantity == 2

    @pytest.mark.parametrize("quantity", [0, -1, float("inf")])
    def test_rejects_non_positive_quantity(self, service, user, milk, quantity):
        with pytest.raises(ValidationError):
            service.use(milk.id, quantity, user)

    def test_float_residue_reaches_zero(self, service, db, group, user, dairy):
        view = service.add(group.id, "Juice", 0.3, "L", dairy.id, None, user)
        service.use(view.id, 0.1, user)
        service.use(view.id, 0.1, user)
        result = service.use(view.id, 0.1, user)

        assert result.remaining_quantity == 0
        assert notification_types(db, view.id) == ["out_of_stock"]

    def test_use_from_empty_stock_is_rejected(self, service, db, group, user, dairy):
        view = service.add(group.id, "Cream", 0, "L", dairy.id, None, user)

        with pytest.raises(InsufficientQuantityError):
            service.use(view.id, 5e-10, user)

        db.expire_all()
        assert db.get(PantryItem, view.id).quantity == 0
        assert history_for(db, view.id) == [("add", 0)]

    def test_overdraw_by_a_sliver_is_rejected(self, service, db, user, milk):
        with pytest.raises(InsufficientQuantityError):
            service.use(milk.id, 2 + 5e-10, user)

        db.expire_all()
        assert db.get(PantryItem, milk.id).quantity == 2
        assert history_for(db, milk.id) == [("add", 2)]

    def test_other_group_is_forbidden(self, service, outsider, milk):
        with pytest.raises(ForbiddenError):
            service.use(milk.id, 1, outsider)

    def test_missing_item(self, service, user):
        with pytest.raises(NotFoundError):
            service.use(99999, 1, user)

    def test_stale_reader_cannot_overdraw(
        self, service, db, user, housemate, milk, session_factory
    ):
        """A second session that read the old quantity still cannot drive stock negative."""
        other_db = session_factory()
        try:
            other_service = PantryService(other_db)
            other_member = other_db.get(type(housemate), housemate.id)
            other_db.get(PantryItem, milk.id)  # caches quantity=2 in the second session

            service.use(milk.id, 1.5, user)

            with pytest.raises(InsufficientQuantityError):
                other_service.use(milk.id, 1, other_member)
        finally:
            other_db.close()

        db.expire_all()
        assert db.get(PantryItem, milk.id).quantity == pytest.approx(0.5)

    def test_quantity_is_never_negative(self, service, db, user, milk):
        for amount in (0.7, 0.7, 0.7, 0.7):
            try:
                service.use(milk.id, amount, user)
            except InsufficientQuantityError:
                pass
            assert db.get(PantryItem, milk.id).quantity >= 0

        assert db.get(PantryItem, milk.id).quantity == pytest.approx(0.6)


class TestDelete:
    """Tests for PantryService.delete."""

    def test_deletes_item_and_notifications(self, service, db, group, user, dairy):
        view = service.add(group.id, "Cream", 0.5, "L", dairy.id, None, user)
        assert notification_types(db, view.id) == ["low_stock"]

        group_id = service.delete(view.id, user)

        assert group_id == group.id
        assert db.get(PantryItem, view.id) is None
        assert notification_types(db, view.id) == []

    def test_records_remove_with_quantity_at_deletion(self, service, db, user, milk):
        service.use(milk.id, 0.5, user)
        service.delete(milk.id, user)

        assert history_for(db, milk.id) == [("add", 2), ("use", -0.5), ("remove", 1.5)]

    def test_history_failure_does_not_undo_delete(self, service, db, user, milk):
        with patch.object(service.history, "record", return_value=None) as record:
            service.delete(milk.id, user)

        record.assert_called_once()
        assert db.get(PantryItem, milk.id) is None

    def test_other_group_is_forbidden(self, service, db, outsider, milk):
        with pytest.raises(ForbiddenError):
            service.delete(milk.id, outsider)
        assert db.get(PantryItem, milk.id) is not None

    def test_missing_item(self, service, user):
        with pytest.raises(NotFoundError):
            service.delete(99999, user)


class TestAtomicity:
    """A failing notification write rolls back the quantity change."""

    def test_notification_failure_rolls_back_use(self, service, db, user, milk):
        with (
            patch.object(service.notifications, "sync", side_effect=RuntimeError("boom")),
            pytest.raises(RuntimeError),
        ):
            service.use(milk.id, 1.5, user)

        db.expire_all()
        assert db.get(PantryItem, milk.id).quantity == 2
        assert history_for(db, milk.id) == [("add", 2)]

    def test_notification_failure_rolls_back_add(self, service, db, group, user, dairy):
        with (
            patch.object(service.notifications, "sync", side_effect=RuntimeError("boom")),
            pytest.raises(RuntimeError),
        ):
            service.add(group.id, "Cream", 0.5, "L", dairy.id, None, user)

        assert db.query(PantryItem).count() == 0
        assert db.query(PantryHistory).count() == 0
