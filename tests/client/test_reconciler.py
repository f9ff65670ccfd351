"""Tests for the list reconciler."""
from schemas.change import ChangeEvent, DeletedRecord
from client.reconciler import BookmarkListReconciler, FilterPair
from tests.client.conftest import make_bookmark


def _ids(reconciler: BookmarkListReconciler) -> list[int]:
    return [r.id for r in reconciler.records]


def test__load__replaces_records_and_filter() -> None:
    """Loading swaps in the gateway result and the filter it was fetched with."""
    reconciler = BookmarkListReconciler()
    reconciler.load([make_bookmark(2), make_bookmark(1)], query="", tag="react")

    assert _ids(reconciler) == [2, 1]
    assert reconciler.filters == FilterPair(query=None, tag="react")


def test__apply_created__prepends_regardless_of_filter() -> None:
    """A local create is shown even if it wouldn't match the active filter."""
    reconciler = BookmarkListReconciler()
    reconciler.load([make_bookmark(1, tags=["react"])], tag="react")

    reconciler.apply_created(make_bookmark(2, tags=[]))

    assert _ids(reconciler) == [2, 1]


def test__apply_created__then_feed_insert_does_not_duplicate() -> None:
    """The feed echo of a local create replaces it instead of adding a copy."""
    reconciler = BookmarkListReconciler()
    record = make_bookmark(5)
    reconciler.apply_created(record)

    reconciler.apply_change(ChangeEvent(event_type="INSERT", new=record))

    assert _ids(reconciler) == [5]


def test__apply_deleted__removes_by_id() -> None:
    """A local delete removes exactly that record."""
    reconciler = BookmarkListReconciler()
    reconciler.load([make_bookmark(3), make_bookmark(2), make_bookmark(1)])

    reconciler.apply_deleted(2)

    assert _ids(reconciler) == [3, 1]


def test__insert_event__matching_record_added() -> None:
    """A feed insert that matches the filter is shown."""
    reconciler = BookmarkListReconciler()
    reconciler.load([make_bookmark(1, tags=["react"])], tag="react")

    reconciler.apply_change(
        ChangeEvent(event_type="INSERT", new=make_bookmark(2, tags=["react"])),
    )

    assert _ids(reconciler) == [2, 1]


def test__insert_event__non_matching_record_ignored() -> None:
    """A feed insert outside the filter is never added."""
    reconciler = BookmarkListReconciler()
    reconciler.load([make_bookmark(1, title="React docs")], query="react")

    reconciler.apply_change(
        ChangeEvent(event_type="INSERT", new=make_bookmark(2, title="Vue docs")),
    )

    assert _ids(reconciler) == [1]


def test__insert_event__placed_by_created_at() -> None:
    """An older record arriving late lands at its newest-first position."""
    reconciler = BookmarkListReconciler()
    reconciler.load([make_bookmark(30), make_bookmark(10)])

    reconciler.apply_change(ChangeEvent(event_type="INSERT", new=make_bookmark(20)))

    assert _ids(reconciler) == [30, 20, 10]


def test__update_event__replaces_matching_record_in_place() -> None:
    """A matching update keeps the position and swaps the content."""
    reconciler = BookmarkListReconciler()
    reconciler.load([make_bookmark(2), make_bookmark(1, title="Old")])

    reconciler.apply_change(
        ChangeEvent(event_type="UPDATE", new=make_bookmark(1, title="New")),
    )

    assert _ids(reconciler) == [2, 1]
    assert reconciler.records[1].title == "New"


def test__update_event__record_leaving_filter_is_removed() -> None:
    """An edit that makes a record stop matching removes it."""
    reconciler = BookmarkListReconciler()
    reconciler.load([make_bookmark(1, tags=["react"])], tag="react")

    reconciler.apply_change(
        ChangeEvent(event_type="UPDATE", new=make_bookmark(1, tags=["vue"])),
    )

    assert reconciler.records == []


def test__update_event__absent_record_not_inserted() -> None:
    """An update for a record not on screen doesn't add it."""
    reconciler = BookmarkListReconciler()
    reconciler.load([make_bookmark(1)])

    reconciler.apply_change(ChangeEvent(event_type="UPDATE", new=make_bookmark(9)))

    assert _ids(reconciler) == [1]


def test__delete_event__removes_unconditionally() -> None:
    """A feed delete removes the record whatever the filter."""
    reconciler = BookmarkListReconciler()
    reconciler.load([make_bookmark(2), make_bookmark(1)], query="nothing-matches")

    reconciler.apply_change(ChangeEvent(event_type="DELETE", old=DeletedRecord(id=2)))
    reconciler.apply_change(ChangeEvent(event_type="DELETE", old=DeletedRecord(id=42)))

    assert _ids(reconciler) == [1]


def test__clear__empties_list() -> None:
    """Clearing (on sign-out) drops every record."""
    reconciler = BookmarkListReconciler()
    reconciler.load([make_bookmark(1)])

    reconciler.clear()

    assert reconciler.records == []
