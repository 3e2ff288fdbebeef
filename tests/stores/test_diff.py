from __future__ import annotations

from duobudget.contracts.record import ChangeType, Document, RecordChange
from duobudget.stores.utils import diff_documents


def test_first_delivery_reports_everything_added() -> None:
    changes = diff_documents({}, [Document("a", {"x": 1}), Document("b", {"x": 2})])

    assert changes == (RecordChange(ChangeType.ADDED, "a"), RecordChange(ChangeType.ADDED, "b"))


def test_diff_lists_changes_in_result_order_then_removals() -> None:
    previous = {"a": {"x": 1}, "b": {"x": 2}, "c": {"x": 3}}
    current = [Document("d", {"x": 4}), Document("b", {"x": 20}), Document("a", {"x": 1})]

    changes = diff_documents(previous, current)

    assert changes == (
        RecordChange(ChangeType.ADDED, "d"),
        RecordChange(ChangeType.MODIFIED, "b"),
        RecordChange(ChangeType.REMOVED, "c"),
    )


def test_identical_results_produce_no_changes() -> None:
    assert diff_documents({"a": {"x": 1}}, [Document("a", {"x": 1})]) == ()
