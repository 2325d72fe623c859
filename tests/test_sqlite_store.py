import pytest

from afterwave.clients import Condition, DeleteOp, PutOp, SQLiteStore, UpdateOp
from afterwave.core.errors import PreconditionFailed


@pytest.fixture()
def store(tmp_path) -> SQLiteStore:
    return SQLiteStore(str(tmp_path / "kv.db"))


def test_conditional_put_rejects_existing_item(store: SQLiteStore) -> None:
    store.put_item({"pk": "A", "sk": "1", "value": 1}, Condition.item_absent())

    with pytest.raises(PreconditionFailed):
        store.put_item({"pk": "A", "sk": "1", "value": 2}, Condition.item_absent())

    assert store.get_item("A", "1")["value"] == 1


def test_update_requires_existing_row_unless_create(store: SQLiteStore) -> None:
    with pytest.raises(PreconditionFailed):
        store.update_item(UpdateOp("A", "missing", set_fields={"x": 1}))

    row = store.update_item(UpdateOp("A", "new", increments={"count": 2}, create=True))
    assert row["count"] == 2

    row = store.update_item(UpdateOp("A", "new", set_fields={"x": "y"}, increments={"count": -1}))
    assert row == {"pk": "A", "sk": "new", "count": 1, "x": "y"}


def test_attribute_conditions(store: SQLiteStore) -> None:
    store.put_item({"pk": "A", "sk": "1", "count": 0})

    with pytest.raises(PreconditionFailed):
        store.update_item(
            UpdateOp(
                "A",
                "1",
                increments={"count": -1},
                condition=Condition.attribute_at_least("count", 1),
            )
        )

    store.update_item(
        UpdateOp("A", "1", set_fields={"used": True}, condition=Condition.attribute_absent("used"))
    )
    with pytest.raises(PreconditionFailed):
        store.update_item(
            UpdateOp("A", "1", set_fields={"used": True}, condition=Condition.attribute_absent("used"))
        )


def test_transaction_is_all_or_nothing(store: SQLiteStore) -> None:
    store.put_item({"pk": "A", "sk": "taken"})

    with pytest.raises(PreconditionFailed):
        store.transact_write(
            [
                PutOp({"pk": "A", "sk": "fresh"}),
                DeleteOp("A", "taken"),
                DeleteOp("A", "missing", Condition.item_exists()),
            ]
        )

    assert store.get_item("A", "fresh") is None
    assert store.get_item("A", "taken") is not None


def test_query_prefix_order_and_pagination(store: SQLiteStore) -> None:
    for index in range(5):
        store.put_item({"pk": "P", "sk": f"ITEM#{index}", "n": index})
    store.put_item({"pk": "P", "sk": "OTHER#1"})

    items, last = store.query("P", sk_prefix="ITEM#", descending=True, limit=2)
    assert [item["n"] for item in items] == [4, 3]
    assert last == ("P", "ITEM#3")

    items, last = store.query("P", sk_prefix="ITEM#", descending=True, limit=2, exclusive_start=last)
    assert [item["n"] for item in items] == [2, 1]

    items, last = store.query("P", sk_prefix="ITEM#", descending=True, limit=2, exclusive_start=last)
    assert [item["n"] for item in items] == [0]
    assert last is None


def test_batch_get_skips_missing_keys(store: SQLiteStore) -> None:
    store.put_item({"pk": "A", "sk": "1"})
    store.put_item({"pk": "B", "sk": "2"})

    rows = store.batch_get([("A", "1"), ("B", "2"), ("C", "3")])

    assert sorted((row["pk"], row["sk"]) for row in rows) == [("A", "1"), ("B", "2")]
