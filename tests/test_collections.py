from __future__ import annotations

from chatlink.store.collection import ActionCollection, UpsertCollection


def test_upsert_new_id_appends_at_end():
    collection = UpsertCollection([{"id": "a"}, {"id": "b"}])

    inserted = collection.upsert({"id": "c", "name": "new"})

    assert inserted is True
    assert collection.ids() == ["a", "b", "c"]


def test_upsert_existing_id_replaces_in_place():
    collection = UpsertCollection([{"id": "a"}, {"id": "b", "v": 1}, {"id": "c"}])

    inserted = collection.upsert({"id": "b", "v": 2})

    assert inserted is False
    assert collection.ids() == ["a", "b", "c"]
    assert collection.get("b") == {"id": "b", "v": 2}


def test_remove_by_id_keeps_order_of_the_rest():
    collection = UpsertCollection([{"id": "a"}, {"id": "b"}, {"id": "c"}])

    assert collection.remove_by_id("b") is True
    assert collection.remove_by_id("missing") is False
    assert collection.ids() == ["a", "c"]


def test_replace_all_deduplicates_by_id():
    collection = UpsertCollection()
    collection.replace_all([{"id": "a", "v": 1}, {"id": "b"}, {"id": "a", "v": 2}])

    assert collection.ids() == ["a", "b"]
    assert collection.get("a")["v"] == 2


def test_remove_action_takes_first_match_only():
    actions = ActionCollection()
    actions.append({"id": "x", "n": 1})
    actions.append({"id": "y"})
    actions.append({"id": "x", "n": 2})

    assert actions.remove_first("x") is True
    assert actions.ids() == ["y", "x"]
    assert actions.items()[1]["n"] == 2


def test_remove_action_unknown_id_leaves_collection_unchanged():
    actions = ActionCollection()
    actions.append({"id": "x"})
    inner_before = actions._actions

    assert actions.remove_first("nope") is False
    assert actions._actions is inner_before
    assert actions.ids() == ["x"]
