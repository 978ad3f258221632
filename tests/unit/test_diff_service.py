from __future__ import annotations

from tagkeeper.services.diff_service import ChangeSet, diff_snapshot


def test_diff_classifies_added_changed_removed():
    recorded = ["a.py", "b.py", "c.py"]
    snapshot = {"a.py": 50.0, "b.py": 150.0, "d.py": 10.0}

    changes = diff_snapshot(recorded, 100.0, snapshot)

    assert changes.added == ["d.py"]
    assert changes.changed == ["b.py"]
    assert changes.removed == ["c.py"]
    assert changes.total == 3
    assert changes.to_remove() == ["c.py", "b.py"]
    assert changes.to_index() == ["d.py", "b.py"]


def test_diff_equal_mtime_is_unchanged():
    changes = diff_snapshot(["a.py"], 100.0, {"a.py": 100.0})

    assert changes.is_noop


def test_diff_does_not_mutate_snapshot():
    snapshot = {"a.py": 1.0, "new.py": 2.0}

    diff_snapshot(["a.py"], 0.0, snapshot)

    assert snapshot == {"a.py": 1.0, "new.py": 2.0}


def test_diff_sets_are_disjoint():
    recorded = [f"f{i}.py" for i in range(10)]
    snapshot = {f"f{i}.py": float(i) for i in range(5, 15)}

    changes = diff_snapshot(recorded, 7.0, snapshot)

    added, changed, removed = set(changes.added), set(changes.changed), set(changes.removed)
    assert not (added & changed or added & removed or changed & removed)
    assert removed == {f"f{i}.py" for i in range(5)}
    assert changed == {"f8.py", "f9.py"}
    assert added == {f"f{i}.py" for i in range(10, 15)}


def test_empty_changeset_is_noop():
    changes = ChangeSet()

    assert changes.is_noop
    assert changes.to_remove() == []
    assert changes.to_index() == []
