import json

import pytest

import tagkeeper.cache as cache


def test_save_and_load_state_round_trip(project):
    state = cache.new_state(project, last_build=123.5)
    state.pending_rebuild = True
    state.tags_path.parent.mkdir(parents=True, exist_ok=True)
    state.tags_path.write_bytes(b"")

    cache.save_state(state)
    loaded = cache.load_state(project)

    assert loaded is not None
    assert loaded.root == project
    assert loaded.tags_path == state.tags_path
    assert loaded.last_build == 123.5
    assert loaded.pending_rebuild is True
    assert loaded.generated_at == state.generated_at


def test_tags_path_is_stable_per_root(tmp_path, isolated_data_dirs):
    first = cache.tags_path_for(tmp_path / "a")
    second = cache.tags_path_for(tmp_path / "b")

    assert first == cache.tags_path_for(tmp_path / "a")
    assert first != second
    assert first.name == "TAGS"
    assert isolated_data_dirs in first.parents


def test_load_state_missing_returns_none(project):
    assert cache.load_state(project) is None


def test_load_state_requires_tags_file(project):
    cache.save_state(cache.new_state(project, last_build=1.0))

    assert cache.load_state(project) is None


def test_load_state_ignores_garbage(project, caplog):
    state = cache.new_state(project, last_build=1.0)
    state_path = cache.save_state(state)
    state_path.write_text("{nope", encoding="utf-8")

    with caplog.at_level("WARNING", logger="tagkeeper.cache"):
        assert cache.load_state(project) is None
    assert "unreadable" in caplog.text

    state_path.write_text(json.dumps({"root": str(project)}), encoding="utf-8")
    assert cache.load_state(project) is None


def test_load_state_rejects_other_versions(project):
    state = cache.new_state(project, last_build=1.0)
    state.version = cache.CACHE_VERSION + 1
    state.tags_path.parent.mkdir(parents=True, exist_ok=True)
    state.tags_path.write_bytes(b"")
    cache.save_state(state)

    assert cache.load_state(project) is None


def test_delete_index_removes_directory(project):
    state = cache.new_state(project, last_build=1.0)
    cache.save_state(state)

    assert cache.delete_index(project) is True
    assert not cache.index_dir(project).exists()
    assert cache.delete_index(project) is False


def test_list_and_clear_cache_entries(tmp_path):
    roots = []
    for name in ("one", "two"):
        root = tmp_path / name
        root.mkdir()
        state = cache.new_state(root, last_build=5.0)
        state.tags_path.parent.mkdir(parents=True, exist_ok=True)
        state.tags_path.write_bytes(b"\x0c\na.c,0\n")
        cache.save_state(state)
        roots.append(str(root))

    entries = cache.list_cache_entries()

    assert sorted(entry["root"] for entry in entries) == sorted(roots)
    assert all(entry["tags_size"] == 8 for entry in entries)
    assert cache.clear_all_cache() == 2
    assert cache.list_cache_entries() == []
    assert cache.clear_all_cache() == 0


def test_cache_dir_context_overrides(tmp_path, project):
    override = tmp_path / "alt-cache"

    with cache.cache_dir_context(override):
        assert cache.current_cache_dir() == override.resolve()
        assert override.resolve() in cache.tags_path_for(project).parents

    assert override.resolve() not in cache.tags_path_for(project).parents


def test_set_cache_dir_rejects_file(tmp_path):
    target = tmp_path / "file"
    target.write_text("x", encoding="utf-8")

    with pytest.raises(NotADirectoryError):
        cache.set_cache_dir(target)
