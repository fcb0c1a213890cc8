"""Tests for the bisection state machine and the instance file sync."""

from pathlib import Path

import pytest

from conftest import make_item
from modgraph.bisection import (
    add_step,
    apply_current_step,
    create_session,
    current_candidates,
    finish,
    go_to_previous_step,
    has_active_session,
    load_session,
    manual_disable,
    manual_enable,
    next_step,
    record_result,
    restore_all_mods,
    save_session,
    session_path,
    start_session,
)
from modgraph.errors import BisectionComplete, InvalidStateTransition, NotFoundError, PersistenceError
from modgraph.models import FileData, TestResult


@pytest.fixture
def instance(tmp_path):
    """Game instance with one jar per mod a..d."""
    mods = tmp_path / "instance" / "mods"
    mods.mkdir(parents=True)
    for slug in "abcd":
        (mods / f"{slug}.jar").write_bytes(b"jar")
    return tmp_path / "instance"


def mod_names(instance):
    return sorted(path.name for path in (instance / "mods").iterdir())


def assert_closed(state, step):
    disabled = set(step.disabled_mods)
    for slug in step.disabled_mods:
        for dependent in state.dependency_map.get(slug, []):
            assert dependent in disabled
    assert disabled.isdisjoint(step.enabled_mods)
    assert sorted(step.disabled_mods + step.enabled_mods) == sorted(state.all_mods)


def test_create_session_builds_reverse_edges(instance):
    items = [make_item("a"), make_item("b", requires=["a"]), make_item("c", incompatible=["a"])]

    state = create_session(instance, items)

    assert state.all_mods == ["a", "b", "c"]
    assert state.dependency_map == {"a": ["b"]}
    assert state.mod_files == {"a": "a.jar", "b": "b.jar", "c": "c.jar"}
    assert state.current_step == -1
    assert current_candidates(state) == ["a", "b", "c"]


def test_two_step_bisection_isolates_one_mod(instance, tmp_path):
    items = [make_item(slug) for slug in "abcd"]
    state = start_session(tmp_path, instance, items)

    disabled, enabled = next_step(state)
    assert (disabled, enabled) == (["a", "b"], ["c", "d"])
    add_step(state, disabled, enabled)
    record_result(state, "good")
    assert current_candidates(state) == ["c", "d"]

    disabled, enabled = next_step(state)
    assert disabled == ["c"]
    add_step(state, disabled, enabled)
    record_result(state, TestResult.BAD)
    assert current_candidates(state) == ["c"]

    with pytest.raises(BisectionComplete):
        next_step(state)
    assert finish(tmp_path, state) == ["c"]
    assert not has_active_session(tmp_path)


def test_seed_dependents_are_disabled_with_it(instance):
    """A chosen seed takes every mod depending on it along."""
    items = [make_item("a"), make_item("b", requires=["a"]), make_item("c"), make_item("d")]
    state = create_session(instance, items)
    add_step(state, ["b", "d"], ["a", "c"])
    record_result(state, "good")
    assert current_candidates(state) == ["a", "c"]

    disabled, enabled = next_step(state)

    assert disabled == ["a", "b"]
    assert enabled == ["c", "d"]


def test_steps_stay_closed_and_candidates_shrink(instance):
    items = [
        make_item("core"),
        make_item("api", requires=["core"]),
        make_item("ui", requires=["api"]),
        make_item("maps", requires=["core"]),
        make_item("sound"),
        make_item("fonts"),
        make_item("shaders", requires=["fonts"]),
        make_item("tweaks"),
    ]
    state = create_session(instance, items)
    sizes = [len(current_candidates(state))]

    for turn in range(20):
        try:
            disabled, enabled = next_step(state)
        except BisectionComplete:
            break
        step = add_step(state, disabled, enabled)
        assert_closed(state, step)
        record_result(state, "good" if turn % 2 == 0 else "bad")
        sizes.append(len(current_candidates(state)))

    assert sizes == sorted(sizes, reverse=True)
    assert sizes[-1] < sizes[0]


def test_unscored_steps_do_not_narrow(instance):
    state = create_session(instance, [make_item(slug) for slug in "abcd"])
    add_step(state, *next_step(state))

    assert current_candidates(state) == ["a", "b", "c", "d"]


def test_record_result_guards(instance):
    state = create_session(instance, [make_item(slug) for slug in "abcd"])
    with pytest.raises(InvalidStateTransition):
        record_result(state, "good")

    add_step(state, *next_step(state))
    with pytest.raises(ValueError):
        record_result(state, "unknown")
    record_result(state, "bad")
    with pytest.raises(InvalidStateTransition):
        record_result(state, "good")


def test_previous_step_is_navigation_only(instance):
    state = create_session(instance, [make_item(slug) for slug in "abcd"])
    add_step(state, *next_step(state))
    with pytest.raises(InvalidStateTransition):
        go_to_previous_step(state)

    record_result(state, "good")
    add_step(state, *next_step(state))
    step = go_to_previous_step(state)

    assert state.current_step == 0
    assert len(state.history) == 2
    assert step.test_result == TestResult.GOOD


def test_apply_current_step_renames_files(instance):
    state = create_session(instance, [make_item(slug) for slug in "abcd"])
    (instance / "mods" / "stale.jar.disabled").write_bytes(b"jar")
    add_step(state, ["a", "b"], ["c", "d"])

    report = apply_current_step(state)
    assert report.ok
    assert sorted(report.disabled) == ["a.jar", "b.jar"]
    expected = ["a.jar.disabled", "b.jar.disabled", "c.jar", "d.jar", "stale.jar"]
    assert mod_names(instance) == expected

    apply_current_step(state)
    assert mod_names(instance) == expected

    restore_all_mods(state)
    assert mod_names(instance) == ["a.jar", "b.jar", "c.jar", "d.jar", "stale.jar"]


def test_apply_follows_navigation(instance):
    state = create_session(instance, [make_item(slug) for slug in "abcd"])
    add_step(state, ["a", "b"], ["c", "d"])
    record_result(state, "good")
    add_step(state, ["c"], ["a", "b", "d"])
    apply_current_step(state)
    assert mod_names(instance) == ["a.jar", "b.jar", "c.jar.disabled", "d.jar"]

    go_to_previous_step(state)
    apply_current_step(state)

    assert mod_names(instance) == ["a.jar.disabled", "b.jar.disabled", "c.jar", "d.jar"]


def test_unmapped_and_missing_mods_are_skipped(instance):
    items = [make_item(slug) for slug in "abcd"]
    items.append(make_item("nofile"))
    items[-1].file = FileData()
    items.append(make_item("gone"))
    state = create_session(instance, items)
    add_step(state, ["a", "nofile", "gone"], ["b", "c", "d"])

    report = apply_current_step(state)

    assert report.unmapped == ["nofile"]
    assert report.missing == ["gone"]
    assert report.disabled == ["a.jar"]
    assert report.ok


def test_apply_requires_current_step(instance):
    state = create_session(instance, [make_item("a")])
    with pytest.raises(InvalidStateTransition):
        apply_current_step(state)


def test_custom_suffix(instance):
    state = create_session(instance, [make_item(slug) for slug in "abcd"])
    add_step(state, ["d"], ["a", "b", "c"])

    apply_current_step(state, suffix=".off")

    assert "d.jar.off" in mod_names(instance)


def test_session_round_trip(instance, tmp_path):
    items = [make_item("a"), make_item("b", requires=["a"]), make_item("c")]
    state = create_session(instance, items)
    add_step(state, *next_step(state))
    record_result(state, "bad")

    save_session(tmp_path, state)
    loaded = load_session(tmp_path)

    assert loaded == state
    assert current_candidates(loaded) == current_candidates(state)


def test_load_session_errors(tmp_path):
    with pytest.raises(NotFoundError):
        load_session(tmp_path)

    session_path(tmp_path).write_text("history = [", encoding="utf-8")
    with pytest.raises(PersistenceError):
        load_session(tmp_path)


def test_only_one_active_session(instance, tmp_path):
    start_session(tmp_path, instance, [make_item("a")])

    with pytest.raises(InvalidStateTransition):
        start_session(tmp_path, instance, [make_item("a")])


def test_finish_keeps_session_when_restore_fails(instance, tmp_path, monkeypatch):
    state = start_session(tmp_path, instance, [make_item(slug) for slug in "abcd"])
    add_step(state, ["a"], ["b", "c", "d"])
    apply_current_step(state)

    def refuse(self, target):
        raise OSError("file in use")

    monkeypatch.setattr(Path, "replace", refuse)
    with pytest.raises(PersistenceError):
        finish(tmp_path, state)
    assert has_active_session(tmp_path)


def test_manual_disable_and_enable_follow_edges(instance):
    items = [make_item("a"), make_item("b", requires=["a"]), make_item("c")]
    state = create_session(instance, items)
    add_step(state, [], ["a", "b", "c"])

    assert manual_disable(state, "a") == ["a", "b"]
    assert state.step.disabled_mods == ["a", "b"]
    assert state.step.enabled_mods == ["c"]

    assert sorted(manual_enable(state, "b")) == ["a", "b"]
    assert state.step.disabled_mods == []
    assert_closed(state, state.step)


def test_manual_changes_need_open_step(instance):
    state = create_session(instance, [make_item("a"), make_item("b")])
    with pytest.raises(InvalidStateTransition):
        manual_disable(state, "a")

    add_step(state, ["a"], ["b"])
    with pytest.raises(NotFoundError):
        manual_enable(state, "zzz")

    record_result(state, "good")
    with pytest.raises(InvalidStateTransition):
        manual_enable(state, "a")


def test_restore_never_overwrites_enabled_copy(instance):
    state = create_session(instance, [make_item(slug) for slug in "abcd"])
    (instance / "mods" / "a.jar.disabled").write_bytes(b"old")

    report = restore_all_mods(state)

    assert list(report.failures) == ["a.jar.disabled"]
    assert (instance / "mods" / "a.jar").read_bytes() == b"jar"
    assert (instance / "mods" / "a.jar.disabled").read_bytes() == b"old"


def test_apply_never_overwrites_disabled_copy(instance):
    state = create_session(instance, [make_item(slug) for slug in "abcd"])
    (instance / "mods" / "a.jar.disabled").write_bytes(b"old")
    add_step(state, ["a"], ["b", "c", "d"])

    report = apply_current_step(state)

    assert not report.ok
    assert report.disabled == []
    assert (instance / "mods" / "a.jar").read_bytes() == b"jar"
    assert (instance / "mods" / "a.jar.disabled").read_bytes() == b"old"
