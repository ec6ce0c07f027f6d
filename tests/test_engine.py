# tests/test_engine.py

from __future__ import annotations

import re
from pathlib import Path

from tdo.core.engine import Engine, ExitCode, count_info
from tdo.core.parser import (
    Act,
    Add,
    ConfigPin,
    Exit,
    Find,
    Foo,
    ListTasks,
    Pin,
    Shell,
    Show,
    Undo,
    parse,
    tokenize,
)
from tdo.tasks.task_models import Action, ArchivedTask, OpenTask
from tdo.tasks.task_store import TaskStore

from .fakes import FailingArchiveStore, FakeClock, ScriptedRandom

ADDED_RE = re.compile(r"^added: \[([A-Z]{5})\] (.*) · (\d+w \d+c \d+b)$")


def run(engine: Engine, line: str):
    return engine.execute(parse(tokenize(line)))


def file_lines(path: Path) -> list[str]:
    return path.read_text("utf-8").splitlines()


def add(engine: Engine, text: str) -> str:
    lines, mutated, code = engine.execute(Add(text))
    assert code is ExitCode.OK and mutated
    m = ADDED_RE.match(lines[0])
    assert m, lines
    return m.group(1)


def test_count_info() -> None:
    assert count_info("buy milk") == "2w 8c 8b"
    assert count_info("  spaced   out  ") == "2w 16c 16b"
    assert count_info("café") == "1w 4c 5b"


def test_end_to_end_add_done_undo(engine: Engine, store: TaskStore) -> None:
    lines, mutated, code = run(engine, "do buy milk")
    assert code is ExitCode.OK and mutated
    m = ADDED_RE.match(lines[0])
    assert m is not None
    uid = m.group(1)
    assert lines == [f"added: [{uid}] buy milk · 2w 8c 8b"]
    assert len(file_lines(store.active_path)) == 1

    lines, mutated, code = run(engine, f"{uid} done")
    assert (lines, mutated, code) == ([f"done: [{uid}] buy milk status: done"], True, ExitCode.OK)
    assert file_lines(store.active_path) == []
    archive = store.read_archive()
    assert len(archive) == 1 and archive[0].status == "done"

    lines, mutated, code = run(engine, "undo")
    assert (lines, mutated, code) == ([f"undo: [{uid}] buy milk"], True, ExitCode.OK)
    assert len(file_lines(store.active_path)) == 1
    assert file_lines(store.archive_path) == []


def test_count_summary_for_nine_character_text(engine: Engine) -> None:
    lines, _, _ = engine.execute(Add("buy milk!"))
    assert lines[0].endswith("· 2w 9c 9b")


def test_shared_prefix_find_and_done(store: TaskStore, clock: FakeClock) -> None:
    engine = Engine(store, clock=clock, rng=ScriptedRandom(["ABCDE", "ABXYZ"]))
    add(engine, "first")
    add(engine, "second")

    lines, mutated, code = run(engine, "find AB")
    assert lines == ["[ABXYZ] second", "[ABCDE] first"]
    assert not mutated and code is ExitCode.OK

    lines, mutated, code = run(engine, "AB done")
    assert lines == [
        "note: ambiguous prefix 'AB' → chose ABXYZ among [ABCDE,ABXYZ]",
        "done: [ABXYZ] second status: done",
    ]
    assert mutated and code is ExitCode.OK
    assert [t.uid for t in store.read_open()] == ["ABCDE"]
    assert [a.uid for a in store.read_archive()] == ["ABXYZ"]


def test_uids_stay_unique_across_open_and_archive(engine: Engine, store: TaskStore) -> None:
    for i in range(30):
        uid = add(engine, f"task {i}")
        if i % 3 == 0:
            engine.execute(Act((uid,), Action.DONE, None))

    uids = [t.uid for t in store.read_open()] + [a.uid for a in store.read_archive()]
    assert len(uids) == 30
    assert len(set(uids)) == 30


def test_add_rejects_blank_text(engine: Engine, store: TaskStore) -> None:
    lines, mutated, code = run(engine, "do    ")
    assert lines == ["note: empty task text — nothing added"]
    assert not mutated and code is ExitCode.USER_ERROR
    assert store.active_path.read_text("utf-8") == ""

    lines, mutated, code = engine.execute(Add(" \t "))
    assert code is ExitCode.USER_ERROR and not mutated


def test_list_sorts_newest_first(engine: Engine) -> None:
    a = add(engine, "older")
    b = add(engine, "newer")
    lines, mutated, code = engine.execute(ListTasks())
    assert lines == [f"[{b}] newer", f"[{a}] older"]
    assert not mutated and code is ExitCode.OK


def test_find_is_case_insensitive_and_blank_lists_all(engine: Engine) -> None:
    a = add(engine, "Buy MILK")
    b = add(engine, "walk dog")

    assert engine.execute(Find("milk")).lines == [f"[{a}] Buy MILK"]
    assert engine.execute(Find(b.lower())).lines == [f"[{b}] walk dog"]
    assert engine.execute(Find(None)).lines == [f"[{b}] walk dog", f"[{a}] Buy MILK"]
    assert engine.execute(Find("nothing like this")).lines == []


def test_foo_shows_open_then_archive(store: TaskStore, clock: FakeClock) -> None:
    engine = Engine(store, clock=clock, rng=ScriptedRandom(["KQZWT", "PLMNB", "XYZAB"]))
    add(engine, "milk")
    add(engine, "bread")
    add(engine, "milk again")
    engine.execute(Act(("KQZWT",), Action.DONE, None))
    engine.execute(Act(("XYZAB",), Action.REMOVE, "bought already"))

    lines = engine.execute(Foo(None)).lines
    assert lines[0] == "[PLMNB] bread"
    assert re.match(r"^\[XYZAB\] milk again @ \S+ status: bought already$", lines[1])
    assert re.match(r"^\[KQZWT\] milk @ \S+ status: done$", lines[2])

    # Archived tasks also match on status.
    lines = engine.execute(Foo("BOUGHT")).lines
    assert len(lines) == 1 and lines[0].startswith("[XYZAB]")

    lines = engine.execute(Foo("milk")).lines
    assert [line[:7] for line in lines] == ["[XYZAB]", "[KQZWT]"]


def test_undo_with_empty_archive(engine: Engine) -> None:
    assert engine.execute(Undo()) == (["note: nothing to undo"], False, ExitCode.USER_ERROR)


def test_undo_refuses_when_uid_already_open(engine: Engine, store: TaskStore) -> None:
    uid = add(engine, "buy milk")
    engine.execute(Act((uid,), Action.DONE, None))

    # The identifier reappears in the open list (e.g. a manual edit or another process).
    store.write_open([OpenTask(uid=uid, created_at="2026-01-06T09:00:00+00:00", text="again")])
    active_before = store.active_path.read_text("utf-8")
    archive_before = store.archive_path.read_text("utf-8")

    lines, mutated, code = engine.execute(Undo())

    assert lines == [f"note: cannot undo [{uid}]; already open"]
    assert not mutated and code is ExitCode.USER_ERROR
    assert store.active_path.read_text("utf-8") == active_before
    assert store.archive_path.read_text("utf-8") == archive_before


def test_undo_is_last_in_first_out(engine: Engine, store: TaskStore) -> None:
    a = add(engine, "a")
    b = add(engine, "b")
    engine.execute(Act((b,), Action.DONE, None))
    engine.execute(Act((a,), Action.DONE, None))

    assert engine.execute(Undo()).lines == [f"undo: [{a}] a"]
    assert engine.execute(Undo()).lines == [f"undo: [{b}] b"]
    assert engine.execute(Undo()).lines == ["note: nothing to undo"]


def test_undo_follows_file_order_not_timestamps(engine: Engine, store: TaskStore) -> None:
    store.write_archive(
        [
            ArchivedTask("KQZWT", "c1", "later stamp", "2026-03-01T00:00:00+00:00", "done"),
            ArchivedTask("PLMNB", "c2", "earlier stamp", "2026-01-01T00:00:00+00:00", "done"),
        ]
    )
    assert engine.execute(Undo()).lines == ["undo: [PLMNB] earlier stamp"]


def test_bare_done_marks_newest(engine: Engine, store: TaskStore) -> None:
    add(engine, "older")
    newest = add(engine, "newest")

    lines, mutated, code = run(engine, "done")

    assert lines == [f"done: [{newest}] newest status: done"]
    assert mutated and code is ExitCode.OK
    assert [t.text for t in store.read_open()] == ["older"]


def test_bare_done_with_no_open_tasks(engine: Engine) -> None:
    lines, mutated, code = run(engine, "done")
    assert lines == ["note: no open tasks to mark done"]
    assert not mutated and code is ExitCode.USER_ERROR


def test_bare_remove_matches_nothing(engine: Engine) -> None:
    add(engine, "keep me")
    lines, mutated, code = run(engine, "remove")
    assert lines == ["note: nothing matched"]
    assert not mutated and code is ExitCode.USER_ERROR


def test_act_with_unknown_prefix_reports_note(engine: Engine) -> None:
    add(engine, "keep me")
    lines, mutated, code = engine.execute(Act(("ZZZZZ",), Action.DONE, None))
    assert lines == ["note: no open task matches 'ZZZZZ'"]
    assert not mutated and code is ExitCode.USER_ERROR


def test_act_batch_with_status_and_partial_miss(store: TaskStore, clock: FakeClock) -> None:
    engine = Engine(store, clock=clock, rng=ScriptedRandom(["KQZWT", "PLMNB", "XYZAB"]))
    add(engine, "one")
    add(engine, "two")
    add(engine, "three")

    lines, mutated, code = run(engine, "kq zz pl remove duplicate entry")

    assert lines == [
        "note: no open task matches 'ZZ'",
        "remove: [KQZWT] one status: duplicate entry",
        "remove: [PLMNB] two status: duplicate entry",
    ]
    assert mutated and code is ExitCode.OK
    assert [t.uid for t in store.read_open()] == ["XYZAB"]
    assert [(a.uid, a.status) for a in store.read_archive()] == [
        ("KQZWT", "duplicate entry"),
        ("PLMNB", "duplicate entry"),
    ]


def test_remove_default_status_and_pipe_in_status(engine: Engine, store: TaskStore) -> None:
    a = add(engine, "a")
    b = add(engine, "b")
    assert engine.execute(Act((a,), Action.REMOVE, None)).lines == [
        f"remove: [{a}] a status: deleted"
    ]
    engine.execute(Act((b,), Action.DONE, "x|y"))
    assert store.read_archive()[-1].status == "x/y"


def test_show_open_and_archived(engine: Engine, store: TaskStore, clock: FakeClock) -> None:
    uid = add(engine, "buy milk")
    lines, mutated, code = engine.execute(Show(uid[:3]))
    assert lines == [f"[{uid}] buy milk · 2w 8c 8b", "created: 2026-01-05T09:00:00+00:00"]
    assert not mutated and code is ExitCode.OK

    engine.execute(Act((uid,), Action.DONE, "bought"))
    lines, _, code = engine.execute(Show(uid))
    assert lines == [
        f"[{uid}] buy milk · 2w 8c 8b",
        "created: 2026-01-05T09:00:00+00:00",
        "completed: 2026-01-05T09:01:00+00:00",
        "status: bought",
    ]
    assert code is ExitCode.OK


def test_show_prefers_open_and_breaks_ties(store: TaskStore, clock: FakeClock) -> None:
    engine = Engine(store, clock=clock, rng=ScriptedRandom(["ABCDE", "ABXYZ", "ABKLM"]))
    add(engine, "one")
    add(engine, "two")
    add(engine, "three")
    engine.execute(Act(("ABKLM",), Action.DONE, None))

    lines = engine.execute(Show("AB")).lines
    assert lines[0] == "note: ambiguous prefix 'AB' → chose ABXYZ among [ABCDE,ABXYZ]"
    assert lines[1].startswith("[ABXYZ] two")

    # Exact archive match is found once nothing open matches.
    assert engine.execute(Show("ABKLM")).lines[0].startswith("[ABKLM] three")


def test_show_archive_tie_break_uses_completion_time(store: TaskStore, engine: Engine) -> None:
    store.write_archive(
        [
            ArchivedTask("ABCDE", "2026-01-09T00:00:00+00:00", "created late", "2026-01-10T00:00:00+00:00", "done"),
            ArchivedTask("ABXYZ", "2026-01-01T00:00:00+00:00", "completed late", "2026-02-01T00:00:00+00:00", "done"),
        ]
    )
    lines = engine.execute(Show("AB")).lines
    assert lines[0] == "note: ambiguous prefix 'AB' → chose ABXYZ among [ABCDE,ABXYZ]"
    assert lines[1].startswith("[ABXYZ] completed late")


def test_show_without_match(engine: Engine) -> None:
    assert engine.execute(Show("ZZ")) == (["note: no task matches 'ZZ'"], False, ExitCode.USER_ERROR)


def test_shell_and_presentation_commands_do_not_mutate(engine: Engine) -> None:
    lines, mutated, code = engine.execute(Shell())
    assert lines == ["error: 'shell' is only valid as a top-level command"]
    assert not mutated and code is ExitCode.USER_ERROR

    assert engine.execute(Pin()) == (["note: pin/unpin handled by desktop app"], False, ExitCode.OK)
    assert engine.execute(Exit()).code is ExitCode.OK
    assert engine.execute(ConfigPin(True)) == (["note: config handled externally"], False, ExitCode.OK)


def test_store_failure_maps_to_io_error(tmp_path: Path, clock: FakeClock) -> None:
    store = FailingArchiveStore(tmp_path / "active.md", tmp_path / "archive.md")
    engine = Engine(store, clock=clock)
    uid = add(engine, "keep me")
    active_before = store.active_path.read_text("utf-8")

    lines, mutated, code = engine.execute(Act((uid,), Action.DONE, None))

    assert code is ExitCode.IO_ERROR and not mutated
    assert lines[0].startswith("error: Atomic write failed for ")
    # The archive is written first, so the open list is untouched.
    assert store.active_path.read_text("utf-8") == active_before


def test_missing_file_maps_to_io_error(engine: Engine, store: TaskStore) -> None:
    store.active_path.unlink()
    lines, mutated, code = engine.execute(ListTasks())
    assert code is ExitCode.IO_ERROR and not mutated
    assert lines[0].startswith("error: Failed to read ")


def test_identifier_exhaustion_maps_to_unexpected(store: TaskStore, clock: FakeClock) -> None:
    store.write_open([OpenTask("KQZWT", "c", "taken")])
    engine = Engine(store, clock=clock, rng=ScriptedRandom(["KQZWT"]))

    lines, mutated, code = engine.execute(Add("another"))

    assert lines == ["error: could not generate UID"]
    assert not mutated and code is ExitCode.UNEXPECTED
    assert len(store.read_open()) == 1


def test_open_tasks_accessor_is_read_only(engine: Engine, store: TaskStore) -> None:
    uid = add(engine, "x")
    before = store.active_path.read_text("utf-8")
    assert [t.uid for t in engine.open_tasks()] == [uid]
    assert store.active_path.read_text("utf-8") == before
