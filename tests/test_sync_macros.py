"""Tests for macro merging across users."""

import os
from datetime import datetime, timezone

import pytest

from hackmud_sync.errors import ScanError
from hackmud_sync.sync.macros import (
    is_shared_macro,
    merge_macros,
    parse_macros,
    render_macros,
    sync_macros,
)
from hackmud_sync.sync.models import MacroRecord

T1 = datetime(2024, 1, 1, tzinfo=timezone.utc)
T2 = datetime(2024, 1, 2, tzinfo=timezone.utc)


@pytest.fixture
def write_macros(hackmud_dir):
    """Write ``<user>.macros`` with the given content and mtime."""

    def _write(user: str, content: str, mtime: float) -> None:
        path = hackmud_dir / f"{user}.macros"
        path.write_text(content)
        os.utime(path, (mtime, mtime))

    return _write


class TestParse:
    def test_pairs(self):
        records = parse_macros("a\nx\nb\ny\n", T1)

        assert [(r.name, r.body) for r in records] == [("a", "x"), ("b", "y")]
        assert all(r.timestamp == T1 for r in records)

    def test_trailing_unpaired_line_ignored(self):
        assert [r.name for r in parse_macros("a\nx\nb", T1)] == ["a"]

    def test_crlf(self):
        records = parse_macros("a\r\nx\r\n", T1)

        assert (records[0].name, records[0].body) == ("a", "x")

    def test_empty(self):
        assert parse_macros("", T1) == []

    def test_only_newline_splits(self):
        records = parse_macros("greet\nhello\u2028world\nbye\nlater\n", T1)

        assert [(r.name, r.body) for r in records] == [
            ("greet", "hello\u2028world"),
            ("bye", "later"),
        ]

    def test_form_feed_kept_in_body(self):
        records = parse_macros("a\nx\x0cy\n", T1)

        assert records[0].body == "x\x0cy"


class TestMerge:
    def test_newest_wins(self):
        merged = merge_macros(
            [
                MacroRecord(name="a", body="old", timestamp=T1),
                MacroRecord(name="a", body="new", timestamp=T2),
                MacroRecord(name="a", body="older", timestamp=T1),
            ]
        )

        assert merged["a"].body == "new"

    def test_tie_keeps_first(self):
        merged = merge_macros(
            [
                MacroRecord(name="a", body="first", timestamp=T1),
                MacroRecord(name="a", body="second", timestamp=T1),
            ]
        )

        assert merged["a"].body == "first"

    @pytest.mark.parametrize(
        "name, shared",
        [("alpha", True), ("Beta", False), ("_x", True), ("1up", True),
         ("", False)],
    )
    def test_shared_names(self, name, shared):
        assert is_shared_macro(name) is shared

    def test_render_sorted(self):
        text = render_macros(
            [
                MacroRecord(name="b", body="2", timestamp=T1),
                MacroRecord(name="a", body="1", timestamp=T1),
            ]
        )

        assert text == "a\n1\nb\n2\n"


class TestSyncMacros:
    async def test_merges_to_every_user(
        self, hackmud_dir, make_users, write_macros
    ):
        make_users("u1", "u2", "u3")
        write_macros("u1", "alpha\nx\nBeta\nq\n", 1_000_000)
        write_macros("u2", "alpha\ny\ngamma\nz\n", 2_000_000)

        result = await sync_macros(hackmud_dir)

        assert (result.merged_count, result.user_count) == (2, 3)
        for user in ("u1", "u2", "u3"):
            text = (hackmud_dir / f"{user}.macros").read_text()
            assert text == "alpha\ny\ngamma\nz\n"

    async def test_equal_mtime_keeps_earlier_file(
        self, hackmud_dir, make_users, write_macros
    ):
        make_users("a", "b")
        write_macros("a", "m\nfrom_a\n", 1_500_000)
        write_macros("b", "m\nfrom_b\n", 1_500_000)

        await sync_macros(hackmud_dir)

        assert (hackmud_dir / "b.macros").read_text() == "m\nfrom_a\n"

    async def test_macro_files_without_key_not_written(
        self, hackmud_dir, make_users, write_macros
    ):
        make_users("u1")
        write_macros("ghost", "m\nbody\n", 1_000_000)

        result = await sync_macros(hackmud_dir)

        assert result.user_count == 1
        assert (hackmud_dir / "u1.macros").read_text() == "m\nbody\n"
        assert (hackmud_dir / "ghost.macros").read_text() == "m\nbody\n"

    async def test_no_macros(self, hackmud_dir, make_users):
        make_users("u1")

        result = await sync_macros(hackmud_dir)

        assert result.merged_count == 0
        assert (hackmud_dir / "u1.macros").read_text() == ""

    async def test_idempotent(self, hackmud_dir, make_users, write_macros):
        make_users("u1", "u2")
        write_macros("u1", "a\n1\n", 1_000_000)

        await sync_macros(hackmud_dir)
        first = (hackmud_dir / "u2.macros").read_text()
        await sync_macros(hackmud_dir)

        assert (hackmud_dir / "u2.macros").read_text() == first

    async def test_missing_dir(self, tmp_path):
        with pytest.raises(ScanError):
            await sync_macros(tmp_path / "nope")
