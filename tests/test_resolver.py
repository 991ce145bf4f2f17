"""Tests for position resolution — exact, nearest, and file-level fallbacks."""

import hashlib

import pytest

from mranchor.diff.context import expand_file
from mranchor.diff.models import FileDiff
from mranchor.diff.parser import parse_file_diff
from mranchor.review.models import AIFeedbackItem, FeedbackStatus, ResolutionKind, Severity
from mranchor.review.resolver import PositionResolver, line_code, resolve_feedback


def _sha(path: str) -> str:
    return hashlib.sha1(path.encode("utf-8")).hexdigest()


def _item(path: str, line: int) -> AIFeedbackItem:
    return AIFeedbackItem(file_path=path, line_number=line, severity=Severity.WARNING, title="t")


@pytest.fixture
def near_diff():
    return parse_file_diff(FileDiff(
        "a.ts", "a.ts",
        diff="@@ -43,2 +43,3 @@\n ctx43\n+added44\n ctx45\n",
    ))


class TestExactMatch:
    def test_added_line(self, express_diff, shas):
        parsed = parse_file_diff(express_diff)
        res = PositionResolver().resolve(_item("src/app.js", 5), parsed, shas)
        assert res.kind is ResolutionKind.EXACT
        assert res.position.new_line == 5
        assert res.position.old_line is None
        assert res.line_content == "  // TODO"

    def test_context_line_carries_both(self, express_diff, shas):
        parsed = parse_file_diff(express_diff)
        res = PositionResolver().resolve(_item("src/app.js", 6), parsed, shas)
        assert res.kind is ResolutionKind.EXACT
        assert (res.position.old_line, res.position.new_line) == (5, 6)

    def test_added_line_preferred_over_shared_number(self, shas):
        parsed = parse_file_diff(FileDiff(
            "f.py", "f.py", diff="@@ -1,2 +1,2 @@\n-old1\n+new1\n ctx\n",
        ))
        res = PositionResolver().resolve(_item("f.py", 1), parsed, shas)
        assert res.position.new_line == 1
        assert res.line_content == "new1"

    def test_pure_deletion_uses_old_line_only(self, deletion_diff, shas):
        parsed = parse_file_diff(deletion_diff)
        res = PositionResolver().resolve(_item("lib/util.py", 7), parsed, shas)
        assert res.kind is ResolutionKind.EXACT
        assert res.position.old_line == 7
        assert res.position.new_line is None
        assert "new_line" not in res.position.to_payload()
        assert res.line_content == "    c = 3"

    def test_position_carries_shas_and_paths(self, express_diff, shas):
        parsed = parse_file_diff(express_diff)
        pos = PositionResolver().resolve(_item("src/app.js", 5), parsed, shas).position
        assert (pos.base_sha, pos.start_sha, pos.head_sha) == (shas.base_sha, shas.start_sha, shas.head_sha)
        assert pos.position_type == "text"
        assert pos.old_path == pos.new_path == "src/app.js"
        assert pos.is_postable


class TestNearestMatch:
    def test_one_line_away(self, near_diff, shas):
        res = PositionResolver().resolve(_item("a.ts", 42), near_diff, shas)
        assert res.kind is ResolutionKind.NEAREST
        assert res.position.new_line == 43
        assert res.line_number == 43

    def test_beyond_tolerance_is_file_level(self, near_diff, shas):
        res = PositionResolver().resolve(_item("a.ts", 41), near_diff, shas)
        assert res.kind is ResolutionKind.FILE_LEVEL
        assert res.position is None
        assert res.line_number == 41

    def test_larger_tolerance(self, near_diff, shas):
        res = PositionResolver(tolerance=2).resolve(_item("a.ts", 41), near_diff, shas)
        assert res.kind is ResolutionKind.NEAREST
        assert res.position.new_line == 43

    def test_tie_goes_to_earliest_hunk(self, shas):
        parsed = parse_file_diff(FileDiff(
            "t.py", "t.py",
            diff="@@ -9 +9 @@\n nine\n@@ -11 +11 @@\n eleven\n",
        ))
        res = PositionResolver().resolve(_item("t.py", 10), parsed, shas)
        assert res.kind is ResolutionKind.NEAREST
        assert res.position.new_line == 9

    def test_removed_line_distance_uses_old_side(self, shas):
        parsed = parse_file_diff(FileDiff(
            "r.py", "r.py", diff="@@ -20,1 +19,0 @@\n-gone\n",
        ))
        res = PositionResolver().resolve(_item("r.py", 21), parsed, shas)
        assert res.kind is ResolutionKind.NEAREST
        assert res.position.old_line == 20
        assert res.position.new_line is None


class TestFileLevel:
    @pytest.mark.parametrize("line", [0, -3])
    def test_zero_or_negative(self, express_diff, shas, line):
        res = PositionResolver().resolve(_item("src/app.js", line), parse_file_diff(express_diff), shas)
        assert res.kind is ResolutionKind.FILE_LEVEL
        assert res.position is None

    def test_line_only_in_expanded_view(self, express_diff, express_lines, shas):
        parsed = parse_file_diff(express_diff)
        expanded = expand_file(parsed, express_lines, window_size=50)
        resolver = PositionResolver()
        assert resolver.resolve(_item("src/app.js", 12), parsed, shas).position is None
        pos = resolver.resolve(_item("src/app.js", 12), expanded, shas).position
        assert (pos.old_line, pos.new_line) == (11, 12)


class TestLineCode:
    def test_context_line(self):
        assert line_code("a.py", 3, 4) == f"{_sha('a.py')}_3_4"

    def test_added_line_borrows_previous_old(self, express_diff):
        from mranchor.diff.line_map import build_mapping

        mapping = build_mapping(parse_file_diff(express_diff))
        assert line_code("src/app.js", None, 5, mapping) == f"{_sha('src/app.js')}_4_5"

    def test_removed_line_borrows_next_new(self, deletion_diff):
        from mranchor.diff.line_map import build_mapping

        mapping = build_mapping(parse_file_diff(deletion_diff))
        assert line_code("lib/util.py", 7, None, mapping) == f"{_sha('lib/util.py')}_7_6"

    def test_without_mapping(self):
        assert line_code("a.py", None, 10) == f"{_sha('a.py')}_9_10"
        assert line_code("a.py", 10, None) == f"{_sha('a.py')}_10_11"


class TestResolveFeedback:
    def test_unknown_file_dropped(self, express_diff, shas, caplog):
        parsed = [parse_file_diff(express_diff)]
        with caplog.at_level("WARNING"):
            out = resolve_feedback([_item("nope.js", 3), _item("src/app.js", 5)], parsed, shas)
        assert [f.file_path for f in out] == ["src/app.js"]
        assert "nope.js" in caplog.text

    def test_ids_and_status(self, express_diff, shas):
        parsed = [parse_file_diff(express_diff)]
        out = resolve_feedback([_item("src/app.js", 5), _item("src/app.js", 0)], parsed, shas)
        assert [f.id for f in out] == ["ai-001", "ai-002"]
        assert all(f.status is FeedbackStatus.PENDING for f in out)
        assert out[0].resolution is ResolutionKind.EXACT
        assert out[1].position is None

    def test_general_comment_kept(self, express_diff, shas):
        out = resolve_feedback([_item("", 0)], [parse_file_diff(express_diff)], shas)
        assert len(out) == 1
        assert out[0].is_general
        assert out[0].position is None

    def test_zero_line_never_has_position(self, express_diff, multi_hunk_diff, shas):
        parsed = [parse_file_diff(express_diff), parse_file_diff(multi_hunk_diff)]
        items = [_item(p.file_path, 0) for p in parsed]
        assert all(f.position is None for f in resolve_feedback(items, parsed, shas))

    def test_failure_isolated(self, express_diff, shas, monkeypatch):
        parsed = [parse_file_diff(express_diff)]

        def boom(self, item, *args, **kwargs):
            if item.line_number == 6:
                raise RuntimeError("boom")
            return original(self, item, *args, **kwargs)

        original = PositionResolver.resolve
        monkeypatch.setattr(PositionResolver, "resolve", boom)
        out = resolve_feedback([_item("src/app.js", 6), _item("src/app.js", 5)], parsed, shas)
        assert out[0].resolution is ResolutionKind.FILE_LEVEL
        assert out[0].position is None
        assert out[1].position.new_line == 5
