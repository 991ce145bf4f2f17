"""Tests for discussion conversion and model response parsing."""

from mranchor.review.discussions import discussions_to_feedback, parse_ai_response
from mranchor.review.models import FeedbackStatus, ResolutionKind, Severity


def _discussion(note_id, position=None, system=False, body="Looks off"):
    return {
        "id": f"d{note_id}",
        "notes": [
            {
                "id": note_id,
                "body": body,
                "system": system,
                "author": {"name": "Sam Lee", "username": "slee"},
                "position": position,
            }
        ],
    }


class TestDiscussionsToFeedback:
    def test_inline_note(self, shas):
        out = discussions_to_feedback(
            [_discussion(11, {"old_path": "a.py", "new_path": "a.py", "new_line": 8, "base_sha": "x"})],
            shas,
        )
        assert len(out) == 1
        fb = out[0]
        assert fb.id == "gitlab-11"
        assert fb.file_path == "a.py"
        assert fb.line_number == 8
        assert fb.status is FeedbackStatus.SUBMITTED
        assert fb.is_existing
        assert fb.title == "Comment by Sam Lee"
        assert fb.position.base_sha == shas.base_sha
        assert fb.resolution is ResolutionKind.EXACT

    def test_deletion_note_uses_old_line(self, shas):
        out = discussions_to_feedback(
            [_discussion(12, {"old_path": "a.py", "new_path": "a.py", "old_line": 3})], shas,
        )
        assert out[0].line_number == 3
        assert out[0].position.new_line is None

    def test_system_and_general_notes_skipped(self, shas):
        out = discussions_to_feedback(
            [
                _discussion(13, {"new_path": "a.py", "new_line": 1}, system=True),
                _discussion(14, None),
            ],
            shas,
        )
        assert out == []


class TestParseAiResponse:
    def test_bare_array(self):
        items = parse_ai_response(
            '[{"filePath": "a.ts", "lineNumber": 42, "severity": "Critical", '
            '"title": "Null check", "description": "May be undefined"}]'
        )
        assert len(items) == 1
        assert items[0].file_path == "a.ts"
        assert items[0].line_number == 42
        assert items[0].severity is Severity.CRITICAL

    def test_wrapped_object_in_prose(self):
        text = (
            "Here is my review:\n```json\n"
            '{"feedback": [{"file_path": "b.py", "line_number": "7", "severity": "warning"}]}'
            "\n```\n"
        )
        items = parse_ai_response(text)
        assert items[0].file_path == "b.py"
        assert items[0].line_number == 7
        assert items[0].severity is Severity.WARNING
        assert items[0].title == "AI Review Comment"

    def test_bad_line_number_becomes_zero(self):
        items = parse_ai_response('[{"filePath": "c.py", "lineNumber": "n/a"}]')
        assert items[0].line_number == 0

    def test_unknown_severity_is_info(self):
        items = parse_ai_response('[{"filePath": "c.py", "lineNumber": 1, "severity": "nit"}]')
        assert items[0].severity is Severity.INFO

    def test_unparseable_becomes_general_comment(self):
        items = parse_ai_response("The code looks fine overall.")
        assert len(items) == 1
        assert items[0].file_path == ""
        assert items[0].line_number == 0
        assert items[0].title == "AI Review Response"
        assert "The code looks fine overall." in items[0].description

    def test_empty_array(self):
        assert parse_ai_response("[]") == []
