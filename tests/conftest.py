"""Shared test fixtures — sample file diffs, file content, SHA triples."""

from __future__ import annotations

import json
import textwrap
from pathlib import Path

import pytest

from mranchor.diff.models import FileDiff
from mranchor.review.models import ShaTriple

EXPRESS_SOURCE = textwrap.dedent("""\
    const express = require('express');
    const db = require('./db');
    const app = express();
    app.get('/users', (req, res) => {
      // TODO
      const users = db.all();
      res.json(users);
    });

    app.post('/users', (req, res) => {
      db.insert(req.body);
      res.status(201).end();
    });

    app.listen(3000);
    module.exports = app;
""")

EXPRESS_DIFF = (
    "@@ -4,2 +4,3 @@\n"
    " app.get('/users', (req, res) => {\n"
    "+  // TODO\n"
    "   const users = db.all();\n"
)


@pytest.fixture
def shas() -> ShaTriple:
    return ShaTriple(base_sha="b" * 40, start_sha="s" * 40, head_sha="h" * 40)


@pytest.fixture
def express_lines() -> tuple:
    """The 16-line head version of src/app.js."""
    return tuple(EXPRESS_SOURCE.rstrip("\n").split("\n"))


@pytest.fixture
def express_diff() -> FileDiff:
    """One hunk adding a TODO comment to src/app.js."""
    return FileDiff(old_path="src/app.js", new_path="src/app.js", diff=EXPRESS_DIFF)


@pytest.fixture
def deletion_diff() -> FileDiff:
    """Two consecutive removals between context lines."""
    return FileDiff(
        old_path="lib/util.py",
        new_path="lib/util.py",
        diff=(
            "@@ -5,4 +5,2 @@ def helper():\n"
            "     a = 1\n"
            "-    b = 2\n"
            "-    c = 3\n"
            "     return a\n"
        ),
    )


@pytest.fixture
def multi_hunk_diff() -> FileDiff:
    """Two independent hunks in a 200-line file, far apart."""
    return FileDiff(
        old_path="core/engine.py",
        new_path="core/engine.py",
        diff=(
            "diff --git a/core/engine.py b/core/engine.py\n"
            "index 1111111..2222222 100644\n"
            "--- a/core/engine.py\n"
            "+++ b/core/engine.py\n"
            "@@ -10,3 +10,3 @@ class Engine:\n"
            "     line 10\n"
            "-    old 11\n"
            "+    new 11\n"
            "     line 12\n"
            "@@ -150,2 +150,3 @@ def run():\n"
            "     line 150\n"
            "+    added 151\n"
            "     line 152\n"
        ),
    )


@pytest.fixture
def engine_lines() -> tuple:
    """Head content matching ``multi_hunk_diff``."""
    lines = [f"    line {n}" for n in range(1, 201)]
    lines[10] = "    new 11"
    lines[150] = "    added 151"
    lines[151] = "    line 152"
    return tuple(lines)


@pytest.fixture
def new_file_diff() -> FileDiff:
    return FileDiff(
        old_path="docs/new.md",
        new_path="docs/new.md",
        new_file=True,
        diff="@@ -0,0 +1,3 @@\n+# Title\n+\n+Body text\n",
    )


@pytest.fixture
def deleted_file_diff() -> FileDiff:
    return FileDiff(
        old_path="old/gone.txt",
        new_path="old/gone.txt",
        deleted_file=True,
        diff="@@ -1,2 +0,0 @@\n-first\n-second\n",
    )


@pytest.fixture
def bundle_file(tmp_path: Path, express_diff: FileDiff) -> Path:
    """A review bundle on disk with one diff, its content, and one discussion."""
    data = {
        "merge_request": {"project_id": 7, "iid": "12", "title": "Add TODO", "web_url": ""},
        "version": {
            "base_commit_sha": "b" * 40,
            "start_commit_sha": "s" * 40,
            "head_commit_sha": "h" * 40,
        },
        "diffs": [express_diff.to_dict()],
        "discussions": [
            {
                "id": "d1",
                "notes": [
                    {
                        "id": 501,
                        "body": "Why a TODO here?",
                        "system": False,
                        "author": {"name": "Dana"},
                        "position": {
                            "old_path": "src/app.js",
                            "new_path": "src/app.js",
                            "new_line": 5,
                        },
                    }
                ],
            }
        ],
        "file_contents": {"src/app.js": EXPRESS_SOURCE},
    }
    path = tmp_path / "bundle.json"
    path.write_text(json.dumps(data), encoding="utf-8")
    return path
