"""Starter .mranchor.toml template."""

DEFAULT_TOML = """\
# mranchor configuration
version = "1.0"

[context]
enabled = true            # widen hunks with surrounding file content
window_size = 50          # lines added before and after each hunk
max_file_lines = 10000    # larger files are sent as diff only

[resolver]
tolerance = 1             # max line distance for nearest-line anchoring

[files]
# skip_patterns = ["*.generated.ts", "fixtures/"]
# patterns_file = ".mranchor-skip.yaml"

[output]
format = "terminal"       # terminal | json
show_summary = true

[gitlab]
url = "https://gitlab.com"
timeout = 30
max_workers = 8
"""
