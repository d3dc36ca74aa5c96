from diffnote.core.diff_loader import load_diff_from_file, parse_diff
from diffnote.models.diff import ChangeBlock, ChangeKind, ContextBlock, Hunk

HUNK_WITH_LEADING_CONTEXT = """\
diff --git a/src/app.py b/src/app.py
index 1111111..2222222 100644
--- a/src/app.py
+++ b/src/app.py
@@ -48,3 +50,7 @@ def main():
 first
 second
+one
+two
+three
+four
 third
"""

ADDED_FILE = """\
diff --git a/notes.txt b/notes.txt
new file mode 100644
index 0000000..3b18e51
--- /dev/null
+++ b/notes.txt
@@ -0,0 +1,2 @@
+hello
+world
"""

DELETED_FILE = """\
diff --git a/old.txt b/old.txt
deleted file mode 100644
index 3b18e51..0000000
--- a/old.txt
+++ /dev/null
@@ -1,2 +0,0 @@
-hello
-world
"""

REPLACEMENT = """\
diff --git a/config.ini b/config.ini
index 1111111..2222222 100644
--- a/config.ini
+++ b/config.ini
@@ -1,4 +1,4 @@
 [main]
-debug = true
+debug = false
 port = 80
-host = a
+host = b
"""


def test_hunk_changed_range_skips_leading_context():
    [parsed] = parse_diff(HUNK_WITH_LEADING_CONTEXT)
    [hunk] = parsed.hunks

    assert hunk.addition_start == 50
    assert hunk.changed_line_range() == (52, 55)


def test_hunk_blocks_group_context_and_changes():
    [parsed] = parse_diff(HUNK_WITH_LEADING_CONTEXT)
    blocks = parsed.hunks[0].blocks

    assert blocks == (
        ContextBlock(lines=("first", "second")),
        ChangeBlock(deletions=(), additions=("one", "two", "three", "four")),
        ContextBlock(lines=("third",)),
    )
    assert parsed.hunks[0].context == "def main():"


def test_replacements_pair_removed_and_added_lines():
    [parsed] = parse_diff(REPLACEMENT)
    changes = [b for b in parsed.hunks[0].blocks if isinstance(b, ChangeBlock)]

    assert changes == [
        ChangeBlock(deletions=("debug = true",), additions=("debug = false",)),
        ChangeBlock(deletions=("host = a",), additions=("host = b",)),
    ]
    assert parsed.additions == 2
    assert parsed.deletions == 2
    # First addition is line 2, last is line 4
    assert parsed.hunks[0].changed_line_range() == (2, 4)


def test_hunk_without_additions_falls_back_to_nominal_range():
    hunk = Hunk(
        addition_start=10,
        addition_lines=3,
        deletion_start=10,
        deletion_lines=4,
        blocks=(ContextBlock(lines=("a",)), ChangeBlock(deletions=("gone",)), ContextBlock(lines=("b", "c"))),
    )
    assert hunk.changed_line_range() == (10, 12)


def test_added_and_deleted_files():
    added, deleted = parse_diff(ADDED_FILE + DELETED_FILE)

    assert added.path == "notes.txt"
    assert added.change_kind == ChangeKind.ADDED
    assert added.previous_path is None
    assert added.additions == 2

    assert deleted.path == "old.txt"
    assert deleted.change_kind == ChangeKind.DELETED
    assert deleted.deletions == 2


def test_modified_file_path_is_stripped_of_prefixes():
    [parsed] = parse_diff(REPLACEMENT)
    assert parsed.path == "config.ini"
    assert parsed.change_kind == ChangeKind.MODIFIED


def test_empty_and_non_diff_text_yield_no_files():
    assert parse_diff("") == []
    assert parse_diff("   \n") == []
    assert parse_diff("just some prose, no diff here\n") == []


def test_malformed_diff_degrades_to_no_changes():
    assert parse_diff("@@ -1,2 +1,2 @@\n stray hunk\n") == []


def test_load_diff_from_file(tmp_path):
    diff_file = tmp_path / "change.diff"
    diff_file.write_text(REPLACEMENT)

    [parsed] = load_diff_from_file(diff_file)
    assert parsed.path == "config.ini"


def test_pure_deletion_hunk_range_is_never_inverted():
    [deleted] = parse_diff(DELETED_FILE)
    start, end = deleted.hunks[0].changed_line_range()

    assert (start, end) == (0, 0)
    assert end >= start
