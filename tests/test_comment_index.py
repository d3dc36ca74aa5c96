from diffnote.core.comment_index import build_comment_index
from diffnote.models.comment import Comment


def make_comment(path="src/app.py", start=None, end=None, content="note"):
    return Comment(session_id="s1", file_path=path, content=content, line_start=start, line_end=end)


def test_single_line_comment_indexes_at_its_line():
    comment = make_comment(start=10)
    index = build_comment_index([comment])

    assert index.lines("src/app.py") == [10]
    assert index.at("src/app.py", 10) == [comment]


def test_range_indexes_only_its_endpoints():
    comment = make_comment(start=10, end=14)
    index = build_comment_index([comment])

    assert index.lines("src/app.py") == [10, 14]
    for line in (11, 12, 13):
        assert index.at("src/app.py", line) == []


def test_range_with_equal_ends_is_indexed_once():
    comment = make_comment(start=7, end=7)
    index = build_comment_index([comment])

    assert index.lines("src/app.py") == [7]
    assert index.at("src/app.py", 7) == [comment]


def test_file_level_bucket_only_when_a_comment_has_no_line():
    with_file_level = build_comment_index([make_comment(), make_comment(start=3)])
    without = build_comment_index([make_comment(start=3)])

    assert with_file_level.has_file_level("src/app.py")
    assert len(with_file_level.file_level("src/app.py")) == 1
    assert not without.has_file_level("src/app.py")
    assert without.file_level("src/app.py") == []


def test_lines_are_exactly_starts_and_ends():
    comments = [
        make_comment(start=1),
        make_comment(start=5, end=9),
        make_comment(start=9, end=12),
        make_comment(path="other.py", start=2),
        make_comment(),
    ]
    index = build_comment_index(comments)

    expected = {c.line_start for c in comments if c.file_path == "src/app.py" and c.line_start is not None}
    expected |= {c.line_end for c in comments if c.file_path == "src/app.py" and c.line_end is not None}
    assert set(index.lines("src/app.py")) == expected
    # Line 9 carries the end of one range and the start of another
    assert len(index.at("src/app.py", 9)) == 2


def test_duplicate_comment_is_not_repeated_at_a_line():
    comment = make_comment(start=4, end=6)
    index = build_comment_index([comment, comment])

    assert index.at("src/app.py", 4) == [comment]
    assert index.at("src/app.py", 6) == [comment]


def test_files_are_separate():
    index = build_comment_index([make_comment(path="a.py", start=1), make_comment(path="b.py", start=1)])

    assert "a.py" in index
    assert "c.py" not in index
    assert sorted(index.files()) == ["a.py", "b.py"]
    assert index.lines("c.py") == []
