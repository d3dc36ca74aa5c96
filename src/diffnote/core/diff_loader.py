"""Parse diffs using the unidiff library."""

import logging
from pathlib import Path

from unidiff import PatchSet
from unidiff.errors import UnidiffParseError

from diffnote.models.diff import ParsedFileDiff

logger = logging.getLogger(__name__)


def parse_diff(raw_diff: str) -> list[ParsedFileDiff]:
    """Parse raw unified diff text into per-file diffs.

    A diff that cannot be parsed degrades to an empty list ("no changes")
    instead of raising.

    Args:
        raw_diff: Raw unified diff text

    Returns:
        Parsed files in diff order
    """
    if not raw_diff or not raw_diff.strip():
        return []

    try:
        patch_set = PatchSet(raw_diff)
        return [ParsedFileDiff.from_unidiff(pf) for pf in patch_set]
    except UnidiffParseError as e:
        logger.warning("Malformed diff, treating as no changes: %s", e)
    except Exception:
        logger.warning("Unexpected failure parsing diff, treating as no changes", exc_info=True)
    return []


def load_diff_from_file(file_path: Path, encoding: str = "utf-8") -> list[ParsedFileDiff]:
    """Load and parse a diff from a file.

    Args:
        file_path: Path to the diff file
        encoding: File encoding

    Returns:
        Parsed files in diff order
    """
    return parse_diff(file_path.read_text(encoding=encoding))
