import asyncio
import threading

import pytest

from diffnote.core import discovery
from diffnote.core.discovery import (
    DiscoveryError,
    RepoFound,
    ScanCompleted,
    ScanFailed,
    discover_repositories,
    is_git_repository,
    list_child_directories,
    scan_repositories,
)


async def collect(roots, max_depth=3):
    return [event async for event in scan_repositories(roots, max_depth)]


def found_paths(events):
    return [e.repository.path for e in events if isinstance(e, RepoFound)]


def test_git_repository_detection(tmp_path, make_repo):
    repo = make_repo(tmp_path / "repo")
    worktree = tmp_path / "worktree"
    worktree.mkdir()
    (worktree / ".git").write_text("gitdir: /elsewhere/.git/worktrees/wt\n")
    bare_dot_git = tmp_path / "empty"
    (bare_dot_git / ".git").mkdir(parents=True)

    assert is_git_repository(repo)
    assert is_git_repository(worktree)
    assert not is_git_repository(bare_dot_git)
    assert not is_git_repository(tmp_path / "missing")


def test_child_listing_skips_ignored_and_dot_directories(tmp_path):
    for name in ("b", "a", "node_modules", ".hidden", "__pycache__", "venv"):
        (tmp_path / name).mkdir()
    (tmp_path / "file.txt").write_text("x")

    assert [p.name for p in list_child_directories(tmp_path)] == ["a", "b"]


@pytest.mark.asyncio
async def test_scan_finds_repositories_and_completes(tmp_path, make_repo):
    make_repo(tmp_path / "beta")
    make_repo(tmp_path / "group" / "Alpha")
    (tmp_path / "plain").mkdir()

    events = await collect([tmp_path])

    assert sorted(found_paths(events)) == sorted([str(tmp_path / "beta"), str(tmp_path / "group" / "Alpha")])
    assert events[-1] == ScanCompleted(total=2)
    assert sum(isinstance(e, (ScanCompleted, ScanFailed)) for e in events) == 1


@pytest.mark.asyncio
async def test_repositories_are_not_descended_into(tmp_path, make_repo):
    make_repo(tmp_path / "outer")
    make_repo(tmp_path / "outer" / "inner")

    events = await collect([tmp_path])

    assert found_paths(events) == [str(tmp_path / "outer")]


@pytest.mark.asyncio
async def test_root_that_is_a_repository(tmp_path, make_repo):
    root = make_repo(tmp_path / "project")

    events = await collect([root])

    assert found_paths(events) == [str(root)]


@pytest.mark.asyncio
async def test_depth_limit_is_inclusive(tmp_path, make_repo):
    make_repo(tmp_path / "a" / "b" / "c")

    assert found_paths(await collect([tmp_path], max_depth=3)) == [str(tmp_path / "a" / "b" / "c")]
    assert found_paths(await collect([tmp_path], max_depth=2)) == []


@pytest.mark.asyncio
async def test_ignored_and_hidden_directories_are_not_scanned(tmp_path, make_repo):
    make_repo(tmp_path / "node_modules" / "pkg")
    make_repo(tmp_path / ".config" / "tool")
    make_repo(tmp_path / "vendor" / "lib")
    make_repo(tmp_path / "src" / "app")

    events = await collect([tmp_path])

    assert found_paths(events) == [str(tmp_path / "src" / "app")]


@pytest.mark.asyncio
async def test_overlapping_roots_emit_each_repository_once(tmp_path, make_repo):
    make_repo(tmp_path / "work" / "api")
    make_repo(tmp_path / "work" / "web")

    events = await collect([tmp_path, tmp_path / "work", str(tmp_path)])

    paths = found_paths(events)
    assert sorted(paths) == sorted([str(tmp_path / "work" / "api"), str(tmp_path / "work" / "web")])
    assert len(paths) == len(set(paths))
    assert events[-1] == ScanCompleted(total=2)


@pytest.mark.asyncio
async def test_missing_root_is_treated_as_empty(tmp_path, make_repo):
    make_repo(tmp_path / "real" / "repo")

    events = await collect([tmp_path / "does-not-exist", tmp_path / "real"])

    assert found_paths(events) == [str(tmp_path / "real" / "repo")]
    assert events[-1] == ScanCompleted(total=1)


@pytest.mark.asyncio
async def test_no_roots_completes_empty():
    assert await collect([]) == [ScanCompleted(total=0)]


@pytest.mark.asyncio
async def test_negative_depth_fails(tmp_path):
    events = await collect([tmp_path], max_depth=-1)

    assert len(events) == 1
    assert isinstance(events[0], ScanFailed)


@pytest.mark.asyncio
async def test_walker_crash_ends_with_failure(tmp_path, make_repo, monkeypatch):
    make_repo(tmp_path / "repo")

    def explode(path):
        raise RuntimeError("walker crashed")

    monkeypatch.setattr(discovery, "list_child_directories", explode)

    events = await collect([tmp_path])

    assert events[-1] == ScanFailed(message="walker crashed")
    assert not any(isinstance(e, ScanCompleted) for e in events)


@pytest.mark.asyncio
async def test_slow_root_does_not_block_other_roots(tmp_path, make_repo, monkeypatch):
    slow_root = tmp_path / "slow"
    slow_root.mkdir()
    fast_repo = make_repo(tmp_path / "fast" / "repo")
    release = threading.Event()
    real_check = discovery.is_git_repository

    def gated_check(path):
        if path == slow_root:
            release.wait(timeout=5)
        return real_check(path)

    monkeypatch.setattr(discovery, "is_git_repository", gated_check)

    stream = scan_repositories([slow_root, tmp_path / "fast"], max_depth=3)
    first = await asyncio.wait_for(stream.__anext__(), timeout=2)
    release.set()
    rest = [event async for event in stream]

    assert first == RepoFound(repository=discovery.DiscoveredRepository.from_path(fast_repo))
    assert rest == [ScanCompleted(total=1)]


@pytest.mark.asyncio
async def test_closing_the_stream_stops_the_scan(tmp_path, make_repo):
    for i in range(5):
        make_repo(tmp_path / f"repo{i}")

    stream = scan_repositories([tmp_path], max_depth=3)
    first = await stream.__anext__()
    await stream.aclose()

    assert isinstance(first, RepoFound)
    with pytest.raises(StopAsyncIteration):
        await stream.__anext__()


@pytest.mark.asyncio
async def test_discover_repositories_is_sorted_and_repeatable(tmp_path, make_repo):
    make_repo(tmp_path / "zeta")
    make_repo(tmp_path / "nested" / "Alpha")
    make_repo(tmp_path / "beta")

    first = await discover_repositories([tmp_path], max_depth=3)
    second = await discover_repositories([tmp_path], max_depth=3)

    assert [r.name for r in first] == ["Alpha", "beta", "zeta"]
    assert first == second


@pytest.mark.asyncio
async def test_discover_repositories_raises_on_failure(tmp_path):
    with pytest.raises(DiscoveryError):
        await discover_repositories([tmp_path], max_depth=-2)
