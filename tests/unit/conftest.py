"""
Pytest configuration for unit tests.

Provides helpers for building throwaway git repositories in tmp_path.
"""
import shutil
import subprocess
from pathlib import Path
from types import SimpleNamespace

import pytest

GIT_IDENTITY = [
    "-c", "user.name=protosync-tests",
    "-c", "user.email=protosync-tests@example.com",
    "-c", "commit.gpgsign=false",
    "-c", "tag.gpgsign=false",
]


def pytest_collection_modifyitems(config, items):
    """Skip tests that need a git executable when none is installed."""
    if shutil.which("git") is not None:
        return
    skip_git = pytest.mark.skip(reason="git executable not available")
    for item in items:
        if "requires_git" in item.keywords:
            item.add_marker(skip_git)


def run_git(cwd: Path, *args: str) -> str:
    result = subprocess.run(
        ["git"] + GIT_IDENTITY + list(args),
        cwd=cwd,
        capture_output=True,
        text=True,
        check=True
    )
    return result.stdout.strip()


def commit_file(repo: Path, relpath: str, content: str, message: str) -> str:
    path = repo / relpath
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_text(content)
    run_git(repo, "add", relpath)
    run_git(repo, "commit", "-q", "-m", message)
    return run_git(repo, "rev-parse", "HEAD")


@pytest.fixture
def git():
    """Run a git command in a directory and return its stdout."""
    return run_git


@pytest.fixture
def upstream(tmp_path):
    """
    Upstream repository:

        main:    c1 (tag v0.1.0, annotated) -> c2
        feature: c1 -> c3
    """
    repo = tmp_path / "upstream"
    repo.mkdir()
    run_git(repo, "init", "-q")
    run_git(repo, "symbolic-ref", "HEAD", "refs/heads/main")

    c1 = commit_file(
        repo,
        "proto/tendermint/abci/types.proto",
        'syntax = "proto3";\npackage tendermint.abci;\n',
        "Add abci types"
    )
    run_git(repo, "tag", "-a", "v0.1.0", "-m", "Release v0.1.0")
    c2 = commit_file(
        repo,
        "proto/tendermint/types/block.proto",
        'syntax = "proto3";\npackage tendermint.types;\n',
        "Add block"
    )

    run_git(repo, "checkout", "-q", "-b", "feature", c1)
    c3 = commit_file(repo, "proto/tendermint/feature.proto", 'syntax = "proto3";\n', "Feature work")
    run_git(repo, "checkout", "-q", "main")

    return SimpleNamespace(path=repo, url=str(repo), c1=c1, c2=c2, c3=c3)


@pytest.fixture
def clone(tmp_path, upstream):
    """A plain clone of the upstream fixture with origin configured."""
    path = tmp_path / "clone"
    subprocess.run(
        ["git", "clone", "-q", upstream.url, str(path)],
        capture_output=True,
        check=True
    )
    return path
