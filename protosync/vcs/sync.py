"""
Clone-or-fetch synchronization of the upstream repository.
"""
import logging
from pathlib import Path

from protosync.vcs.checkout import checkout
from protosync.vcs.git import GitRepository
from protosync.vcs.resolver import RefResolver, ResolvedRef

logger = logging.getLogger(__name__)

REMOTE_NAME = "origin"


class RepoSync:
    """
    Keeps a local clone at an exact commitish.

    A missing directory is cloned; an existing one is fetched from `origin`,
    whose URL is corrected first when it differs from the requested one.
    There is no retry: any failure propagates.
    """

    def __init__(self, git_binary: str = "git"):
        self.git_binary = git_binary

    def sync(self, directory: Path, url: str, commitish: str) -> ResolvedRef:
        """
        Bring directory to commitish of url.

        Args:
            directory: Local clone location
            url: Upstream repository URL
            commitish: Branch, remote branch, tag or commit id

        Returns:
            The ResolvedRef that was checked out

        Raises:
            VcsOperationFailed: On clone, fetch, remote or checkout failure
            RefNotFound: If commitish cannot be resolved
            AmbiguousLocalBranch: If commitish is ambiguous
        """
        directory = Path(directory)
        if directory.exists():
            repo = self.fetch_existing(directory, url)
        else:
            repo = self.clone_new(directory, url)

        resolved = RefResolver(repo).resolve(commitish)
        checkout(repo, resolved)
        return resolved

    def clone_new(self, directory: Path, url: str) -> GitRepository:
        logger.info(f"Cloning {url} into {directory}")
        return GitRepository.clone(url, directory, git_binary=self.git_binary)

    def fetch_existing(self, directory: Path, url: str) -> GitRepository:
        logger.info(f"Fetching from {url} into existing {directory}")
        repo = GitRepository.open(directory, git_binary=self.git_binary)
        repo.ensure_remote(REMOTE_NAME, url)
        logger.info(f"Fetching repo using remote `{REMOTE_NAME}`")
        repo.fetch(REMOTE_NAME)
        return repo


def sync(directory: Path, url: str, commitish: str) -> ResolvedRef:
    """Clone or fetch directory from url and check out commitish."""
    return RepoSync().sync(directory, url, commitish)
