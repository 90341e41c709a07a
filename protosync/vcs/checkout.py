"""
Forced checkout of a resolved commitish.

The working tree always ends up as an exact copy of the target commit: local
modifications are discarded and untracked or ignored files are removed.
"""
import logging

from protosync.vcs.git import GitRepository
from protosync.vcs.resolver import ResolvedRef

logger = logging.getLogger(__name__)


def checkout(repo: GitRepository, resolved: ResolvedRef) -> None:
    """
    Make the working tree match resolved.commit exactly.

    HEAD follows a local branch when the commitish resolved to one, and is
    detached at the commit otherwise (raw commit ids, tags, remote-tracking
    branches).

    Raises:
        VcsOperationFailed: If any git step fails
    """
    info = repo.commit_info(resolved.commit)
    logger.info(
        "Checking out repo:\n"
        f"    id: {info.id}\n"
        f"    author: {info.author}\n"
        f"    committer: {info.committer}\n"
        f"    summary: {info.summary}"
    )

    reference = resolved.reference
    if reference is not None and reference.is_branch:
        logger.info(f"    name: {reference.shorthand}")
        repo.set_head(reference.name)
    else:
        if reference is not None:
            logger.info(f"    name: {reference.shorthand} (detached)")
        repo.set_head_detached(resolved.commit)

    repo.reset_hard()
    repo.clean_all()
