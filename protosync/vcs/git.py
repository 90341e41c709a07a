"""
Thin wrapper around the git executable.

Every operation shells out to git with captured output. A non-zero exit is
turned into VcsOperationFailed, except for the lookups that are expected to
miss (reference and commit probes), which return None instead.
"""
import logging
import os
import subprocess
from dataclasses import dataclass
from pathlib import Path
from typing import List, Optional

logger = logging.getLogger(__name__)

# Order in which git expands a short reference name (see git-rev-parse(1))
SHORT_NAME_RULES = (
    "refs/{}",
    "refs/tags/{}",
    "refs/heads/{}",
    "refs/remotes/{}",
    "refs/remotes/{}/HEAD",
)


class VcsOperationFailed(Exception):
    """Raised when a git command fails."""

    def __init__(self, args: List[str], returncode: int, stderr: str):
        self.command = list(args)
        self.returncode = returncode
        self.stderr = (stderr or "").strip()
        message = f"`{' '.join(self.command)}` failed with exit code {returncode}"
        if self.stderr:
            message = f"{message}: {self.stderr}"
        super().__init__(message)


@dataclass(frozen=True)
class GitRef:
    """A fully qualified git reference."""
    name: str

    @property
    def is_branch(self) -> bool:
        """Only local branches count; remote-tracking refs and tags do not."""
        return self.name.startswith("refs/heads/")

    @property
    def shorthand(self) -> str:
        for prefix in ("refs/heads/", "refs/tags/", "refs/remotes/", "refs/"):
            if self.name.startswith(prefix):
                return self.name[len(prefix):]
        return self.name


@dataclass(frozen=True)
class CommitInfo:
    """Human readable details of a commit, used for logging."""
    id: str
    author: str
    committer: str
    summary: str


class GitRepository:
    """
    A local git working copy.

    Use GitRepository.clone() for a fresh clone and GitRepository.open() for
    an existing one; both verify that the directory really is a repository.
    """

    def __init__(self, path: Path, git_binary: str = "git"):
        """
        Args:
            path: Working tree root
            git_binary: git executable to invoke
        """
        self.path = Path(path)
        self.git_binary = git_binary

    @classmethod
    def clone(cls, url: str, path: Path, git_binary: str = "git") -> 'GitRepository':
        """
        Clone url into path, fetching all tags.

        Raises:
            VcsOperationFailed: If the clone fails
        """
        path = Path(path).absolute()
        path.parent.mkdir(parents=True, exist_ok=True)
        _run_git(git_binary, ["clone", "--no-checkout", url, str(path)], cwd=path.parent)
        repo = cls(path, git_binary)
        repo.run("fetch", "--tags", "--force", "origin")
        return repo

    @classmethod
    def open(cls, path: Path, git_binary: str = "git") -> 'GitRepository':
        """
        Open an existing working copy.

        path must be the root of the working tree. git would otherwise accept
        any directory nested inside an enclosing repository and operate on
        that repository instead.

        Raises:
            VcsOperationFailed: If path is not the root of a git working tree
        """
        repo = cls(path, git_binary)
        result = repo.run("rev-parse", "--show-toplevel")
        toplevel = Path(result.stdout.strip())
        if toplevel.resolve() != repo.path.resolve():
            raise VcsOperationFailed(
                [git_binary, "rev-parse", "--show-toplevel"],
                128,
                f"{repo.path} is not a git working tree root (enclosing repository: {toplevel})"
            )
        return repo

    def run(self, *args: str, check: bool = True) -> subprocess.CompletedProcess:
        """Run a git subcommand inside the working copy."""
        return _run_git(self.git_binary, list(args), cwd=self.path, check=check)

    # ------------------------------------------------------------------
    # References and commits

    def ref_exists(self, ref_name: str) -> bool:
        result = self.run("show-ref", "--verify", "--quiet", ref_name, check=False)
        return result.returncode == 0

    def resolve_short_name(self, short_name: str) -> Optional[GitRef]:
        """
        Expand a short reference name the way git does.

        Tries the name verbatim when it is already fully qualified, then each
        of SHORT_NAME_RULES in order. Returns the first existing reference.
        """
        candidates = []
        if short_name.startswith("refs/"):
            candidates.append(short_name)
        candidates.extend(rule.format(short_name) for rule in SHORT_NAME_RULES)

        for candidate in candidates:
            if self.ref_exists(candidate):
                return GitRef(candidate)
        return None

    def peel_to_commit(self, ref_name: str) -> str:
        """Return the commit id a reference (or tag) ultimately points at."""
        result = self.run("rev-parse", "--verify", f"{ref_name}^{{commit}}")
        return result.stdout.strip()

    def find_commit(self, commit_id: str) -> Optional[str]:
        """Return the full commit id if the commit exists locally, else None."""
        result = self.run("rev-parse", "--verify", "--quiet", f"{commit_id}^{{commit}}", check=False)
        if result.returncode != 0:
            return None
        return result.stdout.strip()

    def commit_info(self, commit_id: str) -> CommitInfo:
        result = self.run(
            "log", "-1", "--format=%H%n%an <%ae>%n%cn <%ce>%n%s", commit_id
        )
        lines = result.stdout.splitlines() + ["", "", "", ""]
        return CommitInfo(id=lines[0], author=lines[1], committer=lines[2], summary=lines[3])

    def head_commit(self) -> str:
        return self.run("rev-parse", "HEAD").stdout.strip()

    def symbolic_head(self) -> Optional[str]:
        """Full name of the branch HEAD points at, or None when detached."""
        result = self.run("symbolic-ref", "--quiet", "HEAD", check=False)
        if result.returncode != 0:
            return None
        return result.stdout.strip()

    # ------------------------------------------------------------------
    # Remotes

    def remote_url(self, remote: str) -> Optional[str]:
        result = self.run("remote", "get-url", remote, check=False)
        if result.returncode != 0:
            return None
        return result.stdout.strip()

    def ensure_remote(self, remote: str, url: str) -> None:
        """Create the remote or point it at url if it is configured differently."""
        current = self.remote_url(remote)
        if current is None:
            logger.info(f"Adding remote `{remote}` -> {url}")
            self.run("remote", "add", remote, url)
        elif current != url:
            logger.info(f"Updating remote `{remote}` URL: {current} -> {url}")
            self.run("remote", "set-url", remote, url)

    def fetch(self, remote: str) -> None:
        """Fetch all configured refs and all tags from remote."""
        self.run("fetch", "--tags", "--force", remote)

    # ------------------------------------------------------------------
    # Working tree

    def set_head(self, ref_name: str) -> None:
        """Point HEAD at a local branch."""
        self.run("symbolic-ref", "HEAD", ref_name)

    def set_head_detached(self, commit_id: str) -> None:
        self.run("update-ref", "--no-deref", "HEAD", commit_id)

    def reset_hard(self) -> None:
        self.run("reset", "--hard", "--quiet", "HEAD")

    def clean_all(self) -> None:
        """Remove untracked and ignored files, including nested repositories."""
        self.run("clean", "-ffdxq")


def _run_git(
    git_binary: str,
    args: List[str],
    cwd: Path,
    check: bool = True
) -> subprocess.CompletedProcess:
    command = [git_binary] + args
    logger.debug(f"Running {' '.join(command)} (cwd={cwd})")

    env = dict(os.environ)
    env["GIT_TERMINAL_PROMPT"] = "0"

    try:
        result = subprocess.run(
            command,
            cwd=cwd,
            capture_output=True,
            text=True,
            env=env
        )
    except OSError as e:
        raise VcsOperationFailed(command, -1, str(e)) from e

    if check and result.returncode != 0:
        raise VcsOperationFailed(command, result.returncode, result.stderr)
    return result
