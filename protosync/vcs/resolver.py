"""
Commitish resolution.

Maps a user supplied commitish (branch, remote branch, tag or full commit id)
to an exact commit in a working copy. Two reference probes are made, one for
the commitish as given and one with an "origin/" prefix, and the pair of
probe results is looked up in DECISION_TABLE. Falling through both probes
means the commitish must be a hex commit id.
"""
import logging
import re
from dataclasses import dataclass
from enum import Enum
from typing import Dict, Optional, Tuple

from protosync.vcs.git import GitRef, GitRepository

logger = logging.getLogger(__name__)

ORIGIN_PREFIX = "origin/"

# Raw object ids: SHA-1 or SHA-256
COMMIT_ID_LENGTHS = (40, 64)

_LOWER_HEX = re.compile(r"^[0-9a-f]+$")
_UPPER_HEX = re.compile(r"^[0-9A-F]+$")


class RefNotFound(Exception):
    """Raised when no interpretation of a commitish matches the repository."""
    pass


class AmbiguousLocalBranch(Exception):
    """Raised when a commitish collides with a local branch named origin/<branch>."""

    def __init__(self, commitish: str):
        self.commitish = commitish
        super().__init__(
            f"local branch names with an origin prefix are not supported (commitish: {commitish!r})"
        )


class Probe(str, Enum):
    """Classification of a reference probe."""
    MISSING = "missing"
    BRANCH = "branch"
    OTHER = "other"


class Outcome(str, Enum):
    """Named outcomes of commitish resolution."""
    DIRECT_REF = "direct_ref"        # use the commitish as a reference
    ORIGIN_REF = "origin_ref"        # use origin/<commitish>
    COMMIT_ID = "commit_id"          # decode as a raw commit id
    AMBIGUOUS = "ambiguous"          # local branch shadows origin/<commitish>


# (direct probe, origin probe) -> outcome
DECISION_TABLE: Dict[Tuple[Probe, Probe], Outcome] = {
    (Probe.OTHER, Probe.MISSING): Outcome.DIRECT_REF,
    (Probe.OTHER, Probe.OTHER): Outcome.DIRECT_REF,
    (Probe.OTHER, Probe.BRANCH): Outcome.DIRECT_REF,
    (Probe.BRANCH, Probe.OTHER): Outcome.ORIGIN_REF,
    (Probe.BRANCH, Probe.MISSING): Outcome.DIRECT_REF,
    (Probe.BRANCH, Probe.BRANCH): Outcome.AMBIGUOUS,
    (Probe.MISSING, Probe.OTHER): Outcome.ORIGIN_REF,
    (Probe.MISSING, Probe.BRANCH): Outcome.AMBIGUOUS,
    (Probe.MISSING, Probe.MISSING): Outcome.COMMIT_ID,
}


@dataclass(frozen=True)
class ResolvedRef:
    """
    An exact commit, plus the reference it was reached through.

    reference is None exactly when the commitish was a raw commit id.
    """
    commit: str
    reference: Optional[GitRef] = None
    outcome: Outcome = Outcome.COMMIT_ID


def classify(ref: Optional[GitRef]) -> Probe:
    if ref is None:
        return Probe.MISSING
    if ref.is_branch:
        return Probe.BRANCH
    return Probe.OTHER


def decide(direct: Probe, origin: Probe) -> Outcome:
    return DECISION_TABLE[(direct, origin)]


def decode_commit_id(commitish: str) -> Optional[str]:
    """
    Decode a hex commit id, lower-case first, then upper-case.

    Mixed case and abbreviated ids are rejected. Returns the normalized
    lower-case id or None.
    """
    if len(commitish) not in COMMIT_ID_LENGTHS:
        return None
    if _LOWER_HEX.match(commitish):
        return bytes.fromhex(commitish).hex()
    if _UPPER_HEX.match(commitish):
        return bytes.fromhex(commitish.lower()).hex()
    return None


class RefResolver:
    """Resolves commitish strings against a GitRepository."""

    def __init__(self, repo: GitRepository):
        self.repo = repo

    def resolve(self, commitish: str) -> ResolvedRef:
        """
        Resolve a commitish to an exact commit.

        Args:
            commitish: Branch, remote branch, tag or full hex commit id

        Returns:
            ResolvedRef for the commit

        Raises:
            RefNotFound: If nothing matches
            AmbiguousLocalBranch: If a local branch shadows origin/<commitish>
        """
        if not commitish:
            raise RefNotFound("empty commitish")

        direct_ref = self.repo.resolve_short_name(commitish)
        origin_ref = self.repo.resolve_short_name(ORIGIN_PREFIX + commitish)
        outcome = decide(classify(direct_ref), classify(origin_ref))
        logger.debug(
            f"Resolving {commitish!r}: direct={direct_ref}, origin={origin_ref} -> {outcome.value}"
        )

        if outcome == Outcome.AMBIGUOUS:
            raise AmbiguousLocalBranch(commitish)

        if outcome == Outcome.COMMIT_ID:
            return self._resolve_commit_id(commitish)

        reference = direct_ref if outcome == Outcome.DIRECT_REF else origin_ref
        commit = self.repo.peel_to_commit(reference.name)
        return ResolvedRef(commit=commit, reference=reference, outcome=outcome)

    def _resolve_commit_id(self, commitish: str) -> ResolvedRef:
        commit_id = decode_commit_id(commitish)
        if commit_id is None:
            raise RefNotFound(
                f"{commitish!r} is neither a reference nor a full hex commit id"
            )

        commit = self.repo.find_commit(commit_id)
        if commit is None:
            raise RefNotFound(f"commit {commit_id} not found in {self.repo.path}")
        return ResolvedRef(commit=commit, reference=None, outcome=Outcome.COMMIT_ID)


def resolve(repo: GitRepository, commitish: str) -> ResolvedRef:
    """Resolve commitish in repo. See RefResolver.resolve."""
    return RefResolver(repo).resolve(commitish)
