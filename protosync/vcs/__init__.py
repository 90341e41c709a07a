"""
Version-control layer for protosync.

Drives the git executable to keep a local clone of the upstream repository
pinned to an exact commit:
- GitRepository: subprocess wrapper for the git commands we need
- RefResolver: commitish -> exact commit (+ optional reference)
- checkout: force the working tree to match a resolved ref
- RepoSync: clone-or-fetch followed by resolve + checkout
"""
