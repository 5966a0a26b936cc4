"""リポジトリ状態の検証。

毎回 remote から取り直す（キャッシュしない）。
変更系コマンドを出す前に全ての事前条件を確認するので、
ここでの失敗はロールバック不要。
"""

from __future__ import annotations

import re
from dataclasses import dataclass

from sdn.errors import (
    NoDefaultBranch,
    RemoteBranchCollision,
    UncommittedChanges,
    UnpushedOnCurrent,
    UnpushedOnDefault,
)
from sdn.git_ops import GitRepo
from sdn.steps import StepLog

HEAD_BRANCH_PATTERN = re.compile(r"HEAD branch: (\S+)")


@dataclass(frozen=True)
class RepositoryState:
    default_branch: str
    current_branch: str

    @property
    def on_default(self) -> bool:
        return self.default_branch == self.current_branch


def remote_branch_exists(repo: GitRepo, branch: str) -> bool:
    return repo.run_safe(["show-ref", f"refs/remotes/origin/{branch}"]).success


def local_branch_exists(repo: GitRepo, branch: str) -> bool:
    return repo.run_safe(["show-ref", "--verify", "--quiet", f"refs/heads/{branch}"]).success


def has_unpushed_commits(repo: GitRepo, target_branch: str, default_branch: str) -> bool:
    """upstream があればその差分、無ければ origin/<default> とのハッシュ比較。"""
    if repo.run_safe(["rev-parse", "--abbrev-ref", f"{target_branch}@{{u}}"]).success:
        unpushed = repo.run(["rev-list", f"{target_branch}@{{u}}..{target_branch}"])
        return bool(unpushed.strip())

    local_hash = repo.run(["rev-parse", target_branch])
    remote_default_hash = repo.run(["rev-parse", f"origin/{default_branch}"])
    return local_hash != remote_default_hash


def get_state(
    repo: GitRepo,
    steps: StepLog,
    allow_unpushed_on_current: bool,
    allow_uncommitted_changes: bool = False,
) -> RepositoryState:
    steps.step("Fetch, prune, and validate GIT state")

    current_branch = repo.run(["rev-parse", "--abbrev-ref", "HEAD"])

    m = HEAD_BRANCH_PATTERN.search(repo.run(["remote", "show", "origin"]))
    if m is None:
        raise NoDefaultBranch()
    default_branch = m.group(1)

    if not allow_uncommitted_changes and repo.run(["status", "--porcelain"]).strip():
        raise UncommittedChanges()

    repo.run(["fetch", "--prune"])

    if current_branch != default_branch and remote_branch_exists(repo, current_branch):
        raise RemoteBranchCollision(current_branch)

    # default へ直接コミットしていないこと
    if has_unpushed_commits(repo, default_branch, default_branch):
        raise UnpushedOnDefault(default_branch)

    if (
        current_branch != default_branch
        and not allow_unpushed_on_current
        and has_unpushed_commits(repo, current_branch, default_branch)
    ):
        raise UnpushedOnCurrent(current_branch)

    return RepositoryState(default_branch=default_branch, current_branch=current_branch)
