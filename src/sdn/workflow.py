"""ブランチ運用ワークフロー（sync / reset / switch / stage / unstage / commit / close）。

各操作は「状態検証 → 順番にコマンド → 失敗したら補償」の直線的な流れ。

補償ポリシー:
- default に切り替えた後の ff-merge 失敗: 元のブランチに戻してから失敗を返す。
  `merge --ff-only` は conflict 解決モードに入らないので、戻るだけで元通りになる
- rebase 失敗: 補償しない。git の conflict 解決モードのまま人間に渡す
- close: soft reset 以降は補償しない（検証を全部通してから実行する）

NOTE: switch で ff-merge より後（checkout -b 以降）の失敗は補償しない。
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from datetime import datetime
from typing import Callable

from sdn.commit_message import build_commit_message, escape_for_argument, parse_and_validate, render
from sdn.errors import CommandFailure, OnDefaultBranch, RebaseStopped, RemoteBranchCollision
from sdn.git_ops import GitRepo, display_args
from sdn.repo_state import RepositoryState, get_state, local_branch_exists, remote_branch_exists
from sdn.steps import StepLog

log = logging.getLogger(__name__)


@dataclass
class Workflow:
    repo: GitRepo
    steps: StepLog

    # ── 共通ステップ ──

    def _state(self, allow_unpushed_on_current: bool, allow_uncommitted_changes: bool = False) -> RepositoryState:
        state = get_state(
            self.repo,
            self.steps,
            allow_unpushed_on_current=allow_unpushed_on_current,
            allow_uncommitted_changes=allow_uncommitted_changes,
        )
        log.info("state: default=%s current=%s", state.default_branch, state.current_branch)
        return state

    def _fast_forward(self, default_branch: str) -> None:
        self.steps.step(f"Merge 'origin/{default_branch}' into '{default_branch}' (--ff-only)")
        self.repo.run(["merge", "--ff-only", f"origin/{default_branch}"])

    def _switch_to_default_and_fast_forward(self, state: RepositoryState) -> None:
        self.steps.step(f"Switch to '{state.default_branch}'")
        # 未コミット変更は get_state で弾いているので失敗しない
        self.repo.run(["checkout", state.default_branch])

        self.steps.step(f"Merge 'origin/{state.default_branch}' into '{state.default_branch}' (--ff-only)")
        args = ["merge", "--ff-only", f"origin/{state.default_branch}"]
        result = self.repo.run_safe(args)
        if not result.success:
            rollback = self.repo.run_safe(["checkout", state.current_branch])
            log.warning(
                "ff-merge failed; checked out %s again (ok=%s)",
                state.current_branch,
                rollback.success,
            )
            raise CommandFailure(display_args(args), result)

    def _rebase(self, onto: str, branch: str) -> None:
        self.steps.step(f"Rebase '{onto}' into '{branch}'")
        args = ["rebase", onto]
        result = self.repo.run_safe(args)
        if not result.success:
            raise RebaseStopped(display_args(args), result)

    def _reject_on_default(self, state: RepositoryState, action: str) -> None:
        if state.on_default:
            raise OnDefaultBranch(action, state.default_branch)

    def _commit(self, message: str) -> None:
        self.repo.run(f'commit -m "{message}"')

    # ── 操作 ──

    def sync(self) -> None:
        """default を pull して current に rebase する。"""
        state = self._state(allow_unpushed_on_current=True)

        if state.on_default:
            self._fast_forward(state.default_branch)
            return

        self._switch_to_default_and_fast_forward(state)

        self.steps.step(f"Switch back to '{state.current_branch}'")
        self.repo.run(["checkout", state.current_branch])

        self._rebase(state.default_branch, state.current_branch)

    def reset(self, force: bool = False) -> None:
        """default に戻って pull。force なら current の未 push コミットを置いていける。"""
        state = self._state(allow_unpushed_on_current=force)

        if state.on_default:
            self._fast_forward(state.default_branch)
        else:
            self._switch_to_default_and_fast_forward(state)

    def switch(self, issue_id: str, resolve_branch: Callable[[str], str]) -> None:
        """最新の default から課題用ブランチへ移る（既存なら rebase）。"""
        state = self._state(allow_unpushed_on_current=True)

        self.steps.step("Get new branch name from JIRA")
        new_branch = resolve_branch(issue_id)

        self.steps.step("Verify new branch does not exist in remote")
        if remote_branch_exists(self.repo, new_branch):
            raise RemoteBranchCollision(new_branch, label="New")

        self._switch_to_default_and_fast_forward(state)

        self.steps.step("Check if target branch already exists locally")
        branch_exists = local_branch_exists(self.repo, new_branch)

        if not branch_exists:
            self.steps.step(f"Create new branch '{new_branch}'")
            self.repo.run(["checkout", "-b", new_branch])
            return

        self.steps.step(f"Switch to existing '{new_branch}'")
        self.repo.run(["checkout", new_branch])

        self._rebase(state.default_branch, new_branch)

    def stage(self, globs: list[str] | None = None) -> None:
        state = self._state(allow_unpushed_on_current=True, allow_uncommitted_changes=True)
        self._reject_on_default(state, "stage/unstage")

        self.steps.step("Add specified changes" if globs else "Add all changes")
        self.repo.run(["add", *(globs or ["."])])

    def unstage(self, globs: list[str] | None = None) -> None:
        state = self._state(allow_unpushed_on_current=True, allow_uncommitted_changes=True)
        self._reject_on_default(state, "stage/unstage")

        self.steps.step("Reset specified changes" if globs else "Reset all changes")
        self.repo.run(["reset", *(globs or ["."])])

    def commit(self, message: str, now: datetime | None = None) -> None:
        """`a:: b:: c` をブランチ名 + UTC 日時 + bullet のメッセージにしてコミット。"""
        state = self._state(allow_unpushed_on_current=True, allow_uncommitted_changes=True)
        self._reject_on_default(state, "commit")

        self.steps.step("Generate commit message")
        full_message = build_commit_message(state.current_branch, message, now)

        self.steps.step("Commit")
        self._commit(escape_for_argument(full_message))

    def close(self, confirm: Callable[[], bool]) -> None:
        """未 push コミットを1つにまとめて push し、default に戻ってブランチを消す。"""
        if not confirm():
            log.info("close cancelled by user")
            return

        state = self._state(allow_unpushed_on_current=True)
        self._reject_on_default(state, "close")
        default_branch = state.default_branch
        current_branch = state.current_branch

        self.steps.step("Get unpushed commit messages")
        unpushed_log = self.repo.run(["log", "--format=%B%x00", f"{default_branch}..HEAD"])

        self.steps.step("Parse and validate messages")
        segments = parse_and_validate(unpushed_log)
        new_message = render(current_branch, segments)
        log.info("squashing %d commits on %s", len(segments), current_branch)

        self.steps.step("Get last pushed commit hash")
        last_pushed = self.repo.run(["merge-base", "HEAD", default_branch])

        # ここから先は補償しない
        self.steps.step("Strip unpushed commits")
        self.repo.run(["reset", "--soft", last_pushed])

        self.steps.step("Add new squashed commit")
        self._commit(new_message)

        self.steps.step("Push")
        self.repo.run(["push", "-u", "origin", current_branch])

        self.steps.step(f"Switch to '{default_branch}'")
        self.repo.run(["checkout", default_branch])

        self._fast_forward(default_branch)

        self.steps.step(f"Delete '{current_branch}'")
        self.repo.run(["branch", "-D", current_branch])
