"""エラー分類。

- WorkflowError 系は「説明可能な失敗」: StepLog.capture が赤字1行で表示し exit 1
- それ以外の例外は想定外として握りつぶさず、そのまま上に投げる
"""

from __future__ import annotations

from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from sdn.git_ops import CommandResult


class WorkflowError(Exception):
    """ユーザーに表示して終了する失敗の基底クラス。"""


# ── 事前条件 ──


class ValidationFailure(WorkflowError):
    pass


class NoDefaultBranch(ValidationFailure):
    def __init__(self) -> None:
        super().__init__("Could not identify default branch")


class UncommittedChanges(ValidationFailure):
    def __init__(self) -> None:
        super().__init__("Uncommitted changes detected. Stash or commit before proceeding.")


class RemoteBranchCollision(ValidationFailure):
    def __init__(self, branch: str, *, label: str = "Current") -> None:
        self.branch = branch
        super().__init__(
            f"{label} branch '{branch}' already exists in remote. "
            "Delete it from remote before proceeding."
        )


class UnpushedOnDefault(ValidationFailure):
    def __init__(self, branch: str) -> None:
        self.branch = branch
        super().__init__(
            f"Unpushed commits detected on default branch '{branch}'. "
            "Commits should never be made on the default branch. Please remediate manually."
        )


class UnpushedOnCurrent(ValidationFailure):
    def __init__(self, branch: str) -> None:
        self.branch = branch
        super().__init__(
            f"Unpushed commits detected on current branch '{branch}'. "
            "Either close the branch or rerun this command with the --force option."
        )


class OnDefaultBranch(ValidationFailure):
    def __init__(self, action: str, branch: str) -> None:
        self.branch = branch
        super().__init__(f"Cannot {action} on default branch '{branch}'")


# ── git コマンド ──


class CommandFailure(WorkflowError):
    hint = ""

    def __init__(self, args: str, result: CommandResult) -> None:
        self.args_text = args
        self.result = result
        lines = [f"Command: git {args}"]
        if result.stdout.strip():
            lines.append(result.stdout)
        if result.stderr.strip():
            lines.append(result.stderr)
        if self.hint:
            lines.append(self.hint)
        super().__init__("\n".join(lines))


class RebaseStopped(CommandFailure):
    """rebase が止まった（conflict 解決モード）。ロールバックせず人間に任せる。"""

    hint = "Resolve the conflicts and run 'git rebase --continue', or run 'git rebase --abort'."


# ── 入力不正 ──


class InvalidInput(WorkflowError):
    pass


class InvalidCommitMessage(InvalidInput):
    def __init__(self, raw: str, reason: str = "", *, what: str = "unpushed commit message") -> None:
        self.raw = raw
        self.reason = reason
        msg = f"Found invalid {what}"
        if reason:
            msg += f" ({reason})"
        super().__init__(f"{msg}:\n{raw}")


class NoUnpushedCommits(InvalidInput):
    def __init__(self) -> None:
        super().__init__("No unpushed commit messages found")


class InvalidBranchSource(InvalidInput):
    pass


class ConfigError(InvalidInput):
    pass


# ── 外部サービス ──


class ExternalServiceFailure(WorkflowError):
    pass
