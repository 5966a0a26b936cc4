from __future__ import annotations

import io
import shlex
from dataclasses import dataclass, field
from pathlib import Path

import pytest
from rich.console import Console

from sdn.git_ops import CommandResult, GitRepo
from sdn.steps import StepLog

OK = CommandResult(success=True, stdout="", stderr="")


def ok(stdout: str = "") -> CommandResult:
    return CommandResult(success=True, stdout=stdout, stderr="")


def fail(stderr: str = "fatal: failed", stdout: str = "") -> CommandResult:
    return CommandResult(success=False, stdout=stdout, stderr=stderr)


@dataclass
class FakeRepo(GitRepo):
    """git を起動せず、コマンド文字列 -> CommandResult の表で応答する。

    checkout 系が成功したら head を更新する（ロールバック後のブランチ確認用）。
    表に無いコマンドは成功扱い。
    """

    responses: dict[str, CommandResult] = field(default_factory=dict)
    calls: list[str] = field(default_factory=list)
    head: str = ""

    def run_safe(self, args):  # noqa: ANN001
        argv = shlex.split(args) if isinstance(args, str) else list(args)
        cmd = " ".join(argv)
        self.calls.append(cmd)
        result = self.responses.get(cmd, OK)
        if result.success and argv[:1] == ["checkout"]:
            self.head = argv[-1]
        return result

    def argv_of(self, prefix: str) -> list[str]:
        return [c for c in self.calls if c.startswith(prefix)]


def healthy_responses(default: str = "main", current: str = "feature") -> dict[str, CommandResult]:
    """未コミット変更なし・未 push なし・remote 衝突なしの状態。"""
    return {
        "rev-parse --abbrev-ref HEAD": ok(current),
        "remote show origin": ok(f"* remote origin\n  Fetch URL: x\n  HEAD branch: {default}\n"),
        "status --porcelain": ok(""),
        "fetch --prune": ok(),
        f"show-ref refs/remotes/origin/{current}": fail(""),
        f"rev-parse --abbrev-ref {default}@{{u}}": ok(f"origin/{default}"),
        f"rev-list {default}@{{u}}..{default}": ok(""),
        f"rev-parse --abbrev-ref {current}@{{u}}": fail("fatal: no upstream configured"),
        f"rev-parse {current}": ok("c0ffee"),
        f"rev-parse origin/{default}": ok("c0ffee"),
    }


@pytest.fixture()
def make_repo():
    def _make(default: str = "main", current: str = "feature") -> FakeRepo:
        return FakeRepo(path=Path("."), responses=healthy_responses(default, current), head=current)

    return _make


@pytest.fixture()
def console_out() -> io.StringIO:
    return io.StringIO()


@pytest.fixture()
def steps(console_out: io.StringIO) -> StepLog:
    return StepLog(console=Console(file=console_out, width=200, color_system=None))
