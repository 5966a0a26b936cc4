"""git 操作ユーティリティ。

方針:
- git を叩くのはこのモジュールだけ（1回に1コマンド、終了まで待つ）
- run_safe は例外を投げず CommandResult を返す
- run は失敗時に CommandFailure を投げる
- ロールバックは持たない。補償処理は workflow 側の責務

引数は文字列（POSIX シェル規則で分割）かリストで渡せる。
文字列の場合 `commit -m "a \\"quoted\\" word"` のようにダブルクォートで囲んだ引数を埋め込める。
"""

from __future__ import annotations

import logging
import shlex
import subprocess
from dataclasses import dataclass
from pathlib import Path
from typing import Union

from sdn.errors import CommandFailure

log = logging.getLogger(__name__)

GitArgs = Union[str, list[str]]


@dataclass(frozen=True)
class CommandResult:
    success: bool
    stdout: str
    stderr: str


def display_args(args: GitArgs) -> str:
    return args if isinstance(args, str) else shlex.join(args)


@dataclass
class GitRepo:
    path: Path = Path(".")
    binary: str = "git"

    def run_safe(self, args: GitArgs) -> CommandResult:
        argv = shlex.split(args) if isinstance(args, str) else list(args)
        log.debug("git %s (cwd=%s)", display_args(args), self.path)
        try:
            proc = subprocess.run(
                [self.binary, *argv],
                cwd=self.path,
                text=True,
                capture_output=True,
                check=False,
                encoding="utf-8",
                errors="replace",
            )
        except OSError as e:
            # git が無い / cwd が無い
            log.warning("git %s could not start: %s", display_args(args), e)
            return CommandResult(success=False, stdout="", stderr=str(e))

        result = CommandResult(
            success=proc.returncode == 0,
            stdout=(proc.stdout or "").strip(),
            stderr=(proc.stderr or "").strip(),
        )
        if not result.success:
            log.warning("git %s exited %s: %s", display_args(args), proc.returncode, result.stderr)
        return result

    def run(self, args: GitArgs) -> str:
        result = self.run_safe(args)
        if not result.success:
            raise CommandFailure(display_args(args), result)
        return result.stdout
