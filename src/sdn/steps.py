"""ステップ表示と失敗の捕捉。

- `Step 0: ...` を青で即時表示（改行しない）。次のステップ開始 or 終了時に閉じる
- 開いているステップは常に1つだけ
- capture() が WorkflowError を exit code 1 に変換する唯一の境界

状態はプロセス全体ではなく StepLog インスタンスに持たせる（テストごとに独立）。
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import Callable

from rich.console import Console
from rich.control import Control

from sdn.errors import WorkflowError

log = logging.getLogger(__name__)

PENDING = "pending"
SUCCESS = "success"
FAILED = "failed"


@dataclass
class Step:
    index: int
    description: str
    outcome: str = PENDING  # pending | success | failed

    @property
    def label(self) -> str:
        return f"Step {self.index}: {self.description}"


@dataclass
class StepLog:
    console: Console = field(default_factory=Console)
    next_index: int = 0
    open_step: Step | None = None
    steps: list[Step] = field(default_factory=list)

    def step(self, description: str) -> Step:
        if self.open_step is not None:
            self._end_step(success=True)

        step = Step(index=self.next_index, description=description)
        self.next_index += 1
        self.open_step = step
        self.steps.append(step)

        log.info("step %s: %s", step.index, description)
        # 改行しない: 失敗時にこの行を [FAILED] で上書きする
        self.console.print(step.label, style="blue", end="", markup=False, highlight=False)
        self.console.file.flush()
        return step

    def capture(self, workflow: Callable[[], None]) -> int:
        try:
            workflow()
        except WorkflowError as e:
            log.info("workflow failed: %s", e)
            self._end_step(success=False, reason=str(e))
            return 1
        except BaseException:
            log.exception("workflow crashed")
            self._end_step(success=False)
            raise
        self._end_step(success=True)
        return 0

    def _end_step(self, *, success: bool, reason: str | None = None) -> None:
        step = self.open_step
        self.open_step = None

        if success:
            if step is not None:
                step.outcome = SUCCESS
                self.console.print()
            return

        if step is not None:
            step.outcome = FAILED
            if self.console.is_terminal:
                self.console.control(Control.move_to_column(0))
                self.console.print(f"{step.label} [FAILED]", style="red", markup=False, highlight=False)
            else:
                self.console.print(" [FAILED]", style="red", markup=False, highlight=False)
        if reason is not None:
            self.console.print(reason, style="red", markup=False, highlight=False)
