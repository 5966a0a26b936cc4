"""StepLog のテスト。"""

import io

import pytest
from rich.console import Console

from sdn.errors import UncommittedChanges
from sdn.steps import FAILED, PENDING, SUCCESS, StepLog


def test_steps_are_numbered_and_closed_in_order(steps: StepLog, console_out: io.StringIO) -> None:
    def workflow() -> None:
        steps.step("first")
        assert steps.open_step is not None
        assert steps.open_step.outcome == PENDING
        steps.step("second [with brackets]")

    assert steps.capture(workflow) == 0
    assert [(s.index, s.outcome) for s in steps.steps] == [(0, SUCCESS), (1, SUCCESS)]
    assert steps.open_step is None
    assert console_out.getvalue() == "Step 0: first\nStep 1: second [with brackets]\n"


def test_step_line_is_written_before_the_step_finishes(steps: StepLog, console_out: io.StringIO) -> None:
    steps.step("Rebase 'main' into 'feature'")
    assert console_out.getvalue() == "Step 0: Rebase 'main' into 'feature'"


def test_workflow_error_marks_failed_and_returns_1(steps: StepLog, console_out: io.StringIO) -> None:
    def workflow() -> None:
        steps.step("ok step")
        steps.step("bad step")
        raise UncommittedChanges()

    assert steps.capture(workflow) == 1
    assert [s.outcome for s in steps.steps] == [SUCCESS, FAILED]
    out = console_out.getvalue().splitlines()
    assert out == [
        "Step 0: ok step",
        "Step 1: bad step [FAILED]",
        "Uncommitted changes detected. Stash or commit before proceeding.",
    ]


def test_unexpected_error_marks_failed_and_propagates(steps: StepLog, console_out: io.StringIO) -> None:
    def workflow() -> None:
        steps.step("boom")
        raise KeyError("x")

    with pytest.raises(KeyError):
        steps.capture(workflow)
    assert steps.steps[0].outcome == FAILED
    assert console_out.getvalue() == "Step 0: boom [FAILED]\n"


def test_failure_without_open_step_prints_reason_only(steps: StepLog, console_out: io.StringIO) -> None:
    def workflow() -> None:
        raise UncommittedChanges()

    assert steps.capture(workflow) == 1
    assert console_out.getvalue().startswith("Uncommitted changes detected.")


def test_indexes_continue_across_captures(steps: StepLog) -> None:
    steps.capture(lambda: steps.step("a"))
    steps.capture(lambda: steps.step("b"))
    assert [s.index for s in steps.steps] == [0, 1]


def test_instances_do_not_share_state() -> None:
    a = StepLog(console=Console(file=io.StringIO()))
    b = StepLog(console=Console(file=io.StringIO()))
    a.step("only in a")
    assert b.next_index == 0
    assert b.steps == []
