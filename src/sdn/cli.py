"""sdn CLI エントリポイント。"""

from __future__ import annotations

from pathlib import Path
from typing import Callable

import typer
from rich.console import Console
from rich.text import Text

from sdn.config import SdnConfig, config_path, load_config, update_config_file
from sdn.git_ops import GitRepo
from sdn.jira import new_branch_name
from sdn.logging_setup import setup_logging
from sdn.steps import StepLog
from sdn.workflow import Workflow

APP_HELP = "Branch workflow helper: never commit on default, never lose work."
LIBRARY_DIR = "Library"
CLOSE_PROMPT = "Are you sure you want to push and delete this branch? [Y/N]: "

app = typer.Typer(add_completion=False, help=APP_HELP)
console = Console()


def _workflow(ctx: typer.Context) -> Workflow:
    return ctx.obj


def _run(ctx: typer.Context, action: Callable[[], None]) -> None:
    code = _workflow(ctx).steps.capture(action)
    raise typer.Exit(code=code)


def _confirm_close() -> bool:
    try:
        answer = console.input(Text(CLOSE_PROMPT, style="yellow"))
    except EOFError:
        # 入力が閉じている場合は「Y 以外」と同じ扱い
        console.print()
        return False
    return answer.strip() == "Y"


def _resolve_branch(issue_id: str) -> str:
    return new_branch_name(issue_id, load_config())


def _prompt(label: str, default: str | None) -> str:
    if default is None:
        return typer.prompt(label)
    return typer.prompt(label, default=default, show_default=True)


@app.callback()
def main(
    ctx: typer.Context,
    lib: bool = typer.Option(False, "--lib", "-l", help=f"Run against ./{LIBRARY_DIR} instead of the current directory"),
    log_level: str = typer.Option("INFO", "--log-level", help="Log level for ~/.sdn/logs/sdn.log"),
) -> None:
    setup_logging(level=log_level)
    repo = GitRepo(Path(LIBRARY_DIR) if lib else Path("."))
    ctx.obj = Workflow(repo=repo, steps=StepLog(console=console))


@app.command()
def sync(ctx: typer.Context) -> None:
    """Checkout default, pull, checkout current, and rebase default into current."""
    _run(ctx, _workflow(ctx).sync)


@app.command()
def reset(
    ctx: typer.Context,
    force: bool = typer.Option(False, "--force", "-f", help="Leave unpushed commits on the current branch"),
) -> None:
    """Checkout default and pull. Use --force if you want to leave unpushed changes on the current branch."""
    _run(ctx, lambda: _workflow(ctx).reset(force=force))


@app.command()
def switch(
    ctx: typer.Context,
    issue_id: str = typer.Argument(
        ...,
        metavar="JIRA-ID",
        help='New branch name is derived from this JIRA ID and its summary. Without a dash the default prefix is added (e.g. "123" -> "SEDONA-123").',
    ),
) -> None:
    """Checkout default, pull, and checkout the branch for a JIRA issue."""
    _run(ctx, lambda: _workflow(ctx).switch(issue_id, _resolve_branch))


@app.command()
def stage(
    ctx: typer.Context,
    globs: list[str] | None = typer.Argument(None, help="git pathspecs (all changes if omitted)"),
) -> None:
    """Stage changes. Accepts standard GIT file globs. Stages all changes if no globs are provided."""
    _run(ctx, lambda: _workflow(ctx).stage(globs))


@app.command()
def unstage(
    ctx: typer.Context,
    globs: list[str] | None = typer.Argument(None, help="git pathspecs (all changes if omitted)"),
) -> None:
    """Unstage changes. Accepts standard GIT file globs. Unstages all changes if no globs are provided."""
    _run(ctx, lambda: _workflow(ctx).unstage(globs))


@app.command()
def commit(
    ctx: typer.Context,
    message: str = typer.Argument(
        ...,
        help="Double-colon (::) separated list of points. Branch name and date are prepended.",
    ),
) -> None:
    """Commit staged changes."""
    _run(ctx, lambda: _workflow(ctx).commit(message))


@app.command()
def close(ctx: typer.Context) -> None:
    """Collapse unpushed commits, push, checkout default, pull, and delete current branch."""
    _run(ctx, lambda: _workflow(ctx).close(_confirm_close))


@app.command()
def config(ctx: typer.Context) -> None:
    """Update tool config file."""
    path = config_path()
    saved: list[SdnConfig] = []

    def action() -> None:
        saved.append(update_config_file(path, prompt=_prompt))

    code = _workflow(ctx).steps.capture(action)
    if code == 0:
        cfg = saved[0]
        console.print(f"saved: {path}", style="green", markup=False, highlight=False)
        console.print(
            f"JIRA password is read from the {cfg.jira_password_env} environment variable.",
            style="yellow",
            markup=False,
            highlight=False,
        )
    raise typer.Exit(code=code)
