"""コミットメッセージの生成・検証・squash 用の再構成。

`sdn commit` が書くメッセージの形:

    <branch>

    <UTC timestamp>
    :: point one
    :: point two

`sdn close` は未 push のメッセージ群をこの形として検証し、
ブランチ名 + 各セグメントを空行で連結した1つのメッセージにまとめる。
"""

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime, timezone

from sdn.errors import InvalidCommitMessage, NoUnpushedCommits

BULLET = ":: "
MIN_BULLET_LENGTH = 10  # ":: wip" のような中身のない行を弾く
TIMESTAMP_FORMAT = "%Y-%m-%d %H:%M:%S UTC"


@dataclass(frozen=True)
class CommitMessageSegment:
    lines: tuple[str, ...]

    def text(self) -> str:
        return "\n".join(self.lines)


def validate_segment_lines(lines: list[str], *, raw: str, what: str = "unpushed commit message") -> None:
    """1行目は日時（bullet 不可）、以降は全て `:: ` で始まる10文字以上の行。"""
    if not lines:
        raise InvalidCommitMessage(raw, "no content", what=what)
    if not lines[0].strip() or lines[0].startswith(BULLET.strip()):
        raise InvalidCommitMessage(raw, "missing timestamp line", what=what)
    for line in lines[1:]:
        if not line.startswith(BULLET):
            raise InvalidCommitMessage(raw, f"line does not start with '{BULLET}'", what=what)
        if len(line) < MIN_BULLET_LENGTH:
            raise InvalidCommitMessage(raw, f"bullet shorter than {MIN_BULLET_LENGTH} characters", what=what)


def parse_and_validate(raw_log: str) -> list[CommitMessageSegment]:
    """`git log --format="%B%x00"` の出力をセグメント列にする。"""
    messages = [m for m in raw_log.split("\0") if m.strip()]
    if not messages:
        raise NoUnpushedCommits()

    segments: list[CommitMessageSegment] = []
    for raw in messages:
        message = raw.strip("\r\n")
        lines = message.splitlines()

        # タイトル、空行、日時、bullet 1行以上
        if len(lines) < 4:
            raise InvalidCommitMessage(message, "fewer than 4 lines")

        # タイトルは付け直すので捨てる
        body = [line for line in lines[2:] if line.strip()]
        validate_segment_lines(body, raw=message)
        segments.append(CommitMessageSegment(lines=tuple(body)))

    return segments


def escape_for_argument(text: str) -> str:
    """ダブルクォートで囲んだ引数に埋め込めるようにする。"""
    return text.replace("\\", "\\\\").replace('"', '\\"')


def render(branch_name: str, segments: list[CommitMessageSegment]) -> str:
    message = "\n\n".join([branch_name, *(s.text() for s in segments)])
    return escape_for_argument(message)


def format_timestamp(now: datetime | None = None) -> str:
    if now is None:
        now = datetime.now(tz=timezone.utc)
    elif now.tzinfo is not None:
        now = now.astimezone(timezone.utc)
    return now.strftime(TIMESTAMP_FORMAT)


def build_commit_message(branch_name: str, message: str, now: datetime | None = None) -> str:
    """`a:: b:: c` 形式のユーザー入力から `sdn commit` のメッセージを作る（未エスケープ）。"""
    points = [p.strip() for p in message.split("::") if p.strip()]
    timestamp = format_timestamp(now)
    body = [timestamp, *(BULLET + p for p in points)]

    if not points:
        raise InvalidCommitMessage(message, "no points given", what="commit message")
    validate_segment_lines(body, raw=message, what="commit message")

    return f"{branch_name}\n\n" + "\n".join(body)
