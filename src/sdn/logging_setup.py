"""logging の初期化。

- 詳細ログ: `~/.sdn/logs/sdn.log`
- 人間向けの進捗は StepLog が端末に出す（こちらには出さない）

ログはリポジトリの外に置く。作業ツリーに置くと status --porcelain に出てしまう。
"""

from __future__ import annotations

import logging
from logging.handlers import RotatingFileHandler
from pathlib import Path


def default_log_root() -> Path:
    return Path.home() / ".sdn"


def setup_logging(*, root: Path | None = None, level: str = "INFO") -> Path | None:
    # 既に設定済みなら二重設定しない
    if getattr(setup_logging, "_configured", False):
        return None

    if root is None:
        root = default_log_root()
    log_dir = root / "logs"
    log_path = log_dir / "sdn.log"
    try:
        log_dir.mkdir(parents=True, exist_ok=True)
        handler: logging.Handler = RotatingFileHandler(
            log_path,
            maxBytes=2_000_000,
            backupCount=3,
            encoding="utf-8",
        )
    except OSError:
        # 書けない環境ではログなしで続行（ワークフロー自体は止めない）
        handler = logging.NullHandler()
        log_path = None

    numeric_level = getattr(logging, level.upper(), logging.INFO)

    fmt = logging.Formatter(
        fmt="%(asctime)s %(levelname)s %(name)s: %(message)s",
        datefmt="%Y-%m-%d %H:%M:%S",
    )
    handler.setFormatter(fmt)

    root_logger = logging.getLogger()
    root_logger.setLevel(numeric_level)
    root_logger.addHandler(handler)

    # noisy lib
    logging.getLogger("urllib3").setLevel(logging.WARNING)

    setup_logging._configured = True  # type: ignore[attr-defined]
    return log_path
