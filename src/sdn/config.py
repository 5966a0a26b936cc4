"""sdn の設定ファイル(~/.sdnrc)のロードと更新。

```json
{
  "jira_base_url": "https://jira.example.com",
  "jira_default_issue_id_prefix": "SEDONA",
  "jira_username": "alice",
  "jira_password_env": "SDN_JIRA_PASSWORD"
}
```

秘密情報（JIRA パスワード）はこのファイルに直書きしない。
`jira_password_env` で指定した環境変数から読む。

`SDN_CONFIG` でファイルの場所を上書きできる。
"""

from __future__ import annotations

import getpass
import json
import logging
import os
import re
from dataclasses import asdict, dataclass
from pathlib import Path
from typing import Callable, Optional
from urllib.parse import urlparse

from sdn.errors import ConfigError

log = logging.getLogger(__name__)

CONFIG_ENV = "SDN_CONFIG"
DEFAULT_PASSWORD_ENV = "SDN_JIRA_PASSWORD"
ISSUE_PREFIX_PATTERN = re.compile(r"[a-zA-Z]+(-?[a-zA-Z0-9]+)*")
ENV_NAME_PATTERN = re.compile(r"[A-Za-z_][A-Za-z0-9_]*")

FIX_HINT = 'Use "config" command to resolve.'

# (label, default) -> 入力値。CLI 側で typer.prompt を渡す
Prompt = Callable[[str, Optional[str]], str]


def default_username() -> str:
    try:
        return getpass.getuser()
    except (KeyError, OSError):
        return ""


@dataclass(frozen=True)
class SdnConfig:
    jira_base_url: str
    jira_default_issue_id_prefix: str
    jira_username: str = ""
    jira_password_env: str = DEFAULT_PASSWORD_ENV

    def username(self) -> str:
        return self.jira_username or default_username()

    def password(self) -> str:
        v = os.environ.get(self.jira_password_env, "")
        if not v:
            raise ConfigError(f"JIRA password env not set: {self.jira_password_env}")
        return v


def config_path() -> Path:
    override = os.environ.get(CONFIG_ENV, "")
    if override:
        return Path(override).expanduser()
    return Path.home() / ".sdnrc"


def is_valid_url(url: str | None) -> bool:
    if not url:
        return False
    parsed = urlparse(url)
    return parsed.scheme in ("http", "https") and bool(parsed.netloc)


def is_valid_prefix(prefix: str | None) -> bool:
    return bool(prefix) and ISSUE_PREFIX_PATTERN.fullmatch(prefix or "") is not None


def is_valid_env_name(name: str | None) -> bool:
    return bool(name) and ENV_NAME_PATTERN.fullmatch(name or "") is not None


def _read_raw(path: Path) -> dict | None:
    try:
        raw = json.loads(path.read_text(encoding="utf-8"))
    except (OSError, ValueError):
        return None
    return raw if isinstance(raw, dict) else None


def load_config(path: Path | None = None) -> SdnConfig:
    if path is None:
        path = config_path()
    if not path.exists():
        raise ConfigError(f"Config file not found. {FIX_HINT}")

    raw = _read_raw(path)
    if raw is None:
        raise ConfigError(f"Failed to deserialize config file. {FIX_HINT}")

    url = raw.get("jira_base_url")
    if not isinstance(url, str) or not is_valid_url(url):
        raise ConfigError(f"Config file contains invalid jira_base_url. {FIX_HINT}\nCurrent value: {url}")

    prefix = raw.get("jira_default_issue_id_prefix")
    if not isinstance(prefix, str) or not is_valid_prefix(prefix):
        raise ConfigError(f"Config file contains invalid jira_default_issue_id_prefix. {FIX_HINT}")

    password_env = raw.get("jira_password_env") or DEFAULT_PASSWORD_ENV
    if not isinstance(password_env, str) or not is_valid_env_name(password_env):
        raise ConfigError(f"Config file contains invalid jira_password_env. {FIX_HINT}")

    return SdnConfig(
        jira_base_url=url,
        jira_default_issue_id_prefix=prefix,
        jira_username=str(raw.get("jira_username") or ""),
        jira_password_env=password_env,
    )


def _ask(
    prompt: Prompt,
    *,
    label: str,
    existing: str | None,
    valid: Callable[[str | None], bool],
    error: str,
) -> str:
    """既存の有効値があれば空入力で維持、無ければ必須。"""
    if existing is not None:
        answer = prompt(f"{label} (optional)", existing).strip()
        if not answer or answer == existing:
            return existing
    else:
        answer = prompt(f"{label} (required)", None).strip()

    if not valid(answer):
        raise ConfigError(error)
    return answer


def update_config_file(path: Path | None = None, *, prompt: Prompt) -> SdnConfig:
    """対話で設定ファイルを作成/更新する。不正入力ならファイルは触らない。"""
    if path is None:
        path = config_path()

    raw = (_read_raw(path) or {}) if path.exists() else {}

    def existing(key: str, valid: Callable[[str | None], bool]) -> str | None:
        v = raw.get(key)
        return v if isinstance(v, str) and valid(v) else None

    url = _ask(
        prompt,
        label="JIRA base URL",
        existing=existing("jira_base_url", is_valid_url),
        valid=is_valid_url,
        error="Invalid URL provided",
    )
    prefix = _ask(
        prompt,
        label="Default JIRA issue ID prefix",
        existing=existing("jira_default_issue_id_prefix", is_valid_prefix),
        valid=is_valid_prefix,
        error="Invalid default JIRA issue ID prefix provided",
    )
    username = _ask(
        prompt,
        label="JIRA username",
        existing=existing("jira_username", bool) or default_username() or None,
        valid=bool,
        error="JIRA username is required",
    )
    password_env = _ask(
        prompt,
        label="Env var holding the JIRA password",
        existing=existing("jira_password_env", is_valid_env_name) or DEFAULT_PASSWORD_ENV,
        valid=is_valid_env_name,
        error="Invalid environment variable name provided",
    )

    cfg = SdnConfig(
        jira_base_url=url,
        jira_default_issue_id_prefix=prefix,
        jira_username=username,
        jira_password_env=password_env,
    )
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_text(json.dumps(asdict(cfg), ensure_ascii=False, indent=2), encoding="utf-8")
    log.info("config written: %s", path)
    return cfg
