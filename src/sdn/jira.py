"""JIRA 課題からブランチ名を作る。

- `123` のように `-` を含まない ID にはデフォルト prefix を付ける（`SEDONA-123`）
- summary を取得して `SEDONA-123-Fix-the-thing` にする
- 認証は HTTP Basic（パスワードは環境変数から）
"""

from __future__ import annotations

import logging
import re

import requests

from sdn.config import SdnConfig
from sdn.errors import ExternalServiceFailure, InvalidBranchSource

log = logging.getLogger(__name__)

BRANCH_INVALID_CHARS = re.compile(r"[^a-zA-Z0-9-]")
TIMEOUT_SECONDS = 30


def issue_key(issue_id: str, config: SdnConfig) -> str:
    issue_id = issue_id.strip()
    if not issue_id:
        raise InvalidBranchSource("JIRA issue id is required")
    key = issue_id if "-" in issue_id else f"{config.jira_default_issue_id_prefix}-{issue_id}"
    if BRANCH_INVALID_CHARS.search(key):
        raise InvalidBranchSource(f"Invalid JIRA issue id '{issue_id}'")
    return key


def sanitize_summary(summary: str) -> str:
    return BRANCH_INVALID_CHARS.sub("", summary.replace(" ", "-"))


def fetch_summary(key: str, config: SdnConfig) -> str:
    url = config.jira_base_url.rstrip("/") + f"/rest/api/latest/issue/{key}"
    username = config.username()
    log.info("jira lookup: %s as %s", key, username)

    try:
        r = requests.get(
            url,
            params={"fields": "summary"},
            auth=(username, config.password()),
            timeout=TIMEOUT_SECONDS,
        )
    except requests.RequestException as e:
        raise ExternalServiceFailure(f"Could not reach JIRA while looking up issue {key}\nURL: {url}\n{e}") from e

    if not r.ok:
        raise ExternalServiceFailure(
            f"Got non-success status code {r.status_code} {r.reason} while looking up JIRA issue {key}\n"
            f"URL: {r.url}\nUsername: {username}"
        )

    try:
        summary = r.json()["fields"]["summary"]
    except (ValueError, KeyError, TypeError):
        summary = None
    if not isinstance(summary, str):
        raise ExternalServiceFailure(
            f"Failed to parse successful response body while looking up JIRA issue {key}.\nURL: {r.url}"
        )
    return summary


def new_branch_name(issue_id: str, config: SdnConfig) -> str:
    key = issue_key(issue_id, config)
    suffix = sanitize_summary(fetch_summary(key, config))
    return f"{key}-{suffix}" if suffix else key
