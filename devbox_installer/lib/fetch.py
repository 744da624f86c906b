from __future__ import annotations

import json
import logging
from typing import Any

from ..errors import ProvisioningError
from .command import run_cmd

logger = logging.getLogger(__name__)

GITHUB_API = "https://api.github.com"


def fetch_to_file(url: str, dest: str, *, dry_run: bool = False) -> None:
    run_cmd(["wget", "-nv", "-O", dest, url], dry_run=dry_run)


def fetch_text(url: str, *, dry_run: bool = False) -> str:
    return run_cmd(["wget", "-qO-", url], dry_run=dry_run).stdout


def latest_release_version(repo: str, *, dry_run: bool = False) -> str:
    """Latest release tag of a GitHub repo, without a leading 'v'."""
    if dry_run:
        run_cmd(["wget", "-qO-", f"{GITHUB_API}/repos/{repo}/releases/latest"], dry_run=True)
        return "0.0.0"

    body = fetch_text(f"{GITHUB_API}/repos/{repo}/releases/latest")
    try:
        data: Any = json.loads(body)
        tag = str(data["tag_name"])
    except (ValueError, KeyError, TypeError) as e:
        raise ProvisioningError(f"Could not read latest release of {repo}") from e
    return tag[1:] if tag.startswith("v") else tag
