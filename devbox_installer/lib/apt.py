from __future__ import annotations

import logging
from typing import Sequence

from .command import run_cmd

logger = logging.getLogger(__name__)


def apt_update(*, sudo: Sequence[str] = (), dry_run: bool = False) -> None:
    run_cmd([*sudo, "apt-get", "update"], dry_run=dry_run)


def apt_install(
    packages: Sequence[str],
    *,
    sudo: Sequence[str] = (),
    dry_run: bool = False,
) -> None:
    if not packages:
        return
    run_cmd(
        [*sudo, "apt-get", "install", "-y", *packages],
        dry_run=dry_run,
    )


def dpkg_architecture(*, dry_run: bool = False) -> str:
    """Debian architecture name of this host (amd64, arm64, ...)."""
    if dry_run:
        return "amd64"
    return run_cmd(["dpkg", "--print-architecture"], quiet=True).stdout.strip()


def make_dir(path: str, *, mode: str = "755", sudo: Sequence[str] = (), dry_run: bool = False) -> None:
    run_cmd([*sudo, "mkdir", "-p", "-m", mode, path], dry_run=dry_run)


def write_root_file(path: str, content: str, *, sudo: Sequence[str] = (), dry_run: bool = False) -> None:
    """Write a text file that may need elevated privileges (via tee)."""
    run_cmd([*sudo, "tee", path], input_text=content, dry_run=dry_run)


def install_file(
    src: str,
    dest: str,
    *,
    mode: str = "0644",
    sudo: Sequence[str] = (),
    dry_run: bool = False,
) -> None:
    run_cmd([*sudo, "install", "-m", mode, src, dest], dry_run=dry_run)


def dearmor_key(src: str, dest: str, *, sudo: Sequence[str] = (), dry_run: bool = False) -> None:
    run_cmd([*sudo, "gpg", "--batch", "--yes", "--dearmor", "--output", dest, src], dry_run=dry_run)


def add_apt_source(
    list_path: str,
    line: str,
    *,
    sudo: Sequence[str] = (),
    dry_run: bool = False,
) -> None:
    """Register a package repository from a single sources.list line."""
    write_root_file(list_path, line.rstrip("\n") + "\n", sudo=sudo, dry_run=dry_run)
    logger.info("Configured apt source %s: %s", list_path, line.strip())
