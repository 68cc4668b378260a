"""Shared fixtures: on-disk vault layouts for the sync tests."""

from __future__ import annotations

from pathlib import Path
from typing import Dict

from config import BEGIN_WAYPOINT, END_WAYPOINT, WAYPOINT_FLAG
from services.vault import Vault

EMPTY_WAYPOINT = f"{BEGIN_WAYPOINT}\n{END_WAYPOINT}"


def write_layout(root: Path, layout: Dict[str, str]) -> None:
    """Create files (and folders, for keys ending in '/') under `root`."""
    root.mkdir(parents=True, exist_ok=True)
    for rel, text in layout.items():
        target = root / rel
        if rel.endswith("/"):
            target.mkdir(parents=True, exist_ok=True)
            continue
        target.parent.mkdir(parents=True, exist_ok=True)
        target.write_text(text, encoding="utf-8")


def build_vault(root: Path, layout: Dict[str, str]) -> Vault:
    write_layout(root, layout)
    vault = Vault(root)
    vault.load()
    return vault


def read(vault: Vault, path: str) -> str:
    return vault.abs_path(path).read_text(encoding="utf-8")


__all__ = ["EMPTY_WAYPOINT", "WAYPOINT_FLAG", "build_vault", "read", "write_layout"]
