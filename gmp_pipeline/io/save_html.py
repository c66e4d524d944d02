"""Backup, injection and write helpers for the rendered GMP page."""

from __future__ import annotations

import logging
import re
import shutil
from datetime import datetime, timedelta
from pathlib import Path
from typing import List, Optional

from gmp_pipeline import config

logger = logging.getLogger(__name__)


def write_text(path: Path, text: str) -> Path:
    """Write ``text`` to ``path`` in one go, creating parent directories."""
    path.parent.mkdir(parents=True, exist_ok=True)
    with open(path, "w", encoding="utf-8") as f:
        f.write(text)
    return path


def backup_name(path: Path, now: datetime) -> str:
    return f"{path.stem}-{now.strftime('%Y%m%dT%H%M%S%f')}{path.suffix or '.html'}"


def list_backups(path: Path, backup_dir: Path) -> List[Path]:
    """Backups of ``path``, oldest first (timestamped names sort chronologically)."""
    if not backup_dir.exists():
        return []
    pattern = re.compile(rf"^{re.escape(path.stem)}-\d{{8}}T\d{{12}}{re.escape(path.suffix or '.html')}$")
    return sorted(p for p in backup_dir.iterdir() if p.is_file() and pattern.match(p.name))


def rotate_backups(path: Path, backup_dir: Path, keep: int) -> List[Path]:
    """Delete the oldest backups of ``path`` beyond ``keep``; return removed paths."""
    backups = list_backups(path, backup_dir)
    excess = backups[: max(len(backups) - max(keep, 0), 0)]
    for old in excess:
        old.unlink()
        logger.info(f"Removed old backup {old.name}")
    return excess


def backup_file(
    path: Path,
    backup_dir: Path = config.BACKUP_DIR,
    keep: int = config.BACKUP_KEEP,
    now: Optional[datetime] = None,
) -> Optional[Path]:
    """Copy ``path`` into ``backup_dir`` under a timestamped name and rotate.

    Returns the backup path, or None when there is nothing to back up yet.
    """
    if not path.exists():
        logger.info(f"No existing {path.name} to back up (first run?)")
        return None
    now = now or datetime.now(config.TARGET_TZ)
    backup_dir.mkdir(parents=True, exist_ok=True)
    target = backup_dir / backup_name(path, now)
    # Repeat runs with a pinned clock must not overwrite older backups.
    while target.exists():
        now += timedelta(microseconds=1)
        target = backup_dir / backup_name(path, now)
    shutil.copy2(path, target)
    logger.info(f"Backup saved to {target}")
    rotate_backups(path, backup_dir, keep)
    return target


def wrap_fragment(
    fragment: str,
    start_marker: str = config.MARKER_START,
    end_marker: str = config.MARKER_END,
) -> str:
    return f"{start_marker}\n{fragment}\n{end_marker}"


def inject_fragment(
    document: str,
    fragment: str,
    start_marker: str = config.MARKER_START,
    end_marker: str = config.MARKER_END,
    placeholder: str = config.LEGACY_PLACEHOLDER,
) -> str:
    """Place ``fragment`` between the sentinel markers of ``document``.

    Existing content between the markers is replaced. Without markers the
    legacy placeholder is replaced, then ``</body>`` is used as the anchor,
    and as a last resort the block is appended.
    """
    block = wrap_fragment(fragment, start_marker, end_marker)
    start = document.find(start_marker)
    end = document.find(end_marker, start + len(start_marker)) if start != -1 else -1
    if start != -1 and end != -1:
        return document[:start] + block + document[end + len(end_marker):]

    if placeholder and placeholder in document:
        return document.replace(placeholder, block, 1)

    logger.warning("Markers not found in document; inserting GMP block before </body>.")
    body_close = document.lower().rfind("</body>")
    if body_close != -1:
        return document[:body_close] + block + "\n" + document[body_close:]
    return document.rstrip("\n") + "\n" + block + "\n"


def publish(
    fragment: str,
    dest_file: Path = config.DEST_FILE,
    fragment_file: Optional[Path] = config.FRAGMENT_FILE,
    backup_dir: Path = config.BACKUP_DIR,
    keep: int = config.BACKUP_KEEP,
    now: Optional[datetime] = None,
) -> Path:
    """Back up the current outputs, then write the fragment and the page."""
    if fragment_file is not None:
        backup_file(fragment_file, backup_dir, keep, now)
    backup_file(dest_file, backup_dir, keep, now)

    if fragment_file is not None:
        write_text(fragment_file, fragment)

    if dest_file.exists():
        with open(dest_file, encoding="utf-8") as f:
            document = f.read()
    else:
        logger.warning(f"{dest_file} not found; creating a minimal page.")
        document = "<!DOCTYPE html>\n<html>\n<body>\n</body>\n</html>\n"
    write_text(dest_file, inject_fragment(document, fragment))
    return dest_file
