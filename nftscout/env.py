"""Environment file loading for process bootstrap."""
from __future__ import annotations

import logging
import os
import re
import stat
from pathlib import Path
from typing import Iterable, Mapping, MutableMapping

logger = logging.getLogger(__name__)

_PLACEHOLDER_PATTERNS: tuple[re.Pattern[str], ...] = (
    re.compile(r"REDACTED", re.IGNORECASE),
    re.compile(r"YOUR[_-]", re.IGNORECASE),
    re.compile(r"xxxx", re.IGNORECASE),
    re.compile(r"<[^>]+>"),
)


def detect_placeholder(value: str | None) -> str | None:
    """Return the placeholder marker found in *value* if any."""

    if not value:
        return "empty"
    for pattern in _PLACEHOLDER_PATTERNS:
        if pattern.search(value):
            return pattern.pattern
    return None


def _parse_env_line(line: str) -> tuple[str, str] | None:
    stripped = line.strip()
    if not stripped or stripped.startswith("#"):
        return None
    if stripped.lower().startswith("export "):
        stripped = stripped[7:].lstrip()
    if "=" not in stripped:
        logger.debug("Skipping malformed env line: %s", stripped)
        return None
    key, value = stripped.split("=", 1)
    key = key.strip()
    value = value.strip()
    if not key:
        logger.debug("Skipping env line with empty key")
        return None

    # Drop inline comments that are not inside quotes.
    in_single = False
    in_double = False
    escaped = False
    comment_index = None
    for index, char in enumerate(value):
        if escaped:
            escaped = False
            continue
        if char == "\\":
            escaped = True
            continue
        if char == "'" and not in_double:
            in_single = not in_single
        elif char == '"' and not in_single:
            in_double = not in_double
        elif char == "#" and not in_single and not in_double:
            comment_index = index
            break
    if comment_index is not None:
        value = value[:comment_index].rstrip()

    if len(value) >= 2 and (
        (value.startswith('"') and value.endswith('"'))
        or (value.startswith("'") and value.endswith("'"))
    ):
        value = value[1:-1]

    value = os.path.expandvars(value)

    return key, value


def _check_permissions(path: Path) -> None:
    try:
        mode = stat.S_IMODE(path.stat().st_mode)
    except FileNotFoundError:
        return
    if mode & (stat.S_IRWXG | stat.S_IRWXO):
        logger.warning(
            "Environment file %s is group/world accessible (mode=%o)",
            path,
            mode,
        )


def load_env_file(
    path: Path,
    *,
    overwrite: bool = False,
    env: MutableMapping[str, str] | None = None,
) -> dict[str, str]:
    """Load environment variables from *path* into *env* (defaults to ``os.environ``)."""

    target_env: MutableMapping[str, str] = os.environ if env is None else env
    if not path.exists():
        logger.debug("Environment file %s not found", path)
        return {}
    _check_permissions(path)
    loaded: dict[str, str] = {}
    for line in path.read_text().splitlines():
        parsed = _parse_env_line(line)
        if not parsed:
            continue
        key, value = parsed
        if not overwrite and key in target_env:
            logger.debug("Preserving existing env %s", key)
            continue
        target_env[key] = value
        loaded[key] = value
    logger.info("Loaded %d environment variables from %s", len(loaded), path)
    return loaded


def placeholder_vars(names: Iterable[str], env: Mapping[str, str] | None = None) -> list[str]:
    """Return the names among *names* whose configured value looks like a placeholder."""

    env_map = os.environ if env is None else env
    flagged: list[str] = []
    for name in names:
        value = env_map.get(name)
        if not value:
            continue
        marker = detect_placeholder(value)
        if marker and marker != "empty":
            flagged.append(name)
    return flagged
