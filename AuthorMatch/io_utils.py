from __future__ import annotations

import json
import os
from typing import Any, Iterator, List, Optional

from .config import API_KEY_ENV_VAR, DEFAULT_KEY_FILE


def _project_root() -> str:
    """
    Return the absolute path to the project root directory, inferred from the location of this module on disk.
    """
    return os.path.abspath(os.path.join(os.path.dirname(__file__), os.pardir))


def _candidate_paths(primary: str) -> List[str]:
    """
    Build the ordered list of locations to try for a relative path: as given,
    then relative to the project root.
    """
    candidates: List[str] = [primary]
    if not os.path.isabs(primary):
        rooted = os.path.join(_project_root(), primary)
        if rooted not in candidates:
            candidates.append(rooted)
    return candidates


def split_api_keys(value: Optional[str]) -> List[str]:
    """
    Split a comma separated list of API keys, dropping blanks.
    """
    if not value:
        return []
    return [k.strip() for k in value.split(",") if k.strip()]


def read_api_keys(env_var: str = API_KEY_ENV_VAR, key_file: str = DEFAULT_KEY_FILE) -> List[str]:
    """
    Load the Elsevier API keys. The environment variable wins when set; the
    key file (one key per non-empty line) is the fallback. Raises when
    neither yields a key so the run can stop before doing any work.
    """
    keys = split_api_keys(os.environ.get(env_var))
    if keys:
        return keys

    last_err: Optional[Exception] = None
    candidates = _candidate_paths(key_file)
    for p in candidates:
        try:
            with open(p, "r", encoding="utf-8") as f:
                keys = [k for ln in f.read().splitlines() for k in split_api_keys(ln)]
        except FileNotFoundError as e:
            last_err = e
            continue
        if keys:
            return keys
        last_err = ValueError(f"{os.path.basename(p)} is empty")

    if isinstance(last_err, ValueError):
        raise last_err
    raise FileNotFoundError(
        f"API key must be specified by environment variable '{env_var}' "
        f"or key file (tried: {', '.join(candidates)})"
    )


def iter_lines(path: str, encoding: str = "utf-8") -> Iterator[str]:
    """
    Lazily yield the lines of a text file without their line endings.
    """
    with open(path, "r", encoding=encoding) as f:
        for line in f:
            yield line.rstrip("\r\n")


def ensure_dir(path: str) -> str:
    os.makedirs(path, exist_ok=True)
    return path


def write_json(path: str, data: Any, indent: Optional[int] = 2) -> None:
    """
    Write data as pretty-printed JSON, creating parent directories as needed.
    Errors propagate to the caller.
    """
    parent_dir = os.path.dirname(path)
    if parent_dir:
        os.makedirs(parent_dir, exist_ok=True)
    text = json.dumps(data, indent=indent, ensure_ascii=False)
    with open(path, "w", encoding="utf-8") as f:
        f.write(text)
