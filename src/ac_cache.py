from typing import List, Optional, Sequence, Tuple
import os
import tempfile
import time
import logging

from AhoCorasick import Automaton, build_automaton
from ac_codec import create_from_table, dumps, loads_table
from ac_common import DEFAULT_CACHE_MAX_AGE
from ac_errors import TableStructureError


# One keyword per line; blank lines and '#' comments are skipped
def load_patterns(path: str) -> List[str]:
    patterns: List[str] = []
    seen = set()
    with open(path, "r", encoding="utf-8") as f:
        for line in f:
            pat = line.rstrip()
            if not pat or pat.lstrip().startswith("#"):
                continue
            if pat not in seen:
                seen.add(pat)
                patterns.append(pat)
    return patterns


def cache_format(cache_path: str) -> str:
    ext = os.path.splitext(cache_path)[1].lower()
    return "pickle" if ext in (".pkl", ".pickle") else "json"


def is_fresh(cache_path: str, max_age: int = DEFAULT_CACHE_MAX_AGE) -> bool:
    try:
        mtime = os.path.getmtime(cache_path)
    except OSError:
        return False
    return time.time() - mtime < max_age


def load_cache(cache_path: str) -> Optional[Automaton]:
    fmt = cache_format(cache_path)
    try:
        with open(cache_path, "rb") as f:
            blob = f.read()
    except OSError as e:
        logging.warning(f"Cache {cache_path} is unreadable: {e}")
        return None
    try:
        table = loads_table(blob, fmt)
    except TableStructureError as e:
        logging.warning(f"Cache {cache_path} is corrupt: {e}")
        return None
    return create_from_table(table)


def save_cache(cache_path: str, automaton: Automaton):
    # Encode first so a failure never leaves a temp file behind
    blob = dumps(automaton, cache_format(cache_path))
    cache_dir = os.path.dirname(cache_path)
    if cache_dir:
        os.makedirs(cache_dir, exist_ok=True)
    fd, tmp = tempfile.mkstemp(dir=cache_dir or ".", suffix=".tmp")
    try:
        with os.fdopen(fd, "wb") as f:
            f.write(blob)
        os.replace(tmp, cache_path)
    except OSError:
        if os.path.exists(tmp):
            os.remove(tmp)
        raise


def load_or_build(
    patterns: Sequence[str],
    cache_path: str,
    max_age: int = DEFAULT_CACHE_MAX_AGE,
) -> Tuple[Automaton, bool]:
    """
    Load the automaton from `cache_path` while it is younger than `max_age`
    seconds; otherwise (or when the cache cannot be read) rebuild it from
    `patterns` and rewrite the cache.
    Returns the automaton and whether it came from the cache.
    """
    if is_fresh(cache_path, max_age):
        automaton = load_cache(cache_path)
        if automaton is not None:
            logging.info(f"Loaded automaton from cache {cache_path}")
            return automaton, True
        logging.warning(f"Cache {cache_path} unusable, rebuilding")
    else:
        logging.info(f"Cache {cache_path} missing or stale")

    automaton = build_automaton(patterns)
    logging.info(f"Built automaton from {len(automaton.patterns)} patterns")
    try:
        save_cache(cache_path, automaton)
    except (OSError, ValueError) as e:
        logging.error(f"Failed to write cache {cache_path}: {e}")
    return automaton, False
