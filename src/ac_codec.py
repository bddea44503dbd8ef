from typing import Any, Deque, Dict, List, Mapping, Optional, Tuple
from collections import deque
import json
import logging
import pickle

from AhoCorasick import Automaton, ROOT
from ac_errors import TableStructureError

FORMATS = ("json", "pickle")

# Table layout:
#   {node_id: {"children": {symbol: child_id, ...}, "output": [pattern, ...]}}
# node_id 0 is the root. Fail links are never stored: they are a pure
# function of the trie and are recomputed on import.


def export_table(automaton: Automaton) -> Dict[int, Dict[str, Any]]:
    """
    Number the nodes breadth first (root = 0) and flatten them into a table.
    Only the locally-terminal outputs are stored.
    """
    table: Dict[int, Dict[str, Any]] = {}
    ids: Dict[int, int] = {ROOT: 0}
    next_id = 1
    queue: Deque[int] = deque([ROOT])
    while queue:
        node = queue.popleft()
        children: Dict[str, int] = {}
        for char, child in automaton.goto[node].items():
            ids[child] = next_id
            children[char] = next_id
            next_id += 1
            queue.append(child)
        table[ids[node]] = {
            "children": children,
            "output": sorted(automaton.local_output(node)),
        }
    assert len(table) == automaton.node_count
    return table


def _parse_id(raw: Any) -> int:
    # JSON turns integer keys into strings
    if isinstance(raw, bool):
        raise TableStructureError(f"Invalid node id: {raw!r}")
    if isinstance(raw, int):
        node_id = raw
    elif isinstance(raw, str):
        try:
            node_id = int(raw)
        except ValueError as e:
            raise TableStructureError(f"Invalid node id: {raw!r}") from e
    else:
        raise TableStructureError(f"Invalid node id: {raw!r}")
    if node_id < 0:
        raise TableStructureError(f"Invalid node id: {raw!r}")
    return node_id


def _read_entries(table: Mapping) -> Dict[int, Tuple[Mapping, List[Any]]]:
    entries: Dict[int, Tuple[Mapping, List[Any]]] = {}
    for raw_id, entry in table.items():
        node_id = _parse_id(raw_id)
        if node_id in entries:
            raise TableStructureError(f"Node {node_id} is defined twice")
        if not isinstance(entry, Mapping):
            raise TableStructureError(f"Node {node_id} is not a mapping")
        if "children" not in entry or "output" not in entry:
            raise TableStructureError(f"Node {node_id} lacks 'children' or 'output'")
        children = entry["children"]
        output = entry["output"]
        if not isinstance(children, Mapping):
            raise TableStructureError(f"Node {node_id}: 'children' is not a mapping")
        if not isinstance(output, (list, tuple, set, frozenset)):
            raise TableStructureError(f"Node {node_id}: 'output' is not a collection")
        entries[node_id] = (children, list(output))
    return entries


def _local_outputs(node_id: int, path: str, output: List[Any]) -> Tuple[List[str], List[str]]:
    """
    Split a stored output set into the keyword ending exactly at this node
    and the proper-suffix keywords that the fail-link closure re-derives.
    """
    local: List[str] = []
    derived: List[str] = []
    for pat in output:
        if not isinstance(pat, str) or not pat:
            raise TableStructureError(f"Node {node_id}: invalid output {pat!r}")
        if pat == path:
            if pat not in local:
                local.append(pat)
        elif len(pat) < len(path) and path.endswith(pat):
            derived.append(pat)
        else:
            raise TableStructureError(
                f"Node {node_id}: output {pat!r} does not end at path {path!r}"
            )
    return local, derived


def import_table(table: Mapping) -> Automaton:
    """
    Rebuild an automaton from a table in three passes: read every node entry,
    wire children breadth first from the root, then run the finalizer.
    Raises TableStructureError without building anything on malformed input.
    """
    if not isinstance(table, Mapping) or not table:
        raise TableStructureError("Table is empty or not a mapping")

    entries = _read_entries(table)
    if 0 not in entries:
        raise TableStructureError("Table has no root node (id 0)")

    # table id -> arena index; every node must be reached exactly once
    index: Dict[int, int] = {0: ROOT}
    goto: List[Dict[str, int]] = [{}]
    paths: List[str] = [""]
    table_ids: List[int] = [0]
    queue: Deque[int] = deque([0])
    while queue:
        node_id = queue.popleft()
        arena = index[node_id]
        for char, raw_child in entries[node_id][0].items():
            if not isinstance(char, str) or len(char) != 1:
                raise TableStructureError(f"Node {node_id}: invalid symbol {char!r}")
            child_id = _parse_id(raw_child)
            if child_id not in entries:
                raise TableStructureError(f"Node {node_id}: dangling child id {child_id}")
            if child_id in index:
                raise TableStructureError(
                    f"Node {child_id} is reached twice (cycle or shared child)"
                )
            new_node = len(goto)
            index[child_id] = new_node
            goto.append({})
            paths.append(paths[arena] + char)
            table_ids.append(child_id)
            goto[arena][char] = new_node
            queue.append(child_id)

    if len(index) != len(entries):
        unreachable = sorted(set(entries) - set(index))
        raise TableStructureError(f"Unreachable nodes: {unreachable}")

    terminal: List[List[str]] = []
    derived_all: List[Tuple[int, str]] = []
    for arena, path in enumerate(paths):
        node_id = table_ids[arena]
        local, derived = _local_outputs(node_id, path, entries[node_id][1])
        terminal.append(local)
        derived_all.extend((node_id, pat) for pat in derived)

    # A closed output set may only carry keywords the table defines itself
    keywords = {pat for outs in terminal for pat in outs}
    for node_id, pat in derived_all:
        if pat not in keywords:
            raise TableStructureError(
                f"Node {node_id}: output {pat!r} is not a keyword of this table"
            )

    automaton = Automaton(goto, terminal)
    logging.debug(
        f"Imported automaton: {len(automaton.patterns)} patterns, {automaton.node_count} nodes"
    )
    return automaton


def create_from_table(table: Mapping) -> Optional[Automaton]:
    """Same as import_table, but returns None on a structural error."""
    try:
        return import_table(table)
    except TableStructureError as e:
        logging.warning(f"Failed to import automaton table: {e}")
        return None


def dumps_table(table: Mapping, fmt: str = "json") -> bytes:
    if fmt == "json":
        return json.dumps(table, ensure_ascii=False, sort_keys=True).encode("utf-8")
    if fmt == "pickle":
        return pickle.dumps(dict(table))
    raise ValueError(f"Unknown format: {fmt}")


def loads_table(blob: bytes, fmt: str = "json") -> Mapping:
    """
    Decode a serialized table. Pickle blobs must come from a trusted source.
    """
    if fmt == "json":
        try:
            return json.loads(blob.decode("utf-8"))
        except (UnicodeDecodeError, json.JSONDecodeError, RecursionError) as e:
            raise TableStructureError(f"Undecodable JSON table: {e}") from e
    if fmt == "pickle":
        try:
            return pickle.loads(blob)
        except Exception as e:
            raise TableStructureError(f"Undecodable pickle table: {e}") from e
    raise ValueError(f"Unknown format: {fmt}")


def dumps(automaton: Automaton, fmt: str = "json") -> bytes:
    return dumps_table(export_table(automaton), fmt)


def loads(blob: bytes, fmt: str = "json") -> Automaton:
    return import_table(loads_table(blob, fmt))
