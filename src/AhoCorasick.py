from typing import List, Dict, Set, Deque, Tuple, Iterable, Iterator, NamedTuple, Optional
from collections import deque
import logging

from ac_errors import InvalidPatternError, AutomatonFrozenError


ROOT = 0


class MatchRecord(NamedTuple):
    pattern: str
    start: int
    # Inclusive, in codepoints
    end: int


class TrieBuilder:
    """
    Mutable trie over the keyword set. Nodes live in an arena addressed by
    index (root = 0); `goto[n]` maps a codepoint to the child index and
    `terminal[n]` holds the keywords ending exactly at n.
    Calling `finalize` freezes the builder and hands out the searchable
    `Automaton`; there is no way to search a trie that is not finalized.
    """

    def __init__(self, patterns: Iterable[str] = ()):
        self.goto: List[Dict[str, int]] = [{}]
        self.terminal: List[List[str]] = [[]]
        self.patterns: List[str] = []
        self._automaton: Optional["Automaton"] = None
        self.insert_all(patterns)

    @property
    def pattern_count(self) -> int:
        return len(self.patterns)

    @property
    def node_count(self) -> int:
        return len(self.goto)

    @property
    def finalized(self) -> bool:
        return self._automaton is not None

    def insert(self, pattern: str):
        if self._automaton is not None:
            raise AutomatonFrozenError(
                "Cannot insert into a finalized trie; rebuild from the pattern list"
            )
        if not isinstance(pattern, str):
            raise InvalidPatternError(f"Pattern must be str, got {type(pattern).__name__}")
        if not pattern:
            raise InvalidPatternError("Empty pattern is not allowed")
        try:
            pattern.encode("utf-8")
        except UnicodeEncodeError as e:
            # Lone surrogates cannot be persisted
            raise InvalidPatternError(f"Pattern is not valid Unicode: {pattern!r}") from e

        # Walk first so that a rejected pattern never leaves half a path behind
        goto = self.goto
        cur_node = ROOT
        idx = 0
        while idx < len(pattern) and pattern[idx] in goto[cur_node]:
            cur_node = goto[cur_node][pattern[idx]]
            idx += 1
        for char in pattern[idx:]:
            new_node = len(goto)
            goto[cur_node][char] = new_node
            goto.append({})
            self.terminal.append([])
            cur_node = new_node

        if pattern not in self.terminal[cur_node]:
            self.terminal[cur_node].append(pattern)
            self.patterns.append(pattern)

    def insert_all(self, patterns: Iterable[str]):
        for pat in patterns:
            self.insert(pat)

    def finalize(self) -> "Automaton":
        # Second call hands back the same automaton; outputs are never re-unioned
        if self._automaton is None:
            self._automaton = Automaton(self.goto, self.terminal, self.patterns)
            logging.debug(
                f"Automaton finalized: {self.pattern_count} patterns, {self.node_count} nodes"
            )
        return self._automaton


class Automaton:
    """
    Finalized Aho-Corasick automaton. Read-only after construction, so any
    number of threads may call `search` concurrently: every call keeps its
    own cursor.
    """

    root = ROOT

    def __init__(
        self,
        goto: List[Dict[str, int]],
        terminal: List[List[str]],
        patterns: Optional[List[str]] = None,
    ):
        assert len(goto) == len(terminal) and len(goto) > 0
        self.goto: List[Dict[str, int]] = goto
        self.terminal: List[Tuple[str, ...]] = [tuple(t) for t in terminal]
        if patterns is None:
            patterns = [pat for outs in self.terminal for pat in outs]
        self.patterns: Tuple[str, ...] = tuple(patterns)
        self.fail: List[int] = [ROOT] * len(goto)
        self.depths: List[int] = [0] * len(goto)
        self.output: List[Tuple[str, ...]] = []
        self._build()

    def _build(self):
        goto = self.goto
        fail = self.fail
        depths = self.depths
        output: List[List[str]] = [list(t) for t in self.terminal]

        queue: Deque[int] = deque()
        for child in goto[ROOT].values():
            fail[child] = ROOT
            depths[child] = 1
            queue.append(child)

        # BFS: a node's fail link (and so its closed output) is always
        # resolved before any of its children are visited
        while queue:
            node = queue.popleft()
            for char, child in goto[node].items():
                queue.append(child)
                depths[child] = depths[node] + 1

                failure = fail[node]
                while failure > 0 and char not in goto[failure]:
                    failure = fail[failure]
                failure = goto[failure].get(char, ROOT)

                fail[child] = failure
                output[child].extend(output[failure])

        self.output = [tuple(outs) for outs in output]

    def finalize(self) -> "Automaton":
        return self

    @property
    def node_count(self) -> int:
        return len(self.goto)

    def children(self, node: int) -> Dict[str, int]:
        return dict(self.goto[node])

    def local_output(self, node: int) -> Tuple[str, ...]:
        return self.terminal[node]

    def depth(self, node: int) -> int:
        return self.depths[node]

    def step(self, node: int, char: str) -> int:
        """Effective transition: total over every (node, codepoint) pair."""
        goto = self.goto
        while node and char not in goto[node]:
            node = self.fail[node]
        return goto[node].get(char, ROOT)

    def iter_matches(self, text: str) -> Iterator[MatchRecord]:
        # Cache attribute lookups in local variables
        goto = self.goto
        fail = self.fail
        output = self.output
        cur_node = ROOT

        for idx, char in enumerate(text):
            while cur_node and char not in goto[cur_node]:
                cur_node = fail[cur_node]
            cur_node = goto[cur_node].get(char, ROOT)
            for pat in output[cur_node]:
                yield MatchRecord(pat, idx - len(pat) + 1, idx)

    def search(self, text: str) -> List[MatchRecord]:
        res = list(self.iter_matches(text))
        # Ends are non-decreasing; longest pattern first within one end
        assert res == sorted(res, key=lambda x: (x.end, x.start))
        return res

    def contains_any(self, text: str) -> bool:
        return next(self.iter_matches(text), None) is not None

    def matched_patterns(self, text: str) -> Set[str]:
        return {rec.pattern for rec in self.iter_matches(text)}

    def find_longest(self, text: str) -> List[MatchRecord]:
        return select_longest_matches(self.search(text))

    def redact(self, text: str, replacement: str = "*") -> str:
        """
        Mask every codepoint covered by at least one match.
        Spans are applied from the highest start offset down and a codepoint
        is rewritten at most once, so overlapping keywords never corrupt each
        other. `replacement` is a single codepoint and the result has the
        same length as `text`.
        """
        if not isinstance(replacement, str) or len(replacement) != 1:
            raise ValueError("replacement must be a single character")
        records = self.search(text)
        if not records:
            return text

        chars = list(text)
        masked = [False] * len(chars)
        for rec in sorted(records, key=lambda r: r.start, reverse=True):
            for idx in range(rec.start, rec.end + 1):
                if not masked[idx]:
                    chars[idx] = replacement
                    masked[idx] = True
        return "".join(chars)


def select_longest_matches(records: Iterable[MatchRecord]) -> List[MatchRecord]:
    """
    Greedily pick leftmost-longest non-overlapping matches.
    """
    selected: List[MatchRecord] = []
    occupied_end = -1
    for rec in sorted(records, key=lambda r: (r.start, -r.end)):
        if rec.start <= occupied_end:
            continue
        selected.append(rec)
        occupied_end = rec.end
    return selected


def build_automaton(patterns: Iterable[str]) -> Automaton:
    return TrieBuilder(patterns).finalize()
