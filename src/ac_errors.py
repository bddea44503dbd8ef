class ACError(Exception):
    """Base class for every error raised by the matcher."""


class InvalidPatternError(ACError, ValueError):
    """A keyword cannot be inserted (empty or not a str)."""


class AutomatonFrozenError(ACError, RuntimeError):
    """Insertion was attempted after the trie has been finalized."""


class TableStructureError(ACError, ValueError):
    """
    A persisted node table is malformed: missing root, dangling or repeated
    child ids, unreachable nodes, bad symbols or outputs, undecodable blob.
    """
