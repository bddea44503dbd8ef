from graphviz import Digraph
from AhoCorasick import Automaton, ROOT
import os

MAX_NODES = 500


def node_id(node: int) -> str:
    return f"n{node}"


def node_label(automaton: Automaton, node: int) -> str:
    if node == ROOT:
        return "root"
    outs = automaton.local_output(node)
    if not outs:
        return str(node)
    return f"{node}\n{', '.join(outs)}"


def make_graph(automaton: Automaton, show_fail: bool = True) -> Digraph:
    """
    Trie edges are solid and labelled by symbol; fail links are dashed.
    Nodes where a keyword ends are drawn as double circles.
    """
    if automaton.node_count > MAX_NODES:
        raise ValueError(
            f"Too many nodes to visualize ({automaton.node_count} > {MAX_NODES})"
        )

    dg = Digraph(format="svg")
    dg.attr(rankdir="LR")
    dg.attr(newrank="true")
    for node in range(automaton.node_count):
        shape = "doublecircle" if automaton.local_output(node) else "circle"
        dg.node(node_id(node), label=node_label(automaton, node), shape=shape)

    for node in range(automaton.node_count):
        for char, child in automaton.children(node).items():
            dg.edge(node_id(node), node_id(child), label=char)

    if show_fail:
        # Fail links into the root add nothing but clutter
        for node in range(1, automaton.node_count):
            target = automaton.fail[node]
            if target == ROOT:
                continue
            dg.edge(
                node_id(node),
                node_id(target),
                style="dashed",
                color="red",
                constraint="false",
            )
    return dg


def dump(automaton: Automaton, path: str, fmt: str = "svg", show_fail: bool = True) -> str:
    out_dir = os.path.dirname(path)
    if out_dir and not os.path.exists(out_dir):
        os.makedirs(out_dir)
    dg = make_graph(automaton, show_fail)
    return dg.render(path, format=fmt, cleanup=True)
