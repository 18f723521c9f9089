"""
Arena-allocated DAG of IR nodes.
"""

from typing import Iterator, List, Sequence, Tuple

from ..syntax.span import Span
from .nodes import IrNode, IrNodeData, NodeId


class Dag:
    """
    Flat, insertion-ordered store of IR nodes addressed by ``NodeId``.

    A node may only reference nodes inserted before it, so the graph is
    acyclic by construction and a tree-walking evaluator never loops.
    """

    def __init__(self):
        self._nodes: List[IrNodeData] = []
        self._roots: List[NodeId] = []

    def insert(self, node: IrNode, span: Span) -> NodeId:
        """Insert a node into the arena and return its handle."""
        node_id = NodeId(len(self._nodes))
        self._nodes.append(IrNodeData(node, span))
        return node_id

    def get(self, node_id: NodeId) -> IrNodeData:
        return self._nodes[node_id.index]

    def node(self, node_id: NodeId) -> IrNode:
        return self._nodes[node_id.index].node

    def span(self, node_id: NodeId) -> Span:
        return self._nodes[node_id.index].span

    def set_roots(self, roots: Sequence[NodeId]) -> None:
        """Set the root nodes (top-level statements, in source order)."""
        self._roots = list(roots)

    @property
    def roots(self) -> List[NodeId]:
        return list(self._roots)

    def is_empty(self) -> bool:
        return not self._nodes

    def __len__(self) -> int:
        return len(self._nodes)

    def __iter__(self) -> Iterator[Tuple[NodeId, IrNodeData]]:
        for i, data in enumerate(self._nodes):
            yield NodeId(i), data

    def validate(self) -> List[str]:
        """Check the ordering invariant. Returns a list of violations."""
        problems = []
        for node_id, data in self:
            for child in data.node.children():
                if not child < node_id:
                    problems.append(
                        f"{node_id} ({type(data.node).__name__}) references "
                        f"{child}, which was not inserted before it"
                    )
        for root in self._roots:
            if not 0 <= root.index < len(self._nodes):
                problems.append(f"root {root} is out of range")
        return problems

    def __repr__(self) -> str:
        return f"Dag(nodes={len(self._nodes)}, roots={len(self._roots)})"
