"""
Intermediate representation: an arena-allocated DAG lowered from the AST.
"""

from .nodes import NodeId, IrNode, IrNodeData
from .dag import Dag
from .errors import IrError, IrErrorKind
from .lower import Lowerer, lower

__all__ = [
    "NodeId",
    "IrNode",
    "IrNodeData",
    "Dag",
    "IrError",
    "IrErrorKind",
    "Lowerer",
    "lower",
]
