"""Streaming: incremental parsing and tree assembly."""

from .parser import RecordParser
from .assembler import (
    AssembledTree,
    StreamAssembler,
    StreamReport,
    TreeIssue,
    TreeNode,
    flat_to_tree,
    merge_record,
    merge_records,
)
from .loader import load_tree
from .stream import ChunkSource, UIStream

__all__ = [
    "RecordParser",
    "AssembledTree",
    "StreamAssembler",
    "StreamReport",
    "TreeIssue",
    "TreeNode",
    "flat_to_tree",
    "merge_record",
    "merge_records",
    "load_tree",
    "ChunkSource",
    "UIStream",
]
