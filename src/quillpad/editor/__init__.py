"""The editing core: block model, type registry, sequence, engine, serializer.

Nothing in this package touches storage or threads; sessions own both.
"""

from .autoformat import AutoformatMatch, detect
from .block_types import REGISTRY, BlockTypeSpec, document_text, get_spec, plain_text
from .blocks_models import Block, BlockType, Document, Focus
from .engine import EditingEngine
from .numbering import resolve_ordinals
from .sequence import DocumentSequence
from .serializer import deserialize, dump_blocks, load_blocks, serialize

__all__ = [
    "AutoformatMatch",
    "Block",
    "BlockType",
    "BlockTypeSpec",
    "Document",
    "DocumentSequence",
    "EditingEngine",
    "Focus",
    "REGISTRY",
    "deserialize",
    "detect",
    "document_text",
    "dump_blocks",
    "get_spec",
    "load_blocks",
    "plain_text",
    "resolve_ordinals",
    "serialize",
]
