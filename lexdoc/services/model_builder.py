"""
Document model builder.

Combines metadata, parsed blocks and the caller's signature list into one
immutable DocumentModel.  The only rules applied are the model invariants:
blank runs are dropped, text blocks left without runs are dropped, and image
blocks without a source are dropped.
"""
from __future__ import annotations

import logging
from dataclasses import replace
from typing import Iterable, List, Optional

from lexdoc.models.document_model import (
    Block,
    Break,
    DocumentMetadata,
    DocumentModel,
    ImageBlock,
    SignatureEntry,
    TEXT_BLOCK_TYPES,
)

logger = logging.getLogger(__name__)


def build_document_model(
    metadata: DocumentMetadata,
    blocks: Iterable[Block],
    signatures: Optional[Iterable[SignatureEntry]] = None,
) -> DocumentModel:
    kept: List[Block] = []
    dropped = 0

    for block in blocks:
        if isinstance(block, TEXT_BLOCK_TYPES):
            runs = tuple(run for run in block.runs if not run.is_empty())
            if not runs:
                dropped += 1
                continue
            if len(runs) != len(block.runs):
                block = replace(block, runs=runs)
            kept.append(block)
        elif isinstance(block, ImageBlock):
            if not block.src:
                dropped += 1
                continue
            kept.append(block)
        elif isinstance(block, Break):
            kept.append(block)
        else:
            raise TypeError(f"Unknown block type: {type(block).__name__}")

    if dropped:
        logger.debug("build_document_model: dropped %d empty block(s)", dropped)

    return DocumentModel(
        metadata=metadata,
        blocks=tuple(kept),
        signatures=tuple(signatures or ()),
    )
