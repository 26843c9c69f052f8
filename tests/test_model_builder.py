"""Tests for markup → DocumentModel assembly."""
from datetime import datetime

import pytest

from lexdoc.models.document_model import (
    Break,
    DocumentMetadata,
    Heading,
    ImageBlock,
    ListItem,
    Paragraph,
    SignatureEntry,
    TextRun,
)
from lexdoc.services.conversion import markup_to_model
from lexdoc.services.model_builder import build_document_model
from lexdoc.services.segmenter import LengthHeuristicClassifier


def test_heading_and_bold_paragraph(metadata):
    model = markup_to_model(
        "<h1>Agreement</h1><p>This is <strong>binding</strong>.</p>", metadata
    )
    assert model.blocks == (
        Heading(level=1, runs=(TextRun("Agreement"),)),
        Paragraph(runs=(TextRun("This is "), TextRun("binding.", bold=True))),
    )


def test_script_content_never_reaches_the_model(metadata):
    model = markup_to_model("<script>alert(1)</script><p>Hello</p>", metadata)
    assert model.blocks == (Paragraph(runs=(TextRun("Hello"),)),)


def test_empty_markup_gives_empty_model(metadata):
    model = markup_to_model("", metadata)
    assert model.blocks == ()
    assert model.is_empty
    assert model.metadata.title == "Services Agreement"


def test_list_items_and_breaks(metadata):
    model = markup_to_model(
        "<ol><li>Pay</li></ol><hr><ul><li>Notice</li></ul>", metadata
    )
    assert model.blocks == (
        ListItem(ordered=True, runs=(TextRun("Pay"),)),
        Break(),
        ListItem(ordered=False, runs=(TextRun("Notice"),)),
    )


def test_implicit_headings_only_with_classifier(metadata):
    text = "Definitions\n\nIn this agreement the following terms apply."
    plain = markup_to_model(text, metadata)
    assert isinstance(plain.blocks[0], Paragraph)

    guessed = markup_to_model(text, metadata, heading_classifier=LengthHeuristicClassifier())
    assert guessed.blocks[0] == Heading(level=2, runs=(TextRun("Definitions"),))
    assert isinstance(guessed.blocks[1], Paragraph)


def test_signatures_keep_caller_order(metadata):
    signers = [SignatureEntry("Zed"), SignatureEntry("Amy")]
    model = markup_to_model("<p>x</p>", metadata, signers)
    assert [s.signer_name for s in model.signatures] == ["Zed", "Amy"]


def test_builder_drops_blank_runs_and_empty_blocks():
    meta = DocumentMetadata(title="T")
    model = build_document_model(
        meta,
        [
            Paragraph(runs=(TextRun("  "), TextRun("kept"))),
            Paragraph(runs=(TextRun(" "),)),
            Heading(level=2, runs=()),
            ImageBlock(src=""),
            Break(),
        ],
    )
    assert model.blocks == (Paragraph(runs=(TextRun("kept"),)), Break())


def test_builder_rejects_unknown_block_types():
    with pytest.raises(TypeError):
        build_document_model(DocumentMetadata(title="T"), ["not a block"])


def test_signature_entry_requires_name():
    with pytest.raises(ValueError):
        SignatureEntry(signer_name="   ", signed_at=datetime(2024, 1, 1))
