"""Turn a parsed transcript tree into an ordered sequence of typed segments."""

from __future__ import annotations

import logging
from dataclasses import dataclass
from enum import Enum

from src.documents.tree import (
    Container,
    Node,
    find_first,
    iter_children,
    own_text,
    tag_of,
    text_content,
    unwrap,
)
from src.documents.vocabulary import HANSARD, Vocabulary
from src.errors import StructuringError

logger = logging.getLogger(__name__)

# Trailing characters removed from speaker labels ("Mr. Smith:" -> "Mr. Smith").
# Periods are kept so honorifics like "Hon." survive.
_LABEL_TRAILING = " \t\r\n:;,"

UNNAMED_SPEAKER = "Unnamed Speaker"


class SegmentKind(str, Enum):
    """Kinds of structured content extracted from a document."""

    SECTION_HEADING = "section-heading"
    SPEECH = "speech"
    TIMESTAMP = "timestamp"
    LANGUAGE_TAG = "language-tag"


@dataclass(frozen=True)
class Segment:
    """One unit of structured document content."""

    kind: SegmentKind
    text: str = ""
    speaker_name: str | None = None
    affiliation: str | None = None


def _clean(text: str) -> str:
    """Collapse runs of whitespace and trim."""
    return " ".join(text.split())


def _speaker_of(node: Node, vocab: Vocabulary) -> tuple[str | None, str | None]:
    """Extract ``(speaker_name, affiliation)`` from a speech node.

    Missing or ambiguous speaker metadata yields ``(None, None)`` rather than
    an error, so one odd intervention cannot sink the whole document.
    """
    labels = list(iter_children(node, vocab.speaker))
    if len(labels) != 1:
        if labels:
            logger.warning("Speech node has %d speaker labels; leaving speaker unset", len(labels))
        return None, None

    label = labels[0]
    full = _clean(text_content(label))
    affiliations = [_clean(text_content(a)) for a in iter_children(label, vocab.affiliation)]
    affiliation = " ".join(a for a in affiliations if a) or None

    name = full
    if affiliation:
        name = _clean(name.replace(affiliation, " "))
    name = name.rstrip(_LABEL_TRAILING)

    if not name and affiliation:
        # Whole label lives inside <Affiliation>; it is the name, not an affiliation.
        return affiliation.rstrip(_LABEL_TRAILING) or None, None
    return name or None, affiliation


def _marker(node: Node, kind: SegmentKind, vocab: Vocabulary) -> Segment:
    _, attributes = unwrap(node)
    text = _clean(text_content(node))
    if not text and kind is SegmentKind.TIMESTAMP:
        hour = attributes.get(vocab.timestamp_hour_attribute)
        minute = attributes.get(vocab.timestamp_minute_attribute)
        if hour is not None and minute is not None:
            text = f"{hour.zfill(2)}:{minute.zfill(2)}"
    elif not text and kind is SegmentKind.LANGUAGE_TAG:
        text = attributes.get(vocab.language_attribute, "")
    return Segment(kind=kind, text=text)


def _collect_speech(
    node: Node,
    vocab: Vocabulary,
    paragraphs: list[str],
    markers: list[Segment],
) -> None:
    """Gather paragraph text and inline markers beneath a speech node, in order."""
    inner, _ = unwrap(node)
    if not isinstance(inner, Container):
        return
    for child in inner.children:
        tag = tag_of(child)
        if tag is None or tag == vocab.speaker:
            continue
        if tag == vocab.paragraph:
            paragraphs.append(_clean(text_content(child)))
        elif tag == vocab.timestamp:
            markers.append(_marker(child, SegmentKind.TIMESTAMP, vocab))
        elif tag == vocab.language:
            markers.append(_marker(child, SegmentKind.LANGUAGE_TAG, vocab))
        else:
            _collect_speech(child, vocab, paragraphs, markers)


def _walk(node: Node, vocab: Vocabulary, out: list[Segment]) -> None:
    tag = tag_of(node)
    if tag is None:
        return

    if tag == vocab.speech:
        speaker, affiliation = _speaker_of(node, vocab)
        paragraphs: list[str] = []
        markers: list[Segment] = []
        _collect_speech(node, vocab, paragraphs, markers)
        text = " ".join(p for p in paragraphs if p)
        if text:
            out.append(
                Segment(
                    kind=SegmentKind.SPEECH,
                    text=text,
                    speaker_name=speaker,
                    affiliation=affiliation if speaker else None,
                )
            )
        out.extend(markers)
        return

    if tag in vocab.headings:
        text = _clean(text_content(node))
        if text:
            out.append(Segment(kind=SegmentKind.SECTION_HEADING, text=text))
        return
    if tag == vocab.timestamp:
        out.append(_marker(node, SegmentKind.TIMESTAMP, vocab))
        return
    if tag == vocab.language:
        out.append(_marker(node, SegmentKind.LANGUAGE_TAG, vocab))
        return
    if tag == vocab.paragraph:
        # Procedural text outside any intervention: a speech with nobody speaking.
        text = _clean(text_content(node))
        if text:
            out.append(Segment(kind=SegmentKind.SPEECH, text=text))
        return

    inner, _ = unwrap(node)
    if not isinstance(inner, Container):
        return
    for child in inner.children:
        _walk(child, vocab, out)


def structure(document: Node, vocabulary: Vocabulary = HANSARD) -> list[Segment]:
    """Walk a document tree depth-first and emit its segments in document order.

    Args:
        document: Root of the parsed document (see :func:`src.documents.tree.from_xml`).
        vocabulary: Node-type names to recognize.

    Returns:
        Ordered segments. Speech nodes with no text are dropped.

    Raises:
        StructuringError: If the vocabulary's root container is absent.
    """
    body = find_first(document, vocabulary.root)
    if body is None:
        raise StructuringError(
            f"Document has no <{vocabulary.root}> container (root is <{tag_of(document)}>)"
        )

    segments: list[Segment] = []
    _walk(body, vocabulary, segments)
    logger.debug("Structured document into %d segments", len(segments))
    return segments


def extract_metadata(document: Node, vocabulary: Vocabulary = HANSARD) -> dict[str, str]:
    """Read the document's descriptive metadata (sitting date, parliament, title...)."""
    meta: dict[str, str] = {}

    info = find_first(document, vocabulary.metadata_container)
    if info is not None:
        for item in iter_children(info, vocabulary.metadata_item):
            _, attributes = unwrap(item)
            name = attributes.get(vocabulary.metadata_name_attribute)
            value = _clean(text_content(item))
            if name and value:
                meta["".join(name.split())] = value

    title = find_first(document, vocabulary.title)
    if title is not None:
        value = _clean(own_text(title)) or _clean(text_content(title))
        if value:
            meta["documentTitle"] = value

    return meta


def flatten(segments: list[Segment]) -> str:
    """Render segments as the plain-text transcript fed to the summarizer."""
    parts: list[str] = []
    for seg in segments:
        if seg.kind is SegmentKind.SPEECH:
            parts.append(f"{seg.speaker_name or UNNAMED_SPEAKER}:\n{seg.text}")
        elif seg.kind is SegmentKind.SECTION_HEADING:
            parts.append(f"--- {seg.text} ---")
    return "\n\n".join(parts)
