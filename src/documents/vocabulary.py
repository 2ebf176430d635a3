"""Recognized node-type names for the documents we structure."""

from __future__ import annotations

from dataclasses import dataclass, field


@dataclass(frozen=True)
class Vocabulary:
    """Node-type names the structurer recognizes.

    Defaults follow the House of Commons Hansard XML schema.
    """

    root: str = "HansardBody"
    speech: str = "Intervention"
    speaker: str = "PersonSpeaking"
    affiliation: str = "Affiliation"
    paragraph: str = "ParaText"
    timestamp: str = "Timestamp"
    timestamp_hour_attribute: str = "Hr"
    timestamp_minute_attribute: str = "Mn"
    language: str = "FloorLanguage"
    language_attribute: str = "language"
    headings: frozenset[str] = field(
        default_factory=lambda: frozenset({"OrderOfBusinessTitle", "SubjectOfBusinessTitle"})
    )

    # Document metadata
    metadata_container: str = "ExtractedInformation"
    metadata_item: str = "ExtractedItem"
    metadata_name_attribute: str = "Name"
    title: str = "DocumentTitle"


HANSARD = Vocabulary()
