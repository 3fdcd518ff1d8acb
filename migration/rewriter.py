"""
Rewrite source asset IDs inside document JSON.

Asset references can sit anywhere in a document (image fields, links,
rich text spans, slices), so the rewrite does not depend on the schema:

1. the serialized document text is rewritten as a whole
2. the re-parsed structure is walked and every string value is rewritten
   again, catching ids the serialized form escaped

Both passes put a marker in place of each id they find, and the markers are
resolved to destination ids only at the end. A destination id that contains
another source id is therefore never rewritten twice. Marker delimiters are
private-use characters chosen per document so that they never occur in it.
"""

import json
import re
from dataclasses import dataclass
from typing import Any, Dict, Iterable, List, Set, Tuple, Union

from .models import IdMapping

REQUIRED_FIELDS = ("id", "type")

PRIVATE_USE_RANGE = (0xE000, 0xF8FF)


class DocumentRewriteError(Exception):
    """A document could not be rewritten into a submittable payload"""


@dataclass
class RewriteResult:
    document: Dict[str, Any]
    replacement_count: int


class Markers:
    """A pair of delimiter characters wrapping a mapping index."""

    def __init__(self, opening: str, closing: str):
        self.opening = opening
        self.closing = closing
        self.pattern = re.compile(f"{re.escape(opening)}(\\d+){re.escape(closing)}")

    @classmethod
    def avoiding(cls, used: Set[str]) -> "Markers":
        """First two private-use characters that are not in used."""
        free = []
        for code in range(PRIVATE_USE_RANGE[0], PRIVATE_USE_RANGE[1] + 1):
            if chr(code) not in used:
                free.append(chr(code))
                if len(free) == 2:
                    return cls(*free)
        raise DocumentRewriteError("No free marker characters for document")

    def wrap(self, index: int) -> str:
        return f"{self.opening}{index}{self.closing}"


def collect_characters(value: Any, used: Set[str]) -> Set[str]:
    """Add every character of the keys and strings in a JSON structure."""
    if isinstance(value, str):
        used.update(value)
    elif isinstance(value, list):
        for item in value:
            collect_characters(item, used)
    elif isinstance(value, dict):
        for key, item in value.items():
            collect_characters(key, used)
            collect_characters(item, used)
    return used


class IdReplacer:
    """Simultaneous multi-pattern replacement of source ids."""

    def __init__(self, mappings: Iterable[IdMapping]):
        self.table: Dict[str, int] = {}
        self.targets: List[str] = []
        for mapping in mappings:
            # first mapping for a source id wins
            if mapping.prev_id and mapping.prev_id not in self.table:
                self.table[mapping.prev_id] = len(self.targets)
                self.targets.append(mapping.id)

        if self.table:
            ordered = sorted(self.table, key=len, reverse=True)
            self.pattern = re.compile("|".join(re.escape(prev_id) for prev_id in ordered))
        else:
            self.pattern = None

    def __len__(self):
        return len(self.table)

    def mark(self, text: str, markers: Markers) -> Tuple[str, Set[str]]:
        """Swap every source id for a marker; return the text and the ids found."""
        if self.pattern is None or not text:
            return text, set()

        found: Set[str] = set()

        def substitute(match):
            found.add(match.group(0))
            return markers.wrap(self.table[match.group(0)])

        # split keeps the captured indexes of existing markers at odd positions
        pieces = markers.pattern.split(text)
        for position in range(0, len(pieces), 2):
            pieces[position] = self.pattern.sub(substitute, pieces[position])
        for position in range(1, len(pieces), 2):
            pieces[position] = markers.wrap(pieces[position])
        return "".join(pieces), found

    def resolve(self, text: str, markers: Markers) -> str:
        if self.pattern is None or not text:
            return text

        def target(match):
            index = int(match.group(1))
            return self.targets[index] if index < len(self.targets) else match.group(0)

        return markers.pattern.sub(target, text)

    def replace(self, text: str) -> Tuple[str, Set[str]]:
        """Return the rewritten text and the source ids that were found."""
        markers = Markers.avoiding(set(text or ""))
        marked, found = self.mark(text, markers)
        return self.resolve(marked, markers), found

    def mark_in(self, value: Any, markers: Markers, found: Set[str]) -> Any:
        """Mark ids in every string value of a parsed JSON structure."""
        if isinstance(value, str):
            text, matched = self.mark(value, markers)
            found.update(matched)
            return text
        if isinstance(value, list):
            return [self.mark_in(item, markers, found) for item in value]
        if isinstance(value, dict):
            return {key: self.mark_in(item, markers, found) for key, item in value.items()}
        return value

    def resolve_in(self, value: Any, markers: Markers) -> Any:
        """Resolve markers in keys and values of a parsed JSON structure."""
        if isinstance(value, str):
            return self.resolve(value, markers)
        if isinstance(value, list):
            return [self.resolve_in(item, markers) for item in value]
        if isinstance(value, dict):
            return {
                self.resolve(key, markers): self.resolve_in(item, markers)
                for key, item in value.items()
            }
        return value


def rewrite_document(
    document: Union[Dict[str, Any], str],
    mappings: Union[IdReplacer, List[IdMapping]],
) -> RewriteResult:
    """
    Replace every mapped source asset id in a document.

    The document may be a parsed dict or its JSON text. replacement_count is
    the number of distinct source ids that occurred in the document.
    Raises DocumentRewriteError when the document cannot be serialized or
    parsed, or lacks an id or type after rewriting.
    """
    replacer = mappings if isinstance(mappings, IdReplacer) else IdReplacer(mappings)

    if isinstance(document, str):
        serialized = document
        try:
            original = json.loads(serialized)
        except ValueError as e:
            raise DocumentRewriteError(f"Failed to parse document: {e}") from e
    else:
        original = document
        try:
            serialized = json.dumps(document, ensure_ascii=False)
        except (TypeError, ValueError) as e:
            raise DocumentRewriteError(f"Failed to serialize document: {e}") from e

    # escaped characters only show up once parsed
    markers = Markers.avoiding(collect_characters(original, set(serialized)))
    marked, found = replacer.mark(serialized, markers)

    try:
        parsed = json.loads(marked)
    except ValueError as e:
        raise DocumentRewriteError(f"Failed to parse document: {e}") from e

    processed = replacer.resolve_in(replacer.mark_in(parsed, markers, found), markers)

    if not isinstance(processed, dict) or not all(processed.get(name) for name in REQUIRED_FIELDS):
        raise DocumentRewriteError("Document missing required fields (id or type)")

    return RewriteResult(document=processed, replacement_count=len(found))


def document_title(document: Any, index: int) -> str:
    """First title text of a document, or a positional placeholder."""
    placeholder = f"document {index}"
    if not isinstance(document, dict):
        return placeholder

    data = document.get("data")
    if not isinstance(data, dict):
        return placeholder

    title = data.get("title")
    if isinstance(title, list) and title and isinstance(title[0], dict):
        text = title[0].get("text")
        if isinstance(text, str) and text:
            return text
    return placeholder


def build_migration_payload(document: Dict[str, Any], title: str) -> Dict[str, Any]:
    return {**document, "title": title}
