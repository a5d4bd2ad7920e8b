"""
Citation post-processing for generated answers.

The backend marks cited spans with character-offset annotations that point at
an external file id. We swap each span for a readable marker:

    [Citation from: calculus-notes.pdf]   file id known to the store
    [Citation from document]              file id not found

Replacements are applied from the highest start offset down so that spans not
yet processed keep valid offsets. Overlapping annotations are not validated;
the backend does not send them, and if it did the lower span would be cut out
of already rewritten text.
"""

import logging
import re
from typing import Awaitable, Callable, Dict, Iterable, List, Mapping, NamedTuple, Optional

from pdfqa.models.answer import Annotation, AnswerMessage

logger = logging.getLogger(__name__)

GENERIC_CITATION = "[Citation from document]"
CITATION_MARKER_PATTERN = re.compile(r"\[Citation from(?:: (?P<name>[^\]]+)| document)\]")

# Resolves many external file ids to display names in one call
NameResolver = Callable[[Iterable[str]], Awaitable[Dict[str, str]]]


class CitationMarker(NamedTuple):
    start: int
    end: int
    name: Optional[str]  # None for the generic marker


def citation_marker(name: Optional[str]) -> str:
    return f"[Citation from: {name}]" if name else GENERIC_CITATION


def render_citations(text: str, annotations: List[Annotation], names: Mapping[str, str]) -> str:
    """Rewrite every annotated span of text into a citation marker."""
    if not annotations:
        return text
    for annotation in sorted(annotations, key=lambda a: a.start, reverse=True):
        name = names.get(annotation.file_id)
        if name is None:
            logger.debug("No document for cited file %s; using generic citation", annotation.file_id)
        text = text[: annotation.start] + citation_marker(name) + text[annotation.end :]
    return text


def find_citation_markers(text: str) -> List[CitationMarker]:
    """Locate rendered citation markers, e.g. for display highlighting."""
    return [CitationMarker(m.start(), m.end(), m.group("name")) for m in CITATION_MARKER_PATTERN.finditer(text)]


class CitationPostProcessor:
    def __init__(self, resolve_names: NameResolver):
        self.resolve_names = resolve_names

    async def render_message(self, message: AnswerMessage) -> str:
        """
        Render all text blocks of a message, joined by a blank line.
        File ids are resolved once per message, not once per citation.
        """
        file_ids = {a.file_id for block in message.text_blocks for a in block.annotations}
        names: Dict[str, str] = {}
        if file_ids:
            names = await self.resolve_names(file_ids)
            logger.debug("Resolved %d of %d cited files", len(names), len(file_ids))
        return "\n\n".join(render_citations(b.value, b.annotations, names) for b in message.text_blocks)
