"""Line-by-line segmentation of generated module summaries."""

from dataclasses import dataclass
from typing import Iterator, Optional

BULLET = "•"

LIST_ITEM = "item"
HEADING = "heading"
PARAGRAPH = "paragraph"


@dataclass(frozen=True)
class ContentBlock:
    kind: str
    text: str


def classify_line(line: str) -> Optional[ContentBlock]:
    """Classify one line; blank lines yield None.

    A bullet line is a list item. A line ending with a colon, or holding no
    period at all, is a subheading. Anything else is a paragraph.
    """
    trimmed = line.strip()
    if trimmed.startswith(BULLET):
        return ContentBlock(LIST_ITEM, trimmed[len(BULLET):].strip())
    if not trimmed:
        return None
    if trimmed.endswith(":") or "." not in trimmed:
        return ContentBlock(HEADING, trimmed)
    return ContentBlock(PARAGRAPH, trimmed)


def segment_content(text: str) -> Iterator[ContentBlock]:
    """Lazily yield the blocks of ``text``, dropping empty lines."""
    for line in text.split("\n"):
        block = classify_line(line)
        if block is not None:
            yield block
