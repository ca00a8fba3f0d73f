"""
Frontmatter parser shared by the search engine and the rest of the backend.
Splits a document into its YAML metadata block and body, and extracts tags.
"""

import logging
from dataclasses import dataclass, field

import yaml

logger = logging.getLogger(__name__)


@dataclass
class ParsedDocument:
    """Result of splitting a document into frontmatter and body."""
    body: str
    data: dict = field(default_factory=dict)
    has_frontmatter: bool = False
    # Index of the first body line in content.split("\n")
    body_start_line: int = 0


class FrontmatterParser:
    """Parser for YAML frontmatter blocks."""

    OPENING = "---"
    CLOSINGS = ("---", "...")
    TAG_KEYS = ("tags", "tag")

    def parse(self, content: str) -> ParsedDocument:
        """
        Split *content* into frontmatter data and body.

        The block must start on the first line with ``---`` and is closed by
        the next ``---`` or ``...`` line. An unterminated block is treated as
        body text. Malformed YAML yields empty data but still counts as a
        block, so the body offset stays stable while the user is typing.
        """
        lines = content.split("\n")
        if not lines or lines[0].strip() != self.OPENING:
            return ParsedDocument(body=content)

        closing = None
        for i in range(1, len(lines)):
            if lines[i].strip() in self.CLOSINGS:
                closing = i
                break

        if closing is None:
            return ParsedDocument(body=content)

        block = "\n".join(lines[1:closing])
        data: dict = {}
        try:
            loaded = yaml.safe_load(block)
            if isinstance(loaded, dict):
                data = loaded
        except yaml.YAMLError as e:
            logger.debug(f"Failed to parse frontmatter: {e}")

        return ParsedDocument(
            body="\n".join(lines[closing + 1:]),
            data=data,
            has_frontmatter=True,
            body_start_line=closing + 1,
        )

    def extract_tags(self, data: dict) -> list[str]:
        """
        Extract tags from parsed frontmatter data.

        Accepts an inline array (``tags: [a, b]``), a block sequence
        (``tags:`` followed by ``- a`` items) or a single scalar
        (``tags: a``). Empty and null values are dropped.
        """
        raw = None
        for key in self.TAG_KEYS:
            if data.get(key) is not None:
                raw = data[key]
                break

        if raw is None or isinstance(raw, dict):
            return []

        items = raw if isinstance(raw, (list, tuple)) else [raw]
        tags = []
        for item in items:
            if item is None or isinstance(item, (dict, list)):
                continue
            tag = str(item).strip()
            if tag:
                tags.append(tag)
        return tags

    def tags(self, content: str) -> list[str]:
        """Tags declared in the frontmatter of *content*."""
        return self.extract_tags(self.parse(content).data)


# Singleton parser instance
parser = FrontmatterParser()
