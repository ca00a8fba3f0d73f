"""
Link service: keeps relative links between documents valid after a move.

Two kinds of links go stale when a file or folder moves:

1. Links in other documents that point at the moved item. Their target
   changed, so the relative path has to be recomputed.
2. Links inside the moved documents that point at items which stayed put.
   The target is unchanged but the document now looks at it from a new
   place. These links were written against the document's old location, so
   they are resolved from there; a link whose target cannot be found from
   the old location is left as it is.

The service remembers the moves it has applied. Repeating one of them is a
no-op until a later move touches the same paths.

The pass is best-effort: it reports what it rewrote and never raises.
"""

import asyncio
import logging
import os
import re
import threading
from pathlib import Path
from typing import Optional
from urllib.parse import quote, unquote

from notevault.config import config
from notevault.outcomes import TaskReport
from notevault.pathguard import is_within
from notevault.vault import VaultPaths, collect_documents

logger = logging.getLogger(__name__)

SCHEME_PATTERN = re.compile(r"^[a-zA-Z][a-zA-Z0-9+.-]*:")
BAD_ESCAPE_PATTERN = re.compile(r"%(?![0-9A-Fa-f]{2})")
MAX_APPLIED_MOVES = 1000


def decode_link_path(path_part: str) -> Optional[str]:
    """Percent-decode a link path, returning None when it is malformed."""
    if BAD_ESCAPE_PATTERN.search(path_part):
        return None
    try:
        return unquote(path_part, errors="strict")
    except UnicodeDecodeError:
        return None


def relative_link(from_file: str, to_abs_path: str) -> str:
    """Relative path from a document's folder to a target, with forward slashes."""
    return Path(os.path.relpath(to_abs_path, os.path.dirname(from_file))).as_posix()


def _overlaps(a: str, b: str) -> bool:
    return is_within(a, b) or is_within(b, a)


class LinkService:
    """Rewrites relative document links after a rename or move."""

    def __init__(self, root: Optional[Path] = None, extension: Optional[str] = None):
        self.paths = VaultPaths.from_root(root, extension or config.DOCUMENT_EXTENSION)
        ext = re.escape(self.paths.extension)
        # [text](path.md) or [text](path.md#fragment)
        self.link_pattern = re.compile(r"\[([^\]]*)\]\(([^)]+" + ext + r"(?:#[^)]*)?)\)")
        # (old, new) moves already applied, oldest first
        self._applied: dict[tuple[str, str], None] = {}
        self._applied_lock = threading.Lock()

    async def update_links_after_move(self, old_abs_path: str, new_abs_path: str) -> TaskReport:
        """
        Update every document's links after *old_abs_path* became *new_abs_path*.

        Args:
            old_abs_path: Previous absolute path of the file or folder.
            new_abs_path: Its current absolute path.

        Returns:
            TaskReport whose ``changed`` lists the rewritten documents.
        """
        report = TaskReport(task="update_links")
        old, new = os.path.normpath(old_abs_path), os.path.normpath(new_abs_path)
        if self._already_applied(old, new):
            logger.debug("Links already updated for %s -> %s", old, new)
            return report

        try:
            await asyncio.to_thread(self._update_links, old, new, report)
        except Exception as e:
            report.fail(e, logger)
            report.changed = []
        else:
            self._remember(old, new)
        if report.changed:
            logger.info("Updated links in %d document(s)", len(report.changed))
        return report

    def _already_applied(self, old: str, new: str) -> bool:
        with self._applied_lock:
            return (old, new) in self._applied

    def _remember(self, old: str, new: str) -> None:
        with self._applied_lock:
            # A later move of the same paths makes earlier ones repeatable
            for pair in list(self._applied):
                if any(_overlaps(a, b) for a in pair for b in (old, new)):
                    del self._applied[pair]
            self._applied[(old, new)] = None
            while len(self._applied) > MAX_APPLIED_MOVES:
                del self._applied[next(iter(self._applied))]

    def _build_path_maps(self, old_abs_path: str, new_abs_path: str) -> tuple[dict, dict]:
        # path_map:    old absolute path -> new absolute path
        # reverse_map: new absolute path -> old absolute path
        path_map: dict[str, str] = {}
        reverse_map: dict[str, str] = {}

        # A location that cannot be inspected is treated as a file
        if os.path.isdir(new_abs_path):
            for new_file in collect_documents(new_abs_path, self.paths.extension):
                old_file = os.path.join(old_abs_path, os.path.relpath(new_file, new_abs_path))
                path_map[old_file] = new_file
                reverse_map[new_file] = old_file
        else:
            path_map[old_abs_path] = new_abs_path
            reverse_map[new_abs_path] = old_abs_path

        return path_map, reverse_map

    def _update_links(self, old_abs_path: str, new_abs_path: str, report: TaskReport) -> None:
        path_map, reverse_map = self._build_path_maps(old_abs_path, new_abs_path)
        if not path_map:
            return

        for document in collect_documents(self.paths.root, self.paths.extension):
            try:
                with open(document, "r", encoding="utf-8") as f:
                    content = f.read()
            except (OSError, UnicodeDecodeError) as e:
                report.warn(f"Skipping unreadable {document}: {e}", logger)
                continue

            updated = self.rewrite_links(
                content,
                document=document,
                reference_point=reverse_map.get(document, document),
                path_map=path_map,
            )
            if updated == content:
                continue

            try:
                with open(document, "w", encoding="utf-8") as f:
                    f.write(updated)
            except OSError as e:
                report.warn(f"Could not write {document}: {e}", logger)
                continue
            report.changed.append(document)
            logger.debug("Rewrote links in %s", document)

    def rewrite_links(
        self,
        content: str,
        document: str,
        reference_point: str,
        path_map: dict[str, str],
    ) -> str:
        """
        Rewrite the links of one document.

        Args:
            content: Document text.
            document: Current absolute location of the document.
            reference_point: Location the links were written against (the
                old location if the document itself was moved).
            path_map: Old absolute path -> new absolute path of moved documents.
        """
        base_dir = os.path.dirname(reference_point)

        def replace(match: re.Match) -> str:
            text, href = match.group(1), match.group(2)
            path_part, sep, fragment = href.partition("#")

            if SCHEME_PATTERN.match(path_part):
                return match.group(0)

            decoded = decode_link_path(path_part)
            if decoded is None:
                return match.group(0)

            resolved = os.path.normpath(os.path.join(base_dir, decoded))
            if resolved not in path_map:
                if reference_point == document:
                    # Neither end of this link moved
                    return match.group(0)
                if not os.path.exists(resolved):
                    # Already relative to the new location, or broken
                    return match.group(0)

            final_target = path_map.get(resolved, resolved)

            new_path = relative_link(document, final_target)
            if decoded != path_part:
                new_path = quote(new_path, safe="/()!$&'*+,;=:@-._~")
            new_href = f"{new_path}{sep}{fragment}"

            if new_href == href:
                return match.group(0)
            return f"[{text}]({new_href})"

        return self.link_pattern.sub(replace, content)
