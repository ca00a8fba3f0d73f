"""
Search service: bounded literal text search and frontmatter tag search.
"""

import asyncio
import logging
import os
import re
from pathlib import Path
from typing import Optional

from notevault.api.models.search import FileSearchResult, SearchMatch, SearchResult
from notevault.config import config
from notevault.errors import NoteVaultError
from notevault.frontmatter import parser
from notevault.pathguard import guard
from notevault.vault import VaultPaths, collect_documents

logger = logging.getLogger(__name__)


class SearchService:
    """Searches documents below a folder of the notes root."""

    def __init__(
        self,
        root: Optional[Path] = None,
        max_files: Optional[int] = None,
        max_total_matches: Optional[int] = None,
        max_line_length: Optional[int] = None,
    ):
        self.paths = VaultPaths.from_root(root)
        limits = config.search_limits()
        self.max_files = max_files or limits["max_files"]
        self.max_total_matches = max_total_matches or limits["max_total_matches"]
        self.max_line_length = max_line_length or limits["max_line_length"]

    def _candidates(self, target: str) -> tuple[list[str], bool]:
        """Documents to scan and whether the file ceiling cut the list short."""
        documents = collect_documents(target, self.paths.extension, limit=self.max_files + 1)
        if len(documents) > self.max_files:
            logger.info("Search limited to the first %d documents", self.max_files)
            return documents[:self.max_files], True
        return documents, False

    def _read(self, file_path: str) -> Optional[str]:
        try:
            with open(file_path, "r", encoding="utf-8") as f:
                return f.read()
        except (OSError, UnicodeDecodeError) as e:
            logger.debug("Skipping unreadable %s: %s", file_path, e)
            return None

    def _file_result(self, file_path: str, matches: list[SearchMatch]) -> FileSearchResult:
        return FileSearchResult(
            file_path=file_path,
            relative_path=os.path.relpath(file_path, self.paths.root),
            file_name=os.path.basename(file_path),
            matches=matches,
        )

    async def search_content(
        self,
        query: str,
        target_path: Optional[str] = None,
        case_sensitive: bool = False,
    ) -> SearchResult:
        """
        Find literal occurrences of *query* in document bodies.

        Line numbers are 1-based and counted from the first body line, so the
        frontmatter block does not shift them. Every occurrence on a line is
        a separate match.

        Args:
            query: Text to look for; matched literally.
            target_path: Folder to search below. Defaults to the root.
            case_sensitive: Whether case must match.

        Returns:
            SearchResult; ``truncated`` is set when the file ceiling cut the walk
            or a match past the total-match ceiling was dropped.
        """
        if not query.strip():
            return SearchResult(success=True)
        try:
            target = guard(target_path or self.paths.root, self.paths.root)
        except NoteVaultError as e:
            return SearchResult(success=False, error=e.message)

        flags = 0 if case_sensitive else re.IGNORECASE
        pattern = re.compile(re.escape(query), flags)
        return await asyncio.to_thread(self._search_content, target, pattern)

    def _search_content(self, target: str, pattern: re.Pattern) -> SearchResult:
        documents, truncated = self._candidates(target)
        results: list[FileSearchResult] = []
        total = 0

        for file_path in documents:
            text = self._read(file_path)
            if text is None:
                continue

            lines = text.split("\n")
            body_start = parser.parse(text).body_start_line
            matches: list[SearchMatch] = []
            dropped = False

            for i in range(body_start, len(lines)):
                line = lines[i]
                for m in pattern.finditer(line):
                    if total >= self.max_total_matches:
                        dropped = True
                        break
                    matches.append(SearchMatch(
                        line_number=i - body_start + 1,
                        line_content=line[:self.max_line_length],
                        match_start=m.start(),
                        match_end=m.end(),
                    ))
                    total += 1
                if dropped:
                    break

            if matches:
                results.append(self._file_result(file_path, matches))
            if dropped:
                # Only a match past the ceiling counts as cut off
                truncated = True
                break

        return SearchResult(success=True, results=results, total_matches=total, truncated=truncated)

    async def search_tags(
        self,
        query: str,
        target_path: Optional[str] = None,
        case_sensitive: bool = False,
    ) -> SearchResult:
        """
        Find documents whose frontmatter tags contain *query*.

        Each matching tag is reported with ``line_number`` 0, the tag itself
        as ``line_content`` and the position of the query inside the tag.
        """
        if not query.strip():
            return SearchResult(success=True)
        try:
            target = guard(target_path or self.paths.root, self.paths.root)
        except NoteVaultError as e:
            return SearchResult(success=False, error=e.message)

        return await asyncio.to_thread(self._search_tags, target, query, case_sensitive)

    def _search_tags(self, target: str, query: str, case_sensitive: bool) -> SearchResult:
        documents, truncated = self._candidates(target)
        compare_query = query if case_sensitive else query.lower()
        results: list[FileSearchResult] = []
        total = 0

        for file_path in documents:
            text = self._read(file_path)
            if text is None:
                continue

            matches: list[SearchMatch] = []
            dropped = False
            for tag in parser.tags(text):
                compare_tag = tag if case_sensitive else tag.lower()
                start = compare_tag.find(compare_query)
                if start == -1:
                    continue
                if total >= self.max_total_matches:
                    dropped = True
                    break
                matches.append(SearchMatch(
                    line_number=0,
                    line_content=tag,
                    match_start=start,
                    match_end=start + len(query),
                ))
                total += 1

            if matches:
                results.append(self._file_result(file_path, matches))
            if dropped:
                truncated = True
                break

        return SearchResult(success=True, results=results, total_matches=total, truncated=truncated)
