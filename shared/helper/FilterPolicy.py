"""Inclusion / exclusion filter for indexable documents.

Patterns come from INDEX_INCLUSIONS and INDEX_EXCLUSIONS as comma separated,
URL-encoded expressions:

    #tag          documents carrying the tag (frontmatter or inline)
    *.ext         documents with that extension
    [[Title]]     the document whose file name (without extension) is Title
    a/*/b?.md     glob over the corpus path
    folder/sub    everything at or below that path

A non-empty inclusion set decides alone. Otherwise a document is indexed
unless it matches an exclusion.
"""

import fnmatch
import os
from urllib.parse import unquote

from pydantic import BaseModel, Field

from shared.clients.corpus.CorpusClientInterface import CorpusClientInterface
from shared.helper.HelperConfig import HelperConfig


class FilterPatterns(BaseModel):
    tags: list[str] = Field(default_factory=list)
    extensions: list[str] = Field(default_factory=list)
    titles: list[str] = Field(default_factory=list)
    globs: list[str] = Field(default_factory=list)
    folders: list[str] = Field(default_factory=list)

    def is_empty(self) -> bool:
        return not (self.tags or self.extensions or self.titles or self.globs or self.folders)


def parse_patterns(raw: str) -> FilterPatterns:
    """Split a comma separated pattern string into its categories."""
    patterns = FilterPatterns()
    for item in (raw or "").split(","):
        pattern = unquote(item).strip()
        if not pattern:
            continue
        if pattern.startswith("#"):
            tag = pattern[1:].strip().lower()
            if tag:
                patterns.tags.append(tag)
        elif pattern.startswith("[[") and pattern.endswith("]]"):
            title = pattern[2:-2].strip()
            if title:
                patterns.titles.append(title.lower())
        elif pattern.startswith("*.") and not any(c in pattern[2:] for c in "*?[/"):
            patterns.extensions.append(pattern[2:].lower())
        elif any(c in pattern for c in "*?["):
            patterns.globs.append(pattern.lstrip("/"))
        else:
            patterns.folders.append(pattern.strip("/"))
    return patterns


def matches_patterns(patterns: FilterPatterns, path: str, tags: list[str] | None = None) -> bool:
    """Whether a document matches any of the patterns. Tags are only consulted for tag patterns."""
    extension = os.path.splitext(path)[1].lstrip(".").lower()
    if extension in patterns.extensions:
        return True
    title = os.path.splitext(os.path.basename(path))[0].lower()
    if title in patterns.titles:
        return True
    for folder in patterns.folders:
        if path == folder or path.startswith(folder + "/"):
            return True
    for glob in patterns.globs:
        if fnmatch.fnmatchcase(path, glob):
            return True
    if patterns.tags and tags:
        document_tags = {t.lower().lstrip("#") for t in tags}
        for tag in patterns.tags:
            # nested tags: "#project" also matches "#project/alpha"
            if tag in document_tags or any(t.startswith(tag + "/") for t in document_tags):
                return True
    return False


class FilterPolicy:
    """Resolves the configured patterns against the corpus.

    Settings are re-read on every call so changes apply to the next event or run.
    """

    def __init__(self, helper_config: HelperConfig):
        self._helper_config = helper_config
        self.logging = helper_config.get_logger()

    def get_inclusions(self) -> FilterPatterns:
        return parse_patterns(self._helper_config.get_string_val("INDEX_INCLUSIONS", default=""))

    def get_exclusions(self) -> FilterPatterns:
        return parse_patterns(self._helper_config.get_string_val("INDEX_EXCLUSIONS", default=""))

    async def _matching_paths(self, corpus: CorpusClientInterface, patterns: FilterPatterns, paths: list[str]) -> set[str]:
        matched = set()
        for path in paths:
            tags = None
            if patterns.tags and not matches_patterns(patterns, path):
                try:
                    tags = (await corpus.do_read_metadata(path)).tags
                except OSError as e:
                    self.logging.warning("Could not read tags of %s: %s", path, e)
            if matches_patterns(patterns, path, tags):
                matched.add(path)
        return matched

    async def do_resolve(self, corpus: CorpusClientInterface, paths: list[str]) -> tuple[set[str] | None, set[str]]:
        """
        Resolve the inclusion and exclusion sets for the given corpus paths.

        Returns:
            tuple[set[str] | None, set[str]]: The inclusion set (None when no inclusion
                pattern is configured) and the exclusion set.
        """
        inclusions = self.get_inclusions()
        exclusions = self.get_exclusions()
        included = None if inclusions.is_empty() else await self._matching_paths(corpus, inclusions, paths)
        excluded = set() if exclusions.is_empty() else await self._matching_paths(corpus, exclusions, paths)
        return included, excluded

    @staticmethod
    def should_index(path: str, included: set[str] | None, excluded: set[str]) -> bool:
        if included is not None:
            return path in included
        return path not in excluded

    @staticmethod
    def evaluate_path(path: str, inclusions: FilterPatterns, exclusions: FilterPatterns, tags: list[str] | None = None) -> bool:
        """Apply already parsed patterns to one document."""
        if not inclusions.is_empty():
            return matches_patterns(inclusions, path, tags)
        return exclusions.is_empty() or not matches_patterns(exclusions, path, tags)

    async def do_filter(self, corpus: CorpusClientInterface, paths: list[str]) -> list[str]:
        """Keep only the paths the policy allows, preserving order."""
        included, excluded = await self.do_resolve(corpus, paths)
        return [p for p in paths if self.should_index(p, included, excluded)]

    async def do_should_index_path(self, corpus: CorpusClientInterface, path: str) -> bool:
        """Evaluate the current policy for a single document."""
        included, excluded = await self.do_resolve(corpus, [path])
        return self.should_index(path, included, excluded)
