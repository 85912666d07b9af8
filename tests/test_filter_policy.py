import pytest

from shared.clients.corpus.filesystem.CorpusClientFilesystem import CorpusClientFilesystem
from shared.helper.FilterPolicy import FilterPolicy, matches_patterns, parse_patterns
from tests.conftest import write_doc


class TestParsePatterns:
    def test_categories(self):
        patterns = parse_patterns("#Project, *.pdf, [[Daily Note]], archive/**/*.md, Inbox/, private")
        assert patterns.tags == ["project"]
        assert patterns.extensions == ["pdf"]
        assert patterns.titles == ["daily note"]
        assert patterns.globs == ["archive/**/*.md"]
        assert patterns.folders == ["Inbox", "private"]

    def test_url_decoding(self):
        patterns = parse_patterns("My%20Folder,%23todo")
        assert patterns.folders == ["My Folder"]
        assert patterns.tags == ["todo"]

    def test_empty(self):
        assert parse_patterns("").is_empty()
        assert parse_patterns(" , ,").is_empty()

    def test_folder_matches_on_segment_boundary(self):
        patterns = parse_patterns("notes")
        assert matches_patterns(patterns, "notes/a.md")
        assert matches_patterns(patterns, "notes/sub/b.md")
        assert not matches_patterns(patterns, "notes-old/a.md")

    def test_nested_tags(self):
        patterns = parse_patterns("#project")
        assert matches_patterns(patterns, "a.md", ["project/alpha"])
        assert not matches_patterns(patterns, "a.md", ["projects"])


class TestFilterPolicy:
    @pytest.fixture
    def corpus(self, helper_config, vault_dir):
        write_doc(vault_dir, "inbox/a.md", "---\ntags: [work]\n---\nAlpha")
        write_doc(vault_dir, "inbox/b.md", "Beta #personal")
        write_doc(vault_dir, "archive/c.md", "Gamma")
        return CorpusClientFilesystem(helper_config=helper_config)

    @pytest.fixture
    def policy(self, helper_config):
        return FilterPolicy(helper_config)

    PATHS = ["inbox/a.md", "inbox/b.md", "archive/c.md"]

    @pytest.mark.asyncio
    async def test_no_patterns_allows_everything(self, policy, corpus):
        assert await policy.do_filter(corpus, self.PATHS) == self.PATHS

    @pytest.mark.asyncio
    async def test_exclusions(self, policy, corpus, monkeypatch):
        monkeypatch.setenv("INDEX_EXCLUSIONS", "archive,#personal")
        assert await policy.do_filter(corpus, self.PATHS) == ["inbox/a.md"]

    @pytest.mark.asyncio
    async def test_inclusions_take_precedence(self, policy, corpus, monkeypatch):
        monkeypatch.setenv("INDEX_INCLUSIONS", "#work,archive")
        monkeypatch.setenv("INDEX_EXCLUSIONS", "archive")
        assert await policy.do_filter(corpus, self.PATHS) == ["inbox/a.md", "archive/c.md"]

    @pytest.mark.asyncio
    async def test_single_path_reflects_setting_changes(self, policy, corpus, monkeypatch):
        assert await policy.do_should_index_path(corpus, "inbox/b.md")
        monkeypatch.setenv("INDEX_EXCLUSIONS", "[[b]]")
        assert not await policy.do_should_index_path(corpus, "inbox/b.md")
