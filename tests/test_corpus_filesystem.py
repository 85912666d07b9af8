import os

import pytest

from shared.clients.corpus.CorpusClientManager import CorpusClientManager
from shared.clients.corpus.filesystem.CorpusClientFilesystem import CorpusClientFilesystem
from tests.conftest import write_doc


class TestCorpusClientFilesystem:
    @pytest.fixture
    def corpus(self, helper_config):
        return CorpusClientFilesystem(helper_config=helper_config)

    @pytest.mark.asyncio
    async def test_lists_indexable_documents_only(self, corpus, vault_dir):
        write_doc(vault_dir, "a.md", "A", mtime_ms=1_700_000_000_123)
        write_doc(vault_dir, "sub/b.md", "B")
        write_doc(vault_dir, "image.png", "not text")
        write_doc(vault_dir, ".obsidian/workspace.md", "hidden")
        write_doc(vault_dir, ".hidden.md", "hidden")

        documents = await corpus.do_list_documents()
        assert [d.path for d in documents] == ["a.md", "sub/b.md"]
        first = documents[0]
        assert first.mtime == 1_700_000_000_123
        assert first.extension == "md"

    @pytest.mark.asyncio
    async def test_extensions_setting(self, helper_config, vault_dir, monkeypatch):
        monkeypatch.setenv("CORPUS_FILESYSTEM_EXTENSIONS", "[md,txt]")
        write_doc(vault_dir, "a.md", "A")
        write_doc(vault_dir, "b.txt", "B")
        corpus = CorpusClientFilesystem(helper_config=helper_config)
        assert {d.path for d in await corpus.do_list_documents()} == {"a.md", "b.txt"}
        assert corpus.is_indexable("notes/c.TXT")

    @pytest.mark.asyncio
    async def test_read_and_metadata(self, corpus, vault_dir):
        write_doc(vault_dir, "note.md", "---\ntitle: Note\ntags:\n  - Work\n  - '#urgent'\n---\nBody with #idea and #work.\nNot a tag: a#b or `#`.")
        assert (await corpus.do_read("note.md")).startswith("---")
        metadata = await corpus.do_read_metadata("note.md")
        assert metadata.frontmatter["title"] == "Note"
        assert metadata.tags == ["work", "urgent", "idea"]

    def test_malformed_frontmatter_is_ignored(self, corpus):
        metadata = corpus.parse_metadata("---\n: [unclosed\n---\ntext #tag")
        assert metadata.frontmatter == {}
        assert metadata.tags == ["tag"]

    @pytest.mark.asyncio
    async def test_get_document_missing(self, corpus):
        assert await corpus.do_get_document("nope.md") is None

    def test_to_corpus_path(self, corpus, vault_dir):
        assert corpus.to_corpus_path(os.path.join(vault_dir, "sub", "x.md")) == "sub/x.md"
        assert corpus.to_corpus_path(os.path.join(vault_dir, ".vault-index", "x.json")) is None
        assert corpus.to_corpus_path(os.path.dirname(vault_dir)) is None

    def test_name_and_manager(self, helper_config, monkeypatch):
        monkeypatch.delenv("CORPUS_ENGINE", raising=False)
        corpus = CorpusClientManager(helper_config=helper_config).get_client()
        assert isinstance(corpus, CorpusClientFilesystem)
        assert corpus.get_corpus_name() == "test-vault"
        monkeypatch.delenv("CORPUS_FILESYSTEM_NAME")
        assert CorpusClientFilesystem(helper_config=helper_config).get_corpus_name() == "vault"

    def test_move_is_delete_then_modify(self, corpus):
        events = []
        corpus.subscribe(lambda p: events.append(("modify", p)), lambda p: events.append(("delete", p)))
        corpus.emit_move("old.md", "new.md")
        assert events == [("delete", "old.md"), ("modify", "new.md")]
