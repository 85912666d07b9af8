import asyncio
import os
import re

import yaml
from watchdog.events import FileSystemEvent, FileSystemEventHandler
from watchdog.observers import Observer

from shared.clients.corpus.CorpusClientInterface import CorpusClientInterface
from shared.clients.corpus.models.CorpusDocument import CorpusDocument, DocumentMetadata
from shared.helper.HelperConfig import HelperConfig
from shared.models.config import EnvConfig

FRONTMATTER_RE = re.compile(r"\A---\s*\n(.*?)\n---\s*(?:\n|\Z)", re.DOTALL)
INLINE_TAG_RE = re.compile(r"(?<![\w#/&])#([A-Za-z0-9_][\w/-]*)")


class _CorpusEventHandler(FileSystemEventHandler):
    """Forwards watchdog events from the observer thread onto the event loop."""

    def __init__(self, client: "CorpusClientFilesystem", loop: asyncio.AbstractEventLoop):
        super().__init__()
        self._client = client
        self._loop = loop

    def _dispatch_on_loop(self, callback, *args) -> None:
        if self._loop.is_closed():
            return
        self._loop.call_soon_threadsafe(callback, *args)

    def on_modified(self, event: FileSystemEvent) -> None:
        if event.is_directory:
            return
        path = self._client.to_corpus_path(event.src_path)
        if path is not None:
            self._dispatch_on_loop(self._client.emit_modify, path)

    def on_created(self, event: FileSystemEvent) -> None:
        self.on_modified(event)

    def on_deleted(self, event: FileSystemEvent) -> None:
        if event.is_directory:
            return
        path = self._client.to_corpus_path(event.src_path)
        if path is not None:
            self._dispatch_on_loop(self._client.emit_delete, path)

    def on_moved(self, event: FileSystemEvent) -> None:
        if event.is_directory:
            return
        old_path = self._client.to_corpus_path(event.src_path)
        new_path = self._client.to_corpus_path(event.dest_path)
        if old_path is not None and new_path is not None:
            self._dispatch_on_loop(self._client.emit_move, old_path, new_path)
        elif old_path is not None:
            self._dispatch_on_loop(self._client.emit_delete, old_path)
        elif new_path is not None:
            self._dispatch_on_loop(self._client.emit_modify, new_path)


class CorpusClientFilesystem(CorpusClientInterface):
    """A directory tree of text files. Hidden files and directories are ignored."""

    def __init__(self, helper_config: HelperConfig):
        super().__init__(helper_config=helper_config)
        self._root_path = os.path.abspath(self.get_config_val("ROOT_PATH", default=None, val_type="string"))
        self._name = self.get_config_val("NAME", default=os.path.basename(self._root_path.rstrip(os.sep)) or "corpus", val_type="string")
        self._extensions = [e.lower().lstrip(".") for e in self.get_config_val("EXTENSIONS", default=["md"], val_type="list")]
        self._observer: Observer | None = None

    ##########################################
    ################ GETTER ##################
    ##########################################

    def _get_engine_name(self) -> str:
        return "Filesystem"

    def _get_required_config(self) -> list[EnvConfig]:
        return [
            EnvConfig(env_key="ROOT_PATH", val_type="string", default=None),
            EnvConfig(env_key="NAME", val_type="string", default=""),
            EnvConfig(env_key="EXTENSIONS", val_type="list", default=["md"]),
        ]

    def get_corpus_name(self) -> str:
        return self._name

    def get_data_dir(self) -> str:
        return os.path.join(self._root_path, ".vault-index")

    def get_indexable_extensions(self) -> list[str]:
        return self._extensions

    def get_root_path(self) -> str:
        return self._root_path

    def to_corpus_path(self, absolute_path: str | bytes) -> str | None:
        """Map an absolute path to a corpus path, None if it is outside the corpus or hidden."""
        if isinstance(absolute_path, bytes):
            absolute_path = os.fsdecode(absolute_path)
        relative = os.path.relpath(os.path.abspath(absolute_path), self._root_path)
        if relative.startswith(".."):
            return None
        parts = relative.split(os.sep)
        if any(part.startswith(".") for part in parts):
            return None
        return "/".join(parts)

    def _absolute(self, path: str) -> str:
        return os.path.join(self._root_path, *path.split("/"))

    def _stat_document(self, path: str) -> CorpusDocument | None:
        try:
            stat = os.stat(self._absolute(path))
        except FileNotFoundError:
            return None
        return CorpusDocument(
            path=path,
            mtime=stat.st_mtime_ns // 1_000_000,
            ctime=stat.st_ctime_ns // 1_000_000,
            extension=os.path.splitext(path)[1].lstrip(".").lower(),
        )

    ##########################################
    ############### REQUESTS #################
    ##########################################

    def _walk(self) -> list[CorpusDocument]:
        documents = []
        for dirpath, dirnames, filenames in os.walk(self._root_path):
            dirnames[:] = sorted(d for d in dirnames if not d.startswith("."))
            for filename in sorted(filenames):
                if filename.startswith("."):
                    continue
                path = self.to_corpus_path(os.path.join(dirpath, filename))
                if path is None or not self.is_indexable(path):
                    continue
                document = self._stat_document(path)
                if document is not None:
                    documents.append(document)
        return documents

    async def do_list_documents(self) -> list[CorpusDocument]:
        return await asyncio.to_thread(self._walk)

    async def do_get_document(self, path: str) -> CorpusDocument | None:
        return await asyncio.to_thread(self._stat_document, path)

    def _read_text(self, path: str) -> str:
        with open(self._absolute(path), "r", encoding="utf-8", errors="replace") as f:
            return f.read()

    async def do_read(self, path: str) -> str:
        return await asyncio.to_thread(self._read_text, path)

    async def do_read_metadata(self, path: str) -> DocumentMetadata:
        text = await self.do_read(path)
        return self.parse_metadata(text)

    def parse_metadata(self, text: str) -> DocumentMetadata:
        """Extract YAML frontmatter and tags (frontmatter "tags" plus inline #tags)."""
        frontmatter: dict = {}
        body = text
        match = FRONTMATTER_RE.match(text)
        if match:
            try:
                loaded = yaml.safe_load(match.group(1))
            except yaml.YAMLError as e:
                self.logging.debug("Ignoring malformed frontmatter: %s", e)
                loaded = None
            if isinstance(loaded, dict):
                frontmatter = loaded
            body = text[match.end():]

        tags: list[str] = []
        raw_tags = frontmatter.get("tags") or []
        if isinstance(raw_tags, str):
            raw_tags = re.split(r"[,\s]+", raw_tags)
        for tag in raw_tags:
            if tag is None:
                continue
            tag = str(tag).strip().lstrip("#").lower()
            if tag and tag not in tags:
                tags.append(tag)
        for tag in INLINE_TAG_RE.findall(body):
            tag = tag.lower()
            if tag not in tags:
                tags.append(tag)
        return DocumentMetadata(tags=tags, frontmatter=frontmatter)

    ##########################################
    ################ EVENTS ##################
    ##########################################

    async def start_watching(self) -> None:
        if self._observer is not None:
            return
        handler = _CorpusEventHandler(self, asyncio.get_running_loop())
        observer = Observer()
        observer.schedule(handler, self._root_path, recursive=True)
        observer.start()
        self._observer = observer
        self.logging.info("Watching corpus '%s' at %s", self._name, self._root_path, color="cyan")

    async def stop_watching(self) -> None:
        if self._observer is None:
            return
        observer = self._observer
        self._observer = None
        observer.stop()
        await asyncio.to_thread(observer.join)
        self.logging.info("Stopped watching corpus '%s'", self._name)
