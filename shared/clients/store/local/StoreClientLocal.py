import asyncio
import hashlib
import os
import tempfile

from pydantic import ValidationError

from shared.clients.store.StoreClientInterface import StoreClientInterface
from shared.clients.store.StoreErrors import StoreDimensionError, StorePersistError
from shared.clients.store.VectorStore import VectorStore
from shared.clients.store.models.StoreSchema import StoreSnapshot
from shared.helper.HelperConfig import HelperConfig
from shared.models.config import EnvConfig


class StoreClientLocal(StoreClientInterface):
    """Keeps each corpus store as one JSON snapshot file on local disk.

    File name is ``vault-index-<md5(corpus name)>.json`` inside STORE_LOCAL_DATA_DIR.
    """

    FILE_PREFIX = "vault-index-"

    def __init__(self, helper_config: HelperConfig):
        super().__init__(helper_config=helper_config)
        self._data_dir = self.get_config_val("DATA_DIR", default="", val_type="string")

    ##########################################
    ################ GETTER ##################
    ##########################################

    def _get_engine_name(self) -> str:
        return "Local"

    def _get_required_config(self) -> list[EnvConfig]:
        return [
            EnvConfig(env_key="DATA_DIR", val_type="string", default=""),
        ]

    def get_store_path(self, corpus_name: str, fallback_dir: str | None = None) -> str:
        data_dir = self._data_dir or fallback_dir or os.path.join(os.getcwd(), ".vault-index")
        digest = hashlib.md5(corpus_name.encode("utf-8")).hexdigest()
        return os.path.join(data_dir, f"{self.FILE_PREFIX}{digest}.json")

    ##########################################
    ################## IO ####################
    ##########################################

    def _read_blob(self, path: str) -> str | None:
        if not os.path.isfile(path):
            return None
        with open(path, "r", encoding="utf-8") as f:
            return f.read()

    def _write_blob(self, path: str, blob: str) -> None:
        directory = os.path.dirname(path)
        os.makedirs(directory, exist_ok=True)
        fd, temp_path = tempfile.mkstemp(prefix=".vault-index-", suffix=".tmp", dir=directory)
        try:
            with os.fdopen(fd, "w", encoding="utf-8") as f:
                f.write(blob)
            os.replace(temp_path, path)
        except BaseException:
            if os.path.exists(temp_path):
                os.unlink(temp_path)
            raise

    ##########################################
    ############### REQUESTS #################
    ##########################################

    async def do_open(self, path: str) -> VectorStore | None:
        try:
            blob = await asyncio.to_thread(self._read_blob, path)
        except (OSError, UnicodeDecodeError) as e:
            self.logging.warning("Could not read store file %s: %s", path, e)
            return None
        if blob is None:
            self.logging.info("No store file at %s.", path)
            return None
        try:
            snapshot = StoreSnapshot.model_validate_json(blob)
            store = VectorStore.from_snapshot(snapshot)
        except (ValidationError, ValueError, StoreDimensionError) as e:
            self.logging.warning("Store file %s is corrupt, ignoring it: %s", path, e)
            return None
        self.logging.info("Loaded store from %s with %d records.", path, len(store))
        return store

    async def do_persist(self, store: VectorStore, path: str) -> None:
        blob = store.to_snapshot().model_dump_json(by_alias=True)
        try:
            await asyncio.to_thread(self._write_blob, path, blob)
        except OSError as e:
            raise StorePersistError(f"Could not write store file {path}: {e}") from e
        self.logging.info("Persisted %d records to %s.", len(store), path, color="green")
