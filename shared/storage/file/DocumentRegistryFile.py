"""JSON-file registry.

All owners' documents live in one JSON file that is rewritten on every
mutation. Writes go to a temporary file in the same directory which then
replaces the original, so a crash never leaves a half-written registry.
"""

import asyncio
import json
import os
import tempfile

from shared.helper.HelperConfig import HelperConfig
from shared.models.document import Document
from shared.storage.DocumentRegistryInterface import DocumentRegistryInterface


class DocumentRegistryFile(DocumentRegistryInterface):
    def __init__(self, helper_config: HelperConfig):
        super().__init__(helper_config=helper_config)
        default_path = os.path.join(os.getenv("ROOT_DIR", os.getcwd()), "data", "documents.json")
        self._path = helper_config.get_string_val("REGISTRY_FILE_PATH", default=default_path)
        self._documents: dict[str, dict[str, Document]] = {}
        self._lock = asyncio.Lock()

    def _get_engine_name(self) -> str:
        return "File"

    ##########################################
    ############### LIFECYCLE ################
    ##########################################

    async def boot(self) -> None:
        """Load the registry file. A missing file means an empty registry.

        Raises:
            ValueError: If the file exists but is not a valid registry.
        """
        if not os.path.exists(self._path):
            self.logging.info("Registry file %s does not exist yet, starting empty.", self._path)
            return
        with open(self._path, "r", encoding="utf-8") as f:
            try:
                raw = json.load(f)
            except json.JSONDecodeError as e:
                raise ValueError(f"Registry file {self._path} is not valid JSON: {e}") from e

        for item in raw.get("documents", []):
            document = Document.model_validate(item)
            self._documents.setdefault(document.owner_id, {})[document.id] = document
        self.logging.info(
            "Loaded %d documents from registry file %s.",
            sum(len(docs) for docs in self._documents.values()), self._path,
        )

    def _write(self) -> None:
        directory = os.path.dirname(os.path.abspath(self._path))
        os.makedirs(directory, exist_ok=True)
        payload = {
            "documents": [
                document.model_dump(mode="json", by_alias=True)
                for owner_docs in self._documents.values()
                for document in owner_docs.values()
            ]
        }
        fd, tmp_path = tempfile.mkstemp(dir=directory, prefix=".documents-", suffix=".json")
        try:
            with os.fdopen(fd, "w", encoding="utf-8") as f:
                json.dump(payload, f, ensure_ascii=False, indent=2)
            os.replace(tmp_path, self._path)
        except OSError:
            if os.path.exists(tmp_path):
                os.remove(tmp_path)
            raise

    ##########################################
    ############### REQUESTS #################
    ##########################################

    async def do_add(self, document: Document) -> None:
        async with self._lock:
            owner_docs = self._documents.setdefault(document.owner_id, {})
            previous = owner_docs.get(document.id)
            owner_docs[document.id] = document
            try:
                await asyncio.to_thread(self._write)
            except OSError:
                # memory must not hold what the file does not
                if previous is None:
                    owner_docs.pop(document.id, None)
                else:
                    owner_docs[document.id] = previous
                raise

    async def do_list(self, owner_id: str) -> list[Document]:
        documents = list(self._documents.get(owner_id, {}).values())
        return sorted(documents, key=lambda doc: doc.uploaded_at, reverse=True)

    async def do_get(self, owner_id: str, document_id: str) -> Document | None:
        return self._documents.get(owner_id, {}).get(document_id)

    async def do_delete(self, owner_id: str, document_id: str) -> bool:
        async with self._lock:
            owner_docs = self._documents.get(owner_id, {})
            removed = owner_docs.pop(document_id, None)
            if removed is None:
                return False
            try:
                await asyncio.to_thread(self._write)
            except OSError:
                owner_docs[document_id] = removed
                raise
            return True
