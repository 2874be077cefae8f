import asyncio

from shared.helper.HelperConfig import HelperConfig
from shared.models.document import Document
from shared.storage.DocumentRegistryInterface import DocumentRegistryInterface


class DocumentRegistryMemory(DocumentRegistryInterface):
    """Process-local registry. Contents are lost on restart."""

    def __init__(self, helper_config: HelperConfig):
        super().__init__(helper_config=helper_config)
        # owner_id -> document_id -> Document
        self._documents: dict[str, dict[str, Document]] = {}
        self._lock = asyncio.Lock()

    def _get_engine_name(self) -> str:
        return "Memory"

    async def do_add(self, document: Document) -> None:
        async with self._lock:
            self._documents.setdefault(document.owner_id, {})[document.id] = document

    async def do_list(self, owner_id: str) -> list[Document]:
        documents = list(self._documents.get(owner_id, {}).values())
        return sorted(documents, key=lambda doc: doc.uploaded_at, reverse=True)

    async def do_get(self, owner_id: str, document_id: str) -> Document | None:
        return self._documents.get(owner_id, {}).get(document_id)

    async def do_delete(self, owner_id: str, document_id: str) -> bool:
        async with self._lock:
            return self._documents.get(owner_id, {}).pop(document_id, None) is not None
