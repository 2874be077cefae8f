from abc import ABC, abstractmethod

from shared.helper.HelperConfig import HelperConfig
from shared.models.document import Document


class DocumentRegistryInterface(ABC):
    """
    Per-owner store of document metadata. Holds no vectors and no text.

    Every method is scoped to one owner; a document of another owner is
    indistinguishable from a missing one.
    """

    def __init__(self, helper_config: HelperConfig):
        self.logging = helper_config.get_logger()
        self._helper_config = helper_config

    ##########################################
    ################ GETTER ##################
    ##########################################

    def get_engine_name(self) -> str:
        """
        Returns the name of the registry backend in lowercase. E.g. "memory"
        """
        return self._get_engine_name().lower()

    @abstractmethod
    def _get_engine_name(self) -> str:
        pass

    ##########################################
    ############### REQUESTS #################
    ##########################################

    async def boot(self) -> None:
        """Load persisted state, if the backend has any."""
        pass

    async def close(self) -> None:
        """Release resources, if the backend holds any."""
        pass

    @abstractmethod
    async def do_add(self, document: Document) -> None:
        """Store a document. Re-adding an existing id overwrites it."""
        pass

    @abstractmethod
    async def do_list(self, owner_id: str) -> list[Document]:
        """
        Returns all documents of an owner, newest first.

        Args:
            owner_id (str): The owner.

        Returns:
            list[Document]: Sorted by uploaded_at descending.
        """
        pass

    @abstractmethod
    async def do_get(self, owner_id: str, document_id: str) -> Document | None:
        """Returns the owner's document, or None if it does not exist."""
        pass

    @abstractmethod
    async def do_delete(self, owner_id: str, document_id: str) -> bool:
        """
        Removes the owner's document. Never fails for a missing id.

        Returns:
            bool: Whether a document was removed.
        """
        pass
