from shared.models.document import CamelModel


class ChatRequest(CamelModel):
    message: str | None = None
    document_id: str | None = None
