from shared.models.document import CamelModel, Document


class DocumentListResponse(CamelModel):
    documents: list[Document]


class UploadedDocument(CamelModel):
    id: str
    file_name: str
    chunk_count: int


class UploadResponse(CamelModel):
    success: bool = True
    document: UploadedDocument


class DeleteResponse(CamelModel):
    success: bool = True


class HealthResponse(CamelModel):
    status: str
    version: str
