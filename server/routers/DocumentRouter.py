from fastapi import APIRouter, Depends, File, Request, UploadFile

from server.dependencies.auth import get_owner_id
from server.models.responses import DeleteResponse, DocumentListResponse, UploadedDocument, UploadResponse
from shared.errors import ValidationError

router = APIRouter(prefix="/documents", tags=["documents"])

DEFAULT_CONTENT_TYPES = {"pdf": "application/pdf", "text": "text/plain"}


@router.get("")
async def list_documents(
    request: Request,
    owner_id: str = Depends(get_owner_id),
) -> DocumentListResponse:
    """List the owner's documents, newest first."""
    document_service = request.app.state.document_service
    documents = await document_service.do_list_documents(owner_id)
    return DocumentListResponse(documents=documents)


@router.delete("")
async def delete_document(
    request: Request,
    documentId: str | None = None,
    owner_id: str = Depends(get_owner_id),
) -> DeleteResponse:
    """Delete one of the owner's documents and all of its vectors.

    Args:
        request (Request): FastAPI request (provides app.state.document_service).
        documentId (str | None): Query parameter naming the document.
        owner_id (str): Authenticated owner.

    Returns:
        DeleteResponse: Always success once the id is given. Unknown ids are not an error.
    """
    if not documentId:
        raise ValidationError("Document ID is required")
    document_service = request.app.state.document_service
    await document_service.do_delete_document(owner_id, documentId)
    return DeleteResponse()


@router.post("/upload")
async def upload_document(
    request: Request,
    file: UploadFile | None = File(None),
    owner_id: str = Depends(get_owner_id),
) -> UploadResponse:
    """Decode, chunk, embed and index an uploaded PDF or text file.

    Args:
        request (Request): FastAPI request (provides app.state).
        file (UploadFile | None): Multipart form field "file".
        owner_id (str): Authenticated owner.

    Returns:
        UploadResponse: The new document's id, file name and chunk count.
    """
    if file is None:
        raise ValidationError("No file provided")

    file_decoder = request.app.state.file_decoder
    file_name = file.filename or "upload"
    kind = file_decoder.detect_kind(file_name, file.content_type)

    # reject on the declared size before buffering, and never read past the limit
    file_decoder.check_size(file.size)
    data = await file.read(file_decoder.max_upload_bytes + 1)
    file_decoder.check_size(len(data))
    text = file_decoder.decode(data, kind)

    document_service = request.app.state.document_service
    document = await document_service.do_ingest(
        owner_id=owner_id,
        file_name=file_name,
        file_type=file.content_type or DEFAULT_CONTENT_TYPES[kind],
        raw_text=text,
    )
    return UploadResponse(
        document=UploadedDocument(id=document.id, file_name=document.file_name, chunk_count=document.chunk_count)
    )
