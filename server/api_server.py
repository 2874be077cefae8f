"""FastAPI application entry point for the BrainVault RAG bridge."""

import os
from contextlib import asynccontextmanager
from typing import AsyncGenerator

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from shared.logging.logging_setup import setup_logging
from shared.errors import AppError
from shared.helper.HelperConfig import HelperConfig
from shared.helper.FileDecoder import FileDecoder
from shared.clients.embed.EmbedClientInterface import EmbedClientInterface
from shared.clients.llm.LLMClientInterface import LLMClientInterface
from shared.clients.rag.RAGClientInterface import RAGClientInterface
from shared.clients.embed.EmbedClientManager import EmbedClientManager
from shared.clients.llm.LLMClientManager import LLMClientManager
from shared.clients.rag.RAGClientManager import RAGClientManager
from shared.storage.DocumentRegistryManager import DocumentRegistryManager
from services.chat.ChatService import ChatService
from services.chat.RetrievalService import RetrievalService
from services.ingestion.DocumentService import DocumentService
from server.models.responses import HealthResponse
from server.routers.ChatRouter import router as chat_router
from server.routers.DocumentRouter import router as document_router

logging = setup_logging()
app_version = os.getenv("APP_VERSION", "unknown")


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncGenerator[None, None]:
    # when the app starts
    app.state.logging = logging
    app.state.helper_config = HelperConfig(logger=logging)

    # provider selection happens once; a misconfigured provider stops startup here
    embed_client = EmbedClientManager(helper_config=app.state.helper_config).get_client()
    llm_client = LLMClientManager(helper_config=app.state.helper_config).get_client()
    rag_client = RAGClientManager(helper_config=app.state.helper_config).get_client()
    registry = DocumentRegistryManager(helper_config=app.state.helper_config).get_registry()
    logging.info(
        "Providers: embed=%s (%d dims), llm=%s, rag=%s, registry=%s",
        embed_client.get_engine_name(),
        embed_client.get_vector_size(),
        llm_client.get_engine_name(),
        rag_client.get_engine_name(),
        registry.get_engine_name(),
    )

    logging.info("Booting all clients...")
    for client in [embed_client, llm_client, rag_client]:
        await client.boot()
    await registry.boot()
    logging.info("All clients booted successfully.", color="green")

    app.state.embed_client = embed_client
    app.state.llm_client = llm_client
    app.state.rag_client = rag_client
    app.state.registry = registry

    app.state.file_decoder = FileDecoder(helper_config=app.state.helper_config)
    app.state.document_service = DocumentService(
        helper_config=app.state.helper_config,
        embed_client=embed_client,
        rag_client=rag_client,
        registry=registry,
    )
    retrieval_service = RetrievalService(
        helper_config=app.state.helper_config,
        embed_client=embed_client,
        rag_client=rag_client,
    )
    app.state.chat_service = ChatService(
        helper_config=app.state.helper_config,
        retrieval_service=retrieval_service,
        llm_client=llm_client,
    )

    try:
        if app.state.helper_config.get_bool_val("STARTUP_HEALTHCHECK", default=True):
            await check_connections(embed_client, llm_client, rag_client)
        await rag_client.do_ensure_index(embed_client.get_vector_size())
    except Exception:
        await close_all(embed_client, llm_client, rag_client, registry)
        raise

    # while the app is running...
    yield

    # when the app shuts down, close all client connections
    logging.info("Shutting down, closing all clients...")
    await close_all(embed_client, llm_client, rag_client, registry)
    logging.info("All clients closed.")


app = FastAPI(
    title="brainvault",
    description=(
        "Retrieval-augmented chat over personal documents. "
        "Uploaded PDF and text files are chunked, embedded and indexed in a per-user namespace "
        "of a vector index (POST /documents/upload). "
        "Questions are answered from the best-matching passages as an event stream (POST /chat)."
    ),
    version=app_version,
    lifespan=lifespan,
)

app.add_middleware(
    CORSMiddleware,
    allow_origins=HelperConfig(logger=logging).get_list_val("API_SERVER_CORS_ORIGINS", default=["*"]),
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

app.include_router(chat_router)
app.include_router(document_router)


##########################################
########### ERROR HANDLERS ###############
##########################################

@app.exception_handler(AppError)
async def app_error_handler(request: Request, exc: AppError) -> JSONResponse:
    if exc.status_code >= 500:
        logging.error("%s %s failed: %s", request.method, request.url.path, exc.message)
    return JSONResponse(status_code=exc.status_code, content={"error": exc.message})


@app.exception_handler(RequestValidationError)
async def request_validation_error_handler(request: Request, exc: RequestValidationError) -> JSONResponse:
    errors = exc.errors()
    detail = errors[0].get("msg", "Invalid request") if errors else "Invalid request"
    return JSONResponse(status_code=400, content={"error": f"Invalid request: {detail}"})


@app.exception_handler(Exception)
async def unhandled_error_handler(request: Request, exc: Exception) -> JSONResponse:
    logging.exception("Unhandled error on %s %s: %s", request.method, request.url.path, exc)
    return JSONResponse(status_code=500, content={"error": "Internal server error"})


@app.get("/health", tags=["health"])
async def health() -> HealthResponse:
    return HealthResponse(status="ok", version=app_version)


##########################################
############## LIFECYCLE #################
##########################################

async def check_connections(
    embed_client: EmbedClientInterface,
    llm_client: LLMClientInterface,
    rag_client: RAGClientInterface,
) -> None:
    """Check connectivity to all configured backends on startup.

    Embedding and generation failures are non-fatal (requests will fail later,
    but the server stays up). A vector index failure is fatal, nothing can be
    served without it.

    Raises:
        Exception: If the vector index is not reachable.
    """
    for client in [embed_client, llm_client]:
        try:
            result = await client.do_healthcheck()
        except AppError as e:
            logging.warning("%s client '%s' is not reachable: %s", client.get_client_type().upper(), client.get_engine_name(), e.message)
            continue
        if not result.is_success:
            logging.warning(
                "%s client '%s' is not reachable (status %d). Requests may fail.",
                client.get_client_type().upper(),
                client.get_engine_name(),
                result.status_code,
            )

    result = await rag_client.do_healthcheck()
    if not result.is_success:
        raise Exception(
            f"RAG client '{rag_client.get_engine_name()}' is not reachable "
            f"(status {result.status_code}). Cannot serve requests."
        )


async def close_all(*clients) -> None:
    for client in clients:
        await client.close()


if __name__ == "__main__":
    import uvicorn

    logging.info(
        "Starting brainvault API Server v%s from root dir: %s on port 8000...",
        app_version,
        os.environ.get("ROOT_DIR", os.getcwd()),
    )
    uvicorn.run(app, host="0.0.0.0", port=8000)
