"""Bulk ingest entry point.

Ingests every PDF and text file of a directory into one owner's namespace,
using the same providers, index and registry as the API server.

Usage:
    python -m ingest.ingest_runner --owner <owner_id> <directory>
"""

import argparse
import asyncio
import os

from services.ingestion.DocumentService import DocumentService
from shared.clients.embed.EmbedClientManager import EmbedClientManager
from shared.clients.rag.RAGClientManager import RAGClientManager
from shared.errors import AppError
from shared.helper.FileDecoder import FileDecoder
from shared.helper.HelperConfig import HelperConfig
from shared.logging.logging_setup import setup_logging
from shared.storage.DocumentRegistryManager import DocumentRegistryManager

CONTENT_TYPES = {".pdf": "application/pdf", ".txt": "text/plain"}


def collect_files(directory: str) -> list[str]:
    """Returns the paths of all PDF and text files in a directory, sorted by name. Not recursive."""
    paths = []
    for name in sorted(os.listdir(directory)):
        path = os.path.join(directory, name)
        if os.path.isfile(path) and os.path.splitext(name)[1].lower() in CONTENT_TYPES:
            paths.append(path)
    return paths


async def ingest_directory(
    document_service: DocumentService,
    file_decoder: FileDecoder,
    owner_id: str,
    directory: str,
) -> tuple[int, int]:
    """Ingest all files of a directory one after another.

    A failing file is logged and skipped, the remaining files are still ingested.

    Returns:
        tuple[int, int]: Number of ingested and failed files.
    """
    logger = file_decoder.logging
    ingested = failed = 0
    for path in collect_files(directory):
        file_name = os.path.basename(path)
        content_type = CONTENT_TYPES[os.path.splitext(file_name)[1].lower()]
        try:
            file_decoder.check_size(os.path.getsize(path))
            with open(path, "rb") as f:
                data = f.read()
            text = file_decoder.decode(data, file_decoder.detect_kind(file_name, content_type))
            await document_service.do_ingest(owner_id, file_name, content_type, text)
            ingested += 1
        except AppError as e:
            logger.error("Skipping '%s': %s", file_name, e.message)
            failed += 1
    logger.info("Bulk ingest finished: %d ingested, %d failed.", ingested, failed)
    return ingested, failed


async def main(owner_id: str, directory: str) -> None:
    """Run the bulk ingest."""
    logger = setup_logging()
    config = HelperConfig(logger=logger)

    embed_client = EmbedClientManager(helper_config=config).get_client()
    rag_client = RAGClientManager(helper_config=config).get_client()
    registry = DocumentRegistryManager(helper_config=config).get_registry()
    document_service = DocumentService(
        helper_config=config,
        embed_client=embed_client,
        rag_client=rag_client,
        registry=registry,
    )

    try:
        await embed_client.boot()
        await rag_client.boot()
        await registry.boot()
        await rag_client.do_ensure_index(embed_client.get_vector_size())

        await ingest_directory(document_service, FileDecoder(helper_config=config), owner_id, directory)
    finally:
        await embed_client.close()
        await rag_client.close()
        await registry.close()


if __name__ == "__main__":
    parser = argparse.ArgumentParser(description="Ingest all PDF and text files of a directory for one owner.")
    parser.add_argument("directory", help="Directory containing .pdf and .txt files")
    parser.add_argument("--owner", required=True, help="Owner id whose namespace receives the documents")
    args = parser.parse_args()
    asyncio.run(main(args.owner, args.directory))
