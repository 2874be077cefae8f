import os

from ingest.ingest_runner import collect_files, ingest_directory
from services.ingestion.DocumentService import DocumentService
from shared.helper.FileDecoder import FileDecoder


def test_collect_files_picks_pdf_and_text_only(tmp_path):
    for name in ["b.txt", "a.PDF", "c.png", "notes.md"]:
        (tmp_path / name).write_bytes(b"x")
    (tmp_path / "sub").mkdir()

    assert [os.path.basename(p) for p in collect_files(str(tmp_path))] == ["a.PDF", "b.txt"]


async def test_ingest_directory_skips_failing_files(tmp_path, helper_config, embed_client, rag_client, registry):
    (tmp_path / "good.txt").write_text("Rent is due on the first.", encoding="utf-8")
    (tmp_path / "empty.txt").write_text("   ", encoding="utf-8")
    (tmp_path / "broken.pdf").write_bytes(b"not a pdf at all")
    service = DocumentService(helper_config=helper_config, embed_client=embed_client, rag_client=rag_client, registry=registry)

    ingested, failed = await ingest_directory(service, FileDecoder(helper_config=helper_config), "alice", str(tmp_path))

    assert (ingested, failed) == (1, 2)
    assert [doc.file_name for doc in await registry.do_list("alice")] == ["good.txt"]
