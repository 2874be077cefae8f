import json
from datetime import datetime, timezone

import pytest

from shared.errors import ProviderConfigError
from shared.models.document import Document
from shared.storage.DocumentRegistryManager import DocumentRegistryManager
from shared.storage.file.DocumentRegistryFile import DocumentRegistryFile
from shared.storage.memory.DocumentRegistryMemory import DocumentRegistryMemory


def _document(document_id: str, owner_id: str = "alice", day: int = 1) -> Document:
    return Document(
        id=document_id,
        owner_id=owner_id,
        file_name=f"{document_id}.txt",
        file_type="text/plain",
        uploaded_at=datetime(2024, 3, day, tzinfo=timezone.utc),
        chunk_count=day,
    )


@pytest.fixture
def file_registry(helper_config, tmp_path, monkeypatch) -> DocumentRegistryFile:
    monkeypatch.setenv("REGISTRY_FILE_PATH", str(tmp_path / "registry" / "documents.json"))
    return DocumentRegistryFile(helper_config=helper_config)


@pytest.mark.parametrize("backend", ["memory", "file"])
async def test_registry_is_scoped_per_owner(backend, registry, file_registry):
    store = registry if backend == "memory" else file_registry
    await store.boot()
    await store.do_add(_document("a1", day=1))
    await store.do_add(_document("a2", day=5))
    await store.do_add(_document("b1", owner_id="bob"))

    assert [doc.id for doc in await store.do_list("alice")] == ["a2", "a1"]
    assert await store.do_get("bob", "a1") is None
    assert await store.do_delete("bob", "a1") is False
    assert await store.do_delete("alice", "a1") is True
    assert await store.do_delete("alice", "a1") is False
    assert [doc.id for doc in await store.do_list("alice")] == ["a2"]


async def test_file_registry_persists_across_instances(helper_config, file_registry, tmp_path):
    await file_registry.boot()
    await file_registry.do_add(_document("a1", day=2))

    raw = json.loads((tmp_path / "registry" / "documents.json").read_text(encoding="utf-8"))
    assert raw["documents"][0]["fileName"] == "a1.txt"
    assert raw["documents"][0]["chunkCount"] == 2

    reopened = DocumentRegistryFile(helper_config=helper_config)
    await reopened.boot()
    assert await reopened.do_get("alice", "a1") == _document("a1", day=2)


async def test_file_registry_rolls_back_when_write_fails(file_registry, tmp_path, monkeypatch):
    await file_registry.boot()
    await file_registry.do_add(_document("a1", day=1))

    def _disk_full():
        raise OSError(28, "No space left on device")

    monkeypatch.setattr(file_registry, "_write", _disk_full)

    with pytest.raises(OSError):
        await file_registry.do_add(_document("a2", day=2))
    assert [doc.id for doc in await file_registry.do_list("alice")] == ["a1"]

    with pytest.raises(OSError):
        await file_registry.do_delete("alice", "a1")
    assert await file_registry.do_get("alice", "a1") == _document("a1", day=1)

    raw = json.loads((tmp_path / "registry" / "documents.json").read_text(encoding="utf-8"))
    assert [doc["id"] for doc in raw["documents"]] == ["a1"]


async def test_file_registry_leaves_no_temp_files(file_registry, tmp_path):
    await file_registry.do_add(_document("a1"))
    await file_registry.do_delete("alice", "a1")

    assert [p.name for p in (tmp_path / "registry").iterdir()] == ["documents.json"]


async def test_file_registry_rejects_corrupt_file(file_registry, tmp_path):
    (tmp_path / "registry").mkdir()
    (tmp_path / "registry" / "documents.json").write_text("{not json", encoding="utf-8")

    with pytest.raises(ValueError):
        await file_registry.boot()


def test_manager_selects_backend(helper_config, monkeypatch, tmp_path):
    monkeypatch.delenv("REGISTRY_ENGINE", raising=False)
    assert isinstance(DocumentRegistryManager(helper_config=helper_config).get_registry(), DocumentRegistryMemory)

    monkeypatch.setenv("REGISTRY_ENGINE", "file")
    monkeypatch.setenv("REGISTRY_FILE_PATH", str(tmp_path / "docs.json"))
    assert isinstance(DocumentRegistryManager(helper_config=helper_config).get_registry(), DocumentRegistryFile)

    monkeypatch.setenv("REGISTRY_ENGINE", "redis")
    with pytest.raises(ProviderConfigError):
        DocumentRegistryManager(helper_config=helper_config)
