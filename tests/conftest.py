"""Shared fixtures. Fakes for providers and the vector index live in tests/fakes.py."""

import logging
import os

# keep test runs from writing logs/app.log into the working directory
os.environ.setdefault("LOG_TO_FILE", "false")

import pytest

from shared.helper.HelperConfig import HelperConfig
from shared.logging.logging_setup import ColorLogger
from shared.storage.memory.DocumentRegistryMemory import DocumentRegistryMemory
from tests.fakes import FAKE_VECTOR_SIZE, FakeEmbedClient, FakeLLMClient, InMemoryRAGClient


@pytest.fixture
def logger() -> ColorLogger:
    return ColorLogger(logging.getLogger("brainvault.tests"))


@pytest.fixture
def helper_config(logger) -> HelperConfig:
    return HelperConfig(logger=logger)


@pytest.fixture
def embed_client() -> FakeEmbedClient:
    return FakeEmbedClient()


@pytest.fixture
def llm_client() -> FakeLLMClient:
    return FakeLLMClient()


@pytest.fixture
async def rag_client(helper_config) -> InMemoryRAGClient:
    client = InMemoryRAGClient(helper_config=helper_config)
    await client.do_ensure_index(FAKE_VECTOR_SIZE)
    return client


@pytest.fixture
def registry(helper_config) -> DocumentRegistryMemory:
    return DocumentRegistryMemory(helper_config=helper_config)
