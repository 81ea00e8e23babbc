"""Clients for the search service, the LLM and object storage."""

from .openai import ChatCompletion, ChatGateway, MockChatClient, OpenAIGatewayClient
from .registry import GatewayConfig, GatewaySchema, load_gateway
from .search import AzureSearchClient, InMemorySearchService, IndexingResult, SearchGateway
from .storage import BlobObjectStore, InMemoryObjectStore, LocalObjectStore, ObjectStore

__all__ = [
    "AzureSearchClient",
    "BlobObjectStore",
    "ChatCompletion",
    "ChatGateway",
    "GatewayConfig",
    "GatewaySchema",
    "InMemoryObjectStore",
    "InMemorySearchService",
    "IndexingResult",
    "LocalObjectStore",
    "MockChatClient",
    "ObjectStore",
    "OpenAIGatewayClient",
    "SearchGateway",
    "load_gateway",
]
