from .base import CommandExecutor, CompletionProvider, PassageRetriever, SearchProvider, ToolDeps
from .completion import PydanticAICompletionProvider
from .executor import LocalCommandExecutor
from .retrieval import InMemoryRetriever
from .search import HttpSearchProvider, SearchProviderError

__all__ = [
    "CommandExecutor",
    "CompletionProvider",
    "HttpSearchProvider",
    "InMemoryRetriever",
    "LocalCommandExecutor",
    "PassageRetriever",
    "PydanticAICompletionProvider",
    "SearchProvider",
    "SearchProviderError",
    "ToolDeps",
]
