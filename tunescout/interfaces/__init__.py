"""Public interface definitions for all external collaborators.

Every external service the engine talks to is accessed exclusively through
the abstract base classes defined in this package.  Concrete adapters
implement these interfaces and are injected at startup (tunescout/main.py),
so business logic never imports httpx, aiosqlite or an LLM SDK directly and
unit tests can inject fakes.

CONCRETE PROVIDER MAP:
    Interface              ->  Concrete implementations (in tunescout/providers/)
    ─────────────────────────────────────────────────────────────────────
    ISignalStore           ->  SQLiteSignalStore
    ITrackSearchProvider   ->  HttpTrackSearchProvider
    ITrendingProvider      ->  HttpChartsProvider
    ILLMProvider           ->  OpenAILLMProvider, AnthropicLLMProvider
    IRerankingOracle       ->  LLMRerankingOracle
    ICacheProvider         ->  MemoryCacheProvider
"""

from tunescout.interfaces.cache_provider import CacheKey, CacheNamespace, ICacheProvider
from tunescout.interfaces.catalogue_provider import ITrackSearchProvider, ITrendingProvider
from tunescout.interfaces.llm_provider import ILLMProvider
from tunescout.interfaces.reranking_oracle import IRerankingOracle
from tunescout.interfaces.signal_store import ISignalStore

__all__ = [
    "CacheKey",
    "CacheNamespace",
    "ICacheProvider",
    "ILLMProvider",
    "IRerankingOracle",
    "ISignalStore",
    "ITrackSearchProvider",
    "ITrendingProvider",
]
