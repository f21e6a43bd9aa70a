"""
textrankminer

TextRank keyword and keyphrase extraction over POS-tagged, dependency-parsed
documents.

High-level API
--------------
- TextRankKeywordExtractor → graph → rank → keyphrases for one document
- TokenGraphBuilder        → windowed word co-occurrence graph
- GraphRanker              → damped power iteration (TextRank / PageRank)
- PhraseAssembler          → merge top-ranked tokens into keyphrases
- TaggedDocument           → in-memory token + dependency source
- SpacyDocumentSource      → build TaggedDocuments from spaCy parses
"""

from importlib.metadata import PackageNotFoundError, version


# Core APIs
from .config import DEFAULT_ADMITTED_POS, DEFAULT_STOP_WORDS, TextRankConfig
from .errors import (
    EmptyGraphError,
    InvalidConfigurationError,
    MalformedInputError,
    TextRankError,
)
from .tokens import DependencyLink, Token, TokenArena, make_tag_key, parse_tag_key
from .document import TaggedDocument
from .cooccurrence import CoOccurrenceEdge, CooccurrenceGraph, TokenGraphBuilder
from .graph_ranker import GraphRanker, RankVector, rank_weighted_edges
from .phrase_assembler import (
    KeywordRecord,
    KeywordResultSet,
    PhraseAssembler,
    PhraseCandidate,
    select_top_tokens,
)
from .keyword_extractor import (
    InMemoryKeywordStore,
    KeywordExtractionResult,
    TextRankKeywordExtractor,
    extract_keywords,
)

# spaCy adapter (spaCy itself is imported lazily)
from .spacy_source import SpacyDocumentSource, tagged_document_from_spacy


# ---------------------------------------------------------------------
# Runtime version (single source of truth = pyproject.toml)
# ---------------------------------------------------------------------
try:
    __version__ = version("textrankminer")
except PackageNotFoundError:
    # Fallback when running directly from a clone without installation
    __version__ = "0.0.0"

__all__ = [
    "TextRankConfig",
    "DEFAULT_ADMITTED_POS",
    "DEFAULT_STOP_WORDS",
    "TextRankError",
    "MalformedInputError",
    "EmptyGraphError",
    "InvalidConfigurationError",
    "Token",
    "DependencyLink",
    "TokenArena",
    "make_tag_key",
    "parse_tag_key",
    "TaggedDocument",
    "CoOccurrenceEdge",
    "CooccurrenceGraph",
    "TokenGraphBuilder",
    "GraphRanker",
    "RankVector",
    "rank_weighted_edges",
    "KeywordRecord",
    "KeywordResultSet",
    "PhraseAssembler",
    "PhraseCandidate",
    "select_top_tokens",
    "InMemoryKeywordStore",
    "KeywordExtractionResult",
    "TextRankKeywordExtractor",
    "extract_keywords",
    "SpacyDocumentSource",
    "tagged_document_from_spacy",
    "__version__",
]
