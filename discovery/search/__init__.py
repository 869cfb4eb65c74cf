"""Registry searches: live exports (eager) and factory source text"""
from .eager import EagerSearch
from .source import DEFAULT_CHUNK_MATCHER, SourceSearch

__all__ = ["DEFAULT_CHUNK_MATCHER", "EagerSearch", "SourceSearch"]
