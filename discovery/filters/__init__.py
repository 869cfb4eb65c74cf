"""Predicate library.

Each constructor returns a `Filter`: a callable wrapper that remembers how it
was built so search history and error reports can show it.
"""

from .predicates import Filter, by_code, by_props, by_store_name, component_by_code

__all__ = ["Filter", "by_code", "by_props", "by_store_name", "component_by_code"]
