"""Searches over factory source text, and chunk entry-point extraction."""
import ast
import linecache
import logging
import re
import textwrap
from typing import Any, Callable, Dict, Iterable, Iterator, Optional, Pattern, Sequence, Tuple, Union

from discovery.config import StrictnessPolicy
from discovery.diagnostics.tracer import Tracer, traced
from discovery.errors import ChunkExtractionError, NoModuleMatchError
from discovery.models import BundleLoader, ModuleId
from discovery.utils.source_text import canonicalize_match, function_source

logger = logging.getLogger(__name__)

Matcher = Union[str, Pattern[str]]
SearchFilter = Union[str, Pattern[str]]

# Captures the entry point of `n.el("42").then(n.bind(n,"42"))`
DEFAULT_CHUNK_MATCHER = r'(\i)\.el\("(?P<id>.+?)"\)\.then\(\1\.bind\(\1,\s*"(?P=id)"\)\)'

_EXTRACT_TEMPLATE = """\
# [EXTRACTED] BundleModule{module_id}
# WARNING: This module was extracted to be more easily readable.
#          This module is NOT ACTUALLY USED! Breakpoints or edits here have NO EFFECT.

{source}
"""


class SourceSearch:
    """Operates on the un-executed factories rather than on live exports."""

    def __init__(self, policy: StrictnessPolicy, tracer: Optional[Tracer] = None):
        self.policy = policy
        self.tracer = tracer or Tracer()
        self.loader: Optional[BundleLoader] = None

    def iter_factories(self) -> Iterator[Tuple[ModuleId, Callable[..., Any]]]:
        if self.loader is None:
            return
        factories = self.loader.factories
        for module_id in factories.all_ids():
            factory = factories.get(module_id)
            if factory is not None:
                yield module_id, factory

    @traced("find_module_id")
    def find_module_id(self, *code: str, indirect: bool = False) -> Optional[ModuleId]:
        """Id of the first factory whose source contains every string in `code`."""
        _require_strings(code)

        for module_id, factory in self.iter_factories():
            source = function_source(factory)
            if all(c in source for c in code):
                return module_id

        if not indirect:
            err = NoModuleMatchError("Didn't find module with code(s):\n" + "\n".join(code))
            self.policy.report(err, level=logging.WARNING)
        return None

    def find_module_factory(self, *code: str, indirect: bool = False) -> Optional[Callable[..., Any]]:
        module_id = self.find_module_id(*code, indirect=indirect)
        if module_id is None or self.loader is None:
            return None
        return self.loader.factories.get(module_id)

    def search(self, *filters: SearchFilter) -> Dict[ModuleId, Callable[..., Any]]:
        """Every factory whose source satisfies all filters (substring or regex)."""
        for f in filters:
            if not isinstance(f, (str, re.Pattern)):
                raise TypeError(f"Invalid search filter. Expected str or re.Pattern got {type(f).__name__}")

        results: Dict[ModuleId, Callable[..., Any]] = {}
        for module_id, factory in self.iter_factories():
            source = function_source(factory)
            if all(_matches(f, source) for f in filters):
                results[module_id] = factory
        return results

    def extract(self, module_id: ModuleId) -> Optional[Callable[..., Any]]:
        """Compile a standalone, inert copy of a factory for inspection.

        Only the factory's own definition is compiled: decorators and any
        statement around a lambda factory are dropped, so building the copy
        runs nothing but the `def` itself. The copy lives under its own
        `linecache` filename so `inspect.getsource` works on it, but nothing in
        the loader ever refers to it.
        """
        if self.loader is None:
            return None
        factory = self.loader.factories.get(module_id)
        if factory is None:
            return None
        source = function_source(factory)
        if not source:
            return None

        try:
            definition = _factory_definition(source, getattr(factory, "__name__", ""))
        except SyntaxError as e:
            logger.warning("extract: Source of module %r is not valid Python: %s", module_id, e)
            return None
        if definition is None:
            logger.warning("extract: No function definition in the source of module %r", module_id)
            return None
        name, text = definition

        code = _EXTRACT_TEMPLATE.format(module_id=module_id, source=text)
        filename = f"ExtractedBundleModule{module_id}"
        linecache.cache[filename] = (len(code), None, code.splitlines(True), filename)

        namespace: Dict[str, Any] = {"__name__": filename}
        try:
            exec(compile(code, filename, "exec"), namespace)
        except (SyntaxError, NameError) as e:
            logger.warning("extract: Couldn't compile module %r: %s", module_id, e)
            return None
        return namespace.get(name)

    async def extract_and_load_chunks(self, code: Sequence[str], matcher: Matcher = DEFAULT_CHUNK_MATCHER) -> Any:
        """Load the chunk whose entry point a known factory references, then require it.

        Args:
            code: Strings the factory that references the entry point must contain
            matcher: Pattern recovering the entry point id, from the named group
                `id` if present, else from the first group

        Returns:
            The exports of the entry-point module, or None if extraction failed

        Raises:
            ChunkExtractionError: In strict mode, when the factory or its entry point id is missing
        """
        code = tuple(code)
        loader = self.loader
        factory = self.find_module_factory(*code, indirect=True)
        if loader is None or factory is None:
            return self._extraction_failed("extract_and_load_chunks: Couldn't find module factory", code, matcher)

        match = canonicalize_match(matcher).search(function_source(factory))
        if match is None:
            return self._extraction_failed(
                "extract_and_load_chunks: Couldn't find entry point id in module factory code", code, matcher
            )

        entry_id = _entry_id(match)
        if not _is_numeric_id(entry_id):
            return self._extraction_failed(
                "extract_and_load_chunks: Matcher didn't return a capturing group with the entry point, "
                "or the entry point returned wasn't a number",
                code, matcher,
            )

        logger.debug("Loading chunk entry point %s", entry_id)
        await loader.load_chunk(entry_id)
        return loader.require(entry_id)

    def _extraction_failed(self, message: str, code: Tuple[str, ...], matcher: Matcher) -> None:
        logger.warning("%s | code=%r matcher=%r", message, code, _pattern_text(matcher))
        if self.policy.should_raise:
            raise ChunkExtractionError(message)
        return None


def _require_strings(code: Iterable[Any]) -> None:
    code = tuple(code)
    if not code:
        raise ValueError("Expected at least one code string")
    for c in code:
        if not isinstance(c, str):
            raise TypeError(f"Invalid code. Expected str got {type(c).__name__}")


def _matches(f: SearchFilter, source: str) -> bool:
    if isinstance(f, str):
        return f in source
    return f.search(source) is not None


def _pattern_text(matcher: Matcher) -> str:
    return matcher.pattern if isinstance(matcher, re.Pattern) else matcher


def _entry_id(match: "re.Match[str]") -> Optional[str]:
    if "id" in match.re.groupindex:
        return match.group("id")
    if match.re.groups < 1:
        return None
    return match.group(1)


def _is_numeric_id(value: Optional[str]) -> bool:
    # Plain ASCII digits: no sign, padding or underscores
    if not value or not (value.isascii() and value.isdigit()):
        return False
    return int(value) != 0


def _factory_definition(source: str, name: str) -> Optional[Tuple[str, str]]:
    """The bare definition of `name` in `source` as `(bound_name, text)`.

    Decorators are left out. A lambda is rebound to `extracted`. Falls back to
    the first function in `source` when none is called `name`.

    Raises:
        SyntaxError: If `source` does not parse as Python
    """
    source = textwrap.dedent(source)
    tree = ast.parse(source)
    functions = [
        node for node in ast.walk(tree) if isinstance(node, (ast.FunctionDef, ast.AsyncFunctionDef, ast.Lambda))
    ]
    if not functions:
        return None

    node = next((n for n in functions if getattr(n, "name", "<lambda>") == name), functions[0])
    text = ast.get_source_segment(source, node, padded=True)
    if text is None:
        return None
    text = textwrap.dedent(text)
    if isinstance(node, ast.Lambda):
        return "extracted", f"extracted = (\n{text}\n)\n"
    return node.name, text + "\n"
