"""Base classes for Analyzers that count features in project syntax trees."""

from abc import ABC, abstractmethod
from bisect import bisect_right
from dataclasses import dataclass
from enum import Enum
from glob import iglob
import os.path
import re
from tempfile import TemporaryDirectory
from typing import Callable, Iterator, Optional, Sequence

import lxml.etree

from ktrawler.utils import logger
from .features import AggregationSession, CounterSpec, NodeRule, dispatch_table


class NodeKind(str, Enum):
    """Element tags of the normalized syntax tree that an Analyzer walks.

    Parser adapters translate their concrete node types into these
    kinds. Facts specific to a kind are stored as element attributes.

    """

    FILE = 'file'
    ERROR = 'error'
    DELEGATION = 'delegation'
    CLASS = 'class'
    """Attributes: `enum`, `inner`, `interface`, `type_parameters`,
    `constructor_visibility`, `constructor_parameters`."""
    BODY = 'body'
    """Member list of a class or object declaration."""
    DECLARATION = 'declaration'
    """Any other member declaration (constructors, initializers, aliases)."""
    ENUM_ENTRY = 'enum_entry'
    """Attributes: `body`."""
    OBJECT = 'object'
    """Attributes: `companion`."""
    FUNCTION = 'function'
    """Attributes: `inline`, `receiver`."""
    LAMBDA = 'lambda'
    """Attributes: `return_type`."""
    LABEL = 'label'
    JUMP = 'jump'
    """Attributes: `keyword` (break, continue, return), `target`."""
    WHILE = 'while'
    DO_WHILE = 'do_while'
    WHEN = 'when'
    """Attributes: `subject`."""
    WHEN_RANGE_CONDITION = 'when_range_condition'
    PROPERTY = 'property'
    """Attributes: `mutable`."""
    TYPE_PARAMETER = 'type_parameter'
    """Attributes: `variance` (in, out)."""
    TYPE_ARGUMENT = 'type_argument'
    """Attributes: `projection` (in, out, *)."""
    BINARY = 'binary'
    """Attributes: `operator`."""
    TYPE_CAST = 'type_cast'
    """Attributes: `operator`."""
    FIELD_REFERENCE = 'field_reference'
    NODE = 'node'
    """Any parser node without a dedicated kind. Attributes: `type`."""


TRUE = 'true'
"""Value of set boolean element attributes."""


def is_set(element: lxml.etree._Element, attribute: str) -> bool:
    """Returns True if the boolean attribute is set on element."""
    return element.get(attribute) == TRUE


class LineIndex:
    """Maps byte offsets within a file to 1-based line numbers."""

    NEWLINE_REGEX = re.compile(b'\n')

    def __init__(self, line_starts: Sequence[int]):
        self.line_starts = list(line_starts)

    @classmethod
    def from_bytes(cls, source: bytes) -> 'LineIndex':
        if not source:
            return cls([])
        return cls([0] + [match.end() for match in cls.NEWLINE_REGEX.finditer(source)])

    @property
    def line_count(self) -> int:
        return len(self.line_starts)

    def line_number(self, offset: int) -> int:
        return max(bisect_right(self.line_starts, offset), 1)


@dataclass(frozen=True)
class FileInfo:
    """Details identifying a source-code file within a project."""

    project_path: str
    """Path to the root directory of the project."""

    rel_path: str
    """Relative path to the file from the project directory."""

    @property
    def abs_path(self) -> str:
        """Absolute path to the file."""
        return os.path.join(self.project_path, self.rel_path)


@dataclass(frozen=True)
class SyntaxTree:
    """A parsed source-code file."""

    root: lxml.etree._Element
    """Root element of the normalized syntax tree."""

    rel_path: Optional[str]
    """Relative path to the file from its project directory."""

    line_index: LineIndex
    """Line lookup for the element `start` offsets."""


class TreeVisit:
    """Records feature occurrences found while walking one SyntaxTree."""

    def __init__(self, session: AggregationSession, *, project: str, tree: SyntaxTree):
        self.session = session
        self.project = project
        self.tree = tree

    def increment(self, key: str, element: lxml.etree._Element) -> None:
        line = self.tree.line_index.line_number(int(element.get('start', 0)))
        self.session[key].increment(self.project, self.tree.rel_path, line)


class FileAnalyzer(ABC):
    """Base class for Analyzers that parse each source-code file in a
    project into a SyntaxTree and count features with NodeRules.

    Subclasses provide the parser adapter by implementing
    `prepare_file()`.

    """

    default_name: str
    """Name to be assigned to Analyzers of this type if a custom name is not
    specified."""

    default_file_glob: str
    """Default glob pattern for finding source-code files."""

    default_file_filters: Sequence[Callable[[FileInfo], bool]] = []
    """Default filters to identify files to exclude from analysis."""

    def __init__(self, *,
                 rules: Sequence[NodeRule],
                 catalog: Sequence[CounterSpec],
                 file_glob: Optional[str] = None,
                 file_filters: Optional[Sequence[Callable[[FileInfo], bool]]] = None,
                 name: Optional[str] = None):
        """
        Args:
            rules: The NodeRules applied to each element of each file.
            catalog: Declarations of the feature counters that rules
                increment, in report order.
            file_glob: Glob pattern for finding source-code files within
                the project.
            file_filters: Filters to identify files to exclude from analysis.
                Each filter is a function that takes a
                [`FileInfo`][ktrawler.analyzers.FileInfo] and
                returns `True` if the file should be excluded.
            name: Name to identify the Analyzer. If `None`, defaults to the
                Analyzer type's default_name.
        """
        self.name = self.default_name if name is None else name
        self.rules = list(rules)
        self.catalog = list(catalog)
        self.file_glob = self.default_file_glob if file_glob is None else file_glob
        self.file_filters = self.default_file_filters if file_filters is None else file_filters
        self._dispatch = dispatch_table(self.rules)

    def __str__(self):
        return self.name

    def __repr__(self):
        return f'{self.__class__.__name__}({self})'

    @abstractmethod
    def prepare_file(self, file_info: FileInfo) -> Optional[SyntaxTree]:
        """Given a [`FileInfo`][ktrawler.analyzers.FileInfo] identifying the
        location of a target source-code file, returns its SyntaxTree,
        or `None` if the file should be skipped."""

    def create_session(self, *, stats_only: bool = False) -> AggregationSession:
        """Returns an empty AggregationSession for this Analyzer's catalog."""
        return AggregationSession.from_catalog(self.catalog, stats_only=stats_only)

    def _get_file_keys(self, project_path: str) -> Iterator[str]:
        """Generator yielding the relative file paths within the given
        project, applying configured file_filters."""
        for abs_path in iglob(os.path.join(project_path, self.file_glob), recursive=True):
            if not os.path.isfile(abs_path):
                continue
            file_info = FileInfo(
                project_path=project_path,
                rel_path=os.path.relpath(abs_path, start=project_path),
            )
            filtered_out = any([
                file_filter(file_info)
                for file_filter in self.file_filters
            ])
            if filtered_out:
                continue
            yield file_info.rel_path

    def analyze_repo(self, project_path: str, session: AggregationSession) -> None:
        """Counts the features of every source-code file in the project
        into session."""
        logger.info(f'Analyzing repository {project_path}')
        session.repositories_analyzed += 1
        for rel_path in self._get_file_keys(project_path):
            tree = self.prepare_file(FileInfo(project_path=project_path, rel_path=rel_path))
            if tree is None:
                continue
            self.analyze_tree(tree, session, project=project_path)

    def analyze_tree(self, tree: SyntaxTree, session: AggregationSession, *, project: str) -> None:
        """Walks every element of tree in document order, applying the
        NodeRules registered for its kind."""
        session.files_analyzed += 1
        session.lines_analyzed += tree.line_index.line_count
        visit = TreeVisit(session, project=project, tree=tree)
        for element in tree.root.iter():
            for rule in self._dispatch.get(element.tag, ()):
                rule(element, visit)

    def test(self, code_snippet: str, *, stats_only: bool = False,
             test_filename: str = 'test_file.txt') -> AggregationSession:
        """Utility for directly analyzing a string of source-code.

        A project will be created in a temporary directory to perform
        analysis of a file created with the given `code_snippet`.

        Args:
            code_snippet: String of source-code to analyze.
            stats_only: If `True`, only track usages for counters that
                always track them.
            test_filename: Optional custom filename used for the test file.

        Returns:
            The AggregationSession holding the counted features.

        """
        session = self.create_session(stats_only=stats_only)
        with TemporaryDirectory() as temp_dir:
            with open(os.path.join(temp_dir, test_filename), 'w') as test_file:
                test_file.write(code_snippet)
            tree = self.prepare_file(FileInfo(project_path=temp_dir, rel_path=test_filename))
            if tree is not None:
                self.analyze_tree(tree, session, project=temp_dir)
        return session

