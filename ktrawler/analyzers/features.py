from dataclasses import dataclass, field
from enum import Enum
from functools import wraps
from typing import cast, Callable, Dict, Iterator, List, Optional, Protocol, Sequence, Set

import lxml.etree

from ktrawler.utils import get_duplicates


@dataclass(frozen=True)
class FeatureUsage:
    """A single recorded occurrence of a feature."""

    project: str
    """Identifier (root path) of the project the occurrence was found in."""

    path: Optional[str]
    """Path of the containing file relative to the project root."""

    line: int
    """1-based line number of the start of the occurrence."""


class Tracking(Enum):
    """Whether a FeatureCounter records the location of each usage."""

    ALWAYS = 'always'
    """Usages are tracked even when only statistics are requested."""

    DETAILED = 'detailed'
    """Usages are tracked unless only statistics are requested."""

    NEVER = 'never'
    """Only counts are kept."""


@dataclass(frozen=True)
class CounterSpec:
    """Declaration of a FeatureCounter in a catalog."""

    key: str
    """Identifier used by rules to find the counter."""

    label: str
    """Human-readable name shown in reports."""

    tracking: Tracking = Tracking.NEVER


@dataclass
class FeatureCounter:
    """Accumulates the occurrences of a single feature across projects."""

    name: str
    """Human-readable name of the feature."""

    track_usages: bool = False
    """If `True`, the location of every occurrence is kept in usages."""

    count: int = 0
    """Total number of occurrences."""

    projects: Set[str] = field(default_factory=set)
    """Distinct projects the feature occurred in."""

    usages: List[FeatureUsage] = field(default_factory=list)
    """Locations of occurrences, in the order they were found. Always
    empty unless track_usages is set."""

    def increment(self, project: str, path: Optional[str], line: int) -> None:
        self.count += 1
        self.projects.add(project)
        if self.track_usages:
            self.usages.append(FeatureUsage(project=project, path=path, line=line))


@dataclass
class AggregationSession:
    """All FeatureCounters of a survey run along with running totals.

    Created once per run and exclusively mutated by an Analyzer until
    the final report is produced.

    """

    counters: Dict[str, FeatureCounter]
    """FeatureCounters keyed by CounterSpec key, in report order."""

    repositories_analyzed: int = 0
    files_analyzed: int = 0
    lines_analyzed: int = 0

    @classmethod
    def from_catalog(cls, catalog: Sequence[CounterSpec], *, stats_only: bool = False) -> 'AggregationSession':
        """Creates a session with one empty FeatureCounter per CounterSpec.

        Args:
            catalog: CounterSpecs in the order they should be reported.
            stats_only: If `True`, only counters with `Tracking.ALWAYS`
                record usage locations.

        Raises:
            ValueError: The catalog contains duplicate keys.

        """
        duplicate_keys = get_duplicates([spec.key for spec in catalog])
        if duplicate_keys:
            raise ValueError(f'Duplicate feature counter keys: {", ".join(duplicate_keys)}')
        return cls(counters={
            spec.key: FeatureCounter(
                name=spec.label,
                track_usages=(spec.tracking is Tracking.ALWAYS
                              or (spec.tracking is Tracking.DETAILED and not stats_only)),
            )
            for spec in catalog
        })

    def __getitem__(self, key: str) -> FeatureCounter:
        return self.counters[key]

    def __iter__(self) -> Iterator[FeatureCounter]:
        return iter(self.counters.values())


class RuleContext(Protocol):
    """What a NodeRule is given alongside the element it fires on."""

    def increment(self, key: str, element: lxml.etree._Element) -> None:
        """Increment the counter with the given key for an occurrence at
        element."""
        pass


NodeRuleFunction = Callable[[lxml.etree._Element, RuleContext], None]


class NodeRule(Protocol):
    """Callable inspecting a syntax tree element of a given kind and
    incrementing any matching feature counters."""

    kind: str
    """NodeKind value of the elements the rule is applied to."""

    def __call__(self, element: lxml.etree._Element, context: RuleContext) -> None:
        pass


def node_rule(kind: Enum) -> Callable[[NodeRuleFunction], NodeRule]:
    """Decorator for defining a NodeRule applied to elements of the given
    kind.

    Example usage:

    ```python
    @node_rule(NodeKind.WHILE)
    def count_while(element, context):
        context.increment('while_loops', element)
    ```

    """

    def decorator(func: NodeRuleFunction) -> NodeRule:

        @wraps(func)
        def decorated(element, context):
            func(element, context)

        rule = cast(NodeRule, decorated)
        rule.kind = kind.value
        return rule

    return decorator


def dispatch_table(rules: Sequence[NodeRule]) -> Dict[str, List[NodeRule]]:
    """Groups rules by the element kind they apply to, keeping their
    order within each kind."""
    table: Dict[str, List[NodeRule]] = {}
    for rule in rules:
        table.setdefault(rule.kind, []).append(rule)
    return table
