from .core import FileAnalyzer, FileInfo, LineIndex, NodeKind, SyntaxTree, TreeVisit
from .features import (
    AggregationSession, CounterSpec, FeatureCounter, FeatureUsage,
    NodeRule, RuleContext, Tracking, node_rule,
)

__all__ = [
    'AggregationSession',
    'CounterSpec',
    'FeatureCounter',
    'FeatureUsage',
    'FileAnalyzer',
    'FileInfo',
    'LineIndex',
    'NodeKind',
    'NodeRule',
    'RuleContext',
    'SyntaxTree',
    'Tracking',
    'TreeVisit',
    'node_rule',
]
