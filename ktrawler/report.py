"""Textual summary of a finished survey."""

from typing import List

from .analyzers import AggregationSession, FeatureCounter


def render_counter(counter: FeatureCounter) -> List[str]:
    lines = [f'{counter.name}: {counter.count} in {len(counter.projects)} projects']
    for usage in counter.usages:
        lines.append(f'  Project: {usage.project}; path: {usage.path}:{usage.line}')
    return lines


def render_report(session: AggregationSession) -> str:
    """Returns the run totals followed by every FeatureCounter, in catalog
    order, with the usages of counters that track them."""
    lines = [
        f'Repositories analyzed: {session.repositories_analyzed}',
        f'Files analyzed: {session.files_analyzed}',
        f'Lines analyzed: {session.lines_analyzed}',
    ]
    for counter in session:
        lines.extend(render_counter(counter))
    return '\n'.join(lines)
