"""Library for surveying a corpus of Kotlin repositories for the frequency
of language features.

Typical usage:

```python
from ktrawler import KotlinSurvey
from ktrawler.sources import Corpus, GithubSearchSource
from ktrawler.analyzers.kotlin import KotlinAnalyzer

survey = KotlinSurvey(
    corpus=Corpus('/path/to/corpus'),
    source=GithubSearchSource(query='language:kotlin'),
    analyzer=KotlinAnalyzer(),
)
survey.run(max_repo_count=1)
print(survey.report())
```

"""

__version__ = '0.1.0'

from .core import KotlinSurvey
from .analyzers import AggregationSession, FeatureCounter, FeatureUsage
from .report import render_report
from .utils import logger
from . import sources
from . import analyzers

__all__ = [
    'KotlinSurvey',
    'AggregationSession',
    'FeatureCounter',
    'FeatureUsage',
    'render_report',
    'logger',
    'sources',
    'analyzers',
]
