from .core import GithubSearchSource, Repo, RepoCallback, SearchResultPage, SourceError
from .corpus import Corpus

__all__ = [
    'Corpus',
    'GithubSearchSource',
    'Repo',
    'RepoCallback',
    'SearchResultPage',
    'SourceError',
]
