"""Discovery of candidate Repos from GitHub's repository search."""

from dataclasses import dataclass, field
from typing import Callable, Dict, Iterator, List, Optional, Tuple, Union

import requests

from ktrawler.utils import logger


class SourceError(Exception):
    """Raised for any failure of a Source to fetch a page of Repos."""
    pass


@dataclass(frozen=True)
class Repo:
    """A remote repository discovered by a Source."""

    full_name: str
    """Unique `owner/name` of the Repo."""

    clone_url: str = field(compare=False)
    """URL that the Repo can be Git cloned from."""

    @property
    def owner(self) -> str:
        return self.full_name.split('/', 1)[0]

    @property
    def name(self) -> str:
        return self.full_name.split('/', 1)[-1]

    def __str__(self):
        return self.full_name

    def __repr__(self):
        return f'{self.__class__.__name__}({self})'


@dataclass(frozen=True)
class SearchResultPage:
    """A single page of repository search results."""

    total_count: int
    """Total number of results across all pages."""

    items: List[Repo]
    """Repos on this page, in search order."""


RepoCallback = Callable[[Repo, int, int], bool]
"""Called with each Repo, its 1-based index across all pages, and the
total result count. Returning `False` stops discovery."""


class GithubSearchSource:
    """Source of Repos from every page of a GitHub repository search.

    Pages are fetched lazily, one blocking request at a time, until as
    many Repos have been produced as the search reports in total.

    For explanations of GitHub search parameters, see:
    https://docs.github.com/en/free-pro-team@latest/rest/search/search#search-repositories

    GitHub authentication credentials can be provided to increase rate
    limits. See:
    https://docs.github.com/en/rest/overview/authenticating-to-the-rest-api

    Example usage:

    ```python
    GithubSearchSource(query='language:kotlin')
    ```

    """
    name = 'github_search'

    SEARCH_URL = 'https://api.github.com/search/repositories'
    REPOS_PER_PAGE = 100

    def __init__(self, *,
                 query: str = 'language:kotlin',
                 per_page: int = REPOS_PER_PAGE,
                 auth_username: Optional[str] = None,
                 auth_token: Optional[str] = None):
        """
        Args:
            query: GitHub search query for repositories.
            per_page: Number of Repos requested per page.
            auth_username: Username for GitHub authentication.
            auth_token: Token for GitHub authentication.
        """
        self.query = query
        self.per_page = per_page
        self.auth = (auth_username, auth_token) if auth_username and auth_token else None

    def __str__(self):
        return self.name

    def __repr__(self):
        return f'{self.__class__.__name__}({self.query!r})'

    def _search_repos(self, *, page: int) -> SearchResultPage:
        """Makes a GitHub repo search API call for the specified page index.

        Any transport, HTTP or decoding failure is raised as a
        SourceError.

        See:

        * https://docs.github.com/en/rest/search#search-repositories
        """
        params: Dict[str, Union[str, int]] = {
            'q': self.query,
            'page': page,
            'per_page': self.per_page,
        }
        try:
            r = requests.get(self.SEARCH_URL, auth=self.auth, params=params)
            r.raise_for_status()
            r_json = r.json()
            return SearchResultPage(
                total_count=int(r_json['total_count']),
                items=[
                    Repo(full_name=item['full_name'], clone_url=item['clone_url'])
                    for item in r_json['items']
                ],
            )
        except (requests.RequestException, ValueError, KeyError, TypeError) as ex:
            raise SourceError(f'Source {self} failed to search page {page} of "{self.query}": {ex}') from ex

    def repo_generator(self) -> Iterator[Tuple[Repo, int, int]]:
        """Generator yielding `(repo, index, total_count)` for every search
        result across all pages."""
        page = 1
        total_count: Optional[int] = None
        fetched_count = 0
        repo_index = 0
        while total_count is None or fetched_count < total_count:
            logger.info(f'Source "{self}" searching GitHub for repos (page {page})')
            search_result = self._search_repos(page=page)
            page += 1
            total_count = search_result.total_count
            fetched_count += len(search_result.items)
            for repo in search_result.items:
                repo_index += 1
                yield repo, repo_index, total_count
            # Guard against searches that stop returning results before
            # reaching their reported total.
            if not search_result.items:
                return

    def process_repos(self, callback: RepoCallback) -> None:
        """Calls callback for each discovered Repo until the search is
        exhausted or callback returns `False`."""
        for repo, index, total_count in self.repo_generator():
            if not callback(repo, index, total_count):
                return
