import os
from typing import List, Optional, Sequence

import lxml.etree
import pytest

from ktrawler.analyzers import FileAnalyzer, FileInfo, LineIndex, SyntaxTree
from ktrawler.analyzers.kotlin.features import KOTLIN_CATALOG, KOTLIN_RULES
from ktrawler.sources import GithubSearchSource, Repo, SearchResultPage


class XmlAnalyzer(FileAnalyzer):
    """Analyzer reading already-normalized syntax trees from .xml files."""
    default_name = 'xml'
    default_file_glob = '**/*.xml'

    def __init__(self, **kwargs):
        super().__init__(rules=KOTLIN_RULES, catalog=KOTLIN_CATALOG, **kwargs)

    def prepare_file(self, file_info: FileInfo) -> Optional[SyntaxTree]:
        with open(file_info.abs_path, 'rb') as f:
            source = f.read()
        return SyntaxTree(
            root=lxml.etree.fromstring(source),
            rel_path=file_info.rel_path,
            line_index=LineIndex.from_bytes(source),
        )


class FakeSearchSource(GithubSearchSource):
    """GithubSearchSource serving pages from a list of Repos."""

    def __init__(self, repos: Sequence[Repo], **kwargs):
        super().__init__(**kwargs)
        self.repos = list(repos)
        self.requested_pages: List[int] = []

    def _search_repos(self, *, page: int) -> SearchResultPage:
        self.requested_pages.append(page)
        start = (page - 1) * self.per_page
        return SearchResultPage(
            total_count=len(self.repos),
            items=self.repos[start:start + self.per_page],
        )


def make_repo(full_name: str) -> Repo:
    return Repo(full_name=full_name, clone_url=f'https://github.com/{full_name}.git')


@pytest.fixture
def xml_analyzer():
    return XmlAnalyzer()


@pytest.fixture
def make_source():
    def factory(full_names: Sequence[str], **kwargs) -> FakeSearchSource:
        return FakeSearchSource([make_repo(full_name) for full_name in full_names], **kwargs)
    return factory


@pytest.fixture
def write_project(tmp_path):
    """Writes files into a project directory under tmp_path, returning the
    project path."""
    def factory(rel_dir: str, path_to_content: dict) -> str:
        project_dir = os.path.join(str(tmp_path), rel_dir)
        for path, content in path_to_content.items():
            abs_path = os.path.join(project_dir, path)
            os.makedirs(os.path.dirname(abs_path), exist_ok=True)
            with open(abs_path, 'w') as f:
                f.write(content)
        os.makedirs(project_dir, exist_ok=True)
        return project_dir
    return factory
