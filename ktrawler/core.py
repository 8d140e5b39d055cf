"""Top-level components for running Kotlin corpus surveys."""

from typing import List, Optional

from tqdm import tqdm
from tqdm.contrib.logging import logging_redirect_tqdm

from .utils import logger, is_excluded_repo, read_list_file
from .analyzers import AggregationSession, FileAnalyzer
from .sources import Corpus, GithubSearchSource
from .database import Database
from .report import render_report

DEFAULT_MAX_REPO_COUNT = 1_000_000


class KotlinSurvey:
    """Primary interface for running surveys and reporting their results.

    A KotlinSurvey discovers repositories with a
    [`GithubSearchSource`][ktrawler.sources.GithubSearchSource], keeps
    a local copy of each in a [`Corpus`][ktrawler.sources.Corpus],
    and counts the features of each local copy with a
    [`FileAnalyzer`][ktrawler.analyzers.FileAnalyzer] into a single
    [`AggregationSession`][ktrawler.analyzers.AggregationSession].

    Example usage:

    ```python
    survey = KotlinSurvey(
        corpus=Corpus('/data/kotlin-corpus'),
        source=GithubSearchSource(),
        analyzer=KotlinAnalyzer(),
    )
    survey.run(max_repo_count=10)
    print(survey.report())
    ```

    """

    def __init__(self, *,
                 analyzer: FileAnalyzer,
                 corpus: Optional[Corpus] = None,
                 source: Optional[GithubSearchSource] = None,
                 stats_only: bool = False,
                 excluded_repos: Optional[List[str]] = None,
                 private_repos: Optional[List[str]] = None,
                 db_filepath: Optional[str] = None):
        """
        Args:
            analyzer: Analyzer to count features with.
            corpus: Corpus holding local copies of discovered repositories.
                Required unless only `analyze_project()` is used.
            source: Source to discover repositories from. Defaults to a
                GitHub search for Kotlin repositories.
            stats_only: If `True`, only record feature usage locations for
                counters that always track them.
            excluded_repos: Repository name suffixes (e.g. `owner/name`) to
                skip analyzing.
            private_repos: Paths of additional local projects to analyze
                after discovery.
            db_filepath: If specified, path to an sqlite database file that
                results will be exported to after each run.
        """
        self.analyzer = analyzer
        self.corpus = corpus
        self.source = GithubSearchSource() if source is None else source
        self.excluded_repos = [] if excluded_repos is None else excluded_repos
        self.private_repos = [] if private_repos is None else private_repos
        self.db_filepath = db_filepath
        self.session: AggregationSession = analyzer.create_session(stats_only=stats_only)

    @classmethod
    def from_list_files(cls, *,
                        excluded_repos_path: str = 'excludedRepos.txt',
                        private_repos_path: str = 'privateRepos.txt',
                        **kwargs) -> 'KotlinSurvey':
        """Creates a KotlinSurvey with excluded_repos and private_repos read
        from list files, one entry per line, if they exist."""
        return cls(
            excluded_repos=read_list_file(excluded_repos_path),
            private_repos=read_list_file(private_repos_path),
            **kwargs,
        )

    def analyze_project(self, project_path: str) -> None:
        """Counts the features of a single local project directory."""
        self.analyzer.analyze_repo(project_path, self.session)

    def run(self, *,
            local: bool = False,
            max_repo_count: int = DEFAULT_MAX_REPO_COUNT,
            disable_progress: bool = False) -> None:
        """Runs the survey over discovered repositories, then over any
        private repositories.

        Args:
            local: If `True`, analyze existing local copies without
                cloning or updating them.
            max_repo_count: Discovery stops once this many repositories
                have been analyzed.
            disable_progress: If `True`, do not display a tqdm progress
                bar counting analyzed repositories.
        """
        if self.corpus is None:
            raise ValueError('Cannot run a KotlinSurvey without a corpus')

        repo_pbar = tqdm(
            desc='Repos',
            unit='repos',
            total=(None if max_repo_count >= DEFAULT_MAX_REPO_COUNT else max_repo_count),
            disable=disable_progress,
        )
        analyzed_count = 0

        def handle_repo_path(repo_path: str) -> bool:
            nonlocal analyzed_count
            if is_excluded_repo(repo_path, self.excluded_repos):
                logger.info(f'Skipping excluded repository {repo_path}')
                return True
            self.analyze_project(repo_path)
            analyzed_count += 1
            repo_pbar.update(1)
            return analyzed_count < max_repo_count

        with logging_redirect_tqdm(loggers=[logger]):
            try:
                self.corpus.update(self.source, handle_repo_path, local=local)
                for private_repo in self.private_repos:
                    logger.info(f'Analyzing private repository {private_repo}')
                    self.analyze_project(private_repo)
            except KeyboardInterrupt:
                logger.info('Interrupted')
                raise
            finally:
                repo_pbar.close()
        self.save()

    def save(self) -> None:
        """Exports the current results to db_filepath, if configured."""
        if self.db_filepath is None:
            return
        logger.info(f'Saving results to {self.db_filepath}')
        db = Database(self.db_filepath)
        db.initialize()
        try:
            db.save_session(self.session)
        finally:
            db.close()

    def report(self) -> str:
        """Returns the textual report of the current results."""
        return render_report(self.session)
