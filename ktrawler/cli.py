"""
Command-line entrypoint for ktrawler.

Usage:
    ktrawler [options] <corpus-directory-path>
    ktrawler -local -stats-only /data/kotlin-corpus
    ktrawler -only-analyze path/to/project
"""

import argparse
import os
import sys
from typing import List, Optional

from .analyzers.kotlin import KotlinAnalyzer
from .core import DEFAULT_MAX_REPO_COUNT, KotlinSurvey
from .sources import Corpus, GithubSearchSource


class ExactOptionParser(argparse.ArgumentParser):
    """ArgumentParser accepting only exactly spelled options.

    argparse still expands prefixes of single-dash options on some Python
    versions even when `allow_abbrev` is False.
    """

    def parse_known_args(self, args=None, namespace=None):
        args = sys.argv[1:] if args is None else list(args)
        for arg in args:
            if arg == '--':
                break
            if not arg.startswith('-') or len(arg) == 1 or arg[1:].isdigit():
                continue
            if arg.split('=', 1)[0] not in self._option_string_actions:
                self.error(f'unrecognized arguments: {arg}')
        return super().parse_known_args(args, namespace)


def build_parser() -> argparse.ArgumentParser:
    """
    Build the argument parser.

    Options keep their single-dash spelling, so abbreviations are
    rejected to stop e.g. `-l` from matching `-local`.
    """
    parser = ExactOptionParser(
        prog='ktrawler',
        usage='ktrawler [options] <corpus-directory-path>',
        description='Count the usage of Kotlin language features across a corpus of repositories.',
        allow_abbrev=False,
    )
    parser.add_argument(
        '-local',
        action='store_true',
        help='use local repository versions, do not update from GitHub',
    )
    parser.add_argument(
        '-stats-only',
        action='store_true',
        dest='stats_only',
        help="don't track individual usages, only their counts",
    )
    parser.add_argument(
        '-only-analyze',
        action='store_true',
        dest='only_analyze',
        help='only analyze a local corpus, no interaction with GitHub',
    )
    parser.add_argument(
        '-max-repo-count',
        type=int,
        default=DEFAULT_MAX_REPO_COUNT,
        dest='max_repo_count',
        help='maximum number of repos to process',
    )
    parser.add_argument(
        '-continue-on-failure',
        action='store_true',
        dest='continue_on_failure',
        help='skip repositories that fail to clone instead of stopping discovery',
    )
    parser.add_argument(
        '-db',
        default=None,
        dest='db_filepath',
        help='path to an sqlite database to export results to',
    )
    parser.add_argument(
        '-no-progress',
        action='store_true',
        dest='no_progress',
        help='do not display a progress bar',
    )
    parser.add_argument(
        'corpus_directory_path',
        help='directory holding local repository copies, or a project with -only-analyze',
    )
    return parser


def main(argv: Optional[List[str]] = None) -> int:
    """Parse arguments, run the survey and print its report."""
    args = build_parser().parse_args(argv)

    analyzer = KotlinAnalyzer()
    if args.only_analyze:
        survey = KotlinSurvey(analyzer=analyzer, stats_only=args.stats_only,
                              db_filepath=args.db_filepath)
        survey.analyze_project(args.corpus_directory_path)
        survey.save()
    else:
        survey = KotlinSurvey.from_list_files(
            analyzer=analyzer,
            corpus=Corpus(args.corpus_directory_path, continue_on_failure=args.continue_on_failure),
            source=GithubSearchSource(
                auth_username=os.environ.get('GITHUB_USERNAME'),
                auth_token=os.environ.get('GITHUB_TOKEN'),
            ),
            stats_only=args.stats_only,
            db_filepath=args.db_filepath,
        )
        survey.run(
            local=args.local,
            max_repo_count=args.max_repo_count,
            disable_progress=args.no_progress,
        )

    print(survey.report())
    return 0
