"""Local working copies of discovered Repos."""

import os
import os.path
import subprocess
import time
from typing import Callable, List

from ktrawler.utils import logger
from .core import GithubSearchSource, Repo


def run_git(args: List[str], *, cwd: str) -> int:
    """Helper to run a git command in cwd, returning its exit code.

    Failure to launch git at all is reported as exit code -1.
    """
    try:
        result = subprocess.run(['git', *args], cwd=cwd, capture_output=True, text=True)
    except OSError as ex:
        logger.error(f'Failed to run git {args[0]} in "{cwd}": {ex}')
        return -1
    if result.returncode != 0 and result.stderr:
        logger.error(f'> STDERR {result.stderr.strip()}')
    return result.returncode


class Corpus:
    """Maintains a local clone of each Repo under a base directory, laid
    out as `base_dir/owner/name`.

    Example usage:

    ```python
    corpus = Corpus('/data/kotlin-corpus')
    corpus.update(GithubSearchSource(), analyze_repo_path)
    ```

    """

    def __init__(self, base_dir: str, *,
                 clone_cooldown: float = 15,
                 update_cooldown: float = 5,
                 continue_on_failure: bool = False):
        """
        Args:
            base_dir: Directory holding one subdirectory per Repo owner.
            clone_cooldown: Seconds to pause after each successful clone.
            update_cooldown: Seconds to pause after each update.
            continue_on_failure: If `True`, a failed clone only skips that
                Repo. Otherwise a failed clone stops discovery entirely.
        """
        self.base_dir = base_dir
        self.clone_cooldown = clone_cooldown
        self.update_cooldown = update_cooldown
        self.continue_on_failure = continue_on_failure

    def path_to(self, repo: Repo) -> str:
        """Returns the local directory of the given Repo."""
        return os.path.join(self.base_dir, repo.owner, repo.name)

    def update(self, source: GithubSearchSource, callback: Callable[[str], bool], *,
               local: bool = False) -> None:
        """Ensures a local copy of each Repo discovered by source and passes
        its path to callback.

        Discovery stops as soon as callback returns `False`, or when a
        Repo cannot be cloned (unless continue_on_failure is set).

        Args:
            source: Source to discover Repos from.
            callback: Called with the local path of each available Repo;
                returns whether discovery should continue.
            local: If `True`, never clone or update; use whatever
                local copies already exist.

        """

        def handle_repo(repo: Repo, index: int, total_count: int) -> bool:
            logger.info(f'[{index}/{total_count}] {repo}')
            if not local and not self.ensure_local(repo):
                if self.continue_on_failure:
                    logger.info(f'Skipping repo "{repo}"')
                    return True
                logger.error(f'Stopping discovery after failing to clone "{repo}"')
                return False
            return callback(self.path_to(repo))

        source.process_repos(handle_repo)

    def ensure_local(self, repo: Repo) -> bool:
        """Clones the Repo if it has no local copy, or otherwise updates
        the existing copy.

        Returns `False` only if a clone failed. A failed update leaves the
        previous copy usable.

        """
        if os.path.exists(self.path_to(repo)):
            self.update_repo(repo)
            return True
        return self.clone_repo(repo)

    def clone_repo(self, repo: Repo) -> bool:
        owner_dir = os.path.join(self.base_dir, repo.owner)
        os.makedirs(owner_dir, exist_ok=True)
        logger.info(f'Cloning repo {repo}')
        returncode = run_git(['clone', repo.clone_url, repo.name], cwd=owner_dir)
        if returncode != 0:
            logger.error(f'Repo clone failed: exit code {returncode}')
            return False
        time.sleep(self.clone_cooldown)
        return True

    def update_repo(self, repo: Repo) -> None:
        logger.info(f'Updating repo {repo}')
        returncode = run_git(['pull'], cwd=self.path_to(repo))
        if returncode != 0:
            logger.error(f'Repo update failed: exit code {returncode}')
        time.sleep(self.update_cooldown)
