"""Common utility functions."""

import logging
import os.path
from typing import Hashable, List, Sequence, TypeVar


def get_logger():
    """
    Return a logger configured for use by ktrawler modules.
    """
    logger = logging.getLogger('ktrawler')
    logger_handler = logging.StreamHandler()
    logger.addHandler(logger_handler)
    logger_formatter = logging.Formatter('%(asctime)s - %(levelname)s: %(message)s',
                                         '%Y-%m-%d %H:%M:%S')
    logger_handler.setFormatter(logger_formatter)
    logger.setLevel(logging.INFO)
    return logger


logger = get_logger()
"""`logging.Logger` object that ktrawler logs events to during survey runs.

Can be used to customize logging:

```python
import logging
from ktrawler import logger

logger.setLevel(logging.ERROR)
```
"""


def read_list_file(filepath: str) -> List[str]:
    """
    Returns the stripped, non-blank lines of the file at filepath, or an
    empty list if the file does not exist.
    """
    if not os.path.exists(filepath):
        return []
    with open(filepath, 'r') as f:
        lines = [line.strip() for line in f]
    return [line for line in lines if line]


def is_excluded_repo(repo_path: str, excluded_repos: List[str]) -> bool:
    """
    Returns True if repo_path ends with `/` followed by any of the
    excluded_repos entries.
    """
    normalized_path = repo_path.replace(os.sep, '/')
    return any(normalized_path.endswith('/' + excluded) for excluded in excluded_repos)


T = TypeVar('T', bound=Hashable)


def get_duplicates(items: Sequence[T]) -> List[T]:
    """
    Returns a list of any duplicate values in items.
    """
    seen = set()
    duplicates = []
    for item in items:
        if item in seen:
            if item not in duplicates:
                duplicates.append(item)
        else:
            seen.add(item)
    return duplicates
