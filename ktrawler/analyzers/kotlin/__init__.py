from .core import KotlinAnalyzer, convert_tree, kotlin_test_data_filter
from .features import KOTLIN_CATALOG, KOTLIN_RULES

__all__ = [
    'KotlinAnalyzer',
    'KOTLIN_CATALOG',
    'KOTLIN_RULES',
    'convert_tree',
    'kotlin_test_data_filter',
]
