"""
NCBI adapters

- PubMedBackend: esearch/efetch retrieval via Bio.Entrez
- ICiteMetricsBackend: citation metrics from NIH iCite
"""

from .base import EntrezBase, is_retryable_ncbi, map_entrez_error
from .icite import ICiteMetricsBackend
from .search import PubMedBackend, build_filtered_query

__all__ = [
    "EntrezBase",
    "ICiteMetricsBackend",
    "PubMedBackend",
    "build_filtered_query",
    "is_retryable_ncbi",
    "map_entrez_error",
]
