from .acm import AcmPortal
from .base import Fetcher, Provider, ResultParser
from .openalex import OpenAlex
from .pagination import PageConvention
from .scopus import Scopus
from .semantic_scholar import SemanticScholar

__all__ = [
    "Fetcher",
    "Provider",
    "ResultParser",
    "PageConvention",
    "AcmPortal",
    "OpenAlex",
    "Scopus",
    "SemanticScholar",
]
