"""Move search: the alpha-beta service and its background worker."""

from .service import SearchResult, SearchService
from .worker import SearchWorker
