from pasaeldato.services.communities import CommunityRegion
from pasaeldato.services.search import SearchEngine, SearchResult
from pasaeldato.services.tips import ContentStore

__all__ = ["CommunityRegion", "ContentStore", "SearchEngine", "SearchResult"]
