from .enrichment import (
    GOA_PLACES,
    INDIAN_DESTINATIONS,
    NominatimEnricher,
    PlaceEnricher,
    PlaceSearchService,
    enhance_search_query,
)

__all__ = [
    "GOA_PLACES",
    "INDIAN_DESTINATIONS",
    "NominatimEnricher",
    "PlaceEnricher",
    "PlaceSearchService",
    "enhance_search_query",
]
