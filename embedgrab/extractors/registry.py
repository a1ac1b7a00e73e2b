from typing import List, Optional

from .base import BaseExtractor

class ExtractorRegistry:
    """
    Registry for managing available stream extractors.
    Registration order is lookup order, so catch-all extractors go last.
    """

    def __init__(self):
        self._extractors: List[BaseExtractor] = []

    def register(self, extractor: BaseExtractor):
        """Register a new extractor instance."""
        self._extractors.append(extractor)

    def get_extractor(self, url: str) -> Optional[BaseExtractor]:
        """
        Find an extractor that supports the given URL.

        Returns:
            The first registered extractor that supports it, or None.
        """
        for extractor in self._extractors:
            if extractor.supports(url):
                return extractor
        return None

    def __len__(self):
        return len(self._extractors)
