"""
Search Controller
=================

Responsibility:
- End-to-end composition: data -> split -> family comparison -> search -> final fit -> test evaluation -> report.
"""

from .search_controller import SearchController, SearchResult

__all__ = ['SearchController', 'SearchResult']
