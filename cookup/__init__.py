"""
CookUp - recipe browsing over TheMealDB with synced favorites
"""

__version__ = "1.0.0"
