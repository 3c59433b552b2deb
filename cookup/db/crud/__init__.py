"""
CRUD Operations Module
"""
from cookup.db.crud.favorites import FavoritesCRUD

__all__ = [
    "FavoritesCRUD",
]
