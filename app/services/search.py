# app/services/search.py
"""
Product search.

SqlSearchIndex answers searches straight from the products table: text,
category and tag filters, sorting and paging all run in SQL. A dedicated
search engine can replace it behind the same `search()` call.
"""
from sqlmodel import Session

from app.models.product import Product
from app.repositories.product_repo import ProductRepository
from app.schemas.product import ProductSearch


class SqlSearchIndex:
    def __init__(self, repo: ProductRepository):
        self.repo = repo

    def search(self, session: Session, query: ProductSearch) -> tuple[int, list[Product]]:
        """
        Returns:
            (total number of matches, products on the requested page)
        """
        return self.repo.search_live(
            session,
            text=query.q,
            category=query.category,
            tags=query.tags,
            sort_field=query.sort_field,
            descending=query.sort_order == "desc",
            offset=(query.page - 1) * query.limit,
            limit=query.limit,
        )
