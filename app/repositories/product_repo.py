# app/repositories/product_repo.py
from datetime import datetime, timezone

from sqlalchemy import String, cast, func, or_, update
from sqlmodel import Session, select

from app.models.product import Product


class ProductRepository:
    """
    Data access layer for Product.

    - Pure DB operations (CRUD + queries).
    - Stock changes go through conditional UPDATEs so two concurrent
      reservations can never push stock_count below zero.
    - No FastAPI, no business logic.
    """

    # ----- Products -----

    def get_by_id(self, session: Session, product_id: str) -> Product | None:
        stmt = select(Product).where(Product.id == product_id, Product.deleted_at.is_(None))
        return session.exec(stmt).first()

    def get_by_slug(self, session: Session, slug: str) -> Product | None:
        stmt = select(Product).where(Product.slug == slug, Product.deleted_at.is_(None))
        return session.exec(stmt).first()

    def search_live(
        self,
        session: Session,
        *,
        text: str | None = None,
        category: str | None = None,
        tags: list[str] | None = None,
        sort_field: str | None = None,
        descending: bool = False,
        offset: int = 0,
        limit: int = 10,
    ) -> tuple[int, list[Product]]:
        """
        Filtered, sorted page of live products plus the total match count.

        - text: case-insensitive substring of name, category or any tag
        - tags: keeps products carrying at least one of them
        """
        # tags is a JSON array; its text form is matched as '"tag"'
        tags_text = func.lower(cast(Product.tags, String), type_=String)
        conditions = [Product.deleted_at.is_(None)]
        if category is not None:
            conditions.append(Product.category == category)
        if text:
            needle = text.strip().lower()
            conditions.append(
                or_(
                    func.lower(Product.name, type_=String).contains(needle, autoescape=True),
                    func.lower(Product.category, type_=String).contains(needle, autoescape=True),
                    tags_text.contains(needle, autoescape=True),
                )
            )
        if tags:
            conditions.append(
                or_(*(tags_text.contains(f'"{tag.lower()}"', autoescape=True) for tag in tags))
            )

        total = session.exec(select(func.count()).select_from(Product).where(*conditions)).one()

        if sort_field:
            column = getattr(Product, sort_field)
            order_by = [column.desc() if descending else column.asc(), Product.id]
        else:
            order_by = [Product.created_at, Product.id]
        stmt = select(Product).where(*conditions).order_by(*order_by).offset(offset).limit(limit)
        return total, session.exec(stmt).all()

    def create(self, session: Session, product: Product) -> Product:
        session.add(product)
        session.commit()
        session.refresh(product)
        return product

    def update(self, session: Session, product: Product) -> Product:
        product.updated_at = datetime.now(timezone.utc)
        session.add(product)
        session.commit()
        session.refresh(product)
        return product

    def soft_delete(self, session: Session, product: Product) -> None:
        now = datetime.now(timezone.utc)
        product.deleted_at = now
        product.updated_at = now
        session.add(product)
        session.commit()

    # ----- Stock (no commit; caller owns the transaction) -----

    def decrement_stock(self, session: Session, product_id: str, quantity: int) -> bool:
        """
        Take `quantity` units out of stock if, and only if, enough remain.

        Returns:
            True if the row was updated, False if stock was insufficient or
            the product does not exist.
        """
        stmt = (
            update(Product)
            .where(
                Product.id == product_id,
                Product.deleted_at.is_(None),
                Product.stock_count >= quantity,
            )
            .values(stock_count=Product.stock_count - quantity)
            .execution_options(synchronize_session=False)
        )
        return session.execute(stmt).rowcount == 1

    def increment_stock(self, session: Session, product_id: str, quantity: int) -> None:
        stmt = (
            update(Product)
            .where(Product.id == product_id)
            .values(stock_count=Product.stock_count + quantity)
            .execution_options(synchronize_session=False)
        )
        session.execute(stmt)
