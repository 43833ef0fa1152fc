# app/routers/products.py
from fastapi import APIRouter, Depends, Query, Response, status
from sqlmodel import Session

from app.core.auth import get_claim
from app.core.policy import enforce
from app.database import get_session
from app.schemas.auth import TokenClaim
from app.schemas.product import (
    ProductCreate,
    ProductRead,
    ProductSearch,
    ProductUpdate,
    SearchPage,
    SortField,
    SortOrder,
)
from app.services.container import Services, get_services

router = APIRouter(prefix="/products", tags=["Products"])


# -------- Public endpoints --------


@router.get("", response_model=SearchPage)
def search_products(
    q: str | None = None,
    category: str | None = None,
    tags: list[str] | None = Query(default=None),
    page: int = Query(default=1, ge=1),
    limit: int = Query(default=10, ge=1, le=100),
    sort_field: SortField | None = None,
    sort_order: SortOrder = "asc",
    session: Session = Depends(get_session),
    services: Services = Depends(get_services),
):
    """
    Search the catalog.

    Query params:
      - q: free text over name, category and tags
      - category: exact category
      - tags: repeatable (?tags=a&tags=b), matches any
      - page / limit: 1-based paging
      - sort_field / sort_order
    """
    query = ProductSearch(
        q=q,
        category=category,
        tags=tags,
        page=page,
        limit=limit,
        sort_field=sort_field,
        sort_order=sort_order,
    )
    return services.products.search(session, query)


@router.get("/{product_id}", response_model=ProductRead)
def get_product(
    product_id: str,
    session: Session = Depends(get_session),
    services: Services = Depends(get_services),
):
    """Get a product by id, or by slug when the value is not an id."""
    return services.products.get_product(session, product_id)


# -------- Admin endpoints --------


@router.post("", response_model=ProductRead, status_code=status.HTTP_201_CREATED)
def create_product(
    payload: ProductCreate,
    session: Session = Depends(get_session),
    services: Services = Depends(get_services),
    claim: TokenClaim | None = Depends(get_claim),
):
    enforce("products.create", claim)
    return services.products.create_product(session, payload)


@router.patch("/{product_id}", response_model=ProductRead)
def update_product(
    product_id: str,
    payload: ProductUpdate,
    session: Session = Depends(get_session),
    services: Services = Depends(get_services),
    claim: TokenClaim | None = Depends(get_claim),
):
    enforce("products.update", claim)
    return services.products.update_product(session, product_id, payload)


@router.delete("/{product_id}", status_code=status.HTTP_204_NO_CONTENT)
def delete_product(
    product_id: str,
    session: Session = Depends(get_session),
    services: Services = Depends(get_services),
    claim: TokenClaim | None = Depends(get_claim),
):
    enforce("products.delete", claim)
    services.products.delete_product(session, product_id)
    return Response(status_code=status.HTTP_204_NO_CONTENT)
