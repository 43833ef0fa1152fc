# app/routers/graphql_gateway.py
"""
GraphQL gateway.

Same operations and the same authorization table as the REST routers; every
resolver calls `enforce(...)` and then the service. Service errors surface as
GraphQL errors carrying the HTTP status in `extensions.status`; anything else
is logged and reported as a bare 500.

Resolvers are async and run their service calls in the threadpool, each with
its own Session, so database I/O, lock waits and catalog retries never block
the event loop.
"""
import logging
from collections.abc import Callable, Iterator
from contextlib import contextmanager
from datetime import datetime
from typing import TypeVar

import strawberry
from fastapi import Depends, Request
from graphql import GraphQLError
from pydantic import ValidationError
from sqlmodel import Session
from starlette.concurrency import run_in_threadpool
from starlette.exceptions import HTTPException
from strawberry.fastapi import GraphQLRouter
from strawberry.types import Info

from app.core.auth import get_claim
from app.core.policy import enforce
from app.core.roles import Role
from app.schemas.auth import LoginRequest, TokenClaim
from app.schemas.cart import CartLineUpdate, CartRead
from app.schemas.order import OrderRead
from app.schemas.product import ProductRead, ProductSearch, SearchPage
from app.schemas.user import UserCreate, UserUpdate
from app.services.container import Services

logger = logging.getLogger(__name__)

T = TypeVar("T")

RoleEnum = strawberry.enum(Role, name="Role")


@contextmanager
def service_errors() -> Iterator[None]:
    try:
        yield
    except GraphQLError:
        raise
    except HTTPException as exc:
        raise GraphQLError(str(exc.detail), extensions={"status": exc.status_code}) from exc
    except Exception as exc:
        logger.exception("GraphQL resolver failed")
        raise GraphQLError("Internal server error", extensions={"status": 500}) from exc


def _services(info: Info) -> Services:
    return info.context["services"]


def _claim(info: Info) -> TokenClaim | None:
    return info.context["claim"]


def _owner_or_caller(owner_id: int | None, claim: TokenClaim | None) -> int | None:
    if owner_id is not None:
        return owner_id
    return claim.id if claim else None


async def _run(info: Info, fn: Callable[[Session], T]) -> T:
    """Call `fn(session)` in the threadpool with a fresh Session."""
    engine = info.context["engine"]

    def call() -> T:
        with Session(engine) as session:
            return fn(session)

    with service_errors():
        return await run_in_threadpool(call)


# ---- types ----


@strawberry.type
class User:
    id: int
    username: str
    role: RoleEnum
    created_at: datetime
    updated_at: datetime

    @classmethod
    def from_model(cls, user) -> "User":
        return cls(
            id=user.id,
            username=user.username,
            role=user.role,
            created_at=user.created_at,
            updated_at=user.updated_at,
        )


@strawberry.type
class AuthPayload:
    token: str
    user: User


@strawberry.type
class CartLine:
    product_id: str
    quantity: int


@strawberry.type
class Cart:
    owner_id: int
    lines: list[CartLine]
    created_at: datetime
    updated_at: datetime

    @classmethod
    def from_read(cls, cart: CartRead) -> "Cart":
        return cls(
            owner_id=cart.owner_id,
            lines=[CartLine(product_id=line.product_id, quantity=line.quantity) for line in cart.lines],
            created_at=cart.created_at,
            updated_at=cart.updated_at,
        )


@strawberry.type
class Product:
    id: str
    name: str
    slug: str
    description: str
    price: int
    stock_count: int
    category: str
    tags: list[str]
    created_at: datetime
    updated_at: datetime

    @classmethod
    def from_read(cls, product: ProductRead) -> "Product":
        return cls(**product.model_dump())


@strawberry.type
class ProductPage:
    total: int
    page: int
    limit: int
    items: list[Product]

    @classmethod
    def from_read(cls, page: SearchPage) -> "ProductPage":
        return cls(
            total=page.total,
            page=page.page,
            limit=page.limit,
            items=[Product.from_read(p) for p in page.items],
        )


@strawberry.type
class OrderLine:
    product_id: str
    quantity: int


@strawberry.type
class Order:
    id: int
    owner_id: int
    status: str
    lines: list[OrderLine]
    receiver_name: str | None
    address: str | None
    city: str | None
    postal_code: str | None
    phone_number: str | None
    created_at: datetime
    updated_at: datetime

    @classmethod
    def from_read(cls, order: OrderRead) -> "Order":
        data = order.model_dump(exclude={"lines", "status"})
        return cls(
            **data,
            status=order.status.value,
            lines=[OrderLine(product_id=line.product_id, quantity=line.quantity) for line in order.lines],
        )


# ---- inputs ----


@strawberry.input
class UserCreateInput:
    username: str
    password: str
    role: RoleEnum | None = None


@strawberry.input
class UserUpdateInput:
    username: str | None = None
    password: str | None = None
    role: RoleEnum | None = None


def _validated(schema, **values):
    """Run GraphQL input through the same pydantic schema REST uses."""
    try:
        return schema(**values)
    except ValidationError as exc:
        messages = "; ".join(
            f"{'.'.join(str(p) for p in err['loc'])}: {err['msg']}" for err in exc.errors()
        )
        raise GraphQLError(messages, extensions={"status": 400}) from exc


# ---- root types ----


@strawberry.type
class Query:
    @strawberry.field
    async def user_read(
        self,
        info: Info,
        id: int | None = None,
        username: str | None = None,
    ) -> list[User]:
        services, claim = _services(info), _claim(info)

        def run(session: Session) -> list[User]:
            if id is not None:
                enforce("users.read", claim, owner_id=id)
                users = [services.users.get_user(session, id)]
            elif username is not None:
                enforce("users.read", claim, owner_username=username)
                users = [services.users.get_by_username(session, username)]
            else:
                enforce("users.list", claim)
                users = services.users.list_users(session)
            return [User.from_model(u) for u in users]

        return await _run(info, run)

    @strawberry.field
    async def get_cart(self, info: Info, owner_id: int) -> Cart:
        def run(session: Session) -> Cart:
            enforce("carts.read", _claim(info), owner_id=owner_id)
            return Cart.from_read(_services(info).carts.read_cart(session, owner_id))

        return await _run(info, run)

    @strawberry.field
    async def product(self, info: Info, id: str) -> Product:
        return await _run(
            info, lambda session: Product.from_read(_services(info).products.get_product(session, id))
        )

    @strawberry.field
    async def search_products(
        self,
        info: Info,
        q: str | None = None,
        category: str | None = None,
        tags: list[str] | None = None,
        page: int = 1,
        limit: int = 10,
        sort_field: str | None = None,
        sort_order: str = "asc",
    ) -> ProductPage:
        query = _validated(
            ProductSearch,
            q=q,
            category=category,
            tags=tags,
            page=page,
            limit=limit,
            sort_field=sort_field,
            sort_order=sort_order,
        )
        return await _run(
            info, lambda session: ProductPage.from_read(_services(info).products.search(session, query))
        )

    @strawberry.field
    async def get_order(self, info: Info, owner_id: int | None = None) -> Order:
        claim = _claim(info)
        owner = _owner_or_caller(owner_id, claim)

        def run(session: Session) -> Order:
            enforce("orders.read", claim, owner_id=owner)
            return Order.from_read(_services(info).orders.read(session, owner))

        return await _run(info, run)


@strawberry.type
class Mutation:
    @strawberry.mutation
    async def login(self, info: Info, username: str, password: str) -> AuthPayload:
        payload = _validated(LoginRequest, username=username, password=password)
        result = await _run(info, lambda session: _services(info).auth.login(session, payload))
        return AuthPayload(token=result.token, user=User.from_model(result))

    @strawberry.mutation
    async def user_create(self, info: Info, input: UserCreateInput) -> AuthPayload:
        payload = _validated(UserCreate, username=input.username, password=input.password, role=input.role)

        def run(session: Session):
            enforce(
                "users.create_with_role" if payload.role is not None else "users.create",
                _claim(info),
            )
            return _services(info).users.create_user(session, payload)

        result = await _run(info, run)
        return AuthPayload(token=result.token, user=User.from_model(result))

    @strawberry.mutation
    async def user_update(self, info: Info, id: int, input: UserUpdateInput) -> User:
        payload = _validated(UserUpdate, username=input.username, password=input.password, role=input.role)
        if payload.is_empty():
            raise GraphQLError("no valid fields provided to update", extensions={"status": 400})
        claim = _claim(info)

        def run(session: Session) -> User:
            enforce("users.update", claim, owner_id=id)
            if payload.role is not None:
                enforce("users.update_role", claim)
            return User.from_model(_services(info).users.update_user(session, id, payload))

        return await _run(info, run)

    @strawberry.mutation
    async def user_delete(self, info: Info, id: int) -> bool:
        def run(session: Session) -> bool:
            enforce("users.delete", _claim(info), owner_id=id)
            _services(info).users.delete_user(session, id)
            return True

        return await _run(info, run)

    @strawberry.mutation
    async def update_cart(self, info: Info, owner_id: int, product_id: str, quantity: int) -> Cart:
        payload = _validated(CartLineUpdate, product_id=product_id, quantity=quantity)

        def run(session: Session) -> Cart:
            enforce("carts.update", _claim(info), owner_id=owner_id)
            cart = _services(info).carts.set_quantity(session, owner_id, payload.product_id, payload.quantity)
            return Cart.from_read(cart)

        return await _run(info, run)

    @strawberry.mutation
    async def delete_cart(self, info: Info, owner_id: int) -> Cart:
        def run(session: Session) -> Cart:
            enforce("carts.delete", _claim(info), owner_id=owner_id)
            return Cart.from_read(_services(info).carts.delete_cart(session, owner_id))

        return await _run(info, run)

    @strawberry.mutation
    async def reserve_order(self, info: Info, owner_id: int | None = None) -> Order:
        claim = _claim(info)
        owner = _owner_or_caller(owner_id, claim)

        def run(session: Session) -> Order:
            enforce("orders.reserve", claim, owner_id=owner)
            return Order.from_read(_services(info).orders.reserve(session, owner))

        return await _run(info, run)

    @strawberry.mutation
    async def cancel_order(self, info: Info, owner_id: int | None = None) -> Order:
        claim = _claim(info)
        owner = _owner_or_caller(owner_id, claim)

        def run(session: Session) -> Order:
            enforce("orders.cancel", claim, owner_id=owner)
            return Order.from_read(_services(info).orders.cancel(session, owner))

        return await _run(info, run)


schema = strawberry.Schema(query=Query, mutation=Mutation)


def get_context(
    request: Request,
    claim: TokenClaim | None = Depends(get_claim),
) -> dict:
    return {
        "services": request.app.state.services,
        "engine": request.app.state.engine,
        "claim": claim,
    }


def build_graphql_router() -> GraphQLRouter:
    return GraphQLRouter(schema, context_getter=get_context)
