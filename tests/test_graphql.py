import threading
import time

import pytest
from fastapi.testclient import TestClient
from sqlmodel import SQLModel

from app.core.roles import Role
from tests.conftest import PASSWORD


def gql(client, query: str, variables: dict | None = None, headers: dict | None = None) -> dict:
    res = client.post("/graphql", json={"query": query, "variables": variables or {}}, headers=headers)
    assert res.status_code == 200
    return res.json()


def error_status(body: dict) -> int:
    return body["errors"][0]["extensions"]["status"]


@pytest.fixture
def bob(make_account):
    return make_account("bob", Role.CUSTOMER)


class TestGraphQLUsers:
    def test_login(self, client, admin):
        body = gql(
            client,
            "mutation($u: String!, $p: String!) { login(username: $u, password: $p) { token user { role } } }",
            {"u": "admin", "p": PASSWORD},
        )
        assert body["data"]["login"]["user"]["role"] == "ADMIN"
        assert body["data"]["login"]["token"]

    def test_login_wrong_password_carries_status(self, client, admin):
        body = gql(
            client,
            'mutation { login(username: "admin", password: "wrong-password") { token } }',
        )
        assert error_status(body) == 401

    def test_user_create_defaults_to_anonymous(self, client):
        body = gql(
            client,
            'mutation { userCreate(input: {username: "carol", password: "password123"}) { user { role } } }',
        )
        assert body["data"]["userCreate"]["user"]["role"] == "ANONYMOUS"

    def test_user_create_with_role_needs_admin(self, client, bob):
        query = 'mutation { userCreate(input: {username: "dave", password: "password123", role: ADMIN}) { token } }'
        assert error_status(gql(client, query)) == 401
        assert error_status(gql(client, query, headers=bob.headers)) == 403

    def test_user_read_applies_ownership(self, client, bob, make_account):
        other = make_account("other")
        query = "query($id: Int) { userRead(id: $id) { username } }"
        assert gql(client, query, {"id": bob.id}, bob.headers)["data"]["userRead"] == [{"username": "bob"}]
        assert error_status(gql(client, query, {"id": other.id}, bob.headers)) == 403

    def test_user_update_empty_input(self, client, bob):
        body = gql(client, "mutation($id: Int!) { userUpdate(id: $id, input: {}) { username } }", {"id": bob.id})
        assert error_status(body) == 400

    def test_user_delete(self, client, admin, bob):
        body = gql(client, "mutation($id: Int!) { userDelete(id: $id) }", {"id": bob.id}, admin.headers)
        assert body["data"]["userDelete"] is True


class TestGraphQLShopping:
    def test_cart_and_order_flow(self, client, bob, make_product):
        cake = make_product("Cake", stock_count=3)

        body = gql(
            client,
            "mutation($o: Int!, $p: String!, $q: Int!) { updateCart(ownerId: $o, productId: $p, quantity: $q) { lines { productId quantity } } }",
            {"o": bob.id, "p": cake.id, "q": 2},
            bob.headers,
        )
        assert body["data"]["updateCart"]["lines"] == [{"productId": cake.id, "quantity": 2}]

        body = gql(client, "query($o: Int!) { getCart(ownerId: $o) { ownerId } }", {"o": bob.id}, bob.headers)
        assert body["data"]["getCart"]["ownerId"] == bob.id

        body = gql(client, "mutation { reserveOrder { status lines { quantity } } }", headers=bob.headers)
        assert body["data"]["reserveOrder"]["status"] == "RESERVED"

        body = gql(client, "query { getOrder { status } }", headers=bob.headers)
        assert body["data"]["getOrder"]["status"] == "RESERVED"

        body = gql(client, "mutation { cancelOrder { status } }", headers=bob.headers)
        assert body["data"]["cancelOrder"]["status"] == "CANCELLED"

    def test_update_cart_over_stock(self, client, bob, make_product):
        cake = make_product("Cake", stock_count=1)
        body = gql(
            client,
            "mutation($o: Int!, $p: String!) { updateCart(ownerId: $o, productId: $p, quantity: 2) { ownerId } }",
            {"o": bob.id, "p": cake.id},
            bob.headers,
        )
        assert error_status(body) == 400

    def test_cart_requires_login(self, client, bob):
        body = gql(client, "mutation($o: Int!) { deleteCart(ownerId: $o) { ownerId } }", {"o": bob.id})
        assert error_status(body) == 401

    def test_product_queries(self, client, make_product):
        cake = make_product("Lemon Cake", category="cakes", tags=["citrus"])

        body = gql(client, "query($id: String!) { product(id: $id) { slug stockCount } }", {"id": cake.id})
        assert body["data"]["product"]["slug"] == "lemon-cake"

        body = gql(client, 'query { searchProducts(q: "lemon") { total items { name } } }')
        assert body["data"]["searchProducts"]["total"] == 1

        body = gql(client, 'query { searchProducts(q: "pizza") { total } }')
        assert error_status(body) == 404

    def test_update_cart_rejects_blank_product_id(self, client, bob):
        body = gql(
            client,
            'mutation($o: Int!) { updateCart(ownerId: $o, productId: "", quantity: 1) { ownerId } }',
            {"o": bob.id},
            bob.headers,
        )
        assert error_status(body) == 400


UPDATE_CART = (
    "mutation($o: Int!, $p: String!, $q: Int!) "
    "{ updateCart(ownerId: $o, productId: $p, quantity: $q) { lines { productId quantity } } }"
)


class TestGraphQLRuntime:
    def test_internal_errors_are_masked(self, client, engine, admin):
        SQLModel.metadata.tables["users"].drop(engine)

        body = gql(client, "query($id: Int) { userRead(id: $id) { id } }", {"id": admin.id}, admin.headers)

        assert body["errors"][0]["message"] == "Internal server error"
        assert error_status(body) == 500
        assert "sqlite" not in str(body).lower()

    def test_waiting_resolver_does_not_stall_other_requests(self, app, services, bob, make_product):
        cake = make_product("Cake", stock_count=3)
        results = []

        with TestClient(app) as client:
            with services.carts.line_lock(bob.id, cake.id):
                pending = threading.Thread(
                    target=lambda: results.append(
                        gql(client, UPDATE_CART, {"o": bob.id, "p": cake.id, "q": 1}, bob.headers)
                    )
                )
                pending.start()
                time.sleep(0.2)

                started = time.monotonic()
                assert client.get("/health").status_code == 200
                elapsed = time.monotonic() - started
            pending.join(timeout=5)

        assert elapsed < 0.5
        assert results[0]["data"]["updateCart"]["lines"] == [{"productId": cake.id, "quantity": 1}]
