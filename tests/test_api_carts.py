import pytest

from app.core.roles import Role


@pytest.fixture
def bob(make_account):
    return make_account("bob", Role.CUSTOMER)


@pytest.fixture
def cake(make_product):
    return make_product("Cake", stock_count=5)


class TestUpdateCartEndpoint:
    def test_owner_sets_quantity(self, client, bob, cake):
        res = client.patch(f"/carts/{bob.id}", json={"product_id": cake.id, "quantity": 2}, headers=bob.headers)
        assert res.status_code == 200
        assert res.json()["lines"] == [{"product_id": cake.id, "quantity": 2}]

    def test_quantity_above_stock_is_rejected_and_cart_kept(self, client, bob, cake):
        client.patch(f"/carts/{bob.id}", json={"product_id": cake.id, "quantity": 2}, headers=bob.headers)

        res = client.patch(f"/carts/{bob.id}", json={"product_id": cake.id, "quantity": 6}, headers=bob.headers)
        assert res.status_code == 400
        assert res.json()["detail"] == "Not enough products in stock to add given quantity to cart"

        cart = client.get(f"/carts/{bob.id}", headers=bob.headers).json()
        assert cart["lines"] == [{"product_id": cake.id, "quantity": 2}]

    def test_quantity_equal_to_stock_is_accepted(self, client, bob, cake):
        res = client.patch(f"/carts/{bob.id}", json={"product_id": cake.id, "quantity": 5}, headers=bob.headers)
        assert res.status_code == 200

    def test_negative_quantity_is_a_validation_error(self, client, bob, cake):
        res = client.patch(f"/carts/{bob.id}", json={"product_id": cake.id, "quantity": -1}, headers=bob.headers)
        assert res.status_code == 400

    def test_unknown_product(self, client, bob):
        res = client.patch(f"/carts/{bob.id}", json={"product_id": "f" * 32, "quantity": 1}, headers=bob.headers)
        assert res.status_code == 404
        assert res.json()["detail"] == "Can't find product with given id"

    def test_anonymous_role_is_forbidden(self, client, make_account, cake):
        newbie = make_account("newbie", Role.ANONYMOUS)
        res = client.patch(
            f"/carts/{newbie.id}", json={"product_id": cake.id, "quantity": 1}, headers=newbie.headers
        )
        assert res.status_code == 403

    def test_no_token_is_unauthenticated(self, client, bob, cake):
        res = client.patch(f"/carts/{bob.id}", json={"product_id": cake.id, "quantity": 1})
        assert res.status_code == 401

    def test_other_customers_cart_is_forbidden(self, client, bob, make_account, cake):
        mallory = make_account("mallory")
        res = client.patch(f"/carts/{bob.id}", json={"product_id": cake.id, "quantity": 1}, headers=mallory.headers)
        assert res.status_code == 403

    def test_admin_can_edit_any_cart(self, client, admin, bob, cake):
        res = client.patch(f"/carts/{bob.id}", json={"product_id": cake.id, "quantity": 1}, headers=admin.headers)
        assert res.status_code == 200
        assert res.json()["owner_id"] == bob.id


class TestReadAndDeleteCartEndpoint:
    def test_missing_cart(self, client, bob):
        res = client.get(f"/carts/{bob.id}", headers=bob.headers)
        assert res.status_code == 404

    def test_delete_cart(self, client, bob, cake):
        client.patch(f"/carts/{bob.id}", json={"product_id": cake.id, "quantity": 1}, headers=bob.headers)

        res = client.delete(f"/carts/{bob.id}", headers=bob.headers)
        assert res.status_code == 200
        assert len(res.json()["lines"]) == 1
        assert client.get(f"/carts/{bob.id}", headers=bob.headers).status_code == 404

    def test_rejected_first_update_leaves_empty_cart(self, client, bob, cake):
        res = client.patch(f"/carts/{bob.id}", json={"product_id": cake.id, "quantity": 0}, headers=bob.headers)
        assert res.status_code == 404
        assert res.json()["detail"] == "Cart does not contain given product"

        res = client.get(f"/carts/{bob.id}", headers=bob.headers)
        assert res.status_code == 200
        assert res.json()["lines"] == []
