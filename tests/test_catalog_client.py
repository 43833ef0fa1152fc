import httpx
import pytest

from app.core.errors import UpstreamError
from app.services.catalog_client import HttpCatalogClient, LocalCatalogClient, ProductNotFound
from app.repositories.product_repo import ProductRepository


def client_for(handler) -> HttpCatalogClient:
    return HttpCatalogClient("http://catalog.test", transport=httpx.MockTransport(handler))


class TestHttpCatalogClient:
    def test_reads_stock(self):
        def handler(request: httpx.Request) -> httpx.Response:
            assert request.url.path == "/products/abc"
            return httpx.Response(200, json={"id": "abc", "stock_count": 4, "name": "Cake"})

        product = client_for(handler).get_product("abc")
        assert (product.id, product.stock_count) == ("abc", 4)

    @pytest.mark.parametrize("status", [400, 404])
    def test_missing_product(self, status):
        client = client_for(lambda request: httpx.Response(status, json={"detail": "x"}))
        with pytest.raises(ProductNotFound):
            client.get_product("abc")

    def test_server_error_is_upstream(self):
        client = client_for(lambda request: httpx.Response(503))
        with pytest.raises(UpstreamError):
            client.get_product("abc")

    def test_transport_errors_are_retried(self):
        attempts = []

        def handler(request: httpx.Request) -> httpx.Response:
            attempts.append(request)
            if len(attempts) < 3:
                raise httpx.ConnectError("refused", request=request)
            return httpx.Response(200, json={"id": "abc", "stock_count": 1})

        assert client_for(handler).get_product("abc").stock_count == 1
        assert len(attempts) == 3

    def test_gives_up_after_three_attempts(self):
        def handler(request: httpx.Request) -> httpx.Response:
            raise httpx.ConnectError("refused", request=request)

        with pytest.raises(UpstreamError):
            client_for(handler).get_product("abc")


class TestLocalCatalogClient:
    def test_reads_live_stock(self, engine, make_product):
        cake = make_product("Cake", stock_count=7)
        client = LocalCatalogClient(engine, ProductRepository())
        assert client.get_product(cake.id).stock_count == 7

    def test_unknown_product(self, engine):
        with pytest.raises(ProductNotFound):
            LocalCatalogClient(engine, ProductRepository()).get_product("missing")
