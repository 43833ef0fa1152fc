import pytest

from app.core.cache import MemoryCache
from app.core.errors import ConflictError, NotFoundError, ValidationFailedError
from app.repositories.product_repo import ProductRepository
from app.schemas.product import ProductCreate, ProductSearch, ProductUpdate
from app.services.product_service import ProductService, cache_key
from app.services.search import SqlSearchIndex


@pytest.fixture
def cache():
    return MemoryCache()


@pytest.fixture
def products(cache):
    repo = ProductRepository()
    return ProductService(repo, cache, SqlSearchIndex(repo), cache_ttl_seconds=60)


def create(products, session, name, **fields):
    fields.setdefault("price", 1000)
    fields.setdefault("stock_count", 5)
    fields.setdefault("category", "cakes")
    return products.create_product(session, ProductCreate(name=name, **fields))


class TestCreate:
    def test_id_is_32_hex_chars(self, products, session):
        product = create(products, session, "Carrot Cake")
        assert len(product.id) == 32
        int(product.id, 16)

    def test_slug_generated_from_name_and_kept_unique(self, products, session):
        first = create(products, session, "Carrot Cake")
        second = create(products, session, "Carrot Cake")
        assert first.slug == "carrot-cake"
        assert second.slug == "carrot-cake-2"

    def test_explicit_duplicate_slug_conflicts(self, products, session):
        create(products, session, "Carrot Cake", slug="carrot")
        with pytest.raises(ConflictError):
            create(products, session, "Other Cake", slug="carrot")


class TestRead:
    def test_read_by_id_fills_cache(self, products, session, cache):
        product = create(products, session, "Lemon Tart")
        assert cache.get(cache_key(product.id)) is None

        assert products.get_product(session, product.id) == product
        assert cache.get(cache_key(product.id))["slug"] == "lemon-tart"

    def test_cached_value_is_served(self, products, session, cache):
        product = create(products, session, "Lemon Tart")
        products.get_product(session, product.id)

        stale = dict(cache.get(cache_key(product.id)), name="From Cache")
        cache.set(cache_key(product.id), stale, 60)

        assert products.get_product(session, product.id).name == "From Cache"

    def test_non_id_value_is_looked_up_as_slug(self, products, session):
        product = create(products, session, "Lemon Tart")
        assert products.get_product(session, "lemon-tart").id == product.id

    def test_unknown_product(self, products, session):
        with pytest.raises(NotFoundError):
            products.get_product(session, "0" * 32)
        with pytest.raises(NotFoundError):
            products.get_product(session, "no-such-slug")


class TestWrite:
    def test_update_invalidates_cache(self, products, session, cache):
        product = create(products, session, "Lemon Tart")
        products.get_product(session, product.id)

        products.update_product(session, product.id, ProductUpdate(price=1500))

        assert cache.get(cache_key(product.id)) is None
        assert products.get_product(session, product.id).price == 1500

    def test_empty_update_is_rejected(self, products, session):
        product = create(products, session, "Lemon Tart")
        with pytest.raises(ValidationFailedError) as exc:
            products.update_product(session, product.id, ProductUpdate())
        assert exc.value.detail == "no valid fields provided to update"

    def test_deleted_product_disappears(self, products, session, cache):
        product = create(products, session, "Lemon Tart")
        products.get_product(session, product.id)

        products.delete_product(session, product.id)

        assert cache.get(cache_key(product.id)) is None
        with pytest.raises(NotFoundError):
            products.get_product(session, product.id)


class TestSearch:
    @pytest.fixture(autouse=True)
    def catalog(self, products, session):
        create(products, session, "Carrot Cake", price=900, category="cakes", tags=["vegan"])
        create(products, session, "Lemon Tart", price=700, category="tarts", tags=["citrus"])
        create(products, session, "Lemon Cake", price=800, category="cakes", tags=["citrus", "gluten-free"])

    def names(self, page):
        return [p.name for p in page.items]

    def test_text_matches_name_category_and_tags(self, products, session):
        assert set(self.names(products.search(session, ProductSearch(q="lemon")))) == {"Lemon Tart", "Lemon Cake"}
        assert len(products.search(session, ProductSearch(q="CAKES")).items) == 2
        assert self.names(products.search(session, ProductSearch(q="vegan"))) == ["Carrot Cake"]

    def test_category_filter(self, products, session):
        page = products.search(session, ProductSearch(category="tarts"))
        assert self.names(page) == ["Lemon Tart"]

    def test_tags_match_any(self, products, session):
        page = products.search(session, ProductSearch(tags=["vegan", "gluten-free"]))
        assert set(self.names(page)) == {"Carrot Cake", "Lemon Cake"}

    def test_sort_and_paging(self, products, session):
        query = ProductSearch(sort_field="price", sort_order="desc", page=1, limit=2)
        first = products.search(session, query)
        assert first.total == 3
        assert self.names(first) == ["Carrot Cake", "Lemon Cake"]

        second = products.search(session, query.model_copy(update={"page": 2}))
        assert self.names(second) == ["Lemon Tart"]

    def test_no_hits(self, products, session):
        with pytest.raises(NotFoundError) as exc:
            products.search(session, ProductSearch(q="pizza"))
        assert exc.value.detail == "No products found matching the search criteria"

    def test_like_wildcards_are_literal(self, products, session):
        for q in ("%", "_"):
            with pytest.raises(NotFoundError):
                products.search(session, ProductSearch(q=q))

    def test_tag_filter_matches_whole_tags(self, products, session):
        with pytest.raises(NotFoundError):
            products.search(session, ProductSearch(tags=["veg"]))

    def test_page_past_the_end_is_empty(self, products, session):
        page = products.search(session, ProductSearch(page=3, limit=2))
        assert page.total == 3
        assert page.items == []
