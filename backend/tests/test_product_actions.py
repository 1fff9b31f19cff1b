import asyncio
from decimal import Decimal
from unittest.mock import MagicMock

import pytest
from sqlalchemy.exc import OperationalError

from catalog.database import foreign_key_checks_disabled
from catalog.exceptions import InvalidDiscountRangeError, InvalidSortError, ProductNotFoundError
from catalog.models import Comment, Product, ProductCategory, Review
from catalog.schemas import CategoryOption, ProductCreate, ProductFilter, ProductUpdate
from catalog.services import product_actions
from catalog.services.product_actions import (
    compute_last_page,
    diff_category_ids,
    parse_discount_range,
    parse_sort,
    word_boundary_pattern,
)


def _names(page):
    return {product.name for product in page.products}


def _category_ids(db, product_id):
    return {
        row.category_id
        for row in db.query(ProductCategory.category_id).filter(ProductCategory.product_id == product_id)
    }


class TestHelpers:
    def test_diff_category_ids(self):
        to_insert, to_delete = diff_category_ids([4, 5, 6], [1, 4])
        assert to_insert == [5, 6]
        assert to_delete == [1]

    def test_diff_category_ids_collapses_duplicates(self):
        to_insert, to_delete = diff_category_ids([5, 5, 4], [4, 4])
        assert to_insert == [5]
        assert to_delete == []

    def test_diff_category_ids_unchanged(self):
        assert diff_category_ids([1, 2], [2, 1]) == ([], [])

    @pytest.mark.parametrize("count,page_size,expected", [
        (0, 10, 0),
        (1, 10, 1),
        (10, 10, 1),
        (11, 10, 2),
        (25, 7, 4),
        (3, 1, 3),
    ])
    def test_compute_last_page(self, count, page_size, expected):
        assert compute_last_page(count, page_size) == expected

    def test_compute_last_page_rejects_zero_page_size(self):
        with pytest.raises(ValueError):
            compute_last_page(5, 0)

    def test_parse_sort(self):
        assert parse_sort("price-desc") == ("price", "desc")
        assert parse_sort("name-ASC") == ("name", "asc")
        assert parse_sort("created_at") == ("created_at", "asc")

    @pytest.mark.parametrize("sort_by", ["colour-desc", "price-sideways", "-desc"])
    def test_parse_sort_rejects_unknown(self, sort_by):
        with pytest.raises(InvalidSortError):
            parse_sort(sort_by)

    def test_parse_discount_range(self):
        assert parse_discount_range("6-10") == (6, 10)
        assert parse_discount_range("0-5") == (0, 5)

    @pytest.mark.parametrize("discount", ["6", "a-b", "10-6", "1-2-3"])
    def test_parse_discount_range_rejects_malformed(self, discount):
        with pytest.raises(InvalidDiscountRangeError):
            parse_discount_range(discount)

    def test_word_boundary_pattern_escapes_values(self):
        assert word_boundary_pattern([1, 4]) == r"\b(1|4)\b"
        assert word_boundary_pattern(["a.b"]) == r"\b(a\.b)\b"
        assert word_boundary_pattern(["party"], "postgresql") == r"\y(party)\y"


class TestGetProducts:
    def test_unfiltered_listing(self, db, catalog):
        page = product_actions.get_products(db)
        assert page.count == 6
        assert page.last_page == 1
        assert page.num_of_results_on_cur_page == 6

    def test_pagination(self, db, catalog):
        first = product_actions.get_products(db, "price-asc", page_no=1, page_size=4)
        second = product_actions.get_products(db, "price-asc", page_no=2, page_size=4)

        assert first.count == second.count == 6
        assert first.last_page == second.last_page == 2
        assert first.num_of_results_on_cur_page == 4
        assert second.num_of_results_on_cur_page == 2
        assert not _names(first) & _names(second)

    def test_page_past_the_end_is_empty(self, db, catalog):
        page = product_actions.get_products(db, page_no=5, page_size=4)
        assert page.products == []
        assert page.count == 6

    def test_sort_price_desc(self, db, catalog):
        page = product_actions.get_products(db, "price-desc")
        prices = [product.price for product in page.products]
        assert prices == sorted(prices, reverse=True)

    def test_sort_price_asc(self, db, catalog):
        page = product_actions.get_products(db, "price-asc")
        prices = [product.price for product in page.products]
        assert prices == sorted(prices)

    def test_brand_filter_matches_whole_ids(self, db, catalog):
        # "14" must not match brandId 1
        page = product_actions.get_products(db, filters={"brandId": "1"})
        assert _names(page) == {"Air Zoom Runner"}

    def test_brand_filter_multiple_values(self, db, catalog):
        page = product_actions.get_products(db, filters={"brandId": [5, 3]})
        assert _names(page) == {"Linen Summer Dress", "Oxford Office Shirt", "Kids Velcro Sneakers"}

    def test_category_filter_counts_each_product_once(self, db, catalog):
        # Runner and sneakers are in both categories 2 and 7
        page = product_actions.get_products(db, filters={"categoryId": [2, 7]})
        assert page.count == 2
        assert page.num_of_results_on_cur_page == 2
        assert _names(page) == {"Air Zoom Runner", "Kids Velcro Sneakers"}

    def test_price_range_filter(self, db, catalog):
        page = product_actions.get_products(db, filters={"priceRangeTo": 60})
        assert all(product.price <= 60 for product in page.products)
        assert page.count == 3

    def test_gender_filter(self, db, catalog):
        page = product_actions.get_products(db, filters=ProductFilter(gender="women"))
        assert _names(page) == {"Classic Slim Jeans", "Linen Summer Dress"}

    def test_blank_occasion_is_ignored(self, db, catalog, make_product):
        make_product("Plain Socks", "5.00")  # occasion is NULL
        assert ProductFilter(occasions=[""]).occasions is None
        page = product_actions.get_products(db, filters={"occasions": ""})
        assert page.count == 7

    def test_empty_gender_is_ignored(self, db, catalog):
        page = product_actions.get_products(db, filters={"gender": ""})
        assert page.count == 6

    def test_occasion_filter(self, db, catalog):
        page = product_actions.get_products(db, filters={"occasions": ["party", "wedding"]})
        assert _names(page) == {"Linen Summer Dress", "Chronograph Steel Watch"}

    def test_discount_filter(self, db, catalog):
        page = product_actions.get_products(db, filters={"discount": "6-10"})
        assert _names(page) == {"Air Zoom Runner", "Linen Summer Dress"}
        assert all(6 <= product.discount <= 10 for product in page.products)

    def test_filters_combine(self, db, catalog):
        page = product_actions.get_products(
            db,
            "price-desc",
            filters={"gender": "men", "occasions": "formal", "priceRangeTo": 1000},
        )
        assert _names(page) == {"Oxford Office Shirt"}

    def test_invalid_discount_raises(self, db, catalog):
        with pytest.raises(InvalidDiscountRangeError):
            product_actions.get_products(db, filters={"discount": "cheap"})

    def test_invalid_page_raises(self, db, catalog):
        with pytest.raises(ValueError):
            product_actions.get_products(db, page_no=0)
        with pytest.raises(ValueError):
            product_actions.get_products(db, page_size=0)


class TestSaveAndUpdate:
    def test_save_products_links_categories(self, db):
        product = asyncio.run(product_actions.save_products(
            db,
            ProductCreate(name="Canvas Tote", price=Decimal("25.00"), brands="5"),
            [CategoryOption(value=3, label="Accessories"), {"value": 10, "label": "Bags"}],
        ))

        assert product.id is not None
        assert _category_ids(db, product.id) == {3, 10}

    def test_save_products_without_categories(self, db):
        product = asyncio.run(product_actions.save_products(
            db, {"name": "Plain Tee", "price": Decimal("9.99")}, []
        ))
        assert _category_ids(db, product.id) == set()

    def test_update_reconciles_categories(self, db, catalog):
        product_id = catalog["shirt"]  # categories {1, 4}
        kept_row_id = db.query(ProductCategory.id).filter(
            ProductCategory.product_id == product_id,
            ProductCategory.category_id == 4
        ).scalar()

        desired = {4, 5, 6}
        asyncio.run(product_actions.update_product(
            db,
            ProductUpdate(id=product_id, price=Decimal("39.00")),
            [CategoryOption(value=category_id) for category_id in desired],
        ))

        assert _category_ids(db, product_id) ^ desired == set()
        still_kept = db.query(ProductCategory.id).filter(
            ProductCategory.product_id == product_id,
            ProductCategory.category_id == 4
        ).scalar()
        assert still_kept == kept_row_id
        assert db.get(Product, product_id).price == Decimal("39.00")

    def test_update_with_duplicate_selection(self, db, catalog):
        product_id = catalog["jeans"]
        asyncio.run(product_actions.update_product(db, {"id": product_id}, [5, 5, 1]))
        rows = db.query(ProductCategory).filter(ProductCategory.product_id == product_id).all()
        assert sorted(row.category_id for row in rows) == [1, 5]

    def test_update_clears_all_categories(self, db, catalog):
        product_id = catalog["dress"]
        asyncio.run(product_actions.update_product(db, {"id": product_id}, []))
        assert _category_ids(db, product_id) == set()

    def test_update_unknown_product(self, db, catalog):
        with pytest.raises(ProductNotFoundError):
            asyncio.run(product_actions.update_product(db, {"id": 9999, "name": "Ghost"}, [1]))


class TestGetAndDelete:
    def test_get_product(self, db, catalog):
        rows = product_actions.get_product(db, catalog["runner"])
        assert [row.name for row in rows] == ["Air Zoom Runner"]

    def test_get_product_missing(self, db, catalog):
        assert product_actions.get_product(db, 9999) == []

    def test_get_product_is_memoised_per_session(self, db, catalog):
        first = product_actions.get_product(db, catalog["runner"])
        assert product_actions.get_product(db, catalog["runner"]) is first

    def test_get_product_reports_errors(self, catalog):
        broken = MagicMock()
        broken.info = {}
        broken.query.side_effect = OperationalError("SELECT", {}, Exception("gone"))
        assert product_actions.get_product(broken, 1) == {"error": "Could not find the product"}

    def test_delete_removes_dependents(self, db, catalog):
        product_id = catalog["runner"]
        product_actions.get_product(db, product_id)

        result = asyncio.run(product_actions.delete_product(db, product_id))

        assert result == {"message": "success"}
        assert db.query(ProductCategory).filter(ProductCategory.product_id == product_id).count() == 0
        assert db.query(Review).filter(Review.product_id == product_id).count() == 0
        assert db.query(Comment).filter(Comment.product_id == product_id).count() == 0
        assert product_actions.get_product(db, product_id) == []

    def test_delete_leaves_other_products_alone(self, db, catalog):
        asyncio.run(product_actions.delete_product(db, catalog["runner"]))
        assert db.query(Review).filter(Review.product_id == catalog["jeans"]).count() == 1
        assert _category_ids(db, catalog["sneakers"]) == {2, 7}

    def test_delete_reports_errors(self, db, catalog, monkeypatch):
        def fail(session, product_id):
            raise OperationalError("DELETE", {}, Exception("locked"))

        monkeypatch.setattr(product_actions, "_delete_product_rows", fail)
        result = asyncio.run(product_actions.delete_product(db, catalog["runner"]))

        assert result == {"error": "Something went wrong, Cannot delete the product"}
        assert product_actions.get_product(db, catalog["runner"]) != []


class TestLookups:
    def test_map_brand_ids_to_name(self, db):
        assert product_actions.map_brand_ids_to_name(db, ["1", "4", "99"]) == {
            "1": "Nike",
            "4": "Levi's",
            "99": None,
        }

    def test_map_brand_ids_to_name_empty(self, db):
        assert product_actions.map_brand_ids_to_name(db, []) == {}

    def test_get_all_product_categories(self, db, catalog):
        result = product_actions.get_all_product_categories(
            db, [{"id": catalog["runner"]}, {"id": catalog["dress"]}]
        )
        assert result == {
            catalog["runner"]: [{"name": "Footwear"}, {"name": "Sneakers"}],
            catalog["dress"]: [{"name": "Clothing"}, {"name": "Dresses"}],
        }

    def test_get_product_categories(self, db, catalog):
        assert product_actions.get_product_categories(db, catalog["shirt"]) == [
            {"id": 1, "name": "Clothing"},
            {"id": 4, "name": "Shirts"},
        ]


class TestForeignKeyToggle:
    def _session(self, dialect):
        session = MagicMock()
        session.get_bind.return_value.dialect.name = dialect
        return session

    def _statements(self, session):
        return [str(call.args[0]) for call in session.execute.call_args_list]

    def test_mysql_toggles_around_block(self):
        session = self._session("mysql")
        with foreign_key_checks_disabled(session):
            assert self._statements(session) == ["SET foreign_key_checks = 0"]
        assert self._statements(session) == ["SET foreign_key_checks = 0", "SET foreign_key_checks = 1"]

    def test_checks_restored_when_block_fails(self):
        session = self._session("postgresql")
        with pytest.raises(RuntimeError):
            with foreign_key_checks_disabled(session):
                raise RuntimeError("boom")
        assert self._statements(session)[-1] == "SET session_replication_role = DEFAULT"

    def test_sqlite_is_left_alone(self):
        session = self._session("sqlite")
        with foreign_key_checks_disabled(session):
            pass
        session.execute.assert_not_called()
