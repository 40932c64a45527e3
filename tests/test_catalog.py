"""Catalog tests."""

import pytest
import sqlalchemy as sa

from dynamicrepo.catalog import (
    _lazy_strategy,
    Catalog,
    ColumnMetadata,
    EntityMetadata,
)
from dynamicrepo.exc import CatalogError, EntityNotFoundError


class TestCatalog(object):
    """Catalog tests."""

    def test_get(self, catalog, models):
        order = catalog.get(models["order"])
        assert order is catalog.get("Order")
        assert order is catalog.get("order")
        assert order is catalog.get(order)
        assert order.name == "Order"
        assert order.table_name == "order"
        assert order.model is models["order"]

    def test_get_unknown_entity(self, catalog):
        with pytest.raises(EntityNotFoundError) as excinfo:
            catalog.get("Invoice")
        assert 'Entity "Invoice" not found in catalog' in str(excinfo.value)

        with pytest.raises(EntityNotFoundError):
            catalog.get(["order"])

    def test_contains(self, catalog, models):
        assert "article" in catalog
        assert models["tag"] in catalog
        assert "invoice" not in catalog
        assert len(catalog) == 4
        assert sorted(entity.name for entity in catalog) == [
            "Article",
            "Customer",
            "Order",
            "Tag",
        ]

    def test_columns(self, catalog):
        customer = catalog.get("customer")
        assert customer.table_fields == ["id", "name", "email"]
        assert customer.primary_keys == ["id"]
        assert customer.column_name("email") == "email_address"
        assert customer.property_name("email_address") == "email"
        assert customer.column_name("name") == "name"
        assert customer.find_column("id").is_primary is True
        assert customer.find_column("unknown") is None

        article = catalog.get("article")
        assert article.table_fields == [
            "id",
            "name",
            "price",
            "order_id",
            "replacement_id",
        ]
        assert article.find_column("order_id").is_foreign_key is True
        assert article.find_column("name").is_foreign_key is False

    def test_relations(self, catalog):
        order = catalog.get("order")
        assert order.relation_names == ["customer", "articles"]

        customer = order.find_relation("customer")
        assert customer.is_eager is True
        assert customer.uselist is False
        assert customer.target is catalog.get("customer")
        assert customer.pairs == [("customer_id", "id")]
        assert customer.join_columns == ["customer_id"]
        assert customer.inverse_join_columns == ["id"]

        articles = order.find_relation("articles")
        assert articles.is_eager is False
        assert articles.uselist is True
        assert articles.pairs == [("id", "order_id")]
        assert order.find_relation("invoices") is None

    def test_inverse_relations(self, catalog):
        articles = catalog.get("order").find_relation("articles")
        assert articles.inverse_relation is catalog.get(
            "article"
        ).find_relation("order")
        assert articles.inverse_relation.inverse_relation is articles
        replacement = catalog.get("article").find_relation("replacement")
        assert replacement.inverse_relation is None

    def test_inverse_relations_from_backref(self, shop_catalog):
        clerks = shop_catalog.get("shop").find_relation("clerks")
        assert clerks.inverse_relation is shop_catalog.get(
            "clerk"
        ).find_relation("shop")
        assert clerks.inverse_relation.inverse_relation is clerks

        items = shop_catalog.get("shop").find_relation("items")
        assert items.inverse_relation is shop_catalog.get(
            "item"
        ).find_relation("shop")

    def test_lazy_false_is_eager(self, shop_catalog):
        shop = shop_catalog.get("shop")
        assert shop.find_relation("items").is_eager is True
        assert shop.find_relation("clerks").is_eager is False
        assert shop_catalog.get("item").find_relation("shop").is_eager is False

    @pytest.mark.parametrize(
        "lazy, expected",
        [
            (False, "joined"),
            (True, "select"),
            (None, "noload"),
            ("selectin", "selectin"),
        ],
    )
    def test_lazy_strategy(self, lazy, expected):
        assert _lazy_strategy(lazy) == expected

    def test_self_referential_relation(self, catalog):
        article = catalog.get("article")
        replacement = article.find_relation("replacement")
        assert replacement.target is article
        assert replacement.is_eager is True
        assert replacement.uselist is False
        assert replacement.pairs == [("replacement_id", "id")]

    def test_many_to_many_relation(self, catalog):
        tags = catalog.get("article").find_relation("tags")
        assert tags.is_eager is True
        assert tags.uselist is True
        assert tags.secondary.name == "article_tag"
        assert tags.pairs == [("id", "article_id")]
        assert tags.secondary_pairs == [("tag_id", "id")]
        assert tags.join_columns == ["id"]
        assert tags.inverse_join_columns == ["id"]
        assert str(tags) == "RelationMetadata: tags -> Tag"

    def test_from_models(self, models):
        catalog = Catalog.from_models(models["tag"], models["order"])
        # entities reachable through relations are registered too
        assert "customer" in catalog
        assert "article" in catalog
        assert len(catalog) == 4

    def test_from_models_not_mapped(self):
        class Invoice(object):
            pass

        with pytest.raises(CatalogError) as excinfo:
            Catalog.from_models(Invoice)
        assert "is not a mapped class" in str(excinfo.value)

    def test_add(self):
        table = sa.Table(
            "invoice",
            sa.MetaData(),
            sa.Column("id", sa.Integer, primary_key=True),
        )
        invoice = EntityMetadata(
            name="Invoice",
            table=table,
            columns=[ColumnMetadata("id", "id", is_primary=True)],
        )
        catalog = Catalog([invoice])
        assert catalog.get("Invoice") is invoice
        assert catalog.get("invoice") is invoice
        assert str(invoice) == "EntityMetadata: Invoice (invoice)"
