"""Generic fixtures for DynamicRepo tests."""

import datetime
import typing as t

import pytest
import sqlalchemy as sa
from sqlalchemy.orm import (
    backref,
    DeclarativeBase,
    Mapped,
    mapped_column,
    relationship,
    Session,
)
from sqlalchemy.pool import StaticPool

from dynamicrepo.catalog import Catalog
from dynamicrepo.repository import DynamicRepository


class Base(DeclarativeBase):
    pass


article_tag = sa.Table(
    "article_tag",
    Base.metadata,
    sa.Column(
        "article_id", sa.ForeignKey("article.id"), primary_key=True
    ),
    sa.Column("tag_id", sa.ForeignKey("tag.id"), primary_key=True),
)


class Customer(Base):
    __tablename__ = "customer"

    id: Mapped[int] = mapped_column(primary_key=True)
    name: Mapped[str] = mapped_column(sa.String(64))
    email: Mapped[t.Optional[str]] = mapped_column(
        "email_address", sa.String(128)
    )
    orders: Mapped[t.List["Order"]] = relationship(back_populates="customer")


class Order(Base):
    __tablename__ = "order"

    id: Mapped[int] = mapped_column(primary_key=True)
    reference: Mapped[str] = mapped_column(sa.String(32))
    status: Mapped[str] = mapped_column(sa.String(16))
    customer_id: Mapped[t.Optional[int]] = mapped_column(
        sa.ForeignKey("customer.id")
    )
    customer: Mapped[t.Optional[Customer]] = relationship(
        back_populates="orders", lazy="joined"
    )
    articles: Mapped[t.List["Article"]] = relationship(
        back_populates="order"
    )


class Article(Base):
    __tablename__ = "article"

    id: Mapped[int] = mapped_column(primary_key=True)
    name: Mapped[str] = mapped_column(sa.String(64))
    price: Mapped[int] = mapped_column(sa.Integer)
    order_id: Mapped[int] = mapped_column(sa.ForeignKey("order.id"))
    replacement_id: Mapped[t.Optional[int]] = mapped_column(
        sa.ForeignKey("article.id")
    )
    order: Mapped[Order] = relationship(back_populates="articles")
    replacement: Mapped[t.Optional["Article"]] = relationship(
        remote_side="Article.id", lazy="joined"
    )
    tags: Mapped[t.List["Tag"]] = relationship(
        secondary=article_tag, lazy="selectin"
    )


class Tag(Base):
    __tablename__ = "tag"

    id: Mapped[int] = mapped_column(primary_key=True)
    label: Mapped[str] = mapped_column(sa.String(32))


class ShopBase(DeclarativeBase):
    pass


class Shop(ShopBase):
    __tablename__ = "shop"

    id: Mapped[int] = mapped_column(primary_key=True)
    name: Mapped[str] = mapped_column(sa.String(32))
    active: Mapped[bool] = mapped_column(sa.Boolean)
    opened: Mapped[datetime.date] = mapped_column(sa.Date)
    updated_at: Mapped[t.Optional[datetime.datetime]] = mapped_column(
        sa.DateTime
    )
    items: Mapped[t.List["Item"]] = relationship(
        back_populates="shop", lazy=False
    )


class Item(ShopBase):
    __tablename__ = "item"

    id: Mapped[int] = mapped_column(primary_key=True)
    label: Mapped[str] = mapped_column(sa.String(32))
    shop_id: Mapped[int] = mapped_column(sa.ForeignKey("shop.id"))
    shop: Mapped[Shop] = relationship(back_populates="items")


class Clerk(ShopBase):
    __tablename__ = "clerk"

    id: Mapped[int] = mapped_column(primary_key=True)
    name: Mapped[str] = mapped_column(sa.String(32))
    shop_id: Mapped[int] = mapped_column(sa.ForeignKey("shop.id"))
    shop: Mapped[Shop] = relationship(backref=backref("clerks"))


@pytest.fixture(scope="session")
def base():
    return Base


@pytest.fixture(scope="session")
def models():
    return {
        "customer": Customer,
        "order": Order,
        "article": Article,
        "tag": Tag,
    }


@pytest.fixture(scope="session")
def engine():
    engine = sa.create_engine(
        "sqlite://",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    Base.metadata.create_all(engine)
    with Session(engine) as session:
        alice = Customer(id=1, name="Alice", email="alice@example.com")
        bob = Customer(id=2, name="Bob", email=None)
        office = Tag(id=1, label="office")
        home = Tag(id=2, label="home")
        pen = Article(id=1, name="pen", price=5, tags=[office])
        book = Article(
            id=2, name="book", price=15, replacement=pen, tags=[office, home]
        )
        lamp = Article(id=3, name="lamp", price=40, tags=[home])
        desk = Article(id=4, name="desk", price=120, replacement=lamp)
        ink = Article(id=5, name="ink", price=3)
        session.add_all(
            [
                Order(
                    id=1,
                    reference="A-1",
                    status="open",
                    customer=alice,
                    articles=[pen, book],
                ),
                Order(
                    id=2,
                    reference="A-2",
                    status="closed",
                    customer=alice,
                    articles=[lamp],
                ),
                Order(
                    id=3,
                    reference="B-1",
                    status="open",
                    customer=bob,
                    articles=[desk, ink],
                ),
                Order(id=4, reference="C-1", status="open"),
            ]
        )
        session.commit()
    yield engine
    engine.dispose()


@pytest.fixture(scope="session")
def catalog():
    return Catalog.from_base(Base)


@pytest.fixture(scope="function")
def repository(catalog, engine):
    return DynamicRepository(catalog, bind=engine, debug=False)


@pytest.fixture(scope="session")
def shop_engine():
    engine = sa.create_engine(
        "sqlite://",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    ShopBase.metadata.create_all(engine)
    with Session(engine) as session:
        session.add_all(
            [
                Shop(
                    id=1,
                    name="north",
                    active=True,
                    opened=datetime.date(2022, 6, 1),
                    updated_at=datetime.datetime(2022, 6, 1, 9, 30),
                    items=[Item(id=1, label="crate")],
                ),
                Shop(
                    id=2,
                    name="south",
                    active=False,
                    opened=datetime.date(2023, 3, 15),
                ),
                Shop(
                    id=3,
                    name="east",
                    active=True,
                    opened=datetime.date(2024, 1, 10),
                    updated_at=datetime.datetime(2024, 2, 1, 18, 0),
                    items=[Item(id=2, label="shelf")],
                ),
                Clerk(id=1, name="Dana", shop_id=1),
            ]
        )
        session.commit()
    yield engine
    engine.dispose()


@pytest.fixture(scope="session")
def shop_catalog():
    return Catalog.from_base(ShopBase)


@pytest.fixture(scope="function")
def shop_repository(shop_catalog, shop_engine):
    return DynamicRepository(shop_catalog, bind=shop_engine, debug=False)
