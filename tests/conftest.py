"""Test config and shared fixtures."""
import random
import pytest
from typing import AsyncGenerator, Callable

from framework.database.sql_driver import SQLDriver
from framework.repository.unit_of_work import TrackingPolicy, UnitOfWork
from apps.products.models import Product, ProductProperty, ProductType
from apps.products.repository import ProductRepository


@pytest.fixture(scope="function")
async def driver(tmp_path) -> AsyncGenerator[SQLDriver, None]:
    """SQLite file database reachable through both the sync and the async driver."""
    # Import all models so they are registered in metadata
    import apps.models  # noqa: F401

    db_file = tmp_path / "products.db"
    driver = SQLDriver(f"sqlite+aiosqlite:///{db_file}", f"sqlite:///{db_file}")
    driver.create_schema()

    yield driver

    driver.drop_schema()
    await driver.disconnect()


@pytest.fixture
async def unit_of_work(driver: SQLDriver) -> AsyncGenerator[UnitOfWork, None]:
    """Unit of work with the default (explicit) tracking policy."""
    uow = UnitOfWork.from_driver(driver)
    yield uow
    await uow.aclose()


@pytest.fixture
async def auto_unit_of_work(driver: SQLDriver) -> AsyncGenerator[UnitOfWork, None]:
    """Unit of work that persists mutations of attached entities on commit."""
    uow = UnitOfWork.from_driver(driver, tracking=TrackingPolicy.AUTO)
    yield uow
    await uow.aclose()


@pytest.fixture
def product_repository(unit_of_work: UnitOfWork) -> ProductRepository:
    return unit_of_work.get_repository(ProductRepository)


@pytest.fixture
def product_id() -> int:
    """Random product id."""
    return random.randint(1, 999999999)


@pytest.fixture
def make_product() -> Callable[..., Product]:
    """Factory for products, typed by default."""
    def _make(id: int, code: str = "Code", with_type: bool = True, **fields) -> Product:
        product = Product(id=id, name="Name", code=code, **fields)
        if with_type:
            product.product_type = ProductType(
                name="Type",
                properties=[ProductProperty(key="A", value="1"), ProductProperty(key="B", value="2")],
            )
        return product
    return _make
