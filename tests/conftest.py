from pathlib import Path

import pytest
from fastapi.testclient import TestClient

from inventory_analyzer.config import Settings
from inventory_analyzer.engine import RuleSnapshot
from inventory_analyzer.main import create_app
from inventory_analyzer.matcher import _compile
from inventory_analyzer.models import ExclusionRule, MappingRule
from inventory_analyzer.rules import DEFAULT_EXCLUSION_RULES, DEFAULT_MAPPING_RULES
from inventory_analyzer.store import InventoryDatabase


@pytest.fixture(autouse=True)
def fresh_pattern_cache():
    _compile.cache_clear()
    yield
    _compile.cache_clear()


@pytest.fixture
def default_snapshot() -> RuleSnapshot:
    return RuleSnapshot.of(
        [ExclusionRule(**r) for r in DEFAULT_EXCLUSION_RULES],
        [MappingRule(**r) for r in DEFAULT_MAPPING_RULES],
    )


@pytest.fixture
def db(tmp_path: Path) -> InventoryDatabase:
    database = InventoryDatabase(tmp_path / "inventory.db")
    database.init_schema()
    return database


@pytest.fixture
def client(tmp_path: Path) -> TestClient:
    app = create_app(Settings(db_path=tmp_path / "api.db"))
    return TestClient(app)
