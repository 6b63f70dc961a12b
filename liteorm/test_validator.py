import logging

import pytest

from liteorm.exceptions import SchemaValidationError
from liteorm.orm_types import StorageType
from liteorm.test_utils import Tag, User
from liteorm.validator import SchemaValidator, type_family


@pytest.mark.parametrize(
    "declared, family",
    [
        ("INTEGER", StorageType.INTEGER),
        ("BIGINT", StorageType.INTEGER),
        ("VARCHAR(20)", StorageType.TEXT),
        ("clob", StorageType.TEXT),
        ("DOUBLE PRECISION", StorageType.REAL),
        ("FLOAT", StorageType.REAL),
        ("BLOB", StorageType.BLOB),
        ("", StorageType.BLOB),
        ("NUMERIC", "NUMERIC"),
    ],
)
def test_type_family(declared, family):
    assert type_family(declared) == family


@pytest.mark.asyncio
async def test_matching_schema_is_clean(db, registry):
    report = await SchemaValidator(registry).validate(db)
    assert report.ok
    assert report.warnings == []
    assert report.succeeded == 4


@pytest.mark.asyncio
async def test_missing_table_is_fatal(engine, registry):
    with pytest.raises(SchemaValidationError) as exc_info:
        await SchemaValidator(registry).validate(engine, [User])
    assert exc_info.value.table == "users"


@pytest.mark.asyncio
async def test_missing_declared_column_is_fatal(engine, registry):
    await engine.execute('CREATE TABLE "users" ("id" INTEGER PRIMARY KEY, "name" TEXT NOT NULL)')
    with pytest.raises(SchemaValidationError) as exc_info:
        await SchemaValidator(registry).validate(engine, [User])
    assert exc_info.value.table == "users"
    assert exc_info.value.column == "email"


@pytest.mark.asyncio
async def test_extra_live_column_is_a_warning(engine, registry, caplog):
    await engine.execute(
        'CREATE TABLE "users" ("id" INTEGER PRIMARY KEY, "name" TEXT NOT NULL, "email" TEXT, "nickname" TEXT)'
    )
    with caplog.at_level(logging.WARNING, logger="liteorm.validator"):
        report = await SchemaValidator(registry).validate(engine, [User])
    assert report.ok
    assert report.warnings == ["users.nickname exists in the database but is not declared"]
    assert "nickname" in caplog.text


@pytest.mark.asyncio
async def test_type_family_mismatch_is_a_warning(engine, registry):
    await engine.execute('CREATE TABLE "tags" ("id" BIGINT PRIMARY KEY, "label" INTEGER NOT NULL)')
    report = await SchemaValidator(registry).validate(engine, [Tag])
    assert len(report.warnings) == 1
    assert "tags.label" in report.warnings[0]


@pytest.mark.asyncio
async def test_compatible_type_spelling_is_accepted(engine, registry):
    await engine.execute('CREATE TABLE "tags" ("id" INT PRIMARY KEY, "label" VARCHAR(40) NOT NULL)')
    report = await SchemaValidator(registry).validate(engine, [Tag])
    assert report.warnings == []
