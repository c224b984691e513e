"""런타임 스키마 동기화 유틸리티."""

from __future__ import annotations

import logging

from sqlalchemy import inspect, text
from sqlalchemy.engine import Engine
from sqlalchemy.schema import Column, CreateColumn, CreateIndex, MetaData

logger = logging.getLogger(__name__)


def _addable(column: Column) -> bool:
    # 기존 행이 있는 테이블에는 NOT NULL 컬럼을 서버 기본값 없이 추가할 수 없다.
    return column.nullable or column.server_default is not None


def sync_missing_schema_objects(engine: Engine, metadata: MetaData) -> list[str]:
    """기존 테이블에 없는 컬럼/인덱스를 추가하고 추가한 항목("table.name")을 반환한다.

    녹화 동기화 상태처럼 나중에 추가된 nullable/default 컬럼을 운영 DB 에 반영하는 용도이며,
    테이블 자체가 없으면 create_all 에 맡긴다. 추가할 수 없는 NOT NULL 컬럼은 경고만 남긴다.
    """
    inspector = inspect(engine)
    existing_tables = set(inspector.get_table_names())
    preparer = engine.dialect.identifier_preparer
    added: list[str] = []

    with engine.begin() as conn:
        for table in metadata.sorted_tables:
            if table.name not in existing_tables:
                continue

            existing_columns = {row["name"] for row in inspector.get_columns(table.name)}
            table_sql = preparer.format_table(table)
            for column in table.columns:
                if column.name in existing_columns:
                    continue
                if not _addable(column):
                    logger.warning(
                        "[schema] %s.%s is NOT NULL without a server default; migrate it manually",
                        table.name,
                        column.name,
                    )
                    continue
                column_sql = str(CreateColumn(column).compile(dialect=engine.dialect)).strip()
                conn.execute(text(f"ALTER TABLE {table_sql} ADD COLUMN {column_sql}"))
                added.append(f"{table.name}.{column.name}")
                existing_columns.add(column.name)

            existing_indexes = {row.get("name") for row in inspector.get_indexes(table.name)}
            for index in table.indexes:
                if not index.name or index.name in existing_indexes:
                    continue
                if any(col.name not in existing_columns for col in index.columns):
                    continue
                conn.execute(CreateIndex(index))
                added.append(f"{table.name}.{index.name}")

    if added:
        logger.info("[schema] added missing objects: %s", ", ".join(added))
    return added
