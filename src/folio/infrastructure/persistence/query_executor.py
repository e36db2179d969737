"""Query executor: runs compiled plans against the records table.

Binds runtime params, checks that every collection in the plan still belongs
to the plan's workspace, renders the statement for the session's dialect and
fetches the complete result before returning. A storage failure or timeout
surfaces as one ``ExecutionError``; no partial rows are ever returned.
"""

import asyncio
import json
from collections.abc import Mapping
from dataclasses import dataclass
from datetime import date, datetime, timezone
from decimal import Decimal
from typing import Any

from sqlalchemy import select, text
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from folio.core.exceptions import ExecutionError, NotFoundError
from folio.core.logging import get_logger
from folio.core.query.binding import bind_params
from folio.core.query.plan import OutputColumn, QueryPlan, ValueKind
from folio.infrastructure.persistence.models import CollectionModel
from folio.infrastructure.persistence.sql_builder import BuiltQuery, SQLBuilder

logger = get_logger(__name__)

DEFAULT_TIMEOUT_SECONDS = 10.0


@dataclass
class ExecutionResult:
    """Rows of one execution plus metadata.

    Attributes:
        rows: Result rows keyed by output name.
        count: Number of rows returned.
        composition_id: Executed composition, None for previews.
        executed_at: When execution finished (UTC).
    """

    rows: list[dict[str, Any]]
    count: int
    composition_id: str | None
    executed_at: datetime


def _to_number(value: Any) -> Any:
    if isinstance(value, bool):
        return int(value)
    if isinstance(value, Decimal):
        return int(value) if value == value.to_integral_value() else float(value)
    if isinstance(value, float):
        return int(value) if value.is_integer() else value
    if isinstance(value, str):
        try:
            return int(value)
        except ValueError:
            try:
                return _to_number(float(value))
            except ValueError:
                return value
    return value


def _to_boolean(value: Any) -> Any:
    if isinstance(value, bool):
        return value
    if isinstance(value, int):
        return bool(value)
    if isinstance(value, str) and value.lower() in ("true", "false"):
        return value.lower() == "true"
    return value


def _to_timestamp(value: Any) -> Any:
    if isinstance(value, str):
        try:
            value = datetime.fromisoformat(value)
        except ValueError:
            return value
    if isinstance(value, datetime):
        if value.tzinfo is None:
            value = value.replace(tzinfo=timezone.utc)
        return value.isoformat()
    return value


def _to_json(value: Any, encoded: bool) -> Any:
    if isinstance(value, str) and (encoded or value[:1] in ("[", "{")):
        try:
            return json.loads(value)
        except ValueError:
            return value
    return value


def convert_value(column: OutputColumn, value: Any, encoded: bool = False) -> Any:
    """Convert a stored value back to its API representation."""
    if value is None:
        return None

    kind = column.value_kind
    if kind is ValueKind.NUMBER:
        return _to_number(value)
    if kind is ValueKind.BOOLEAN:
        return _to_boolean(value)
    if kind is ValueKind.TIMESTAMP:
        return _to_timestamp(value)
    if kind is ValueKind.JSON:
        return _to_json(value, encoded)
    if isinstance(value, (date, datetime)):
        return value.isoformat()
    return value


class QueryExecutor:
    """Executes query plans within one database session."""

    def __init__(
        self,
        session: AsyncSession,
        dialect_name: str | None = None,
        timeout_seconds: float = DEFAULT_TIMEOUT_SECONDS,
    ) -> None:
        """Initialize the executor.

        Args:
            session: SQLAlchemy async session.
            dialect_name: SQL dialect; read from the session's engine when omitted.
            timeout_seconds: Upper bound on the storage round-trip.
        """
        self.session = session
        self.dialect_name = dialect_name or session.bind.dialect.name
        self.timeout_seconds = timeout_seconds

    async def execute(
        self,
        plan: QueryPlan,
        params: Mapping[str, Any] | None = None,
        composition_id: str | None = None,
    ) -> ExecutionResult:
        """Execute a plan.

        Args:
            plan: Compiled query plan.
            params: Runtime values for the plan's named params.
            composition_id: ID reported in the result metadata.

        Returns:
            ExecutionResult with all rows.

        Raises:
            RuntimeParamError: If a param is missing or invalid.
            NotFoundError: If a collection no longer belongs to the workspace.
            ExecutionError: If the query fails or times out.
        """
        bound = bind_params(plan, params or {})
        built = SQLBuilder(self.dialect_name).build(plan, bound)

        try:
            raw_rows = await asyncio.wait_for(self._run(plan, built), timeout=self.timeout_seconds)
        except asyncio.TimeoutError:
            logger.error(
                "Composition query timed out",
                composition_id=composition_id,
                workspace_id=plan.workspace_id,
                timeout_seconds=self.timeout_seconds,
            )
            raise ExecutionError() from None
        except SQLAlchemyError as e:
            logger.error(
                "Composition query failed",
                composition_id=composition_id,
                workspace_id=plan.workspace_id,
                error=str(e),
            )
            raise ExecutionError() from e

        rows = [
            {
                column.name: convert_value(
                    column, row[column.label], column.label in built.json_labels
                )
                for column in plan.columns
            }
            for row in raw_rows
        ]

        logger.debug(
            "Composition executed",
            composition_id=composition_id,
            workspace_id=plan.workspace_id,
            row_count=len(rows),
        )
        return ExecutionResult(
            rows=rows,
            count=len(rows),
            composition_id=composition_id,
            executed_at=datetime.now(timezone.utc),
        )

    async def _run(self, plan: QueryPlan, built: BuiltQuery) -> list[Mapping[str, Any]]:
        await self._verify_ownership(plan)
        result = await self.session.execute(text(built.sql), built.params)
        return list(result.mappings().all())

    async def _verify_ownership(self, plan: QueryPlan) -> None:
        """Reject plans naming a collection outside the plan's workspace."""
        collection_ids = {source.collection_id for source in plan.sources}
        foreign = [s for s in plan.sources if s.workspace_id != plan.workspace_id]

        result = await self.session.execute(
            select(CollectionModel.id).where(
                (CollectionModel.workspace_id == plan.workspace_id)
                & (CollectionModel.id.in_(collection_ids))
            )
        )
        owned = set(result.scalars().all())

        if foreign or owned != collection_ids:
            logger.warning(
                "Plan references collections outside its workspace",
                workspace_id=plan.workspace_id,
                collections=sorted(collection_ids - owned),
            )
            raise NotFoundError("Collection not found")
