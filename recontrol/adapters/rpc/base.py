from abc import ABC, abstractmethod
from typing import Any, Mapping


class AbstractDatabaseGateway(ABC):
	"""Interface for the remote database: stored procedures plus table access."""

	@abstractmethod
	async def rpc(self, function: str, params: Mapping[str, Any] | None = None) -> Any:
		"""Call a stored procedure and return its decoded JSON result."""
		...

	@abstractmethod
	async def select(
		self,
		table: str,
		*,
		columns: str = "*",
		filters: Mapping[str, str] | None = None,
		order: str | None = None,
		limit: int | None = None,
	) -> list[dict[str, Any]]:
		"""Read rows from a table.

		Args:
			table: Table name within the configured schema.
			columns: Column list, comma-separated.
			filters: Column -> filter expression (see ``eq`` / ``in_``).
			order: Ordering expression, e.g. ``created_at.desc``.
			limit: Maximum rows to return.
		"""
		...

	@abstractmethod
	async def update(
		self,
		table: str,
		values: Mapping[str, Any],
		*,
		filters: Mapping[str, str],
	) -> None:
		"""Update the rows matching ``filters``."""
		...

	@abstractmethod
	async def upsert(
		self,
		table: str,
		values: Mapping[str, Any],
		*,
		on_conflict: str,
	) -> None:
		"""Insert a row or merge it into the existing one on ``on_conflict``."""
		...


def eq(value: Any) -> str:
	return f"eq.{value}"


def in_(values: list[str]) -> str:
	return "in.(" + ",".join(values) + ")"
