"""Foreign-key context: the table -> surrogate id map shared by every step."""

import logging
from collections.abc import Iterator, Mapping
from dataclasses import dataclass, field
from types import MappingProxyType

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class ContextSnapshot:
    """Read-only view of the context at one version."""

    version: int
    values: Mapping[str, int] = field(default_factory=dict)


class FkContext(Mapping[str, int]):
    """Session-scoped map from table name to the id selected or created for it.

    Entries are only added (``merge``) or wiped all at once (``clear``).
    Every mutation bumps ``version`` so readers holding a snapshot can tell
    they are stale.

    Example:
        >>> ctx = FkContext()
        >>> ctx.merge("lot", 7)
        >>> ctx["lot"], ctx.version
        (7, 1)
    """

    def __init__(self, initial: Mapping[str, int] | None = None) -> None:
        self._values: dict[str, int] = dict(initial or {})
        self._version = 0

    def __getitem__(self, table: str) -> int:
        return self._values[table]

    def __iter__(self) -> Iterator[str]:
        return iter(self._values)

    def __len__(self) -> int:
        return len(self._values)

    def __repr__(self) -> str:
        return f"FkContext({self._values!r}, version={self._version})"

    @property
    def version(self) -> int:
        return self._version

    def merge(self, table: str, pk: int) -> None:
        """Record ``pk`` as the current row of ``table`` (replaces any earlier id)."""
        self._values[table] = pk
        self._version += 1
        logger.debug(f"FK context: {table} = {pk} (v{self._version})")

    def clear(self) -> None:
        self._values.clear()
        self._version += 1
        logger.debug(f"FK context cleared (v{self._version})")

    def snapshot(self) -> ContextSnapshot:
        return ContextSnapshot(
            version=self._version,
            values=MappingProxyType(dict(self._values)),
        )

    def as_dict(self) -> dict[str, int]:
        return dict(self._values)
