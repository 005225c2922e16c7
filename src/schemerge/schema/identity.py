"""
Identity and key derivation helpers for schemerge.

Column ids are minted by an injected generator so that reconciliation stays
a pure function of its inputs. Tables are keyed by name and relationships by
their four endpoint names.
"""

import logging
import random
import string
import threading
import time
import uuid
from typing import Callable, Dict, Iterable, Optional, Set, TypeVar

from ..exceptions import ConfigurationError
from .models import Relationship, Table


logger = logging.getLogger(__name__)

IdGenerator = Callable[[], str]

T = TypeVar("T")

DEFAULT_ID_PREFIX = "col-"

_BASE36 = string.digits + string.ascii_lowercase


class UuidIdGenerator:
    """Mint ids of the form ``<prefix><uuid4 hex>``."""

    def __init__(self, prefix: str = DEFAULT_ID_PREFIX):
        self.prefix = prefix

    def __call__(self) -> str:
        return f"{self.prefix}{uuid.uuid4().hex}"


class CounterIdGenerator:
    """Deterministic monotonic ids: ``col-1``, ``col-2``, ...

    Safe to share between threads.
    """

    def __init__(self, prefix: str = DEFAULT_ID_PREFIX, start: int = 1):
        self.prefix = prefix
        self._next = start
        self._lock = threading.Lock()

    def __call__(self) -> str:
        with self._lock:
            value = self._next
            self._next += 1
        return f"{self.prefix}{value}"


class TimestampIdGenerator:
    """Ids of the form ``col-<epoch ms>-<9 base36 chars>``.

    Same shape as the ids already stored by the designer front end.
    """

    def __init__(
        self,
        prefix: str = DEFAULT_ID_PREFIX,
        clock: Callable[[], float] = time.time,
        rng: Optional[random.Random] = None,
    ):
        self.prefix = prefix
        self.clock = clock
        self.rng = rng or random.SystemRandom()

    def __call__(self) -> str:
        millis = int(self.clock() * 1000)
        suffix = "".join(self.rng.choice(_BASE36) for _ in range(9))
        return f"{self.prefix}{millis}-{suffix}"


class UniqueIdGenerator:
    """Wrap a generator so it never returns an id in ``taken``.

    Every returned id is added to ``taken``.
    """

    def __init__(
        self,
        generator: IdGenerator,
        taken: Optional[Iterable[str]] = None,
        max_attempts: int = 1000,
    ):
        self.generator = generator
        self.taken: Set[str] = set(taken or ())
        self.max_attempts = max_attempts

    def __call__(self) -> str:
        for _ in range(self.max_attempts):
            candidate = self.generator()
            if candidate not in self.taken:
                self.taken.add(candidate)
                return candidate
            logger.debug(f"Id generator returned taken id {candidate}, drawing again")
        raise ConfigurationError(
            "Id generator keeps returning ids that are already in use",
            details={"attempts": self.max_attempts},
        )


ID_STRATEGIES: Dict[str, Callable[[str], IdGenerator]] = {
    "uuid": lambda prefix: UuidIdGenerator(prefix),
    "counter": lambda prefix: CounterIdGenerator(prefix),
    "timestamp": lambda prefix: TimestampIdGenerator(prefix),
}


def make_id_generator(strategy: str = "uuid", prefix: str = DEFAULT_ID_PREFIX) -> IdGenerator:
    """Build an id generator by strategy name."""
    try:
        factory = ID_STRATEGIES[strategy]
    except KeyError:
        raise ConfigurationError(
            f"Unknown id strategy '{strategy}'",
            details={"available": ", ".join(sorted(ID_STRATEGIES))},
        )
    return factory(prefix)


def table_key(table: Table) -> str:
    """Tables are identified by name; a rename is a delete plus an add."""
    return table.name


def relationship_key(relationship: Relationship) -> str:
    """Structural key ``sourceTable.sourceColumn->targetTable.targetColumn``."""
    return relationship.key


def index_by(items: Iterable[T], key: Callable[[T], str]) -> Dict[str, T]:
    """Build a lookup; later items win on duplicate keys."""
    return {key(item): item for item in items}


def index_by_name(items: Iterable[T]) -> Dict[str, T]:
    return index_by(items, lambda item: item.name)
