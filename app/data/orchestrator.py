"""
Dashboard fan-out and merge.

A dashboard is a facade's list of `Section`s. `AggregationOrchestrator.load`
fires every section request at once, waits for all of them to settle, then
merges: a usable `Success` keeps its payload, anything else gets the
section's declared fallback. Aggregates are derived from the merged sections
only, so the numbers on screen always agree with the rows on screen.
"""
from __future__ import annotations

import asyncio
import copy
import itertools
import logging
from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from types import MappingProxyType
from typing import TYPE_CHECKING, Any, Callable, Iterator, Mapping, Optional

from data.connection import Endpoint, Failure, RequestClient, RequestOutcome, Success
from data.mock_data import DemoDataProvider, empty_payload, matches_shape

if TYPE_CHECKING:
    from data.service import ServiceFacade

logger = logging.getLogger(__name__)


class _DemoFallback:
    def __repr__(self) -> str:
        return "DEMO_FALLBACK"


# Section fallback marker: substitute the demo payload for the section's category.
DEMO_FALLBACK = _DemoFallback()


@dataclass(frozen=True)
class Section:
    name: str
    endpoint: Endpoint
    # A value, a zero-arg callable, DEMO_FALLBACK, or None for the typed empty value.
    fallback: Any = None
    params: Optional[dict[str, Any]] = None

    def fallback_value(self, demo_data: DemoDataProvider) -> Any:
        if self.fallback is DEMO_FALLBACK:
            return demo_data.provide(self.endpoint.category, self.endpoint.shape)
        if self.fallback is None:
            return empty_payload(self.endpoint.shape)
        if callable(self.fallback):
            return self.fallback()
        return copy.deepcopy(self.fallback)


class LoadState(str, Enum):
    IDLE = "idle"
    LOADING = "loading"
    POPULATED = "populated"
    PARTIALLY_POPULATED = "partially_populated"
    FULLY_DEMO = "fully_demo"


@dataclass(frozen=True, eq=False)
class DashboardModel(Mapping[str, Any]):
    """Section name -> payload. Every declared section is always present."""

    role: str
    sections: Mapping[str, Any]
    aggregates: Mapping[str, Any] = field(default_factory=dict)
    fallbacks: frozenset[str] = frozenset()
    demo_sections: frozenset[str] = frozenset()
    state: LoadState = LoadState.POPULATED
    generation: int = 0
    loaded_at: datetime = field(default_factory=datetime.now)

    def __getitem__(self, name: str) -> Any:
        return self.sections[name]

    def __iter__(self) -> Iterator[str]:
        return iter(self.sections)

    def __len__(self) -> int:
        return len(self.sections)

    def used_fallback(self, name: str) -> bool:
        return name in self.fallbacks


def resolve_section(section: Section, outcome: Any, demo_data: DemoDataProvider) -> tuple[Any, bool]:
    """(payload, used_fallback) for one settled request."""
    if isinstance(outcome, Success) and matches_shape(outcome.payload, section.endpoint.shape):
        return outcome.payload, False

    if isinstance(outcome, Failure):
        logger.info("SectionFallbackUsed: %s (%s)", section.name, outcome.kind.value)
    elif isinstance(outcome, Success):
        logger.info("SectionFallbackUsed: %s (payload is not a %s)", section.name, section.endpoint.shape.value)
    else:
        logger.error("SectionFallbackUsed: %s (unexpected error)", section.name, exc_info=outcome)
    return section.fallback_value(demo_data), True


def _derive(facade: "ServiceFacade", view: Mapping[str, Any]) -> Mapping[str, Any]:
    if facade.derive is None:
        return {}
    try:
        return facade.derive(view)
    except Exception:
        # Rows passed the shape check but not the derivation; the sections still render.
        logger.error("Deriving %s aggregates failed; showing zeroed aggregates", facade.role, exc_info=True)
    try:
        return facade.derive(MappingProxyType({}))
    except Exception:
        logger.error("Deriving empty %s aggregates failed", facade.role, exc_info=True)
        return {}


def merge(
    facade: "ServiceFacade",
    outcomes: list[Any],
    demo_data: DemoDataProvider,
    generation: int = 0,
) -> DashboardModel:
    sections: dict[str, Any] = {}
    fallbacks: set[str] = set()
    demo: set[str] = set()
    for section, outcome in zip(facade.sections, outcomes):
        payload, used_fallback = resolve_section(section, outcome, demo_data)
        sections[section.name] = payload
        if used_fallback:
            fallbacks.add(section.name)
        elif outcome.source == "demo":
            demo.add(section.name)

    # Single source of truth for everything derived: the merged sections.
    view = MappingProxyType(sections)
    aggregates = _derive(facade, view)

    if sections and len(demo) == len(sections):
        state = LoadState.FULLY_DEMO
    elif fallbacks or demo:
        state = LoadState.PARTIALLY_POPULATED
    else:
        state = LoadState.POPULATED

    return DashboardModel(
        role=facade.role,
        sections=view,
        aggregates=MappingProxyType(dict(aggregates)),
        fallbacks=frozenset(fallbacks),
        demo_sections=frozenset(demo),
        state=state,
        generation=generation,
    )


class AggregationOrchestrator:
    def __init__(self, client: RequestClient):
        self.client = client
        self._generations = itertools.count(1)

    @property
    def demo_data(self) -> DemoDataProvider:
        return self.client.demo_data

    async def _fetch(self, section: Section) -> RequestOutcome:
        return await self.client.send(section.endpoint, section.params)

    async def load(self, facade: "ServiceFacade") -> DashboardModel:
        generation = next(self._generations)
        logger.debug("Loading %s dashboard (generation %d, %d sections)", facade.role, generation, len(facade.sections))
        # return_exceptions: one section blowing up must not cancel its siblings
        outcomes = await asyncio.gather(
            *(self._fetch(s) for s in facade.sections),
            return_exceptions=True,
        )
        model = merge(facade, list(outcomes), self.demo_data, generation)
        if model.fallbacks:
            logger.info("%s dashboard generation %d used fallbacks for: %s",
                        facade.role, generation, ", ".join(sorted(model.fallbacks)))
        return model

    async def load_section(self, facade: "ServiceFacade", name: str) -> Any:
        section = facade.section(name)
        try:
            outcome: Any = await self._fetch(section)
        except Exception as e:  # contained like a failed fan-out member
            outcome = e
        payload, _ = resolve_section(section, outcome, self.demo_data)
        return payload


class DashboardController:
    """
    Owns the model one view is displaying.

    Overlapping refreshes are not serialized: whichever load resolves last is
    what the view shows. Loads that resolve after `dispose()` are dropped.
    """

    def __init__(
        self,
        orchestrator: AggregationOrchestrator,
        facade: "ServiceFacade",
        on_update: Optional[Callable[[DashboardModel], None]] = None,
    ):
        self.orchestrator = orchestrator
        self.facade = facade
        self.on_update = on_update
        self.model: Optional[DashboardModel] = None
        self.state = LoadState.IDLE
        self.disposed = False
        self._auto_task: Optional[asyncio.Task] = None

    async def refresh(self) -> Optional[DashboardModel]:
        if self.disposed:
            return None
        if self.state != LoadState.FULLY_DEMO:
            self.state = LoadState.LOADING
        model = await self.orchestrator.load(self.facade)
        if self.disposed:
            logger.debug("Dropping %s generation %d: view disposed", self.facade.role, model.generation)
            return None
        self.model = model
        self.state = model.state
        if self.on_update is not None:
            self.on_update(model)
        return model

    def start_auto_refresh(self, interval_s: Optional[float] = None) -> Optional[asyncio.Task]:
        """Schedule periodic refreshes on the running loop. 0/None disables."""
        interval = self.facade.refresh_interval_s if interval_s is None else interval_s
        if self.disposed or not interval:
            return None
        self.stop_auto_refresh()
        self._auto_task = asyncio.create_task(self._auto_loop(interval))
        return self._auto_task

    async def _auto_loop(self, interval: float) -> None:
        while not self.disposed:
            await asyncio.sleep(interval)
            await self.refresh()

    def stop_auto_refresh(self) -> None:
        if self._auto_task is not None:
            self._auto_task.cancel()
            self._auto_task = None

    @property
    def auto_refreshing(self) -> bool:
        return self._auto_task is not None and not self._auto_task.done()

    def dispose(self) -> None:
        self.disposed = True
        self.stop_auto_refresh()
