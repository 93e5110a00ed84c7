"""Editable form state and the two backend operations that reconcile it.

The controller runs on a single asyncio loop. Every state change happens
between awaits, so no locking is needed. Each operation keeps a monotonic
request sequence: only the latest request of an operation may apply its
result, and completions arriving after :meth:`FormController.close` are
dropped.
"""

from __future__ import annotations

import asyncio
import logging
from enum import Enum
from typing import Dict, List, Optional, Set, Tuple

from ..domain import (
    DEFAULT_COORDINATE,
    DEFAULT_LANGUAGE,
    DEFAULT_MARKET,
    DEFAULT_ROTATION_TEXT,
    DEFAULT_SOIL,
    DEFAULT_WEATHER,
    parse_rotation_history,
)
from ..infra.backend_client import BackendClient, BackendRequestError
from ..infra.config import AppConfig, get_config
from ..observability.logging_utils import EventLogger, init_logging
from ..observability.otel import (
    build_span_attributes,
    init_otel,
    instrument_httpx,
    record_exception,
    start_span,
)
from ..schemas import (
    AutoDataSnapshot,
    Coordinate,
    MarketProfile,
    Recommendation,
    RecommendationRequest,
    RequestStatus,
    SoilProfile,
    WeatherProfile,
)
from .view import FormView, build_form_view


logger = logging.getLogger(__name__)

AUTO_FILL_WARNING = "Could not fetch auto data. Using current values."
RECOMMEND_WARNING = "Failed to get recommendations. Check backend URL."


class Operation(str, Enum):
    AUTO_FILL = "auto_fill"
    RECOMMEND = "recommend"


class FormController:
    def __init__(
        self,
        client: BackendClient,
        *,
        preferred_language: str = DEFAULT_LANGUAGE,
        coordinate: Coordinate = DEFAULT_COORDINATE,
        soil: SoilProfile = DEFAULT_SOIL,
        weather: WeatherProfile = DEFAULT_WEATHER,
        market: MarketProfile = DEFAULT_MARKET,
        rotation_text: str = DEFAULT_ROTATION_TEXT,
        owns_client: bool = False,
        events: Optional[EventLogger] = None,
    ) -> None:
        self._client = client
        self._events = events or EventLogger()
        self._owns_client = owns_client
        self.preferred_language = preferred_language

        self._coordinate = coordinate
        self._soil = soil
        self._weather = weather
        self._market = market
        self._rotation_text = rotation_text
        self._recommendations: List[Recommendation] = []
        self._warning: Optional[str] = None

        self._issued: Dict[Operation, int] = {op: 0 for op in Operation}
        self._pending: Dict[Operation, int] = {op: 0 for op in Operation}
        self._tasks: Set[asyncio.Task] = set()
        self._unstarted: Set[Tuple[Operation, int]] = set()
        self._init_task: Optional[asyncio.Task] = None
        self._disposed = False

    # -- state ---------------------------------------------------------------

    @property
    def coordinate(self) -> Coordinate:
        return self._coordinate

    @property
    def soil(self) -> SoilProfile:
        return self._soil

    @property
    def weather(self) -> WeatherProfile:
        return self._weather

    @property
    def market(self) -> MarketProfile:
        return self._market

    @property
    def rotation_text(self) -> str:
        return self._rotation_text

    @property
    def rotation_history(self) -> List[str]:
        return parse_rotation_history(self._rotation_text)

    @property
    def recommendations(self) -> List[Recommendation]:
        return list(self._recommendations)

    @property
    def warning_message(self) -> Optional[str]:
        return self._warning

    @property
    def status(self) -> RequestStatus:
        return RequestStatus(
            auto_fill_in_flight=self._pending[Operation.AUTO_FILL] > 0,
            recommend_in_flight=self._pending[Operation.RECOMMEND] > 0,
            warning_message=self._warning,
        )

    @property
    def in_flight(self) -> bool:
        return any(count > 0 for count in self._pending.values())

    def is_busy(self, operation: Operation) -> bool:
        return self._pending[Operation(operation)] > 0

    @property
    def disposed(self) -> bool:
        return self._disposed

    # -- user edits ----------------------------------------------------------

    def set_latitude(self, value: str) -> None:
        self._coordinate = self._coordinate.replace(latitude=str(value))

    def set_longitude(self, value: str) -> None:
        self._coordinate = self._coordinate.replace(longitude=str(value))

    def set_rotation_text(self, value: str) -> None:
        self._rotation_text = value or ""

    def update_soil(self, **fields: float) -> None:
        self._soil = self._soil.replace(**fields)

    def update_weather(self, **fields: float) -> None:
        self._weather = self._weather.replace(**fields)

    def update_market(self, **fields: float) -> None:
        self._market = self._market.replace(**fields)

    def build_request(self) -> RecommendationRequest:
        return RecommendationRequest(
            location=self._coordinate.as_location(),
            soil=self._soil,
            weather=self._weather,
            previous_crops=self.rotation_history,
            market=self._market,
            preferred_language=self.preferred_language,
        )

    def view(self) -> FormView:
        return build_form_view(self)

    # -- lifecycle -----------------------------------------------------------

    def initialize(self) -> asyncio.Task:
        """Start the one-off auto-fill without waiting for it.

        Must be called from a running event loop. The busy flag is raised
        before returning so the first render already shows it.
        """
        if self._init_task is None:
            self._init_task = self.trigger_auto_fill()
        return self._init_task

    async def close(self) -> None:
        if self._disposed:
            return
        self._disposed = True
        tasks = list(self._tasks)
        for task in tasks:
            task.cancel()
        results = await asyncio.gather(*tasks, return_exceptions=True)
        for result in results:
            if isinstance(result, Exception):
                logger.error("form task failed during close", exc_info=result)
        if self._owns_client:
            await self._client.aclose()
        self._events.emit("form_closed", cancelled=len(tasks))

    async def __aenter__(self) -> "FormController":
        self.initialize()
        return self

    async def __aexit__(self, *exc_info: object) -> None:
        await self.close()

    # -- operations ----------------------------------------------------------

    def trigger_auto_fill(self) -> asyncio.Task:
        loop = asyncio.get_running_loop()
        seq = self._begin(Operation.AUTO_FILL)
        return self._spawn(
            loop, Operation.AUTO_FILL, seq, self._run_auto_fill(seq, self._coordinate)
        )

    def trigger_recommendations(self) -> asyncio.Task:
        loop = asyncio.get_running_loop()
        seq = self._begin(Operation.RECOMMEND)
        return self._spawn(
            loop, Operation.RECOMMEND, seq, self._run_recommend(seq, self.build_request())
        )

    async def auto_fill(self) -> None:
        seq = self._begin(Operation.AUTO_FILL)
        await self._run_auto_fill(seq, self._coordinate)

    async def get_recommendations(self) -> None:
        seq = self._begin(Operation.RECOMMEND)
        await self._run_recommend(seq, self.build_request())

    def _spawn(
        self,
        loop: asyncio.AbstractEventLoop,
        operation: Operation,
        seq: int,
        coro,
    ) -> asyncio.Task:
        key = (operation, seq)
        self._unstarted.add(key)
        task = loop.create_task(coro)
        self._tasks.add(task)
        task.add_done_callback(self._tasks.discard)
        task.add_done_callback(lambda _task: self._release_unstarted(key))
        return task

    def _release_unstarted(self, key: Tuple[Operation, int]) -> None:
        # A task cancelled before its first step never runs its finally block.
        if key in self._unstarted:
            self._unstarted.discard(key)
            self._finish(key[0])

    def _mark_started(self, operation: Operation, seq: int) -> None:
        self._unstarted.discard((operation, seq))

    def _begin(self, operation: Operation) -> int:
        if self._disposed:
            raise RuntimeError("form controller is closed")
        self._issued[operation] += 1
        self._pending[operation] += 1
        self._warning = None
        return self._issued[operation]

    def _finish(self, operation: Operation) -> None:
        self._pending[operation] = max(0, self._pending[operation] - 1)

    def _is_current(self, operation: Operation, seq: int) -> bool:
        return not self._disposed and seq == self._issued[operation]

    async def _run_auto_fill(self, seq: int, coordinate: Coordinate) -> None:
        op = Operation.AUTO_FILL
        self._mark_started(op, seq)
        try:
            with self._events.operation(op.value, seq), start_span(
                "form.auto_fill", {"form.seq": seq}
            ) as span:
                self._events.emit(
                    "auto_fill_start", lat=coordinate.latitude, lon=coordinate.longitude
                )
                try:
                    snapshot = await self._client.fetch_auto_data(coordinate)
                except BackendRequestError as exc:
                    record_exception(span, exc)
                    self._events.emit("auto_fill_failed", error=str(exc))
                    if self._is_current(op, seq):
                        self._warning = AUTO_FILL_WARNING
                    return
                if not self._is_current(op, seq):
                    self._events.emit("auto_fill_stale", latest=self._issued[op])
                    return
                self._apply_snapshot(snapshot)
                self._events.emit("auto_fill_applied", sections=snapshot.present_sections())
        finally:
            self._finish(op)

    def _apply_snapshot(self, snapshot: AutoDataSnapshot) -> None:
        # Section granularity: a present section replaces the whole profile.
        if snapshot.soil is not None:
            self._soil = snapshot.soil
        if snapshot.weather is not None:
            self._weather = snapshot.weather
        if snapshot.market is not None:
            self._market = snapshot.market

    async def _run_recommend(self, seq: int, request: RecommendationRequest) -> None:
        op = Operation.RECOMMEND
        self._mark_started(op, seq)
        attributes = {"form.seq": seq}
        attributes.update(build_span_attributes("form.request", request.model_dump(mode="json")))
        try:
            with self._events.operation(op.value, seq), start_span(
                "form.recommend", attributes
            ) as span:
                self._events.emit(
                    "recommend_start",
                    location=request.location,
                    previous_crops=request.previous_crops,
                )
                try:
                    recommendations = await self._client.fetch_recommendations(request)
                except BackendRequestError as exc:
                    record_exception(span, exc)
                    self._events.emit("recommend_failed", error=str(exc))
                    if self._is_current(op, seq):
                        self._warning = RECOMMEND_WARNING
                    return
                if not self._is_current(op, seq):
                    self._events.emit("recommend_stale", latest=self._issued[op])
                    return
                self._recommendations = list(recommendations)
                self._events.emit(
                    "recommend_applied",
                    count=len(recommendations),
                    crops=[item.crop_name for item in recommendations],
                )
        finally:
            self._finish(op)


def create_form_controller(
    config: Optional[AppConfig] = None,
    *,
    transport=None,
) -> FormController:
    """Build a controller and the HTTP client it owns from configuration."""
    cfg = config or get_config()
    events = init_logging(cfg)
    if init_otel():
        instrument_httpx()
    client = BackendClient(
        cfg.backend_url,
        timeout=cfg.request_timeout_seconds,
        transport=transport,
    )
    return FormController(
        client,
        preferred_language=cfg.preferred_language,
        owns_client=True,
        events=events,
    )
