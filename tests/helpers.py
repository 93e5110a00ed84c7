import asyncio
import json
from collections import defaultdict, deque
from typing import Deque, Dict, List, Optional

import httpx


BASE_URL = "http://backend.test"

SOIL_PAYLOAD = {
    "ph": 7.2,
    "moisture": 41,
    "nitrogen": 88,
    "phosphorus": 35,
    "potassium": 120,
}
WEATHER_PAYLOAD = {"rainfall_mm": 1150, "temperature_c": 31.5}
MARKET_PAYLOAD = {"demand_index": 0.8, "price_index": 0.45}

RICE = {
    "crop": "rice",
    "score": 87,
    "expected_yield_tpha": 4.6,
    "profit_index": 0.72,
    "sustainability_score": 0.655,
    "notes": "Suits high rainfall.",
}
MAIZE = {
    "crop": "maize",
    "score": 74.5,
    "expected_yield_tpha": 5,
    "profit_index": 0.6,
    "sustainability_score": 0.5,
}


class Reply:
    """One scripted response; ``gate`` holds it until the test releases it."""

    def __init__(
        self,
        payload: object = None,
        *,
        status_code: int = 200,
        raw: Optional[bytes] = None,
        error: Optional[Exception] = None,
        gate: Optional[asyncio.Event] = None,
    ) -> None:
        self.payload = payload
        self.status_code = status_code
        self.raw = raw
        self.error = error
        self.gate = gate

    def to_response(self, request: httpx.Request) -> httpx.Response:
        if self.error is not None:
            raise self.error
        if self.raw is not None:
            return httpx.Response(self.status_code, content=self.raw, request=request)
        return httpx.Response(self.status_code, json=self.payload, request=request)


class ScriptedBackend:
    """Queue of replies per path, exposed as an ``httpx.MockTransport``."""

    def __init__(self) -> None:
        self._replies: Dict[str, Deque[Reply]] = defaultdict(deque)
        self.requests: List[httpx.Request] = []

    def queue(self, path: str, reply: Reply) -> Reply:
        self._replies[path].append(reply)
        return reply

    def requests_for(self, path: str) -> List[httpx.Request]:
        return [item for item in self.requests if item.url.path == path]

    def json_bodies(self, path: str) -> List[dict]:
        return [json.loads(item.content) for item in self.requests_for(path)]

    async def _handle(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(request)
        replies = self._replies[request.url.path]
        if not replies:
            return httpx.Response(404, json={"detail": "not scripted"}, request=request)
        reply = replies.popleft()
        if reply.gate is not None:
            await reply.gate.wait()
        return reply.to_response(request)

    def transport(self) -> httpx.MockTransport:
        return httpx.MockTransport(self._handle)
