"""JSON API readiness polling."""

from __future__ import annotations

import time
from dataclasses import dataclass
from typing import Any

from pydantic import BaseModel, ConfigDict, Field, ValidationError, field_validator

from jsonapi_bootstrap.errors import SpacesNotReadyError

DEFAULT_JSONAPI_ADDR = "127.0.0.1:31009"
DEFAULT_POLL_INTERVAL = 5.0
SPACES_PATH = "/v1/spaces"


class Space(BaseModel):
    model_config = ConfigDict(extra="ignore")

    id: str = ""
    name: str = ""

    @field_validator("id", "name", mode="before")
    @classmethod
    def _null_as_empty(cls, v: Any) -> Any:
        return "" if v is None else v


class SpacesResponse(BaseModel):
    model_config = ConfigDict(extra="ignore")

    data: list[Space] = Field(default_factory=list)

    @field_validator("data", mode="before")
    @classmethod
    def _null_as_empty(cls, v: Any) -> Any:
        return [] if v is None else v


class SpacesUnavailable(Exception):
    """A single spaces request did not produce data (transport, status or decode)."""


def jsonapi_base_url(listen_addr: str) -> str:
    if listen_addr.startswith(("http://", "https://")):
        return listen_addr.rstrip("/")
    return f"http://{listen_addr}"


@dataclass
class SpacesClient:
    listen_addr: str
    app_key: str
    timeout: float = 10.0

    def __post_init__(self) -> None:
        import requests

        self._requests = requests
        self._session = requests.Session()

    @property
    def url(self) -> str:
        return f"{jsonapi_base_url(self.listen_addr)}{SPACES_PATH}"

    def close(self) -> None:
        self._session.close()

    def list_spaces(self) -> list[Space]:
        try:
            response = self._session.get(
                self.url,
                headers={"Authorization": f"Bearer {self.app_key}"},
                timeout=self.timeout,
            )
        except self._requests.RequestException as exc:
            raise SpacesUnavailable(str(exc)) from exc

        if response.status_code != 200:
            raise SpacesUnavailable(f"spaces request failed: {response.status_code}")
        try:
            return SpacesResponse.model_validate(response.json()).data
        except (ValueError, ValidationError) as exc:
            raise SpacesUnavailable(f"invalid spaces response: {exc}") from exc


def wait_for_spaces(
    client: SpacesClient,
    *,
    wait: float,
    interval: float = DEFAULT_POLL_INTERVAL,
) -> list[Space]:
    """Poll until the JSON API reports at least one space.

    Raises ``SpacesNotReadyError`` once ``wait`` seconds have elapsed since the
    first attempt without a non-empty listing.
    """
    deadline = time.time() + wait
    last_error = "spaces still empty"
    while True:
        try:
            spaces = client.list_spaces()
        except SpacesUnavailable as exc:
            last_error = str(exc)
        else:
            if spaces:
                return spaces
            last_error = "spaces still empty"

        remaining = deadline - time.time()
        if remaining <= 0:
            raise SpacesNotReadyError(f"spaces still empty or unavailable ({last_error})")
        time.sleep(min(interval, remaining))
