"""Check whether a manipulated response stays in the cache for clean requests."""

from __future__ import annotations

from concurrent.futures import ThreadPoolExecutor
from dataclasses import dataclass
from typing import Mapping, Protocol

from cachex.client import HttpClient, HttpError, Response
from cachex.types import PersistenceCheckResult, PoisoningError, ResponseChangeType
from cachex.utils import merge_maps

_COMPARED_FIELD = {
    ResponseChangeType.CHANGED_LOCATION_HEADER: "location",
    ResponseChangeType.CHANGED_STATUS_CODE: "status_code",
    ResponseChangeType.CHANGED_BODY: "body",
}


class _ScanTarget(Protocol):
    request_headers: dict[str, str]
    payload_headers: dict[str, str]
    client: HttpClient
    cache_buster_url: str

    def set_cache_buster_url(self) -> None: ...


def _same_change(
    response: Response, modified: Response, change_type: ResponseChangeType
) -> bool:
    name = _COMPARED_FIELD.get(change_type)
    if name is None:
        return False
    return getattr(response, name) == getattr(modified, name)


@dataclass
class PersistenceChecker:
    """Poisons a fresh cache key, then fetches it without payload headers."""

    do_check: bool = False
    num_requests_to_send: int = 0
    num_threads: int = 0

    def _poison(
        self, client: HttpClient, url: str, headers: Mapping[str, str]
    ) -> list[Exception]:
        if self.num_requests_to_send <= 0:
            return []

        def attempt(number: int) -> Exception | None:
            try:
                client.send(url, headers)
            except HttpError as exc:
                return HttpError(f"attempt {number}: {exc}")
            return None

        with ThreadPoolExecutor(max_workers=self.num_threads) as pool:
            outcomes = pool.map(attempt, range(1, self.num_requests_to_send + 1))
            return [err for err in outcomes if err is not None]

    def check(
        self,
        scanner: _ScanTarget,
        modified_response: Response,
        change_type: ResponseChangeType,
    ) -> PersistenceCheckResult:
        """Report whether ``change_type`` survives in a response fetched without payloads."""
        if not self.do_check:
            return PersistenceCheckResult(is_persistent=False)

        scanner.set_cache_buster_url()
        url = scanner.cache_buster_url
        poisoned_headers = merge_maps(scanner.request_headers, scanner.payload_headers)
        errors = self._poison(scanner.client, url, poisoned_headers)

        try:
            response = scanner.client.fetch(url, scanner.request_headers)
        except HttpError as exc:
            return PersistenceCheckResult(
                err=HttpError(
                    f"error while fetching response without payload headers: {exc}"
                )
            )

        persistent = _same_change(response, modified_response, change_type)
        return PersistenceCheckResult(
            is_persistent=persistent,
            poc_link=url if persistent else "",
            final_response=response,
            err=PoisoningError(errors) if errors else None,
        )