"""
Concurrent fan-out of one subject to every registered provider.

Each provider call is isolated: whatever it raises or however long it takes
ends up as that provider's outcome and never disturbs the others. The
returned list always has one outcome per provider, in registration order.
"""

import asyncio
import time
from typing import List, Optional, Sequence

from netknife.config.logging import get_logger
from netknife.core.exceptions import ProviderError
from netknife.integrations.providers import ProviderClient
from netknife.models.intel import OutcomeStatus, ProviderOutcome, Subject

logger = get_logger(__name__)


class FanOutCoordinator:
    """Runs provider queries concurrently under per-call and overall deadlines."""

    def __init__(self, provider_timeout: float = 10.0, request_deadline: Optional[float] = None):
        if provider_timeout <= 0:
            raise ValueError("provider_timeout must be greater than zero")
        self.provider_timeout = provider_timeout
        self.request_deadline = request_deadline if request_deadline and request_deadline > 0 else None

    def timeout_for(self, provider: ProviderClient) -> float:
        return provider.timeout or self.provider_timeout

    async def run(self, subject: Subject,
                  providers: Sequence[ProviderClient]) -> List[ProviderOutcome]:
        """Query every provider and return their outcomes in input order."""
        if not providers:
            return []

        started = time.perf_counter()
        tasks = [
            asyncio.create_task(self._call(provider, subject), name=f"provider:{provider.provider_id}")
            for provider in providers
        ]

        try:
            done, pending = await asyncio.wait(tasks, timeout=self.request_deadline)
        except asyncio.CancelledError:
            for task in tasks:
                if not task.done():
                    task.cancel()
            raise

        if pending:
            logger.warning(
                "request_deadline_exceeded",
                deadline=self.request_deadline,
                pending=[p.provider_id for p, t in zip(providers, tasks) if t in pending],
            )
            for task in pending:
                task.cancel()

        deadline_elapsed = (time.perf_counter() - started) * 1000
        outcomes: List[ProviderOutcome] = []
        for provider, task in zip(providers, tasks):
            if task in done:
                outcomes.append(task.result())
            else:
                outcomes.append(ProviderOutcome.timed_out(
                    provider.provider_id,
                    f"Request deadline of {self.request_deadline:g}s exceeded",
                    elapsed_ms=deadline_elapsed,
                ))
        return outcomes

    async def _call(self, provider: ProviderClient, subject: Subject) -> ProviderOutcome:
        """One isolated provider call; never raises."""
        timeout = self.timeout_for(provider)
        started = time.perf_counter()
        logger.debug("provider_query_started", provider=provider.provider_id, kind=subject.kind.value)

        try:
            response = await asyncio.wait_for(provider.query(subject, timeout), timeout=timeout)
            outcome = ProviderOutcome.success(
                provider.provider_id, response.payload,
                cached=response.cached, elapsed_ms=_elapsed_ms(started),
            )
        except asyncio.TimeoutError:
            outcome = ProviderOutcome.timed_out(
                provider.provider_id,
                f"{provider.display_name} did not respond within {timeout:g}s",
                elapsed_ms=_elapsed_ms(started),
            )
        except ProviderError as e:
            outcome = ProviderOutcome(
                provider_id=provider.provider_id,
                status=e.status,
                message=str(e),
                elapsed_ms=_elapsed_ms(started),
            )
        except Exception as e:
            logger.error(
                "provider_query_crashed",
                provider=provider.provider_id,
                error=str(e),
                exc_info=True,
            )
            outcome = ProviderOutcome.failure(
                provider.provider_id,
                f"Unexpected {provider.display_name} error: {e}",
                elapsed_ms=_elapsed_ms(started),
            )

        log = logger.info if outcome.status == OutcomeStatus.OK else logger.warning
        log(
            "provider_query_finished",
            provider=provider.provider_id,
            status=outcome.status.value,
            cached=outcome.cached,
            elapsed_ms=outcome.elapsed_ms,
            error=outcome.message,
        )
        return outcome


def _elapsed_ms(started: float) -> float:
    return (time.perf_counter() - started) * 1000
