"""
engagehub.adapters.base - Adapter Execution Engine

BaseAdapter wraps every data operation of a concrete adapter:

1. Feature-flag gate (``AdapterConfig.feature_flag``)
2. Optional rate limiting
3. Timeout (``AdapterConfig.operation_timeout``)
4. Timing, bounded per-operation metric series and outcome tracking
5. Optional fallback resolution
6. Conversion of every failure into a failed AdapterResult

``execute_operation`` never raises for an ``Exception``; task cancellation
still propagates.

Example:
    >>> class ReportAdapter(BaseAdapter):
    ...     async def get_report(self, report_id, context):
    ...         async def _op():
    ...             return {"id": report_id}
    ...
    ...         return await self.execute_operation("get_report", _op, context)
"""

import asyncio
import logging
import math
import time
from collections import defaultdict, deque
from collections.abc import Awaitable, Callable
from typing import Any, TypeVar

from engagehub.adapters.exceptions import (
    ADAPTER_ERROR,
    AdapterDisabledError,
    AdapterError,
    AdapterTimeoutError,
    RateLimitedError,
)
from engagehub.adapters.flags import FeatureFlagEvaluator, FlagContext
from engagehub.adapters.ratelimit import RateLimiter
from engagehub.adapters.types import (
    AdapterConfig,
    AdapterContext,
    AdapterResult,
    HealthState,
    HealthStatus,
    OperationMetrics,
    ResultMetadata,
)

logger = logging.getLogger(__name__)

T = TypeVar("T")

# Samples kept per operation for both metric and outcome series
METRIC_SAMPLE_LIMIT = 100

HEALTHY_RESPONSE_MS = 1000
DEGRADED_RESPONSE_MS = 5000


def _round_half_up(value: float) -> int:
    return math.floor(value + 0.5)


def require_organization(context: AdapterContext) -> int:
    """
    Return the context's organization id.

    Raises:
        AdapterError: If the context carries no organization.
    """
    if not context.organization_id:
        raise AdapterError("Organization ID is required")
    return context.organization_id


class BaseAdapter:
    """
    Base class for all data adapters.

    Subclasses expose one async method per operation, each of which delegates
    to ``execute_operation`` with a zero-argument coroutine function.

    Args:
        config: Static adapter configuration
        flag_evaluator: Feature-flag collaborator used by ``is_enabled``
        environment: Deployment environment passed to flag evaluation
        force_enable: Skip the flag check entirely (local development only)
        clock: Monotonic clock in seconds, used for execution timing
    """

    def __init__(
        self,
        config: AdapterConfig,
        flag_evaluator: FeatureFlagEvaluator,
        *,
        environment: str = "development",
        force_enable: bool = False,
        clock: Callable[[], float] = time.perf_counter,
    ) -> None:
        self.config = config
        self.flag_evaluator = flag_evaluator
        self.environment = environment
        self.force_enable = force_enable
        self._clock = clock
        self._started_at = time.monotonic()

        self._metrics: dict[str, deque[int]] = defaultdict(
            lambda: deque(maxlen=METRIC_SAMPLE_LIMIT)
        )
        self._outcomes: dict[str, deque[bool]] = defaultdict(
            lambda: deque(maxlen=METRIC_SAMPLE_LIMIT)
        )

        self._rate_limiter: RateLimiter | None = None
        if config.rate_limit_enabled:
            self._rate_limiter = RateLimiter(
                max_requests=config.rate_limit_max,
                window_seconds=config.rate_limit_window / 1000,
            )

    @property
    def adapter_name(self) -> str:
        return self.config.adapter_name

    @property
    def version(self) -> str:
        return self.config.version

    # ========================================================================
    # Feature flag gate
    # ========================================================================

    async def is_enabled(self, context: AdapterContext) -> bool:
        """
        Check whether this adapter may run for ``context``.

        Adapters without a feature flag are always enabled. Evaluator failures
        disable the adapter regardless of environment.
        """
        flag_key = self.config.feature_flag
        if not flag_key:
            return True

        if self.force_enable:
            return True

        try:
            evaluation = await self.flag_evaluator.evaluate_flag(
                flag_key,
                FlagContext(
                    user_id=context.user_id,
                    organization_id=context.organization_id,
                    environment=self.environment,
                ),
            )
            return evaluation.value is True
        except Exception as e:
            logger.error(
                f"Failed to evaluate feature flag {flag_key} for {self.adapter_name}: {e}",
                extra={
                    "adapter": self.adapter_name,
                    "flag_key": flag_key,
                    "request_id": context.request_id,
                },
            )
            return False

    # ========================================================================
    # Execution
    # ========================================================================

    async def execute_operation(
        self,
        operation_name: str,
        operation: Callable[[], Awaitable[T]],
        context: AdapterContext,
    ) -> AdapterResult[T]:
        """
        Run ``operation`` with gating, timing, metrics and error conversion.

        Args:
            operation_name: Name of the public operation (e.g. ``get_employees``)
            operation: Zero-argument coroutine function performing the work
            context: Request context for flag evaluation and log correlation

        Returns:
            A successful AdapterResult carrying the operation's value, or a
            failed one carrying the error code and message.
        """
        operation_id = f"{self.adapter_name}.{operation_name}"
        log_context = {
            "operation_id": operation_id,
            "user_id": context.user_id,
            "organization_id": context.organization_id,
            "request_id": context.request_id,
        }
        start = self._clock()

        logger.info(f"Starting adapter operation {operation_id}", extra=log_context)

        try:
            if not await self.is_enabled(context):
                raise AdapterDisabledError(
                    f"Adapter {self.adapter_name} is disabled via feature flag"
                )

            self._check_rate_limit(operation_id, context)

            data = await asyncio.wait_for(operation(), timeout=self.config.operation_timeout)

        except Exception as e:
            execution_time = self._elapsed_ms(start)
            return await self._handle_failure(
                e, operation_id, context, execution_time, log_context
            )

        execution_time = self._elapsed_ms(start)
        self._metrics[operation_id].append(execution_time)
        self._outcomes[operation_id].append(False)

        logger.info(
            f"Adapter operation {operation_id} completed in {execution_time}ms",
            extra={**log_context, "execution_time": execution_time},
        )

        return AdapterResult.ok(data, self._metadata(execution_time))

    async def _handle_failure(
        self,
        error: Exception,
        operation_id: str,
        context: AdapterContext,
        execution_time: int,
        log_context: dict[str, Any],
    ) -> AdapterResult[Any]:
        if isinstance(error, TimeoutError) and not isinstance(error, AdapterError):
            error = AdapterTimeoutError(
                f"Operation {operation_id} timed out after {self.config.operation_timeout}s"
            )

        expected = isinstance(error, AdapterError)
        logger.error(
            f"Adapter operation {operation_id} failed after {execution_time}ms: {error}",
            exc_info=not expected,
            extra={**log_context, "execution_time": execution_time},
        )

        if not isinstance(error, AdapterDisabledError):
            self._outcomes[operation_id].append(True)

        if self.config.fallback_enabled and self.config.fallback_adapter:
            try:
                fallback = await self.resolve_fallback(operation_id, context, error)
            except Exception:
                logger.error(
                    f"Fallback {self.config.fallback_adapter} failed for {operation_id}",
                    exc_info=True,
                    extra=log_context,
                )
                fallback = None

            if fallback is not None:
                logger.info(
                    f"Served {operation_id} from fallback {self.config.fallback_adapter}",
                    extra=log_context,
                )
                return AdapterResult.ok(
                    fallback, self._metadata(execution_time, fallback_used=True)
                )

        code = error.code if isinstance(error, AdapterError) else ADAPTER_ERROR
        details: dict[str, Any] = {}
        if isinstance(error, AdapterError) and error.details:
            details.update(error.details)
        details.update(
            operation=operation_id,
            adapter=self.adapter_name,
            version=self.version,
        )

        return AdapterResult.fail(
            code=code,
            message=str(error) or "Unknown adapter error",
            details=details,
            metadata=self._metadata(execution_time),
        )

    async def resolve_fallback(
        self,
        operation_id: str,
        context: AdapterContext,
        error: Exception,
    ) -> Any | None:
        """
        Produce a substitute value for a failed operation.

        Only called when ``fallback_enabled`` and ``fallback_adapter`` are
        configured. Returning None keeps the failure.
        """
        return None

    def _check_rate_limit(self, operation_id: str, context: AdapterContext) -> None:
        if self._rate_limiter is None:
            return

        subject = context.organization_id or context.user_id or "anonymous"
        if not self._rate_limiter.is_allowed(f"{operation_id}:{subject}"):
            raise RateLimitedError(
                f"Rate limit exceeded for {operation_id}",
                details={
                    "max_requests": self.config.rate_limit_max,
                    "window_ms": self.config.rate_limit_window,
                },
            )

    def _elapsed_ms(self, start: float) -> int:
        return max(0, round((self._clock() - start) * 1000))

    def _metadata(self, execution_time: int, *, fallback_used: bool = False) -> ResultMetadata:
        return ResultMetadata(
            execution_time=execution_time,
            cache_hit=False,
            fallback_used=fallback_used,
            adapter_version=self.version,
        )

    # ========================================================================
    # Context and observability
    # ========================================================================

    def create_context(
        self,
        user_id: int | None = None,
        organization_id: int | None = None,
        request_id: str | None = None,
        ip_address: str | None = None,
        user_agent: str | None = None,
    ) -> AdapterContext:
        """Build an AdapterContext, generating a request id when none is given."""
        return AdapterContext(
            user_id=user_id,
            organization_id=organization_id,
            request_id=request_id,
            ip_address=ip_address,
            user_agent=user_agent,
        )

    def get_performance_metrics(self) -> dict[str, OperationMetrics]:
        """Aggregates per operation id over the retained samples."""
        metrics: dict[str, OperationMetrics] = {}
        for operation_id, samples in self._metrics.items():
            if not samples:
                continue
            metrics[operation_id] = OperationMetrics(
                operation_count=len(samples),
                average_time=_round_half_up(sum(samples) / len(samples)),
                min_time=min(samples),
                max_time=max(samples),
                last_execution_time=samples[-1],
            )
        return metrics

    def get_health_status(self) -> HealthStatus:
        """
        Health snapshot derived from the metric and outcome series.

        ``average_response_time`` is weighted by operation count across all
        operations. ``error_rate`` is the failure share of recorded outcomes.
        """
        total_samples = sum(len(samples) for samples in self._metrics.values())
        total_time = sum(sum(samples) for samples in self._metrics.values())
        average = _round_half_up(total_time / total_samples) if total_samples else 0

        status: HealthState
        if average < HEALTHY_RESPONSE_MS:
            status = "healthy"
        elif average < DEGRADED_RESPONSE_MS:
            status = "degraded"
        else:
            status = "unhealthy"

        outcomes = [failed for series in self._outcomes.values() for failed in series]
        error_rate = round(sum(outcomes) / len(outcomes), 4) if outcomes else 0.0

        return HealthStatus(
            status=status,
            adapter_name=self.adapter_name,
            version=self.version,
            uptime=time.monotonic() - self._started_at,
            operation_count=total_samples,
            average_response_time=average,
            error_rate=error_rate,
        )
