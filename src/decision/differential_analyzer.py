from __future__ import annotations

import asyncio
import inspect
from concurrent.futures import ThreadPoolExecutor
from dataclasses import dataclass
from typing import Any, Awaitable, Callable, List, Optional, Set, Tuple, TypeVar

from src.data_collection.models import ExchangeRates
from src.data_collection.providers.base import BaseRateOracle
from src.decision.margin_calculator import MarginCalculator
from src.decision.models import AnalysisOptions, AnalysisResult, MarketData
from src.decision.ranker import RecommendationRanker
from src.prediction.base import BaseSignalProvider
from src.prediction.models import SignalAnalysis
from src.utils.decorators import log_execution
from src.utils.errors import (
    AdapterTimeoutError,
    RateUnavailableError,
    SignalUnavailableError,
    ValidationError,
)
from src.utils.logging import get_logger
from src.utils.validation import validate_market_data, validate_timeout


RATE_ORACLE = "rate_oracle"
MARKET_SIGNAL = "market_signal"

# Upper bound on waiting for cancelled adapter tasks to unwind.
CANCEL_GRACE_SECONDS = 0.25

T = TypeVar("T")


@dataclass
class _AdapterOutcome:
    value: Any = None
    error: Optional[BaseException] = None
    timed_out: bool = False


class DifferentialAnalyzer:
    """Orchestrates one differential analysis.

    Fetches exchange rates and the market signal concurrently under a single
    deadline, then runs the margin calculator and the ranker. Rates are
    mandatory; the signal may degrade to "no signal" when the options allow
    it. Adapter methods may be coroutines or plain blocking functions (the
    latter run in a worker thread).
    """

    def __init__(
        self,
        rate_oracle: BaseRateOracle,
        signal_provider: BaseSignalProvider,
        calculator: Optional[MarginCalculator] = None,
    ):
        self.rate_oracle = rate_oracle
        self.signal_provider = signal_provider
        self.calculator = calculator or MarginCalculator()

    @log_execution(log_args=False, log_result=False)
    async def perform_differential_analysis(
        self, data: MarketData, options: Optional[AnalysisOptions] = None
    ) -> AnalysisResult:
        options = options or AnalysisOptions()
        log = get_logger(__name__, options.correlation_id)

        # 1) Fail fast on bad input
        validate_market_data(data)
        timeout = validate_timeout(options.timeout)

        # 2-3) Concurrent fetch, joined under one deadline
        rate_outcome, signal_outcome = await self._fetch_inputs(data, timeout, log)
        rates = self._resolve_rates(rate_outcome, timeout, log)
        signals, warnings = self._resolve_signals(signal_outcome, data, options, timeout, log)

        missing = rates.missing(data.currencies)
        if missing:
            warnings.append(f"Rate oracle returned no rate for: {', '.join(missing)}")

        # 4) Margins, per-asset failures collected
        batch = self.calculator.calculate(data, signals, rates)
        for asset, err in sorted(batch.errors.items()):
            log.warning(f"Margin computation failed for {asset}: {err.reason}", extra={"asset": asset})

        # 5) Ranking over successful margins
        ranker = RecommendationRanker(options.ranking_thresholds)
        recommendations = ranker.rank(batch.margins.values())

        # 6) Assemble
        signal_degraded = {asset: asset not in signals.signals for asset in sorted(data.assets)}
        result = AnalysisResult(
            margins={asset: m.margin for asset, m in sorted(batch.margins.items())},
            details=dict(sorted(batch.margins.items())),
            recommendations=recommendations,
            errors=dict(sorted(batch.errors.items())),
            signal_degraded=signal_degraded,
            reference_currency=rates.reference_currency,
            model_id=signals.model_id,
            warnings=warnings + list(signals.warnings),
        )
        log.info(
            f"Differential analysis complete: {len(result.margins)} margins, "
            f"{len(result.errors)} errors, {len(result.degraded_assets)} degraded",
            extra={"status": result.status},
        )
        return result

    # ---- Fan-out / fan-in ----
    async def _fetch_inputs(self, data: MarketData, timeout: float, log) -> Tuple[_AdapterOutcome, _AdapterOutcome]:
        rate_task = asyncio.create_task(
            self._invoke(self.rate_oracle.get_exchange_rates, data.currencies), name=RATE_ORACLE
        )
        signal_task = asyncio.create_task(
            self._invoke(self.signal_provider.analyze_market, data.assets, data), name=MARKET_SIGNAL
        )

        loop = asyncio.get_running_loop()
        deadline = loop.time() + timeout
        pending: Set[asyncio.Task] = {rate_task, signal_task}
        try:
            while pending:
                remaining = deadline - loop.time()
                if remaining <= 0:
                    break
                _, pending = await asyncio.wait(pending, timeout=remaining, return_when=asyncio.FIRST_COMPLETED)
                # Without rates nothing can be computed, stop waiting on the signal.
                if rate_task.done() and (rate_task.cancelled() or rate_task.exception() is not None):
                    break
        finally:
            await self._cancel(pending, log)

        return self._outcome(rate_task, pending), self._outcome(signal_task, pending)

    @staticmethod
    async def _invoke(fn: Callable, *args) -> Any:
        if asyncio.iscoroutinefunction(fn):
            return await fn(*args)
        result = await asyncio.to_thread(fn, *args)
        if inspect.isawaitable(result):
            return await result
        return result

    @staticmethod
    async def _cancel(pending: Set[asyncio.Task], log) -> None:
        if not pending:
            return
        for task in pending:
            task.cancel()
        unwound, stuck = await asyncio.wait(pending, timeout=CANCEL_GRACE_SECONDS)
        for task in unwound:
            if not task.cancelled():
                task.exception()  # late result past the deadline, discarded
        for task in stuck:
            log.warning(f"Adapter task {task.get_name()} did not stop after cancellation", extra={"adapter": task.get_name()})

    @staticmethod
    def _outcome(task: asyncio.Task, pending: Set[asyncio.Task]) -> _AdapterOutcome:
        if task in pending:
            return _AdapterOutcome(timed_out=True)
        if task.cancelled():
            return _AdapterOutcome(error=asyncio.CancelledError(f"{task.get_name()} was cancelled"))
        error = task.exception()
        if error is not None:
            return _AdapterOutcome(error=error)
        return _AdapterOutcome(value=task.result())

    # ---- Policy ----
    def _resolve_rates(self, outcome: _AdapterOutcome, timeout: float, log) -> ExchangeRates:
        if outcome.timed_out:
            log.error(f"Rate oracle timed out after {timeout}s", extra={"adapter": RATE_ORACLE, "timeout": timeout})
            raise AdapterTimeoutError(RATE_ORACLE, timeout)

        error = outcome.error
        if error is not None:
            log.error(f"Rate oracle failed: {error}", extra={"adapter": RATE_ORACLE})
            if isinstance(error, (AdapterTimeoutError, RateUnavailableError)):
                raise error
            if isinstance(error, (asyncio.TimeoutError, TimeoutError)):
                raise AdapterTimeoutError(RATE_ORACLE, timeout, f"{RATE_ORACLE} timed out: {error}") from error
            raise RateUnavailableError(f"Rate oracle failed: {error}") from error

        rates = outcome.value
        if not isinstance(rates, ExchangeRates):
            raise RateUnavailableError(f"Rate oracle returned {type(rates).__name__}, expected ExchangeRates")
        try:
            rates.validate()
        except ValidationError as e:
            log.error(f"Rate oracle returned invalid rates: {e}", extra={"adapter": RATE_ORACLE})
            raise RateUnavailableError(f"Invalid exchange rates: {e}") from e
        return rates

    def _resolve_signals(
        self,
        outcome: _AdapterOutcome,
        data: MarketData,
        options: AnalysisOptions,
        timeout: float,
        log,
    ) -> Tuple[SignalAnalysis, List[str]]:
        failure: Optional[Exception] = None
        if outcome.timed_out:
            failure = AdapterTimeoutError(MARKET_SIGNAL, timeout)
        elif outcome.error is not None:
            error = outcome.error
            if isinstance(error, (AdapterTimeoutError, SignalUnavailableError)):
                failure = error
            elif isinstance(error, (asyncio.TimeoutError, TimeoutError)):
                failure = AdapterTimeoutError(MARKET_SIGNAL, timeout, f"{MARKET_SIGNAL} timed out: {error}")
                failure.__cause__ = error
            else:
                failure = SignalUnavailableError(f"Market signal failed: {error}")
                failure.__cause__ = error
        elif not isinstance(outcome.value, SignalAnalysis):
            failure = SignalUnavailableError(
                f"Market signal returned {type(outcome.value).__name__}, expected SignalAnalysis"
            )

        if failure is not None:
            if not options.allow_degraded_signal:
                log.error(f"Market signal unavailable: {failure}", extra={"adapter": MARKET_SIGNAL})
                raise failure
            log.warning(
                f"Market signal unavailable, continuing without it: {failure}",
                extra={"adapter": MARKET_SIGNAL},
            )
            return SignalAnalysis.empty(), [f"Market signal unavailable: {failure}"]

        return self._filter_signals(outcome.value, data, log)

    def _filter_signals(self, analysis: SignalAnalysis, data: MarketData, log) -> Tuple[SignalAnalysis, List[str]]:
        warnings: List[str] = []
        kept = {}
        for asset in sorted(analysis.signals):
            signal = analysis.signals[asset]
            if asset not in data.assets:
                warnings.append(f"Ignoring signal for unknown asset {asset}")
                continue
            if not BaseSignalProvider.is_valid_signal(signal):
                log.warning(f"Discarding invalid signal for {asset}: {signal}", extra={"asset": asset})
                warnings.append(f"Invalid signal for {asset} discarded")
                continue
            kept[asset] = signal

        omitted = sorted(data.assets - set(kept))
        if omitted:
            log.info(f"No usable signal for {len(omitted)} asset(s); computing them as degraded")

        filtered = SignalAnalysis(
            signals=kept,
            model_id=analysis.model_id,
            warnings=list(analysis.warnings),
            timestamp=analysis.timestamp,
        )
        return filtered, warnings


async def perform_differential_analysis(
    data: MarketData,
    options: Optional[AnalysisOptions] = None,
    *,
    rate_oracle: BaseRateOracle,
    signal_provider: BaseSignalProvider,
) -> AnalysisResult:
    """Run one analysis with the given adapters."""
    analyzer = DifferentialAnalyzer(rate_oracle, signal_provider)
    return await analyzer.perform_differential_analysis(data, options)


def run_sync(coro: Awaitable[T]) -> T:
    """Run ``coro`` on a fresh event loop and return its result.

    Unlike ``asyncio.run`` the worker threads behind blocking adapters are
    not joined on the way out, so a thread still stuck in a cancelled call
    cannot hold the caller past the analysis deadline.
    """
    loop = asyncio.new_event_loop()
    executor = ThreadPoolExecutor(thread_name_prefix="adapter")
    loop.set_default_executor(executor)
    try:
        return loop.run_until_complete(coro)
    finally:
        try:
            leftover = asyncio.all_tasks(loop)
            for task in leftover:
                task.cancel()
            if leftover:
                loop.run_until_complete(asyncio.gather(*leftover, return_exceptions=True))
            loop.run_until_complete(loop.shutdown_asyncgens())
        finally:
            executor.shutdown(wait=False, cancel_futures=True)
            loop.close()


def run_differential_analysis(
    data: MarketData,
    options: Optional[AnalysisOptions] = None,
    *,
    rate_oracle: BaseRateOracle,
    signal_provider: BaseSignalProvider,
) -> AnalysisResult:
    """Blocking wrapper for callers without an event loop."""
    return run_sync(
        perform_differential_analysis(
            data, options, rate_oracle=rate_oracle, signal_provider=signal_provider
        )
    )
