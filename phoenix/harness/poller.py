"""Convergence poller.

Repeatedly evaluates a predicate that performs one external check, until it
reports convergence, reports a fatal condition, or the wall-clock budget
runs out. Interval and timeout are always supplied by the call site.
"""

import time
from collections.abc import Callable
from typing import Any

from phoenix.harness.errors import ConvergenceTimeout, FatalError, Unreachable
from phoenix.harness.models import Converged, Fatal, NotYetConverged, PollOutcome
from phoenix.observability.logging import get_logger

logger = get_logger(__name__)

Predicate = Callable[[], PollOutcome]


class ConvergencePoller:
    """Bounded retry primitive.

    ``clock`` and ``sleep`` default to ``time.monotonic`` and ``time.sleep``
    and can be replaced to test timing without waiting.
    """

    def __init__(
        self,
        clock: Callable[[], float] = time.monotonic,
        sleep: Callable[[float], None] = time.sleep,
    ) -> None:
        self._clock = clock
        self._sleep = sleep

    def await_convergence(
        self,
        predicate: Predicate,
        interval: float,
        timeout: float,
        description: str = "condition",
    ) -> Any:
        """Poll ``predicate`` until it converges.

        An ``Unreachable`` raised by the predicate counts as not yet converged.
        The budget is only declared exhausted after an attempt made at or
        after ``timeout`` seconds, so failure never comes early.

        Args:
            predicate: Zero-argument callable returning a PollOutcome
            interval: Seconds to sleep between attempts
            timeout: Wall-clock budget in seconds
            description: Name used in logs and error messages

        Returns:
            The value carried by the ``Converged`` outcome

        Raises:
            FatalError: If the predicate returned ``Fatal``
            ConvergenceTimeout: If the budget ran out; carries the last
                observed non-converged value
            Unreachable: If the budget ran out while the service was unreachable
        """
        if interval <= 0 or timeout <= 0:
            raise ValueError("interval and timeout must be positive")

        start = self._clock()
        attempts = 0
        last_observed: Any = None
        last_unreachable: Unreachable | None = None

        while True:
            attempts += 1
            try:
                outcome = predicate()
            except Unreachable as e:
                outcome = NotYetConverged(observed=e.message)
                last_unreachable = e
            else:
                last_unreachable = None

            if isinstance(outcome, Converged):
                logger.debug("poll_converged", condition=description, attempts=attempts)
                return outcome.value
            if isinstance(outcome, Fatal):
                logger.warning(
                    "poll_fatal", condition=description, attempts=attempts, reason=outcome.reason
                )
                raise FatalError(f"{description}: {outcome.reason}", details=outcome.details)
            if not isinstance(outcome, NotYetConverged):
                raise FatalError(f"{description}: predicate returned {outcome!r}")

            last_observed = outcome.observed
            elapsed = self._clock() - start
            if elapsed >= timeout:
                break

            logger.debug(
                "poll_not_converged",
                condition=description,
                attempt=attempts,
                observed=last_observed,
            )
            self._sleep(min(interval, timeout - elapsed))

        logger.warning(
            "poll_timed_out",
            condition=description,
            attempts=attempts,
            timeout=timeout,
            observed=last_observed,
        )
        if last_unreachable is not None:
            raise Unreachable(
                f"{description}: service still unreachable after {timeout}s: "
                f"{last_unreachable.message}"
            ) from last_unreachable
        raise ConvergenceTimeout(
            f"{description} did not converge within {timeout}s "
            f"(last observed: {last_observed!r})",
            last_value=last_observed,
            attempts=attempts,
        )
