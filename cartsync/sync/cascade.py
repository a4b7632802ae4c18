"""
Cascade - try storage tiers in order, stop on the first success, collect errors.

    result = await first_success("fetch", [
        Attempt("local", lambda: local.read(owner)),
        Attempt("remote", lambda: remote.read(owner)),
    ], accept=bool)

``accept`` decides whether a successful value ends the cascade. A tier that
answers with an unaccepted value (an empty read) does not count as a failure:
if no later tier does better, that value is returned with ``accepted=False``.
Only when every tier raised is CascadeExhaustedError raised.
"""
from dataclasses import dataclass, field
from typing import Awaitable, Callable, Generic, List, Optional, Sequence, Tuple, TypeVar

from cartsync.errors import CartValidationError, CascadeExhaustedError
from cartsync.logging import get_logger

logger = get_logger(__name__)

T = TypeVar("T")


@dataclass(frozen=True)
class Attempt(Generic[T]):
    name: str
    call: Callable[[], Awaitable[T]]


@dataclass
class CascadeResult(Generic[T]):
    value: T
    source: str
    accepted: bool = True
    errors: List[Tuple[str, Exception]] = field(default_factory=list)

    @property
    def used_fallback(self) -> bool:
        return bool(self.errors) or not self.accepted


async def first_success(
    operation: str,
    attempts: Sequence[Attempt[T]],
    accept: Optional[Callable[[T], bool]] = None,
) -> CascadeResult[T]:
    """Run ``attempts`` in order and return the first accepted result."""
    errors: List[Tuple[str, Exception]] = []
    fallback: Optional[CascadeResult[T]] = None

    for attempt in attempts:
        try:
            value = await attempt.call()
        except CartValidationError:
            # Bad input fails the same way on every tier
            raise
        except Exception as e:
            logger.warning(f"{operation}: {attempt.name} tier failed: {e}")
            errors.append((attempt.name, e))
            continue

        if accept is None or accept(value):
            if errors:
                logger.info(f"{operation}: served by {attempt.name} after {len(errors)} failed tier(s)")
            return CascadeResult(value=value, source=attempt.name, errors=errors)

        logger.info(f"{operation}: {attempt.name} tier returned an empty result, trying next tier")
        if fallback is None:
            fallback = CascadeResult(value=value, source=attempt.name, accepted=False)

    if fallback is not None:
        fallback.errors = errors
        return fallback

    logger.error(f"{operation}: all {len(errors)} tier(s) failed")
    raise CascadeExhaustedError(operation, errors)
