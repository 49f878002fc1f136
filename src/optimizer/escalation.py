# src/optimizer/escalation.py
"""
Model fallback policy.

Strategies are tried in order through a single attempt callable, so the
policy can be exercised without any network code.
"""
from typing import Callable, List, Sequence, Tuple
from dataclasses import dataclass, field
import logging

from .exceptions import FallbackExhausted, OptimizerError
from .synthesizer import GenerationStrategy

logger = logging.getLogger(__name__)


@dataclass
class EscalationResult:
    """Generated text plus the strategy that produced it"""
    text: str
    strategy: GenerationStrategy
    failures: List[Tuple[str, OptimizerError]] = field(default_factory=list)

    @property
    def rate_limited(self) -> bool:
        return any(error.is_rate_limited for _, error in self.failures)

    @property
    def escalated(self) -> bool:
        return bool(self.failures)


def escalate(strategies: Sequence[GenerationStrategy],
             attempt: Callable[[GenerationStrategy], str]) -> EscalationResult:
    """
    Try strategies in order until one succeeds

    The first strategy only hands over on a rate-limit error; anything else
    propagates unchanged. Once escalation has begun, later strategies hand
    over on any OptimizerError.

    Raises:
        OptimizerError: Non-rate-limit failure of the first strategy
        FallbackExhausted: Every strategy failed
    """
    if not strategies:
        raise ValueError("At least one generation strategy is required")

    failures: List[Tuple[str, OptimizerError]] = []
    for index, strategy in enumerate(strategies):
        try:
            text = attempt(strategy)
        except OptimizerError as e:
            if index == 0 and not e.is_rate_limited:
                raise
            failures.append((strategy.name, e))
            if index + 1 < len(strategies):
                logger.warning(
                    f"{strategy.name} model failed ({e.kind.value}), "
                    f"trying {strategies[index + 1].name} model..."
                )
            continue
        return EscalationResult(text=text, strategy=strategy, failures=failures)

    summary = "; ".join(f"{name}: {error.message}" for name, error in failures)
    raise FallbackExhausted(f"All generation strategies failed ({summary})",
                            attempts=failures, cause=failures[-1][1])
