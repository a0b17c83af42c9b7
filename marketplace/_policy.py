"""
Marketplace policy — behavior shared by checkout and reconciliation.
"""

from __future__ import annotations

from dataclasses import dataclass, replace
from datetime import timedelta


@dataclass(frozen=True, slots=True)
class Policy:
    """
    Processor-facing policy.

    Fluent builder pattern — chain methods to configure.

    Example:
        policy = (
            Policy()
            .with_processor_timeout(seconds=5)
            .with_currency("eur")
        )

    Note: Immutable — each method returns new Policy.
    """

    processor_timeout: timedelta = timedelta(seconds=10)
    currency: str = "usd"

    @property
    def processor_timeout_seconds(self) -> float:
        return self.processor_timeout.total_seconds()

    def with_processor_timeout(
        self,
        *,
        seconds: float | None = None,
        delta: timedelta | None = None,
    ) -> Policy:
        """
        Cap every processor call.

        Example:
            .with_processor_timeout(seconds=5)
            .with_processor_timeout(delta=timedelta(milliseconds=500))
        """
        if delta is not None:
            timeout = delta
        else:
            timeout = timedelta(seconds=seconds if seconds is not None else 10)
        if timeout <= timedelta(0):
            raise ValueError("processor timeout must be positive")
        return replace(self, processor_timeout=timeout)

    def with_currency(self, currency: str) -> Policy:
        """ISO currency code sent to the processor, lowercased."""
        return replace(self, currency=currency.lower())


__all__ = ("Policy",)
