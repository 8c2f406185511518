"""Process-wide generation counters (observability only)."""

from dataclasses import asdict, dataclass

PRIMARY_SUCCESSES = "primary_successes"
FALLBACK_SUCCESSES = "fallback_successes"
TOTAL_FAILURES = "total_failures"


@dataclass
class RunningStats:
    """Counters reset only by process restart; never read for control flow."""

    primary_successes: int = 0
    fallback_successes: int = 0
    total_failures: int = 0

    def increment(self, name: str, amount: int = 1) -> None:
        if name not in (PRIMARY_SUCCESSES, FALLBACK_SUCCESSES, TOTAL_FAILURES):
            raise ValueError(f"Unknown counter: {name}")
        setattr(self, name, getattr(self, name) + amount)

    def snapshot(self) -> dict[str, int]:
        return asdict(self)
