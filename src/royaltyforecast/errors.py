from __future__ import annotations


class RoyaltyEngineError(ValueError):
    """Base class for contract violations raised by the engine."""


class InvalidRangeError(RoyaltyEngineError):
    def __init__(self, start, end) -> None:
        super().__init__(f"Window start {start} is after window end {end}.")
        self.start = start
        self.end = end


class InvalidGrowthRateError(RoyaltyEngineError):
    def __init__(self, annual_rate_percent: float, entity_id: str | None = None) -> None:
        where = f" for entity '{entity_id}'" if entity_id else ""
        super().__init__(
            f"Annual growth rate {annual_rate_percent}%{where} is undefined for monthly compounding (must be > -100%)."
        )
        self.annual_rate_percent = annual_rate_percent
        self.entity_id = entity_id


class EmptyEntitySetError(RoyaltyEngineError):
    def __init__(self) -> None:
        super().__init__("No entities supplied.")


class NonFiniteValueError(RoyaltyEngineError):
    def __init__(self, name: str, value: float) -> None:
        super().__init__(f"{name} must be a finite number, got {value}.")
        self.name = name
        self.value = value
