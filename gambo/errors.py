"""Engine error taxonomy."""

from __future__ import annotations


class GamboError(Exception):
    """Base class for all engine errors."""


class ValidationError(GamboError):
    """Malformed input: bad odds, negative counts, weights that do not sum to 1."""


class InsufficientDataError(GamboError):
    """Fewer than two predictions qualified for a bundle."""

    def __init__(self, qualified: int, required: int = 2) -> None:
        self.qualified = qualified
        self.required = required
        super().__init__(
            f"Only {qualified} qualified prediction(s), need at least {required}"
        )


class NoCombinationFoundError(GamboError):
    """No subset satisfied the odds tolerance or correlation cap."""

    def __init__(self, target_odds: float, tolerance: float) -> None:
        self.target_odds = target_odds
        self.tolerance = tolerance
        super().__init__(
            f"No combination within {tolerance:.0%} of target odds {target_odds:.2f}"
        )
