"""Trend, confidence band and anomaly analysis for a patient's thyroid panel.

Everything here is a pure function over an already ordered series: array
position is the time axis (0..n-1), so uneven spacing between draws is not
modelled. The forecast band is ``predicted ± 1.96·σ`` where σ is the
population standard deviation of the raw series, not the regression
residual error, so it is a normal approximation rather than a rigorous
prediction interval.
"""
from __future__ import annotations

import math
from decimal import Decimal, ROUND_HALF_UP, localcontext
from typing import Any, Dict, List, NamedTuple, Sequence

NORMAL = "Normal"
HYPOTHYROIDISM = "Hypothyroidism"
HYPERTHYROIDISM = "Hyperthyroidism"
BORDERLINE = "Borderline / Needs Medical Review"

CLASSIFICATIONS = (NORMAL, HYPOTHYROIDISM, HYPERTHYROIDISM, BORDERLINE)

# Reference ranges: TSH µIU/mL, T3 ng/dL, T4 µg/dL
TSH_RANGE = (0.4, 4.0)
T3_RANGE = (0.8, 2.0)
T4_RANGE = (5.0, 12.0)

HORMONES = ("TSH", "T3", "T4")
MIN_RECORDS = 3
FORECAST_PERIODS = 3
CONFIDENCE_Z = 1.96
ANOMALY_SIGMA = 2.0

_CENTS = Decimal("0.01")
# Enough digits to quantize any finite float (max ~1.8e308) to cents
_ROUNDING_PRECISION = 400


class ThyroidAnalysisError(ValueError):
    """Base class for analysis failures caused by the shape of the input."""


class InsufficientDataError(ThyroidAnalysisError):
    def __init__(self, count: int, required: int = MIN_RECORDS):
        self.count = count
        self.required = required
        super().__init__(f"Minimum {required} records required")


class DegenerateRegressionError(ThyroidAnalysisError):
    def __init__(self, hormone: str):
        self.hormone = hormone
        super().__init__(f"Trend for {hormone} could not be fitted")


class RegressionModel(NamedTuple):
    slope: float
    intercept: float

    def predict(self, x: float) -> float:
        return self.slope * x + self.intercept

    @property
    def is_defined(self) -> bool:
        return math.isfinite(self.slope) and math.isfinite(self.intercept)


def round2(value: float) -> float:
    """Round half away from zero on the exact binary value, like ``toFixed(2)``."""
    with localcontext() as ctx:
        ctx.prec = _ROUNDING_PRECISION
        rounded = Decimal(value).quantize(_CENTS, rounding=ROUND_HALF_UP)
    # + 0.0 folds -0.0 into 0.0
    return float(rounded) + 0.0


def format_number(value: float) -> str:
    """Print a float the way a JSON number prints in a browser (`7`, `0.00001`, `1e-7`)."""
    value = float(value)
    if value.is_integer() and abs(value) < 1e21:
        return str(int(value))
    text = repr(value)
    mantissa, marker, exponent = text.partition("e")
    if not marker:
        return text
    power = int(exponent)
    if -7 < power < 21:
        return format(Decimal(text), "f")
    return f"{mantissa}e{'+' if power > 0 else '-'}{abs(power)}"


def classify_thyroid(tsh: float, t3: float, t4: float) -> str:
    """Classify a single draw. Rules are checked in order; first match wins."""
    if (
        TSH_RANGE[0] <= tsh <= TSH_RANGE[1]
        and T3_RANGE[0] <= t3 <= T3_RANGE[1]
        and T4_RANGE[0] <= t4 <= T4_RANGE[1]
    ):
        return NORMAL

    if tsh > TSH_RANGE[1] and (t3 < T3_RANGE[0] or t4 < T4_RANGE[0]):
        return HYPOTHYROIDISM

    if tsh < TSH_RANGE[0] and (t3 > T3_RANGE[1] or t4 > T4_RANGE[1]):
        return HYPERTHYROIDISM

    return BORDERLINE


def generate_interpretation(classification: str, tsh: float) -> str:
    if classification == NORMAL:
        return "Your thyroid hormone levels are within normal clinical range."
    if classification == HYPOTHYROIDISM:
        return f"Elevated TSH ({format_number(tsh)}) suggests reduced thyroid activity. Consultation advised."
    if classification == HYPERTHYROIDISM:
        return f"Low TSH ({format_number(tsh)}) suggests overactive thyroid function. Medical evaluation recommended."
    return "Borderline thyroid values detected. Further evaluation recommended."


def linear_regression(values: Sequence[float]) -> RegressionModel:
    """Ordinary least squares fit of ``values`` against x = 0..n-1.

    With fewer than two points the slope denominator is zero; the model
    comes back with NaN slope and intercept and callers must check
    ``is_defined`` before using it.
    """
    n = len(values)
    sum_x = sum(range(n))
    sum_y = sum(values)
    sum_xy = sum(x * y for x, y in enumerate(values))
    sum_xx = sum(x * x for x in range(n))

    denominator = n * sum_xx - sum_x * sum_x
    if denominator == 0:
        return RegressionModel(math.nan, math.nan)

    slope = (n * sum_xy - sum_x * sum_y) / denominator
    intercept = (sum_y - slope * sum_x) / n
    return RegressionModel(slope, intercept)


def calculate_std_dev(values: Sequence[float]) -> float:
    """Population standard deviation (divides by n).

    Extreme inputs overflow to ``inf`` instead of raising.
    """
    if not values:
        raise ValueError("Standard deviation needs at least one value")
    mean = sum(values) / len(values)
    variance = sum((v - mean) * (v - mean) for v in values) / len(values)
    return math.sqrt(variance)


def detect_anomalies(values: Sequence[float]) -> List[Dict[str, Any]]:
    """Flag adjacent steps larger than twice the series' standard deviation."""
    if len(values) < 2:
        return []

    threshold = ANOMALY_SIGMA * calculate_std_dev(values)
    anomalies = []
    for i in range(1, len(values)):
        difference = abs(values[i] - values[i - 1])
        if difference > threshold:
            anomalies.append({
                "index": i,
                "previous_value": values[i - 1],
                "current_value": values[i],
                "difference": round2(difference),
            })
    return anomalies


def _hormone_columns(series: Sequence[Any]) -> Dict[str, List[float]]:
    return {
        "TSH": [float(r.tsh) for r in series],
        "T3": [float(r.t3) for r in series],
        "T4": [float(r.t4) for r in series],
    }


def predict(series: Sequence[Any]) -> Dict[str, Any]:
    """Classify the latest draw and project each hormone three periods ahead.

    ``series`` must be ordered oldest first and its items must expose
    ``tsh``, ``t3`` and ``t4``. Raises ``InsufficientDataError`` below
    ``MIN_RECORDS`` items and ``DegenerateRegressionError`` if a trend
    cannot be fitted or its spread overflows. The input is never modified.
    """
    if len(series) < MIN_RECORDS:
        raise InsufficientDataError(len(series))

    columns = _hormone_columns(series)

    models: Dict[str, RegressionModel] = {}
    for hormone, values in columns.items():
        model = linear_regression(values)
        if not model.is_defined:
            raise DegenerateRegressionError(hormone)
        models[hormone] = model

    spreads: Dict[str, float] = {}
    for hormone, values in columns.items():
        spread = calculate_std_dev(values)
        if not math.isfinite(spread):
            raise DegenerateRegressionError(hormone)
        spreads[hormone] = spread

    anomalies = {hormone: detect_anomalies(values) for hormone, values in columns.items()}

    predictions = []
    start_index = len(series)
    for period in range(1, FORECAST_PERIODS + 1):
        x = start_index + period - 1
        point: Dict[str, Any] = {"month": f"Month {period}"}
        for hormone in HORMONES:
            predicted = models[hormone].predict(x)
            margin = CONFIDENCE_Z * spreads[hormone]
            if not (math.isfinite(predicted - margin) and math.isfinite(predicted + margin)):
                raise DegenerateRegressionError(hormone)
            key = hormone.lower()
            point[f"predicted_{key}"] = round2(predicted)
            point[f"{key}_ci_lower"] = round2(predicted - margin)
            point[f"{key}_ci_upper"] = round2(predicted + margin)
        predictions.append(point)

    latest = series[-1]
    classification = classify_thyroid(float(latest.tsh), float(latest.t3), float(latest.t4))

    return {
        "latest_values": latest,
        "classification": classification,
        "interpretation": generate_interpretation(classification, float(latest.tsh)),
        "regression_predictions": predictions,
        "anomalies": anomalies,
    }


__all__ = [
    "CLASSIFICATIONS",
    "DegenerateRegressionError",
    "InsufficientDataError",
    "RegressionModel",
    "ThyroidAnalysisError",
    "calculate_std_dev",
    "classify_thyroid",
    "detect_anomalies",
    "generate_interpretation",
    "linear_regression",
    "predict",
]
