"""
Telemetry Generator

Synthetic IoT readings for the cold-chain sensors. Each sensor type has its
own stochastic model; the last value and timestamp per sensor are carried
forward so consecutive readings form a plausible time series rather than
independent samples.

Models:
- temperature: random walk with a daily-cycle drift, scaled by elapsed time
  (capped at one minute) and clamped to the sensor range
- humidity: relaxes toward a day/night target with small noise
- shock: mostly near zero with occasional spikes
- location: no numeric model, value held
"""

import logging
import math
from dataclasses import dataclass
from datetime import datetime, timedelta
from typing import Dict, Iterable, Optional, Tuple

import numpy as np

from .identifiers import Clock, RandomSource, new_id, utc_now
from .records import IoTReading, SensorType
from .registry import SENSORS, SensorProfile

logger = logging.getLogger(__name__)

DAILY_CYCLE_AMPLITUDE = 0.2
DAILY_CYCLE_PERIOD_MS = 3600000
MAX_ELAPSED_SECONDS = 60.0

HUMIDITY_DAY_TARGET = 45.0
HUMIDITY_NIGHT_TARGET = 55.0
HUMIDITY_RELAXATION = 0.1
HUMIDITY_NOISE = 2.0

SHOCK_BASELINE_PROBABILITY = 0.95
SHOCK_BASELINE_MAX = 0.5
SHOCK_SPIKE_MAX = 4.0
SHOCK_ALERT_THRESHOLD = 2.0


@dataclass
class SensorState:
    """Last unrounded value and timestamp of a sensor."""
    value: float
    timestamp: datetime


def daily_cycle(now: datetime) -> float:
    epoch_ms = now.timestamp() * 1000
    return math.sin(epoch_ms / DAILY_CYCLE_PERIOD_MS) * DAILY_CYCLE_AMPLITUDE


def humidity_target(now: datetime) -> float:
    return HUMIDITY_DAY_TARGET if 6 <= now.hour <= 18 else HUMIDITY_NIGHT_TARGET


class TelemetryGenerator:
    """
    Produces readings for catalogued sensors.

    ``generate_reading`` is a pure function of sensor id, prior state, ``now``
    and the injected random source. The store owns the per-sensor state and
    passes it back in on the next call.
    """

    def __init__(
        self,
        rng: RandomSource,
        clock: Clock = utc_now,
        sensors: Optional[Dict[str, SensorProfile]] = None,
    ):
        self.rng = rng
        self.clock = clock
        self.sensors = sensors if sensors is not None else SENSORS

    def profile(self, sensor_id: str) -> SensorProfile:
        return self.sensors[sensor_id]

    def initial_state(self, sensor_id: str, now: datetime) -> SensorState:
        """Mid-range value one minute in the past."""
        meta = self.profile(sensor_id)
        return SensorState(
            value=(meta.min_value + meta.max_value) / 2,
            timestamp=now - timedelta(seconds=MAX_ELAPSED_SECONDS),
        )

    def generate_reading(
        self,
        sensor_id: str,
        prior_state: Optional[SensorState] = None,
        now: Optional[datetime] = None,
    ) -> Tuple[IoTReading, SensorState]:
        """Return the next reading for ``sensor_id`` and the state to carry forward."""
        meta = self.profile(sensor_id)
        now = now or self.clock()
        last = prior_state or self.initial_state(sensor_id, now)

        value, is_alert = self._step(meta, last, now)

        reading = IoTReading(
            id=new_id("r", self.rng),
            sensor_id=sensor_id,
            sensor_type=SensorType(meta.sensor_type),
            value=round(value, 1),
            unit=meta.unit,
            timestamp=now.isoformat(),
            is_alert=is_alert,
        )
        logger.debug(f"Generated {meta.sensor_type} reading {reading.value}{meta.unit} for {sensor_id}")
        return reading, SensorState(value=value, timestamp=now)

    def _step(self, meta: SensorProfile, last: SensorState, now: datetime) -> Tuple[float, bool]:
        if meta.sensor_type == SensorType.TEMPERATURE.value:
            # out-of-order timestamps count as no elapsed time
            elapsed = max(0.0, min((now - last.timestamp).total_seconds(), MAX_ELAPSED_SECONDS))
            random_change = (self.rng.random() - 0.5) * meta.change_rate
            raw = last.value + (daily_cycle(now) + random_change) * elapsed / MAX_ELAPSED_SECONDS
            is_alert = raw < meta.min_value or raw > meta.max_value
            return float(np.clip(raw, meta.min_value, meta.max_value)), is_alert

        if meta.sensor_type == SensorType.HUMIDITY.value:
            target = humidity_target(now)
            noise = (self.rng.random() - 0.5) * HUMIDITY_NOISE
            return last.value + (target - last.value) * HUMIDITY_RELAXATION + noise, False

        if meta.sensor_type == SensorType.SHOCK.value:
            if self.rng.random() < SHOCK_BASELINE_PROBABILITY:
                value = self.rng.random() * SHOCK_BASELINE_MAX
            else:
                value = self.rng.random() * SHOCK_SPIKE_MAX
            return value, value > SHOCK_ALERT_THRESHOLD

        return last.value, False


def summarize_readings(readings: Iterable[IoTReading]) -> Dict[str, Dict[str, float]]:
    """Per-sensor count, range, mean, spread and alert ratio."""
    grouped: Dict[str, list] = {}
    for reading in readings:
        grouped.setdefault(reading.sensor_id, []).append(reading)

    summary = {}
    for sensor_id, items in grouped.items():
        values = np.array([r.value for r in items], dtype=float)
        alerts = np.array([r.is_alert for r in items], dtype=bool)
        summary[sensor_id] = {
            "count": int(values.size),
            "min": float(values.min()),
            "max": float(values.max()),
            "mean": round(float(values.mean()), 2),
            "std": round(float(values.std()), 2),
            "alert_ratio": round(float(alerts.mean()), 3),
            "latest": items[-1].value,
        }
    return summary
