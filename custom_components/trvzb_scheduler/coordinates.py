"""Mapping between schedule values and the logical chart plane.

The chart is drawn on a fixed logical plane (the SVG viewBox of the card).
Hours run left to right from 0 to 24, temperatures bottom to top across a
range computed per day.
"""
import logging
import math
from dataclasses import dataclass, field
from typing import List, Optional, Protocol, Tuple

from .const import (
    CHART_HEIGHT,
    CHART_PADDING_BOTTOM,
    CHART_PADDING_LEFT,
    CHART_PADDING_RIGHT,
    CHART_PADDING_TOP,
    CHART_WIDTH,
    MAX_TEMP,
    MIN_RANGE_SPAN,
    MIN_TEMP,
    RANGE_PADDING,
)
from .models import DaySchedule, clamp_temperature

_LOGGER = logging.getLogger(__name__)

HOURS_PER_DAY = 24.0


@dataclass(frozen=True)
class ChartPadding:
    top: float = CHART_PADDING_TOP
    right: float = CHART_PADDING_RIGHT
    bottom: float = CHART_PADDING_BOTTOM
    left: float = CHART_PADDING_LEFT


@dataclass(frozen=True)
class ChartGeometry:
    """Size of the logical plane and the margins around the plot area."""

    width: float = CHART_WIDTH
    height: float = CHART_HEIGHT
    padding: ChartPadding = field(default_factory=ChartPadding)

    @property
    def plot_width(self) -> float:
        return self.width - self.padding.left - self.padding.right

    @property
    def plot_height(self) -> float:
        return self.height - self.padding.top - self.padding.bottom


@dataclass(frozen=True)
class TemperatureRange:
    minimum: float
    maximum: float

    @property
    def span(self) -> float:
        return self.maximum - self.minimum


def fixed_temperature_range() -> TemperatureRange:
    """The absolute device range, for hosts that want a static axis."""
    return TemperatureRange(MIN_TEMP, MAX_TEMP)


def compute_temperature_range(
    schedule: Optional[DaySchedule],
    padding: float = RANGE_PADDING,
    min_span: float = MIN_RANGE_SPAN,
) -> TemperatureRange:
    """Axis range for a day: its min/max +/- padding, at least min_span wide.

    The result always stays within the absolute bounds. When the padded range
    is narrower than min_span it is recentered and widened symmetrically so
    days with similar temperatures do not collapse into a flat line.
    """
    if schedule is None or not schedule.transitions:
        return fixed_temperature_range()

    temperatures = [t.temperature for t in schedule.transitions]
    low = max(MIN_TEMP, min(temperatures) - padding)
    high = min(MAX_TEMP, max(temperatures) + padding)

    if high - low < min_span:
        center = (low + high) / 2
        low = center - min_span / 2
        high = center + min_span / 2
        # Shift back inside the absolute bounds without losing span
        if low < MIN_TEMP:
            high += MIN_TEMP - low
            low = MIN_TEMP
        if high > MAX_TEMP:
            low -= high - MAX_TEMP
            high = MAX_TEMP
        low = max(MIN_TEMP, low)

    return TemperatureRange(low, high)


class CoordinateMapper:
    """Bidirectional mapping between (hour, temperature) and (x, y)."""

    def __init__(
        self,
        geometry: Optional[ChartGeometry] = None,
        temperature_range: Optional[TemperatureRange] = None,
    ) -> None:
        self.geometry = geometry or ChartGeometry()
        self.temperature_range = temperature_range or fixed_temperature_range()

    @classmethod
    def for_schedule(
        cls, schedule: Optional[DaySchedule], geometry: Optional[ChartGeometry] = None
    ) -> "CoordinateMapper":
        return cls(geometry, compute_temperature_range(schedule))

    def hour_to_x(self, hour: float) -> float:
        geometry = self.geometry
        return geometry.padding.left + (hour / HOURS_PER_DAY) * geometry.plot_width

    def temp_to_y(self, temp: float) -> float:
        geometry = self.geometry
        low, high = self.temperature_range.minimum, self.temperature_range.maximum
        normalized = (temp - low) / (high - low)
        return geometry.padding.top + geometry.plot_height * (1 - normalized)

    def x_to_hour(self, x: float) -> float:
        """Inverse of hour_to_x, clamped to [0, 24]."""
        geometry = self.geometry
        hour = (x - geometry.padding.left) / geometry.plot_width * HOURS_PER_DAY
        return max(0.0, min(HOURS_PER_DAY, hour))

    def y_to_temp(self, y: float) -> float:
        """Inverse of temp_to_y, quantized to 0.5 and clamped to the axis range."""
        geometry = self.geometry
        low, high = self.temperature_range.minimum, self.temperature_range.maximum
        normalized = 1 - (y - geometry.padding.top) / geometry.plot_height
        temp = low + normalized * (high - low)
        return clamp_temperature(temp, math.ceil(low * 2) / 2, math.floor(high * 2) / 2)

    def step_path(self, schedule: DaySchedule) -> List[Tuple[float, float]]:
        """Points of the step line: each level holds until the next transition."""
        points: List[Tuple[float, float]] = []
        transitions = schedule.transitions
        for index, transition in enumerate(transitions):
            x = self.hour_to_x(transition.hours)
            y = self.temp_to_y(transition.temperature)
            points.append((x, y))
            if index < len(transitions) - 1:
                next_x = self.hour_to_x(transitions[index + 1].hours)
            else:
                next_x = self.hour_to_x(HOURS_PER_DAY)
            points.append((next_x, y))
        return points


def hour_ticks(step: int = 3) -> List[int]:
    return list(range(0, int(HOURS_PER_DAY) + 1, step))


def temperature_ticks(temperature_range: TemperatureRange, step: float = 5.0) -> List[float]:
    """Tick values on multiples of step inside the range."""
    first = math.ceil(temperature_range.minimum / step) * step
    ticks = []
    value = first
    while value <= temperature_range.maximum + 1e-9:
        ticks.append(value)
        value += step
    return ticks


@dataclass(frozen=True)
class AffineMatrix:
    """2D affine transform in SVG matrix(a, b, c, d, e, f) order.

    Maps logical (x, y) to screen (a*x + c*y + e, b*x + d*y + f).
    """

    a: float = 1.0
    b: float = 0.0
    c: float = 0.0
    d: float = 1.0
    e: float = 0.0
    f: float = 0.0

    @property
    def determinant(self) -> float:
        return self.a * self.d - self.b * self.c

    def apply(self, x: float, y: float) -> Tuple[float, float]:
        return (self.a * x + self.c * y + self.e, self.b * x + self.d * y + self.f)

    def inverse(self) -> "AffineMatrix":
        det = self.determinant
        if det == 0:
            raise ValueError("Matrix is not invertible")
        return AffineMatrix(
            a=self.d / det,
            b=-self.b / det,
            c=-self.c / det,
            d=self.a / det,
            e=(self.c * self.f - self.d * self.e) / det,
            f=(self.b * self.e - self.a * self.f) / det,
        )


@dataclass(frozen=True)
class BoundingRect:
    left: float
    top: float
    width: float
    height: float


class RenderSurface(Protocol):
    """What the coordinate engine needs from the host's drawing surface."""

    def screen_ctm(self) -> Optional[AffineMatrix]:
        """Logical-to-screen transform, or None when the host cannot provide one."""

    def bounding_rect(self) -> Optional[BoundingRect]:
        """On-screen box of the surface."""


def screen_to_logical(
    surface: RenderSurface,
    client_x: float,
    client_y: float,
    geometry: Optional[ChartGeometry] = None,
) -> Tuple[float, float]:
    """Convert viewport pixels to logical plane coordinates.

    Prefers the surface's own transform so non-uniform scaling and
    letterboxing are handled; falls back to the bounding box ratio.
    """
    geometry = geometry or ChartGeometry()

    ctm = surface.screen_ctm()
    if ctm is not None and ctm.determinant != 0:
        return ctm.inverse().apply(client_x, client_y)

    rect = surface.bounding_rect()
    if rect is None or rect.width <= 0 or rect.height <= 0:
        _LOGGER.debug("Surface has no usable geometry, using client coordinates as-is")
        return (client_x, client_y)

    return (
        (client_x - rect.left) * geometry.width / rect.width,
        (client_y - rect.top) * geometry.height / rect.height,
    )
