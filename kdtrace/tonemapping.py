"""
Tone mapping operators applied to a rendered image before output.

Implements:
- Linear (clamp only)
- Reinhard global operator (log-average luminance, key 0.18)
- Ward contrast-based scale factor
- Gamma correction
"""

from __future__ import annotations
from abc import ABC, abstractmethod
from enum import Enum
from typing import Union

import numpy as np

# Keeps log() finite on black pixels
LOG_DELTA = 1e-6


class ToneMappingOperator(Enum):
    """Available tone mapping operators."""
    LINEAR = "linear"
    REINHARD = "reinhard"
    WARD = "ward"


def luminance(rgb: np.ndarray) -> np.ndarray:
    """Per-pixel luminance using Rec. 709 coefficients."""
    return 0.2126 * rgb[..., 0] + 0.7152 * rgb[..., 1] + 0.0722 * rgb[..., 2]


def log_average_luminance(rgb: np.ndarray) -> float:
    """Geometric mean of the image luminance."""
    return float(np.exp(np.mean(np.log(luminance(rgb) + LOG_DELTA))))


class ToneMapper(ABC):
    """Abstract base class for tone mapping operators."""

    @abstractmethod
    def apply(self, image: np.ndarray) -> np.ndarray:
        """Map a linear image to display range.

        Args:
            image: Image (H, W, 3), linear float values

        Returns:
            Image (H, W, 3), values in [0, 1]
        """

    @property
    @abstractmethod
    def name(self) -> str:
        """Human-readable name of the operator."""


class LinearToneMapper(ToneMapper):
    """Clamps values to [0, 1]; renders are already in range."""

    @property
    def name(self) -> str:
        return "Linear"

    def apply(self, image: np.ndarray) -> np.ndarray:
        return np.clip(image, 0.0, 1.0)


class ReinhardToneMapper(ToneMapper):
    """Reinhard global tone mapping operator.

    Luminance is scaled so the log-average maps to the key value, then
    compressed with L / (1 + L). Color ratios are preserved.
    """

    def __init__(self, key: float = 0.18):
        """Initialize Reinhard tone mapper.

        Args:
            key: Scene key value (default 0.18 for typical scenes)
        """
        self.key = key

    @property
    def name(self) -> str:
        return "Reinhard"

    def apply(self, image: np.ndarray) -> np.ndarray:
        lum = luminance(image)
        scaled = (self.key / log_average_luminance(image)) * lum
        mapped = scaled / (1.0 + scaled)

        scale = mapped / np.maximum(lum, 1e-8)
        return np.clip(image * scale[..., np.newaxis], 0.0, 1.0)


class WardToneMapper(ToneMapper):
    """Ward's contrast-based scale factor.

    A single global scale maps the scene's log-average luminance to the
    display's adaptation level, expressed relative to ld_max.
    """

    def __init__(self, ld_max: float = 100.0):
        """Initialize Ward tone mapper.

        Args:
            ld_max: Maximum display luminance in nits
        """
        self.ld_max = ld_max

    @property
    def name(self) -> str:
        return "Ward"

    def scale_factor(self, image: np.ndarray) -> float:
        l_avg = log_average_luminance(image)
        numerator = 1.219 + (self.ld_max / 2.0) ** 0.4
        denominator = 1.219 + l_avg ** 0.4
        return (numerator / denominator) ** 2.5

    def apply(self, image: np.ndarray) -> np.ndarray:
        return np.clip(image * (self.scale_factor(image) / self.ld_max), 0.0, 1.0)


def apply_gamma(image: np.ndarray, gamma: float = 2.2) -> np.ndarray:
    """Apply gamma correction to an image.

    Args:
        image: Input image (H, W, 3), values in [0, 1]
        gamma: Gamma value (2.2 for sRGB, 1.0 for none)

    Returns:
        Gamma-corrected image
    """
    return np.power(np.clip(image, 0.0, 1.0), 1.0 / gamma)


def create_tone_mapper(operator: Union[ToneMappingOperator, str], **kwargs) -> ToneMapper:
    """Create a tone mapper by operator type or name.

    Args:
        operator: Operator enum member or its string value
        **kwargs: Additional arguments for the specific operator

    Returns:
        ToneMapper instance
    """
    if isinstance(operator, str):
        try:
            operator = ToneMappingOperator(operator.lower())
        except ValueError:
            raise ValueError(f"Unknown tone mapping operator: {operator}") from None

    if operator == ToneMappingOperator.LINEAR:
        return LinearToneMapper()
    elif operator == ToneMappingOperator.REINHARD:
        return ReinhardToneMapper(**kwargs)
    elif operator == ToneMappingOperator.WARD:
        return WardToneMapper(**kwargs)
    raise ValueError(f"Unknown tone mapping operator: {operator}")
