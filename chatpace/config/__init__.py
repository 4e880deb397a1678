"""Configuration module for chatpace."""

from chatpace.config.loader import load_config
from chatpace.config.schema import DeliveryConfig, HumanizerDegree

__all__ = ["DeliveryConfig", "HumanizerDegree", "load_config"]
