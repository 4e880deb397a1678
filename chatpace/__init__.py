"""chatpace - paced delivery of streamed model output to chat platforms."""

__version__ = "0.1.0"
