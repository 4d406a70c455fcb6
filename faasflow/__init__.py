"""Event-driven functions over CloudEvents: middleware, Lambda, NATS, Kafka and HTTP triggers, and publishers."""

__version__ = "0.1.0"