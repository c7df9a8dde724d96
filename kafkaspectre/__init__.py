"""KafkaSpectre: find unused Kafka topics and drift between code and cluster."""

__version__ = "0.3.0"
