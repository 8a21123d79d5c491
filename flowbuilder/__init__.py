"""Graph editor model, validator and serializer for marketing-automation workflows."""

__version__ = "0.1.0"
