"""Co-annotation gold standards for evaluating gene-pair similarity scores."""

__version__ = "0.1.0"
