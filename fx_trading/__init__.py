"""FX spot trade recorder: unique date-scoped references and an append-only audit trail."""

__version__ = "0.1.0"
