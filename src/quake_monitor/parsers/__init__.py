"""Parsers for converting provider responses to Event envelopes."""

from quake_monitor.parsers.kandilli_json import KandilliJSONParser

PARSER_MAP = {
    "kandilli": KandilliJSONParser(),
}

__all__ = ["PARSER_MAP", "KandilliJSONParser"]
