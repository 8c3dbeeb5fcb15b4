"""Mallard - conversational DuckDB SQL assistant."""

__version__ = "0.1.0"
