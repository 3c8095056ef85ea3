"""
Test suite for schemakeeper.

Unit tests for definitions, diffing, dialect rendering, DDL operations,
reconciliation, introspection, configuration and the CLI.
"""
