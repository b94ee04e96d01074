"""Shared test fixtures: fake Fleet server and sample API payloads."""
