"""
Telemetry engine package for the solar tracker dashboard.

Polls the latest reading published by the ESP32 solar tracker, derives
power, efficiency and battery state of charge, classifies feed freshness,
and keeps a bounded seven-day history that the dashboard reads through a
small HTTP API.

CHANGELOG:
- 2026-10-12: Initial creation (STORY-101)

TODO:
- None
"""
