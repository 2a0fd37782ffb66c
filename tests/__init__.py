"""
Tactical Playback Test Suite

This package contains tests for the track playback core (geodesy, timeline,
camera) and its ingestion and serving surfaces.

Structure:
- unit/: Unit tests for individual components
- integration/: Integration tests for the HTTP / WebSocket surface
"""
