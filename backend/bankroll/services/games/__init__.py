"""Game domain services: dice scoring, power-ups, timers and the round engine.

This package contains the core game mechanics and is imported by the room
models and socket handlers, keeping transport concerns separated from the
rules of play.
"""
