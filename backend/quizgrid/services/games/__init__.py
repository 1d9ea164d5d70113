"""Game domain services: board rules, claims, question draws, events, timers.

This package contains the game logic imported by HTTP routes and socket
handlers, keeping transport concerns separated from core game mechanics.
"""
