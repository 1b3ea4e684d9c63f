"""Lobby domain services: sessions keep-alive, room registry, presence, seed data.

Routes and socket handlers import from here, keeping transport concerns
separate from room and player bookkeeping.
"""
