"""Consumed points & leaderboards backend."""
