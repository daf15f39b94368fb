"""Poker Pal: poker session chip tracking, winnings and leaderboard service."""
