#!/usr/bin/env python3
"""CLI tool for Poker Pal administration."""
import asyncio
import sys

from pokerpal.db.connection import db
from pokerpal.db.models import init_db
from pokerpal.errors import NotFoundError
from pokerpal.state.player_store import player_store
from pokerpal.state.chip_value_store import chip_value_store
from pokerpal.ledger.winnings import winnings_aggregator
from pokerpal.admin.standings import leaderboard, player_stats, rank_players, format_standings_table


async def initialize_database():
    """Create tables and seed defaults."""
    await db.connect()
    try:
        await init_db()
        print("Success: database initialized.")
    finally:
        await db.disconnect()


async def list_players():
    """List all players."""
    await db.connect()
    try:
        players = await player_store.list_players()

        if not players:
            print("No players found.")
            return

        print(f"\n{'Player ID':<20} {'Name':<30} {'Admin':<6} {'Winnings':>12}")
        print("-" * 72)
        for p in players:
            admin = "yes" if p.is_admin else ""
            print(f"{p.player_id:<20} {p.display_name:<30} {admin:<6} {p.total_winnings:>12}")
        print(f"\nTotal: {len(players)} players")
    finally:
        await db.disconnect()


async def get_player(player_id: str):
    """Get player details."""
    await db.connect()
    try:
        player = await player_store.get(player_id)

        if not player:
            print(f"Error: Player '{player_id}' not found.")
            sys.exit(1)

        print(f"\nPlayer: {player.player_id}")
        print(f"  Name:       {player.display_name}")
        print(f"  Level:      {player.level or 'N/A'}")
        print(f"  Experience: {player.years_of_experience if player.years_of_experience is not None else 'N/A'}")
        print(f"  Major:      {player.major or 'N/A'}")
        print(f"  Admin:      {player.is_admin}")
        print(f"  Winnings:   {player.total_winnings}")
        print(f"  Created:    {player.created_at}")
    finally:
        await db.disconnect()


async def set_admin(player_id: str, is_admin: bool):
    """Promote a player to admin or demote back to player."""
    await db.connect()
    try:
        await player_store.set_admin(player_id, is_admin)
        if is_admin:
            print(f"Success: '{player_id}' is now an admin.")
        else:
            print(f"Success: '{player_id}' is now a regular player.")
    except NotFoundError:
        print(f"Error: Player '{player_id}' not found.")
        sys.exit(1)
    finally:
        await db.disconnect()


async def recalculate(player_id: str = None):
    """Recompute winnings for one player, or everyone."""
    await db.connect()
    try:
        async with db.transaction() as conn:
            if player_id:
                total = await winnings_aggregator.recalculate(player_id, conn=conn)
                print(f"Success: '{player_id}' total winnings are now {total}.")
            else:
                count = await winnings_aggregator.recalculate_all(conn=conn)
                print(f"Success: recalculated winnings for {count} players.")
    except NotFoundError:
        print(f"Error: Player '{player_id}' not found.")
        sys.exit(1)
    finally:
        await db.disconnect()


async def show_leaderboard():
    """Print the all-time leaderboard."""
    await db.connect()
    try:
        players = await leaderboard.players.list_players()
        sessions = await leaderboard.sessions.list_all()
        stats = {
            p.player_id: player_stats([s for s in sessions if s.player_id == p.player_id])
            for p in players
        }
        entries, _ = rank_players(players, stats, limit=len(players))
        print()
        print(format_standings_table(entries))
    finally:
        await db.disconnect()


async def show_chip_values():
    """Print the chip price table."""
    await db.connect()
    try:
        values = await chip_value_store.get_all()
        print(f"\n{'Color':<10} {'Value':>8}")
        print("-" * 19)
        for color, value in values.items():
            print(f"{color:<10} {value:>8}")
    finally:
        await db.disconnect()


def print_usage():
    """Print usage information."""
    print("""
Poker Pal CLI

Usage:
  python -m pokerpal.cli <command> [args]

Commands:
  init-db                 Create tables and seed defaults
  list                    List all players
  get <player_id>         Get player details
  promote <player_id>     Promote player to admin
  demote <player_id>      Demote admin to player
  recalculate [player_id] Recompute winnings (all players if omitted)
  leaderboard             Show the all-time leaderboard
  chip-values             Show the chip price table

Examples:
  python -m pokerpal.cli list
  python -m pokerpal.cli promote alice01
  python -m pokerpal.cli recalculate
""")


def _require_player_id(command: str) -> str:
    if len(sys.argv) < 3:
        print("Error: Player ID required.")
        print(f"Usage: python -m pokerpal.cli {command} <player_id>")
        sys.exit(1)
    return sys.argv[2]


def main():
    """Main CLI entry point."""
    if len(sys.argv) < 2:
        print_usage()
        sys.exit(1)

    command = sys.argv[1].lower()

    if command == "init-db":
        asyncio.run(initialize_database())

    elif command == "list":
        asyncio.run(list_players())

    elif command == "get":
        asyncio.run(get_player(_require_player_id(command)))

    elif command == "promote":
        asyncio.run(set_admin(_require_player_id(command), True))

    elif command == "demote":
        asyncio.run(set_admin(_require_player_id(command), False))

    elif command == "recalculate":
        asyncio.run(recalculate(sys.argv[2] if len(sys.argv) > 2 else None))

    elif command == "leaderboard":
        asyncio.run(show_leaderboard())

    elif command == "chip-values":
        asyncio.run(show_chip_values())

    elif command in ("help", "-h", "--help"):
        print_usage()

    else:
        print(f"Unknown command: {command}")
        print_usage()
        sys.exit(1)


if __name__ == "__main__":
    main()
