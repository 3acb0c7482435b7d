"""
Plays a full season headlessly: trains and pays through each week, races
every calendar event and prints the final standings.

Usage:
    python run_season.py --team-id team-lynx --save-slot main --silent
"""

import argparse

from ski_manager.database import queries as ski_queries
from ski_manager.outcome import finish_race
from ski_manager.reference_data import create_initial_state
from ski_manager.season import start_next_race


def run_season(state, save_slot=None, verbose=True):
    races_left = len(state.season_races) - len(state.past_results)
    for _ in range(races_left):
        state = start_next_race(state, verbose=verbose)
        if state.active_race is None:
            break
        state = finish_race(state, verbose=verbose)
        if save_slot:
            if not ski_queries.record_race_results(save_slot, state.past_results[-1]):
                print(f"!!! Could not record results for {state.past_results[-1].race_id}")
    return state


def main():
    parser = argparse.ArgumentParser(description="Simulate a full ski classics season.")
    parser.add_argument("--team-id", default=None, help="Team the player manages (defaults to the first team).")
    parser.add_argument("--save-slot", default=None, help="Load from and save to this slot in the database.")
    parser.add_argument("--silent", action="store_true", help="Suppress per-race output.")
    args = parser.parse_args()

    state = None
    if args.save_slot:
        state = ski_queries.load_game_state(args.save_slot)
        if state:
            print(f"  -> Resuming slot '{args.save_slot}' at week {state.current_week}")
    if state is None:
        state = create_initial_state(player_team_id=args.team_id)
        if args.save_slot and not ski_queries.save_game_state(args.save_slot, state):
            print(f"!!! Could not create save slot '{args.save_slot}'; results will not be recorded.")

    state = run_season(state, save_slot=args.save_slot, verbose=not args.silent)

    print("\n--- Team Standings ---")
    for team_id, points in sorted(state.standings.teams.items(), key=lambda item: -item[1]):
        marker = " (you)" if team_id == state.player_team_id else ""
        print(f"{state.teams[team_id].name if team_id in state.teams else team_id}{marker}: {points:.0f}")
    print(f"\nFinal balance: {state.finance.balance:,.0f}")

    if args.save_slot:
        if ski_queries.save_game_state(args.save_slot, state):
            print(f"  -> Saved to slot '{args.save_slot}'")


if __name__ == "__main__":
    main()
