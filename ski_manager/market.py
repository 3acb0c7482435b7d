from __future__ import annotations

import random
from dataclasses import replace
from typing import Dict, List, Mapping, Optional, Tuple

import numpy as np

from ski_manager.config import get_config
from ski_manager.engine.constants import MORALE_RANGE
from ski_manager.engine.data_models import Athlete
from ski_manager.game_state import GameState, IncomingOffer, Team, TransferCandidate, TransferStatus

# --- Configuration ---
BASE_VALUE = get_config('market.base_value', 10000)
STAT_VALUE = get_config('market.stat_value', 40)
POTENTIAL_VALUE = get_config('market.potential_value', 10)
POINTS_VALUE = get_config('market.points_value', 500)
POOL_SIZE = get_config('market.pool_size', 40)
OFFER_PRICE_RANGE = tuple(get_config('market.offer_price_range', [0.85, 1.1]))
BUY_MORALE_BONUS = get_config('market.buy_morale_bonus', 5)

INTEREST_RANGE = (10.0, 95.0)


def _stats_score(athlete: Athlete) -> float:
    stats = athlete.base_stats
    return stats.endurance * 0.35 + stats.climbing * 0.25 + stats.flat * 0.2 + stats.sprint * 0.2


def _age_curve(age: int) -> float:
    if age < 24:
        return 1.08
    if age > 34:
        return 0.88
    if age > 30:
        return 0.94
    return 1.0


def compute_market_value(athlete: Athlete, standings_points: Mapping[str, float]) -> float:
    """
    Prices an athlete from weighted stats, potential, age and season points.

    value = (base + stats*40 + potential*10) * age_curve + points*500
    """
    performance = standings_points.get(athlete.athlete_id, 0)
    base = BASE_VALUE + _stats_score(athlete) * STAT_VALUE + athlete.potential * POTENTIAL_VALUE
    return base * _age_curve(athlete.age) + performance * POINTS_VALUE


def build_transfer_candidates(state: GameState, player_team_id: Optional[str] = None) -> Tuple[TransferCandidate, ...]:
    """Lists the first POOL_SIZE athletes outside the player's team."""
    player_team_id = player_team_id or state.resolved_player_team_id
    points = state.standings.athletes
    others = [athlete for athlete in state.athletes.values() if athlete.team_id != player_team_id]

    candidates = []
    for athlete in others[:POOL_SIZE]:
        value = compute_market_value(athlete, points)
        interest = float(np.clip(60 + points.get(athlete.athlete_id, 0) / 4 - athlete.state.fatigue / 2, *INTEREST_RANGE))
        candidates.append(
            TransferCandidate(
                athlete_id=athlete.athlete_id,
                asking_price=float(round(value)),
                status=TransferStatus.LISTED,
                interest=interest,
            )
        )
    return tuple(candidates)


def refresh_transfer_market(state: GameState) -> GameState:
    return replace(state, transfer_list=build_transfer_candidates(state))


def list_athlete_for_transfer(state: GameState, athlete_id: str, asking_price: float) -> GameState:
    """Puts one of our athletes on the list, replacing any existing listing."""
    athlete = state.athletes.get(athlete_id)
    if athlete is None:
        return state

    listing = TransferCandidate(
        athlete_id=athlete_id,
        asking_price=float(asking_price),
        status=TransferStatus.LISTED,
        interest=float(np.clip(70 - athlete.state.fatigue / 2 + athlete.potential / 4, *INTEREST_RANGE)),
    )
    if any(c.athlete_id == athlete_id for c in state.transfer_list):
        transfer_list = tuple(listing if c.athlete_id == athlete_id else c for c in state.transfer_list)
    else:
        transfer_list = state.transfer_list + (listing,)
    return replace(state, transfer_list=transfer_list)


def _move_athlete(teams: Mapping[str, Team], athlete_id: str, from_team_id: str, to_team_id: str) -> Dict[str, Team]:
    updated = dict(teams)
    old_team = updated.get(from_team_id)
    if old_team is not None:
        updated[from_team_id] = replace(old_team, athletes=tuple(a for a in old_team.athletes if a != athlete_id))
    new_team = updated.get(to_team_id)
    if new_team is not None and athlete_id not in new_team.athletes:
        updated[to_team_id] = replace(new_team, athletes=new_team.athletes + (athlete_id,))
    return updated


def buy_transfer_target(state: GameState, athlete_id: str) -> GameState:
    """Signs a listed athlete when the club can afford the asking price."""
    candidate = next((c for c in state.transfer_list if c.athlete_id == athlete_id), None)
    athlete = state.athletes.get(athlete_id)
    if candidate is None or athlete is None:
        return state
    price = candidate.asking_price
    if state.finance.balance < price:
        return state

    player_team_id = state.resolved_player_team_id
    finance = state.finance.with_entry(state.current_week, -price, f"Transfer fee for {athlete.name}")
    teams = _move_athlete(state.teams, athlete_id, athlete.team_id, player_team_id)
    morale = float(np.clip(athlete.state.morale + BUY_MORALE_BONUS, *MORALE_RANGE))
    signed = replace(athlete, team_id=player_team_id, state=replace(athlete.state, morale=morale))

    return replace(
        state,
        finance=finance,
        teams=teams,
        athletes={**state.athletes, athlete_id: signed},
        transfer_list=tuple(c for c in state.transfer_list if c.athlete_id != athlete_id),
    )


def generate_incoming_offers(state: GameState, rng: Optional[random.Random] = None) -> List[IncomingOffer]:
    """
    Rolls rival interest in each of our listed athletes.

    Each listing attracts an offer with probability interest/100, from a
    random rival team, priced around the asking price. No offers is a valid
    outcome.
    """
    rng = rng or random.Random()
    player_team_id = state.resolved_player_team_id
    rivals = sorted(team_id for team_id in state.teams if team_id != player_team_id)
    if not rivals:
        return []

    offers = []
    for listing in state.transfer_list:
        athlete = state.athletes.get(listing.athlete_id)
        if listing.status is not TransferStatus.LISTED or athlete is None or athlete.team_id != player_team_id:
            continue
        if rng.random() * 100 >= listing.interest:
            continue
        low, high = OFFER_PRICE_RANGE
        offers.append(
            IncomingOffer(
                athlete_id=listing.athlete_id,
                from_team_id=rng.choice(rivals),
                amount=float(round(listing.asking_price * rng.uniform(low, high))),
                week=state.current_week,
            )
        )
    return offers


def collect_incoming_offers(state: GameState, rng: Optional[random.Random] = None) -> GameState:
    offers = generate_incoming_offers(state, rng)
    if not offers:
        return state
    return replace(state, incoming_offers=state.incoming_offers + tuple(offers))


def accept_incoming_offer(state: GameState, offer: IncomingOffer) -> GameState:
    """Sells an athlete to the bidding team and clears their listing and offers."""
    athlete = state.athletes.get(offer.athlete_id)
    player_team_id = state.resolved_player_team_id
    if athlete is None or athlete.team_id != player_team_id or offer.from_team_id not in state.teams:
        return state

    finance = state.finance.with_entry(state.current_week, offer.amount, f"Transfer sale of {athlete.name}")
    teams = _move_athlete(state.teams, athlete.athlete_id, player_team_id, offer.from_team_id)
    sold = replace(athlete, team_id=offer.from_team_id)

    return replace(
        state,
        finance=finance,
        teams=teams,
        athletes={**state.athletes, athlete.athlete_id: sold},
        transfer_list=tuple(c for c in state.transfer_list if c.athlete_id != athlete.athlete_id),
        incoming_offers=tuple(o for o in state.incoming_offers if o.athlete_id != athlete.athlete_id),
    )
