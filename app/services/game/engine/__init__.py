"""Game engine module - pure functional game logic.

This module provides the core game engine with:
- Action types for explicit player inputs
- Event types for WebSocket broadcasts
- ProcessResult pattern for error handling
- Modular processing logic (rolling, landing, debt, auctions, trades)

Usage:
    from app.services.game.engine import (
        process_action,
        ProcessResult,
        GameAction,
        RollAction,
        BuyPropertyAction,
    )

    # Process an action
    result = process_action(state, RollAction(), player_id, rng=rng)

    if result.success:
        new_state = result.state
        events = result.events  # Broadcast these via WebSocket
    else:
        # Handle error
        print(f"Error: {result.error_code} - {result.error_message}")
"""

# Actions - explicit player inputs
from .actions import (
    SERVER_ONLY_ACTIONS,
    TRADE_RESPONSE_ACTIONS,
    AcceptTradeAction,
    AddBotAction,
    BuildHouseAction,
    BuyPropertyAction,
    CancelTradeAction,
    DeclareBankruptcyAction,
    DeclineTradeAction,
    EndAuctionAction,
    EndTurnAction,
    GameAction,
    JoinGameAction,
    LeaveGameAction,
    MortgagePropertyAction,
    PassBidAction,
    PayBailAction,
    PlaceBidAction,
    ProposeTradeAction,
    RollAction,
    SellHouseAction,
    SellPropertyAction,
    SetConnectedAction,
    StartAuctionAction,
    StartGameAction,
    UnmortgagePropertyAction,
    UseJailFreeCardAction,
    build_action_from_payload,
)

# Events - for WebSocket broadcasts
from .events import (
    AnotherTurn,
    AnyGameEvent,
    DiceRolled,
    GameEvent,
    GameOver,
    GameStarted,
    GameStats,
    JailNotice,
    PlayerBankrupt,
    PropertyUnowned,
    TradeAccepted,
    TradeCancelled,
    TradeDeclined,
    TradeOffered,
    TurnEnded,
    TurnReminder,
    TurnStarted,
    parse_event,
)

# Consistency checks
from .integrity import check_invariants

# Main processing
from .process import process_action

# Rules helpers shared with bots and stats
from .rules import calculate_rent, has_debt, needs_money, net_worth, unmortgage_cost

# Result types
from .validation import ProcessResult, ValidationResult, validate_action

__all__ = [
    # Actions
    "GameAction",
    "JoinGameAction",
    "AddBotAction",
    "StartGameAction",
    "LeaveGameAction",
    "SetConnectedAction",
    "RollAction",
    "EndTurnAction",
    "DeclareBankruptcyAction",
    "BuyPropertyAction",
    "BuildHouseAction",
    "SellHouseAction",
    "MortgagePropertyAction",
    "UnmortgagePropertyAction",
    "SellPropertyAction",
    "PayBailAction",
    "UseJailFreeCardAction",
    "StartAuctionAction",
    "PlaceBidAction",
    "PassBidAction",
    "EndAuctionAction",
    "ProposeTradeAction",
    "AcceptTradeAction",
    "DeclineTradeAction",
    "CancelTradeAction",
    "SERVER_ONLY_ACTIONS",
    "TRADE_RESPONSE_ACTIONS",
    "build_action_from_payload",
    # Events
    "GameEvent",
    "AnyGameEvent",
    "AnotherTurn",
    "DiceRolled",
    "GameOver",
    "GameStarted",
    "GameStats",
    "JailNotice",
    "PlayerBankrupt",
    "PropertyUnowned",
    "TradeAccepted",
    "TradeCancelled",
    "TradeDeclined",
    "TradeOffered",
    "TurnEnded",
    "TurnReminder",
    "TurnStarted",
    "parse_event",
    # Processing
    "process_action",
    "check_invariants",
    # Rules
    "calculate_rent",
    "has_debt",
    "needs_money",
    "net_worth",
    "unmortgage_cost",
    # Validation
    "ProcessResult",
    "ValidationResult",
    "validate_action",
]
