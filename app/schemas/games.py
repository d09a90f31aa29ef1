"""Pydantic schemas for the game REST endpoints."""

from typing import Any

from pydantic import BaseModel, Field

from app.schemas.game_engine import BotDifficulty, GameRules


class CreateGameRequest(BaseModel):
    """Request body for creating a game."""

    name: str = Field(..., min_length=1, max_length=32, description="Host display name")
    rules: GameRules | None = Field(
        default=None,
        description="Rule overrides; server defaults when omitted",
    )


class JoinGameRequest(BaseModel):
    name: str = Field(..., min_length=1, max_length=32, description="Display name")


class AddBotRequest(BaseModel):
    difficulty: BotDifficulty | None = Field(
        default=None,
        description="Bot difficulty; the game's default when omitted",
    )


class GameResponse(BaseModel):
    """Full game document as clients see it."""

    game_id: str
    state: dict[str, Any] = Field(..., description="Serialized game state")


class TileInfo(BaseModel):
    id: int
    name: str
    type: str
    group: str | None = None
    cost: int = 0
    base_rent: int = 0
    rent: list[int] = Field(default_factory=list)
    house_cost: int = 0
    mortgage_value: int = 0


class BoardConfigResponse(BaseModel):
    """Static board layout plus the default rules new games get."""

    tiles: list[TileInfo]
    color_groups: dict[str, list[int]]
    default_rules: GameRules
