"""Validated inputs for the pool, pick and results actions.

Each model produces the exact user-facing message for its first failing
field; `parse_input` turns a validation failure into `InvalidInput`.
"""
from typing import Any, Dict, Type, TypeVar

from pydantic import BaseModel, ValidationError, field_validator
from pydantic_core import PydanticCustomError

from .config import MAX_LIVES, MIN_LIVES, POOL_CODE_LENGTH, POOL_ID_LENGTH
from .errors import InvalidInput

ModelT = TypeVar("ModelT", bound=BaseModel)

INT64_MIN = -(2 ** 63)
INT64_MAX = 2 ** 63 - 1


def _fail(message: str):
    raise PydanticCustomError("invalid_input", message)


def _to_int(value: Any):
    if isinstance(value, bool):
        return None
    if isinstance(value, int):
        return value
    if isinstance(value, float) and value.is_integer():
        return int(value)
    if isinstance(value, str):
        try:
            return int(value.strip())
        except ValueError:
            return None
    return None


def _coerce_int(value: Any, message: str) -> int:
    """Whole numbers only, within the range a database integer column can hold."""
    number = _to_int(value)
    if number is None or not INT64_MIN <= number <= INT64_MAX:
        _fail(message)
    return number


def parse_input(model: Type[ModelT], data: Dict[str, Any], default_error: str) -> ModelT:
    """Validate raw input, surfacing only the first failing field's message."""
    try:
        return model.model_validate(data)
    except ValidationError as exc:
        errors = exc.errors()
        message = errors[0]["msg"] if errors and errors[0]["type"] == "invalid_input" else default_error
        raise InvalidInput(message) from exc


class CreatePoolInput(BaseModel):
    name: Any
    lives: Any

    @field_validator("name", mode="before")
    @classmethod
    def check_name(cls, value):
        if not isinstance(value, str) or len(value) < 3:
            _fail("Pool name must be at least 3 characters long")
        if len(value) > 100:
            _fail("Pool name is too long")
        return value

    @field_validator("lives", mode="before")
    @classmethod
    def check_lives(cls, value):
        lives = _coerce_int(value, "Lives must be a whole number")
        if lives < MIN_LIVES or lives > MAX_LIVES:
            _fail(f"Lives must be between {MIN_LIVES} and {MAX_LIVES}")
        return lives


class JoinPoolInput(BaseModel):
    pool_code: Any

    @field_validator("pool_code", mode="before")
    @classmethod
    def check_code(cls, value):
        message = f"Enter a {POOL_CODE_LENGTH}-character code or pool ID"
        if not isinstance(value, str):
            _fail(message)
        value = value.strip()
        if len(value) not in (POOL_CODE_LENGTH, POOL_ID_LENGTH):
            _fail(message)
        return value


class SubmitPickInput(BaseModel):
    pool_id: Any
    team_id: Any
    gameweek: Any

    @field_validator("pool_id", mode="before")
    @classmethod
    def check_pool(cls, value):
        if value is None or not str(value).strip():
            _fail("Pool is required")
        return str(value).strip()

    @field_validator("team_id", mode="before")
    @classmethod
    def check_team(cls, value):
        return _coerce_int(value, "Select a valid team")

    @field_validator("gameweek", mode="before")
    @classmethod
    def check_gameweek(cls, value):
        gameweek = _coerce_int(value, "Gameweek must be an integer")
        if gameweek <= 0:
            _fail("Gameweek must be positive")
        return gameweek


class RemoveMemberInput(BaseModel):
    pool_id: Any
    membership_id: Any

    @field_validator("pool_id", mode="before")
    @classmethod
    def check_pool(cls, value):
        if value is None or not str(value).strip():
            _fail("Pool is required")
        return str(value).strip()

    @field_validator("membership_id", mode="before")
    @classmethod
    def check_membership(cls, value):
        membership_id = _coerce_int(value, "Invalid member reference")
        if membership_id <= 0:
            _fail("Invalid member reference")
        return membership_id
