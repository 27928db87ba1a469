import logging
from typing import Optional

from pydantic import Field

from nat.builder.builder import Builder
from nat.builder.function_info import FunctionInfo
from nat.cli.register_workflow import register_function
from nat.data_models.function import FunctionBaseConfig

from wof_core.constants import MAX_SPIN_SECONDS

logger = logging.getLogger(__name__)


class WheelHostConfig(FunctionBaseConfig, name="wheel_host"):
    """
    Host function for the wheel game. Resumes (or starts) a game stored in
    Redis and applies one player action per call, answering with a JSON
    envelope of the new state.
    """
    force_new: bool = Field(default=False, description="If true, start a new game even if one is stored")
    category: Optional[str] = Field(default=None, description="Only draw phrases from this category")
    weighted_categories: Optional[dict[str, float]] = Field(
        default=None, description="Optional per-category weights for phrase selection"
    )
    max_spin_seconds: float = Field(default=MAX_SPIN_SECONDS, description="Budget before a spin is forced to stop")


@register_function(config_type=WheelHostConfig)
async def wheel_host_function(
    config: WheelHostConfig, builder: Builder
):
    from wof_host.actions import safe_handle_action
    from wof_host.session import build_session

    session = build_session(
        force_new=config.force_new,
        category=config.category,
        weighted_categories=config.weighted_categories,
        max_spin_seconds=config.max_spin_seconds,
    )

    async def _response_fn(input_message: str) -> str:
        return safe_handle_action(session, input_message)

    try:
        yield FunctionInfo.from_fn(
            _response_fn,
            description=(
                "Wheel game host. Input is one action: 'spin', 'guess <CONSONANT>', "
                "'buy_vowel <VOWEL>', 'solve <PHRASE>', 'free_spin', 'new_game', 'next_round' or 'state' "
                "(or the same as JSON with an 'action' key). Returns the updated game as JSON."
            ),
        )
    except GeneratorExit:
        logger.warning("Function exited early!")
    finally:
        logger.info("Cleaning up wheel_host workflow.")
